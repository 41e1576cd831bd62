"""Configuration for the card identifier scanner."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent.parent

# Paths
CATALOG_PATH = Path(os.getenv("CATALOG_PATH", "data/card-database.json"))
CATALOG_PATH = BASE_DIR / CATALOG_PATH if not CATALOG_PATH.is_absolute() else CATALOG_PATH

DATABASE_PATH = Path(os.getenv("DATABASE_PATH", "data/catalog.db"))
DATABASE_PATH = BASE_DIR / DATABASE_PATH if not DATABASE_PATH.is_absolute() else DATABASE_PATH

# Free path (local OCR)
OCR_CONFIDENCE_THRESHOLD = float(os.getenv("OCR_CONFIDENCE_THRESHOLD", "60"))
OCR_UPSCALE_FACTOR = int(os.getenv("OCR_UPSCALE_FACTOR", "3"))
OCR_THRESHOLD_HALF_WINDOW = int(os.getenv("OCR_THRESHOLD_HALF_WINDOW", "10"))
OCR_THRESHOLD_OFFSET = float(os.getenv("OCR_THRESHOLD_OFFSET", "8"))

# Tesseract settings
OCR_PSM_MODE = int(os.getenv("OCR_PSM_MODE", "7"))  # 7 = single line mode
OCR_CHAR_WHITELIST = os.getenv("OCR_CHAR_WHITELIST", "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-")
TESSERACT_CMD = os.getenv("TESSERACT_CMD") or None

# Card number prefixes of released sets; a parse with one of these wins over other candidates
KNOWN_PREFIXES = frozenset(
    p.strip().upper()
    for p in os.getenv("KNOWN_PREFIXES", "BLBF,BF,AAAA,BJX,BOJ,BJ,BOBA,BBA,BB,BA,BL").split(",")
    if p.strip()
)

# Identifier regions, as (x, y, width, height) fractions of the card image.
# Identifier placement varies by edition, so both bottom corners are tried.
OCR_BOTTOM_LEFT_REGION = (0.03, 0.84, 0.40, 0.14)
OCR_BOTTOM_RIGHT_REGION = (0.57, 0.84, 0.40, 0.14)

# Catalog matching
FUZZY_MAX_DISTANCE = int(os.getenv("FUZZY_MAX_DISTANCE", "2"))
FUZZY_AUTO_ACCEPT_DISTANCE = int(os.getenv("FUZZY_AUTO_ACCEPT_DISTANCE", "1"))
SHORT_NAME_WARN_LENGTH = int(os.getenv("SHORT_NAME_WARN_LENGTH", "3"))

# Paid path (remote AI extraction)
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "500"))
PAID_CALL_COST = float(os.getenv("PAID_CALL_COST", "0.002"))
MAX_PAID_CALLS = int(os.getenv("MAX_PAID_CALLS")) if os.getenv("MAX_PAID_CALLS") else None

# Image intake
MAX_IMAGE_BYTES = int(os.getenv("MAX_IMAGE_BYTES", str(15 * 1024 * 1024)))
COMPRESS_MAX_DIMENSION = int(os.getenv("COMPRESS_MAX_DIMENSION", "1000"))
COMPRESS_JPEG_QUALITY = int(os.getenv("COMPRESS_JPEG_QUALITY", "70"))

# Boundary correction (portrait card, 2.5" x 3.5")
CANONICAL_WIDTH = 500
CANONICAL_HEIGHT = 700

# Batches
BATCH_YIELD_SECONDS = float(os.getenv("BATCH_YIELD_SECONDS", "0.05"))

# API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
SCAN_API_TOKEN = os.getenv("SCAN_API_TOKEN", "")
SCAN_RATE_LIMIT = os.getenv("SCAN_RATE_LIMIT", "30/minute")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
