"""
Recognition service wrapper.

Builds the ScanOrchestrator shared by every API request from the environment
configuration, the same way the CLI does.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from cardscan.catalog.loader import load_catalog_or_unavailable
from cardscan.detection.card_detector import BoundaryCorrector
from cardscan.ocr.tesseract_service import TesseractRecognizer
from cardscan.recognition.ai_extractor import AnthropicExtractor
from cardscan.recognition.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)


def build_orchestrator(catalog_path: Optional[Union[str, Path]] = None) -> ScanOrchestrator:
    """
    Create the orchestrator with every configured capability.

    Missing capabilities are logged, not fatal: an unavailable catalog fails
    each scan with CATALOG_UNAVAILABLE, a missing API key disables the paid
    fallback.
    """
    catalog = load_catalog_or_unavailable(catalog_path)

    recognizer = TesseractRecognizer()
    if not recognizer.is_available():
        logger.warning("Tesseract is not available; free path disabled")

    extractor = AnthropicExtractor()
    if not extractor.is_available():
        logger.warning("ANTHROPIC_API_KEY is not set; paid fallback disabled")

    logger.info(f"Scan service ready: {catalog!r}")
    return ScanOrchestrator(
        catalog,
        recognizer=recognizer,
        extractor=extractor,
        boundary_corrector=BoundaryCorrector(),
    )
