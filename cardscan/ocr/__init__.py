"""
OCR package for reading card numbers.

This package provides:
- BaseRecognizer: Abstract interface for text recognizers
- TesseractRecognizer: Tesseract-based implementation
- Preprocessor: Crop + upscale + adaptive threshold for a card region
- RegionStrategy: Ordered, first-success region reading
- extract_identifier: Card number parsing with context-aware glyph repair
"""

from cardscan.ocr.base_ocr import BaseRecognizer, OCRResult
from cardscan.ocr.tesseract_service import TesseractRecognizer
from cardscan.ocr.preprocess import Preprocessor, adaptive_threshold, integral_image
from cardscan.ocr.identifier import (
    IdentifierExtractor,
    extract_identifier,
    extract_name_hint,
    normalize_ocr_text,
)
from cardscan.ocr.regions import (
    Region,
    RecognitionResult,
    RegionStrategy,
    BOTTOM_LEFT,
    BOTTOM_RIGHT,
    DEFAULT_REGIONS,
)

__all__ = [
    'BaseRecognizer',
    'OCRResult',
    'TesseractRecognizer',
    'Preprocessor',
    'adaptive_threshold',
    'integral_image',
    'IdentifierExtractor',
    'extract_identifier',
    'extract_name_hint',
    'normalize_ocr_text',
    'Region',
    'RecognitionResult',
    'RegionStrategy',
    'BOTTOM_LEFT',
    'BOTTOM_RIGHT',
    'DEFAULT_REGIONS',
]
