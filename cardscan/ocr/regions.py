"""
Identifier regions and the region read strategy.

The card number sits in the bottom-left corner on most editions and in the
bottom-right on others. Regions are tried in order and the first one that
yields a parseable identifier wins; later regions are skipped.

Region coordinates are fractions of the card image, so they work for any
resolution.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from cardscan.config import OCR_BOTTOM_LEFT_REGION, OCR_BOTTOM_RIGHT_REGION
from cardscan.ocr.base_ocr import BaseRecognizer
from cardscan.ocr.identifier import IdentifierExtractor
from cardscan.ocr.preprocess import Preprocessor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Region:
    """Fractional rectangle (x, y, width, height in [0, 1]) of a source image."""

    name: str
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self):
        for label, value in (('x', self.x), ('y', self.y), ('width', self.width), ('height', self.height)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Region {self.name}: {label}={value} outside [0, 1]")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Region {self.name}: width and height must be positive")
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise ValueError(f"Region {self.name} extends past the image edge")


BOTTOM_LEFT = Region('bottom-left', *OCR_BOTTOM_LEFT_REGION)
BOTTOM_RIGHT = Region('bottom-right', *OCR_BOTTOM_RIGHT_REGION)
DEFAULT_REGIONS = (BOTTOM_LEFT, BOTTOM_RIGHT)


@dataclass(frozen=True)
class RecognitionResult:
    """One recognition attempt on one region."""

    raw_text: str
    confidence: float
    """Recognizer confidence, 0-100."""
    identifier: Optional[str] = None
    """Canonical PREFIX-NUMBER if the text parsed, else None."""
    region: str = ""

    @property
    def parsed(self) -> bool:
        return self.identifier is not None


class RegionStrategy:
    """
    Ordered, first-success region reading.

    For each region: preprocess -> recognize -> parse. Stop at the first
    parsed identifier. If nothing parses, return the highest-confidence raw
    attempt (earlier region wins ties) so the caller can still judge OCR
    quality.

    Usage:
        strategy = RegionStrategy()
        result = await strategy.read(card_image, recognizer)
        if result.identifier:
            print(f"{result.identifier} from {result.region}")
    """

    def __init__(
        self,
        regions: Sequence[Region] = DEFAULT_REGIONS,
        preprocessor: Optional[Preprocessor] = None,
        extractor: Optional[IdentifierExtractor] = None
    ):
        if not regions:
            raise ValueError("RegionStrategy needs at least one region")

        self.regions = tuple(regions)
        self.preprocessor = preprocessor or Preprocessor()
        self.extractor = extractor or IdentifierExtractor()

    async def read_region(self, image: np.ndarray, region: Region, recognizer: BaseRecognizer) -> RecognitionResult:
        """Run one region through the pipeline."""
        binary = self.preprocessor.process(image, region)
        ocr_result = await recognizer.recognize(binary)
        identifier = self.extractor.extract(ocr_result.text)

        logger.info(
            f"OCR {region.name}: '{ocr_result.text}' (conf: {ocr_result.confidence:.1f}) "
            f"-> {identifier or 'no identifier'}"
        )
        return RecognitionResult(
            raw_text=ocr_result.text,
            confidence=ocr_result.confidence,
            identifier=identifier,
            region=region.name,
        )

    async def read(self, image: np.ndarray, recognizer: BaseRecognizer) -> RecognitionResult:
        """
        Read the identifier from a card image.

        Args:
            image: Card image (ideally boundary-corrected)
            recognizer: Ready recognizer capability

        Returns:
            First parsed RecognitionResult, else the best unparsed attempt
        """
        attempts: List[RecognitionResult] = []

        for region in self.regions:
            result = await self.read_region(image, region, recognizer)
            if result.parsed:
                return result
            attempts.append(result)

        best = attempts[0]
        for attempt in attempts[1:]:
            if attempt.confidence > best.confidence:
                best = attempt

        logger.info(f"No region parsed an identifier; best raw read from {best.region} (conf: {best.confidence:.1f})")
        return best
