"""
Base recognizer interface.

Defines the abstract text-recognition capability consumed by the scan
pipeline, allowing for swappable implementations (Tesseract, EasyOCR, ...).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class OCRResult:
    """Result from one recognition call."""

    text: str
    """Recognized text, stripped of leading/trailing whitespace."""

    confidence: float
    """Engine confidence from 0 to 100. Higher is better."""

    def __bool__(self) -> bool:
        """Return True if text was successfully extracted."""
        return bool(self.text.strip())


class BaseRecognizer(ABC):
    """
    Abstract base class for text recognizers.

    Implementations are configured once (character whitelist, single-line
    segmentation) and reused across scans. A recognizer that failed to
    initialize reports is_available() == False instead of raising per scan.

    Example usage:
        recognizer = TesseractRecognizer()
        if recognizer.is_available():
            result = await recognizer.recognize(binary_image)
            print(f"Found: {result.text} (confidence: {result.confidence:.0f})")
    """

    @abstractmethod
    async def recognize(self, image: np.ndarray) -> OCRResult:
        """
        Recognize text in a binarized image.

        Args:
            image: Binary image (uint8, values 0/255)

        Returns:
            OCRResult with text and confidence (0-100)
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """
        Check if the recognizer is initialized and usable.

        Returns:
            True if the recognizer can be used, False otherwise
        """
        pass
