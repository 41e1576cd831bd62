"""
Tesseract recognizer for card number regions.

The engine is set up once for a single printed line restricted to the
identifier alphabet (A-Z, 0-9 and the dash). Readiness is probed on first use
and cached, so a machine without the Tesseract binary reports the free path
as unavailable instead of erroring on every scan.
"""

import asyncio
import logging
import platform
import shutil
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pytesseract

from cardscan.ocr.base_ocr import BaseRecognizer, OCRResult
from cardscan.config import OCR_PSM_MODE, OCR_CHAR_WHITELIST, TESSERACT_CMD

logger = logging.getLogger(__name__)

# Checked when tesseract is not on PATH (installer and chocolatey defaults)
WINDOWS_INSTALL_DIRS = (
    Path(r"C:\Program Files\Tesseract-OCR"),
    Path(r"C:\Program Files (x86)\Tesseract-OCR"),
    Path(r"C:\ProgramData\chocolatey\bin"),
)


def resolve_tesseract_cmd(explicit: Optional[str] = None) -> Optional[str]:
    """
    Pick the tesseract executable: explicit setting, PATH, then known
    Windows install directories. None leaves pytesseract's default.
    """
    if explicit:
        return explicit
    if shutil.which("tesseract"):
        return None
    if platform.system() == "Windows":
        for directory in WINDOWS_INSTALL_DIRS:
            candidate = directory / "tesseract.exe"
            if candidate.exists():
                return str(candidate)
    return None


def build_tesseract_config(psm: int = OCR_PSM_MODE, whitelist: str = OCR_CHAR_WHITELIST) -> str:
    """Build the Tesseract config string (e.g. '--psm 7 --oem 3 -c tessedit_char_whitelist=...')."""
    config = f'--psm {psm} --oem 3'
    if whitelist:
        config += f' -c tessedit_char_whitelist={whitelist}'
    return config


def summarize_words(data: Dict[str, List]) -> OCRResult:
    """
    Collapse image_to_data output into one line of text and a mean confidence.

    Boxes without text are skipped; negative confidences (non-word boxes)
    do not count toward the mean.
    """
    words = []
    scores = []

    for word, conf in zip(data.get('text', []), data.get('conf', [])):
        word = str(word).strip()
        if not word:
            continue
        words.append(word)
        score = float(conf)
        if score >= 0:
            scores.append(score)

    mean = sum(scores) / len(scores) if scores else 0.0
    return OCRResult(text=' '.join(words), confidence=mean)


class TesseractRecognizer(BaseRecognizer):
    """
    Single-line identifier recognizer backed by pytesseract.

    Usage:
        recognizer = TesseractRecognizer()
        if recognizer.is_available():
            result = await recognizer.recognize(binary_region)
    """

    PSM_RANGE = range(0, 14)

    def __init__(
        self,
        tesseract_cmd: Optional[str] = TESSERACT_CMD,
        psm: int = OCR_PSM_MODE,
        whitelist: str = OCR_CHAR_WHITELIST,
        lang: str = 'eng'
    ):
        """
        Args:
            tesseract_cmd: Path to the tesseract binary (default: PATH lookup)
            psm: Page segmentation mode, 7 reads one text line
            whitelist: Characters the engine may emit
            lang: Traineddata language
        """
        if psm not in self.PSM_RANGE:
            raise ValueError(f"Tesseract psm must be 0-13, got {psm}")

        self.tesseract_cmd = resolve_tesseract_cmd(tesseract_cmd)
        self.lang = lang
        self.config = build_tesseract_config(psm, whitelist)
        self._ready: Optional[bool] = None

    def is_available(self) -> bool:
        if self._ready is None:
            if self.tesseract_cmd:
                pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
            try:
                version = pytesseract.get_tesseract_version()
            except (OSError, pytesseract.TesseractError) as e:
                logger.warning(f"Tesseract unavailable, free path disabled: {e}")
                self._ready = False
            else:
                logger.info(f"Tesseract {version} ready ({self.config})")
                self._ready = True
        return self._ready

    def _read_line(self, image: np.ndarray) -> OCRResult:
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=self.config,
                output_type=pytesseract.Output.DICT
            )
        except (OSError, RuntimeError, pytesseract.TesseractError) as e:
            logger.error(f"Tesseract read failed: {e}")
            return OCRResult(text="", confidence=0.0)
        return summarize_words(data)

    async def recognize(self, image: np.ndarray) -> OCRResult:
        """Read one binarized region; Tesseract runs in the default executor."""
        if image is None or image.size == 0:
            logger.warning("Recognizer called with an empty region")
            return OCRResult(text="", confidence=0.0)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self._read_line, image)
        logger.debug(f"Tesseract read '{result.text}' (conf: {result.confidence:.1f})")
        return result
