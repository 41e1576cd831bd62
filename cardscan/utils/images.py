"""
Image intake and compression helpers.

Scans work on OpenCV BGR arrays. Incoming photos are size-checked before
decoding; the paid path sends a downscaled JPEG instead of the raw photo.
"""

import logging
from io import BytesIO
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image

from cardscan.config import MAX_IMAGE_BYTES, COMPRESS_MAX_DIMENSION, COMPRESS_JPEG_QUALITY

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tif', '.tiff')


class ImageTooLargeError(ValueError):
    """Raised when an input image exceeds the configured byte limit."""


def decode_image(data: bytes, max_bytes: int = MAX_IMAGE_BYTES) -> np.ndarray:
    """
    Decode encoded image bytes into a BGR array.

    Raises:
        ImageTooLargeError: If data is larger than max_bytes
        ValueError: If the bytes are empty or not a decodable image
    """
    if not data:
        raise ValueError("Empty image data")
    if max_bytes and len(data) > max_bytes:
        raise ImageTooLargeError(
            f"Image is {len(data) / 1024 / 1024:.1f}MB, limit is {max_bytes / 1024 / 1024:.0f}MB"
        )

    buffer = np.frombuffer(data, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Could not decode image data")
    return image


def load_image(path: Union[str, Path], max_bytes: int = MAX_IMAGE_BYTES) -> np.ndarray:
    """Read and decode an image file (same checks as decode_image)."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ValueError(f"Could not load image: {path}") from e
    return decode_image(data, max_bytes=max_bytes)


def compress_image(
    image: np.ndarray,
    max_dimension: int = COMPRESS_MAX_DIMENSION,
    quality: int = COMPRESS_JPEG_QUALITY
) -> bytes:
    """
    Downscale (longest edge <= max_dimension) and JPEG-encode an image.

    Args:
        image: BGR, BGRA or grayscale array
        max_dimension: Longest edge after compression, in pixels
        quality: JPEG quality (1-100)

    Returns:
        JPEG bytes
    """
    if image is None or image.size == 0:
        raise ValueError("Empty image for compression")

    if image.ndim == 2:
        pil_img = Image.fromarray(image)
    elif image.shape[2] == 4:
        pil_img = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGRA2RGB))
    else:
        pil_img = Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))

    if pil_img.mode != 'RGB':
        pil_img = pil_img.convert('RGB')

    # thumbnail keeps aspect ratio and never upscales
    pil_img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    out = BytesIO()
    pil_img.save(out, format='JPEG', quality=quality)
    data = out.getvalue()

    logger.debug(f"Compressed {image.shape[1]}x{image.shape[0]} -> {pil_img.width}x{pil_img.height}, {len(data)} bytes")
    return data


def find_images(path: Union[str, Path]):
    """Return the image files at path (a single file or a directory, sorted)."""
    path = Path(path)
    if path.is_file():
        return [path]
    return sorted(p for p in path.iterdir() if p.suffix.lower() in SUPPORTED_EXTENSIONS)
