"""
Card edge detection and perspective correction.

Optional upstream transform for the scan pipeline: finds the card outline in
a photo and warps it to a portrait canonical size so the identifier regions
land where RegionStrategy expects them. The scan pipeline never requires it;
when no card is found the caller keeps the original image.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from cardscan.config import CANONICAL_WIDTH, CANONICAL_HEIGHT
from cardscan.utils.images import load_image

logger = logging.getLogger(__name__)

# Portrait card, 2.5" x 3.5"
CARD_ASPECT = 2.5 / 3.5
ASPECT_TOLERANCE = 0.15

# Outlines covering less of the photo than this are not the card
MIN_AREA_FRACTION = 0.1
MAX_OUTLINES_CHECKED = 10

CANNY_THRESHOLDS = (50, 150)
EDGE_KERNEL_SIZE = 5


def _edge_map(gray: np.ndarray) -> np.ndarray:
    """Canny edges with fragments joined into closed outlines."""
    edges = cv2.Canny(gray, *CANNY_THRESHOLDS)
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (EDGE_KERNEL_SIZE, EDGE_KERNEL_SIZE))

    joined = cv2.dilate(edges, kernel)
    joined = cv2.morphologyEx(joined, cv2.MORPH_CLOSE, kernel, iterations=2)
    return cv2.erode(joined, kernel)


def _card_shaped(rect) -> bool:
    """True when a minAreaRect has the portrait card aspect, in any rotation."""
    _, (side_a, side_b), _ = rect
    short_side, long_side = sorted((side_a, side_b))
    if short_side <= 0:
        return False

    aspect = short_side / long_side
    deviation = abs(aspect - CARD_ASPECT) / CARD_ASPECT
    if deviation >= ASPECT_TOLERANCE:
        logger.debug(f"Outline aspect {aspect:.3f} is {deviation:.0%} off a card")
        return False
    return True


def find_card_corners(image: np.ndarray) -> Optional[np.ndarray]:
    """
    Locate the card outline in a photo.

    Args:
        image: Input image (BGR or grayscale)

    Returns:
        4x2 float32 corners ordered TL, TR, BR, BL, or None if no
        card-shaped outline was found

    Raises:
        ValueError: If the image is empty
    """
    if image is None or image.size == 0:
        raise ValueError("Cannot look for a card in an empty image")

    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
    # Edge-preserving smoothing keeps the card border sharp
    smoothed = cv2.bilateralFilter(gray, 9, 75, 75)

    outlines, _ = cv2.findContours(_edge_map(smoothed), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    min_area = smoothed.shape[0] * smoothed.shape[1] * MIN_AREA_FRACTION

    largest = sorted(outlines, key=cv2.contourArea, reverse=True)[:MAX_OUTLINES_CHECKED]
    for outline in largest:
        if cv2.contourArea(outline) < min_area:
            break
        rect = cv2.minAreaRect(outline)
        if _card_shaped(rect):
            logger.debug(f"Card outline found, rotation {rect[2]:.1f} deg")
            return _order_corners(cv2.boxPoints(rect).astype(np.float32))

    return None


def detect_and_warp(
    image: np.ndarray,
    canonical_width: int = CANONICAL_WIDTH,
    canonical_height: int = CANONICAL_HEIGHT
) -> Optional[np.ndarray]:
    """
    Find the card and warp it to a portrait canonical size.

    Returns:
        Warped card (canonical_height x canonical_width), or None if no
        card outline was found
    """
    corners = find_card_corners(image)
    if corners is None:
        logger.info("No card outline found")
        return None

    top_edge = np.linalg.norm(corners[1] - corners[0])
    left_edge = np.linalg.norm(corners[3] - corners[0])
    if top_edge > left_edge:
        # Card lies sideways: start from the bottom-left corner so the warp is portrait
        logger.debug(f"Landscape card ({top_edge:.0f}x{left_edge:.0f})")
        corners = np.roll(corners, 1, axis=0)

    return _perspective_warp(image, corners, canonical_width, canonical_height)


def _order_corners(corners: np.ndarray) -> np.ndarray:
    """Order corners clockwise from the top-left: TL, TR, BR, BL."""
    center = corners.mean(axis=0)
    offsets = corners - center

    # y points down in image coordinates, so ascending angle is clockwise
    clockwise = corners[np.argsort(np.arctan2(offsets[:, 1], offsets[:, 0]))]
    top_left = int(np.argmin(clockwise.sum(axis=1)))
    return np.roll(clockwise, -top_left, axis=0)


def _perspective_warp(
    image: np.ndarray,
    corners: np.ndarray,
    width: int,
    height: int,
    margin: float = 0.02
) -> np.ndarray:
    """
    Map the card quadrilateral onto a width x height rectangle.

    The quad is first grown by `margin` around its center so card numbers
    printed against the border survive the warp.
    """
    h, w = image.shape[:2]
    center = corners.mean(axis=0)
    grown = center + (corners - center) * (1.0 + margin)
    grown = np.clip(grown, [0, 0], [w - 1, h - 1]).astype(np.float32)

    target = np.float32([[0, 0], [width - 1, 0], [width - 1, height - 1], [0, height - 1]])
    transform = cv2.getPerspectiveTransform(grown, target)
    return cv2.warpPerspective(image, transform, (width, height))


class BoundaryCorrector:
    """
    Callable boundary transform for ScanOrchestrator.

    Returns the warped card, or None when no card was found (the caller
    then continues on the uncorrected photo).

    Usage:
        orchestrator = ScanOrchestrator(catalog, boundary_corrector=BoundaryCorrector())
    """

    def __init__(self, width: int = CANONICAL_WIDTH, height: int = CANONICAL_HEIGHT):
        self.size: Tuple[int, int] = (width, height)

    def __call__(self, image: np.ndarray) -> Optional[np.ndarray]:
        return detect_and_warp(image, *self.size)


def detect_card_from_file(image_path: Path, output_path: Optional[Path] = None) -> Optional[np.ndarray]:
    """
    Detect and warp the card in an image file, optionally saving the result.

    Raises:
        ValueError: If the image cannot be loaded
    """
    warped = detect_and_warp(load_image(image_path))

    if warped is not None and output_path:
        cv2.imwrite(str(output_path), warped)
        logger.info(f"Warped card written to {output_path}")

    return warped
