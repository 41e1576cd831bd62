"""Optional card boundary detection and perspective correction."""

from cardscan.detection.card_detector import (
    BoundaryCorrector,
    detect_and_warp,
    detect_card_from_file,
    find_card_corners,
)

__all__ = ['BoundaryCorrector', 'detect_and_warp', 'detect_card_from_file', 'find_card_corners']
