"""
cardscan: identifier recognition and catalog matching for photographed collectible cards.

Free path: adaptive-threshold preprocessing + Tesseract on the bottom corners of the card.
Paid path: remote AI extraction, used only when the free path is inconclusive.
"""

__version__ = "0.1.0"
