"""
Card number parsing for OCR output.

Card numbers are a letter prefix plus a numeric suffix, canonically
"PREFIX-NUMBER" (e.g. "BLBF-84", "BF-108").

OCR engines conflate visually similar glyphs, and the right reading depends
on which half of the number the glyph sits in:
- In the prefix, digit look-alikes are letters: "5C-045" -> "SC-045"
- In the number, letter look-alikes are digits: "SC-O45" -> "SC-045"

Patterns are tried from most to least specific. Order matters: a loose
pattern tried earlier would swallow a strict match elsewhere in noisy text.
A candidate whose prefix belongs to a released set (KNOWN_PREFIXES) is preferred
over earlier candidates.
"""

import re
import logging
from typing import AbstractSet, List, Optional, Pattern

from cardscan.config import KNOWN_PREFIXES

logger = logging.getLogger(__name__)

# Vertical-bar glyphs that OCR emits for a capital I
_BAR_GLYPHS = re.compile(r'[|!¡]')
_WHITESPACE_RUN = re.compile(r'\s+')

# Prefix characters: letters plus the digits that look like letters
_LETTER_CLASS = r'[A-Z0851]'
# Number characters: digits plus the letters that look like digits
_DIGIT_CLASS = r'[0-9OIBS]'
_DASHES = r'[-–—]'
# Last prefix character of a glued read: a real letter other than O, which
# directly before digits reads as zero ("SCO45" -> "SC-045")
_PREFIX_END = r'[A-NP-Z]'

IDENTIFIER_PATTERNS: List[Pattern] = [
    # 1. Explicit dash: "BLBF-84", "BF - 108"
    re.compile(rf'\b({_LETTER_CLASS}{{2,5}})\s*{_DASHES}\s*({_DIGIT_CLASS}{{1,4}})\b'),
    # 2. Whitespace separated: "BF 108", "SC O45"
    re.compile(rf'\b({_LETTER_CLASS}{{2,5}})\s+({_DIGIT_CLASS}{{2,4}})\b'),
    # 3. Adjacent: "BLBF84", "ABS12"
    re.compile(rf'\b({_LETTER_CLASS}{{1,4}}{_PREFIX_END})({_DIGIT_CLASS}{{1,4}})\b'),
    # 4. Loose fallback: any letter run, any separator, 2+ digits
    re.compile(rf'({_LETTER_CLASS}+{_PREFIX_END})[\s\-–—]*({_DIGIT_CLASS}{{2,}})'),
]

PREFIX_REPAIRS = str.maketrans({'0': 'O', '8': 'B', '5': 'S', '1': 'I'})
NUMBER_REPAIRS = str.maketrans({'O': '0', 'I': '1', 'B': '8', 'S': '5'})

_HAS_LETTER = re.compile(r'[A-Z]')
_HAS_DIGIT = re.compile(r'[0-9]')
_NAME_LINE = re.compile(r'^[A-Z\s]{3,}$')


def normalize_ocr_text(text: Optional[str]) -> str:
    """
    Normalize raw OCR text before pattern matching.

    Uppercases, maps bar glyphs (| ! ¡) to I, collapses whitespace runs
    and trims.
    """
    if not text:
        return ""
    cleaned = _BAR_GLYPHS.sub('I', text.upper())
    return _WHITESPACE_RUN.sub(' ', cleaned).strip()


def repair_identifier(prefix: str, number: str) -> str:
    """
    Apply context-aware glyph repair and join as PREFIX-NUMBER.

    Examples:
        >>> repair_identifier("5C", "O45")
        'SC-045'
        >>> repair_identifier("B0", "1O")
        'BO-10'
    """
    return f"{prefix.translate(PREFIX_REPAIRS)}-{number.translate(NUMBER_REPAIRS)}"


def _is_plausible(prefix: str, number: str) -> bool:
    """A capture needs at least one real letter in the prefix and one real digit in the number."""
    return bool(_HAS_LETTER.search(prefix)) and bool(_HAS_DIGIT.search(number))


def extract_identifier(
    text: Optional[str],
    known_prefixes: AbstractSet[str] = KNOWN_PREFIXES
) -> Optional[str]:
    """
    Parse a canonical card number out of raw OCR text.

    Every pattern match is a candidate, in pattern order. The first candidate
    whose repaired prefix is a known set prefix wins; otherwise the first
    candidate does.

    Args:
        text: Raw recognized text
        known_prefixes: Prefixes of released sets (empty disables the preference)

    Returns:
        "PREFIX-NUMBER" or None if no pattern matches (not an error)

    Examples:
        >>> extract_identifier("sc o45")
        'SC-045'
        >>> extract_identifier("AB-12")
        'AB-12'
        >>> extract_identifier("no digits here") is None
        True
    """
    cleaned = normalize_ocr_text(text)
    if not cleaned:
        return None

    candidates: List[str] = []
    for index, pattern in enumerate(IDENTIFIER_PATTERNS, start=1):
        for match in pattern.finditer(cleaned):
            prefix, number = match.group(1), match.group(2)
            if not _is_plausible(prefix, number):
                continue

            identifier = repair_identifier(prefix, number)
            logger.debug(f"Identifier pattern {index} matched '{match.group(0)}' in '{cleaned}' -> {identifier}")
            if identifier.split('-', 1)[0] in known_prefixes:
                return identifier
            candidates.append(identifier)

    if not candidates:
        logger.debug(f"No identifier pattern matched: '{cleaned}'")
        return None
    return candidates[0]


def extract_name_hint(text: Optional[str]) -> Optional[str]:
    """
    Pick a likely printed name out of multi-line OCR text.

    Returns the first line made only of uppercase letters and spaces
    (3+ characters), or None.
    """
    if not text:
        return None

    for line in text.splitlines():
        line = line.strip()
        if _NAME_LINE.match(line):
            return line
    return None


class IdentifierExtractor:
    """Callable wrapper so the parser can be injected like other pipeline stages."""

    def __init__(self, known_prefixes: AbstractSet[str] = KNOWN_PREFIXES):
        self.known_prefixes = frozenset(p.upper() for p in known_prefixes)

    def extract(self, text: Optional[str]) -> Optional[str]:
        return extract_identifier(text, self.known_prefixes)

    def name_hint(self, text: Optional[str]) -> Optional[str]:
        return extract_name_hint(text)
