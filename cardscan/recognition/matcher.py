"""
Catalog matching for parsed card numbers.

1. Exact pass: normalized identifier equality (index lookup)
   - one record -> match
   - several records -> name hint required (exact name, then substring)
2. Fuzzy pass (only if the exact pass found nothing): Levenshtein distance
   against every catalog identifier, keep distance <= 2, stable sort
   - name hint -> lowest-distance candidate whose name matches the hint
   - else a lone candidate within tolerance, at distance 1 -> auto-accept
   - else no match; several plausible corrections are never guessed between

Every call produces a MatchResolution that records how the decision was
made, so rejected scans can be explained.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import Levenshtein

from cardscan.catalog.loader import Catalog
from cardscan.catalog.records import CatalogRecord, normalize_text
from cardscan.config import FUZZY_MAX_DISTANCE, FUZZY_AUTO_ACCEPT_DISTANCE, SHORT_NAME_WARN_LENGTH

logger = logging.getLogger(__name__)

# Resolution methods
METHOD_EXACT = 'exact'
METHOD_EXACT_NAME = 'exact_name'
METHOD_FUZZY_NAME = 'fuzzy_name'
METHOD_FUZZY_AUTO = 'fuzzy_auto'

# Resolution statuses
STATUS_MATCHED = 'matched'
STATUS_AMBIGUOUS = 'ambiguous'
STATUS_NOT_FOUND = 'not_found'
STATUS_CATALOG_UNAVAILABLE = 'catalog_unavailable'


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character insertions, deletions and substitutions turning a into b."""
    return Levenshtein.distance(a, b)


@dataclass(frozen=True)
class MatchCandidate:
    """Fuzzy candidate with its edit distance to the query"""
    record: CatalogRecord
    distance: int
    score: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'identifier': self.record.identifier,
            'name': self.record.name,
            'distance': int(self.distance),
            'score': float(self.score),
        }


@dataclass(frozen=True)
class MatchResolution:
    """Result of one catalog lookup, with the evidence behind it"""
    query: str
    record: Optional[CatalogRecord]
    status: str
    method: Optional[str] = None
    name_hint: Optional[str] = None
    candidates: Tuple[MatchCandidate, ...] = field(default_factory=tuple)

    @property
    def matched(self) -> bool:
        return self.record is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'query': self.query,
            'status': self.status,
            'method': self.method,
            'name_hint': self.name_hint,
            'record': self.record.to_dict() if self.record else None,
            'candidates': [c.to_dict() for c in self.candidates],
        }


def _similarity_score(query: str, identifier: str, distance: int) -> float:
    longest = max(len(query), len(identifier))
    if longest == 0:
        return 1.0
    return 1.0 - distance / longest


class CatalogMatcher:
    """
    Resolves card numbers (plus an optional name hint) against the catalog.

    Usage:
        matcher = CatalogMatcher(catalog)
        record = matcher.match("SC-045", name_hint="Bo")
        resolution = matcher.resolve("SC-046")
        print(resolution.status, resolution.method)
    """

    def __init__(
        self,
        catalog: Catalog,
        max_distance: int = FUZZY_MAX_DISTANCE,
        auto_accept_distance: int = FUZZY_AUTO_ACCEPT_DISTANCE,
        short_name_warn_length: int = SHORT_NAME_WARN_LENGTH
    ):
        if max_distance < 0:
            raise ValueError(f"max_distance must be >= 0, got {max_distance}")

        self.catalog = catalog
        self.max_distance = max_distance
        self.auto_accept_distance = auto_accept_distance
        self.short_name_warn_length = short_name_warn_length

    def find_similar(self, identifier: str) -> List[MatchCandidate]:
        """
        Fuzzy candidates within max_distance, sorted by distance.

        Ties keep catalog order.
        """
        query = normalize_text(identifier)
        candidates = []

        for record in self.catalog:
            distance = levenshtein_distance(query, record.normalized_identifier)
            if distance <= self.max_distance:
                candidates.append(MatchCandidate(
                    record=record,
                    distance=distance,
                    score=_similarity_score(query, record.normalized_identifier, distance),
                ))

        # list.sort is stable
        candidates.sort(key=lambda c: c.distance)
        return candidates

    def _name_matches(self, record: CatalogRecord, hint: str, allow_substring: bool) -> bool:
        name = record.normalized_name
        if not name:
            return False
        if name == hint:
            return True
        if not allow_substring:
            return False

        if hint in name or name in hint:
            if min(len(name), len(hint)) <= self.short_name_warn_length:
                logger.warning(
                    f"Short-name containment accepted: hint '{hint}' vs '{name}' "
                    f"({record.identifier}); may be a false positive"
                )
            return True
        return False

    def _pick_by_name(self, records: Sequence[CatalogRecord], hint: str) -> Optional[CatalogRecord]:
        """Exact normalized name first, then bidirectional substring containment."""
        for record in records:
            if self._name_matches(record, hint, allow_substring=False):
                return record
        for record in records:
            if self._name_matches(record, hint, allow_substring=True):
                return record
        return None

    def resolve(self, identifier: str, name_hint: Optional[str] = None) -> MatchResolution:
        """
        Resolve an identifier to a single catalog record.

        Args:
            identifier: Card number, any case/spacing
            name_hint: Optional printed name used for disambiguation

        Returns:
            MatchResolution (record is None when ambiguous or not found)
        """
        query = normalize_text(identifier)
        hint = normalize_text(name_hint) or None

        if not self.catalog.is_loaded:
            logger.error("Catalog match requested but the catalog is unavailable")
            return MatchResolution(query, None, STATUS_CATALOG_UNAVAILABLE, name_hint=hint)

        if not query:
            return MatchResolution(query, None, STATUS_NOT_FOUND, name_hint=hint)

        # Step 1: exact pass
        exact = self.catalog.lookup(query)
        logger.debug(f"Found {len(exact)} exact match(es) for '{query}'")

        if len(exact) == 1:
            return MatchResolution(query, exact[0], STATUS_MATCHED, METHOD_EXACT, hint)

        if len(exact) > 1:
            exact_candidates = tuple(MatchCandidate(r, 0, 1.0) for r in exact)
            if hint:
                record = self._pick_by_name(exact, hint)
                if record is not None:
                    logger.info(f"'{query}' disambiguated by name '{hint}' -> {record.name}")
                    return MatchResolution(query, record, STATUS_MATCHED, METHOD_EXACT_NAME, hint, exact_candidates)

            logger.info(f"'{query}' is shared by {len(exact)} records and name hint {hint!r} did not pick one")
            return MatchResolution(query, None, STATUS_AMBIGUOUS, None, hint, exact_candidates)

        # Step 2: fuzzy pass
        similar = self.find_similar(query)
        candidates = tuple(similar)

        if not similar:
            logger.info(f"No cards found for '{query}' (exact or fuzzy)")
            return MatchResolution(query, None, STATUS_NOT_FOUND, None, hint)

        logger.debug(
            f"{len(similar)} fuzzy candidate(s) for '{query}': "
            + ", ".join(f"{c.record.identifier} (d={c.distance})" for c in similar[:5])
        )

        if hint:
            for distance in sorted({c.distance for c in similar}):
                tier = [c.record for c in similar if c.distance == distance]
                record = self._pick_by_name(tier, hint)
                if record is not None:
                    logger.info(f"Fuzzy corrected by name: '{query}' -> {record.identifier} (d={distance})")
                    return MatchResolution(query, record, STATUS_MATCHED, METHOD_FUZZY_NAME, hint, candidates)

        # Any other candidate within tolerance is a plausible alternative
        if len(similar) == 1 and similar[0].distance == self.auto_accept_distance:
            record = similar[0].record
            logger.info(f"Fuzzy auto-corrected: '{query}' -> {record.identifier}")
            return MatchResolution(query, record, STATUS_MATCHED, METHOD_FUZZY_AUTO, hint, candidates)

        logger.info(f"'{query}' has {len(similar)} fuzzy candidates and no way to choose")
        return MatchResolution(query, None, STATUS_AMBIGUOUS, None, hint, candidates)

    def match(self, identifier: str, name_hint: Optional[str] = None) -> Optional[CatalogRecord]:
        """Return the single matching record, or None."""
        return self.resolve(identifier, name_hint).record

