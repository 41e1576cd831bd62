"""
Catalog container and JSON catalog source.

The catalog is fetched once at startup and never mutated afterwards.
An exact-lookup index (normalized identifier -> records, in catalog order)
is built at load time.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from cardscan.catalog.records import CatalogRecord, normalize_text

logger = logging.getLogger(__name__)


class CatalogUnavailableError(Exception):
    """Raised when the reference catalog cannot be loaded."""


class Catalog:
    """
    Immutable, ordered collection of catalog records.

    Usage:
        catalog = load_catalog_json(Path("data/card-database.json"))
        records = catalog.lookup("BF-108")
    """

    def __init__(self, records: Iterable[CatalogRecord], loaded: bool = True):
        self._records: Tuple[CatalogRecord, ...] = tuple(records)
        self._loaded = loaded
        self._index: Dict[str, List[CatalogRecord]] = {}

        for record in self._records:
            self._index.setdefault(record.normalized_identifier, []).append(record)

    @classmethod
    def unavailable(cls) -> "Catalog":
        """Catalog placeholder used when the source could not be fetched."""
        return cls([], loaded=False)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def records(self) -> Tuple[CatalogRecord, ...]:
        return self._records

    def lookup(self, identifier: str) -> List[CatalogRecord]:
        """Return all records whose normalized identifier equals the input."""
        return list(self._index.get(normalize_text(identifier), []))

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CatalogRecord]:
        return iter(self._records)

    def __repr__(self):
        state = "loaded" if self._loaded else "unavailable"
        return f"<Catalog({len(self._records)} records, {state})>"


def parse_catalog_rows(rows: Iterable[dict]) -> List[CatalogRecord]:
    """Convert raw catalog rows to records, skipping rows without a card number."""
    records = []
    skipped = 0

    for row in rows:
        try:
            records.append(CatalogRecord.from_dict(row))
        except ValueError as e:
            skipped += 1
            logger.debug(f"Skipping catalog row: {e}")

    if skipped:
        logger.warning(f"Skipped {skipped} catalog rows without a card number")
    return records


def load_catalog_json(path: Union[str, Path]) -> Catalog:
    """
    Load the catalog from a JSON array of card rows.

    Args:
        path: Path to the catalog JSON file

    Returns:
        Loaded Catalog

    Raises:
        CatalogUnavailableError: If the file is missing or not a JSON array
    """
    path = Path(path)

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogUnavailableError(f"Could not read catalog {path}: {e}") from e

    if not isinstance(data, list):
        raise CatalogUnavailableError(f"Catalog {path} must contain a JSON array of cards")

    catalog = Catalog(parse_catalog_rows(data))
    logger.info(f"Catalog: {len(catalog)} cards loaded from {path}")
    return catalog


def load_catalog_or_unavailable(path: Optional[Union[str, Path]] = None) -> Catalog:
    """Load the configured catalog, returning an unavailable catalog on failure."""
    if path is None:
        from cardscan.config import CATALOG_PATH
        path = CATALOG_PATH

    try:
        return load_catalog_json(path)
    except CatalogUnavailableError as e:
        logger.error(f"Catalog unavailable, no matches will be accepted: {e}")
        return Catalog.unavailable()
