"""Reference catalog: records, container, and JSON source."""
from .records import CatalogRecord, normalize_text
from .loader import (
    Catalog,
    CatalogUnavailableError,
    load_catalog_json,
    load_catalog_or_unavailable,
    parse_catalog_rows,
)

__all__ = [
    'CatalogRecord',
    'normalize_text',
    'Catalog',
    'CatalogUnavailableError',
    'load_catalog_json',
    'load_catalog_or_unavailable',
    'parse_catalog_rows',
]
