"""
Reference catalog records.

A CatalogRecord is one immutable catalog slot. The identifier is the printed
card number in canonical PREFIX-NUMBER form (e.g. "BLBF-84"). The same
identifier can appear on several records (different named variants of the
same slot), so the display name is needed to disambiguate.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

_WHITESPACE_RUN = re.compile(r'\s+')

# Original catalog export uses spreadsheet-style column names
_CATALOG_KEY_MAP = {
    'Card Number': 'identifier',
    'Name': 'name',
    'Year': 'year',
    'Set': 'set_name',
    'Parallel': 'variant',
    'Card ID': 'record_id',
}
_FIELD_NAMES = ('identifier', 'name', 'year', 'set_name', 'variant', 'record_id')


def normalize_text(value: Optional[str]) -> str:
    """Uppercase, collapse internal whitespace runs and trim."""
    if value is None:
        return ""
    return _WHITESPACE_RUN.sub(' ', str(value).upper()).strip()


@dataclass(frozen=True)
class CatalogRecord:
    """Single reference catalog entry (read-only for the process lifetime)."""

    identifier: str
    name: str
    year: str = ""
    set_name: str = ""
    variant: str = ""
    record_id: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        # Freeze the attribute mapping so records can be shared safely
        object.__setattr__(self, 'attributes', MappingProxyType(dict(self.attributes)))

    @property
    def normalized_identifier(self) -> str:
        return normalize_text(self.identifier)

    @property
    def normalized_name(self) -> str:
        return normalize_text(self.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogRecord":
        """
        Build a record from a catalog row.

        Accepts both the original export keys ("Card Number", "Name", ...)
        and snake_case keys. Unknown keys are kept as descriptive attributes.

        Raises:
            ValueError: If the row has no identifier
        """
        values: Dict[str, str] = {}
        attributes: Dict[str, Any] = {}

        for key, value in data.items():
            target = _CATALOG_KEY_MAP.get(key, key)
            if target in _FIELD_NAMES:
                values[target] = "" if value is None else str(value).strip()
            elif key == 'attributes' and isinstance(value, dict):
                attributes.update(value)
            else:
                attributes[key] = value

        if not values.get('identifier'):
            raise ValueError(f"Catalog row has no card number: {data!r}")

        values.setdefault('name', "")
        return cls(attributes=attributes, **values)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'identifier': self.identifier,
            'name': self.name,
            'year': self.year,
            'set_name': self.set_name,
            'variant': self.variant,
            'record_id': self.record_id,
            'attributes': dict(self.attributes),
        }
