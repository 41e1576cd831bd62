"""
cardscan/database/db.py: SQLite catalog operations
Loads the read-only catalog from the database and imports catalog rows into it
"""

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cardscan.catalog.loader import Catalog, CatalogUnavailableError
from cardscan.catalog.records import CatalogRecord
from cardscan.database.schema import CatalogCard

logger = logging.getLogger(__name__)


def _card_to_record(card: CatalogCard) -> CatalogRecord:
    return CatalogRecord(
        identifier=card.card_number,
        name=card.name or "",
        year=card.year or "",
        set_name=card.set_name or "",
        variant=card.variant or "",
        record_id=card.record_id or "",
        attributes=card.attributes or {},
    )


def load_catalog_from_database(db: Session) -> Catalog:
    """
    Load the whole catalog table, in insertion order.

    Raises:
        CatalogUnavailableError: If the query fails (missing table, bad file)
    """
    try:
        cards = db.query(CatalogCard).order_by(CatalogCard.id).all()
    except SQLAlchemyError as e:
        raise CatalogUnavailableError(f"Could not read catalog table: {e}") from e

    catalog = Catalog(_card_to_record(card) for card in cards)
    logger.info(f"Catalog: {len(catalog)} cards loaded from database")
    return catalog


def import_catalog_records(
    db: Session,
    records: Iterable[CatalogRecord],
    replace: bool = False,
    commit: bool = True
) -> int:
    """
    Insert catalog records into the database.

    Args:
        db: Database session
        records: Records to insert, in catalog order
        replace: If True, delete existing rows first
        commit: If False, don't commit immediately (for batch operations)

    Returns:
        Number of rows inserted
    """
    if replace:
        deleted = db.query(CatalogCard).delete()
        logger.info(f"Removed {deleted} existing catalog rows")

    count = 0
    for record in records:
        db.add(CatalogCard(
            record_id=record.record_id or None,
            card_number=record.identifier,
            name=record.name,
            year=record.year or None,
            set_name=record.set_name or None,
            variant=record.variant or None,
            attributes=dict(record.attributes) or None,
        ))
        count += 1

    if commit:
        db.commit()
    else:
        db.flush()

    logger.info(f"Imported {count} catalog rows")
    return count
