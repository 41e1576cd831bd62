"""
cardscan/tests/test_catalog.py: Unit tests for the reference catalog

Tests:
- Record parsing from export rows
- JSON loading and the unavailable fallback
- SQLite import and load
"""

import json

import pytest

from cardscan.catalog.loader import (
    Catalog,
    CatalogUnavailableError,
    load_catalog_json,
    load_catalog_or_unavailable,
    parse_catalog_rows,
)
from cardscan.catalog.records import CatalogRecord, normalize_text
from cardscan.database.db import import_catalog_records, load_catalog_from_database
from cardscan.database.schema import init_db, make_session_factory


def test_normalize_text():
    assert normalize_text("  bo   jackson ") == "BO JACKSON"
    assert normalize_text(None) == ""


def test_record_from_export_row(sample_rows):
    record = CatalogRecord.from_dict(sample_rows[2])

    assert record.identifier == "BLBF-84"
    assert record.name == "Striker"
    assert record.set_name == "Griffey Edition"
    assert record.variant == "Blue Battlefoil"
    assert record.record_id == "3"
    assert record.attributes == {'Weapon': 'Steel', 'Power': '110'}


def test_record_from_snake_case_row():
    record = CatalogRecord.from_dict({'identifier': 'AB-12', 'name': 'Ken', 'year': 2023})
    assert record.year == "2023"
    assert record.normalized_identifier == "AB-12"


def test_record_requires_identifier():
    with pytest.raises(ValueError):
        CatalogRecord.from_dict({'Name': 'Nobody'})


def test_record_attributes_are_read_only(sample_records):
    with pytest.raises(TypeError):
        sample_records[0].attributes['Power'] = '999'


def test_parse_rows_skips_rows_without_number(sample_rows):
    rows = sample_rows + [{'Name': 'Broken'}, {'Card Number': '  ', 'Name': 'Blank'}]
    assert len(parse_catalog_rows(rows)) == 4


def test_catalog_lookup_keeps_order():
    catalog = Catalog([
        CatalogRecord(identifier='SC-045', name='Bo'),
        CatalogRecord(identifier='BF-108', name='Striker'),
        CatalogRecord(identifier='sc-045', name='Ken'),
    ])

    assert [r.name for r in catalog.lookup(' SC-045 ')] == ['Bo', 'Ken']
    assert catalog.lookup('ZZ-1') == []
    assert len(catalog) == 3
    assert catalog.is_loaded


def test_unavailable_catalog():
    catalog = Catalog.unavailable()
    assert not catalog.is_loaded
    assert len(catalog) == 0


def test_load_catalog_json(catalog_json_file):
    catalog = load_catalog_json(catalog_json_file)

    assert len(catalog) == 4
    assert [r.identifier for r in catalog] == ['SC-045', 'BF-108', 'BLBF-84', 'AB-12']


def test_load_missing_catalog(temp_dir):
    with pytest.raises(CatalogUnavailableError):
        load_catalog_json(temp_dir / 'missing.json')


def test_load_catalog_not_a_list(temp_dir):
    path = temp_dir / 'catalog.json'
    path.write_text(json.dumps({'cards': []}), encoding='utf-8')

    with pytest.raises(CatalogUnavailableError):
        load_catalog_json(path)


def test_load_or_unavailable(catalog_json_file, temp_dir):
    assert load_catalog_or_unavailable(catalog_json_file).is_loaded
    assert not load_catalog_or_unavailable(temp_dir / 'missing.json').is_loaded


def test_database_round_trip(temp_dir, sample_records):
    engine, SessionLocal = make_session_factory(temp_dir / 'catalog.db')
    init_db(engine)

    with SessionLocal() as db:
        assert import_catalog_records(db, sample_records) == 4

    with SessionLocal() as db:
        catalog = load_catalog_from_database(db)

    assert [r.identifier for r in catalog] == [r.identifier for r in sample_records]
    assert catalog.lookup('BF-108')[0].attributes['Power'] == '140'
    engine.dispose()


def test_database_replace(temp_dir, sample_records):
    engine, SessionLocal = make_session_factory(temp_dir / 'catalog.db')
    init_db(engine)

    with SessionLocal() as db:
        import_catalog_records(db, sample_records)
        import_catalog_records(db, sample_records[:1], replace=True)
        assert len(load_catalog_from_database(db)) == 1

    engine.dispose()


def test_database_without_table(temp_dir):
    engine, SessionLocal = make_session_factory(temp_dir / 'empty.db')

    with SessionLocal() as db:
        with pytest.raises(CatalogUnavailableError):
            load_catalog_from_database(db)

    engine.dispose()
