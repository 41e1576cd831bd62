"""
cardscan/tests/test_cli.py: Tests for the Click CLI
"""

import json

import cv2
from click.testing import CliRunner

from cardscan.cli.main import cli


def test_parse_command():
    result = CliRunner().invoke(cli, ['parse', 'sc o45'])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data['normalized'] == "SC O45"
    assert data['identifier'] == "SC-045"
    assert data['name_hint'] is None


def test_lookup_from_json_catalog(catalog_json_file):
    result = CliRunner().invoke(cli, ['lookup', 'BF-108', '--catalog', str(catalog_json_file)])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data['status'] == "matched"
    assert data['record']['name'] == "Bo Jackson"


def test_lookup_with_missing_catalog(temp_dir):
    result = CliRunner().invoke(cli, ['lookup', 'BF-108', '--catalog', str(temp_dir / 'missing.json')])

    assert result.exit_code == 0
    assert json.loads(result.output)['status'] == "catalog_unavailable"


def test_import_then_lookup_from_database(catalog_json_file, temp_dir):
    database = temp_dir / 'catalog.db'
    runner = CliRunner()

    imported = runner.invoke(cli, ['import-catalog', str(catalog_json_file), '--database', str(database)])
    assert imported.exit_code == 0
    assert database.exists()

    result = runner.invoke(cli, ['lookup', 'blbf-84', '--name', 'Striker', '--database', str(database)])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data['record']['identifier'] == "BLBF-84"
    assert data['record']['attributes']['Weapon'] == "Steel"


def test_preprocess_writes_regions(temp_dir, card_image):
    image_path = temp_dir / 'card.png'
    cv2.imwrite(str(image_path), card_image)
    out_dir = temp_dir / 'debug'

    result = CliRunner().invoke(cli, ['preprocess', str(image_path), '--out-dir', str(out_dir), '--no-detect'])

    assert result.exit_code == 0
    assert (out_dir / 'card_card.png').exists()
    assert (out_dir / 'card_bottom-left.png').exists()
    assert (out_dir / 'card_bottom-right.png').exists()
