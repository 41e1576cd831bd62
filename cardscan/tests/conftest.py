"""
cardscan/tests/conftest.py: Pytest configuration and shared fixtures

Provides:
- Sample catalog records and catalogs
- Synthetic card images
- Fake recognizer and extractor capabilities
- Temporary file management
- Logging configuration
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest

from cardscan.catalog.loader import Catalog
from cardscan.catalog.records import CatalogRecord
from cardscan.ocr.base_ocr import BaseRecognizer, OCRResult
from cardscan.recognition.ai_extractor import BaseExtractor, CardExtraction

# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


class FakeRecognizer(BaseRecognizer):
    """
    Scripted recognizer.

    Returns the scripted (text, confidence) pairs in order, repeating the
    last one once the script runs out.
    """

    def __init__(self, script=(("", 0.0),), available=True, error=None):
        self.script = [OCRResult(text=text, confidence=conf) for text, conf in script]
        self.available = available
        self.error = error
        self.calls = []

    def is_available(self) -> bool:
        return self.available

    async def recognize(self, image):
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        index = min(len(self.calls) - 1, len(self.script) - 1)
        return self.script[index]


class FakeExtractor(BaseExtractor):
    """Paid extractor returning a fixed extraction or raising a fixed error."""

    def __init__(self, extraction=None, error=None, available=True):
        self.extraction = extraction
        self.error = error
        self.available = available
        self.calls = []

    def is_available(self) -> bool:
        return self.available

    async def extract(self, image_jpeg: bytes) -> CardExtraction:
        self.calls.append(image_jpeg)
        if self.error is not None:
            raise self.error
        return self.extraction


@pytest.fixture
def temp_dir():
    """
    Function-scoped temporary directory

    Yields:
        Path to temporary directory (cleaned up after test)
    """
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path

    if temp_path.exists():
        shutil.rmtree(temp_path)


@pytest.fixture
def sample_rows():
    """Catalog rows in the original export format"""
    return [
        {'Card Number': 'SC-045', 'Name': 'Bo', 'Year': '2024', 'Set': 'Alpha Edition',
         'Parallel': 'Base', 'Card ID': '1', 'Weapon': 'Fire', 'Power': '125'},
        {'Card Number': 'BF-108', 'Name': 'Bo Jackson', 'Year': '2024', 'Set': 'Alpha Edition',
         'Parallel': 'Battlefoil', 'Card ID': '2', 'Weapon': 'Ice', 'Power': '140'},
        {'Card Number': 'BLBF-84', 'Name': 'Striker', 'Year': '2023', 'Set': 'Griffey Edition',
         'Parallel': 'Blue Battlefoil', 'Card ID': '3', 'Weapon': 'Steel', 'Power': '110'},
        {'Card Number': 'AB-12', 'Name': 'Ken', 'Year': '2023', 'Set': 'Griffey Edition',
         'Parallel': 'Base', 'Card ID': '4', 'Weapon': 'Glow', 'Power': '95'},
    ]


@pytest.fixture
def sample_records(sample_rows):
    return [CatalogRecord.from_dict(row) for row in sample_rows]


@pytest.fixture
def sample_catalog(sample_records):
    """Catalog where every card number is unique"""
    return Catalog(sample_records)


@pytest.fixture
def shared_number_catalog():
    """Two records share SC-045 (different named variants of the same slot)"""
    return Catalog([
        CatalogRecord(identifier='SC-045', name='Bo', record_id='1'),
        CatalogRecord(identifier='SC-045', name='Ken', record_id='2'),
        CatalogRecord(identifier='BF-108', name='Striker', record_id='3'),
    ])


@pytest.fixture
def catalog_json_file(temp_dir, sample_rows):
    """Sample catalog written as a JSON array"""
    path = temp_dir / 'card-database.json'
    path.write_text(json.dumps(sample_rows), encoding='utf-8')
    return path


@pytest.fixture
def card_image():
    """
    Synthetic 500x700 card photo (BGR)

    Light card face with dark blocks where the name and the card number
    would be printed.
    """
    img = np.full((700, 500, 3), 230, dtype=np.uint8)
    cv2.rectangle(img, (5, 5), (494, 694), (40, 40, 40), 3)
    cv2.putText(img, "BO JACKSON", (40, 60), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (20, 20, 20), 3)
    cv2.putText(img, "SC-045", (30, 660), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (20, 20, 20), 2)
    return img


@pytest.fixture
def card_png_bytes(card_image):
    ok, buffer = cv2.imencode('.png', card_image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def synthetic_photo():
    """White 250x350 card on a black 600x800 background"""
    img = np.zeros((800, 600, 3), dtype=np.uint8)
    cv2.rectangle(img, (150, 200), (400, 550), (255, 255, 255), -1)
    return img


# Pytest hooks

def pytest_configure(config):
    """
    Pytest configuration hook

    Args:
        config: Pytest config object
    """
    # Register custom markers
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "integration: Integration tests (pipeline, database or API)")
    config.addinivalue_line("markers", "slow: Slow tests (> 1 second)")


def pytest_collection_modifyitems(config, items):
    """Auto-mark tests based on naming conventions"""
    for item in items:
        if 'integration' in item.nodeid.lower():
            item.add_marker(pytest.mark.integration)

        if 'slow' in item.nodeid.lower():
            item.add_marker(pytest.mark.slow)
