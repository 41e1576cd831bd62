"""
cardscan/tests/test_api.py: Integration tests for the FastAPI backend

Tests:
- Scan upload (accepted and invalid files)
- Shared-token gating
- Lookup, stats, queue and health endpoints
"""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.services.rate_limiter import limiter
from cardscan.catalog.loader import Catalog
from cardscan.recognition.orchestrator import ScanOrchestrator
from cardscan.recognition.usage import InMemoryUsageTracker
from cardscan.tests.conftest import FakeRecognizer


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def orchestrator(sample_catalog):
    return ScanOrchestrator(
        sample_catalog,
        recognizer=FakeRecognizer(script=[("SC-045", 88.0)]),
        usage=InMemoryUsageTracker(max_paid_calls=None),
        batch_yield_seconds=0,
    )


@pytest.fixture
def client(orchestrator):
    with TestClient(create_app(orchestrator=orchestrator, api_token="")) as test_client:
        yield test_client


def test_scan_accepts_card(client, card_png_bytes):
    response = client.post("/api/scan", files=[("files", ("card.png", card_png_bytes, "image/png"))])

    assert response.status_code == 200
    data = response.json()
    result = data['results'][0]
    assert result['filename'] == "card.png"
    assert result['status'] == "accepted"
    assert result['method'] == "free"
    assert result['record']['name'] == "Bo"
    assert data['usage']['free_accepted'] == 1


def test_scan_reports_each_file(client, card_png_bytes):
    files = [
        ("files", ("card.png", card_png_bytes, "image/png")),
        ("files", ("notes.txt", b"not an image", "text/plain")),
    ]
    response = client.post("/api/scan", files=files)

    results = response.json()['results']
    assert [r['filename'] for r in results] == ["card.png", "notes.txt"]
    assert results[1]['status'] == "failed"
    assert results[1]['reason'] == "invalid_image"


def test_scan_rejects_oversized_upload(sample_catalog, card_png_bytes):
    orchestrator = ScanOrchestrator(
        sample_catalog,
        recognizer=FakeRecognizer(script=[("SC-045", 88.0)]),
        usage=InMemoryUsageTracker(max_paid_calls=None),
        batch_yield_seconds=0,
        max_image_bytes=len(card_png_bytes),
    )
    files = [
        ("files", ("huge.png", card_png_bytes + b"\0" * 4096, "image/png")),
        ("files", ("card.png", card_png_bytes, "image/png")),
    ]

    with TestClient(create_app(orchestrator=orchestrator, api_token="")) as client:
        results = client.post("/api/scan", files=files).json()["results"]

    assert results[0]["status"] == "failed"
    assert results[0]["reason"] == "invalid_image"
    assert "limit" in results[0]["message"]
    assert results[1]["status"] == "accepted"


def test_scan_requires_files(client):
    assert client.post("/api/scan").status_code == 422


def test_scan_token_required(orchestrator, card_png_bytes):
    files = [("files", ("card.png", card_png_bytes, "image/png"))]

    with TestClient(create_app(orchestrator=orchestrator, api_token="s3cret")) as client:
        assert client.post("/api/scan", files=files).status_code == 401
        assert client.post("/api/scan", files=files, headers={"X-Api-Token": "wrong"}).status_code == 401
        assert client.post("/api/scan", files=files, headers={"X-Api-Token": "s3cret"}).status_code == 200


def test_lookup(client):
    response = client.get("/api/lookup", params={"identifier": "bf-109", "name": "Bo Jackson"})

    assert response.status_code == 200
    data = response.json()
    assert data['status'] == "matched"
    assert data['method'] == "fuzzy_name"
    assert data['record']['identifier'] == "BF-108"


def test_lookup_not_found(client):
    data = client.get("/api/lookup", params={"identifier": "ZZ-999"}).json()
    assert data['status'] == "not_found"
    assert data['record'] is None


def test_lookup_without_catalog():
    orchestrator = ScanOrchestrator(Catalog.unavailable())
    with TestClient(create_app(orchestrator=orchestrator, api_token="")) as client:
        assert client.get("/api/lookup", params={"identifier": "SC-045"}).status_code == 503


def test_stats(client, card_png_bytes):
    client.post("/api/scan", files=[("files", ("card.png", card_png_bytes, "image/png"))])

    stats = client.get("/api/stats").json()
    assert stats['scanned'] == 1
    assert stats['free_rate'] == 100.0
    assert stats['total_cost'] == 0.0


def test_queue_idle(client):
    data = client.get("/api/queue").json()
    assert data['active_requests'] == 0
    assert data['waiting_requests'] == 0
    assert data['max_concurrent'] == 1


def test_health(client):
    data = client.get("/health").json()

    assert data['status'] == "healthy"
    assert data['catalog_loaded'] is True
    assert data['catalog_size'] == 4
    assert data['recognizer_available'] is True
    assert data['extractor_available'] is False


def test_health_degraded_without_catalog():
    orchestrator = ScanOrchestrator(Catalog.unavailable())
    with TestClient(create_app(orchestrator=orchestrator, api_token="")) as client:
        assert client.get("/health").json()['status'] == "degraded"
