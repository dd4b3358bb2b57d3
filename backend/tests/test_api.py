import json
import os
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

import main
from services.page_fetcher import PageFetchError
from storage.pending_properties import InMemoryPendingPropertyStore
from storage.tags import TagStore

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
URL = "https://www.example.co.uk/to-rent/details/1"

def load_fixture(name: str) -> str:
    path = os.path.join(FIXTURES_DIR, name)
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


class FakeClient:
    def __init__(self, reply):
        message = SimpleNamespace(content=reply)
        response = SimpleNamespace(choices=[SimpleNamespace(message=message)])
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=lambda **kwargs: response))


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main, "openai_client", None)
    monkeypatch.setattr(main, "pending_store", InMemoryPendingPropertyStore())
    monkeypatch.setattr(main, "tag_store", TagStore())
    monkeypatch.setattr(main, "fetch_with_retry", lambda url, max_retries=3: load_fixture("listing-royal-docks.html"))
    return TestClient(main.app)


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_fetch_property_basic_extraction(client):
    response = client.post("/api/fetch-property", json={"url": URL})
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "2 Bed Apartment, Royal Docks, E16"
    assert data["address"] == "The Shoreline, London, E16 1BQ"
    assert data["url"] == URL
    assert data["originalAddress"] is None


def test_fetch_property_corrects_agent_address(client, monkeypatch):
    reply = json.dumps({
        "name": "2 Bed Apartment",
        "address": "45 Commercial Road, London E1 1LH",
        "addressConfidence": "high",
        "addressReasoning": "Address in the footer",
        "isBTR": False,
    })
    monkeypatch.setattr(main, "openai_client", FakeClient(reply))

    data = client.post("/api/fetch-property", json={"url": URL}).json()
    assert "E16 1BQ" in data["address"]
    assert data["addressConfidence"] == "medium"
    assert data["originalAddress"] == "E1 1LH (was: AGENT_OFFICE)"
    assert data["addressReasoning"].startswith("Address corrected: original was agent_office address")


def test_fetch_property_requires_url(client):
    response = client.post("/api/fetch-property", json={"url": "  "})
    assert response.status_code == 400


def test_fetch_property_fetch_failure(client, monkeypatch):
    def failing_fetch(url, max_retries=3):
        raise PageFetchError("HTTP 403: Access blocked or rate limited")

    monkeypatch.setattr(main, "fetch_with_retry", failing_fetch)
    response = client.post("/api/fetch-property", json={"url": URL})
    assert response.status_code == 502
    assert "403" in response.json()["detail"]


def test_fetch_property_processing_error(client, monkeypatch):
    def broken_resolve(*args, **kwargs):
        raise ValueError("bad page")

    monkeypatch.setattr(main, "resolve_listing", broken_resolve)
    response = client.post("/api/fetch-property", json={"url": URL})
    assert response.status_code == 500
    assert response.json()["detail"] == "Processing error: bad page"


def test_address_candidates_endpoint(client):
    response = client.post("/api/address-candidates", json={"html": load_fixture("listing-royal-docks.html")})
    assert response.status_code == 200
    candidates = response.json()
    assert candidates[0]["postcode"] == "E16 1BQ"
    assert candidates[0]["category"] == "PROPERTY"
    assert candidates[0]["region_location"] == "MAIN_CONTENT"
    assert {c["postcode"] for c in candidates} == {"E16 1BQ", "HA0 2AA", "E1 1LH"}


def test_pending_properties_flow(client):
    added = client.post("/api/add-property", json={
        "url": "https://example.com/1",
        "title": "Flat 1",
        "coordinates": {"lat": 51.5, "lng": 0.02},
        "tags": ["btr"],
    }).json()
    assert added["success"] is True
    prop = added["property"]
    assert prop["title"] == "Flat 1"
    assert prop["processed"] is False

    client.post("/api/add-property", json={"url": "https://example.com/2"})
    pending = client.get("/api/pending-properties").json()
    assert [p["url"] for p in pending] == ["https://example.com/1", "https://example.com/2"]
    assert pending[1]["title"] == "Property"

    marked = client.post("/api/mark-processed", json={"id": prop["id"]}).json()
    assert marked == {"success": True, "found": True}
    assert [p["url"] for p in client.get("/api/pending-properties").json()] == ["https://example.com/2"]

    assert client.post("/api/mark-processed", json={"id": "nope"}).json()["found"] is False

    assert client.delete("/api/pending-properties").json() == {"success": True}
    assert client.get("/api/pending-properties").json() == []


def test_add_property_requires_url(client):
    assert client.post("/api/add-property", json={"url": ""}).status_code == 400


@pytest.mark.parametrize("flag, expected", [
    (True, True),
    (False, False),
    ("true", True),
    ("false", False),
    ("yes", False),
    (None, False),
])
def test_fetch_property_btr_flag(client, monkeypatch, flag, expected):
    reply = json.dumps({"name": "Flat", "address": "The Shoreline, London E16 1BQ", "isBTR": flag})
    monkeypatch.setattr(main, "openai_client", FakeClient(reply))
    data = client.post("/api/fetch-property", json={"url": URL}).json()
    assert data["isBTR"] is expected


def test_tags_sync_and_read(client):
    assert client.get("/api/tags").json() == []

    tags = [{"id": "t1", "name": "Shortlist", "color": "#22c55e"}, {"id": "t2", "name": "Viewing", "color": "#3b82f6"}]
    response = client.post("/api/tags", json={"tags": tags})
    assert response.status_code == 200
    assert response.json() == {"success": True, "tags": tags}
    assert client.get("/api/tags").json() == tags


def test_tags_ignores_non_list_payload(client):
    tags = [{"id": "t1", "name": "Shortlist", "color": "#22c55e"}]
    client.post("/api/tags", json={"tags": tags})

    for body in ({"tags": "Shortlist"}, {"tags": {"id": "t2"}}, {}):
        assert client.post("/api/tags", json=body).json() == {"success": True, "tags": tags}
    assert client.get("/api/tags").json() == tags
