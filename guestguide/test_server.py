# guestguide/test_server.py
"""
HTTP surface tests (FastAPI TestClient, backend overridden).

Run:
  pytest -q guestguide/test_server.py
"""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FixedLlm
from guestguide.backend import Backend
from guestguide.property_profile import PropertyProfile
from server import app, get_backend


@pytest.fixture
def backend(session_factory, sessions):
    return Backend(
        session_factory=session_factory,
        guide_llm=FixedLlm("{}"),
        concierge_llm=FixedLlm("Checkout is at 11."),
        sessions=sessions,
    )


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_backend] = lambda: backend
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_events_round_trip(client, backend):
    backend.store.upsert(PropertyProfile(id="g1", property_name="Loft", location="Berlin"), "host-1")

    r = client.post("/events", json={"type": "list_guides", "user_id": "host-1"})

    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "success"
    assert [g["propertyName"] for g in body["data"]["guides"]] == ["Loft"]


def test_events_error_is_in_body(client):
    r = client.post("/events", json={"type": "list_guides"})
    assert r.status_code == 200
    assert r.json()["status"] == "error"


def test_events_rejects_malformed_body(client):
    r = client.post("/events", json={"payload": {}})
    assert r.status_code == 422


def test_public_guide_link(client, backend):
    content = json.dumps({"welcome": "Hi!", "checkout": {"time": "11:00"}})
    backend.store.upsert(
        PropertyProfile(id="g1", property_name="Loft", location="Berlin", ai_generated_content=content), "host-1"
    )

    r = client.get("/guide", params={"g": "g1"})

    assert r.status_code == 200
    view = r.json()["view"]
    assert view["can_edit"] is False
    assert view["welcome"] == "Hi!"


def test_public_guide_link_unknown_id(client):
    assert client.get("/guide", params={"g": "nope"}).status_code == 404
    assert client.get("/guide").status_code == 422
