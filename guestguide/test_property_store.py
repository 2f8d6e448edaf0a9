# guestguide/test_property_store.py
"""
PropertyStore tests against in-memory SQLite.

Run:
  pytest -q guestguide/test_property_store.py
"""

import pytest

from guestguide.property_profile import PropertyProfile, VideoGuide
from guestguide.property_store import PropertyStore, PropertyStoreError


@pytest.fixture
def store(session_factory):
    return PropertyStore(session_factory)


def _profile(guide_id, created_at, name="Loft"):
    return PropertyProfile(
        id=guide_id,
        created_at=created_at,
        property_name=name,
        location="Berlin",
        house_rules=["No parties"],
        video_guides=[VideoGuide(title="TV", url="https://youtu.be/abc12345678")],
    )


def test_upsert_and_get_round_trip(store):
    p = _profile("g1", 1000)
    store.upsert(p, "user-a")

    loaded = store.get("g1")
    assert loaded == p
    assert store.owner_of("g1") == "user-a"
    assert store.get("missing") is None


def test_upsert_requires_id(store):
    with pytest.raises(ValueError):
        store.upsert(PropertyProfile(), "user-a")


def test_list_is_per_user_newest_first(store):
    store.upsert(_profile("old", 1000), "user-a")
    store.upsert(_profile("new", 3000), "user-a")
    store.upsert(_profile("mid", 2000), "user-a")
    store.upsert(_profile("other", 5000), "user-b")

    assert [g.id for g in store.list_for_user("user-a")] == ["new", "mid", "old"]
    assert [g.id for g in store.list_for_user("user-b")] == ["other"]
    assert store.list_for_user("nobody") == []


def test_last_writer_wins(store):
    store.upsert(_profile("g1", 1000, name="First"), "user-a")
    store.upsert(_profile("g1", 1000, name="Second"), "user-a")

    assert store.get("g1").property_name == "Second"
    assert len(store.list_for_user("user-a")) == 1


def test_save_generated_content(store):
    store.upsert(_profile("g1", 1000), "user-a")
    store.save_generated_content("g1", '{"welcome": "hi"}')

    assert store.get("g1").ai_generated_content == '{"welcome": "hi"}'
    with pytest.raises(PropertyStoreError):
        store.save_generated_content("missing", "{}")


def test_delete(store):
    store.upsert(_profile("g1", 1000), "user-a")

    assert store.delete("g1") is True
    assert store.get("g1") is None
    assert store.delete("g1") is False
