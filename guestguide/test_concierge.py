# guestguide/test_concierge.py
"""
Concierge session + session cache tests.

Run:
  pytest -q guestguide/test_concierge.py
"""

import time

import pytest
from langchain_core.messages import AIMessage, HumanMessage

from conftest import FailingLlm, FixedLlm, system_text
from guestguide.concierge import CONNECTION_TROUBLE_MESSAGE, NOT_SURE_MESSAGE, ConciergeSession
from guestguide.session_cache import ConciergeSessionCache

GUIDE = {
    "welcome": "Welcome!",
    "host": {"name": "Alex", "photo": "data:image/png;base64,SECRETPAYLOAD"},
    "heroImageUrl": "data:image/jpeg;base64,HEROPAYLOAD",
    "gallery": ["https://img/1.jpg", "https://img/2.jpg", "https://img/3.jpg"],
    "videoGuides": [{"title": "Smart lock", "url": "https://youtu.be/abc12345678"}],
    "wifi": {"name": "GuestNet", "password": "pw"},
}


def test_start_builds_persona_without_images():
    llm = FixedLlm("ok")
    session = ConciergeSession.start(GUIDE, llm, property_name="Seaside Cottage")

    assert llm.calls == []
    assert session.turns == []
    assert "Alex" in session.system_prompt
    assert "GuestNet" in session.system_prompt
    assert "SECRETPAYLOAD" not in session.system_prompt
    assert "HEROPAYLOAD" not in session.system_prompt
    assert "[3 photos available in gallery]" in session.system_prompt
    assert "Seaside Cottage" in session.greeting()


def test_host_name_fallback():
    session = ConciergeSession.start({"welcome": "hi"}, FixedLlm("ok"))
    assert "the host" in session.system_prompt


def test_ask_records_turns_and_replays_history():
    llm = FixedLlm("The password is pw.")
    session = ConciergeSession.start(GUIDE, llm)

    assert session.ask("What's the wifi password?") == "The password is pw."
    session.ask("And the network?")

    second_call = llm.calls[1]
    assert "GuestNet" in system_text(second_call)
    assert isinstance(second_call[1], HumanMessage)
    assert second_call[1].content == "What's the wifi password?"
    assert isinstance(second_call[2], AIMessage)
    assert second_call[-1].content == "And the network?"
    assert [t["speaker"] for t in session.turns] == ["guest", "assistant", "guest", "assistant"]


def test_backend_failure_returns_apology():
    llm = FailingLlm()
    session = ConciergeSession.start(GUIDE, llm)

    assert session.ask("Where do I park?") == CONNECTION_TROUBLE_MESSAGE
    assert llm.calls == 1
    assert session.turns == []


def test_empty_answer_returns_not_sure():
    session = ConciergeSession.start(GUIDE, FixedLlm("   "))
    assert session.ask("Is there a pool?") == NOT_SURE_MESSAGE
    assert session.turns[-1] == {"speaker": "assistant", "text": NOT_SURE_MESSAGE}


def test_blank_question_rejected():
    session = ConciergeSession.start(GUIDE, FixedLlm("ok"))
    with pytest.raises(ValueError):
        session.ask("   ")


def test_history_is_pruned_by_whole_turns():
    session = ConciergeSession.start(GUIDE, FixedLlm("x" * 400))
    session.max_tokens = 250

    for i in range(5):
        session.ask(f"question {i}")

    turns = session.turns
    assert len(turns) % 2 == 0
    assert turns[0]["speaker"] == "guest"
    assert turns[-2]["text"] == "question 4"


def test_session_cache_sliding_ttl_and_sweep():
    cache = ConciergeSessionCache(ttl_seconds=60)
    session = ConciergeSession.start(GUIDE, FixedLlm("ok"))
    sid = cache.put(session)

    assert cache.get(sid) is session
    assert len(cache) == 1
    cache.drop(sid)
    assert cache.get(sid) is None

    expired = ConciergeSessionCache(ttl_seconds=0)
    expired.put(session)
    time.sleep(0.01)
    assert expired.sweep_expired() == 1
    assert len(expired) == 0


def test_session_cache_put_drops_abandoned_sessions():
    cache = ConciergeSessionCache(ttl_seconds=0)
    for _ in range(5):
        cache.put(ConciergeSession.start(GUIDE, FixedLlm("ok")))
    time.sleep(0.01)

    # nobody calls get() or sweep_expired() on the abandoned chats
    cache.ttl_seconds = 60
    sid = cache.put(ConciergeSession.start(GUIDE, FixedLlm("ok")))

    assert len(cache) == 1
    assert cache.get(sid) is not None
