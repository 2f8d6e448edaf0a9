# guestguide/test_llm_client.py
"""
ChatLlmClient plumbing tests. The provider call itself is replaced, nothing
leaves the process.

Run:
  pytest -q guestguide/test_llm_client.py
"""

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from guestguide import llm_client
from guestguide.llm_client import ChatLlmClient, LlmCallFailed, is_openai_model


@pytest.fixture
def cooldown(monkeypatch):
    fresh = llm_client._Cooldown()
    monkeypatch.setattr(llm_client, "_COOLDOWN", fresh)
    return fresh


@pytest.fixture
def openai_client(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return ChatLlmClient(
        "gpt-4.1-mini", vertex_project="p", vertex_region="r", timeout=5, temperature=0.1, json_mode=True
    )


def test_provider_selection():
    assert is_openai_model("gpt-4.1-mini")
    assert not is_openai_model("gemini-2.5-flash")
    assert not is_openai_model("")


def test_openai_params(openai_client):
    assert openai_client.provider == "openai"
    assert openai_client._openai_params["temperature"] == 0.1
    assert openai_client._openai_params["text"] == {"format": {"type": "json_object"}}


def test_message_roles(openai_client):
    out = openai_client._to_openai_messages([SystemMessage("s"), HumanMessage("q"), AIMessage("a")])
    assert [m["role"] for m in out] == ["developer", "user", "assistant"]


def test_invoke_returns_text(openai_client, cooldown, monkeypatch):
    monkeypatch.setattr(openai_client, "_invoke_once", lambda messages: '{"ok": true}')
    assert openai_client.invoke([HumanMessage("q")]) == '{"ok": true}'


def test_throttling_is_not_retried(openai_client, cooldown, monkeypatch):
    calls = []

    def throttled(messages):
        calls.append(messages)
        raise RuntimeError("429 Too Many Requests")

    monkeypatch.setattr(openai_client, "_invoke_once", throttled)

    with pytest.raises(LlmCallFailed):
        openai_client.invoke([HumanMessage("q")])
    assert len(calls) == 1
    assert cooldown._seconds == llm_client._Cooldown.START_SECONDS * 2


def test_other_failures_do_not_start_cooldown(openai_client, cooldown, monkeypatch):
    def broken(messages):
        raise ValueError("bad request")

    monkeypatch.setattr(openai_client, "_invoke_once", broken)

    with pytest.raises(LlmCallFailed):
        openai_client.invoke([HumanMessage("q")])
    assert cooldown._until == 0.0
