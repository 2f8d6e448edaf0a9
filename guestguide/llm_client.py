# guestguide/llm_client.py

import logging
import random
import threading
import time
from typing import Any, Dict, List

from openai import OpenAI
from langchain_google_vertexai import ChatVertexAI
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage

logger = logging.getLogger("guestguide_backend")

OPENAI_PREFIXES = ("gpt-", "gpt4", "o1", "o3", "o4")


class LlmCallFailed(Exception):
    pass


def is_openai_model(model_name: str) -> bool:
    return bool(model_name) and model_name.startswith(OPENAI_PREFIXES)


class _Cooldown:
    """
    Process-wide pause after the provider says "slow down".

    Calls are never retried here: the guest/host gets the failure right away,
    only the *next* call made by any client waits out the cooldown.
    """

    START_SECONDS = 5.0
    MAX_SECONDS = 120.0

    def __init__(self):
        self._lock = threading.Lock()
        self._until = 0.0
        self._seconds = self.START_SECONDS

    def wait(self) -> None:
        with self._lock:
            remaining = self._until - time.monotonic()
        if remaining > 0:
            time.sleep(remaining)

    def hit(self) -> float:
        with self._lock:
            delay = random.uniform(self._seconds * 0.9, self._seconds * 1.3)
            self._seconds = min(self._seconds * 2, self.MAX_SECONDS)
            self._until = max(self._until, time.monotonic() + delay)
            return delay

    def relax(self) -> None:
        with self._lock:
            self._seconds = max(self.START_SECONDS, self._seconds / 2)


_COOLDOWN = _Cooldown()


def _is_throttled(e: Exception) -> bool:
    msg = str(e)
    if isinstance(e, TimeoutError) or "timed out" in msg.lower():
        return True
    return "429" in msg or "RESOURCE_EXHAUSTED" in msg or "Too Many Requests" in msg


class ChatLlmClient:
    """
    One chat model behind a single call:

        text = chat_llm.invoke([SystemMessage(...), HumanMessage(...), AIMessage(...), ...])

    - Vertex (Gemini): ChatVertexAI.invoke(messages)
    - OpenAI (gpt-*): Responses API with input=[{role, content}, ...]

    `json_mode` asks the provider for a JSON-only response body.
    """

    def __init__(
        self,
        model_name: str,
        *,
        vertex_project: str,
        vertex_region: str,
        timeout: float | None = None,
        temperature: float | None = None,
        json_mode: bool = False,
    ):
        self.provider = "openai" if is_openai_model(model_name) else "vertex"
        self.model_name = model_name
        self._openai_params: Dict[str, Any] = {}

        if self.provider == "vertex":
            vertex_kwargs: Dict[str, Any] = {}
            if temperature is not None:
                vertex_kwargs["temperature"] = temperature
            if json_mode:
                vertex_kwargs["response_mime_type"] = "application/json"
            self._vertex = ChatVertexAI(
                project=vertex_project,
                location=vertex_region,
                model_name=model_name,
                timeout=timeout,
                max_retries=0,
                **vertex_kwargs,
            )
            self._client = None
        else:
            self._vertex = None
            if temperature is not None:
                self._openai_params["temperature"] = temperature
            if json_mode:
                self._openai_params["text"] = {"format": {"type": "json_object"}}
            client_kwargs: Dict[str, Any] = {"max_retries": 0}
            if timeout is not None:
                client_kwargs["timeout"] = timeout
            self._client = OpenAI(**client_kwargs)

    def _to_openai_messages(self, messages: List[BaseMessage]) -> List[Dict[str, str]]:
        out: List[Dict[str, str]] = []
        for m in messages:
            if isinstance(m, SystemMessage):
                role = "developer"
            elif isinstance(m, AIMessage):
                role = "assistant"
            else:
                role = "user"
            out.append({"role": role, "content": str(m.content)})
        return out

    def _invoke_once(self, messages: List[BaseMessage]) -> str:
        if self.provider == "vertex":
            resp = self._vertex.invoke(messages)
            content = getattr(resp, "content", resp)
            if isinstance(content, list):
                # Gemini may return content parts
                content = "".join(p.get("text", "") if isinstance(p, dict) else str(p) for p in content)
            return str(content or "")

        resp = self._client.responses.create(
            model=self.model_name,
            input=self._to_openai_messages(messages),
            **self._openai_params,
        )
        return (getattr(resp, "output_text", "") or "").strip()

    def invoke(self, messages: List[BaseMessage]) -> str:
        """Single attempt; raises LlmCallFailed on any provider error."""
        _COOLDOWN.wait()
        started = time.monotonic()
        try:
            text = self._invoke_once(messages)
        except Exception as e:
            elapsed = time.monotonic() - started
            if _is_throttled(e):
                delay = _COOLDOWN.hit()
                logger.warning(f"[LLM] {self.model_name} throttled after {elapsed:.1f}s, cooling down ~{delay:.0f}s: {e}")
            else:
                logger.warning(f"[LLM] {self.model_name} failed after {elapsed:.1f}s: {e}")
            raise LlmCallFailed(f"{self.model_name} call failed") from e
        _COOLDOWN.relax()
        return text
