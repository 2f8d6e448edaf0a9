# guestguide/concierge.py

import json
import logging
import threading
from uuid import uuid4

from langchain_community.chat_message_histories import ChatMessageHistory
from langchain_core.messages import HumanMessage, AIMessage, SystemMessage

from guestguide.base_utils import BaseUtils
from guestguide.guide_document import GuideDocument
from guestguide.guide_prompts import CONCIERGE_PROMPT

logger = logging.getLogger("guestguide_backend")

NOT_SURE_MESSAGE = "I'm not sure about that. Try contacting the host!"
CONNECTION_TROUBLE_MESSAGE = "Sorry, I'm having trouble connecting. Please try again."


class ConciergeSession:
    """
    One guest's chat about one guide.

    The guide is frozen into the persona prompt at start (images described,
    never sent). Turns live in `history` and are replayed on every call.
    """

    def __init__(self, chat_llm, grounding_context: dict, system_prompt: str,
                 property_name: str = "", max_tokens: int = 8000):
        self.session_id = str(uuid4())
        self.chat_llm = chat_llm
        self.grounding_context = grounding_context
        self.system_prompt = system_prompt
        self.property_name = property_name
        self.max_tokens = max_tokens
        self.history = ChatMessageHistory()
        self._lock = threading.Lock()

    @classmethod
    def start(cls, doc: GuideDocument | dict, chat_llm, property_name: str = "") -> "ConciergeSession":
        if not isinstance(doc, GuideDocument):
            doc = GuideDocument(doc)
        context = doc.grounding_context()
        host_name = doc.host_name or "the host"

        system_prompt = BaseUtils().unsafe_string_format(
            CONCIERGE_PROMPT,
            GUIDE_CONTEXT=json.dumps(context, ensure_ascii=False),
            HOST_NAME=host_name,
        )
        return cls(chat_llm, context, system_prompt, property_name=property_name)

    def greeting(self) -> str:
        name = self.property_name or "your stay"
        return f"Hi! I'm your digital concierge for {name}. How can I help you today?"

    @property
    def turns(self) -> list[dict]:
        out = []
        for m in self.history.messages:
            speaker = "guest" if isinstance(m, HumanMessage) else "assistant"
            out.append({"speaker": speaker, "text": str(m.content)})
        return out

    def ask(self, question: str) -> str:
        """
        Answer one guest question. Never raises on backend failure: the guest
        gets a friendly fallback instead.
        """
        question = (question or "").strip()
        if not question:
            raise ValueError("Question must not be blank.")

        with self._lock:
            messages = [SystemMessage(content=self.system_prompt)]
            messages.extend(self.history.messages)
            messages.append(HumanMessage(content=question))

            try:
                raw = self.chat_llm.invoke(messages)
            except Exception as e:
                logger.warning(f"Concierge session {self.session_id} failed: {e}")
                return CONNECTION_TROUBLE_MESSAGE

            answer = getattr(raw, "content", raw)
            answer = answer.strip() if isinstance(answer, str) else ""
            if not answer:
                answer = NOT_SURE_MESSAGE

            self.history.add_message(HumanMessage(content=question))
            self.history.add_message(AIMessage(content=answer))
            self._prune_to_token_cap()
            return answer

    def _approx_tokens(self, text: str) -> int:
        return max(1, len(text) // 4)

    def _prune_to_token_cap(self) -> None:
        msgs = list(self.history.messages)
        tokens = [self._approx_tokens(str(getattr(m, "content", "") or "")) for m in msgs]
        total = sum(tokens)
        if total <= self.max_tokens:
            return

        # drop whole turns from the front until under cap
        i = 0
        while i < len(msgs) and total > self.max_tokens:
            total -= tokens[i]
            i += 1
        if i % 2:
            i += 1
        self.history.messages = msgs[i:]
