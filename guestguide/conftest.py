# guestguide/conftest.py
# Shared fixtures: stub LLM backends and an in-memory store.

import json
import re

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from guestguide.google_helpers import create_session_factory
from guestguide.property_profile import PropertyProfile, VideoGuide
from guestguide.session_cache import ConciergeSessionCache

PNG_PAYLOAD = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4nGNgYGD4DwABBAEAwS2OUAAAAABJRU5ErkJggg=="
JPEG_PAYLOAD = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAgGBgcGBQgHBwcJCQgKDBQNDAsLDBkSEw8UHSEa$&\\1+/="


class EchoGuideLlm:
    """
    Generation stub that builds the guide from what the prompt asked for:
    same video guides, same image references, same rules.
    """

    def __init__(self, fence: bool = False):
        self.fence = fence
        self.calls = []

    def _field(self, prompt: str, label: str) -> str:
        match = re.search(rf"^\s*-?\s*{re.escape(label)}:\s*(.*)$", prompt, flags=re.MULTILINE)
        return match.group(1).strip() if match else ""

    def invoke(self, messages):
        self.calls.append(messages)
        prompt = next(m.content for m in messages if isinstance(m, HumanMessage))
        doc = {
            "welcome": f"Welcome to {self._field(prompt, 'Name')}!",
            "host": {
                "name": self._field(prompt, "Host"),
                "photo": json.loads(self._field(prompt, "Host Photo")),
            },
            "heroImageUrl": json.loads(self._field(prompt, "Hero Photo")),
            "gallery": json.loads(self._field(prompt, "Gallery")),
            "videoGuides": json.loads(self._field(prompt, "Video Guides")),
            "wifi": {"name": "GuestNet", "password": "pw", "instructions": "Router is in the hallway."},
            "houseRules": json.loads(self._field(prompt, "Rules")),
            "checkout": {"time": self._field(prompt, "Check-out"), "tasks": ["Lock the door"]},
        }
        text = json.dumps(doc)
        if self.fence:
            text = f"```json\n{text}\n```"
        return text


class FixedLlm:
    def __init__(self, reply=""):
        self.reply = reply
        self.calls = []

    def invoke(self, messages):
        self.calls.append(list(messages))
        return self.reply


class FailingLlm:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc or TimeoutError("deadline exceeded")
        self.calls = 0

    def invoke(self, messages):
        self.calls += 1
        raise self.exc


def system_text(messages) -> str:
    return next(m.content for m in messages if isinstance(m, SystemMessage))


@pytest.fixture
def session_factory():
    return create_session_factory("sqlite://")


@pytest.fixture
def sessions():
    return ConciergeSessionCache(ttl_seconds=60)


@pytest.fixture
def profile():
    return PropertyProfile(
        id="guide-1",
        property_name="Seaside Cottage",
        location="Cornwall, UK",
        host_name="Alex",
        host_image_url=PNG_PAYLOAD,
        hero_image_url=JPEG_PAYLOAD,
        additional_photos=[PNG_PAYLOAD, "https://cdn.example.com/deck.jpg", "", JPEG_PAYLOAD],
        video_guides=[
            VideoGuide(title="Smart lock", url="https://youtu.be/abc12345678"),
            VideoGuide(title="Coffee machine", url="https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=3"),
        ],
        check_in_method="Lockbox by the front door",
        wifi_name="GuestNet",
        wifi_password="pw",
        house_rules=["No parties", "Shoes off inside"],
        restaurants="The Pizza Spot (2 min walk)",
    )
