# guestguide/guide_document.py
"""
The guest-facing guide produced by the compiler.

Nothing in a generated guide is guaranteed: every accessor below is a safe
lookup and a missing, empty or wrongly-shaped section reads as "absent".
"""

import copy
import json
import re
from typing import Any

from guestguide.base_utils import BaseUtils, strip_markdown_fence
from guestguide.google_helpers import DEFAULT_IMAGE_URL

GUIDE_KEYS = (
    "welcome",
    "host",
    "heroImageUrl",
    "gallery",
    "videoGuides",
    "wifi",
    "checkIn",
    "houseRules",
    "emergency",
    "localGems",
    "checkout",
)

# (key, title) in display order
SECTION_TITLES = (
    ("wifi", "WiFi"),
    ("checkIn", "Check-in"),
    ("videoGuides", "Video Tutorials"),
    ("gallery", "Gallery"),
    ("houseRules", "House Rules"),
    ("emergency", "Emergency"),
    ("localGems", "Local Gems"),
    ("checkout", "Checkout"),
)

_YOUTUBE_ID_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
YOUTUBE_ID_LENGTH = 11


class GuideDocumentError(ValueError):
    pass


def resolve_embed_id(url) -> str | None:
    """
    Extracts the video id from watch?v=, youtu.be/ and embed/ style links.
    Returns None when the link does not carry an embeddable id.
    """
    if not url or not isinstance(url, str):
        return None
    match = _YOUTUBE_ID_RE.match(url.strip())
    if match and len(match.group(2)) == YOUTUBE_ID_LENGTH:
        return match.group(2)
    return None


def youtube_embed_url(url) -> str | None:
    video_id = resolve_embed_id(url)
    return f"https://www.youtube.com/embed/{video_id}" if video_id else None


def _is_filled(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict)):
        return len(value) > 0
    return True


def is_section_present(doc, key: str) -> bool:
    """True iff `key` exists and holds something (non-empty list/object/string)."""
    if isinstance(doc, GuideDocument):
        doc = doc.data
    if not isinstance(doc, dict) or key not in doc:
        return False
    return _is_filled(doc[key])


class GuideDocument:

    def __init__(self, data: dict | None = None):
        self.data: dict[str, Any] = dict(data) if isinstance(data, dict) else {}

    # -----------------------
    # (de)serialization
    # -----------------------

    @classmethod
    def from_text(cls, text: str | None) -> "GuideDocument":
        if not text or not str(text).strip():
            raise GuideDocumentError("Guide content is empty.")
        try:
            data = BaseUtils().load_fault_tolerant_json(str(text))
        except ValueError as e:
            raise GuideDocumentError(str(e)) from e
        if not isinstance(data, dict):
            raise GuideDocumentError("Guide content is not a JSON object.")
        return cls(data)

    def to_json(self) -> str:
        return json.dumps(self.data, ensure_ascii=False)

    def is_empty(self) -> bool:
        return not self.data

    # -----------------------
    # safe lookups
    # -----------------------

    def _text(self, value) -> str | None:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return value.strip() if isinstance(value, str) and value.strip() else None

    def _section(self, key: str) -> dict:
        value = self.data.get(key)
        return value if isinstance(value, dict) else {}

    def _list(self, key: str) -> list:
        value = self.data.get(key)
        return value if isinstance(value, list) else []

    def has(self, key: str) -> bool:
        return is_section_present(self.data, key)

    @property
    def welcome(self) -> str | None:
        return self._text(self.data.get("welcome"))

    @property
    def host_name(self) -> str | None:
        return self._text(self._section("host").get("name"))

    @property
    def host_photo(self) -> str | None:
        return self._text(self._section("host").get("photo"))

    @property
    def hero_image_url(self) -> str | None:
        return self._text(self.data.get("heroImageUrl"))

    @property
    def gallery(self) -> list[str]:
        return [p for p in self._list("gallery") if isinstance(p, str) and p.strip()]

    @property
    def video_guides(self) -> list[dict]:
        out = []
        for item in self._list("videoGuides"):
            if not isinstance(item, dict):
                continue
            url = self._text(item.get("url"))
            if url:
                out.append({"title": self._text(item.get("title")) or url, "url": url})
        return out

    @property
    def wifi(self) -> dict | None:
        return self._fields("wifi", ("name", "password", "instructions"))

    @property
    def check_in(self) -> dict | None:
        return self._fields("checkIn", ("method", "instructions", "accessCode"))

    @property
    def house_rules(self) -> list[str]:
        return [r.strip() for r in self._list("houseRules") if isinstance(r, str) and r.strip()]

    @property
    def emergency(self) -> dict | None:
        return self._fields("emergency", ("phone", "safetyInfo"))

    @property
    def local_gems(self) -> list[dict]:
        gems = []
        for item in self._list("localGems"):
            if isinstance(item, dict) and self._text(item.get("name")):
                gems.append({k: self._text(item.get(k)) for k in ("name", "type", "description")})
        return gems

    @property
    def checkout(self) -> dict | None:
        section = self._section("checkout")
        time_ = self._text(section.get("time"))
        tasks = section.get("tasks")
        tasks = [t.strip() for t in tasks if isinstance(t, str) and t.strip()] if isinstance(tasks, list) else []
        if not time_ and not tasks:
            return None
        return {"time": time_, "tasks": tasks}

    def _fields(self, key: str, names: tuple[str, ...]) -> dict | None:
        section = self._section(key)
        values = {n: self._text(section.get(n)) for n in names}
        return values if any(values.values()) else None

    # -----------------------
    # concierge grounding
    # -----------------------

    def grounding_context(self) -> dict:
        """Deep copy with every image replaced by a short description."""
        sanitized = copy.deepcopy(self.data)
        if sanitized.get("heroImageUrl"):
            sanitized["heroImageUrl"] = "[Image URL]"
        host = sanitized.get("host")
        if isinstance(host, dict) and host.get("photo"):
            host["photo"] = "[Host Photo]"
        if "gallery" in sanitized:
            gallery = sanitized["gallery"]
            count = len(gallery) if isinstance(gallery, list) else 0
            sanitized["gallery"] = f"[{count} photos available in gallery]"
        return sanitized


def is_usable_guide_content(text: str | None) -> bool:
    """
    A freshly generated guide counts only if it is strict JSON for a
    non-empty object (fence allowed). Model output never goes through the
    tolerant loader: prose like "Error: quota exceeded" is not a guide.
    """
    if not text or not text.strip():
        return False
    try:
        data = json.loads(strip_markdown_fence(text))
    except ValueError:
        return False
    return isinstance(data, dict) and bool(data)


def render_guide(doc: GuideDocument, property_name: str, guest_mode: bool = False) -> dict:
    """
    Read-only view model for one guide: header data plus the present
    sections in display order. Guests never get edit affordances.
    """
    sections = []
    for key, title in SECTION_TITLES:
        if not doc.has(key):
            continue
        if key == "wifi":
            body = doc.wifi
        elif key == "checkIn":
            body = doc.check_in
        elif key == "videoGuides":
            body = [
                {
                    "title": v["title"],
                    "url": v["url"],
                    "embed_url": youtube_embed_url(v["url"]),
                }
                for v in doc.video_guides
            ]
        elif key == "gallery":
            body = doc.gallery
        elif key == "houseRules":
            body = doc.house_rules
        elif key == "emergency":
            body = doc.emergency
        elif key == "localGems":
            body = doc.local_gems
        else:
            body = doc.checkout
        if body:
            sections.append({"id": key, "title": title, "content": body})

    return {
        "property_name": property_name,
        "host_name": doc.host_name or "Superhost",
        "host_photo": doc.host_photo,
        "hero_image_url": doc.hero_image_url or DEFAULT_IMAGE_URL,
        "welcome": doc.welcome,
        "sections": sections,
        "can_edit": not guest_mode,
    }
