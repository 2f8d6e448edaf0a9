# guestguide/placeholder_codec.py
"""
Keeps inline image payloads out of LLM prompts.

Inline (``data:image/...``) images are swapped for short tokens before the
prompt is built, and swapped back into the generated guide afterwards.
External URLs are cheap to send and travel through the prompt unchanged.
"""

import json
import logging
from enum import Enum

from guestguide.property_profile import PropertyProfile, is_inline_image

logger = logging.getLogger("guestguide_backend")

HOST_TOKEN = "IMG_PLACEHOLDER_HOST"
HERO_TOKEN = "IMG_PLACEHOLDER_HERO"
GALLERY_TOKEN_PREFIX = "IMG_PLACEHOLDER_GALLERY_"

_OMIT = object()


class MissingImagePolicy(str, Enum):
    """What to do with a token whose image was never provided."""

    KEEP = "keep"        # leave the raw token in the guide
    OMIT = "omit"        # drop the field / list element holding the token
    DEFAULT = "default"  # point it at the default image URL

    @classmethod
    def parse(cls, value) -> "MissingImagePolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            logger.warning(f"Unknown missing image policy {value!r}, keeping tokens.")
            return cls.KEEP


def gallery_token(index: int) -> str:
    return f"{GALLERY_TOKEN_PREFIX}{index}"


def build_placeholder_map(profile: PropertyProfile) -> dict[str, str]:
    """
    Token -> image payload for everything that must not reach the model.

    Host and hero get a token unless they are external URLs; an empty value
    still gets its token (mapped to "") so the model has something to emit.
    Gallery photos get a token only when inline, numbered by list position.
    """
    placeholder_map: dict[str, str] = {}

    for token, value in ((HOST_TOKEN, profile.host_image_url), (HERO_TOKEN, profile.hero_image_url)):
        value = value or ""
        if not value or is_inline_image(value):
            placeholder_map[token] = value

    for idx, photo in enumerate(profile.additional_photos or []):
        if is_inline_image(photo):
            placeholder_map[gallery_token(idx)] = photo

    return placeholder_map


def prompt_image_refs(profile: PropertyProfile, placeholder_map: dict[str, str]) -> dict:
    """
    The exact image references the model is told to copy into the guide:
    a token for anything in the map, the URL itself otherwise.
    """
    host = HOST_TOKEN if HOST_TOKEN in placeholder_map else profile.host_image_url
    hero = HERO_TOKEN if HERO_TOKEN in placeholder_map else profile.hero_image_url

    gallery: list[str] = []
    for idx, photo in enumerate(profile.additional_photos or []):
        token = gallery_token(idx)
        if token in placeholder_map:
            gallery.append(token)
        elif photo and photo.strip():
            gallery.append(photo)

    return {"host": host, "hero": hero, "gallery": gallery}


def _substitute(node, replacements: dict[str, object]):
    if isinstance(node, str):
        return replacements.get(node, node)
    if isinstance(node, list):
        out = []
        for item in node:
            value = _substitute(item, replacements)
            if value is not _OMIT:
                out.append(value)
        return out
    if isinstance(node, dict):
        out = {}
        for key, item in node.items():
            value = _substitute(item, replacements)
            if value is not _OMIT:
                out[key] = value
        return out
    return node


def _splice(text: str, replacements: dict[str, object]) -> str:
    for token, real_value in replacements.items():
        if real_value is _OMIT:
            logger.warning(f"Cannot omit {token} from unparseable guide text; token kept.")
            continue
        # literal replacement: payloads may contain characters a regex would interpret
        text = text.replace(json.dumps(token), json.dumps(real_value, ensure_ascii=False))
    return text


def rehydrate(
    response_text: str,
    placeholder_map: dict[str, str],
    missing_policy: MissingImagePolicy | str = MissingImagePolicy.KEEP,
    default_image_url: str = "",
) -> str:
    """
    Puts the real images back in place of their tokens.

    When the text parses as JSON the substitution is structural (only whole
    string values equal to a token are touched); otherwise every quoted
    occurrence of a token is replaced textually.
    """
    if not response_text:
        return response_text

    missing_policy = MissingImagePolicy.parse(missing_policy)
    replacements: dict[str, object] = {}
    for token, real_value in placeholder_map.items():
        if real_value:
            replacements[token] = real_value
        elif missing_policy == MissingImagePolicy.OMIT:
            replacements[token] = _OMIT
        elif missing_policy == MissingImagePolicy.DEFAULT and default_image_url:
            replacements[token] = default_image_url
        # KEEP: token left untouched

    if not replacements:
        return response_text

    try:
        document = json.loads(response_text)
    except ValueError:
        return _splice(response_text, replacements)

    document = _substitute(document, replacements)
    if document is _OMIT:
        return response_text
    return json.dumps(document, ensure_ascii=False)
