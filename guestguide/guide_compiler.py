# guestguide/guide_compiler.py

import json
import logging

from langchain_core.messages import HumanMessage, SystemMessage

from guestguide.base_utils import BaseUtils, strip_markdown_fence
from guestguide.google_helpers import DEFAULT_IMAGE_URL, MISSING_IMAGE_POLICY
from guestguide.guide_prompts import GUIDE_SYSTEM_INSTRUCTION, GUIDE_USER_PROMPT
from guestguide.placeholder_codec import (
    MissingImagePolicy,
    build_placeholder_map,
    prompt_image_refs,
    rehydrate,
)
from guestguide.property_profile import PropertyProfile

logger = logging.getLogger("guestguide_backend")

GENERATION_FAILED_MESSAGE = (
    "AI Superhost timed out. This usually happens if photos are too large. "
    "Try using smaller images or fewer gallery photos."
)


class GuideGenerationError(Exception):
    def __init__(self, message: str = GENERATION_FAILED_MESSAGE):
        super().__init__(message)
        self.user_message = message


class GuideCompiler(BaseUtils):
    """
    Turns a PropertyProfile into guide JSON text with one generation call.

    `chat_llm` is anything with `invoke(messages) -> str`; in production a
    ChatLlmClient built with temperature 0.1 and JSON responses.
    """

    def __init__(self, chat_llm, missing_policy=None, default_image_url: str | None = None):
        self.chat_llm = chat_llm
        self.missing_policy = MissingImagePolicy.parse(missing_policy or MISSING_IMAGE_POLICY)
        self.default_image_url = DEFAULT_IMAGE_URL if default_image_url is None else default_image_url

    def build_prompt(self, profile: PropertyProfile, placeholder_map: dict[str, str]) -> str:
        refs = prompt_image_refs(profile, placeholder_map)
        video_guides = [v.model_dump() for v in profile.video_guides]

        return self.unsafe_string_format(
            GUIDE_USER_PROMPT,
            PROPERTY_NAME=profile.property_name,
            PROPERTY_TYPE=profile.property_type,
            HOST_NAME=profile.host_name,
            LOCATION=profile.location,
            AREA_TYPE=profile.area_type,
            TARGET_GUEST=profile.target_guest,
            CHECK_IN_METHOD=profile.check_in_method,
            CHECK_IN_TIME=profile.check_in_time,
            CHECK_OUT_TIME=profile.check_out_time,
            WIFI_NAME=profile.wifi_name,
            WIFI_PASSWORD=profile.wifi_password,
            EMERGENCY_PHONE=profile.emergency_phone,
            PROPERTY_CONTACT=profile.property_contact,
            HOUSE_RULES=json.dumps(profile.house_rules or [], ensure_ascii=False),
            PET_POLICY=profile.pet_policy,
            SMOKING_POLICY=profile.smoking_policy,
            QUIET_HOURS=profile.quiet_hours,
            PARKING_INFO=profile.parking_info,
            RESTAURANTS=profile.restaurants,
            ACTIVITIES=profile.activities,
            CHECKOUT_TASKS=profile.checkout_tasks,
            SPECIAL_NOTES=profile.special_notes,
            VIDEO_GUIDES=json.dumps(video_guides, ensure_ascii=False),
            HOST_PHOTO_REF=json.dumps(refs["host"] or ""),
            HERO_PHOTO_REF=json.dumps(refs["hero"] or ""),
            GALLERY_REFS=json.dumps(refs["gallery"]),
        )

    def compile(self, profile: PropertyProfile) -> str:
        """
        Generate the guide text for `profile`. Raises GuideGenerationError
        when the generation call fails; the caller decides whether the
        returned text is usable.
        """
        if self.chat_llm is None:
            raise GuideGenerationError()

        placeholder_map = build_placeholder_map(profile)
        prompt = self.build_prompt(profile, placeholder_map)
        logger.debug(
            f"compile: guide {profile.id or '<new>'}, {len(placeholder_map)} image placeholder(s), "
            f"prompt {len(prompt)} chars"
        )

        try:
            raw = self.chat_llm.invoke([
                SystemMessage(content=GUIDE_SYSTEM_INSTRUCTION),
                HumanMessage(content=prompt),
            ])
        except Exception as e:
            logger.error(f"Error generating guide {profile.id}: {e}")
            raise GuideGenerationError() from e

        raw = getattr(raw, "content", raw)
        result_text = strip_markdown_fence(raw if isinstance(raw, str) else str(raw or ""))

        return rehydrate(
            result_text,
            placeholder_map,
            missing_policy=self.missing_policy,
            default_image_url=self.default_image_url,
        )
