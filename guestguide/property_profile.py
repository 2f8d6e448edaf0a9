# guestguide/property_profile.py
import time
from typing import Literal, TypeAlias
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from guestguide.google_helpers import DEFAULT_IMAGE_URL

PropertyType: TypeAlias = Literal["Apartment", "House", "Cabin", "Studio", "Unique Stay", "Villa"]
GuestType: TypeAlias = Literal["Families", "Couples", "Solo", "Digital Nomads", "Business Travelers"]
AreaType: TypeAlias = Literal["Urban", "Suburban", "Remote/Rural", "Beachfront", "Mountain"]

INLINE_IMAGE_PREFIX = "data:image"
MAX_INLINE_IMAGE_BYTES = int(1.5 * 1024 * 1024)

NOT_AN_IMAGE_MESSAGE = "Please upload an image file."
IMAGE_TOO_LARGE_MESSAGE = "Image is too large. Please choose an image under 1.5MB."


class ProfileValidationError(ValueError):
    pass


def is_inline_image(value: str | None) -> bool:
    return bool(value) and value.startswith(INLINE_IMAGE_PREFIX)


def inline_payload_size(value: str) -> int:
    """Decoded byte size of a data: URI payload."""
    header, _, data = value.partition(",")
    if header.endswith(";base64"):
        data = data.strip()
        return len(data) * 3 // 4 - (len(data) - len(data.rstrip("=")))
    return len(data)


def check_inline_image(value: str) -> str:
    """Inline uploads must be images under 1.5MB; URLs pass untouched."""
    if not value or not value.startswith("data:"):
        return value
    if not value.startswith("data:image/"):
        raise PydanticCustomError("not_an_image", NOT_AN_IMAGE_MESSAGE)
    if inline_payload_size(value) > MAX_INLINE_IMAGE_BYTES:
        raise PydanticCustomError("image_too_large", IMAGE_TOO_LARGE_MESSAGE)
    return value


def _now_ms() -> int:
    return int(time.time() * 1000)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoGuide(_CamelModel):
    title: str = ""
    url: str = ""

    def is_valid(self) -> bool:
        return bool(self.title.strip()) and bool(self.url.strip())


class PropertyProfile(_CamelModel):
    """
    Host-authored source of truth for one guide.

    Serialized with camelCase keys (`propertyName`, `heroImageUrl`, ...), which is
    also the shape of the stored record. Snake_case keys are accepted on input.
    """

    id: str = ""
    created_at: int = Field(default_factory=_now_ms)
    drive_link: str | None = None

    property_name: str = ""
    property_type: PropertyType = "House"
    location: str = ""
    host_name: str = ""
    host_image_url: str = ""
    hero_image_url: str = DEFAULT_IMAGE_URL
    additional_photos: list[str] = Field(default_factory=list)
    video_guides: list[VideoGuide] = Field(default_factory=list)
    target_guest: GuestType = "Families"

    check_in_time: str = "15:00"
    check_out_time: str = "11:00"
    check_in_method: str = ""
    wifi_name: str = ""
    wifi_password: str = ""
    emergency_phone: str = ""
    property_contact: str = ""
    house_rules: list[str] = Field(default_factory=list)
    parking_info: str = ""
    pet_policy: str = "No pets allowed"
    smoking_policy: str = "No smoking"
    quiet_hours: str = "10 PM - 8 AM"
    checkout_tasks: str = "Please turn off lights and lock the door."

    area_type: AreaType = "Urban"
    restaurants: str = ""
    activities: str = ""
    special_notes: str = ""

    ai_generated_content: str | None = None

    @field_validator("video_guides", mode="before")
    @classmethod
    def _guides_or_empty(cls, value):
        # stored rows written by older clients may hold null or a scalar here
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, (dict, VideoGuide))]

    @field_validator("additional_photos", "house_rules", mode="before")
    @classmethod
    def _strings_or_empty(cls, value):
        if not isinstance(value, list):
            return []
        return ["" if v is None else str(v) for v in value]

    @field_validator(
        "property_name", "location", "host_name", "host_image_url", "hero_image_url", "check_in_method",
        "check_in_time", "check_out_time", "pet_policy", "smoking_policy", "quiet_hours", "checkout_tasks",
        "wifi_name", "wifi_password", "emergency_phone", "property_contact", "parking_info",
        "restaurants", "activities", "special_notes", mode="before",
    )
    @classmethod
    def _none_to_blank(cls, value):
        return "" if value is None else value

    @field_validator("host_image_url", "hero_image_url")
    @classmethod
    def _checked_image(cls, value):
        return check_inline_image(value)

    @field_validator("additional_photos")
    @classmethod
    def _checked_photos(cls, value):
        return [check_inline_image(v) for v in value]

    def sanitized_video_guides(self) -> list[VideoGuide]:
        return [v for v in self.video_guides if v.is_valid()]

    def validate_for_submission(self) -> None:
        if not self.property_name.strip() or not self.location.strip():
            raise ProfileValidationError("Property Name and Location are required.")

    def for_submission(self) -> "PropertyProfile":
        """
        Copy ready to be compiled: validated, with incomplete video guides dropped.
        """
        self.validate_for_submission()
        return self.model_copy(update={"video_guides": self.sanitized_video_guides()})

    def to_record(self) -> dict:
        return self.model_dump(by_alias=True)


def new_profile(host_name: str = "") -> PropertyProfile:
    return PropertyProfile(id=str(uuid4()), created_at=_now_ms(), host_name=host_name or "")
