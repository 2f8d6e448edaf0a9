# guestguide/entities.py
from typing import TypeAlias

from sqlalchemy import BigInteger, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

UUID: TypeAlias = str
EpochMillis: TypeAlias = int

Base = declarative_base()


class Guide(Base):
    """
    One stored PropertyProfile, its cached generated guide and its owner.
    Column names match PropertyProfile attribute names.
    """

    __tablename__ = "guides"

    id: Mapped[UUID] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[EpochMillis] = mapped_column(BigInteger, nullable=False)
    drive_link: Mapped[str | None] = mapped_column(Text)

    property_name: Mapped[str] = mapped_column(String, nullable=False, default="")
    property_type: Mapped[str] = mapped_column(String, nullable=False, default="House")
    location: Mapped[str] = mapped_column(String, nullable=False, default="")
    host_name: Mapped[str] = mapped_column(String, nullable=False, default="")

    # remote URL or inline data:image payload
    host_image_url: Mapped[str | None] = mapped_column(Text)
    hero_image_url: Mapped[str | None] = mapped_column(Text)
    additional_photos: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    video_guides: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    target_guest: Mapped[str | None] = mapped_column(String)

    check_in_time: Mapped[str | None] = mapped_column(String)
    check_out_time: Mapped[str | None] = mapped_column(String)
    check_in_method: Mapped[str | None] = mapped_column(Text)
    wifi_name: Mapped[str | None] = mapped_column(String)
    wifi_password: Mapped[str | None] = mapped_column(String)
    emergency_phone: Mapped[str | None] = mapped_column(String)
    property_contact: Mapped[str | None] = mapped_column(String)
    house_rules: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    parking_info: Mapped[str | None] = mapped_column(Text)
    pet_policy: Mapped[str | None] = mapped_column(String)
    smoking_policy: Mapped[str | None] = mapped_column(String)
    quiet_hours: Mapped[str | None] = mapped_column(String)
    checkout_tasks: Mapped[str | None] = mapped_column(Text)

    area_type: Mapped[str | None] = mapped_column(String)
    restaurants: Mapped[str | None] = mapped_column(Text)
    activities: Mapped[str | None] = mapped_column(Text)
    special_notes: Mapped[str | None] = mapped_column(Text)

    ai_generated_content: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        Index("ix_guides_user_id_created_at", "user_id", "created_at"),
    )
