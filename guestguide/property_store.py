# guestguide/property_store.py

import logging
from typing import Callable

from sqlalchemy import delete, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from guestguide.entities import Guide
from guestguide.property_profile import PropertyProfile

logger = logging.getLogger("guestguide_backend")

_GUIDE_COLUMNS = tuple(c.key for c in inspect(Guide).column_attrs)


class PropertyStoreError(Exception):
    def __init__(self, operation: str, cause: Exception | str):
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation


class PropertyStore:
    """
    Whole-record persistence for guides. No partial updates other than the
    cached guide content, no concurrency control: the last writer wins.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.SessionFactory = session_factory

    def _to_profile(self, row: Guide) -> PropertyProfile:
        values = {k: getattr(row, k) for k in _GUIDE_COLUMNS if k != "user_id"}
        return PropertyProfile.model_validate(values)

    def _to_row_values(self, profile: PropertyProfile, user_id: str) -> dict:
        values = profile.model_dump()
        values["user_id"] = str(user_id)
        return {k: v for k, v in values.items() if k in _GUIDE_COLUMNS}

    def upsert(self, profile: PropertyProfile, user_id: str) -> PropertyProfile:
        if not profile.id:
            raise ValueError("upsert requires a profile id")
        session = self.SessionFactory()
        try:
            session.merge(Guide(**self._to_row_values(profile, user_id)))
            session.commit()
            return profile
        except SQLAlchemyError as e:
            session.rollback()
            raise PropertyStoreError("save", e) from e
        finally:
            session.close()

    def get(self, guide_id: str) -> PropertyProfile | None:
        session = self.SessionFactory()
        try:
            row = session.get(Guide, str(guide_id))
            return self._to_profile(row) if row else None
        except SQLAlchemyError as e:
            raise PropertyStoreError("load", e) from e
        finally:
            session.close()

    def owner_of(self, guide_id: str) -> str | None:
        session = self.SessionFactory()
        try:
            return session.scalar(select(Guide.user_id).where(Guide.id == str(guide_id)))
        except SQLAlchemyError as e:
            raise PropertyStoreError("load", e) from e
        finally:
            session.close()

    def list_for_user(self, user_id: str) -> list[PropertyProfile]:
        session = self.SessionFactory()
        try:
            rows = session.scalars(
                select(Guide)
                .where(Guide.user_id == str(user_id))
                .order_by(Guide.created_at.desc())
            ).all()
            return [self._to_profile(r) for r in rows]
        except SQLAlchemyError as e:
            raise PropertyStoreError("list", e) from e
        finally:
            session.close()

    def delete(self, guide_id: str) -> bool:
        session = self.SessionFactory()
        try:
            result = session.execute(delete(Guide).where(Guide.id == str(guide_id)))
            session.commit()
            return (result.rowcount or 0) > 0
        except SQLAlchemyError as e:
            session.rollback()
            raise PropertyStoreError("delete", e) from e
        finally:
            session.close()

    def save_generated_content(self, guide_id: str, content: str) -> None:
        session = self.SessionFactory()
        try:
            row = session.get(Guide, str(guide_id))
            if row is None:
                raise PropertyStoreError("save", f"Guide not found: {guide_id}")
            row.ai_generated_content = content
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise PropertyStoreError("save", e) from e
        finally:
            session.close()
