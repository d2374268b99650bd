"""SQLAlchemy ORM models for the user store.

Models provided:
- ``RegisteredUser``: one row per registration, unique on ``email``
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class RegisteredUser(Base):
    """A registered user.

    Fields:
        - id: Generated UUID (string form)
        - name: Full name
        - email: Email address (unique)
        - phone: Mobile number digits
        - created_at: Creation timestamp
        - updated_at: Last update timestamp
    """
    __tablename__ = "registered_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    phone: Mapped[str] = mapped_column(String(20))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<RegisteredUser(id={self.id}, email='{self.email}')>"
