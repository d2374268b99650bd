"""User store backed by async SQLAlchemy.

``save`` distinguishes three outcomes so the worker can pick an ack policy:
- a ``StoredUser`` when the row was inserted
- ``None`` when the email is already registered (unique constraint)
- ``PersistenceError`` for anything else (connectivity, schema mismatch)

Example:
    >>> store = UserStore.from_url("postgresql://u:p@db:5432/registration")
    >>> await store.create_schema()
    >>> record = await store.save(payload)
    >>> await store.close()
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from libs.db import create_engine_from_url, create_session_factory
from libs.exceptions import PersistenceError
from libs.models import StoredUser
from libs.orm_models import Base, RegisteredUser
from libs.validation import UserPayload


logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


def is_duplicate_email_error(exc: IntegrityError) -> bool:
    """Return True if ``exc`` is a uniqueness violation on the email column.

    PostgreSQL drivers expose the SQLSTATE code; other backends (SQLite in
    tests) only carry the message, e.g. ``UNIQUE constraint failed: registered_users.email``.
    """
    orig = exc.orig
    message = str(orig).lower()
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION and "email" in message
    return "unique" in message and "email" in message


class UserStore:
    """Persist registrations, treating a duplicate email as "already registered"."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str) -> "UserStore":
        return cls(create_engine_from_url(database_url))

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_schema(self) -> None:
        """Create the users table and its unique email index if missing."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def save(self, payload: UserPayload) -> Optional[StoredUser]:
        """Insert a registration and return the stored record.

        Returns ``None`` when the email already exists. Raises
        ``PersistenceError`` for any other failure.
        """
        record = RegisteredUser(name=payload.name, email=str(payload.email), phone=payload.phone)
        try:
            async with self._session_factory() as session:
                session.add(record)
                await session.commit()
        except IntegrityError as exc:
            if is_duplicate_email_error(exc):
                logger.warning("User with email %s already exists", payload.email)
                return None
            logger.error("Integrity error while saving user %s: %s", payload.email, exc)
            raise PersistenceError(f"Failed to save user {payload.email}") from exc
        except Exception as exc:  # noqa: BLE001
            logger.error("Error while saving user %s: %s", payload.email, exc)
            raise PersistenceError(f"Failed to save user {payload.email}") from exc

        logger.info("User saved: %s", record.email)
        return StoredUser.model_validate(record)

    async def close(self) -> None:
        """Dispose the engine; errors are logged, not raised."""
        try:
            await self._engine.dispose()
            logger.info("Database engine disposed")
        except Exception as exc:  # noqa: BLE001
            logger.error("Error while disposing database engine: %s", exc)
