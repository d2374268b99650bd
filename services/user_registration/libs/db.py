"""Database engine and session utilities for async SQLAlchemy.

The worker owns exactly one engine for its lifetime; it is built here and
handed to ``UserStore`` rather than kept in module state.

How to use:

    Example:
        >>> engine = create_engine_from_url("postgres://u:p@db:5432/registration")
        >>> session_factory = create_session_factory(engine)
        >>> async with session_factory() as session:
        ...     await session.commit()
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine


def normalize_database_url(url: str) -> str:
    """Rewrite ``postgres://`` and ``postgresql://`` URLs for the ``asyncpg`` driver.

    Other URLs (e.g. ``sqlite+aiosqlite://``) are returned unchanged.

    Example:
        >>> normalize_database_url("postgres://u:p@h/db")
        'postgresql+asyncpg://u:p@h/db'
    """
    if url.startswith("postgresql+asyncpg://"):
        return url
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def create_engine_from_url(url: str) -> AsyncEngine:
    """Create an async engine for the given database URL."""
    normalized = normalize_database_url(url)
    if normalized.startswith("sqlite"):
        return create_async_engine(normalized)
    return create_async_engine(normalized, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Return a session factory bound to ``engine``.

    Sessions keep attribute values after commit so records can be read
    once the transaction has ended.
    """
    return async_sessionmaker(engine, expire_on_commit=False)
