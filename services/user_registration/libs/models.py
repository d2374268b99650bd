"""Pydantic record models returned by the user store.

Keeps call sites from depending on ORM instances once the session is gone.
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class StoredUser(BaseModel):
    """A persisted registration with its generated identity and timestamps."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str
    created_at: datetime
    updated_at: datetime
