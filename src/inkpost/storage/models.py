"""SQLModel database models."""

from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from inkpost.models import utcnow


class StoredValue(SQLModel, table=True):
    """One key of the key-value medium: a serialized collection or session."""

    key: str = Field(primary_key=True)
    value: str
    revision: int = 1  # bumped on every write, used as the change token
    updated_at: datetime = Field(default_factory=utcnow)
