"""
Storage entry model backing the durable key-value store.

Each row holds one JSON-serialized collection (current suite, suite
history, vault items, request history) under a fixed key.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class StorageEntry(Base):
    """
    SQLAlchemy model for persisted key-value pairs.

    Attributes:
        key: Collection key, e.g. ``reqline-test-suites``
        value: JSON document stored under the key
        updated_at: Timestamp of the last write
    """
    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
