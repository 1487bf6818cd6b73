"""
Durable key-value storage backed by the ``storage_entries`` table.

Each key holds one JSON document. SQLAlchemy failures are wrapped in
StorageError so callers deal with a single error type.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..exceptions import StorageError
from ..models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)


class SqlStorage:
    """Key-value store with ``get``/``set``/``remove`` semantics."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _session(self) -> Session:
        return self.session_factory()

    def get(self, key: str) -> Any | None:
        """Return the document stored under ``key``, or None."""
        db = self._session()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry is not None else None
        except SQLAlchemyError as exc:
            logger.error("Failed to read %s: %s", key, exc.__class__.__name__)
            raise StorageError(f"Failed to read {key}") from exc
        finally:
            db.close()

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous document."""
        db = self._session()
        try:
            entry = db.get(StorageEntry, key)
            if entry is None:
                db.add(StorageEntry(key=key, value=value))
            else:
                entry.value = value
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to write %s: %s", key, exc.__class__.__name__)
            raise StorageError(f"Failed to save {key}") from exc
        finally:
            db.close()

    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""
        db = self._session()
        try:
            entry = db.get(StorageEntry, key)
            if entry is not None:
                db.delete(entry)
                db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Failed to remove %s: %s", key, exc.__class__.__name__)
            raise StorageError(f"Failed to remove {key}") from exc
        finally:
            db.close()
