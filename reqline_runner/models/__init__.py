"""
Models package for Reqline Runner.

Exports all SQLAlchemy models for database operations.
"""

from .storage_entry import StorageEntry

__all__ = [
    "StorageEntry",
]
