"""
Pydantic schemas for vault items.

Vault items are named snippets (tokens, hosts, payloads) kept for reuse
in request lines.
"""

from pydantic import BaseModel, field_validator


class VaultItemCreate(BaseModel):
    """Schema for adding a vault item."""
    name: str
    value: str
    description: str | None = None

    @field_validator("name", "value")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name and value are required")
        return value


class VaultItem(BaseModel):
    """Schema for a stored vault item."""
    id: str
    name: str
    value: str
    description: str | None = None
    created_at: int
    expires_at: int
