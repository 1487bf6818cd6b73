"""
Vault API routes.

Named values kept for reuse in request lines. Items expire with the
persisted TTL.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import Workspace, get_workspace
from ..schemas.vault import VaultItem, VaultItemCreate


router = APIRouter(prefix="/api/vault", tags=["vault"])


@router.get("", response_model=list[VaultItem])
def list_vault_items(workspace: Workspace = Depends(get_workspace)):
    """Get all unexpired vault items."""
    return workspace.store.list_vault_items()


@router.post("", response_model=VaultItem, status_code=status.HTTP_201_CREATED)
def add_vault_item(
    item_data: VaultItemCreate,
    workspace: Workspace = Depends(get_workspace)
):
    """Add a named value to the vault."""
    return workspace.store.add_vault_item(item_data)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_vault_item(item_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Remove a vault item.

    Raises:
        404 if the item does not exist
    """
    workspace.store.remove_vault_item(item_id)
    return None
