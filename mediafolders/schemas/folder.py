"""Folder request and response schemas."""

from pydantic import BaseModel, ConfigDict, field_validator
from datetime import datetime
from typing import Optional, List


class FolderNameRequest(BaseModel):
    """Body for create and rename."""
    name: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class SecondaryEffect(BaseModel):
    """Outcome of a catalog-side effect applied after the remote change.

    A failed secondary effect never fails the operation; it is reported here
    so callers can see the catalog may lag behind the remote store.
    """
    name: str
    succeeded: bool
    rows_affected: int = 0
    error: Optional[str] = None


class FolderListItem(BaseModel):
    id: str
    name: str
    path: str
    remote_target_id: int
    type: str = "directory"
    error: Optional[str] = None


class FolderCatalogItem(BaseModel):
    """Catalog row as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    sanitized_name: str
    remote_path: str
    remote_target_id: int
    space_used_mb: int
    status: str
    created_at: Optional[datetime] = None


class FolderCreateResponse(BaseModel):
    id: str
    name: str
    original_name: str
    sanitized: bool
    path: str
    remote_target_id: int
    message: str = "Folder created"
    secondary_effects: List[SecondaryEffect] = []


class FolderRenameResponse(BaseModel):
    success: bool = True
    id: str
    old_name: str
    new_name: str
    original_name: str
    sanitized: bool
    path: str
    message: str = "Folder renamed"
    secondary_effects: List[SecondaryEffect] = []


class FolderDeleteResponse(BaseModel):
    success: bool = True
    message: str = "Folder removed"
    secondary_effects: List[SecondaryEffect] = []


class RemoteFolderInfo(BaseModel):
    """Remote side of the info operation. ``error`` is set when the remote could not be queried."""
    exists: bool = False
    file_count: int = 0
    size_bytes: int = 0
    size_mb: int = 0
    path: str
    error: Optional[str] = None


class FolderInfoResponse(BaseModel):
    id: str
    name: str
    path: str
    remote_target_id: int
    media_count: int = 0
    catalog_error: Optional[str] = None
    remote: RemoteFolderInfo
    catalog_mb: int
    remote_mb: int
    reported_mb: int
    quota_mb: int
    percent_of_quota: int


class FolderSyncResponse(BaseModel):
    success: bool = True
    message: str = "Folder synchronized"
    folder_name: str
    path: str
    secondary_effects: List[SecondaryEffect] = []
