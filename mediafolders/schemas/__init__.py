"""Pydantic schemas for API validation."""

from .folder import (
    FolderNameRequest,
    SecondaryEffect,
    FolderListItem,
    FolderCatalogItem,
    FolderCreateResponse,
    FolderRenameResponse,
    FolderDeleteResponse,
    RemoteFolderInfo,
    FolderInfoResponse,
    FolderSyncResponse,
)

__all__ = [
    "FolderNameRequest",
    "SecondaryEffect",
    "FolderListItem",
    "FolderCatalogItem",
    "FolderCreateResponse",
    "FolderRenameResponse",
    "FolderDeleteResponse",
    "RemoteFolderInfo",
    "FolderInfoResponse",
    "FolderSyncResponse",
]
