"""Database models."""

from .owner import Owner, RemoteTarget
from .folder import Folder, FOLDER_STATUS_ACTIVE, FOLDER_STATUS_REMOVED
from .media import MediaRecord

__all__ = [
    "Owner", "RemoteTarget",
    "Folder", "FOLDER_STATUS_ACTIVE", "FOLDER_STATUS_REMOVED",
    "MediaRecord",
]
