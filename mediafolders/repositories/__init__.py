"""Data access repositories."""

from .base import BaseRepository
from .folder_repository import FolderRepository
from .media_repository import MediaRepository
from .owner_repository import OwnerRepository

__all__ = [
    "BaseRepository",
    "FolderRepository",
    "MediaRepository",
    "OwnerRepository",
]
