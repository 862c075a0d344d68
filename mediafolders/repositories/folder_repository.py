"""Repository for folder catalog rows."""

from typing import List, Optional

from sqlalchemy.orm import Session, Query

from .base import BaseRepository
from ..exceptions import FolderConflictError, FolderNotFoundError
from ..models.folder import Folder, FOLDER_STATUS_ACTIVE, FOLDER_STATUS_REMOVED


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for the folder catalog.

    Every lookup is scoped to an owner; a folder id belonging to someone else
    behaves exactly like a missing one.
    """

    model_class = Folder
    not_found_error = FolderNotFoundError

    def _base_query(self) -> Query:
        return self.db.query(Folder).filter(Folder.status == FOLDER_STATUS_ACTIVE)

    def list_for_owner(self, owner_id: int, remote_target_id: Optional[int] = None) -> List[Folder]:
        """Active folders of an owner, ordered by name."""
        query = self._base_query().filter(Folder.owner_id == owner_id)
        if remote_target_id is not None:
            query = query.filter(Folder.remote_target_id == remote_target_id)
        return query.order_by(Folder.sanitized_name).all()

    def get_for_owner(self, owner_id: int, folder_id: str) -> Optional[Folder]:
        return (
            self._base_query()
            .filter(Folder.owner_id == owner_id, Folder.id == folder_id)
            .first()
        )

    def get_by_name(
        self,
        owner_id: int,
        remote_target_id: int,
        sanitized_name: str,
        include_removed: bool = False,
    ) -> Optional[Folder]:
        query = self.db.query(Folder) if include_removed else self._base_query()
        return query.filter(
            Folder.owner_id == owner_id,
            Folder.remote_target_id == remote_target_id,
            Folder.sanitized_name == sanitized_name,
        ).first()

    def register(
        self,
        owner_id: int,
        remote_target_id: int,
        display_name: str,
        sanitized_name: str,
        remote_path: str,
    ) -> Folder:
        """Record a folder that exists remotely. Idempotent.

        An existing row (active or removed) for the same name is reactivated
        and keeps its id.
        """
        folder = self.get_by_name(owner_id, remote_target_id, sanitized_name, include_removed=True)
        if folder is None:
            folder = Folder(
                owner_id=owner_id,
                remote_target_id=remote_target_id,
                display_name=display_name,
                sanitized_name=sanitized_name,
                remote_path=remote_path,
            )
            self.db.add(folder)
        else:
            if not folder.is_active:
                folder.status = FOLDER_STATUS_ACTIVE
                folder.space_used_mb = 0
            folder.display_name = display_name or folder.display_name
            folder.remote_path = remote_path
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def rename(self, folder: Folder, display_name: str, sanitized_name: str, remote_path: str) -> Folder:
        """Point an existing row at its new name and path. The id is unchanged.

        A removed row still holding the new name is dropped. An active one is
        a live folder and is never overwritten.
        """
        holder = self.get_by_name(folder.owner_id, folder.remote_target_id, sanitized_name, include_removed=True)
        if holder is not None and holder.id != folder.id:
            if holder.is_active:
                raise FolderConflictError(
                    f"A folder named '{sanitized_name}' already exists",
                    reason="target_exists",
                    folder=sanitized_name,
                )
            self.db.delete(holder)
            self.db.flush()
        folder.display_name = display_name
        folder.sanitized_name = sanitized_name
        folder.remote_path = remote_path
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def mark_removed(self, folder: Folder) -> Folder:
        folder.status = FOLDER_STATUS_REMOVED
        self.db.commit()
        self.db.refresh(folder)
        return folder

    def update_usage(self, folder: Folder, space_used_mb: int) -> Folder:
        folder.space_used_mb = space_used_mb
        self.db.commit()
        self.db.refresh(folder)
        return folder
