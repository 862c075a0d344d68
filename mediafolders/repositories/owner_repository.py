"""Repository for owners and their remote targets."""

from typing import Optional

from sqlalchemy.orm import Session

from .base import BaseRepository
from ..core.config import settings
from ..exceptions import AuthenticationError, RemoteTargetNotConfiguredError
from ..models.owner import Owner, RemoteTarget


class _OwnerNotFound(AuthenticationError):
    def __init__(self, owner_id: str):
        super().__init__(f"Unknown owner: {owner_id}")


class OwnerRepository(BaseRepository[Owner]):
    """Data access layer for owners."""

    model_class = Owner
    not_found_error = _OwnerNotFound

    def resolve_remote_target(self, owner: Owner) -> RemoteTarget:
        """The remote target serving *owner*.

        Owners without an assignment use ``settings.default_remote_target_id``.
        Resolved once per operation and passed to every remote call.
        """
        target_id = owner.remote_target_id or settings.default_remote_target_id
        target: Optional[RemoteTarget] = (
            self.db.query(RemoteTarget).filter(RemoteTarget.id == target_id).first()
        )
        if target is None:
            raise RemoteTargetNotConfiguredError(owner.id, target_id)
        return target
