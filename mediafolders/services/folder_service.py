"""Deep module for folder operations across the remote store and the catalog.

The remote directory tree is authoritative; the catalog (folder rows and
media references) is bookkeeping that follows it. Every mutating operation
runs in two phases:

1. primary -- verify preconditions and change the remote store. Any failure
   here aborts the operation and nothing in the catalog is touched.
2. secondary -- bring the catalog in line (rewrite or purge media references,
   register/rename/remove the folder row). Failures are logged, reported to
   the caller as ``secondary_effects`` and never undo the primary change.

Operations on the same (owner, folder) are serialized with a keyed lock.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .naming import sanitize_folder_name, was_sanitized
from .path_rewriter import PathRewriter
from .usage import bytes_to_mb, compute_usage
from ..core.config import settings
from ..core.locks import KeyedLock, folder_locks
from ..exceptions import (
    DatabaseError,
    FolderConflictError,
    FolderNotFoundError,
    RemoteExecutionError,
    ValidationError,
)
from ..models.folder import Folder
from ..models.owner import Owner, RemoteTarget
from ..remote.gateway import OwnerProfile, RemoteFolderGateway
from ..repositories.folder_repository import FolderRepository
from ..repositories.media_repository import MediaRepository
from ..repositories.owner_repository import OwnerRepository
from ..schemas.folder import (
    FolderCreateResponse,
    FolderDeleteResponse,
    FolderInfoResponse,
    FolderListItem,
    FolderRenameResponse,
    FolderSyncResponse,
    RemoteFolderInfo,
    SecondaryEffect,
)

FOLDER_ID_PREFIX = "fld-"

# Resolve/lock rounds before giving up on a folder that keeps being renamed.
_LOCK_ATTEMPTS = 3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _OwnerContext:
    """Everything resolved once per operation and threaded through every call."""
    owner: Owner
    target: RemoteTarget
    login: str
    profile: OwnerProfile
    quota_mb: int


@dataclass(frozen=True)
class _FolderRef:
    """A folder as addressed by the caller.

    ``id`` is the catalog id, or the folder name for folders the catalog does
    not know yet. ``folder`` is the catalog row when there is one.
    """
    id: str
    name: str
    folder: Optional[Folder]


def _same_folder(a: _FolderRef, b: _FolderRef) -> bool:
    a_id = a.folder.id if a.folder is not None else None
    b_id = b.folder.id if b.folder is not None else None
    return a.name == b.name and a_id == b_id


class FolderService:
    """Folder operations behind a narrow interface.

    Public methods:
        list_folders    -- live listing from the remote store
        list_catalog    -- catalog rows (fallback view)
        create_folder   -- idempotent remote create + catalog registration
        rename_folder   -- remote move, then media path rewrite
        delete_folder   -- only when empty in catalog and on the remote
        get_folder_info -- usage from both stores, partial on failure
        sync_folder     -- repair structure, permissions and temp files
    """

    def __init__(self, db: Session, gateway: RemoteFolderGateway, locks: Optional[KeyedLock] = None):
        self.db = db
        self.gateway = gateway
        self.locks = locks or folder_locks
        self.owner_repo = OwnerRepository(db)
        self.folder_repo = FolderRepository(db)
        self.media_repo = MediaRepository(db)
        self.rewriter = PathRewriter(db, self.media_repo)
        self.reserved_names = settings.get_reserved_folder_names()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_folders(self, owner: Owner) -> List[FolderListItem]:
        """Folders found on the owner's remote tree.

        Never raises for remote failures: the caller gets the synthesized
        default folder instead, flagged with an error, and no existing folder
        is exposed.
        """
        ctx = self._context(owner)
        try:
            names = self.gateway.list_folders(ctx.target, ctx.login)
        except RemoteExecutionError as e:
            logger.error(
                "Remote folder listing failed",
                extra=self._log_extra(ctx, error=e.message, stderr=e.stderr),
            )
            return [self._default_item(ctx, error="Remote storage unavailable")]

        names = [name for name in names if name.lower() not in self.reserved_names]
        if not names:
            return [self._default_item(ctx)]

        ids = self._catalog_ids(ctx, names)
        logger.info("Listed folders", extra=self._log_extra(ctx, count=len(names)))
        return [
            FolderListItem(
                id=ids.get(name, name),
                name=name,
                path=self.gateway.folder_path(ctx.target, ctx.login, name),
                remote_target_id=ctx.target.id,
            )
            for name in names
        ]

    def list_catalog(self, owner: Owner) -> List[Folder]:
        return self.folder_repo.list_for_owner(owner.id)

    def create_folder(self, owner: Owner, raw_name: Optional[str]) -> FolderCreateResponse:
        name, sanitized = self._validated_name(raw_name)
        ctx = self._context(owner)
        if sanitized:
            logger.info(
                "Folder name sanitized",
                extra=self._log_extra(ctx, original_name=raw_name, folder=name),
            )

        with self.locks.hold((owner.id, name)):
            try:
                self.gateway.ensure_user_structure(ctx.target, ctx.login, ctx.profile)
                path = self.gateway.create_folder(ctx.target, ctx.login, name)
            except RemoteExecutionError as e:
                logger.error(
                    "Folder creation failed on remote",
                    extra=self._log_extra(ctx, folder=name, error=e.message, stderr=e.stderr),
                )
                raise

            effect, folder = self._secondary(
                ctx, "catalog.register",
                lambda: self.folder_repo.register(owner.id, ctx.target.id, raw_name, name, path),
            )

        logger.info("Folder created", extra=self._log_extra(ctx, folder=name, path=path))
        return FolderCreateResponse(
            id=folder.id if folder is not None else name,
            name=name,
            original_name=raw_name,
            sanitized=sanitized,
            path=path,
            remote_target_id=ctx.target.id,
            message="Folder created" + (" (name sanitized)" if sanitized else ""),
            secondary_effects=[effect],
        )

    def rename_folder(self, owner: Owner, identity: str, raw_name: Optional[str]) -> FolderRenameResponse:
        new_name, sanitized = self._validated_name(raw_name)
        ctx = self._context(owner)
        with self._locked_folder(ctx, identity, new_name) as ref:
            old_name = ref.name
            old_path = self.gateway.folder_path(ctx.target, ctx.login, old_name)
            new_path = self.gateway.folder_path(ctx.target, ctx.login, new_name)

            try:
                if old_name == new_name:
                    self.gateway.create_folder(ctx.target, ctx.login, new_name)
                else:
                    self._check_rename_target(ctx, ref, new_name, new_path)
                    if self.gateway.exists(ctx.target, old_path):
                        self.gateway.move(ctx.target, old_path, new_path)
                        self.gateway.set_permissions(ctx.target, new_path)
                    else:
                        # Nothing to move; the folder under its new name is an equivalent outcome.
                        logger.info(
                            "Folder missing on remote, creating it under the new name",
                            extra=self._log_extra(ctx, old_folder=old_name, folder=new_name),
                        )
                        self.gateway.create_folder(ctx.target, ctx.login, new_name)
            except RemoteExecutionError as e:
                logger.error(
                    "Folder rename failed on remote",
                    extra=self._log_extra(ctx, old_folder=old_name, folder=new_name, error=e.message, stderr=e.stderr),
                )
                raise

            effects = []
            effect, _ = self._secondary(
                ctx, "media.rewrite_paths",
                lambda: self.rewriter.rewrite(owner.id, ctx.login, old_name, new_name),
            )
            effects.append(effect)

            if ref.folder is not None:
                effect, folder = self._secondary(
                    ctx, "catalog.rename",
                    lambda: self.folder_repo.rename(ref.folder, raw_name, new_name, new_path),
                )
            else:
                effect, folder = self._secondary(
                    ctx, "catalog.register",
                    lambda: self.folder_repo.register(owner.id, ctx.target.id, raw_name, new_name, new_path),
                )
            effects.append(effect)

        folder_id = ref.id if ref.folder is not None else (folder.id if folder is not None else new_name)
        logger.info(
            "Folder renamed",
            extra=self._log_extra(ctx, old_folder=old_name, folder=new_name, path=new_path),
        )
        return FolderRenameResponse(
            id=folder_id,
            old_name=old_name,
            new_name=new_name,
            original_name=raw_name,
            sanitized=sanitized,
            path=new_path,
            message="Folder renamed" + (" (name sanitized)" if sanitized else ""),
            secondary_effects=effects,
        )

    def delete_folder(self, owner: Owner, identity: str) -> FolderDeleteResponse:
        """Delete an empty folder.

        Rejected with a count when the catalog references media in the folder
        (checked before the remote is touched) or when the remote directory
        holds files.
        """
        ctx = self._context(owner)
        with self._locked_folder(ctx, identity) as ref:
            name = ref.name
            try:
                media_count = self.media_repo.count_referencing(owner.id, ctx.login, name)
            except SQLAlchemyError as e:
                self.db.rollback()
                raise DatabaseError("Could not verify that the folder holds no media", e) from e

            if media_count > 0:
                raise FolderConflictError(
                    f"Folder contains {media_count} media record(s). Remove them before deleting the folder.",
                    reason="media_present",
                    count=media_count,
                    folder=name,
                )

            path = self.gateway.folder_path(ctx.target, ctx.login, name)
            try:
                if self.gateway.exists(ctx.target, path):
                    file_count = self.gateway.file_count(ctx.target, path)
                    if file_count > 0:
                        raise FolderConflictError(
                            f"Folder contains {file_count} file(s) on the remote. Remove them first.",
                            reason="remote_files_present",
                            count=file_count,
                            folder=name,
                        )
                    self.gateway.delete_empty(ctx.target, path)
                    logger.info("Folder removed from remote", extra=self._log_extra(ctx, folder=name))
                else:
                    logger.info(
                        "Folder missing on remote, removing catalog entries only",
                        extra=self._log_extra(ctx, folder=name),
                    )
            except RemoteExecutionError as e:
                logger.error(
                    "Folder removal failed on remote",
                    extra=self._log_extra(ctx, folder=name, error=e.message, stderr=e.stderr),
                )
                raise

            effects = []
            effect, _ = self._secondary(
                ctx, "media.delete_referencing",
                lambda: self.media_repo.delete_referencing(owner.id, ctx.login, name),
            )
            effects.append(effect)
            if ref.folder is not None:
                effect, _ = self._secondary(
                    ctx, "catalog.mark_removed",
                    lambda: self.folder_repo.mark_removed(ref.folder),
                )
                effects.append(effect)

        return FolderDeleteResponse(secondary_effects=effects)

    def get_folder_info(self, owner: Owner, identity: str) -> FolderInfoResponse:
        """Usage and content of a folder as seen by both stores.

        Each store is queried independently; a failing store yields an error
        marker on its side instead of failing the request.
        """
        ctx = self._context(owner)
        ref = self._resolve_folder(ctx, identity, tolerate_catalog_errors=True)
        path = self.gateway.folder_path(ctx.target, ctx.login, ref.name)

        media_count = 0
        catalog_mb = 0
        catalog_error = None
        try:
            media_count = self.media_repo.count_referencing(owner.id, ctx.login, ref.name)
            catalog_mb = self.media_repo.sum_megabytes(owner.id, ctx.login, ref.name)
        except SQLAlchemyError as e:
            self.db.rollback()
            catalog_error = str(e)
            logger.warning(
                "Catalog usage unavailable",
                extra=self._log_extra(ctx, folder=ref.name, error=catalog_error),
            )

        remote_bytes: Optional[int] = None
        try:
            if self.gateway.exists(ctx.target, path):
                file_count = self.gateway.file_count(ctx.target, path)
                remote_bytes = self.gateway.size_bytes(ctx.target, path)
                remote = RemoteFolderInfo(
                    exists=True,
                    file_count=file_count,
                    size_bytes=remote_bytes,
                    size_mb=bytes_to_mb(remote_bytes),
                    path=path,
                )
            else:
                remote_bytes = 0
                remote = RemoteFolderInfo(exists=False, path=path)
        except RemoteExecutionError as e:
            logger.warning(
                "Remote usage unavailable",
                extra=self._log_extra(ctx, folder=ref.name, error=e.message, stderr=e.stderr),
            )
            remote = RemoteFolderInfo(exists=False, path=path, error=e.stderr or e.message)

        usage = compute_usage(catalog_mb, remote_bytes, ctx.quota_mb)

        if ref.folder is not None and catalog_error is None:
            self._secondary(
                ctx, "catalog.update_usage",
                lambda: self.folder_repo.update_usage(ref.folder, usage.reported_mb),
            )

        return FolderInfoResponse(
            id=ref.id,
            name=ref.name,
            path=path,
            remote_target_id=ctx.target.id,
            media_count=media_count,
            catalog_error=catalog_error,
            remote=remote,
            catalog_mb=usage.catalog_mb,
            remote_mb=usage.remote_mb,
            reported_mb=usage.reported_mb,
            quota_mb=usage.quota_mb,
            percent_of_quota=usage.percent_of_quota,
        )

    def sync_folder(self, owner: Owner, identity: str) -> FolderSyncResponse:
        """Bring a folder to a known-good state. Safe to run repeatedly."""
        ctx = self._context(owner)
        with self._locked_folder(ctx, identity) as ref:
            name = ref.name
            try:
                self.gateway.ensure_user_structure(ctx.target, ctx.login, ctx.profile)
                path = self.gateway.create_folder(ctx.target, ctx.login, name)
                self.gateway.cleanup_transient(ctx.target, path)
                self.gateway.set_permissions(ctx.target, path)
            except RemoteExecutionError as e:
                logger.error(
                    "Folder sync failed on remote",
                    extra=self._log_extra(ctx, folder=name, error=e.message, stderr=e.stderr),
                )
                raise

            display_name = ref.folder.display_name if ref.folder is not None else name
            effect, _ = self._secondary(
                ctx, "catalog.register",
                lambda: self.folder_repo.register(owner.id, ctx.target.id, display_name, name, path),
            )

        logger.info("Folder synchronized", extra=self._log_extra(ctx, folder=name, path=path))
        return FolderSyncResponse(folder_name=name, path=path, secondary_effects=[effect])

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _context(self, owner: Owner) -> _OwnerContext:
        target = self.owner_repo.resolve_remote_target(owner)
        profile = OwnerProfile(
            bitrate=owner.bitrate or 2500,
            viewer_limit=owner.viewer_limit or 100,
            recording_enabled=bool(owner.recording_enabled),
        )
        return _OwnerContext(
            owner=owner,
            target=target,
            login=owner.remote_login,
            profile=profile,
            quota_mb=owner.quota_mb or settings.default_quota_mb,
        )

    def _validated_name(self, raw_name: Optional[str]) -> Tuple[str, bool]:
        if raw_name is None or not raw_name.strip():
            raise ValidationError("Folder name is required", field="name")
        name = sanitize_folder_name(raw_name)
        if not name:
            raise ValidationError("Folder name contains no usable characters", field="name")
        if name in self.reserved_names:
            raise ValidationError(f"'{name}' is a reserved folder name", field="name")
        return name, was_sanitized(raw_name, name)

    def _resolve_folder(self, ctx: _OwnerContext, identity: str, tolerate_catalog_errors: bool = False) -> _FolderRef:
        """Find the folder addressed by *identity* (catalog id or folder name).

        Names are accepted so folders created outside this service, or not
        registered yet, stay addressable.
        """
        try:
            folder = self.folder_repo.get_for_owner(ctx.owner.id, identity)
            if folder is not None and folder.remote_target_id == ctx.target.id:
                return _FolderRef(id=folder.id, name=folder.sanitized_name, folder=folder)
            if identity.startswith(FOLDER_ID_PREFIX):
                raise FolderNotFoundError(identity)
            name = self._identity_name(identity)
            folder = self.folder_repo.get_by_name(ctx.owner.id, ctx.target.id, name)
        except SQLAlchemyError as e:
            self.db.rollback()
            if not tolerate_catalog_errors:
                raise DatabaseError("Folder lookup failed", e) from e
            logger.warning(
                "Folder lookup failed, addressing folder by name",
                extra=self._log_extra(ctx, identity=identity, error=str(e)),
            )
            if identity.startswith(FOLDER_ID_PREFIX):
                raise FolderNotFoundError(identity) from e
            name = self._identity_name(identity)
            return _FolderRef(id=name, name=name, folder=None)

        if folder is not None:
            return _FolderRef(id=folder.id, name=folder.sanitized_name, folder=folder)
        return _FolderRef(id=name, name=name, folder=None)

    def _identity_name(self, identity: str) -> str:
        name = sanitize_folder_name(identity)
        if not name or name in self.reserved_names:
            raise FolderNotFoundError(identity)
        return name

    @contextmanager
    def _locked_folder(self, ctx: _OwnerContext, identity: str, *other_names: str) -> Iterator[_FolderRef]:
        """Resolve *identity* and hold the lock on its current name.

        The lock is keyed by name, so the folder is resolved again once the
        lock is held. If a concurrent rename moved it in between, the lock on
        the stale name is released and the new name is locked instead.
        """
        ref = self._resolve_folder(ctx, identity)
        for _ in range(_LOCK_ATTEMPTS):
            keys = [(ctx.owner.id, ref.name)] + [(ctx.owner.id, name) for name in other_names]
            with self.locks.hold(*keys):
                # Rows loaded before the lock may have been changed by another session.
                self.db.expire_all()
                current = self._resolve_folder(ctx, identity)
                if _same_folder(current, ref):
                    yield current
                    return
            logger.info(
                "Folder changed while waiting for its lock, retrying",
                extra=self._log_extra(ctx, identity=identity, old_folder=ref.name, folder=current.name),
            )
            ref = current

        raise FolderConflictError(
            f"Folder '{identity}' is being modified concurrently, retry later",
            reason="folder_changed",
            folder=ref.name,
        )

    def _check_rename_target(self, ctx: _OwnerContext, ref: _FolderRef, new_name: str, new_path: str) -> None:
        """Refuse to rename onto a folder that exists in the catalog or on the remote."""
        try:
            holder = self.folder_repo.get_by_name(ctx.owner.id, ctx.target.id, new_name)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DatabaseError("Folder lookup failed", e) from e

        taken_in_catalog = holder is not None and (ref.folder is None or holder.id != ref.folder.id)
        if taken_in_catalog or self.gateway.exists(ctx.target, new_path):
            raise FolderConflictError(
                f"A folder named '{new_name}' already exists",
                reason="target_exists",
                folder=new_name,
            )

    def _catalog_ids(self, ctx: _OwnerContext, names: List[str]) -> Dict[str, str]:
        """Catalog ids for remotely listed folders, registering unknown ones.

        Best-effort: on catalog failure the names themselves serve as ids.
        """
        try:
            known = {
                f.sanitized_name: f.id
                for f in self.folder_repo.list_for_owner(ctx.owner.id, ctx.target.id)
            }
            for name in names:
                if name not in known:
                    path = self.gateway.folder_path(ctx.target, ctx.login, name)
                    folder = self.folder_repo.register(ctx.owner.id, ctx.target.id, name, name, path)
                    known[name] = folder.id
            return known
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "Could not register listed folders in catalog",
                extra=self._log_extra(ctx, error=str(e)),
            )
            return {}

    def _default_item(self, ctx: _OwnerContext, error: Optional[str] = None) -> FolderListItem:
        name = settings.default_folder_name
        return FolderListItem(
            id=name,
            name=name,
            path=self.gateway.folder_path(ctx.target, ctx.login, name),
            remote_target_id=ctx.target.id,
            error=error,
        )

    def _secondary(self, ctx: _OwnerContext, name: str, effect: Callable[[], Any]) -> Tuple[SecondaryEffect, Any]:
        """Run a catalog-side effect; a failure is reported, never raised."""
        try:
            value = effect()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(
                "Catalog update failed after remote change",
                extra=self._log_extra(ctx, effect=name, error=str(e)),
            )
            return SecondaryEffect(name=name, succeeded=False, error=str(e)), None

        rows = value if isinstance(value, int) else int(value is not None)
        return SecondaryEffect(name=name, succeeded=True, rows_affected=rows), value

    @staticmethod
    def _log_extra(ctx: _OwnerContext, **fields) -> Dict[str, Any]:
        extra = {"owner_id": ctx.owner.id, "remote_target_id": ctx.target.id, "login": ctx.login}
        extra.update(fields)
        return extra
