"""Folder API: list, create, rename, delete, info and sync.

Single router for all folder operations. Delegates to FolderService; the
owner is resolved by ``require_owner`` and never taken from the body.
Endpoints are sync functions, so FastAPI runs them in its threadpool and the
service's blocking remote calls never stall the event loop.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from .deps import get_folder_service
from ..core.auth import require_owner
from ..models.owner import Owner
from ..schemas.folder import (
    FolderCatalogItem,
    FolderCreateResponse,
    FolderDeleteResponse,
    FolderInfoResponse,
    FolderListItem,
    FolderNameRequest,
    FolderRenameResponse,
    FolderSyncResponse,
)
from ..services.folder_service import FolderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.get("", response_model=List[FolderListItem])
def list_folders(
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    """Folders currently present on the owner's remote storage."""
    return service.list_folders(owner)


@router.get("/catalog", response_model=List[FolderCatalogItem])
def list_catalog(
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    """Folders as recorded in the catalog (may lag behind the remote)."""
    return service.list_catalog(owner)


@router.post("", response_model=FolderCreateResponse, status_code=201)
def create_folder(
    data: FolderNameRequest,
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    return service.create_folder(owner, data.name)


@router.put("/{folder_id}", response_model=FolderRenameResponse)
def rename_folder(
    folder_id: str,
    data: FolderNameRequest,
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    return service.rename_folder(owner, folder_id, data.name)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
def delete_folder(
    folder_id: str,
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    """Delete an empty folder. 409 with a count when media or files remain."""
    return service.delete_folder(owner, folder_id)


@router.get("/{folder_id}/info", response_model=FolderInfoResponse)
def get_folder_info(
    folder_id: str,
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    return service.get_folder_info(owner, folder_id)


@router.post("/{folder_id}/sync", response_model=FolderSyncResponse)
def sync_folder(
    folder_id: str,
    owner: Owner = Depends(require_owner),
    service: FolderService = Depends(get_folder_service),
):
    """Recreate missing structure, drop temp files and reset permissions."""
    return service.sync_folder(owner, folder_id)
