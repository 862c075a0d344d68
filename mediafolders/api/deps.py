"""Service wiring for the API layer.

Overriding ``get_gateway`` swaps the remote transport for every endpoint,
which is how the tests point the service at a local directory.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..remote.gateway import RemoteFolderGateway
from ..remote.runner import build_runner
from ..services.folder_service import FolderService


def get_gateway() -> RemoteFolderGateway:
    return RemoteFolderGateway(build_runner())


def get_folder_service(
    db: Session = Depends(get_db),
    gateway: RemoteFolderGateway = Depends(get_gateway),
) -> FolderService:
    return FolderService(db, gateway)
