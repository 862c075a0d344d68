"""Shared test fixtures.

Tests run against an in-memory SQLite database (one shared connection) and a
real directory tree under ``tmp_path`` standing in for the remote host: the
gateway's shell commands are executed locally by ``LocalCommandRunner``.
Tables are emptied before each test.
"""

import os

# Configure the app before any mediafolders import reads settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_ENABLED"] = "false"
os.environ["LOG_FORMAT"] = "text"
os.environ["REMOTE_TRANSPORT"] = "local"
os.environ["REMOTE_FILE_OWNER"] = ""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from mediafolders import models  # noqa: F401
from mediafolders.api.deps import get_gateway
from mediafolders.core.locks import KeyedLock
from mediafolders.database import Base, SessionLocal, engine, get_db
from mediafolders.exceptions import RemoteExecutionError
from mediafolders.main import app
from mediafolders.models import MediaRecord, Owner, RemoteTarget
from mediafolders.remote.gateway import RemoteFolderGateway
from mediafolders.remote.runner import LocalCommandRunner
from mediafolders.services.folder_service import FolderService

Base.metadata.create_all(bind=engine)

# Children before parents.
_CLEAN_TABLES = ["media", "folders", "owners", "remote_targets"]


class FailingRunner:
    """Runner whose transport is down: every command fails before reaching the host."""

    def __init__(self):
        self.commands = []

    def run(self, target, command, check=True):
        self.commands.append(command)
        raise RemoteExecutionError("Connection refused", command=command)


@pytest.fixture(autouse=True)
def _clean_tables():
    db = SessionLocal()
    try:
        for table in _CLEAN_TABLES:
            db.execute(text(f"DELETE FROM {table}"))
        db.commit()
    finally:
        db.close()
    yield


@pytest.fixture()
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture()
def remote_root(tmp_path) -> Path:
    root = tmp_path / "streaming"
    root.mkdir()
    return root


@pytest.fixture()
def target(db, remote_root) -> RemoteTarget:
    remote_target = RemoteTarget(
        id=1, name="primary", host="localhost", username="streaming", base_path=str(remote_root)
    )
    db.add(remote_target)
    db.commit()
    return remote_target


@pytest.fixture()
def owner(db, target) -> Owner:
    alice = Owner(id=7, login="alice", email="alice@example.com", remote_target_id=target.id)
    db.add(alice)
    db.commit()
    return alice


@pytest.fixture()
def owner_dir(remote_root, owner) -> Path:
    return remote_root / owner.login


@pytest.fixture()
def gateway() -> RemoteFolderGateway:
    return RemoteFolderGateway(LocalCommandRunner(timeout=30), file_owner="", dir_mode="755")


@pytest.fixture()
def failing_runner() -> FailingRunner:
    return FailingRunner()


@pytest.fixture()
def failing_gateway(failing_runner) -> RemoteFolderGateway:
    return RemoteFolderGateway(failing_runner, file_owner="", dir_mode="755")


@pytest.fixture()
def broken_tool(tmp_path, monkeypatch):
    """Shadow a command on PATH with one that prints *lines* and then fails.

    Stands in for ``du`` or ``find`` hitting an unreadable directory, which
    cannot be provoked with real permissions when tests run as root.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ['PATH']}")

    def install(name: str, lines=()):
        script = bin_dir / name
        body = "".join(f"echo {line}\n" for line in lines)
        script.write_text(
            f"#!/bin/bash\n{body}echo \"{name}: cannot read directory: Permission denied\" >&2\nexit 1\n"
        )
        script.chmod(0o755)

    return install


@pytest.fixture()
def service(db, gateway) -> FolderService:
    return FolderService(db, gateway, locks=KeyedLock())


@pytest.fixture()
def client(db, gateway):
    """TestClient sharing the test session and the local gateway."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def owner_headers(owner) -> dict:
    return {"X-Owner-Id": str(owner.id)}


def make_media(
    db,
    owner: Owner,
    folder: str,
    filename: str = "clip.mp4",
    size_bytes: int = 1024,
    login: str = None,
) -> MediaRecord:
    """Insert a media record stored in ``<login>/<folder>/<filename>``."""
    login = login or owner.login
    record = MediaRecord(
        owner_id=owner.id,
        title=filename,
        url=f"https://cdn.example.com:1443/vod/{login}/{folder}/{filename}",
        path=f"/home/streaming/{login}/{folder}/{filename}",
        size_bytes=size_bytes,
    )
    db.add(record)
    db.commit()
    return record
