"""Remote folder operations expressed as shell commands.

The gateway owns the command vocabulary (listing, existence, counting, size,
move, permissions, empty-directory removal, transient-file cleanup) and the
remote layout ``<base_path>/<login>/<folder>``. It does not retry and does
not interpret failures beyond raising ``RemoteExecutionError``.
"""

import logging
import posixpath
import shlex
from dataclasses import dataclass
from typing import List, Optional

from .runner import CommandRunner
from ..core.config import settings
from ..models.owner import RemoteTarget

logger = logging.getLogger(__name__)

RECORDINGS_DIR = "recordings"
LOGS_DIR = "logs"

# Leftovers from interrupted uploads and transcodes.
TRANSIENT_FILE_PATTERNS = ("*.tmp", "*.part")


@dataclass(frozen=True)
class OwnerProfile:
    """Streaming profile settings that shape an owner's remote tree."""
    bitrate: int = 2500
    viewer_limit: int = 100
    recording_enabled: bool = True


def _q(value: str) -> str:
    return shlex.quote(value)


def _with_pipefail(command: str) -> str:
    """Run *command* under bash with pipefail, so a failing stage fails the pipeline."""
    return f"bash -o pipefail -c {_q(command)}"


def _parse_int(text: str) -> int:
    """First integer on the first line of *text*, 0 if there is none."""
    first = (text or "").strip().split("\n", 1)[0].strip()
    token = first.split()[0] if first else ""
    return int(token) if token.isdigit() else 0


class RemoteFolderGateway:
    """Folder operations against a remote target."""

    def __init__(
        self,
        runner: CommandRunner,
        file_owner: Optional[str] = None,
        dir_mode: Optional[str] = None,
    ):
        self.runner = runner
        self.file_owner = settings.remote_file_owner if file_owner is None else file_owner
        self.dir_mode = dir_mode or settings.remote_dir_mode

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @staticmethod
    def base_path(target: RemoteTarget) -> str:
        return (target.base_path or settings.remote_base_path).rstrip("/") or "/"

    def user_path(self, target: RemoteTarget, login: str) -> str:
        return posixpath.join(self.base_path(target), login)

    def folder_path(self, target: RemoteTarget, login: str, name: str) -> str:
        return posixpath.join(self.user_path(target, login), name)

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    def ensure_user_structure(self, target: RemoteTarget, login: str, profile: OwnerProfile) -> str:
        """Create the owner's tree and its profile subdirectories. Idempotent."""
        user_path = self.user_path(target, login)
        dirs = [user_path, posixpath.join(user_path, LOGS_DIR)]
        if profile.recording_enabled:
            dirs.append(posixpath.join(user_path, RECORDINGS_DIR))

        self.runner.run(target, "mkdir -p " + " ".join(_q(d) for d in dirs))
        # Only the directories themselves: recordings can be large.
        self.runner.run(target, self._permissions_command(dirs, recursive=False))
        logger.debug(
            "Owner structure ensured",
            extra={"remote_target_id": target.id, "login": login, "bitrate": profile.bitrate},
        )
        return user_path

    def create_folder(self, target: RemoteTarget, login: str, name: str) -> str:
        """Create one folder under the owner's tree. Succeeds if it exists."""
        path = self.folder_path(target, login, name)
        self.runner.run(target, f"mkdir -p {_q(path)}")
        self.set_permissions(target, path)
        return path

    def list_folders(self, target: RemoteTarget, login: str) -> List[str]:
        """Names of the directories directly under the owner's tree.

        A missing tree yields an empty list, not an error.
        """
        user_path = self.user_path(target, login)
        command = (
            f"if [ -d {_q(user_path)} ]; then "
            f"find {_q(user_path)} -mindepth 1 -maxdepth 1 -type d -printf '%f\\n'; fi"
        )
        result = self.runner.run(target, command)
        return sorted(line.strip() for line in result.stdout.splitlines() if line.strip())

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def exists(self, target: RemoteTarget, path: str) -> bool:
        result = self.runner.run(target, f"test -d {_q(path)} && echo EXISTS || echo NOT_EXISTS")
        return result.stdout.strip() == "EXISTS"

    def file_count(self, target: RemoteTarget, path: str) -> int:
        """Regular files under *path*, recursively. A missing path has none.

        A ``find`` that fails part-way raises instead of returning a partial count.
        """
        command = f"if [ -e {_q(path)} ]; then find {_q(path)} -type f | wc -l; else echo 0; fi"
        result = self.runner.run(target, _with_pipefail(command))
        return _parse_int(result.stdout)

    def size_bytes(self, target: RemoteTarget, path: str) -> int:
        """Disk usage of *path* in bytes, recursively. A missing path uses none."""
        # No pipe: du's own exit status reaches the runner.
        result = self.runner.run(
            target, f"if [ -e {_q(path)} ]; then du -sb {_q(path)}; else echo 0; fi"
        )
        return _parse_int(result.stdout)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def move(self, target: RemoteTarget, old_path: str, new_path: str) -> None:
        # -T: never move old_path *into* an existing new_path directory.
        self.runner.run(target, f"mv -T {_q(old_path)} {_q(new_path)}")

    def set_permissions(self, target: RemoteTarget, path: str, recursive: bool = True) -> None:
        self.runner.run(target, self._permissions_command([path], recursive))

    def _permissions_command(self, paths: List[str], recursive: bool) -> str:
        flag = "-R " if recursive else ""
        quoted = " ".join(_q(p) for p in paths)
        command = f"chmod {flag}{self.dir_mode} {quoted}"
        if self.file_owner:
            command += f" && chown {flag}{_q(self.file_owner)} {quoted}"
        return command

    def delete_empty(self, target: RemoteTarget, path: str) -> None:
        """Remove an empty directory. A non-empty one raises RemoteExecutionError."""
        self.runner.run(target, f"rmdir {_q(path)}")

    def cleanup_transient(self, target: RemoteTarget, path: str) -> None:
        """Delete partial uploads, temp files and zero-length files under *path*."""
        names = " -o ".join(f"-name {_q(p)}" for p in TRANSIENT_FILE_PATTERNS)
        command = (
            f"if [ -d {_q(path)} ]; then "
            f"find {_q(path)} -type f \\( {names} -o -size 0 \\) -delete; fi"
        )
        self.runner.run(target, command)
