"""Command transports for remote folder operations.

A runner executes one shell command against a remote target and returns its
output. Non-zero exits and transport failures surface as
``RemoteExecutionError``; runners never retry.

``SSHCommandRunner`` talks to the target over SSH (paramiko, key auth, one
connection per command). ``LocalCommandRunner`` runs the command on this
host with bash, for single-host deployments and tests.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.config import settings, RemoteTransport
from ..exceptions import RemoteExecutionError
from ..models.owner import RemoteTarget

logger = logging.getLogger(__name__)

# Truncate captured output to keep error details and logs bounded.
MAX_OUTPUT_CHARS = 64 * 1024


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote command."""
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    def run(self, target: RemoteTarget, command: str, check: bool = True) -> CommandResult:
        """Execute *command* on *target*.

        With ``check=True`` a non-zero exit raises ``RemoteExecutionError``.
        """
        ...


def _truncate(text: str) -> str:
    if len(text) > MAX_OUTPUT_CHARS:
        return text[:MAX_OUTPUT_CHARS] + "\n... (output truncated)"
    return text


def _finish(result: CommandResult, target: RemoteTarget, check: bool) -> CommandResult:
    logger.debug(
        "Remote command finished",
        extra={
            "remote_target_id": target.id,
            "command": result.command,
            "exit_code": result.exit_code,
            "duration_seconds": round(result.duration_seconds, 3),
        },
    )
    if check and not result.success:
        raise RemoteExecutionError(
            f"Remote command failed with exit code {result.exit_code}",
            command=result.command,
            stderr=result.stderr.strip(),
            exit_code=result.exit_code,
        )
    return result


class LocalCommandRunner:
    """Run commands on this host with ``/bin/bash``."""

    def __init__(self, timeout: Optional[int] = None):
        self.timeout = timeout or settings.remote_command_timeout

    def run(self, target: RemoteTarget, command: str, check: bool = True) -> CommandResult:
        start = time.monotonic()
        try:
            completed = subprocess.run(
                command,
                shell=True,
                executable="/bin/bash",
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RemoteExecutionError(
                f"Command timed out after {self.timeout} seconds",
                command=command,
            ) from e
        except OSError as e:
            raise RemoteExecutionError(f"Command could not be started: {e}", command=command) from e

        result = CommandResult(
            command=command,
            exit_code=completed.returncode,
            stdout=_truncate(completed.stdout),
            stderr=_truncate(completed.stderr),
            duration_seconds=time.monotonic() - start,
        )
        return _finish(result, target, check)


class SSHCommandRunner:
    """Run commands on the remote target over SSH."""

    def __init__(self, timeout: Optional[int] = None, connect_timeout: Optional[int] = None, strict_host_keys: Optional[bool] = None):
        self.timeout = timeout or settings.remote_command_timeout
        self.connect_timeout = connect_timeout or settings.ssh_connect_timeout
        self.strict_host_keys = (
            settings.ssh_strict_host_keys if strict_host_keys is None else strict_host_keys
        )

    def _connect(self, target: RemoteTarget):
        import paramiko

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        if self.strict_host_keys:
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        client.connect(
            hostname=target.host,
            port=target.port or 22,
            username=target.username,
            key_filename=target.key_file or None,
            timeout=self.connect_timeout,
        )
        return client

    def run(self, target: RemoteTarget, command: str, check: bool = True) -> CommandResult:
        import paramiko

        start = time.monotonic()
        try:
            client = self._connect(target)
        except (paramiko.SSHException, OSError) as e:
            raise RemoteExecutionError(
                f"Cannot connect to remote target {target.id} ({target.host}): {e}",
                command=command,
            ) from e

        try:
            _, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            stdout_text = stdout.read().decode("utf-8", errors="replace")
            stderr_text = stderr.read().decode("utf-8", errors="replace")
            exit_code = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise RemoteExecutionError(
                f"Remote command failed on target {target.id}: {e}",
                command=command,
            ) from e
        finally:
            client.close()

        result = CommandResult(
            command=command,
            exit_code=exit_code,
            stdout=_truncate(stdout_text),
            stderr=_truncate(stderr_text),
            duration_seconds=time.monotonic() - start,
        )
        return _finish(result, target, check)


def build_runner() -> CommandRunner:
    """Runner selected by ``settings.remote_transport``."""
    if settings.remote_transport == RemoteTransport.LOCAL:
        return LocalCommandRunner()
    return SSHCommandRunner()
