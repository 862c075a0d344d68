"""Tests for RemoteFolderGateway, executed against a local directory tree."""

import os
import stat

import pytest

from mediafolders.exceptions import RemoteExecutionError
from mediafolders.remote.gateway import OwnerProfile, RemoteFolderGateway
from mediafolders.remote.runner import CommandResult, LocalCommandRunner


class RecordingRunner:
    """Records commands and answers with a fixed result."""

    def __init__(self, stdout=""):
        self.stdout = stdout
        self.commands = []

    def run(self, target, command, check=True):
        self.commands.append(command)
        return CommandResult(command=command, exit_code=0, stdout=self.stdout)


class TestLayout:

    def test_folder_path(self, gateway, target, remote_root):
        assert gateway.folder_path(target, "alice", "clips") == f"{remote_root}/alice/clips"

    def test_falls_back_to_configured_base_path(self, gateway, target):
        target.base_path = None
        assert gateway.folder_path(target, "alice", "clips") == "/home/streaming/alice/clips"


class TestStructure:

    def test_ensure_user_structure_creates_profile_dirs(self, gateway, target, remote_root):
        gateway.ensure_user_structure(target, "alice", OwnerProfile())
        assert (remote_root / "alice" / "logs").is_dir()
        assert (remote_root / "alice" / "recordings").is_dir()

    def test_recordings_skipped_when_recording_disabled(self, gateway, target, remote_root):
        gateway.ensure_user_structure(target, "alice", OwnerProfile(recording_enabled=False))
        assert (remote_root / "alice" / "logs").is_dir()
        assert not (remote_root / "alice" / "recordings").exists()

    def test_ensure_user_structure_is_idempotent(self, gateway, target, remote_root):
        gateway.ensure_user_structure(target, "alice", OwnerProfile())
        (remote_root / "alice" / "logs" / "stream.log").write_text("keep")
        gateway.ensure_user_structure(target, "alice", OwnerProfile())
        assert (remote_root / "alice" / "logs" / "stream.log").read_text() == "keep"

    def test_ensure_user_structure_repairs_existing_subdirs(self, gateway, target, remote_root):
        logs = remote_root / "alice" / "logs"
        recordings = remote_root / "alice" / "recordings"
        logs.mkdir(parents=True)
        recordings.mkdir()
        (recordings / "show.flv").write_bytes(b"rec")
        os.chmod(recordings / "show.flv", 0o600)
        os.chmod(logs, 0o700)
        os.chmod(recordings, 0o700)

        gateway.ensure_user_structure(target, "alice", OwnerProfile())

        assert stat.S_IMODE(logs.stat().st_mode) == 0o755
        assert stat.S_IMODE(recordings.stat().st_mode) == 0o755
        # Contents are left alone.
        assert stat.S_IMODE((recordings / "show.flv").stat().st_mode) == 0o600

    def test_ensure_user_structure_chowns_every_dir(self, target):
        runner = RecordingRunner()
        RemoteFolderGateway(runner, file_owner="streaming:streaming").ensure_user_structure(
            target, "alice", OwnerProfile(recording_enabled=False)
        )
        base = f"{target.base_path}/alice"
        assert runner.commands[1] == (
            f"chmod 755 {base} {base}/logs && chown streaming:streaming {base} {base}/logs"
        )

    def test_create_folder_is_idempotent(self, gateway, target, remote_root):
        first = gateway.create_folder(target, "alice", "clips")
        second = gateway.create_folder(target, "alice", "clips")
        assert first == second
        assert (remote_root / "alice" / "clips").is_dir()

    def test_list_folders_shallow_and_sorted(self, gateway, target, remote_root):
        for name in ("zeta", "alpha", "alpha/nested"):
            (remote_root / "alice" / name).mkdir(parents=True)
        (remote_root / "alice" / "notes.txt").write_text("not a folder")

        assert gateway.list_folders(target, "alice") == ["alpha", "zeta"]

    def test_list_folders_missing_tree_is_empty(self, gateway, target):
        assert gateway.list_folders(target, "nobody") == []


class TestInspection:

    def test_exists(self, gateway, target, remote_root):
        (remote_root / "alice" / "clips").mkdir(parents=True)
        assert gateway.exists(target, str(remote_root / "alice" / "clips")) is True
        assert gateway.exists(target, str(remote_root / "alice" / "missing")) is False

    def test_file_count_is_recursive(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        (folder / "sub").mkdir(parents=True)
        (folder / "a.mp4").write_bytes(b"a")
        (folder / "sub" / "b.mp4").write_bytes(b"b")
        assert gateway.file_count(target, str(folder)) == 2

    def test_size_bytes_counts_contents(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        (folder / "a.mp4").write_bytes(b"x" * 50000)
        assert gateway.size_bytes(target, str(folder)) >= 50000

    def test_missing_paths_report_zero(self, gateway, target, remote_root):
        missing = str(remote_root / "alice" / "missing")
        assert gateway.file_count(target, missing) == 0
        assert gateway.size_bytes(target, missing) == 0

    def test_failing_du_is_signaled(self, gateway, target, remote_root, broken_tool):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        broken_tool("du", lines=["4096"])

        with pytest.raises(RemoteExecutionError) as exc_info:
            gateway.size_bytes(target, str(folder))

        assert "Permission denied" in exc_info.value.stderr

    def test_failing_find_is_signaled_not_partially_counted(self, gateway, target, remote_root, broken_tool):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        broken_tool("find", lines=[f"{folder}/a.mp4"])

        with pytest.raises(RemoteExecutionError) as exc_info:
            gateway.file_count(target, str(folder))

        assert "Permission denied" in exc_info.value.stderr

    def test_names_with_spaces_are_quoted(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "two words"
        folder.mkdir(parents=True)
        (folder / "a.mp4").write_bytes(b"a")
        assert gateway.exists(target, str(folder)) is True
        assert gateway.file_count(target, str(folder)) == 1


class TestMutation:

    def test_move(self, gateway, target, remote_root):
        old = remote_root / "alice" / "old"
        old.mkdir(parents=True)
        (old / "a.mp4").write_bytes(b"a")
        new = remote_root / "alice" / "new"

        gateway.move(target, str(old), str(new))

        assert not old.exists()
        assert (new / "a.mp4").exists()

    def test_set_permissions(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        os.chmod(folder, 0o700)

        gateway.set_permissions(target, str(folder))

        assert stat.S_IMODE(folder.stat().st_mode) == 0o755

    def test_set_permissions_includes_chown_when_owner_configured(self, target):
        runner = RecordingRunner()
        RemoteFolderGateway(runner, file_owner="streaming:streaming").set_permissions(target, "/x/y")
        assert runner.commands == ["chmod -R 755 /x/y && chown -R streaming:streaming /x/y"]

    def test_delete_empty(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        gateway.delete_empty(target, str(folder))
        assert not folder.exists()

    def test_delete_non_empty_is_signaled(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        folder.mkdir(parents=True)
        (folder / "a.mp4").write_bytes(b"a")

        with pytest.raises(RemoteExecutionError) as exc_info:
            gateway.delete_empty(target, str(folder))

        assert exc_info.value.exit_code != 0
        assert exc_info.value.stderr
        assert folder.exists()

    def test_cleanup_transient(self, gateway, target, remote_root):
        folder = remote_root / "alice" / "clips"
        (folder / "sub").mkdir(parents=True)
        (folder / "keep.mp4").write_bytes(b"data")
        (folder / "upload.part").write_bytes(b"partial")
        (folder / "sub" / "x.tmp").write_bytes(b"tmp")
        (folder / "empty.mp4").write_bytes(b"")

        gateway.cleanup_transient(target, str(folder))

        remaining = sorted(p.name for p in folder.rglob("*") if p.is_file())
        assert remaining == ["keep.mp4"]

    def test_cleanup_missing_folder_is_noop(self, gateway, target, remote_root):
        gateway.cleanup_transient(target, str(remote_root / "alice" / "missing"))


class TestRunner:

    def test_nonzero_exit_raises_with_stderr(self, target):
        with pytest.raises(RemoteExecutionError) as exc_info:
            LocalCommandRunner(timeout=10).run(target, "echo oops >&2; exit 3")
        assert exc_info.value.exit_code == 3
        assert exc_info.value.stderr == "oops"

    def test_unchecked_run_returns_result(self, target):
        result = LocalCommandRunner(timeout=10).run(target, "exit 4", check=False)
        assert result.exit_code == 4
        assert result.success is False

    def test_timeout_raises(self, target):
        with pytest.raises(RemoteExecutionError):
            LocalCommandRunner(timeout=1).run(target, "sleep 5")

    def test_transport_failure_propagates(self, failing_gateway, target):
        with pytest.raises(RemoteExecutionError):
            failing_gateway.exists(target, "/anything")
