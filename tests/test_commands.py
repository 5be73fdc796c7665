"""End-to-end tests of the lifecycle commands against a local 'remote'."""

import json
from collections.abc import Generator
from pathlib import Path
from unittest import mock

import pytest
from typer.testing import CliRunner

from tandem.cli import app
from tandem.config import load_config
from tandem.core import LocalStateStore, RemoteLock, state_file_path
from tandem.models import Identity, OperationResult
from tandem.services import ContainerStatus, SyncStatus

DESKTOP = Identity(machine="desktop", user="alice", pid=2222)
SALT = "00112233445566778899aabbccddeeff"


def invoke(runner: CliRunner, *args: str, input: str | None = None):
    return runner.invoke(app, ["--no-color", *args], input=input)


def lock_record(remote_base: Path, project: str = "webapp") -> dict | None:
    path = remote_base / ".locks" / f"{project}.lock"
    return json.loads(path.read_text()) if path.exists() else None


def hold_lock(
    remote_base: Path, executor, identity: Identity = DESKTOP, project: str = "webapp"
) -> None:
    assert RemoteLock("devbox", str(remote_base), executor, identity).acquire(project).success


def remote_owner(remote_project: Path, owner: str) -> None:
    state_dir = remote_project / ".state"
    state_dir.mkdir(parents=True, exist_ok=True)
    record = {"owner": owner, "created": "2026-01-01T00:00:00+00:00", "machine": "workstation"}
    (state_dir / "state.lock").write_text(json.dumps({"ownership": record}))


@pytest.fixture
def configured(write_config, project_dir: Path, remote_executor, runtime) -> Path:
    """Laptop configured, project checked out, remote and runtime stubbed."""
    write_config()
    return project_dir


@pytest.fixture
def offline(configured: Path, unreachable) -> Generator[object, None, None]:
    """The configured remote stops answering."""
    with mock.patch("tandem.commands.common.SSHExecutor", return_value=unreachable):
        yield unreachable


@pytest.fixture
def remote_copy(remote_base: Path) -> Path:
    path = remote_base / "webapp"
    (path / "src").mkdir(parents=True)
    (path / "README.md").write_text("# webapp\n")
    (path / "src" / "app.py").write_text("print('secret sauce')\n")
    return path


@pytest.fixture
def encrypted_project(
    write_config, configured: Path, remote_copy: Path, local_transfers
) -> Path:
    """Encryption enabled for webapp, remote copy still in plaintext."""
    write_config(webapp={"remote": "main", "encryption": {"enabled": True, "salt": SALT}})
    return remote_copy


class TestStart:
    """Tests for tandem start."""

    def test_start_locks_and_records_session(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        result = invoke(runner, "start", "webapp")

        assert result.exit_code == 0, result.output
        assert lock_record(remote_base)["machine"] == "laptop"
        store = LocalStateStore(Identity(machine="laptop", user="alice"))
        session = store.read_session(configured)
        assert session is not None
        assert session.machine == "laptop"

    def test_start_twice_is_idempotent(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0
        assert invoke(runner, "start", "webapp").exit_code == 0
        assert lock_record(remote_base)["machine"] == "laptop"

    def test_conflict_fails_in_non_interactive_mode(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor, runtime
    ) -> None:
        hold_lock(remote_base, remote_executor)

        result = invoke(runner, "--no-prompt", "start", "webapp")

        assert result.exit_code == 1
        assert "desktop" in result.output
        assert lock_record(remote_base)["machine"] == "desktop"
        runtime["start_container"].assert_not_called()
        assert not state_file_path(configured).exists()

    def test_declined_takeover_aborts(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)

        result = invoke(runner, "start", "webapp", input="n\n")

        assert result.exit_code == 1
        assert lock_record(remote_base)["machine"] == "desktop"

    def test_confirmed_takeover(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)

        result = invoke(runner, "start", "webapp", input="y\n")

        assert result.exit_code == 0, result.output
        assert lock_record(remote_base)["machine"] == "laptop"

    def test_takeover_flag_skips_prompt(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)
        result = invoke(runner, "--no-prompt", "start", "webapp", "--takeover")
        assert result.exit_code == 0, result.output
        assert lock_record(remote_base)["machine"] == "laptop"

    def test_unreachable_remote_fails(self, runner: CliRunner, offline, runtime) -> None:
        result = invoke(runner, "start", "webapp")
        assert result.exit_code == 1
        assert "Could not acquire lock" in result.output
        runtime["start_container"].assert_not_called()

    def test_creates_missing_sync_session(
        self, runner: CliRunner, configured: Path, runtime
    ) -> None:
        runtime["get_sync_status"].return_value = SyncStatus(exists=False)
        assert invoke(runner, "start", "webapp").exit_code == 0
        args = runtime["create_sync_session"].call_args.args
        assert args[0] == "webapp"
        assert args[1] == str(configured)
        assert args[2] == "devbox"

    def test_resumes_paused_sync(self, runner: CliRunner, configured: Path, runtime) -> None:
        runtime["get_sync_status"].return_value = SyncStatus(exists=True, paused=True)
        assert invoke(runner, "start", "webapp").exit_code == 0
        runtime["resume_sync"].assert_called_once_with("webapp")

    def test_container_retried_with_rebuild(
        self, runner: CliRunner, configured: Path, runtime
    ) -> None:
        runtime["get_container_status"].return_value = ContainerStatus.STOPPED
        runtime["start_container"].side_effect = [
            OperationResult(success=False, error="boom"),
            OperationResult(success=True),
        ]
        assert invoke(runner, "start", "webapp").exit_code == 0
        assert runtime["start_container"].call_args.kwargs == {"rebuild": True}

    def test_container_failure_leaves_no_session(
        self, runner: CliRunner, configured: Path, runtime
    ) -> None:
        runtime["get_container_status"].return_value = ContainerStatus.NOT_FOUND
        runtime["start_container"].return_value = OperationResult(success=False, error="no docker")
        result = invoke(runner, "start", "webapp")
        assert result.exit_code == 1
        assert not state_file_path(configured).exists()

    def test_dry_run_changes_nothing(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        result = invoke(runner, "--dry-run", "start", "webapp")
        assert result.exit_code == 0
        assert lock_record(remote_base) is None
        assert not state_file_path(configured).exists()

    def test_unknown_project(self, runner: CliRunner, configured: Path) -> None:
        result = invoke(runner, "start", "nope")
        assert result.exit_code == 1
        assert "not found" in result.output


class TestStop:
    """Tests for tandem stop."""

    def test_stop_releases_lock_and_session(
        self, runner: CliRunner, configured: Path, remote_base: Path, runtime
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0

        result = invoke(runner, "stop", "webapp")

        assert result.exit_code == 0, result.output
        assert "Session ended" in result.output
        assert lock_record(remote_base) is None
        assert not state_file_path(configured).exists()
        runtime["flush_sync"].assert_called_once_with("webapp")
        runtime["stop_container"].assert_called_once()

    def test_stop_keeps_other_machines_lock(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)
        result = invoke(runner, "stop", "webapp")
        assert result.exit_code == 0
        assert lock_record(remote_base)["machine"] == "desktop"

    def test_flush_failure_is_advisory(self, runner: CliRunner, configured: Path, runtime) -> None:
        runtime["flush_sync"].return_value = OperationResult(success=False, error="offline")
        result = invoke(runner, "stop", "webapp")
        assert result.exit_code == 0
        assert "offline" in result.output

    def test_container_stop_failure_is_fatal(
        self, runner: CliRunner, configured: Path, runtime
    ) -> None:
        runtime["stop_container"].return_value = OperationResult(success=False, error="stuck")
        assert invoke(runner, "stop", "webapp").exit_code == 1

    def test_force_continues_after_container_failure(
        self, runner: CliRunner, configured: Path, remote_base: Path, runtime
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0
        runtime["stop_container"].return_value = OperationResult(success=False, error="stuck")
        assert invoke(runner, "stop", "webapp", "--force").exit_code == 0
        assert lock_record(remote_base) is None

    def test_pause_sync(self, runner: CliRunner, configured: Path, runtime) -> None:
        assert invoke(runner, "stop", "webapp", "--pause-sync").exit_code == 0
        runtime["pause_sync"].assert_called_once_with("webapp")

    def test_session_delete_failure_is_reported(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0

        with mock.patch.object(
            LocalStateStore, "delete_session", side_effect=OSError("Read-only file system")
        ):
            result = invoke(runner, "stop", "webapp")

        assert result.exit_code == 0, result.output
        assert "Could not end session" in result.output
        assert "Read-only" in result.output
        assert "Session ended" not in result.output
        assert lock_record(remote_base) is None

    def test_unreachable_lock_is_reported(self, runner: CliRunner, offline) -> None:
        result = invoke(runner, "stop", "webapp")
        assert result.exit_code == 0, result.output
        assert "Could not check/release lock" in result.output
        assert "Lock released" not in result.output


class TestEncryptedStop:
    """stop and start with encryption at rest enabled."""

    def test_no_prompt_fails_before_changing_anything(
        self, runner: CliRunner, encrypted_project: Path, remote_base: Path, runtime
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0
        runtime["stop_container"].reset_mock()

        result = invoke(runner, "--no-prompt", "stop", "webapp")

        assert result.exit_code == 1
        assert "--no-prompt" in result.output
        runtime["stop_container"].assert_not_called()
        assert lock_record(remote_base)["machine"] == "laptop"
        assert (encrypted_project / "README.md").exists()
        assert not (encrypted_project / "webapp.tar.enc").exists()

    def test_missing_salt_fails(
        self, runner: CliRunner, write_config, configured: Path, remote_copy: Path, runtime
    ) -> None:
        write_config(webapp={"remote": "main", "encryption": {"enabled": True}})
        result = invoke(runner, "stop", "webapp")
        assert result.exit_code == 1
        assert "no salt" in result.output
        runtime["stop_container"].assert_not_called()

    def test_stop_encrypts_and_start_decrypts(
        self, runner: CliRunner, encrypted_project: Path, remote_base: Path, runtime
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0

        stopped = invoke(runner, "stop", "webapp", input="hunter2\nhunter2\n")

        assert stopped.exit_code == 0, stopped.output
        assert sorted(p.name for p in encrypted_project.iterdir()) == [
            "webapp.salt",
            "webapp.tar.enc",
        ]
        assert (encrypted_project / "webapp.salt").read_text().strip() == SALT
        assert b"secret sauce" not in (encrypted_project / "webapp.tar.enc").read_bytes()
        runtime["pause_sync"].assert_called_once_with("webapp")
        assert lock_record(remote_base) is None

        started = invoke(runner, "start", "webapp", input="hunter2\n")

        assert started.exit_code == 0, started.output
        assert (encrypted_project / "src" / "app.py").read_text() == "print('secret sauce')\n"
        assert not (encrypted_project / "webapp.tar.enc").exists()
        assert not (encrypted_project / "webapp.salt").exists()
        assert lock_record(remote_base)["machine"] == "laptop"

    def test_wrong_passphrase_keeps_archive_and_releases_lock(
        self, runner: CliRunner, encrypted_project: Path, remote_base: Path, runtime
    ) -> None:
        assert invoke(runner, "stop", "webapp", input="hunter2\nhunter2\n").exit_code == 0
        runtime["start_container"].reset_mock()

        result = invoke(runner, "start", "webapp", input="wrong\nwrong\nwrong\n")

        assert result.exit_code == 1
        assert "Failed to decrypt after 3 attempts" in result.output
        assert (encrypted_project / "webapp.tar.enc").exists()
        assert not (encrypted_project / "README.md").exists()
        assert lock_record(remote_base) is None
        runtime["start_container"].assert_not_called()

    def test_start_on_archive_needs_prompt(
        self, runner: CliRunner, encrypted_project: Path, remote_base: Path
    ) -> None:
        assert invoke(runner, "stop", "webapp", input="hunter2\nhunter2\n").exit_code == 0
        result = invoke(runner, "--no-prompt", "start", "webapp")
        assert result.exit_code == 1
        assert (encrypted_project / "webapp.tar.enc").exists()
        assert lock_record(remote_base) is None

    def test_second_stop_keeps_existing_archive(
        self, runner: CliRunner, encrypted_project: Path, local_transfers
    ) -> None:
        assert invoke(runner, "stop", "webapp", input="hunter2\nhunter2\n").exit_code == 0
        archive = (encrypted_project / "webapp.tar.enc").read_bytes()
        local_transfers["upload"].reset_mock()

        result = invoke(runner, "stop", "webapp")

        assert result.exit_code == 0, result.output
        assert "already encrypted" in result.output
        assert (encrypted_project / "webapp.tar.enc").read_bytes() == archive
        local_transfers["upload"].assert_not_called()


class TestEncryptCommands:
    """Tests for tandem encrypt enable / disable."""

    def test_enable_generates_salt(
        self, runner: CliRunner, write_config, configured: Path, tandem_home: Path
    ) -> None:
        write_config(webapp={"remote": "main"})

        result = invoke(runner, "encrypt", "enable", "webapp", input="y\ny\n")

        assert result.exit_code == 0, result.output
        encryption = load_config(tandem_home).projects["webapp"].encryption
        assert encryption.enabled
        assert len(encryption.salt) == 32
        bytes.fromhex(encryption.salt)

    def test_enable_needs_confirmation(
        self, runner: CliRunner, write_config, configured: Path, tandem_home: Path
    ) -> None:
        write_config(webapp={"remote": "main"})
        assert invoke(runner, "--no-prompt", "encrypt", "enable", "webapp").exit_code == 1
        assert invoke(runner, "encrypt", "enable", "webapp", input="y\nn\n").exit_code == 0
        assert not load_config(tandem_home).projects["webapp"].encryption.enabled

    def test_enable_unregistered_project(self, runner: CliRunner, configured: Path) -> None:
        result = invoke(runner, "encrypt", "enable", "webapp")
        assert result.exit_code == 1
        assert "not found in config" in result.output

    def test_disable_decrypts_remote_copy(
        self, runner: CliRunner, encrypted_project: Path, tandem_home: Path
    ) -> None:
        assert invoke(runner, "stop", "webapp", input="hunter2\nhunter2\n").exit_code == 0

        result = invoke(runner, "encrypt", "disable", "webapp", input="hunter2\n")

        assert result.exit_code == 0, result.output
        assert (encrypted_project / "README.md").exists()
        assert not (encrypted_project / "webapp.tar.enc").exists()
        encryption = load_config(tandem_home).projects["webapp"].encryption
        assert not encryption.enabled
        assert encryption.salt is None

    def test_disable_without_archive(
        self, runner: CliRunner, encrypted_project: Path, tandem_home: Path
    ) -> None:
        result = invoke(runner, "--no-prompt", "encrypt", "disable", "webapp")
        assert result.exit_code == 0, result.output
        assert not load_config(tandem_home).projects["webapp"].encryption.enabled

    def test_disable_when_not_enabled(self, runner: CliRunner, write_config, configured) -> None:
        write_config(webapp={"remote": "main"})
        result = invoke(runner, "encrypt", "disable", "webapp")
        assert result.exit_code == 0
        assert "not enabled" in result.output


class TestHandOff:
    """Laptop stops, desktop starts: the lock and session move across."""

    def test_hand_off(
        self, runner: CliRunner, configured: Path, write_config, remote_base: Path
    ) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0

        write_config(machine="desktop")
        blocked = invoke(runner, "--no-prompt", "start", "webapp")
        assert blocked.exit_code == 1

        write_config(machine="laptop")
        assert invoke(runner, "stop", "webapp").exit_code == 0

        write_config(machine="desktop")
        assert invoke(runner, "start", "webapp").exit_code == 0
        assert lock_record(remote_base)["machine"] == "desktop"


class TestShell:
    """Tests for tandem shell."""

    def test_other_session_blocks(self, runner: CliRunner, configured: Path, runtime) -> None:
        LocalStateStore(DESKTOP).write_session(configured)
        result = invoke(runner, "shell", "webapp")
        assert result.exit_code == 1
        assert "desktop" in result.output
        runtime["exec_in_container"].assert_not_called()

    def test_force_bypasses_session(self, runner: CliRunner, configured: Path, runtime) -> None:
        LocalStateStore(DESKTOP).write_session(configured)
        result = invoke(runner, "shell", "webapp", "--force", "-c", "ls")
        assert result.exit_code == 0
        runtime["exec_in_container"].assert_called_once_with(
            "0123456789abcdef", "/workspaces/webapp", "ls"
        )

    def test_missing_session_warns(self, runner: CliRunner, configured: Path, runtime) -> None:
        result = invoke(runner, "shell", "webapp", "-c", "ls")
        assert result.exit_code == 0
        assert "No active session" in result.output

    def test_command_exit_code_propagates(
        self, runner: CliRunner, configured: Path, runtime
    ) -> None:
        runtime["exec_in_container"].return_value = 3
        assert invoke(runner, "shell", "webapp", "-c", "false").exit_code == 3

    def test_container_not_running(self, runner: CliRunner, configured: Path, runtime) -> None:
        runtime["get_container_status"].return_value = ContainerStatus.STOPPED
        assert invoke(runner, "shell", "webapp").exit_code == 1


class TestPush:
    """Tests for tandem push."""

    @pytest.fixture
    def source(self, tmp_path: Path) -> Path:
        path = tmp_path / "work" / "myapp"
        (path / "src").mkdir(parents=True)
        (path / "src" / "main.py").write_text("print('hi')\n")
        return path

    def test_push_new_project(
        self,
        runner: CliRunner,
        write_config,
        remote_executor,
        runtime,
        source: Path,
        remote_base: Path,
        tandem_home: Path,
    ) -> None:
        write_config()
        result = invoke(runner, "push", str(source))

        assert result.exit_code == 0, result.output
        assert (tandem_home / "Projects" / "myapp" / "src" / "main.py").exists()
        assert (remote_base / "myapp").is_dir()
        state = json.loads((remote_base / "myapp" / ".state" / "state.lock").read_text())
        assert state["ownership"]["owner"] == "alice"
        assert load_config(tandem_home).projects["myapp"].remote == "main"
        runtime["flush_sync"].assert_called_once_with("myapp")

    def test_push_with_name(
        self, runner: CliRunner, write_config, remote_executor, runtime, source: Path,
        remote_base: Path,
    ) -> None:
        write_config()
        assert invoke(runner, "push", str(source), "renamed").exit_code == 0
        assert (remote_base / "renamed").is_dir()

    def test_push_denied_for_other_owner(
        self, runner: CliRunner, write_config, remote_executor, runtime, source: Path,
        remote_base: Path,
    ) -> None:
        write_config(user="bob")
        remote_owner(remote_base / "myapp", "alice")

        result = invoke(runner, "push", str(source))

        assert result.exit_code == 1
        assert "alice" in result.output
        runtime["create_sync_session"].assert_not_called()

    def test_overwrite_needs_confirmation(
        self, runner: CliRunner, write_config, remote_executor, runtime, source: Path,
        remote_base: Path,
    ) -> None:
        write_config()
        (remote_base / "myapp").mkdir()
        (remote_base / "myapp" / "keep.txt").write_text("remote work")

        refused = invoke(runner, "--no-prompt", "push", str(source))
        assert refused.exit_code == 1
        declined = invoke(runner, "push", str(source), input="y\nn\n")
        assert declined.exit_code == 0
        assert (remote_base / "myapp" / "keep.txt").exists()

        confirmed = invoke(runner, "push", str(source), input="y\ny\n")
        assert confirmed.exit_code == 0, confirmed.output
        assert not (remote_base / "myapp" / "keep.txt").exists()

    def test_force_overwrites(
        self, runner: CliRunner, write_config, remote_executor, runtime, source: Path,
        remote_base: Path,
    ) -> None:
        write_config()
        (remote_base / "myapp").mkdir()
        (remote_base / "myapp" / "keep.txt").write_text("remote work")
        assert invoke(runner, "--no-prompt", "push", str(source), "--force").exit_code == 0
        assert not (remote_base / "myapp" / "keep.txt").exists()

    def test_missing_source(
        self, runner: CliRunner, write_config, remote_executor, tmp_path: Path
    ) -> None:
        write_config()
        assert invoke(runner, "push", str(tmp_path / "nope")).exit_code == 1


class TestClone:
    """Tests for tandem clone."""

    @pytest.fixture
    def remote_api(self, remote_base: Path) -> Path:
        path = remote_base / "api"
        path.mkdir()
        (path / "main.go").write_text("package main\n")
        return path

    def test_clone_creates_sync_and_registers(
        self, runner: CliRunner, configured: Path, remote_api: Path, tandem_home: Path, runtime
    ) -> None:
        runtime["get_sync_status"].return_value = SyncStatus(exists=False)

        result = invoke(runner, "clone", "api")

        assert result.exit_code == 0, result.output
        local = tandem_home / "Projects" / "api"
        assert local.is_dir()
        args = runtime["create_sync_session"].call_args.args
        assert args[:4] == ("api", str(local), "devbox", str(remote_api))
        runtime["flush_sync"].assert_called_once_with("api")
        runtime["terminate_sync"].assert_not_called()
        assert load_config(tandem_home).projects["api"].remote == "main"

    def test_stale_sync_session_is_terminated(
        self, runner: CliRunner, configured: Path, remote_api: Path, runtime
    ) -> None:
        runtime["get_sync_status"].return_value = SyncStatus(exists=True, paused=True)
        assert invoke(runner, "clone", "api").exit_code == 0
        runtime["terminate_sync"].assert_called_once_with("api")
        runtime["create_sync_session"].assert_called_once()

    def test_missing_remote_project(
        self, runner: CliRunner, configured: Path, tandem_home: Path, runtime
    ) -> None:
        result = invoke(runner, "clone", "api")
        assert result.exit_code == 1
        assert "not found" in result.output
        assert not (tandem_home / "Projects" / "api").exists()
        runtime["create_sync_session"].assert_not_called()

    def test_existing_local_copy_needs_confirmation(
        self, runner: CliRunner, configured: Path, remote_base: Path, runtime
    ) -> None:
        (remote_base / "webapp").mkdir()

        refused = invoke(runner, "--no-prompt", "clone", "webapp")

        assert refused.exit_code == 1
        assert (configured / "README.md").exists()
        runtime["create_sync_session"].assert_not_called()

        forced = invoke(runner, "--no-prompt", "clone", "webapp", "--force")

        assert forced.exit_code == 0, forced.output
        assert configured.is_dir()
        assert not (configured / "README.md").exists()

    def test_sync_failure_removes_local_copy(
        self, runner: CliRunner, configured: Path, remote_api: Path, tandem_home: Path, runtime
    ) -> None:
        runtime["flush_sync"].return_value = OperationResult(success=False, error="timeout")

        result = invoke(runner, "clone", "api")

        assert result.exit_code == 1
        assert "timeout" in result.output
        assert not (tandem_home / "Projects" / "api").exists()
        runtime["terminate_sync"].assert_called_with("api")

    def test_encrypted_remote_is_reported(
        self, runner: CliRunner, configured: Path, remote_api: Path
    ) -> None:
        (remote_api / "api.tar.enc").write_bytes(b"\x00" * 64)
        result = invoke(runner, "--json", "clone", "api")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["encrypted"] is True

    def test_dry_run_changes_nothing(
        self, runner: CliRunner, configured: Path, remote_api: Path, tandem_home: Path, runtime
    ) -> None:
        result = invoke(runner, "--dry-run", "clone", "api")
        assert result.exit_code == 0
        assert not (tandem_home / "Projects" / "api").exists()
        runtime["create_sync_session"].assert_not_called()


class TestRemove:
    """Tests for tandem remove."""

    def test_local_remove_keeps_remote(
        self, runner: CliRunner, configured: Path, remote_base: Path, runtime
    ) -> None:
        (remote_base / "webapp").mkdir()
        assert invoke(runner, "start", "webapp").exit_code == 0

        result = invoke(runner, "remove", "webapp", input="y\n")

        assert result.exit_code == 0, result.output
        assert not configured.exists()
        assert (remote_base / "webapp").is_dir()
        assert lock_record(remote_base) is None
        runtime["terminate_sync"].assert_called_once_with("webapp")

    def test_declined_remove(self, runner: CliRunner, configured: Path) -> None:
        result = invoke(runner, "remove", "webapp", input="n\n")
        assert result.exit_code == 0
        assert configured.exists()

    def test_non_interactive_remove_needs_force(self, runner: CliRunner, configured: Path) -> None:
        assert invoke(runner, "--no-prompt", "remove", "webapp").exit_code == 1
        assert configured.exists()
        assert invoke(runner, "--no-prompt", "remove", "webapp", "--force").exit_code == 0
        assert not configured.exists()

    def test_remote_remove_by_owner(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        remote_owner(remote_base / "webapp", "alice")
        result = invoke(runner, "remove", "webapp", "--remote", input="y\ny\n")
        assert result.exit_code == 0, result.output
        assert not (remote_base / "webapp").exists()
        assert not configured.exists()

    def test_remote_remove_denied_for_non_owner(
        self, runner: CliRunner, configured: Path, remote_base: Path, runtime
    ) -> None:
        remote_owner(remote_base / "webapp", "bob")
        result = invoke(runner, "remove", "webapp", "--remote", "--force")
        assert result.exit_code == 1
        assert "bob" in result.output
        assert (remote_base / "webapp").exists()
        assert configured.exists()
        runtime["remove_container"].assert_not_called()

    def test_remote_remove_second_confirmation_declined(
        self, runner: CliRunner, configured: Path, remote_base: Path
    ) -> None:
        (remote_base / "webapp").mkdir()
        result = invoke(runner, "remove", "webapp", "--remote", input="y\nn\n")
        assert result.exit_code == 0
        assert (remote_base / "webapp").exists()
        assert configured.exists()

    def test_unreachable_lock_is_reported(
        self, runner: CliRunner, configured: Path, offline
    ) -> None:
        result = invoke(runner, "remove", "webapp", "--force")
        assert result.exit_code == 0, result.output
        assert "Could not check/release lock" in result.output
        assert not configured.exists()


class TestLocksAndStatus:
    """Tests for tandem locks and tandem status."""

    def test_locks_json(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)
        hold_lock(remote_base, remote_executor, Identity(machine="laptop", user="alice"), "api")

        result = invoke(runner, "--json", "locks")

        assert result.exit_code == 0
        rows = {row["project"]: row for row in json.loads(result.stdout)["locks"]}
        assert rows["webapp"]["machine"] == "desktop"
        assert rows["api"]["owned_by_me"] is True

    def test_locks_table(
        self, runner: CliRunner, configured: Path, remote_base: Path, remote_executor
    ) -> None:
        hold_lock(remote_base, remote_executor)
        result = invoke(runner, "locks")
        assert result.exit_code == 0
        assert "webapp" in result.output

    def test_no_locks(self, runner: CliRunner, configured: Path) -> None:
        result = invoke(runner, "locks")
        assert result.exit_code == 0
        assert "No locks found" in result.output

    def test_locks_unreachable_remote(self, runner: CliRunner, offline) -> None:
        result = invoke(runner, "locks")
        assert result.exit_code == 1
        assert "Could not list locks on main" in result.output
        assert "No locks found" not in result.output

    def test_locks_unreachable_remote_json(self, runner: CliRunner, offline) -> None:
        result = invoke(runner, "--json", "locks")
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["locks"] == []
        assert data["errors"][0]["remote"] == "main"
        assert "Connection refused" in data["errors"][0]["error"]

    def test_status_json(self, runner: CliRunner, configured: Path, remote_base: Path) -> None:
        assert invoke(runner, "start", "webapp").exit_code == 0
        remote_owner(remote_base / "webapp", "alice")

        result = invoke(runner, "--json", "status", "webapp")

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["lock"]["owned_by_me"] is True
        assert data["lock"]["error"] is None
        assert data["ownership"]["is_owner"] is True
        assert data["session"]["state"] == "valid"
        assert data["container"] == "running"

    def test_status_reports_corrupt_session(self, runner: CliRunner, configured: Path) -> None:
        state = state_file_path(configured)
        state.parent.mkdir()
        state.write_text(json.dumps({"session": {"machine": "x"}}))
        result = invoke(runner, "--json", "status", "webapp")
        assert json.loads(result.stdout)["session"]["state"] == "corrupt"

    def test_status_unreachable_remote(self, runner: CliRunner, offline) -> None:
        result = invoke(runner, "status", "webapp")
        assert result.exit_code == 0, result.output
        assert "Lock: unknown" in result.output
        assert "Owner: unknown" in result.output
        assert "unlocked" not in result.output

    def test_status_unreachable_remote_json(self, runner: CliRunner, offline) -> None:
        data = json.loads(invoke(runner, "--json", "status", "webapp").stdout)
        assert data["lock"]["locked"] is False
        assert "Connection refused" in data["lock"]["error"]
        assert "Connection refused" in data["ownership"]["error"]
