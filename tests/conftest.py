"""Shared test fixtures for tandem tests."""

import importlib
import shutil
import subprocess
from collections.abc import Callable, Generator
from contextlib import ExitStack
from pathlib import Path
from unittest import mock

import pytest
import tomli_w
from typer.testing import CliRunner

from tandem.models import Identity, OperationResult
from tandem.services import ContainerStatus, RemoteResult, SyncStatus


class LocalShellExecutor:
    """RemoteExecutor that runs commands with the local ``sh``.

    The temp directory used as the remote base path stands in for the remote
    filesystem, so the real shell fragments are exercised.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, str | None]] = []

    def execute(self, host: str, command: str, identity_file: str | None = None) -> RemoteResult:
        self.calls.append((host, command, identity_file))
        result = subprocess.run(
            ["sh", "-c", command], capture_output=True, text=True, timeout=30
        )
        if result.returncode != 0:
            error = result.stderr.strip() or f"exit code {result.returncode}"
            return RemoteResult(success=False, error=error)
        return RemoteResult(success=True, stdout=result.stdout)


class UnreachableExecutor:
    """RemoteExecutor whose host never answers."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def execute(self, host: str, command: str, identity_file: str | None = None) -> RemoteResult:
        self.calls.append(command)
        return RemoteResult(
            success=False, error="ssh: connect to host example port 22: Connection refused"
        )


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def executor() -> LocalShellExecutor:
    return LocalShellExecutor()


@pytest.fixture
def unreachable() -> UnreachableExecutor:
    return UnreachableExecutor()


@pytest.fixture
def remote_base(tmp_path: Path) -> Path:
    """Directory standing in for the remote projects directory."""
    base = tmp_path / "remote"
    base.mkdir()
    return base


@pytest.fixture
def laptop() -> Identity:
    return Identity(machine="laptop", user="alice", pid=1111)


@pytest.fixture
def desktop() -> Identity:
    return Identity(machine="desktop", user="alice", pid=2222)


@pytest.fixture
def tandem_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point TANDEM_HOME at a temp directory."""
    home = tmp_path / "home"
    (home / "Projects").mkdir(parents=True)
    monkeypatch.setenv("TANDEM_HOME", str(home))
    return home


@pytest.fixture
def write_config(tandem_home: Path, remote_base: Path) -> Callable[..., Path]:
    """Write config.toml with one remote and an identity override.

    The identity override lets a single test act as different machines.
    """

    def _write(machine: str = "laptop", user: str = "alice", **projects: dict) -> Path:
        data = {
            "remotes": {"main": {"host": "devbox", "path": str(remote_base)}},
            "projects": projects,
            "identity": {"machine": machine, "user": user},
        }
        path = tandem_home / "config.toml"
        with open(path, "wb") as f:
            tomli_w.dump(data, f)
        return path

    return _write


@pytest.fixture
def project_dir(tandem_home: Path) -> Path:
    """A local project checked out under the projects directory."""
    path = tandem_home / "Projects" / "webapp"
    path.mkdir()
    (path / "README.md").write_text("# webapp\n")
    return path


@pytest.fixture
def remote_executor(executor: LocalShellExecutor) -> Generator[LocalShellExecutor, None, None]:
    """Route every command's remote execution to the local shell executor."""
    with mock.patch("tandem.commands.common.SSHExecutor", return_value=executor):
        yield executor


@pytest.fixture
def runtime() -> Generator[dict[str, mock.MagicMock], None, None]:
    """Stub the sync engine and container runtime used by the commands.

    Defaults describe a healthy machine: an active sync session and a running
    container. Tests adjust the returned mocks to simulate other states.
    """
    ok = OperationResult(success=True)
    targets = {
        "get_sync_status": SyncStatus(exists=True),
        "create_sync_session": ok,
        "resume_sync": ok,
        "flush_sync": ok,
        "pause_sync": ok,
        "terminate_sync": ok,
        "get_container_status": ContainerStatus.RUNNING,
        "start_container": ok,
        "stop_container": ok,
        "remove_container": ok,
        "get_container_id": "0123456789abcdef",
        "exec_in_container": 0,
    }
    modules = ["start", "stop", "push", "clone", "remove", "shell", "status"]
    mocks: dict[str, mock.MagicMock] = {}
    with ExitStack() as stack:
        for name, value in targets.items():
            shared = mock.MagicMock(name=name, return_value=value)
            mocks[name] = shared
            for module in modules:
                target = f"tandem.commands.{module}"
                if hasattr(importlib.import_module(target), name):
                    stack.enter_context(mock.patch(f"{target}.{name}", shared))
        yield mocks


@pytest.fixture
def local_transfers() -> Generator[dict[str, mock.MagicMock], None, None]:
    """Replace scp for archives with plain file copies on this machine.

    Remote paths are local paths under the stand-in remote, so the host part
    is dropped.
    """

    def _download(
        host: str, remote_path: str, local_path: Path, identity_file: str | None = None
    ) -> OperationResult:
        shutil.copyfile(remote_path, local_path)
        return OperationResult(success=True)

    def _upload(
        local_path: Path, host: str, remote_path: str, identity_file: str | None = None
    ) -> OperationResult:
        shutil.copyfile(local_path, remote_path)
        return OperationResult(success=True)

    with (
        mock.patch("tandem.services.archive.download", side_effect=_download) as download,
        mock.patch("tandem.services.archive.upload", side_effect=_upload) as upload,
    ):
        yield {"download": download, "upload": upload}
