"""Remote project directory operations over the execution primitive."""

import subprocess
from pathlib import Path

from ..constants import SSH_TIMEOUT
from ..models import OperationResult
from .ssh import RemoteExecutor
from .validation import InvalidInputError, quote_remote_path, validate_remote_path


def _checked(path: str) -> str | None:
    try:
        validate_remote_path(path)
    except InvalidInputError as e:
        return str(e)
    return None


def remote_project_exists(
    executor: RemoteExecutor, host: str, path: str, identity_file: str | None = None
) -> bool:
    if _checked(path):
        return False
    result = executor.execute(
        host, f"test -d {quote_remote_path(path)} && echo EXISTS || echo NOT_FOUND", identity_file
    )
    return result.success and "EXISTS" in result.stdout


def make_remote_dir(
    executor: RemoteExecutor, host: str, path: str, identity_file: str | None = None
) -> OperationResult:
    if error := _checked(path):
        return OperationResult(success=False, error=error)
    result = executor.execute(host, f"mkdir -p {quote_remote_path(path)}", identity_file)
    return OperationResult(success=result.success, error=result.error)


def delete_remote_dir(
    executor: RemoteExecutor, host: str, path: str, identity_file: str | None = None
) -> OperationResult:
    """Recursively delete a remote directory. There is no undo."""
    if error := _checked(path):
        return OperationResult(success=False, error=error)
    if path.rstrip("/") in ("", "~"):
        return OperationResult(success=False, error="Refusing to delete a root or home directory")
    result = executor.execute(host, f"rm -rf {quote_remote_path(path)}", identity_file)
    return OperationResult(success=result.success, error=result.error)


def scp(source: str, destination: str, identity_file: str | None = None) -> OperationResult:
    """Copy a file with scp; ``--`` keeps paths from being read as options."""
    args = ["scp", "-q"]
    if identity_file:
        args += ["-i", identity_file]
    args += ["--", source, destination]
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=SSH_TIMEOUT * 20)
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        return OperationResult(success=False, error=str(e))
    if result.returncode != 0:
        return OperationResult(success=False, error=result.stderr.strip())
    return OperationResult(success=True)


def download(
    host: str, remote_path: str, local_path: Path, identity_file: str | None = None
) -> OperationResult:
    return scp(f"{host}:{remote_path}", str(local_path), identity_file)


def upload(
    local_path: Path, host: str, remote_path: str, identity_file: str | None = None
) -> OperationResult:
    return scp(str(local_path), f"{host}:{remote_path}", identity_file)
