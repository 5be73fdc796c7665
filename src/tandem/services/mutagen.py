"""Mutagen sync session management: create, pause, resume, terminate."""

import logging
import re
import subprocess
from dataclasses import dataclass

from ..constants import MUTAGEN_BINARY, MUTAGEN_TIMEOUT, SYNC_SESSION_PREFIX
from ..models import OperationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncStatus:
    """State of a project's sync session."""

    exists: bool
    paused: bool = False
    error: str | None = None


def session_name(project: str) -> str:
    """Mutagen-safe session name for a project (alphanumerics, '-' and '_')."""
    sanitized = re.sub(r"[^a-z0-9_-]", "-", project.lower())
    sanitized = re.sub(r"-+", "-", sanitized).strip("-")
    return f"{SYNC_SESSION_PREFIX}-{sanitized or 'project'}"


def _run_mutagen(
    args: list[str], timeout: int = MUTAGEN_TIMEOUT
) -> subprocess.CompletedProcess[str]:
    logger.debug("mutagen %s", " ".join(args))
    return subprocess.run(
        [MUTAGEN_BINARY, *args],
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def _execute(args: list[str]) -> OperationResult:
    try:
        result = _run_mutagen(args)
    except FileNotFoundError:
        return OperationResult(success=False, error="mutagen not found in PATH")
    except subprocess.TimeoutExpired:
        return OperationResult(success=False, error="mutagen command timed out")
    if result.returncode != 0:
        return OperationResult(
            success=False, error=result.stderr.strip() or f"exit code {result.returncode}"
        )
    return OperationResult(success=True)


def create_sync_session(
    project: str,
    local_path: str,
    remote_host: str,
    remote_path: str,
    ignores: list[str],
    sync_mode: str,
) -> OperationResult:
    """Create a two-way sync session between local_path and host:remote_path."""
    args = [
        "sync",
        "create",
        local_path,
        f"{remote_host}:{remote_path}",
        "--name",
        session_name(project),
        "--sync-mode",
        sync_mode,
    ]
    for pattern in ignores:
        args += ["--ignore", pattern]
    return _execute(args)


def get_sync_status(project: str) -> SyncStatus:
    try:
        result = _run_mutagen(["sync", "list", session_name(project)])
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        return SyncStatus(exists=False, error=str(e))
    output = result.stdout + result.stderr
    if result.returncode != 0:
        if "unable to locate" in output or "no matching" in output.lower():
            return SyncStatus(exists=False)
        return SyncStatus(exists=False, error=result.stderr.strip())
    if not result.stdout.strip() or "No synchronization sessions found" in output:
        return SyncStatus(exists=False)
    return SyncStatus(exists=True, paused="[Paused]" in result.stdout)


def flush_sync(project: str) -> OperationResult:
    """Block until pending changes have been propagated."""
    return _execute(["sync", "flush", session_name(project)])


def pause_sync(project: str) -> OperationResult:
    return _execute(["sync", "pause", session_name(project)])


def resume_sync(project: str) -> OperationResult:
    return _execute(["sync", "resume", session_name(project)])


def terminate_sync(project: str) -> OperationResult:
    return _execute(["sync", "terminate", session_name(project)])
