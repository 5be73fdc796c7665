"""Dev container runtime: status, start and stop via docker/devcontainer CLIs."""

import json
import logging
import subprocess
from enum import Enum
from pathlib import Path

from ..constants import DEVCONTAINER_LABEL, DEVCONTAINER_TIMEOUT, DOCKER_TIMEOUT
from ..models import OperationResult

logger = logging.getLogger(__name__)


class ContainerStatus(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    NOT_FOUND = "not_found"
    ERROR = "error"


def _label_filter(project_path: Path) -> str:
    return f"label={DEVCONTAINER_LABEL}={project_path}"


def _docker(args: list[str]) -> subprocess.CompletedProcess[str]:
    logger.debug("docker %s", " ".join(args))
    return subprocess.run(
        ["docker", *args],
        capture_output=True,
        text=True,
        timeout=DOCKER_TIMEOUT,
    )


def get_container_id(project_path: Path, include_stopped: bool = False) -> str | None:
    args = ["ps", "-q", "--filter", _label_filter(project_path)]
    if include_stopped:
        args.insert(1, "-a")
    try:
        result = _docker(args)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    container_id = result.stdout.strip().splitlines()
    return container_id[0] if result.returncode == 0 and container_id else None


def get_container_status(project_path: Path) -> ContainerStatus:
    try:
        result = _docker(
            ["ps", "-a", "--filter", _label_filter(project_path), "--format", "{{.Status}}"]
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return ContainerStatus.ERROR
    if result.returncode != 0:
        return ContainerStatus.ERROR
    status = result.stdout.strip()
    if not status:
        return ContainerStatus.NOT_FOUND
    if status.lower().startswith("up"):
        return ContainerStatus.RUNNING
    return ContainerStatus.STOPPED


def start_container(project_path: Path, rebuild: bool = False) -> OperationResult:
    """Start (or create) the devcontainer for a project."""
    args = ["devcontainer", "up", "--workspace-folder", str(project_path)]
    if rebuild:
        args.append("--remove-existing-container")
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=DEVCONTAINER_TIMEOUT)
    except FileNotFoundError:
        return OperationResult(success=False, error="devcontainer CLI not found in PATH")
    except subprocess.TimeoutExpired:
        return OperationResult(success=False, error="devcontainer up timed out")
    if result.returncode != 0:
        return OperationResult(success=False, error=result.stderr.strip() or result.stdout.strip())
    return OperationResult(success=True)


def stop_container(project_path: Path) -> OperationResult:
    container_id = get_container_id(project_path)
    if container_id is None:
        return OperationResult(success=True)
    try:
        result = _docker(["stop", container_id])
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        return OperationResult(success=False, error=str(e))
    if result.returncode != 0:
        return OperationResult(success=False, error=result.stderr.strip())
    return OperationResult(success=True)


def remove_container(project_path: Path) -> OperationResult:
    """Stop and remove the project's container along with its volumes."""
    container_id = get_container_id(project_path, include_stopped=True)
    if container_id is None:
        return OperationResult(success=True)
    try:
        result = _docker(["rm", "-f", "-v", container_id])
    except (FileNotFoundError, subprocess.TimeoutExpired) as e:
        return OperationResult(success=False, error=str(e))
    if result.returncode != 0:
        return OperationResult(success=False, error=result.stderr.strip())
    return OperationResult(success=True)


def get_workspace_folder(project_path: Path) -> str | None:
    """Read ``workspaceFolder`` from the project's devcontainer.json, if any."""
    for candidate in (
        project_path / ".devcontainer" / "devcontainer.json",
        project_path / ".devcontainer.json",
    ):
        if candidate.exists():
            try:
                data = json.loads(candidate.read_text())
            except (OSError, json.JSONDecodeError):
                return None
            folder = data.get("workspaceFolder") if isinstance(data, dict) else None
            return folder if isinstance(folder, str) else None
    return None


def exec_in_container(container_id: str, workdir: str, command: str | None = None) -> int:
    """Run a command (or an interactive shell) in the container.

    Stdio is inherited from the caller. Returns the process exit code.
    """
    if command is None:
        args = ["docker", "exec", "-it", "-w", workdir, container_id, "/bin/sh"]
    else:
        args = ["docker", "exec", "-w", workdir, container_id, "/bin/sh", "-c", command]
    try:
        return subprocess.run(args, check=False).returncode
    except FileNotFoundError:
        logger.error("docker not found in PATH")
        return 127
