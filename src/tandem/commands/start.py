"""Start command: take the project lock, then bring up sync and the container."""

from pathlib import Path

import typer

from ..config import RemoteConfig, TandemConfig
from ..core import RemoteLock
from ..models import LockInfo
from ..output import OutputContext, PromptRefused, get_output_context
from ..services import (
    ContainerStatus,
    create_sync_session,
    get_container_status,
    get_sync_status,
    resume_sync,
    start_container,
)
from .common import (
    EXIT_FAILURE,
    build_lock,
    build_state_store,
    describe_lock,
    require_config,
    require_local_project,
    require_remote,
    resolve_project,
)
from .encrypt import decrypt_on_remote


def _takeover(
    ctx: OutputContext, lock: RemoteLock, project: str, holder: LockInfo, forced: bool
) -> None:
    """Resolve a lock held by another machine: abort, or release and re-acquire."""
    ctx.error(
        f"Project '{project}' is locked by {describe_lock(holder)}",
        data={"project": project, "holder": holder.model_dump(mode="json")},
    )
    if not forced:
        try:
            confirmed = ctx.confirm(f"Take over the lock from {holder.machine}?", default=False)
        except PromptRefused:
            ctx.print("Re-run with --takeover to take the lock over non-interactively.")
            raise typer.Exit(EXIT_FAILURE) from None
        if not confirmed:
            ctx.print("Start aborted. The lock is still held by the other machine.")
            raise typer.Exit(EXIT_FAILURE)

    result = lock.force_acquire(project)
    if not result.success:
        ctx.error(result.error or "Failed to take over lock")
        raise typer.Exit(EXIT_FAILURE)
    ctx.print(f"[yellow]Lock taken over from {holder.machine}[/yellow]")


def _ensure_sync(
    ctx: OutputContext,
    config: TandemConfig,
    remote: RemoteConfig,
    project: str,
    project_path: Path,
) -> None:
    status = get_sync_status(project)
    if not status.exists:
        ctx.print("Creating sync session...")
        result = create_sync_session(
            project,
            str(project_path),
            remote.host_spec,
            remote.project_path(project),
            config.defaults.ignore,
            config.defaults.sync_mode,
        )
    elif status.paused:
        ctx.print("Resuming sync...")
        result = resume_sync(project)
    else:
        ctx.print("Sync is active")
        return
    if not result.success:
        ctx.error(f"Sync failed: {result.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)


def _ensure_container(ctx: OutputContext, project_path: Path, rebuild: bool) -> None:
    if get_container_status(project_path) is ContainerStatus.RUNNING and not rebuild:
        ctx.print("Container already running")
        return
    ctx.print("Starting container...")
    result = start_container(project_path, rebuild=rebuild)
    if not result.success and not rebuild:
        ctx.print("[yellow]Container failed to start, retrying with a rebuild...[/yellow]")
        result = start_container(project_path, rebuild=True)
    if not result.success:
        ctx.error(f"Container failed to start: {result.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)


def start(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
    takeover: bool = typer.Option(
        False, "--takeover", help="Take the lock over from another machine without asking"
    ),
    rebuild: bool = typer.Option(False, "--rebuild", help="Rebuild the container"),
) -> None:
    """Lock a project for this machine and start its sync and container."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project to start:")
    project_path = require_local_project(ctx, project)
    remote = require_remote(ctx, config, project)

    if ctx.dry_run:
        ctx.dry(f"Would acquire lock for '{project}' on {remote.host_spec}")
        ctx.dry(f"Would decrypt the remote copy of '{project}' if it is archived")
        location = f"{remote.host_spec}:{remote.project_path(project)}"
        ctx.dry(f"Would ensure sync {project_path} <-> {location}")
        ctx.dry(f"Would start container at {project_path}")
        ctx.dry("Would record a session for this machine")
        return

    lock = build_lock(config, remote)
    result = lock.acquire(project)
    if not result.success:
        if result.existing_lock is None:
            ctx.error(f"Could not acquire lock: {result.error or 'unknown error'}")
            raise typer.Exit(EXIT_FAILURE)
        _takeover(ctx, lock, project, result.existing_lock, takeover)
    else:
        ctx.print(f"Lock acquired on {remote.host_spec}")

    try:
        decrypt_on_remote(ctx, config, project, remote)
    except typer.Exit:
        # Nothing was started, so the lock goes back
        lock.release(project)
        raise

    _ensure_sync(ctx, config, remote, project, project_path)
    _ensure_container(ctx, project_path, rebuild)

    session = build_state_store(config, remote).write_session(project_path)
    ctx.success(
        f"'{project}' is running on {session.machine}",
        data={"project": project, "machine": session.machine, "expires": session.expires},
    )
