"""Stop command: flush, stop the container, end the session, release the lock."""

import typer

from ..output import get_output_context
from ..services import ContainerStatus, flush_sync, get_container_status, pause_sync, stop_container
from .common import (
    EXIT_FAILURE,
    build_lock,
    build_state_store,
    find_remote,
    release_lock,
    require_config,
    require_local_project,
    resolve_project,
)
from .encrypt import encrypt_on_remote


def stop(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Continue even if the container fails to stop"
    ),
    pause: bool = typer.Option(False, "--pause-sync", help="Pause background sync afterwards"),
    keep_lock: bool = typer.Option(False, "--keep-lock", help="Do not release the project lock"),
) -> None:
    """Stop a project's container and release it for other machines."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project to stop:")
    project_path = require_local_project(ctx, project)
    remote = find_remote(ctx, config, project)
    project_cfg = config.projects.get(project)
    encrypt = bool(remote and project_cfg and project_cfg.encryption.enabled)

    if encrypt and ctx.no_prompt:
        ctx.error(f"'{project}' is encrypted at rest and needs a passphrase; --no-prompt is set.")
        raise typer.Exit(EXIT_FAILURE)
    if encrypt and not project_cfg.encryption.salt:
        ctx.error("Encryption enabled but no salt in config. Disable and re-enable encryption.")
        raise typer.Exit(EXIT_FAILURE)

    if ctx.dry_run:
        ctx.dry(f"Would flush pending sync for '{project}'")
        ctx.dry(f"Would stop container at {project_path}")
        if encrypt:
            ctx.dry("Would pause sync and encrypt project on remote")
        ctx.dry(f"Would end session in {project_path}")
        if remote and not keep_lock:
            ctx.dry(f"Would release lock on {remote.host_spec} if held by this machine")
        return

    status = get_container_status(project_path)
    if status is ContainerStatus.NOT_FOUND:
        ctx.print("No container found for this project")
    else:
        flushed = flush_sync(project)
        if not flushed.success:
            ctx.warn(f"Could not flush sync: {flushed.error}")
        if status is ContainerStatus.RUNNING:
            stopped = stop_container(project_path)
            if not stopped.success:
                ctx.error(f"Failed to stop container: {stopped.error}")
                if not force:
                    raise typer.Exit(EXIT_FAILURE)
            else:
                ctx.print("Container stopped")
        else:
            ctx.print("Container already stopped")

    paused_for_encryption = False
    if encrypt:
        # Deleting the remote plaintext must not reach the local copy
        paused = pause_sync(project)
        if not paused.success:
            ctx.warn(f"Could not pause sync: {paused.error}; skipping encryption")
        else:
            paused_for_encryption = True
            if not encrypt_on_remote(ctx, project, remote, project_cfg.encryption.salt):
                ctx.warn("Encryption failed; project files remain unencrypted on remote")

    try:
        build_state_store(config, remote).delete_session(project_path)
    except OSError as e:
        ctx.warn(f"Could not end session: {e}")
    else:
        ctx.print("Session ended")

    if remote and not keep_lock:
        release_lock(ctx, build_lock(config, remote), project)

    if pause and not paused_for_encryption:
        paused = pause_sync(project)
        if not paused.success:
            ctx.warn(f"Could not pause sync: {paused.error}")

    ctx.success(f"'{project}' stopped.", data={"project": project})
