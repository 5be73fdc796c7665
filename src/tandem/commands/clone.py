"""Clone command: fetch an existing remote project onto this machine."""

import shutil

import typer

from ..config import ProjectConfig, save_config
from ..core import ProjectError, get_project_path
from ..output import get_output_context
from ..services import (
    create_sync_session,
    flush_sync,
    get_sync_status,
    remote_archive_exists,
    remote_project_exists,
    terminate_sync,
)
from .common import (
    EXIT_FAILURE,
    double_confirm,
    get_executor,
    require_config,
    require_remote,
)


def clone(
    project: str = typer.Argument(..., help="Project to clone"),
    remote_name: str | None = typer.Option(None, "--remote", "-r", help="Remote to clone from"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Replace an existing local copy without asking"
    ),
) -> None:
    """Download a project from a remote and start syncing it."""
    ctx = get_output_context()
    config = require_config(ctx)

    try:
        local_path = get_project_path(project)
    except ProjectError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None

    remote = require_remote(ctx, config, project, remote_name)
    host = remote.host_spec
    remote_path = remote.project_path(project)
    executor = get_executor()

    ctx.print(f"Cloning '{project}' from {host}:{remote_path}...")
    if not remote_project_exists(executor, host, remote_path, remote.key):
        ctx.error(f"Project '{project}' not found on {host}.")
        raise typer.Exit(EXIT_FAILURE)

    if ctx.dry_run:
        if local_path.exists():
            ctx.dry(f"Would replace the local copy at {local_path}")
        ctx.dry(f"Would download {host}:{remote_path} to {local_path}")
        ctx.dry("Would start sync and register the project")
        return

    if local_path.exists():
        if not force:
            double_confirm(
                ctx,
                "Project already exists locally. Overwrite?",
                "Are you sure? All local changes will be lost.",
                "Clone cancelled.",
            )
        shutil.rmtree(local_path)
    local_path.mkdir(parents=True)

    # A session left from an earlier copy would sync the wrong directory
    if get_sync_status(project).exists:
        ctx.print("Removing old sync session...")
        terminated = terminate_sync(project)
        if not terminated.success:
            ctx.error(f"Could not remove old sync session: {terminated.error}")
            raise typer.Exit(EXIT_FAILURE)

    synced = create_sync_session(
        project,
        str(local_path),
        host,
        remote_path,
        config.defaults.ignore,
        config.defaults.sync_mode,
    )
    if not synced.success:
        shutil.rmtree(local_path, ignore_errors=True)
        ctx.error(f"Failed to create sync session: {synced.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)

    flushed = flush_sync(project)
    if not flushed.success:
        terminate_sync(project)
        shutil.rmtree(local_path, ignore_errors=True)
        ctx.error(f"Initial sync failed: {flushed.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)

    selected = remote_name or next(
        (key for key, value in config.remotes.items() if value == remote), None
    )
    if selected is not None and project not in config.projects:
        config.projects[project] = ProjectConfig(remote=selected)
        save_config(config)

    encrypted = remote_archive_exists(executor, host, remote_path, project, remote.key)
    if encrypted:
        ctx.info(f"'{project}' is encrypted on the remote.")
        ctx.info("'tandem start' will ask for the passphrase to decrypt it.")

    ctx.success(
        f"'{project}' cloned to {local_path}. Run 'tandem start {project}' to start working.",
        data={"project": project, "path": str(local_path), "encrypted": encrypted},
    )
