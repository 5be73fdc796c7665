"""Push command: publish a local directory as a tandem project."""

import shutil
from pathlib import Path

import typer

from ..config import ProjectConfig, get_projects_dir, save_config
from ..core import ProjectError, get_project_path
from ..output import get_output_context
from ..services import (
    create_sync_session,
    delete_remote_dir,
    flush_sync,
    make_remote_dir,
    remote_project_exists,
)
from .common import (
    EXIT_FAILURE,
    build_state_store,
    describe_owner,
    double_confirm,
    get_executor,
    require_config,
    require_remote,
)


def push(
    path: Path = typer.Argument(..., help="Directory to push"),
    name: str | None = typer.Argument(None, help="Project name (defaults to the directory name)"),
    remote_name: str | None = typer.Option(None, "--remote", "-r", help="Remote to push to"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing remote copy without asking"
    ),
) -> None:
    """Copy a directory into tandem, upload it and start syncing."""
    ctx = get_output_context()
    config = require_config(ctx)

    source = path.expanduser().resolve()
    if not source.is_dir():
        ctx.error(f"Path '{path}' not found.")
        raise typer.Exit(EXIT_FAILURE)

    project = name or source.name
    try:
        local_path = get_project_path(project)
    except ProjectError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None

    remote = require_remote(ctx, config, project, remote_name)
    host = remote.host_spec
    remote_path = remote.project_path(project)
    executor = get_executor()
    store = build_state_store(config, remote)

    ctx.print(f"Pushing '{project}' to {host}:{remote_path}...")

    auth = store.check_write_authorization(host, remote_path)
    if not auth.authorized:
        message = auth.error or "Not authorized to push"
        if auth.owner_info is not None:
            message = f"Cannot push: project is owned by {describe_owner(auth.owner_info)}"
        ctx.error(message)
        raise typer.Exit(EXIT_FAILURE)

    exists = remote_project_exists(executor, host, remote_path, remote.key)

    if ctx.dry_run:
        if exists:
            ctx.dry(f"Would overwrite existing remote copy at {remote_path}")
        ctx.dry(f"Would create {host}:{remote_path}")
        if source != local_path:
            ctx.dry(f"Would copy {source} to {local_path}")
        ctx.dry("Would start sync and register the project")
        return

    if exists:
        ctx.warn("Project already exists on remote")
        if not force:
            double_confirm(
                ctx,
                "Project already exists on remote. Overwrite?",
                "Are you sure? All remote changes will be lost.",
                "Push cancelled.",
            )
        deleted = delete_remote_dir(executor, host, remote_path, remote.key)
        if not deleted.success:
            ctx.error(f"Failed to remove existing remote copy: {deleted.error}")
            raise typer.Exit(EXIT_FAILURE)

    created = make_remote_dir(executor, host, remote_path, remote.key)
    if not created.success:
        ctx.error(f"Failed to create remote directory: {created.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)

    if source != local_path:
        if local_path.exists():
            shutil.rmtree(local_path)
        get_projects_dir().mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, local_path, symlinks=True)
        ctx.print(f"Copied to {local_path}")

    synced = create_sync_session(
        project,
        str(local_path),
        host,
        remote_path,
        config.defaults.ignore,
        config.defaults.sync_mode,
    )
    if not synced.success:
        ctx.error(f"Failed to create sync session: {synced.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)

    flushed = flush_sync(project)
    if not flushed.success:
        ctx.error(f"Initial sync failed: {flushed.error or 'unknown error'}")
        raise typer.Exit(EXIT_FAILURE)

    if auth.owner_info is None:
        owned = store.set_ownership(host, remote_path)
        if not owned.success:
            ctx.warn(f"Could not record ownership: {owned.error}")

    selected = remote_name or next(
        (key for key, value in config.remotes.items() if value == remote), None
    )
    if selected is not None and project not in config.projects:
        config.projects[project] = ProjectConfig(remote=selected)
        save_config(config)

    ctx.success(
        f"'{project}' pushed. Run 'tandem start {project}' to start working.",
        data={"project": project, "remote": host, "path": remote_path},
    )
