"""Remove command: delete a project locally, and optionally from the remote."""

import shutil

import typer

from ..config import save_config
from ..output import get_output_context
from ..services import delete_remote_dir, remove_container, terminate_sync
from .common import (
    EXIT_FAILURE,
    build_lock,
    build_state_store,
    confirm_or_exit,
    describe_owner,
    double_confirm,
    find_remote,
    get_executor,
    release_lock,
    require_config,
    require_local_project,
    require_remote,
)


def remove(
    project: str = typer.Argument(..., help="Project to remove"),
    remote_too: bool = typer.Option(
        False, "--remote", help="Also delete the project from the remote (owner only)"
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation prompts"),
) -> None:
    """Remove a project's local copy, container and sync session."""
    ctx = get_output_context()
    config = require_config(ctx)
    project_path = require_local_project(ctx, project)

    if remote_too:
        remote = require_remote(ctx, config, project)
        remote_path = remote.project_path(project)
        store = build_state_store(config, remote)
        auth = store.check_write_authorization(remote.host_spec, remote_path)
        if not auth.authorized:
            if auth.owner_info is not None:
                owner = describe_owner(auth.owner_info)
                ctx.error(f"Cannot delete remote copy: project is owned by {owner}")
            else:
                ctx.error(auth.error or "Not authorized to delete the remote copy")
            raise typer.Exit(EXIT_FAILURE)
    else:
        remote = find_remote(ctx, config, project)

    if ctx.dry_run:
        ctx.dry(f"Would remove container and sync session for '{project}'")
        ctx.dry(f"Would delete {project_path}")
        if remote_too and remote is not None:
            ctx.dry(f"Would delete {remote.host_spec}:{remote.project_path(project)}")
        return

    if not force:
        if remote_too:
            double_confirm(
                ctx,
                f"Delete '{project}' locally AND on the remote?",
                "This cannot be undone. Are you absolutely sure?",
                "Removal cancelled.",
            )
        else:
            confirm_or_exit(
                ctx,
                f"Remove project '{project}' locally? This will NOT delete remote files.",
                "Removal cancelled.",
            )

    if remote is not None:
        # A lock on a project deleted everywhere would never be released
        release_lock(ctx, build_lock(config, remote), project, release_any=remote_too)

    removed = remove_container(project_path)
    if not removed.success:
        ctx.error(f"Failed to remove container: {removed.error}")
        if not force:
            raise typer.Exit(EXIT_FAILURE)

    if not terminate_sync(project).success:
        ctx.info("No sync session found or already terminated")

    try:
        shutil.rmtree(project_path)
    except OSError as e:
        ctx.error(f"Failed to remove local files: {e}")
        raise typer.Exit(EXIT_FAILURE) from None

    if remote_too and remote is not None:
        deleted = delete_remote_dir(
            get_executor(), remote.host_spec, remote.project_path(project), remote.key
        )
        if not deleted.success:
            ctx.error(f"Failed to delete remote copy: {deleted.error}")
            raise typer.Exit(EXIT_FAILURE)

    if project in config.projects:
        del config.projects[project]
        save_config(config)

    where = "locally and on the remote" if remote_too else "locally. Remote copy preserved"
    ctx.success(
        f"Project '{project}' removed {where}.",
        data={"project": project, "remote": remote_too},
    )
