"""Shell command: enter a project's running container."""

import typer

from ..constants import WORKSPACE_PATH_PREFIX
from ..output import get_output_context
from ..services import (
    ContainerStatus,
    exec_in_container,
    get_container_id,
    get_container_status,
    get_workspace_folder,
)
from .common import (
    EXIT_FAILURE,
    build_state_store,
    describe_session,
    require_config,
    require_local_project,
    resolve_project,
)

# Exit status of a shell left with Ctrl+C
SIGINT_EXIT = 130


def shell(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
    force: bool = typer.Option(
        False, "--force", "-f", help="Ignore another machine's active session"
    ),
    command: str | None = typer.Option(
        None, "--command", "-c", help="Run a command instead of a shell"
    ),
) -> None:
    """Open a shell inside the project's dev container."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project:")
    project_path = require_local_project(ctx, project)

    if not force:
        store = build_state_store(config)
        conflict = store.check_session_conflict(project_path)
        if conflict.has_conflict and conflict.existing_session is not None:
            ctx.error(
                f"Project '{project}' has an active session on "
                f"{describe_session(conflict.existing_session)}.",
                data={"session": conflict.existing_session.model_dump()},
            )
            ctx.print("Use --force to bypass the session check.")
            raise typer.Exit(EXIT_FAILURE)
        if store.read_session(project_path) is None:
            ctx.warn(
                f"No active session. Run 'tandem start {project}' first "
                "to avoid sync conflicts across machines."
            )

    if get_container_status(project_path) is not ContainerStatus.RUNNING:
        ctx.error(f"Container is not running. Run 'tandem start {project}' first.")
        raise typer.Exit(EXIT_FAILURE)

    container_id = get_container_id(project_path)
    if container_id is None:
        ctx.error("Failed to find the container.")
        raise typer.Exit(EXIT_FAILURE)

    workdir = get_workspace_folder(project_path) or f"{WORKSPACE_PATH_PREFIX}/{project}"

    if ctx.dry_run:
        what = f"`{command}`" if command else "a shell"
        ctx.dry(f"Would run {what} in {container_id[:12]} at {workdir}")
        return

    if command is None:
        ctx.info("Attaching to shell (Ctrl+D to exit)...")
    code = exec_in_container(container_id, workdir, command)
    if code in (0, SIGINT_EXIT) and command is None:
        return
    if code != 0:
        raise typer.Exit(code)
