"""Status command: coordination overview for a project."""

import typer

from ..output import get_output_context
from ..services import get_container_status, get_sync_status
from .common import (
    build_lock,
    build_state_store,
    describe_lock,
    describe_owner,
    describe_session,
    find_remote,
    require_config,
    require_local_project,
    resolve_project,
)


def status(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
) -> None:
    """Show lock, ownership, session, sync and container state."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project:")
    project_path = require_local_project(ctx, project)
    remote = find_remote(ctx, config, project)
    store = build_state_store(config, remote)

    session_result = store.read_session_result(project_path)
    session = session_result.or_none()
    lock_status = build_lock(config, remote).status(project) if remote else None
    ownership = None
    if remote:
        ownership = store.get_ownership_status(remote.host_spec, remote.project_path(project))
    sync = get_sync_status(project)
    container = get_container_status(project_path)

    if ctx.json_mode:
        ctx.print_json(
            {
                "project": project,
                "path": str(project_path),
                "lock": lock_status.model_dump(mode="json") if lock_status else None,
                "ownership": ownership.model_dump(mode="json") if ownership else None,
                "session": {
                    "state": session_result.state.value,
                    "reason": session_result.reason,
                    "info": session.model_dump() if session else None,
                },
                "sync": {"exists": sync.exists, "paused": sync.paused},
                "container": container.value,
            }
        )
        return

    ctx.console.print(f"\n[bold]Project:[/bold] {project}")
    ctx.console.print(f"[bold]Path:[/bold] {project_path}")
    if remote:
        location = f"{remote.host_spec}:{remote.project_path(project)}"
        ctx.console.print(f"[bold]Remote:[/bold] {location}")

    if lock_status is None:
        ctx.console.print("[bold]Lock:[/bold] [dim]no remote[/dim]")
    elif lock_status.error:
        ctx.console.print(f"[bold]Lock:[/bold] [red]unknown ({lock_status.error})[/red]")
    elif lock_status.corrupt:
        ctx.console.print("[bold]Lock:[/bold] [red]corrupt record (treated as unlocked)[/red]")
    elif lock_status.info is None:
        ctx.console.print("[bold]Lock:[/bold] unlocked")
    elif lock_status.owned_by_me:
        holder = describe_lock(lock_status.info)
        ctx.console.print(f"[bold]Lock:[/bold] [green]held by this machine[/green] ({holder})")
    else:
        ctx.console.print(f"[bold]Lock:[/bold] [yellow]{describe_lock(lock_status.info)}[/yellow]")

    if ownership is not None:
        if ownership.error:
            ctx.console.print(f"[bold]Owner:[/bold] [red]unknown ({ownership.error})[/red]")
        elif ownership.info is None:
            ctx.console.print("[bold]Owner:[/bold] none recorded")
        else:
            mine = " [green](you)[/green]" if ownership.is_owner else ""
            ctx.console.print(f"[bold]Owner:[/bold] {describe_owner(ownership.info)}{mine}")

    if session is not None:
        ctx.console.print(f"[bold]Session:[/bold] {describe_session(session)}")
    elif session_result.reason:
        ctx.console.print(f"[bold]Session:[/bold] none ({session_result.reason})")
    else:
        ctx.console.print("[bold]Session:[/bold] none")

    if not sync.exists:
        sync_text = "not set up"
    elif sync.paused:
        sync_text = "paused"
    else:
        sync_text = "active"
    ctx.console.print(f"[bold]Sync:[/bold] {sync_text}")
    ctx.console.print(f"[bold]Container:[/bold] {container.value}")
