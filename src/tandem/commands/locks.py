"""Locks command: list project locks on a remote."""

import typer
from rich.table import Table

from ..output import get_output_context
from .common import EXIT_FAILURE, build_lock, require_config


def locks(
    remote_name: str | None = typer.Option(None, "--remote", "-r", help="Remote to inspect"),
) -> None:
    """Show which machine holds each project lock."""
    ctx = get_output_context()
    config = require_config(ctx)

    if remote_name:
        names = [remote_name]
    else:
        names = list(config.remotes)
    if not names:
        ctx.error("No remotes configured.")
        raise typer.Exit(EXIT_FAILURE)

    rows: list[dict[str, str | bool | None]] = []
    failures: list[dict[str, str]] = []
    for name in names:
        remote = config.remotes.get(name)
        if remote is None:
            ctx.error(f"Remote '{name}' is not configured")
            raise typer.Exit(EXIT_FAILURE)
        listing = build_lock(config, remote).list_locks()
        if listing.error:
            ctx.warn(f"Could not list locks on {name}: {listing.error}")
            failures.append({"remote": name, "error": listing.error})
            continue
        statuses = listing.value or {}
        # Locked projects first, then alphabetical
        ordered = sorted(statuses.items(), key=lambda item: (not item[1].locked, item[0]))
        for project, status in ordered:
            info = status.info
            rows.append(
                {
                    "remote": name,
                    "project": project,
                    "locked": status.locked,
                    "corrupt": status.corrupt,
                    "owned_by_me": status.owned_by_me,
                    "machine": info.machine if info else None,
                    "user": info.user if info else None,
                    "since": info.timestamp.isoformat() if info else None,
                }
            )

    if ctx.json_mode:
        ctx.print_json({"locks": rows, "errors": failures})
        if failures:
            raise typer.Exit(EXIT_FAILURE)
        return

    if not rows:
        if failures:
            raise typer.Exit(EXIT_FAILURE)
        ctx.print("No locks found.")
        return

    table = Table(title="Project locks")
    table.add_column("Project", style="bold")
    table.add_column("Remote")
    table.add_column("Holder")
    table.add_column("Since")
    for row in rows:
        if row["corrupt"]:
            holder = "[red]corrupt record[/red]"
        elif row["owned_by_me"]:
            holder = f"[green]{row['machine']} (this machine)[/green]"
        else:
            holder = f"[yellow]{row['machine']} ({row['user']})[/yellow]"
        table.add_row(str(row["project"]), str(row["remote"]), holder, str(row["since"] or "-"))
    ctx.console.print(table)
    if failures:
        raise typer.Exit(EXIT_FAILURE)
