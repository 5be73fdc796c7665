"""Init command implementation."""

import subprocess

import typer

from ..config import config_exists, config_path, get_projects_dir, write_config_template
from ..constants import INIT_TOOL_CHECK_TIMEOUT
from ..output import OutputContext, PromptRefused, get_output_context
from ..services import check_connection
from ..services.validation import InvalidInputError, validate_remote_path, validate_ssh_host
from .common import EXIT_FAILURE


def _ask(ctx: OutputContext, value: str | None, message: str) -> str:
    if value:
        return value
    try:
        return ctx.prompt(message)
    except PromptRefused:
        ctx.error(f"Missing value for '{message}' and --no-prompt is set.")
        raise typer.Exit(EXIT_FAILURE) from None


def init(
    host: str | None = typer.Option(
        None, "--host", help="SSH host (or ssh config alias) of the remote"
    ),
    path: str | None = typer.Option(
        None, "--path", help="Directory on the remote holding projects"
    ),
    user: str | None = typer.Option(None, "--user", help="SSH user, if not part of the host"),
    name: str = typer.Option("main", "--name", help="Name for the remote entry"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
    skip_checks: bool = typer.Option(False, "--skip-checks", help="Do not test SSH or local tools"),
) -> None:
    """Configure tandem with a remote host."""
    ctx = get_output_context()
    target = config_path()

    if config_exists() and not force:
        ctx.console.print(f"[yellow]Config already exists:[/yellow] {target}")
        ctx.console.print("Use --force to overwrite it.")
        return

    host = _ask(ctx, host, "Remote SSH host")
    path = _ask(ctx, path, "Remote projects directory")
    try:
        validate_ssh_host(host)
        validate_remote_path(path)
    except InvalidInputError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None

    if ctx.dry_run:
        ctx.dry(f"Would create config: {target}")
        ctx.dry(f"Would create directory: {get_projects_dir()}")
        if not skip_checks:
            ctx.dry(f"Would check SSH access to {host} and local tools")
        return

    write_config_template(name, host, path, user=user)
    get_projects_dir().mkdir(parents=True, exist_ok=True)
    ctx.console.print(f"[green]Created config:[/green] {target}")

    if skip_checks:
        return

    all_ok = True
    host_spec = f"{user}@{host}" if user else host
    connection = check_connection(host_spec)
    if connection.success:
        ctx.console.print(f"[green]✓[/green] ssh {host_spec}")
    else:
        ctx.console.print(f"[red]✗[/red] ssh {host_spec}: {connection.error}")
        all_ok = False

    tools = {
        "mutagen": ["mutagen", "version"],
        "docker": ["docker", "--version"],
        "devcontainer": ["devcontainer", "--version"],
    }
    for tool, cmd in tools.items():
        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, timeout=INIT_TOOL_CHECK_TIMEOUT
            )
            if result.returncode == 0:
                ctx.console.print(f"[green]✓[/green] {tool}")
            else:
                ctx.console.print(f"[red]✗[/red] {tool}: {result.stderr.strip()[:50]}")
                all_ok = False
        except FileNotFoundError:
            ctx.console.print(f"[red]✗[/red] {tool}: not found in PATH")
            all_ok = False
        except subprocess.TimeoutExpired:
            ctx.console.print(f"[yellow]?[/yellow] {tool}: timed out")

    if not all_ok:
        ctx.console.print("\n[yellow]Warning: Some checks failed[/yellow]")
        raise typer.Exit(2)

    ctx.console.print("\n[bold green]tandem initialized successfully![/bold green]")
