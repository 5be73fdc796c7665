"""tandem CLI: local-first dev containers shared across machines."""

import typer

from tandem import __version__

from .commands import (
    clone,
    encrypt_app,
    init,
    locks,
    push,
    remove,
    shell,
    start,
    status,
    stop,
)
from .config import get_tandem_home
from .logging import configure_logging
from .output import OutputContext, set_output_context

AUDIT_LOG = "logs/audit.log"


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tandem {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="tandem",
    help="Local-first dev containers with remote sync and cross-machine locking",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    no_prompt: bool = typer.Option(
        False,
        "--no-prompt",
        help="Never prompt; fail where a confirmation would be needed",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would happen without changing anything",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug logging with timestamps",
    ),
) -> None:
    """tandem - work on the same project from several machines."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
        debug=debug,
        audit_log=get_tandem_home() / AUDIT_LOG,
    )
    set_output_context(
        OutputContext(
            console=console,
            json_mode=json_output,
            dry_run=dry_run,
            no_prompt=no_prompt,
        )
    )


app.command()(init)
app.command()(push)
app.command()(clone)
app.command()(start)
app.command()(stop)
app.command()(shell)
app.command()(status)
app.command()(locks)
app.command("remove")(remove)
app.command("rm", hidden=True)(remove)
app.add_typer(encrypt_app, name="encrypt")


if __name__ == "__main__":
    app()
