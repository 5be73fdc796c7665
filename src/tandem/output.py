"""Output formatting and prompting for tandem CLI."""

import json
from dataclasses import dataclass
from typing import Any

import typer
from rich.console import Console


class PromptRefused(Exception):
    """A prompt was required but the CLI runs non-interactively."""


@dataclass
class OutputContext:
    """Context for output formatting and user interaction."""

    console: Console
    json_mode: bool = False
    dry_run: bool = False
    no_prompt: bool = False

    def print(self, message: str, style: str | None = None) -> None:
        """Print message respecting output mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        """Print JSON data."""
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Print result in appropriate format."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {message}[/red]")

    def warn(self, message: str) -> None:
        """Print a warning (suppressed in json mode)."""
        self.print(f"[yellow]Warning: {message}[/yellow]")

    def info(self, message: str) -> None:
        self.print(f"[dim]{message}[/dim]")

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print success message in appropriate format."""
        if self.json_mode:
            self.print_json({"success": message, **(data or {})})
        else:
            self.console.print(f"[green]{message}[/green]")

    def dry(self, message: str) -> None:
        self.print(f"[cyan][DRY RUN][/cyan] {message}")

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question.

        Raises:
            PromptRefused: If running with --no-prompt; callers treat this as
                an immediate failure rather than assuming an answer.
        """
        if self.no_prompt:
            raise PromptRefused(message)
        return typer.confirm(message, default=default)

    def prompt(self, message: str, hide_input: bool = False, confirmation: bool = False) -> str:
        """Ask for a free-form value, refusing when non-interactive."""
        if self.no_prompt:
            raise PromptRefused(message)
        return typer.prompt(message, hide_input=hide_input, confirmation_prompt=confirmation)


# Global output context (set by cli.py main callback)
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Get the current output context.

    Returns a default OutputContext if not yet initialized by CLI.
    """
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    """Set the global output context. Called by CLI main callback."""
    global _ctx
    _ctx = ctx
