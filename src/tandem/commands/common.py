"""Helpers shared by the lifecycle commands."""

from datetime import timedelta
from pathlib import Path

import typer
from simple_term_menu import TerminalMenu

from ..config import ConfigError, RemoteConfig, TandemConfig, config_exists, load_config
from ..core import (
    LocalStateStore,
    ProjectError,
    RemoteLock,
    get_local_projects,
    get_project_path,
    resolve_project_from_cwd,
)
from ..models import Identity, LockInfo, OwnershipInfo, SessionInfo
from ..output import OutputContext, PromptRefused
from ..services import RemoteExecutor, SSHExecutor

EXIT_FAILURE = 1
EXIT_NOT_CONFIGURED = 2


def get_executor() -> RemoteExecutor:
    """Remote execution primitive used by all commands."""
    return SSHExecutor()


def get_identity(config: TandemConfig) -> Identity:
    return Identity.current(machine=config.identity.machine, user=config.identity.user)


def require_config(ctx: OutputContext) -> TandemConfig:
    """Load configuration or exit with the not-configured code."""
    if not config_exists():
        ctx.error("tandem not configured. Run 'tandem init' first.")
        raise typer.Exit(EXIT_NOT_CONFIGURED)
    try:
        return load_config()
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_NOT_CONFIGURED) from None


def require_remote(
    ctx: OutputContext, config: TandemConfig, project: str, name: str | None = None
) -> RemoteConfig:
    """Resolve the remote for a project, or an explicitly named one."""
    try:
        remote = config.get_remote(name) if name else config.remote_for_project(project)
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None
    if remote is None:
        ctx.error(f"No remote configured for '{project}'. Use --remote to choose one.")
        raise typer.Exit(EXIT_FAILURE)
    return remote


def find_remote(ctx: OutputContext, config: TandemConfig, project: str) -> RemoteConfig | None:
    """Like require_remote, but a missing remote only warns."""
    try:
        remote = config.remote_for_project(project)
    except ConfigError as e:
        ctx.warn(str(e))
        return None
    if remote is None:
        ctx.warn(f"No remote configured for '{project}'; skipping remote steps")
    return remote


def select_project(ctx: OutputContext, title: str) -> str:
    """Pick a local project from a menu."""
    projects = get_local_projects()
    if not projects:
        ctx.error("No local projects found. Run 'tandem push' first.")
        raise typer.Exit(EXIT_FAILURE)
    if ctx.no_prompt:
        ctx.error("No project specified and --no-prompt is set.")
        raise typer.Exit(EXIT_FAILURE)
    selection = TerminalMenu(projects, title=title, clear_screen=False).show()
    if not isinstance(selection, int):
        raise typer.Abort()
    return projects[selection]


def resolve_project(
    ctx: OutputContext, project: str | None, title: str = "Select a project:"
) -> str:
    """Explicit argument, else the project containing cwd, else a menu."""
    return project or resolve_project_from_cwd() or select_project(ctx, title)


def require_local_project(ctx: OutputContext, project: str) -> Path:
    try:
        path = get_project_path(project)
    except ProjectError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None
    if not path.is_dir():
        ctx.error(f"Project '{project}' not found locally.")
        raise typer.Exit(EXIT_FAILURE)
    return path


def build_lock(config: TandemConfig, remote: RemoteConfig) -> RemoteLock:
    return RemoteLock.from_remote(remote, get_executor(), get_identity(config))


def build_state_store(config: TandemConfig, remote: RemoteConfig | None = None) -> LocalStateStore:
    return LocalStateStore(
        identity=get_identity(config),
        hmac_key=config.session.hmac_key,
        session_ttl=timedelta(hours=config.session.ttl_hours),
        executor=get_executor(),
        identity_file=remote.key if remote else None,
    )


def confirm_or_exit(ctx: OutputContext, message: str, cancelled: str) -> None:
    """Ask for confirmation; non-interactive mode or a 'no' ends the command.

    A refused prompt (``--no-prompt``) exits non-zero, a declined one exits 0.
    """
    try:
        confirmed = ctx.confirm(message, default=False)
    except PromptRefused:
        ctx.error(f"Confirmation required: {message} (re-run interactively or pass --force)")
        raise typer.Exit(EXIT_FAILURE) from None
    if not confirmed:
        ctx.print(cancelled)
        raise typer.Exit(0)


def double_confirm(ctx: OutputContext, first: str, second: str, cancelled: str) -> None:
    """Two sequential confirmations guarding a destructive remote action."""
    confirm_or_exit(ctx, first, cancelled)
    confirm_or_exit(ctx, second, cancelled)


def describe_lock(info: LockInfo) -> str:
    return f"{info.machine} (user {info.user}, since {info.timestamp.isoformat()}, pid {info.pid})"


def describe_owner(info: OwnershipInfo) -> str:
    return f"'{info.owner}' (claimed from {info.machine} at {info.created})"


def describe_session(info: SessionInfo) -> str:
    return f"{info.machine} (user {info.user}, since {info.timestamp}, expires {info.expires})"


def release_lock(
    ctx: OutputContext, lock: RemoteLock, project: str, release_any: bool = False
) -> None:
    """Release the project lock if this machine holds it.

    With ``release_any`` a lock held elsewhere is dropped too. A lock that
    cannot be read or deleted is reported and left for the user to retry.
    """
    status = lock.status(project)
    if status.error:
        ctx.warn(f"Could not check/release lock: {status.error}")
        return
    if status.owned_by_me or (release_any and status.locked):
        released = lock.release(project)
        if released.success:
            ctx.print("Lock released")
        else:
            ctx.warn(f"Could not check/release lock: {released.error}")
    elif status.info is not None:
        ctx.warn(f"Lock is held by {describe_lock(status.info)}; leaving it in place")
