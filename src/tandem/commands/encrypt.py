"""Encrypt commands: keep a project's remote copy encrypted while nobody works on it.

With encryption enabled, ``stop`` replaces the remote tree with an encrypted
archive and ``start`` restores it. The passphrase is never stored.
"""

import typer

from ..config import EncryptionConfig, RemoteConfig, TandemConfig, save_config
from ..constants import MAX_PASSPHRASE_ATTEMPTS
from ..output import OutputContext, PromptRefused, get_output_context
from ..services import (
    EncryptionError,
    decrypt_remote_archive,
    derive_key,
    encrypt_remote_archive,
    generate_salt,
    read_remote_salt,
    remote_archive_exists,
)
from .common import (
    EXIT_FAILURE,
    double_confirm,
    get_executor,
    require_config,
    require_remote,
    resolve_project,
)

encrypt_app = typer.Typer(
    help="Encrypt remote project copies at rest",
    no_args_is_help=True,
)


def _ask_passphrase(ctx: OutputContext, message: str, confirmation: bool = False) -> str:
    try:
        return ctx.prompt(message, hide_input=True, confirmation=confirmation)
    except PromptRefused:
        ctx.error("A passphrase is required and --no-prompt is set.")
        raise typer.Exit(EXIT_FAILURE) from None


def _derive(ctx: OutputContext, passphrase: str, salt: str) -> bytes:
    try:
        return derive_key(passphrase, salt)
    except EncryptionError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_FAILURE) from None


def encrypt_on_remote(ctx: OutputContext, project: str, remote: RemoteConfig, salt: str) -> bool:
    """Archive and encrypt the remote copy, asking for the passphrase.

    Returns:
        True once the plaintext has been replaced by the archive
    """
    executor = get_executor()
    if remote_archive_exists(
        executor, remote.host_spec, remote.project_path(project), project, remote.key
    ):
        ctx.print("Remote copy is already encrypted")
        return True
    for attempt in range(1, MAX_PASSPHRASE_ATTEMPTS + 1):
        passphrase = _ask_passphrase(
            ctx,
            f"Passphrase to encrypt (attempt {attempt}/{MAX_PASSPHRASE_ATTEMPTS})",
            confirmation=True,
        )
        if not passphrase:
            ctx.error("Passphrase is required.")
            continue
        result = encrypt_remote_archive(
            executor,
            remote.host_spec,
            remote.project_path(project),
            project,
            _derive(ctx, passphrase, salt),
            salt,
            remote.key,
        )
        if result.success:
            ctx.print("Project encrypted on remote")
            return True
        ctx.error(result.error or "Encryption failed")

    ctx.error(f"Failed to encrypt after {MAX_PASSPHRASE_ATTEMPTS} attempts")
    return False


def decrypt_on_remote(
    ctx: OutputContext, config: TandemConfig, project: str, remote: RemoteConfig
) -> bool:
    """Restore the remote copy from its encrypted archive, if there is one.

    Returns:
        True if an archive was decrypted, False if there was none

    Raises:
        typer.Exit: If the archive exists but cannot be decrypted
    """
    executor = get_executor()
    host, remote_dir = remote.host_spec, remote.project_path(project)
    if not remote_archive_exists(executor, host, remote_dir, project, remote.key):
        return False

    project_cfg = config.projects.get(project)
    salt = read_remote_salt(executor, host, remote_dir, project, remote.key) or (
        project_cfg.encryption.salt if project_cfg else None
    )
    if not salt:
        ctx.error(f"'{project}' is encrypted on the remote but no salt was found.")
        raise typer.Exit(EXIT_FAILURE)

    ctx.print(f"'{project}' is encrypted on the remote")
    for attempt in range(1, MAX_PASSPHRASE_ATTEMPTS + 1):
        passphrase = _ask_passphrase(
            ctx, f"Passphrase to decrypt (attempt {attempt}/{MAX_PASSPHRASE_ATTEMPTS})"
        )
        result = decrypt_remote_archive(
            executor, host, remote_dir, project, _derive(ctx, passphrase, salt), remote.key
        )
        if result.success:
            ctx.print("Remote copy decrypted")
            return True
        ctx.error(result.error or "Decryption failed")

    ctx.error(f"Failed to decrypt after {MAX_PASSPHRASE_ATTEMPTS} attempts")
    raise typer.Exit(EXIT_FAILURE)


def _registered(ctx: OutputContext, config: TandemConfig, project: str) -> EncryptionConfig:
    project_cfg = config.projects.get(project)
    if project_cfg is None:
        ctx.error(f"Project '{project}' not found in config. Push or clone it first.")
        raise typer.Exit(EXIT_FAILURE)
    return project_cfg.encryption


@encrypt_app.command("enable")
def enable(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
) -> None:
    """Encrypt the remote copy whenever the project is stopped."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project to encrypt:")
    encryption = _registered(ctx, config, project)

    if encryption.enabled:
        ctx.print(f"Encryption is already enabled for '{project}'.")
        return
    if ctx.dry_run:
        ctx.dry(f"Would enable encryption for '{project}'")
        return

    ctx.warn("Your passphrase is never stored. If you forget it, the data cannot be recovered.")
    double_confirm(
        ctx,
        f"Enable encryption for '{project}'?",
        "I understand there is no way to recover the data without the passphrase",
        "Cancelled.",
    )

    config.projects[project].encryption = EncryptionConfig(enabled=True, salt=generate_salt())
    save_config(config)
    ctx.success(
        f"Encryption enabled for '{project}'. The remote copy is encrypted on 'tandem stop'.",
        data={"project": project, "encryption": True},
    )


@encrypt_app.command("disable")
def disable(
    project: str | None = typer.Argument(None, help="Project name (defaults to current directory)"),
) -> None:
    """Stop encrypting the remote copy, decrypting it first if needed."""
    ctx = get_output_context()
    config = require_config(ctx)
    project = resolve_project(ctx, project, "Select a project to decrypt:")
    encryption = _registered(ctx, config, project)

    if not encryption.enabled:
        ctx.print(f"Encryption is not enabled for '{project}'.")
        return
    remote = require_remote(ctx, config, project)
    if ctx.dry_run:
        ctx.dry(f"Would decrypt the remote copy of '{project}' if it is archived")
        ctx.dry(f"Would disable encryption for '{project}'")
        return

    decrypt_on_remote(ctx, config, project, remote)
    config.projects[project].encryption = EncryptionConfig()
    save_config(config)
    ctx.success(
        f"Encryption disabled for '{project}'.",
        data={"project": project, "encryption": False},
    )
