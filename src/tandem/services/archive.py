"""Encrypted archives of remote project copies.

The remote tree is tarred into a remote temp file, pulled down, encrypted
locally and pushed back as ``<project>.tar.enc``; the plaintext is then
deleted on the remote. The salt the key was derived with is kept beside the
archive as ``<project>.salt`` so any machine holding the passphrase can
decrypt it. Decryption reverses the steps and extracts over the remote
directory.
"""

import logging
import shlex
import tempfile
from pathlib import Path

from ..models import OperationResult
from .encryption import EncryptionError, decrypt_file, encrypt_file
from .remote import download, upload
from .ssh import RemoteExecutor
from .validation import InvalidInputError, quote_remote_path, validate_remote_path

logger = logging.getLogger(__name__)


def archive_name(project: str) -> str:
    return f"{project}.tar.enc"


def salt_name(project: str) -> str:
    return f"{project}.salt"


def _remote_temp_file(
    executor: RemoteExecutor, host: str, identity_file: str | None
) -> str | None:
    result = executor.execute(host, 'mktemp "${TMPDIR:-/tmp}/tandem.XXXXXX"', identity_file)
    path = result.stdout.strip() if result.success else ""
    return path or None


def remote_archive_exists(
    executor: RemoteExecutor,
    host: str,
    remote_dir: str,
    project: str,
    identity_file: str | None = None,
) -> bool:
    try:
        validate_remote_path(remote_dir)
    except InvalidInputError:
        return False
    path = quote_remote_path(f"{remote_dir}/{archive_name(project)}")
    result = executor.execute(
        host, f"test -f {path} && echo EXISTS || echo NOT_FOUND", identity_file
    )
    return result.success and "EXISTS" in result.stdout


def read_remote_salt(
    executor: RemoteExecutor,
    host: str,
    remote_dir: str,
    project: str,
    identity_file: str | None = None,
) -> str | None:
    """Salt stored beside the archive, or None if there is none."""
    try:
        validate_remote_path(remote_dir)
    except InvalidInputError:
        return None
    path = quote_remote_path(f"{remote_dir}/{salt_name(project)}")
    result = executor.execute(host, f"cat {path} 2>/dev/null || true", identity_file)
    if not result.success:
        return None
    return result.stdout.strip() or None


def encrypt_remote_archive(
    executor: RemoteExecutor,
    host: str,
    remote_dir: str,
    project: str,
    key: bytes,
    salt: str,
    identity_file: str | None = None,
) -> OperationResult:
    """Replace the remote project tree with an encrypted archive.

    Sync must be paused before calling this, or the deletion of the
    plaintext propagates back to the local copy.
    """
    try:
        validate_remote_path(remote_dir)
    except InvalidInputError as e:
        return OperationResult(success=False, error=str(e))

    if remote_archive_exists(executor, host, remote_dir, project, identity_file):
        return OperationResult(success=False, error="Remote copy is already encrypted")

    remote_tar = _remote_temp_file(executor, host, identity_file)
    if remote_tar is None:
        return OperationResult(success=False, error="Could not create a temp file on remote")
    quoted_tar = shlex.quote(remote_tar)
    quoted_dir = quote_remote_path(remote_dir)
    archive = quote_remote_path(archive_name(project))
    salt_file = quote_remote_path(salt_name(project))

    # With no archive present, a leftover salt is the only file not part of the tree
    tar = executor.execute(
        host,
        f"cd {quoted_dir} && rm -f {salt_file} && tar cf {quoted_tar} .",
        identity_file,
    )
    if not tar.success:
        executor.execute(host, f"rm -f {quoted_tar}", identity_file)
        return OperationResult(
            success=False, error=f"Failed to create archive on remote: {tar.error}"
        )

    with tempfile.TemporaryDirectory(prefix="tandem-") as tmp:
        local_tar = Path(tmp) / f"{project}.tar"
        local_enc = Path(tmp) / archive_name(project)
        fetched = download(host, remote_tar, local_tar, identity_file)
        if not fetched.success:
            executor.execute(host, f"rm -f {quoted_tar}", identity_file)
            return OperationResult(
                success=False, error=f"Failed to download archive: {fetched.error}"
            )
        encrypt_file(local_tar, local_enc, key)
        sent = upload(local_enc, host, f"{remote_dir}/{archive_name(project)}", identity_file)
        if not sent.success:
            executor.execute(host, f"rm -f {quoted_tar}", identity_file)
            return OperationResult(
                success=False, error=f"Failed to upload encrypted archive: {sent.error}"
            )

    cleanup = executor.execute(
        host,
        f"rm -f {quoted_tar} && cd {quoted_dir} && "
        f"printf '%s\\n' {shlex.quote(salt)} > {salt_file} && "
        f"find . -mindepth 1 -maxdepth 1 -not -name {archive} -not -name {salt_file} "
        "-exec rm -rf {} +",
        identity_file,
    )
    if not cleanup.success:
        logger.warning("Plaintext cleanup on %s failed: %s", host, cleanup.error)
        return OperationResult(
            success=False, error=f"Could not remove plaintext on remote: {cleanup.error}"
        )
    return OperationResult(success=True)


def decrypt_remote_archive(
    executor: RemoteExecutor,
    host: str,
    remote_dir: str,
    project: str,
    key: bytes,
    identity_file: str | None = None,
) -> OperationResult:
    """Restore the remote project tree from its encrypted archive.

    A wrong key fails before anything on the remote is touched.
    """
    try:
        validate_remote_path(remote_dir)
    except InvalidInputError as e:
        return OperationResult(success=False, error=str(e))

    with tempfile.TemporaryDirectory(prefix="tandem-") as tmp:
        local_enc = Path(tmp) / archive_name(project)
        local_tar = Path(tmp) / f"{project}.tar"
        fetched = download(
            host, f"{remote_dir}/{archive_name(project)}", local_enc, identity_file
        )
        if not fetched.success:
            return OperationResult(
                success=False, error=f"Failed to download archive: {fetched.error}"
            )
        try:
            decrypt_file(local_enc, local_tar, key)
        except EncryptionError as e:
            return OperationResult(success=False, error=str(e))

        remote_tar = _remote_temp_file(executor, host, identity_file)
        if remote_tar is None:
            return OperationResult(success=False, error="Could not create a temp file on remote")
        sent = upload(local_tar, host, remote_tar, identity_file)
        if not sent.success:
            return OperationResult(success=False, error=f"Failed to upload archive: {sent.error}")

    quoted_tar = shlex.quote(remote_tar)
    extract = executor.execute(
        host,
        f"cd {quote_remote_path(remote_dir)} && tar xf {quoted_tar} && "
        f"rm -f {quoted_tar} {quote_remote_path(archive_name(project))} "
        f"{quote_remote_path(salt_name(project))}",
        identity_file,
    )
    if not extract.success:
        return OperationResult(
            success=False, error=f"Failed to extract archive on remote: {extract.error}"
        )
    return OperationResult(success=True)
