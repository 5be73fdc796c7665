"""External service integrations for tandem.

This package provides interfaces to external tools:
- ssh: remote command execution primitive
- remote: remote project directory operations and scp transfers
- mutagen: background two-way sync sessions
- container: dev container runtime (docker / devcontainer CLI)
- encryption: passphrase-derived archive encryption
- archive: encrypted at-rest archives of remote project copies
- filesystem: atomic local writes
- validation: safety checks for values sent to remote shells
"""

from .archive import (
    decrypt_remote_archive,
    encrypt_remote_archive,
    read_remote_salt,
    remote_archive_exists,
)
from .container import (
    ContainerStatus,
    exec_in_container,
    get_container_id,
    get_container_status,
    get_workspace_folder,
    remove_container,
    start_container,
    stop_container,
)
from .encryption import EncryptionError, decrypt_bytes, derive_key, encrypt_bytes, generate_salt
from .filesystem import remove_file, write_file_atomic
from .mutagen import (
    SyncStatus,
    create_sync_session,
    flush_sync,
    get_sync_status,
    pause_sync,
    resume_sync,
    session_name,
    terminate_sync,
)
from .remote import delete_remote_dir, make_remote_dir, remote_project_exists
from .ssh import RemoteExecutor, RemoteResult, SSHExecutor, check_connection, sanitize_ssh_error
from .validation import InvalidInputError, quote_remote_path

__all__ = [
    "ContainerStatus",
    "EncryptionError",
    "InvalidInputError",
    "RemoteExecutor",
    "RemoteResult",
    "SSHExecutor",
    "SyncStatus",
    "check_connection",
    "create_sync_session",
    "decrypt_bytes",
    "decrypt_remote_archive",
    "delete_remote_dir",
    "derive_key",
    "encrypt_bytes",
    "encrypt_remote_archive",
    "exec_in_container",
    "flush_sync",
    "generate_salt",
    "get_container_id",
    "get_container_status",
    "get_sync_status",
    "get_workspace_folder",
    "make_remote_dir",
    "pause_sync",
    "quote_remote_path",
    "read_remote_salt",
    "remote_archive_exists",
    "remote_project_exists",
    "remove_container",
    "remove_file",
    "resume_sync",
    "sanitize_ssh_error",
    "session_name",
    "start_container",
    "stop_container",
    "terminate_sync",
    "write_file_atomic",
]
