"""Remote command execution over ssh.

This is the only transport used by the coordination layer: every remote
lock or state document operation is a POSIX shell fragment run through
``RemoteExecutor.execute``.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Protocol

from ..constants import SSH_CONNECT_TIMEOUT, SSH_TIMEOUT
from .validation import InvalidInputError, validate_ssh_host

logger = logging.getLogger(__name__)

_FINGERPRINT = re.compile(r"[A-Fa-f0-9]{2}(:[A-Fa-f0-9]{2}){15,}")
_IDENTITY_FILE = re.compile(r"identity file[^,\n]*", re.IGNORECASE)
_USERNAME = re.compile(r"user(name)?[=:\s]+\S+", re.IGNORECASE)
AUTH_FAILURE_MESSAGE = "SSH authentication failed. Check your SSH key and remote configuration."


@dataclass(frozen=True)
class RemoteResult:
    """Outcome of one remote command.

    Attributes:
        success: True if ssh ran and the command exited 0.
        stdout: Captured standard output (empty on failure).
        error: Sanitized error description when success is False.
    """

    success: bool
    stdout: str = ""
    error: str | None = None


class RemoteExecutor(Protocol):
    """Runs a shell string on a named host."""

    def execute(
        self, host: str, command: str, identity_file: str | None = None
    ) -> RemoteResult: ...


def sanitize_ssh_error(message: str) -> str:
    """Strip key paths, fingerprints and usernames from an ssh error."""
    if "Permission denied" in message or "authentication" in message.lower():
        return AUTH_FAILURE_MESSAGE
    sanitized = _IDENTITY_FILE.sub("identity file [REDACTED]", message)
    sanitized = _FINGERPRINT.sub("[FINGERPRINT]", sanitized)
    sanitized = _USERNAME.sub("user=[REDACTED]", sanitized)
    return sanitized.strip()


class SSHExecutor:
    """RemoteExecutor backed by the system ``ssh`` client.

    No retries: a transport failure is returned as a failed RemoteResult and
    the caller decides what to do with it.
    """

    def __init__(self, timeout: int = SSH_TIMEOUT, batch_mode: bool = True) -> None:
        self.timeout = timeout
        self.batch_mode = batch_mode

    def build_args(self, host: str, command: str, identity_file: str | None = None) -> list[str]:
        args = ["ssh"]
        if self.batch_mode:
            args += ["-o", "BatchMode=yes"]
        args += ["-o", f"ConnectTimeout={SSH_CONNECT_TIMEOUT}"]
        if identity_file:
            args += ["-i", identity_file]
        args += ["--", host, command]
        return args

    def execute(
        self, host: str, command: str, identity_file: str | None = None
    ) -> RemoteResult:
        try:
            validate_ssh_host(host)
        except InvalidInputError as e:
            return RemoteResult(success=False, error=str(e))

        logger.debug("ssh %s: %s", host, command)
        try:
            result = subprocess.run(
                self.build_args(host, command, identity_file),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return RemoteResult(success=False, error=f"SSH command timed out after {self.timeout}s")
        except FileNotFoundError:
            return RemoteResult(success=False, error="ssh client not found in PATH")

        if result.returncode != 0:
            message = result.stderr.strip() or f"exit code {result.returncode}"
            return RemoteResult(success=False, error=sanitize_ssh_error(message))
        return RemoteResult(success=True, stdout=result.stdout)


def check_connection(
    host: str, identity_file: str | None = None, executor: RemoteExecutor | None = None
) -> RemoteResult:
    """Check that ``host`` accepts a non-interactive login."""
    executor = executor or SSHExecutor(timeout=SSH_CONNECT_TIMEOUT * 2)
    return executor.execute(host, "echo ok", identity_file)
