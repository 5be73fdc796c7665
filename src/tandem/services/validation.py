"""Input validation for values interpolated into remote shell commands."""

import re
import shlex

_COMMAND_SUBSTITUTION = re.compile(r"\$[({]|`")
_CHAINING = re.compile(r"[;|&\n\r]")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")


class InvalidInputError(ValueError):
    """Value is unsafe to pass to ssh or a remote shell."""


def is_path_traversal(path: str) -> bool:
    return ".." in path.replace("\\", "/").split("/")


def validate_ssh_host(host: str) -> None:
    """Reject hosts that ssh could read as options or that break the command line.

    Raises:
        InvalidInputError: If the host is empty, starts with '-', or contains
            whitespace or control characters.
    """
    if not host or not host.strip():
        raise InvalidInputError("SSH host cannot be empty")
    if host.startswith("-"):
        raise InvalidInputError("SSH host cannot start with a dash")
    if any(ch.isspace() for ch in host):
        raise InvalidInputError("SSH host cannot contain whitespace or newlines")
    if _CONTROL_CHARS.search(host):
        raise InvalidInputError("SSH host cannot contain control characters")


def validate_remote_path(path: str) -> None:
    """Validate a remote path (absolute or ~/-relative).

    Raises:
        InvalidInputError: On empty paths, traversal, command substitution or
            command chaining characters.
    """
    if not path or not path.strip():
        raise InvalidInputError("Remote path cannot be empty")
    if is_path_traversal(path):
        raise InvalidInputError("Remote path cannot contain traversal sequences")
    if _COMMAND_SUBSTITUTION.search(path):
        raise InvalidInputError("Remote path cannot contain command substitution")
    if _CHAINING.search(path):
        raise InvalidInputError("Remote path cannot contain shell metacharacters or line breaks")


def validate_project_name(project: str) -> None:
    """Validate a project name used as a single path segment.

    Raises:
        InvalidInputError: If the name could escape its parent directory.
    """
    if not project or not project.strip():
        raise InvalidInputError("Project name cannot be empty")
    if ".." in project:
        raise InvalidInputError("Project name cannot contain traversal sequences")
    if "/" in project or "\\" in project:
        raise InvalidInputError("Project name cannot contain path separators")
    if project.startswith("-"):
        raise InvalidInputError("Project name cannot start with a dash")


def quote_remote_path(path: str) -> str:
    """Shell-escape a remote path while keeping a leading ``~`` expandable."""
    if path == "~":
        return path
    if path.startswith("~/"):
        rest = path[2:]
        return "~/" + shlex.quote(rest) if rest else "~/"
    return shlex.quote(path)
