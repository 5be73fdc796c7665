"""CLI command implementations for tandem.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .clone import clone
from .encrypt import encrypt_app
from .init import init
from .locks import locks
from .push import push
from .remove import remove
from .shell import shell
from .start import start
from .status import status
from .stop import stop

__all__ = [
    "clone",
    "encrypt_app",
    "init",
    "locks",
    "push",
    "remove",
    "shell",
    "start",
    "status",
    "stop",
]
