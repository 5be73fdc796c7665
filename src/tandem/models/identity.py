"""Identity of the machine and account issuing coordination operations."""

import getpass
import os
import socket
from typing import Self

from pydantic import BaseModel, Field


class Identity(BaseModel):
    """Who is acting: stamped into locks, ownership and session records.

    Identity is passed explicitly into every coordination store so that tests
    (and multi-identity setups) can inject synthetic machines and accounts.

    Attributes:
        machine: Hostname used to decide lock and session ownership.
        user: OS account name used to decide project ownership.
        pid: Process id recorded for diagnostics only.
    """

    machine: str
    user: str
    pid: int = Field(default_factory=os.getpid)

    @classmethod
    def current(cls, machine: str | None = None, user: str | None = None) -> Self:
        """Build the identity of this process, with optional overrides."""
        return cls(
            machine=machine or socket.gethostname(),
            user=user or getpass.getuser(),
        )
