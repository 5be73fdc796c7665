"""Remote advisory lock records.

A lock is a small JSON document stored on the remote host at
``<base>/.locks/<project>.lock``. It is advisory: well-behaved callers check
it before starting work on a project, nothing enforces it.
"""

from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel

from .identity import Identity


class LockInfo(BaseModel):
    """Remote lock record.

    Attributes:
        machine: Hostname of the holder.
        user: Account name of the holder.
        timestamp: When the lock was acquired or last refreshed.
        pid: Process id of the holder at acquisition time.
    """

    machine: str
    user: str
    timestamp: datetime
    pid: int

    @classmethod
    def for_identity(cls, identity: Identity) -> Self:
        return cls(
            machine=identity.machine,
            user=identity.user,
            timestamp=datetime.now(UTC),
            pid=identity.pid,
        )

    def describe(self) -> str:
        """Human readable holder description."""
        return f"{self.machine} ({self.user}) since {self.timestamp.isoformat()}"


class LockStatus(BaseModel):
    """Observed state of a project lock.

    ``locked`` is False for an absent, unreadable or corrupt record.
    ``corrupt`` distinguishes a damaged record from one that never existed,
    and ``error`` is set when the record could not be read at all.
    """

    locked: bool
    owned_by_me: bool = False
    info: LockInfo | None = None
    corrupt: bool = False
    error: str | None = None
