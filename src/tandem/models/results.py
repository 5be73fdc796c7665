"""Result values returned by coordination operations.

Coordination never raises for transport, conflict or integrity failures.
Callers inspect these values and decide whether a failure is fatal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Self, TypeVar

from pydantic import BaseModel

from .lock import LockInfo
from .state import OwnershipInfo, SessionInfo

T = TypeVar("T")


class ReadState(str, Enum):
    """Outcome of reading a stored record."""

    VALID = "valid"
    ABSENT = "absent"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class ReadResult(Generic[T]):
    """Tagged read outcome: Valid(record) | Absent | Corrupt.

    Attributes:
        state: Which of the three outcomes occurred.
        value: The record, only set when state is VALID.
        reason: Why the record was rejected, for CORRUPT (and some ABSENT) reads.
        error: Set when the read itself failed (transport or invalid input),
            so callers can tell "nothing there" from "could not look".
    """

    state: ReadState
    value: T | None = None
    reason: str | None = None
    error: str | None = None

    @classmethod
    def valid(cls, value: T) -> Self:
        return cls(ReadState.VALID, value=value)

    @classmethod
    def absent(cls, reason: str | None = None) -> Self:
        return cls(ReadState.ABSENT, reason=reason)

    @classmethod
    def corrupt(cls, reason: str) -> Self:
        return cls(ReadState.CORRUPT, reason=reason)

    @classmethod
    def failed(cls, error: str) -> Self:
        """The record could not be read; the fail-open view is still "absent"."""
        return cls(ReadState.ABSENT, reason=error, error=error)

    @property
    def is_valid(self) -> bool:
        return self.state is ReadState.VALID

    def or_none(self) -> T | None:
        """Collapse to the fail-open view: the record, or None."""
        return self.value if self.state is ReadState.VALID else None


class OperationResult(BaseModel):
    """Outcome of a best-effort remote or local mutation."""

    success: bool
    error: str | None = None


class AcquireResult(OperationResult):
    """Outcome of a lock acquisition.

    ``existing_lock`` is set when another machine holds the lock.
    """

    existing_lock: LockInfo | None = None


class OwnershipStatus(BaseModel):
    """Who owns a remote project. ``error`` is set when the record could not be read."""

    has_owner: bool
    is_owner: bool = False
    info: OwnershipInfo | None = None
    error: str | None = None


class WriteAuthorization(BaseModel):
    """Whether the caller may mutate a remote project."""

    authorized: bool
    error: str | None = None
    owner_info: OwnershipInfo | None = None


class SessionConflict(BaseModel):
    has_conflict: bool
    existing_session: SessionInfo | None = None
