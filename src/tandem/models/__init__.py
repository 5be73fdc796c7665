"""Pydantic data models for tandem coordination records.

This package defines the data structures exchanged between machines:
- Identity of the acting machine/account (Identity)
- Remote advisory locks (LockInfo, LockStatus)
- Project state document sections (OwnershipInfo, SessionInfo)
- Result values returned by coordination operations

Example:
    >>> from tandem.models import Identity, LockInfo
    >>> LockInfo.for_identity(Identity(machine="laptop", user="alice")).model_dump_json()
"""

from .identity import Identity
from .lock import LockInfo, LockStatus
from .results import (
    AcquireResult,
    OperationResult,
    OwnershipStatus,
    ReadResult,
    ReadState,
    SessionConflict,
    WriteAuthorization,
)
from .state import (
    OWNERSHIP_SECTION,
    SECTIONS,
    SESSION_SECTION,
    OwnershipInfo,
    SessionInfo,
)

__all__ = [
    "OWNERSHIP_SECTION",
    "SECTIONS",
    "SESSION_SECTION",
    "AcquireResult",
    "Identity",
    "LockInfo",
    "LockStatus",
    "OperationResult",
    "OwnershipInfo",
    "OwnershipStatus",
    "ReadResult",
    "ReadState",
    "SessionConflict",
    "SessionInfo",
    "WriteAuthorization",
]
