"""Records stored in a project's state document (``.state/state.lock``).

The document holds two independent sections: ``ownership`` (who first pushed
the project to the remote) and ``session`` (which machine is currently
working on it locally).
"""

from datetime import UTC, datetime
from typing import Self

from pydantic import BaseModel, Field

from .identity import Identity

OWNERSHIP_SECTION = "ownership"
SESSION_SECTION = "session"
SECTIONS = (OWNERSHIP_SECTION, SESSION_SECTION)


class OwnershipInfo(BaseModel):
    """Ownership record of a remote project.

    Identity is the OS account name, not the SSH credential: two people
    sharing an account name are indistinguishable.
    """

    owner: str
    created: str
    machine: str

    @classmethod
    def for_identity(cls, identity: Identity) -> Self:
        return cls(
            owner=identity.user,
            created=datetime.now(UTC).isoformat(),
            machine=identity.machine,
        )


class SessionInfo(BaseModel):
    """Local session record guarding interactive access.

    ``hash`` is an HMAC-SHA256 over the other fields. The key is a fixed
    application key, so this detects accidental corruption, not forgery.
    """

    machine: str = Field(min_length=1)
    user: str = Field(min_length=1)
    timestamp: str = Field(min_length=1)
    pid: int
    expires: str = Field(min_length=1)
    hash: str | None = None

    def canonical_payload(self) -> str:
        return f"{self.machine}:{self.user}:{self.timestamp}:{self.pid}:{self.expires}"

    def expires_at(self) -> datetime:
        expires = datetime.fromisoformat(self.expires)
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        return expires
