"""Project state document: ownership and session records.

Each project carries ``.state/state.lock``, a JSON document with two
independent sections:

- ``ownership``: the account that first pushed the project to the remote.
  Written remotely, visible to other machines once the document syncs.
- ``session``: the machine currently working on the project locally,
  protected by an HMAC and a TTL.

Sections are updated with read-merge-write so writing one never drops the
other. There is no locking around the document itself; concurrent writers
race and the last write wins.
"""

import hashlib
import hmac
import json
import logging
import shlex
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..constants import (
    SESSION_FILE_MODE,
    SESSION_HMAC_KEY,
    SESSION_TTL_HOURS,
    STATE_DIR_NAME,
    STATE_FILE_NAME,
)
from ..logging import audit
from ..models import (
    OWNERSHIP_SECTION,
    SESSION_SECTION,
    Identity,
    OperationResult,
    OwnershipInfo,
    OwnershipStatus,
    ReadResult,
    ReadState,
    SessionConflict,
    SessionInfo,
    WriteAuthorization,
)
from ..services.filesystem import remove_file, write_file_atomic
from ..services.ssh import RemoteExecutor, RemoteResult
from ..services.validation import InvalidInputError, quote_remote_path, validate_remote_path

logger = logging.getLogger(__name__)

StateDocument = dict[str, Any]


def state_file_path(project_path: Path) -> Path:
    """Local path of a project's state document."""
    return Path(project_path) / STATE_DIR_NAME / STATE_FILE_NAME


def remote_state_file_path(project_path: str) -> str:
    return f"{project_path.rstrip('/')}/{STATE_DIR_NAME}/{STATE_FILE_NAME}"


def parse_state_document(content: str) -> ReadResult[StateDocument]:
    """Parse raw document text into a tagged read result."""
    if not content.strip():
        return ReadResult.absent()
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        return ReadResult.corrupt(reason=f"Invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        return ReadResult.corrupt(reason="State document is not a JSON object")
    return ReadResult.valid(data)


def parse_ownership_info(data: StateDocument) -> ReadResult[OwnershipInfo]:
    """Extract the ownership record from a state document.

    Accepts both the nested ``{"ownership": {...}}`` layout and a legacy
    document holding the record at the top level.
    """
    section = data.get(OWNERSHIP_SECTION, data if "owner" in data else None)
    if section is None:
        return ReadResult.absent()
    try:
        return ReadResult.valid(OwnershipInfo.model_validate(section))
    except ValidationError as e:
        return ReadResult.corrupt(reason=f"Invalid ownership record: {e.error_count()} error(s)")


class LocalStateStore:
    """Reads and writes project state documents for one identity.

    Args:
        identity: Identity stamped into records and compared against them
        hmac_key: Key for session integrity hashes
        session_ttl: Lifetime of a session record
        executor: Remote execution primitive, required for ownership operations
        identity_file: Optional SSH identity file for the executor
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        identity: Identity,
        hmac_key: str = SESSION_HMAC_KEY,
        session_ttl: timedelta = timedelta(hours=SESSION_TTL_HOURS),
        executor: RemoteExecutor | None = None,
        identity_file: str | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self.identity = identity
        self.hmac_key = hmac_key
        self.session_ttl = session_ttl
        self.executor = executor
        self.identity_file = identity_file
        self.clock = clock

    # -- Document sections ---------------------------------------------------

    def read_document(self, project_path: Path) -> ReadResult[StateDocument]:
        path = state_file_path(project_path)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ReadResult.absent()
        except OSError as e:
            return ReadResult.corrupt(reason=f"Unreadable state file: {e}")
        return parse_state_document(content)

    def read_section(self, project_path: Path, section: str) -> dict[str, Any] | None:
        data = self.read_document(project_path).or_none() or {}
        value = data.get(section)
        return value if isinstance(value, dict) else None

    def write_section(self, project_path: Path, section: str, value: dict[str, Any]) -> None:
        """Replace one section, preserving the rest of the document.

        A corrupt document is replaced by a fresh one holding only ``section``.
        """
        data = self.read_document(project_path).or_none() or {}
        data[section] = value
        write_file_atomic(state_file_path(project_path), json.dumps(data, indent=2))

    def remove_section(self, project_path: Path, section: str) -> None:
        """Drop one section; delete the document once nothing is left."""
        path = state_file_path(project_path)
        record = self.read_document(project_path)
        if record.state is ReadState.ABSENT:
            return
        data = record.or_none() or {}
        data.pop(section, None)
        if data:
            write_file_atomic(path, json.dumps(data, indent=2))
        else:
            remove_file(path)

    # -- Ownership -----------------------------------------------------------

    def create_ownership_info(self) -> OwnershipInfo:
        return OwnershipInfo.for_identity(self.identity)

    def is_owner(self, info: OwnershipInfo) -> bool:
        """Compare by account name; the machine that created it does not matter."""
        return info.owner == self.identity.user

    def _remote(self, host: str, command: str) -> RemoteResult:
        if self.executor is None:
            return RemoteResult(success=False, error="No remote executor configured")
        return self.executor.execute(host, command, self.identity_file)

    def read_remote_document(self, host: str, project_path: str) -> ReadResult[StateDocument]:
        """Fetch the remote copy of the state document (independent of sync)."""
        try:
            validate_remote_path(project_path)
        except InvalidInputError as e:
            return ReadResult.failed(str(e))
        path = quote_remote_path(remote_state_file_path(project_path))
        result = self._remote(host, f"cat {path} 2>/dev/null || true")
        if not result.success:
            logger.debug("Remote state read on %s failed: %s", host, result.error)
            return ReadResult.failed(result.error or "Failed to read remote state")
        return parse_state_document(result.stdout)

    def read_remote_ownership(self, host: str, project_path: str) -> ReadResult[OwnershipInfo]:
        document = self.read_remote_document(host, project_path)
        if document.state is not ReadState.VALID:
            return ReadResult(document.state, reason=document.reason, error=document.error)
        return parse_ownership_info(document.or_none() or {})

    def get_ownership_status(self, host: str, project_path: str) -> OwnershipStatus:
        record = self.read_remote_ownership(host, project_path)
        info = record.or_none()
        if info is None:
            return OwnershipStatus(has_owner=False, error=record.error)
        return OwnershipStatus(has_owner=True, is_owner=self.is_owner(info), info=info)

    def set_ownership(self, host: str, project_path: str) -> OperationResult:
        """Stamp this identity as owner in the remote state document.

        Read-merge-write on the remote, so a session section that arrived via
        sync is kept.
        """
        try:
            validate_remote_path(project_path)
        except InvalidInputError as e:
            return OperationResult(success=False, error=str(e))

        document = self.read_remote_document(host, project_path)
        if document.error:
            return OperationResult(success=False, error=document.error)
        data = document.or_none() or {}
        info = self.create_ownership_info()
        data[OWNERSHIP_SECTION] = info.model_dump()
        # Drop legacy top-level ownership keys now that the nested form exists.
        for key in ("owner", "created", "machine"):
            data.pop(key, None)

        state_dir = quote_remote_path(f"{project_path.rstrip('/')}/{STATE_DIR_NAME}")
        path = quote_remote_path(remote_state_file_path(project_path))
        payload = shlex.quote(json.dumps(data, indent=2))
        result = self._remote(host, f"mkdir -p {state_dir} && printf '%s\\n' {payload} > {path}")
        if not result.success:
            return OperationResult(success=False, error=result.error or "Failed to set ownership")
        audit("ownership.set", path=project_path, owner=info.owner, machine=info.machine)
        return OperationResult(success=True)

    def check_write_authorization(self, host: str, project_path: str) -> WriteAuthorization:
        """Decide whether this identity may mutate the remote project.

        No ownership record means anyone may write, so projects created
        before ownership existed stay usable.
        """
        status = self.get_ownership_status(host, project_path)
        if status.info is None or status.is_owner:
            return WriteAuthorization(authorized=True)
        return WriteAuthorization(
            authorized=False,
            error=f"Project owned by '{status.info.owner}' (created on {status.info.machine})",
            owner_info=status.info,
        )

    # -- Session -------------------------------------------------------------

    def compute_session_hash(self, session: SessionInfo) -> str:
        return hmac.new(
            self.hmac_key.encode("utf-8"),
            session.canonical_payload().encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def write_session(self, project_path: Path) -> SessionInfo:
        """Record this machine as the active session holder.

        The document is made read-only afterwards; later atomic writes still
        succeed because they replace the file by rename.
        """
        now = self.clock()
        session = SessionInfo(
            machine=self.identity.machine,
            user=self.identity.user,
            timestamp=now.isoformat(),
            pid=self.identity.pid,
            expires=(now + self.session_ttl).isoformat(),
        )
        session.hash = self.compute_session_hash(session)
        self.write_section(project_path, SESSION_SECTION, session.model_dump())
        state_file_path(project_path).chmod(SESSION_FILE_MODE)
        return session

    def read_session_result(self, project_path: Path) -> ReadResult[SessionInfo]:
        """Read and validate the session record.

        Corrupt: malformed document, missing fields, or hash mismatch.
        Absent: no session section, or the session has expired.
        """
        document = self.read_document(project_path)
        if document.state is not ReadState.VALID:
            return ReadResult(document.state, reason=document.reason)

        raw = (document.or_none() or {}).get(SESSION_SECTION)
        if raw is None:
            return ReadResult.absent()
        try:
            session = SessionInfo.model_validate(raw, strict=True)
            expires = session.expires_at()
        except (ValidationError, ValueError) as e:
            return ReadResult.corrupt(reason=f"Invalid session record: {e}")

        if not session.hash or not hmac.compare_digest(
            session.hash, self.compute_session_hash(session)
        ):
            return ReadResult.corrupt(reason="Session integrity hash mismatch")

        if expires <= self.clock():
            return ReadResult.absent(reason="Session expired")
        return ReadResult.valid(session)

    def read_session(self, project_path: Path) -> SessionInfo | None:
        """Fail-open view of read_session_result: the valid session, or None."""
        result = self.read_session_result(project_path)
        if result.state is ReadState.CORRUPT:
            logger.debug("Ignoring corrupt session in %s: %s", project_path, result.reason)
        return result.or_none()

    def delete_session(self, project_path: Path) -> None:
        """End the session, keeping any ownership record."""
        self.remove_section(project_path, SESSION_SECTION)

    def check_session_conflict(self, project_path: Path) -> SessionConflict:
        """Report a conflict only for a valid session held by another machine."""
        session = self.read_session(project_path)
        if session is None or session.machine == self.identity.machine:
            return SessionConflict(has_conflict=False)
        return SessionConflict(has_conflict=True, existing_session=session)
