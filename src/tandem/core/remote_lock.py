"""Remote advisory lock for project lifecycle operations.

The lock is a JSON record at ``<base>/.locks/<project>.lock`` on the remote
host, read and written only through remote command execution. Storage offers
no atomic check-and-set: two machines acquiring at the same instant can both
observe "unlocked" and both write. That race is accepted because acquisition
is expected to be one operator issuing one command at a time.

Every method returns a result value; transport failures are never raised and
never retried here.
"""

import logging
import shlex
from typing import Self

from pydantic import ValidationError

from ..config import RemoteConfig
from ..constants import LOCK_SUFFIX, LOCKS_DIR_NAME
from ..logging import audit
from ..models import (
    AcquireResult,
    Identity,
    LockInfo,
    LockStatus,
    OperationResult,
    ReadResult,
    ReadState,
)
from ..services.ssh import RemoteExecutor, RemoteResult
from ..services.validation import (
    InvalidInputError,
    quote_remote_path,
    validate_project_name,
    validate_remote_path,
)

logger = logging.getLogger(__name__)


class RemoteLock:
    """Advisory single-writer lock stored on a remote host.

    Args:
        host: SSH destination (``user@host`` or an ssh config alias)
        base_path: Remote directory holding projects
        executor: Remote command execution primitive
        identity: Identity stamped into and compared against lock records
        identity_file: Optional SSH identity file passed to the executor
    """

    def __init__(
        self,
        host: str,
        base_path: str,
        executor: RemoteExecutor,
        identity: Identity,
        identity_file: str | None = None,
    ) -> None:
        self.host = host
        self.base_path = base_path.rstrip("/") or "/"
        self.executor = executor
        self.identity = identity
        self.identity_file = identity_file

    @classmethod
    def from_remote(
        cls, remote: RemoteConfig, executor: RemoteExecutor, identity: Identity
    ) -> Self:
        return cls(remote.host_spec, remote.path, executor, identity, identity_file=remote.key)

    @property
    def locks_dir(self) -> str:
        return f"{self.base_path}/{LOCKS_DIR_NAME}"

    def lock_path(self, project: str) -> str:
        return f"{self.locks_dir}/{project}{LOCK_SUFFIX}"

    def _run(self, command: str) -> RemoteResult:
        return self.executor.execute(self.host, command, self.identity_file)

    def _check_inputs(self, project: str) -> str | None:
        try:
            validate_remote_path(self.base_path)
            validate_project_name(project)
        except InvalidInputError as e:
            return str(e)
        return None

    def read_record(self, project: str) -> ReadResult[LockInfo]:
        """Read the lock record, distinguishing absent from corrupt."""
        invalid = self._check_inputs(project)
        if invalid:
            return ReadResult.failed(invalid)

        path = quote_remote_path(self.lock_path(project))
        result = self._run(f"cat {path} 2>/dev/null || true")
        if not result.success:
            logger.debug("Lock read for %s failed, treating as unlocked: %s", project, result.error)
            return ReadResult.failed(result.error or "Failed to read lock")
        return parse_lock_record(result.stdout)

    def status(self, project: str) -> LockStatus:
        """Report whether a project is locked and by whom.

        Absent, unreadable or corrupt records all report ``locked=False``;
        an unreadable one also carries the transport error.
        """
        return self._status_from(self.read_record(project))

    def _status_from(self, record: ReadResult[LockInfo]) -> LockStatus:
        if record.state is ReadState.CORRUPT:
            return LockStatus(locked=False, corrupt=True)
        info = record.or_none()
        if info is None:
            return LockStatus(locked=False, error=record.error)
        return LockStatus(locked=True, owned_by_me=info.machine == self.identity.machine, info=info)

    def _write(self, project: str, info: LockInfo) -> OperationResult:
        locks_dir = quote_remote_path(self.locks_dir)
        path = quote_remote_path(self.lock_path(project))
        payload = shlex.quote(info.model_dump_json())
        result = self._run(f"mkdir -p {locks_dir} && printf '%s\\n' {payload} > {path}")
        if not result.success:
            return OperationResult(success=False, error=result.error or "Failed to write lock")
        return OperationResult(success=True)

    def acquire(self, project: str) -> AcquireResult:
        """Acquire the lock for ``project``.

        Succeeds when no valid record exists or when this machine already
        holds it (the timestamp is refreshed). Fails without writing when
        another machine holds it, returning the holder's record.
        """
        invalid = self._check_inputs(project)
        if invalid:
            return AcquireResult(success=False, error=invalid)

        status = self.status(project)
        if status.info is not None and not status.owned_by_me:
            return AcquireResult(
                success=False,
                error=f"Project is locked by {status.info.machine} ({status.info.user})",
                existing_lock=status.info,
            )

        written = self._write(project, LockInfo.for_identity(self.identity))
        if not written.success:
            return AcquireResult(success=False, error=written.error)

        action = "lock.refresh" if status.locked else "lock.acquire"
        audit(action, project=project, machine=self.identity.machine, user=self.identity.user)
        return AcquireResult(success=True)

    def release(self, project: str) -> OperationResult:
        """Delete the lock record.

        Ownership is not verified: any caller can release any lock. Callers
        that should only drop their own lock check ``status().owned_by_me``
        first.
        """
        invalid = self._check_inputs(project)
        if invalid:
            return OperationResult(success=False, error=invalid)

        result = self._run(f"rm -f {quote_remote_path(self.lock_path(project))}")
        if not result.success:
            return OperationResult(success=False, error=result.error or "Failed to release lock")
        audit("lock.release", project=project, machine=self.identity.machine)
        return OperationResult(success=True)

    def force_acquire(self, project: str) -> AcquireResult:
        """Take the lock over from its current holder: release, then acquire.

        Only call this after the user explicitly confirmed the takeover.
        """
        previous = self.status(project).info
        released = self.release(project)
        if not released.success:
            return AcquireResult(success=False, error=released.error)
        result = self.acquire(project)
        if result.success and previous is not None:
            audit(
                "lock.takeover",
                project=project,
                machine=self.identity.machine,
                previous=previous.machine,
            )
        return result

    def list_locks(self) -> ReadResult[dict[str, LockStatus]]:
        """Read every lock under the locks directory in a single remote call.

        Returns:
            Mapping of project name to status (empty if the directory is
            missing), or a failed read if the host could not be queried.
        """
        try:
            validate_remote_path(self.base_path)
        except InvalidInputError as e:
            logger.debug("Refusing to list locks: %s", e)
            return ReadResult.failed(str(e))

        locks_dir = quote_remote_path(self.locks_dir)
        command = (
            f"for f in {locks_dir}/*{LOCK_SUFFIX}; do "
            '[ -f "$f" ] && printf \'%s\\t%s\\n\' "$(basename "$f" ' + LOCK_SUFFIX + ')" '
            '"$(tr -d \'\\n\' < "$f")"; '
            "done 2>/dev/null || true"
        )
        result = self._run(command)
        if not result.success:
            logger.debug("Listing locks failed: %s", result.error)
            return ReadResult.failed(result.error or "Failed to list locks")

        statuses: dict[str, LockStatus] = {}
        for line in result.stdout.splitlines():
            project, sep, content = line.partition("\t")
            if not sep or not project:
                continue
            statuses[project] = self._status_from(parse_lock_record(content))
        return ReadResult.valid(statuses)


def parse_lock_record(content: str) -> ReadResult[LockInfo]:
    """Parse lock file contents into a tagged read result."""
    if not content.strip():
        return ReadResult.absent()
    try:
        return ReadResult.valid(LockInfo.model_validate_json(content))
    except ValidationError as e:
        logger.debug("Corrupt lock record: %s", e)
        return ReadResult.corrupt(reason=f"Invalid lock record: {e.error_count()} error(s)")
