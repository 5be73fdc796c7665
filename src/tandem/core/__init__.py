"""Coordination core for tandem.

This package contains the cross-machine coordination logic:
- remote_lock: advisory lock serializing "start working on project X"
- state_store: ownership and session records in the project state document
- project: local project layout and resolution
"""

from .project import (
    ProjectError,
    get_local_projects,
    get_project_path,
    project_exists,
    resolve_project_from_cwd,
)
from .remote_lock import RemoteLock, parse_lock_record
from .state_store import (
    LocalStateStore,
    parse_ownership_info,
    parse_state_document,
    remote_state_file_path,
    state_file_path,
)

__all__ = [
    "LocalStateStore",
    "ProjectError",
    "RemoteLock",
    "get_local_projects",
    "get_project_path",
    "parse_lock_record",
    "parse_ownership_info",
    "parse_state_document",
    "project_exists",
    "remote_state_file_path",
    "resolve_project_from_cwd",
    "state_file_path",
]
