"""Local project layout: where projects live and how they are resolved."""

from pathlib import Path

from ..config import get_projects_dir
from ..services.validation import InvalidInputError, validate_project_name


class ProjectError(Exception):
    """Project cannot be resolved or is not present locally."""


def get_project_path(project: str, home: Path | None = None) -> Path:
    """Local path of a project.

    Raises:
        ProjectError: If the name is not a safe single path segment
    """
    try:
        validate_project_name(project)
    except InvalidInputError as e:
        raise ProjectError(str(e)) from e
    return get_projects_dir(home) / project


def project_exists(project: str, home: Path | None = None) -> bool:
    try:
        return get_project_path(project, home).is_dir()
    except ProjectError:
        return False


def get_local_projects(home: Path | None = None) -> list[str]:
    """Names of all projects checked out locally, sorted."""
    projects_dir = get_projects_dir(home)
    if not projects_dir.is_dir():
        return []
    return sorted(
        p.name for p in projects_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
    )


def resolve_project_from_cwd(cwd: Path | None = None, home: Path | None = None) -> str | None:
    """Return the project containing ``cwd``, if it is inside the projects dir."""
    cwd = (cwd or Path.cwd()).resolve()
    projects_dir = get_projects_dir(home).resolve()
    try:
        relative = cwd.relative_to(projects_dir)
    except ValueError:
        return None
    return relative.parts[0] if relative.parts else None
