"""Configuration management for tandem."""

import os
import tomllib
from pathlib import Path

import tomli_w
from pydantic import BaseModel, Field, ValidationError, field_validator

from .constants import (
    CONFIG_FILENAME,
    DEFAULT_IGNORE,
    DEFAULT_SYNC_MODE,
    PROJECTS_DIR_NAME,
    SESSION_HMAC_KEY,
    SESSION_TTL_HOURS,
    TANDEM_HOME_DIR,
    TANDEM_HOME_ENV,
)

VALID_SYNC_MODES = ("two-way-resolved", "two-way-safe", "one-way-replica", "one-way-safe")


class ConfigError(Exception):
    """Configuration file is missing required data or cannot be parsed."""


class RemoteConfig(BaseModel):
    """A remote host that stores project replicas."""

    host: str
    user: str | None = None
    path: str = Field(description="Base directory holding projects on the remote")
    key: str | None = Field(default=None, description="SSH identity file")

    @property
    def host_spec(self) -> str:
        """SSH destination in user@host form."""
        return f"{self.user}@{self.host}" if self.user else self.host

    def project_path(self, project: str) -> str:
        return f"{self.path.rstrip('/')}/{project}"


class EncryptionConfig(BaseModel):
    """At-rest encryption of the remote copy."""

    enabled: bool = False
    salt: str | None = None  # hex-encoded


class ProjectConfig(BaseModel):
    """Per-project settings."""

    remote: str
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)


class DefaultsConfig(BaseModel):
    """Defaults applied to every sync session."""

    sync_mode: str = DEFAULT_SYNC_MODE
    ignore: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE))

    @field_validator("sync_mode")
    @classmethod
    def validate_sync_mode(cls, value: str) -> str:
        if value not in VALID_SYNC_MODES:
            raise ValueError(f"sync_mode must be one of: {', '.join(VALID_SYNC_MODES)}")
        return value


class IdentityConfig(BaseModel):
    """Overrides for the identity stamped into coordination records.

    Unset fields fall back to the local hostname and OS account name.
    """

    machine: str | None = None
    user: str | None = None


class SessionConfig(BaseModel):
    """Local session record settings."""

    ttl_hours: float = Field(default=SESSION_TTL_HOURS, gt=0)
    hmac_key: str = SESSION_HMAC_KEY


class TandemConfig(BaseModel):
    """Root configuration for tandem."""

    remotes: dict[str, RemoteConfig] = Field(default_factory=dict)
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    identity: IdentityConfig = Field(default_factory=IdentityConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    editor: str | None = None

    def get_remote(self, name: str) -> RemoteConfig:
        """Look up a remote by name.

        Raises:
            ConfigError: If the remote is not configured
        """
        remote = self.remotes.get(name)
        if remote is None:
            raise ConfigError(f"Remote '{name}' is not configured")
        return remote

    def remote_for_project(self, project: str) -> RemoteConfig | None:
        """Resolve the remote a project syncs against.

        Projects without an explicit entry fall back to the only configured
        remote, if there is exactly one.
        """
        project_cfg = self.projects.get(project)
        if project_cfg is not None:
            return self.get_remote(project_cfg.remote)
        if len(self.remotes) == 1:
            return next(iter(self.remotes.values()))
        return None


def get_tandem_home() -> Path:
    """Return the tandem home directory (``$TANDEM_HOME`` or ``~/.tandem``)."""
    override = os.environ.get(TANDEM_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / TANDEM_HOME_DIR


def get_projects_dir(home: Path | None = None) -> Path:
    return (home or get_tandem_home()) / PROJECTS_DIR_NAME


def config_path(home: Path | None = None) -> Path:
    return (home or get_tandem_home()) / CONFIG_FILENAME


def config_exists(home: Path | None = None) -> bool:
    return config_path(home).exists()


def load_config(home: Path | None = None) -> TandemConfig:
    """Load config from the tandem home directory.

    Args:
        home: Tandem home directory (defaults to get_tandem_home())

    Returns:
        Loaded configuration, or defaults if config.toml doesn't exist

    Raises:
        ConfigError: If the file is not valid TOML or fails validation
    """
    path = config_path(home)
    if not path.exists():
        return TandemConfig()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return TandemConfig.model_validate(data)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


def save_config(config: TandemConfig, home: Path | None = None) -> Path:
    """Write configuration back to config.toml."""
    path = config_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json", exclude_none=True)
    with open(path, "wb") as f:
        tomli_w.dump(data, f)
    return path


def write_config_template(
    remote_name: str,
    host: str,
    base_path: str,
    user: str | None = None,
    home: Path | None = None,
) -> Path:
    """Write a starter config.toml with a single remote.

    Args:
        remote_name: Name for the remote entry
        host: SSH host (or ssh config alias)
        base_path: Directory on the remote holding projects
        user: Optional SSH user
        home: Tandem home directory

    Returns:
        Path to the written config file
    """
    config = TandemConfig(
        remotes={remote_name: RemoteConfig(host=host, user=user, path=base_path)},
    )
    return save_config(config, home)
