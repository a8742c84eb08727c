"""
Configuration loader — reads config.yml into the Settings model.

Settings tune timeouts, the retry policy, the offline threshold and
the refresh/caching intervals. Every key is optional; a missing file
means defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Default config location
CONFIG_ENV_VAR = "LAUNCHPLANE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/launchplane/config.yml")
DEFAULT_AUDIT_PATH = "~/.local/state/launchplane/audit.ndjson"


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""


class RetrySettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_retries: int = Field(default=3, ge=0)
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    exponential_backoff: bool = True


class OfflineSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    threshold: int = Field(default=3, ge=1)
    reconnect_interval: float = Field(default=30.0, gt=0)


class RefreshSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    active_interval: float = Field(default=10.0, gt=0)
    idle_interval: float = Field(default=30.0, gt=0)
    idle_threshold: float = Field(default=60.0, ge=0)


class MetadataCacheSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_size: int = Field(default=100, ge=1)


class AuditSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str | None = DEFAULT_AUDIT_PATH  # None disables the ledger


class Settings(BaseModel):
    """Root settings model."""

    model_config = ConfigDict(extra="forbid")

    command_timeout: float = Field(default=30.0, gt=0)
    auth_timeout: float = Field(default=300.0, gt=0)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    offline: OfflineSettings = Field(default_factory=OfflineSettings)
    refresh: RefreshSettings = Field(default_factory=RefreshSettings)
    metadata_cache: MetadataCacheSettings = Field(default_factory=MetadataCacheSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Resolve which config file to read.

    Precedence: explicit path > $LAUNCHPLANE_CONFIG > ~/.config/launchplane/config.yml.
    The explicit and env-var paths are returned even when missing so that
    load_settings() can report them.
    """
    if explicit is not None:
        return explicit

    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()

    candidate = DEFAULT_CONFIG_PATH.expanduser()
    if candidate.is_file():
        return candidate
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit config path. If None, uses find_config_file().

    Returns:
        Validated Settings (defaults when no config file exists).

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No config file found, using defaults")
        return Settings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings
