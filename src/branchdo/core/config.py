"""
branchdo configuration.

The configuration file is optional.  When present it lives at
``~/.branchdo/config.toml`` (the directory can be moved with
``BRANCHDO_CONFIG_DIR``)::

    config_version = 1

    [database]
    path = "~/.branchdo/branchdo.db"

    [logging]
    level = "INFO"

    [editor]
    command = "nvim"

    [ui]
    show_help = true

Environment overrides (applied after the file is parsed):

  BRANCHDO_DB         database path
  BRANCHDO_LOG_LEVEL  logging level
  BRANCHDO_EDITOR     editor command (otherwise ``git var GIT_EDITOR``)
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from branchdo.core.exceptions import ConfigError, ConfigNotFoundError

CONFIG_FILENAME = "config.toml"
DB_FILENAME = "branchdo.db"
LOG_FILENAME = "branchdo.log"

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def config_dir() -> Path:
    """Return the branchdo state directory (not created)."""
    env = os.environ.get("BRANCHDO_CONFIG_DIR", "")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".branchdo"


class DatabaseConfig(BaseModel):
    path: str = ""


class LoggingConfig(BaseModel):
    level: str = "WARNING"
    path: str = ""

    @field_validator("level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level {value!r}. Valid values: {sorted(_LOG_LEVELS)}")
        return level


class EditorConfig(BaseModel):
    command: str = ""


class UIConfig(BaseModel):
    show_help: bool = False
    show_ids: bool = False


class BranchdoConfig(BaseModel):
    config_version: int = 1
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    ui: UIConfig = Field(default_factory=UIConfig)

    @property
    def db_path(self) -> Path:
        if self.database.path:
            return Path(self.database.path).expanduser().resolve()
        return config_dir() / DB_FILENAME

    @property
    def log_path(self) -> Path:
        if self.logging.path:
            return Path(self.logging.path).expanduser()
        return config_dir() / LOG_FILENAME


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    db = os.environ.get("BRANCHDO_DB", "")
    if db:
        data.setdefault("database", {})["path"] = db
    level = os.environ.get("BRANCHDO_LOG_LEVEL", "")
    if level:
        data.setdefault("logging", {})["level"] = level
    editor = os.environ.get("BRANCHDO_EDITOR", "")
    if editor:
        data.setdefault("editor", {})["command"] = editor
    return data


def load_config(path: Path | None = None) -> BranchdoConfig:
    """Load and validate the configuration.

    With an explicit *path* the file must exist.  Without one, the default
    location is tried and a missing file yields the defaults.
    """
    explicit = path is not None
    cfg_path = path if path is not None else config_dir() / CONFIG_FILENAME

    data: dict[str, Any] = {}
    if cfg_path.exists():
        try:
            with cfg_path.open("rb") as fh:
                data = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid TOML in {cfg_path}: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read {cfg_path}: {exc}") from exc
    elif explicit:
        raise ConfigNotFoundError(f"Config file not found: {cfg_path}")

    try:
        return BranchdoConfig.model_validate(_apply_env_overrides(data))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {cfg_path}: {exc}") from exc
