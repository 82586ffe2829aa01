"""Process-wide settings for test groups.

Settings start from the ``[tool.testgroup]`` table of the nearest
``pyproject.toml`` and can be changed at runtime with :func:`verbose`,
:func:`catch_exceptions`, :func:`dont_catch_exceptions` and :func:`logfile`::

    [tool.testgroup]
    verbosity = 1
    catch-exceptions = true
    logfile = "build/testgroup.log"
"""

from __future__ import annotations

import logging
import threading
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TextIO

from pydantic import BaseModel, ConfigDict, ValidationError

from testgroup.errors import ConfigError, LogfileError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "pyproject.toml"


class GroupConfig(BaseModel):
    """Validated contents of ``[tool.testgroup]``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=lambda name: name.replace("_", "-"),
    )

    verbosity: Literal[0, 1] = 0
    catch_exceptions: bool = True
    logfile: Path | None = None


DEFAULT_CONFIG = GroupConfig()


def find_config_file(start: Path | None = None) -> Path | None:
    """Return the nearest pyproject.toml at or above ``start`` (default: cwd)."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def load_config(start: Path | None = None) -> GroupConfig:
    """Load ``[tool.testgroup]``, falling back to defaults when absent."""
    path = find_config_file(start)
    if path is None:
        return DEFAULT_CONFIG

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(path, exc) from exc

    table = data.get("tool", {}).get("testgroup")
    if table is None:
        return DEFAULT_CONFIG

    try:
        config = GroupConfig.model_validate(table)
    except ValidationError as exc:
        raise ConfigError(path, exc) from exc

    logger.debug("Loaded testgroup configuration from %s", path)
    if config.logfile is not None and not config.logfile.is_absolute():
        config = config.model_copy(update={"logfile": path.parent / config.logfile})
    return config


@dataclass
class Settings:
    """Live, mutable settings consulted by every group run."""

    verbosity: int = 0
    catch_exceptions: bool = True
    logfile: Path | None = None
    _log_stream: TextIO | None = field(default=None, repr=False)

    @property
    def log_stream(self) -> TextIO | None:
        return self._log_stream

    def open_logfile(self, path: str | Path) -> None:
        """Truncate and open ``path``; it stays open for the process lifetime."""
        path = Path(path)
        try:
            stream = path.open("w", encoding="utf-8")
        except OSError as exc:
            raise LogfileError(path, exc) from exc
        self.close_logfile()
        self.logfile = path
        self._log_stream = stream

    def close_logfile(self) -> None:
        if self._log_stream is not None:
            self._log_stream.close()
        self._log_stream = None
        self.logfile = None

    def apply(self, config: GroupConfig) -> None:
        self.verbosity = config.verbosity
        self.catch_exceptions = config.catch_exceptions
        if config.logfile is not None:
            self.open_logfile(config.logfile)
        else:
            self.close_logfile()


_settings: Settings | None = None
_settings_lock = threading.Lock()


def settings() -> Settings:
    """Return the process-wide settings, loading pyproject.toml on first use."""
    global _settings
    with _settings_lock:
        if _settings is None:
            loaded = Settings()
            loaded.apply(load_config())
            _settings = loaded
        return _settings


def configure(config: GroupConfig) -> Settings:
    """Replace the current settings with ``config``."""
    current = settings()
    current.apply(config)
    return current


def reset_settings(config: GroupConfig = DEFAULT_CONFIG) -> None:
    """Restore ``config`` (defaults unless given), closing any open log file."""
    global _settings
    with _settings_lock:
        if _settings is not None:
            _settings.close_logfile()
        fresh = Settings()
        fresh.apply(config)
        _settings = fresh


def verbose(level: int) -> None:
    """Set the verbosity level; 0 is quietest and only 0 and 1 are meaningful."""
    settings().verbosity = level


def catch_exceptions() -> None:
    """Make exceptions raised by group bodies fail the group (the default)."""
    settings().catch_exceptions = True


def dont_catch_exceptions() -> None:
    """Let exceptions raised by group bodies propagate to the caller."""
    settings().catch_exceptions = False


def logfile(path: str | Path) -> None:
    """Write caught exceptions to ``path`` instead of harness diagnostics."""
    settings().open_logfile(path)


__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CONFIG",
    "GroupConfig",
    "Settings",
    "catch_exceptions",
    "configure",
    "dont_catch_exceptions",
    "find_config_file",
    "load_config",
    "logfile",
    "reset_settings",
    "settings",
    "verbose",
]
