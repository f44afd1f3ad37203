"""Configuration for the fsmonitor package."""

import fnmatch
import os
from dataclasses import dataclass, field, fields
from typing import Any, List, Mapping, Tuple

from .exceptions import ConfigError


DEFAULT_PATHS: Tuple[str, ...] = (".",)


@dataclass(frozen=True)
class ConfigSetting:
    """Describes one setting a host may supply."""
    name: str
    type: type
    default: Any
    required: bool = False


@dataclass
class FsMonitorConfig:
    """
    Configuration options for the directory watcher.

    Attributes:
        paths: Directories to watch, non-recursively, in registration order
        poll_interval: Seconds to wait for notifications before re-checking
            the stop flag
        rebuild_delay: Seconds to wait before reopening an invalidated session
        max_pending_events: Notifications queued per directory before
            further ones are replaced by a single OVERFLOW
        use_polling: Use watchdog's polling observer instead of the native one
        observer_timeout: Timeout handed to the watchdog observer and emitters
        join_timeout: Seconds to wait for the observer thread on close
        ignore_patterns: Glob patterns for entry names to ignore
    """
    paths: List[str] = field(default_factory=lambda: list(DEFAULT_PATHS))
    poll_interval: float = 0.25
    rebuild_delay: float = 0.1
    max_pending_events: int = 512
    use_polling: bool = False
    observer_timeout: float = 0.1
    join_timeout: float = 2.0
    ignore_patterns: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.paths = normalize_paths(self.paths)
        self.validate()

    def validate(self) -> None:
        """
        Coerce numeric settings and check value ranges.

        Raises:
            ConfigError: If a setting has the wrong type or is out of range
        """
        for name in ("poll_interval", "rebuild_delay", "observer_timeout", "join_timeout"):
            try:
                setattr(self, name, float(getattr(self, name)))
            except (TypeError, ValueError):
                raise ConfigError(f"{name} must be a number, got {getattr(self, name)!r}") from None
        try:
            self.max_pending_events = int(self.max_pending_events)
        except (TypeError, ValueError):
            raise ConfigError(
                f"max_pending_events must be an integer, got {self.max_pending_events!r}"
            ) from None
        if isinstance(self.ignore_patterns, str):
            self.ignore_patterns = [self.ignore_patterns]
        try:
            self.ignore_patterns = list(self.ignore_patterns)
        except TypeError:
            raise ConfigError("ignore_patterns must be a list of strings") from None
        if not all(isinstance(p, str) for p in self.ignore_patterns):
            raise ConfigError("ignore_patterns must be a list of strings")
        self.use_polling = bool(self.use_polling)

        for name in ("poll_interval", "observer_timeout", "join_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.rebuild_delay < 0:
            raise ConfigError("rebuild_delay must not be negative")
        if self.max_pending_events < 1:
            raise ConfigError("max_pending_events must be at least 1")

    def should_ignore(self, name: str) -> bool:
        """
        Check if an entry name matches one of the ignore patterns.

        Args:
            name: Entry name relative to its directory

        Returns:
            True if the entry should be ignored
        """
        return any(fnmatch.fnmatch(name, pattern) for pattern in self.ignore_patterns)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FsMonitorConfig":
        """
        Create from a host settings mapping.

        Raises:
            ConfigError: On unknown settings or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(unknown)}")
        try:
            return cls(**dict(data))
        except TypeError as e:
            raise ConfigError(f"Invalid settings: {e}") from e

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


CONFIG_SCHEMA: Tuple[ConfigSetting, ...] = (
    ConfigSetting("paths", list, list(DEFAULT_PATHS)),
    ConfigSetting("poll_interval", float, 0.25),
    ConfigSetting("rebuild_delay", float, 0.1),
    ConfigSetting("max_pending_events", int, 512),
    ConfigSetting("use_polling", bool, False),
    ConfigSetting("observer_timeout", float, 0.1),
    ConfigSetting("join_timeout", float, 2.0),
    ConfigSetting("ignore_patterns", list, []),
)


def normalize_paths(paths: Any) -> List[str]:
    """
    Turn a path setting into a list of path strings.

    A single string or path-like is a one-element list; ``None`` gives
    the default paths.

    Raises:
        ConfigError: If the value is not a path or an iterable of paths
    """
    if paths is None:
        return list(DEFAULT_PATHS)
    if isinstance(paths, (str, os.PathLike)):
        return [os.fspath(paths)]
    if isinstance(paths, (bytes, Mapping)):
        raise ConfigError(f"paths must be a list of paths, got {type(paths).__name__}")
    try:
        items = list(paths)
    except TypeError:
        raise ConfigError(f"paths must be a list of paths, got {type(paths).__name__}") from None

    result = []
    for item in items:
        if not isinstance(item, (str, os.PathLike)):
            raise ConfigError(f"Invalid path entry: {item!r}")
        result.append(os.fspath(item))
    return result
