"""
fsmonitor Package

A directory watcher that observes a fixed set of directories and hands one
normalized change record per filesystem notification to a host sink.

Features:
- Non-recursive watching of any number of directories
- CREATE, MODIFY, DELETE and OVERFLOW change events
- Deterministic per-entry file ids
- Automatic session rebuild when a watched directory goes away
- Cooperative stop with a bounded poll interval
"""

from .models import (
    EventType,
    ChangeEvent,
    RawNotification,
    compute_file_id,
)

from .config import (
    FsMonitorConfig,
    ConfigSetting,
    CONFIG_SCHEMA,
    DEFAULT_PATHS,
)

from .exceptions import (
    FsMonitorError,
    ConfigError,
    RegistrationError,
    SessionInvalidated,
    WaitInterruptedError,
    WatcherAlreadyRunningError,
)

from .session import WatchSession, WatchKey, Registration, KeyEventHandler
from .watcher import DirectoryWatcher, StopSignal, WatcherState, WatcherStats


__all__ = [
    # Models
    "EventType",
    "ChangeEvent",
    "RawNotification",
    "compute_file_id",
    # Config
    "FsMonitorConfig",
    "ConfigSetting",
    "CONFIG_SCHEMA",
    "DEFAULT_PATHS",
    # Exceptions
    "FsMonitorError",
    "ConfigError",
    "RegistrationError",
    "SessionInvalidated",
    "WaitInterruptedError",
    "WatcherAlreadyRunningError",
    # Session
    "WatchSession",
    "WatchKey",
    "Registration",
    "KeyEventHandler",
    # Watcher
    "DirectoryWatcher",
    "StopSignal",
    "WatcherState",
    "WatcherStats",
]

__version__ = "0.1.0"
