"""Directory watcher: the start/stop/await lifecycle around watch sessions."""

import logging
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from .config import CONFIG_SCHEMA, FsMonitorConfig, normalize_paths
from .exceptions import SessionInvalidated, WaitInterruptedError, WatcherAlreadyRunningError
from .models import ChangeEvent, EventType
from .session import WatchKey, WatchSession

logger = logging.getLogger(__name__)

Sink = Callable[[Dict[str, Any]], None]


class WatcherState(Enum):
    """Lifecycle states of a DirectoryWatcher."""
    CREATED = "created"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class WatcherStats:
    """Counters kept by the watcher for observability."""
    sessions_opened: int = 0
    active_registrations: int = 0
    registration_failures: int = 0
    events_emitted: int = 0
    overflows: int = 0


class StopSignal:
    """A one-way stop flag plus a completion latch that fires once."""

    def __init__(self):
        self._requested = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()

    def request(self) -> None:
        self._requested.set()

    @property
    def requested(self) -> bool:
        return self._requested.is_set()

    def wait_requested(self, timeout: float) -> bool:
        """Sleep up to ``timeout`` seconds, waking early on a stop request."""
        return self._requested.wait(timeout)

    def complete(self) -> bool:
        """
        Fire the latch.

        Returns:
            True for the call that fired it, False afterwards
        """
        with self._lock:
            if self._done.is_set():
                return False
            self._done.set()
            return True

    @property
    def completed(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)


class DirectoryWatcher:
    """
    Watches a fixed set of directories and emits one record per change.

    The whole session/poll/emit loop runs on the thread that calls start().
    stop() and await_stopped() may be called from any thread.
    """

    def __init__(
        self,
        watcher_id: str,
        paths: Optional[Sequence[str]] = None,
        config: Optional[FsMonitorConfig] = None,
    ):
        """
        Initialize the watcher.

        Args:
            watcher_id: Host-assigned identifier, not interpreted
            paths: Directories to watch (overrides config.paths)
            config: Watcher configuration

        Raises:
            ConfigError: If the path list is structurally invalid
        """
        self.id = watcher_id
        self.config = config or FsMonitorConfig()
        if paths is not None:
            self.config = replace(self.config, paths=normalize_paths(paths))

        self._signal = StopSignal()
        self._stats = WatcherStats()
        self._started = False
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, watcher_id: str, settings: Mapping[str, Any]) -> "DirectoryWatcher":
        """Create a watcher from a host settings mapping."""
        return cls(watcher_id, config=FsMonitorConfig.from_dict(settings))

    @staticmethod
    def config_schema():
        """Settings understood by from_settings."""
        return CONFIG_SCHEMA

    @property
    def paths(self):
        return list(self.config.paths)

    @property
    def state(self) -> WatcherState:
        if self._signal.completed:
            return WatcherState.STOPPED
        if not self._started:
            return WatcherState.CREATED
        if self._signal.requested:
            return WatcherState.STOPPING
        return WatcherState.RUNNING

    @property
    def stats(self) -> WatcherStats:
        """Return a copy of the current counters."""
        with self._lock:
            return replace(self._stats)

    def start(self, sink: Sink) -> None:
        """
        Run the watcher on the calling thread until stopped (blocking).

        Args:
            sink: Called with one ``{"message": ...}`` record per change

        Raises:
            WatcherAlreadyRunningError: If start was already called
        """
        with self._lock:
            if self._started:
                raise WatcherAlreadyRunningError(f"Watcher {self.id} was already started")
            self._started = True

        try:
            if self._signal.requested:
                logger.info(f"Watcher {self.id} stopped before start")
                return
            logger.info(f"Starting watcher {self.id} for {len(self.config.paths)} path(s)")
            self._run(sink)
        finally:
            self._signal.request()
            if self._signal.complete():
                logger.info(f"Watcher {self.id} stopped")

    def start_async(self, sink: Sink) -> threading.Thread:
        """
        Run the watcher on a background thread.

        Returns:
            The worker thread
        """
        thread = threading.Thread(target=self.start, args=(sink,), name=f"fsmonitor-{self.id}")
        thread.daemon = True
        thread.start()
        return thread

    def stop(self) -> None:
        """Request a cooperative stop. Non-blocking and idempotent."""
        self._signal.request()

    def await_stopped(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the watcher has stopped.

        Args:
            timeout: Optional maximum seconds to wait

        Returns:
            True if stopped, False if the timeout elapsed first
        """
        return self._signal.wait(timeout)

    @property
    def is_stopped(self) -> bool:
        return self._signal.completed

    def _run(self, sink: Sink) -> None:
        """Outer loop: one watch session per iteration."""
        while not self._signal.requested:
            with WatchSession(self.config) as session:
                self._register_all(session)
                self._serve(session, sink)

            if self._signal.requested:
                break
            logger.info(f"Rebuilding watch session for watcher {self.id}")
            self._signal.wait_requested(self.config.rebuild_delay)

    def _register_all(self, session: WatchSession) -> None:
        registered = 0
        failures = 0
        for path in self.config.paths:
            registration = session.register(path)
            if registration.ok:
                registered += 1
            else:
                failures += 1
                logger.warning(str(registration.error))

        with self._lock:
            self._stats.sessions_opened += 1
            self._stats.active_registrations = registered
            self._stats.registration_failures += failures
        logger.info(f"Watch session opened with {registered} of {len(self.config.paths)} path(s)")

    def _serve(self, session: WatchSession, sink: Sink) -> None:
        """Inner loop: returns when stopped or the session must be rebuilt."""
        while not self._signal.requested:
            try:
                key = session.poll(self.config.poll_interval)
            except SessionInvalidated as e:
                logger.warning(f"Watch session invalidated: {e}")
                self._flush(session, sink)
                return
            except WaitInterruptedError:
                logger.info(f"Watcher {self.id} interrupted")
                self.stop()
                return

            if key is None:
                continue

            self._emit(key, sink)

            if not key.reset():
                logger.warning(f"Watch on {key.directory} is no longer valid")
                self._emit(key, sink)
                self._flush(session, sink)
                return

    def _flush(self, session: WatchSession, sink: Sink) -> None:
        """Deliver everything already queued before the session is discarded."""
        for key in session.drain():
            self._emit(key, sink)

    def _emit(self, key: WatchKey, sink: Sink) -> None:
        for notification in key.poll_events():
            event = ChangeEvent.from_notification(key.directory, notification)
            if event.event_type is EventType.OVERFLOW:
                logger.warning(f"{notification.count} notification(s) dropped for {key.directory}")
                with self._lock:
                    self._stats.overflows += 1
            logger.debug(f"Emitting {event.event_type.value} {event.file_name!r} in {event.file_path}")
            sink(event.to_record())
            with self._lock:
                self._stats.events_emitted += 1
