"""Watch sessions built on the watchdog library."""

import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import List, Optional

from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver
from watchdog.events import FileSystemEventHandler

from .config import FsMonitorConfig
from .exceptions import RegistrationError, SessionInvalidated, WaitInterruptedError
from .models import EventType, RawNotification

logger = logging.getLogger(__name__)


class WatchKey:
    """
    Subscription lease for one watched directory.

    Notifications queue on the key and the first one signals the key to
    its session. Once the worker has drained the key it must call reset()
    to receive further notifications; a key that cannot be reset is dead.
    """

    def __init__(self, session: "WatchSession", directory: str, max_pending: int):
        self.directory = directory
        self.real_path = os.path.realpath(directory)
        self._session = session
        self._max_pending = max_pending
        self._lock = threading.Lock()
        self._pending: List[RawNotification] = []
        self._signalled = False
        self._valid = True

    @property
    def is_valid(self) -> bool:
        with self._lock:
            return self._valid

    def signal(self, notification: RawNotification) -> None:
        """Queue a notification, collapsing into OVERFLOW past the bound."""
        with self._lock:
            if not self._valid:
                return
            if len(self._pending) >= self._max_pending:
                last = self._pending[-1]
                if last.event_type is EventType.OVERFLOW:
                    last.count += notification.count
                    return
                notification = RawNotification(EventType.OVERFLOW, "", count=notification.count)
            self._pending.append(notification)
            self._notify()

    def cancel(self) -> None:
        """Invalidate the key; it is still delivered once so pending events drain."""
        with self._lock:
            if not self._valid:
                return
            self._valid = False
            self._notify()

    def poll_events(self) -> List[RawNotification]:
        """Remove and return all pending notifications in arrival order."""
        with self._lock:
            events = self._pending
            self._pending = []
            return events

    def reset(self) -> bool:
        """
        Renew the lease after a batch has been handled.

        Returns:
            False if the key is cancelled or its directory is gone
        """
        with self._lock:
            if self._valid and not os.path.isdir(self.directory):
                self._valid = False
            if not self._valid:
                self._signalled = False
                return False
            if self._pending:
                self._session._ready.put(self)
            else:
                self._signalled = False
            return True

    def _notify(self) -> None:
        # Caller holds self._lock.
        if not self._signalled:
            self._signalled = True
            self._session._ready.put(self)

    def __repr__(self) -> str:
        return f"WatchKey({self.directory!r}, valid={self._valid})"


@dataclass(frozen=True)
class Registration:
    """Outcome of registering one path with a session."""
    path: str
    key: Optional[WatchKey] = None
    error: Optional[RegistrationError] = None

    @property
    def ok(self) -> bool:
        return self.key is not None


class KeyEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events into notifications on one key."""

    def __init__(self, key: WatchKey, config: FsMonitorConfig):
        super().__init__()
        self.key = key
        self.config = config

    def _entry_name(self, path) -> Optional[str]:
        """Return the entry name if ``path`` lies directly in the directory."""
        path = os.fsdecode(path)
        if os.path.realpath(os.path.dirname(path)) != self.key.real_path:
            return None
        return os.path.basename(path)

    def _is_self(self, path) -> bool:
        return os.path.realpath(os.fsdecode(path)) == self.key.real_path

    def _emit(self, event_type: EventType, path) -> None:
        name = self._entry_name(path)
        if not name or self.config.should_ignore(name):
            return
        self.key.signal(RawNotification(event_type, name))

    def on_created(self, event):
        self._emit(EventType.CREATE, event.src_path)

    def on_modified(self, event):
        self._emit(EventType.MODIFY, event.src_path)

    def on_deleted(self, event):
        if self._entry_name(event.src_path) is None and self._is_self(event.src_path):
            logger.warning(f"Watched directory deleted: {self.key.directory}")
            self.key.cancel()
            return
        self._emit(EventType.DELETE, event.src_path)

    def on_moved(self, event):
        if self._entry_name(event.src_path) is None and self._is_self(event.src_path):
            logger.warning(f"Watched directory moved: {self.key.directory}")
            self.key.cancel()
            return
        self._emit(EventType.DELETE, event.src_path)
        if event.dest_path:
            self._emit(EventType.CREATE, event.dest_path)


class WatchSession:
    """
    One watch handle: a watchdog observer plus a key per registered path.

    Keys that have notifications are handed out by poll() in the order
    they were signalled. The session is owned by a single worker thread.
    """

    def __init__(self, config: Optional[FsMonitorConfig] = None):
        """
        Initialize the session.

        Args:
            config: Watcher configuration
        """
        self.config = config or FsMonitorConfig()
        observer_class = PollingObserver if self.config.use_polling else Observer
        self._observer = observer_class(timeout=self.config.observer_timeout)
        self._ready: "queue.Queue[WatchKey]" = queue.Queue()
        self._keys: List[WatchKey] = []
        self._opened = False
        self._closed = False

    def open(self) -> None:
        """Start the observer; paths are registered afterwards."""
        self._observer.start()
        self._opened = True

    def register(self, path: str) -> Registration:
        """
        Register a directory for create/modify/delete notifications.

        Args:
            path: Directory to watch, non-recursively

        Returns:
            Registration holding either the new key or the error
        """
        if self._closed:
            return Registration(path, error=RegistrationError(path, "session is closed"))
        if not os.path.exists(path):
            return Registration(path, error=RegistrationError(path, "does not exist"))
        if not os.path.isdir(path):
            return Registration(path, error=RegistrationError(path, "not a directory"))

        key = WatchKey(self, path, self.config.max_pending_events)
        handler = KeyEventHandler(key, self.config)
        try:
            self._observer.schedule(handler, path, recursive=False)
        except OSError as e:
            return Registration(path, error=RegistrationError(path, e.strerror or str(e)))

        self._keys.append(key)
        return Registration(path, key=key)

    def poll(self, timeout: float) -> Optional[WatchKey]:
        """
        Wait for the next signalled key.

        Args:
            timeout: Seconds to wait

        Returns:
            The key, or None if nothing arrived in time

        Raises:
            SessionInvalidated: If the observer is no longer running
            WaitInterruptedError: If the wait was interrupted
        """
        self._sweep()
        try:
            return self._ready.get(timeout=timeout)
        except queue.Empty:
            pass
        except KeyboardInterrupt as e:
            raise WaitInterruptedError("Wait for notifications interrupted") from e

        self._sweep()
        if self._opened and not self._observer.is_alive():
            raise SessionInvalidated("Observer thread is no longer running")
        return None

    def drain(self) -> List[WatchKey]:
        """Remove and return every key already signalled, without waiting."""
        keys = []
        while True:
            try:
                keys.append(self._ready.get_nowait())
            except queue.Empty:
                return keys

    def _sweep(self) -> None:
        # Directories can vanish without a notification (e.g. renamed away).
        for key in self._keys:
            if key.is_valid and not os.path.isdir(key.directory):
                key.cancel()

    @property
    def keys(self) -> List[WatchKey]:
        return list(self._keys)

    def close(self) -> None:
        """Stop the observer and cancel all keys. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        for key in self._keys:
            key.cancel()

        if self._opened:
            self._observer.stop()
            self._observer.join(timeout=self.config.join_timeout)
            if self._observer.is_alive():
                logger.warning("Observer thread did not stop in time")

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "WatchSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __len__(self) -> int:
        """Return the number of registered keys."""
        return len(self._keys)
