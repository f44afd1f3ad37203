"""Custom exceptions for the fsmonitor package."""


class FsMonitorError(Exception):
    """Base exception for all fsmonitor errors."""
    pass


class ConfigError(FsMonitorError):
    """Invalid watcher settings or path list."""
    pass


class RegistrationError(FsMonitorError):
    """
    A directory could not be registered with the watch session.

    Returned inside a Registration rather than raised; one bad path
    does not affect the others.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot watch {path}: {reason}")
        self.path = path
        self.reason = reason


class SessionInvalidated(FsMonitorError):
    """The watch session as a whole can no longer deliver notifications."""
    pass


class WaitInterruptedError(FsMonitorError):
    """The wait for notifications was interrupted from outside the watcher."""
    pass


class WatcherAlreadyRunningError(FsMonitorError):
    """Watcher has already been started."""
    pass
