from __future__ import annotations

import errno as _errno


class AutoProfileError(Exception):
    """Base class for daemon errors."""


class ConfigError(AutoProfileError):
    pass


class SensorUnavailable(AutoProfileError):
    """No readable power-supply source.

    Never fatal on its own: the sensor substitutes documented defaults.
    """


class BackendError(AutoProfileError):
    pass


class BackendUnavailable(BackendError):
    """Backend tool missing, or it did not answer within the timeout."""


class BackendRejected(BackendError):
    """Backend tool ran but reported failure."""


class CorruptPersistedState(AutoProfileError):
    def __init__(self, path, content: str) -> None:
        super().__init__(f"Invalid content in {path}: {content!r}")
        self.path = path
        self.content = content


class AlreadyRunning(AutoProfileError):
    def __init__(self, pid: int) -> None:
        super().__init__(f"Instance already running (PID {pid})")
        self.pid = pid


class LockAcquireError(AutoProfileError):
    pass


def is_command_missing(exc: Exception) -> bool:
    """Return whether *exc* means the executable itself could not be found."""

    if isinstance(exc, FileNotFoundError):
        return True
    return getattr(exc, "errno", None) == _errno.ENOENT


def is_permission_denied(exc: Exception) -> bool:
    if isinstance(exc, PermissionError):
        return True

    if getattr(exc, "errno", None) in (_errno.EPERM, _errno.EACCES):
        return True

    try:
        msg = str(exc).lower()
    except Exception:
        return False

    return "permission denied" in msg or "not permitted" in msg
