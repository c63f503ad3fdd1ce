from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from ..utils.exceptions import AlreadyRunning, LockAcquireError

logger = logging.getLogger(__name__)


def _pid_alive(pid: int) -> bool:
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else.
        return True
    return True


def _read_pid(path: Path) -> Optional[int]:
    try:
        raw = path.read_text(encoding="utf-8", errors="ignore").strip()
    except OSError:
        return None
    if raw.startswith("pid="):
        raw = raw[4:]
    try:
        return int(raw)
    except ValueError:
        return None


class InstanceLock:
    """PID file guaranteeing a single running daemon.

    A file naming a live process (other than us) means another instance
    owns it; a stale or garbled file is taken over.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def _create_exclusive(self) -> bool:
        """Create the PID file only if absent. False when it already exists."""

        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(f"{os.getpid()}\n")
            # link() fails on an existing path, so the PID file appears complete or not at all.
            os.link(tmp_path, self.path)
        except FileExistsError:
            return False
        except OSError as exc:
            raise LockAcquireError(f"Cannot write lock file {self.path}: {exc}") from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass
        return True

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            AlreadyRunning: a live process holds the lock.
            LockAcquireError: the lock file cannot be written.
        """

        for _attempt in range(2):
            if self._create_exclusive():
                self._held = True
                return

            pid = _read_pid(self.path)
            if pid == os.getpid():
                self._held = True
                return
            if pid is not None and _pid_alive(pid):
                raise AlreadyRunning(pid)

            logger.info("Removing stale lock (%s)", pid if pid is not None else "unreadable")
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise LockAcquireError(f"Cannot remove stale lock file {self.path}: {exc}") from exc

        # Lost the takeover race to another instance.
        pid = _read_pid(self.path)
        raise AlreadyRunning(pid if pid is not None else -1)

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        # Only remove the file while it still names us.
        if _read_pid(self.path) != os.getpid():
            return
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove lock file %s: %s", self.path, exc)
