from __future__ import annotations

import logging
import subprocess
from typing import Optional, Protocol

from ..utils.exceptions import BackendRejected, BackendUnavailable, is_command_missing, is_permission_denied

logger = logging.getLogger(__name__)


class StateBackend(Protocol):
    def get_state(self) -> str: ...

    def set_state(self, state: str) -> bool: ...


class PowerProfilesCtlBackend:
    """power-profiles-daemon through its `powerprofilesctl` client.

    Every call is bounded by *timeout_s*; a missing tool or a timeout raises
    BackendUnavailable.
    """

    def __init__(self, command: str = "powerprofilesctl", *, timeout_s: float = 2.0) -> None:
        self.command = command
        self.timeout_s = float(timeout_s)

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        argv = [self.command, *args]
        try:
            return subprocess.run(argv, check=False, capture_output=True, text=True, timeout=self.timeout_s)
        except subprocess.TimeoutExpired as exc:
            raise BackendUnavailable(f"{self.command} {' '.join(args)} timed out after {self.timeout_s}s") from exc
        except OSError as exc:
            if is_command_missing(exc):
                raise BackendUnavailable(f"{self.command} not found") from exc
            if is_permission_denied(exc):
                raise BackendUnavailable(f"{self.command} is not executable: permission denied") from exc
            raise BackendUnavailable(f"{self.command} could not be started: {exc}") from exc

    def get_state(self) -> str:
        cp = self._run("get")
        if cp.returncode != 0:
            raise BackendRejected(f"{self.command} get failed ({cp.returncode}): {cp.stderr.strip()}")
        state = cp.stdout.strip()
        if not state:
            raise BackendRejected(f"{self.command} get returned no profile")
        return state

    def set_state(self, state: str) -> bool:
        cp = self._run("set", state)
        if cp.returncode != 0:
            logger.debug("%s set %s failed (%s): %s", self.command, state, cp.returncode, cp.stderr.strip())
            return False
        return True


class InMemoryBackend:
    """Backend fake recording every mutating call."""

    def __init__(self, state: str = "balanced", *, available: bool = True, reject: bool = False) -> None:
        self.state = state
        self.available = available
        self.reject = reject
        self.set_calls: list[str] = []
        self.sticky_state: Optional[str] = None

    def get_state(self) -> str:
        if not self.available:
            raise BackendUnavailable("in-memory backend offline")
        return self.state

    def set_state(self, state: str) -> bool:
        if not self.available:
            raise BackendUnavailable("in-memory backend offline")
        self.set_calls.append(state)
        if self.reject:
            return False
        # A sticky state simulates a backend that accepts the call but ignores it.
        self.state = self.sticky_state or state
        return True
