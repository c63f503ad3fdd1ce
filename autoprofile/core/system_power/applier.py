from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from ..logging_utils import log_throttled
from ..state.records import LastAppliedStore
from ..utils.exceptions import BackendError, BackendRejected
from .backends import StateBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Applied:
    state: str
    previous: Optional[str]


@dataclass(frozen=True)
class NoOp:
    state: str


@dataclass(frozen=True)
class ApplyFailed:
    state: str
    error: BackendError


ApplyResult = Union[Applied, NoOp, ApplyFailed]


class StateApplier:
    """Idempotently pushes a target state to the backend.

    Never retries within a call; the caller's next tick is the retry. On
    success (Applied or NoOp) it is the only writer of the last-applied state.
    """

    def __init__(self, backend: StateBackend, last_applied: LastAppliedStore, *, verify: bool = True) -> None:
        self.backend = backend
        self.last_applied = last_applied
        self.verify = bool(verify)

    def _set(self, target: str, current: str) -> ApplyResult:
        if not self.backend.set_state(target):
            raise BackendRejected(f"backend refused {target!r}")

        if self.verify:
            now = self.backend.get_state()
            if now != target:
                raise BackendRejected(f"backend reports {now!r} after setting {target!r}")

        return Applied(state=target, previous=current)

    def apply(self, target: str, *, on_ac: Optional[bool] = None) -> ApplyResult:
        try:
            current = self.backend.get_state()
            if current == target:
                logger.debug("Profile %r already active", target)
                result: ApplyResult = NoOp(state=target)
            else:
                result = self._set(target, current)
        except BackendError as exc:
            log_throttled(
                logger,
                f"apply:{type(exc).__name__}",
                interval_s=60.0,
                level=logging.WARNING,
                msg=f"Cannot apply profile {target!r}: {exc}",
            )
            return ApplyFailed(state=target, error=exc)

        if isinstance(result, Applied):
            logger.info("Applied profile: %s (was %s)", result.state, result.previous)

        try:
            self.last_applied.write(state=target, on_ac=on_ac)
        except OSError as exc:
            logger.warning("Failed to record last applied state: %s", exc)

        return result
