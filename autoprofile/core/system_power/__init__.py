from __future__ import annotations

from .applier import Applied, ApplyFailed, ApplyResult, NoOp, StateApplier
from .backends import InMemoryBackend, PowerProfilesCtlBackend, StateBackend

__all__ = [
    "Applied",
    "ApplyFailed",
    "ApplyResult",
    "InMemoryBackend",
    "NoOp",
    "PowerProfilesCtlBackend",
    "StateApplier",
    "StateBackend",
]
