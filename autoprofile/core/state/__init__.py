from __future__ import annotations

from .instance_lock import InstanceLock
from .records import LastAppliedState, LastAppliedStore, OverrideStore

__all__ = ["InstanceLock", "LastAppliedState", "LastAppliedStore", "OverrideStore"]
