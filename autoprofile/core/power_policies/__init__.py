from __future__ import annotations

from .profile_policy import OverrideRecord, decide, is_low_battery, next_state

__all__ = ["OverrideRecord", "decide", "is_low_battery", "next_state"]
