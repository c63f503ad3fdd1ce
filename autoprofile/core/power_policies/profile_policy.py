from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config.config import Policy
from ..monitoring.power_supply_sysfs import SensorReading


@dataclass(frozen=True)
class OverrideRecord:
    """A profile the user forced manually."""

    state: str


def is_low_battery(level: int, policy: Policy) -> bool:
    if policy.threshold_inclusive:
        return int(level) <= int(policy.threshold)
    return int(level) < int(policy.threshold)


def decide(reading: SensorReading, override: Optional[OverrideRecord], policy: Policy) -> str:
    """Map a sensor reading (plus optional override) to the target state.

    Pure and IO-free. Precedence:
    - an override always wins, without looking at the threshold
    - on AC: top tier
    - on battery at/below the threshold: bottom tier
    - on battery above it: middle tier
    """

    if override is not None:
        return override.state

    if reading.connected:
        return policy.top_state

    if is_low_battery(reading.level, policy):
        return policy.bottom_state

    return policy.middle_state


def next_state(current: Optional[str], policy: Policy) -> str:
    """State following *current* in the configured order, wrapping around.

    Unknown or missing current states start the cycle at the top tier.
    """

    if current not in policy.states:
        return policy.top_state
    i = policy.states.index(current)
    return policy.states[(i + 1) % len(policy.states)]
