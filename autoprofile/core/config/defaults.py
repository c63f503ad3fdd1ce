"""Default configuration values."""

from __future__ import annotations

DEFAULTS: dict = {
    # Ordered from top tier (used on AC) to bottom tier (used on low battery).
    "states": ["performance", "balanced", "power-saver"],
    # Battery percentage separating the bottom two states.
    "threshold": 30,
    # True: level == threshold already selects the bottom tier.
    "threshold_inclusive": True,
    # Seconds between polling ticks.
    "poll_interval": 2.0,
    # Use inotify on the override file and the power-supply tree.
    "watch_enabled": True,
    # Upper bound for any external command (seconds).
    "command_timeout": 2.0,
    # Re-query the backend after a set and treat a mismatch as a failure.
    "verify_apply": True,
    "notifications": False,
    "backend_command": "powerprofilesctl",
    "power_supply_root": "/sys/class/power_supply",
}
