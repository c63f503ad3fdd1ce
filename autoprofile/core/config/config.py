"""Policy configuration.

The policy is read once at startup and never mutated; changing it requires a
daemon restart.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ..utils.exceptions import ConfigError
from .defaults import DEFAULTS
from .file_storage import load_config_settings
from .paths import config_file_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    states: tuple[str, ...]
    threshold: int = 30
    threshold_inclusive: bool = True
    poll_interval: float = 2.0
    watch_enabled: bool = True
    command_timeout: float = 2.0
    verify_apply: bool = True
    notifications: bool = False
    backend_command: str = "powerprofilesctl"
    power_supply_root: Path = Path("/sys/class/power_supply")

    def __post_init__(self) -> None:
        if len(self.states) < 2:
            raise ConfigError(f"At least two states are required, got {list(self.states)!r}")
        if len(set(self.states)) != len(self.states):
            raise ConfigError(f"Duplicate state names in {list(self.states)!r}")

    @property
    def top_state(self) -> str:
        return self.states[0]

    @property
    def middle_state(self) -> str:
        return self.states[-2]

    @property
    def bottom_state(self) -> str:
        return self.states[-1]

    def is_valid_state(self, name: Optional[str]) -> bool:
        return name is not None and name in self.states


def _coerce_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return default
    s = str(raw).strip().lower()
    if s in ("1", "true", "yes", "on"):
        return True
    if s in ("0", "false", "no", "off"):
        return False
    return default


def _coerce_int(raw: Any, default: int, *, min_v: int, max_v: int) -> int:
    try:
        v = int(raw)
    except (TypeError, ValueError):
        try:
            v = int(float(raw))
        except (TypeError, ValueError):
            logger.warning("Invalid integer %r, using %s", raw, default)
            v = int(default)
    return max(min_v, min(max_v, v))


def _coerce_float(raw: Any, default: float, *, min_v: float) -> float:
    try:
        v = float(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid number %r, using %s", raw, default)
        v = float(default)
    return max(min_v, v)


def _coerce_states(raw: Any) -> tuple[str, ...]:
    if not isinstance(raw, (list, tuple)):
        raise ConfigError(f"'states' must be a list of names, got {raw!r}")
    states = tuple(str(s).strip() for s in raw if str(s).strip())
    return states


def _apply_env_overrides(settings: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    mapping = {
        "AUTOPROFILE_THRESHOLD": "threshold",
        "AUTOPROFILE_POLL_INTERVAL": "poll_interval",
        "AUTOPROFILE_WATCH": "watch_enabled",
        "AUTOPROFILE_NOTIFY": "notifications",
        "AUTOPROFILE_SYSFS_POWER_SUPPLY_ROOT": "power_supply_root",
    }
    out = dict(settings)
    for env_key, key in mapping.items():
        value = env.get(env_key)
        if value:
            out[key] = value
    return out


def policy_from_settings(settings: Mapping[str, Any]) -> Policy:
    """Build a validated Policy from a merged settings mapping."""

    merged = {**DEFAULTS, **settings}
    return Policy(
        states=_coerce_states(merged["states"]),
        threshold=_coerce_int(merged["threshold"], DEFAULTS["threshold"], min_v=0, max_v=100),
        threshold_inclusive=_coerce_bool(merged["threshold_inclusive"], True),
        poll_interval=_coerce_float(merged["poll_interval"], DEFAULTS["poll_interval"], min_v=0.1),
        watch_enabled=_coerce_bool(merged["watch_enabled"], True),
        command_timeout=_coerce_float(merged["command_timeout"], DEFAULTS["command_timeout"], min_v=0.1),
        verify_apply=_coerce_bool(merged["verify_apply"], True),
        notifications=_coerce_bool(merged["notifications"], False),
        backend_command=str(merged["backend_command"] or DEFAULTS["backend_command"]),
        power_supply_root=Path(str(merged["power_supply_root"] or DEFAULTS["power_supply_root"])),
    )


def load_policy(*, config_file: Optional[Path] = None, env: Optional[Mapping[str, str]] = None) -> Policy:
    """Load config.json (if any), apply environment overrides and validate."""

    if config_file is None:
        config_file = config_file_path()
    if env is None:
        env = os.environ

    settings = load_config_settings(config_file=config_file, defaults=DEFAULTS, logger=logger)
    policy = policy_from_settings(_apply_env_overrides(settings, env))
    logger.debug("Loaded policy: %s", policy)
    return policy
