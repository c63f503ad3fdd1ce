"""Configuration and filesystem locations."""

from __future__ import annotations

from .config import Policy, load_policy, policy_from_settings
from .paths import (
    cache_dir,
    config_dir,
    config_file_path,
    last_ac_file_path,
    last_state_file_path,
    lock_file_path,
    log_file_path,
    override_file_path,
    runtime_dir,
)


__all__ = [
    "Policy",
    "cache_dir",
    "config_dir",
    "config_file_path",
    "last_ac_file_path",
    "last_state_file_path",
    "load_policy",
    "lock_file_path",
    "log_file_path",
    "override_file_path",
    "policy_from_settings",
    "runtime_dir",
]
