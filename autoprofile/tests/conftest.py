from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest


# Safety default: pytest must never touch the user's real override/state files
# or fight a running daemon.
os.environ.setdefault("AUTOPROFILE_CONFIG_DIR", tempfile.mkdtemp(prefix="autoprofile-test-config-"))
os.environ.setdefault("AUTOPROFILE_CACHE_DIR", tempfile.mkdtemp(prefix="autoprofile-test-cache-"))
os.environ.setdefault("AUTOPROFILE_RUNTIME_DIR", tempfile.mkdtemp(prefix="autoprofile-test-run-"))


@pytest.fixture(autouse=True)
def isolated_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point every config/cache/runtime location at a per-test directory."""

    monkeypatch.setenv("AUTOPROFILE_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("AUTOPROFILE_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("AUTOPROFILE_RUNTIME_DIR", str(tmp_path / "run"))
    for key in (
        "AUTOPROFILE_CONFIG_PATH",
        "AUTOPROFILE_THRESHOLD",
        "AUTOPROFILE_POLL_INTERVAL",
        "AUTOPROFILE_WATCH",
        "AUTOPROFILE_NOTIFY",
        "AUTOPROFILE_SYSFS_POWER_SUPPLY_ROOT",
        "AUTOPROFILE_LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)
    return tmp_path


@pytest.fixture(autouse=True)
def _reset_log_throttle():
    from autoprofile.core.logging_utils import reset_throttle

    reset_throttle()
    yield
    reset_throttle()


@pytest.fixture
def policy():
    from autoprofile.core.config import policy_from_settings

    return policy_from_settings({"threshold": 30, "poll_interval": 0.1, "watch_enabled": False})


@pytest.fixture
def power_supply_factory(tmp_path: Path):
    """Build a fake /sys/class/power_supply tree.

    Usage: make("AC", type="Mains", online="1"); make("BAT0", type="Battery", capacity="80")
    """

    root = tmp_path / "power_supply"
    root.mkdir()

    def _make(name: str, **attrs: str) -> Path:
        d = root / name
        d.mkdir(parents=True, exist_ok=True)
        for key, value in attrs.items():
            (d / key).write_text(f"{value}\n", encoding="utf-8")
        return d

    _make.root = root  # type: ignore[attr-defined]
    return _make


@pytest.fixture
def stores(tmp_path: Path, policy):
    from autoprofile.core.state.records import LastAppliedStore, OverrideStore

    state_dir = tmp_path / "state"
    overrides = OverrideStore(state_dir / "override", policy.states)
    last_applied = LastAppliedStore(state_dir / "last_state", state_dir / "last_ac", policy.states)
    return overrides, last_applied
