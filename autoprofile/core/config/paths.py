"""Filesystem locations used by the daemon.

Every helper is recomputed on each call so test harnesses can point the
daemon at temporary directories through environment variables.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


APP_NAME = "autoprofile"


def config_dir() -> Path:
    """Return the directory holding config.json and the persisted records.

    Priority:
    - AUTOPROFILE_CONFIG_DIR
    - XDG_CONFIG_HOME/autoprofile
    - ~/.config/autoprofile
    """

    p = os.environ.get("AUTOPROFILE_CONFIG_DIR")
    if p:
        return Path(p)

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME

    return Path.home() / ".config" / APP_NAME


def config_file_path() -> Path:
    p = os.environ.get("AUTOPROFILE_CONFIG_PATH")
    if p:
        return Path(p)
    return config_dir() / "config.json"


def cache_dir() -> Path:
    p = os.environ.get("AUTOPROFILE_CACHE_DIR")
    if p:
        return Path(p)

    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        return Path(xdg) / APP_NAME

    return Path.home() / ".cache" / APP_NAME


def runtime_dir() -> Path:
    """Directory for the PID lock file.

    Falls back to a per-user directory under the system temp dir when no
    XDG runtime dir exists (e.g. outside a login session).
    """

    p = os.environ.get("AUTOPROFILE_RUNTIME_DIR")
    if p:
        return Path(p)

    xdg = os.environ.get("XDG_RUNTIME_DIR")
    if xdg:
        return Path(xdg) / APP_NAME

    return Path(tempfile.gettempdir()) / f"{APP_NAME}-{os.getuid()}"


def override_file_path() -> Path:
    return config_dir() / "override"


def last_state_file_path() -> Path:
    return config_dir() / "last_state"


def last_ac_file_path() -> Path:
    return config_dir() / "last_ac"


def log_file_path() -> Path:
    p = os.environ.get("AUTOPROFILE_LOG_FILE")
    if p:
        return Path(p)
    return cache_dir() / "autoprofile.log"


def lock_file_path() -> Path:
    return runtime_dir() / "autoprofile.pid"
