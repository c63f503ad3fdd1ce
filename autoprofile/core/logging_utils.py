from __future__ import annotations

import logging
import os
import sys
import threading
import time
from pathlib import Path
from typing import Optional


LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_last_log_times: dict[str, float] = {}
_lock = threading.Lock()


def configure_logging(log_file: Optional[Path] = None, *, stream=None) -> None:
    """Configure root logging: stderr plus an append-only log file.

    Leaves existing handlers alone so embedding callers (and pytest) keep
    their own configuration. A log file that cannot be opened is skipped.
    """

    root = logging.getLogger()
    if root.handlers:
        return

    level = logging.DEBUG if os.environ.get("AUTOPROFILE_DEBUG") else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setFormatter(formatter)
    root.addHandler(console)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        except OSError as exc:
            root.warning("Cannot open log file %s: %s", log_file, exc)
        else:
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(level)


def log_throttled(
    logger,
    key: str,
    *,
    interval_s: float,
    level: int,
    msg: str,
    exc: BaseException | None = None,
) -> bool:
    """Log at most once per *interval_s* for a given *key*.

    Suppressed repeats are logged at DEBUG. Returns True if the message was
    logged at *level*.
    """

    now = time.monotonic()
    with _lock:
        last = _last_log_times.get(key)
        if last is not None and (now - last) < interval_s:
            logger.debug(msg)
            return False
        _last_log_times[key] = now

    logger.log(level, msg, exc_info=exc)
    return True


def reset_throttle() -> None:
    with _lock:
        _last_log_times.clear()
