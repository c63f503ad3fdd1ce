from __future__ import annotations

import json
import os
import tempfile
import time
from pathlib import Path
from typing import Any


def load_config_settings(
    *,
    config_file: Path,
    defaults: dict[str, Any],
    retries: int = 3,
    retry_delay: float = 0.02,
    logger,
) -> dict[str, Any]:
    """Load config JSON, retrying transient partial writes.

    Returns `{**defaults, **loaded}` on success and a copy of `defaults` when
    the file is missing or stays unreadable.
    """

    if not config_file.exists():
        return dict(defaults)

    last_error: Exception | None = None
    for _ in range(max(1, retries)):
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            if not isinstance(loaded, dict):
                logger.warning("Ignoring config %s: top-level value is not an object", config_file)
                loaded = {}

            # Also accept "performance,balanced,power-saver" as a plain string.
            if isinstance(loaded.get("states"), str):
                loaded["states"] = [p for p in loaded["states"].replace(",", " ").split() if p]

            return {**defaults, **loaded}
        except json.JSONDecodeError as e:
            last_error = e
            time.sleep(retry_delay)
        except Exception as e:
            last_error = e
            break

    logger.warning("Failed to load config %s, using defaults: %s", config_file, last_error)
    return dict(defaults)


def write_text_atomic(path: Path, text: str) -> None:
    """Write *text* to *path* via a temp file in the same directory and os.replace.

    Readers never observe a half-written file. Errors propagate to the caller.
    """

    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)

