from __future__ import annotations

import logging
import shutil
import subprocess

logger = logging.getLogger(__name__)


def send_notification(
    summary: str,
    body: str = "",
    *,
    urgency: str = "low",
    expire_ms: int = 1200,
    timeout_s: float = 2.0,
) -> bool:
    """Best-effort desktop notification via notify-send.

    Returns whether the notification was handed off successfully.
    """

    notify = shutil.which("notify-send")
    if not notify:
        logger.debug("notify-send not found; skipping notification %r", summary)
        return False

    argv = [notify, "-u", urgency, "-t", str(int(expire_ms)), summary]
    if body:
        argv.append(body)

    try:
        cp = subprocess.run(argv, check=False, capture_output=True, text=True, timeout=timeout_s)
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.debug("notify-send failed: %s", exc)
        return False

    return cp.returncode == 0
