from __future__ import annotations

import io
import logging
import subprocess
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

import autoprofile.core.notifications as notifications
from autoprofile.core.logging_utils import configure_logging, log_throttled


@contextmanager
def bare_root_logger():
    # Restores pytest's capture handlers on exit.
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    root.handlers[:] = []
    try:
        yield root
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_configure_logging_adds_stream_and_file(tmp_path: Path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "cache" / "autoprofile.log"

    with bare_root_logger() as root:
        configure_logging(log_file, stream=stream)
        logging.getLogger("autoprofile.test").info("Applied profile: balanced")
        for handler in root.handlers:
            handler.flush()
        handler_count = len(root.handlers)

    assert handler_count == 2
    assert "INFO autoprofile.test: Applied profile: balanced" in stream.getvalue()
    assert "Applied profile: balanced" in log_file.read_text(encoding="utf-8")


def test_configure_logging_keeps_existing_handlers() -> None:
    existing = logging.NullHandler()

    with bare_root_logger() as root:
        root.addHandler(existing)
        configure_logging(None, stream=io.StringIO())
        handlers = root.handlers[:]

    assert handlers == [existing]


def test_log_throttled_suppresses_repeats() -> None:
    logger = MagicMock()

    assert log_throttled(logger, "k", interval_s=60, level=logging.WARNING, msg="one") is True
    assert log_throttled(logger, "k", interval_s=60, level=logging.WARNING, msg="two") is False

    logger.log.assert_called_once()
    logger.debug.assert_called_once()


def test_notification_skipped_without_notify_send(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(notifications.shutil, "which", lambda name: None)
    run = MagicMock()
    monkeypatch.setattr(notifications.subprocess, "run", run)

    assert notifications.send_notification("Power Profile", "balanced") is False
    run.assert_not_called()


def test_notification_invokes_notify_send(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(notifications.shutil, "which", lambda name: "/usr/bin/notify-send")
    run = MagicMock(return_value=SimpleNamespace(returncode=0))
    monkeypatch.setattr(notifications.subprocess, "run", run)

    assert notifications.send_notification("Power Profile", "balanced") is True
    assert run.call_args.args[0] == ["/usr/bin/notify-send", "-u", "low", "-t", "1200", "Power Profile", "balanced"]
    assert run.call_args.kwargs["timeout"] == 2.0


def test_notification_timeout_is_not_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(notifications.shutil, "which", lambda name: "/usr/bin/notify-send")
    monkeypatch.setattr(
        notifications.subprocess,
        "run",
        MagicMock(side_effect=subprocess.TimeoutExpired(cmd="notify-send", timeout=2.0)),
    )

    assert notifications.send_notification("Power Profile") is False
