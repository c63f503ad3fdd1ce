from __future__ import annotations

import os
from pathlib import Path

import pytest

import autoprofile.core.state.instance_lock as instance_lock
from autoprofile.core.state.instance_lock import InstanceLock
from autoprofile.core.utils.exceptions import AlreadyRunning, LockAcquireError


def test_acquire_writes_own_pid_and_release_removes(tmp_path: Path) -> None:
    lock = InstanceLock(tmp_path / "run" / "autoprofile.pid")

    lock.acquire()

    assert lock.held is True
    assert lock.path.read_text(encoding="utf-8").strip() == str(os.getpid())

    lock.release()
    assert lock.held is False
    assert not lock.path.exists()


def test_live_pid_blocks_second_instance(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "autoprofile.pid"
    path.write_text("424242\n", encoding="utf-8")
    monkeypatch.setattr(instance_lock, "_pid_alive", lambda pid: pid == 424242)

    with pytest.raises(AlreadyRunning) as excinfo:
        InstanceLock(path).acquire()

    assert excinfo.value.pid == 424242
    assert path.read_text(encoding="utf-8") == "424242\n"


def test_stale_pid_is_taken_over(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "autoprofile.pid"
    path.write_text("pid=424242\n", encoding="utf-8")
    monkeypatch.setattr(instance_lock, "_pid_alive", lambda pid: False)

    lock = InstanceLock(path)
    lock.acquire()

    assert path.read_text(encoding="utf-8").strip() == str(os.getpid())


def test_garbled_lock_file_is_taken_over(tmp_path: Path) -> None:
    path = tmp_path / "autoprofile.pid"
    path.write_text("garbage", encoding="utf-8")

    InstanceLock(path).acquire()

    assert path.read_text(encoding="utf-8").strip() == str(os.getpid())


def test_unwritable_lock_raises(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _fail(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(instance_lock.tempfile, "mkstemp", _fail)

    with pytest.raises(LockAcquireError):
        InstanceLock(tmp_path / "autoprofile.pid").acquire()


def test_release_keeps_file_taken_over_by_another_process(tmp_path: Path) -> None:
    lock = InstanceLock(tmp_path / "autoprofile.pid")
    lock.acquire()
    lock.path.write_text("424242\n", encoding="utf-8")

    lock.release()

    assert lock.path.exists()


def test_pid_alive_for_current_process() -> None:
    assert instance_lock._pid_alive(os.getpid()) is True
    assert instance_lock._pid_alive(0) is False


def test_existing_lock_is_never_overwritten_by_create(tmp_path: Path) -> None:
    path = tmp_path / "autoprofile.pid"
    path.write_text("424242\n", encoding="utf-8")

    assert InstanceLock(path)._create_exclusive() is False
    assert path.read_text(encoding="utf-8") == "424242\n"
    assert [p.name for p in tmp_path.iterdir()] == ["autoprofile.pid"]


def test_stale_takeover_yields_to_instance_that_won_the_race(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    path = tmp_path / "autoprofile.pid"
    path.write_text("424242\n", encoding="utf-8")
    monkeypatch.setattr(instance_lock, "_pid_alive", lambda pid: pid == 515151)
    calls = {"n": 0}

    def _racing_create(self) -> bool:
        calls["n"] += 1
        if calls["n"] == 2:
            # Another instance recreated the file right after the stale one was removed.
            path.write_text("515151\n", encoding="utf-8")
        return False

    monkeypatch.setattr(InstanceLock, "_create_exclusive", _racing_create)
    lock = InstanceLock(path)

    with pytest.raises(AlreadyRunning) as excinfo:
        lock.acquire()

    assert excinfo.value.pid == 515151
    assert lock.held is False
    assert path.read_text(encoding="utf-8") == "515151\n"
