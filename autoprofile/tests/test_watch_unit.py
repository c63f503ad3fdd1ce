from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from autoprofile.core.monitoring.watch import PathWatcher, WatchTarget


class FakeINotify:
    def __init__(self, batches, *, stop, fail_paths=()):
        self._batches = list(batches)
        self._stop = stop
        self._fail_paths = set(fail_paths)
        self.watched: list[str] = []
        self.closed = False

    def add_watch(self, path, mask):
        if path in self._fail_paths:
            raise OSError(2, "No such file or directory", path)
        self.watched.append(path)
        return len(self.watched)

    def read(self, timeout=None):
        if not self._batches:
            self._stop()
            return []
        return self._batches.pop(0)

    def close(self):
        self.closed = True


def _event(wd: int, name: str) -> SimpleNamespace:
    return SimpleNamespace(wd=wd, mask=0, cookie=0, name=name)


def _run(tmp_path: Path, batches, *, fail_paths=(), make_supplies=True):
    state = {"running": True, "changes": 0}

    def stop():
        state["running"] = False

    fake = FakeINotify(batches, stop=stop, fail_paths=fail_paths)
    cfg = tmp_path / "config"
    supplies = tmp_path / "power_supply"
    if make_supplies:
        supplies.mkdir()
    watcher = PathWatcher(
        [WatchTarget(cfg, frozenset({"override"}), create=True), WatchTarget(supplies)],
        on_change=lambda: state.__setitem__("changes", state["changes"] + 1),
        is_running=lambda: state["running"],
        inotify_factory=lambda: fake,
    )
    watcher.run()
    return state["changes"], fake


def test_override_file_events_trigger_once_per_batch(tmp_path: Path) -> None:
    changes, fake = _run(tmp_path, [[_event(1, "override"), _event(1, ".override.abc.tmp"), _event(1, "override")]])

    assert changes == 1
    assert fake.closed is True
    assert fake.watched == [str(tmp_path / "config"), str(tmp_path / "power_supply")]


def test_own_state_files_are_ignored(tmp_path: Path) -> None:
    changes, _ = _run(tmp_path, [[_event(1, "last_state")], [_event(1, "last_ac")]])

    assert changes == 0


def test_any_power_supply_event_triggers(tmp_path: Path) -> None:
    changes, _ = _run(tmp_path, [[_event(2, "AC")], [], [_event(2, "BAT0")]])

    assert changes == 2


def test_unwatchable_target_is_skipped(tmp_path: Path) -> None:
    supplies = str(tmp_path / "power_supply")
    changes, fake = _run(tmp_path, [[_event(1, "override")]], fail_paths={supplies})

    assert changes == 1
    assert fake.watched == [str(tmp_path / "config")]


def test_missing_sensor_root_is_skipped_not_created(tmp_path: Path) -> None:
    changes, fake = _run(tmp_path, [[_event(1, "override")]], make_supplies=False)

    assert changes == 1
    assert fake.watched == [str(tmp_path / "config")]
    assert (tmp_path / "config").is_dir()
    assert not (tmp_path / "power_supply").exists()


def test_inotify_setup_failure_returns_quietly(tmp_path: Path) -> None:
    def broken():
        raise OSError(24, "Too many open files")

    watcher = PathWatcher(
        [WatchTarget(tmp_path)],
        on_change=lambda: None,
        is_running=lambda: True,
        inotify_factory=broken,
    )

    watcher.run()


def test_watch_target_matches() -> None:
    any_name = WatchTarget(Path("/sys/class/power_supply"))
    only_override = WatchTarget(Path("/tmp"), frozenset({"override"}))

    assert any_name.matches("BAT0") is True
    assert only_override.matches("override") is True
    assert only_override.matches("last_ac") is False
