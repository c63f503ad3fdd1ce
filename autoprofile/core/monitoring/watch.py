from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from inotify_simple import INotify, flags


logger = logging.getLogger(__name__)

WATCH_FLAGS = (
    flags.MODIFY
    | flags.CLOSE_WRITE
    | flags.CREATE
    | flags.DELETE
    | flags.MOVED_TO
    | flags.MOVED_FROM
    | flags.ATTRIB
)


@dataclass(frozen=True)
class WatchTarget:
    """A directory to watch, optionally restricted to a set of entry names.

    Only targets with *create* set are created when missing; others are skipped.
    """

    directory: Path
    names: Optional[frozenset[str]] = None
    create: bool = False

    def matches(self, name: str) -> bool:
        return self.names is None or name in self.names


class PathWatcher:
    """Blocking inotify loop calling *on_change* once per batch of relevant events.

    Directories are watched instead of files so atomic replacements
    (write temp + rename) are seen.
    """

    def __init__(
        self,
        targets: Iterable[WatchTarget],
        *,
        on_change: Callable[[], None],
        is_running: Callable[[], bool],
        timeout_ms: int = 500,
        inotify_factory: Callable[[], INotify] = INotify,
    ) -> None:
        self._targets = list(targets)
        self._on_change = on_change
        self._is_running = is_running
        self._timeout_ms = int(timeout_ms)
        self._inotify_factory = inotify_factory
        self._by_wd: dict[int, WatchTarget] = {}

    def _setup(self) -> INotify:
        inotify = self._inotify_factory()
        for target in self._targets:
            try:
                if target.create:
                    target.directory.mkdir(parents=True, exist_ok=True)
                elif not target.directory.is_dir():
                    logger.warning("Not watching %s: no such directory", target.directory)
                    continue
                wd = inotify.add_watch(str(target.directory), WATCH_FLAGS)
            except OSError as exc:
                logger.warning("Cannot watch %s: %s", target.directory, exc)
                continue
            self._by_wd[wd] = target
            logger.debug("Watching %s", target.directory)
        return inotify

    def _is_relevant(self, event) -> bool:
        target = self._by_wd.get(event.wd)
        if target is None:
            return False
        return target.matches(event.name)

    def run(self) -> None:
        try:
            inotify = self._setup()
        except OSError as exc:
            logger.warning("inotify unavailable, relying on polling: %s", exc)
            return

        if not self._by_wd:
            logger.warning("No watchable paths, relying on polling")
            inotify.close()
            return

        try:
            while self._is_running():
                events = inotify.read(timeout=self._timeout_ms)
                if not events or not self._is_running():
                    continue
                if any(self._is_relevant(e) for e in events):
                    self._on_change()
        finally:
            inotify.close()
