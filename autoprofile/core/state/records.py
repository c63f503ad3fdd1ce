"""Durable one-token-per-file records.

Each file holds a single whitespace-trimmed token. Content that does not
parse is treated as absent and the file is deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config.file_storage import write_text_atomic
from ..power_policies.profile_policy import OverrideRecord
from ..utils.exceptions import CorruptPersistedState

logger = logging.getLogger(__name__)


def _read_token(path: Path) -> Optional[str]:
    try:
        raw = path.read_text(encoding="utf-8", errors="ignore")
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None
    token = raw.strip()
    return token or None


def _remove(path: Path) -> bool:
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


def _discard_corrupt(exc: CorruptPersistedState) -> None:
    logger.warning("%s; removing it", exc)
    try:
        _remove(Path(exc.path))
    except OSError as err:
        logger.warning("Failed to remove %s: %s", exc.path, err)


class OverrideStore:
    """Owns the override file."""

    def __init__(self, path: Path, allowed_states: Collection[str]) -> None:
        self.path = Path(path)
        self._allowed = tuple(allowed_states)

    def read(self) -> Optional[OverrideRecord]:
        token = _read_token(self.path)
        if token is None:
            return None
        if token not in self._allowed:
            _discard_corrupt(CorruptPersistedState(self.path, token))
            return None
        return OverrideRecord(state=token)

    def write(self, state: str) -> OverrideRecord:
        if state not in self._allowed:
            raise ValueError(f"Unknown state {state!r}; expected one of {list(self._allowed)}")
        write_text_atomic(self.path, f"{state}\n")
        return OverrideRecord(state=state)

    def clear(self) -> bool:
        """Delete the override. Returns whether one existed."""

        return _remove(self.path)


@dataclass(frozen=True)
class LastAppliedState:
    state: Optional[str] = None
    on_ac: Optional[bool] = None


class LastAppliedStore:
    """Owns the last-applied state and AC baseline files."""

    def __init__(self, state_path: Path, ac_path: Path, allowed_states: Collection[str]) -> None:
        self.state_path = Path(state_path)
        self.ac_path = Path(ac_path)
        self._allowed = tuple(allowed_states)

    def _read_state(self) -> Optional[str]:
        token = _read_token(self.state_path)
        if token is None:
            return None
        if token not in self._allowed:
            _discard_corrupt(CorruptPersistedState(self.state_path, token))
            return None
        return token

    def _read_ac(self) -> Optional[bool]:
        token = _read_token(self.ac_path)
        if token is None:
            return None
        if token not in ("0", "1"):
            _discard_corrupt(CorruptPersistedState(self.ac_path, token))
            return None
        return token == "1"

    def read(self) -> LastAppliedState:
        return LastAppliedState(state=self._read_state(), on_ac=self._read_ac())

    def write(self, *, state: Optional[str] = None, on_ac: Optional[bool] = None) -> None:
        """Persist whichever parts are given; None leaves a part unchanged."""

        if state is not None:
            write_text_atomic(self.state_path, f"{state}\n")
        if on_ac is not None:
            write_text_atomic(self.ac_path, "1\n" if on_ac else "0\n")
