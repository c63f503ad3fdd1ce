from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Protocol

from ..utils.exceptions import SensorUnavailable


logger = logging.getLogger(__name__)

_POWER_SUPPLY_ROOT_DEFAULT = Path("/sys/class/power_supply")
_ADAPTER_TYPES = {"mains", "ac", "acad", "adapter"}


class PowerSource(str, Enum):
    AC = "ac"
    BATTERY = "battery"


@dataclass(frozen=True)
class SensorReading:
    source: PowerSource
    connected: bool
    level: int


class SensorSource(Protocol):
    def read(self) -> SensorReading: ...

    def probe(self) -> bool: ...


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="ignore").strip()
    except Exception:
        return None


def _read_int(path: Path) -> Optional[int]:
    raw = _read_text(path)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _supply_dirs(root: Path) -> list[Path]:
    try:
        return sorted(child for child in root.iterdir() if child.is_dir())
    except Exception:
        return []


def _is_adapter_type(typ: Optional[str]) -> bool:
    if not typ:
        return False
    t = typ.lower()
    return t in _ADAPTER_TYPES or t.startswith("usb")


def iter_ac_online_files(power_supply_root: Path) -> list[Path]:
    files: list[Path] = []
    for child in _supply_dirs(power_supply_root):
        online = child / "online"
        if not online.exists():
            continue
        if _is_adapter_type(_read_text(child / "type")):
            files.append(online)

    if files:
        return files

    # Fallback: entries without a usable type but named like AC/ACAD/AC0.
    try:
        for online in sorted(power_supply_root.glob("AC*/online")):
            files.append(online)
    except Exception:
        pass

    return files


def iter_battery_dirs(power_supply_root: Path) -> list[Path]:
    return [child for child in _supply_dirs(power_supply_root) if _read_text(child / "type") == "Battery"]


def _read_acpi_adapter(timeout_s: float) -> Optional[bool]:
    try:
        cp = subprocess.run(["acpi", "-a"], check=False, capture_output=True, text=True, timeout=timeout_s)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if cp.returncode != 0 or not cp.stdout.strip():
        return None
    return "on-line" in cp.stdout


def read_on_ac_power(*, power_supply_root: Optional[Path] = None, acpi_timeout_s: float = 1.0) -> Optional[bool]:
    """Return True/False for AC state, or None when no adapter could be read.

    Any online adapter wins; `acpi -a` is consulted only when sysfs exposes
    no readable adapter at all.
    """

    if power_supply_root is None:
        power_supply_root = Path(os.environ.get("AUTOPROFILE_SYSFS_POWER_SUPPLY_ROOT", str(_POWER_SUPPLY_ROOT_DEFAULT)))

    seen = False
    for online_path in iter_ac_online_files(power_supply_root):
        raw = _read_text(online_path)
        if raw not in ("0", "1"):
            continue
        seen = True
        if raw == "1":
            return True

    if seen:
        return False

    return _read_acpi_adapter(acpi_timeout_s)


def battery_percentage(battery_dir: Path) -> Optional[int]:
    """Charge percentage of a single battery, truncated to an int in 0..100."""

    capacity = _read_int(battery_dir / "capacity")
    if capacity is not None:
        return max(0, min(100, capacity))

    for now_name, full_name in (("energy_now", "energy_full"), ("charge_now", "charge_full")):
        now = _read_int(battery_dir / now_name)
        full = _read_int(battery_dir / full_name)
        if now is None or not full:
            continue
        return max(0, min(100, (now * 100) // full))

    return None


def read_battery_level(*, power_supply_root: Path) -> Optional[int]:
    """Average percentage over all readable batteries, or None without any."""

    levels = [p for p in (battery_percentage(b) for b in iter_battery_dirs(power_supply_root)) if p is not None]
    if not levels:
        return None
    return sum(levels) // len(levels)


class SysfsPowerSupplySensor:
    """Reads AC/battery state from /sys/class/power_supply.

    `read()` never raises: missing or unreadable entries are skipped and a
    machine without any battery reads as connected at 100%.
    """

    def __init__(self, power_supply_root: Optional[Path] = None, *, acpi_timeout_s: float = 1.0) -> None:
        if power_supply_root is None:
            power_supply_root = Path(
                os.environ.get("AUTOPROFILE_SYSFS_POWER_SUPPLY_ROOT", str(_POWER_SUPPLY_ROOT_DEFAULT))
            )
        self.power_supply_root = Path(power_supply_root)
        self._acpi_timeout_s = float(acpi_timeout_s)

    def probe(self) -> bool:
        """Whether any adapter or battery entry exists under the root."""

        return bool(iter_ac_online_files(self.power_supply_root) or iter_battery_dirs(self.power_supply_root))

    def _read_sources(self) -> tuple[int, Optional[bool]]:
        level = read_battery_level(power_supply_root=self.power_supply_root)
        if level is None:
            raise SensorUnavailable(f"no readable battery under {self.power_supply_root}")
        return level, read_on_ac_power(power_supply_root=self.power_supply_root, acpi_timeout_s=self._acpi_timeout_s)

    def read(self) -> SensorReading:
        try:
            level, on_ac = self._read_sources()
        except SensorUnavailable as exc:
            # Desktop or no readable battery.
            logger.debug("%s, assuming AC at 100%%", exc)
            return SensorReading(source=PowerSource.AC, connected=True, level=100)
        except Exception as exc:
            logger.warning("Power supply read failed, assuming AC: %s", exc)
            return SensorReading(source=PowerSource.AC, connected=True, level=100)

        connected = bool(on_ac) if on_ac is not None else False
        return SensorReading(
            source=PowerSource.AC if connected else PowerSource.BATTERY,
            connected=connected,
            level=level,
        )


class StaticSensor:
    """In-memory sensor for tests and dry runs."""

    def __init__(self, *, connected: bool = True, level: int = 100, present: bool = True) -> None:
        self.connected = connected
        self.level = level
        self.present = present
        self.reads = 0

    def probe(self) -> bool:
        return self.present

    def read(self) -> SensorReading:
        self.reads += 1
        return SensorReading(
            source=PowerSource.AC if self.connected else PowerSource.BATTERY,
            connected=bool(self.connected),
            level=int(self.level),
        )
