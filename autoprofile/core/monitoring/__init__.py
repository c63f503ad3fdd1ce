from __future__ import annotations

from .power_supply_sysfs import (
    PowerSource,
    SensorReading,
    SensorSource,
    StaticSensor,
    SysfsPowerSupplySensor,
    read_battery_level,
    read_on_ac_power,
)

__all__ = [
    "PowerSource",
    "SensorReading",
    "SensorSource",
    "StaticSensor",
    "SysfsPowerSupplySensor",
    "read_battery_level",
    "read_on_ac_power",
]
