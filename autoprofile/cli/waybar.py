"""Status-bar (waybar custom module) output."""

from __future__ import annotations

import json
from typing import Optional

# Nerd Font glyphs: bolt, balance scale, leaf.
ICONS: dict[str, str] = {
    "performance": "\uf0e7",
    "balanced": "\uf24e",
    "power-saver": "\uf06c",
}
UNKNOWN_ICON = "\uf128"


def waybar_payload(state: Optional[str]) -> dict[str, str]:
    name = state or "unknown"
    return {
        "text": ICONS.get(name, UNKNOWN_ICON),
        "tooltip": f"Power Profile: {name}",
        "class": name,
    }


def format_waybar_json(state: Optional[str]) -> str:
    return json.dumps(waybar_payload(state), ensure_ascii=False)
