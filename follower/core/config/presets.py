from __future__ import annotations

from typing import Any


# Steering presets. Thresholds of the arbitration itself are not part of a
# preset; these only change how hard the robot turns and when it stops.
#
# Notes:
# - stop_area_threshold: target area fraction at which the robot stands still
# - degraded_gain stays larger than tracking_gain so a weak signal is
#   recentered more aggressively


PRESETS: dict[str, dict[str, Any]] = {
    # Indoor, close quarters: stop early, turn gently.
    "prudent": {
        "stop_area_threshold": 0.45,
        "tracking_gain": 1.5,
        "degraded_gain": 4.0,
    },
    # Default behaviour.
    "standard": {
        "stop_area_threshold": 0.6,
        "tracking_gain": 2.0,
        "degraded_gain": 6.0,
    },
    # Open space, fast target.
    "agile": {
        "stop_area_threshold": 0.7,
        "tracking_gain": 3.0,
        "degraded_gain": 8.0,
    },
}


PRESET_LABELS: dict[str, str] = {
    "prudent": "Prudent",
    "standard": "Standard",
    "agile": "Agile",
}


def list_presets() -> list[dict[str, Any]]:
    return [
        {
            "id": preset_id,
            "label": PRESET_LABELS.get(preset_id, preset_id),
            "settings": PRESETS[preset_id],
        }
        for preset_id in PRESETS.keys()
    ]


def preset_patch(preset_id: str) -> dict[str, Any]:
    if preset_id not in PRESETS:
        raise KeyError(preset_id)
    return dict(PRESETS[preset_id])
