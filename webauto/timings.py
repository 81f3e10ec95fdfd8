# webauto/timings.py
"""
@file timings.py
@brief Time configuration presets and defaults for browser step execution.

All values are seconds. Playwright calls receive them converted to
milliseconds at the call site.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Dict


TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    "advisory_wait": {"timeout": 5.0, "interval": 0.1},
    "action_wait": {"timeout": 30.0, "interval": 0.1},
    "visibility_wait": {"timeout": 30.0, "interval": 0.1},
    "enabled_wait": {"timeout": 30.0, "interval": 0.1},
    "editable_wait": {"timeout": 30.0, "interval": 0.1},
    "network_idle": {"timeout": 30.0, "interval": 0.2},
    "post_navigation_idle": {"timeout": 5.0, "interval": 0.2},
    "page_load": {"timeout": 30.0, "interval": 0.2},
    "popup_wait": {"timeout": 30.0, "interval": 0.2},
    "live_attributes": {"timeout": 2.0, "interval": 0.1},
    "browser_launch": {"timeout": 60.0, "interval": 0.5},
}

PAUSE_FIELDS: Dict[str, float] = {
    "after_click_pause": 0.0,
    "stability_pause": 0.1,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        "advisory_wait": {"timeout": 2.0, "interval": 0.05},
        "action_wait": {"timeout": 10.0, "interval": 0.05},
        "visibility_wait": {"timeout": 10.0, "interval": 0.05},
        "enabled_wait": {"timeout": 10.0, "interval": 0.05},
        "editable_wait": {"timeout": 10.0, "interval": 0.05},
        "network_idle": {"timeout": 10.0, "interval": 0.1},
        "post_navigation_idle": {"timeout": 2.0, "interval": 0.1},
        "page_load": {"timeout": 15.0, "interval": 0.1},
        "popup_wait": {"timeout": 10.0, "interval": 0.1},
        "stability_pause": 0.05,
    },
    "slow": {
        "advisory_wait": {"timeout": 8.0, "interval": 0.2},
        "action_wait": {"timeout": 60.0, "interval": 0.2},
        "visibility_wait": {"timeout": 60.0, "interval": 0.2},
        "enabled_wait": {"timeout": 60.0, "interval": 0.2},
        "editable_wait": {"timeout": 60.0, "interval": 0.2},
        "network_idle": {"timeout": 60.0, "interval": 0.3},
        "post_navigation_idle": {"timeout": 10.0, "interval": 0.3},
        "page_load": {"timeout": 60.0, "interval": 0.3},
        "popup_wait": {"timeout": 60.0, "interval": 0.3},
        "stability_pause": 0.2,
    },
    "ci": {
        "advisory_wait": {"timeout": 8.0, "interval": 0.2},
        "action_wait": {"timeout": 45.0, "interval": 0.2},
        "visibility_wait": {"timeout": 45.0, "interval": 0.2},
        "enabled_wait": {"timeout": 45.0, "interval": 0.2},
        "editable_wait": {"timeout": 45.0, "interval": 0.2},
        "network_idle": {"timeout": 45.0, "interval": 0.3},
        "post_navigation_idle": {"timeout": 8.0, "interval": 0.3},
        "page_load": {"timeout": 60.0, "interval": 0.3},
        "popup_wait": {"timeout": 45.0, "interval": 0.3},
        "stability_pause": 0.2,
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    preset_key = (preset or "default").lower()
    values: Dict[str, Any] = {}
    values.update(deepcopy(TIMEOUT_FIELDS))
    values.update(deepcopy(PAUSE_FIELDS))

    if preset_key == "default":
        return values

    overrides = PRESET_OVERRIDES.get(preset_key)
    if overrides is None:
        raise ValueError(f"Unknown timing preset: {preset}")

    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            base = deepcopy(values[key])
            base.update(value)
            values[key] = base
        else:
            values[key] = value

    return values
