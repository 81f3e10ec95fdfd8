# webauto/artifacts.py
"""
Failure artifacts (screenshots, page HTML) written next to the run report.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict

_log = logging.getLogger("webauto.artifacts")

_UNSAFE = re.compile(r"[^\w.-]+")


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def safe_name(text: str, limit: int = 80) -> str:
    """File-system safe fragment of arbitrary text."""
    cleaned = _UNSAFE.sub("_", text or "").strip("_")
    return (cleaned or "artifact")[:limit]


def screenshot_path(out_dir: str, name: str) -> str:
    """``<out_dir>/screenshots/<name>_<yyyymmdd_HHMMSS>.png``"""
    shots = os.path.join(out_dir, "screenshots")
    ensure_dir(shots)
    return os.path.join(shots, f"{safe_name(name)}_{_ts()}.png")


def make_artifacts(page: Any, out_dir: str, prefix: str) -> Dict[str, str]:
    """
    Capture a full-page screenshot and the page HTML.

    Best-effort: a closed page or a crashed browser yields an empty or
    partial dict, never an exception.

    @return Dict of artifact type to file path
    """
    artifacts: Dict[str, str] = {}
    if page is None:
        return artifacts

    try:
        path = screenshot_path(out_dir, prefix)
        page.screenshot(path=path, full_page=True)
        artifacts["screenshot"] = path
    except Exception as e:
        _log.warning("Failure screenshot not captured: %s", e)

    try:
        html_path = os.path.join(out_dir, f"{safe_name(prefix)}_{_ts()}.html")
        ensure_dir(out_dir)
        with open(html_path, "w", encoding="utf-8") as f:
            f.write(page.content())
        artifacts["html"] = html_path
    except Exception as e:
        _log.warning("Page HTML not captured: %s", e)

    return artifacts
