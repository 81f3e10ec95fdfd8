# webauto/timinglogger.py
"""
@file timinglogger.py
@brief Wait timing events and per-stage wait statistics.

Every polling wait reports start, success or timeout with its stage
(``visible``, ``enabled``, ``editable``, ``not_visible``, ...). While enabled
the logger writes one line per event to ``webauto.timing`` and an optional
file, and accumulates per-stage totals for the run report.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

_log = logging.getLogger("webauto.timing")


@dataclass
class StageStats:
    waits: int = 0
    timeouts: int = 0
    attempts: int = 0
    total_s: float = 0.0
    max_s: float = 0.0

    def add(self, elapsed: float, attempts: int, timed_out: bool) -> None:
        self.waits += 1
        self.timeouts += int(timed_out)
        self.attempts += attempts
        self.total_s += elapsed
        self.max_s = max(self.max_s, elapsed)


class TimingLogger:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._file_path: Optional[str] = None
        self._stages: Dict[str, StageStats] = {}

    def configure(self, *, file_path: Optional[str] = None) -> None:
        with self._lock:
            self._file_path = file_path

    def enable(self) -> None:
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        with self._lock:
            self._enabled = False

    def is_enabled(self) -> bool:
        return self._enabled

    # --- Wait lifecycle ---

    def wait_start(self, description: str, stage: Optional[str], timeout: float, interval: float) -> None:
        self._emit("wait_start", description, stage, "info", timeout_s=timeout, interval_s=interval)

    def wait_success(self, description: str, stage: Optional[str], attempts: int, elapsed: float) -> None:
        self._record(stage, elapsed, attempts, False)
        self._emit("wait_success", description, stage, "success", attempts=attempts, elapsed_s=round(elapsed, 3))

    def wait_timeout(self, description: str, stage: Optional[str], attempts: int, elapsed: float, timeout: float) -> None:
        self._record(stage, elapsed, attempts, True)
        self._emit("wait_timeout", description, stage, "error",
                   timeout_s=timeout, attempts=attempts, elapsed_s=round(elapsed, 3))

    # --- Statistics ---

    def stats(self) -> Dict[str, Dict[str, Any]]:
        """Per-stage totals since the last reset, rounded for reports."""
        with self._lock:
            return {
                stage: {
                    "waits": s.waits,
                    "timeouts": s.timeouts,
                    "attempts": s.attempts,
                    "total_s": round(s.total_s, 3),
                    "max_s": round(s.max_s, 3),
                }
                for stage, s in sorted(self._stages.items())
            }

    def reset_stats(self) -> None:
        with self._lock:
            self._stages.clear()

    def _record(self, stage: Optional[str], elapsed: float, attempts: int, timed_out: bool) -> None:
        if not self._enabled:
            return
        with self._lock:
            self._stages.setdefault(stage or "unnamed", StageStats()).add(elapsed, attempts, timed_out)

    def _emit(self, event: str, description: str, stage: Optional[str], status: str, **fields: Any) -> None:
        if not self._enabled:
            return

        parts = [f"[{status}]", f"event={event}", f"stage={stage or '-'}", f"description={description}"]
        parts.extend(f"{k}={v}" for k, v in fields.items() if v is not None)
        line = " ".join(parts)

        if status == "error":
            _log.warning(line)
        else:
            _log.info(line)

        if self._file_path:
            try:
                os.makedirs(os.path.dirname(os.path.abspath(self._file_path)) or ".", exist_ok=True)
                with open(self._file_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                _log.debug("Could not write timing log %s: %s", self._file_path, e)


TIMING_LOGGER = TimingLogger()
