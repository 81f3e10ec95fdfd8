# webauto/actionlogger.py
"""
@file actionlogger.py
@brief Structured events for step execution, locator attempts and healing.

Four event kinds are emitted:
  - ``action_finish``      one keyword action completed or failed
  - ``candidate_attempt``  one standard-resolver selector tried
  - ``heal_attempt``       one healing strategy tried
  - ``healing_report``     a descriptor was healed (before/after changes)

Output is ``line`` (pipe separated) or ``jsonl`` to the console and/or a
file. The logger is off until enabled, normally from the
``WEBAUTO_ACTION_LOGGING`` environment variables read by the CLI.
"""

from __future__ import annotations

import json
import os
import threading
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

_TRUTHY = {"1", "true", "yes", "on"}
_SENSITIVE_KEYS = {"password", "passwd", "secret", "token", "api_key", "otp"}
# Keyword actions whose "value"/"text" metadata is user input.
_INPUT_ACTIONS = {"type", "select", "press_key", "TYPE", "SELECT", "PRESS_KEY"}
# Line format field order after "time | action | event".
_LINE_FIELDS = ("action_id", "element", "step", "strategy", "selector", "phase",
                "attempt", "status", "duration_ms", "run_id")
_QUOTED_FIELDS = {"element", "step", "selector"}


@dataclass
class _Settings:
    enabled: bool = False
    console: bool = True
    file_path: Optional[str] = None
    format: str = "line"
    run_id: str = "default"
    max_traceback_chars: int = 4000


class ActionLogger:
    """Thread-safe structured event logger."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settings = _Settings()

    # --- Configuration ---

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        run_id: Optional[str] = None,
        format: str = "line",
        max_traceback_chars: int = 4000,
    ) -> None:
        fmt = (format or "line").lower()
        if fmt not in {"line", "jsonl"}:
            raise ValueError("ActionLogger format must be 'line' or 'jsonl'")
        with self._lock:
            s = self._settings
            s.console = bool(console)
            s.file_path = file_path
            s.format = fmt
            s.max_traceback_chars = max(256, int(max_traceback_chars))
            if run_id:
                s.run_id = run_id

    def configure_from_env(self, env: Optional[Mapping[str, str]] = None) -> None:
        """
        Enable from WEBAUTO_ACTION_LOGGING (on/off) with WEBAUTO_ACTION_LOG_FILE,
        WEBAUTO_ACTION_LOG_FORMAT (line|jsonl), WEBAUTO_ACTION_LOG_CONSOLE and
        WEBAUTO_ACTION_LOG_MAX_TRACEBACK.
        """
        env = os.environ if env is None else env
        if env.get("WEBAUTO_ACTION_LOGGING", "").lower() not in _TRUTHY:
            self.disable()
            return
        self.configure(
            console=env.get("WEBAUTO_ACTION_LOG_CONSOLE", "1").lower() in _TRUTHY,
            file_path=env.get("WEBAUTO_ACTION_LOG_FILE") or None,
            format=env.get("WEBAUTO_ACTION_LOG_FORMAT", "line"),
            max_traceback_chars=int(env.get("WEBAUTO_ACTION_LOG_MAX_TRACEBACK", "4000")),
        )
        self.enable()

    def enable(self) -> None:
        with self._lock:
            self._settings.enabled = True

    def disable(self) -> None:
        with self._lock:
            self._settings.enabled = False

    def is_enabled(self) -> bool:
        return self._settings.enabled

    def set_run_id(self, run_id: str) -> None:
        if run_id:
            with self._lock:
                self._settings.run_id = run_id

    # --- Event helpers ---

    def action_finish(
        self,
        action: str,
        element: Optional[str],
        step: Optional[str],
        action_id: str,
        elapsed: float,
        metadata: Dict[str, Any],
        exception: Optional[BaseException] = None,
    ) -> None:
        self.log(action=action, element=element, step=step, action_id=action_id,
                 status="error" if exception is not None else "ok",
                 duration_ms=int(elapsed * 1000), metadata=metadata, exception=exception,
                 phase="execute", event="action_finish")

    def candidate_attempt(self, strategy: str, selector: str, count: Optional[int], status: str) -> None:
        self.log(action="resolve", strategy=strategy, selector=selector, status=status,
                 metadata={"count": count}, phase="standard", event="candidate_attempt")

    def heal_attempt(self, strategy: str, selector: Optional[str], status: str) -> None:
        self.log(action="heal", strategy=strategy, selector=selector, status=status,
                 phase="healing", event="heal_attempt")

    def healing_report(self, element: str, strategy: str, selector: str, changes: Dict[str, List[Any]]) -> None:
        self.log(action="heal", element=element, strategy=strategy, selector=selector,
                 metadata={"changes": changes}, phase="healing", event="healing_report")

    # --- Core ---

    def log(
        self,
        *,
        action: str,
        element: Optional[str] = None,
        step: Optional[str] = None,
        strategy: Optional[str] = None,
        selector: Optional[str] = None,
        status: str = "ok",
        duration_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exception: Optional[BaseException] = None,
        action_id: Optional[str] = None,
        phase: Optional[str] = None,
        attempt: Optional[int] = None,
        event: Optional[str] = None,
    ) -> None:
        """Emit one event; a no-op while disabled."""
        s = self._settings
        if not s.enabled:
            return

        record: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "event": event or "action",
            "action": action,
            "action_id": action_id,
            "element": element,
            "step": step,
            "strategy": strategy,
            "selector": selector,
            "phase": phase,
            "status": status,
            "attempt": attempt,
            "duration_ms": duration_ms,
            "metadata": _redact(action, dict(metadata or {})),
            "run_id": s.run_id,
        }
        if exception is not None:
            record["exception"] = _describe_exception(exception, s.max_traceback_chars)

        line = _to_json(record) if s.format == "jsonl" else _to_line(record)
        if s.console:
            print(line, flush=True)
        if s.file_path:
            _append(s.file_path, line)


def _append(path: str, line: str) -> None:
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)) or ".", exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError:
        # Logging must never fail a step.
        pass


def _to_json(record: Dict[str, Any]) -> str:
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)


def _to_line(record: Dict[str, Any]) -> str:
    parts = [record["ts"][11:23], record["action"], f"event={record['event']}"]
    for key in _LINE_FIELDS:
        value = record.get(key)
        if value is None or value == "":
            continue
        parts.append(f"{key}='{value}'" if key in _QUOTED_FIELDS else f"{key}={value}")
    parts.extend(f"{k}={v}" for k, v in record["metadata"].items())

    exc = record.get("exception")
    if exc:
        parts.append(f"exc={exc['type']}: {exc['message']}")
        if exc.get("cause_type"):
            parts.append(f"cause={exc['cause_type']}")
    return " | ".join(parts)


def _redact(action: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
    redacted: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key.lower() in _SENSITIVE_KEYS:
            redacted[key] = "***"
        elif action in _INPUT_ACTIONS and key in {"value", "text"} and value is not None:
            redacted[key] = _mask(str(value))
        else:
            redacted[key] = value
    return redacted


def _mask(text: str, visible: int = 3) -> str:
    if len(text) <= visible:
        return "*" * len(text)
    return f"{text[:visible]}***"


def _describe_exception(exception: BaseException, limit: int) -> Dict[str, Any]:
    tb = "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))
    if len(tb) > limit:
        tb = tb[:limit] + "...<truncated>"
    cause = exception.__cause__
    return {
        "type": type(exception).__name__,
        "message": str(exception),
        "traceback": tb.strip(),
        "cause_type": type(cause).__name__ if cause is not None else None,
        "cause_message": str(cause) if cause is not None else None,
    }


ACTION_LOGGER = ActionLogger()
