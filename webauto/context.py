# webauto/context.py
"""
@file context.py
@brief Action context stack used to build action traces for failure reports.
"""

from __future__ import annotations

import functools
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Optional
from uuid import uuid4

from .actionlogger import ACTION_LOGGER

_log = logging.getLogger("webauto.context")


@dataclass
class ActionContext:
    """One frame of the action trace (a step, an action, a resolution)."""
    action_id: str = field(default_factory=lambda: uuid4().hex[:8])
    action_name: str = ""
    element_name: Optional[str] = None
    step_text: Optional[str] = None
    start_time: float = field(default_factory=time.monotonic)
    metadata: Dict[str, Any] = field(default_factory=dict)
    parent_context: Optional[ActionContext] = None

    @property
    def description(self) -> str:
        parts = [self.action_name]
        if self.element_name:
            parts.append(f"on '{self.element_name}'")
        if self.step_text:
            parts.append(f"in step '{self.step_text}'")
        return " ".join(parts)

    @property
    def elapsed_time(self) -> float:
        return time.monotonic() - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action_id": self.action_id,
            "action_name": self.action_name,
            "element_name": self.element_name,
            "step_text": self.step_text,
            "elapsed_time": round(self.elapsed_time, 3),
            "metadata": self.metadata,
        }

    def enclosing_step(self) -> Optional[str]:
        """Step text of the nearest frame that carries one."""
        for ctx in self.get_full_trace():
            if ctx.step_text:
                return ctx.step_text
        return None

    def get_full_trace(self) -> List[ActionContext]:
        """Innermost frame first."""
        trace = [self]
        current = self.parent_context
        while current is not None:
            trace.append(current)
            current = current.parent_context
        return trace

    def format_trace(self) -> str:
        lines = ["Action trace (most recent first):"]
        for i, ctx in enumerate(self.get_full_trace()):
            prefix = "  -> " if i > 0 else "  X "
            lines.append(f"{prefix}{ctx.description} [{ctx.elapsed_time:.2f}s]")
        return "\n".join(lines)


class ActionContextManager:
    """Per-thread stack of ActionContext frames."""

    _local = threading.local()

    @classmethod
    def _get_stack(cls) -> List[ActionContext]:
        if not hasattr(cls._local, "stack"):
            cls._local.stack = []
        return cls._local.stack

    @classmethod
    def current(cls) -> Optional[ActionContext]:
        stack = cls._get_stack()
        return stack[-1] if stack else None

    @classmethod
    def push(cls, context: ActionContext) -> None:
        stack = cls._get_stack()
        if stack:
            context.parent_context = stack[-1]
        stack.append(context)

    @classmethod
    def pop(cls) -> Optional[ActionContext]:
        stack = cls._get_stack()
        return stack.pop() if stack else None

    @classmethod
    @contextmanager
    def action(
        cls,
        action_name: str,
        element_name: Optional[str] = None,
        step_text: Optional[str] = None,
        **metadata: Any,
    ) -> Generator[ActionContext, None, None]:
        """Push a frame for the duration of the ``with`` block."""
        context = ActionContext(
            action_name=action_name,
            element_name=element_name,
            step_text=step_text,
            metadata=metadata,
        )
        cls.push(context)
        try:
            yield context
        finally:
            cls.pop()

    @classmethod
    def snapshot(cls) -> List[Dict[str, Any]]:
        """Current stack as dicts, innermost first (attached to failed steps)."""
        return [ctx.to_dict() for ctx in reversed(cls._get_stack())]

    @classmethod
    def clear(cls) -> None:
        cls._local.stack = []


def attach_trace(exc: BaseException) -> BaseException:
    """Record the live context stack on ``exc`` once, at the innermost frame that sees it."""
    if getattr(exc, "action_trace", None) is None:
        try:
            exc.action_trace = ActionContextManager.snapshot()
        except AttributeError:
            pass
    return exc


def _element_name_from(args: tuple, kwargs: Dict[str, Any]) -> Optional[str]:
    explicit = kwargs.get("description")
    if explicit:
        return str(explicit)
    target = kwargs.get("descriptor")
    if target is None and len(args) > 1:
        target = args[1]
    if target is None:
        return None
    describe = getattr(target, "describe", None)
    if callable(describe):
        return describe()
    return target if isinstance(target, str) else None


def tracked_action(action_name: Optional[str] = None):
    """Track a keyword-library call: push a context frame and emit ``action_finish``."""
    def decorator(func):
        name = action_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            element_name = _element_name_from(args, kwargs)
            log_meta = {k: v for k, v in kwargs.items() if k not in {"descriptor", "target"}}
            with ActionContextManager.action(name, element_name=element_name) as context:
                step_text = context.enclosing_step()
                try:
                    result = func(*args, **kwargs)
                except Exception as exc:
                    attach_trace(exc)
                    _log.debug("%s failed\n%s", name, context.format_trace())
                    ACTION_LOGGER.action_finish(name, element_name, step_text, context.action_id,
                                                context.elapsed_time, log_meta, exc)
                    raise
                ACTION_LOGGER.action_finish(name, element_name, step_text, context.action_id,
                                            context.elapsed_time, log_meta)
                return result

        return wrapper

    return decorator
