# webauto/registry.py
"""
@file registry.py
@brief Explicit registry of hand-written fallback steps.

Steps with no step file are looked up here, first by normalized key (the
same normalization used for step file names) and then by regex.

    @step('I accept the cookie banner')
    def accept_cookies(actions):
        actions.page.get_by_role("button", name="Accept").click()

    @step(r'I wait (\\d+) seconds', regex=True)
    def wait_seconds(actions, seconds):
        actions.page.wait_for_timeout(int(seconds) * 1000)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Pattern, Tuple

from .exceptions import ConfigError
from .params import extract_all_parameters
from .repository import normalize_step

StepFunc = Callable[..., None]


@dataclass(frozen=True)
class StepHandler:
    pattern: str
    func: StepFunc
    regex: Optional[Pattern[str]] = None

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", repr(self.func))


class StepRegistry:
    def __init__(self) -> None:
        self._by_key: Dict[str, StepHandler] = {}
        self._by_regex: List[StepHandler] = []

    def register(self, pattern: str, func: StepFunc, regex: bool = False) -> StepHandler:
        if regex:
            handler = StepHandler(pattern, func, re.compile(pattern, re.IGNORECASE))
            self._by_regex.append(handler)
            return handler
        key = normalize_step(pattern)
        if not key:
            raise ConfigError(f"Step pattern normalizes to nothing: {pattern!r}")
        if key in self._by_key:
            raise ConfigError(
                f"Duplicate step handler for '{key}': {self._by_key[key].name} and "
                f"{getattr(func, '__name__', func)}"
            )
        handler = StepHandler(pattern, func)
        self._by_key[key] = handler
        return handler

    def step(self, pattern: str, regex: bool = False) -> Callable[[StepFunc], StepFunc]:
        """Decorator form of register()."""
        def decorator(func: StepFunc) -> StepFunc:
            self.register(pattern, func, regex=regex)
            return func
        return decorator

    def find(self, step_text: str) -> Optional[Tuple[StepHandler, List[str]]]:
        """
        @return (handler, positional args) or None. Key matches receive the
        step's quoted literals; regex matches receive the capture groups.
        """
        handler = self._by_key.get(normalize_step(step_text))
        if handler is not None:
            return handler, extract_all_parameters(step_text)
        for handler in self._by_regex:
            m = handler.regex.fullmatch(step_text.strip())
            if m:
                return handler, [g for g in m.groups()]
        return None

    def keys(self) -> List[str]:
        return sorted(self._by_key) + [h.pattern for h in self._by_regex]

    def __len__(self) -> int:
        return len(self._by_key) + len(self._by_regex)

    def __contains__(self, step_text: str) -> bool:
        return self.find(step_text) is not None


REGISTRY = StepRegistry()


def step(pattern: str, regex: bool = False) -> Callable[[StepFunc], StepFunc]:
    """Register a fallback step on the default registry."""
    return REGISTRY.step(pattern, regex=regex)
