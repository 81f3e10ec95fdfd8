# webauto/element.py
"""
@file element.py
@brief Element wrapper over a resolved Playwright locator.
"""

from __future__ import annotations

from typing import Any, List, Optional, Union

from .config import TimeConfig
from .waits import wait_until


class Element:
    """
    A resolved element: the Playwright locator plus how it was found.

    Readiness waits poll the locator state through ``wait_until`` so that a
    timeout carries the last Playwright error and shows up in timing logs.
    """

    def __init__(self, handle: Any, name: str = "element", resolution: Any = None):
        self._handle = handle
        self.name = name
        self.resolution = resolution

    @property
    def handle(self) -> Any:
        return self._handle

    # --- State queries ---

    def is_visible(self) -> bool:
        return bool(self._handle.is_visible())

    def is_enabled(self) -> bool:
        return bool(self._handle.is_enabled())

    def is_editable(self) -> bool:
        return bool(self._handle.is_editable())

    # --- Waits ---

    def wait(self, state: str = "visible", timeout: Optional[float] = None) -> Element:
        """
        Wait for the element to reach a state.

        @param state One of: "visible", "enabled", "editable"
        @return self for chaining
        """
        cfg = TimeConfig.current()
        if state == "visible":
            settings = cfg.visibility_wait
            predicate = self.is_visible
        elif state == "enabled":
            settings = cfg.enabled_wait
            predicate = lambda: self.is_visible() and self.is_enabled()
        elif state == "editable":
            settings = cfg.editable_wait
            predicate = lambda: self.is_visible() and self.is_editable()
        else:
            raise ValueError(f"Unknown state: {state}. Use 'visible', 'enabled' or 'editable'")

        wait_until(
            predicate,
            timeout=timeout if timeout is not None else settings.timeout,
            interval=settings.interval,
            description=f"element '{self.name}' {state}",
            stage="readiness",
        )
        return self

    def wait_ready(self, action_type: str) -> Element:
        """Readiness for an interaction kind: enabled for pointer/select, editable for typing."""
        kind = action_type.upper()
        if kind in {"CLICK", "DOUBLE_CLICK", "RIGHT_CLICK", "SELECT", "CHECK", "UNCHECK"}:
            return self.wait("enabled")
        if kind in {"TYPE", "CLEAR"}:
            return self.wait("editable")
        return self.wait("visible")

    # --- Interactions ---

    @staticmethod
    def _timeout_ms() -> float:
        return TimeConfig.current().action_wait.timeout_ms

    def click(self, button: str = "left") -> None:
        self._handle.click(button=button, timeout=self._timeout_ms())

    def double_click(self) -> None:
        self._handle.dblclick(timeout=self._timeout_ms())

    def hover(self) -> None:
        self._handle.hover(timeout=self._timeout_ms())

    def fill(self, text: str) -> None:
        self._handle.fill(text, timeout=self._timeout_ms())

    def clear(self) -> None:
        self._handle.clear(timeout=self._timeout_ms())

    def check(self) -> None:
        self._handle.check(timeout=self._timeout_ms())

    def uncheck(self) -> None:
        self._handle.uncheck(timeout=self._timeout_ms())

    def select_option(self, option: str) -> List[str]:
        """A plain string matches either the option value or its label."""
        return self._handle.select_option(option, timeout=self._timeout_ms())

    def press(self, key: str) -> None:
        self._handle.press(key, timeout=self._timeout_ms())

    def scroll_into_view(self) -> None:
        self._handle.scroll_into_view_if_needed(timeout=self._timeout_ms())

    def drag_to(self, target: Element) -> None:
        self._handle.drag_to(target.handle, timeout=self._timeout_ms())

    def set_input_files(self, files: Union[str, List[str]]) -> None:
        self._handle.set_input_files(files, timeout=self._timeout_ms())

    # --- Reads ---

    def inner_text(self) -> str:
        return self._handle.inner_text(timeout=self._timeout_ms())

    def get_attribute(self, name: str) -> Optional[str]:
        return self._handle.get_attribute(name, timeout=self._timeout_ms())

    def computed_style(self, prop: str) -> str:
        return self._handle.evaluate(
            "(el, prop) => window.getComputedStyle(el).getPropertyValue(prop)",
            prop,
            timeout=self._timeout_ms(),
        )
