# webauto/actions.py
"""
@file actions.py
@brief Keyword action library for browser steps.

Every element keyword resolves its descriptor through the ElementFinder,
waits for the readiness its interaction needs and then delegates to the
Element wrapper. Playwright errors are wrapped in ActionError; framework
errors (not found, verification, missing input) propagate unchanged.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .config import AppConfig, TimeConfig
from .context import tracked_action
from .descriptor import ElementDescriptor
from .element import Element
from .exceptions import (ActionError, MissingInputError, VerificationError,
                         WebAutoError)
from .finder import ElementFinder
from .waits import wait_until_not

_log = logging.getLogger("webauto.actions")

DIALOG_MODES = {"accept", "dismiss"}


class Actions:
    """
    Keyword action library over one BrowserSession.

    @param session BrowserSession (anything exposing ``page``, ``context``,
           ``adopt``, ``switch_to`` and ``take_screenshot``)
    @param finder ElementFinder bound to the same session
    """

    def __init__(self, session: Any, finder: Optional[ElementFinder] = None, config: Optional[AppConfig] = None):
        self.session = session
        self.finder = finder or ElementFinder(session)
        self.config = config or getattr(session, "config", None) or AppConfig()
        self._dialog_mode: Dict[int, str] = {}

    @property
    def page(self) -> Any:
        return self.session.page

    def element(self, descriptor: Optional[ElementDescriptor], action: str, description: Optional[str] = None) -> Element:
        """Resolve a descriptor or raise ElementNotFoundError."""
        resolution = self.finder.resolve_or_raise(descriptor, action=action, description=description)
        return Element(resolution.handle, name=description or descriptor.describe(), resolution=resolution)

    def _ready(self, descriptor: Optional[ElementDescriptor], action: str, description: Optional[str]) -> Element:
        return self.element(descriptor, action, description).wait_ready(action)

    # --- Navigation ---

    @tracked_action("navigate")
    def navigate(self, url: str) -> None:
        """Open ``url`` and wait for load; network idle afterwards is best-effort."""
        if not url:
            raise MissingInputError("NAVIGATE", "URL")
        cfg = TimeConfig.current()
        try:
            self.page.goto(url, timeout=cfg.page_load.timeout_ms)
            self.page.wait_for_load_state("load", timeout=cfg.page_load.timeout_ms)
        except Exception as e:
            raise ActionError("NAVIGATE", description=url, cause=e) from e
        self._settle(cfg.post_navigation_idle.timeout_ms)

    @tracked_action("wait_stable")
    def wait_stable(self) -> None:
        """Wait for network idle (non-fatal), then the stability pause."""
        cfg = TimeConfig.current()
        self._settle(cfg.network_idle.timeout_ms)
        if cfg.stability_pause:
            self.page.wait_for_timeout(cfg.stability_pause * 1000.0)

    def _settle(self, timeout_ms: float) -> None:
        try:
            self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            _log.info("Network not idle after %.0fms, continuing", timeout_ms)

    # --- Pointer ---

    def _pointer(self, action: str, descriptor: Optional[ElementDescriptor], description: Optional[str], fn) -> None:
        try:
            el = self._ready(descriptor, action, description)
            fn(el)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError(action, description=description, cause=e) from e
        pause = TimeConfig.current().after_click_pause
        if pause and action in {"CLICK", "DOUBLE_CLICK", "RIGHT_CLICK"}:
            self.page.wait_for_timeout(pause * 1000.0)

    @tracked_action("click")
    def click(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Click once the element is visible and enabled."""
        self._pointer("CLICK", descriptor, description, lambda el: el.click())

    @tracked_action("double_click")
    def double_click(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Double-click once the element is visible and enabled."""
        self._pointer("DOUBLE_CLICK", descriptor, description, lambda el: el.double_click())

    @tracked_action("right_click")
    def right_click(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Right-click once the element is visible and enabled."""
        self._pointer("RIGHT_CLICK", descriptor, description, lambda el: el.click(button="right"))

    @tracked_action("hover")
    def hover(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Move the pointer over the element."""
        self._pointer("HOVER", descriptor, description, lambda el: el.hover())

    @tracked_action("scroll_to")
    def scroll_to(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Scroll the element into view."""
        self._pointer("SCROLL_TO", descriptor, description, lambda el: el.scroll_into_view())

    @tracked_action("drag_and_drop")
    def drag_and_drop(
        self,
        descriptor: Optional[ElementDescriptor],
        target: Optional[ElementDescriptor],
        description: Optional[str] = None,
    ) -> None:
        """Both ends are resolved independently (each may heal on its own)."""
        if target is None:
            raise MissingInputError("DRAG_AND_DROP", "Target element")
        try:
            source = self.element(descriptor, "DRAG_AND_DROP", description).wait("visible")
            dest = self.element(target, "DRAG_AND_DROP", f"{description or 'drag'} (target)").wait("visible")
            source.drag_to(dest)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("DRAG_AND_DROP", description=description, cause=e) from e

    @tracked_action("click_and_switch")
    def click_and_switch(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> Any:
        """Click and make the popup it opens the session's current page."""
        cfg = TimeConfig.current()
        try:
            el = self._ready(descriptor, "CLICK", description)
            with self.page.expect_popup(timeout=cfg.popup_wait.timeout_ms) as popup_info:
                el.click()
            popup = popup_info.value
            popup.wait_for_load_state("load", timeout=cfg.page_load.timeout_ms)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("CLICK_AND_SWITCH", description=description, cause=e) from e
        self.session.adopt(popup)
        _log.info("Switched to popup: %s", popup.title())
        return popup

    @tracked_action("switch_window")
    def switch_window(self, target: Optional[str]) -> Any:
        """Switch to a page by 0-based index or title fragment."""
        if target is None:
            raise MissingInputError("SWITCH_WINDOW", "Window index or title")
        return self.session.switch_to(target)

    # --- Text entry ---

    @tracked_action("type")
    def type(self, descriptor: Optional[ElementDescriptor], value: str, description: Optional[str] = None) -> None:
        """Replace the field's content with ``value``."""
        try:
            el = self._ready(descriptor, "TYPE", description)
            el.fill(value)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("TYPE", description=description, cause=e) from e

    @tracked_action("clear")
    def clear(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Empty an editable field."""
        try:
            self._ready(descriptor, "CLEAR", description).clear()
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("CLEAR", description=description, cause=e) from e

    @tracked_action("press_key")
    def press_key(self, key: Optional[str] = None, descriptor: Optional[ElementDescriptor] = None, description: Optional[str] = None) -> None:
        """Global keyboard press without a descriptor, scoped to the element otherwise."""
        key = key or "Enter"
        try:
            if descriptor is None:
                self.page.keyboard.press(key)
            else:
                self.element(descriptor, "PRESS_KEY", description).wait("visible").press(key)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("PRESS_KEY", description=description, details=key, cause=e) from e

    # --- Toggles / selection ---

    @tracked_action("check")
    def check(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Check a checkbox or radio; no-op when already checked."""
        self._pointer("CHECK", descriptor, description, lambda el: el.check())

    @tracked_action("uncheck")
    def uncheck(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Uncheck a checkbox or radio; no-op when already unchecked."""
        self._pointer("UNCHECK", descriptor, description, lambda el: el.uncheck())

    @tracked_action("select")
    def select(self, descriptor: Optional[ElementDescriptor], option: str, description: Optional[str] = None) -> None:
        """Choose a dropdown option by value or label."""
        try:
            self._ready(descriptor, "SELECT", description).select_option(option)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("SELECT", description=description, details=option, cause=e) from e

    @tracked_action("upload_file")
    def upload_file(self, descriptor: Optional[ElementDescriptor], path: Optional[str], description: Optional[str] = None) -> None:
        """Attach a local file to a file input."""
        if not path:
            raise MissingInputError("UPLOAD_FILE", "File path")
        try:
            self.element(descriptor, "UPLOAD_FILE", description).set_input_files(path)
        except WebAutoError:
            raise
        except Exception as e:
            raise ActionError("UPLOAD_FILE", description=description, details=path, cause=e) from e

    # --- Verification ---

    @tracked_action("verify_text")
    def verify_text(self, descriptor: Optional[ElementDescriptor], expected: str, description: Optional[str] = None) -> None:
        """Passes when the element's inner text contains ``expected``."""
        el = self.element(descriptor, "VERIFY_TEXT", description).wait("visible")
        actual = el.inner_text()
        if expected not in actual:
            raise VerificationError(
                f"VERIFY_TEXT failed for '{el.name}': expected to contain {expected!r}, got {actual!r}"
            )

    @tracked_action("verify_element")
    def verify_element(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """Wait until the element is visible."""
        el = self.element(descriptor, "VERIFY_ELEMENT", description)
        try:
            el.wait("visible")
        except WebAutoError as e:
            raise VerificationError(f"VERIFY_ELEMENT failed: '{el.name}' is not visible") from e

    @tracked_action("verify_not_visible")
    def verify_not_visible(self, descriptor: Optional[ElementDescriptor], description: Optional[str] = None) -> None:
        """
        Passes when the element cannot be found or is hidden.

        Healing is skipped: a missing element must not heal onto another one.
        """
        if descriptor is None:
            raise MissingInputError("VERIFY_NOT_VISIBLE", "Element descriptor")
        resolution = self.finder.resolve(descriptor, heal=False)
        if resolution is None:
            _log.info("Element %s not found, treated as not visible", description or descriptor.describe())
            return
        el = Element(resolution.handle, name=description or descriptor.describe(), resolution=resolution)
        settings = TimeConfig.current().visibility_wait
        try:
            wait_until_not(
                el.is_visible,
                timeout=settings.timeout,
                interval=settings.interval,
                description=f"element '{el.name}' hidden",
                stage="verify",
            )
        except WebAutoError as e:
            raise VerificationError(f"VERIFY_NOT_VISIBLE failed: '{el.name}' is still visible") from e

    @tracked_action("verify_attribute")
    def verify_attribute(self, descriptor: Optional[ElementDescriptor], expectation: Optional[str], description: Optional[str] = None) -> None:
        """``expectation`` is ``name:expected``; the attribute must equal ``expected``."""
        name, expected = _split_expectation("VERIFY_ATTRIBUTE", expectation)
        el = self.element(descriptor, "VERIFY_ATTRIBUTE", description)
        actual = el.get_attribute(name)
        if actual != expected:
            raise VerificationError(
                f"VERIFY_ATTRIBUTE failed for '{el.name}': {name}={actual!r}, expected {expected!r}"
            )

    @tracked_action("verify_css")
    def verify_css(self, descriptor: Optional[ElementDescriptor], expectation: Optional[str], description: Optional[str] = None) -> None:
        """``expectation`` is ``property:expected``; the computed value must contain ``expected``."""
        prop, expected = _split_expectation("VERIFY_CSS", expectation)
        el = self.element(descriptor, "VERIFY_CSS", description)
        actual = el.computed_style(prop) or ""
        if expected not in actual:
            raise VerificationError(
                f"VERIFY_CSS failed for '{el.name}': {prop}={actual!r}, expected to contain {expected!r}"
            )

    # --- Page-level ---

    @tracked_action("screenshot")
    def screenshot(self, name: Optional[str] = None) -> str:
        """Save a page screenshot under the artifacts directory; returns the file path."""
        return self.session.take_screenshot(name or "screenshot")

    @tracked_action("js_evaluate")
    def js_evaluate(self, script: Optional[str]) -> Any:
        """Run ``script`` in the page and return its result."""
        if not script:
            raise MissingInputError("JS_EVALUATE", "JavaScript script")
        try:
            return self.page.evaluate(script)
        except Exception as e:
            raise ActionError("JS_EVALUATE", details=script[:80], cause=e) from e

    @tracked_action("handle_dialog")
    def handle_dialog(self, mode: Optional[str] = None) -> None:
        """Register how future dialogs on the current page are answered."""
        mode = (mode or "accept").strip().lower()
        if mode not in DIALOG_MODES:
            raise ActionError("HANDLE_DIALOG", details=f"Unknown dialog mode '{mode}' (use accept or dismiss)")
        page = self.page
        key = id(page)
        first = key not in self._dialog_mode
        self._dialog_mode[key] = mode
        if first:
            page.on("dialog", lambda dialog: self._answer_dialog(key, dialog))

    def _answer_dialog(self, key: int, dialog: Any) -> None:
        mode = self._dialog_mode.get(key, "accept")
        _log.info("Dialog '%s' -> %s", getattr(dialog, "message", ""), mode)
        if mode == "dismiss":
            dialog.dismiss()
        else:
            dialog.accept()


def _split_expectation(action: str, expectation: Optional[str]):
    if not expectation or ":" not in expectation:
        raise MissingInputError(action, "Expectation 'name:expected'")
    name, expected = expectation.split(":", 1)
    name = name.strip()
    if not name:
        raise MissingInputError(action, "Expectation name")
    return name, expected.strip()
