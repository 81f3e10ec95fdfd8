# webauto/session.py
from __future__ import annotations

import logging
import os
from typing import Any, List, Optional, Union

from playwright.sync_api import sync_playwright

from .artifacts import screenshot_path
from .config import AppConfig, TimeConfig
from .exceptions import WebAutoError, WindowNotFoundError


class BrowserSession:
    """
    Owns the Playwright driver, browser, context and current page for one scenario.

    Use as a context manager, or call start()/close() explicitly.
    """

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or AppConfig()
        self.log = logger or logging.getLogger("webauto.session")
        self._playwright: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None

    def __enter__(self) -> BrowserSession:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> BrowserSession:
        if self._page is not None:
            return self
        cfg = self.config
        timings = TimeConfig.current()
        self.log.info("Launching %s (headless=%s, slow_mo=%s)", cfg.browser, cfg.headless, cfg.slow_mo)

        self._playwright = sync_playwright().start()
        launch_kwargs = {
            "headless": cfg.headless,
            "slow_mo": cfg.slow_mo,
            "timeout": timings.browser_launch.timeout_ms,
        }
        if cfg.browser == "firefox":
            browser_type = self._playwright.firefox
        elif cfg.browser == "webkit":
            browser_type = self._playwright.webkit
        else:
            browser_type = self._playwright.chromium
            if cfg.browser == "chrome":
                launch_kwargs["channel"] = "chrome"
        self._browser = browser_type.launch(**launch_kwargs)

        context_kwargs = {}
        if cfg.record_video:
            video_dir = os.path.join(cfg.artifacts_dir, "videos")
            os.makedirs(video_dir, exist_ok=True)
            context_kwargs["record_video_dir"] = video_dir
        self._context = self._browser.new_context(**context_kwargs)
        self._context.set_default_timeout(timings.action_wait.timeout_ms)
        self._context.set_default_navigation_timeout(timings.page_load.timeout_ms)
        self._page = self._context.new_page()
        self.log.info("Browser ready (environment=%s)", cfg.environment)
        return self

    @property
    def page(self) -> Any:
        if self._page is None:
            raise WebAutoError("Browser session not started.")
        return self._page

    @property
    def context(self) -> Any:
        if self._context is None:
            raise WebAutoError("Browser session not started.")
        return self._context

    @property
    def pages(self) -> List[Any]:
        return list(self.context.pages)

    def adopt(self, page: Any) -> Any:
        """Make ``page`` (e.g. a popup) the current page."""
        page.bring_to_front()
        self._page = page
        return page

    def switch_to(self, target: Union[int, str]) -> Any:
        """
        Switch by 0-based index, or by case-insensitive title fragment.

        @throws WindowNotFoundError when nothing matches
        """
        pages = self.pages
        if isinstance(target, str) and target.strip().lstrip("-").isdigit():
            target = int(target.strip())

        if isinstance(target, int):
            if target < 0 or target >= len(pages):
                raise WindowNotFoundError(str(target), [p.title() for p in pages])
            page = pages[target]
        else:
            needle = (target or "").lower()
            page = next((p for p in pages if needle in p.title().lower()), None)
            if page is None:
                raise WindowNotFoundError(target, [p.title() for p in pages])

        self.adopt(page)
        self.log.info("Switched to page: %s", page.title())
        return page

    def take_screenshot(self, name: str) -> str:
        path = screenshot_path(self.config.artifacts_dir, name)
        self.page.screenshot(path=path, full_page=True)
        self.log.info("Screenshot saved: %s", path)
        return path

    def close(self) -> None:
        for label, closer in (
            ("context", lambda: self._context and self._context.close()),
            ("browser", lambda: self._browser and self._browser.close()),
            ("playwright", lambda: self._playwright and self._playwright.stop()),
        ):
            try:
                closer()
            except Exception as e:
                self.log.warning("Error closing %s: %s", label, e)
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
