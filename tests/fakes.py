# tests/fakes.py
"""
In-memory stand-ins for the Playwright page and browser session.

A FakePage answers selector queries from dictionaries set up by each test,
so resolution, healing and action sequencing run without a browser.
"""

from contextlib import contextmanager

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from webauto.config import AppConfig
from webauto.finder import LIVE_ATTRIBUTES_JS


class FakeNode:
    """One DOM element: live attributes (camelCase, as the live-attribute script returns them) and state."""

    def __init__(self, name, attrs=None, text="", visible=True, enabled=True, editable=True, styles=None, detached=False):
        self.name = name
        self.attrs = dict(attrs or {})
        self.text = text
        self.visible = visible
        self.enabled = enabled
        self.editable = editable
        self.styles = dict(styles or {})
        self.value = self.attrs.get("value", "")
        self.checked = False
        self.selected = None
        self.files = None
        self.detached = detached


class FakeLocator:
    def __init__(self, page, nodes, error=None):
        self.page = page
        self.nodes = list(nodes)
        self.error = error

    def _node(self):
        if not self.nodes:
            raise PlaywrightTimeoutError("Timeout: no element matches")
        return self.nodes[0]

    def count(self):
        if self.error is not None:
            raise self.error
        return len(self.nodes)

    @property
    def first(self):
        return FakeLocator(self.page, self.nodes[:1], self.error)

    def wait_for(self, state="visible", timeout=None):
        if self.error is not None or not self.nodes:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for {state}")

    def evaluate(self, script, arg=None, timeout=None):
        node = self._node()
        if node.detached:
            raise RuntimeError("Execution context was destroyed")
        if script == LIVE_ATTRIBUTES_JS:
            return dict(node.attrs)
        if "getComputedStyle" in script:
            return node.styles.get(arg, "")
        return None

    # --- State ---

    def is_visible(self):
        return bool(self.nodes) and self.nodes[0].visible

    def is_enabled(self):
        return self._node().enabled

    def is_editable(self):
        return self._node().editable

    # --- Interactions ---

    def _record(self, action, *args):
        node = self._node()
        self.page.events.append((action, node.name) + args)
        return node

    def click(self, button="left", timeout=None):
        self._record("click", button)

    def dblclick(self, timeout=None):
        self._record("dblclick")

    def hover(self, timeout=None):
        self._record("hover")

    def fill(self, text, timeout=None):
        self._record("fill", text).value = text

    def clear(self, timeout=None):
        self._record("clear").value = ""

    def check(self, timeout=None):
        self._record("check").checked = True

    def uncheck(self, timeout=None):
        self._record("uncheck").checked = False

    def select_option(self, option, timeout=None):
        self._record("select", option).selected = option
        return [option]

    def press(self, key, timeout=None):
        self._record("press", key)

    def scroll_into_view_if_needed(self, timeout=None):
        self._record("scroll")

    def drag_to(self, target, timeout=None):
        self._record("drag", target.nodes[0].name)

    def set_input_files(self, files, timeout=None):
        self._record("upload", files).files = files

    def inner_text(self, timeout=None):
        return self._node().text

    def get_attribute(self, name, timeout=None):
        return self._node().attrs.get(name)


class FakeKeyboard:
    def __init__(self, page):
        self.page = page

    def press(self, key):
        self.page.events.append(("keyboard", key))


class FakePopupInfo:
    def __init__(self, value):
        self.value = value


class FakePage:
    """
    @param matches selector -> list of FakeNode
    @param invalid selectors whose count() raises like a malformed selector
    @param labels label text -> nodes (get_by_label)
    @param roles (role, name) -> nodes (get_by_role)
    """

    def __init__(self, matches=None, invalid=None, labels=None, roles=None, title="Page"):
        self.matches = dict(matches or {})
        self.invalid = set(invalid or [])
        self.labels = dict(labels or {})
        self.roles = dict(roles or {})
        self.queries = []
        self.events = []
        self.handlers = {}
        self.keyboard = FakeKeyboard(self)
        self.url = None
        self.popup = None
        self.evaluate_result = None
        self._title = title

    def add(self, selector, *nodes):
        self.matches.setdefault(selector, []).extend(nodes)

    def locator(self, selector):
        self.queries.append(selector)
        if selector in self.invalid:
            return FakeLocator(self, [], error=ValueError(f"Unsupported selector: {selector}"))
        return FakeLocator(self, self.matches.get(selector, []))

    def get_by_label(self, text, exact=False):
        self.queries.append(f"label:{text}")
        return FakeLocator(self, self.labels.get(text, []))

    def get_by_role(self, role, name=None):
        self.queries.append(f"role:{role}:{name}")
        return FakeLocator(self, self.roles.get((role, name), []))

    # --- Page-level ---

    def goto(self, url, timeout=None):
        self.url = url
        self.events.append(("goto", url))

    def wait_for_load_state(self, state="load", timeout=None):
        self.events.append(("load_state", state))

    def wait_for_timeout(self, ms):
        self.events.append(("pause", ms))

    def evaluate(self, script):
        self.events.append(("evaluate", script))
        return self.evaluate_result

    def on(self, event, handler):
        self.handlers.setdefault(event, []).append(handler)

    @contextmanager
    def expect_popup(self, timeout=None):
        yield FakePopupInfo(self.popup)

    def screenshot(self, path=None, full_page=False):
        if path:
            with open(path, "wb") as f:
                f.write(b"\x89PNG")
        return b"\x89PNG"

    def content(self):
        return "<html><body></body></html>"

    def title(self):
        return self._title

    def bring_to_front(self):
        pass


class FakeSession:
    """Stands in for BrowserSession; Runner builds one through ``session_factory``."""

    def __init__(self, page=None, config=None):
        self.page = page or FakePage()
        self.config = config or AppConfig()
        self.pages = [self.page]
        self.started = False
        self.closed = False
        self.screenshots = []

    def start(self):
        self.started = True
        return self

    def close(self):
        self.closed = True

    def adopt(self, page):
        if page not in self.pages:
            self.pages.append(page)
        self.page = page
        return page

    def switch_to(self, target):
        index = int(target)
        self.page = self.pages[index]
        return self.page

    def take_screenshot(self, name):
        self.screenshots.append(name)
        return f"{name}.png"
