# webauto/finder.py
"""
@file finder.py
@brief Element resolution orchestrator: advisory wait, standard resolution,
self-healing, live-attribute refresh and healing report.

This is the single entry point the keyword library uses to turn an
ElementDescriptor into a Playwright locator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .actionlogger import ACTION_LOGGER
from .config import TimeConfig
from .context import ActionContextManager
from .descriptor import LIVE_FIELDS, ElementDescriptor
from .exceptions import ElementNotFoundError, LocatorAttempt
from .healing import SelfHealingEngine
from .resolver import StandardResolver, best_selector

_log = logging.getLogger("webauto.finder")
_heal_log = logging.getLogger("webauto.healing")

# Reads the live DOM attributes refreshed after every successful resolve.
LIVE_ATTRIBUTES_JS = """el => {
    const attr = name => el.getAttribute(name);
    const text = (el.textContent || '').trim();
    let cls = el.getAttribute('class');
    return {
        type: el.tagName ? el.tagName.toLowerCase() : null,
        id: el.id || null,
        name: attr('name'),
        text: text || null,
        placeholder: attr('placeholder'),
        value: ('value' in el && typeof el.value === 'string') ? el.value : attr('value'),
        dataTest: attr('data-testid') || attr('data-test'),
        ariaLabel: attr('aria-label'),
        role: attr('role'),
        title: attr('title'),
        alt: attr('alt'),
        className: cls,
        href: attr('href'),
        src: attr('src'),
    };
}"""

_LIVE_KEYS = {
    "type": "type",
    "id": "id",
    "name": "name",
    "text": "text",
    "placeholder": "placeholder",
    "value": "value",
    "data_test": "dataTest",
    "aria_label": "ariaLabel",
    "role": "role",
    "title": "title",
    "alt": "alt",
    "class_name": "className",
    "href": "href",
    "src": "src",
}

_REPORT_LABELS = {
    "id": "ID",
    "selector": "Selector",
    "css_selector": "CssSelector",
    "xpath": "XPath",
    "text": "Text",
    "class_name": "ClassName",
}


@dataclass(frozen=True)
class HealingRow:
    attribute: str
    before: Optional[str]
    after: Optional[str]

    @property
    def changed(self) -> bool:
        return self.before != self.after


@dataclass
class HealingReport:
    """Before/after view of a healed descriptor (diagnostics only)."""
    strategy: str
    selector: str
    rows: List[HealingRow] = field(default_factory=list)

    @classmethod
    def build(cls, strategy: str, selector: str, before: Dict[str, Optional[str]], after: Dict[str, Optional[str]]) -> HealingReport:
        rows = [HealingRow(_REPORT_LABELS.get(k, k), before.get(k), after.get(k)) for k in before]
        return cls(strategy=strategy, selector=selector, rows=rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "selector": self.selector,
            "rows": [{"attribute": r.attribute, "before": r.before, "after": r.after} for r in self.rows],
        }

    def render(self, width: int = 23) -> str:
        def cell(value: Optional[str]) -> str:
            text = "(none)" if value is None else value
            if len(text) > width:
                text = text[: width - 3] + "..."
            return text.ljust(width)

        sep = "+" + "+".join("-" * (width + 2) for _ in range(3)) + "+"
        lines = [
            f"HEALING REPORT (strategy: {self.strategy})",
            sep,
            f"| {cell('Attribute')} | {cell('Before')} | {cell('After')} |",
            sep,
        ]
        for row in self.rows:
            lines.append(f"| {cell(row.attribute)} | {cell(row.before)} | {cell(row.after)} |")
        lines.append(sep)
        return "\n".join(lines)


@dataclass
class Resolution:
    handle: Any
    resolved_selector: str
    healed: bool
    strategy: str
    attempts: List[LocatorAttempt] = field(default_factory=list)
    report: Optional[HealingReport] = None


class ElementFinder:
    """
    Resolves descriptors against the session's current page.

    resolve() mutates the descriptor (live attributes, and ``selector`` /
    ``healed`` after a heal) and also returns an explicit Resolution.
    """

    def __init__(
        self,
        session: Any,
        resolver: Optional[StandardResolver] = None,
        healing: Optional[SelfHealingEngine] = None,
    ):
        self.session = session
        self.resolver = resolver or StandardResolver()
        self.healing = healing or SelfHealingEngine()
        self.last_attempts: List[LocatorAttempt] = []

    @property
    def page(self) -> Any:
        return self.session.page

    def resolve(self, descriptor: ElementDescriptor, heal: bool = True) -> Optional[Resolution]:
        """
        @param heal False skips the healing cascade (absence checks)
        @return Resolution, or None when standard and healing strategies are exhausted
        """
        page = self.page
        attempts: List[LocatorAttempt] = []
        self.last_attempts = attempts
        with ActionContextManager.action("resolve", element_name=descriptor.describe()):
            self._advisory_wait(page, descriptor)

            match = self.resolver.resolve(page, descriptor, attempts)
            if match is not None:
                self.refresh_live_attributes(descriptor, match.handle)
                return Resolution(
                    handle=match.handle,
                    resolved_selector=match.candidate.selector,
                    healed=False,
                    strategy=match.candidate.strategy,
                    attempts=attempts,
                )

            if not heal:
                return None
            if descriptor.fingerprint is None:
                _log.info("No match and no fingerprint for %s", descriptor.describe())
                return None

            before = descriptor.snapshot()
            healed = self.healing.heal(page, descriptor.fingerprint, attempts)
            if healed is None:
                return None

            descriptor.selector = healed.selector
            descriptor.healed = True
            self.refresh_live_attributes(descriptor, healed.handle)
            report = HealingReport.build(healed.strategy, healed.selector, before, descriptor.snapshot())
            self._emit_report(descriptor, report)
            return Resolution(
                handle=healed.handle,
                resolved_selector=healed.selector,
                healed=True,
                strategy=healed.strategy,
                attempts=attempts,
                report=report,
            )

    def resolve_or_raise(self, descriptor: Optional[ElementDescriptor], action: str = "resolve", description: Optional[str] = None) -> Resolution:
        """
        Resolve, treating "not found" as fatal.

        @throws ElementNotFoundError naming the action and description
        """
        if descriptor is None:
            raise ElementNotFoundError(action, description or "element (no descriptor)")
        resolution = self.resolve(descriptor)
        if resolution is None:
            raise ElementNotFoundError(
                action,
                description or descriptor.describe(),
                attempts=list(self.last_attempts),
            )
        return resolution

    def _advisory_wait(self, page: Any, descriptor: ElementDescriptor) -> None:
        selector = best_selector(descriptor)
        if selector is None:
            return
        settings = TimeConfig.current().advisory_wait
        try:
            page.locator(selector).first.wait_for(state="attached", timeout=settings.timeout_ms)
        except PlaywrightTimeoutError:
            _log.debug("Advisory wait for %s timed out after %ss", selector, settings.timeout)
        except Exception as e:
            _log.debug("Advisory wait for %s failed: %s", selector, e)

    def refresh_live_attributes(self, descriptor: ElementDescriptor, handle: Any) -> None:
        """Copy the live DOM attributes onto the descriptor; failures are logged only."""
        settings = TimeConfig.current().live_attributes
        try:
            live = handle.evaluate(LIVE_ATTRIBUTES_JS, timeout=settings.timeout_ms) or {}
        except Exception as e:
            _log.warning("Could not refresh live attributes for %s: %s", descriptor.describe(), e)
            return
        for attr in LIVE_FIELDS:
            setattr(descriptor, attr, live.get(_LIVE_KEYS[attr]))

    @staticmethod
    def _emit_report(descriptor: ElementDescriptor, report: HealingReport) -> None:
        _heal_log.info("%s", report.render())
        ACTION_LOGGER.healing_report(
            descriptor.describe(),
            report.strategy,
            report.selector,
            {r.attribute: [r.before, r.after] for r in report.rows if r.changed},
        )
