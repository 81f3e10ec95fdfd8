# webauto/healing.py
"""
@file healing.py
@brief Fingerprint-driven recovery when standard resolution finds nothing.

Four strategies run in a fixed order (label, semantic, proximity, fuzzy
class). A strategy whose required fingerprint fields are absent is skipped.
The first strategy that finds an element wins.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .actionlogger import ACTION_LOGGER
from .descriptor import Fingerprint
from .exceptions import LocatorAttempt

_log = logging.getLogger("webauto.healing")

_CSS_IDENT_SPECIAL = re.compile(r"([^\w-])")


def _js_string(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def css_escape(token: str) -> str:
    """Escape a class token for use after '.' in a CSS selector."""
    escaped = _CSS_IDENT_SPECIAL.sub(r"\\\1", token)
    if escaped[:1].isdigit():
        escaped = f"\\3{escaped[0]} {escaped[1:]}"
    return escaped


@dataclass(frozen=True)
class HealingSettings:
    fuzzy_min_matches: int = 1
    fuzzy_max_matches: int = 3


@dataclass
class HealedMatch:
    handle: Any
    selector: str
    strategy: str


@dataclass(frozen=True)
class HealingStrategy:
    name: str
    is_applicable: Callable[[Fingerprint], bool]
    attempt: Callable[[Any, Fingerprint, HealingSettings, List[LocatorAttempt]], Optional[HealedMatch]]


def _first_if_any(locator: Any, selector: str, strategy: str, attempts: List[LocatorAttempt]) -> Optional[HealedMatch]:
    count = locator.count()
    attempts.append(LocatorAttempt("heal", strategy, selector, count=count))
    if count > 0:
        return HealedMatch(handle=locator.first, selector=selector, strategy=strategy)
    return None


def _label_applicable(fp: Fingerprint) -> bool:
    return fp.context.nearby_text is not None


def _label_attempt(page: Any, fp: Fingerprint, settings: HealingSettings, attempts: List[LocatorAttempt]) -> Optional[HealedMatch]:
    text = fp.context.nearby_text
    selector = f"internal:label={_js_string(text)}s"
    return _first_if_any(page.get_by_label(text, exact=True), selector, "label", attempts)


def _semantic_applicable(fp: Fingerprint) -> bool:
    return fp.attributes.role is not None


def _semantic_attempt(page: Any, fp: Fingerprint, settings: HealingSettings, attempts: List[LocatorAttempt]) -> Optional[HealedMatch]:
    role = fp.attributes.role.strip().lower()
    name = fp.attributes.aria_label
    if name is not None:
        locator = page.get_by_role(role, name=name)
        selector = f"role={role}[name={_js_string(name)}]"
    else:
        locator = page.get_by_role(role)
        selector = f"role={role}"
    return _first_if_any(locator, selector, "semantic", attempts)


def _proximity_applicable(fp: Fingerprint) -> bool:
    return fp.attributes.type is not None and fp.context.nearby_text is not None


def _proximity_attempt(page: Any, fp: Fingerprint, settings: HealingSettings, attempts: List[LocatorAttempt]) -> Optional[HealedMatch]:
    # Exact tag only: a recorded "input" never heals to a "textarea".
    tag = fp.attributes.type.strip().lower()
    selector = f"{tag}:near(:text({_js_string(fp.context.nearby_text)}))"
    return _first_if_any(page.locator(selector), selector, "proximity", attempts)


def _fuzzy_applicable(fp: Fingerprint) -> bool:
    return fp.attributes.class_list is not None


def _fuzzy_attempt(page: Any, fp: Fingerprint, settings: HealingSettings, attempts: List[LocatorAttempt]) -> Optional[HealedMatch]:
    for token in fp.attributes.class_list.split():
        selector = f".{css_escape(token)}"
        try:
            locator = page.locator(selector)
            count = locator.count()
        except Exception as e:
            attempts.append(LocatorAttempt("heal", "fuzzy", selector, error=f"{type(e).__name__}: {e}"))
            continue
        attempts.append(LocatorAttempt("heal", "fuzzy", selector, count=count))
        if settings.fuzzy_min_matches <= count <= settings.fuzzy_max_matches:
            return HealedMatch(handle=locator.first, selector=selector, strategy="fuzzy")
        if count > settings.fuzzy_max_matches:
            _log.debug("Class %r too ambiguous (%d matches)", token, count)
    return None


DEFAULT_STRATEGIES: List[HealingStrategy] = [
    HealingStrategy("label", _label_applicable, _label_attempt),
    HealingStrategy("semantic", _semantic_applicable, _semantic_attempt),
    HealingStrategy("proximity", _proximity_applicable, _proximity_attempt),
    HealingStrategy("fuzzy", _fuzzy_applicable, _fuzzy_attempt),
]


class SelfHealingEngine:
    """Runs the healing strategies in order against a page."""

    def __init__(
        self,
        settings: Optional[HealingSettings] = None,
        strategies: Optional[List[HealingStrategy]] = None,
    ):
        self.settings = settings or HealingSettings()
        self.strategies = list(strategies if strategies is not None else DEFAULT_STRATEGIES)

    def heal(
        self,
        page: Any,
        fingerprint: Optional[Fingerprint],
        attempts: Optional[List[LocatorAttempt]] = None,
    ) -> Optional[HealedMatch]:
        """
        @return HealedMatch from the earliest successful strategy, or None
        when there is no fingerprint or every strategy was skipped or failed
        """
        attempts = attempts if attempts is not None else []
        if fingerprint is None:
            _log.info("No fingerprint, healing skipped")
            return None

        _log.info("Self-healing started")
        for strategy in self.strategies:
            if not strategy.is_applicable(fingerprint):
                _log.debug("Strategy %s skipped (fingerprint fields absent)", strategy.name)
                continue
            try:
                match = strategy.attempt(page, fingerprint, self.settings, attempts)
            except Exception as e:
                err = f"{type(e).__name__}: {e}"
                attempts.append(LocatorAttempt("heal", strategy.name, error=err))
                _log.warning("Strategy %s failed: %s", strategy.name, err)
                self._log_attempt(strategy.name, None, "error")
                continue
            if match is not None:
                _log.info("Healed using %s strategy: %s", strategy.name, match.selector)
                self._log_attempt(strategy.name, match.selector, "ok")
                return match
            self._log_attempt(strategy.name, None, "miss")

        _log.error("All healing strategies failed")
        return None

    @staticmethod
    def _log_attempt(strategy: str, selector: Optional[str], status: str) -> None:
        ACTION_LOGGER.heal_attempt(strategy, selector, status)
