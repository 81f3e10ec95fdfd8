# webauto/resolver.py
"""
@file resolver.py
@brief Standard resolution: fixed-priority selector candidates built from a descriptor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from .actionlogger import ACTION_LOGGER
from .descriptor import ElementDescriptor
from .exceptions import LocatorAttempt

_log = logging.getLogger("webauto.resolver")


def quote_single(value: str) -> str:
    """Escape a value for a single-quoted selector literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass(frozen=True)
class LocatorCandidate:
    """One query to try: the strategy that produced it and the selector string."""
    strategy: str
    selector: str


@dataclass
class CandidateMatch:
    handle: Any
    candidate: LocatorCandidate


def build_candidates(descriptor: ElementDescriptor) -> List[LocatorCandidate]:
    """
    Candidates in priority order, built from non-absent fields only:
    id, name, css selector, selector, xpath, text, placeholder, data-test-id.
    """
    d = descriptor
    out: List[LocatorCandidate] = []
    if d.id is not None:
        out.append(LocatorCandidate("id", f"#{d.id}"))
    if d.name is not None:
        out.append(LocatorCandidate("name", f"[name='{quote_single(d.name)}']"))
    if d.css_selector is not None:
        out.append(LocatorCandidate("css", d.css_selector))
    if d.selector is not None:
        out.append(LocatorCandidate("selector", d.selector))
    if d.xpath is not None:
        xpath = d.xpath if d.xpath.startswith("xpath=") else f"xpath={d.xpath}"
        out.append(LocatorCandidate("xpath", xpath))
    if d.text is not None:
        out.append(LocatorCandidate("text", f"text='{quote_single(d.text)}'"))
    if d.placeholder is not None:
        out.append(LocatorCandidate("placeholder", f"[placeholder='{quote_single(d.placeholder)}']"))
    if d.data_test is not None:
        escaped = quote_single(d.data_test)
        out.append(LocatorCandidate("data-testid", f"[data-testid='{escaped}']"))
        out.append(LocatorCandidate("data-test", f"[data-test='{escaped}']"))
    return out


def best_selector(descriptor: ElementDescriptor) -> Optional[str]:
    """First of id, selector, css selector, xpath; used for the advisory attach wait."""
    if descriptor.id is not None:
        return f"#{descriptor.id}"
    for value in (descriptor.selector, descriptor.css_selector):
        if value is not None:
            return value
    if descriptor.xpath is not None:
        return descriptor.xpath if descriptor.xpath.startswith("xpath=") else f"xpath={descriptor.xpath}"
    return None


class StandardResolver:
    """
    Tries each candidate against the page and accepts the first one with a
    match count above zero. A candidate that raises (malformed or unsupported
    selector) counts as that candidate failing. Exhaustion returns None.
    """

    def resolve(
        self,
        page: Any,
        descriptor: ElementDescriptor,
        attempts: Optional[List[LocatorAttempt]] = None,
    ) -> Optional[CandidateMatch]:
        attempts = attempts if attempts is not None else []
        candidates = build_candidates(descriptor)
        if not candidates:
            _log.warning("Descriptor has no identifying fields: %s", descriptor.describe())
            return None

        for candidate in candidates:
            try:
                locator = page.locator(candidate.selector)
                count = locator.count()
            except Exception as e:
                err = f"{type(e).__name__}: {e}"
                attempts.append(LocatorAttempt("candidate", candidate.strategy, candidate.selector, error=err))
                _log.debug("Candidate %s %r failed: %s", candidate.strategy, candidate.selector, err)
                self._log_attempt(candidate, None, "error")
                continue

            attempts.append(LocatorAttempt("candidate", candidate.strategy, candidate.selector, count=count))
            if count > 0:
                _log.info("Found %s via %s: %s (%d matches)", descriptor.describe(), candidate.strategy, candidate.selector, count)
                self._log_attempt(candidate, count, "ok")
                return CandidateMatch(handle=locator.first, candidate=candidate)
            self._log_attempt(candidate, count, "miss")

        _log.info("Standard resolution exhausted %d candidates for %s", len(candidates), descriptor.describe())
        return None

    @staticmethod
    def _log_attempt(candidate: LocatorCandidate, count: Optional[int], status: str) -> None:
        ACTION_LOGGER.candidate_attempt(candidate.strategy, candidate.selector, count, status)
