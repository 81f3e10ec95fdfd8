# tests/test_finder.py
"""
Tests for the ElementFinder: resolution order, live refresh and healing.
"""

import pytest

from fakes import FakeNode, FakePage, FakeSession

from webauto.descriptor import ElementDescriptor, Fingerprint
from webauto.exceptions import ElementNotFoundError
from webauto.finder import ElementFinder, HealingReport


def finder_for(page):
    return ElementFinder(FakeSession(page))


def test_standard_resolution_refreshes_live_attributes():
    page = FakePage()
    page.add("#user", FakeNode("user", attrs={"type": "input", "id": "user", "placeholder": "Name", "className": "field"}))
    el = ElementDescriptor(id="user", text="stale text", placeholder="Old")

    resolution = finder_for(page).resolve(el)

    assert resolution.healed is False
    assert resolution.strategy == "id"
    assert el.type == "input"
    assert el.placeholder == "Name"
    assert el.class_name == "field"
    assert el.text is None
    assert el.healed is False


def test_refresh_failure_keeps_resolution():
    page = FakePage()
    page.add("#ok", FakeNode("ok", detached=True))
    el = ElementDescriptor(id="ok", text="Keep me")

    resolution = finder_for(page).resolve(el)

    assert resolution is not None
    assert el.text == "Keep me"


def test_not_found_without_fingerprint():
    assert finder_for(FakePage()).resolve(ElementDescriptor(id="gone")) is None


def test_heal_sets_selector_and_next_resolve_is_standard():
    page = FakePage(labels={"Username": [FakeNode("user", attrs={"type": "input", "id": "user-2"})]})
    el = ElementDescriptor(
        id="user",
        fingerprint=Fingerprint.from_dict({"context": {"nearbyText": "Username"}}),
    )
    finder = finder_for(page)

    first = finder.resolve(el)
    assert first.healed is True
    assert first.strategy == "label"
    assert el.healed is True
    assert el.selector == 'internal:label="Username"s'
    assert el.id == "user-2"

    # The healed descriptor now resolves through the standard path.
    page.add("#user-2", FakeNode("user", attrs={"type": "input", "id": "user-2"}))
    second = finder.resolve(el)
    assert second.healed is False
    assert second.strategy == "id"


def test_standard_match_never_heals_even_with_fingerprint():
    page = FakePage(labels={"Username": [FakeNode("other", attrs={"id": "other"})]})
    page.add("#user", FakeNode("user", attrs={"type": "input", "id": "user"}))
    el = ElementDescriptor(
        id="user",
        selector="#user",
        fingerprint=Fingerprint.from_dict({
            "attributes": {"role": "textbox"},
            "context": {"nearbyText": "Username"},
        }),
    )

    resolution = finder_for(page).resolve(el)

    assert resolution.healed is False
    assert resolution.strategy == "id"
    assert el.healed is False
    assert el.selector == "#user"
    assert not [q for q in page.queries if q.startswith(("label:", "role:"))]


def test_label_miss_falls_through_to_semantic_and_healed_selector_resolves():
    page = FakePage(roles={("button", None): [FakeNode("forgot", attrs={"type": "button"})]})
    el = ElementDescriptor(
        id="submit",
        fingerprint=Fingerprint.from_dict({
            "attributes": {"role": "button"},
            "context": {"nearbyText": "Forgot Password?"},
        }),
    )
    finder = finder_for(page)

    first = finder.resolve(el)

    assert first.strategy == "semantic"
    assert el.healed is True
    assert el.selector == "role=button"
    assert "label:Forgot Password?" in page.queries
    assert "role:button:None" in page.queries

    # Only the healed selector matches now; no second heal.
    page.add("role=button", FakeNode("forgot", attrs={"type": "button"}))
    page.queries.clear()
    second = finder.resolve(el)
    assert second.healed is False
    assert second.strategy == "selector"
    assert not [q for q in page.queries if q.startswith(("label:", "role:"))]


def test_heal_can_be_disabled():
    page = FakePage(labels={"Username": [FakeNode("user", attrs={"id": "user-2"})]})
    el = ElementDescriptor(id="user", fingerprint=Fingerprint.from_dict({"context": {"nearbyText": "Username"}}))

    assert finder_for(page).resolve(el, heal=False) is None
    assert el.healed is False
    assert not [q for q in page.queries if q.startswith("label:")]


def test_semantic_heal_report():
    page = FakePage(roles={("button", "Submit"): [FakeNode("submit", attrs={"type": "button", "text": "Submit"})]})
    el = ElementDescriptor(
        id="submit-old",
        text="Send",
        fingerprint=Fingerprint.from_dict({"attributes": {"role": "button", "ariaLabel": "Submit"}}),
    )

    resolution = finder_for(page).resolve(el)

    assert resolution.strategy == "semantic"
    report = resolution.report
    assert isinstance(report, HealingReport)
    rows = {r.attribute: r for r in report.rows}
    assert rows["ID"].before == "submit-old"
    assert rows["ID"].after is None
    assert rows["Selector"].after == 'role=button[name="Submit"]'
    assert rows["Text"].before == "Send"
    assert rows["Text"].after == "Submit"
    rendered = report.render()
    assert "HEALING REPORT (strategy: semantic)" in rendered
    assert "(none)" in rendered


def test_report_truncates_long_values():
    report = HealingReport.build("fuzzy", ".x", {"xpath": "/" * 40}, {"xpath": None})
    line = [l for l in report.render().splitlines() if l.startswith("| XPath")][0]
    assert "..." in line


def test_resolve_or_raise_lists_attempts():
    page = FakePage(invalid={"[name='q']"})
    el = ElementDescriptor(id="search", name="q")

    with pytest.raises(ElementNotFoundError) as exc_info:
        finder_for(page).resolve_or_raise(el, action="TYPE", description="Search box")

    error = exc_info.value
    assert error.action == "TYPE"
    assert "Search box" in str(error)
    assert [a.strategy for a in error.attempts] == ["id", "name"]
    assert error.attempts[1].error is not None


def test_resolve_or_raise_without_descriptor():
    with pytest.raises(ElementNotFoundError) as exc_info:
        finder_for(FakePage()).resolve_or_raise(None, action="CLICK")
    assert "no descriptor" in str(exc_info.value)
