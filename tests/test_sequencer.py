# tests/test_sequencer.py
"""
Tests for action sequencing: parameter binding, dispatch and failure handling.
"""

import pytest

from fakes import FakeNode, FakePage, FakeSession

from webauto.actions import Actions
from webauto.config import AppConfig
from webauto.dates import resolve_date
from webauto.descriptor import RUNTIME_PARAMETER, StepDescriptor
from webauto.exceptions import (ActionError, ElementNotFoundError, MissingInputError,
                                VerificationError)
from webauto.finder import ElementFinder
from webauto.sequencer import ActionSequencer


def build(page, config=None):
    config = config or AppConfig(base_url="https://app.test")
    session = FakeSession(page, config)
    actions = Actions(session, ElementFinder(session), config)
    return ActionSequencer(actions, config)


def step(text, *actions):
    return StepDescriptor.from_dict({
        "gherkinStep": text,
        "actions": [dict(a, actionNumber=i) for i, a in enumerate(actions, start=1)],
    })


def type_action(element_id, value=RUNTIME_PARAMETER):
    return {"actionType": "TYPE", "description": element_id, "element": {"id": element_id}, "value": value}


@pytest.fixture
def login_page():
    page = FakePage()
    page.add("#user", FakeNode("user"))
    page.add("#pass", FakeNode("pass"))
    page.add("#submit", FakeNode("submit"))
    return page


def fills(page):
    return [e[1:] for e in page.events if e[0] == "fill"]


class TestParameterBinding:
    def test_runtime_values_bind_in_order(self, login_page):
        s = step(
            'When I login with "bob" and "secret"',
            type_action("user"),
            type_action("pass"),
            {"actionType": "CLICK", "element": {"id": "submit"}},
        )
        executed = build(login_page).execute(s, 'When I login with "amy" and "hunter2"')

        assert executed == 3
        assert fills(login_page) == [("user", "amy"), ("pass", "hunter2")]
        assert ("click", "submit", "left") in login_page.events

    def test_literal_value_still_advances_counter(self, login_page):
        s = step(
            'When I login with "bob" and "secret"',
            type_action("user", value="fixed-user"),
            type_action("pass"),
        )
        build(login_page).execute(s)

        assert fills(login_page) == [("user", "fixed-user"), ("pass", "secret")]

    def test_missing_literal_types_empty_string(self, login_page):
        s = step("When I clear the login", type_action("user"))
        build(login_page).execute(s)
        assert fills(login_page) == [("user", "")]

    def test_date_keyword_is_resolved(self, login_page):
        s = step('When I set the date to "TODAY+5"', type_action("user"))
        build(login_page).execute(s)
        assert fills(login_page) == [("user", resolve_date("TODAY+5", "%d-%b-%Y"))]

    def test_select_with_runtime_value(self):
        page = FakePage()
        page.add("#country", FakeNode("country"))
        s = step(
            'When I pick "Norway"',
            {"actionType": "SELECT", "element": {"id": "country"}, "value": RUNTIME_PARAMETER},
        )
        build(page).execute(s)
        assert ("select", "country", "Norway") in page.events


class TestNavigate:
    def test_fragment_joined_to_base_url(self):
        page = FakePage()
        build(page).execute(step('Given I open "login"', {"actionType": "NAVIGATE", "value": RUNTIME_PARAMETER}))
        assert page.url == "https://app.test/login"
        assert ("load_state", "load") in page.events

    def test_full_url_in_step_text_wins(self):
        page = FakePage()
        build(page).execute(step(
            'Given I open "dashboard" on "https://other.test/home"',
            {"actionType": "NAVIGATE", "value": "dashboard"},
        ))
        assert page.url == "https://other.test/home"

    def test_navigate_does_not_consume_a_parameter(self):
        page = FakePage()
        page.add("#q", FakeNode("q"))
        build(page).execute(step(
            'Given I search "shoes"',
            {"actionType": "NAVIGATE", "value": "/search"},
            type_action("q"),
        ))
        assert page.url == "https://app.test/search"
        assert fills(page) == [("q", "shoes")]

    def test_missing_url(self):
        with pytest.raises(ActionError) as exc_info:
            build(FakePage()).execute(step("Given I open the app", {"actionType": "NAVIGATE"}))
        assert isinstance(exc_info.value.cause, MissingInputError)


class TestDispatch:
    def test_unknown_kind_is_skipped(self, login_page):
        s = step(
            'When I type "x"',
            {"actionType": "WAIT_NAVIGATION"},
            type_action("user"),
        )
        assert build(login_page).execute(s) == 1
        assert fills(login_page) == [("user", "x")]

    def test_failure_aborts_remaining_actions(self, login_page, short_waits):
        s = step(
            'When I login with "bob" and "secret"',
            type_action("user"),
            {"actionType": "CLICK", "description": "Missing button", "element": {"id": "nope"}},
            type_action("pass"),
        )
        with pytest.raises(ActionError) as exc_info:
            build(login_page).execute(s)

        error = exc_info.value
        assert error.action_number == 2
        assert error.action == "CLICK"
        assert isinstance(error.cause, ElementNotFoundError)
        assert fills(login_page) == [("user", "bob")]
        assert error.action_trace[0]["action_name"] == "click"
        assert error.action_trace[1]["action_name"] == "CLICK"

    def test_verify_text_contains(self):
        page = FakePage()
        page.add("#greeting", FakeNode("greeting", text="Welcome back, bob!"))
        s = step('Then I see "Welcome back"', {
            "actionType": "VERIFY_TEXT", "element": {"id": "greeting"}, "value": RUNTIME_PARAMETER,
        })
        assert build(page).execute(s) == 1

    def test_verify_text_mismatch(self):
        page = FakePage()
        page.add("#greeting", FakeNode("greeting", text="Goodbye"))
        s = step('Then I see "Welcome"', {
            "actionType": "VERIFY_TEXT", "element": {"id": "greeting"}, "value": RUNTIME_PARAMETER,
        })
        with pytest.raises(ActionError) as exc_info:
            build(page).execute(s)
        assert isinstance(exc_info.value.cause, VerificationError)

    def test_verify_not_visible_passes_for_missing_element_without_healing(self, short_waits):
        page = FakePage()
        page.add(".alert", FakeNode("unrelated alert"))
        s = step("Then the error banner is gone", {
            "actionType": "VERIFY_NOT_VISIBLE",
            "element": {
                "id": "error-banner",
                "fingerprint": {"attributes": {"classList": "alert"}},
            },
        })

        assert build(page).execute(s) == 1
        banner = s.actions[0].element
        assert banner.healed is False
        assert banner.selector is None
        assert ".alert" not in page.queries

    def test_verify_not_visible_fails_while_visible(self, short_waits):
        page = FakePage()
        page.add("#error-banner", FakeNode("banner"))
        s = step("Then the error banner is gone", {
            "actionType": "VERIFY_NOT_VISIBLE",
            "element": {"id": "error-banner"},
        })
        with pytest.raises(ActionError) as exc_info:
            build(page).execute(s)
        assert isinstance(exc_info.value.cause, VerificationError)

    def test_press_key_without_element_uses_keyboard(self):
        page = FakePage()
        build(page).execute(step("When I press escape", {"actionType": "PRESS_KEY", "value": "Escape"}))
        assert ("keyboard", "Escape") in page.events

    def test_drag_and_drop_legacy_alias(self):
        page = FakePage()
        page.add("#card", FakeNode("card"))
        page.add("#lane", FakeNode("lane"))
        build(page).execute(step("When I move the card", {
            "actionType": "DRAG_DROP", "element": {"id": "card"}, "targetElement": {"id": "lane"},
        }))
        assert ("drag", "card", "lane") in page.events

    def test_drag_without_target(self):
        page = FakePage()
        page.add("#card", FakeNode("card"))
        with pytest.raises(ActionError) as exc_info:
            build(page).execute(step("When I move the card", {"actionType": "DRAG_AND_DROP", "element": {"id": "card"}}))
        assert isinstance(exc_info.value.cause, MissingInputError)
