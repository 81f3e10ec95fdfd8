# tests/test_descriptor.py
"""
Tests for element, action and step descriptors.
"""

import pytest

from webauto.descriptor import (RUNTIME_PARAMETER, ActionDescriptor, ActionKind,
                                ElementDescriptor, Fingerprint, StepDescriptor)
from webauto.exceptions import ConfigError


class TestAbsentMarker:
    def test_empty_and_whitespace_become_none(self):
        el = ElementDescriptor(id="", name="   ", text="Login")
        assert el.id is None
        assert el.name is None
        assert el.text == "Login"

    def test_assignment_is_normalised(self):
        el = ElementDescriptor(id="user")
        el.id = "  "
        assert el.id is None

    def test_from_dict_normalises_fingerprint_fields(self):
        fp = Fingerprint.from_dict({
            "attributes": {"type": "input", "role": "", "ariaLabel": None, "classList": " "},
            "context": {"nearbyText": "Username"},
        })
        assert fp.attributes.type == "input"
        assert fp.attributes.role is None
        assert fp.attributes.class_list is None
        assert fp.context.nearby_text == "Username"
        assert fp.context.heading is None

    def test_empty_fingerprint_is_absent(self):
        assert Fingerprint.from_dict({}) is None
        assert Fingerprint.from_dict(None) is None


class TestActionKind:
    def test_known_kinds(self):
        assert ActionKind.parse("click") is ActionKind.CLICK
        assert ActionKind.parse("VERIFY_TEXT") is ActionKind.VERIFY_TEXT

    def test_legacy_aliases(self):
        assert ActionKind.parse("DRAG_DROP") is ActionKind.DRAG_AND_DROP
        assert ActionKind.parse("scroll") is ActionKind.SCROLL_TO

    def test_unknown_kind_kept_verbatim(self):
        action = ActionDescriptor(action_number=1, action_type="WAIT_NAVIGATION")
        assert action.action_type == "WAIT_NAVIGATION"
        assert action.kind_name == "WAIT_NAVIGATION"


class TestStepDescriptor:
    STEP = {
        "stepFileName": "when_i_login_with_param_and_param.json",
        "gherkinStep": 'When I login with "bob" and "secret"',
        "normalizedStep": "when_i_login_with_param_and_param",
        "stepType": "When",
        "stepNumber": 2,
        "actions": [
            {
                "actionNumber": 1,
                "actionType": "TYPE",
                "description": "Username",
                "element": {"id": "user", "cssSelector": "", "fingerprint": {
                    "attributes": {"type": "input"}, "context": {"nearbyText": "Username"},
                }},
                "value": RUNTIME_PARAMETER,
            },
            {"actionNumber": 2, "actionType": "CLICK", "element": {"text": "Sign in"}},
        ],
        "metadata": {"createdDate": "2024-01-01T10:00:00"},
    }

    def test_from_dict(self):
        step = StepDescriptor.from_dict(self.STEP)
        assert step.gherkin_step == 'When I login with "bob" and "secret"'
        assert len(step.actions) == 2
        first = step.actions[0]
        assert first.action_type is ActionKind.TYPE
        assert first.value == RUNTIME_PARAMETER
        assert first.element.id == "user"
        assert first.element.css_selector is None
        assert first.element.fingerprint.context.nearby_text == "Username"
        assert step.actions[1].element.fingerprint is None

    def test_to_dict_counts_actions(self):
        data = StepDescriptor.from_dict(self.STEP).to_dict()
        assert data["metadata"]["totalActions"] == 2
        assert data["metadata"]["createdDate"] == "2024-01-01T10:00:00"
        assert data["actions"][0]["element"]["isHealed"] is False
        assert data["actions"][0]["element"]["fingerprint"]["context"]["nearbyText"] == "Username"

    def test_healed_elements(self):
        step = StepDescriptor.from_dict(self.STEP)
        assert step.healed_elements() == []
        step.actions[1].element.healed = True
        assert step.healed_elements() == [step.actions[1].element]

    def test_action_number_defaults_to_position(self):
        step = StepDescriptor.from_dict({"gherkinStep": "x", "actions": [{"actionType": "CLICK"}]})
        assert step.actions[0].action_number == 1

    def test_non_mapping_element_rejected(self):
        with pytest.raises(ConfigError):
            ActionDescriptor.from_dict({"actionType": "CLICK", "element": "#id"})


def test_describe_prefers_id():
    assert ElementDescriptor(id="user", text="User").describe() == "id=user"
    assert ElementDescriptor(text="Sign in").describe() == "text=Sign in"
    assert ElementDescriptor().describe() == "element"
