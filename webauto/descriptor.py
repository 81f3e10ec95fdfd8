# webauto/descriptor.py
"""
@file descriptor.py
@brief Element, action and step descriptors loaded from step files.

Every string field is either a non-empty string or ``None``. Empty and
whitespace-only strings are normalised to ``None`` on construction, on
assignment and when loading from a dict, so no consumer has to tell
"absent" from "empty".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigError

RUNTIME_PARAMETER = "___RUNTIME_PARAMETER___"


def _clean(value: Any) -> Optional[str]:
    """Absent-marker normalisation shared by all descriptor types."""
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value if value.strip() else None


class ActionKind(str, Enum):
    NAVIGATE = "NAVIGATE"
    CLICK = "CLICK"
    DOUBLE_CLICK = "DOUBLE_CLICK"
    RIGHT_CLICK = "RIGHT_CLICK"
    HOVER = "HOVER"
    DRAG_AND_DROP = "DRAG_AND_DROP"
    TYPE = "TYPE"
    CLEAR = "CLEAR"
    CHECK = "CHECK"
    UNCHECK = "UNCHECK"
    PRESS_KEY = "PRESS_KEY"
    SELECT = "SELECT"
    SCROLL_TO = "SCROLL_TO"
    UPLOAD_FILE = "UPLOAD_FILE"
    VERIFY_TEXT = "VERIFY_TEXT"
    VERIFY_ELEMENT = "VERIFY_ELEMENT"
    VERIFY_NOT_VISIBLE = "VERIFY_NOT_VISIBLE"
    VERIFY_ATTRIBUTE = "VERIFY_ATTRIBUTE"
    VERIFY_CSS = "VERIFY_CSS"
    SCREENSHOT = "SCREENSHOT"
    JS_EVALUATE = "JS_EVALUATE"
    HANDLE_DIALOG = "HANDLE_DIALOG"
    WAIT_STABLE = "WAIT_STABLE"
    SWITCH_WINDOW = "SWITCH_WINDOW"
    CLICK_AND_SWITCH = "CLICK_AND_SWITCH"

    @classmethod
    def parse(cls, raw: Any) -> Union[ActionKind, str]:
        """Map a raw action type to a kind; unknown values come back verbatim."""
        text = str(raw or "").strip()
        key = _ALIASES.get(text.upper(), text.upper())
        try:
            return cls(key)
        except ValueError:
            return text


_ALIASES = {
    "DRAG_DROP": "DRAG_AND_DROP",
    "SCROLL": "SCROLL_TO",
}

# Kinds that read the value field positionally from the step text.
PARAMETER_KINDS = frozenset({ActionKind.TYPE, ActionKind.SELECT, ActionKind.VERIFY_TEXT})


@dataclass
class FingerprintAttributes:
    type: Optional[str] = None
    role: Optional[str] = None
    aria_label: Optional[str] = None
    class_list: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, _clean(value))

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> FingerprintAttributes:
        d = d or {}
        return cls(
            type=d.get("type"),
            role=d.get("role"),
            aria_label=d.get("ariaLabel"),
            class_list=d.get("classList"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "role": self.role,
            "ariaLabel": self.aria_label,
            "classList": self.class_list,
        }


@dataclass
class FingerprintContext:
    nearby_text: Optional[str] = None
    parent_tag: Optional[str] = None
    heading: Optional[str] = None

    def __setattr__(self, name: str, value: Any) -> None:
        object.__setattr__(self, name, _clean(value))

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> FingerprintContext:
        d = d or {}
        return cls(
            nearby_text=d.get("nearbyText"),
            parent_tag=d.get("parentTag"),
            heading=d.get("heading"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nearbyText": self.nearby_text,
            "parentTag": self.parent_tag,
            "heading": self.heading,
        }


@dataclass
class Fingerprint:
    """Contextual metadata used only by self-healing."""
    attributes: FingerprintAttributes = field(default_factory=FingerprintAttributes)
    context: FingerprintContext = field(default_factory=FingerprintContext)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional[Fingerprint]:
        if not d:
            return None
        if not isinstance(d, dict):
            raise ConfigError(f"fingerprint must be a mapping, got {type(d).__name__}")
        return cls(
            attributes=FingerprintAttributes.from_dict(d.get("attributes")),
            context=FingerprintContext.from_dict(d.get("context")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"attributes": self.attributes.to_dict(), "context": self.context.to_dict()}


# Python attribute name -> serialized key, in capture order.
_ELEMENT_KEYS = {
    "type": "type",
    "id": "id",
    "name": "name",
    "selector": "selector",
    "css_selector": "cssSelector",
    "xpath": "xpath",
    "text": "text",
    "placeholder": "placeholder",
    "data_test": "dataTest",
    "aria_label": "ariaLabel",
    "role": "role",
    "title": "title",
    "alt": "alt",
    "class_name": "className",
    "value": "value",
    "href": "href",
    "src": "src",
}

# Fields re-read from the live element after a successful resolution.
LIVE_FIELDS = (
    "type", "id", "name", "text", "placeholder", "value", "data_test",
    "aria_label", "role", "title", "alt", "class_name", "href", "src",
)

# Fields captured in the before/after healing report.
SNAPSHOT_FIELDS = ("id", "selector", "css_selector", "xpath", "text", "class_name")


@dataclass
class ElementDescriptor:
    """
    Symbolic description of one page element.

    Mutated in place by resolution: live attributes are refreshed after every
    successful resolve, and ``selector``/``healed`` change after a heal.
    """
    type: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    selector: Optional[str] = None
    css_selector: Optional[str] = None
    xpath: Optional[str] = None
    text: Optional[str] = None
    placeholder: Optional[str] = None
    data_test: Optional[str] = None
    aria_label: Optional[str] = None
    role: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    class_name: Optional[str] = None
    value: Optional[str] = None
    href: Optional[str] = None
    src: Optional[str] = None
    fingerprint: Optional[Fingerprint] = None
    healed: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _ELEMENT_KEYS:
            value = _clean(value)
        object.__setattr__(self, name, value)

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional[ElementDescriptor]:
        if d is None:
            return None
        if not isinstance(d, dict):
            raise ConfigError(f"element must be a mapping, got {type(d).__name__}")
        kwargs = {attr: d.get(key) for attr, key in _ELEMENT_KEYS.items()}
        return cls(
            **kwargs,
            fingerprint=Fingerprint.from_dict(d.get("fingerprint")),
            healed=bool(d.get("isHealed", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {key: getattr(self, attr) for attr, key in _ELEMENT_KEYS.items()}
        data["fingerprint"] = self.fingerprint.to_dict() if self.fingerprint else None
        data["isHealed"] = self.healed
        return data

    def snapshot(self) -> Dict[str, Optional[str]]:
        return {attr: getattr(self, attr) for attr in SNAPSHOT_FIELDS}

    def describe(self) -> str:
        """Short human label used in logs and error messages."""
        for attr in ("id", "name", "data_test", "aria_label", "text", "placeholder", "selector", "css_selector", "xpath"):
            value = getattr(self, attr)
            if value is not None:
                return f"{attr}={value}"
        return "element"


@dataclass
class ActionDescriptor:
    action_number: int
    action_type: Union[ActionKind, str]
    description: Optional[str] = None
    element: Optional[ElementDescriptor] = None
    target_element: Optional[ElementDescriptor] = None
    value: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.action_type, ActionKind):
            self.action_type = ActionKind.parse(self.action_type)
        self.description = _clean(self.description)
        self.value = _clean(self.value)

    @property
    def kind_name(self) -> str:
        if isinstance(self.action_type, ActionKind):
            return self.action_type.value
        return str(self.action_type)

    @property
    def label(self) -> str:
        return self.description or self.kind_name

    @classmethod
    def from_dict(cls, d: Dict[str, Any], position: int = 1) -> ActionDescriptor:
        if not isinstance(d, dict):
            raise ConfigError(f"action #{position} must be a mapping, got {type(d).__name__}")
        return cls(
            action_number=int(d.get("actionNumber") or position),
            action_type=d.get("actionType", ""),
            description=d.get("description"),
            element=ElementDescriptor.from_dict(d.get("element")),
            target_element=ElementDescriptor.from_dict(d.get("targetElement")),
            value=d.get("value"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionNumber": self.action_number,
            "actionType": self.kind_name,
            "description": self.description,
            "element": self.element.to_dict() if self.element else None,
            "value": self.value,
            "targetElement": self.target_element.to_dict() if self.target_element else None,
        }


@dataclass
class StepDescriptor:
    gherkin_step: str
    actions: List[ActionDescriptor] = field(default_factory=list)
    step_file_name: Optional[str] = None
    normalized_step: Optional[str] = None
    step_type: Optional[str] = None
    step_number: int = 0
    status: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> StepDescriptor:
        if not isinstance(d, dict):
            raise ConfigError("Step file must contain a mapping at root.")
        actions = [ActionDescriptor.from_dict(a, i) for i, a in enumerate(d.get("actions") or [], start=1)]
        return cls(
            gherkin_step=str(d.get("gherkinStep") or ""),
            actions=actions,
            step_file_name=_clean(d.get("stepFileName")),
            normalized_step=_clean(d.get("normalizedStep")),
            step_type=_clean(d.get("stepType")),
            step_number=int(d.get("stepNumber") or 0),
            status=_clean(d.get("status")),
            metadata=dict(d.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        metadata = dict(self.metadata)
        metadata["totalActions"] = len(self.actions)
        return {
            "stepFileName": self.step_file_name,
            "gherkinStep": self.gherkin_step,
            "normalizedStep": self.normalized_step,
            "stepType": self.step_type,
            "stepNumber": self.step_number,
            "status": self.status,
            "actions": [a.to_dict() for a in self.actions],
            "metadata": metadata,
        }

    def healed_elements(self) -> List[ElementDescriptor]:
        out: List[ElementDescriptor] = []
        for action in self.actions:
            for el in (action.element, action.target_element):
                if el is not None and el.healed:
                    out.append(el)
        return out
