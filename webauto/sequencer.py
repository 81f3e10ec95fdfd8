# webauto/sequencer.py
"""
@file sequencer.py
@brief Runs the actions of one step in order with a shared parameter counter.

TYPE, SELECT and VERIFY_TEXT are the parameter-consuming kinds. Each of them
advances the counter exactly once, whether its value is a literal or the
runtime sentinel, so the n-th consuming action always binds the n-th quoted
literal of the step text. NAVIGATE reads the first literal and never moves
the counter.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from .config import AppConfig
from .context import ActionContextManager, attach_trace
from .dates import is_date_keyword, resolve_date
from .descriptor import (PARAMETER_KINDS, RUNTIME_PARAMETER, ActionDescriptor,
                         ActionKind, StepDescriptor)
from .exceptions import ActionError, MissingInputError
from .params import extract_parameter, resolve_url

_log = logging.getLogger("webauto.sequencer")

Handler = Callable[[ActionDescriptor, Optional[str]], Any]


def _is_runtime(value: Optional[str]) -> bool:
    return value is None or value == RUNTIME_PARAMETER


class ActionSequencer:
    """
    Executes StepDescriptors against an Actions library.

    @param actions Keyword library (webauto.actions.Actions)
    @param config AppConfig for base URL and date format
    """

    def __init__(self, actions: Any, config: Optional[AppConfig] = None):
        self.actions = actions
        self.config = config or AppConfig()
        self.handlers: Dict[ActionKind, Handler] = {
            ActionKind.NAVIGATE: self._navigate,
            ActionKind.CLICK: lambda a, v: self.actions.click(a.element, description=a.description),
            ActionKind.DOUBLE_CLICK: lambda a, v: self.actions.double_click(a.element, description=a.description),
            ActionKind.RIGHT_CLICK: lambda a, v: self.actions.right_click(a.element, description=a.description),
            ActionKind.HOVER: lambda a, v: self.actions.hover(a.element, description=a.description),
            ActionKind.SCROLL_TO: lambda a, v: self.actions.scroll_to(a.element, description=a.description),
            ActionKind.DRAG_AND_DROP: lambda a, v: self.actions.drag_and_drop(a.element, a.target_element, description=a.description),
            ActionKind.TYPE: self._type,
            ActionKind.CLEAR: lambda a, v: self.actions.clear(a.element, description=a.description),
            ActionKind.CHECK: lambda a, v: self.actions.check(a.element, description=a.description),
            ActionKind.UNCHECK: lambda a, v: self.actions.uncheck(a.element, description=a.description),
            ActionKind.PRESS_KEY: lambda a, v: self.actions.press_key(a.value, descriptor=a.element, description=a.description),
            ActionKind.SELECT: self._select,
            ActionKind.UPLOAD_FILE: lambda a, v: self.actions.upload_file(a.element, a.value, description=a.description),
            ActionKind.VERIFY_TEXT: self._verify_text,
            ActionKind.VERIFY_ELEMENT: lambda a, v: self.actions.verify_element(a.element, description=a.description),
            ActionKind.VERIFY_NOT_VISIBLE: lambda a, v: self.actions.verify_not_visible(a.element, description=a.description),
            ActionKind.VERIFY_ATTRIBUTE: lambda a, v: self.actions.verify_attribute(a.element, a.value, description=a.description),
            ActionKind.VERIFY_CSS: lambda a, v: self.actions.verify_css(a.element, a.value, description=a.description),
            ActionKind.SCREENSHOT: lambda a, v: self.actions.screenshot(a.value or a.description),
            ActionKind.JS_EVALUATE: lambda a, v: self.actions.js_evaluate(a.value),
            ActionKind.HANDLE_DIALOG: lambda a, v: self.actions.handle_dialog(a.value),
            ActionKind.WAIT_STABLE: lambda a, v: self.actions.wait_stable(),
            ActionKind.SWITCH_WINDOW: lambda a, v: self.actions.switch_window(a.value),
            ActionKind.CLICK_AND_SWITCH: lambda a, v: self.actions.click_and_switch(a.element, description=a.description),
        }

    def execute(self, step: StepDescriptor, step_text: Optional[str] = None) -> int:
        """
        Run every action of ``step`` in order.

        @param step_text Runtime step text supplying quoted literals
               (defaults to the step's recorded text)
        @return Number of actions executed (skipped kinds excluded)
        @throws ActionError for the first failing action; later actions do not run
        """
        text = step_text if step_text is not None else step.gherkin_step
        param_index = 0
        executed = 0
        _log.info("Executing %d action(s) for: %s", len(step.actions), text)

        for action in step.actions:
            handler = self.handlers.get(action.action_type) if isinstance(action.action_type, ActionKind) else None
            if handler is None:
                _log.warning("Unknown action type '%s' (#%d), skipped", action.kind_name, action.action_number)
                continue

            value: Optional[str] = None
            if action.action_type in PARAMETER_KINDS:
                value = action.value
                if _is_runtime(value):
                    value = extract_parameter(text, param_index)
                param_index += 1

            _log.info("Action #%d %s: %s", action.action_number, action.kind_name, action.label)
            with ActionContextManager.action(action.kind_name, element_name=action.description, step_text=text):
                try:
                    if action.action_type is ActionKind.NAVIGATE:
                        handler(action, text)
                    else:
                        handler(action, value)
                except Exception as e:
                    attach_trace(e)
                    error = ActionError(
                        action.kind_name,
                        description=action.description,
                        action_number=action.action_number,
                        cause=e,
                    )
                    error.action_trace = getattr(e, "action_trace", None)
                    raise error from e
            executed += 1
        return executed

    # --- Parameterised kinds ---

    def _navigate(self, action: ActionDescriptor, step_text: Optional[str]) -> None:
        url = action.value
        if _is_runtime(url):
            url = extract_parameter(step_text, 0)
        if not url:
            raise MissingInputError("NAVIGATE", "URL")
        self.actions.navigate(resolve_url(url, step_text, self.config.base_url))

    def _type(self, action: ActionDescriptor, value: Optional[str]) -> None:
        text = value or ""
        if is_date_keyword(text):
            text = resolve_date(text, self.config.date_format)
        self.actions.type(action.element, text, description=action.description)

    def _select(self, action: ActionDescriptor, value: Optional[str]) -> None:
        option = value or ""
        if is_date_keyword(option):
            self.actions.type(action.element, resolve_date(option, self.config.date_format), description=action.description)
        else:
            self.actions.select(action.element, option, description=action.description)

    def _verify_text(self, action: ActionDescriptor, value: Optional[str]) -> None:
        self.actions.verify_text(action.element, value or "", description=action.description)
