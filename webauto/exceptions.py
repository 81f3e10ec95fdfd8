# webauto/exceptions.py
"""
@file exceptions.py
@brief Custom exception classes for the browser step automation engine.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Dict, List, Optional


class WebAutoError(Exception):
    """Base exception for the framework."""
    pass


class ConfigError(WebAutoError):
    """Raised when YAML/JSON configuration or a step file is invalid."""
    pass


class TimeoutError(WebAutoError):
    """
    Raised when a wait/retry times out.

    This exception preserves the original exception that caused the timeout,
    making debugging significantly easier.

    Attributes:
        original_exception: The last exception that was raised before timeout
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of attempts made (if applicable)
        elapsed_time: Actual elapsed time in seconds (if applicable)
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        base_msg = super().__str__()

        details = []
        if self.original_exception is not None:
            details.append(f"Original exception: {type(self.original_exception).__name__}")
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")
        if self.stage is not None:
            details.append(f"Stage: {self.stage}")

        if details:
            return f"{base_msg} [{', '.join(details)}]"
        return base_msg

    def get_root_cause(self) -> Optional[BaseException]:
        """
        Get the root cause exception by traversing the chain.

        @return The deepest original_exception in the chain, or None
        """
        current = self.original_exception
        while current is not None:
            if hasattr(current, 'original_exception') and current.original_exception is not None:
                current = current.original_exception
            else:
                return current
        return None

    def get_traceback_str(self) -> str:
        """
        Get a formatted traceback string from the original exception.

        @return Formatted traceback string or empty string if no original exception
        """
        if self.original_exception is None:
            return ""

        return "".join(traceback.format_exception(
            type(self.original_exception),
            self.original_exception,
            self.original_exception.__traceback__
        ))


@dataclass
class LocatorAttempt:
    """Records a single candidate or healing attempt for debugging."""
    kind: str
    strategy: str
    selector: Optional[str] = None
    count: Optional[int] = None
    error: Optional[str] = None

    def describe(self) -> str:
        line = f"{self.kind}:{self.strategy}"
        if self.selector:
            line += f" selector={self.selector!r}"
        if self.count is not None:
            line += f" count={self.count}"
        if self.error:
            line += f" err={self.error}"
        return line


class ElementNotFoundError(WebAutoError):
    """
    Raised when neither standard resolution nor self-healing found an element.

    Contains every candidate and healing attempt so a reader can tell an
    element that is truly gone from a descriptor whose candidates are all
    malformed.
    """

    def __init__(
        self,
        action: str,
        description: Optional[str] = None,
        attempts: Optional[List[LocatorAttempt]] = None,
        artifacts: Optional[Dict[str, str]] = None,
    ):
        self.action = action
        self.description = description
        self.attempts = attempts or []
        self.artifacts = artifacts or {}
        super().__init__(self.__str__())

    def __str__(self) -> str:
        lines = [
            f"ElementNotFoundError: element not found for {self.action}: "
            f"'{self.description or 'element'}' "
            f"(standard locator strategies and self-healing strategies exhausted)",
        ]
        invalid = [a for a in self.attempts if a.error]
        if self.attempts and len(invalid) == len(self.attempts):
            lines.append("Every attempted candidate raised an error (check the descriptor).")
        if self.attempts:
            lines.append("Attempts:")
            for i, a in enumerate(self.attempts, start=1):
                lines.append(f"  {i}. {a.describe()}")
        if self.artifacts:
            lines.append(f"Artifacts: {self.artifacts}")
        return "\n".join(lines)


class MissingInputError(WebAutoError):
    """Raised when an action lacks required input (target element, script, path, URL)."""

    def __init__(self, action: str, what: str):
        self.action = action
        self.what = what
        super().__init__(f"{what} missing for {action} action")


class WindowNotFoundError(WebAutoError):
    """Raised when no open page matches a window index or title fragment."""

    def __init__(self, target: str, titles: Optional[List[str]] = None):
        self.target = target
        self.titles = titles or []
        super().__init__(self.__str__())

    def __str__(self) -> str:
        msg = f"WindowNotFoundError: no page matches '{self.target}'"
        if self.titles:
            msg += f" (open pages: {self.titles})"
        return msg


class StepNotFoundError(WebAutoError):
    """Raised when neither a step file nor a registered handler matches a step."""

    def __init__(self, step_text: str):
        self.step_text = step_text
        super().__init__(f"No step file or registered handler for: {step_text}")


class ActionError(WebAutoError):
    """
    Raised when an action of a step fails.

    Contains information about the action, its position in the step,
    and the underlying cause.
    """

    def __init__(
        self,
        action: str,
        description: Optional[str] = None,
        action_number: Optional[int] = None,
        details: Optional[str] = None,
        artifacts: Optional[Dict[str, str]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.action = action
        self.description = description
        self.action_number = action_number
        self.details = details
        self.artifacts = artifacts or {}
        self.cause = cause
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"ActionError: action='{self.action}'"
        if self.action_number is not None:
            base += f" #{self.action_number}"
        if self.description:
            base += f" description='{self.description}'"
        if self.details:
            base += f" details='{self.details}'"
        if self.cause:
            base += f" cause='{type(self.cause).__name__}: {self.cause}'"
        if self.artifacts:
            base += f" artifacts={self.artifacts}"
        return base

    def get_cause_traceback(self) -> str:
        """
        Get a formatted traceback string from the cause exception.

        @return Formatted traceback string or empty string if no cause
        """
        if self.cause is None:
            return ""

        return "".join(traceback.format_exception(
            type(self.cause),
            self.cause,
            self.cause.__traceback__
        ))


class VerificationError(WebAutoError, AssertionError):
    """Raised when a VERIFY_* action observes an unexpected page state."""
    pass
