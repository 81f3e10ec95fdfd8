# webauto/waits.py
"""
@file waits.py
@brief Polling waits used where Playwright has no built-in wait for the condition.

Playwright's own auto-waiting covers single interactions. These helpers cover
composite readiness checks (visible and enabled, visible and editable) and
conditions whose predicate may raise while the page is still settling.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, TypeVar

from .exceptions import TimeoutError
from .timinglogger import TIMING_LOGGER

T = TypeVar("T")


def _now() -> float:
    return time.monotonic()


def _sleep_for(interval: float, start: float, timeout: float) -> None:
    remaining = timeout - (_now() - start)
    if remaining > 0:
        time.sleep(min(interval, remaining))


def _timeout_error(
    message: str,
    *,
    description: str,
    timeout: float,
    attempts: int,
    start: float,
    stage: Optional[str],
    cause: Optional[BaseException] = None,
) -> TimeoutError:
    elapsed = _now() - start
    TIMING_LOGGER.wait_timeout(description, stage, attempts, elapsed, timeout)
    error = TimeoutError(message)
    error.original_exception = cause
    error.description = description
    error.timeout = timeout
    error.attempt_count = attempts
    error.elapsed_time = elapsed
    error.stage = stage
    return error


def wait_until(
    predicate: Callable[[], T],
    timeout: float,
    interval: float = 0.1,
    description: str = "condition",
    stage: Optional[str] = None,
) -> T:
    """
    Poll predicate until it returns a truthy value.

    Exceptions raised by the predicate count as "not yet" and the last one is
    attached to the TimeoutError. The predicate is always tried at least once.

    @return The first truthy value
    @throws TimeoutError when the timeout elapses
    """
    start = _now()
    attempts = 0
    last_exception: Optional[BaseException] = None
    TIMING_LOGGER.wait_start(description, stage, timeout, interval)

    while True:
        attempts += 1
        try:
            result = predicate()
            if result:
                TIMING_LOGGER.wait_success(description, stage, attempts, _now() - start)
                return result
        except Exception as e:
            last_exception = e
        if _now() - start >= timeout:
            break
        _sleep_for(interval, start, timeout)

    if last_exception is not None:
        message = (
            f"Timed out waiting for {description} after {timeout}s: "
            f"{type(last_exception).__name__}: {last_exception}"
        )
    else:
        message = f"Timed out waiting for {description} after {timeout}s (condition kept returning falsy)"
    raise _timeout_error(
        message,
        description=description,
        timeout=timeout,
        attempts=attempts,
        start=start,
        stage=stage,
        cause=last_exception,
    )


def wait_until_not(
    predicate: Callable[[], Any],
    timeout: float,
    interval: float = 0.1,
    description: str = "condition to become false",
    stage: Optional[str] = None,
) -> None:
    """
    Poll predicate until it returns a falsy value.

    A predicate that raises is treated as false (the element went away).
    """
    start = _now()
    attempts = 0
    TIMING_LOGGER.wait_start(description, stage, timeout, interval)
    while True:
        attempts += 1
        try:
            gone = not predicate()
        except Exception:
            gone = True
        if gone:
            TIMING_LOGGER.wait_success(description, stage, attempts, _now() - start)
            return
        if _now() - start >= timeout:
            break
        _sleep_for(interval, start, timeout)

    raise _timeout_error(
        f"Timed out waiting for {description} after {timeout}s (condition kept returning truthy)",
        description=description,
        timeout=timeout,
        attempts=attempts,
        start=start,
        stage=stage,
    )
