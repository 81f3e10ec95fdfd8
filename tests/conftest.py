# tests/conftest.py
import pytest

from webauto.actionlogger import ACTION_LOGGER
from webauto.config import TimeConfig
from webauto.context import ActionContextManager
from webauto.timinglogger import TIMING_LOGGER


@pytest.fixture(autouse=True)
def clean_state():
    """Each test starts with default timings, an empty action trace and quiet loggers."""
    TimeConfig.reset_to_defaults()
    ActionContextManager.clear()
    ACTION_LOGGER.disable()
    TIMING_LOGGER.disable()
    yield
    TimeConfig.reset_to_defaults()
    ActionContextManager.clear()


@pytest.fixture
def short_waits():
    """Readiness and advisory waits short enough for negative-path tests."""
    with TimeConfig.override(
        advisory_wait={"timeout": 0.05},
        visibility_wait={"timeout": 0.2, "interval": 0.05},
        enabled_wait={"timeout": 0.2, "interval": 0.05},
        editable_wait={"timeout": 0.2, "interval": 0.05},
    ) as cfg:
        yield cfg
