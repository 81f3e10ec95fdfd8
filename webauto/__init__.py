# webauto/__init__.py
"""
Step-driven browser automation on Playwright.

Recorded step files describe the actions behind a step text. Elements are
located by their recorded locators first and recovered from a semantic
fingerprint when the page has drifted.

    from webauto import BrowserSession, StepRepository, StepRunner, load_app_config

    config = load_app_config("settings.yaml")
    with BrowserSession(config) as session:
        runner = StepRunner(session, StepRepository(config.steps_dir))
        runner.run_step('Given I open "login"')
"""

from .config import AppConfig, TimeConfig, load_app_config
from .descriptor import ActionDescriptor, ActionKind, ElementDescriptor, Fingerprint, StepDescriptor
from .exceptions import (ActionError, ConfigError, ElementNotFoundError, MissingInputError,
                         StepNotFoundError, TimeoutError, VerificationError, WebAutoError,
                         WindowNotFoundError)
from .finder import ElementFinder, Resolution
from .healing import SelfHealingEngine
from .resolver import StandardResolver
from .actions import Actions
from .sequencer import ActionSequencer
from .session import BrowserSession
from .repository import StepRepository
from .registry import StepRegistry, step
from .runner import Runner, StepRunner

__all__ = [
    "AppConfig", "TimeConfig", "load_app_config",
    "ActionDescriptor", "ActionKind", "ElementDescriptor", "Fingerprint", "StepDescriptor",
    "ActionError", "ConfigError", "ElementNotFoundError", "MissingInputError",
    "StepNotFoundError", "TimeoutError", "VerificationError", "WebAutoError",
    "WindowNotFoundError",
    "ElementFinder", "Resolution", "SelfHealingEngine", "StandardResolver",
    "Actions", "ActionSequencer", "BrowserSession",
    "StepRepository", "StepRegistry", "step",
    "Runner", "StepRunner",
]
