# webauto/runner.py
"""
@file runner.py
@brief Step dispatch (step file first, registered handler second) and the
YAML scenario runner that writes the JSON run report.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

import yaml
from jsonschema import Draft202012Validator

from .actionlogger import ACTION_LOGGER
from .actions import Actions
from .artifacts import make_artifacts, safe_name
from .config import AppConfig, TimeConfig
from .context import ActionContextManager, attach_trace
from .exceptions import (ActionError, ConfigError, StepNotFoundError, TimeoutError,
                         WebAutoError)
from .finder import ElementFinder
from .healing import HealingSettings, SelfHealingEngine
from .registry import REGISTRY, StepRegistry
from .repository import StepRepository
from .sequencer import ActionSequencer
from .session import BrowserSession
from .timinglogger import TIMING_LOGGER

SCENARIO_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "scenario.schema.json")

_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

_log = logging.getLogger("webauto.runner")


def _substitute(value: Any, variables: Dict[str, Any]) -> Any:
    """Replace ``${name}`` in strings (recursively); unknown names stay as written."""
    if isinstance(value, str):
        return _VAR_PATTERN.sub(lambda m: str(variables[m.group(1)]) if m.group(1) in variables else m.group(0), value)
    if isinstance(value, list):
        return [_substitute(v, variables) for v in value]
    if isinstance(value, dict):
        return {k: _substitute(v, variables) for k, v in value.items()}
    return value


@dataclass
class StepOutcome:
    step_text: str
    source: str
    actions_executed: int = 0
    healed: List[Dict[str, Any]] = field(default_factory=list)
    saved_to: Optional[str] = None


class StepRunner:
    """
    Runs one step text against a session.

    The step file is loaded fresh for every call. Healed selectors are written
    back only when ``persist_healed`` is set.
    """

    def __init__(
        self,
        session: Any,
        repository: StepRepository,
        registry: Optional[StepRegistry] = None,
        config: Optional[AppConfig] = None,
        persist_healed: bool = False,
    ):
        self.session = session
        self.repository = repository
        self.registry = registry if registry is not None else REGISTRY
        self.config = config or getattr(session, "config", None) or AppConfig()
        self.persist_healed = persist_healed

        healing = SelfHealingEngine(HealingSettings(
            fuzzy_min_matches=self.config.fuzzy_class_min,
            fuzzy_max_matches=self.config.fuzzy_class_max,
        ))
        self.finder = ElementFinder(session, healing=healing)
        self.actions = Actions(session, self.finder, self.config)
        self.sequencer = ActionSequencer(self.actions, self.config)

    def run_step(self, step_text: str) -> StepOutcome:
        """
        @throws StepNotFoundError when neither a step file nor a handler matches
        @throws ActionError from the first failing action
        """
        with ActionContextManager.action("step", step_text=step_text):
            try:
                return self._dispatch(step_text)
            except Exception as e:
                attach_trace(e)
                raise

    def _dispatch(self, step_text: str) -> StepOutcome:
        step = self.repository.get_step(step_text)
        if step is not None:
            executed = self.sequencer.execute(step, step_text)
            outcome = StepOutcome(step_text, "repository", executed)
            healed = step.healed_elements()
            outcome.healed = [el.to_dict() for el in healed]
            if healed and self.persist_healed:
                outcome.saved_to = self.repository.save_step(step)
                _log.info("Persisted %d healed element(s) to %s", len(healed), outcome.saved_to)
            return outcome

        found = self.registry.find(step_text)
        if found is None:
            raise StepNotFoundError(step_text)
        handler, args = found
        _log.info("Running registered step %s for: %s", handler.name, step_text)
        handler.func(self.actions, *args)
        return StepOutcome(step_text, "registry")


class Runner:
    """
    Loads scenario.yaml, validates, runs its steps in one browser session,
    emits report JSON.
    """

    def __init__(
        self,
        config: AppConfig,
        repository: Optional[StepRepository] = None,
        registry: Optional[StepRegistry] = None,
        schema_path: str = SCENARIO_SCHEMA_PATH,
        session_factory: Optional[Callable[[AppConfig], Any]] = None,
        persist_healed: bool = False,
    ):
        self.config = config
        self.repository = repository or StepRepository(config.steps_dir)
        self.registry = registry
        self.session_factory = session_factory or BrowserSession
        self.persist_healed = persist_healed
        with open(schema_path, "r", encoding="utf-8") as f:
            self._validator = Draft202012Validator(json.load(f))

    @staticmethod
    def load_scenario(path: str) -> Dict[str, Any]:
        if not os.path.exists(path):
            raise ConfigError(f"Scenario not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Scenario must be a mapping at root")
        return data

    def validate(self, scenario: Dict[str, Any]) -> None:
        errors = sorted(self._validator.iter_errors(scenario), key=lambda e: list(e.path))
        if errors:
            lines = ["Scenario schema validation failed:"]
            for e in errors:
                lines.append(f"- {list(e.path)}: {e.message}")
            raise ConfigError("\n".join(lines))

    def run(
        self,
        scenario_path: str,
        variables: Optional[Dict[str, Any]] = None,
        report_path: Optional[str] = None,
        timing_preset: str = "default",
        timing_overrides: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Run a scenario file and return (and optionally write) its report."""
        scenario_path = os.path.abspath(scenario_path)
        scenario = self.load_scenario(scenario_path)
        self.validate(scenario)

        merged = {**(scenario.get("vars") or {}), **(variables or {})}
        steps: List[str] = _substitute(scenario["steps"], merged)

        TimeConfig.install_run_config(TimeConfig.build_from(
            preset=timing_preset,
            overrides=timing_overrides or {},
            app_defaults={"default_timeout": self.config.default_timeout},
        ))

        run_id = str(uuid4())
        ACTION_LOGGER.set_run_id(run_id)
        TIMING_LOGGER.reset_stats()
        start_ts = time.time()
        report: Dict[str, Any] = {
            "run_id": run_id,
            "scenario": scenario.get("name") or os.path.basename(scenario_path),
            "file": os.path.basename(scenario_path),
            "environment": self.config.environment,
            "browser": self.config.browser,
            "started_at": time.strftime("%Y-%m-%d %H:%M:%S"),
            "status": "unknown",
            "steps": [],
            "errors": [],
        }

        session = self.session_factory(self.config)
        try:
            session.start()
            step_runner = StepRunner(
                session,
                self.repository,
                self.registry,
                config=self.config,
                persist_healed=self.persist_healed,
            )
            for idx, text in enumerate(steps, start=1):
                rec: Dict[str, Any] = {"index": idx, "step": text, "status": "running"}
                report["steps"].append(rec)
                started = time.time()
                ActionContextManager.clear()
                try:
                    outcome = step_runner.run_step(text)
                    rec["status"] = "passed"
                    rec["source"] = outcome.source
                    rec["actions"] = outcome.actions_executed
                    if outcome.healed:
                        rec["healed"] = outcome.healed
                    if outcome.saved_to:
                        rec["saved_to"] = outcome.saved_to
                except Exception as e:
                    rec["status"] = "failed"
                    rec["error"] = f"{type(e).__name__}: {e}"
                    if isinstance(e, ActionError) and e.cause is not None:
                        _log.debug("Step %d cause:\n%s", idx, e.get_cause_traceback())
                    root = _root_cause(e)
                    if root is not e:
                        rec["root_cause"] = f"{type(root).__name__}: {root}"
                    trace = getattr(e, "action_trace", None)
                    if trace:
                        rec["action_trace"] = trace
                    rec["artifacts"] = make_artifacts(
                        _current_page(session),
                        self.config.artifacts_dir,
                        f"failure_{idx}_{safe_name(text, 40)}",
                    )
                    raise
                finally:
                    rec["duration_sec"] = round(time.time() - started, 3)

            report["status"] = "passed"
        except WebAutoError as e:
            report["status"] = "failed"
            report["errors"].append(f"{type(e).__name__}: {e}")
        except Exception as e:
            # Playwright launch errors and the like still produce a report.
            _log.exception("Scenario aborted")
            report["status"] = "failed"
            report["errors"].append(f"{type(e).__name__}: {e}")
        finally:
            report["duration_sec"] = round(time.time() - start_ts, 3)
            if TIMING_LOGGER.is_enabled():
                report["waits"] = TIMING_LOGGER.stats()
            ActionContextManager.clear()
            try:
                session.close()
            except Exception as e:
                _log.warning("Session close failed: %s", e)
            TimeConfig.clear_run_config()
            if report_path:
                os.makedirs(os.path.dirname(os.path.abspath(report_path)) or ".", exist_ok=True)
                with open(report_path, "w", encoding="utf-8") as f:
                    json.dump(report, f, indent=2, ensure_ascii=False)
        return report


def _current_page(session: Any) -> Any:
    try:
        return session.page
    except WebAutoError:
        return None


def _root_cause(error: BaseException) -> BaseException:
    """Follow ActionError causes and TimeoutError originals to the first real failure."""
    current = getattr(error, "cause", None) or error
    if isinstance(current, TimeoutError):
        if current.original_exception is not None:
            _log.debug("Wait failure traceback:\n%s", current.get_traceback_str())
        return current.get_root_cause() or current
    return current
