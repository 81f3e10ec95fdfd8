# webauto/repository.py
from __future__ import annotations

import json
import logging
import os
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

import yaml
from jsonschema import Draft202012Validator

from .descriptor import ActionDescriptor, StepDescriptor
from .exceptions import ConfigError

STEP_SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schemas", "step.schema.json")

_DOUBLE_QUOTED = re.compile(r'"[^"]*"')
_SINGLE_QUOTED = re.compile(r"'[^']*'")
_NUMBER = re.compile(r"\b\d+\b")
_NON_WORD = re.compile(r"[^\w]+")
_UNDERSCORES = re.compile(r"_+")

_log = logging.getLogger("webauto.repository")


def normalize_step(step_text: str) -> str:
    """Step text with literals and numbers replaced by ``_param_``, as a file stem."""
    normalized = (step_text or "").lower()
    normalized = _DOUBLE_QUOTED.sub("_param_", normalized)
    normalized = _SINGLE_QUOTED.sub("_param_", normalized)
    normalized = _NUMBER.sub("_param_", normalized)
    normalized = _NON_WORD.sub("_", normalized)
    normalized = _UNDERSCORES.sub("_", normalized)
    return normalized.strip("_")


def generate_step_file_name(step_text: str) -> str:
    return f"{normalize_step(step_text)}.json"


class StepRepository:
    """
    Directory of step files (JSON, or YAML with the same keys).

    Step text maps to a file name through generate_step_file_name, so
    ``When I login with "bob" and "pw"`` and ``When I login with 'amy' and 'x'``
    share one step file.
    """

    def __init__(self, steps_dir: str = "LocatorRepository", schema_path: str = STEP_SCHEMA_PATH):
        self.steps_dir = os.path.abspath(steps_dir)
        with open(schema_path, "r", encoding="utf-8") as f:
            self._validator = Draft202012Validator(json.load(f))

    generate_step_file_name = staticmethod(generate_step_file_name)

    def _candidate_paths(self, step_text: str) -> List[str]:
        stem = normalize_step(step_text)
        return [os.path.join(self.steps_dir, stem + ext) for ext in (".json", ".yaml", ".yml")]

    def path_for(self, step_text: str) -> Optional[str]:
        for path in self._candidate_paths(step_text):
            if os.path.isfile(path):
                return path
        return None

    def step_exists(self, step_text: str) -> bool:
        return self.path_for(step_text) is not None

    def validate(self, data: Any, where: str = "step") -> None:
        errors = sorted(self._validator.iter_errors(data), key=lambda e: list(e.path))
        if errors:
            lines = [f"{where}: step schema validation failed:"]
            for e in errors:
                lines.append(f"- {list(e.path)}: {e.message}")
            raise ConfigError("\n".join(lines))

    def load_file(self, path: str) -> StepDescriptor:
        """
        Load and validate one step file.

        @throws ConfigError on unreadable, malformed or invalid files
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.endswith((".yaml", ".yml")):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot load step file {path}: {e}") from e
        self.validate(data, where=os.path.basename(path))
        step = StepDescriptor.from_dict(data)
        if step.step_file_name is None:
            step.step_file_name = os.path.basename(path)
        return step

    def get_step(self, step_text: str) -> Optional[StepDescriptor]:
        """Fresh descriptor for ``step_text``, or None when no file exists."""
        path = self.path_for(step_text)
        if path is None:
            return None
        _log.debug("Loading step file %s", path)
        return self.load_file(path)

    def get_actions(self, step_text: str) -> Optional[List[ActionDescriptor]]:
        step = self.get_step(step_text)
        return step.actions if step is not None else None

    def save_step(self, step: StepDescriptor) -> str:
        """Write ``step`` as indented JSON; returns the path written."""
        name = step.step_file_name or generate_step_file_name(step.gherkin_step)
        if not name.endswith(".json"):
            name = os.path.splitext(name)[0] + ".json"
        step.step_file_name = name
        if step.normalized_step is None:
            step.normalized_step = normalize_step(step.gherkin_step)
        step.metadata.setdefault("createdDate", datetime.now().isoformat(timespec="seconds"))

        os.makedirs(self.steps_dir, exist_ok=True)
        path = os.path.join(self.steps_dir, name)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(step.to_dict(), f, indent=2, ensure_ascii=False)
        _log.info("Saved step file: %s", name)
        return path

    def list_steps(self) -> List[Dict[str, Any]]:
        """Summary of every step file: file name, step text, action count."""
        if not os.path.isdir(self.steps_dir):
            return []
        out: List[Dict[str, Any]] = []
        for fname in sorted(os.listdir(self.steps_dir)):
            if not fname.endswith((".json", ".yaml", ".yml")):
                continue
            path = os.path.join(self.steps_dir, fname)
            try:
                step = self.load_file(path)
            except ConfigError as e:
                out.append({"file": fname, "step": None, "actions": 0, "error": str(e)})
                continue
            out.append({"file": fname, "step": step.gherkin_step, "actions": len(step.actions)})
        return out
