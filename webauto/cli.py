# webauto/cli.py
"""
@file cli.py
@brief Command-line interface for webauto.
"""

from __future__ import annotations

import argparse
import importlib
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .actionlogger import ACTION_LOGGER
from .config import AppConfig, load_app_config
from .context import ActionContextManager
from .exceptions import ConfigError
from .repository import StepRepository, generate_step_file_name
from .runner import SCENARIO_SCHEMA_PATH, Runner
from .timinglogger import TIMING_LOGGER

_TRUTHY = {"1", "true", "yes", "on"}


def _resolve_timing_options(args: argparse.Namespace) -> Tuple[str, Dict[str, Any]]:
    """Resolve timing preset and CLI overrides without mutating global state."""
    preset = "default"
    if getattr(args, "ci", False):
        preset = "ci"
    elif getattr(args, "fast", False):
        preset = "fast"
    elif getattr(args, "slow", False):
        preset = "slow"

    overrides: Dict[str, Any] = {}
    timeout = getattr(args, "timeout", None)
    if timeout is not None:
        overrides = {
            "action_wait": {"timeout": timeout},
            "visibility_wait": {"timeout": timeout},
            "enabled_wait": {"timeout": timeout},
            "editable_wait": {"timeout": timeout},
            "page_load": {"timeout": timeout},
            "popup_wait": {"timeout": timeout},
            "network_idle": {"timeout": timeout},
            "advisory_wait": {"timeout": max(timeout / 6, 0.5)},
        }
    return preset, overrides


def _resolve_scenario_paths(single_scenario: Optional[str], scenarios_dir: Optional[str]) -> List[str]:
    """Resolve scenarios for single or bulk execution."""
    if single_scenario:
        return [os.path.abspath(single_scenario)]
    if not scenarios_dir:
        return []

    base = Path(scenarios_dir).resolve()
    if not base.is_dir():
        return []
    scenario_files = list(base.rglob("*.yaml")) + list(base.rglob("*.yml"))
    return sorted({str(path.resolve()) for path in scenario_files})


def _build_report_path(base_report_path: str, scenario_path: str, index: int, bulk_mode: bool) -> str:
    if not bulk_mode:
        return base_report_path
    base = Path(base_report_path)
    suffix = base.suffix or ".json"
    filename = f"{base.stem}__{index:03d}_{Path(scenario_path).stem}{suffix}"
    return str((base.parent / filename).resolve())


def _build_combined_summary(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    passed = sum(1 for item in results if item.get("status") == "passed")
    failed = len(results) - passed
    return {
        "total": len(results),
        "passed": passed,
        "failed": failed,
        "status": "passed" if failed == 0 else "failed",
        "results": results,
    }


def _print_bulk_summary(results: List[Dict[str, Any]]) -> None:
    print("\nBulk Summary")
    print("-" * 80)
    print(f"{'#':<4} {'Status':<8} {'Duration':<10} Scenario (Report)")
    for idx, result in enumerate(results, start=1):
        status = str(result.get("status", "unknown")).upper()
        duration = float(result.get("duration_sec", 0))
        print(f"{idx:<4} {status:<8} {duration:<10.2f} {result.get('scenario_path', '')} ({result.get('report_path', '')})")
    summary = _build_combined_summary(results)
    print("-" * 80)
    print(
        f"Total: {summary['total']}  Passed: {summary['passed']}  "
        f"Failed: {summary['failed']}  Exit code: {0 if summary['failed'] == 0 else 2}"
    )


def _print_report(report: Dict[str, Any], scenario_path: str, verbose: bool) -> None:
    print("\n" + "=" * 60)
    print(f"Scenario: {report.get('scenario', os.path.basename(scenario_path))}")
    print(f"Status:   {str(report.get('status', 'unknown')).upper()}")
    print(f"Duration: {report.get('duration_sec', 0):.2f}s")

    if verbose or report.get("status") == "failed":
        print("\nStep Details:")
        for step in report.get("steps", []):
            status_icon = "+" if step["status"] == "passed" else "X"
            print(f"  {status_icon} [{step['index']}] {step['step']}: {step['status']} ({step.get('duration_sec', 0):.2f}s)")
            if step.get("healed"):
                print(f"      Healed: {len(step['healed'])} element(s)")
            if step["status"] == "failed" and "error" in step:
                print(f"      Error: {step['error']}")

    if report.get("errors"):
        print("\nErrors:")
        for error in report["errors"]:
            print(f"  - {error}")
    print("=" * 60)

    if verbose:
        print("\nFull Report (JSON):")
        print(json.dumps(report, indent=2, ensure_ascii=False))


def _parse_vars(args: argparse.Namespace) -> Dict[str, Any]:
    variables: Dict[str, Any] = {}
    if getattr(args, "vars", None):
        with open(args.vars, "r", encoding="utf-8") as f:
            variables = json.load(f)
        if not isinstance(variables, dict):
            raise ConfigError("--vars must be a JSON object mapping")
    for var_spec in getattr(args, "var", None) or []:
        if "=" in var_spec:
            key, value = var_spec.split("=", 1)
            variables[key.strip()] = value.strip()
    return variables


def _import_step_modules(modules: Optional[List[str]]) -> None:
    """Import modules whose ``@step`` decorators populate the default registry."""
    for name in modules or []:
        importlib.import_module(name)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _configure_timing_logger_from_env() -> None:
    """Configure timing logging from environment variables."""
    if os.getenv("WEBAUTO_TIMING_LOGGING", "").lower() not in _TRUTHY:
        TIMING_LOGGER.disable()
        return
    TIMING_LOGGER.configure(file_path=os.getenv("WEBAUTO_TIMING_LOG_FILE") or None)
    TIMING_LOGGER.enable()


def _load_config(args: argparse.Namespace) -> AppConfig:
    cfg = load_app_config(getattr(args, "settings", None))
    changes: Dict[str, Any] = {}
    if getattr(args, "steps_dir", None):
        changes["steps_dir"] = args.steps_dir
    if getattr(args, "browser", None):
        changes["browser"] = args.browser
    if getattr(args, "headless", False):
        changes["headless"] = True
    if getattr(args, "base_url", None):
        changes["base_url"] = args.base_url
    if not changes:
        return cfg
    return replace(cfg, **changes)


def _add_settings_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--settings", default=None, help="Settings YAML with an 'app:' section")
    parser.add_argument("--steps-dir", default=None, help="Directory of step files (overrides settings)")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    argv = argv if argv is not None else sys.argv[1:]
    ACTION_LOGGER.configure_from_env()
    _configure_timing_logger_from_env()

    p = argparse.ArgumentParser(
        prog="webauto",
        description="webauto - step-driven browser automation with self-healing locators",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # -------------------------
    # run
    # -------------------------
    runp = sub.add_parser("run", help="Run a YAML scenario of step texts")
    _add_settings_args(runp)
    runp.add_argument("--scenario", "-s", required=False, help="Path to scenario.yaml")
    runp.add_argument("--scenarios-dir", default=None, help="Run all scenarios under directory (recursively searches for *.yaml/*.yml)")
    runp.add_argument("--schema", default=SCENARIO_SCHEMA_PATH, help="Path to scenario schema JSON")
    runp.add_argument("--steps-module", "-m", action="append", help="Python module registering fallback steps (repeatable)")
    runp.add_argument("--browser", "-b", default=None, choices=["chromium", "chrome", "firefox", "webkit"], help="Browser to launch")
    runp.add_argument("--headless", action="store_true", help="Run the browser headless")
    runp.add_argument("--base-url", default=None, help="Base URL for relative NAVIGATE targets")
    runp.add_argument("--vars", default=None, help="Optional vars JSON file")
    runp.add_argument("--var", "-v", action="append", help="Variable in KEY=VALUE format (can be used multiple times)")
    runp.add_argument("--report", "-r", default="report.json", help="Report output path (JSON)")
    runp.add_argument("--persist-healed", action="store_true", help="Write healed selectors back to their step files")
    runp.add_argument("--timeout", "-t", type=float, default=None, help="Override base timeouts in seconds (intervals stay from preset)")
    runp.add_argument("--ci", action="store_true", help="Use CI-optimized timeout settings")
    runp.add_argument("--fast", action="store_true", help="Use fast timeout settings for local development")
    runp.add_argument("--slow", action="store_true", help="Use slow timeout settings for unstable environments")
    runp.add_argument("--verbose", action="store_true", help="Show detailed step output")
    runp.add_argument("--summary-json", default=None, help="Optional output path for combined bulk summary (JSON)")

    # -------------------------
    # validate
    # -------------------------
    valp = sub.add_parser("validate", help="Validate scenarios and step files")
    _add_settings_args(valp)
    valp.add_argument("--scenario", "-s", default=None, help="Path to scenario YAML file")
    valp.add_argument("--scenarios-dir", default=None, help="Validate all scenarios under directory")
    valp.add_argument("--schema", default=SCENARIO_SCHEMA_PATH, help="Path to scenario JSON schema")

    # -------------------------
    # list-steps
    # -------------------------
    listp = sub.add_parser("list-steps", help="List step files in the step directory")
    _add_settings_args(listp)

    # -------------------------
    # step-name
    # -------------------------
    namep = sub.add_parser("step-name", help="Print the step file name a step text maps to")
    namep.add_argument("text", help="Step text, e.g. 'When I login with \"bob\"'")

    args = p.parse_args(argv)

    if args.cmd == "step-name":
        print(generate_step_file_name(args.text))
        return 0

    _configure_logging(getattr(args, "verbose", False))
    try:
        config = _load_config(args)
    except ConfigError as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    if args.cmd == "run":
        if args.scenario and args.scenarios_dir:
            print("Error: --scenario and --scenarios-dir are mutually exclusive", file=sys.stderr)
            return 1
        if not args.scenario and not args.scenarios_dir:
            print("Error: one of --scenario or --scenarios-dir is required", file=sys.stderr)
            return 1

        ActionContextManager.clear()
        try:
            _import_step_modules(args.steps_module)
            variables = _parse_vars(args)
        except (ImportError, ConfigError, OSError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

        timing_preset, timing_overrides = _resolve_timing_options(args)
        runner = Runner(config, schema_path=args.schema, persist_healed=args.persist_healed)

        scenario_paths = _resolve_scenario_paths(args.scenario, args.scenarios_dir)
        if not scenario_paths:
            print("Error: no scenario files found", file=sys.stderr)
            return 1

        bulk_mode = len(scenario_paths) > 1 or bool(args.scenarios_dir)
        scenario_results: List[Dict[str, Any]] = []
        for idx, scenario_path in enumerate(scenario_paths, start=1):
            per_report_path = _build_report_path(args.report, scenario_path, idx, bulk_mode)
            try:
                report = runner.run(
                    scenario_path=scenario_path,
                    variables=variables,
                    report_path=per_report_path,
                    timing_preset=timing_preset,
                    timing_overrides=timing_overrides,
                )
            except ConfigError as e:
                report = {"status": "invalid", "duration_sec": 0, "errors": [str(e)]}
                print(f"X Scenario file is invalid: {scenario_path}: {e}", file=sys.stderr)
            else:
                _print_report(report, scenario_path, args.verbose)

            scenario_results.append({
                "scenario_path": scenario_path,
                "status": report.get("status", "unknown"),
                "duration_sec": report.get("duration_sec", 0),
                "report_path": per_report_path,
                "errors": report.get("errors", []),
            })

        if bulk_mode:
            _print_bulk_summary(scenario_results)

        combined_summary = _build_combined_summary(scenario_results)
        if args.summary_json:
            os.makedirs(os.path.dirname(os.path.abspath(args.summary_json)) or ".", exist_ok=True)
            with open(args.summary_json, "w", encoding="utf-8") as f:
                json.dump(combined_summary, f, indent=2, ensure_ascii=False)

        return 0 if combined_summary["failed"] == 0 else 2

    if args.cmd == "validate":
        errors: List[str] = []
        repo = StepRepository(config.steps_dir)
        for entry in repo.list_steps():
            if entry.get("error"):
                errors.append(entry["error"])
                print(f"X Step file is invalid: {entry['file']}: {entry['error']}", file=sys.stderr)

        scenario_paths = _resolve_scenario_paths(args.scenario, args.scenarios_dir)
        runner = Runner(config, repository=repo, schema_path=args.schema)
        for scenario_path in scenario_paths:
            try:
                scenario = runner.load_scenario(scenario_path)
                runner.validate(scenario)
            except ConfigError as e:
                errors.append(f"{scenario_path}: {e}")
                print(f"X Scenario file is invalid: {scenario_path}: {e}", file=sys.stderr)
                continue
            steps = scenario.get("steps", [])
            missing = [text for text in steps if not repo.step_exists(text)]
            print(f"+ Scenario file is valid: {scenario_path}")
            print(f"  - Steps: {len(steps)} ({len(missing)} without a step file)")
            for text in missing:
                print(f"    ? {text} -> {generate_step_file_name(text)}")

        return 2 if errors else 0

    if args.cmd == "list-steps":
        repo = StepRepository(config.steps_dir)
        steps = repo.list_steps()
        print(f"Step files ({len(steps)}) in {repo.steps_dir}:")
        for entry in steps:
            if entry.get("error"):
                print(f"  X {entry['file']}: {entry['error']}")
            else:
                print(f"  - {entry['file']}: {entry['step']} [{entry['actions']} action(s)]")
        return 0

    return 1


if __name__ == "__main__":
    sys.exit(main())
