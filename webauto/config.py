# webauto/config.py
"""
@file config.py
@brief Run-scoped timing configuration and application settings.

Timing precedence for one run:
  preset -> CLI overrides -> settings ``default_timeout`` (default preset only)
The resulting snapshot is installed per thread; ``override`` layers a
temporary change on top of whatever is current.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Dict, Generator, Optional

import yaml

from .exceptions import ConfigError
from .timings import PAUSE_FIELDS, TIMEOUT_FIELDS, build_preset_values

# Playwright-facing waits that follow the settings file's default_timeout.
DEFAULT_TIMEOUT_FIELDS = (
    "action_wait", "visibility_wait", "enabled_wait", "editable_wait",
    "page_load", "popup_wait", "network_idle",
)


@dataclass(frozen=True)
class TimeoutSettings:
    """Timeout and poll interval for one kind of wait, in seconds."""
    timeout: float
    interval: float

    @property
    def timeout_ms(self) -> float:
        """Timeout in milliseconds, as Playwright expects it."""
        return self.timeout * 1000.0


class TimeConfig:
    """
    Named timeout and pause values for one run.

    Attributes are the keys of ``TIMEOUT_FIELDS`` (TimeoutSettings) and
    ``PAUSE_FIELDS`` (float seconds).
    """

    _default_instance: Optional[TimeConfig] = None
    _local = threading.local()
    _lock = threading.Lock()

    def __init__(self, preset: str = "default"):
        self._set_values(build_preset_values(preset))

    def _set_values(self, values: Dict[str, Any]) -> None:
        for name in TIMEOUT_FIELDS:
            val = values.get(name)
            if isinstance(val, TimeoutSettings):
                setattr(self, name, val)
            elif isinstance(val, dict):
                setattr(self, name, TimeoutSettings(float(val["timeout"]), float(val["interval"])))
            else:
                raise ValueError(f"Invalid timeout setting for {name}: {val}")
        for name in PAUSE_FIELDS:
            if name not in values:
                raise ValueError(f"Missing pause setting for {name}")
            setattr(self, name, float(values[name]))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in TIMEOUT_FIELDS:
            setting: TimeoutSettings = getattr(self, name)
            data[name] = {"timeout": setting.timeout, "interval": setting.interval}
        for name in PAUSE_FIELDS:
            data[name] = getattr(self, name)
        return data

    def copy(self) -> TimeConfig:
        other = TimeConfig.__new__(TimeConfig)
        other.__dict__.update(self.__dict__)
        return other

    def apply(self, overrides: Dict[str, Any]) -> None:
        """
        Apply ``{field: {"timeout": s, "interval": s}}`` or ``{pause: s}``.

        Partial timeout dicts keep the missing value.
        @throws ValueError for unknown fields or malformed values
        """
        for key, value in overrides.items():
            if key in TIMEOUT_FIELDS:
                if isinstance(value, TimeoutSettings):
                    setattr(self, key, value)
                elif isinstance(value, dict):
                    current: TimeoutSettings = getattr(self, key)
                    changes = {k: float(v) for k, v in value.items() if k in ("timeout", "interval") and v is not None}
                    setattr(self, key, replace(current, **changes))
                else:
                    raise ValueError(f"Invalid override for {key}: {value}")
            elif key in PAUSE_FIELDS:
                setattr(self, key, float(value))
            else:
                raise ValueError(f"Unknown TimeConfig field: {key}")

    @classmethod
    def build_from(
        cls,
        *,
        preset: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
        app_defaults: Optional[Dict[str, float]] = None,
    ) -> TimeConfig:
        """Build the snapshot for one run."""
        cfg = cls(preset)
        if overrides:
            cfg.apply(overrides)
        if app_defaults and preset == "default" and app_defaults.get("default_timeout"):
            seconds = float(app_defaults["default_timeout"])
            cfg.apply({name: {"timeout": seconds} for name in DEFAULT_TIMEOUT_FIELDS})
        return cfg

    @classmethod
    def default(cls) -> TimeConfig:
        if cls._default_instance is None:
            with cls._lock:
                if cls._default_instance is None:
                    cls._default_instance = cls()
        return cls._default_instance

    @classmethod
    def install_run_config(cls, config: TimeConfig) -> None:
        cls._local.run_config = config

    @classmethod
    def clear_run_config(cls) -> None:
        cls._local.run_config = None

    @classmethod
    def current(cls) -> TimeConfig:
        """Innermost override, else the run snapshot, else defaults."""
        override = getattr(cls._local, "override", None)
        if override is not None:
            return override
        run_cfg = getattr(cls._local, "run_config", None)
        if run_cfg is not None:
            return run_cfg
        return cls.default()

    @classmethod
    @contextmanager
    def override(cls, **kwargs: Any) -> Generator[TimeConfig, None, None]:
        previous = getattr(cls._local, "override", None)
        cfg = cls.current().copy()
        cfg.apply(kwargs)
        cls._local.override = cfg
        try:
            yield cfg
        finally:
            cls._local.override = previous

    @classmethod
    def reset_to_defaults(cls) -> None:
        with cls._lock:
            cls._default_instance = cls()
        cls._local.override = None
        cls._local.run_config = None


# ---------------------------------------------------------------------------
# Application settings
# ---------------------------------------------------------------------------

SUPPORTED_BROWSERS = {"chromium", "chrome", "firefox", "webkit"}


@dataclass(frozen=True)
class AppConfig:
    browser: str = "chromium"
    headless: bool = False
    slow_mo: float = 0.0
    default_timeout: Optional[float] = None
    environment: str = "dev"
    base_url: str = "https://localhost"
    steps_dir: str = "LocatorRepository"
    artifacts_dir: str = "reports"
    date_format: str = "%d-%b-%Y"
    fuzzy_class_min: int = 1
    fuzzy_class_max: int = 3
    record_video: bool = False


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def _parse_app_config(d: Dict[str, Any]) -> AppConfig:
    defaults = AppConfig()
    default_timeout = d.get("default_timeout")
    cfg = AppConfig(
        browser=str(d.get("browser", defaults.browser)).lower(),
        headless=_as_bool(d.get("headless", defaults.headless)),
        slow_mo=float(d.get("slow_mo", defaults.slow_mo)),
        default_timeout=float(default_timeout) if default_timeout is not None else None,
        environment=str(d.get("environment", defaults.environment)),
        base_url=str(d.get("base_url", defaults.base_url)),
        steps_dir=str(d.get("steps_dir", defaults.steps_dir)),
        artifacts_dir=str(d.get("artifacts_dir", defaults.artifacts_dir)),
        date_format=str(d.get("date_format", defaults.date_format)),
        fuzzy_class_min=int(d.get("fuzzy_class_min", defaults.fuzzy_class_min)),
        fuzzy_class_max=int(d.get("fuzzy_class_max", defaults.fuzzy_class_max)),
        record_video=_as_bool(d.get("record_video", defaults.record_video)),
    )
    _validate_app_config(cfg)
    return cfg


def _validate_app_config(cfg: AppConfig) -> None:
    if cfg.browser not in SUPPORTED_BROWSERS:
        raise ConfigError(f"Unsupported browser '{cfg.browser}'. Allowed: {sorted(SUPPORTED_BROWSERS)}")
    if cfg.fuzzy_class_min < 1 or cfg.fuzzy_class_max < cfg.fuzzy_class_min:
        raise ConfigError(
            f"Invalid fuzzy class range: {cfg.fuzzy_class_min}..{cfg.fuzzy_class_max}"
        )


def _apply_env(cfg: AppConfig, env: Dict[str, str]) -> AppConfig:
    """Environment variables take precedence over the settings file."""
    changes: Dict[str, Any] = {}
    if env.get("BROWSER"):
        changes["browser"] = env["BROWSER"].lower()
    if env.get("HEADLESS"):
        changes["headless"] = _as_bool(env["HEADLESS"])
    if env.get("SLOW_MO"):
        try:
            changes["slow_mo"] = float(env["SLOW_MO"])
        except ValueError:
            pass
    if env.get("DEFAULT_TIMEOUT"):
        # milliseconds, like the Playwright option it mirrors
        try:
            changes["default_timeout"] = float(env["DEFAULT_TIMEOUT"]) / 1000.0
        except ValueError:
            pass
    if env.get("TEST_ENV"):
        changes["environment"] = env["TEST_ENV"]
    if env.get("BASE_URL"):
        changes["base_url"] = env["BASE_URL"]
    if not changes:
        return cfg
    cfg = replace(cfg, **changes)
    _validate_app_config(cfg)
    return cfg


def load_app_config(path: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> AppConfig:
    """
    Load application settings.

    @param path Optional YAML file with an ``app:`` mapping
    @param env Environment mapping (defaults to os.environ)
    @return Frozen AppConfig
    @throws ConfigError if the file is missing or invalid
    """
    raw: Dict[str, Any] = {}
    if path:
        path = os.path.abspath(path)
        if not os.path.exists(path):
            raise ConfigError(f"Settings YAML not found: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError("Settings YAML must be a mapping at root.")
        raw = data.get("app", {}) or {}
        if not isinstance(raw, dict):
            raise ConfigError("'app' must be a mapping")

    try:
        cfg = _parse_app_config(raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid app settings: {e}") from e
    return _apply_env(cfg, dict(os.environ) if env is None else env)
