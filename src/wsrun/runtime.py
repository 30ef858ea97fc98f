"""Runtime context & bootstrap utilities."""

from __future__ import annotations

import math
import os
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from wsrun.domain.errors import ConfigError
from wsrun.infrastructure.logging import setup_logging

DEFAULT_CONFIG = "wsrun.yaml"


def _seconds(name: str, value: Any) -> float:
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}") from None
    if seconds < 0 or not math.isfinite(seconds):
        raise ConfigError(f"{name} must be a non-negative number of seconds, got {value!r}")
    return seconds


@dataclass(slots=True)
class RuntimeConfig:
    raw: dict[str, Any]
    path: Path

    @property
    def yarn(self) -> tuple[str, ...]:
        value = os.getenv("WSRUN_YARN") or self.raw.get("yarn", "yarn")
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return tuple(str(v) for v in value)

    @property
    def stagger(self) -> float:
        env = os.getenv("WSRUN_STAGGER")
        if env:
            return _seconds("WSRUN_STAGGER", env)
        return _seconds("stagger", self.raw.get("stagger", 0.0))

    @property
    def kill_timeout(self) -> float:
        return _seconds("kill_timeout", self.raw.get("kill_timeout", 5.0))


class AppContext:
    _instance: AppContext | None = None

    def __init__(self, config: RuntimeConfig):
        self.config = config

    @classmethod
    def init(cls, config: RuntimeConfig) -> AppContext:
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def get(cls) -> AppContext:
        if cls._instance is None:
            raise RuntimeError("AppContext not initialized")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def load_config(path: Path) -> RuntimeConfig:
    if not path.exists():
        return RuntimeConfig(raw={}, path=path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return RuntimeConfig(raw=data, path=path)


def bootstrap(force: bool = False, *, root: Path | None = None) -> AppContext:
    """Load `<root>/.env` and the config file once; `force` reloads both."""
    if not force:
        try:
            return AppContext.get()
        except RuntimeError:
            pass
    else:
        AppContext.reset()
    base = root or Path.cwd()
    load_dotenv(dotenv_path=base / ".env", override=False)
    setup_logging()
    env_path = os.getenv("WSRUN_CONFIG")
    cfg_path = Path(env_path) if env_path else base / DEFAULT_CONFIG
    return AppContext.init(load_config(cfg_path))


__all__ = ["AppContext", "RuntimeConfig", "bootstrap", "load_config"]
