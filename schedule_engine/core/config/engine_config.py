from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from schedule_engine.core.model import ACTIVITY_STATUSES, ActivityStatus
from schedule_engine.core.resolve.resolve_schedule import MAX_PASSES


@dataclass(frozen=True)
class EngineConfig:
    max_passes: int = MAX_PASSES
    # New activities span this many calendar days when no end date is given.
    default_duration_days: int = 7
    default_status: ActivityStatus = "OnTrack"


DEFAULT_CONFIG = EngineConfig()

ENV_PREFIX = "SCHEDULE_"


class EngineConfigError(ValueError):
    pass


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load engine overrides from a YAML file.

    Format:
      max_passes: 10
      default_duration_days: 7
      default_status: OnTrack

    Unknown keys are rejected so typos do not silently fall back to defaults.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise EngineConfigError("config file must be a mapping of setting -> value")

    known = {f.name for f in fields(EngineConfig)}
    unknown = sorted(str(k) for k in raw.keys() if k not in known)
    if unknown:
        raise EngineConfigError(f"unknown config keys: {', '.join(unknown)}")
    return dict(raw)


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    out: dict[str, Any] = {}
    for f in fields(EngineConfig):
        value = env.get(ENV_PREFIX + f.name.upper())
        if value is not None and value.strip():
            out[f.name] = value.strip()
    return out


def merged_config(overrides: Optional[dict[str, Any]] = None) -> EngineConfig:
    """Return DEFAULT_CONFIG with overrides applied and checked."""
    if not overrides:
        return DEFAULT_CONFIG

    values: dict[str, Any] = {}
    for key in ("max_passes", "default_duration_days"):
        if key in overrides:
            values[key] = _coerce_int(key, overrides[key])

    if values.get("max_passes", 1) < 1:
        raise EngineConfigError("max_passes must be >= 1")
    if values.get("default_duration_days", 0) < 0:
        raise EngineConfigError("default_duration_days must be >= 0")

    if "default_status" in overrides:
        status = overrides["default_status"]
        if status not in ACTIVITY_STATUSES:
            raise EngineConfigError(
                f"default_status must be one of {list(ACTIVITY_STATUSES)}, got {status!r}"
            )
        values["default_status"] = status

    return replace(DEFAULT_CONFIG, **values)


def load_engine_config(
    config_file: str | None = None, environ: Optional[Mapping[str, str]] = None
) -> EngineConfig:
    """Defaults, then the optional YAML file, then SCHEDULE_* environment variables."""
    overrides: dict[str, Any] = {}
    if config_file:
        overrides.update(load_config_file(config_file))
    overrides.update(env_overrides(environ))
    return merged_config(overrides)


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise EngineConfigError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise EngineConfigError(f"{key} must be an integer, got {value!r}")
