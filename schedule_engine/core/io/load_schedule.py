from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from schedule_engine.core.errors import ScheduleLoadError
from schedule_engine.core.model import Activity


SCHEMA_VERSION = "0.1.0"


def load_schedule(path: str) -> dict[str, Any]:
    """Load a YAML/JSON schedule document.

    Returns a dict with keys: schema_version, activities.
    Does not coerce types; validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise ScheduleLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise ScheduleLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise ScheduleLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except ScheduleLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise ScheduleLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise ScheduleLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    # The schedule usually lives inside a larger project document; only the
    # keys the engine understands are kept.
    return {
        "schema_version": data.get("schema_version"),
        "activities": data.get("activities"),
        "__file__": str(p),
    }


def activities_to_document(
    activities: list[Activity], schema_version: str = SCHEMA_VERSION
) -> dict[str, Any]:
    out: list[dict[str, Any]] = []
    for a in activities:
        item: dict[str, Any] = {
            "id": a.id,
            "name": a.name,
            "start_date": a.start_date.isoformat(),
            "end_date": a.end_date.isoformat(),
            "progress": a.progress,
            "status": a.status,
            "is_critical": a.is_critical,
            "dependencies": [
                {"predecessor_id": d.predecessor_id, "type": d.type, "lag_days": d.lag_days}
                for d in a.dependencies
            ],
        }
        if a.external_link_id is not None:
            item["external_link_id"] = a.external_link_id
        out.append(item)
    return {"schema_version": schema_version, "activities": out}


def dump_schedule(doc: dict[str, Any], path: str) -> None:
    """Write a schedule document as JSON or YAML depending on the suffix."""
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)

    clean = {k: v for k, v in doc.items() if not k.startswith("__")}
    with open(p, "w", encoding="utf-8") as f:
        if p.suffix.lower() == ".json":
            json.dump(clean, f, indent=2)
            f.write("\n")
        else:
            yaml.safe_dump(clean, f, sort_keys=False, default_flow_style=False, allow_unicode=True)
