from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Union

from schedule_engine.core.config.engine_config import DEFAULT_CONFIG, EngineConfig
from schedule_engine.core.edit import operations as ops
from schedule_engine.core.errors import ScheduleValidationError
from schedule_engine.core.model import (
    DEPENDENCY_TYPE_ALIASES,
    DEPENDENCY_TYPES,
    Activity,
    Dependency,
)


@dataclass(frozen=True)
class Move:
    activity_id: str
    delta_days: int


@dataclass(frozen=True)
class ResizeStart:
    activity_id: str
    new_start: date


@dataclass(frozen=True)
class ResizeEnd:
    activity_id: str
    new_end: date


@dataclass(frozen=True)
class SetProgress:
    activity_id: str
    value: float


@dataclass(frozen=True)
class AddDependency:
    activity_id: str
    dependency: Dependency


@dataclass(frozen=True)
class RemoveDependency:
    activity_id: str
    dependency: Dependency


@dataclass(frozen=True)
class CreateActivity:
    fields: dict[str, Any]


@dataclass(frozen=True)
class DeleteActivity:
    activity_id: str


EditCommand = Union[
    Move,
    ResizeStart,
    ResizeEnd,
    SetProgress,
    AddDependency,
    RemoveDependency,
    CreateActivity,
    DeleteActivity,
]


@dataclass(frozen=True)
class EditScript:
    edits: list[EditCommand]
    notes: list[str]


@dataclass(frozen=True)
class ApplyEditsResult:
    activities: list[Activity]
    applied: list[int]
    # Indexes of edits that left the schedule unchanged (rejected resize, unknown id, ...).
    rejected: list[int]


def parse_edit_script(obj: dict[str, Any]) -> EditScript:
    if not isinstance(obj, dict):
        raise ValueError("EditScript must be an object")

    edits_raw = obj.get("edits", [])
    notes_raw = obj.get("notes", [])

    if not isinstance(edits_raw, list):
        raise ValueError("edits must be a list")
    if not isinstance(notes_raw, list) or any(not isinstance(x, str) for x in notes_raw):
        raise ValueError("notes must be a list[str]")

    edits: list[EditCommand] = []
    for i, item in enumerate(edits_raw):
        if not isinstance(item, dict):
            raise ValueError(f"edits[{i}] must be an object")
        edits.append(_parse_edit(item, f"edits[{i}]"))

    return EditScript(edits=edits, notes=notes_raw)


def apply_edit_script(
    activities: list[Activity],
    script: EditScript,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    today: Optional[date] = None,
) -> ApplyEditsResult:
    """Apply edits in order; each one is followed by a full resolution."""
    current = list(activities)
    applied: list[int] = []
    rejected: list[int] = []

    for i, edit in enumerate(script.edits):
        updated = apply_edit(current, edit, config=config, today=today)
        if updated == current:
            rejected.append(i)
        else:
            applied.append(i)
        current = updated

    return ApplyEditsResult(activities=current, applied=applied, rejected=rejected)


def apply_edit(
    activities: list[Activity],
    edit: EditCommand,
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    today: Optional[date] = None,
) -> list[Activity]:
    passes = config.max_passes
    if isinstance(edit, Move):
        return ops.apply_move(activities, edit.activity_id, edit.delta_days, max_passes=passes)
    if isinstance(edit, ResizeStart):
        return ops.apply_resize_start(
            activities, edit.activity_id, edit.new_start, max_passes=passes
        )
    if isinstance(edit, ResizeEnd):
        return ops.apply_resize_end(activities, edit.activity_id, edit.new_end, max_passes=passes)
    if isinstance(edit, SetProgress):
        return ops.apply_set_progress(activities, edit.activity_id, edit.value, max_passes=passes)
    if isinstance(edit, AddDependency):
        return ops.add_dependency(activities, edit.activity_id, edit.dependency, max_passes=passes)
    if isinstance(edit, RemoveDependency):
        return ops.remove_dependency(
            activities, edit.activity_id, edit.dependency, max_passes=passes
        )
    if isinstance(edit, CreateActivity):
        return ops.create_activity(activities, edit.fields, config=config, today=today)
    if isinstance(edit, DeleteActivity):
        return ops.delete_activity(activities, edit.activity_id, max_passes=passes)
    raise TypeError(f"unsupported edit: {edit!r}")


def _parse_edit(item: dict[str, Any], path: str) -> EditCommand:
    op = item.get("op")
    if op == "create_activity":
        fields = item.get("fields")
        if not isinstance(fields, dict):
            raise ValueError(f"{path}.fields must be an object")
        fields = dict(fields)
        if "dependencies" in fields:
            deps = fields["dependencies"]
            if not isinstance(deps, list):
                raise ValueError(f"{path}.fields.dependencies must be a list")
            fields["dependencies"] = [
                _parse_dependency(d, f"{path}.fields.dependencies[{di}]")
                for di, d in enumerate(deps)
            ]
        try:
            ops.check_create_fields(fields)
        except ScheduleValidationError as e:
            raise ValueError(f"{path}.fields: {e.message}") from e
        return CreateActivity(fields=fields)

    activity_id = item.get("activity_id")
    if not isinstance(activity_id, str) or not activity_id:
        raise ValueError(f"{path}.activity_id must be a non-empty string")

    if op == "move":
        return Move(activity_id=activity_id, delta_days=_int(item, "delta_days", path))
    if op == "resize_start":
        return ResizeStart(activity_id=activity_id, new_start=_date(item, "new_start", path))
    if op == "resize_end":
        return ResizeEnd(activity_id=activity_id, new_end=_date(item, "new_end", path))
    if op == "set_progress":
        value = item.get("value")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{path}.value must be a number")
        return SetProgress(activity_id=activity_id, value=value)
    if op == "add_dependency":
        return AddDependency(
            activity_id=activity_id,
            dependency=_parse_dependency(item.get("dependency"), f"{path}.dependency"),
        )
    if op == "remove_dependency":
        return RemoveDependency(
            activity_id=activity_id,
            dependency=_parse_dependency(item.get("dependency"), f"{path}.dependency"),
        )
    if op == "delete_activity":
        return DeleteActivity(activity_id=activity_id)
    raise ValueError(f"{path}.op is not a known edit: {op!r}")


def _parse_dependency(raw: Any, path: str) -> Dependency:
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must be an object")
    pred = raw.get("predecessor_id")
    if not isinstance(pred, str) or not pred:
        raise ValueError(f"{path}.predecessor_id must be a non-empty string")
    dtype = raw.get("type", "FinishToStart")
    if isinstance(dtype, str):
        dtype = DEPENDENCY_TYPE_ALIASES.get(dtype, dtype)
    if dtype not in DEPENDENCY_TYPES:
        raise ValueError(f"{path}.type must be one of {list(DEPENDENCY_TYPES)}")
    lag = raw.get("lag_days", 0)
    if isinstance(lag, bool) or not isinstance(lag, int):
        raise ValueError(f"{path}.lag_days must be an integer")
    return Dependency(predecessor_id=pred, type=dtype, lag_days=lag)


def _int(item: dict[str, Any], key: str, path: str) -> int:
    v = item.get(key)
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{path}.{key} must be an integer")
    return v


def _date(item: dict[str, Any], key: str, path: str) -> date:
    v = item.get(key)
    if isinstance(v, date) and not isinstance(v, datetime):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v)
        except ValueError:
            pass
    raise ValueError(f"{path}.{key} must be an ISO date (YYYY-MM-DD)")
