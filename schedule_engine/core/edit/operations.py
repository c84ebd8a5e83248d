from __future__ import annotations

import time
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional, Union

from schedule_engine.core.config.engine_config import DEFAULT_CONFIG, EngineConfig
from schedule_engine.core.errors import ScheduleValidationError
from schedule_engine.core.model import ACTIVITY_STATUSES, Activity, Dependency
from schedule_engine.core.resolve.resolve_schedule import MAX_PASSES, resolve
from schedule_engine.core.validate.guards import (
    can_resize_end,
    can_resize_start,
    clamp_progress,
    is_valid_range,
)


# Every mutating operation below returns a brand-new list and re-resolves the
# whole collection. Rejected or unknown-id edits return the input unchanged.

CREATE_FIELDS: frozenset[str] = frozenset(
    {
        "id",
        "name",
        "start_date",
        "end_date",
        "progress",
        "status",
        "is_critical",
        "dependencies",
        "external_link_id",
    }
)


def apply_move(
    activities: Iterable[Activity],
    activity_id: str,
    delta_days: int,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    def _move(a: Activity) -> Optional[Activity]:
        try:
            delta = timedelta(days=delta_days)
            return replace(a, start_date=a.start_date + delta, end_date=a.end_date + delta)
        except OverflowError:
            # would leave the calendar; rejected like an invalid resize
            return None

    return _edit_one(activities, activity_id, _move, max_passes=max_passes)


def apply_resize_start(
    activities: Iterable[Activity],
    activity_id: str,
    new_start: date,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    def _resize(a: Activity) -> Optional[Activity]:
        if not can_resize_start(a, new_start):
            return None
        return replace(a, start_date=new_start)

    return _edit_one(activities, activity_id, _resize, max_passes=max_passes)


def apply_resize_end(
    activities: Iterable[Activity],
    activity_id: str,
    new_end: date,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    def _resize(a: Activity) -> Optional[Activity]:
        if not can_resize_end(a, new_end):
            return None
        return replace(a, end_date=new_end)

    return _edit_one(activities, activity_id, _resize, max_passes=max_passes)


def apply_set_progress(
    activities: Iterable[Activity],
    activity_id: str,
    raw_value: Union[int, float],
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    progress = clamp_progress(raw_value)
    return _edit_one(
        activities,
        activity_id,
        lambda a: replace(a, progress=progress),
        max_passes=max_passes,
    )


def add_dependency(
    activities: Iterable[Activity],
    activity_id: str,
    dependency: Dependency,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    """Append a dependency; the next resolution pass enforces it.

    An identical record already in the list is not added twice.
    """

    def _add(a: Activity) -> Optional[Activity]:
        if dependency in a.dependencies:
            return None
        return replace(a, dependencies=[*a.dependencies, dependency])

    return _edit_one(activities, activity_id, _add, max_passes=max_passes)


def remove_dependency(
    activities: Iterable[Activity],
    activity_id: str,
    dependency: Dependency,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    """Drop every record equal to `dependency`. Dates are never pulled back earlier."""

    def _remove(a: Activity) -> Optional[Activity]:
        if dependency not in a.dependencies:
            return None
        return replace(a, dependencies=[d for d in a.dependencies if d != dependency])

    return _edit_one(activities, activity_id, _remove, max_passes=max_passes)


def create_activity(
    activities: Iterable[Activity],
    initial_fields: dict[str, Any],
    *,
    config: EngineConfig = DEFAULT_CONFIG,
    today: Optional[date] = None,
) -> list[Activity]:
    """Append a new activity built from `initial_fields` and resolve.

    The new activity is always the last element of the returned list.
    Missing fields fall back to config defaults: start today, end
    `default_duration_days` later, progress 0, `default_status`.
    """

    current = list(activities)
    check_create_fields(initial_fields)

    start = _as_date(initial_fields.get("start_date"), "start_date") or today or date.today()
    end = _as_date(initial_fields.get("end_date"), "end_date") or start + timedelta(
        days=config.default_duration_days
    )
    if not is_valid_range(start, end):
        raise ScheduleValidationError(
            code="E_INVALID_RANGE",
            message=f"end_date {end.isoformat()} precedes start_date {start.isoformat()}",
            path="activity.end_date",
        )

    status = initial_fields.get("status") or config.default_status
    if status not in ACTIVITY_STATUSES:
        raise ScheduleValidationError(
            code="E_INVALID_ENUM",
            message=f"status must be one of {list(ACTIVITY_STATUSES)}",
            path="activity.status",
        )

    existing = {a.id for a in current}
    proposed = initial_fields.get("id") or f"task-{int(time.time() * 1000)}"
    activity = Activity(
        id=allocate_unique_id(existing, proposed),
        name=initial_fields.get("name") or "",
        start_date=start,
        end_date=end,
        progress=clamp_progress(initial_fields.get("progress") or 0),
        status=status,
        is_critical=initial_fields.get("is_critical") or False,
        dependencies=list(initial_fields.get("dependencies") or []),
        external_link_id=initial_fields.get("external_link_id"),
    )
    return resolve([*current, activity], max_passes=config.max_passes)


def delete_activity(
    activities: Iterable[Activity],
    activity_id: str,
    *,
    max_passes: int = MAX_PASSES,
) -> list[Activity]:
    """Remove an activity. Dependents keep their (now dangling) dependency records."""
    current = list(activities)
    kept = [a for a in current if a.id != activity_id]
    if len(kept) == len(current):
        return current
    return resolve(kept, max_passes=max_passes)


def allocate_unique_id(existing: set[str], proposed: str) -> str:
    if proposed not in existing:
        return proposed
    for suf in _suffixes():
        candidate = f"{proposed}-{suf}"
        if candidate not in existing:
            return candidate
    raise RuntimeError(f"Unable to allocate unique id for {proposed}")


def find_activity(activities: Iterable[Activity], activity_id: str) -> Optional[Activity]:
    for a in activities:
        if a.id == activity_id:
            return a
    return None


def _edit_one(
    activities: Iterable[Activity],
    activity_id: str,
    mutate: Callable[[Activity], Optional[Activity]],
    *,
    max_passes: int,
) -> list[Activity]:
    current = list(activities)
    for i, a in enumerate(current):
        if a.id != activity_id:
            continue
        mutated = mutate(a)
        if mutated is None:
            return current
        return resolve([*current[:i], mutated, *current[i + 1 :]], max_passes=max_passes)
    return current


# field -> (accepts a non-None value, expected type for the error message)
_FIELD_TYPES: dict[str, tuple[Callable[[Any], bool], str]] = {
    "id": (lambda v: isinstance(v, str) and bool(v.strip()), "a non-empty string"),
    "name": (lambda v: isinstance(v, str), "a string"),
    "progress": (
        lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
        "a number",
    ),
    "status": (lambda v: isinstance(v, str), "a string"),
    "is_critical": (lambda v: isinstance(v, bool), "a boolean"),
    "dependencies": (
        lambda v: isinstance(v, (list, tuple)) and all(isinstance(d, Dependency) for d in v),
        "a list of Dependency records",
    ),
    "external_link_id": (lambda v: isinstance(v, str), "a string"),
}


def check_create_fields(fields: dict[str, Any]) -> None:
    """Raise ScheduleValidationError for the first unknown or mistyped field."""
    unknown = sorted(set(fields) - CREATE_FIELDS)
    if unknown:
        raise ScheduleValidationError(
            code="E_UNKNOWN_FIELD",
            message=f"unknown activity fields: {', '.join(unknown)}",
            path="activity",
        )

    for name in ("start_date", "end_date"):
        _as_date(fields.get(name), name)

    for name in sorted(fields):
        value = fields[name]
        rule = _FIELD_TYPES.get(name)
        if value is None or rule is None:
            continue
        accepts, expected = rule
        if not accepts(value):
            raise ScheduleValidationError(
                code="E_INVALID_TYPE",
                message=f"{name} must be {expected}",
                path=f"activity.{name}",
            )


def _as_date(value: Any, field_name: str) -> Optional[date]:
    if value is None:
        return None
    # datetime is a date subclass but does not compare with plain dates
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise ScheduleValidationError(
        code="E_INVALID_DATE",
        message=f"{field_name} must be an ISO date (YYYY-MM-DD)",
        path=f"activity.{field_name}",
    )


def _suffixes():
    letters = [chr(c) for c in range(ord("A"), ord("Z") + 1)]
    for a in letters:
        yield a
    for a in letters:
        for b in letters:
            yield a + b
