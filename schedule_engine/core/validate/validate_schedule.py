from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Any, Callable, Iterable, Optional, cast

from schedule_engine.core.errors import ScheduleValidationError
from schedule_engine.core.model import (
    ACTIVITY_STATUSES,
    DEPENDENCY_TYPE_ALIASES,
    DEPENDENCY_TYPES,
    Activity,
    ActivityStatus,
    Dependency,
    DependencyType,
)
from schedule_engine.core.validate.guards import clamp_progress, is_valid_range


def validate_schedule(
    doc: dict[str, Any],
) -> tuple[Optional[list[Activity]], list[ScheduleValidationError]]:
    """Validate a schedule document and build Activities.

    Returns (activities, errors). Activities is None when errors exist.
    Dependencies on unknown ids are legal here; lint reports them.
    """

    file = cast(Optional[str], doc.get("__file__"))
    errors: list[ScheduleValidationError] = []

    def err(code: str, message: str, path: str) -> None:
        errors.append(ScheduleValidationError(code=code, message=message, file=file, path=path))

    schema_version = doc.get("schema_version")
    if not isinstance(schema_version, str) or not schema_version.strip():
        err(
            "E_REQUIRED_FIELD",
            "schema_version is required and must be a non-empty string",
            "schema_version",
        )

    raw_activities = doc.get("activities")
    if not isinstance(raw_activities, list):
        err("E_REQUIRED_FIELD", "activities is required and must be an array", "activities")
        return None, _sorted(errors)

    activities: list[Activity] = []
    seen_ids: set[str] = set()

    for i, raw in enumerate(raw_activities):
        apath = f"activities[{i}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "activity must be an object", apath)
            continue

        before = len(errors)

        aid = raw.get("id")
        if not isinstance(aid, str) or not aid.strip():
            err("E_REQUIRED_FIELD", "id is required and must be a non-empty string", f"{apath}.id")
            continue
        if aid in seen_ids:
            err("E_DUPLICATE_ID", f"duplicate activity id: {aid}", f"{apath}.id")
            continue
        seen_ids.add(aid)

        name = raw.get("name", "")
        if not isinstance(name, str):
            err("E_INVALID_TYPE", "name must be a string", f"{apath}.name")

        start = _parse_date(raw.get("start_date"))
        if start is None:
            err(
                "E_INVALID_DATE",
                "start_date is required and must be an ISO date (YYYY-MM-DD)",
                f"{apath}.start_date",
            )
        end = _parse_date(raw.get("end_date"))
        if end is None:
            err(
                "E_INVALID_DATE",
                "end_date is required and must be an ISO date (YYYY-MM-DD)",
                f"{apath}.end_date",
            )
        if start is not None and end is not None and not is_valid_range(start, end):
            err(
                "E_INVALID_RANGE",
                f"end_date {end.isoformat()} precedes start_date {start.isoformat()}",
                f"{apath}.end_date",
            )

        # Out-of-range progress is clamped, never rejected.
        progress = raw.get("progress", 0)
        if isinstance(progress, bool) or not isinstance(progress, (int, float)):
            err("E_INVALID_TYPE", "progress must be a number", f"{apath}.progress")
            progress = 0

        status = raw.get("status", "OnTrack")
        if not isinstance(status, str) or status not in ACTIVITY_STATUSES:
            err(
                "E_INVALID_ENUM",
                f"status must be one of {list(ACTIVITY_STATUSES)}",
                f"{apath}.status",
            )

        is_critical = raw.get("is_critical", False)
        if not isinstance(is_critical, bool):
            err("E_INVALID_TYPE", "is_critical must be a boolean", f"{apath}.is_critical")

        external_link_id = raw.get("external_link_id")
        if external_link_id is not None and not isinstance(external_link_id, str):
            err(
                "E_INVALID_TYPE",
                "external_link_id must be a string",
                f"{apath}.external_link_id",
            )

        dependencies = _validate_dependencies(
            raw.get("dependencies", []), f"{apath}.dependencies", err
        )

        if len(errors) > before:
            continue

        activities.append(
            Activity(
                id=aid,
                name=cast(str, name),
                start_date=cast(date, start),
                end_date=cast(date, end),
                progress=clamp_progress(progress),
                status=cast(ActivityStatus, status),
                is_critical=cast(bool, is_critical),
                dependencies=dependencies,
                external_link_id=cast(Optional[str], external_link_id),
            )
        )

    if errors:
        return None, _sorted(errors)
    return activities, []


def _validate_dependencies(
    raw_deps: Any, path: str, err: Callable[[str, str, str], None]
) -> list[Dependency]:
    if raw_deps is None:
        return []
    if not isinstance(raw_deps, list):
        err("E_INVALID_TYPE", "dependencies must be an array", path)
        return []

    out: list[Dependency] = []
    for di, raw in enumerate(raw_deps):
        dpath = f"{path}[{di}]"
        if not isinstance(raw, dict):
            err("E_INVALID_TYPE", "dependency must be an object", dpath)
            continue

        pred = raw.get("predecessor_id")
        if not isinstance(pred, str) or not pred.strip():
            err(
                "E_REQUIRED_FIELD",
                "predecessor_id is required and must be a non-empty string",
                f"{dpath}.predecessor_id",
            )
            continue

        dtype = raw.get("type", "FinishToStart")
        if isinstance(dtype, str):
            dtype = DEPENDENCY_TYPE_ALIASES.get(dtype, dtype)
        if dtype not in DEPENDENCY_TYPES:
            err(
                "E_INVALID_ENUM",
                f"type must be one of {list(DEPENDENCY_TYPES)} or {sorted(DEPENDENCY_TYPE_ALIASES)}",
                f"{dpath}.type",
            )
            continue

        lag = raw.get("lag_days", 0)
        if isinstance(lag, bool) or not isinstance(lag, int):
            err("E_INVALID_TYPE", "lag_days must be an integer", f"{dpath}.lag_days")
            continue

        out.append(
            Dependency(predecessor_id=pred, type=cast(DependencyType, dtype), lag_days=lag)
        )
    return out


def summarize_schedule(activities: list[Activity]) -> str:
    stats = schedule_stats(activities)
    parts = [f"{s}={stats['status_counts'][s]}" for s in ACTIVITY_STATUSES]
    span = (
        f"{stats['start']} .. {stats['end']}" if stats["start"] is not None else "(empty)"
    )
    return (
        f"OK: {stats['activity_count']} activities ("
        + ", ".join(parts)
        + f")\nCritical: {stats['critical_count']}"
        + f"\nSpan: {span}"
    )


def schedule_stats(activities: list[Activity]) -> dict[str, Any]:
    counts = Counter([a.status for a in activities])
    start = min((a.start_date for a in activities), default=None)
    end = max((a.end_date for a in activities), default=None)
    average = (
        round(sum(a.progress for a in activities) / len(activities), 1) if activities else 0.0
    )
    return {
        "activity_count": len(activities),
        "status_counts": {s: int(counts.get(s, 0)) for s in ACTIVITY_STATUSES},
        "critical_count": sum(1 for a in activities if a.is_critical),
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "average_progress": average,
    }


def filter_activities(
    activities: Iterable[Activity], query: Optional[str] = None
) -> list[Activity]:
    """Activities whose name contains `query` (case-insensitive), ordered by start date.

    A blank query keeps every activity. Ties keep collection order.
    """
    needle = (query or "").strip().casefold()
    matched = [a for a in activities if needle in a.name.casefold()]
    return sorted(matched, key=lambda a: a.start_date)


def _parse_date(v: Any) -> Optional[date]:
    # YAML loads unquoted ISO dates as date objects; JSON always gives strings.
    if isinstance(v, datetime):
        return None
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        try:
            return date.fromisoformat(v.strip())
        except ValueError:
            return None
    return None


def _sorted(errors: Iterable[ScheduleValidationError]) -> list[ScheduleValidationError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
