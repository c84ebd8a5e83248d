from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Callable, Iterable, Literal

from schedule_engine.core.model import Activity


# Bounded relaxation: each pass pushes successors forward from their
# predecessors' dates; the pass cap guarantees termination on cyclic graphs.
MAX_PASSES = 10

ONE_DAY = timedelta(days=1)

Endpoint = Literal["start", "end"]

# dependency type -> (constrained endpoint of the successor, candidate from predecessor + lag)
_CANDIDATES: dict[str, tuple[Endpoint, Callable[[Activity, timedelta], date]]] = {
    "FinishToStart": ("start", lambda pred, lag: pred.end_date + lag + ONE_DAY),
    "StartToStart": ("start", lambda pred, lag: pred.start_date + lag),
    "FinishToFinish": ("end", lambda pred, lag: pred.end_date + lag),
    "StartToFinish": ("end", lambda pred, lag: pred.start_date + lag),
}


@dataclass(frozen=True)
class ResolveResult:
    activities: list[Activity]
    passes: int
    converged: bool


def resolve(activities: Iterable[Activity], *, max_passes: int = MAX_PASSES) -> list[Activity]:
    """Return a new activity list whose dates satisfy every dependency (best effort).

    Only start_date/end_date ever change. Never raises for cyclic, dangling or
    unsatisfiable dependency sets.
    """
    return resolve_with_report(activities, max_passes=max_passes).activities


def resolve_with_report(
    activities: Iterable[Activity], *, max_passes: int = MAX_PASSES
) -> ResolveResult:
    """Run relaxation passes until a pass changes nothing or the cap is hit.

    Every activity in a pass reads its predecessors' dates as they were when
    the pass began, so a push travels one dependency level per pass.
    `converged` is True only when a pass observed no change (fixed point).
    """

    current = list(activities)
    passes = 0

    while passes < max_passes:
        passes += 1
        current, changed = _relax_pass(current)
        if not changed:
            return ResolveResult(activities=current, passes=passes, converged=True)

    return ResolveResult(activities=current, passes=passes, converged=False)


def _relax_pass(activities: list[Activity]) -> tuple[list[Activity], bool]:
    # Every activity reads the dates this pass started from.
    by_id: dict[str, Activity] = {}
    for a in activities:
        # First occurrence wins for duplicate ids.
        by_id.setdefault(a.id, a)

    out = [_relax_activity(a, by_id) for a in activities]
    changed = any(relaxed is not a for relaxed, a in zip(out, activities))
    return out, changed


def _relax_activity(activity: Activity, by_id: dict[str, Activity]) -> Activity:
    start = activity.start_date
    end = activity.end_date
    start_pushed = False
    end_pushed = False

    for dep in activity.dependencies:
        pred = by_id.get(dep.predecessor_id)
        rule = _CANDIDATES.get(dep.type)
        if pred is None or rule is None:
            continue

        endpoint, candidate_of = rule
        try:
            candidate = candidate_of(pred, timedelta(days=dep.lag_days))
        except OverflowError:
            # Lag pushes past the calendar; unsatisfiable, so skip it.
            continue
        if endpoint == "start":
            if candidate > start:
                start = candidate
                start_pushed = True
        elif candidate > end:
            end = candidate
            end_pushed = True

    if not start_pushed and not end_pushed:
        return activity

    duration = max(activity.end_date - activity.start_date, timedelta(0))
    try:
        if start_pushed and not end_pushed:
            end = start + duration
        elif end_pushed and not start_pushed:
            if end < start:
                start = end - duration
        elif end < start:
            end = start + ONE_DAY
    except OverflowError:
        return activity

    if start == activity.start_date and end == activity.end_date:
        return activity
    return replace(activity, start_date=start, end_date=end)
