from __future__ import annotations

from datetime import timedelta
from typing import Optional

from schedule_engine.core.errors import ScheduleValidationError
from schedule_engine.core.model import Activity, Dependency
from schedule_engine.core.resolve.resolve_schedule import MAX_PASSES, ONE_DAY, resolve


# Schedule lint rules. The resolver tolerates all of these silently; lint is
# where they become visible:
# - L_DANGLING_PREDECESSOR: dependency references an id not in the schedule
# - L_SELF_DEPENDENCY: activity lists itself as a predecessor
# - L_CYCLE_DETECTED: dependency cycle exists
# - L_UNRESOLVED_CONSTRAINT: a dependency is still violated after resolution


def lint_schedule(
    activities: list[Activity],
    *,
    file: Optional[str] = None,
    max_passes: int = MAX_PASSES,
) -> list[ScheduleValidationError]:
    """Lint a validated activity list.

    Lint never changes the schedule; it resolves a copy to check whether the
    relaxation was able to satisfy every constraint.
    """

    index_of: dict[str, int] = {}
    for i, a in enumerate(activities):
        index_of.setdefault(a.id, i)

    errors: list[ScheduleValidationError] = []

    for i, a in enumerate(activities):
        for di, dep in enumerate(a.dependencies):
            path = f"activities[{i}].dependencies[{di}]"
            if dep.predecessor_id == a.id:
                errors.append(
                    ScheduleValidationError(
                        code="L_SELF_DEPENDENCY",
                        message=f"activity {a.id} depends on itself",
                        file=file,
                        path=path,
                    )
                )
            elif dep.predecessor_id not in index_of:
                errors.append(
                    ScheduleValidationError(
                        code="L_DANGLING_PREDECESSOR",
                        message=f"predecessor_id references unknown id: {dep.predecessor_id}",
                        file=file,
                        path=path,
                    )
                )

    id_to_preds: dict[str, list[str]] = {}
    for a in activities:
        id_to_preds.setdefault(
            a.id, [d.predecessor_id for d in a.dependencies if d.predecessor_id != a.id]
        )

    for aid, msg in detect_cycles(id_to_preds):
        errors.append(
            ScheduleValidationError(
                code="L_CYCLE_DETECTED",
                message=msg,
                file=file,
                path=f"activities[{index_of.get(aid, 0)}].dependencies",
            )
        )

    resolved = resolve(activities, max_passes=max_passes)
    by_id: dict[str, Activity] = {}
    for a in resolved:
        by_id.setdefault(a.id, a)
    for i, a in enumerate(resolved):
        for di, dep in enumerate(a.dependencies):
            pred = by_id.get(dep.predecessor_id)
            if pred is None or is_satisfied(a, pred, dep):
                continue
            errors.append(
                ScheduleValidationError(
                    code="L_UNRESOLVED_CONSTRAINT",
                    message=(
                        f"{dep.type} from {dep.predecessor_id} (lag {dep.lag_days}) "
                        f"still violated after {max_passes} passes"
                    ),
                    file=file,
                    path=f"activities[{i}].dependencies[{di}]",
                )
            )

    return _sorted(errors)


def is_satisfied(activity: Activity, pred: Activity, dep: Dependency) -> bool:
    try:
        lag = timedelta(days=dep.lag_days)
        if dep.type == "FinishToStart":
            return activity.start_date >= pred.end_date + lag + ONE_DAY
        if dep.type == "StartToStart":
            return activity.start_date >= pred.start_date + lag
        if dep.type == "FinishToFinish":
            return activity.end_date >= pred.end_date + lag
        if dep.type == "StartToFinish":
            return activity.end_date >= pred.start_date + lag
    except OverflowError:
        # bound lies outside the calendar: below it always holds, above it never does
        return dep.lag_days < 0
    return True


def detect_cycles(id_to_preds: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {aid: WHITE for aid in id_to_preds.keys()}
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    for root in list(state.keys()):
        if state[root] != WHITE:
            continue

        # explicit stack so long chains do not hit the recursion limit
        path: list[str] = [root]
        position: dict[str, int] = {root: 0}
        pending = [iter(id_to_preds.get(root, []))]
        state[root] = GRAY

        while pending:
            u = path[-1]
            v = next(pending[-1], None)
            if v is None:
                pending.pop()
                path.pop()
                del position[u]
                state[u] = BLACK
                continue
            if v not in state:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[position[v] :] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                position[v] = len(path)
                path.append(v)
                pending.append(iter(id_to_preds.get(v, [])))

    return out


def _sorted(errors: list[ScheduleValidationError]) -> list[ScheduleValidationError]:
    return sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
