from schedule_engine.core.edit.operations import (
    add_dependency,
    apply_move,
    apply_resize_end,
    apply_resize_start,
    apply_set_progress,
    create_activity,
    delete_activity,
    remove_dependency,
)
from schedule_engine.core.model import Activity, Dependency
from schedule_engine.core.resolve.resolve_schedule import (
    MAX_PASSES,
    ResolveResult,
    resolve,
    resolve_with_report,
)

__all__ = [
    "Activity",
    "Dependency",
    "MAX_PASSES",
    "ResolveResult",
    "add_dependency",
    "apply_move",
    "apply_resize_end",
    "apply_resize_start",
    "apply_set_progress",
    "create_activity",
    "delete_activity",
    "remove_dependency",
    "resolve",
    "resolve_with_report",
]
