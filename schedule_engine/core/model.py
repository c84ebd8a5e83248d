from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional


ActivityStatus = Literal["NotStarted", "OnTrack", "Delayed", "Completed"]
DependencyType = Literal["FinishToStart", "StartToStart", "FinishToFinish", "StartToFinish"]

ACTIVITY_STATUSES: tuple[str, ...] = ("NotStarted", "OnTrack", "Delayed", "Completed")
DEPENDENCY_TYPES: tuple[str, ...] = (
    "FinishToStart",
    "StartToStart",
    "FinishToFinish",
    "StartToFinish",
)

# Short codes used by the dashboard's dependency editor.
DEPENDENCY_TYPE_ALIASES: dict[str, str] = {
    "FS": "FinishToStart",
    "SS": "StartToStart",
    "FF": "FinishToFinish",
    "SF": "StartToFinish",
}


@dataclass(frozen=True)
class Dependency:
    predecessor_id: str
    type: DependencyType = "FinishToStart"
    lag_days: int = 0


@dataclass(frozen=True)
class Activity:
    id: str
    name: str
    start_date: date
    end_date: date
    progress: int = 0
    status: ActivityStatus = "OnTrack"
    is_critical: bool = False
    dependencies: list[Dependency] = field(default_factory=list)

    external_link_id: Optional[str] = None

    @property
    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days
