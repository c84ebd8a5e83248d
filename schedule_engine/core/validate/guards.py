from __future__ import annotations

import math
from datetime import date
from typing import Union

from schedule_engine.core.model import Activity


PROGRESS_MIN = 0
PROGRESS_MAX = 100


def clamp_progress(raw: Union[int, float]) -> int:
    """Clamp a raw progress reading into [0, 100].

    Pointer-driven callers hand in fractional (or non-finite) values; the
    result is always a whole percentage.
    """
    if math.isnan(raw):
        return PROGRESS_MIN
    bounded = min(PROGRESS_MAX, max(PROGRESS_MIN, raw))
    return int(round(bounded))


def is_valid_range(start: date, end: date) -> bool:
    return end >= start


def can_resize_start(activity: Activity, new_start: date) -> bool:
    return new_start < activity.end_date


def can_resize_end(activity: Activity, new_end: date) -> bool:
    return new_end > activity.start_date
