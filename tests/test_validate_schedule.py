from datetime import date
from pathlib import Path

from schedule_engine.core.io.load_schedule import load_schedule
from schedule_engine.core.model import Activity, Dependency
from schedule_engine.core.validate.validate_schedule import (
    filter_activities,
    schedule_stats,
    summarize_schedule,
    validate_schedule,
)

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _doc(*activities, schema_version="0.1.0"):
    return {"schema_version": schema_version, "activities": list(activities)}


def test_validate_happy_path():
    activities, errors = validate_schedule(load_schedule(str(EXAMPLES / "basic-schedule.yaml")))
    assert errors == []
    assert [a.id for a in activities] == ["A-001", "A-002", "A-003", "A-004", "A-005"]
    a3 = activities[2]
    assert a3.start_date == date(2024, 3, 13)
    assert a3.external_link_id == "BOQ-0042"
    assert a3.dependencies == [Dependency("A-002", "FinishToStart", 0)]
    assert activities[4].progress == 0
    assert activities[4].is_critical is False


def test_validate_short_dependency_codes():
    activities, errors = validate_schedule(
        load_schedule(str(EXAMPLES / "unresolved-schedule.yaml"))
    )
    assert errors == []
    assert activities[1].dependencies == [Dependency("A-001", "FinishToStart", 2)]
    assert activities[2].dependencies[0].lag_days == 0


def test_validate_invalid_range():
    activities, errors = validate_schedule(load_schedule(str(EXAMPLES / "invalid-range.yaml")))
    assert activities is None
    assert [e.code for e in errors] == ["E_INVALID_RANGE"]
    assert errors[0].path == "activities[0].end_date"


def test_validate_collects_all_bad_fields():
    activities, errors = validate_schedule(load_schedule(str(EXAMPLES / "invalid-bad-type.yaml")))
    assert activities is None
    codes = {e.code for e in errors}
    assert {"E_INVALID_ENUM", "E_DUPLICATE_ID"} <= codes
    paths = {e.path for e in errors}
    assert "activities[0].status" in paths
    assert "activities[0].dependencies[0].type" in paths
    assert "activities[1].id" in paths


def test_validate_missing_activities():
    activities, errors = validate_schedule({"schema_version": "0.1.0"})
    assert activities is None
    assert [(e.code, e.path) for e in errors] == [("E_REQUIRED_FIELD", "activities")]


def test_validate_missing_schema_version():
    _, errors = validate_schedule(_doc(schema_version=""))
    assert any(e.path == "schema_version" for e in errors)


def test_validate_accepts_native_dates_and_clamps_progress():
    activities, errors = validate_schedule(
        _doc(
            {
                "id": "X",
                "name": "Pour",
                "start_date": date(2024, 1, 2),
                "end_date": "2024-01-04",
                "progress": 130,
            }
        )
    )
    assert errors == []
    assert activities[0].progress == 100
    assert activities[0].status == "OnTrack"


def test_validate_rejects_bad_dates_and_lag():
    _, errors = validate_schedule(
        _doc(
            {
                "id": "X",
                "start_date": "2024-02-30",
                "end_date": 5,
                "dependencies": [{"predecessor_id": "Y", "lag_days": 1.5}],
            }
        )
    )
    got = {(e.code, e.path) for e in errors}
    assert ("E_INVALID_DATE", "activities[0].start_date") in got
    assert ("E_INVALID_DATE", "activities[0].end_date") in got
    assert ("E_INVALID_TYPE", "activities[0].dependencies[0].lag_days") in got


def test_dangling_predecessor_is_not_a_validation_error():
    activities, errors = validate_schedule(load_schedule(str(EXAMPLES / "dangling-schedule.yaml")))
    assert errors == []
    assert activities[0].dependencies[0].predecessor_id == "A-001"


def test_errors_are_sorted_and_render_location():
    _, errors = validate_schedule(_doc({"id": ""}, "oops", schema_version=None))
    assert errors == sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    assert str(errors[0]).startswith("activities[0].id: E_REQUIRED_FIELD")


def test_summary_and_stats():
    activities, _ = validate_schedule(load_schedule(str(EXAMPLES / "basic-schedule.yaml")))
    stats = schedule_stats(activities)
    assert stats["activity_count"] == 5
    assert stats["status_counts"] == {
        "NotStarted": 3,
        "OnTrack": 1,
        "Delayed": 0,
        "Completed": 1,
    }
    assert stats["critical_count"] == 3
    assert (stats["start"], stats["end"]) == ("2024-03-01", "2024-03-22")
    assert stats["average_progress"] == 32.0

    text = summarize_schedule(activities)
    assert text.startswith("OK: 5 activities")
    assert "Critical: 3" in text


def test_stats_empty():
    stats = schedule_stats([])
    assert stats["activity_count"] == 0
    assert stats["start"] is None
    assert "(empty)" in summarize_schedule([])


def _named(aid: str, name: str, day: int) -> Activity:
    return Activity(id=aid, name=name, start_date=date(2024, 3, day), end_date=date(2024, 3, day))


def test_filter_activities_matches_name_case_insensitively_and_sorts_by_start():
    activities = [
        _named("A-3", "Pour SLAB", 9),
        _named("A-1", "Excavation", 2),
        _named("A-2", "Slab formwork", 5),
        _named("A-4", "Roof slab", 5),
    ]

    assert [a.id for a in filter_activities(activities, "slab")] == ["A-2", "A-4", "A-3"]
    assert [a.id for a in filter_activities(activities, "  FORM ")] == ["A-2"]
    assert filter_activities(activities, "tiling") == []


def test_filter_activities_without_query_only_sorts():
    activities = [_named("B", "Second", 8), _named("A", "First", 1)]
    assert [a.id for a in filter_activities(activities)] == ["A", "B"]
    assert [a.id for a in filter_activities(activities, "")] == ["A", "B"]
    assert [a.id for a in activities] == ["B", "A"]
