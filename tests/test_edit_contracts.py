from datetime import date, datetime

import pytest

from schedule_engine.core.config.engine_config import EngineConfig
from schedule_engine.core.edit.contracts import (
    AddDependency,
    CreateActivity,
    DeleteActivity,
    EditScript,
    Move,
    RemoveDependency,
    ResizeEnd,
    ResizeStart,
    SetProgress,
    apply_edit_script,
    parse_edit_script,
)
from schedule_engine.core.model import Activity, Dependency


def d(day: int) -> date:
    return date(2024, 3, day)


def test_parse_edit_script_happy():
    script = parse_edit_script(
        {
            "edits": [
                {"op": "move", "activity_id": "A", "delta_days": -2},
                {"op": "resize_start", "activity_id": "A", "new_start": "2024-03-02"},
                {"op": "resize_end", "activity_id": "A", "new_end": d(9)},
                {"op": "set_progress", "activity_id": "A", "value": 37.5},
                {
                    "op": "add_dependency",
                    "activity_id": "B",
                    "dependency": {"predecessor_id": "A", "type": "SS", "lag_days": 1},
                },
                {
                    "op": "remove_dependency",
                    "activity_id": "B",
                    "dependency": {"predecessor_id": "A"},
                },
                {"op": "create_activity", "fields": {"name": "New"}},
                {"op": "delete_activity", "activity_id": "B"},
            ],
            "notes": ["n"],
        }
    )
    assert script.edits == [
        Move("A", -2),
        ResizeStart("A", d(2)),
        ResizeEnd("A", d(9)),
        SetProgress("A", 37.5),
        AddDependency("B", Dependency("A", "StartToStart", 1)),
        RemoveDependency("B", Dependency("A", "FinishToStart", 0)),
        CreateActivity({"name": "New"}),
        DeleteActivity("B"),
    ]
    assert script.notes == ["n"]


@pytest.mark.parametrize(
    "obj",
    [
        [],
        {"edits": {}},
        {"edits": [], "notes": [1]},
        {"edits": ["move"]},
        {"edits": [{"op": "teleport", "activity_id": "A"}]},
        {"edits": [{"op": "move", "delta_days": 1}]},
        {"edits": [{"op": "move", "activity_id": "A", "delta_days": "1"}]},
        {"edits": [{"op": "resize_end", "activity_id": "A", "new_end": "soon"}]},
        {"edits": [{"op": "set_progress", "activity_id": "A", "value": True}]},
        {"edits": [{"op": "add_dependency", "activity_id": "A", "dependency": {"type": "FS"}}]},
        {
            "edits": [
                {
                    "op": "add_dependency",
                    "activity_id": "A",
                    "dependency": {"predecessor_id": "B", "type": "XX"},
                }
            ]
        },
        {"edits": [{"op": "create_activity", "fields": "x"}]},
        {"edits": [{"op": "create_activity", "fields": {"progress": "half"}}]},
        {"edits": [{"op": "create_activity", "fields": {"is_critical": "false"}}]},
        {"edits": [{"op": "create_activity", "fields": {"start_date": datetime(2024, 3, 1, 8)}}]},
        {"edits": [{"op": "create_activity", "fields": {"colour": "red"}}]},
        {"edits": [{"op": "resize_start", "activity_id": "A", "new_start": datetime(2024, 3, 1)}]},
    ],
)
def test_parse_edit_script_rejects_malformed(obj):
    with pytest.raises(ValueError):
        parse_edit_script(obj)


def test_apply_edit_script_reports_unchanged_edits():
    activities = [
        Activity(id="A", name="A", start_date=d(1), end_date=d(4)),
        Activity(
            id="B",
            name="B",
            start_date=d(5),
            end_date=d(6),
            dependencies=[Dependency("A", "FinishToStart", 0)],
        ),
    ]
    script = EditScript(
        edits=[
            Move("A", 2),
            ResizeEnd("B", d(1)),
            SetProgress("B", 250),
            CreateActivity({"id": "C", "dependencies": [Dependency("B", "FinishToFinish", 0)]}),
        ],
        notes=[],
    )

    res = apply_edit_script(
        activities, script, config=EngineConfig(default_duration_days=2), today=d(1)
    )
    assert res.applied == [0, 2, 3]
    assert res.rejected == [1]

    out = {a.id: a for a in res.activities}
    assert (out["A"].start_date, out["A"].end_date) == (d(3), d(6))
    assert (out["B"].start_date, out["B"].end_date) == (d(7), d(8))
    assert out["B"].progress == 100
    assert (out["C"].start_date, out["C"].end_date) == (d(1), d(8))
