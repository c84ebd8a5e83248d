from pathlib import Path

from typer.testing import CliRunner

from schedule_engine.cli import app

runner = CliRunner()

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def test_show_lists_activities():
    r = runner.invoke(
        app, ["show", str(EXAMPLES / "basic-schedule.yaml")], env={"COLUMNS": "200"}
    )
    assert r.exit_code == 0, r.stdout
    for aid in ("A-001", "A-002", "A-003", "A-004", "A-005"):
        assert aid in r.stdout


def test_show_invalid_file():
    r = runner.invoke(app, ["show", str(EXAMPLES / "invalid-range.yaml")])
    assert r.exit_code == 2


def test_show_search_filters_by_name():
    r = runner.invoke(
        app,
        ["show", str(EXAMPLES / "basic-schedule.yaml"), "--search", "FORM"],
        env={"COLUMNS": "200"},
    )
    assert r.exit_code == 0, r.stdout
    assert "A-004" in r.stdout
    # A-003 still appears in the "Depends on" column of A-004
    for aid in ("A-001", "A-002", "A-005"):
        assert aid not in r.stdout
    assert "1 of 5 activities" in r.stdout


def test_show_orders_rows_by_start_date(tmp_path: Path):
    doc = tmp_path / "schedule.yaml"
    doc.write_text(
        'schema_version: "0.1.0"\n'
        "activities:\n"
        "  - {id: LATE, name: Roofing, start_date: '2024-05-01', end_date: '2024-05-03'}\n"
        "  - {id: EARLY, name: Setting out, start_date: '2024-04-01', end_date: '2024-04-02'}\n",
        encoding="utf-8",
    )
    r = runner.invoke(app, ["show", str(doc)], env={"COLUMNS": "200"})
    assert r.exit_code == 0, r.stdout
    assert r.stdout.index("EARLY") < r.stdout.index("LATE")
