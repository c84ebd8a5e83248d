from pathlib import Path

import yaml
from typer.testing import CliRunner

from schedule_engine.cli import app

runner = CliRunner()

EXAMPLES = Path(__file__).resolve().parent.parent / "examples"


def _load_yaml(p: Path) -> dict:
    return yaml.safe_load(p.read_text(encoding="utf-8"))


def _dates(doc: dict) -> dict:
    return {a["id"]: (a["start_date"], a["end_date"]) for a in doc["activities"]}


def test_resolve_writes_consistent_schedule(tmp_path: Path):
    out = tmp_path / "resolved.yaml"
    r = runner.invoke(app, ["resolve", str(EXAMPLES / "unresolved-schedule.yaml"), "--out", str(out)])
    assert r.exit_code == 0, r.stdout + r.stderr
    assert "passes=3, moved=2" in r.stdout

    got = _load_yaml(out)
    assert got["schema_version"] == "0.1.0"
    assert _dates(got) == {
        "A-001": ("2024-03-01", "2024-03-05"),
        "A-002": ("2024-03-08", "2024-03-11"),
        "A-003": ("2024-03-12", "2024-03-13"),
    }
    # short codes are written back in long form
    assert got["activities"][1]["dependencies"][0]["type"] == "FinishToStart"


def test_resolve_is_deterministic_and_idempotent(tmp_path: Path):
    out1 = tmp_path / "r1.yaml"
    out2 = tmp_path / "r2.yaml"
    r1 = runner.invoke(app, ["resolve", str(EXAMPLES / "unresolved-schedule.yaml"), "--out", str(out1)])
    r2 = runner.invoke(app, ["resolve", str(out1), "--out", str(out2)])
    assert r1.exit_code == 0
    assert r2.exit_code == 0
    assert "moved=0" in r2.stdout
    assert out1.read_text(encoding="utf-8") == out2.read_text(encoding="utf-8")


def test_resolve_cycle_warns_but_succeeds(tmp_path: Path):
    out = tmp_path / "resolved.json"
    r = runner.invoke(app, ["resolve", str(EXAMPLES / "cyclic-schedule.yaml"), "--out", str(out)])
    assert r.exit_code == 0
    assert "passes=10" in r.stdout
    assert "WARN: no fixed point" in r.stderr
    assert out.exists()


def test_resolve_respects_config_pass_cap(tmp_path: Path):
    out = tmp_path / "resolved.yaml"
    r = runner.invoke(
        app,
        [
            "resolve",
            str(EXAMPLES / "cyclic-schedule.yaml"),
            "--out",
            str(out),
            "--config",
            str(EXAMPLES / "engine-config.yaml"),
        ],
    )
    assert r.exit_code == 0
    assert "passes=3" in r.stdout


def test_resolve_invalid_input(tmp_path: Path):
    out = tmp_path / "resolved.yaml"
    r = runner.invoke(app, ["resolve", str(EXAMPLES / "invalid-range.yaml"), "--out", str(out)])
    assert r.exit_code == 2
    assert not out.exists()
