from __future__ import annotations

import json
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.table import Table

from schedule_engine.core.config.engine_config import (
    EngineConfig,
    EngineConfigError,
    load_engine_config,
)
from schedule_engine.core.edit.contracts import apply_edit_script, parse_edit_script
from schedule_engine.core.errors import ScheduleError, ScheduleLoadError, ScheduleValidationError
from schedule_engine.core.io.load_schedule import (
    activities_to_document,
    dump_schedule,
    load_schedule,
)
from schedule_engine.core.lint.lint_schedule import lint_schedule
from schedule_engine.core.model import Activity
from schedule_engine.core.resolve.resolve_schedule import resolve_with_report
from schedule_engine.core.validate.validate_schedule import (
    filter_activities,
    schedule_stats,
    summarize_schedule,
    validate_schedule,
)

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def _callback() -> None:
    """Schedule dependency-resolution CLI."""
    return


@app.command("validate")
def validate(
    path: str = typer.Argument(..., help="Path to a schedule file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Validate a schedule document."""
    _check_format(format, "E_VALIDATE_UNKNOWN_FORMAT")

    def _emit_json(
        ok: bool,
        *,
        exit_code: int,
        schema_version: str | None,
        errors: list[ScheduleError],
        summary: dict | None,
    ) -> None:
        payload = {
            "tool": "schedule",
            "command": "validate",
            "schema_version": schema_version,
            "ok": ok,
            "error_count": len(errors),
            "errors": [_to_item(e) for e in errors],
            "summary": summary,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    try:
        doc = load_schedule(path)
    except ScheduleLoadError as e:
        if format == "json":
            _emit_json(False, exit_code=1, schema_version=None, errors=[e], summary=None)
        _print_errors([e])
        raise typer.Exit(code=1)

    activities, errors = validate_schedule(doc)
    if errors:
        if format == "json":
            schema_v = (
                doc.get("schema_version") if isinstance(doc.get("schema_version"), str) else None
            )
            _emit_json(False, exit_code=2, schema_version=schema_v, errors=errors, summary=None)
        _print_errors(errors)
        raise typer.Exit(code=2)

    assert activities is not None

    if format == "text":
        typer.echo(summarize_schedule(activities))
        return

    _emit_json(
        True,
        exit_code=0,
        schema_version=doc["schema_version"],
        errors=[],
        summary=schedule_stats(activities),
    )


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to a schedule file (.yaml/.yml/.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    config_file: str | None = typer.Option(
        None, "--config", help="Optional YAML file with engine settings"
    ),
) -> None:
    """Lint a schedule (dangling predecessors, cycles, unresolved constraints)."""
    _check_format(format, "E_LINT_UNKNOWN_FORMAT")

    def _emit_json(ok: bool, errors: list[ScheduleError], exit_code: int) -> None:
        payload = {
            "tool": "schedule",
            "command": "lint",
            "ok": ok,
            "error_count": len(errors),
            "errors": [_to_item(e) for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=exit_code)

    config = _load_config(config_file)

    try:
        doc = load_schedule(path)
    except ScheduleLoadError as e:
        if format == "json":
            _emit_json(False, [e], 1)
        _print_errors([e])
        raise typer.Exit(code=1)

    activities, validation_errors = validate_schedule(doc)
    errors: list[ScheduleError] = list(validation_errors)
    if activities is not None:
        errors += lint_schedule(activities, file=doc.get("__file__"), max_passes=config.max_passes)

    if format == "text":
        if errors:
            _print_errors(errors)
            raise typer.Exit(code=2)
        typer.echo("OK: lint passed")
        return

    if errors:
        _emit_json(False, errors, 2)
    _emit_json(True, [], 0)


@app.command("resolve")
def resolve_cmd(
    path: str = typer.Argument(..., help="Path to a schedule file (.yaml/.yml/.json)"),
    out: str = typer.Option(..., "--out", help="Path to write the resolved schedule"),
    config_file: str | None = typer.Option(
        None, "--config", help="Optional YAML file with engine settings"
    ),
) -> None:
    """Re-date every activity so its dependencies hold, and write the result."""
    config = _load_config(config_file)
    doc, activities = _load_valid(path)

    report = resolve_with_report(activities, max_passes=config.max_passes)
    _write(out, report.activities, doc)

    moved = sum(1 for a, b in zip(activities, report.activities) if a != b)
    typer.echo(f"OK: wrote {out} (passes={report.passes}, moved={moved})")
    if not report.converged:
        typer.echo(
            f"WARN: no fixed point after {report.passes} passes (dependency cycle?)", err=True
        )


@app.command("apply")
def apply_cmd(
    path: str = typer.Argument(..., help="Path to a schedule file (.yaml/.yml/.json)"),
    edits: str = typer.Option(..., "--edits", help="YAML/JSON edit script to apply in order"),
    out: str = typer.Option(..., "--out", help="Path to write the edited schedule"),
    config_file: str | None = typer.Option(
        None, "--config", help="Optional YAML file with engine settings"
    ),
) -> None:
    """Apply an edit script (move, resize, progress, dependency and activity edits)."""
    config = _load_config(config_file)
    doc, activities = _load_valid(path)

    try:
        with open(edits, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError:
        _print_errors(
            [
                ScheduleLoadError(
                    code="E_EDITS_FILE_NOT_FOUND",
                    message=f"edit script not found: {edits}",
                    file=None,
                    path="edits",
                )
            ]
        )
        raise typer.Exit(code=1)
    except yaml.YAMLError as e:
        _print_errors(
            [ScheduleLoadError(code="E_EDITS_PARSE", message=str(e), file=edits, path="edits")]
        )
        raise typer.Exit(code=1)

    try:
        script = parse_edit_script(raw)
    except ValueError as e:
        _print_errors(
            [
                ScheduleValidationError(
                    code="E_EDITS_INVALID", message=str(e), file=edits, path="edits"
                )
            ]
        )
        raise typer.Exit(code=2)

    try:
        result = apply_edit_script(activities, script, config=config)
    except ScheduleValidationError as e:
        _print_errors([e])
        raise typer.Exit(code=2)

    _write(out, result.activities, doc)
    typer.echo(
        f"OK: wrote {out} (applied={len(result.applied)}, unchanged={len(result.rejected)})"
    )
    for i in result.rejected:
        typer.echo(f"WARN: edits[{i}] left the schedule unchanged", err=True)


@app.command("show")
def show(
    path: str = typer.Argument(..., help="Path to a schedule file (.yaml/.yml/.json)"),
    search: str | None = typer.Option(
        None, "--search", help="Only activities whose name contains this text (any case)"
    ),
) -> None:
    """Print the activity table, ordered by start date."""
    _, loaded = _load_valid(path)
    activities = filter_activities(loaded, search)

    title = f"schedule ({len(activities)} activities)"
    if search:
        title = f"schedule ({len(activities)} of {len(loaded)} activities matching {search!r})"
    table = Table(title=title)
    table.add_column("ID", no_wrap=True)
    table.add_column("Name")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Days", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Status")
    table.add_column("Critical")
    table.add_column("Depends on")
    for a in activities:
        table.add_row(
            a.id,
            a.name,
            a.start_date.isoformat(),
            a.end_date.isoformat(),
            str(a.duration_days),
            f"{a.progress}%",
            a.status,
            "yes" if a.is_critical else "",
            ", ".join(f"{d.predecessor_id} {d.type} {d.lag_days:+d}" for d in a.dependencies),
        )
    Console().print(table)


def _load_valid(path: str) -> tuple[dict[str, Any], list[Activity]]:
    try:
        doc = load_schedule(path)
    except ScheduleLoadError as e:
        _print_errors([e])
        raise typer.Exit(code=1)

    activities, errors = validate_schedule(doc)
    if errors or activities is None:
        _print_errors(errors)
        raise typer.Exit(code=2)
    return doc, activities


def _load_config(config_file: str | None) -> EngineConfig:
    try:
        return load_engine_config(config_file)
    except FileNotFoundError:
        _print_errors(
            [
                ScheduleLoadError(
                    code="E_CONFIG_FILE_NOT_FOUND",
                    message=f"config file not found: {config_file}",
                    file=None,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=1)
    except EngineConfigError as e:
        _print_errors(
            [
                ScheduleValidationError(
                    code="E_CONFIG_INVALID",
                    message=str(e),
                    file=config_file,
                    path="config",
                )
            ]
        )
        raise typer.Exit(code=2)


def _write(out: str, activities: list[Activity], doc: dict[str, Any]) -> None:
    dump_schedule(activities_to_document(activities, doc["schema_version"]), out)


def _check_format(format: str, code: str) -> None:
    if format not in ("text", "json"):
        err = ScheduleValidationError(
            code=code,
            message=f"unknown format: {format} (choose one of: text, json)",
            file=None,
            path="format",
        )
        _print_errors([err])
        raise typer.Exit(code=2)


def _to_item(e: ScheduleError) -> dict:
    if isinstance(e, ScheduleLoadError):
        source = "load"
    elif e.code.startswith("L_"):
        source = "lint"
    else:
        source = "validate"
    return {
        "code": e.code,
        "message": e.message,
        "file": e.file,
        "path": e.path,
        "severity": "error",
        "source": source,
    }


def _print_errors(errors: list[ScheduleError]) -> None:
    errors_sorted = sorted(errors, key=lambda e: (e.file or "", e.path or "", e.code))
    for e in errors_sorted:
        typer.echo(str(e), err=True)


def main() -> None:
    app(prog_name="schedule")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
