from __future__ import annotations

import json
import logging
from typing import Any

import typer
import yaml

from atp_visualizer.core.config.viewer_config import (
    ViewerConfig,
    ViewerConfigError,
    load_and_merge,
)
from atp_visualizer.core.errors import PlanError, PlanValidationError
from atp_visualizer.core.graph.build_view import (
    graph_message,
    root_ids,
    status_counts,
    summarize_plan,
)
from atp_visualizer.core.io.load_plan import find_default_plan, load_plan, resolve_plan_path
from atp_visualizer.core.lint.lint_plan import lint_plan
from atp_visualizer.core.result import (
    ERROR_NO_PLAN,
    ERROR_READ_FAILED,
    ParseFailure,
    ParseResult,
)

app = typer.Typer(add_completion=False, no_args_is_help=True)

_LOAD_FAILURES = {ERROR_NO_PLAN, ERROR_READ_FAILED}


@app.callback()
def _callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """ATP plan visualizer CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("validate")
def validate(
    path: str | None = typer.Argument(None, help="Path to an ATP plan (*.atp.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
    roots: list[str] = typer.Option(
        [], "--root", help="Workspace root to search when no path is given (repeatable)"
    ),
    config_file: str | None = typer.Option(None, "--config", help="Viewer config YAML"),
) -> None:
    """Validate an ATP v1.3 plan."""
    _check_format(format)
    config = _load_config(config_file)

    plan_path = resolve_plan_path(path, roots or ["."], config)
    result = load_plan(plan_path)

    if format == "json":
        payload: dict[str, Any] = {
            "tool": "atp",
            "command": "validate",
            "plan": plan_path,
            "ok": result.success,
            "error": None,
            "issue_count": 0,
            "issues": [],
            "summary": None,
        }
        if isinstance(result, ParseFailure):
            payload["error"] = result.error
            payload["issue_count"] = len(result.errors)
            payload["issues"] = [_to_item(e) for e in result.errors]
        else:
            plan = result.graph
            payload["summary"] = {
                "project_name": plan.meta.project_name,
                "project_status": plan.meta.project_status,
                "node_count": len(plan.nodes),
                "edge_count": sum(len(n.dependencies) for n in plan.nodes.values()),
                "status_counts": status_counts(plan),
                "roots": root_ids(plan),
            }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=_exit_code(result))

    if isinstance(result, ParseFailure):
        _print_failure(result)
        raise typer.Exit(code=_exit_code(result))

    typer.echo(summarize_plan(result.graph))


@app.command("lint")
def lint(
    path: str = typer.Argument(..., help="Path to an ATP plan (*.atp.json)"),
    format: str = typer.Option("text", "--format", help="Output format: text|json"),
) -> None:
    """Lint a plan (cycles and status consistency, beyond schema validation)."""
    _check_format(format)

    result = load_plan(path)
    if isinstance(result, ParseFailure):
        errors: list[PlanError] = list(result.errors)
    else:
        errors = list(lint_plan(result.graph))

    failed = isinstance(result, ParseFailure) or bool(errors)

    if format == "json":
        payload = {
            "tool": "atp",
            "command": "lint",
            "ok": not failed,
            "error": result.error if isinstance(result, ParseFailure) else None,
            "error_count": len(errors),
            "errors": [_to_item(e) for e in errors],
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
        raise typer.Exit(code=(_exit_code(result) or 2) if failed else 0)

    if isinstance(result, ParseFailure):
        _print_failure(result)
        raise typer.Exit(code=_exit_code(result))
    if errors:
        for e in errors:
            typer.echo(f"{e.location()}: {e.code}: {e.message}", err=True)
        raise typer.Exit(code=2)
    typer.echo("OK: lint passed")


@app.command("graph")
def graph(
    path: str | None = typer.Argument(None, help="Path to an ATP plan (*.atp.json)"),
    roots: list[str] = typer.Option(
        [], "--root", help="Workspace root to search when no path is given (repeatable)"
    ),
    config_file: str | None = typer.Option(None, "--config", help="Viewer config YAML"),
) -> None:
    """Print the graphData message a renderer consumes."""
    config = _load_config(config_file)
    plan_path = resolve_plan_path(path, roots or ["."], config)
    result = load_plan(plan_path)
    typer.echo(json.dumps(graph_message(plan_path, result), indent=2))


@app.command("find")
def find(
    roots: list[str] = typer.Option(
        [], "--root", help="Workspace root to search (repeatable, default: .)"
    ),
    config_file: str | None = typer.Option(None, "--config", help="Viewer config YAML"),
) -> None:
    """Show which plan would be opened when none is given."""
    config = _load_config(config_file)
    found = find_default_plan(roots or ["."], config)
    if found is None:
        typer.echo(ERROR_NO_PLAN, err=True)
        raise typer.Exit(code=1)
    typer.echo(str(found))


def _check_format(format: str) -> None:
    if format not in ("text", "json"):
        err = PlanValidationError(
            code="E_UNKNOWN_FORMAT",
            message=f"unknown format: {format} (choose one of: text, json)",
            path="format",
        )
        typer.echo(f"{err.location()}: {err.code}: {err.message}", err=True)
        raise typer.Exit(code=2)


def _load_config(config_file: str | None) -> ViewerConfig:
    try:
        return load_and_merge(config_file)
    except FileNotFoundError:
        typer.echo(f"<config>: E_CONFIG_FILE_NOT_FOUND: config file not found: {config_file}", err=True)
        raise typer.Exit(code=1)
    except (ViewerConfigError, yaml.YAMLError, OSError) as e:
        typer.echo(f"<config>: E_CONFIG_FILE_INVALID: {e}", err=True)
        raise typer.Exit(code=2)


def _exit_code(result: ParseResult) -> int:
    if not isinstance(result, ParseFailure):
        return 0
    return 1 if result.error in _LOAD_FAILURES else 2


def _to_item(e: PlanError) -> dict[str, Any]:
    return {
        "code": e.code,
        "message": e.message,
        "issue": e.issue(),
        "file": e.file,
        "path": e.path,
    }


def _print_failure(result: ParseFailure) -> None:
    typer.echo(f"error: {result.error}", err=True)
    for issue in result.issues:
        typer.echo(f"- {issue}", err=True)


def main() -> None:
    app(prog_name="atp")


cli = typer.main.get_command(app)

if __name__ == "__main__":
    main()
