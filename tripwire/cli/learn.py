"""CLI commands for Tripwire Learn — report, list, and export failures."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from ..config import LearnConfig
from ..learn.learner import ErrorLearner
from ..learn.taxonomy import CATEGORIES
from ..storage import create_store
from .main import main

logger = logging.getLogger(__name__)

_project_option = click.option(
    "--project", "-p", required=True, help="Project whose registry to use."
)
_registry_option = click.option(
    "--registry",
    "--registry-dir",
    "registry",
    default=None,
    help="Registry directory or store URL (file:///path, memory://). "
    "Defaults to $TRIPWIRE_REGISTRY_DIR.",
)


def _learner(project: str, registry: str | None) -> ErrorLearner:
    config = LearnConfig()
    try:
        store = create_store(registry or str(config.registry_dir))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--registry") from e
    return ErrorLearner(project, store=store, config=config)


def _resolve_project_path(project: str, config: LearnConfig) -> Path:
    """Project path from ``<project_context_dir>/<project>.json``, else cwd."""
    config_path = config.project_context_dir / f"{project}.json"
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Ignoring unreadable project config %s: %s", config_path, e)
        else:
            if isinstance(data, dict) and data.get("projectPath"):
                return Path(data["projectPath"]).expanduser()
    return Path.cwd()


@main.command()
@click.argument("message")
@_project_option
@click.option(
    "--category",
    "-c",
    default=None,
    help="Failure category (auto-detected if omitted). See `tripwire categories`.",
)
@click.option("--file", "source_file", default=None, help="Source file where the error occurred.")
@click.option("--line", type=int, default=None, help="Line number where the error occurred.")
@_registry_option
def report(
    message: str,
    project: str,
    category: str | None,
    source_file: str | None,
    line: int | None,
    registry: str | None,
) -> None:
    """Report a failure and generate a regression test if possible.

    \b
    Examples:
        tripwire report "inheritorsList is not defined" -p will-generator -c interpreted-runtime
        tripwire report "ModuleNotFoundError: No module named 'yaml'" -p api --file app.py
    """
    context: dict[str, object] = {"source": "cli"}
    if source_file:
        context["file"] = source_file
    if line is not None:
        context["line"] = line

    learner = _learner(project, registry)
    try:
        record = learner.report_failure(message, category, context)
    except OSError as e:
        raise click.ClickException(f"Could not save registry: {e}") from e

    pattern = record.detected_pattern
    click.echo(f"Error reported: {record.id}")
    click.echo(f"Category: {record.category}")
    click.echo(f"Pattern: {pattern.kind_label if pattern else 'unknown'}")
    if record.similar_errors:
        click.echo(f"Similar errors: {', '.join(record.similar_errors)}")
    if record.test_generated:
        click.echo("Regression check generated.")
    else:
        click.echo("Cannot auto-generate test.")


@main.command(name="list")
@_project_option
@_registry_option
def list_command(project: str, registry: str | None) -> None:
    """List recorded failures grouped by category."""
    view = _learner(project, registry).list_failures()

    click.echo(f"{'=' * 60}")
    click.echo("  ERROR REGISTRY")
    click.echo(f"{'=' * 60}")

    if not view.total_errors:
        click.echo("No errors recorded yet.")
        return

    click.echo(f"Total errors: {view.total_errors}")
    click.echo(f"Tests generated: {view.tests_generated}")

    for category, records in view.by_category.items():
        click.echo(f"\n{category.upper()} ({len(records)}):")
        for record in records:
            mark = "[x]" if record.test_generated else "[ ]"
            message = record.message[:80] + ("..." if len(record.message) > 80 else "")
            pattern = record.detected_pattern
            click.echo(f"  {mark} {record.id}")
            click.echo(f"     {message}")
            click.echo(f"     Pattern: {pattern.kind_label if pattern else 'unknown'}")


@main.command()
@_project_option
@click.option(
    "--path",
    "project_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root to export into. Defaults to the project config, then cwd.",
)
@click.option(
    "--apply",
    is_flag=True,
    default=False,
    help="Write test files (default: dry-run).",
)
@_registry_option
def export(project: str, project_path: Path | None, apply: bool, registry: str | None) -> None:
    """Export generated regression tests into the project's test files."""
    learner = _learner(project, registry)
    target = project_path or _resolve_project_path(project, learner.config)

    try:
        result = learner.export_to_project(target, dry_run=not apply)
    except OSError as e:
        raise click.ClickException(f"Could not write test file: {e}") from e

    if not result.files_written:
        click.echo("All regression tests already exported.")
        return

    for file_path, appended in result.appended_by_file.items():
        click.echo(f"\n{'[WOULD APPEND]' if result.dry_run else '[APPENDED]'} {file_path}")
        click.echo(f"{'─' * 50}")
        click.echo(appended.rstrip("\n"))
        click.echo(f"{'─' * 50}")

    if result.dry_run:
        click.echo("\nDry run — use --apply to write.")


@main.command()
@_project_option
@_registry_option
def summary(project: str, registry: str | None) -> None:
    """Print registry totals as JSON."""
    data = _learner(project, registry).summary().to_dict()
    click.echo(json.dumps(data, indent=2))


@main.command()
def categories() -> None:
    """Show the failure categories and what each one generates."""
    for category in CATEGORIES:
        aliases = f" (alias: {', '.join(category.aliases)})" if category.aliases else ""
        click.echo(
            f"{category.name:22s} {category.target.value:24s} {category.description}{aliases}"
        )
