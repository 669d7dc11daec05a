"""credo CLI: review, goals, library, backups and configuration."""

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer

from credo.application.config import AppConfig, resolve_config
from credo.application.state import AppState
from credo.application.utils.clock import format_timestamp
from credo.domain.constants import (
    CONTENT_TYPES,
    DASHBOARD_GOALS,
    GRADE_LABELS,
    MAX_QUALITY,
    MIN_QUALITY,
    RECENT_APPLICATIONS,
)
from credo.domain.exceptions import CredoError
from credo.domain.models import ContentItem, Goal, Principle

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="credo: Internalize. Apply. Transform.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

goals_app = typer.Typer(help="Manage goals and their linked credos.", no_args_is_help=True)
app.add_typer(goals_app, name="goals")

config_app = typer.Typer(help="Manage credo configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}

QualityArg = Annotated[
    int,
    typer.Argument(
        min=MIN_QUALITY,
        max=MAX_QUALITY,
        help="Recall quality: 1=Again, 3=Hard, 4=Good, 5=Easy (0-5 accepted).",
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(ctx: typer.Context) -> AppConfig:
    return resolve_config(ctx.obj.get("overrides") if ctx.obj else None)


def _state(ctx: typer.Context) -> AppState:
    from credo.application.factory import build_app_state

    with _errors():
        return build_app_state(_config(ctx))


@contextmanager
def _errors() -> Iterator[None]:
    """Turn domain errors into a red message and exit code 1."""
    try:
        yield
    except CredoError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from e


def _split_key(key: str) -> tuple[str, int]:
    from credo.application.catalog import parse_key

    try:
        return parse_key(key)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _print_front(item: ContentItem) -> None:
    if isinstance(item, Principle):
        typer.secho(f"[{item.category}]", fg="yellow")
        typer.echo(item.text)
    else:
        typer.secho(item.title, bold=True)
        typer.echo(item.truth)


def _print_back(item: ContentItem) -> None:
    if isinstance(item, Principle):
        return
    for i, rule in enumerate(item.rules, start=1):
        typer.echo(f"  {i}. {rule}")


def _print_goal(state: AppState, goal: Goal) -> None:
    target = f" (target {goal.target_date})" if goal.target_date else ""
    typer.secho(f"{goal.name}{target}", bold=True)
    typer.echo(f"  id: {goal.id}")
    for item in state.linked_credos(goal):
        typer.echo(f"  - {item.display}")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
    data_file: Annotated[
        Path | None, typer.Option("--data-file", help="JSON file holding your progress.")
    ] = None,
    catalog: Annotated[
        Path | None, typer.Option("--catalog", help="YAML catalog of credos to review.")
    ] = None,
):
    """Global settings for credo."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"data_file": data_file, "catalog_path": catalog, "verbose": verbose}
    logging.getLogger().setLevel(LOG_LEVELS.get(verbose, logging.DEBUG))


# ---------------------------------------------------------------------------
# Review commands
# ---------------------------------------------------------------------------


@app.command()
def status(ctx: typer.Context):
    """Show the dashboard: streak, due cards, mastery and goals."""
    state = _state(ctx)
    report = state.progress()

    typer.secho("Credo Mastery", bold=True)
    typer.echo(f"Day streak:    {report.streak}")
    typer.echo(f"Due today:     {report.due_count}")
    typer.echo(f"Mastered:      {report.mastered_count}")
    typer.echo(f"Total reviews: {report.total_reviews}")
    typer.echo(
        f"{report.mastered_count} of {report.catalog_size} principles mastered "
        f"({report.mastery_percent}%)"
    )

    if state.goals:
        typer.echo("")
        typer.secho("Goals", bold=True)
        for goal in state.goals[:DASHBOARD_GOALS]:
            typer.echo(f"  {goal.name} [{len(goal.linked_credos)} linked]")
    else:
        typer.echo("No goals yet. Add one with 'credo goals add'.")


@app.command()
def due(ctx: typer.Context):
    """List cards due for review, most overdue first."""
    state = _state(ctx)
    cards = state.get_due_cards()
    if not cards:
        typer.secho("All caught up! No cards due.", fg="green")
        return
    for card in cards:
        typer.echo(f"{card.key:<14} {format_timestamp(card.state.next_review)}  {card.item.display}")
    typer.echo(f"{len(cards)} cards due")


def _read_grade() -> int | None:
    choices = "  ".join(f"{q}={label}" for q, label in GRADE_LABELS.items())
    while True:
        answer = typer.prompt(f"Grade ({choices}, q=quit)").strip().lower()
        if answer == "q":
            return None
        if answer.isdigit() and MIN_QUALITY <= int(answer) <= MAX_QUALITY:
            return int(answer)
        typer.secho(f"Enter a number {MIN_QUALITY}-{MAX_QUALITY} or q.", fg="yellow")


@app.command()
def review(
    ctx: typer.Context,
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", min=1, help="Stop after this many cards.")
    ] = None,
):
    """Run an interactive review session over the due cards."""
    state = _state(ctx)
    cards = state.get_due_cards()
    if not cards:
        typer.secho("All caught up! No cards due.", fg="green")
        return
    if limit is not None:
        cards = cards[:limit]

    reviewed = 0
    for position, card in enumerate(cards, start=1):
        item = card.item
        typer.echo("")
        typer.secho(f"Card {position} of {len(cards)}  ({item.display})", dim=True)
        _print_front(item)
        typer.prompt("Press Enter to reveal", default="", show_default=False)
        _print_back(item)

        quality = _read_grade()
        if quality is None:
            break
        with _errors():
            new_state = state.grade_card(item.type, item.id, quality)
        reviewed += 1
        typer.secho(f"Next review in {new_state.interval} day(s).", fg="green")

        if typer.confirm("Log an application of this credo?", default=False):
            note = typer.prompt("How did you apply it?")
            with _errors():
                state.add_application(item.type, item.id, note)
            typer.secho("Application saved.", fg="green")

    typer.echo("")
    typer.echo(f"Reviewed {reviewed} card(s). Streak: {state.stats.streak} day(s).")


@app.command()
def grade(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Credo key, e.g. kekich_12 or paulism_3.")],
    quality: QualityArg,
):
    """Grade a single card without an interactive session."""
    item_type, item_id = _split_key(key)
    state = _state(ctx)
    with _errors():
        new_state = state.grade_card(item_type, item_id, quality)
    typer.echo(
        f"{key}: next review {format_timestamp(new_state.next_review)} "
        f"(interval {new_state.interval}d, ease {new_state.ease_factor:.2f})"
    )


@app.command()
def show(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Credo key, e.g. kekich_12.")],
):
    """Show a credo with its scheduling state."""
    item_type, item_id = _split_key(key)
    state = _state(ctx)
    with _errors():
        item = state.require_item(item_type, item_id)
    card = state.card_state(item_type, item_id)

    _print_front(item)
    _print_back(item)
    typer.echo("")
    typer.echo(f"Repetitions: {card.repetitions}")
    typer.echo(f"Interval:    {card.interval} day(s)")
    typer.echo(f"Ease:        {card.ease_factor:.2f}")
    typer.echo(f"Last review: {format_timestamp(card.last_review)}")
    typer.echo(f"Next review: {format_timestamp(card.next_review)}")


@app.command()
def library(
    ctx: typer.Context,
    item_type: Annotated[
        str | None, typer.Option("--type", "-t", help=f"One of: {', '.join(CONTENT_TYPES)}.")
    ] = None,
    search: Annotated[str, typer.Option("--search", "-s", help="Filter by text.")] = "",
):
    """Browse the catalog with mastery marks."""
    if item_type is not None and item_type not in CONTENT_TYPES:
        raise typer.BadParameter(f"--type must be one of {', '.join(CONTENT_TYPES)}")
    state = _state(ctx)
    from credo.application.scheduler import is_mastered

    items = state.catalog.search(search, item_type)
    for item in items:
        card = state.card_state(item.type, item.id)
        mark = "*" if is_mastered(card) else " "
        typer.echo(f"{mark} {item.key:<14} reps={card.repetitions:<3} {item.display}")
    typer.echo(f"{len(items)} credos")


@app.command()
def apply(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Credo key, e.g. kekich_12.")],
    note: Annotated[str, typer.Argument(help="How you applied it.")],
):
    """Log how you applied a credo."""
    item_type, item_id = _split_key(key)
    state = _state(ctx)
    with _errors():
        application = state.add_application(item_type, item_id, note)
    typer.secho(f"Logged application {application.id}", fg="green")


@app.command()
def applications(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", "-n", min=1)] = RECENT_APPLICATIONS,
):
    """Show the most recent applications, newest first."""
    state = _state(ctx)
    recent = state.recent_applications(limit)
    if not recent:
        typer.echo("No applications logged yet.")
        return
    for entry in recent:
        typer.secho(f"{format_timestamp(entry.created_at)}  {entry.credo_text}", bold=True)
        typer.echo(f"  {entry.note}")


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="File or directory. Defaults to backup_dir."),
    ] = None,
):
    """Export all progress to a JSON backup."""
    from credo.application.backup import export_to_file
    from credo.application.factory import get_store

    config = _config(ctx)
    with _errors():
        target = export_to_file(get_store(config), output or config.backup_dir)
    typer.secho(f"Backup written to {target}", fg="green")


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    source: Annotated[Path, typer.Argument(help="Backup JSON file.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Import a JSON backup, overwriting matching keys."""
    from credo.application.backup import import_from_file
    from credo.application.factory import get_store

    if not force and not typer.confirm("Importing overwrites existing progress. Continue?"):
        raise typer.Abort()
    config = _config(ctx)
    with _errors():
        count = import_from_file(get_store(config), source)
    typer.secho(f"Imported {count} keys.", fg="green")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option(help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
):
    """Run the local HTTP API."""
    import uvicorn

    config = _config(ctx)
    uvicorn.run(
        "credo.server:app",
        host=host or config.server_host,
        port=port or config.server_port,
        reload=False,
    )


# ---------------------------------------------------------------------------
# Goals subgroup
# ---------------------------------------------------------------------------


@goals_app.command("list")
def goals_list(ctx: typer.Context):
    """List goals with their linked credos."""
    state = _state(ctx)
    if not state.goals:
        typer.echo("No goals yet.")
        return
    for goal in state.goals:
        _print_goal(state, goal)


@goals_app.command("add")
def goals_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="What you want to achieve.")],
    target_date: Annotated[
        str | None, typer.Option("--target-date", help="Optional date, e.g. 2026-12-31.")
    ] = None,
    link: Annotated[
        list[str] | None, typer.Option("--link", "-l", help="Credo key to link. Repeatable.")
    ] = None,
):
    """Create a goal."""
    state = _state(ctx)
    links = link or []
    for key in links:
        _split_key(key)
    with _errors():
        goal = state.add_goal(name, target_date=target_date, linked_credos=links)
    typer.secho(f"Added goal {goal.id}", fg="green")


@goals_app.command("edit")
def goals_edit(
    ctx: typer.Context,
    goal_id: Annotated[str, typer.Argument(help="Goal id.")],
    name: Annotated[str | None, typer.Option("--name")] = None,
    target_date: Annotated[
        str | None, typer.Option("--target-date", help="Pass an empty string to clear.")
    ] = None,
):
    """Rename a goal or change its target date."""
    updates = {"name": name, "target_date": target_date}
    updates = {k: v for k, v in updates.items() if v is not None}
    if not updates:
        raise typer.BadParameter("Nothing to update. Pass --name or --target-date.")
    state = _state(ctx)
    with _errors():
        goal = state.update_goal(goal_id, **updates)
    _print_goal(state, goal)


@goals_app.command("delete")
def goals_delete(
    ctx: typer.Context,
    goal_id: Annotated[str, typer.Argument(help="Goal id.")],
    force: Annotated[bool, typer.Option("--force", "-f", help="Bypass confirmation.")] = False,
):
    """Delete a goal."""
    state = _state(ctx)
    with _errors():
        goal = state.get_goal(goal_id)
        if not force and not typer.confirm(f"Delete goal '{goal.name}'?"):
            raise typer.Abort()
        state.delete_goal(goal_id)
    typer.secho("Goal deleted.", fg="green")


@goals_app.command("link")
def goals_link(
    ctx: typer.Context,
    goal_id: Annotated[str, typer.Argument(help="Goal id.")],
    key: Annotated[str, typer.Argument(help="Credo key to link.")],
):
    """Link a credo to a goal."""
    _split_key(key)
    state = _state(ctx)
    with _errors():
        goal = state.get_goal(goal_id)
        if key not in goal.linked_credos:
            goal = state.toggle_link(goal_id, key)
    _print_goal(state, goal)


@goals_app.command("unlink")
def goals_unlink(
    ctx: typer.Context,
    goal_id: Annotated[str, typer.Argument(help="Goal id.")],
    key: Annotated[str, typer.Argument(help="Credo key to unlink.")],
):
    """Remove a credo link from a goal."""
    state = _state(ctx)
    with _errors():
        goal = state.get_goal(goal_id)
        if key in goal.linked_credos:
            goal = state.toggle_link(goal_id, key)
    _print_goal(state, goal)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
