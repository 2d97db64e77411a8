"""mnemo CLI — review queues, interactive sessions, analysis and stats."""

import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml
from pydantic import ValidationError as ConfigError

from mnemo.application.config import AppConfig, resolve_config
from mnemo.application.factory import Engine, build_engine
from mnemo.application.ids import generate_item_id
from mnemo.domain.errors import MnemoError, ValidationError
from mnemo.domain.models import ItemFilters, StudyItem
from mnemo.infrastructure.adapters.serialization import item_from_dict

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="mnemo: adaptive spaced-repetition review scheduling.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage mnemo configuration.")
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


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    store: Annotated[
        str | None, typer.Option(help="Store backend: memory, yaml.")
    ] = None,
    store_path: Annotated[
        Path | None, typer.Option(help="Path of the YAML store file.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for mnemo."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {"store": store, "store_path": store_path, "verbose": verbose}
    if verbose > 1:
        logging.getLogger("mnemo").setLevel(logging.DEBUG)


def _config(ctx: typer.Context) -> AppConfig:
    try:
        return resolve_config((ctx.obj or {}).get("overrides"))
    except ConfigError as e:
        typer.secho(f"Invalid configuration: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _run(coro_factory) -> Any:
    """Run an async CLI body, turning domain errors into a red message and exit 1."""
    try:
        return asyncio.run(coro_factory())
    except MnemoError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _log_to_file(config: AppConfig) -> None:
    """Mirror mnemo's log records into <log_dir>/mnemo.log."""
    log_file = config.log_dir / "mnemo.log"
    package_logger = logging.getLogger("mnemo")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            if Path(handler.baseFilename) == log_file:
                return
            package_logger.removeHandler(handler)
            handler.close()

    try:
        config.log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        logger.warning(f"Cannot write log file {log_file}: {e}")
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    package_logger.addHandler(handler)


def _engine(ctx: typer.Context) -> Engine:
    config = _config(ctx)
    _log_to_file(config)
    try:
        return build_engine(config)
    except MnemoError as e:
        typer.secho(f"Error: {e}", fg="red", err=True)
        raise typer.Exit(1)


def _to_json(value: Any) -> str:
    return json.dumps(asdict(value), indent=2, default=str)


def _describe(item: StudyItem) -> str:
    due = item.state.next_review_at.isoformat() if item.state.next_review_at else "now"
    tags = f" [{', '.join(item.tags)}]" if item.tags else ""
    return f"{item.id}  {item.state.stage.value:<8} due {due}  {item.front}{tags}"


# ---------------------------------------------------------------------------
# Queue commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner ID.")],
    limit: Annotated[int | None, typer.Option(help="Maximum items to list.")] = None,
    source: Annotated[str | None, typer.Option(help="Only items from this source.")] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Require this tag. Repeatable.")
    ] = None,
):
    """List items due for review now."""
    engine = _engine(ctx)
    limit = limit if limit is not None else _config(ctx).default_session_limit

    items = _run(lambda: engine.queue.get_due_items(user, limit=limit, source=source, tags=tag))
    if not items:
        typer.secho("No items due for review.", fg="yellow")
        return
    for item in items:
        typer.echo(_describe(item))
    typer.echo(f"\nDue: {len(items)}")


@app.command()
def upcoming(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner ID.")],
    days: Annotated[int | None, typer.Option(help="Days ahead to look.")] = None,
    source: Annotated[str | None, typer.Option(help="Only items from this source.")] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Require this tag. Repeatable.")
    ] = None,
):
    """List items that become due in the next few days."""
    engine = _engine(ctx)
    days = days if days is not None else _config(ctx).upcoming_days

    items = _run(
        lambda: engine.queue.get_upcoming_items(user, days_ahead=days, source=source, tags=tag)
    )
    if not items:
        typer.secho(f"Nothing due in the next {days} days.", fg="yellow")
        return
    for item in items:
        typer.echo(_describe(item))


# ---------------------------------------------------------------------------
# Review session
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner ID.")],
    limit: Annotated[int | None, typer.Option(help="Maximum items in the session.")] = None,
    source: Annotated[str | None, typer.Option(help="Only items from this source.")] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Require this tag. Repeatable.")
    ] = None,
):
    """[bold green]Review[/bold green] due items interactively.

    Each item's front is shown; press Enter to reveal the back, then rate
    recall from 1 (forgot) to 5 (perfect). Enter 'q' to end early.
    """
    engine = _engine(ctx)
    filters = ItemFilters(source=source, tags=tuple(tag or ()))

    async def run():
        sessions = engine.sessions
        start = await sessions.start_session(user, filters=filters, budget=limit)
        if not start.started:
            typer.secho(start.message, fg="yellow")
            return

        typer.secho(f"Session {start.session_id}: {start.item_count} items", fg="green")
        item = start.first_item
        position = 1
        while item is not None:
            typer.echo(f"\n[{position}/{start.item_count}] {item.front}")
            typer.prompt("Press Enter to show the answer", default="", show_default=False)
            typer.echo(f"  {item.back}")

            answer = typer.prompt("Rating (1-5, q to stop)").strip().lower()
            if answer == "q":
                summary = await sessions.complete_session(start.session_id)
                _print_summary(summary.metrics)
                return

            try:
                result = await sessions.submit_review(start.session_id, int(answer))
            except (ValueError, ValidationError):
                typer.secho("Please enter a whole number from 1 to 5.", fg="red")
                continue

            typer.echo(f"  Next review in {result.result.interval} day(s)")
            if result.complete:
                summary = result.summary
                if summary is None:
                    typer.secho("Could not record session completion; retrying.", fg="yellow")
                    summary = await sessions.complete_session(start.session_id)
                _print_summary(summary.metrics)
                return
            item = result.next_item
            position = result.progress.current

    _run(run)


def _print_summary(metrics) -> None:
    typer.secho("\nSession complete", fg="green")
    typer.echo(f"  Average rating:  {metrics.average_rating:.2f}")
    typer.echo(f"  Perfect answers: {metrics.perfect_count}")
    typer.echo(f"  Completion:      {metrics.completion_rate:.0%}")
    typer.echo(f"  Duration:        {metrics.duration:.0f}s")


# ---------------------------------------------------------------------------
# Analysis and stats
# ---------------------------------------------------------------------------


@app.command()
def analyze(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner ID.")],
    apply: Annotated[
        bool, typer.Option("--apply", help="Merge the recommendations into the parameters.")
    ] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Output JSON.")] = False,
):
    """Analyze review history and recommend learning parameters."""
    engine = _engine(ctx)

    if apply:
        applied = _run(lambda: engine.analyzer.apply_analysis(user))
        analysis = applied.analysis
    else:
        analysis = _run(lambda: engine.analyzer.analyze(user))

    if as_json:
        typer.echo(_to_json(analysis))
        return

    if analysis.review_count == 0:
        typer.secho("No review history yet.", fg="yellow")
        return

    typer.echo(f"Reviews analyzed:  {analysis.review_count}")
    typer.echo(f"Retention rate:    {analysis.retention_rate:.0%}")
    typer.echo(f"Average ease:      {analysis.average_ease_factor:.2f}")
    if analysis.difficult_tags:
        typer.secho(f"Difficult tags:    {', '.join(analysis.difficult_tags)}", fg="yellow")
    if analysis.optimal_review_hours:
        hours = ", ".join(f"{h.hour:02d}:00" for h in analysis.optimal_review_hours)
        typer.echo(f"Best hours (UTC):  {hours}")
    rec = analysis.recommended
    if rec:
        typer.echo(
            f"Recommended:       {rec.new_cards_per_day} new/day, "
            f"interval modifier {rec.interval_modifier}%, "
            f"retention target {rec.retention_target:.2f}"
        )
    if apply:
        typer.secho("Recommendations applied.", fg="green")


@app.command()
def stats(
    ctx: typer.Context,
    user: Annotated[str, typer.Argument(help="Learner ID.")],
    as_json: Annotated[bool, typer.Option("--json", help="Output JSON.")] = False,
):
    """Show review counts, retention and study streak."""
    engine = _engine(ctx)

    async def run():
        return (
            await engine.stats.get_review_stats(user),
            await engine.stats.get_learning_stats(user),
        )

    reviews, learning = _run(run)

    if as_json:
        payload = {"reviews": asdict(reviews), "learning": asdict(learning)}
        typer.echo(json.dumps(payload, indent=2, default=str))
        return

    typer.echo(f"Reviews today:     {reviews.today}")
    typer.echo(f"Reviews this week: {reviews.this_week}")
    typer.echo(f"Reviews total:     {reviews.total}")
    typer.echo(f"Items:             {learning.total_items}")
    typer.echo(f"Due within a day:  {learning.due_today}")
    typer.echo(f"Retention score:   {learning.retention_score:.0f}%")
    typer.echo(f"Streak:            {learning.streak} day(s)")


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def load_items_file(path: Path, default_user: str | None = None) -> list[StudyItem]:
    """
    Parse a YAML list of items (or a mapping with an `items` list).

    Missing ids are generated; a missing user_id falls back to `default_user`.
    """
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a list of items")

    items = []
    for index, raw in enumerate(data, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item #{index} in {path} is not a mapping")
        raw = {"id": generate_item_id(), "user_id": default_user, **raw}
        if not raw.get("user_id"):
            raise ValidationError(f"Item #{index} in {path} has no user_id (use --user)")
        try:
            item = item_from_dict(raw)
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Item #{index} in {path} is invalid: {e}") from e
        item.validate()
        items.append(item)
    return items


@app.command("import")
def import_items(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="YAML file with study items.", exists=True)],
    user: Annotated[
        str | None, typer.Option(help="Owner for items without a user_id.")
    ] = None,
):
    """Import study items from a YAML file into the store.

    Re-importing an item with an existing id replaces it, learning state included.
    """
    engine = _engine(ctx)

    async def run():
        items = load_items_file(file, default_user=user)
        for item in items:
            await engine.store.upsert_item_state(item)
        return len(items)

    try:
        count = _run(run)
    except (yaml.YAMLError, OSError) as e:
        typer.secho(f"Error: could not import {file}: {e}", fg="red", err=True)
        raise typer.Exit(1)
    logger.info(f"Imported {count} items from {file}")
    typer.secho(f"Imported {count} items.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _config(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
