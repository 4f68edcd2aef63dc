from __future__ import annotations

import json
import logging
from typing import Any

import typer
from rich.box import ROUNDED
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ideaflow import services
from ideaflow.config import get_settings
from ideaflow.db import get_engine, init_db, rollback_migration, run_migrations, session_scope
from ideaflow.helpers import idea_order_human, idea_unavailable_action_tooltip, ideas_category_qualifier, ideas_filter_qualifier
from ideaflow.lifecycle import InvalidTransition
from ideaflow.models import Idea, User

app = typer.Typer(help="Idea lifecycle, worklists and orderings")
console = Console()


def _configure_logging(*, verbose: int, json_output: bool) -> None:
    if verbose <= 0:
        level = getattr(logging, get_settings().log_level.upper(), logging.WARNING)
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    handlers: list[logging.Handler]
    if json_output:
        handlers = [logging.StreamHandler()]
        fmt = "%(levelname)s: %(message)s"
    else:
        handlers = [RichHandler(console=console, show_time=False, show_path=False, markup=True)]
        fmt = "%(message)s"

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)


@app.callback()
def app_callback(
    ctx: typer.Context,
    json_output: bool = typer.Option(False, "--json", help="Output raw JSON for scripting."),
    verbose: int = typer.Option(0, "-v", "--verbose", count=True, help="Increase log verbosity."),
) -> None:
    ctx.obj = {"json_output": json_output, "verbose": verbose}
    _configure_logging(verbose=verbose, json_output=json_output)


def _wants_json(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json_output"))


def _format_scalar(value: Any) -> str:
    if value is None:
        return "-"
    return str(value)


def _print(title: str, payload: dict[str, Any], ctx: typer.Context) -> None:
    if _wants_json(ctx):
        typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return
    table = Table(show_header=True, header_style="bold cyan", box=ROUNDED)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in payload.items():
        if isinstance(value, dict):
            value = ", ".join(f"{k}={v}" for k, v in value.items())
        table.add_row(key, _format_scalar(value))
    console.print(Panel(table, title=title, border_style="cyan"))


def _load(session, model, entity_id: int, label: str):
    obj = services.get_entity(session, model, entity_id)
    if obj is None:
        raise typer.BadParameter(f"{label} id={entity_id} not found")
    return obj


@app.command("init-db")
def init_db_command(
    ctx: typer.Context,
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    init_db(db_url)
    _print("init-db", {"status": "ok", "database_url": db_url or get_settings().database_url}, ctx)


@app.command("migrate")
def migrate_command(
    ctx: typer.Context,
    direction: str = typer.Argument("up", help="up or down"),
    version: str | None = typer.Option(None, help="Migration to revert (down only; default: latest)"),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    engine = get_engine(db_url)
    if direction == "up":
        _print("migrate", {"applied": ", ".join(run_migrations(engine)) or None}, ctx)
    elif direction == "down":
        try:
            reverted = rollback_migration(engine, version)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        _print("migrate", {"reverted": reverted}, ctx)
    else:
        raise typer.BadParameter("direction must be 'up' or 'down'")


@app.command("ideas")
def ideas_command(
    ctx: typer.Context,
    user_id: int = typer.Option(..., help="Acting user"),
    angle: str = typer.Option("discussable", help="discussable, vettable, votable, pickable, approvable, "
                                                  "signoffable, buildable, followed, managed"),
    filter: str = typer.Option("all", "--filter", help="all, authored, commented, vetted, backed"),
    category: str = typer.Option("all", help="all, none, or a category name"),
    order: str | None = typer.Option(None, help="rating, activity, progress, creation, size"),
    limit: int | None = typer.Option(None, help="Maximum number of ideas (default: page size)"),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    settings = get_settings()
    order = order or settings.default_order
    with session_scope(db_url) as session:
        user = _load(session, User, user_id, "User")
        try:
            ideas = services.list_ideas(
                session, user, angle=angle, filter=filter, category=category, order=order,
                limit=limit or settings.page_size,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        payload = [services.idea_summary(idea) for idea in ideas]

    if _wants_json(ctx):
        typer.echo(json.dumps({"angle": angle, "order": order, "items": payload}, indent=2, ensure_ascii=False))
        return

    qualifiers = [q for q in (ideas_filter_qualifier(filter), ideas_category_qualifier(category)) if q]
    title = " ".join([f"{angle} ideas", *qualifiers]) + f" · {idea_order_human(order)}"
    table = Table(show_header=True, header_style="bold yellow", box=ROUNDED)
    table.add_column("#", style="dim")
    table.add_column("Title", style="bold")
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("Size", justify="center")
    table.add_column("Rating", justify="right")
    table.add_column("Density", justify="right")
    for row in payload:
        table.add_row(
            str(row["id"]), row["title"], row["kind"], row["state_label"],
            _format_scalar(row["size_label"]), str(row["rating"]), str(row["rating_density"]),
        )
    console.print(Panel(table, title=title, border_style="yellow"))


@app.command("advance")
def advance_command(
    ctx: typer.Context,
    idea_id: int = typer.Argument(..., help="Idea to move"),
    event: str = typer.Argument(..., help="vet, vote, pick, design, approve, implement, sign_off, go_live"),
    user_id: int | None = typer.Option(None, help="Acting user (required for vet and vote)"),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    with session_scope(db_url) as session:
        idea = _load(session, Idea, idea_id, "Idea")
        user = _load(session, User, user_id, "User") if user_id is not None else None
        try:
            services.transition(session, idea, event, user)
        except InvalidTransition as exc:
            if _wants_json(ctx):
                typer.echo(json.dumps({"error": str(exc), "state": exc.state.value, "event": exc.event}))
            else:
                console.print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
        session.flush()
        payload = services.idea_summary(idea)
    _print(f"idea {idea_id}", payload, ctx)


@app.command("tooltip")
def tooltip_command(
    ctx: typer.Context,
    idea_id: int = typer.Argument(...),
    state: str = typer.Argument(..., help="Target state of the unavailable action"),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    with session_scope(db_url) as session:
        idea = _load(session, Idea, idea_id, "Idea")
        try:
            text = idea_unavailable_action_tooltip(idea, state)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if _wants_json(ctx):
        typer.echo(json.dumps({"idea_id": idea_id, "state": state, "tooltip": text}, ensure_ascii=False))
        return
    console.print(text)


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    user_id: int = typer.Option(..., help="Acting user"),
    db_url: str | None = typer.Option(default=None, help="Optional SQLAlchemy DB URL"),
) -> None:
    with session_scope(db_url) as session:
        user = _load(session, User, user_id, "User")
        payload = services.compute_stats(session, user)
    _print("stats", payload, ctx)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
