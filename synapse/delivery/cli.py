"""
Synapse: CLI for adaptive study sessions.

A Rich terminal interface over the review service: import a knowledge
graph, plan sessions, review items and follow progress.

Commands:
- synapse import-graph  - Import a knowledge graph JSON file
- synapse graphs        - List imported graphs
- synapse delete        - Delete a graph and all of its state
- synapse plan          - Compute the next session directive
- synapse generate      - Plan a session and generate its items
- synapse queue         - Show today's review queue
- synapse review        - Record a graded answer
- synapse weak          - Show concepts needing attention
- synapse progress      - Show level, XP and mastery
- synapse export        - Export items for Anki or as JSON
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from synapse.anki.export import StudySet, format_for_anki_txt, format_for_json
from synapse.config import configure_logging, get_settings
from synapse.core.exceptions import SynapseError
from synapse.core.mastery import MasteryLevel
from synapse.core.models import Level, ReviewMode, StudyItem, UserSignals, to_iso, utc_now
from synapse.delivery.review_service import ReviewService
from synapse.delivery.state_store import StateStore

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="synapse",
    help="Synapse: adaptive study orchestration CLI",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "dim": "dim",
    "mode": {
        "Review": "cyan",
        "Expansion": "green",
        "Remediation": "red",
        "Socratic": "magenta",
    },
}


def style_mode(mode: str) -> str:
    """Get styled directive mode string."""
    color = STYLES["mode"].get(mode, "white")
    return f"[{color}]{mode}[/{color}]"


# =============================================================================
# Service Helpers
# =============================================================================


@app.callback()
def root(
    ctx: typer.Context,
    db: Optional[Path] = typer.Option(
        None,
        "--db",
        help="State database path (defaults to ~/.synapse/state.db)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Synapse: adaptive study orchestration CLI."""
    if verbose:
        configure_logging(level="DEBUG")
    ctx.obj = {"db": db}


def _service(ctx: typer.Context) -> ReviewService:
    settings = get_settings()
    db = (ctx.obj or {}).get("db")
    store = StateStore(db or settings.state_db_path)
    ctx.call_on_close(store.close)
    return ReviewService(store, settings)


def _fail(message: str) -> NoReturn:
    console.print(f"[{STYLES['error']}]{message}[/{STYLES['error']}]")
    raise typer.Exit(1)


def _signals(minutes: int, energy: str, stress: str) -> UserSignals:
    try:
        return UserSignals(
            time_available=minutes,
            energy_level=Level(energy.lower()),
            stress_level=Level(stress.lower()),
        )
    except ValueError:
        _fail("Energy and stress must be one of: low, medium, high")


def _items_table(items: list[StudyItem], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Question")
    table.add_column("Interval", justify="right")
    table.add_column("Next review")

    for item in items:
        next_review = to_iso(item.next_review_at) or "[green]new[/green]"
        question = item.question if len(item.question) <= 60 else item.question[:57] + "..."
        table.add_row(item.id, item.type.value, question, f"{item.sm2.interval}d", next_review)
    return table


# =============================================================================
# Commands
# =============================================================================


@app.command("import-graph")
def import_graph(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Knowledge graph JSON file"),
) -> None:
    """Import (or re-import) a knowledge graph."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail(f"Invalid JSON in {path}: {e}")

    service = _service(ctx)
    try:
        graph = service.import_graph(raw)
    except SynapseError as e:
        _fail(f"Import failed: {e}")

    console.print(f"[green]Imported graph {graph.id}[/green] ({len(graph.nodes)} nodes): {graph.title}")


@app.command()
def graphs(ctx: typer.Context) -> None:
    """List imported graphs."""
    records = _service(ctx).list_graphs()
    if not records:
        console.print("[dim]No graphs imported yet.[/dim]")
        return

    table = Table(title="Knowledge Graphs")
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Nodes", justify="right")
    table.add_column("Updated")
    for record in records:
        table.add_row(record.graph_id, record.title, str(record.node_count), to_iso(record.updated_at) or "?")
    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a graph with its items, mastery and progress."""
    if not yes and not Confirm.ask(f"[yellow]Delete graph {graph_id} and all of its state?[/yellow]", default=False):
        console.print("[dim]Cancelled.[/dim]")
        raise typer.Exit(0)

    try:
        _service(ctx).delete_graph(graph_id)
    except SynapseError as e:
        _fail(str(e))

    console.print(f"[green]Deleted graph {graph_id}[/green]")


@app.command()
def plan(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph to study"),
    minutes: int = typer.Option(30, "--minutes", "-m", help="Time available (minutes)"),
    energy: str = typer.Option("medium", "--energy", "-e", help="Energy level: low/medium/high"),
    stress: str = typer.Option("medium", "--stress", "-s", help="Stress level: low/medium/high"),
) -> None:
    """Compute the directive for the next session."""
    service = _service(ctx)
    signals = _signals(minutes, energy, stress)
    context = service.calibrate(signals)
    try:
        directive = service.plan_session(graph_id, context, minutes)
        labels = service.get_graph(graph_id).labels()
    except SynapseError as e:
        _fail(str(e))

    targets = "\n".join(
        f"  - {labels.get(node_id, node_id)} [dim]({node_id})[/dim]" for node_id in directive.target_node_ids
    )
    console.print(Panel(
        f"Context: {context.session_type.value}, focus {context.focus_score}\n"
        f"[dim]{context.state_description}[/dim]\n\n"
        f"Mode: {style_mode(directive.mode.value)}  |  Intensity: {directive.intensity}/5  |  "
        f"Max items: {directive.max_items}\n\n"
        f"Targets:\n{targets}\n\n"
        f"{directive.rationale}",
        title="Session Directive",
        border_style="cyan",
    ))


@app.command()
def generate(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph to study"),
    minutes: int = typer.Option(30, "--minutes", "-m", help="Time available (minutes)"),
    energy: str = typer.Option("medium", "--energy", "-e", help="Energy level: low/medium/high"),
    stress: str = typer.Option("medium", "--stress", "-s", help="Stress level: low/medium/high"),
) -> None:
    """Plan a session and generate study items for its targets."""
    service = _service(ctx)
    context = service.calibrate(_signals(minutes, energy, stress))
    try:
        directive = service.plan_session(graph_id, context, minutes)
        added = service.generate_items(graph_id, directive)
    except SynapseError as e:
        _fail(str(e))

    console.print(f"{style_mode(directive.mode.value)}: {directive.rationale}")
    if not added:
        console.print("[yellow]No new items generated.[/yellow]")
        return
    console.print(_items_table(added, f"Generated {len(added)} item(s)"))


@app.command()
def queue(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph to review"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Queue size"),
) -> None:
    """Show today's review queue."""
    try:
        items = _service(ctx).daily_queue(graph_id, limit=limit)
    except SynapseError as e:
        _fail(str(e))

    if not items:
        console.print("[green]Nothing to review![/green]")
        return
    console.print(_items_table(items, "Daily Review"))


@app.command()
def review(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph owning the item"),
    item_id: str = typer.Argument(..., help="Answered item"),
    quality: int = typer.Argument(..., min=0, max=5, help="Recall grade 0-5"),
    daily: bool = typer.Option(False, "--daily", help="Record as part of the daily review"),
) -> None:
    """
    Record a graded answer.

    5 = perfect recall, 3 = correct with difficulty, 0 = complete blackout.
    """
    mode = ReviewMode.DAILY_REVIEW if daily else ReviewMode.SESSION
    try:
        outcome = _service(ctx).record_review(graph_id, item_id, quality, now=utc_now(), mode=mode)
    except SynapseError as e:
        _fail(str(e))

    style = "green" if quality >= 3 else "red"
    lines = [
        f"[{style}]q={quality}[/{style}]  next review in {outcome.item.sm2.interval} day(s) "
        f"({to_iso(outcome.item.next_review_at)})",
        f"+{outcome.gained_xp} XP  |  Level {outcome.progress.level} "
        f"({outcome.progress.current_xp}/{outcome.progress.xp_for_next_level})",
    ]
    if outcome.mastery:
        lines.append(
            f"{outcome.mastery.node_id}: confidence {outcome.mastery.confidence_score:g}, "
            f"stability {outcome.mastery.stability_index:g}"
        )
    if outcome.leveled_up:
        lines.append(f"[bold magenta]Level up! Now level {outcome.progress.level}[/bold magenta]")
    console.print(Panel("\n".join(lines), title="Review Recorded", border_style=style))


@app.command()
def weak(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph to analyse"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum concepts"),
) -> None:
    """Show concepts needing immediate attention."""
    try:
        insights = _service(ctx).weak_nodes(graph_id, limit=limit)
    except SynapseError as e:
        _fail(str(e))

    if not insights:
        console.print("[green]No weak concepts detected.[/green]")
        return

    table = Table(title="Weak Concepts")
    table.add_column("Concept")
    table.add_column("Confidence", justify="right")
    table.add_column("Stability", justify="right")
    table.add_column("Errors 7d", justify="right")
    table.add_column("Priority", justify="right")
    table.add_column("Reason")
    for insight in insights:
        table.add_row(
            insight.label,
            f"{insight.confidence:g}",
            f"{insight.stability:g}",
            str(insight.errors_7d),
            f"{insight.priority:g}",
            insight.reason,
        )
    console.print(table)


@app.command()
def progress(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph to report on"),
) -> None:
    """Show level, XP and per-concept mastery."""
    service = _service(ctx)
    try:
        current = service.progress(graph_id)
        layer = service.mastery(graph_id)
        labels = service.get_graph(graph_id).labels()
    except SynapseError as e:
        _fail(str(e))

    console.print(f"\n[bold cyan]Level {current.level}[/bold cyan]  "
                  f"{current.current_xp}/{current.xp_for_next_level} XP")

    table = Table(title="Mastery")
    table.add_column("Concept")
    table.add_column("Confidence", justify="right")
    table.add_column("Stability", justify="right")
    table.add_column("Level")
    for state in layer:
        level = MasteryLevel.from_score(state.confidence_score)
        table.add_row(
            labels.get(state.node_id, state.node_id),
            f"{state.confidence_score:g}",
            f"{state.stability_index:g}",
            f"[{level.color}]{level.display_name}[/{level.color}]",
        )
    console.print(table)


@app.command()
def export(
    ctx: typer.Context,
    graph_id: str = typer.Argument(..., help="Graph whose items to export"),
    output: Path = typer.Option(..., "--output", "-o", help="Destination file"),
    fmt: str = typer.Option("anki", "--format", "-f", help="anki or json"),
) -> None:
    """Export a graph's study items for Anki or as JSON."""
    if fmt not in ("anki", "json"):
        _fail("Format must be 'anki' or 'json'")

    service = _service(ctx)
    try:
        graph = service.get_graph(graph_id)
        items = service.items(graph_id)
    except SynapseError as e:
        _fail(str(e))

    if fmt == "anki":
        content = format_for_anki_txt(items)
    else:
        study_set = StudySet(id=graph.id, title=graph.title, items=items, created_at=graph.created_at)
        content = format_for_json(study_set)

    output.write_text(content, encoding="utf-8")
    console.print(f"[green]Exported {len(items)} item(s) to {output}[/green]")


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings(), level="WARNING")
    app()


if __name__ == "__main__":
    main()
