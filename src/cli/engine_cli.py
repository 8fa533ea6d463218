"""
CogniGuide CLI - learning state engine from the terminal.

Drives the engine against a local state store, the same way the browser
client does after each tutor turn:

Usage:
    cogniguide session s-42                 # Switch the active session
    cogniguide apply-turn turn.json         # Consolidate a tutor response
    cogniguide validate                     # Check the graph is a DAG
    cogniguide due                          # Show the review queue
    cogniguide review card-1 4              # Rate a card (1-5)
    cogniguide recommend                    # What to do next
    cogniguide plan -o plan.md              # Export a Markdown study plan
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from src.adaptive.models import RecommendationConfig
from src.adaptive.recommendation_engine import RecommendationEngine, export_plan
from src.core.models import ChatMessage, Priority, SavedSession
from src.core.schemas import parse_tutor_response
from src.delivery.state_store import StateStore
from src.graph.analysis import analyze_graph
from src.graph.consolidator import consolidate_turn, validate_tree
from src.study.card_io import (
    AnkiCard,
    drafts_to_cards,
    export_to_anki,
    extract_key_cards,
    import_from_anki,
)
from src.study.spaced_repetition import SM2Config, SM2Scheduler, memory_strength, now_ms
from src.study.statistics import calculate_statistics

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="cogniguide",
    help="🧠 CogniGuide - adaptive learning state engine",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

DEFAULT_SESSION = "default"


@app.callback()
def main_callback(
    ctx: typer.Context,
    db: Annotated[
        Optional[Path], typer.Option("--db", help="State database path")
    ] = None,
) -> None:
    """Open the state store shared by all commands."""
    settings = get_settings()
    ctx.obj = StateStore(db or Path(settings.state_db_path))


def _store(ctx: typer.Context) -> StateStore:
    return ctx.obj


def _active_session(store: StateStore) -> SavedSession:
    session_id = store.get_active_session() or DEFAULT_SESSION
    return store.get_session(session_id) or SavedSession(id=session_id, topic=session_id)


def _scheduler() -> SM2Scheduler:
    return SM2Scheduler(SM2Config.from_settings())


# =============================================================================
# Graph Commands
# =============================================================================


@app.command()
def session(
    ctx: typer.Context,
    session_id: Annotated[Optional[str], typer.Argument(help="Session to activate")] = None,
    topic: Annotated[Optional[str], typer.Option("--topic", "-t", help="Topic for a new session")] = None,
) -> None:
    """Show or switch the active session."""
    store = _store(ctx)

    if session_id is None:
        current = _active_session(store)
        console.print(f"Active session: [cyan]{current.id}[/] ({len(current.concepts)} concepts)")
        return

    store.set_active_session(session_id)
    if store.get_session(session_id) is None:
        store.upsert_session(SavedSession(id=session_id, topic=topic or session_id, title=topic or ""))
        console.print(f"[green]Created session {session_id}[/]")
    else:
        console.print(f"[green]Switched to session {session_id}[/]")


@app.command("apply-turn")
def apply_turn(
    ctx: typer.Context,
    turn_file: Annotated[Path, typer.Argument(help="Tutor response JSON file")],
    requested_for: Annotated[
        Optional[str],
        typer.Option("--session", "-s", help="Session the turn was requested for"),
    ] = None,
) -> None:
    """Consolidate one tutor response into the active session's graph."""
    store = _store(ctx)
    current = _active_session(store)

    if requested_for is not None and requested_for != current.id:
        console.print(
            f"[yellow]Discarding stale response for {requested_for}; "
            f"active session is {current.id}[/]"
        )
        raise typer.Exit(0)

    try:
        payload = json.loads(turn_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {turn_file}: {e}[/]")
        raise typer.Exit(1)

    response = parse_tutor_response(payload)

    before = len(current.concepts)
    current.learning_state = consolidate_turn(
        current.learning_state, response, get_settings().merge_similarity_threshold
    )

    now = now_ms()
    if response.conversational_reply:
        current.messages.append(
            ChatMessage(
                id=f"msg-{now}",
                role="model",
                content=response.conversational_reply,
                timestamp=now,
            )
        )
    current.last_modified = now
    store.upsert_session(current)

    state = current.learning_state
    console.print(
        f"[green]✓[/] {len(state.concepts)} concepts (+{len(state.concepts) - before}), "
        f"{len(state.links)} links"
    )
    if not validate_tree(state.concepts, state.links):
        console.print("[yellow]Warning: graph contains a cycle[/]")


@app.command()
def validate(ctx: typer.Context) -> None:
    """Validate that the active graph is a well-formed DAG."""
    state = _active_session(_store(ctx)).learning_state
    if validate_tree(state.concepts, state.links):
        console.print("[green]✓ Graph is valid[/]")
    else:
        console.print("[red]✗ Graph has dangling links or cycles[/]")
        raise typer.Exit(1)


@app.command()
def graph(ctx: typer.Context) -> None:
    """Show structure of the active graph."""
    state = _active_session(_store(ctx)).learning_state
    analysis = analyze_graph(state.concepts, state.links, get_settings().max_chain_count)

    table = Table(title="Knowledge Graph")
    table.add_column("Concept", style="cyan")
    table.add_column("Mastery")
    table.add_column("Depth", justify="right")
    table.add_column("Role")

    roots, leaves = set(analysis.roots), set(analysis.leaves)
    for concept in state.concepts:
        role = "root" if concept.id in roots else "leaf" if concept.id in leaves else ""
        table.add_row(concept.name, concept.mastery.value, str(analysis.depth(concept.id)), role)

    console.print(table)
    console.print(
        f"[dim]{len(analysis.chains)} chains, {len(analysis.clusters)} clusters[/]"
    )


# =============================================================================
# Review Commands
# =============================================================================


@app.command("add-card")
def add_card(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Card question")],
    answer: Annotated[str, typer.Argument(help="Card answer")],
    concept: Annotated[Optional[str], typer.Option("--concept", "-c", help="Linked concept id")] = None,
    priority: Annotated[str, typer.Option("--priority", "-p", help="high, medium or low")] = "medium",
    tags: Annotated[Optional[list[str]], typer.Option("--tag", help="Tag (repeatable)")] = None,
) -> None:
    """Create a review card in the active session."""
    store = _store(ctx)
    card = _scheduler().create_card(
        question,
        answer,
        _active_session(store).id,
        concept_id=concept,
        priority=Priority.parse(priority),
        tags=tags or [],
    )
    store.save_cards(store.load_cards() + [card])
    console.print(f"[green]✓ Created {card.id}[/]")


@app.command()
def extract(
    ctx: typer.Context,
    text_file: Annotated[Path, typer.Argument(help="Tutor reply text file")],
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Only list the drafts")] = False,
) -> None:
    """Extract flashcard drafts from a tutor reply."""
    store = _store(ctx)
    drafts = extract_key_cards(text_file.read_text(encoding="utf-8"))
    if not drafts:
        console.print("[dim]No key concepts found[/]")
        return

    for draft in drafts:
        console.print(f"• [cyan]{draft.question}[/] → {draft.answer}")

    if not dry_run:
        cards = drafts_to_cards(drafts, _active_session(store).id, _scheduler())
        store.save_cards(store.load_cards() + cards)
        console.print(f"[green]✓ Added {len(cards)} cards[/]")


@app.command()
def due(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Rows to show")] = 20,
) -> None:
    """Show the review queue, due cards first."""
    scheduler = _scheduler()
    cards = scheduler.sort_by_priority(_store(ctx).load_cards())

    table = Table(title="Review Queue")
    table.add_column("ID", style="dim")
    table.add_column("Question", style="cyan")
    table.add_column("Priority")
    table.add_column("Strength", justify="right")
    table.add_column("Next")

    for card in cards[:limit]:
        table.add_row(
            card.id,
            card.question,
            card.priority.value,
            f"{memory_strength(card)}%",
            scheduler.time_until_review(card),
        )
    console.print(table)


@app.command()
def review(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to rate")],
    quality: Annotated[int, typer.Argument(min=1, max=5, help="Recall quality 1-5")],
    time_ms: Annotated[int, typer.Option("--time-ms", help="Answer time in ms")] = 0,
) -> None:
    """Rate a card and reschedule it."""
    store = _store(ctx)
    cards = store.load_cards()
    if not any(card.id == card_id for card in cards):
        console.print(f"[red]Unknown card {card_id}[/]")
        raise typer.Exit(1)

    scheduler = _scheduler()
    cards = [
        scheduler.process_review(card, quality, time_ms) if card.id == card_id else card
        for card in cards
    ]
    store.save_cards(cards)

    updated = next(card for card in cards if card.id == card_id)
    console.print(
        f"[green]✓[/] next review in {updated.interval}d "
        f"(EF {updated.ease_factor:.2f}, reps {updated.repetitions})"
    )


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show review statistics."""
    result = calculate_statistics(_store(ctx).load_cards())

    table = Table(title="Review Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Total cards", str(result.total_cards))
    table.add_row("Due", str(result.due_cards))
    table.add_row("Reviewed today", str(result.reviewed_today))
    table.add_row("Average quality", f"{result.average_quality}")
    table.add_row("Average EF", f"{result.average_ease_factor}")
    dist = result.memory_strength_distribution
    table.add_row("Weak / Medium / Strong", f"{dist.weak} / {dist.medium} / {dist.strong}")
    console.print(table)


@app.command("export-anki")
def export_anki(
    ctx: typer.Context,
    output: Annotated[Path, typer.Argument(help="Output JSON file")],
) -> None:
    """Export cards as question/answer/tags JSON."""
    exported = export_to_anki(_store(ctx).load_cards())
    output.write_text(
        json.dumps([c.to_dict() for c in exported], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    console.print(f"[green]✓ Exported {len(exported)} cards to {output}[/]")


@app.command("import-anki")
def import_anki(
    ctx: typer.Context,
    input_file: Annotated[Path, typer.Argument(help="JSON file of question/answer/tags")],
) -> None:
    """Import cards into the active session."""
    store = _store(ctx)
    try:
        raw = json.loads(input_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {input_file}: {e}[/]")
        raise typer.Exit(1)

    if not isinstance(raw, list):
        console.print(f"[red]{input_file} must contain a JSON list of cards[/]")
        raise typer.Exit(1)

    skipped = sum(1 for item in raw if not isinstance(item, dict))
    if skipped:
        logger.warning(f"Skipping {skipped} entries in {input_file} that are not card objects")

    anki_cards = [AnkiCard.from_dict(item) for item in raw if isinstance(item, dict)]
    cards = import_from_anki(anki_cards, _active_session(store).id)
    store.save_cards(store.load_cards() + cards)
    console.print(f"[green]✓ Imported {len(cards)} cards[/]")


# =============================================================================
# Recommendation Commands
# =============================================================================


def _recommend(store: StateStore, max_results: int | None, rest_breaks: bool):
    settings = get_settings()
    config = RecommendationConfig.from_settings()
    if max_results is not None:
        config.max_recommendations = max_results
    config.enable_rest_breaks = config.enable_rest_breaks and rest_breaks

    current = _active_session(store)
    engine = RecommendationEngine(config, max_chains=settings.max_chain_count)
    return engine.generate(
        current.learning_state.concepts,
        current.learning_state.links,
        store.load_cards(),
        current.id,
        store.load_sessions(),
    )


@app.command()
def recommend(
    ctx: typer.Context,
    max_results: Annotated[Optional[int], typer.Option("--max", "-n", help="Maximum results")] = None,
    rest_breaks: Annotated[bool, typer.Option("--rest/--no-rest", help="Include rest breaks")] = True,
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """Recommend what to do next."""
    recs = _recommend(_store(ctx), max_results, rest_breaks)

    if as_json:
        console.print_json(json.dumps([r.to_dict() for r in recs], ensure_ascii=False))
        return

    if not recs:
        console.print("[dim]Nothing to recommend yet[/]")
        return

    colors = {"high": "red", "medium": "yellow", "low": "green"}
    for rec in recs:
        console.print(
            Panel(
                f"{rec.description}\n[dim]{rec.reason}[/]",
                title=f"[{colors[rec.priority.value]}]{rec.priority.value.upper()}[/] {rec.title}",
                subtitle=f"{rec.estimated_time or '?'} min · {rec.confidence_score:.0%}",
                border_style=colors[rec.priority.value],
            )
        )


@app.command()
def plan(
    ctx: typer.Context,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write plan to file")] = None,
) -> None:
    """Export recommendations as a Markdown study plan."""
    markdown = export_plan(_recommend(_store(ctx), None, True))
    if output:
        output.write_text(markdown, encoding="utf-8")
        console.print(f"[dim]Plan written to {output}[/]")
    else:
        console.print(markdown)


# =============================================================================
# Status Commands
# =============================================================================


@app.command("config")
def show_config() -> None:
    """Show effective configuration."""
    settings = get_settings()

    table = Table(title="CogniGuide Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for key, value in settings.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """CLI entry point."""
    settings = get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=settings.log_level, rotation="10 MB")

    app()


if __name__ == "__main__":
    run()
