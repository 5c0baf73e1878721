"""
wortschatz CLI - German vocabulary trainer with spaced repetition.

Usage:
    wortschatz add Haus                # Look up and store a word
    wortschatz add gehen -c verb       # Force the part of speech
    wortschatz list --due              # Words due for review
    wortschatz review                  # Start a review session
    wortschatz review --anyway         # Review even if nothing is due
    wortschatz show Haus               # Details and review history
    wortschatz remove Haus             # Forget a word
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import typer
from loguru import logger
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from wortschatz.config import Settings, get_settings
from wortschatz.core.errors import (
    ContentGenerationFailure,
    GradingFailure,
    InvalidAnswer,
    NothingDue,
    PersistenceFailure,
)
from wortschatz.core.models import (
    MasteryHint,
    WordCategory,
    WordEntry,
    new_review_record,
    normalize_key,
    utcnow,
)
from wortschatz.delivery.scheduler import SchedulingEngine
from wortschatz.delivery.state_store import DetailsCache, SqlWordStore
from wortschatz.exercises import Archetype
from wortschatz.exercises.base import ExercisePresentation, GradeResult
from wortschatz.reasoning.gemini import GeminiReasoningService
from wortschatz.reasoning.schemas import WordDetails
from wortschatz.reasoning.service import ReasoningService
from wortschatz.session.controller import (
    SessionController,
    SessionEvent,
    SessionState,
    WordFilter,
)

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="wortschatz",
    help="German vocabulary trainer with spaced repetition",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"

ARCHETYPE_TITLES = {
    Archetype.FLASHCARD: "FLASHCARD",
    Archetype.MULTIPLE_CHOICE: "MULTIPLE CHOICE",
    Archetype.ARTICLE_DRILL: "DER / DIE / DAS",
    Archetype.VERB_FORM_DRILL: "PERFEKT",
    Archetype.CLOZE_SENTENCE: "LÜCKENTEXT",
    Archetype.FREE_RECALL: "TRANSLATE",
}

MASTERY_STYLES = {
    MasteryHint.NEW: "[cyan]new[/cyan]",
    MasteryHint.IN_PROGRESS: "[yellow]in progress[/yellow]",
    MasteryHint.LEARNED: "[green]learned[/green]",
}

QUIT_INPUTS = {"q", "quit", "exit"}
SKIP_INPUTS = {"s", "skip"}


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)


def get_store(settings: Settings) -> SqlWordStore:
    return SqlWordStore(settings.database_url)


def get_service(settings: Settings) -> ReasoningService:
    return GeminiReasoningService.from_settings(settings)


@contextmanager
def _store_errors() -> Iterator[None]:
    """Turn a word store failure into a red message and exit code 1."""
    try:
        yield
    except PersistenceFailure as e:
        logger.error(f"Word store failure: {e}")
        console.print(f"[red]Word store error:[/red] {e}")
        raise typer.Exit(1)


def _parse_category(value: str | None) -> WordCategory | None:
    if value is None:
        return None
    try:
        return WordCategory(value.strip().lower())
    except ValueError:
        choices = ", ".join(c.value for c in WordCategory)
        console.print(f"[red]Unknown category '{value}'.[/red] Choose one of: {choices}")
        raise typer.Exit(2)


# =============================================================================
# Word Commands
# =============================================================================


@app.command()
def add(
    word: Annotated[str, typer.Argument(help="German word in its citation form")],
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Part of speech (noun, verb, ...)")
    ] = None,
) -> None:
    """
    Add a word. Details come from the reasoning service (or the cache).

    Nouns are only stored together with their article.
    """
    settings = get_settings()
    forced_category = _parse_category(category)

    word = " ".join(word.split())
    if not word:
        console.print("[red]Word must not be empty[/red]")
        raise typer.Exit(2)

    with _store_errors():
        _add_word(settings, get_store(settings), word, forced_category)


def _add_word(
    settings: Settings,
    store: SqlWordStore,
    word: str,
    forced_category: WordCategory | None,
) -> None:
    if store.get(word) is not None:
        console.print(f"[yellow]'{word}' is already in your list[/yellow]")
        raise typer.Exit(1)

    cache = DetailsCache(store, ttl_days=settings.details_cache_ttl_days)
    details = cache.get(word)
    if details is None:
        service = get_service(settings)
        try:
            with console.status(f"Looking up '{word}'..."):
                details = asyncio.run(
                    asyncio.wait_for(
                        service.get_word_details(word, forced_category),
                        timeout=settings.service_timeout_seconds,
                    )
                )
            cache.set(word, details)
        except (ContentGenerationFailure, asyncio.TimeoutError) as e:
            logger.warning(f"Details lookup for '{word}' failed: {e!r}")
            details = None

    resolved = forced_category or (details.part_of_speech if details else None)
    if details is None:
        if resolved is None or resolved == WordCategory.NOUN:
            console.print(
                f"[red]Could not look up '{word}'.[/red] "
                "Nouns need their article; pass --category for other words to add them without details."
            )
            raise typer.Exit(1)
        console.print("[yellow]⚠ No details available - this word will be practised with flashcards[/yellow]")
    elif resolved == WordCategory.NOUN and details.noun_details is None:
        console.print(f"[red]No article found for '{word}' - nouns need der, die or das.[/red]")
        raise typer.Exit(1)

    entry = WordEntry(text=word, record=new_review_record(word, resolved), details=details)
    store.upsert(entry)

    console.print(_details_panel(entry))
    console.print(f"[green]✓ Added '{word}'[/green]")


@app.command()
def remove(
    word: Annotated[str, typer.Argument(help="Word to remove")],
) -> None:
    """Remove a word and its review state."""
    with _store_errors():
        removed = get_store(get_settings()).delete(word)
    if not removed:
        console.print(f"[yellow]'{word}' is not in your list[/yellow]")
        raise typer.Exit(1)
    console.print(f"[green]✓ Removed '{word}'[/green]")


@app.command("list")
def list_words(
    due: Annotated[bool, typer.Option("--due", "-d", help="Only words due now")] = False,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Only this part of speech")
    ] = None,
) -> None:
    """List stored words with their scheduling state."""
    wanted = _parse_category(category)
    engine = SchedulingEngine()
    now = utcnow()

    with _store_errors():
        store = get_store(get_settings())
        entries = store.get_all()
        due_count = store.count_due(now)
    if wanted:
        entries = [e for e in entries if e.category == wanted]
    if due:
        entries = [e for e in entries if e.record.is_due(now)]

    if not entries:
        console.print("[dim]No words found.[/dim]")
        return

    table = Table(title=f"Wortschatz ({len(entries)} shown, {due_count} due in total)")
    table.add_column("Word", style="bold")
    table.add_column("Category", style="cyan")
    table.add_column("Mastery")
    table.add_column("Ease", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Next review")

    for entry in sorted(entries, key=lambda e: (e.record.next_review_at, e.word_key)):
        record = entry.record
        article = entry.details.article if entry.details else None
        overdue = engine.days_overdue(record, now)
        if overdue:
            next_review = f"[red]due ({overdue}d overdue)[/red]"
        elif engine.is_due(record, now):
            next_review = "[yellow]due[/yellow]"
        else:
            next_review = record.next_review_at.strftime("%Y-%m-%d")
        table.add_row(
            f"{article} {entry.text}" if article else entry.text,
            record.category.value,
            MASTERY_STYLES[record.mastery_hint],
            f"{record.ease_factor:.2f}",
            f"{record.interval}d",
            next_review,
        )

    console.print(table)


@app.command()
def show(
    word: Annotated[str, typer.Argument(help="Word to show")],
) -> None:
    """Show a word's details, scheduling state and recent reviews."""
    with _store_errors():
        store = get_store(get_settings())
        entry = store.get(word)
        history = store.review_history(entry.word_key) if entry else []
    if entry is None:
        console.print(f"[yellow]'{word}' is not in your list[/yellow]")
        raise typer.Exit(1)

    console.print(_details_panel(entry))

    record = entry.record
    state = Table(box=box.SIMPLE, show_header=False)
    state.add_column("Field", style="cyan")
    state.add_column("Value")
    state.add_row("Mastery", MASTERY_STYLES[record.mastery_hint])
    state.add_row("Ease factor", f"{record.ease_factor:.2f}")
    state.add_row("Interval", f"{record.interval} days")
    state.add_row("Repetitions", str(record.repetitions))
    state.add_row("Next review", record.next_review_at.strftime("%Y-%m-%d %H:%M"))
    if record.last_reviewed_at:
        state.add_row("Last review", record.last_reviewed_at.strftime("%Y-%m-%d %H:%M"))
    console.print(state)

    if history:
        table = Table(title="Recent reviews")
        table.add_column("When")
        table.add_column("Exercise", style="cyan")
        table.add_column("Outcome")
        table.add_column("Quality", justify="right")
        for review in history:
            table.add_row(
                review.reviewed_at.strftime("%Y-%m-%d %H:%M"),
                review.archetype,
                review.outcome or "",
                str(review.quality),
            )
        console.print(table)


def _details_panel(entry: WordEntry) -> Panel:
    details: WordDetails | None = entry.details
    title = entry.text
    if details is None:
        return Panel("[dim]No details stored[/dim]", title=title, border_style="cyan")

    lines = [f"[bold]{details.translation}[/bold]"]
    if details.alternative_translations:
        lines.append(f"[dim]also: {', '.join(details.alternative_translations)}[/dim]")
    if details.noun_details:
        title = f"{details.noun_details.article} {entry.text}"
        if details.noun_details.plural:
            lines.append(f"Plural: {details.noun_details.plural}")
    if details.verb_details:
        lines.append(f"Perfekt: {details.verb_details.perfect}")
        if details.verb_details.verb_government:
            lines.append(f"Rektion: {details.verb_details.verb_government}")
    if details.adjective_details:
        adj = details.adjective_details
        lines.append(f"Steigerung: {entry.text}, {adj.comparative}, {adj.superlative}")
    if details.preposition_details:
        lines.append(f"Kasus: {details.preposition_details.case}")
    if details.conjunction_details:
        position = (
            "verb at the end"
            if details.conjunction_details.verb_position == "endOfSentence"
            else "verb in second position"
        )
        lines.append(f"Wortstellung: {position}")
    for example in details.examples[:2]:
        lines.append(f"\n[italic]{example.german}[/italic]\n[dim]{example.russian}[/dim]")

    return Panel(
        "\n".join(lines),
        title=f"[bold cyan]{title}[/bold cyan]",
        subtitle=details.part_of_speech.value,
        border_style="cyan",
    )


# =============================================================================
# Review Session
# =============================================================================


@app.command()
def review(
    anyway: Annotated[
        bool, typer.Option("--anyway", "-a", help="Review words even if none are due")
    ] = False,
    limit: Annotated[
        int | None, typer.Option("--limit", "-n", help="Maximum words in this session")
    ] = None,
    category: Annotated[
        str | None, typer.Option("--category", "-c", help="Only this part of speech")
    ] = None,
) -> None:
    """
    Start an interactive review session.

    Type 's' to skip a word, 'q' to end the session, '?' if you don't know.
    """
    settings = get_settings()
    wanted = _parse_category(category)
    word_filter = WordFilter(categories={wanted} if wanted else set())

    with _store_errors():
        store = get_store(settings)
        controller = SessionController.from_settings(store, get_service(settings), settings)
        asyncio.run(_run_review(controller, word_filter, anyway, limit))


async def _run_review(
    controller: SessionController,
    word_filter: WordFilter,
    anyway: bool,
    limit: int | None,
) -> None:
    try:
        session_id = await controller.start_session(word_filter, review_anyway=anyway, limit=limit)
    except NothingDue as e:
        if not e.available:
            console.print("[yellow]No words yet - add some with 'wortschatz add'.[/yellow]")
            return
        console.print("[green]Nothing due for review. Great job! 🎉[/green]")
        if not Confirm.ask(f"Review {e.available} words anyway?", default=False):
            return
        session_id = await controller.start_session(word_filter, review_anyway=True, limit=limit)

    shown = {"index": 0}

    def on_event(event: SessionEvent) -> None:
        current = event.session
        if event.current == SessionState.PRESENTING and current.index != shown["index"]:
            shown["index"] = current.index
            console.print(f"\n[dim]Word {current.index + 1}/{len(current.items)}[/dim]")

    unsubscribe = controller.subscribe(on_event)
    session = controller.get_session(session_id)
    # The first PRESENTING event fired inside start_session, before subscribing
    console.print(f"\n[dim]Word 1/{len(session.items)}[/dim]")

    try:
        while session.state == SessionState.PRESENTING:
            presentation = await controller.get_current_exercise(session_id)
            answer = _ask(presentation)

            if answer in QUIT_INPUTS:
                break
            if answer in SKIP_INPUTS:
                controller.skip(session_id)
                continue

            result = await _grade_with_retry(controller, session_id, answer)
            if result is None:
                continue

            _show_result(presentation, result)
            outcome = controller.advance(session_id)
            if not outcome.progress_saved:
                console.print(f"[red]⚠ {outcome.warning}[/red]")
    finally:
        unsubscribe()
        summary = controller.close_session(session_id)

    table = Table(title="Session Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Reviewed", f"{summary.graded}/{summary.total}")
    table.add_row("Correct", str(summary.correct))
    table.add_row("Accuracy", f"{summary.accuracy:.0f}%")
    if summary.skipped:
        table.add_row("Skipped", str(summary.skipped))
    if summary.fallbacks:
        table.add_row("Flashcard fallbacks", str(summary.fallbacks))
    console.print(table)
    for warning in summary.warnings:
        console.print(f"[red]⚠ {warning}[/red]")


async def _grade_with_retry(
    controller: SessionController, session_id: str, answer: str
) -> GradeResult | None:
    """Submit an answer; on a grading failure offer retry or skip."""
    try:
        return await controller.submit_answer(session_id, answer)
    except InvalidAnswer as e:
        console.print(f"[yellow]{e}[/yellow]")
        return None
    except GradingFailure as e:
        console.print(f"[red]Could not check your answer:[/red] {e}")

    while True:
        if not Confirm.ask("Try again?", default=True):
            controller.skip(session_id)
            return None
        try:
            return await controller.submit_answer(session_id)
        except GradingFailure as e:
            console.print(f"[red]Still failing:[/red] {e}")


def _ask(presentation: ExercisePresentation) -> str:
    """Render the exercise and read the learner's answer."""
    title = f"[bold yellow]{ARCHETYPE_TITLES[presentation.archetype]}[/bold yellow]"

    if presentation.archetype == Archetype.FLASHCARD:
        if presentation.is_fallback:
            console.print("[dim]Exercise unavailable right now - showing a flashcard instead[/dim]")
        console.print(Panel(f"[bold]{presentation.prompt}[/bold]", title=title, border_style="cyan"))
        reveal = Prompt.ask("[dim]Enter to reveal[/dim]", default="", show_default=False)
        if reveal.strip().lower() in QUIT_INPUTS | SKIP_INPUTS:
            return reveal.strip().lower()
        _show_flashcard_back(presentation)
        answer = Prompt.ask("[1] forgot  [2] remembered  [3] easy")
        return answer.strip().lower()

    body = f"[bold]{presentation.prompt}[/bold]"
    if presentation.options:
        options = Table(box=box.MINIMAL, show_header=False)
        options.add_column("Index", style="cyan", justify="right", width=4)
        options.add_column("Option", style="white")
        for i, option in enumerate(presentation.options):
            options.add_row(f"[{i + 1}]", option)
        console.print(Panel(body, title=title, border_style="yellow"))
        console.print(options)
    else:
        translation = presentation.context.get("translation")
        if translation and presentation.archetype != Archetype.FREE_RECALL:
            body += f"\n[dim]{translation}[/dim]"
        console.print(Panel(body, title=title, border_style="yellow"))

    return Prompt.ask("Answer").strip()


def _show_flashcard_back(presentation: ExercisePresentation) -> None:
    context = presentation.context
    lines = [f"[bold]{presentation.expected_answer}[/bold]"]
    if context.get("article"):
        lines.append(f"{context['article']} {presentation.word}")
    if context.get("plural"):
        lines.append(f"Plural: {context['plural']}")
    if context.get("perfect"):
        lines.append(f"Perfekt: {context['perfect']}")
    for example in context.get("examples", [])[:1]:
        lines.append(f"\n[italic]{example['german']}[/italic]")
    console.print(Panel("\n".join(lines), border_style="dim"))


def _show_result(presentation: ExercisePresentation, result: GradeResult) -> None:
    if presentation.archetype == Archetype.FLASHCARD:
        console.print(f"[dim]{result.explanation}[/dim]")
        return

    if result.is_correct:
        console.print(f"[green]✓ {result.explanation or 'Correct!'}[/green]")
    else:
        console.print(f"[red]✗ {result.explanation or 'Incorrect'}[/red]")
        if result.correct_answer:
            console.print(f"  Correct answer: [bold]{result.correct_answer}[/bold]")
    if result.hint:
        console.print(f"  [yellow]💡 {result.hint}[/yellow]")


# =============================================================================
# Entry Point
# =============================================================================


@app.callback()
def callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """
    German vocabulary trainer with SM-2 spaced repetition.

    \b
    Quick Start:
      wortschatz add Haus       # Add a word
      wortschatz review         # Review what is due
    """
    if verbose:
        configure_logging("DEBUG")


def main() -> None:
    """CLI entry point."""
    configure_logging(get_settings().log_level)
    app()


if __name__ == "__main__":
    main()
