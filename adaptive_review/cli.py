"""
Typer CLI for the adaptive review engine.

Commands:
    adaptive-review init-db                  - Create database tables
    adaptive-review stats                    - Show training data and model status
    adaptive-review retrain                  - Retrain the review-delay model now
    adaptive-review predict USER FLASHCARD   - Predict the next review time
    adaptive-review plan USER                - Show the study plan for a learner
    adaptive-review import-csv FILE          - Import training rows from CSV
    adaptive-review generate-synthetic N     - Generate N synthetic training rows
    adaptive-review purge-synthetic          - Delete all synthetic training rows
    adaptive-review run-scheduler            - Run the weekly retraining loop
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

import typer
from loguru import logger
from rich import print as rprint
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config import get_settings
from adaptive_review.core.log_config import configure_logging
from adaptive_review.db.database import async_session_scope, dispose_engine, init_db
from adaptive_review.ml.model_store import ModelStore
from adaptive_review.ml.retraining_scheduler import RetrainingScheduler
from adaptive_review.ml.schemas import ImportResult, Prediction
from adaptive_review.service import AdaptiveReviewService

T = TypeVar("T")

app = typer.Typer(
    help="adaptive-review CLI: ML-driven spaced repetition scheduling",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show info-level logs"),
) -> None:
    """Adaptive review scheduling engine."""
    configure_logging(console_level="INFO" if verbose else "WARNING")


def _run_with_service(action: Callable[[AdaptiveReviewService], Awaitable[T]]) -> T:
    """Open one session, hand a service to action, and clean up the engine."""

    async def runner() -> T:
        store = ModelStore.from_settings()
        try:
            async with async_session_scope() as session:
                return await action(AdaptiveReviewService(session, store))
        finally:
            await dispose_engine()

    return asyncio.run(runner())


def _print_import_result(title: str, result: ImportResult) -> None:
    style = "green" if result.success else "red"
    lines = [
        f"Success: [{style}]{result.success}[/{style}]",
        f"Records added: {result.records_added}",
        f"Qualifying records in total: {result.total_records}",
    ]
    if result.error_message:
        lines.append(f"[red]Error:[/red] {result.error_message}")
    console.print(Panel("\n".join(lines), title=title))

    if result.errors:
        table = Table(title=f"Rejected rows ({len(result.errors)})")
        table.add_column("Message", style="yellow")
        for message in result.errors:
            table.add_row(message)
        console.print(table)


def _prediction_table(title: str, predictions: list[Prediction]) -> Table:
    table = Table(title=title)
    table.add_column("Flashcard", style="cyan", justify="right")
    table.add_column("Hours", justify="right")
    table.add_column("Review at (UTC)")
    table.add_column("Confidence", justify="right")
    table.add_column("Source", style="dim")
    table.add_column("Reason")

    for p in predictions:
        table.add_row(
            str(p.flashcard_id),
            f"{p.optimal_review_hours:.1f}",
            p.recommended_review_date.strftime("%Y-%m-%d %H:%M"),
            f"{p.confidence:.2f}",
            p.source,
            p.reason,
        )
    return table


# ========================================
# DATABASE
# ========================================


@app.command("init-db")
def init_db_command() -> None:
    """
    Create all engine tables if they don't exist.

    Safe to run multiple times (idempotent).
    """

    async def runner() -> None:
        try:
            await init_db()
        finally:
            await dispose_engine()

    asyncio.run(runner())
    rprint("[green]✓[/green] Database initialized!")


# ========================================
# MODEL
# ========================================


@app.command("stats")
def show_stats() -> None:
    """Show training data statistics and model status."""
    stats = _run_with_service(lambda service: service.get_training_stats())

    table = Table(title="Training Data")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Qualifying records", str(stats.total_records))
    table.add_row("Reviewed in last 24 hours", str(stats.records_last_24_hours))
    table.add_row("Reviewed in last 7 days", str(stats.records_last_7_days))
    table.add_row("Reviewed in last 30 days", str(stats.records_last_30_days))
    table.add_row("Unique users", str(stats.unique_users))
    table.add_row("Unique flashcards", str(stats.unique_flashcards))
    table.add_row("Average ease factor", f"{stats.average_ease_factor:.2f}")
    table.add_row("Average interval (days)", f"{stats.average_interval:.1f}")
    table.add_row("Average retention rate", f"{stats.average_retention_rate:.1f}")
    console.print(table)

    trained = "[green]yes[/green]" if stats.is_model_trained else "[yellow]no[/yellow]"
    can_train = "[green]yes[/green]" if stats.can_train else "[yellow]no[/yellow]"
    last = stats.last_training_date.isoformat(timespec="seconds") if stats.last_training_date else "-"
    console.print(
        Panel(
            f"Model trained: {trained}\nLast training: {last}\nEnough data to train: {can_train}",
            title="Model",
        )
    )


@app.command("retrain")
def retrain() -> None:
    """Retrain the model on recent progress history."""
    trained = _run_with_service(lambda service: service.retrain_model())

    if trained:
        rprint("[green]✓[/green] Model retrained and saved to", get_settings().get_model_path())
    else:
        rprint("[red]✗[/red] Retraining did not produce a model (see logs)")
        raise typer.Exit(code=1)


@app.command("run-scheduler")
def run_scheduler(
    force: bool = typer.Option(False, "--force", help="Run even if RETRAIN_ENABLED is false"),
) -> None:
    """Run the weekly retraining loop in the foreground until interrupted."""
    if not get_settings().retrain_enabled and not force:
        rprint("[yellow]⚠[/yellow] Background retraining is disabled (set RETRAIN_ENABLED=true or pass --force)")
        raise typer.Exit(code=1)

    async def runner() -> None:
        scheduler = RetrainingScheduler(ModelStore.from_settings())
        await scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            await scheduler.stop()
            await dispose_engine()

    try:
        asyncio.run(runner())
    except KeyboardInterrupt:
        logger.info("Scheduler interrupted")


# ========================================
# PREDICTION
# ========================================


@app.command("predict")
def predict(
    user_id: str = typer.Argument(..., help="Learner id"),
    flashcard_id: int = typer.Argument(..., help="Flashcard id"),
) -> None:
    """Predict when a learner should next review a flashcard."""
    prediction = _run_with_service(
        lambda service: service.predict_next_review_time(user_id, flashcard_id)
    )

    if prediction is None:
        rprint(f"[yellow]⚠[/yellow] No progress for user {user_id} on flashcard {flashcard_id}")
        raise typer.Exit(code=1)

    console.print(_prediction_table("Prediction", [prediction]))


@app.command("plan")
def plan(user_id: str = typer.Argument(..., help="Learner id")) -> None:
    """Show the learner's due flashcards ordered by predicted delay."""
    predictions = _run_with_service(lambda service: service.generate_study_plan(user_id))

    if not predictions:
        rprint(f"[dim]Nothing due for user {user_id}[/dim]")
        return

    console.print(_prediction_table(f"Study plan for {user_id} ({len(predictions)} cards)", predictions))


# ========================================
# TRAINING DATA
# ========================================


@app.command("import-csv")
def import_csv(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="CSV file"),
) -> None:
    """Import training rows from a CSV file (header line first)."""
    result = _run_with_service(lambda service: service.import_from_csv(file))
    _print_import_result(f"Import {file.name}", result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command("generate-synthetic")
def generate_synthetic(
    count: int = typer.Argument(..., help="Number of synthetic rows to generate"),
) -> None:
    """Generate synthetic training rows for unused (user, flashcard) pairs."""
    result = _run_with_service(lambda service: service.generate_synthetic_data(count))
    _print_import_result("Synthetic data", result)
    if not result.success:
        raise typer.Exit(code=1)


@app.command("purge-synthetic")
def purge_synthetic(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every synthetic training row."""
    if not yes:
        typer.confirm("Delete all synthetic training data?", abort=True)

    removed = _run_with_service(lambda service: service.delete_synthetic_data())
    rprint(f"[green]✓[/green] Deleted {removed} synthetic records")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
