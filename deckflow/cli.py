"""Command-line interface for Deckflow."""

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deckflow.cancellation import CancellationSignal
from deckflow.config.logging import configure_logging
from deckflow.config.settings import get_settings
from deckflow.dealflow import save_to_dealflow
from deckflow.errors import PipelineError
from deckflow.formatting import ask_label, revenue_label
from deckflow.intake import batch_policy, validate_single
from deckflow.models import AnalysisRun, AuthContext, Batch, Rejection, Snapshot, SourceDocument
from deckflow.models.enums import ItemStatus

app = typer.Typer(
    name="deckflow",
    help="Deckflow - Data room uploads and pitch deck snapshots",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    settings = get_settings()
    configure_logging(level="DEBUG" if verbose else "WARNING", json=settings.log_json)


@app.command()
def analyze(
    deck_path: Path = typer.Argument(
        ...,
        help="Path to the pitch deck (PDF or image)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    caller: str = typer.Option("cli", "--caller", help="Caller id recorded with the analysis"),
    save: bool = typer.Option(False, "--save", help="Save the snapshot to dealflow"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Analyze a pitch deck and print the investor snapshot."""
    from deckflow.llm import OllamaSnapshotAnalyzer
    from deckflow.pipeline import AnalysisPipeline
    from deckflow.storage import JsonDealTracker

    _setup_logging(verbose)
    settings = get_settings()

    document = SourceDocument.from_path(deck_path)
    result = validate_single(document)
    if isinstance(result, Rejection):
        console.print(f"[red]Rejected:[/red] {result.message}")
        sys.exit(1)

    console.print(
        Panel.fit(
            "[bold blue]Deckflow[/bold blue]\n"
            f"Analyzing {document.name}...",
            border_style="blue",
        )
    )

    context = AuthContext(caller_id=caller)
    signal = CancellationSignal(timeout=settings.analysis_timeout_seconds)
    pipeline = AnalysisPipeline(
        OllamaSnapshotAnalyzer(settings=settings),
        observer=_print_step,
    )

    try:
        snapshot = asyncio.run(pipeline.analyze(document, context, signal=signal))
    except PipelineError as e:
        console.print(f"\n[red]Analysis failed[/red] at {e.stage.label if e.stage else 'unknown stage'}: {e.message}")
        if verbose:
            console.print_exception()
        sys.exit(1)

    _display_snapshot(snapshot)

    if save:
        tracker = JsonDealTracker(settings.data_dir)
        deal_id = asyncio.run(save_to_dealflow(snapshot, context, tracker))
        console.print(f"\n[green]Saved to dealflow:[/green] {deal_id}")


@app.command()
def upload(
    paths: list[Path] = typer.Argument(
        ...,
        help="Files to upload to the data room",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    company: str = typer.Option(..., "--company", "-c", help="Company name for the data room"),
    caller: str = typer.Option("cli", "--caller", help="Caller id owning the uploads"),
    referral_code: str = typer.Option(None, "--referral-code", help="Referral code to attach"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Upload files into a new data room."""
    from deckflow.storage import JsonRecordRegistry, LocalStorageSink
    from deckflow.transfer import TransferOrchestrator

    _setup_logging(verbose)
    settings = get_settings()

    if not company.strip():
        console.print("[red]Company name is required[/red]")
        sys.exit(1)

    batch = Batch(policy=batch_policy(settings))
    report = batch.submit(SourceDocument.from_path(p) for p in paths)
    for rejection in report.rejections:
        console.print(f"[yellow]Skipped:[/yellow] {rejection.message}")
    if not batch.items:
        console.print("[red]No files to upload[/red]")
        sys.exit(1)

    context = AuthContext(caller_id=caller, referral_code=referral_code)
    registry = JsonRecordRegistry(settings.data_dir)
    orchestrator = TransferOrchestrator(
        LocalStorageSink(settings.data_dir / "files"),
        registry,
        concurrency=settings.transfer_concurrency,
        on_progress=lambda percent: console.print(f"[dim]Uploading... {percent}%[/dim]"),
    )

    async def _run():
        await registry.create_batch(company.strip(), context, batch_id=batch.batch_id)
        return await orchestrator.transfer(batch, context)

    outcome = asyncio.run(_run())

    table = Table(title=f"Data room {outcome.batch_id}")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Detail", style="dim")
    for item in outcome.items:
        status = "[green]stored[/green]" if item.status == ItemStatus.PERSISTED else "[red]failed[/red]"
        table.add_row(item.name, status, item.storage_path or item.error_message or "")
    console.print(table)

    console.print(f"\n{outcome.completed_count} of {outcome.total_count} files uploaded")
    if outcome.owner_error:
        console.print(f"[yellow]Data room status not updated:[/yellow] {outcome.owner_error}")
    if outcome.failed_count:
        sys.exit(1)


@app.command()
def info() -> None:
    """Display system information and configuration."""
    from deckflow import __version__

    settings = get_settings()

    console.print(
        Panel.fit(
            "[bold blue]Deckflow[/bold blue]",
            border_style="blue",
        )
    )

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("Version", __version__)
    table.add_row("Analyzer Model", settings.analyzer_model_name)
    table.add_row("Ollama URL", settings.analyzer_base_url)
    table.add_row("Batch Limits", f"{settings.batch_max_files} files, {settings.batch_max_file_mb} MB each")
    table.add_row("Deck Limit", f"{settings.single_max_file_mb} MB")
    table.add_row("Page Cap", f"{settings.conversion_max_pages} pages @ {settings.conversion_max_dimension}px")
    table.add_row("Transfer Concurrency", str(settings.transfer_concurrency))
    table.add_row("Data Directory", str(settings.data_dir))

    console.print(table)


def _print_step(run: AnalysisRun) -> None:
    if run.is_running:
        console.print(f"[dim]{run.step_label}[/dim]")


def _display_snapshot(snapshot: Snapshot) -> None:
    """Display the investor snapshot.

    Args:
        snapshot: The validated snapshot.
    """
    console.print(f"\n[bold]{snapshot.company_name}[/bold]")
    if snapshot.tagline:
        console.print(f"[dim]{snapshot.tagline}[/dim]")

    console.print(
        f"\n[bold]Deal quality:[/bold] {snapshot.deal_quality.score:.0f}/100 "
        f"- {snapshot.deal_quality.verdict}"
    )

    tags = snapshot.tags
    labels = [
        tags.stage,
        tags.sector,
        tags.geography,
        revenue_label(tags.revenue),
        ask_label(tags.ask),
        *tags.traction_tags,
    ]
    labels = [label for label in labels if label]
    if labels:
        console.print("[dim]" + " | ".join(labels) + "[/dim]")

    for paragraph in snapshot.paragraphs:
        console.print(f"\n{paragraph}")

    for title, points in (("Strengths", snapshot.key_strengths), ("Risks", snapshot.key_risks)):
        if points:
            console.print(f"\n[bold]{title}[/bold]")
            for point in points:
                console.print(f"  - {point}")


if __name__ == "__main__":
    app()
