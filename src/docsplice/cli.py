"""
CLI for docsplice.

Provides commands to translate documents, inspect their segmentation and
check the configured LLM provider.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from docsplice.chunking import needs_splitting
from docsplice.config import ProviderConfig, Settings, create_default_config, load_config
from docsplice.errors import ProviderError
from docsplice.logging_setup import setup_logging
from docsplice.pipeline import DocumentPipeline, PipelineCallbacks
from docsplice.processor import DocumentSegmenter
from docsplice.providers import RefinementProvider, create_provider, normalize_provider_kind
from docsplice.refinement import RefinementQueue
from docsplice.translators import create_translator

app = typer.Typer(
    name="docsplice",
    help="Split documents into translatable segments and splice translations back in.",
    add_completion=False,
)

console = Console()

EXIT_CANCELLED = 130


def get_settings(config_path: Path | None = None, verbose: bool = False) -> Settings:
    """Load settings from config file or defaults, and set up logging."""
    if config_path is not None and not config_path.exists():
        console.print(f"[red]Config file not found: {config_path}[/red]")
        raise typer.Exit(1)
    settings = load_config(config_path)
    if verbose:
        settings.logging.level = "DEBUG"
    setup_logging(settings.logging, console)
    return settings


def _provider_for(section: ProviderConfig, provider: str | None) -> RefinementProvider:
    try:
        return create_provider(section, provider)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None


def _display_config(settings: Settings, input_path: Path, output_path: Path | None) -> None:
    """Display the configuration being used."""
    config_table = Table(show_header=False, box=None, padding=(0, 2))
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="green")

    config_table.add_row("Input", str(input_path))
    config_table.add_row("Output", str(output_path) if output_path else "default")
    config_table.add_row("Engine", settings.translation.engine.value)
    config_table.add_row("", "")

    refinement = settings.refinement
    config_table.add_row("[bold]AI Refinement[/bold]", "on" if refinement.enabled else "off")
    if refinement.enabled:
        config_table.add_row("  Provider", refinement.provider.value)
        config_table.add_row("  Model", refinement.model or "default")
        config_table.add_row(
            "  Languages", f"{refinement.source_language} -> {refinement.target_language}"
        )
        config_table.add_row("  Chunk size", f"{refinement.chunk_chars} chars")

    console.print(
        Panel(config_table, title="[bold blue]docsplice[/bold blue]", border_style="blue")
    )


@app.command()
def translate(
    input_path: Path = typer.Argument(..., help="Document to translate (.txt, .docx, .epub, .pdf)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    refine: bool | None = typer.Option(
        None, "--refine/--no-refine", help="Polish translations with an LLM"
    ),
    provider: str | None = typer.Option(None, "--provider", "-p", help="Refinement provider"),
    model: str | None = typer.Option(None, "--model", "-m", help="Refinement model"),
    engine: str | None = typer.Option(
        None, "--engine", "-e", help="Primary engine: passthrough or provider"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Translate a document and write the result next to it."""
    settings = get_settings(config, verbose)

    if refine is not None:
        settings.refinement.enabled = refine
    if provider:
        try:
            settings.refinement.provider = normalize_provider_kind(provider)
        except ValueError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1) from None
    if model:
        settings.refinement.model = model

    try:
        translator = create_translator(settings, engine)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from None

    refiner = None
    if settings.refinement.enabled:
        refiner = RefinementQueue(_provider_for(settings.refinement, None), settings.refinement)

    _display_config(settings, input_path, output)

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(complete_style="green", finished_style="green"),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    ) as progress:
        translation_task = progress.add_task("[cyan]Opening document...", total=None)
        refinement_task = progress.add_task(
            "[magenta]AI refinement", total=100, visible=refiner is not None
        )

        def on_translation_progress(current: int, total: int, status: str) -> None:
            progress.update(
                translation_task, description=f"[cyan]{status}", completed=current - 1, total=total
            )

        def on_refinement_progress(percent: int, total: int, status: str) -> None:
            progress.update(
                refinement_task, description=f"[magenta]{status}", completed=percent, total=total
            )

        def on_error(message: str) -> None:
            progress.console.print(f"[red]{message}[/red]")

        pipeline = DocumentPipeline(
            settings,
            translator,
            refiner,
            PipelineCallbacks(
                on_translation_progress=on_translation_progress,
                on_refinement_progress=on_refinement_progress,
                on_error=on_error,
            ),
        )

        async def run_pipeline():
            try:
                return await pipeline.run(input_path, output)
            except asyncio.CancelledError:
                pipeline.cancel()
                raise
            finally:
                await translator.aclose()
                if refiner is not None:
                    await refiner.provider.aclose()

        try:
            result = asyncio.run(run_pipeline())
        except KeyboardInterrupt:
            progress.stop()
            console.print("[yellow]Translation cancelled[/yellow]")
            raise typer.Exit(EXIT_CANCELLED) from None

        if result.success:
            progress.update(
                translation_task,
                description="[green]Translation complete",
                completed=result.segments_total,
                total=result.segments_total,
            )

    if result.cancelled:
        console.print(f"[yellow]{result.message}[/yellow]")
        raise typer.Exit(EXIT_CANCELLED)
    if not result.success:
        console.print(f"[red]{result.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]{result.message}[/green]")
    if result.report is not None:
        for warning in result.report.warnings:
            console.print(f"[yellow]Warning: {warning}[/yellow]")
    console.print("\n[bold green]Done![/bold green]")


@app.command()
def inspect(
    input_path: Path = typer.Argument(..., help="Document to segment"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    max_bytes: int | None = typer.Option(
        None, "--max-bytes", help="Override the maximum segment size in bytes"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show how a document is split into segments."""
    settings = get_settings(config, verbose)
    if max_bytes is not None:
        if max_bytes <= 0:
            console.print("[red]Error: --max-bytes must be positive[/red]")
            raise typer.Exit(1)
        settings.segmentation.max_segment_bytes = max_bytes

    errors: list[str] = []
    segments = DocumentSegmenter(settings, on_error=errors.append).segment(input_path)
    if errors:
        for message in errors:
            console.print(f"[red]Error: {message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Segments of {input_path.name}")
    table.add_column("#", justify="right")
    table.add_column("Identifier", style="cyan")
    table.add_column("Bytes", justify="right")
    table.add_column("Markup", style="magenta")
    table.add_column("Preview")

    for segment in segments:
        preview = " ".join(segment.text.split())[:50]
        table.add_row(
            str(segment.index),
            segment.identifier,
            str(segment.byte_size),
            "yes" if segment.has_markup else "",
            preview,
        )

    console.print(table)
    total_bytes = sum(s.byte_size for s in segments)
    console.print(f"\n[green]{len(segments)} segments, {total_bytes} bytes[/green]")
    if needs_splitting(input_path, settings.segmentation.max_segment_bytes):
        console.print(
            f"[dim]File is larger than the {settings.segmentation.max_segment_bytes} byte "
            "segment limit[/dim]"
        )


@app.command()
def models(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    provider: str | None = typer.Option(None, "--provider", "-p", help="Provider to query"),
) -> None:
    """List the models offered by the refinement provider."""
    settings = get_settings(config)
    llm = _provider_for(settings.refinement, provider)

    async def fetch() -> list[str]:
        try:
            return await llm.list_models()
        finally:
            await llm.aclose()

    try:
        names = asyncio.run(fetch())
    except ProviderError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1) from None

    if not names:
        console.print(f"[yellow]No models reported by {llm.name}[/yellow]")
        return

    table = Table(title=f"Models ({llm.name})")
    table.add_column("Model", style="cyan")
    for name in names:
        table.add_row(name)
    console.print(table)


@app.command("test-connection")
def test_connection(
    config: Path | None = typer.Option(None, "--config", "-c", help="Config file"),
    provider: str | None = typer.Option(None, "--provider", "-p", help="Provider to test"),
) -> None:
    """Check that the refinement provider answers."""
    settings = get_settings(config)
    llm = _provider_for(settings.refinement, provider)

    async def check() -> tuple[bool, str]:
        try:
            return await llm.test_connection()
        finally:
            await llm.aclose()

    with console.status(f"Contacting {llm.name} ({llm.model or 'default model'})..."):
        ok, message = asyncio.run(check())

    if not ok:
        console.print(f"[red]Connection failed: {message}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Connected to {llm.name}.[/green] Reply: {message}")


@app.command()
def init(
    output_path: Path = typer.Argument(Path("config.yaml"), help="Output path for config file"),
) -> None:
    """Generate a default configuration file."""
    if output_path.exists():
        overwrite = typer.confirm(f"{output_path} already exists. Overwrite?")
        if not overwrite:
            raise typer.Abort()

    create_default_config(output_path)
    console.print(f"[green]Created config file: {output_path}[/green]")
    console.print("\nEdit the file and set your provider, then run:")
    console.print(f"  docsplice translate book.epub --config {output_path}")


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
