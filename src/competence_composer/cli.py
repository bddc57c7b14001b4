"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import webbrowser
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.tree import Tree

from competence_composer.clients.queue_client import QueueClient
from competence_composer.config import AppConfig, load_config
from competence_composer.formatting.blocks import Heading, ListBlock, Quote, blocks_to_plain, parse_blocks
from competence_composer.formatting.inline import spans_to_text
from competence_composer.formatting.sections import format_section
from competence_composer.formatting.text import clean_text
from competence_composer.history.store import GenerationHistory
from competence_composer.models.candidate import SeedContext
from competence_composer.pipeline.generation import GenerationOutcome
from competence_composer.pipeline.session import CompositionSession

app = typer.Typer(
    name="competence-composer",
    help="Compose competence files from candidate data, segment by segment.",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _queue_client(config: AppConfig) -> QueueClient:
    base_url = os.environ.get("COMPOSER_QUEUE_URL") or config.queue.base_url
    return QueueClient(
        base_url,
        enqueue_path=config.queue.enqueue_path,
        status_path=config.queue.status_path,
        timeout=config.queue.request_timeout,
        status_retries=config.queue.status_retries,
    )


@app.command()
def preview(
    context_file: Path = typer.Argument(help="Seed context JSON (candidate, job, knowledge, language)"),
    output: Path = typer.Option(None, "--output", "-o", help="Output HTML path"),
    generate: bool = typer.Option(False, "--generate", "-g", help="Generate every section through the queue"),
    only_empty: bool = typer.Option(False, "--only-empty", help="With --generate, skip pre-filled sections"),
    config_path: Path = typer.Option(None, "--config", "-c", help="config.yaml path"),
    open_browser: bool = typer.Option(False, "--open", help="Open the preview in a browser"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
) -> None:
    """Seed a competence file and write its HTML preview."""
    _setup_logging(verbose)
    if not context_file.exists():
        console.print(f"[red]Context file not found: {context_file}[/red]")
        raise typer.Exit(1)

    config = load_config(config_path)
    context = SeedContext.model_validate(json.loads(context_file.read_text(encoding="utf-8")))

    async def _run() -> tuple[str, list[GenerationOutcome]]:
        async with _queue_client(config) as queue:
            session = CompositionSession.from_config(config, queue, context)
            session.seed()
            outcomes: list[GenerationOutcome] = []
            if generate:
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    console=console,
                ) as progress:
                    task = progress.add_task("Generating sections...", total=None)

                    def on_progress(outcome: GenerationOutcome) -> None:
                        progress.update(task, advance=1, description=f"{outcome.segment_id}: {outcome.status}")

                    outcomes = await session.generate_all(only_empty=only_empty, on_progress=on_progress)
            return session.render_preview(), outcomes

    html, outcomes = asyncio.run(_run())

    if output is None:
        output = context_file.with_suffix(".html")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    console.print(f"[green]Preview written: {output}[/green]")

    failed = [o for o in outcomes if o.status == "error"]
    if outcomes:
        console.print(
            Panel(
                f"Generated: {sum(o.ok for o in outcomes)} / {len(outcomes)}"
                + "".join(f"\n[red]{o.segment_id}[/red]: {o.error_kind} ({o.error})" for o in failed),
                title="Generation",
            )
        )
    if open_browser:
        webbrowser.open(output.resolve().as_uri())


def _block_tree(text: str) -> Tree:
    parsed = parse_blocks(text)
    tree = Tree("[bold]blocks[/bold]" + (" [yellow](degraded)[/yellow]" if parsed.degraded else ""))
    for block in parsed.blocks:
        if isinstance(block, Heading):
            tree.add(f"heading h{block.level}: {spans_to_text(block.spans)}")
        elif isinstance(block, ListBlock):
            branch = tree.add("ordered list" if block.ordered else "list")
            for item in block.items:
                branch.add(f"{item.marker} {spans_to_text(item.spans)}")
        elif isinstance(block, Quote):
            tree.add(f"quote: {spans_to_text(block.spans)}")
        else:
            tree.add(f"paragraph: {spans_to_text(block.spans)}")
    return tree


@app.command("format")
def format_file(
    file: Path = typer.Argument(help="Plain-text section content"),
    section_type: str = typer.Option("", "--type", "-t", help="Segment type, e.g. 'PROFESSIONAL EXPERIENCE 1'"),
    title: str = typer.Option("", "--title", help="Segment title"),
    mode: str = typer.Option("html", "--as", help="html | plain | blocks"),
    skills_as_tags: bool = typer.Option(False, "--tags", help="Render skills as tags"),
) -> None:
    """Run the content formatter on a file."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)
    text = clean_text(file.read_text(encoding="utf-8"))

    if mode == "html":
        typer.echo(format_section(section_type, title, text, skills_as_tags=skills_as_tags))
    elif mode == "plain":
        typer.echo(blocks_to_plain(parse_blocks(text).blocks, keep_markers=True))
    elif mode == "blocks":
        console.print(_block_tree(text))
    else:
        console.print(f"[red]Unknown output mode: {mode}[/red]")
        raise typer.Exit(1)


@app.command()
def history(
    segment: str = typer.Option(None, "--segment", "-s", help="Only attempts for this segment id"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of attempts to list"),
    config_path: Path = typer.Option(None, "--config", "-c", help="config.yaml path"),
) -> None:
    """Show recent generation attempts and aggregate statistics."""
    config = load_config(config_path)
    store = GenerationHistory(config.history.resolved_db_path)
    stats = store.stats()
    avg = stats["avg_elapsed_seconds"]
    console.print(
        Panel(
            f"Attempts: {stats['total']} | Succeeded: {stats['success_count']} | "
            f"Failed: {stats['failure_count']} (timed out: {stats['timeout_count']})\n"
            f"Success rate: {stats['success_rate']:.1f}% | "
            f"Avg time: {f'{avg:.1f}s' if avg is not None else '-'}",
            title="Generation history",
        )
    )

    records = store.get_records(segment_id=segment, limit=limit)
    if not records:
        console.print("[yellow]No generation attempts recorded.[/yellow]")
        return
    table = Table()
    for column in ("When", "Segment", "Action", "Outcome", "Error", "Time"):
        table.add_column(column)
    for r in records:
        color = "green" if r.success else "red"
        table.add_row(
            r.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            r.segment_id,
            r.action,
            f"[{color}]{r.outcome}[/{color}]",
            r.error_kind or "",
            f"{r.elapsed_seconds:.1f}s",
        )
    console.print(table)


if __name__ == "__main__":
    app()
