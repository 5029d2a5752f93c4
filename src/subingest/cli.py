"""subingest CLI entry point.

Walks a transcript root, resolves show/episode identity per file, parses the
SRT files and persists shows, episodes and transcript lines (in that order)
with Rich progress output and human-readable error panels.
"""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from subingest.config import (
    DEFAULT_SEASON,
    DEFAULT_SHOW_TYPE,
    get_database,
    get_export_path,
    get_input_dir,
)
from subingest.errors import SubIngestError
from subingest.ingestion.directory import aggregate_directory
from subingest.ingestion.episodes import EpisodeNumberMethod, EpisodeTitleMethod
from subingest.pipeline import ingest
from subingest.store.database import TranscriptStore

# Scan + parse, then persistence
TOTAL_STAGES = 2

app = typer.Typer(
    name="subingest",
    help="Ingest episodic SRT transcripts into a normalized SQLite store.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    """Route the ``subingest`` logger through Rich on stderr. Idempotent."""
    logger = logging.getLogger("subingest")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))


@app.command()
def main(
    root: Annotated[
        Optional[Path],
        typer.Argument(
            help="Transcript root; one sub-directory per show (default: SUBINGEST_INPUT_DIR or data/transcripts_raw).",
        ),
    ] = None,
    db: Annotated[
        Optional[str],
        typer.Option("--db", help="SQLite path or SQLAlchemy URL (default: SUBINGEST_DB or transcripts.db)."),
    ] = None,
    number_method: Annotated[
        EpisodeNumberMethod,
        typer.Option("--number-method", "-n", help="How episode numbers are derived."),
    ] = EpisodeNumberMethod.FROM_FILE_ORDER,
    title_method: Annotated[
        EpisodeTitleMethod,
        typer.Option("--title-method", "-t", help="How episode titles are derived."),
    ] = EpisodeTitleMethod.FROM_EPISODE_NUMBER,
    show_type: Annotated[
        str,
        typer.Option("--show-type", help="show_type stored for newly created shows."),
    ] = DEFAULT_SHOW_TYPE,
    season: Annotated[
        int,
        typer.Option("--season", min=0, max=2**63 - 1, help="Season number stored for every episode."),
    ] = DEFAULT_SEASON,
    export: Annotated[
        bool,
        typer.Option("--export/--no-export", help="Write newly inserted transcript lines as id,text records."),
    ] = False,
    export_path: Annotated[
        Optional[Path],
        typer.Option("--export-path", help="Export file (default: SUBINGEST_EXPORT_PATH or transcripts.csv)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log debug output."),
    ] = False,
) -> None:
    """Ingest every .srt file under ROOT into the transcript database."""
    _configure_logging(verbose)

    if root is None:
        root = get_input_dir()
    if not root.is_dir():
        err_console.print(Panel(
            f"Directory not found: [bold]{root}[/bold]\n"
            f"Pass a transcript root or set SUBINGEST_INPUT_DIR.",
            title="[red]Input Error[/red]",
            border_style="red",
        ))
        raise typer.Exit(1)

    database = db or get_database()
    if export_path is None:
        export_path = get_export_path()

    console.print(
        f"\n[bold cyan]subingest[/bold cyan]  [dim]{root}[/dim]  "
        f"numbers=[bold]{number_method.value}[/bold] titles=[bold]{title_method.value}[/bold]\n"
    )

    try:
        # --- Stage 1/2: Scan and parse ---
        console.print(f"[bold]Stage 1/{TOTAL_STAGES}:[/bold] Scanning and parsing subtitle files...")
        show_entries = aggregate_directory(root, number_method, title_method)
        episode_count = sum(len(entries) for entries in show_entries.values())
        console.print(f"[green]Processed {episode_count} entries across {len(show_entries)} shows\n")

        if not show_entries:
            console.print("[yellow]Warning:[/] No subtitle files could be parsed. Nothing to insert.")
            return

        # --- Stage 2/2: Persist ---
        console.print(f"[bold]Stage 2/{TOTAL_STAGES}:[/bold] Inserting into [dim]{database}[/dim]...")
        with TranscriptStore(database) as store:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Inserting shows, episodes and transcripts...", total=None)
                summary = ingest(
                    show_entries,
                    store,
                    show_type=show_type,
                    season=season,
                    output_csv=export,
                    export_path=export_path,
                )
                progress.update(task, description="Insert complete")

    except SubIngestError as e:
        # Typed errors become a Rich panel; no tracebacks
        err_console.print(Panel(
            str(e),
            title="[red]Ingestion Error[/red]",
            border_style="red",
        ))
        raise typer.Exit(1)

    export_line = f"  Export:       [dim]{export_path}[/dim]\n" if export else ""
    console.print(Panel(
        f"[bold green]All data has been inserted into the database.[/bold green]\n\n"
        f"  Shows:        {summary.shows_inserted} new / {summary.shows} seen\n"
        f"  Episodes:     {summary.episodes_inserted} new / {summary.episodes} seen\n"
        f"  Transcripts:  {summary.transcripts_inserted} new / {summary.transcripts} seen\n"
        + export_line +
        f"  Database:     [dim]{database}[/dim]",
        title="[green]Ingestion Complete[/green]",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
