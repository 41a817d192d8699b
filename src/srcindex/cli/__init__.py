"""
CLI for srcindex.

Provides the command-line interface for indexing the files of a project.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from srcindex.core.config import LoggingConfig, ScannerConfig, load_config
from srcindex.core.errors import MessageError
from srcindex.services.container import create_services
from srcindex.services.indexing_models import IndexingResult

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="srcindex",
    help="Index the source and test files of a project for analysis",
    add_completion=False,
)


def configure_logging(logging_config: LoggingConfig, verbose: bool = False) -> None:
    """Route log records through rich at the configured level."""
    level = logging.DEBUG if verbose else getattr(logging, logging_config.level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format=logging_config.format,
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def render_result(result: IndexingResult) -> Table:
    table = Table(title="Indexing summary", show_header=True, header_style="bold cyan")
    table.add_column("Outcome")
    table.add_column("Files", justify="right")
    table.add_row("Indexed", str(result.indexed_files))
    table.add_row("Excluded by patterns", str(result.excluded_by_patterns))
    table.add_row("Excluded by filters", str(result.excluded_by_extensions))
    table.add_row("Not in forced language", str(result.forced_language_skipped))
    table.add_row("Outside project basedir", str(result.outside_basedir))
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")
    return table


@app.command()
def index(
    path: Path = typer.Argument(..., help="Project base directory"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML or JSON configuration file"
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", help="Number of parallel workers"
    ),
    preload_metadata: Optional[bool] = typer.Option(
        None, "--preload-metadata/--lazy-metadata", help="Compute file metadata while indexing"
    ),
    forced_language: Optional[str] = typer.Option(
        None, "--forced-language", "-l", help="Only index files of this language"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Index the files of a project."""
    load_dotenv()
    try:
        cfg: ScannerConfig = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if workers is not None:
        cfg.indexing.max_workers = workers
    if preload_metadata is not None:
        cfg.indexing.preload_metadata = preload_metadata
    if forced_language is not None:
        cfg.indexing.forced_language = forced_language

    configure_logging(cfg.logging, verbose)

    if not path.is_dir():
        console.print(f"[bold red]Error:[/bold red] Path is not a directory: {path}")
        raise typer.Exit(1)

    console.print(f"[bold blue]Indexing[/bold blue] {path}...")
    try:
        services = create_services(cfg, base_dir=path)
        result = services.indexer.index_files(services.candidates())
    except MessageError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[bold red]Internal error:[/bold red] {e}")
        raise typer.Exit(2)

    console.print(render_result(result))
    for message in services.session.warnings.messages:
        console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


@app.command("show-config")
def show_config(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML or JSON configuration file"
    ),
):
    """Print the effective configuration as YAML."""
    load_dotenv()
    try:
        cfg = load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    console.print(cfg.to_yaml(), markup=False)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
