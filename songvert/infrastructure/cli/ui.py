"""UI helpers for CLI interaction.

Presentation of batch reports with Rich, and the shared error handler that
turns failures into a clean message and exit code 1.
"""

from collections.abc import Callable
import functools

from rich.console import Console
from rich.table import Table
import typer

from songvert.application.utilities.results import BatchReport, TrackReport
from songvert.config import get_logger

console = Console()
logger = get_logger(__name__)

STATUS_STYLES = {
    "matched": "[green]✓ matched[/green]",
    "downloaded": "[green]✓ downloaded[/green]",
    "no_match": "[yellow]✗ no match[/yellow]",
    "undownloadable": "[yellow]– no source[/yellow]",
    "skipped": "[dim]– skipped[/dim]",
    "error": "[red]✗ error[/red]",
}


def command_error_handler[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Standardize error handling for CLI commands.

    Errors are logged with traceback, shown to the user as one line and
    converted into exit code 1.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        operation = func.__name__.replace("_", " ")

        with logger.contextualize(operation=operation):
            try:
                logger.debug(f"Executing {operation}")
                return func(*args, **kwargs)

            except typer.Exit:
                raise

            except typer.Abort:
                logger.info(f"Operation {operation} aborted by user")
                raise

            except Exception as e:
                logger.exception(f"Error during {operation}")
                console.print(f"\n[bold red]✗ Error during {operation}:[/bold red] {e}")
                raise typer.Exit(code=1) from e

    return wrapper


def _outcome_cell(entry: TrackReport) -> str:
    cell = STATUS_STYLES.get(entry.status, entry.status)
    if entry.status == "matched" and entry.method == "search" and entry.score is not None:
        cell += f" [dim]({entry.score:.2f})[/dim]"
    elif entry.status == "matched" and entry.method == "isrc":
        cell += " [dim](isrc)[/dim]"
    elif entry.status == "error" and entry.error_type:
        cell += f" [dim]({entry.error_type})[/dim]"
    return cell


def display_report(report: BatchReport, title: str = "Results") -> None:
    """Print one row per track with a column per target plus downloads."""
    columns: list[str] = []
    for entry in report.entries:
        column = entry.target or "download"
        if column not in columns:
            columns.append(column)

    table = Table(title=title)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Track", style="cyan")
    for column in columns:
        table.add_column(column.replace("_", " ").title())

    positions = sorted({entry.position for entry in report.entries})
    for position in positions:
        entries = report.for_position(position)
        cells = {entry.target or "download": _outcome_cell(entry) for entry in entries}
        table.add_row(
            str(position),
            entries[0].track_name,
            *(cells.get(column, "") for column in columns),
        )

    console.print(table)

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column(style="green bold")
    summary.add_row("Tracks", str(report.total_items))
    summary.add_row("Matched", str(report.matched_count))
    summary.add_row("No match", str(report.no_match_count))
    summary.add_row("Errors", str(report.error_count))
    if report.downloaded_count:
        summary.add_row("Downloaded", str(report.downloaded_count))
    summary.add_row("Success Rate", f"{report.success_rate:.1f}%")
    console.print(summary)
