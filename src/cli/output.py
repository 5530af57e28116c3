"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output.
Uses Rich for spinners, colored output and tables. Supports verbosity levels
and the --no-color flag. Documents printed by `load` go to stdout as plain
JSON so they can be piped.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table

from src.models import PageInfo
from src.sync.models import BatchCommitResult


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Saved about")
        >>> with handler.spinner("Publishing..."):
        ...     adapter.publish()
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False, console: Optional[Console] = None):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
            console: Console to write to (tests pass a recording console)
        """
        self.verbosity = verbosity
        self.console = console or Console(
            no_color=no_color,
            highlight=False,
            stderr=True,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Saving page..."):
            ...     adapter.save_page("index", document)
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_pages(self, pages: List[PageInfo]) -> None:
        """Display the page list as a table."""
        if not pages:
            self.console.print("[yellow]No pages found[/yellow]")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Name")
        table.add_column("Path")
        for page in pages:
            table.add_row(page.id, page.name, page.path)
        self.console.print(table)

    def print_batch_summary(self, result: BatchCommitResult) -> None:
        """Display batch commit summary with color coding."""
        self.console.print("\n[bold]Batch Summary:[/bold]")

        for path in result.committed:
            self.console.print(f"  [green]↑[/green] {path}")

        for path, reason in result.failed:
            self.console.print(f"  [red]✗[/red] {path}: {reason}")

        if result.mirrored is True:
            self.console.print("  [blue]↔[/blue] Mirrored to draft branch")
        elif result.mirrored is False:
            self.console.print("  [yellow]⚠[/yellow] Mirror to draft branch failed (local files kept)")

        if not result.committed and not result.failed:
            self.console.print("\n[yellow]Nothing to commit[/yellow]")
        elif result.failed:
            self.console.print(
                f"\n[red]Batch partially committed: {len(result.failed)} file(s) failed[/red]"
            )
        else:
            self.console.print(
                f"\n[green]Committed {len(result.committed)} file(s)[/green]"
            )

    def print_status(self, mode: str, draft_branch: Optional[str], unpublished: bool) -> None:
        """Display storage mode and draft state."""
        self.console.print(f"Mode: [bold]{mode}[/bold]")
        if draft_branch:
            self.console.print(f"Draft branch: {draft_branch}")
        if unpublished:
            self.console.print("[yellow]Unpublished changes on the draft branch[/yellow]")
        else:
            self.console.print("[green]No unpublished changes[/green]")
