"""Console output formatting for blobsync."""

from typing import Any, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text


class OutputFormatter:
    """Formats human-readable console output with rich.

    Messages and table cells are printed as plain text: file paths and object
    keys may contain square brackets that rich would otherwise parse as
    markup. Errors go to stderr and are never suppressed; everything else is
    hidden when ``quiet`` is set.
    """

    def __init__(
        self,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            quiet: Suppress non-essential output
            console: Console for regular output
            err_console: Console for errors and warnings
        """
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: Any = "") -> None:
        """Print a plain message or a rich renderable."""
        if not self.quiet:
            self.console.print(Text(message) if isinstance(message, str) else message)

    def info(self, message: str) -> None:
        """Print an informational message."""
        if not self.quiet:
            self.console.print(Text(message))

    def success(self, message: str) -> None:
        """Print a success message."""
        if not self.quiet:
            self.console.print(Text(message, style="green"))

    def warning(self, message: str) -> None:
        """Print a warning message."""
        if not self.quiet:
            self.err_console.print(Text.assemble(("Warning:", "yellow"), " ", message))

    def error(self, message: str) -> None:
        """Print an error message."""
        self.err_console.print(Text.assemble(("Error:", "red"), " ", message))

    def print_table(
        self,
        columns: Sequence[str],
        rows: Sequence[Sequence[str]],
        right_align: Sequence[int] = (),
    ) -> None:
        """Print rows as a table.

        Listings are data rather than decoration, so they are printed even
        in quiet mode.

        Args:
            columns: Column headers
            rows: Table rows
            right_align: Indices of columns to right-align
        """
        table = Table(show_edge=False, box=None, pad_edge=False)
        for index, column in enumerate(columns):
            table.add_column(
                column,
                justify="right" if index in right_align else "left",
                overflow="fold",
            )
        for row in rows:
            table.add_row(*(Text(cell) for cell in row))
        self.console.print(table)
