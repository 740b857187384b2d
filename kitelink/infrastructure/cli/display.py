import json
import logging
from typing import Any, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from kitelink.domain.interfaces.user_interface import UserInterface

logger = logging.getLogger(__name__)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, data: Any, **kwargs: Any) -> None:
        """Displays response data; structured data is pretty-printed as JSON.

        Args:
            data: The decoded response data.
            **kwargs: Additional arguments including:
                - title: Panel title (default: "Response")
                - from_cache: Marks the panel as served from cache
        """
        title = kwargs.get("title", "Response")
        if kwargs.get("from_cache"):
            title = f"{title} [dim](cached)[/dim]"

        if isinstance(data, (dict, list)):
            body = Syntax(json.dumps(data, indent=2, default=str), "json", word_wrap=True)
        else:
            body = Text("" if data is None else str(data))
        logger.debug(f"display_output called: title={title}, type={type(data).__name__}")

        self.console.print(Panel(
            body,
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1),
        ))

    def display_table(self, columns: Sequence[str], rows: Sequence[Sequence[Any]], **kwargs: Any) -> None:
        """Displays rows in a bordered table.

        Args:
            columns: Column headers.
            rows: One sequence of cell values per row.
            **kwargs: title (optional).
        """
        table = Table(title=kwargs.get("title"), show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        for column in columns:
            table.add_column(column, style="white")
        for row in rows:
            table.add_row(*("" if cell is None else str(cell) for cell in row))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
