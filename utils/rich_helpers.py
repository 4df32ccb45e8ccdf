"""Rich console, tables and panels for the variant explorer CLI."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

from rich import box
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

PALETTE: Dict[str, str] = {
    "accent": "bold magenta",
    "success": "bright_green",
    "warning": "yellow",
    "error": "bold bright_red",
    "muted": "dim",
    "table.header": "bold bright_cyan",
    # one style per StockStatus value
    "stock.in_stock": "bright_green",
    "stock.limited_stock": "yellow",
    "stock.out_of_stock": "bold bright_red",
}

_CONSOLES: Dict[bool, Console] = {}


def get_console(*, stderr: bool = False) -> Console:
    """Themed console, created once per output stream."""
    if stderr not in _CONSOLES:
        _CONSOLES[stderr] = Console(theme=Theme(PALETTE), stderr=stderr)
    return _CONSOLES[stderr]


def build_table(
    columns: Sequence[Tuple[str, Dict[str, Any]]],
    rows: Iterable[Sequence[Any]],
    *,
    title: Optional[str] = None,
    caption: Optional[str] = None,
) -> Table:
    """Table whose columns are ``(header, add_column kwargs)`` pairs; cells go through format_cell."""
    table = Table(title=title, caption=caption, box=box.SIMPLE_HEAVY, header_style="table.header")
    for header, column_kwargs in columns:
        table.add_column(header, **column_kwargs)
    for cells in rows:
        table.add_row(*map(format_cell, cells))
    return table


def format_cell(value: Any) -> RenderableType:
    if isinstance(value, Text):
        return value
    if value is None or value == "" or value == () or value == []:
        return Text("-", style="muted")
    if isinstance(value, bool):
        return Text("yes", style="success") if value else Text("no", style="muted")
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, (list, tuple)):
        return ", ".join(map(str, value))
    return str(value)


def format_stock_status(status: str) -> Text:
    return Text(status.replace("_", " "), style=f"stock.{status}")


def render_error(message: str, *, details: Optional[str] = None, console: Optional[Console] = None) -> None:
    """Print a red panel with the message and, below it, dimmed details."""
    parts = [Text(message, style="error")]
    if details:
        parts.append(Text(details, style="muted"))
    (console or get_console(stderr=True)).print(
        Panel(Group(*parts), title="Catalog error", border_style="error")
    )
