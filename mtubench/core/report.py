"""
Text report for a finished benchmark.

Each MTU (highest first) gets four bars, one per duplex mode and direction,
all scaled against the single highest average in the table so rows can be
compared by eye.
"""

from __future__ import annotations

from typing import List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich import box

from mtubench.core.results import SERIES, Direction, DuplexMode, ResultTable
from mtubench.core.utils import console as default_console

BAR_CHAR = "█"

_SERIES_STYLE = {
    (DuplexMode.HALF, Direction.TX): "bright_cyan",
    (DuplexMode.HALF, Direction.RX): "cyan",
    (DuplexMode.FULL, Direction.TX): "bright_magenta",
    (DuplexMode.FULL, Direction.RX): "magenta",
}

# label column + value column + padding
_FIXED_WIDTH = 34


def series_label(mode: DuplexMode, direction: Direction) -> str:
    return f"{mode.value}-duplex {direction.value}"


def bar_length(value: float, highest: float, width: int) -> int:
    """Characters for *value* on a bar of *width* where *highest* fills it."""
    if highest <= 0 or width <= 0:
        return 0
    return max(0, min(width, int(round(value / highest * width))))


def render_bars(table: ResultTable, width: int) -> List[Text]:
    """Build the bar chart as lines of rich Text, *width* columns wide."""
    highest = table.highest_bandwidth_mbps
    bar_width = max(10, width - _FIXED_WIDTH)
    lines: List[Text] = []

    for record in sorted(table, key=lambda r: r.mtu, reverse=True):
        lines.append(Text(f"MTU {record.mtu}", style="bold white"))
        for mode, direction in SERIES:
            value = record.bandwidth(mode, direction)
            line = Text("  ")
            line.append(f"{series_label(mode, direction):<16}", style="dim")
            line.append(f"{value:>10.2f} Mbps ")
            line.append(BAR_CHAR * bar_length(value, highest, bar_width), style=_SERIES_STYLE[(mode, direction)])
            lines.append(line)
        lines.append(Text(""))
    return lines


def summary_table(table: ResultTable) -> Table:
    summary = Table(title="Average bandwidth (Mbps)", box=box.SIMPLE_HEAVY, title_style="bold")
    summary.add_column("MTU", style="bold cyan", justify="right")
    for mode, direction in SERIES:
        summary.add_column(series_label(mode, direction), justify="right")

    for record in sorted(table, key=lambda r: r.mtu, reverse=True):
        summary.add_row(str(record.mtu), *(f"{record.bandwidth(m, d):.2f}" for m, d in SERIES))

    summary.add_section()
    summary.add_row("best", *(str(table.best_mtu(m, d)) for m, d in SERIES), style="bold green")
    return summary


def render_report(table: ResultTable, out: Optional[Console] = None, width: Optional[int] = None) -> None:
    """Print the bar chart and summary for *table*.

    *width* defaults to the console's detected terminal width.
    """
    out = out or default_console
    if not len(table):
        out.print("  [yellow]No benchmark results to report.[/yellow]")
        return
    for line in render_bars(table, width or out.width):
        out.print(line)
    out.print(summary_table(table))
