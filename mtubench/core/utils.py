"""
Shared utilities: validated input helpers, subprocess runner, result formatting.
"""

from __future__ import annotations

import ipaddress
import math
import subprocess
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text
from rich import box

console = Console()
err_console = Console(stderr=True)


# ── Result types ──────────────────────────────────────────────────────────────


class Status(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass
class TestResult:
    """Container for an outcome panel shown to the user."""

    __test__ = False  # not a pytest class

    title: str
    status: Status
    target: str = ""
    summary: str = ""
    details: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().strftime("%Y-%m-%d %H:%M:%S"))


# ── Pretty printing ──────────────────────────────────────────────────────────


_STATUS_CONFIG = {
    Status.SUCCESS: {"icon": "✔", "badge": "PASS", "style": "bold green",  "border": "green",  "bar": "green"},
    Status.FAILURE: {"icon": "✘", "badge": "FAIL", "style": "bold red",    "border": "red",    "bar": "red"},
    Status.PARTIAL: {"icon": "⚠", "badge": "WARN", "style": "bold yellow", "border": "yellow", "bar": "yellow"},
    Status.ERROR:   {"icon": "⊘", "badge": "ERR",  "style": "bold red",    "border": "red",    "bar": "red"},
}


def print_result(result: TestResult) -> None:
    """Render a *TestResult* to the terminal via Rich."""
    cfg = _STATUS_CONFIG[result.status]
    console.print()

    title_text = Text()
    title_text.append(f"  {cfg['icon']}  ", style=cfg["style"])
    title_text.append(result.title, style="bold white")
    if result.target:
        title_text.append("  ➜  ", style="dim")
        title_text.append(result.target, style="bold cyan")

    status_tag = Text(f" {cfg['badge']} ", style=f"bold white on {cfg['bar']}")

    body = Text()
    if result.summary:
        body.append("  ")
        body.append(result.summary, style=cfg["style"])
        body.append("\n")

    if result.details:
        body.append("\n")
        for d in result.details:
            body.append("    ")
            body.append("› ", style=f"dim {cfg['bar']}")
            body.append(f"{d}\n")

    if not result.summary and not result.details:
        body.append("  (no details)\n", style="dim")

    header = Text()
    header.append_text(status_tag)
    header.append("  ")
    header.append_text(title_text)

    console.print(
        Panel(
            body,
            title=header,
            title_align="left",
            subtitle=f"[dim italic]⏱  {result.timestamp}[/dim italic]",
            subtitle_align="right",
            border_style=cfg["border"],
            box=box.ROUNDED,
            expand=True,
            padding=(0, 1),
        )
    )


def print_section(title: str) -> None:
    """Print a visually distinct section divider."""
    console.print()
    console.print(Rule(f"[bold bright_cyan] ◆  {title}  ◆ [/bold bright_cyan]", style="bright_cyan", characters="─"))
    console.print()


# ── Input helpers ─────────────────────────────────────────────────────────────


def prompt(label: str, default: str = "") -> str:
    """Prompt the user for input with an optional default."""
    suffix = f" [dim bright_cyan]({default})[/dim bright_cyan]" if default else ""
    try:
        value = console.input(f"  [bold bright_yellow]❯[/bold bright_yellow] [bold]{label}{suffix}[/bold]: ").strip()
    except EOFError:
        console.print()
        return default
    return value or default


def confirm(label: str) -> bool:
    """Ask a yes/no question; anything but an explicit yes means no."""
    return prompt(f"{label} [y/N]", default="n").lower() in ("y", "yes")


def validate_address(address: str) -> Tuple[bool, str]:
    """Return *(True, cleaned_address)* if *address* is a literal IP address."""
    address = address.strip()
    if not address:
        return False, "Address cannot be empty."
    try:
        return True, str(ipaddress.ip_address(address))
    except ValueError:
        return False, f"'{address}' is not a valid IP address."


# ── Subprocess wrapper ────────────────────────────────────────────────────────


def run_command(
    cmd: list[str],
    timeout: int | None = 60,
    capture: bool = True,
) -> Tuple[int, str, str]:
    """Run an external command and return *(returncode, stdout, stderr)*.

    Output is decoded leniently so non-ASCII characters never crash the tool.
    A *timeout* of ``None`` waits for the command indefinitely.
    """
    kwargs: dict = dict(
        timeout=timeout,
    )

    if capture:
        kwargs["stdout"] = subprocess.PIPE
        kwargs["stderr"] = subprocess.PIPE

    try:
        proc = subprocess.run(cmd, **kwargs)
        stdout = proc.stdout.decode("utf-8", errors="replace") if proc.stdout else ""
        stderr = proc.stderr.decode("utf-8", errors="replace") if proc.stderr else ""
        return proc.returncode, stdout, stderr
    except FileNotFoundError:
        return -1, "", f"Command not found: {cmd[0]}"
    except subprocess.TimeoutExpired:
        return -2, "", f"Command timed out after {timeout}s"


def tool_missing_result(tool_name: str, action: str) -> TestResult:
    """Return a standardised error result for a missing external tool."""
    return TestResult(
        title=action,
        status=Status.ERROR,
        summary=f"Required tool '{tool_name}' was not found on PATH.",
        details=["Install the tool and ensure it is available in your system PATH."],
    )


# ── Numeric helpers ───────────────────────────────────────────────────────────


def round_to_hundred(value: float) -> int:
    """Round *value* to the nearest 100, halves going up (5250 -> 5300)."""
    return int(math.floor(value / 100.0 + 0.5)) * 100


def ceil_to_hundred(value: int) -> int:
    """Smallest multiple of 100 that is not below *value* (1450 -> 1500)."""
    return int(math.ceil(value / 100.0)) * 100
