"""Rich console output for run results."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bitlocker_remediation.models import RunResult, StatusTier

TIER_COLORS = {
    StatusTier.OK: "green",
    StatusTier.WARNING: "yellow",
    StatusTier.FAIL: "bold red",
}

ACTION_STYLES = {
    "compliant": "green",
    "updated": "green",
    "unencrypted": "yellow",
    "found": "red",
    "error": "bold magenta",
}


def generate(result: RunResult, output_dir: str) -> str:
    """Display the per-volume outcome table.

    Args:
        result: The run result to display.
        output_dir: Unused for console output, kept for interface consistency.

    Returns:
        Empty string (console output has no file path).
    """
    con = Console()

    con.print()
    con.print(f"[bold]BitLocker key protectors ({result.mode.value})[/bold]")
    con.print(f"Host: {result.hostname}")
    con.print()

    if not result.volumes:
        con.print("[dim]No volumes inspected[/dim]")
        con.print()
        return ""

    table = Table(title="Volumes")
    table.add_column("Volume", style="cyan", width=8)
    table.add_column("Before")
    table.add_column("After")
    table.add_column("Action")
    table.add_column("Detail")

    for outcome in result.volumes:
        style = ACTION_STYLES.get(outcome.action, "")
        table.add_row(
            outcome.mount_point,
            ", ".join(t.value for t in outcome.protectors_before) or "-",
            ", ".join(t.value for t in outcome.protectors_after) or "-",
            f"[{style}]{outcome.action}[/{style}]" if style else outcome.action,
            escape(outcome.detail or ""),
        )

    con.print(table)
    con.print()
    return ""


def print_summary(result: RunResult, console: Console | None = None) -> str:
    """Print the '<PREFIX> <timestamp> = <clauses>' line and return it."""
    con = console or Console()
    line = result.summary_line()
    con.print(line, style=TIER_COLORS.get(result.tier, ""), markup=False, highlight=False, soft_wrap=True)
    return line
