"""Display service for worktree listings and command results"""
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_worktrees.constants import COLUMNS
from git_worktrees.formatters import (
    format_branch,
    format_head,
    format_markers,
    format_porcelain,
    format_status,
)
from git_worktrees.logging_config import get_logger
from git_worktrees.models.operation import OperationRecord, RecoveryAction, RecoveryOutcome
from git_worktrees.models.worktree import Worktree

logger = get_logger(__name__)


class DisplayService:
    """Renders results. Data goes to ``out`` (stdout), messages to ``err`` (stderr)."""

    def __init__(self, out: Optional[Console] = None, err: Optional[Console] = None):
        self.out = out or Console(highlight=False)
        self.err = err or Console(stderr=True, highlight=False)

    def display_worktree_table(self, worktrees: List[Worktree], current_path: Optional[str] = None) -> None:
        """Display a table of worktrees."""
        table = Table(box=None, pad_edge=False)
        table.add_column("")
        for col in COLUMNS:
            if col.width:
                table.add_column(col.label, max_width=col.width, overflow="ellipsis")
            else:
                table.add_column(col.label)

        for wt in worktrees:
            # Match COLUMNS order: Branch, Status, HEAD, Path
            table.add_row(
                format_markers(wt, current_path),
                escape(format_branch(wt)),
                format_status(wt.status),
                format_head(wt.head),
                escape(wt.path),
            )

        self.out.print(table)

    def display_porcelain(self, worktrees: List[Worktree]) -> None:
        for wt in worktrees:
            # Plain print keeps the output free of Rich wrapping and markup
            print(format_porcelain(wt), file=self.out.file)

    def display_path(self, path: str) -> None:
        print(path, file=self.out.file)

    def display_pending(self, records: List[OperationRecord]) -> None:
        if not records:
            return
        self.err.print(
            f"[yellow]{len(records)} interrupted operation(s) pending; "
            "run [bold]wt recover[/bold] to reconcile:[/yellow]"
        )
        for record in records:
            self.err.print(f"  • {escape(str(record))}")

    def display_recovery(self, outcomes: List[RecoveryOutcome]) -> None:
        if not outcomes:
            return
        for outcome in outcomes:
            target = escape(str(outcome.record))
            if outcome.action == RecoveryAction.REPAIRED:
                self.err.print(f"[green]Recovered[/green] interrupted {target}")
            elif outcome.action == RecoveryAction.ABANDONED:
                self.err.print(f"[yellow]Rolled back[/yellow] interrupted {target}")
            else:
                self.err.print(f"[red]Could not recover[/red] {target}: {escape(outcome.reason or '')}")
            if outcome.reason and outcome.action != RecoveryAction.FAILED:
                self.err.print(f"  [yellow]{escape(outcome.reason)}[/yellow]")

    def success(self, message: str) -> None:
        self.err.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        self.err.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err.print(f"[red]Error: {escape(message)}[/red]")
