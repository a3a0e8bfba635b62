"""Worktree formatting utilities."""

from typing import Optional

from git_worktrees.constants import (
    BARE_LABEL,
    DETACHED_LABEL,
    STATUS_COLORS,
    SYMBOL_CURRENT,
    SYMBOL_MAIN,
)
from git_worktrees.models.worktree import Worktree, WorktreeStatus


def format_head(sha: str, length: int = 8) -> str:
    """Abbreviate a commit SHA."""
    return sha[:length] if sha else ""


def format_branch(wt: Worktree) -> str:
    """Branch name, or a placeholder for detached/bare worktrees."""
    if wt.branch:
        return wt.branch
    return BARE_LABEL if wt.is_bare else DETACHED_LABEL


def format_status(status: WorktreeStatus) -> str:
    """
    Format worktree status with Rich markup.

    Args:
        status: Worktree status enum value

    Returns:
        Markup string colored by status
    """
    color = STATUS_COLORS.get(status.value)
    return f"[{color}]{status.value}[/{color}]" if color else status.value


def format_markers(wt: Worktree, current_path: Optional[str] = None) -> str:
    """'*' for the main worktree, '@' for the one containing the cwd."""
    markers = ""
    if wt.is_main:
        markers += SYMBOL_MAIN
    if current_path and wt.path == current_path:
        markers += SYMBOL_CURRENT
    return markers


def format_label(wt: Worktree) -> str:
    """Single-line description used by selectors."""
    return f"{format_branch(wt):<30}  {wt.status.value:<8}  {wt.path}"


def format_porcelain(wt: Worktree) -> str:
    """Stable machine-readable line: path, branch, head, status separated by tabs."""
    return "\t".join([wt.path, format_branch(wt), wt.head, wt.status.value])
