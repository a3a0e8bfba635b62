"""Formatting utilities for git-worktrees."""

from .worktree import (
    format_branch,
    format_head,
    format_label,
    format_markers,
    format_porcelain,
    format_status,
)

__all__ = [
    "format_branch",
    "format_head",
    "format_label",
    "format_markers",
    "format_porcelain",
    "format_status",
]
