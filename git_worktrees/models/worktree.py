"""Worktree data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class WorktreeStatus(Enum):
    """Status of a worktree as shown by wtls."""
    CLEAN = "clean"
    DIRTY = "dirty"
    LOCKED = "locked"
    MISSING = "missing"
    UNKNOWN = "unknown"


@dataclass
class Worktree:
    """Information about a git worktree."""

    path: str
    head: str
    branch: Optional[str] = None  # None when detached or bare
    is_main: bool = False  # Is this the main working tree?
    is_bare: bool = False
    is_detached: bool = False
    is_locked: bool = False
    lock_reason: Optional[str] = None
    is_prunable: bool = False  # Directory missing?
    is_dirty: Optional[bool] = None  # None = couldn't check

    @property
    def name(self) -> str:
        """Directory name of the worktree."""
        return Path(self.path).name

    @property
    def status(self) -> WorktreeStatus:
        # Missing beats locked: a locked entry without a directory still needs pruning
        if self.is_prunable or not Path(self.path).exists():
            return WorktreeStatus.MISSING
        if self.is_locked:
            return WorktreeStatus.LOCKED
        if self.is_dirty is None:
            return WorktreeStatus.UNKNOWN
        return WorktreeStatus.DIRTY if self.is_dirty else WorktreeStatus.CLEAN

    def __str__(self) -> str:
        """String representation of worktree."""
        label = self.branch or ("bare" if self.is_bare else f"detached {self.head[:8]}")
        main_marker = " (main)" if self.is_main else ""
        return f"{label} @ {self.path}{main_marker} [{self.status.value}]"
