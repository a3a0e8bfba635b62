"""Shared constants for git-worktrees."""

from dataclasses import dataclass
from typing import List


# Exit codes shared by every command
EXIT_OK = 0
EXIT_VALIDATION_FAILURE = 1
EXIT_ENGINE_ERROR = 2
EXIT_ABORTED = 3


COMMAND_NAMES = ("wt", "wtnew", "wtrm", "wtopen", "wtls")

# Names that can never be used as a branch for a new worktree
RESERVED_BRANCH_NAMES = ("HEAD", "-", "@", "FETCH_HEAD", "ORIG_HEAD", "MERGE_HEAD")


# Journal location, relative to the repository's common git dir
JOURNAL_DIRNAME = "git-worktrees"
JOURNAL_OPS_DIRNAME = "ops"

# Home directory for logs
STATE_DIR_NAME = ".git-worktrees"
LOG_FILE_NAME = "git-worktrees.log"


@dataclass
class ColumnDefinition:
    """Definition of a table column."""

    key: str
    label: str
    width: int = 0  # 0 means auto-width


COLUMNS: List[ColumnDefinition] = [
    ColumnDefinition("branch", "Branch", 30),
    ColumnDefinition("status", "Status", 8),
    ColumnDefinition("head", "HEAD", 9),
    ColumnDefinition("path", "Path"),
]


SYMBOL_MAIN = "*"
SYMBOL_CURRENT = "@"
DETACHED_LABEL = "(detached)"
BARE_LABEL = "(bare)"


# CLI colors (Rich color names) per worktree status
STATUS_COLORS = {
    "clean": "green",
    "dirty": "yellow",
    "locked": "magenta",
    "missing": "red",
    "unknown": "dim",
}


HUB_ACTIONS = ("open", "remove")
