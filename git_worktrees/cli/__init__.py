"""Command-line interface for git-worktrees.

This package provides the console entry points and argument parsing.
"""

from .main import wt_main, wtls_main, wtnew_main, wtopen_main, wtrm_main

__all__ = ["wt_main", "wtls_main", "wtnew_main", "wtopen_main", "wtrm_main"]
