"""
git-worktrees - Git worktree helpers with fzf integration
"""

from .__version__ import __version__
from .services.worktree_manager import WorktreeManager

__all__ = ["WorktreeManager", "__version__"]
