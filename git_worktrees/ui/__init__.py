"""Terminal UI pieces for git-worktrees."""
