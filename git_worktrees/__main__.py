"""Allow ``python -m git_worktrees``; behaves like ``wt``."""

import sys

from git_worktrees.cli.main import wt_main

if __name__ == "__main__":
    sys.exit(wt_main())
