"""Worktree discovery service for git-worktrees."""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from git_worktrees.exceptions import EngineError, EngineLocked, EngineUnavailable
from git_worktrees.logging_config import get_logger
from git_worktrees.models.worktree import Worktree
from git_worktrees.services.git_engine import GitEngine

logger = get_logger(__name__)


def normalize_path(path: str) -> str:
    """Absolute, symlink-resolved form of path used for comparisons."""
    return os.path.realpath(os.path.abspath(os.path.expanduser(path)))


def _looks_like_path(selector: str) -> bool:
    return os.path.isabs(selector) or selector.startswith((".", "~"))


def parse_porcelain(output: str) -> list[Worktree]:
    """Parse ``git worktree list --porcelain`` output.

    Format (one block per worktree, blank line between blocks):
        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>   | detached | bare
        locked [reason]            (optional)
        prunable [reason]          (optional)
    """
    worktrees: list[Worktree] = []
    current: Dict[str, Any] = {}

    def flush():
        if current.get("path"):
            worktrees.append(
                Worktree(
                    path=current["path"],
                    head=current.get("head", ""),
                    branch=current.get("branch"),
                    is_main=not worktrees,  # first entry is always the main worktree
                    is_bare=current.get("bare", False),
                    is_detached=current.get("detached", False),
                    is_locked=current.get("locked", False),
                    lock_reason=current.get("lock_reason"),
                    is_prunable=current.get("prunable", False),
                )
            )

    for raw in output.split("\n"):
        line = raw.strip()
        if not line:
            flush()
            current = {}
            continue

        key, _, value = line.partition(" ")
        if key == "worktree":
            current["path"] = value
        elif key == "HEAD":
            current["head"] = value
        elif key == "branch":
            if value.startswith("refs/heads/"):
                current["branch"] = value[len("refs/heads/"):]
            else:
                current["branch"] = value
        elif key == "detached":
            current["detached"] = True
        elif key == "bare":
            current["bare"] = True
        elif key == "locked":
            current["locked"] = True
            current["lock_reason"] = value or None
        elif key == "prunable":
            current["prunable"] = True

    # Handle last entry if no trailing blank line
    flush()
    return worktrees


def parse_dirty(status_output: str) -> bool:
    """True if ``git status --porcelain`` reported any change, untracked files included."""
    return any(line.strip() for line in status_output.split("\n"))


class DiscoveryService:
    """Queries live worktree state from git. Nothing is cached between calls."""

    def __init__(self, engine: GitEngine):
        self.engine = engine

    def list_worktrees(self, with_status: bool = True) -> list[Worktree]:
        """Get all worktrees of the repository, main worktree first.

        Args:
            with_status: Also run ``git status`` in each worktree to fill is_dirty

        Raises:
            EngineUnavailable: If git cannot list worktrees
            EngineLocked: If git's metadata is locked by another process
        """
        try:
            output = self.engine.worktree_list_porcelain()
        except EngineLocked:
            raise
        except EngineError as e:
            raise EngineUnavailable(f"could not list worktrees: {e.message or e}") from e

        worktrees = parse_porcelain(output)
        if with_status:
            for wt in worktrees:
                wt.is_dirty = self._read_dirty(wt)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def _read_dirty(self, wt: Worktree) -> Optional[bool]:
        if wt.is_bare or wt.is_prunable or not os.path.isdir(wt.path):
            return None
        try:
            return parse_dirty(self.engine.status_porcelain(wt.path))
        except EngineError as e:
            logger.warning(f"Could not check worktree status for {wt.path}: {e}")
            return None

    def find_by_path(self, path: str, worktrees: Optional[list[Worktree]] = None) -> Optional[Worktree]:
        """Return the worktree registered at exactly path."""
        target = normalize_path(path)
        for wt in worktrees if worktrees is not None else self.list_worktrees(with_status=False):
            if normalize_path(wt.path) == target:
                return wt
        return None

    def find_by_branch(self, branch: str, worktrees: Optional[list[Worktree]] = None) -> Optional[Worktree]:
        """Return the worktree that has branch checked out."""
        for wt in worktrees if worktrees is not None else self.list_worktrees(with_status=False):
            if wt.branch == branch:
                return wt
        return None

    def match(
        self,
        selector: str,
        worktrees: Optional[list[Worktree]] = None,
        exact: bool = False,
    ) -> list[Worktree]:
        """Return every worktree a selector could mean.

        An absolute or ./~-relative selector is matched against worktree
        paths only; one naming an existing directory is tried as a path
        first. Anything else is
        matched as a substring of branch names and directory names. With
        ``exact``, an exact branch or directory name match wins over
        substring matches.
        """
        if worktrees is None:
            worktrees = self.list_worktrees()
        if not selector:
            return list(worktrees)

        if _looks_like_path(selector) or os.path.isdir(selector):
            wt = self.find_by_path(selector, worktrees)
            if wt is not None:
                return [wt]
            if _looks_like_path(selector):
                return []

        if exact:
            exact_matches = [wt for wt in worktrees if wt.branch == selector]
            if not exact_matches:
                exact_matches = [wt for wt in worktrees if Path(wt.path).name == selector]
            if exact_matches:
                return exact_matches

        return [
            wt
            for wt in worktrees
            if (wt.branch and selector in wt.branch) or selector in Path(wt.path).name
        ]

    def local_branches(self) -> list[str]:
        return self.engine.local_branches()
