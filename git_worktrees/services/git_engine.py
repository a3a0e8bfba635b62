"""Thin GitPython wrapper exposing the worktree primitives git-worktrees needs."""

import os
import re
from pathlib import Path
from typing import Optional

import git

from git_worktrees.exceptions import EngineError, EngineLocked, EngineUnavailable
from git_worktrees.logging_config import get_logger

logger = get_logger(__name__)

# stderr fragments git prints when another process holds one of its lock files
_LOCK_PATTERNS = (
    re.compile(r"Unable to create '[^']*\.lock'"),
    re.compile(r"\.lock'?: File exists"),
    re.compile(r"cannot lock ref", re.IGNORECASE),
    re.compile(r"could not lock", re.IGNORECASE),
)


def _clean_stderr(error: git.exc.GitCommandError) -> str:
    """Extract git's own message from a GitCommandError."""
    stderr = (error.stderr if hasattr(error, "stderr") else str(error)) or ""
    stderr = stderr.strip()
    # GitPython formats it as "stderr: '<message>'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip()
        if len(stderr) >= 2 and stderr[0] == stderr[-1] == "'":
            stderr = stderr[1:-1]
    return stderr.strip()


def is_lock_error(message: str) -> bool:
    """Return True if git's message says a lock file is held."""
    return any(pattern.search(message) for pattern in _LOCK_PATTERNS)


class GitEngine:
    """Service for the git operations worktree management is built on."""

    def __init__(self, start_path: Optional[str] = None):
        """Locate the repository containing start_path.

        Args:
            start_path: Any directory inside the repository (default: cwd)

        Raises:
            EngineUnavailable: If start_path is not inside a git repository
                or git cannot be executed
        """
        start_path = start_path or os.getcwd()
        try:
            repo = git.Repo(start_path, search_parent_directories=True)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            raise EngineUnavailable(f"not a git repository: {start_path}")
        except git.exc.GitCommandNotFound as e:
            raise EngineUnavailable(f"git executable not found: {e}")

        if repo.bare:
            self.repo_path = repo.git_dir
        else:
            self.repo_path = repo.working_tree_dir
        self.is_bare = repo.bare
        repo.close()
        logger.debug(f"Using repository at {self.repo_path}")

    def _get_repo(self):
        """Get a fresh git.Repo instance.

        Returns:
            git.Repo: A fresh repository instance
        """
        return git.Repo(self.repo_path)

    def run(self, operation: str, *args, cwd: Optional[str] = None) -> str:
        """Run a git command and translate failures.

        Args:
            operation: git subcommand, e.g. "worktree"
            *args: Arguments to the subcommand
            cwd: Run with ``git -C cwd`` instead of the repository root

        Returns:
            The command's stdout

        Raises:
            EngineLocked: If git reports that a lock file is held
            EngineError: For any other git failure
        """
        repo = self._get_repo()
        label = " ".join([operation, *[str(a) for a in args[:1]]])
        try:
            if cwd is not None:
                return repo.git.execute(["git", "-C", str(cwd), operation, *[str(a) for a in args]])
            return getattr(repo.git, operation.replace("-", "_"))(*[str(a) for a in args])
        except git.exc.GitCommandError as e:
            stderr = _clean_stderr(e)
            status = e.status if isinstance(e.status, int) else None
            logger.debug(f"git {label} failed (exit {status}): {stderr}")
            if is_lock_error(stderr):
                raise EngineLocked(label, stderr) from e
            raise EngineError(label, stderr or None, status) from e
        except git.exc.GitCommandNotFound as e:
            raise EngineUnavailable(f"git executable not found: {e}") from e
        finally:
            repo.close()

    # Repository layout

    @property
    def common_dir(self) -> Path:
        """The git dir shared by every worktree of this repository."""
        out = self.run("rev-parse", "--git-common-dir")
        path = Path(out.strip())
        if not path.is_absolute():
            path = Path(self.repo_path) / path
        return path.resolve()

    @property
    def repo_name(self) -> str:
        """Name used as the prefix of default worktree directories."""
        common = self.common_dir
        if common.name == ".git":
            return common.parent.name
        return common.name[:-4] if common.name.endswith(".git") else common.name

    # Worktree primitives

    def worktree_list_porcelain(self) -> str:
        return self.run("worktree", "list", "--porcelain")

    def worktree_add(
        self,
        path: str,
        branch: Optional[str] = None,
        new_branch: bool = False,
        base: Optional[str] = None,
    ) -> None:
        """Add a worktree at path.

        Args:
            path: Target directory
            branch: Branch to check out, or to create when new_branch is set
            new_branch: Create ``branch`` starting at ``base``
            base: Start point for a new branch (default: HEAD)
        """
        args = ["add"]
        if new_branch:
            args.extend(["-b", branch, path])
            if base:
                args.append(base)
        else:
            args.append(path)
            if branch:
                args.append(branch)
        self.run("worktree", *args)
        logger.info(f"Added worktree at {path}")

    def worktree_remove(self, path: str, force: int = 0) -> None:
        """Remove a worktree; force=1 ignores local changes, force=2 also ignores locks."""
        args = ["remove", path] + ["--force"] * force
        self.run("worktree", *args)
        logger.info(f"Removed worktree at {path}")

    def worktree_prune(self) -> None:
        self.run("worktree", "prune")
        logger.debug("Pruned stale worktree metadata")

    def status_porcelain(self, worktree_path: str) -> str:
        return self.run("status", "--porcelain", cwd=worktree_path)

    # Branches and refs

    def rev_parse(self, ref: str) -> Optional[str]:
        """Resolve ref to a commit SHA, or None if it does not exist."""
        try:
            return self.run("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}").strip() or None
        except EngineLocked:
            raise
        except EngineError:
            return None

    def branch_exists(self, name: str) -> bool:
        return self.rev_parse(f"refs/heads/{name}") is not None

    def remote_branch_exists(self, name: str, remote: str = "origin") -> bool:
        return self.rev_parse(f"refs/remotes/{remote}/{name}") is not None

    def local_branches(self) -> list[str]:
        out = self.run("for-each-ref", "--format=%(refname:short)", "refs/heads")
        return [line.strip() for line in out.splitlines() if line.strip()]

    def delete_branch(self, name: str, force: bool = False) -> None:
        self.run("branch", "-D" if force else "-d", name)
        logger.info(f"Deleted branch {name}")

    def set_upstream(self, branch: str, upstream: str) -> None:
        self.run("branch", f"--set-upstream-to={upstream}", branch)
        logger.debug(f"Set upstream of {branch} to {upstream}")

