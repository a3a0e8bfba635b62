"""Pytest fixtures for git-worktrees tests"""
import tempfile
from pathlib import Path

import git
import pytest

from git_worktrees.config import Config
from git_worktrees.services.selector import NonInteractiveSelector
from git_worktrees.services.worktree_manager import WorktreeManager


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        # Resolve so paths compare equal to what git reports (e.g. /private/var on macOS)
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository with one commit on main."""
    repo_path = temp_dir / "project"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch("-M", "main")

    repo.create_remote("origin", "git@example.com:test/project.git")

    yield repo

    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Repository with feature-a and feature-a-b branches (no worktrees yet)."""
    git_repo.git.branch("feature-a")
    git_repo.git.branch("feature-a-b")
    git_repo.git.branch("bugfix/login")
    yield git_repo


@pytest.fixture
def config():
    """Non-interactive configuration."""
    return Config(interactive=False, use_fzf=False)


@pytest.fixture
def manager(git_repo, config):
    """WorktreeManager over git_repo that never prompts."""
    return WorktreeManager(git_repo.working_dir, config, selector=NonInteractiveSelector())


@pytest.fixture
def branches_manager(git_repo_with_branches, config):
    return WorktreeManager(git_repo_with_branches.working_dir, config, selector=NonInteractiveSelector())


@pytest.fixture
def workspace(git_repo):
    """Directory new worktrees are created in by default (parent of the main worktree)."""
    return Path(git_repo.working_dir).parent
