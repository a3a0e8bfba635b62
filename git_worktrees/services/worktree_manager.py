"""Command layer: create, remove, open and list worktrees."""

import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from git_worktrees.config import Config
from git_worktrees.exceptions import (
    EngineError,
    GitWorktreesError,
    SelectionAborted,
    ValidationFailure,
    WorktreeNotFound,
)
from git_worktrees.formatters import format_label
from git_worktrees.logging_config import get_logger
from git_worktrees.models.operation import (
    OperationKind,
    OperationRecord,
    OperationStep,
    RecoveryOutcome,
)
from git_worktrees.models.worktree import Worktree, WorktreeStatus
from git_worktrees.services.discovery import DiscoveryService, normalize_path
from git_worktrees.services.git_engine import GitEngine
from git_worktrees.services.recovery import OperationJournal, RecoveryService
from git_worktrees.services.selector import Selector, make_selector
from git_worktrees.services.validation_service import ValidationService

logger = get_logger(__name__)


class CommandState(Enum):
    """States a mutating command moves through."""
    IDLE = "idle"
    VALIDATING = "validating"
    RECOVERING = "recovering"
    CREATING_WORKTREE = "creating_worktree"
    FINALIZING = "finalizing"
    REMOVING_WORKTREE = "removing_worktree"
    CLEANUP = "cleanup"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CreateResult:
    worktree: Worktree
    created: bool  # False when the branch already had a worktree
    recovered: list[RecoveryOutcome]


@dataclass
class RemoveResult:
    worktree: Worktree
    branch_deleted: bool
    recovered: list[RecoveryOutcome]
    warning: Optional[str] = None


class WorktreeManager:
    """Main class for managing git worktrees."""

    def __init__(
        self,
        repo_path: Optional[str] = None,
        config: Optional[Config] = None,
        selector: Optional[Selector] = None,
        engine: Optional[GitEngine] = None,
    ):
        """Initialize WorktreeManager.

        Args:
            repo_path: Any directory inside the repository (default: cwd)
            config: Configuration (default: Config())
            selector: Disambiguation strategy (default: chosen from config and TTY)
            engine: Git engine, mostly for tests

        Raises:
            EngineUnavailable: If repo_path is not inside a git repository
        """
        self.config = config or Config()
        self.engine = engine or GitEngine(repo_path)
        self.discovery = DiscoveryService(self.engine)
        self.validation = ValidationService(self.config, self.discovery)
        self.journal = OperationJournal.for_engine(self.engine)
        self.recovery = RecoveryService(self.engine, self.discovery, self.journal)
        self.selector = selector or make_selector(self.config)
        self.state = CommandState.IDLE
        self.history: list[CommandState] = []

    def _transition(self, state: CommandState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _reset(self) -> None:
        self.state = CommandState.IDLE
        self.history = [CommandState.IDLE]

    # Read-only commands

    def list_worktrees(self, with_status: bool = True) -> list[Worktree]:
        return self.discovery.list_worktrees(with_status=with_status)

    def pending_operations(self) -> list[OperationRecord]:
        return self.recovery.detect_incomplete_operations()

    def resolve(
        self,
        selector: str,
        exact: bool = False,
        worktrees: Optional[list[Worktree]] = None,
        prompt: str = "worktree> ",
    ) -> Worktree:
        """
        Turn a branch name, directory name, path or substring into one worktree.

        Raises:
            WorktreeNotFound: If nothing matches
            AmbiguousSelection: If several match and the selector is not interactive
            SelectionAborted: If the user cancels the interactive selection
        """
        candidates = self.discovery.match(selector, worktrees, exact=exact)
        if not candidates:
            raise WorktreeNotFound(selector)
        if len(candidates) == 1:
            return candidates[0]
        logger.debug(f"'{selector}' matches {len(candidates)} worktrees")
        return self.selector.choose(candidates, label=format_label, query=selector, prompt=prompt)

    def open(self, selector: str, exact: bool = False) -> Worktree:
        """Resolve the worktree to open; refuses one whose directory is gone."""
        wt = self.resolve(selector, exact=exact, prompt="open> ")
        if wt.status == WorktreeStatus.MISSING:
            raise ValidationFailure(f"{wt.path} no longer exists; run 'wt prune'", "missing")
        return wt

    def launch(self, wt: Worktree, command: Optional[str] = None) -> None:
        """Run ``command <path>`` (e.g. an editor) for a worktree."""
        command = command or self.config.open_command
        if not command:
            raise ValidationFailure("No open command configured (set WT_OPEN_CMD or use --with)")
        argv = shlex.split(command) + [wt.path]
        logger.info(f"Opening {wt.path} with {argv[0]}")
        try:
            result = subprocess.run(argv, cwd=wt.path)
        except FileNotFoundError:
            raise ValidationFailure(f"Open command not found: {argv[0]}")
        if result.returncode != 0:
            raise GitWorktreesError(f"{argv[0]} exited with status {result.returncode}")

    # Mutating commands

    def recover(self) -> list[RecoveryOutcome]:
        """Reconcile interrupted operations without starting a new one."""
        return self.recovery.recover_all()

    def prune(self) -> list[Worktree]:
        """Recover, then drop metadata of worktrees whose directory is gone."""
        self.recovery.ensure_clean()
        before = self.list_worktrees(with_status=False)
        self.engine.worktree_prune()
        after = {wt.path for wt in self.list_worktrees(with_status=False)}
        return [wt for wt in before if wt.path not in after]

    def default_path(self, branch: str, worktrees: Optional[list[Worktree]] = None) -> str:
        """<workspace root>/<repo>-<branch with '/' replaced by '-'>"""
        root = self.validation.workspace_root(worktrees)
        return os.path.join(root, f"{self.engine.repo_name}-{branch.replace('/', '-')}")

    def create(self, branch: str, path: Optional[str] = None, base: Optional[str] = None) -> CreateResult:
        """
        Create a worktree for branch, or return the one it already has.

        The branch is checked out if it exists locally, tracked from
        origin/<branch> if only the remote has it, and otherwise created
        from base (default HEAD).

        Raises:
            ValidationFailure: Bad branch name, base or target path
            RecoveryFailed: A previous interrupted operation could not be reconciled
            EngineError: git refused the operation
        """
        self._reset()
        try:
            self._transition(CommandState.VALIDATING)
            self.validation.require(self.validation.validate_branch_name(branch))
            base_commit = None
            if base:
                base_commit = self.engine.rev_parse(base)
                if base_commit is None:
                    raise ValidationFailure(f"Unknown base ref '{base}'", "unknown_base")

            self._transition(CommandState.RECOVERING)
            recovered = self.recovery.ensure_clean()

            self._transition(CommandState.VALIDATING)
            worktrees = self.list_worktrees(with_status=False)
            existing = self.discovery.find_by_branch(branch, worktrees)
            if existing is not None:
                if path and normalize_path(path) != normalize_path(existing.path):
                    logger.warning(f"{branch} already has a worktree at {existing.path}, ignoring {path}")
                self._transition(CommandState.DONE)
                return CreateResult(existing, created=False, recovered=recovered)

            target = normalize_path(path) if path else self.default_path(branch, worktrees)
            self.validation.require(self.validation.validate_target_path(target, worktrees))

            record = self._plan_create(branch, target, base, base_commit)

            self._transition(CommandState.CREATING_WORKTREE)
            self.journal.begin(record)
            try:
                self.engine.worktree_add(
                    target,
                    branch,
                    new_branch=record.created_branch,
                    base=(record.upstream or record.base_commit) if record.created_branch else None,
                )
            except EngineError:
                # Roll back now; if that fails too the record stays for the next run
                outcome = self.recovery.recover(record)
                logger.debug(f"Rollback after failed add: {outcome.action.value}")
                raise
            self.journal.advance(record, OperationStep.WORKTREE_ADDED)

            self._transition(CommandState.FINALIZING)
            self.recovery.finalize_create(record)
            self.journal.complete(record)

            wt = self.discovery.find_by_path(target)
            if wt is None:
                raise EngineError("worktree add", f"{target} is not registered after creation")
            self._transition(CommandState.DONE)
            return CreateResult(wt, created=True, recovered=recovered)
        except Exception:
            self._transition(CommandState.FAILED)
            raise

    def _plan_create(
        self, branch: str, target: str, base: Optional[str], base_commit: Optional[str]
    ) -> OperationRecord:
        record = OperationRecord(
            kind=OperationKind.CREATE,
            path=target,
            branch=branch,
            path_preexisted=os.path.isdir(target),
        )
        if self.engine.branch_exists(branch):
            if base:
                logger.warning(f"Branch {branch} already exists, ignoring --base {base}")
            return record

        record.created_branch = True
        if not base and self.engine.remote_branch_exists(branch):
            record.base_commit = self.engine.rev_parse(f"refs/remotes/origin/{branch}")
            if self.config.set_upstream:
                record.upstream = f"origin/{branch}"
        else:
            record.base_commit = base_commit or self.engine.rev_parse("HEAD")
            if record.base_commit is None:
                raise ValidationFailure("Repository has no commits to branch from", "no_commits")
        return record

    def remove(
        self,
        selector: str,
        force: bool = False,
        delete_branch: bool = False,
        exact: bool = False,
        confirm: Optional[Callable[[Worktree], bool]] = None,
    ) -> RemoveResult:
        """
        Remove a worktree and delete its directory.

        Args:
            selector: Branch, directory name, path or substring
            force: Remove even if dirty or locked
            delete_branch: Also delete the worktree's branch
            exact: Prefer exact branch/directory name matches
            confirm: Called with the resolved worktree; returning False aborts

        Raises:
            ValidationFailure: Nothing or several matched, main worktree, dirty or locked
            SelectionAborted: The user declined
            RecoveryFailed: A previous interrupted operation could not be reconciled
            EngineError: git refused the operation
        """
        self._reset()
        try:
            self._transition(CommandState.VALIDATING)
            wt = self.resolve(selector, exact=exact, prompt="remove> ")
            self.validation.require(self.validation.validate_removal(wt, force))
            if confirm is not None and not confirm(wt):
                raise SelectionAborted("Removal cancelled")

            self._transition(CommandState.RECOVERING)
            recovered = self.recovery.ensure_clean()
            current = self.discovery.find_by_path(wt.path)
            if current is None:
                raise WorktreeNotFound(selector)

            record = OperationRecord(
                kind=OperationKind.REMOVE,
                path=current.path,
                branch=current.branch,
                delete_branch=delete_branch and current.branch is not None,
                force=force,
            )

            self._transition(CommandState.REMOVING_WORKTREE)
            self.journal.begin(record)
            force_level = 0
            if force:
                force_level = 2 if current.is_locked else 1
            try:
                if os.path.isdir(current.path):
                    self.engine.worktree_remove(current.path, force=force_level)
                else:
                    logger.info(f"{current.path} is already gone, pruning its metadata")
            except EngineError:
                if self._untouched(current.path):
                    self.journal.complete(record)
                raise
            self.journal.advance(record, OperationStep.WORKTREE_REMOVED)

            self._transition(CommandState.CLEANUP)
            if os.path.lexists(current.path):
                logger.debug(f"Deleting leftover directory {current.path}")
                shutil.rmtree(current.path)
            self.engine.worktree_prune()
            warning = self.recovery.delete_branch_after_remove(record)
            branch_deleted = record.delete_branch and warning is None
            self.journal.complete(record)

            self._transition(CommandState.DONE)
            return RemoveResult(current, branch_deleted, recovered, warning)
        except Exception:
            self._transition(CommandState.FAILED)
            raise

    def _untouched(self, path: str) -> bool:
        """True if a failed removal left the worktree registered and intact."""
        try:
            registered = self.discovery.find_by_path(path) is not None
        except EngineError:
            return False
        return registered and os.path.exists(os.path.join(path, ".git"))
