"""Validation service for git-worktrees."""

import os
import re
from typing import Optional, TYPE_CHECKING

from git_worktrees.constants import COMMAND_NAMES, RESERVED_BRANCH_NAMES
from git_worktrees.exceptions import ValidationFailure
from git_worktrees.models.validation import ValidationReason, ValidationResult
from git_worktrees.models.worktree import Worktree
from git_worktrees.services.discovery import normalize_path

if TYPE_CHECKING:
    from git_worktrees.config import Config
    from git_worktrees.services.discovery import DiscoveryService

# Characters git refuses anywhere in a ref name
_FORBIDDEN_REF_CHARS = re.compile(r"[\x00-\x20\x7f~^:?*\[\\]")


def _ref_format_error(name: str) -> Optional[str]:
    """Return why name is not a legal branch name under git's ref rules, or None."""
    if _FORBIDDEN_REF_CHARS.search(name):
        return "contains a space, control character or one of ~^:?*[\\"
    if ".." in name:
        return "contains '..'"
    if "@{" in name:
        return "contains '@{'"
    if "//" in name:
        return "contains '//'"
    if name.startswith("-"):
        return "starts with '-'"
    if name.startswith("/") or name.endswith("/"):
        return "starts or ends with '/'"
    if name.endswith("."):
        return "ends with '.'"
    for component in name.split("/"):
        if component.startswith("."):
            return f"component '{component}' starts with '.'"
        if component.endswith(".lock"):
            return f"component '{component}' ends with '.lock'"
    return None


class ValidationService:
    """Checks branch names and paths before any repository state is touched."""

    def __init__(self, config: "Config", discovery: Optional["DiscoveryService"] = None):
        self.config = config
        self.discovery = discovery

    @property
    def reserved_names(self) -> set[str]:
        return set(RESERVED_BRANCH_NAMES) | set(COMMAND_NAMES) | set(self.config.reserved_names)

    def validate_branch_name(self, name: Optional[str]) -> ValidationResult:
        """
        Check a proposed branch name.

        Args:
            name: Branch name as typed by the user

        Returns:
            ValidationResult; rejected for empty, reserved or ref-illegal names
        """
        if name is None or not name.strip():
            return ValidationResult.rejected(ValidationReason.EMPTY, "Branch name is empty")
        if name in self.reserved_names:
            return ValidationResult.rejected(
                ValidationReason.RESERVED, f"'{name}' is a reserved name"
            )
        error = _ref_format_error(name)
        if error:
            return ValidationResult.rejected(
                ValidationReason.INVALID_REF, f"'{name}' is not a valid branch name: {error}"
            )
        return ValidationResult.passed()

    def workspace_root(self, worktrees: Optional[list[Worktree]] = None) -> str:
        """Directory new worktrees must live under."""
        if self.config.workspace_root:
            return normalize_path(self.config.workspace_root)
        worktrees = self._snapshot(worktrees)
        main = next((wt for wt in worktrees if wt.is_main), None)
        if main is None:
            raise ValidationFailure("Cannot determine workspace root: no main worktree")
        return os.path.dirname(normalize_path(main.path))

    def validate_target_path(
        self, path: Optional[str], worktrees: Optional[list[Worktree]] = None
    ) -> ValidationResult:
        """
        Check a proposed worktree directory.

        Accepts a path that does not exist or is an empty directory, lies
        under the workspace root and is not already registered as a worktree.
        """
        if path is None or not str(path).strip():
            return ValidationResult.rejected(ValidationReason.EMPTY, "Target path is empty")

        target = normalize_path(str(path))
        worktrees = self._snapshot(worktrees)

        root = self.workspace_root(worktrees)
        if os.path.commonpath([root, target]) != root or target == root:
            return ValidationResult.rejected(
                ValidationReason.OUTSIDE_WORKSPACE,
                f"{target} is outside the workspace root {root}",
            )

        for wt in worktrees:
            if normalize_path(wt.path) == target:
                label = wt.branch or wt.head[:8]
                return ValidationResult.rejected(
                    ValidationReason.PATH_CLAIMED,
                    f"{target} is already the worktree for {label}",
                )

        if os.path.lexists(target):
            if not os.path.isdir(target) or os.listdir(target):
                return ValidationResult.rejected(
                    ValidationReason.PATH_NOT_EMPTY, f"{target} already exists and is not empty"
                )
        return ValidationResult.passed()

    @staticmethod
    def validate_removal(wt: Worktree, force: bool = False) -> ValidationResult:
        """Check that a worktree may be removed; force skips the dirty and lock checks."""
        if wt.is_main or wt.is_bare:
            return ValidationResult.rejected(
                ValidationReason.MAIN_WORKTREE, f"{wt.path} is the main worktree and cannot be removed"
            )
        if force:
            return ValidationResult.passed()
        if wt.is_locked:
            reason = f" ({wt.lock_reason})" if wt.lock_reason else ""
            return ValidationResult.rejected(
                ValidationReason.LOCKED, f"{wt.path} is locked{reason}; use --force to remove anyway"
            )
        if wt.is_dirty:
            return ValidationResult.rejected(
                ValidationReason.DIRTY,
                f"{wt.path} has uncommitted changes; use --force to remove anyway",
            )
        return ValidationResult.passed()

    @staticmethod
    def require(result: ValidationResult) -> None:
        """Raise ValidationFailure for a rejected result."""
        if not result.ok:
            raise ValidationFailure(result.message or result.reason.value, result.reason.value)

    def _snapshot(self, worktrees: Optional[list[Worktree]]) -> list[Worktree]:
        if worktrees is not None:
            return worktrees
        if self.discovery is None:
            return []
        return self.discovery.list_worktrees(with_status=False)
