"""Custom exceptions for git-worktrees"""

from typing import Optional

from git_worktrees.constants import (
    EXIT_ABORTED,
    EXIT_ENGINE_ERROR,
    EXIT_VALIDATION_FAILURE,
)


class GitWorktreesError(Exception):
    """Base exception for all git-worktrees errors."""

    exit_code = EXIT_ENGINE_ERROR


class ValidationFailure(GitWorktreesError):
    """A branch name, path or selector was rejected before touching the repository."""

    exit_code = EXIT_VALIDATION_FAILURE

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        self.message = message
        super().__init__(message)


class AmbiguousSelection(ValidationFailure):
    """Raised when a selector matches more than one worktree."""

    def __init__(self, selector: str, candidates: list[str]):
        self.selector = selector
        self.candidates = candidates
        listed = ", ".join(candidates)
        super().__init__(
            f"'{selector}' matches {len(candidates)} worktrees: {listed}",
            reason="ambiguous",
        )


class WorktreeNotFound(ValidationFailure):
    """Raised when a selector matches no worktree."""

    def __init__(self, selector: str):
        self.selector = selector
        super().__init__(f"No worktree found for '{selector}'", reason="not_found")


class EngineError(GitWorktreesError):
    """Exception raised when git rejects or fails an operation."""

    def __init__(self, operation: str, message: Optional[str] = None, status: Optional[int] = None):
        self.operation = operation
        self.message = message
        self.status = status

        error_msg = f"git {operation} failed"
        if status is not None:
            error_msg += f" (exit {status})"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class EngineUnavailable(EngineError):
    """Exception raised when git cannot be queried at all, e.g. outside a repository."""

    def __init__(self, message: str):
        super().__init__("discover", message)


class EngineLocked(EngineError):
    """Exception raised when another process holds git's lock on repository metadata."""

    def __init__(self, operation: str, message: Optional[str] = None):
        super().__init__(operation, message)

    def __str__(self) -> str:
        return f"{super().__str__()} (repository is locked by another git process, retry shortly)"


class IncompleteOperation(GitWorktreesError):
    """An interrupted operation was found in the journal."""

    def __init__(self, op_id: str, message: str):
        self.op_id = op_id
        super().__init__(message)


class RecoveryFailed(IncompleteOperation):
    """Exception raised when an interrupted operation could not be reconciled automatically."""

    def __init__(self, op_id: str, reason: str, journal_path: Optional[str] = None):
        self.reason = reason
        self.journal_path = journal_path
        msg = f"Could not recover interrupted operation {op_id}: {reason}"
        if journal_path:
            msg += f" (fix manually, then delete {journal_path})"
        super().__init__(op_id, msg)


class SelectionAborted(GitWorktreesError):
    """Raised when the user cancels an interactive selection or confirmation."""

    exit_code = EXIT_ABORTED

    def __init__(self, message: str = "Aborted"):
        super().__init__(message)
