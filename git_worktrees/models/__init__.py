"""Data models for git-worktrees."""

from .worktree import Worktree, WorktreeStatus
from .operation import (
    OperationKind,
    OperationRecord,
    OperationStep,
    RecoveryAction,
    RecoveryOutcome,
)
from .validation import ValidationReason, ValidationResult

__all__ = [
    "Worktree",
    "WorktreeStatus",
    "OperationKind",
    "OperationRecord",
    "OperationStep",
    "RecoveryAction",
    "RecoveryOutcome",
    "ValidationReason",
    "ValidationResult",
]
