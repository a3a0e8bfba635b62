"""Validation result model"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ValidationReason(Enum):
    """Reason code attached to a validation result."""
    OK = "ok"
    EMPTY = "empty"
    RESERVED = "reserved"
    INVALID_REF = "invalid_ref"
    PATH_NOT_EMPTY = "path_not_empty"
    OUTSIDE_WORKSPACE = "outside_workspace"
    PATH_CLAIMED = "path_claimed"
    MAIN_WORKTREE = "main_worktree"
    DIRTY = "dirty"
    LOCKED = "locked"


@dataclass(frozen=True)
class ValidationResult:
    """Pass/fail plus a reason code."""
    ok: bool
    reason: ValidationReason = ValidationReason.OK
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def passed(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def rejected(cls, reason: ValidationReason, message: str) -> "ValidationResult":
        return cls(False, reason, message)
