"""Operation journal and recovery models."""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class OperationKind(Enum):
    """Kind of mutating operation tracked in the journal."""
    CREATE = "create"
    REMOVE = "remove"


class OperationStep(Enum):
    """Last step a tracked operation is known to have reached."""
    STARTED = "started"
    WORKTREE_ADDED = "worktree_added"
    WORKTREE_REMOVED = "worktree_removed"


class RecoveryAction(Enum):
    """Result kind of reconciling one journal record."""
    REPAIRED = "repaired"  # original intent completed
    ABANDONED = "abandoned"  # rolled back
    FAILED = "failed"


@dataclass
class OperationRecord:
    """On-disk marker describing an in-progress create/remove."""

    kind: OperationKind
    path: str
    branch: Optional[str] = None
    step: OperationStep = OperationStep.STARTED
    op_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    sequence: int = 0  # bumped on every journal write
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # create specifics
    created_branch: bool = False
    base_commit: Optional[str] = None
    path_preexisted: bool = False
    upstream: Optional[str] = None

    # remove specifics
    delete_branch: bool = False
    force: bool = False

    def to_dict(self) -> dict:
        data = asdict(self)
        data["kind"] = self.kind.value
        data["step"] = self.step.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OperationRecord":
        """Create a record from its JSON form, ignoring unknown keys."""
        known = set(cls.__dataclass_fields__)
        values = {k: v for k, v in data.items() if k in known}
        values["kind"] = OperationKind(values["kind"])
        values["step"] = OperationStep(values.get("step", OperationStep.STARTED.value))
        return cls(**values)

    def __str__(self) -> str:
        target = f"{self.branch} @ {self.path}" if self.branch else self.path
        return f"{self.kind.value} {target} (step: {self.step.value})"


@dataclass
class RecoveryOutcome:
    """Outcome of recovering one OperationRecord."""

    action: RecoveryAction
    record: OperationRecord
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.action != RecoveryAction.FAILED

    @classmethod
    def repaired(cls, record: OperationRecord) -> "RecoveryOutcome":
        return cls(RecoveryAction.REPAIRED, record)

    @classmethod
    def abandoned(cls, record: OperationRecord, reason: Optional[str] = None) -> "RecoveryOutcome":
        return cls(RecoveryAction.ABANDONED, record, reason)

    @classmethod
    def failed(cls, record: OperationRecord, reason: str) -> "RecoveryOutcome":
        return cls(RecoveryAction.FAILED, record, reason)
