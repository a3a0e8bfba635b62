"""Operation journal and crash recovery for mutating commands."""

import json
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, TYPE_CHECKING

from git_worktrees.constants import JOURNAL_DIRNAME, JOURNAL_OPS_DIRNAME
from git_worktrees.exceptions import EngineError, EngineLocked, RecoveryFailed
from git_worktrees.logging_config import get_logger
from git_worktrees.models.operation import (
    OperationKind,
    OperationRecord,
    OperationStep,
    RecoveryAction,
    RecoveryOutcome,
)
from git_worktrees.services.validation_service import ValidationService

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

if TYPE_CHECKING:
    from git_worktrees.services.discovery import DiscoveryService
    from git_worktrees.services.git_engine import GitEngine

logger = get_logger(__name__)


class OperationJournal:
    """One JSON marker file per in-progress operation.

    A record is written before the first mutating step, rewritten after each
    step and deleted only once the operation is confirmed complete. Files
    are named by a random operation id, never by process id.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    @classmethod
    def for_engine(cls, engine: "GitEngine") -> "OperationJournal":
        """Journal stored in the repository's common git dir, shared by all worktrees."""
        return cls(engine.common_dir / JOURNAL_DIRNAME / JOURNAL_OPS_DIRNAME)

    def path_for(self, record: OperationRecord) -> Path:
        return self.directory / f"{record.op_id}.json"

    @contextmanager
    def _lock(self, file_handle):
        if not HAS_FCNTL:
            yield
            return
        fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)

    def write(self, record: OperationRecord) -> None:
        """Atomically persist record with a bumped sequence number."""
        self.directory.mkdir(parents=True, exist_ok=True)
        record.sequence += 1
        target = self.path_for(record)
        temp_file = target.with_name(f".{record.op_id}.tmp")
        try:
            with open(temp_file, "w") as f:
                with self._lock(f):
                    json.dump(record.to_dict(), f, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
            # Atomic rename (POSIX systems guarantee atomicity)
            temp_file.replace(target)
        finally:
            if temp_file.exists():
                temp_file.unlink()
        logger.debug(f"Journaled {record} (seq {record.sequence})")

    def begin(self, record: OperationRecord) -> OperationRecord:
        self.write(record)
        return record

    def advance(self, record: OperationRecord, step: OperationStep) -> None:
        record.step = step
        self.write(record)

    def complete(self, record: OperationRecord) -> None:
        """Delete the record; the operation is done."""
        try:
            self.path_for(record).unlink()
        except FileNotFoundError:
            pass
        logger.debug(f"Completed operation {record.op_id}")

    def load_all(self) -> list[OperationRecord]:
        """Load every record, oldest first.

        Raises:
            RecoveryFailed: If a journal file cannot be parsed
        """
        if not self.directory.is_dir():
            return []

        records = []
        for entry in sorted(self.directory.glob("*.json")):
            try:
                with open(entry, "r") as f:
                    records.append(OperationRecord.from_dict(json.load(f)))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                raise RecoveryFailed(entry.stem, f"journal entry is unreadable ({e})", str(entry))
        records.sort(key=lambda r: (r.created_at, r.op_id))
        return records


class RecoveryService:
    """Detects and reconciles create/remove operations that never finished."""

    def __init__(self, engine: "GitEngine", discovery: "DiscoveryService", journal: OperationJournal):
        self.engine = engine
        self.discovery = discovery
        self.journal = journal

    def detect_incomplete_operations(self) -> list[OperationRecord]:
        records = self.journal.load_all()
        if records:
            logger.info(f"Found {len(records)} incomplete operation(s)")
        return records

    def recover_all(self) -> list[RecoveryOutcome]:
        """Reconcile every journaled operation. No records means nothing to do."""
        return [self.recover(record) for record in self.detect_incomplete_operations()]

    def ensure_clean(self) -> list[RecoveryOutcome]:
        """Run recovery and raise for the first record that could not be reconciled.

        Raises:
            RecoveryFailed: If any record could not be reconciled
        """
        outcomes = self.recover_all()
        for outcome in outcomes:
            if not outcome.ok:
                raise RecoveryFailed(
                    outcome.record.op_id,
                    outcome.reason or "unknown error",
                    str(self.journal.path_for(outcome.record)),
                )
        return outcomes

    def recover(self, record: OperationRecord) -> RecoveryOutcome:
        """
        Complete or roll back one interrupted operation.

        Args:
            record: Journal record of the interrupted operation

        Returns:
            REPAIRED when the original intent was completed, ABANDONED when it
            was rolled back, FAILED (record kept) when git refused
        """
        logger.info(f"Recovering interrupted {record}")
        try:
            if record.kind == OperationKind.CREATE:
                outcome = self._recover_create(record)
            else:
                outcome = self._recover_remove(record)
        except (EngineError, OSError) as e:
            logger.error(f"Recovery of {record.op_id} failed: {e}")
            return RecoveryOutcome.failed(record, str(e))

        self.journal.complete(record)
        logger.info(f"Operation {record.op_id}: {outcome.action.value}")
        return outcome

    def _recover_create(self, record: OperationRecord) -> RecoveryOutcome:
        if record.step == OperationStep.WORKTREE_ADDED:
            wt = self.discovery.find_by_path(record.path)
            if wt is not None and os.path.exists(os.path.join(record.path, ".git")):
                self.finalize_create(record)
                return RecoveryOutcome.repaired(record)
            logger.warning(f"Worktree at {record.path} is incomplete, rolling back")

        self.rollback_create(record)
        return RecoveryOutcome.abandoned(record, "creation was interrupted before the worktree was ready")

    def finalize_create(self, record: OperationRecord) -> None:
        """Steps after ``git worktree add``; a failure here is logged, not fatal."""
        if record.upstream and record.branch:
            try:
                self.engine.set_upstream(record.branch, record.upstream)
            except EngineLocked:
                raise
            except EngineError as e:
                logger.warning(f"Could not set upstream of {record.branch}: {e}")

    def rollback_create(self, record: OperationRecord) -> None:
        """Undo every trace of a create: registration, directory and new branch."""
        self._force_remove(record.path)
        if record.path_preexisted:
            os.makedirs(record.path, exist_ok=True)

        if record.created_branch and record.branch and self.engine.branch_exists(record.branch):
            in_use = self.discovery.find_by_branch(record.branch)
            tip = self.engine.rev_parse(f"refs/heads/{record.branch}")
            if in_use is None and tip == record.base_commit:
                self.engine.delete_branch(record.branch, force=True)
            else:
                logger.warning(f"Keeping branch {record.branch}: it moved or is checked out elsewhere")

    def _recover_remove(self, record: OperationRecord) -> RecoveryOutcome:
        if not record.force:
            wt = self.discovery.find_by_path(record.path, self.discovery.list_worktrees())
            if wt is not None and os.path.isdir(record.path):
                check = ValidationService.validate_removal(wt)
                if not check.ok:
                    logger.warning(f"Keeping {record.path}: {check.message}")
                    return RecoveryOutcome.abandoned(record, check.message)

        self._force_remove(record.path)
        reason = self.delete_branch_after_remove(record)
        return RecoveryOutcome(RecoveryAction.REPAIRED, record, reason)

    def delete_branch_after_remove(self, record: OperationRecord) -> Optional[str]:
        """Delete the removed worktree's branch when asked; returns a warning instead of failing."""
        if not (record.delete_branch and record.branch):
            return None
        if not self.engine.branch_exists(record.branch):
            return None
        if self.discovery.find_by_branch(record.branch) is not None:
            return f"branch {record.branch} is checked out elsewhere, not deleted"
        try:
            self.engine.delete_branch(record.branch, force=record.force)
        except EngineLocked:
            raise
        except EngineError as e:
            logger.warning(f"Could not delete branch {record.branch}: {e}")
            return f"branch {record.branch} not deleted: {e.message or e}"
        return None

    def _force_remove(self, path: str) -> None:
        """Unregister and delete path whatever state it is in."""
        if self.discovery.find_by_path(path) is not None:
            try:
                self.engine.worktree_remove(path, force=2)
            except EngineLocked:
                raise
            except EngineError as e:
                # e.g. the .git link was never written; fall back to deleting + pruning
                logger.debug(f"git worktree remove failed for {path}: {e}")
        if os.path.lexists(path):
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            else:
                os.unlink(path)
        self.engine.worktree_prune()
