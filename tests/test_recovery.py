"""Tests for the operation journal and crash recovery"""
import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from git_worktrees.exceptions import EngineLocked, RecoveryFailed
from git_worktrees.models.operation import (
    OperationKind,
    OperationRecord,
    OperationStep,
    RecoveryAction,
)
from git_worktrees.services.recovery import OperationJournal
from git_worktrees.services.selector import NonInteractiveSelector
from git_worktrees.services.worktree_manager import WorktreeManager


def _registered_paths(manager):
    return [wt.path for wt in manager.list_worktrees(with_status=False)]


def _fresh(manager):
    """A new manager over the same repository, as a later process would see it."""
    return WorktreeManager(manager.engine.repo_path, manager.config, selector=NonInteractiveSelector())


class TestOperationJournal:
    """Test the on-disk journal."""

    def test_lives_in_common_git_dir(self, manager, git_repo):
        expected = Path(git_repo.git_dir).resolve() / "git-worktrees" / "ops"
        assert manager.journal.directory == expected

    def test_write_and_load(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        record = OperationRecord(kind=OperationKind.CREATE, path="/x/project-a", branch="a")
        journal.begin(record)

        loaded = journal.load_all()
        assert len(loaded) == 1
        assert loaded[0].op_id == record.op_id
        assert loaded[0].kind == OperationKind.CREATE
        assert loaded[0].step == OperationStep.STARTED

    def test_sequence_bumped_on_every_write(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        record = OperationRecord(kind=OperationKind.CREATE, path="/x/project-a", branch="a")
        journal.begin(record)
        journal.advance(record, OperationStep.WORKTREE_ADDED)

        loaded = journal.load_all()[0]
        assert loaded.sequence == 2
        assert loaded.step == OperationStep.WORKTREE_ADDED

    def test_named_by_operation_id(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        record = OperationRecord(kind=OperationKind.REMOVE, path="/x/project-a")
        journal.begin(record)
        assert [p.name for p in journal.directory.iterdir()] == [f"{record.op_id}.json"]

    def test_complete_deletes_record(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        record = journal.begin(OperationRecord(kind=OperationKind.REMOVE, path="/x/a"))
        journal.complete(record)
        journal.complete(record)
        assert journal.load_all() == []

    def test_missing_directory_is_empty(self, temp_dir):
        assert OperationJournal(temp_dir / "nowhere").load_all() == []

    def test_unreadable_entry_raises(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        journal.directory.mkdir(parents=True)
        (journal.directory / "broken.json").write_text("{not json")

        with pytest.raises(RecoveryFailed) as exc_info:
            journal.load_all()
        assert exc_info.value.op_id == "broken"
        assert "broken.json" in str(exc_info.value)

    def test_unknown_keys_ignored(self, temp_dir):
        journal = OperationJournal(temp_dir / "ops")
        journal.directory.mkdir(parents=True)
        data = OperationRecord(kind=OperationKind.CREATE, path="/x/a").to_dict()
        data["added_later"] = True
        (journal.directory / "rec.json").write_text(json.dumps(data))
        assert journal.load_all()[0].path == "/x/a"


class TestRecoveryNoOp:
    """Recovery with nothing to do."""

    def test_no_records(self, manager):
        assert manager.recover() == []

    def test_idempotent(self, manager):
        before = _registered_paths(manager)
        manager.recover()
        manager.recover()
        assert _registered_paths(manager) == before
        assert manager.pending_operations() == []


class TestRecoverCreate:
    """Interrupted creates are finished or rolled back."""

    def test_crash_before_add(self, manager, workspace, git_repo):
        target = workspace / "project-crash"

        def crash(path, *args, **kwargs):
            os.makedirs(path)
            Path(path, "partial").write_text("junk")
            raise KeyboardInterrupt

        with patch.object(manager.engine, "worktree_add", side_effect=crash):
            with pytest.raises(KeyboardInterrupt):
                manager.create("crash")

        assert len(manager.pending_operations()) == 1

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.ABANDONED]
        assert not target.exists()
        assert "crash" not in [h.name for h in git_repo.heads]
        assert str(target) not in _registered_paths(manager)
        assert manager.pending_operations() == []

    def test_crash_after_add_before_journal_update(self, manager, workspace, git_repo):
        target = workspace / "project-half"
        real_add = manager.engine.worktree_add

        def add_then_crash(*args, **kwargs):
            real_add(*args, **kwargs)
            raise KeyboardInterrupt

        with patch.object(manager.engine, "worktree_add", side_effect=add_then_crash):
            with pytest.raises(KeyboardInterrupt):
                manager.create("half")

        assert str(target) in _registered_paths(manager)

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.ABANDONED]
        assert not target.exists()
        assert str(target) not in _registered_paths(manager)
        assert "half" not in [h.name for h in git_repo.heads]

    def test_crash_after_worktree_added_is_repaired(self, manager, workspace, git_repo):
        target = workspace / "project-late"

        with patch.object(manager.recovery, "finalize_create", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                manager.create("late")

        records = manager.pending_operations()
        assert records[0].step == OperationStep.WORKTREE_ADDED

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.REPAIRED]
        assert target.is_dir()
        assert str(target) in _registered_paths(manager)
        assert "late" in [h.name for h in git_repo.heads]
        assert manager.pending_operations() == []

    def test_half_created_worktree_rolled_back(self, manager, workspace, git_repo):
        target = workspace / "project-broken"

        with patch.object(manager.recovery, "finalize_create", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                manager.create("broken")
        (target / ".git").unlink()

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.ABANDONED]
        assert not target.exists()
        assert str(target) not in _registered_paths(manager)
        assert "broken" not in [h.name for h in git_repo.heads]

    def test_preexisting_empty_directory_restored(self, manager, workspace):
        target = workspace / "project-empty"
        target.mkdir()

        def crash(path, *args, **kwargs):
            Path(path, "partial").write_text("junk")
            raise KeyboardInterrupt

        with patch.object(manager.engine, "worktree_add", side_effect=crash):
            with pytest.raises(KeyboardInterrupt):
                manager.create("empty", str(target))

        _fresh(manager).recover()
        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_existing_branch_kept_on_rollback(self, manager, git_repo):
        git_repo.git.branch("existing")

        with patch.object(manager.engine, "worktree_add", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                manager.create("existing")

        _fresh(manager).recover()
        assert "existing" in [h.name for h in git_repo.heads]

    def test_next_create_recovers_first(self, manager, workspace):
        with patch.object(manager.engine, "worktree_add", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                manager.create("first")

        result = _fresh(manager).create("second")
        assert result.created
        assert [o.action for o in result.recovered] == [RecoveryAction.ABANDONED]
        assert manager.pending_operations() == []


class TestRecoverRemove:
    """Interrupted removals are completed."""

    def test_remove_record_completed(self, manager, workspace, git_repo):
        wt = manager.create("gone").worktree
        record = OperationRecord(
            kind=OperationKind.REMOVE, path=wt.path, branch="gone", delete_branch=True
        )
        manager.journal.begin(record)

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.REPAIRED]
        assert not Path(wt.path).exists()
        assert wt.path not in _registered_paths(manager)
        assert "gone" not in [h.name for h in git_repo.heads]

    def test_unforced_remove_keeps_uncommitted_work(self, manager, git_repo):
        wt = manager.create("keepme").worktree
        manager.journal.begin(
            OperationRecord(kind=OperationKind.REMOVE, path=wt.path, branch="keepme", delete_branch=True)
        )
        Path(wt.path, "precious.txt").write_text("unsaved")

        outcomes = _fresh(manager).recover()
        assert [o.action for o in outcomes] == [RecoveryAction.ABANDONED]
        assert "uncommitted changes" in outcomes[0].reason
        assert Path(wt.path, "precious.txt").read_text() == "unsaved"
        assert wt.path in _registered_paths(manager)
        assert "keepme" in [h.name for h in git_repo.heads]
        assert manager.pending_operations() == []

    def test_unforced_remove_keeps_locked_worktree(self, manager, git_repo):
        wt = manager.create("pinned").worktree
        git_repo.git.worktree("lock", wt.path)
        manager.journal.begin(OperationRecord(kind=OperationKind.REMOVE, path=wt.path, branch="pinned"))

        outcomes = manager.recover()
        assert [o.action for o in outcomes] == [RecoveryAction.ABANDONED]
        assert Path(wt.path).is_dir()

    def test_forced_remove_discards_changes(self, manager):
        wt = manager.create("scratch").worktree
        manager.journal.begin(
            OperationRecord(kind=OperationKind.REMOVE, path=wt.path, branch="scratch", force=True)
        )
        Path(wt.path, "junk.txt").write_text("throwaway")

        outcomes = manager.recover()
        assert [o.action for o in outcomes] == [RecoveryAction.REPAIRED]
        assert not Path(wt.path).exists()

    def test_remove_after_git_removed_worktree(self, manager):
        wt = manager.create("done").worktree
        manager.engine.worktree_remove(wt.path)
        record = OperationRecord(kind=OperationKind.REMOVE, path=wt.path, branch="done")
        manager.journal.advance(record, OperationStep.WORKTREE_REMOVED)

        outcomes = manager.recover()
        assert outcomes[0].action == RecoveryAction.REPAIRED
        assert manager.pending_operations() == []


class TestRecoveryFailure:
    """Recovery that git refuses keeps the record."""

    def test_locked_repository_keeps_record(self, manager):
        wt = manager.create("stuck").worktree
        manager.journal.begin(OperationRecord(kind=OperationKind.REMOVE, path=wt.path, branch="stuck"))

        locked = EngineLocked("worktree remove", "Unable to create '/x/index.lock': File exists.")
        with patch.object(manager.engine, "worktree_remove", side_effect=locked):
            outcomes = manager.recover()
            assert [o.action for o in outcomes] == [RecoveryAction.FAILED]
            assert "locked" in outcomes[0].reason

            with pytest.raises(RecoveryFailed) as exc_info:
                manager.recovery.ensure_clean()

        assert exc_info.value.exit_code == 2
        assert len(manager.pending_operations()) == 1
        assert Path(wt.path).is_dir()

    def test_corrupt_journal_blocks_mutations(self, manager):
        manager.journal.directory.mkdir(parents=True, exist_ok=True)
        (manager.journal.directory / "bad.json").write_text("[]")

        with pytest.raises(RecoveryFailed):
            manager.create("blocked")
        assert "blocked" not in manager.engine.local_branches()
