"""Tests for selector variants and the built-in picker"""
import asyncio
from unittest.mock import MagicMock, patch

import pytest

from git_worktrees.config import Config
from git_worktrees.exceptions import AmbiguousSelection, SelectionAborted, WorktreeNotFound
from git_worktrees.services.selector import (
    FzfSelector,
    NonInteractiveSelector,
    TextualSelector,
    make_selector,
)
from git_worktrees.ui.picker import PickerApp, filter_labels


OPTIONS = ["main", "feature-a", "feature-a-b"]


class TestNonInteractiveSelector:
    def test_single_option(self):
        assert NonInteractiveSelector().choose(["only"]) == "only"

    def test_several_options_are_ambiguous(self):
        with pytest.raises(AmbiguousSelection) as exc_info:
            NonInteractiveSelector().choose(OPTIONS, query="a")
        assert exc_info.value.candidates == OPTIONS
        assert exc_info.value.selector == "a"

    def test_no_options(self):
        with pytest.raises(WorktreeNotFound):
            NonInteractiveSelector().choose([], query="x")

    def test_not_interactive(self):
        assert NonInteractiveSelector.interactive is False


class TestFzfSelector:
    """Test the external filter selector."""

    def _run(self, returncode=0, stdout=""):
        return MagicMock(returncode=returncode, stdout=stdout)

    def test_returns_chosen_option(self):
        with patch("git_worktrees.services.selector.subprocess.run") as run:
            run.return_value = self._run(stdout="2\tfeature-a-b\n")
            assert FzfSelector().choose(OPTIONS) == "feature-a-b"

        sent = run.call_args.kwargs["input"]
        assert sent.splitlines() == ["0\tmain", "1\tfeature-a", "2\tfeature-a-b"]

    def test_labels_used_for_display(self):
        with patch("git_worktrees.services.selector.subprocess.run") as run:
            run.return_value = self._run(stdout="0\tMAIN\n")
            FzfSelector().choose(["main"], label=str.upper)
        assert run.call_args.kwargs["input"] == "0\tMAIN\n"

    def test_query_preselects(self):
        cmd = FzfSelector().build_command("feat", "open> ")
        assert cmd[0] == "fzf"
        assert "--prompt=open> " in cmd
        assert cmd[cmd.index("--query") + 1] == "feat"
        assert "--select-1" in cmd

    def test_custom_command_and_options(self):
        cmd = FzfSelector("sk", ["--ansi"]).build_command("", "> ")
        assert cmd[0] == "sk"
        assert cmd[-1] == "--ansi"
        assert "--query" not in cmd

    @pytest.mark.parametrize("returncode", [1, 130])
    def test_cancel(self, returncode):
        with patch("git_worktrees.services.selector.subprocess.run") as run:
            run.return_value = self._run(returncode=returncode)
            with pytest.raises(SelectionAborted) as exc_info:
                FzfSelector().choose(OPTIONS)
        assert exc_info.value.exit_code == 3

    def test_garbled_output(self):
        with patch("git_worktrees.services.selector.subprocess.run") as run:
            run.return_value = self._run(stdout="feature-a\n")
            with pytest.raises(SelectionAborted):
                FzfSelector().choose(OPTIONS)

    def test_missing_binary(self):
        with patch("git_worktrees.services.selector.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(SelectionAborted):
                FzfSelector("no-fzf").choose(OPTIONS)


class TestTextualSelector:
    def test_returns_picked_option(self):
        with patch("git_worktrees.ui.picker.PickerApp") as app_class:
            app_class.return_value.run.return_value = 1
            assert TextualSelector().choose(OPTIONS, query="feat") == "feature-a"
        app_class.assert_called_once_with(OPTIONS, query="feat", prompt="worktree> ")

    def test_cancel(self):
        with patch("git_worktrees.ui.picker.PickerApp") as app_class:
            app_class.return_value.run.return_value = None
            with pytest.raises(SelectionAborted):
                TextualSelector().choose(OPTIONS)


class TestMakeSelector:
    """Selector variant follows config and terminal."""

    def test_non_interactive_config(self):
        selector = make_selector(Config(interactive=False), True, True)
        assert isinstance(selector, NonInteractiveSelector)

    def test_no_tty(self):
        selector = make_selector(Config(), stdin_isatty=False, stdout_isatty=False)
        assert isinstance(selector, NonInteractiveSelector)

    def test_fzf_when_installed(self):
        config = Config(fzf_options=["--ansi"])
        with patch("git_worktrees.services.selector.shutil.which", return_value="/usr/bin/fzf"):
            selector = make_selector(config, True, False)
        assert isinstance(selector, FzfSelector)
        assert selector.options == ["--ansi"]

    def test_textual_without_fzf(self):
        with patch("git_worktrees.services.selector.shutil.which", return_value=None):
            assert isinstance(make_selector(Config(), True, True), TextualSelector)

    def test_fzf_disabled(self):
        with patch("git_worktrees.services.selector.shutil.which", return_value="/usr/bin/fzf"):
            assert isinstance(make_selector(Config(use_fzf=False), True, True), TextualSelector)

    def test_captured_stdout_without_fzf(self):
        with patch("git_worktrees.services.selector.shutil.which", return_value=None):
            assert isinstance(make_selector(Config(), True, False), NonInteractiveSelector)


def test_filter_labels():
    assert filter_labels(OPTIONS, "") == [0, 1, 2]
    assert filter_labels(OPTIONS, "FEATURE") == [1, 2]
    assert filter_labels(OPTIONS, "feature b") == [2]
    assert filter_labels(OPTIONS, "nothing") == []


class TestPickerApp:
    """Drive the built-in picker headlessly."""

    def _run(self, labels, query, *keys):
        async def drive():
            app = PickerApp(labels, query=query)
            async with app.run_test() as pilot:
                for key in keys:
                    await pilot.press(key)
            return app.return_value

        return asyncio.run(drive())

    def test_enter_picks_first_filtered(self):
        assert self._run(OPTIONS, "a-b", "enter") == 2

    def test_cursor_moves_within_filtered(self):
        assert self._run(OPTIONS, "feature", "down", "enter") == 2

    def test_escape_cancels(self):
        assert self._run(OPTIONS, "", "escape") is None
