"""Tests for configuration"""
import os

import pytest

from git_worktrees.config import Config


class TestConfig:
    """Test Config validation."""

    def test_defaults(self):
        config = Config()
        assert config.workspace_root is None
        assert config.open_command is None
        assert config.interactive is True
        assert config.use_fzf is True
        assert config.fzf_command == "fzf"
        assert config.set_upstream is True

    def test_workspace_root_made_absolute(self):
        config = Config(workspace_root="~/trees")
        assert config.workspace_root == os.path.join(os.path.expanduser("~"), "trees")

    def test_blank_workspace_root_rejected(self):
        with pytest.raises(ValueError, match="workspace_root"):
            Config(workspace_root="  ")

    def test_blank_open_command_is_unset(self):
        assert Config(open_command="   ").open_command is None

    def test_empty_fzf_command_rejected(self):
        with pytest.raises(ValueError, match="fzf_command"):
            Config(fzf_command="")

    def test_reserved_names_must_be_list(self):
        with pytest.raises(ValueError, match="reserved_names"):
            Config(reserved_names="main")

    def test_reserved_names_stripped(self):
        assert Config(reserved_names=[" scratch ", "", "tmp"]).reserved_names == ["scratch", "tmp"]

    def test_round_trip_through_dict(self):
        config = Config(open_command="code", use_fzf=False)
        assert Config.from_dict(config.to_dict()) == config

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"open_command": "vim", "color": "always"})
        assert config.open_command == "vim"

    def test_get(self):
        assert Config(open_command="code").get("open_command") == "code"
        assert Config().get("missing", "fallback") == "fallback"


class TestFromEnv:
    """Test reading WT_* environment variables."""

    def test_empty_environment(self):
        assert Config.from_env({}) == Config()

    def test_reads_variables(self, tmp_path):
        config = Config.from_env(
            {
                "WT_WORKSPACE_ROOT": str(tmp_path),
                "WT_OPEN_CMD": "code -n",
                "WT_FZF": "sk",
                "WT_FZF_OPTS": "--ansi --border",
                "WT_NO_FZF": "1",
                "WT_RESERVED": "scratch,tmp",
            }
        )
        assert config.workspace_root == str(tmp_path)
        assert config.open_command == "code -n"
        assert config.fzf_command == "sk"
        assert config.fzf_options == ["--ansi", "--border"]
        assert config.use_fzf is False
        assert config.reserved_names == ["scratch", "tmp"]

    def test_overrides_win(self):
        config = Config.from_env({"WT_OPEN_CMD": "code"}, open_command="vim", interactive=False)
        assert config.open_command == "vim"
        assert config.interactive is False

    def test_none_overrides_ignored(self):
        config = Config.from_env({"WT_NO_FZF": "yes"}, use_fzf=None)
        assert config.use_fzf is False

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            Config.from_env({"WT_WORKSPACE_ROOT": "   "})
