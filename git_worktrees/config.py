"""Configuration handling for git-worktrees"""

import os
import shlex
from dataclasses import dataclass, field
from typing import Optional, List


@dataclass
class Config:
    """Configuration for git-worktrees with validation."""

    # Where new worktrees may live (None = parent of the main worktree)
    workspace_root: Optional[str] = None
    reserved_names: List[str] = field(default_factory=list)

    # Opening worktrees
    open_command: Optional[str] = None  # None = print the path

    # Interactive selection
    interactive: bool = True
    use_fzf: bool = True
    fzf_command: str = "fzf"
    fzf_options: List[str] = field(default_factory=list)

    # Creation
    set_upstream: bool = True

    # Output
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_workspace_root()
        self._validate_reserved_names()
        self._validate_open_command()
        self._validate_fzf_command()

    def _validate_workspace_root(self):
        """Normalize workspace_root to an absolute path."""
        if self.workspace_root is None:
            return
        if not str(self.workspace_root).strip():
            raise ValueError("workspace_root cannot be empty")
        self.workspace_root = os.path.abspath(os.path.expanduser(str(self.workspace_root)))

    def _validate_reserved_names(self):
        """Validate reserved_names list."""
        if not isinstance(self.reserved_names, list):
            raise ValueError("reserved_names must be a list")
        self.reserved_names = [name.strip() for name in self.reserved_names if name.strip()]

    def _validate_open_command(self):
        """Treat a blank open command as unset."""
        if self.open_command is not None and not self.open_command.strip():
            self.open_command = None

    def _validate_fzf_command(self):
        """Validate fzf_command is not empty."""
        if not self.fzf_command or not self.fzf_command.strip():
            raise ValueError("fzf_command cannot be empty")
        self.fzf_command = self.fzf_command.strip()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "workspace_root": self.workspace_root,
            "reserved_names": self.reserved_names,
            "open_command": self.open_command,
            "interactive": self.interactive,
            "use_fzf": self.use_fzf,
            "fzf_command": self.fzf_command,
            "fzf_options": self.fzf_options,
            "set_upstream": self.set_upstream,
            "verbose": self.verbose,
            "debug": self.debug,
        }

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary."""
        known_fields = {
            "workspace_root",
            "reserved_names",
            "open_command",
            "interactive",
            "use_fzf",
            "fzf_command",
            "fzf_options",
            "set_upstream",
            "verbose",
            "debug",
        }

        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "Config":
        """Build a Config from WT_* environment variables, then apply overrides.

        Overrides whose value is None are ignored so unset CLI flags keep the
        environment's value.
        """
        env = os.environ if environ is None else environ
        values: dict = {}

        if env.get("WT_WORKSPACE_ROOT"):
            values["workspace_root"] = env["WT_WORKSPACE_ROOT"]
        if env.get("WT_OPEN_CMD"):
            values["open_command"] = env["WT_OPEN_CMD"]
        if env.get("WT_FZF"):
            values["fzf_command"] = env["WT_FZF"]
        if env.get("WT_FZF_OPTS"):
            values["fzf_options"] = shlex.split(env["WT_FZF_OPTS"])
        if env.get("WT_NO_FZF", "").lower() in ("1", "true", "yes"):
            values["use_fzf"] = False
        if env.get("WT_RESERVED"):
            values["reserved_names"] = env["WT_RESERVED"].split(",")

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(values)
