"""Selection between several candidates: fail, ask fzf, or show a Textual picker."""

import shutil
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence, TypeVar, TYPE_CHECKING

from git_worktrees.exceptions import AmbiguousSelection, SelectionAborted, WorktreeNotFound
from git_worktrees.logging_config import get_logger

if TYPE_CHECKING:
    from git_worktrees.config import Config

logger = get_logger(__name__)

T = TypeVar("T")

# fzf exit codes
FZF_NO_MATCH = 1
FZF_INTERRUPTED = 130


class Selector(ABC):
    """Picks one option out of several."""

    interactive = False

    def choose(
        self,
        options: Sequence[T],
        label: Callable[[T], str] = str,
        query: str = "",
        prompt: str = "worktree> ",
    ) -> T:
        """
        Return one of options.

        Args:
            options: Candidates
            label: Renders a candidate as a single display line
            query: What the user typed, used for messages and as the initial filter
            prompt: Prompt shown by interactive variants

        Raises:
            WorktreeNotFound: If there are no options
            AmbiguousSelection: If a non-interactive selector gets several options
            SelectionAborted: If the user cancels
        """
        if not options:
            raise WorktreeNotFound(query)
        labels = [label(option).replace("\n", " ") for option in options]
        index = self._pick(labels, query, prompt)
        return options[index]

    @abstractmethod
    def _pick(self, labels: list[str], query: str, prompt: str) -> int:
        """Return the index of the chosen label."""


class NonInteractiveSelector(Selector):
    """Accepts a single candidate and refuses to guess between several."""

    def _pick(self, labels: list[str], query: str, prompt: str) -> int:
        if len(labels) > 1:
            raise AmbiguousSelection(query, labels)
        return 0


class FzfSelector(Selector):
    """Delegates to an external line-oriented filter (fzf by default).

    Each candidate is written to the filter's stdin as ``<index>\\t<label>``;
    the filter prints the chosen line on stdout.
    """

    interactive = True

    def __init__(self, command: str = "fzf", options: Optional[list[str]] = None):
        self.command = command
        self.options = options or []

    def build_command(self, query: str, prompt: str) -> list[str]:
        cmd = [
            self.command,
            "--delimiter=\t",
            "--with-nth=2..",
            "--no-multi",
            "--height=40%",
            "--reverse",
            f"--prompt={prompt}",
        ]
        if query:
            cmd.extend(["--query", query, "--select-1"])
        return cmd + list(self.options)

    def _pick(self, labels: list[str], query: str, prompt: str) -> int:
        lines = "\n".join(f"{i}\t{text}" for i, text in enumerate(labels)) + "\n"
        cmd = self.build_command(query, prompt)
        logger.debug(f"Running selector: {cmd}")
        try:
            result = subprocess.run(cmd, input=lines, stdout=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise SelectionAborted(f"selector '{self.command}' not found") from e

        chosen = result.stdout.strip()
        if result.returncode in (FZF_NO_MATCH, FZF_INTERRUPTED) or not chosen:
            raise SelectionAborted()
        if result.returncode != 0:
            raise SelectionAborted(f"selector exited with status {result.returncode}")

        index, _, _ = chosen.partition("\t")
        try:
            return int(index)
        except ValueError:
            raise SelectionAborted(f"unexpected selector output: {chosen!r}")


class TextualSelector(Selector):
    """In-terminal picker used when fzf is not installed."""

    interactive = True

    def _pick(self, labels: list[str], query: str, prompt: str) -> int:
        from git_worktrees.ui.picker import PickerApp

        app = PickerApp(labels, query=query, prompt=prompt)
        index = app.run()
        if index is None:
            raise SelectionAborted()
        return index


def make_selector(
    config: "Config",
    stdin_isatty: Optional[bool] = None,
    stdout_isatty: Optional[bool] = None,
) -> Selector:
    """Pick the selector variant for this environment.

    fzf draws on /dev/tty, so it works with stdout captured by ``$(...)``;
    the Textual picker needs stdout to be the terminal.
    """
    if stdin_isatty is None:
        stdin_isatty = sys.stdin.isatty()
    if stdout_isatty is None:
        stdout_isatty = sys.stdout.isatty()
    if not config.interactive or not stdin_isatty:
        return NonInteractiveSelector()
    if config.use_fzf and shutil.which(config.fzf_command):
        return FzfSelector(config.fzf_command, config.fzf_options)
    if stdout_isatty:
        logger.debug(f"{config.fzf_command} not available, using the built-in picker")
        return TextualSelector()
    return NonInteractiveSelector()
