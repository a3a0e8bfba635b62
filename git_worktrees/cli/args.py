"""Command-line argument parsing for git-worktrees."""

import argparse
from typing import Optional, Sequence

from git_worktrees.__version__ import __version__

ENV_EPILOG = (
    "Environment: WT_WORKSPACE_ROOT (where worktrees may live), WT_OPEN_CMD "
    "(command run with the worktree path, e.g. 'code'), WT_FZF / WT_FZF_OPTS "
    "(selector command and extra options), WT_NO_FZF=1 (use the built-in picker). "
    "Exit codes: 0 ok, 1 validation failure, 2 git error, 3 aborted."
)


def _common_parser(suppress: bool = False) -> argparse.ArgumentParser:
    """Options shared by every command.

    With suppress, unset options leave no attribute, so a subcommand does not
    overwrite the same flag given before it.
    """
    parser = argparse.ArgumentParser(
        add_help=False, argument_default=argparse.SUPPRESS if suppress else None
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information and write a log file"
    )
    parser.add_argument(
        "-C", dest="repo_path", metavar="DIR", help="Run as if started in DIR"
    )
    parser.add_argument(
        "--no-fzf", action="store_true", help="Use the built-in picker instead of fzf"
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; fail on ambiguous selections (for scripts)",
    )
    return parser


def _add_selector(parser: argparse.ArgumentParser, required: bool = False) -> None:
    parser.add_argument(
        "selector",
        nargs=None if required else "?",
        metavar="branch-or-path",
        help="Branch, directory name, path, or a substring of either",
    )
    parser.add_argument(
        "-x",
        "--exact",
        action="store_true",
        help="Prefer an exact branch or directory name over substring matches",
    )


def _configure_ls(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--porcelain",
        action="store_true",
        help="Stable tab-separated output: path, branch, head, status",
    )
    parser.add_argument(
        "--no-status", action="store_true", help="Skip the per-worktree dirty check"
    )


def _configure_new(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("branch", help="Existing or new branch name")
    parser.add_argument(
        "path", nargs="?", help="Worktree directory (default: <workspace>/<repo>-<branch>)"
    )
    parser.add_argument("--base", metavar="REF", help="Start point for a new branch (default: HEAD)")
    parser.add_argument(
        "--no-open", action="store_true", help="Do not run the open command after creating"
    )
    parser.add_argument("--with", dest="open_with", metavar="CMD", help="Open with CMD")


def _configure_open(parser: argparse.ArgumentParser) -> None:
    _add_selector(parser)
    parser.add_argument("--with", dest="open_with", metavar="CMD", help="Open with CMD")
    parser.add_argument(
        "--print",
        dest="print_only",
        action="store_true",
        help="Only print the worktree path (use with cd \"$(wtopen ...)\")",
    )


def _configure_rm(parser: argparse.ArgumentParser) -> None:
    _add_selector(parser)
    parser.add_argument(
        "-f", "--force", action="store_true", help="Remove even with uncommitted changes or a lock"
    )
    parser.add_argument(
        "-d", "--delete-branch", action="store_true", help="Also delete the worktree's local branch"
    )
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")


def _make_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog, description=description, epilog=ENV_EPILOG, parents=[_common_parser()]
    )
    parser.add_argument("--version", action="version", version=f"git-worktrees {__version__}")
    return parser


def parse_wtls_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = _make_parser("wtls", "List worktrees with status")
    _configure_ls(parser)
    return parser.parse_args(argv)


def parse_wtnew_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = _make_parser("wtnew", "Create (or open) a worktree for a new or existing branch")
    _configure_new(parser)
    return parser.parse_args(argv)


def parse_wtopen_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = _make_parser("wtopen", "Open an existing worktree")
    _configure_open(parser)
    return parser.parse_args(argv)


def parse_wtrm_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = _make_parser(
        "wtrm",
        "Safely remove a worktree. Also prunes git metadata of any worktree whose "
        "directory is already gone.",
    )
    _configure_rm(parser)
    return parser.parse_args(argv)


def parse_wt_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse arguments of the ``wt`` hub; ``command`` is None without a subcommand."""
    parser = _make_parser(
        "wt", "Hub to list, open, create and remove worktrees (interactive without a command)"
    )
    common = _common_parser(suppress=True)
    sub = parser.add_subparsers(dest="command", metavar="command")

    _configure_ls(sub.add_parser("ls", aliases=["list"], parents=[common], help="List worktrees"))
    _configure_new(sub.add_parser("new", parents=[common], help="Create or open a worktree"))
    _configure_open(sub.add_parser("open", parents=[common], help="Open a worktree"))
    _configure_rm(
        sub.add_parser(
            "rm",
            aliases=["remove"],
            parents=[common],
            help="Remove a worktree (also prunes worktrees whose directory is gone)",
        )
    )
    sub.add_parser("recover", parents=[common], help="Reconcile interrupted operations")
    sub.add_parser("prune", parents=[common], help="Drop worktrees whose directory is gone")

    args = parser.parse_args(argv)
    aliases = {"list": "ls", "remove": "rm"}
    args.command = aliases.get(args.command, args.command)
    return args
