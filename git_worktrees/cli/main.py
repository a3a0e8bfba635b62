"""Command-line entry points: wt, wtnew, wtrm, wtopen, wtls"""

import argparse
import os
import sys
from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from git_worktrees.cli.args import (
    parse_wt_args,
    parse_wtls_args,
    parse_wtnew_args,
    parse_wtopen_args,
    parse_wtrm_args,
)
from git_worktrees.config import Config
from git_worktrees.constants import (
    EXIT_ABORTED,
    EXIT_ENGINE_ERROR,
    EXIT_OK,
    EXIT_VALIDATION_FAILURE,
    HUB_ACTIONS,
)
from git_worktrees.exceptions import (
    GitWorktreesError,
    RecoveryFailed,
    SelectionAborted,
    ValidationFailure,
)
from git_worktrees.formatters import format_label
from git_worktrees.logging_config import get_logger, setup_logging
from git_worktrees.models.worktree import Worktree
from git_worktrees.services.discovery import normalize_path
from git_worktrees.services.display_service import DisplayService
from git_worktrees.services.worktree_manager import WorktreeManager

console = Console(stderr=True)
logger = get_logger(__name__)

NEW_WORKTREE_ENTRY = "+ new worktree..."

Handler = Callable[[WorktreeManager, DisplayService, object], None]


def build_config(args) -> Config:
    """Config from WT_* environment variables, overridden by command-line flags."""
    return Config.from_env(
        verbose=args.verbose,
        debug=args.debug,
        interactive=False if args.non_interactive else None,
        use_fzf=False if args.no_fzf else None,
    )


def run(handler: Handler, args) -> int:
    """Run a command handler and map failures to exit codes."""
    setup_logging(verbose=args.verbose, debug=args.debug)
    display = DisplayService()
    try:
        config = build_config(args)
    except ValueError as e:
        display.error(f"Invalid configuration: {e}")
        return EXIT_VALIDATION_FAILURE

    try:
        manager = WorktreeManager(args.repo_path, config)
        handler(manager, display, args)
        return EXIT_OK
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_ABORTED
    except GitWorktreesError as e:
        display.error(str(e))
        if args.debug:
            console.print_exception()
        return e.exit_code
    except Exception as e:
        display.error(str(e) or type(e).__name__)
        if args.debug:
            console.print_exception()
        return EXIT_ENGINE_ERROR


def _current_worktree_path(worktrees: list[Worktree]) -> Optional[str]:
    """Path of the worktree containing the cwd (deepest match wins)."""
    cwd = normalize_path(os.getcwd())
    best = None
    for wt in worktrees:
        path = normalize_path(wt.path)
        if cwd == path or cwd.startswith(path + os.sep):
            if best is None or len(path) > len(normalize_path(best)):
                best = wt.path
    return best


def _confirm(message: str) -> bool:
    try:
        response = console.input(f"{message} [y/N] ")
    except EOFError:
        return False
    return response.strip().lower() in ("y", "yes")


def _open_worktree(
    manager: WorktreeManager,
    display: DisplayService,
    wt: Worktree,
    open_with: Optional[str] = None,
    print_only: bool = False,
) -> None:
    """Run the open command, or print the path for ``cd "$(...)"``."""
    command = open_with or manager.config.open_command
    if command and not print_only:
        manager.launch(wt, command)
    else:
        display.display_path(wt.path)


def _require_selector(manager: WorktreeManager, selector: Optional[str]) -> str:
    if not selector and not manager.selector.interactive:
        raise ValidationFailure("No worktree given and no interactive selector available")
    return selector or ""


def cmd_ls(manager: WorktreeManager, display: DisplayService, args) -> None:
    worktrees = manager.list_worktrees(with_status=not args.no_status)
    if args.porcelain:
        display.display_porcelain(worktrees)
    else:
        display.display_worktree_table(worktrees, _current_worktree_path(worktrees))
    try:
        display.display_pending(manager.pending_operations())
    except RecoveryFailed as e:
        display.warning(str(e))


def cmd_new(manager: WorktreeManager, display: DisplayService, args) -> None:
    result = manager.create(args.branch, args.path, args.base)
    display.display_recovery(result.recovered)
    wt = result.worktree
    if result.created:
        display.success(f"Created worktree for [bold]{escape(args.branch)}[/bold] at {escape(wt.path)}")
    else:
        display.success(f"[bold]{escape(args.branch)}[/bold] already has a worktree at {escape(wt.path)}")
    _open_worktree(manager, display, wt, args.open_with, print_only=args.no_open)


def cmd_open(manager: WorktreeManager, display: DisplayService, args) -> None:
    selector = _require_selector(manager, args.selector)
    wt = manager.open(selector, exact=args.exact)
    _open_worktree(manager, display, wt, args.open_with, args.print_only)


def _remove(manager: WorktreeManager, display: DisplayService, selector: str, args) -> None:
    confirm = None
    if not args.yes and sys.stdin.isatty():
        def confirm(wt: Worktree) -> bool:
            return _confirm(f"Remove worktree {escape(wt.path)}?")

    result = manager.remove(
        selector,
        force=args.force,
        delete_branch=args.delete_branch,
        exact=args.exact,
        confirm=confirm,
    )
    display.display_recovery(result.recovered)
    display.success(f"Removed worktree {escape(result.worktree.path)}")
    if result.branch_deleted:
        display.success(f"Deleted branch [bold]{escape(result.worktree.branch)}[/bold]")
    if result.warning:
        display.warning(result.warning)


def cmd_rm(manager: WorktreeManager, display: DisplayService, args) -> None:
    _remove(manager, display, _require_selector(manager, args.selector), args)


def cmd_recover(manager: WorktreeManager, display: DisplayService, args) -> None:
    outcomes = manager.recover()
    if not outcomes:
        display.success("No interrupted operations")
        return
    display.display_recovery(outcomes)
    for outcome in outcomes:
        if not outcome.ok:
            raise RecoveryFailed(
                outcome.record.op_id,
                outcome.reason or "unknown error",
                str(manager.journal.path_for(outcome.record)),
            )


def cmd_prune(manager: WorktreeManager, display: DisplayService, args) -> None:
    removed = manager.prune()
    if not removed:
        display.success("Nothing to prune")
    for wt in removed:
        display.success(f"Pruned {escape(str(wt))}")


def cmd_hub(manager: WorktreeManager, display: DisplayService, args) -> None:
    """Pick a worktree (or a new one), then an action."""
    if not manager.selector.interactive:
        cmd_ls(manager, display, _ls_defaults())
        display.warning("No interactive selector available; see 'wt --help' for commands")
        return

    worktrees = manager.list_worktrees()
    choice = manager.selector.choose(
        worktrees + [NEW_WORKTREE_ENTRY],
        label=lambda option: option if isinstance(option, str) else format_label(option),
        prompt="wt> ",
    )

    if choice == NEW_WORKTREE_ENTRY:
        try:
            branch = console.input("Branch name: ").strip()
        except EOFError:
            raise SelectionAborted()
        new_args = _new_defaults(branch)
        cmd_new(manager, display, new_args)
        return

    action = manager.selector.choose(list(HUB_ACTIONS), prompt=f"{choice.name}> ")
    if action == "open":
        _open_worktree(manager, display, choice)
    else:
        _remove(manager, display, choice.path, _rm_defaults())


def _ls_defaults() -> argparse.Namespace:
    return argparse.Namespace(porcelain=False, no_status=False)


def _new_defaults(branch: str) -> argparse.Namespace:
    return argparse.Namespace(branch=branch, path=None, base=None, no_open=False, open_with=None)


def _rm_defaults() -> argparse.Namespace:
    return argparse.Namespace(force=False, delete_branch=False, exact=False, yes=False)


COMMANDS = {
    None: cmd_hub,
    "ls": cmd_ls,
    "new": cmd_new,
    "open": cmd_open,
    "rm": cmd_rm,
    "recover": cmd_recover,
    "prune": cmd_prune,
}


def wt_main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_wt_args(argv)
    return run(COMMANDS[args.command], args)


def wtls_main(argv: Optional[Sequence[str]] = None) -> int:
    return run(cmd_ls, parse_wtls_args(argv))


def wtnew_main(argv: Optional[Sequence[str]] = None) -> int:
    return run(cmd_new, parse_wtnew_args(argv))


def wtopen_main(argv: Optional[Sequence[str]] = None) -> int:
    return run(cmd_open, parse_wtopen_args(argv))


def wtrm_main(argv: Optional[Sequence[str]] = None) -> int:
    return run(cmd_rm, parse_wtrm_args(argv))


def main() -> int:
    """Dispatch on the program name so one script can serve every command."""
    entry = {
        "wt": wt_main,
        "wtls": wtls_main,
        "wtnew": wtnew_main,
        "wtopen": wtopen_main,
        "wtrm": wtrm_main,
    }.get(os.path.basename(sys.argv[0]), wt_main)
    return entry(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
