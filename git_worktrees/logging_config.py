"""Logging configuration for git-worktrees"""
import logging
import sys
from pathlib import Path

from git_worktrees.constants import LOG_FILE_NAME, STATE_DIR_NAME


class ColoredFormatter(logging.Formatter):
    """Custom formatter that adds colors to log levels in terminal output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        """Format log record with colors if in a terminal."""
        if sys.stderr.isatty():
            levelname = record.levelname
            if levelname in self.COLORS:
                record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
        return super().format(record)


def setup_logging(verbose: bool = False, debug: bool = False, log_dir: Path = None) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and also write them to a log file
        log_dir: Directory for the debug log file (default: ~/.git-worktrees)
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if debug:
        log_dir = log_dir or Path.home() / STATE_DIR_NAME
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, mode='w')  # Overwrite each run
        except OSError as e:
            file_handler = None
            print(f"git-worktrees: cannot write debug log in {log_dir}: {e}", file=sys.stderr)
        if file_handler is not None:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)

    if debug:
        formatter = ColoredFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:
        formatter = ColoredFormatter(fmt='[%(name)s] %(message)s')

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # GitPython is chatty at DEBUG
    logging.getLogger("git").setLevel(logging.INFO if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance
    """
    # Strip the package prefix for cleaner log names
    if name.startswith('git_worktrees.'):
        name = name.replace('git_worktrees.', '')
    if name.startswith('services.'):
        name = name.replace('services.', '')

    return logging.getLogger(name)
