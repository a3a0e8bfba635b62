"""Services for git-worktrees."""

from .git_engine import GitEngine
from .discovery import DiscoveryService
from .validation_service import ValidationService
from .recovery import OperationJournal, RecoveryService
from .selector import FzfSelector, NonInteractiveSelector, Selector, TextualSelector, make_selector
from .display_service import DisplayService

__all__ = [
    "GitEngine",
    "DiscoveryService",
    "ValidationService",
    "OperationJournal",
    "RecoveryService",
    "Selector",
    "NonInteractiveSelector",
    "FzfSelector",
    "TextualSelector",
    "make_selector",
    "DisplayService",
]
