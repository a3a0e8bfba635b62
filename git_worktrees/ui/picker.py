"""Built-in fuzzy picker for git-worktrees, used when fzf is not installed."""

from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Input, OptionList
from textual.widgets.option_list import Option


def filter_labels(labels: list[str], query: str) -> list[int]:
    """Indexes of labels containing every whitespace-separated term of query (case-insensitive)."""
    terms = query.lower().split()
    return [i for i, label in enumerate(labels) if all(term in label.lower() for term in terms)]


class PickerApp(App[Optional[int]]):
    """Filter-as-you-type list; exits with the chosen index or None."""

    DEFAULT_CSS = """
    #picker {
        height: auto;
        max-height: 100%;
        padding: 0 1;
    }

    #picker-input {
        margin: 0 0 1 0;
    }

    #picker-options {
        height: auto;
        max-height: 20;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
        Binding("ctrl+c", "cancel", "Cancel", show=False),
        Binding("down", "cursor_down", "Down", show=False),
        Binding("up", "cursor_up", "Up", show=False),
    ]

    def __init__(self, labels: list[str], query: str = "", prompt: str = "> "):
        super().__init__()
        self.labels = labels
        self.initial_query = query
        self.prompt_text = prompt
        self.shown: list[int] = []

    def compose(self) -> ComposeResult:
        with Vertical(id="picker"):
            yield Input(value=self.initial_query, placeholder=self.prompt_text.strip(), id="picker-input")
            yield OptionList(id="picker-options")
        yield Footer()

    def on_mount(self) -> None:
        self._refresh_options(self.initial_query)
        self.query_one(Input).focus()

    def _refresh_options(self, query: str) -> None:
        options = self.query_one(OptionList)
        self.shown = filter_labels(self.labels, query)
        options.clear_options()
        options.add_options([Option(self.labels[i], id=str(i)) for i in self.shown])
        if self.shown:
            options.highlighted = 0

    def on_input_changed(self, event: Input.Changed) -> None:
        self._refresh_options(event.value)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        options = self.query_one(OptionList)
        if options.highlighted is None or not self.shown:
            return
        self.exit(self.shown[options.highlighted])

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        self.exit(int(event.option.id))

    def action_cursor_down(self) -> None:
        self.query_one(OptionList).action_cursor_down()

    def action_cursor_up(self) -> None:
        self.query_one(OptionList).action_cursor_up()

    def action_cancel(self) -> None:
        self.exit(None)
