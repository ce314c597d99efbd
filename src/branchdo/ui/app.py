"""
branchdo list screen — Textual application shell and lifecycle driver.

Widget tree::

    #header        (Static — project name, branch rule, timer badge)
    #body          (ListBody — scrollable to-do and queue lists)
      #body-text   (Static)
    #footer        (Static — help table, error / prompt / hint)

All keys go through ``Dispatcher.handle_key``; the app only renders the
resulting state and acts on the returned ``Outcome``.

Running the external editor leaves the alternate screen in an unreliable
state, so after every edit the app exits with the *restart* signal set and
``run_list_session`` builds a new app around the same in-memory state.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import structlog
from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.message import Message
from textual.widgets import Static

from branchdo import __version__
from branchdo.core.editor import edit_text
from branchdo.core.exceptions import EditorError
from branchdo.ui.dispatch import Dispatcher, Outcome, StashClient, TodoStore
from branchdo.ui.render import render
from branchdo.ui.state import ListKind, SessionState

logger = structlog.get_logger()


@dataclass
class LifecycleSignals:
    """One-shot signals observed by ``run_list_session`` after each app run."""

    restart: threading.Event = field(default_factory=threading.Event)
    exit: threading.Event = field(default_factory=threading.Event)


class TimerTick(Message):
    """Posted once per second while the timer is running."""


class ListBody(VerticalScroll, can_focus=False):
    """Scrollable list area; keys are handled by the app, not the scroller."""


class ListApp(App[None]):
    """branchdo interactive to-do list."""

    TITLE = f"branchdo {__version__}"

    CSS = """
    Screen {
        layout: vertical;
        overflow: hidden;
    }
    #header, #footer {
        height: auto;
    }
    #body {
        height: 1fr;
        scrollbar-size-vertical: 1;
        scrollbar-gutter: stable;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit_session", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        state: SessionState,
        *,
        store: TodoStore,
        stash: StashClient,
        editor: str,
        signals: LifecycleSignals,
    ) -> None:
        super().__init__()
        self._editor = editor
        self._signals = signals
        self.dispatcher = Dispatcher(
            state,
            store=store,
            stash=stash,
            edit=self._edit_in_terminal,
            alert=self.bell,
        )

    @property
    def state(self) -> SessionState:
        return self.dispatcher.state

    # ------------------------------------------------------------------
    # Compose
    # ------------------------------------------------------------------

    def compose(self) -> ComposeResult:
        yield Static(id="header")
        with ListBody(id="body"):
            yield Static(id="body-text")
        yield Static(id="footer")

    def on_mount(self) -> None:
        self.dispatcher.handle_resize(self.size.width, self.size.height)
        if self.state.timer.running:
            self.set_interval(1.0, self._post_tick)
        self._refresh_frame()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _post_tick(self) -> None:
        self.post_message(TimerTick())

    def on_timer_tick(self, message: TimerTick) -> None:
        self.dispatcher.handle_tick()
        self._refresh_frame()

    def on_resize(self, event: events.Resize) -> None:
        self.dispatcher.handle_resize(event.size.width, event.size.height)
        self._refresh_frame()

    def on_key(self, event: events.Key) -> None:
        key = event.key
        char = event.character
        if char is not None and len(char) == 1 and char.isprintable():
            key = "space" if char == " " else char
        event.stop()
        event.prevent_default()
        self._apply(self.dispatcher.handle_key(key))

    def action_quit_session(self) -> None:
        self._apply(self.dispatcher.handle_key("ctrl+c"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply(self, outcome: Outcome) -> None:
        if outcome is Outcome.EXIT:
            self._signals.exit.set()
            self.exit()
        elif outcome is Outcome.RESTART:
            self._signals.restart.set()
            self.exit()
        else:
            self._refresh_frame()

    def _edit_in_terminal(self, text: str) -> str:
        try:
            with self.suspend():
                return edit_text(self._editor, text)
        except SuspendNotSupported as exc:
            raise EditorError(f"Cannot run the editor here: {exc}") from exc

    def _refresh_frame(self) -> None:
        frame = render(self.state)
        self.query_one("#header", Static).update(frame.header)
        self.query_one("#body-text", Static).update(frame.body)
        self.query_one("#footer", Static).update(frame.footer)
        body = self.query_one("#body", ListBody)
        body.styles.height = self.state.body_height
        self.call_after_refresh(self._scroll_to_cursor, frame.cursor_line)

    def _scroll_to_cursor(self, line: int) -> None:
        body = self.query_one("#body", ListBody)
        height = self.state.body_height
        if self.state.selected is ListKind.ACTIVE and self.state.cursor == 0:
            body.scroll_to(y=0, animate=False)
        elif line < body.scroll_y:
            body.scroll_to(y=line, animate=False)
        elif line >= body.scroll_y + height:
            body.scroll_to(y=line - height + 1, animate=False)


def run_list_session(
    state: SessionState,
    *,
    store: TodoStore,
    stash: StashClient,
    editor: str,
    signals: LifecycleSignals | None = None,
) -> None:
    """Run the list screen until the user quits.

    A restart request rebuilds the app from the same in-memory *state*
    without re-reading storage.
    """
    signals = signals or LifecycleSignals()
    while True:
        signals.restart.clear()
        app = ListApp(state, store=store, stash=stash, editor=editor, signals=signals)
        app.run()
        if signals.exit.is_set() or not signals.restart.is_set():
            break
        logger.debug("list_screen_restart", branch=state.branch)
