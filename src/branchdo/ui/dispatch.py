"""
Event dispatcher for the list screen.

Maps key, resize and timer-tick events to ``SessionState`` transitions.
Each transition finishes its storage or git call before the next event is
accepted.  When a collaborator fails, the in-memory state is left as it was
and the error is put in ``state.error`` for the footer.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from enum import Enum, auto
from typing import Protocol, assert_never

import structlog

from branchdo.core.exceptions import BranchdoError
from branchdo.core.git import StashRef
from branchdo.ui.state import (
    DeleteActiveItem,
    DeleteQueueItem,
    ListKind,
    PopStash,
    PushStash,
    SessionState,
)

logger = structlog.get_logger()

# Failures that abort a transition instead of the session.
RECOVERABLE_ERRORS: tuple[type[Exception], ...] = (sqlite3.Error, BranchdoError, OSError)

PROMPT_DELETE_ACTIVE = "delete todo item: are you sure? (y/n) "
PROMPT_DELETE_QUEUE = "delete queue item: are you sure? (y/n) "
PROMPT_PUSH_STASH = "push changes to stash? (y/n) "
PROMPT_POP_STASH = "pop changes from stash? (y/n) "


class Outcome(Enum):
    CONTINUE = auto()
    RESTART = auto()
    EXIT = auto()


class TodoStore(Protocol):
    def set_done(self, todo_id: int, done: bool) -> None: ...
    def change_position(self, todo_id: int, from_pos: int, to_pos: int) -> None: ...
    def delete_todo(self, todo_id: int) -> None: ...
    def update_task(self, todo_id: int, task: str) -> None: ...
    def move_todo(self, todo_id: int, project_id: int) -> None: ...


class StashClient(Protocol):
    def list_stashes(self) -> dict[int, StashRef]: ...
    def push_stash(self, item_id: int) -> None: ...
    def pop_stash(self, ref: str) -> None: ...


# Key name (after normalisation) -> action name.
KEYMAP: dict[str, str] = {
    "ctrl+c": "quit",
    "q": "quit",
    "up": "cursor_up",
    "k": "cursor_up",
    "down": "cursor_down",
    "j": "cursor_down",
    "enter": "toggle_done",
    "space": "toggle_done",
    "t": "promote",
    "ctrl+up": "swap_up",
    "ctrl+k": "swap_up",
    "ctrl+down": "swap_down",
    "ctrl+j": "swap_down",
    "d": "request_delete",
    "y": "confirm",
    "n": "cancel",
    "e": "edit",
    "m": "move",
    "?": "toggle_help",
    "question_mark": "toggle_help",
    "h": "toggle_help",
    "#": "toggle_ids",
    "number_sign": "toggle_ids",
    "s": "push_stash",
    "p": "pop_stash",
}

_CONFIRMING_ACTIONS = frozenset({"confirm", "cancel", "quit"})


def normalize_key(key: str) -> str:
    """Fold single-letter keys to lower case so ``K`` and ``k`` behave alike."""
    if len(key) == 1:
        return key.lower()
    if key.startswith("shift+") and len(key) == 7:
        return key[-1].lower()
    return key


class Dispatcher:
    """Applies events to a ``SessionState``.

    *edit* receives the current task text and returns the edited text; the
    host wraps it so the editor gets the terminal.  *alert* rings the bell
    for rejected operations.
    """

    def __init__(
        self,
        state: SessionState,
        store: TodoStore,
        stash: StashClient,
        edit: Callable[[str], str],
        alert: Callable[[], None],
    ) -> None:
        self.state = state
        self._store = store
        self._stash = stash
        self._edit = edit
        self._alert = alert

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------

    def handle_key(self, key: str) -> Outcome:
        action = KEYMAP.get(normalize_key(key))
        if action is None:
            return Outcome.CONTINUE
        if self.state.pending is not None and action not in _CONFIRMING_ACTIONS:
            return Outcome.CONTINUE
        result: Outcome | None = getattr(self, f"action_{action}")()
        return result or Outcome.CONTINUE

    def handle_resize(self, width: int, height: int) -> None:
        self.state.width = width
        self.state.height = height

    def handle_tick(self) -> None:
        if self.state.timer.running:
            self.state.timer.elapsed_seconds += 1

    def _fail(self, op: str, exc: Exception) -> None:
        self.state.error = str(exc) or exc.__class__.__name__
        logger.warning("list_transition_failed", op=op, error=self.state.error)

    # ------------------------------------------------------------------
    # Cursor
    # ------------------------------------------------------------------

    def action_cursor_up(self) -> None:
        state = self.state
        if state.cursor > 0:
            state.cursor -= 1
        elif state.other_items:
            target = state.selected.other
            state.set_mode(target)
            state.cursor = len(state.items_for(target)) - 1

    def action_cursor_down(self) -> None:
        state = self.state
        if state.cursor < len(state.items) - 1:
            state.cursor += 1
        elif state.other_items:
            state.set_mode(state.selected.other)
            state.cursor = 0

    # ------------------------------------------------------------------
    # Active-list edits
    # ------------------------------------------------------------------

    def action_toggle_done(self) -> None:
        state = self.state
        item = state.current_item
        if state.selected is not ListKind.ACTIVE or item is None:
            return
        done = not item.done
        try:
            self._store.set_done(item.id, done)
        except RECOVERABLE_ERRORS as exc:
            self._fail("toggle_done", exc)
            return
        item.done = done

    def action_promote(self) -> None:
        state = self.state
        item = state.current_item
        if state.selected is not ListKind.ACTIVE or item is None or state.cursor == 0:
            return
        try:
            self._store.change_position(item.id, state.cursor + 1, 1)
        except RECOVERABLE_ERRORS as exc:
            self._fail("promote", exc)
            return
        del state.active[state.cursor]
        state.active.insert(0, item)
        state.cursor = 0

    def _swap(self, offset: int) -> None:
        state = self.state
        item = state.current_item
        target = state.cursor + offset
        if state.selected is not ListKind.ACTIVE or item is None:
            return
        if not 0 <= target < len(state.active):
            return
        try:
            self._store.change_position(item.id, state.cursor + 1, target + 1)
        except RECOVERABLE_ERRORS as exc:
            self._fail("swap", exc)
            return
        state.active[state.cursor], state.active[target] = state.active[target], item
        state.cursor = target

    def action_swap_up(self) -> None:
        self._swap(-1)

    def action_swap_down(self) -> None:
        self._swap(1)

    # ------------------------------------------------------------------
    # Confirmation-gated operations
    # ------------------------------------------------------------------

    def action_request_delete(self) -> None:
        state = self.state
        item = state.current_item
        if item is None:
            return
        if state.selected is ListKind.ACTIVE:
            if item.done:
                self._alert()
                return
            state.begin_confirmation(PROMPT_DELETE_ACTIVE, DeleteActiveItem(state.cursor))
        else:
            state.begin_confirmation(PROMPT_DELETE_QUEUE, DeleteQueueItem(state.cursor))

    def action_push_stash(self) -> None:
        state = self.state
        item = state.current_item
        if state.selected is not ListKind.ACTIVE or item is None:
            return
        if item.stash is not None:
            self._alert()
            return
        state.begin_confirmation(PROMPT_PUSH_STASH, PushStash(state.cursor))

    def action_pop_stash(self) -> None:
        state = self.state
        item = state.current_item
        if state.selected is not ListKind.ACTIVE or item is None or item.stash is None:
            return
        state.begin_confirmation(PROMPT_POP_STASH, PopStash(state.cursor))

    def action_confirm(self) -> None:
        pending = self.state.pending
        if pending is None:
            return
        match pending.op:
            case DeleteActiveItem(index=index):
                self._confirm_delete(ListKind.ACTIVE, index)
            case DeleteQueueItem(index=index):
                self._confirm_delete(ListKind.QUEUE, index)
            case PushStash(index=index):
                self._confirm_push_stash(index)
            case PopStash(index=index):
                self._confirm_pop_stash(index)
            case _:
                assert_never(pending.op)

    def action_cancel(self) -> None:
        pending = self.state.pending
        if pending is None:
            return
        self.state.set_mode(pending.origin)

    def _confirm_delete(self, kind: ListKind, index: int) -> None:
        state = self.state
        state.set_mode(kind)
        items = state.items_for(kind)
        item = items[index]
        try:
            self._store.delete_todo(item.id)
        except RECOVERABLE_ERRORS as exc:
            self._fail("delete", exc)
            return
        del items[index]
        if not items:
            state.set_mode(kind.other)
            state.cursor = 0
        else:
            state.clamp_cursor()

    def _confirm_push_stash(self, index: int) -> None:
        state = self.state
        state.set_mode(ListKind.ACTIVE)
        item = state.active[index]
        try:
            self._stash.push_stash(item.id)
            stashes = self._stash.list_stashes()
        except RECOVERABLE_ERRORS as exc:
            self._fail("push_stash", exc)
            return
        item.stash = stashes.get(item.id)

    def _confirm_pop_stash(self, index: int) -> None:
        state = self.state
        state.set_mode(ListKind.ACTIVE)
        item = state.active[index]
        if item.stash is None:
            return
        try:
            self._stash.pop_stash(item.stash.ref)
        except RECOVERABLE_ERRORS as exc:
            self._fail("pop_stash", exc)
            return
        item.stash = None

    # ------------------------------------------------------------------
    # Both lists
    # ------------------------------------------------------------------

    def action_edit(self) -> Outcome | None:
        item = self.state.current_item
        if item is None:
            return None
        try:
            text = self._edit(item.task)
            if text and text != item.task:
                self._store.update_task(item.id, text)
                item.task = text
        except RECOVERABLE_ERRORS as exc:
            self._fail("edit", exc)
        # The editor took over the terminal; the screen must be rebuilt.
        return Outcome.RESTART

    def action_move(self) -> None:
        state = self.state
        item = state.current_item
        if item is None:
            return
        source = state.selected
        if source is ListKind.ACTIVE:
            dest_project = state.queue_project_id
        else:
            dest_project = state.project_id
        try:
            self._store.move_todo(item.id, dest_project)
        except RECOVERABLE_ERRORS as exc:
            self._fail("move", exc)
            return
        state.items_for(source.other).append(item)
        del state.items[state.cursor]
        state.cursor = max(state.cursor - 1, 0)
        if not state.items:
            state.set_mode(source.other)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def action_toggle_help(self) -> None:
        self.state.show_help = not self.state.show_help

    def action_toggle_ids(self) -> None:
        self.state.show_ids = not self.state.show_ids

    def action_quit(self) -> Outcome:
        return Outcome.EXIT
