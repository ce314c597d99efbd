"""
List-screen state types — pure Python dataclasses, no Textual imports.

These can be constructed and tested without a running Textual app.  The
dispatcher (``ui.dispatch``) mutates a ``SessionState`` in place; the
renderer (``ui.render``) reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from rich.cells import chop_cells

from branchdo.core.git import StashRef


class ListKind(Enum):
    ACTIVE = auto()
    QUEUE = auto()

    @property
    def other(self) -> ListKind:
        return ListKind.QUEUE if self is ListKind.ACTIVE else ListKind.ACTIVE


class Mode(Enum):
    ACTIVE = auto()
    QUEUE = auto()
    CONFIRMING = auto()


@dataclass
class ListItem:
    id: int
    task: str
    done: bool = False
    committed: bool = False
    stash: StashRef | None = None


# ---------------------------------------------------------------------------
# Operations waiting for a y/n confirmation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DeleteActiveItem:
    index: int


@dataclass(frozen=True)
class DeleteQueueItem:
    index: int


@dataclass(frozen=True)
class PushStash:
    index: int


@dataclass(frozen=True)
class PopStash:
    index: int


PendingOp = DeleteActiveItem | DeleteQueueItem | PushStash | PopStash


@dataclass(frozen=True)
class Confirmation:
    prompt: str
    op: PendingOp

    @property
    def origin(self) -> ListKind:
        """The list the operation was requested from."""
        return ListKind.QUEUE if isinstance(self.op, DeleteQueueItem) else ListKind.ACTIVE


@dataclass
class TimerState:
    running: bool = False
    elapsed_seconds: int = 0

    @property
    def visible(self) -> bool:
        return self.running or self.elapsed_seconds > 0


# ---------------------------------------------------------------------------
# Help key tables
# ---------------------------------------------------------------------------

HELP_COLUMNS = 4

# Matches the ``scrollbar-size-vertical`` of the list body.
SCROLLBAR_WIDTH = 1

ACTIVE_HELP_KEYS: tuple[tuple[str, str], ...] = (
    ("Quit", "Q"),
    ("Up", "K"),
    ("Down", "J"),
    ("Toggle done", "⎵"),
    ("Push up", "^K"),
    ("Push down", "^J"),
    ("Push to top", "T"),
    ("Edit", "E"),
    ("Delete", "D"),
    ("Move to queue", "M"),
    ("Stash", "S"),
    ("Pop stash", "P"),
)

QUEUE_HELP_KEYS: tuple[tuple[str, str], ...] = (
    ("Quit", "Q"),
    ("Up", "K"),
    ("Down", "J"),
    ("Make todo", "M"),
    ("Edit", "E"),
    ("Delete", "D"),
)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


@dataclass
class SessionState:
    """Everything the list screen shows, for one invocation."""

    project_id: int
    queue_project_id: int
    branch: str
    project_name: str = ""
    active: list[ListItem] = field(default_factory=list)
    queue: list[ListItem] = field(default_factory=list)
    selected: ListKind = ListKind.ACTIVE
    cursor: int = 0
    pending: Confirmation | None = None
    error: str = ""
    show_help: bool = False
    show_ids: bool = False
    timer: TimerState = field(default_factory=TimerState)
    width: int = 80
    height: int = 24

    @classmethod
    def initial(
        cls,
        *,
        project_id: int,
        queue_project_id: int,
        branch: str,
        project_name: str = "",
        active: list[ListItem] | None = None,
        queue: list[ListItem] | None = None,
        timer: TimerState | None = None,
        show_help: bool = False,
        show_ids: bool = False,
    ) -> SessionState:
        """Build the starting state: Active when it has items, cursor on the first open item."""
        active = active or []
        queue = queue or []
        cursor = next((i for i, item in enumerate(active) if not item.done), 0)
        return cls(
            project_id=project_id,
            queue_project_id=queue_project_id,
            branch=branch,
            project_name=project_name,
            active=active,
            queue=queue,
            selected=ListKind.ACTIVE if active else ListKind.QUEUE,
            cursor=cursor if active else 0,
            timer=timer or TimerState(),
            show_help=show_help,
            show_ids=show_ids,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        if self.pending is not None:
            return Mode.CONFIRMING
        return Mode.ACTIVE if self.selected is ListKind.ACTIVE else Mode.QUEUE

    def items_for(self, kind: ListKind) -> list[ListItem]:
        return self.active if kind is ListKind.ACTIVE else self.queue

    @property
    def items(self) -> list[ListItem]:
        return self.items_for(self.selected)

    @property
    def other_items(self) -> list[ListItem]:
        return self.items_for(self.selected.other)

    @property
    def current_item(self) -> ListItem | None:
        items = self.items
        if 0 <= self.cursor < len(items):
            return items[self.cursor]
        return None

    @property
    def show_project_name(self) -> bool:
        return bool(self.project_name) and self.project_name != self.branch

    # ------------------------------------------------------------------
    # Mode changes
    # ------------------------------------------------------------------

    def set_mode(self, kind: ListKind) -> None:
        """Select a list, dropping any pending confirmation and error."""
        self.selected = kind
        self.pending = None
        self.error = ""

    def begin_confirmation(self, prompt: str, op: PendingOp) -> None:
        self.pending = Confirmation(prompt=prompt, op=op)
        self.error = ""

    def clamp_cursor(self) -> None:
        self.cursor = max(0, min(self.cursor, len(self.items) - 1))

    # ------------------------------------------------------------------
    # Geometry
    #
    # Heights are derived from state rather than measured from rendered
    # text.  They must match the line counts produced by ui.render.
    # ------------------------------------------------------------------

    @property
    def help_keys(self) -> tuple[tuple[str, str], ...]:
        return ACTIVE_HELP_KEYS if self.selected is ListKind.ACTIVE else QUEUE_HELP_KEYS

    @property
    def help_visible(self) -> bool:
        return self.show_help and self.pending is None

    @property
    def name_width(self) -> int:
        return max(self.width - 4, 1)

    @property
    def name_lines(self) -> list[str]:
        """The project name cut into header lines of at most ``name_width`` cells."""
        if not self.show_project_name:
            return []
        return chop_cells(self.project_name, self.name_width)

    @property
    def body_width(self) -> int:
        """Columns left for list text once the scrollbar gutter is reserved."""
        return max(self.width - SCROLLBAR_WIDTH, 1)

    @property
    def header_height(self) -> int:
        height = 1  # branch line
        height += len(self.name_lines)
        if self.timer.visible:
            height += 1
        return height

    @property
    def footer_height(self) -> int:
        height = 2  # rule + message line
        if self.help_visible:
            height += 1 + -(-len(self.help_keys) // HELP_COLUMNS)
        return height

    @property
    def body_height(self) -> int:
        return max(self.height - self.header_height - self.footer_height, 1)


__all__ = [
    "ACTIVE_HELP_KEYS",
    "Confirmation",
    "DeleteActiveItem",
    "DeleteQueueItem",
    "HELP_COLUMNS",
    "ListItem",
    "ListKind",
    "Mode",
    "PendingOp",
    "PopStash",
    "PushStash",
    "QUEUE_HELP_KEYS",
    "SCROLLBAR_WIDTH",
    "SessionState",
    "TimerState",
]
