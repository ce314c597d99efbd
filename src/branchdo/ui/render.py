"""
Renderer for the list screen: ``render(state) -> Frame``.

Pure functions from ``SessionState`` to ``rich.text.Text``.  The header and
footer line counts produced here are the ones ``SessionState.header_height``
and ``SessionState.footer_height`` predict; keep the two in step.
"""

from __future__ import annotations

import textwrap
from dataclasses import dataclass

from rich.cells import cell_len
from rich.style import Style
from rich.text import Text

from branchdo.core.models import format_seconds
from branchdo.ui.state import HELP_COLUMNS, ListItem, ListKind, Mode, SessionState

BOLD = Style(bold=True)
DIM = Style(color="#777777")
GREEN = Style(color="green")
RED = Style(color="red")
ORANGE = Style(color="#ffa500")
TIMER_RUNNING = Style(color="white", bgcolor="red")
TIMER_STOPPED = Style(color="black", bgcolor="#777777")

RULE_CHAR = "─"
ACTIVE_GLUE = " " * 6
QUEUE_GLUE = " " * 2

HINTS = {
    ListKind.ACTIVE: "to-do items: toggle help with 'h' or '?'",
    ListKind.QUEUE: "queue items: toggle help with 'h' or '?'",
}


@dataclass
class Frame:
    header: Text
    body: Text
    footer: Text
    cursor_line: int = 0


def wrap_text(text: str, width: int, glue: str = "") -> str:
    """Word-wrap *text* to *width* columns, prefixing continuation lines with *glue*.

    The glue is not counted against the width.  Existing line breaks are
    kept.  A width of zero or less returns the text unchanged.
    """
    if width <= 0:
        return text
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        lines.extend(
            textwrap.wrap(paragraph, width, break_long_words=True, break_on_hyphens=False)
            or [""]
        )
    return ("\n" + glue).join(lines)


def render_item(item: ListItem, *, bold: bool, show_id: bool, width: int, glue: str) -> Text:
    label = f"[#{item.id}] {item.task}" if show_id else item.task
    text = Text(wrap_text(label, width, glue), style=BOLD if bold else "")
    if item.committed:
        text.append(f"\n{glue}• ")
        text.append("committed", style=GREEN)
    if item.stash is not None:
        text.append(f"\n{glue}• ")
        text.append(f"stashed: {item.stash.timestamp}", style=ORANGE)
    return text


def _checkbox(done: bool, selected: bool) -> Text:
    bracket = BOLD if selected else Style()
    box = Text("[", style=bracket)
    if done:
        box.append("X", style=GREEN + BOLD)
    else:
        box.append(" ", style=bracket)
    box.append("]", style=bracket)
    return box


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


def render_header(state: SessionState) -> Text:
    width = state.width
    lines: list[Text] = []

    for chunk in state.name_lines:
        name_line = Text(chunk, style=BOLD)
        name_line.align("center", width)
        lines.append(name_line)

    fill = max(width - cell_len(state.branch) - 2, 0)
    branch_line = Text(RULE_CHAR * (fill // 2), style=DIM)
    branch_line.append(f" {state.branch} ")
    branch_line.append(RULE_CHAR * (fill // 2 + fill % 2), style=DIM)
    branch_line.truncate(width, overflow="ellipsis")
    lines.append(branch_line)

    if state.timer.visible:
        pad = max(width - 8, 0)
        badge_style = TIMER_RUNNING if state.timer.running else TIMER_STOPPED
        timer_line = Text(" " * (pad // 2))
        timer_line.append(format_seconds(state.timer.elapsed_seconds), style=badge_style)
        timer_line.append(" " * (pad // 2 + pad % 2))
        lines.append(timer_line)

    return Text("\n").join(lines)


# ---------------------------------------------------------------------------
# Body
# ---------------------------------------------------------------------------


def render_body(state: SessionState) -> tuple[Text, int]:
    """Return the scrollable body and the line index of the cursor row."""
    body = Text()
    cursor_line = 0

    body.append("  TO-DO LIST:", style=BOLD)
    body.append("\n\n")

    width = max(state.body_width - 6, 1)
    for i, item in enumerate(state.active):
        selected = state.selected is ListKind.ACTIVE and state.cursor == i
        if selected:
            cursor_line = body.plain.count("\n")
        body.append(">" if selected else " ", style=BOLD)
        body.append(" ")
        body.append_text(_checkbox(item.done, selected))
        body.append(" ")
        body.append_text(
            render_item(item, bold=selected, show_id=state.show_ids, width=width, glue=ACTIVE_GLUE)
        )
        body.append("\n")

    if not state.queue:
        return body, cursor_line

    body.append("\n")
    body.append("  QUEUE:", style=BOLD)
    body.append("\n\n")

    width = max(state.body_width - 2, 1)
    for i, item in enumerate(state.queue):
        selected = state.selected is ListKind.QUEUE and state.cursor == i
        if selected:
            cursor_line = body.plain.count("\n")
        body.append(">" if selected else " ", style=BOLD)
        body.append(" ")
        body.append_text(
            render_item(item, bold=selected, show_id=False, width=width, glue=QUEUE_GLUE)
        )
        body.append("\n")

    return body, cursor_line


# ---------------------------------------------------------------------------
# Footer
# ---------------------------------------------------------------------------


def _help_rows(state: SessionState) -> list[Text]:
    cell_width = max(state.width // HELP_COLUMNS, 1)
    keys = state.help_keys
    rows: list[Text] = []
    for start in range(0, len(keys), HELP_COLUMNS):
        row = Text()
        for label, key in keys[start : start + HELP_COLUMNS]:
            cell = Text(f"{key:>2} ")
            cell.append(label, style=DIM)
            cell.truncate(cell_width, overflow="ellipsis", pad=True)
            row.append_text(cell)
        rows.append(row)
    return rows


def render_footer(state: SessionState) -> Text:
    width = state.width
    rule = Text(RULE_CHAR * width, style=DIM)
    lines: list[Text] = []

    if state.help_visible:
        lines.append(rule)
        lines.extend(_help_rows(state))

    if state.error:
        message = Text("  ")
        message.append(state.error, style=RED)
    elif state.mode is Mode.CONFIRMING and state.pending is not None:
        message = Text("  ")
        message.append(state.pending.prompt, style=ORANGE)
    else:
        message = Text("  " + HINTS[state.selected], style=DIM)

    lines.append(rule)
    lines.append(_single_line(message, width))
    return Text("\n").join(lines)


def _single_line(text: Text, width: int) -> Text:
    """Cut *text* to its first line and *width* cells; footer height depends on it."""
    line = text.copy()
    newline = line.plain.find("\n")
    if newline != -1:
        line = line[:newline]
    line.truncate(max(width, 1), overflow="ellipsis")
    return line


def render(state: SessionState) -> Frame:
    body, cursor_line = render_body(state)
    return Frame(
        header=render_header(state),
        body=body,
        footer=render_footer(state),
        cursor_line=cursor_line,
    )
