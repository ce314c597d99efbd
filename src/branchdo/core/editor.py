"""
External editor invocation over temporary files.

``edit_text`` hands a single task text to the user's editor and returns what
was saved.  ``edit_items`` opens a bullet-list template and parses every
``-`` entry into a separate item.  The editor inherits the terminal; callers
running a full-screen UI must release the terminal first.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import tempfile
from pathlib import Path

import structlog

from branchdo.core.exceptions import EditorError

logger = structlog.get_logger()

TMP_PREFIX = "branchdo_"

ITEMS_TEMPLATE = (
    "# Start a line with a hyphen (-) to indicate a new item.\n"
    "# Comments like this are ignored.\n"
    "- "
)
ITEMS_TEMPLATE_LINE = 3


def editor_command(editor: str, path: str, start_line: int = 0) -> list[str]:
    """Build the argv to open *path*, placing the cursor on *start_line* where supported."""
    parts = shlex.split(editor) or ["vi"]
    program, extra = parts[0], parts[1:]
    name = Path(program).name

    if extra:
        if name == "subl" and start_line > 0:
            return [program, *extra, f"{path}:{start_line}"]
        return [program, *extra, path]

    if name in ("vi", "vim", "nvim"):
        return [program, "+normal Ga", path] if start_line > 0 else [program, path]
    if name in ("nano", "emacs"):
        return [program, f"+{start_line}", path] if start_line > 0 else [program, path]
    if name == "subl":
        target = f"{path}:{start_line}" if start_line > 0 else path
        return [program, "-n", "-w", target]
    return [program, path]


def _run_editor(editor: str, path: str, start_line: int) -> None:
    argv = editor_command(editor, path, start_line)
    try:
        proc = subprocess.run(argv, env=os.environ.copy(), check=False)
    except OSError as exc:
        raise EditorError(f"Cannot start editor {argv[0]!r}: {exc}") from exc
    if proc.returncode != 0:
        raise EditorError(f"Editor {argv[0]!r} exited with status {proc.returncode}")


def _edit_tmp(editor: str, content: str, start_line: int = 0) -> str:
    fd, path = tempfile.mkstemp(prefix=TMP_PREFIX, text=True)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        _run_editor(editor, path, start_line)
        return Path(path).read_text(encoding="utf-8")
    finally:
        try:
            os.unlink(path)
        except OSError as exc:
            logger.warning("tmp_file_cleanup_failed", path=path, error=str(exc))


def edit_text(editor: str, initial: str) -> str:
    """Open *initial* in the editor and return the saved text, stripped."""
    return _edit_tmp(editor, initial).strip()


def parse_items(content: str) -> list[str]:
    """Split bullet-list text into items.

    Lines starting with ``#`` are comments.  A line starting with ``-``
    begins a new item; following lines without a hyphen continue it.
    Empty items are dropped.
    """
    items: list[str] = []
    current: list[str] = []

    def flush() -> None:
        item = "".join(current).strip()
        if item:
            items.append(item)
        current.clear()

    for line in content.splitlines():
        if line.startswith("#"):
            continue
        if line.startswith("-"):
            if current:
                flush()
            current.append(line.lstrip("- \t") + "\n")
        else:
            current.append(line + "\n")

    flush()
    return items


def edit_items(editor: str) -> list[str]:
    """Open the bullet-list template and return the entered items."""
    return parse_items(_edit_tmp(editor, ITEMS_TEMPLATE, ITEMS_TEMPLATE_LINE))
