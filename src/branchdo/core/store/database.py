"""
SQLite storage for projects, to-do items and the timesheet.

A *project* is one (repository folder, branch) pair.  The per-repository
queue is the project whose branch is ``*``.  Item positions are 1-based and
kept dense within a project: every operation that removes an item from a
project closes the gap it leaves, so a list index ``i`` always corresponds to
position ``i + 1``.

All methods run synchronously on one connection and commit before
returning.  Failures propagate as ``sqlite3.Error``.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import structlog

from branchdo.core.exceptions import TimerError, TimerRunningElsewhereError
from branchdo.core.models import (
    DB_TIME_FORMAT,
    Project,
    TimeEntry,
    TimesheetAction,
    Todo,
)
from branchdo.core.store.migrations import run_migrations

logger = structlog.get_logger()

_TODO_COLUMNS = "todo_id, project_id, task, position, created_at, done_at, committed_at"

# Committed-at selector for commit messages.  ``previous`` also picks the
# items of the most recent commit so that ``--amend`` can rebuild its message.
_COMMIT_FILTER = "committed_at IS NULL"
_COMMIT_FILTER_PREVIOUS = (
    "(committed_at IS NULL OR committed_at = "
    "(SELECT max(committed_at) FROM todo WHERE project_id = :project_id))"
)


class Database:
    """Thin query surface over the branchdo SQLite file."""

    def __init__(self, path: Path | str) -> None:
        self._path = path
        self._conn: sqlite3.Connection | None = None

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        if self._conn is not None:
            return
        if isinstance(self._path, Path):
            self._path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        run_migrations(conn, self._path)
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise sqlite3.ProgrammingError("Database is not connected")
        return self._conn

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def fetch_project_id(self, folder: str, branch: str) -> int:
        """Return the project id for (folder, branch), creating it if needed."""
        row = self.conn.execute(
            "SELECT project_id FROM project WHERE folder = ? AND branch = ?",
            (folder, branch),
        ).fetchone()
        if row:
            return int(row[0])

        cur = self.conn.execute(
            "INSERT INTO project (folder, branch, name) VALUES (?, ?, ?)",
            (folder, branch, branch),
        )
        self.conn.commit()
        logger.info("project_created", folder=folder, branch=branch, project_id=cur.lastrowid)
        return int(cur.lastrowid or 0)

    def get_project(self, project_id: int) -> Project | None:
        row = self.conn.execute(
            "SELECT project_id, folder, branch, name FROM project WHERE project_id = ?",
            (project_id,),
        ).fetchone()
        return Project.from_row(row) if row else None

    def update_project_name(self, project_id: int, name: str) -> None:
        self.conn.execute("UPDATE project SET name = ? WHERE project_id = ?", (name, project_id))
        self.conn.commit()
        logger.info("project_renamed", project_id=project_id, name=name)

    # ------------------------------------------------------------------
    # To-do items
    # ------------------------------------------------------------------

    def todo_count(self, project_id: int) -> int:
        row = self.conn.execute(
            "SELECT count(*) FROM todo WHERE project_id = ?", (project_id,)
        ).fetchone()
        return int(row[0])

    def add_todo(self, project_id: int, task: str) -> tuple[int, int]:
        """Append *task* to the project.  Returns ``(todo_id, position)``."""
        position = self.todo_count(project_id) + 1
        cur = self.conn.execute(
            "INSERT INTO todo (project_id, task, position) VALUES (?, ?, ?)",
            (project_id, task, position),
        )
        self.conn.commit()
        todo_id = int(cur.lastrowid or 0)
        logger.info("todo_added", project_id=project_id, todo_id=todo_id, position=position)
        return todo_id, position

    def add_todos(self, project_id: int, tasks: Iterable[str]) -> int:
        """Append several tasks in order.  Returns the number added."""
        start = self.todo_count(project_id)
        rows = [(project_id, task, start + i + 1) for i, task in enumerate(tasks)]
        self.conn.executemany(
            "INSERT INTO todo (project_id, task, position) VALUES (?, ?, ?)", rows
        )
        self.conn.commit()
        logger.info("todos_added", project_id=project_id, count=len(rows))
        return len(rows)

    def list_todos(self, project_id: int) -> list[Todo]:
        rows = self.conn.execute(
            f"SELECT {_TODO_COLUMNS} FROM todo WHERE project_id = ? ORDER BY position",  # noqa: S608
            (project_id,),
        ).fetchall()
        return [Todo.from_row(r) for r in rows]

    def todo_what(self, project_id: int) -> Todo | None:
        """Return the first item (by position) that is not done yet."""
        row = self.conn.execute(
            f"SELECT {_TODO_COLUMNS} FROM todo "  # noqa: S608
            "WHERE project_id = ? AND done_at IS NULL ORDER BY position LIMIT 1",
            (project_id,),
        ).fetchone()
        return Todo.from_row(row) if row else None

    def set_done(self, todo_id: int, done: bool) -> None:
        if done:
            sql = "UPDATE todo SET done_at = datetime('now', 'localtime') WHERE todo_id = ?"
        else:
            sql = "UPDATE todo SET done_at = NULL WHERE todo_id = ?"
        self.conn.execute(sql, (todo_id,))
        self.conn.commit()
        logger.info("todo_done_changed", todo_id=todo_id, done=done)

    def update_task(self, todo_id: int, task: str) -> None:
        self.conn.execute("UPDATE todo SET task = ? WHERE todo_id = ?", (task, todo_id))
        self.conn.commit()
        logger.info("todo_task_updated", todo_id=todo_id)

    def delete_todo(self, todo_id: int) -> None:
        """Delete an item and close the gap in its project's positions."""
        conn = self.conn
        try:
            self._close_gap(todo_id)
            conn.execute("DELETE FROM todo WHERE todo_id = ?", (todo_id,))
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("todo_deleted", todo_id=todo_id)

    def change_position(self, todo_id: int, from_pos: int, to_pos: int) -> None:
        """Move an item from one 1-based position to another, shifting the rest."""
        self.conn.execute(
            """
            UPDATE todo SET position = CASE
                WHEN todo_id = :todo_id THEN :to_pos
                WHEN position >= :to_pos AND position < :from_pos THEN position + 1
                WHEN position > :from_pos AND position <= :to_pos THEN position - 1
                ELSE position
            END
            WHERE project_id = (SELECT project_id FROM todo WHERE todo_id = :todo_id)
            """,
            {"todo_id": todo_id, "from_pos": from_pos, "to_pos": to_pos},
        )
        self.conn.commit()
        logger.info("todo_repositioned", todo_id=todo_id, from_pos=from_pos, to_pos=to_pos)

    def move_todo(self, todo_id: int, project_id: int) -> None:
        """Reassign an item to another project, appending it at the end."""
        conn = self.conn
        position = self.todo_count(project_id) + 1
        try:
            self._close_gap(todo_id)
            conn.execute(
                """
                UPDATE todo
                   SET project_id = ?, position = ?, created_at = datetime('now', 'localtime')
                 WHERE todo_id = ?
                """,
                (project_id, position, todo_id),
            )
            conn.commit()
        except sqlite3.Error:
            conn.rollback()
            raise
        logger.info("todo_moved", todo_id=todo_id, project_id=project_id, position=position)

    def _close_gap(self, todo_id: int) -> None:
        self.conn.execute(
            """
            UPDATE todo SET position = position - 1
             WHERE project_id = (SELECT project_id FROM todo WHERE todo_id = :todo_id)
               AND position > (SELECT position FROM todo WHERE todo_id = :todo_id)
            """,
            {"todo_id": todo_id},
        )

    # ------------------------------------------------------------------
    # Commit support
    # ------------------------------------------------------------------

    def todos_for_commit(self, project_id: int, previous: bool = False) -> list[Todo]:
        """Done items not yet committed (plus the last commit's when *previous*)."""
        flt = _COMMIT_FILTER_PREVIOUS if previous else _COMMIT_FILTER
        rows = self.conn.execute(
            f"SELECT {_TODO_COLUMNS} FROM todo "  # noqa: S608
            f"WHERE project_id = :project_id AND done_at IS NOT NULL AND {flt} "
            "ORDER BY done_at, position",
            {"project_id": project_id},
        ).fetchall()
        return [Todo.from_row(r) for r in rows]

    def set_items_committed(self, project_id: int, previous: bool = False) -> int:
        flt = _COMMIT_FILTER_PREVIOUS if previous else _COMMIT_FILTER
        cur = self.conn.execute(
            "UPDATE todo SET committed_at = :ts "  # noqa: S608
            f"WHERE project_id = :project_id AND done_at IS NOT NULL AND {flt}",
            {"project_id": project_id, "ts": datetime.now().strftime(DB_TIME_FORMAT)},
        )
        self.conn.commit()
        logger.info("todos_committed", project_id=project_id, count=cur.rowcount)
        return cur.rowcount

    # ------------------------------------------------------------------
    # Timesheet
    # ------------------------------------------------------------------

    def latest_time_entry(self) -> TimeEntry | None:
        row = self.conn.execute(
            "SELECT timesheet_id, project_id, action, created_at FROM timesheet "
            "ORDER BY created_at DESC, timesheet_id DESC LIMIT 1"
        ).fetchone()
        return TimeEntry.from_row(row) if row else None

    def check_timer(self, project_id: int) -> TimeEntry | None:
        """Return the latest entry; raise if a timer runs for another project."""
        last = self.latest_time_entry()
        if last is not None and last.is_start and last.project_id != project_id:
            proj = self.get_project(last.project_id)
            folder = proj.folder if proj else "?"
            branch = proj.branch if proj else "?"
            raise TimerRunningElsewhereError(folder, branch)
        return last

    def start_timer(self, project_id: int) -> TimeEntry:
        last = self.check_timer(project_id)
        if last is not None and last.is_start:
            raise TimerError(f"Timer running since {last.created_at}")
        entry = self._insert_time_entry(project_id, TimesheetAction.START)
        logger.info("timer_started", project_id=project_id)
        return entry

    def stop_timer(self) -> tuple[TimeEntry, TimeEntry]:
        """Stop the running timer.  Returns ``(stop_entry, start_entry)``."""
        last = self.latest_time_entry()
        if last is None or not last.is_start:
            raise TimerError("Timer is not running.")
        entry = self._insert_time_entry(last.project_id, TimesheetAction.STOP)
        logger.info("timer_stopped", project_id=last.project_id)
        return entry, last

    def _insert_time_entry(self, project_id: int, action: TimesheetAction) -> TimeEntry:
        cur = self.conn.execute(
            "INSERT INTO timesheet (project_id, action) VALUES (?, ?)",
            (project_id, int(action)),
        )
        self.conn.commit()
        row = self.conn.execute(
            "SELECT timesheet_id, project_id, action, created_at FROM timesheet "
            "WHERE timesheet_id = ?",
            (cur.lastrowid,),
        ).fetchone()
        return TimeEntry.from_row(row)

    def project_time_seconds(self, project_id: int) -> int:
        """Total tracked seconds for a project, including a running timer.

        Start entries count negatively and stop entries positively (in Julian
        days); a trailing start adds the current time.
        """
        row = self.conn.execute(
            """
            SELECT round(coalesce((
                (SELECT sum(CASE WHEN action = 1 THEN -julianday(created_at)
                                 ELSE julianday(created_at) END)
                   FROM timesheet WHERE project_id = :pid)
                +
                coalesce((SELECT CASE WHEN action = 1 THEN julianday('now', 'localtime')
                                      ELSE 0 END
                            FROM timesheet WHERE project_id = :pid
                           ORDER BY created_at DESC, timesheet_id DESC LIMIT 1), 0)
            ), 0) * 86400)
            """,
            {"pid": project_id},
        ).fetchone()
        return int(row[0] or 0)
