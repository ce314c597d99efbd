"""Row types returned by the storage layer."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

QUEUE_BRANCH = "*"

# Timestamps are stored by SQLite as local time, "YYYY-MM-DD HH:MM:SS".
DB_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class TimesheetAction(IntEnum):
    START = 1
    STOP = 2


@dataclass
class Project:
    id: int
    folder: str
    branch: str
    name: str

    @property
    def has_custom_name(self) -> bool:
        return bool(self.name) and self.name != self.branch

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Project:
        return cls(
            id=row["project_id"],
            folder=row["folder"],
            branch=row["branch"],
            name=row["name"],
        )


@dataclass
class Todo:
    id: int
    project_id: int
    task: str
    position: int
    created_at: str
    done_at: str | None = None
    committed_at: str | None = None

    @property
    def done(self) -> bool:
        return self.done_at is not None

    @property
    def committed(self) -> bool:
        return self.committed_at is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Todo:
        return cls(
            id=row["todo_id"],
            project_id=row["project_id"],
            task=row["task"],
            position=row["position"],
            created_at=row["created_at"],
            done_at=row["done_at"],
            committed_at=row["committed_at"],
        )


@dataclass
class TimeEntry:
    id: int
    project_id: int
    action: TimesheetAction
    created_at: str

    @property
    def is_start(self) -> bool:
        return self.action == TimesheetAction.START

    def duration(self, now: datetime | None = None) -> int:
        """Seconds since a start entry; 0 for stop entries or bad timestamps."""
        if not self.is_start:
            return 0
        try:
            since = datetime.strptime(self.created_at, DB_TIME_FORMAT)
        except ValueError:
            return 0
        return int(((now or datetime.now()) - since).total_seconds())

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> TimeEntry:
        return cls(
            id=row["timesheet_id"],
            project_id=row["project_id"],
            action=TimesheetAction(row["action"]),
            created_at=row["created_at"],
        )


def format_seconds(seconds: int) -> str:
    """Format a duration as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    return f"{seconds // 3600:02d}:{(seconds % 3600) // 60:02d}:{seconds % 60:02d}"
