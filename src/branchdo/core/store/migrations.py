"""
Schema migrations for the branchdo SQLite database.

The schema version is tracked in ``PRAGMA user_version``.  Each entry in
``MIGRATIONS`` moves the schema from version ``i`` to ``i + 1`` and runs in
its own transaction.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import structlog

logger = structlog.get_logger()

MIGRATIONS: list[tuple[str, str]] = [
    (
        "initial structure",
        """
        CREATE TABLE project (
            project_id INTEGER PRIMARY KEY AUTOINCREMENT,
            folder     TEXT NOT NULL,
            branch     TEXT NOT NULL,
            name       TEXT NOT NULL
        );

        CREATE UNIQUE INDEX idx_project ON project (folder, branch);

        CREATE TABLE todo (
            todo_id      INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id   INTEGER NOT NULL,
            task         TEXT NOT NULL,
            position     INTEGER NOT NULL DEFAULT 1,
            created_at   TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
            done_at      TEXT,
            committed_at TEXT,
            FOREIGN KEY (project_id) REFERENCES project (project_id)
                ON DELETE CASCADE ON UPDATE NO ACTION
        );

        CREATE INDEX idx_todo ON todo (project_id, created_at);
        CREATE INDEX idx_todo_done ON todo (project_id, done_at) WHERE done_at IS NOT NULL;

        CREATE TABLE timesheet (
            timesheet_id INTEGER PRIMARY KEY AUTOINCREMENT,
            project_id   INTEGER NOT NULL,
            action       INTEGER NOT NULL DEFAULT 0,
            created_at   TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
            FOREIGN KEY (project_id) REFERENCES project (project_id)
                ON DELETE CASCADE ON UPDATE NO ACTION
        );

        CREATE INDEX idx_timesheet ON timesheet (project_id, created_at);
        """,
    ),
    (
        "todo position index",
        "CREATE INDEX idx_todo_position ON todo (project_id, position);",
    ),
]

LATEST_VERSION = len(MIGRATIONS)


def schema_version(conn: sqlite3.Connection) -> int:
    return int(conn.execute("PRAGMA user_version").fetchone()[0])


def run_migrations(conn: sqlite3.Connection, db_path: Path | str = "") -> int:
    """Apply pending migrations and return the resulting schema version."""
    current = schema_version(conn)
    if current > LATEST_VERSION:
        raise sqlite3.DatabaseError(
            f"Database schema version {current} is newer than supported ({LATEST_VERSION})"
        )

    for version in range(current, LATEST_VERSION):
        name, script = MIGRATIONS[version]
        # executescript() commits any open transaction first, so BEGIN is explicit.
        conn.executescript(
            f"BEGIN;\n{script}\nPRAGMA user_version = {version + 1};\nCOMMIT;"
        )
        logger.info("db_migrated", db_path=str(db_path), version=version + 1, migration=name)

    return LATEST_VERSION
