"""Shared helpers for branchdo CLI commands."""

from __future__ import annotations

import sqlite3
import sys
from dataclasses import dataclass, replace
from typing import NoReturn

import click
from rich.console import Console
from rich.markup import escape

from branchdo.core.config import BranchdoConfig
from branchdo.core.exceptions import BranchdoError, TimerRunningElsewhereError
from branchdo.core.git import DirEnv, get_dir_env
from branchdo.core.store.database import Database

console = Console()


@dataclass
class CliContext:
    """Values resolved by the root group and shared with every command."""

    config: BranchdoConfig
    branch: str | None = None


def fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


def get_context(ctx: click.Context) -> CliContext:
    obj = ctx.find_object(CliContext)
    if obj is None:
        fail("branchdo is not initialised")
    return obj


def open_db(cli_ctx: CliContext) -> Database:
    """Connect to the branchdo database, exiting on failure."""
    db = Database(cli_ctx.config.db_path)
    try:
        db.connect()
    except sqlite3.Error as exc:
        fail(f"cannot open database {cli_ctx.config.db_path}: {exc}")
    return db


def dir_env(cli_ctx: CliContext) -> DirEnv:
    """Resolve the repository, branch and editor, honouring ``--branch`` and config."""
    try:
        env = get_dir_env()
    except BranchdoError as exc:
        fail(str(exc))
    if cli_ctx.branch:
        env = replace(env, branch=cli_ctx.branch)
    if cli_ctx.config.editor.command:
        env = replace(env, editor=cli_ctx.config.editor.command)
    return env


def warn_timer_elsewhere(db: Database, project_id: int) -> None:
    """Print a warning when the timer is running for another project."""
    try:
        db.check_timer(project_id)
    except TimerRunningElsewhereError as exc:
        console.print(f"[yellow]{escape(str(exc))}[/yellow]")
