"""branchdo start / stop — per-branch time tracking."""

from __future__ import annotations

from datetime import datetime

import click
from rich.markup import escape

from branchdo.cli._common import console, dir_env, fail, get_context, open_db
from branchdo.core.exceptions import TimerError
from branchdo.core.models import DB_TIME_FORMAT, format_seconds

_ANSIC = "%a %b %d %H:%M:%S %Y"


@click.command("start")
@click.pass_context
def start_cmd(ctx: click.Context) -> None:
    """Start the timer for the current repository and branch."""
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        try:
            db.start_timer(project_id)
        except TimerError as exc:
            fail(str(exc))
    console.print(f"[green]Timer started[/green] on {datetime.now().strftime(_ANSIC)}")


@click.command("stop")
@click.pass_context
def stop_cmd(ctx: click.Context) -> None:
    """Stop the running timer.

    Works from any directory; the timer does not have to belong to the
    current repository or branch.
    """
    cli_ctx = get_context(ctx)
    with open_db(cli_ctx) as db:
        try:
            stop, start = db.stop_timer()
        except TimerError as exc:
            fail(str(exc))
        project = db.get_project(start.project_id)

    try:
        stopped_at = datetime.strptime(stop.created_at, DB_TIME_FORMAT)
    except ValueError:
        stopped_at = datetime.now()
    folder = project.folder if project else "?"
    branch = project.branch if project else "?"

    console.print(f"[yellow]Timer stopped[/yellow] on {stopped_at.strftime(_ANSIC)}\n")
    console.print(f"repository: {escape(folder)}")
    console.print(f"branch:     {escape(branch)}")
    console.print(f"duration:   {format_seconds(start.duration(stopped_at))}")
