"""branchdo add / queue / what / done / name — item and project commands."""

from __future__ import annotations

import click
from rich.markup import escape

from branchdo.cli._common import (
    console,
    dir_env,
    fail,
    get_context,
    open_db,
    warn_timer_elsewhere,
)
from branchdo.core.editor import edit_items
from branchdo.core.exceptions import EditorError
from branchdo.core.models import QUEUE_BRANCH
from branchdo.core.store.database import Database


def _add_from_editor(db: Database, project_id: int, editor: str) -> int:
    try:
        items = edit_items(editor)
    except EditorError as exc:
        fail(str(exc))
    return db.add_todos(project_id, items)


@click.command("add")
@click.argument("task", nargs=-1)
@click.option("-t", "--top", is_flag=True, default=False, help="Put the item at the top of the list")
@click.pass_context
def add_cmd(ctx: click.Context, task: tuple[str, ...], top: bool) -> None:
    """Add to-do items for the current branch.

    With arguments, they are joined into a single item.  Without arguments
    the editor opens so several items can be entered at once.
    """
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        warn_timer_elsewhere(db, project_id)

        if task:
            text = " ".join(task)
            todo_id, position = db.add_todo(project_id, text)
            if top:
                db.change_position(todo_id, position, 1)
            console.print(f"Added to-do item [bold]{escape(text)}[/bold] to {escape(env.branch)}")
        else:
            count = _add_from_editor(db, project_id, env.editor)
            console.print(f"Added {count} item(s) to {escape(env.branch)}")


@click.command("queue")
@click.argument("task", nargs=-1)
@click.pass_context
def queue_cmd(ctx: click.Context, task: tuple[str, ...]) -> None:
    """Add items to the repository queue, a holding list for later work."""
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, QUEUE_BRANCH)
        if task:
            text = " ".join(task)
            db.add_todo(project_id, text)
            console.print(f"Queued [bold]{escape(text)}[/bold]")
        else:
            count = _add_from_editor(db, project_id, env.editor)
            console.print(f"Queued {count} item(s)")


@click.command("what")
@click.pass_context
def what_cmd(ctx: click.Context) -> None:
    """Show the first item that is not done yet."""
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        project = db.get_project(project_id)
        name = project.name if project else env.branch
        console.print(f"On: {escape(name)}\n")

        item = db.todo_what(project_id)
        if item is None:
            console.print("[green]All done![/green]")
        else:
            console.print(f"What to do: {escape(item.task)}")


@click.command("done")
@click.pass_context
def done_cmd(ctx: click.Context) -> None:
    """Mark the first open item done and show the next one."""
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        warn_timer_elsewhere(db, project_id)

        item = db.todo_what(project_id)
        if item is None:
            console.print("[green]All done![/green]")
            return
        db.set_done(item.id, True)
        console.print(f"[strike]{escape(item.task)}[/strike]\n")

        following = db.todo_what(project_id)
        if following is None:
            console.print("[green]All done![/green]")
        else:
            console.print(f"Up next: {escape(following.task)}")


@click.command("name")
@click.argument("name", required=False)
@click.pass_context
def name_cmd(ctx: click.Context, name: str | None) -> None:
    """Show or set the display name of the current project.

    The name defaults to the branch.
    """
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        if name is None:
            project = db.get_project(project_id)
            console.print(escape(project.name if project else env.branch))
            return
        if not name.strip():
            fail("name cannot be empty")
        db.update_project_name(project_id, name)
        console.print(f'name set to "{escape(name)}"')
