"""branchdo changelist / pitch — sharing finished work and starting new branches."""

from __future__ import annotations

import os

import click
from rich.markup import escape

from branchdo.cli._common import console, dir_env, fail, get_context, open_db
from branchdo.core import git
from branchdo.core.editor import edit_items
from branchdo.core.exceptions import BranchdoError
from branchdo.core.models import Todo


def build_changelist(items: list[Todo], show_all: bool = False) -> str:
    """Render items as a markdown list.

    By default only completed items are listed.  With *show_all* every item
    is listed as a GitHub task-list entry.
    """
    lines: list[str] = []
    for item in items:
        if show_all:
            lines.append(f"- [{'x' if item.done else ' '}] {item.task}")
        elif item.done:
            lines.append(f"- {item.task}")
    return "".join(f"{line}\n" for line in lines)


@click.command("changelist")
@click.option("-a", "--all", "show_all", is_flag=True, default=False, help="List every item")
@click.option("-n", "--no-pager", is_flag=True, default=False, help="Do not page output")
@click.pass_context
def changelist_cmd(ctx: click.Context, show_all: bool, no_pager: bool) -> None:
    """Print the branch's items as a markdown changelist.

    ``$PAGER`` is used when it is set, unless ``--no-pager`` is given.
    """
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        items = db.list_todos(db.fetch_project_id(env.project_dir, env.branch))

    text = build_changelist(items, show_all)
    if not text:
        return
    if no_pager or not os.environ.get("PAGER"):
        console.out(text, highlight=False, end="")
        return
    with console.pager():
        console.out(text, highlight=False, end="")


@click.command("pitch")
@click.argument("branch")
@click.argument("task", nargs=-1)
@click.option("-b", "--base", default="", help="Starting point for a new branch")
@click.option("-n", "--name", default=None, help="Project name")
@click.pass_context
def pitch_cmd(
    ctx: click.Context, branch: str, task: tuple[str, ...], base: str, name: str | None
) -> None:
    """Check out BRANCH (creating it if needed) and add items to it.

    Each TASK argument becomes one item; without arguments the editor opens.
    A new branch starts from --base, or from the current branch.
    """
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    try:
        create = branch not in git.list_branches()
        git.checkout_branch(branch, base, create=create)
    except BranchdoError as exc:
        fail(str(exc))

    if task:
        items = list(task)
    else:
        try:
            items = edit_items(env.editor)
        except BranchdoError as exc:
            fail(str(exc))

    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, branch)
        if name is not None:
            db.update_project_name(project_id, name.strip() or branch)
        count = db.add_todos(project_id, items)

    if count:
        console.print(f"Added {count} new to-do item(s) for {escape(branch)}.")
        return
    try:
        git.show_status()
    except BranchdoError as exc:
        fail(str(exc))
