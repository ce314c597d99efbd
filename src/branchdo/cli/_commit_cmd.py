"""branchdo commit — ``git commit`` with a message built from completed items."""

from __future__ import annotations

import os
import tempfile

import click

from branchdo.cli._common import dir_env, fail, get_context, open_db, warn_timer_elsewhere
from branchdo.core.editor import TMP_PREFIX
from branchdo.core.exceptions import GitError
from branchdo.core.git import run_commit
from branchdo.core.models import Project, Todo


def build_commit_message(project: Project | None, items: list[Todo]) -> str:
    """Return the prepared message: ``#name`` for custom names, then ``- task`` lines."""
    parts: list[str] = []
    if project is not None and project.has_custom_name:
        parts.append(f"#{project.name}\n\n")
    parts.extend(f"- {item.task}\n" for item in items)
    return "".join(parts)


@click.command(
    "commit",
    context_settings={"ignore_unknown_options": True, "help_option_names": []},
)
@click.argument("git_args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def commit_cmd(ctx: click.Context, git_args: tuple[str, ...]) -> None:
    """Run git commit with a message prepared from completed items.

    Runs ``git commit -eF <msgfile> [GIT_ARGS]``.  Items are marked committed
    when git succeeds.  With ``--amend`` the previous commit's items are
    included again; ``--amend --no-edit`` skips the message entirely.
    """
    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    amend = "--amend" in git_args
    no_edit = "--no-edit" in git_args

    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        warn_timer_elsewhere(db, project_id)

        if amend and no_edit:
            try:
                run_commit(git_args)
            except GitError as exc:
                fail(str(exc))
            db.set_items_committed(project_id, previous=True)
            return

        message = build_commit_message(
            db.get_project(project_id), db.todos_for_commit(project_id, previous=amend)
        )
        fd, path = tempfile.mkstemp(prefix=TMP_PREFIX, suffix=".txt")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(message)
            run_commit(["-eF", path, *git_args])
        except GitError as exc:
            fail(str(exc))
        finally:
            os.unlink(path)
        db.set_items_committed(project_id, previous=amend)
