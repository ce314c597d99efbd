"""
branchdo CLI entry point.

Running ``branchdo`` with no subcommand opens the interactive list for the
current branch.  When the branch and the repository queue are both empty,
the editor opens instead so the first items can be entered.
"""

from __future__ import annotations

from pathlib import Path

import click
import structlog
from rich.markup import escape

from branchdo import __version__
from branchdo.cli._branch_cmd import changelist_cmd, pitch_cmd
from branchdo.cli._commit_cmd import commit_cmd
from branchdo.cli._common import CliContext, console, dir_env, fail, get_context, open_db
from branchdo.cli._timer_cmd import start_cmd, stop_cmd
from branchdo.cli._todo_cmd import add_cmd, done_cmd, name_cmd, queue_cmd, what_cmd
from branchdo.core import git
from branchdo.core.config import load_config
from branchdo.core.editor import edit_items
from branchdo.core.exceptions import BranchdoError, ConfigError
from branchdo.core.logging import configure_logging
from branchdo.core.models import QUEUE_BRANCH

logger = structlog.get_logger()


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="branchdo")
@click.option("--branch", default=None, help="Branch name to use instead of the current one")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml",
)
@click.pass_context
def cli(ctx: click.Context, branch: str | None, config_path: Path | None) -> None:
    """branchdo — a to-do list companion for git branches.

    Items are tied to a repository and branch without storing any files
    in the repository.
    """
    try:
        config = load_config(config_path)
    except ConfigError as exc:
        fail(str(exc))

    configure_logging(config.logging.level, config.log_path)
    ctx.obj = CliContext(config=config, branch=branch)

    if ctx.invoked_subcommand is None:
        _open_list(ctx)


def _open_list(ctx: click.Context) -> None:
    from branchdo.ui.app import run_list_session
    from branchdo.ui.services import load_session_state

    cli_ctx = get_context(ctx)
    env = dir_env(cli_ctx)
    with open_db(cli_ctx) as db:
        project_id = db.fetch_project_id(env.project_dir, env.branch)
        queue_id = db.fetch_project_id(env.project_dir, QUEUE_BRANCH)

        if db.todo_count(project_id) == 0 and db.todo_count(queue_id) == 0:
            try:
                items = edit_items(env.editor)
            except BranchdoError as exc:
                fail(str(exc))
            count = db.add_todos(project_id, items)
            console.print(f"Added {count} item(s) to {escape(env.branch)}")
            return

        try:
            stashes = git.list_stashes()
        except BranchdoError as exc:
            logger.warning("stash_list_failed", error=str(exc))
            stashes = {}

        state = load_session_state(
            db,
            folder=env.project_dir,
            branch=env.branch,
            stashes=stashes,
            show_help=cli_ctx.config.ui.show_help,
            show_ids=cli_ctx.config.ui.show_ids,
        )
        logger.info("list_screen_opened", branch=env.branch, project_id=project_id)
        run_list_session(state, store=db, stash=git, editor=env.editor)


cli.add_command(add_cmd)
cli.add_command(queue_cmd)
cli.add_command(what_cmd)
cli.add_command(done_cmd)
cli.add_command(name_cmd)
cli.add_command(start_cmd)
cli.add_command(stop_cmd)
cli.add_command(commit_cmd)
cli.add_command(changelist_cmd)
cli.add_command(pitch_cmd)


def main() -> None:
    cli()
