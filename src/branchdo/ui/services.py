"""
Service helpers for the list screen.

Builds the initial ``SessionState`` from storage and git.  No Textual
imports, so this is testable without a running terminal.
"""

from __future__ import annotations

from branchdo.core.git import StashRef
from branchdo.core.models import QUEUE_BRANCH, Todo
from branchdo.core.store.database import Database
from branchdo.ui.state import ListItem, SessionState, TimerState


def _to_item(todo: Todo, stashes: dict[int, StashRef]) -> ListItem:
    return ListItem(
        id=todo.id,
        task=todo.task,
        done=todo.done,
        committed=todo.committed,
        stash=stashes.get(todo.id),
    )


def load_session_state(
    db: Database,
    *,
    folder: str,
    branch: str,
    stashes: dict[int, StashRef],
    show_help: bool = False,
    show_ids: bool = False,
) -> SessionState:
    """Read both lists and the timer status for (folder, branch)."""
    project_id = db.fetch_project_id(folder, branch)
    queue_project_id = db.fetch_project_id(folder, QUEUE_BRANCH)
    project = db.get_project(project_id)

    active = [_to_item(t, stashes) for t in db.list_todos(project_id)]
    queue = [_to_item(t, stashes) for t in db.list_todos(queue_project_id)]

    latest = db.latest_time_entry()
    timer = TimerState(
        running=latest is not None and latest.is_start and latest.project_id == project_id,
        elapsed_seconds=db.project_time_seconds(project_id),
    )

    return SessionState.initial(
        project_id=project_id,
        queue_project_id=queue_project_id,
        branch=branch,
        project_name=project.name if project else branch,
        active=active,
        queue=queue,
        timer=timer,
        show_help=show_help,
        show_ids=show_ids,
    )
