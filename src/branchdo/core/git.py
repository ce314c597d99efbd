"""
git shell wrapper.

Everything branchdo needs from git goes through the ``git`` binary:
repository/branch discovery, the configured editor, stash list/push/pop,
branch listing and checkout, and pass-through ``git commit`` / ``git status``.
Stashes created by branchdo carry the message ``branchdo_<item id>``, which
is how they are associated with to-do items.
"""

from __future__ import annotations

import os
import re
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from branchdo.core.exceptions import GitError

logger = structlog.get_logger()

STASH_LABEL_PREFIX = "branchdo_"

_STASH_LABEL_RE = re.compile(rf"{STASH_LABEL_PREFIX}(\d+)\b")
_STASH_REF_RE = re.compile(r"^stash@\{(?P<ts>[^}]*)\}")


@dataclass(frozen=True)
class StashRef:
    """A stash entry as listed by ``git stash list --date=local``."""

    ref: str
    timestamp: str

    @classmethod
    def parse(cls, line: str) -> StashRef | None:
        m = _STASH_REF_RE.match(line.strip())
        if not m:
            return None
        return cls(ref=m.group(0), timestamp=m.group("ts"))


@dataclass(frozen=True)
class DirEnv:
    project_dir: str
    branch: str
    editor: str


def _run_git(*args: str) -> str:
    try:
        proc = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitError("git must be installed in order to use branchdo.") from exc
    if proc.returncode != 0:
        stderr = proc.stderr.strip()
        raise GitError(stderr or f"git {args[0]} exited with status {proc.returncode}", stderr=stderr)
    return proc.stdout


def get_dir_env() -> DirEnv:
    """Return the repository root, the current branch and git's editor."""
    out = _run_git("rev-parse", "--show-toplevel", "--abbrev-ref", "HEAD")
    lines = out.strip().splitlines()
    if len(lines) < 2:
        raise GitError(f"Unexpected git rev-parse output: {out!r}")

    try:
        editor = _run_git("var", "GIT_EDITOR").strip()
    except GitError:
        editor = os.environ.get("EDITOR", "vi")

    return DirEnv(project_dir=lines[0], branch=lines[1], editor=editor)


# ---------------------------------------------------------------------------
# Stash
# ---------------------------------------------------------------------------


def stash_label(item_id: int) -> str:
    return f"{STASH_LABEL_PREFIX}{item_id}"


def parse_stash_list(content: str) -> dict[int, StashRef]:
    """Map item ids to their stash entries.

    ``git stash list`` prints newest first; when one item has several
    stashes the newest wins.
    """
    result: dict[int, StashRef] = {}
    for line in content.splitlines():
        m = _STASH_LABEL_RE.search(line)
        if not m:
            continue
        ref = StashRef.parse(line)
        if ref is not None:
            result.setdefault(int(m.group(1)), ref)
    return result


def list_stashes() -> dict[int, StashRef]:
    return parse_stash_list(_run_git("--no-pager", "stash", "list", "--date=local"))


def push_stash(item_id: int) -> None:
    _run_git("stash", "push", "-m", stash_label(item_id), "--include-untracked")
    logger.info("stash_pushed", item_id=item_id)


def pop_stash(ref: str) -> None:
    _run_git("stash", "pop", ref)
    logger.info("stash_popped", ref=ref)


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


def list_branches() -> list[str]:
    out = _run_git("--no-pager", "branch", "--format=%(refname:short)")
    return [line.strip() for line in out.splitlines() if line.strip()]


def checkout_branch(branch: str, base: str = "", create: bool = False) -> None:
    """Switch to *branch*; with *create*, make it first (from *base* when given)."""
    if create:
        args = ["checkout", "-b", branch]
        if base:
            args.append(base)
    else:
        args = ["checkout", branch]
    _run_git(*args)
    logger.info("branch_checked_out", branch=branch, created=create, base=base)


# ---------------------------------------------------------------------------
# Commands on the user's terminal
# ---------------------------------------------------------------------------


def _run_git_attached(*args: str) -> None:
    try:
        proc = subprocess.run(["git", *args], check=False)
    except FileNotFoundError as exc:
        raise GitError("git must be installed in order to use branchdo.") from exc
    if proc.returncode != 0:
        raise GitError(f"git {args[0]} exited with status {proc.returncode}")


def run_commit(args: Sequence[str]) -> None:
    """Run ``git commit`` with inherited standard streams.

    Raises GitError when git is missing or the commit fails (including the
    user aborting with an empty message).
    """
    _run_git_attached("commit", *args)


def show_status() -> None:
    _run_git_attached("status")
