"""Unit tests for branchdo.core.git — stash parsing and the git subprocess wrapper."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from branchdo.core import git
from branchdo.core.exceptions import GitError
from branchdo.core.git import StashRef, parse_stash_list, stash_label

STASH_LIST = """\
stash@{Mon Mar 3 10:15:02 2025}: On feature: branchdo_12
stash@{Sun Mar 2 09:00:00 2025}: WIP on main: 1a2b3c4 unrelated work
stash@{Sat Mar 1 08:30:00 2025}: On feature: branchdo_7
stash@{Fri Feb 28 18:00:00 2025}: On feature: branchdo_12
"""


def _proc(stdout: str = "", stderr: str = "", returncode: int = 0) -> MagicMock:
    proc = MagicMock()
    proc.stdout = stdout
    proc.stderr = stderr
    proc.returncode = returncode
    return proc


class TestStashParsing:
    def test_label(self) -> None:
        assert stash_label(42) == "branchdo_42"

    def test_ref_parse(self) -> None:
        ref = StashRef.parse("stash@{Mon Mar 3 10:15:02 2025}: On feature: branchdo_12")
        assert ref is not None
        assert ref.ref == "stash@{Mon Mar 3 10:15:02 2025}"
        assert ref.timestamp == "Mon Mar 3 10:15:02 2025"

    def test_ref_parse_rejects_other_lines(self) -> None:
        assert StashRef.parse("not a stash line") is None

    def test_only_labelled_entries(self) -> None:
        result = parse_stash_list(STASH_LIST)
        assert set(result) == {12, 7}

    def test_newest_entry_wins(self) -> None:
        result = parse_stash_list(STASH_LIST)
        assert result[12].timestamp == "Mon Mar 3 10:15:02 2025"

    def test_label_needs_word_boundary(self) -> None:
        assert parse_stash_list("stash@{x}: On main: branchdo_12abc\n") == {}

    def test_empty(self) -> None:
        assert parse_stash_list("") == {}


class TestRunGit:
    def test_missing_git(self) -> None:
        with patch("branchdo.core.git.subprocess.run", side_effect=FileNotFoundError):
            with pytest.raises(GitError, match="git must be installed"):
                git.list_stashes()

    def test_non_zero_exit_carries_stderr(self) -> None:
        with patch(
            "branchdo.core.git.subprocess.run",
            return_value=_proc(stderr="fatal: not a git repository", returncode=128),
        ):
            with pytest.raises(GitError) as exc_info:
                git.get_dir_env()
        assert exc_info.value.stderr == "fatal: not a git repository"
        assert "not a git repository" in str(exc_info.value)

    def test_dir_env(self) -> None:
        calls = [_proc(stdout="/home/me/repo\nfeature\n"), _proc(stdout="nvim\n")]
        with patch("branchdo.core.git.subprocess.run", side_effect=calls):
            env = git.get_dir_env()
        assert env.project_dir == "/home/me/repo"
        assert env.branch == "feature"
        assert env.editor == "nvim"

    def test_dir_env_editor_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EDITOR", "nano")
        calls = [_proc(stdout="/repo\nmain\n"), _proc(returncode=1)]
        with patch("branchdo.core.git.subprocess.run", side_effect=calls):
            env = git.get_dir_env()
        assert env.editor == "nano"

    def test_push_stash_args(self) -> None:
        with patch("branchdo.core.git.subprocess.run", return_value=_proc()) as run:
            git.push_stash(5)
        argv = run.call_args.args[0]
        assert argv == ["git", "stash", "push", "-m", "branchdo_5", "--include-untracked"]

    def test_pop_stash_args(self) -> None:
        with patch("branchdo.core.git.subprocess.run", return_value=_proc()) as run:
            git.pop_stash("stash@{x}")
        assert run.call_args.args[0] == ["git", "stash", "pop", "stash@{x}"]

    def test_commit_failure(self) -> None:
        failed = subprocess.CompletedProcess(args=[], returncode=1)
        with patch("branchdo.core.git.subprocess.run", return_value=failed):
            with pytest.raises(GitError, match="status 1"):
                git.run_commit(["-m", "x"])

    def test_list_branches(self) -> None:
        with patch(
            "branchdo.core.git.subprocess.run", return_value=_proc(stdout="main\n  feature\n\n")
        ) as run:
            assert git.list_branches() == ["main", "feature"]
        assert run.call_args.args[0] == [
            "git",
            "--no-pager",
            "branch",
            "--format=%(refname:short)",
        ]

    @pytest.mark.parametrize(
        "base, create, argv",
        [
            ("", False, ["git", "checkout", "login"]),
            ("", True, ["git", "checkout", "-b", "login"]),
            ("main", True, ["git", "checkout", "-b", "login", "main"]),
        ],
    )
    def test_checkout_branch_args(self, base: str, create: bool, argv: list[str]) -> None:
        with patch("branchdo.core.git.subprocess.run", return_value=_proc()) as run:
            git.checkout_branch("login", base, create=create)
        assert run.call_args.args[0] == argv

    def test_status_failure(self) -> None:
        failed = subprocess.CompletedProcess(args=[], returncode=128)
        with patch("branchdo.core.git.subprocess.run", return_value=failed):
            with pytest.raises(GitError, match="git status exited with status 128"):
                git.show_status()
