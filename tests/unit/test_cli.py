"""Unit tests for the branchdo CLI commands (CliRunner, patched git)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from branchdo.cli._common import console
from branchdo.cli.main import cli
from branchdo.core.exceptions import GitError
from branchdo.core.git import DirEnv
from branchdo.core.models import QUEUE_BRANCH
from branchdo.core.store.database import Database

ENV = DirEnv(project_dir="/home/me/repo", branch="feature", editor="vi")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BRANCHDO_CONFIG_DIR", str(tmp_path))
    for var in ("BRANCHDO_DB", "BRANCHDO_LOG_LEVEL", "BRANCHDO_EDITOR"):
        monkeypatch.delenv(var, raising=False)
    with patch("branchdo.cli._common.get_dir_env", return_value=ENV):
        yield


@pytest.fixture
def db(tmp_path: Path):
    d = Database(tmp_path / "branchdo.db")
    d.connect()
    yield d
    d.close()


def _tasks(db: Database, branch: str = "feature") -> list[str]:
    return [t.task for t in db.list_todos(db.fetch_project_id(ENV.project_dir, branch))]


def _invoke(runner: CliRunner, *args: str):
    return runner.invoke(cli, list(args), catch_exceptions=False)


# ---------------------------------------------------------------------------
# add / queue
# ---------------------------------------------------------------------------


class TestAdd:
    def test_add_joins_args(self, runner: CliRunner, db: Database) -> None:
        result = _invoke(runner, "add", "write", "the", "docs")
        assert result.exit_code == 0
        assert "Added to-do item write the docs to feature" in result.output
        assert _tasks(db) == ["write the docs"]

    def test_add_top(self, runner: CliRunner, db: Database) -> None:
        _invoke(runner, "add", "first")
        _invoke(runner, "add", "-t", "urgent")
        assert _tasks(db) == ["urgent", "first"]

    def test_add_from_editor(self, runner: CliRunner, db: Database) -> None:
        with patch("branchdo.cli._todo_cmd.edit_items", return_value=["one", "two"]):
            result = _invoke(runner, "add")
        assert "Added 2 item(s) to feature" in result.output
        assert _tasks(db) == ["one", "two"]

    def test_branch_override(self, runner: CliRunner, db: Database) -> None:
        _invoke(runner, "--branch", "hotfix", "add", "patch it")
        assert _tasks(db, "hotfix") == ["patch it"]
        assert _tasks(db) == []

    def test_queue(self, runner: CliRunner, db: Database) -> None:
        result = _invoke(runner, "queue", "later", "idea")
        assert result.exit_code == 0
        assert _tasks(db, QUEUE_BRANCH) == ["later idea"]

    def test_warns_when_timer_runs_elsewhere(self, runner: CliRunner, db: Database) -> None:
        db.start_timer(db.fetch_project_id("/somewhere/else", "main"))
        result = _invoke(runner, "add", "x")
        assert result.exit_code == 0
        assert "Timer running in /somewhere/else [main]!" in result.output
        assert _tasks(db) == ["x"]


# ---------------------------------------------------------------------------
# what / done / name
# ---------------------------------------------------------------------------


class TestWhatDone:
    def test_what_all_done(self, runner: CliRunner) -> None:
        result = _invoke(runner, "what")
        assert "On: feature" in result.output
        assert "All done!" in result.output

    def test_what_next(self, runner: CliRunner) -> None:
        _invoke(runner, "add", "A")
        _invoke(runner, "add", "B")
        assert "What to do: A" in _invoke(runner, "what").output

    def test_done_shows_next(self, runner: CliRunner, db: Database) -> None:
        _invoke(runner, "add", "A")
        _invoke(runner, "add", "B")
        result = _invoke(runner, "done")
        assert "Up next: B" in result.output
        project_id = db.fetch_project_id(ENV.project_dir, "feature")
        assert [t.done for t in db.list_todos(project_id)] == [True, False]

    def test_done_last(self, runner: CliRunner) -> None:
        _invoke(runner, "add", "A")
        assert "All done!" in _invoke(runner, "done").output

    def test_name_show_and_set(self, runner: CliRunner) -> None:
        assert _invoke(runner, "name").output.strip() == "feature"
        assert 'name set to "Login rework"' in _invoke(runner, "name", "Login rework").output
        assert _invoke(runner, "name").output.strip() == "Login rework"

    def test_name_rejects_blank(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["name", "  "])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# start / stop
# ---------------------------------------------------------------------------


class TestTimer:
    def test_start_stop(self, runner: CliRunner) -> None:
        assert "Timer started" in _invoke(runner, "start").output
        result = _invoke(runner, "stop")
        assert "Timer stopped" in result.output
        assert "repository: /home/me/repo" in result.output
        assert "branch:     feature" in result.output
        assert "duration:   00:00:0" in result.output

    def test_start_twice(self, runner: CliRunner) -> None:
        _invoke(runner, "start")
        result = runner.invoke(cli, ["start"])
        assert result.exit_code == 1
        assert "Timer running since" in result.output

    def test_stop_when_idle(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["stop"])
        assert result.exit_code == 1
        assert "Timer is not running." in result.output

    def test_stop_does_not_need_git(self, runner: CliRunner) -> None:
        _invoke(runner, "start")
        with patch("branchdo.cli._common.get_dir_env", side_effect=GitError("not a repo")):
            result = _invoke(runner, "stop")
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------


class TestCommit:
    def _finish(self, runner: CliRunner, *tasks: str) -> None:
        for task in tasks:
            _invoke(runner, "add", task)
            _invoke(runner, "done")

    def test_message_and_committed_flag(self, runner: CliRunner, db: Database) -> None:
        self._finish(runner, "A", "B")
        _invoke(runner, "name", "Login rework")
        seen: dict[str, object] = {}

        def fake_commit(args):
            seen["args"] = list(args)
            seen["message"] = Path(args[1]).read_text()

        with patch("branchdo.cli._commit_cmd.run_commit", side_effect=fake_commit):
            result = _invoke(runner, "commit", "-s")
        assert result.exit_code == 0
        assert seen["args"][0] == "-eF"
        assert seen["args"][2:] == ["-s"]
        assert seen["message"] == "#Login rework\n\n- A\n- B\n"
        project_id = db.fetch_project_id(ENV.project_dir, "feature")
        assert db.todos_for_commit(project_id) == []

    def test_branch_name_not_in_message(self, runner: CliRunner) -> None:
        self._finish(runner, "A")
        seen: list[str] = []
        with patch(
            "branchdo.cli._commit_cmd.run_commit",
            side_effect=lambda args: seen.append(Path(args[1]).read_text()),
        ):
            _invoke(runner, "commit")
        assert seen == ["- A\n"]

    def test_failed_commit_keeps_items(self, runner: CliRunner, db: Database) -> None:
        self._finish(runner, "A")
        with patch(
            "branchdo.cli._commit_cmd.run_commit",
            side_effect=GitError("git commit exited with status 1"),
        ):
            result = runner.invoke(cli, ["commit"])
        assert result.exit_code == 1
        project_id = db.fetch_project_id(ENV.project_dir, "feature")
        assert [t.task for t in db.todos_for_commit(project_id)] == ["A"]

    def test_amend_no_edit_skips_message(self, runner: CliRunner) -> None:
        self._finish(runner, "A")
        with patch("branchdo.cli._commit_cmd.run_commit") as run:
            _invoke(runner, "commit", "--amend", "--no-edit")
        run.assert_called_once_with(("--amend", "--no-edit"))

    def test_amend_includes_previous_items(self, runner: CliRunner) -> None:
        self._finish(runner, "A")
        with patch("branchdo.cli._commit_cmd.run_commit"):
            _invoke(runner, "commit")
        self._finish(runner, "B")
        seen: list[str] = []
        with patch(
            "branchdo.cli._commit_cmd.run_commit",
            side_effect=lambda args: seen.append(Path(args[1]).read_text()),
        ):
            _invoke(runner, "commit", "--amend")
        assert seen == ["- A\n- B\n"]


# ---------------------------------------------------------------------------
# root command
# ---------------------------------------------------------------------------


class TestRoot:
    def test_empty_lists_open_editor(self, runner: CliRunner, db: Database) -> None:
        with patch("branchdo.cli.main.edit_items", return_value=["first"]):
            result = _invoke(runner)
        assert "Added 1 item(s) to feature" in result.output
        assert _tasks(db) == ["first"]

    def test_items_open_list_screen(self, runner: CliRunner) -> None:
        _invoke(runner, "queue", "later")
        with (
            patch("branchdo.core.git.list_stashes", return_value={}),
            patch("branchdo.ui.app.run_list_session") as run,
        ):
            result = _invoke(runner)
        assert result.exit_code == 0
        state = run.call_args.args[0]
        assert state.branch == "feature"
        assert [i.task for i in state.queue] == ["later"]

    def test_not_a_repository(self, runner: CliRunner) -> None:
        not_repo = GitError("not a git repository")
        with patch("branchdo.cli._common.get_dir_env", side_effect=not_repo):
            result = runner.invoke(cli, ["what"])
        assert result.exit_code == 1
        assert "not a git repository" in result.output

    def test_bad_config(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BRANCHDO_LOG_LEVEL", "loud")
        result = runner.invoke(cli, ["what"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = _invoke(runner, "--version")
        assert "branchdo" in result.output


# ---------------------------------------------------------------------------
# changelist / pitch
# ---------------------------------------------------------------------------


class TestChangelist:
    @pytest.fixture(autouse=True)
    def _no_pager(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PAGER", raising=False)

    def test_done_items_only(self, runner: CliRunner) -> None:
        _invoke(runner, "add", "A")
        _invoke(runner, "add", "B")
        _invoke(runner, "done")
        assert _invoke(runner, "changelist").output == "- A\n"

    def test_all_items_as_task_list(self, runner: CliRunner) -> None:
        _invoke(runner, "add", "A")
        _invoke(runner, "add", "B")
        _invoke(runner, "done")
        assert _invoke(runner, "changelist", "-a").output == "- [x] A\n- [ ] B\n"

    def test_nothing_done_prints_nothing(self, runner: CliRunner) -> None:
        _invoke(runner, "add", "A")
        result = _invoke(runner, "changelist")
        assert result.exit_code == 0
        assert result.output == ""

    def test_pager_used_when_set(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAGER", "less")
        _invoke(runner, "add", "A")
        _invoke(runner, "done")
        with patch.object(console, "pager") as pager:
            result = _invoke(runner, "changelist")
        pager.assert_called_once()
        assert result.output == "- A\n"

    def test_no_pager_flag(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PAGER", "less")
        _invoke(runner, "add", "A")
        _invoke(runner, "done")
        with patch.object(console, "pager") as pager:
            result = _invoke(runner, "changelist", "-n")
        pager.assert_not_called()
        assert result.output == "- A\n"


class TestPitch:
    @pytest.fixture(autouse=True)
    def _git(self):
        with (
            patch("branchdo.core.git.list_branches", return_value=["main", "feature"]),
            patch("branchdo.core.git.checkout_branch") as checkout,
            patch("branchdo.core.git.show_status") as status,
        ):
            self.checkout = checkout
            self.status = status
            yield

    def test_creates_missing_branch(self, runner: CliRunner, db: Database) -> None:
        result = _invoke(runner, "pitch", "login", "design form", "wire api", "-b", "main")
        assert result.exit_code == 0
        self.checkout.assert_called_once_with("login", "main", create=True)
        assert "Added 2 new to-do item(s) for login." in result.output
        assert _tasks(db, "login") == ["design form", "wire api"]

    def test_existing_branch_is_checked_out(self, runner: CliRunner, db: Database) -> None:
        _invoke(runner, "pitch", "feature", "polish")
        self.checkout.assert_called_once_with("feature", "", create=False)
        assert _tasks(db) == ["polish"]

    def test_sets_project_name(self, runner: CliRunner, db: Database) -> None:
        _invoke(runner, "pitch", "login", "task", "-n", "Login rework")
        project = db.get_project(db.fetch_project_id(ENV.project_dir, "login"))
        assert project is not None
        assert project.name == "Login rework"

    def test_items_from_editor(self, runner: CliRunner, db: Database) -> None:
        with patch("branchdo.cli._branch_cmd.edit_items", return_value=["one", "two"]):
            result = _invoke(runner, "pitch", "login")
        assert "Added 2 new to-do item(s)" in result.output
        assert _tasks(db, "login") == ["one", "two"]

    def test_no_items_shows_status(self, runner: CliRunner) -> None:
        with patch("branchdo.cli._branch_cmd.edit_items", return_value=[]):
            result = _invoke(runner, "pitch", "login")
        assert result.exit_code == 0
        self.status.assert_called_once_with()
        assert "Added" not in result.output

    def test_checkout_failure(self, runner: CliRunner, db: Database) -> None:
        self.checkout.side_effect = GitError("did not match any file(s) known to git")
        result = runner.invoke(cli, ["pitch", "login", "task", "-b", "nope"])
        assert result.exit_code == 1
        assert "did not match" in result.output
        assert _tasks(db, "login") == []
