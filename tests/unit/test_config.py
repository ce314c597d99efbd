"""Unit tests for branchdo.core.config — BranchdoConfig loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from branchdo.core.config import BranchdoConfig, config_dir, load_config
from branchdo.core.exceptions import ConfigError, ConfigNotFoundError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_config(tmp_path: Path, content: str) -> Path:
    p = tmp_path / "config.toml"
    p.write_text(content)
    return p


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BRANCHDO_CONFIG_DIR", str(tmp_path / "state"))
    for var in ("BRANCHDO_DB", "BRANCHDO_LOG_LEVEL", "BRANCHDO_EDITOR"):
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_missing_default_file_gives_defaults(self) -> None:
        cfg = load_config()
        assert cfg == BranchdoConfig()
        assert cfg.logging.level == "WARNING"
        assert cfg.ui.show_help is False

    def test_default_paths_live_in_config_dir(self, tmp_path: Path) -> None:
        cfg = load_config()
        assert cfg.db_path == tmp_path / "state" / "branchdo.db"
        assert cfg.log_path == tmp_path / "state" / "branchdo.log"

    def test_config_dir_from_env(self, tmp_path: Path) -> None:
        assert config_dir() == tmp_path / "state"

    def test_config_dir_defaults_to_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("BRANCHDO_CONFIG_DIR")
        assert config_dir() == Path.home() / ".branchdo"


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


class TestLoadFile:
    def test_explicit_missing_path_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigNotFoundError):
            load_config(tmp_path / "nope.toml")

    def test_not_found_is_a_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.toml")

    def test_sections_are_read(self, tmp_path: Path) -> None:
        p = _write_config(
            tmp_path,
            'config_version = 1\n\n[database]\npath = "{db}"\n\n[logging]\nlevel = "info"\n\n'
            '[editor]\ncommand = "nano"\n\n[ui]\nshow_help = true\nshow_ids = true\n'.format(
                db=tmp_path / "x.db"
            ),
        )
        cfg = load_config(p)
        assert cfg.db_path == (tmp_path / "x.db").resolve()
        assert cfg.logging.level == "INFO"
        assert cfg.editor.command == "nano"
        assert cfg.ui.show_help is True
        assert cfg.ui.show_ids is True

    def test_invalid_toml_raises_config_error(self, tmp_path: Path) -> None:
        p = _write_config(tmp_path, "[database\npath = 1")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(p)

    def test_invalid_level_raises_config_error(self, tmp_path: Path) -> None:
        p = _write_config(tmp_path, '[logging]\nlevel = "LOUD"\n')
        with pytest.raises(ConfigError):
            load_config(p)

    def test_wrong_type_raises_config_error(self, tmp_path: Path) -> None:
        p = _write_config(tmp_path, '[ui]\nshow_help = "maybe"\n')
        with pytest.raises(ConfigError):
            load_config(p)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


class TestEnvOverrides:
    def test_db_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BRANCHDO_DB", str(tmp_path / "env.db"))
        assert load_config().db_path == (tmp_path / "env.db").resolve()

    def test_env_wins_over_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        p = _write_config(tmp_path, '[logging]\nlevel = "ERROR"\n[editor]\ncommand = "vim"\n')
        monkeypatch.setenv("BRANCHDO_LOG_LEVEL", "debug")
        monkeypatch.setenv("BRANCHDO_EDITOR", "emacs")
        cfg = load_config(p)
        assert cfg.logging.level == "DEBUG"
        assert cfg.editor.command == "emacs"

    def test_invalid_env_level_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BRANCHDO_LOG_LEVEL", "chatty")
        with pytest.raises(ConfigError):
            load_config()
