"""Tests for utilities and configuration."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

import utils
from config import CONFIG, Config
from errors import ConfigurationError
from utils import content_id, log, now_ts


@pytest.fixture
def log_level():
    """Temporarily change CONFIG.log_level (Config is frozen)."""
    original = CONFIG.log_level

    def set_level(level: str) -> None:
        object.__setattr__(utils.CONFIG, "log_level", level)

    yield set_level
    object.__setattr__(utils.CONFIG, "log_level", original)


class TestLog:
    def test_writes_to_stderr_only(self, capsys, log_level):
        log_level("info")
        log("hello there")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err == "[memo-mcp] INFO: hello there\n"

    def test_level_filtering(self, capsys, log_level):
        log_level("warn")
        log("quiet", "INFO")
        log("loud", "WARNING")
        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "WARNING: loud" in err

    def test_debug_level_shows_everything(self, capsys, log_level):
        log_level("debug")
        log("details", "DEBUG")
        assert "DEBUG: details" in capsys.readouterr().err


class TestContentId:
    def test_known_value(self):
        assert content_id("hello") == "5d41402a-bc4b-2a76-b971-9d911017c592"

    def test_whitespace_matters(self):
        assert content_id("hello") != content_id("hello ")


def test_now_ts_is_epoch_seconds():
    assert isinstance(now_ts(), float)
    assert now_ts() > 1_700_000_000


class TestConfig:
    def test_defaults_validate(self):
        Config(log_level="info", embedding_provider="local", embedding_dim=384).validate()

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            replace(CONFIG, log_level="verbose").validate()

    def test_invalid_provider(self):
        with pytest.raises(ConfigurationError, match="EMBEDDING_PROVIDER"):
            replace(CONFIG, log_level="info", embedding_provider="openai").validate()

    def test_invalid_dimension(self):
        with pytest.raises(ConfigurationError, match="EMBEDDING_DIM"):
            replace(CONFIG, log_level="info", embedding_provider="hash", embedding_dim=0).validate()

    def test_model_cache_under_notes_dir(self):
        assert CONFIG.model_cache_dir == CONFIG.notes_dir / ".cache"


def test_package_readme_is_project_readme():
    root = Path(__file__).parent
    assert 'readme = "README.md"' in (root / "pyproject.toml").read_text()
    assert (root / "README.md").read_text().startswith("# memo-mcp")
