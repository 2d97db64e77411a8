"""Tests for layered configuration: defaults, TOML file, environment, overrides."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mnemo.application.config import resolve_config


def test_defaults(mock_home):
    config = resolve_config()

    assert config.store == "yaml"
    assert config.store_path.resolve() == (mock_home / ".config/mnemo/store.yaml").resolve()
    assert config.default_session_limit == 20
    assert config.upcoming_days == 7
    assert config.analysis_history_limit == 500


def test_toml_file(mock_home):
    cfg = mock_home / ".config/mnemo/config.toml"
    cfg.parent.mkdir(parents=True)
    cfg.write_text('store = "memory"\nupcoming_days = 3\n')

    config = resolve_config()

    assert config.store == "memory"
    assert config.upcoming_days == 3


def test_env_beats_file(mock_home, monkeypatch):
    (mock_home / ".mnemo.toml").write_text("default_session_limit = 5\n")
    monkeypatch.setenv("MNEMO_DEFAULT_SESSION_LIMIT", "8")

    assert resolve_config().default_session_limit == 8


def test_overrides_beat_env_and_skip_none(mock_home, monkeypatch):
    monkeypatch.setenv("MNEMO_STORE", "memory")

    config = resolve_config({"store": "yaml", "store_path": None})

    assert config.store == "yaml"
    assert config.store_path.name == "store.yaml"


def test_store_path_expands_user(mock_home):
    config = resolve_config({"store_path": Path("~/decks/main.yaml")})

    assert config.store_path == (mock_home / "decks/main.yaml").resolve()


def test_invalid_values_rejected(mock_home):
    with pytest.raises(ValidationError):
        resolve_config({"default_session_limit": 0})
