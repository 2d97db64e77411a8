"""Tests for CLI commands: help, config, import, due, review, analyze and stats."""

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import yaml
from typer.testing import CliRunner

from mnemo.domain.errors import ValidationError
from mnemo.interface.cli import app, load_items_file

runner = CliRunner()


@pytest.fixture(autouse=True)
def close_log_files():
    yield
    package_logger = logging.getLogger("mnemo")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            package_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def store_path(tmp_path, mock_home):
    return tmp_path / "store.yaml"


@pytest.fixture
def items_file(tmp_path):
    path = tmp_path / "items.yaml"
    path.write_text(
        yaml.safe_dump(
            [
                {"id": "q1", "front": "2 + 2?", "back": "4", "tags": ["math"]},
                {"front": "Capital of France?", "back": "Paris"},
            ]
        )
    )
    return path


def invoke(store_path, *args, **kwargs):
    return runner.invoke(app, ["--store-path", str(store_path), *args], **kwargs)


@pytest.fixture
def imported(store_path, items_file):
    result = invoke(store_path, "import", str(items_file), "--user", "u1")
    assert result.exit_code == 0, result.output
    return store_path


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "adaptive spaced-repetition" in result.stdout
    for command in ("due", "upcoming", "review", "analyze", "stats", "import", "config"):
        assert command in result.stdout


# --- Config ---


@patch("mnemo.interface.cli.resolve_config")
def test_config_show_command(mock_resolve_config):
    mock_config = MagicMock()
    mock_config.model_dump.return_value = {
        "store": "yaml",
        "store_path": Path("/tmp/store.yaml"),
        "verbose": 1,
    }
    mock_resolve_config.return_value = mock_config

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["store"] == "yaml"
    assert output_data["store_path"] == str(Path("/tmp/store.yaml"))


def test_config_show_applies_cli_overrides(store_path):
    result = invoke(store_path, "--store", "memory", "config", "show")

    assert result.exit_code == 0
    output_data = json.loads(result.stdout)
    assert output_data["store"] == "memory"
    assert output_data["store_path"] == str(store_path.resolve())


def test_invalid_store_backend(store_path):
    result = invoke(store_path, "--store", "postgres", "due", "u1")

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


# --- Import & queues ---


def test_import_then_due(imported):
    result = invoke(imported, "due", "u1")

    assert result.exit_code == 0
    assert "q1" in result.stdout
    assert "Capital of France?" in result.stdout
    assert "Due: 2" in result.stdout


def test_due_filtered_by_tag(imported):
    result = invoke(imported, "due", "u1", "--tag", "math")

    assert result.exit_code == 0
    assert "Due: 1" in result.stdout


def test_due_for_unknown_user(imported):
    result = invoke(imported, "due", "someone-else")

    assert result.exit_code == 0
    assert "No items due for review." in result.stdout


def test_negative_limit_is_reported(imported):
    result = invoke(imported, "due", "u1", "--limit", "-1")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_import_rejects_items_without_owner(store_path, tmp_path):
    path = tmp_path / "orphans.yaml"
    path.write_text(yaml.safe_dump([{"front": "no owner"}]))

    result = invoke(store_path, "import", str(path))

    assert result.exit_code == 1
    assert "user_id" in result.output


def test_load_items_file_accepts_mapping(tmp_path):
    path = tmp_path / "deck.yaml"
    path.write_text(yaml.safe_dump({"items": [{"id": "x", "front": "f", "tags": ["a"]}]}))

    [item] = load_items_file(path, default_user="u1")

    assert item.id == "x"
    assert item.user_id == "u1"
    assert item.tags == ["a"]


def test_load_items_file_rejects_bad_content_type(tmp_path):
    path = tmp_path / "deck.yaml"
    path.write_text(yaml.safe_dump([{"front": "f", "content_type": "video"}]))

    with pytest.raises(ValidationError):
        load_items_file(path, default_user="u1")


# --- Review ---


def test_review_session_to_completion(imported):
    result = invoke(imported, "review", "u1", input="\n5\n\n5\n")

    assert result.exit_code == 0, result.output
    assert "Session complete" in result.stdout
    assert "Average rating:  5.00" in result.stdout

    # Both items now wait a day.
    assert "No items due" in invoke(imported, "due", "u1").stdout
    assert "q1" in invoke(imported, "upcoming", "u1", "--days", "2").stdout


def test_review_reprompts_on_bad_rating(imported):
    result = invoke(imported, "review", "u1", "--limit", "1", input="\nseven\n\n4\n")

    assert result.exit_code == 0, result.output
    assert "Please enter a whole number from 1 to 5." in result.stdout
    assert "Session complete" in result.stdout


def test_review_stopped_early(imported):
    result = invoke(imported, "review", "u1", input="\nq\n")

    assert result.exit_code == 0, result.output
    assert "Completion:      0%" in result.stdout


def test_review_with_nothing_due(store_path):
    result = invoke(store_path, "review", "u1")

    assert result.exit_code == 0
    assert "No items due for review" in result.stdout


# --- Analysis & stats ---


def test_analyze_without_history(store_path):
    result = invoke(store_path, "analyze", "u1", "--json")

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["review_count"] == 0
    assert data["recommended"] is None


def test_analyze_and_stats_after_review(imported):
    invoke(imported, "review", "u1", input="\n5\n\n2\n")

    analysis = invoke(imported, "analyze", "u1", "--apply", "--json")
    stats = invoke(imported, "stats", "u1", "--json")

    assert analysis.exit_code == 0, analysis.output
    assert json.loads(analysis.stdout)["review_count"] == 2
    assert stats.exit_code == 0, stats.output
    data = json.loads(stats.stdout)
    assert data["reviews"]["today"] == 2
    assert data["learning"]["total_items"] == 2
    assert data["learning"]["streak"] == 1


def test_stats_text_output(store_path):
    result = invoke(store_path, "stats", "u1")

    assert result.exit_code == 0
    assert "Reviews total:     0" in result.stdout


# --- Log file ---


def test_commands_write_log_file_under_log_dir(imported, mock_home):
    result = invoke(imported, "due", "u1")

    assert result.exit_code == 0
    assert (mock_home / ".config/mnemo/logs/mnemo.log").exists()


def test_log_dir_from_environment(imported, tmp_path, monkeypatch):
    monkeypatch.setenv("MNEMO_LOG_DIR", str(tmp_path / "custom-logs"))

    result = invoke(imported, "stats", "u1")

    assert result.exit_code == 0
    assert (tmp_path / "custom-logs" / "mnemo.log").exists()
