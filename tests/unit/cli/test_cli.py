"""CLI command tests against a local data file."""

import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from chatmem.cli.main import app
from chatmem.factory import create_local_memory_manager
from chatmem.memory.errors import StorageError
from chatmem.memory.manager import MemoryManager

runner = CliRunner()


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    path = tmp_path / "memory.json"
    monkeypatch.setenv("MEMORY_STORAGE_TYPE", "local")
    monkeypatch.setenv("MEMORY_FILE_PATH", str(path))
    return path


@pytest.fixture
def seeded(data_file):
    """Store with one two-message session."""
    manager = create_local_memory_manager(str(data_file))
    manager.initialize()
    manager.start_session("s1", title="Support chat")
    manager.save_user_message("hi")
    manager.save_assistant_message("hello [there]")
    return data_file


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.startswith("chatmem v")


def test_stats_empty(data_file):
    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 0
    assert "Memory Stats" in result.stdout


def test_stats(seeded):
    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 0
    assert "Messages" in result.stdout
    assert "2.00" in result.stdout


def test_sessions_empty(data_file):
    result = runner.invoke(app, ["sessions"])

    assert result.exit_code == 0
    assert "No sessions" in result.stdout


def test_sessions(seeded):
    result = runner.invoke(app, ["sessions"])

    assert result.exit_code == 0
    assert "Sessions (1)" in result.stdout
    assert "s1" in result.stdout


def test_history_transcript(seeded):
    result = runner.invoke(app, ["history", "s1"])

    assert result.exit_code == 0
    assert "user: hi" in result.stdout
    assert "assistant: hello [there]" in result.stdout


def test_history_json(seeded):
    result = runner.invoke(app, ["history", "s1", "--json", "--limit", "1"])

    assert result.exit_code == 0
    messages = json.loads(result.stdout)
    assert len(messages) == 1
    assert messages[0]["sessionId"] == "s1"
    assert messages[0]["content"] == "hi"


def test_history_unknown_session(seeded):
    result = runner.invoke(app, ["history", "nope"])

    assert result.exit_code == 0
    assert "No messages in session nope" in result.stdout


def test_delete_session(seeded):
    result = runner.invoke(app, ["delete-session", "s1"])

    assert result.exit_code == 0
    assert json.loads(seeded.read_text())["sessions"] == []


def test_clear_requires_confirmation(seeded):
    result = runner.invoke(app, ["clear"])

    assert result.exit_code == 1
    assert json.loads(seeded.read_text())["messages"] != []


def test_clear(seeded):
    result = runner.invoke(app, ["clear", "--yes"])

    assert result.exit_code == 0
    assert "Memory cleared" in result.stdout
    assert json.loads(seeded.read_text())["messages"] == []


def test_configuration_error_exits(monkeypatch):
    monkeypatch.setenv("MEMORY_STORAGE_TYPE", "redis")

    result = runner.invoke(app, ["stats"])

    assert result.exit_code == 1
    assert "Invalid storage type" in result.stdout


def test_corrupt_file_exits(data_file):
    data_file.write_text("{broken")

    result = runner.invoke(app, ["sessions"])

    assert result.exit_code == 1
    assert "Error" in result.stdout


@pytest.mark.parametrize(
    "args, method",
    [
        (["stats"], "get_stats"),
        (["sessions"], "get_sessions"),
        (["history", "s1"], "get_session_history"),
        (["delete-session", "s1"], "delete_session"),
        (["clear", "--yes"], "clear"),
    ],
)
def test_storage_error_during_command_exits(seeded, args, method):
    with patch.object(MemoryManager, method, side_effect=StorageError("table throttled")):
        result = runner.invoke(app, args)

    assert result.exit_code == 1
    assert "Error: table throttled" in result.stdout
