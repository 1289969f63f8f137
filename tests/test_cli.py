"""Tests for the command line interface."""

from click.testing import CliRunner

from aichat_workflow.backends.sqlite_store import SQLiteHistoryStore
from aichat_workflow.cli import main


def _seed(tmp_path, records):
    store = SQLiteHistoryStore(tmp_path / "chat_history.db")
    store.create_schema()
    for record in records:
        store.save_block(record)
    return store.db_path


def test_show_groups_plan_exchange(tmp_path, plan_records):
    db = _seed(tmp_path, plan_records)

    result = CliRunner().invoke(main, ["--db", str(db), "show", "proj-1"])
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0].startswith("clarifying-questions")
    assert "+ Here are my answers:" in lines[1]
    assert "+ (continuation)" in lines[3]
    assert lines[-1].startswith("conversation")
    assert "Change the header color to blue" in lines[-1]


def test_show_empty_project(tmp_path, plan_records):
    db = _seed(tmp_path, plan_records)
    result = CliRunner().invoke(main, ["--db", str(db), "show", "proj-404"])
    assert result.exit_code == 0
    assert "No history." in result.output


def test_missing_database(tmp_path):
    result = CliRunner().invoke(main, ["--db", str(tmp_path / "nope.db"), "show", "proj-1"])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_export_json(tmp_path, plan_records):
    db = _seed(tmp_path, plan_records)
    result = CliRunner().invoke(main, ["--db", str(db), "export", "proj-1", "--format", "json"])
    assert result.exit_code == 0
    assert '"project_id": "proj-1"' in result.output
