"""Tests for CLI commands: help, due, scan run/status/export/reset, config, server."""

import json
import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from cekatan.application.scan.checkpoint import CheckpointStore, checkpoint_key
from cekatan.application.scan.transitions import new_scan_state, record_page_skip, start_scan
from cekatan.domain.results import Ok
from cekatan.domain.scan.models import CardDraft
from cekatan.infrastructure.adapters.kv_store import JsonFileKeyValueStore
from cekatan.interface.cli import app

runner = CliRunner()


@pytest.fixture
def checkpoint_dir(mock_home, tmp_path, monkeypatch):
    d = tmp_path / "checkpoints"
    monkeypatch.setenv("CEKATAN_CHECKPOINT_DIR", str(d))
    return d


@pytest.fixture
def saved_checkpoint(checkpoint_dir):
    state = record_page_skip(new_scan_state(8), 1, "timeout")
    CheckpointStore(JsonFileKeyValueStore(checkpoint_dir)).save(
        checkpoint_key("deck-1", "book"), state
    )
    return state


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "due" in result.stdout
    assert "scan" in result.stdout
    assert "config" in result.stdout


# --- Config ---


def test_config_show_command(mock_home):
    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["batch_size"] == 50
    assert data["checkpoint_dir"].endswith("checkpoints")


@pytest.fixture
def root_log_level():
    root = logging.getLogger()
    level = root.level
    yield root
    root.setLevel(level)


def test_verbose_flag_reaches_config_and_log_level(mock_home, root_log_level):
    result = runner.invoke(app, ["-vv", "config", "show"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["verbose"] == 2
    assert root_log_level.level == logging.DEBUG


# --- Due ---


@pytest.fixture
def snapshot_file(tmp_path):
    now = datetime.now(timezone.utc)
    path = tmp_path / "progress.json"
    path.write_text(
        json.dumps(
            {
                "card_ids": ["c1", "c2", "c3"],
                "progress": [
                    {
                        "card_id": "c1",
                        "collection_id": "deck-1",
                        "next_review": (now - timedelta(days=1)).isoformat(),
                        "interval": 2,
                    },
                    {
                        "card_id": "c2",
                        "collection_id": "deck-2",
                        "next_review": (now + timedelta(days=3)).isoformat(),
                        "interval": 4,
                    },
                ],
            }
        )
    )
    return path


def test_due_json(mock_home, snapshot_file):
    result = runner.invoke(app, ["due", str(snapshot_file), "--json"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["due_count"] == 1
    assert data["card_ids"] == ["c1", "c3"]
    assert data["total_due"] == 2
    assert data["is_new_cards_fallback"] is False


def test_due_for_one_collection(mock_home, snapshot_file):
    result = runner.invoke(app, ["due", str(snapshot_file), "--collection", "deck-2"])

    assert result.exit_code == 0
    assert "Due cards: 0" in result.stdout


def test_due_invalid_file(mock_home, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text('{"progress": [{"card_id": "c1"}]}')

    result = runner.invoke(app, ["due", str(bad)])

    assert result.exit_code == 1


# --- Scan checkpoints ---


def test_scan_status(saved_checkpoint):
    result = runner.invoke(app, ["scan", "status", "deck-1", "book"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["outcome"] == "paused"
    assert data["total_pages"] == 8
    assert data["skipped_pages"] == [1]
    assert data["errors_count"] == 1


def test_scan_status_without_checkpoint(checkpoint_dir):
    result = runner.invoke(app, ["scan", "status", "deck-1", "book"])
    assert result.exit_code == 1


def test_scan_export_to_stdout(saved_checkpoint):
    result = runner.invoke(app, ["scan", "export", "deck-1", "book"])

    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["skippedPages"] == [{"pageNumber": 1, "reason": "timeout"}]
    assert data["deckId"] == "deck-1"


def test_scan_export_to_file(saved_checkpoint, tmp_path):
    out = tmp_path / "logs"

    result = runner.invoke(app, ["scan", "export", "deck-1", "book", "--out-dir", str(out)])

    assert result.exit_code == 0
    files = list(out.glob("autoscan-log-*.json"))
    assert len(files) == 1
    assert json.loads(files[0].read_text())["sourceId"] == "book"


def test_scan_reset(saved_checkpoint, checkpoint_dir):
    result = runner.invoke(app, ["scan", "reset", "deck-1", "book"])

    assert result.exit_code == 0
    store = CheckpointStore(JsonFileKeyValueStore(checkpoint_dir))
    assert store.load(checkpoint_key("deck-1", "book")) is None


# --- Scan run ---


def _collaborators():
    drafter = MagicMock()
    drafter.draft = AsyncMock(
        return_value=Ok([CardDraft(stem="Q", options=["a", "b"], correct_index=0)])
    )
    drafter.close = AsyncMock()
    creator = MagicMock()
    creator.create_cards = AsyncMock(return_value=Ok(1))
    creator.close = AsyncMock()
    return drafter, creator


@patch("cekatan.application.factory.get_collaborators")
def test_scan_run(mock_collaborators, checkpoint_dir, tmp_path):
    drafter, creator = _collaborators()
    mock_collaborators.return_value = (drafter, creator)
    doc = tmp_path / "cardio.txt"
    body = "The left ventricle pumps oxygenated blood into the aorta under pressure."
    doc.write_text(f"{body}\f{body}\f", encoding="utf-8")

    result = runner.invoke(
        app, ["scan", "run", str(doc), "--deck", "deck-1", "--tag", "cardio", "--delay", "0"]
    )

    assert result.exit_code == 0, result.output
    assert "completed: 2 pages, 2 cards, 0 errors" in result.stdout
    assert creator.create_cards.await_count == 2
    payload = creator.create_cards.await_args.args[0]
    assert payload.target_collection_id == "deck-1"
    assert payload.session_tags == ["cardio"]
    drafter.close.assert_awaited_once()
    creator.close.assert_awaited_once()


@patch("cekatan.application.factory.get_collaborators")
def test_scan_run_resume_without_checkpoint(mock_collaborators, checkpoint_dir, tmp_path):
    drafter, creator = _collaborators()
    mock_collaborators.return_value = (drafter, creator)
    doc = tmp_path / "doc.txt"
    doc.write_text("a page\f", encoding="utf-8")

    result = runner.invoke(app, ["scan", "run", str(doc), "--deck", "d", "--resume"])

    assert result.exit_code == 0
    drafter.draft.assert_not_awaited()


@patch("cekatan.application.factory.get_collaborators")
def test_scan_run_resumes_interrupted_checkpoint(mock_collaborators, checkpoint_dir, tmp_path):
    drafter, creator = _collaborators()
    mock_collaborators.return_value = (drafter, creator)
    doc = tmp_path / "book.txt"
    body = "Renal clearance is the volume of plasma cleared of a substance per minute."
    doc.write_text(f"{body}\f{body}\f", encoding="utf-8")
    CheckpointStore(JsonFileKeyValueStore(checkpoint_dir)).save(
        checkpoint_key("deck-1", "book"), start_scan(new_scan_state(2), 2)
    )

    result = runner.invoke(
        app, ["scan", "run", str(doc), "--deck", "deck-1", "--resume", "--delay", "0"]
    )

    assert result.exit_code == 0, result.output
    assert drafter.draft.await_count == 1
    assert "completed: 1 pages, 1 cards, 0 errors" in result.stdout


def test_scan_run_rejects_unknown_mode(checkpoint_dir, tmp_path):
    doc = tmp_path / "doc.txt"
    doc.write_text("a page", encoding="utf-8")

    result = runner.invoke(app, ["scan", "run", str(doc), "--deck", "d", "--mode", "summarize"])

    assert result.exit_code == 2


# --- Server ---


@patch("uvicorn.run")
def test_server_command(mock_run):
    result = runner.invoke(app, ["server", "--port", "9000"])

    assert result.exit_code == 0
    mock_run.assert_called_once_with(
        "cekatan.server:app", host="127.0.0.1", port=9000, reload=False
    )
