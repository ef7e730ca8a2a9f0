import asyncio
import importlib.util

import pytest

from app.pipeline.board import PipelineBoard
from app.pipeline.errors import NetworkFailure
from app.pipeline.executor import TransitionExecutor
from app.pipeline.stages import Stage
from app.pipeline.store import PipelineItemStore

from conftest import REPO_ROOT, FakeBackend, make_item


@pytest.fixture(scope="module")
def script():
    spec = importlib.util.spec_from_file_location("pipeline_board", REPO_ROOT / "scripts" / "pipeline_board.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _board(backend, stage=Stage.DRAFT):
    return PipelineBoard(PipelineItemStore([make_item("q1", stage=stage)]), TransitionExecutor(backend, source="cli"))


def test_move_with_confirmation(script, monkeypatch, capsys):
    backend = FakeBackend()
    board = _board(backend)
    monkeypatch.setattr("builtins.input", lambda prompt: "y")
    assert asyncio.run(script.move(board, "q1", Stage.SENT, assume_yes=False)) == 0
    assert board.store.get("q1").stage == Stage.SENT
    assert "Draft → Sent" in capsys.readouterr().out


def test_move_declined_changes_nothing(script, monkeypatch):
    backend = FakeBackend()
    board = _board(backend)
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert asyncio.run(script.move(board, "q1", Stage.SENT, assume_yes=False)) == 1
    assert backend.calls == []
    assert board.store.get("q1").stage == Stage.DRAFT


def test_move_illegal(script, capsys):
    backend = FakeBackend()
    assert asyncio.run(script.move(_board(backend), "q1", Stage.PAID, assume_yes=True)) == 1
    assert backend.calls == []
    assert "not allowed" in capsys.readouterr().out


def test_move_failure_with_yes_stops_after_one_attempt(script):
    backend = FakeBackend(error=NetworkFailure("Backend returned HTTP 503"))
    board = _board(backend, Stage.APPROVED)
    assert asyncio.run(script.move(board, "q1", Stage.INVOICED, assume_yes=True)) == 1
    assert len(backend.calls) == 1
    assert board.store.get("q1").stage == Stage.APPROVED


def test_print_board(script, capsys):
    script.print_board(_board(FakeBackend()))
    out = capsys.readouterr().out
    assert "Draft" in out
    assert "Conversion rate" in out
