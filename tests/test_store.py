from decimal import Decimal

import pytest

from app.pipeline.stages import BOARD_COLUMNS, Stage
from app.pipeline.store import PipelineItemStore

from conftest import make_item


def _store():
    return PipelineItemStore([
        make_item("q1", stage=Stage.DRAFT, total=1000),
        make_item("q2", stage=Stage.SENT, total=250.5),
        make_item("q3", stage=Stage.DRAFT, total=300),
        make_item("i1", stage=Stage.INVOICED, total=4000),
    ])


def test_items_in_stage_keeps_insertion_order():
    store = _store()
    assert [i.id for i in store.items_in_stage(Stage.DRAFT)] == ["q1", "q3"]
    assert store.items_in_stage(Stage.PAID) == []


def test_total_amount_per_stage():
    store = _store()
    assert store.total_amount(Stage.DRAFT) == Decimal("1300")
    assert store.total_amount(Stage.SENT) == Decimal("250.5")
    assert store.total_amount(Stage.PAID) == Decimal("0")


def test_stage_totals_add_up_without_double_counting():
    store = _store()
    assert sum(store.total_amount(s) for s in Stage) == sum(i.total for i in store.items)


def test_grouped_has_every_column():
    grouped = _store().grouped()
    assert list(grouped) == BOARD_COLUMNS
    assert sum(len(v) for v in grouped.values()) == 4


def test_replace_swaps_whole_list():
    store = _store()
    before = store.items
    store.replace([make_item("x", stage=Stage.PAID)])
    assert [i.id for i in store.items] == ["x"]
    assert len(before) == 4


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        PipelineItemStore([make_item("q1"), make_item("q1")])


def test_apply_transition_moves_item_between_views():
    store = _store()
    updated = store.apply_transition("q1", Stage.SENT)
    assert updated.stage == Stage.SENT
    assert "q1" not in [i.id for i in store.items_in_stage(Stage.DRAFT)]
    assert "q1" in [i.id for i in store.items_in_stage(Stage.SENT)]
    assert store.total_amount(Stage.DRAFT) == Decimal("300")
    assert store.total_amount(Stage.SENT) == Decimal("1250.5")
    # position in the list is preserved
    assert [i.id for i in store.items] == ["q1", "q2", "q3", "i1"]


def test_apply_transition_to_paid_clears_overdue():
    store = PipelineItemStore([make_item("i1", stage=Stage.INVOICED, is_overdue=True)])
    assert store.apply_transition("i1", Stage.PAID).is_overdue is False


def test_apply_transition_unknown_item():
    with pytest.raises(LookupError):
        _store().apply_transition("nope", Stage.SENT)
