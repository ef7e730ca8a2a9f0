from datetime import date, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.pipeline.models import ItemKind, PipelineItem, is_past_due
from app.pipeline.stages import Stage


def _payload(**overrides):
    data = {
        "id": "inv-7",
        "kind": "invoice",
        "number": "FAC-2024-007",
        "company": "Innovació Tech BCN",
        "total": 22350.5,
        "issueDate": "2024-03-12",
        "stage": "invoiced",
    }
    data.update(overrides)
    return data


def test_parses_backend_payload():
    item = PipelineItem.model_validate(_payload(
        dueDate="2024-05-01",
        paidPercentage=40,
        linkedDocument={"id": "q2", "number": "PRE-2024-002", "kind": "quote"},
    ))
    assert item.kind == ItemKind.INVOICE
    assert item.stage == Stage.INVOICED
    assert item.total == Decimal("22350.5")
    assert item.issue_date == date(2024, 3, 12)
    assert item.linked_document.kind == ItemKind.QUOTE
    assert item.effective_paid_percentage == 40


def test_unknown_stage_is_rejected():
    with pytest.raises(ValidationError):
        PipelineItem.model_validate(_payload(stage="archived"))


def test_negative_total_is_rejected():
    with pytest.raises(ValidationError):
        PipelineItem.model_validate(_payload(total=-1))


def test_paid_percentage_bounds():
    with pytest.raises(ValidationError):
        PipelineItem.model_validate(_payload(paidPercentage=101))


def test_paid_percentage_ignored_for_quotes():
    item = PipelineItem.model_validate(_payload(kind="quote", stage="sent", paidPercentage=50))
    assert item.effective_paid_percentage is None


def test_overdue_derived_when_backend_omits_it():
    past = (date.today() - timedelta(days=3)).isoformat()
    assert PipelineItem.model_validate(_payload(dueDate=past)).is_overdue is True
    assert PipelineItem.model_validate(_payload(dueDate=past, stage="paid")).is_overdue is False


def test_backend_overdue_flag_wins():
    past = (date.today() - timedelta(days=3)).isoformat()
    assert PipelineItem.model_validate(_payload(dueDate=past, isOverdue=False)).is_overdue is False


def test_is_past_due():
    today = date(2024, 6, 1)
    assert is_past_due("2024-05-31", "sent", today)
    assert not is_past_due("2024-06-01", "sent", today)
    assert not is_past_due(None, "sent", today)
    assert not is_past_due("2024-05-31", Stage.PAID, today)


def test_items_are_immutable():
    item = PipelineItem.model_validate(_payload())
    with pytest.raises(ValidationError):
        item.stage = Stage.PAID
