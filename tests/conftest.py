from __future__ import annotations

import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.pipeline.errors import PipelineError
from app.pipeline.models import ItemKind, PipelineItem
from app.pipeline.stages import Stage


def make_item(
    item_id: str = "q1",
    *,
    stage: Stage = Stage.DRAFT,
    total: Any = 1000,
    kind: ItemKind = ItemKind.QUOTE,
    company: str = "Empresa Catalana SL",
    issue_date: date = date(2024, 3, 15),
    due_date: Optional[date] = None,
    is_overdue: bool = False,
    **extra: Any,
) -> PipelineItem:
    return PipelineItem(
        id=item_id,
        kind=kind,
        number=extra.pop("number", f"PRE-2024-{item_id}"),
        company=company,
        total=Decimal(str(total)),
        issue_date=issue_date,
        due_date=due_date,
        is_overdue=is_overdue,
        stage=stage,
        **extra,
    )


class FakeBackend:
    """Stands in for the backend client: records transition calls, optionally fails."""

    def __init__(self, error: Optional[PipelineError] = None, response: Optional[dict] = None):
        self.error = error
        self.response = response or {}
        self.calls: list[tuple[str, Stage, Stage]] = []

    async def post_transition(self, item_id: str, from_stage: Stage, to_stage: Stage) -> dict:
        self.calls.append((item_id, from_stage, to_stage))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()
