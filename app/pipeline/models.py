from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.pipeline.stages import Stage


class ItemKind(str, Enum):
    QUOTE = "quote"
    INVOICE = "invoice"


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def is_past_due(due_date: Any, stage: Any, today: Optional[date] = None) -> bool:
    due = _as_date(due_date)
    if due is None:
        return False
    try:
        stage = Stage(stage)
    except ValueError:
        return False
    return stage != Stage.PAID and due < (today or date.today())


class LinkedDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    number: str
    kind: ItemKind


class PipelineItem(BaseModel):
    """A quote or invoice as returned by the backend. Snapshots are immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    kind: ItemKind
    number: str
    company: str
    total: Decimal = Field(ge=0)
    issue_date: date = Field(alias="issueDate")
    due_date: Optional[date] = Field(default=None, alias="dueDate")
    is_overdue: bool = Field(default=False, alias="isOverdue")
    paid_percentage: Optional[int] = Field(default=None, ge=0, le=100, alias="paidPercentage")
    linked_document: Optional[LinkedDocument] = Field(default=None, alias="linkedDocument")
    stage: Stage

    @model_validator(mode="before")
    @classmethod
    def _derive_overdue(cls, data: Any) -> Any:
        # Backend may omit the flag; derive it from the due date and stage.
        if not isinstance(data, dict):
            return data
        if "isOverdue" in data or "is_overdue" in data:
            return data
        due = data.get("dueDate", data.get("due_date"))
        return {**data, "isOverdue": is_past_due(due, data.get("stage"))}

    @property
    def effective_paid_percentage(self) -> Optional[int]:
        if self.kind != ItemKind.INVOICE:
            return None
        return self.paid_percentage


class StageTotals(BaseModel):
    count: int = 0
    amount: Decimal = Decimal("0")


class PipelineStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    draft: StageTotals = Field(default_factory=StageTotals)
    sent: StageTotals = Field(default_factory=StageTotals)
    approved: StageTotals = Field(default_factory=StageTotals)
    invoiced: StageTotals = Field(default_factory=StageTotals)
    paid: StageTotals = Field(default_factory=StageTotals)
    rejected: StageTotals = Field(default_factory=StageTotals)
    overdue: StageTotals = Field(default_factory=StageTotals)
    expiring: StageTotals = Field(default_factory=StageTotals)
    conversion_rate: float = Field(default=0.0, alias="conversionRate")

    def for_stage(self, stage: Stage) -> StageTotals:
        return getattr(self, stage.value)


class TransitionResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(alias="itemId")
    from_stage: Stage = Field(alias="fromStage")
    to_stage: Stage = Field(alias="toStage")
    item: Optional[PipelineItem] = None
    message: Optional[str] = None


class PipelineSnapshot(BaseModel):
    """One read of the backend: the items for a scope plus the stats it computed, if any."""

    items: list[PipelineItem] = Field(default_factory=list)
    backend_stats: Optional[dict[str, Any]] = None
