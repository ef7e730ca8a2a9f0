from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from app.pipeline.models import ItemKind, PipelineItem
from app.pipeline.stages import Stage


@dataclass(frozen=True)
class ItemFilters:
    stage: Optional[Stage] = None
    kind: Optional[ItemKind] = None
    search: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def _matches(item: PipelineItem, f: ItemFilters, needle: Optional[str]) -> bool:
    if f.stage is not None and item.stage != f.stage:
        return False
    if f.kind is not None and item.kind != f.kind:
        return False
    if needle and needle not in item.number.lower() and needle not in item.company.lower():
        return False
    if f.min_amount is not None and item.total < f.min_amount:
        return False
    if f.max_amount is not None and item.total > f.max_amount:
        return False
    if f.date_from is not None and item.issue_date < f.date_from:
        return False
    if f.date_to is not None and item.issue_date > f.date_to:
        return False
    return True


def apply_filters(items: Iterable[PipelineItem], filters: ItemFilters) -> list[PipelineItem]:
    needle = (filters.search or "").strip().lower() or None
    return [item for item in items if _matches(item, filters, needle)]


def sort_by_issue_date(items: Iterable[PipelineItem], descending: bool = True) -> list[PipelineItem]:
    # sorted() is stable: same-day items keep their incoming order
    return sorted(items, key=lambda item: item.issue_date, reverse=descending)
