from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from app.pipeline.models import PipelineItem, PipelineStats, StageTotals
from app.pipeline.stages import Stage

# Stages in which a due date means "the client still has to answer"
EXPIRING_STAGES: frozenset[Stage] = frozenset({Stage.DRAFT, Stage.SENT})


def _add(bucket: StageTotals, amount: Decimal) -> None:
    bucket.count += 1
    bucket.amount += amount


def is_expiring(item: PipelineItem, today: date, window_days: int) -> bool:
    if item.due_date is None or item.stage not in EXPIRING_STAGES:
        return False
    return today < item.due_date <= today + timedelta(days=window_days)


def compute_stats(
    items: Iterable[PipelineItem],
    *,
    today: Optional[date] = None,
    expiring_window_days: int = 7,
) -> PipelineStats:
    """
    Aggregate per-stage counts and amounts plus the overdue and expiring buckets.

    conversionRate = items that reached paid / items that left draft.
    Rejected items count as having left draft.
    """
    today = today or date.today()
    stats = PipelineStats()
    left_draft = 0

    for item in items:
        _add(stats.for_stage(item.stage), item.total)
        if item.stage != Stage.DRAFT:
            left_draft += 1
        if item.is_overdue:
            _add(stats.overdue, item.total)
        if is_expiring(item, today, expiring_window_days):
            _add(stats.expiring, item.total)

    if left_draft:
        stats.conversion_rate = stats.paid.count / left_draft
    return stats
