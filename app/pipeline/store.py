"""
Working copy of the pipeline items shown on the board.

The backend is the system of record. The store is only ever mutated by
reassigning the whole list: either after a re-fetch (replace) or by patching
the stage of one item after the backend accepted a transition.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from app.pipeline.models import PipelineItem
from app.pipeline.stages import BOARD_COLUMNS, Stage


class PipelineItemStore:
    def __init__(self, items: Iterable[PipelineItem] = ()):
        self._items: tuple[PipelineItem, ...] = ()
        self.replace(items)

    @property
    def items(self) -> tuple[PipelineItem, ...]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def replace(self, items: Iterable[PipelineItem]) -> None:
        new_items = tuple(items)
        seen: set[str] = set()
        for item in new_items:
            if item.id in seen:
                raise ValueError(f"Duplicate pipeline item id: {item.id}")
            seen.add(item.id)
        self._items = new_items

    def get(self, item_id: str) -> Optional[PipelineItem]:
        for item in self._items:
            if item.id == item_id:
                return item
        return None

    def items_in_stage(self, stage: Stage) -> list[PipelineItem]:
        return [item for item in self._items if item.stage == stage]

    def total_amount(self, stage: Stage) -> Decimal:
        return sum((item.total for item in self.items_in_stage(stage)), Decimal("0"))

    def grouped(self) -> dict[Stage, list[PipelineItem]]:
        return {stage: self.items_in_stage(stage) for stage in BOARD_COLUMNS}

    def apply_transition(self, item_id: str, to_stage: Stage) -> PipelineItem:
        """Patch the stage of one item. Only call after the backend confirmed the move."""
        current = self.get(item_id)
        if current is None:
            raise LookupError(f"Unknown pipeline item: {item_id}")

        updated = current.model_copy(update={
            "stage": to_stage,
            "is_overdue": current.is_overdue and to_stage != Stage.PAID,
        })
        self.replace(updated if item.id == item_id else item for item in self._items)
        return updated
