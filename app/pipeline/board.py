"""
Kanban board interaction state: drag-and-drop decisions and post-transition refresh.

A drop never applies a transition by itself. Legal moves open a
TransitionDialog; illegal ones only queue a notification.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from app.pipeline.dialog import TransitionDialog
from app.pipeline.errors import NOT_ALLOWED_MESSAGE
from app.pipeline.executor import TransitionExecutor
from app.pipeline.models import PipelineItem, PipelineStats, TransitionResult
from app.pipeline.stages import (
    BOARD_COLUMNS,
    STAGE_REGISTRY,
    Stage,
    StageDescriptor,
    is_transition_allowed,
    transition_label,
)
from app.pipeline.stats import compute_stats
from app.pipeline.store import PipelineItemStore
from app.pipeline.trace_logger import log_transition_attempt

logger = logging.getLogger(__name__)

ItemLoader = Callable[[], Awaitable[Sequence[PipelineItem]]]


class DropDecision(str, Enum):
    NOOP = "noop"
    REJECTED = "rejected"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    detail: Optional[str] = None


@dataclass(frozen=True)
class DropOutcome:
    decision: DropDecision
    item: Optional[PipelineItem] = None
    from_stage: Optional[Stage] = None
    to_stage: Optional[Stage] = None
    notification: Optional[Notification] = None
    dialog: Optional[TransitionDialog] = None


@dataclass
class BoardColumn:
    descriptor: StageDescriptor
    items: list[PipelineItem] = field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def count(self) -> int:
        return len(self.items)


class PipelineBoard:
    def __init__(
        self,
        store: PipelineItemStore,
        executor: TransitionExecutor,
        *,
        loader: Optional[ItemLoader] = None,
        expiring_window_days: int = 7,
    ):
        self.store = store
        self.executor = executor
        self.loader = loader
        self.expiring_window_days = expiring_window_days

        self.active_item_id: Optional[str] = None
        self.dialog: Optional[TransitionDialog] = None
        self.notifications: list[Notification] = []

    # -----------------------------------------------------------------------
    # Views
    # -----------------------------------------------------------------------

    def columns(self) -> list[BoardColumn]:
        return [
            BoardColumn(
                descriptor=STAGE_REGISTRY[stage],
                items=self.store.items_in_stage(stage),
                total=self.store.total_amount(stage),
            )
            for stage in BOARD_COLUMNS
        ]

    def stats(self, today: Optional[date] = None) -> PipelineStats:
        return compute_stats(
            self.store.items,
            today=today,
            expiring_window_days=self.expiring_window_days,
        )

    @property
    def active_item(self) -> Optional[PipelineItem]:
        if self.active_item_id is None:
            return None
        return self.store.get(self.active_item_id)

    # -----------------------------------------------------------------------
    # Drag and drop
    # -----------------------------------------------------------------------

    def drag_start(self, item_id: str) -> PipelineItem:
        item = self.store.get(item_id)
        if item is None:
            raise LookupError(f"Unknown pipeline item: {item_id}")
        self.active_item_id = item_id
        return item

    def drag_cancel(self) -> None:
        self.active_item_id = None

    def drag_end(self, over_stage: Optional[Stage]) -> DropOutcome:
        item = self.active_item
        self.active_item_id = None
        if item is None or over_stage is None:
            return DropOutcome(decision=DropDecision.NOOP, item=item)

        from_stage = item.stage
        if from_stage == over_stage:
            return DropOutcome(decision=DropDecision.NOOP, item=item, from_stage=from_stage, to_stage=over_stage)

        if not is_transition_allowed(from_stage, over_stage):
            notification = Notification(
                level="warning",
                message=NOT_ALLOWED_MESSAGE,
                detail=transition_label(from_stage, over_stage),
            )
            self.notifications.append(notification)
            log_transition_attempt(
                item_id=item.id,
                from_stage=from_stage.value,
                to_stage=over_stage.value,
                outcome="rejected",
                source="board",
                error=NOT_ALLOWED_MESSAGE,
            )
            return DropOutcome(
                decision=DropDecision.REJECTED,
                item=item,
                from_stage=from_stage,
                to_stage=over_stage,
                notification=notification,
            )

        self.dialog = self.open_dialog(item, from_stage, over_stage)
        return DropOutcome(
            decision=DropDecision.CONFIRM,
            item=item,
            from_stage=from_stage,
            to_stage=over_stage,
            dialog=self.dialog,
        )

    def open_dialog(self, item: PipelineItem, from_stage: Stage, to_stage: Stage) -> TransitionDialog:
        return TransitionDialog(item, from_stage, to_stage, self.executor, on_success=self._after_transition)

    def dismiss_notifications(self) -> list[Notification]:
        pending, self.notifications = self.notifications, []
        return pending

    # -----------------------------------------------------------------------
    # Refresh
    # -----------------------------------------------------------------------

    async def refresh(self) -> None:
        if self.loader is None:
            return
        self.store.replace(await self.loader())

    async def _after_transition(self, result: TransitionResult) -> None:
        self.dialog = None
        if self.loader is not None:
            try:
                await self.refresh()
                return
            except Exception as e:
                logger.warning("board refresh after %s failed, patching locally: %s", result.item_id, e)
        self.store.apply_transition(result.item_id, result.to_stage)
