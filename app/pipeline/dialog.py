"""
Transition confirmation dialog.

Every stage change has to be confirmed explicitly. The dialog re-checks the
(from, to) pair on its own because it can be opened from more than one place
(board drop, HTTP endpoint, CLI).
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from app.pipeline.errors import PipelineError
from app.pipeline.executor import TransitionExecutor
from app.pipeline.models import PipelineItem, TransitionResult
from app.pipeline.stages import Stage, describe_transition, transition_label

logger = logging.getLogger(__name__)

NOT_PERMITTED_MESSAGE = "This transition is not permitted."

SuccessCallback = Callable[[TransitionResult], Awaitable[None]]


class TransitionDialog:
    def __init__(
        self,
        item: PipelineItem,
        from_stage: Stage,
        to_stage: Stage,
        executor: TransitionExecutor,
        on_success: Optional[SuccessCallback] = None,
    ):
        self.item = item
        self.from_stage = from_stage
        self.to_stage = to_stage
        self.executor = executor
        self.on_success = on_success

        self.description = describe_transition(from_stage, to_stage)
        self.is_open = True
        self.loading = False
        self.error: Optional[str] = None
        self.failure: Optional[PipelineError] = None
        self.result: Optional[TransitionResult] = None

    @property
    def permitted(self) -> bool:
        return self.description is not None

    @property
    def title(self) -> str:
        return transition_label(self.from_stage, self.to_stage)

    @property
    def message(self) -> str:
        return self.description or NOT_PERMITTED_MESSAGE

    @property
    def can_confirm(self) -> bool:
        return self.permitted and self.is_open and not self.loading

    @property
    def actions(self) -> tuple[str, ...]:
        if not self.permitted:
            return ("close",)
        return ("cancel", "confirm")

    async def confirm(self) -> bool:
        """
        Run the transition. Returns True once the backend accepted it.

        A confirm issued while another one is in flight is ignored. On failure
        the dialog stays open with the error message so the user can retry or
        cancel.
        """
        if not self.can_confirm:
            return False

        self.loading = True
        self.error = None
        self.failure = None
        try:
            result = await self.executor.execute(self.item.id, self.from_stage, self.to_stage)
        except PipelineError as e:
            self.error = e.message
            self.failure = e
            logger.info("transition %s %s failed: %s", self.item.id, self.title, e.message)
            return False
        finally:
            self.loading = False

        self.result = result
        self.is_open = False
        if self.on_success is not None:
            # Backend already accepted the move at this point
            try:
                await self.on_success(result)
            except Exception as e:
                logger.error("transition %s applied but refresh failed: %s", self.item.id, e)
        return True

    def cancel(self) -> bool:
        """Close without changing anything. Not possible while a confirm is in flight."""
        if self.loading:
            return False
        self.is_open = False
        return True

    def view(self) -> dict[str, Any]:
        return {
            "itemId": self.item.id,
            "number": self.item.number,
            "fromStage": self.from_stage.value,
            "toStage": self.to_stage.value,
            "title": self.title,
            "message": self.message,
            "permitted": self.permitted,
            "actions": list(self.actions),
            "open": self.is_open,
            "loading": self.loading,
            "error": self.error,
        }
