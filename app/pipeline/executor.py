from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from app.pipeline.errors import IllegalTransition, PipelineError
from app.pipeline.models import PipelineItem, TransitionResult
from app.pipeline.stages import Stage, is_transition_allowed
from app.pipeline.trace_logger import log_transition_attempt

logger = logging.getLogger(__name__)


class TransitionBackend(Protocol):
    async def post_transition(self, item_id: str, from_stage: Stage, to_stage: Stage) -> dict[str, Any]:
        ...


class TransitionExecutor:
    """Performs a stage change through the backend. One request per call, no retries."""

    def __init__(self, backend: TransitionBackend, *, source: str = "board"):
        self.backend = backend
        self.source = source

    async def execute(self, item_id: str, from_stage: Stage, to_stage: Stage) -> TransitionResult:
        if not is_transition_allowed(from_stage, to_stage):
            err = IllegalTransition(from_stage, to_stage)
            log_transition_attempt(
                item_id=item_id,
                from_stage=from_stage.value,
                to_stage=to_stage.value,
                outcome="rejected",
                source=self.source,
                error=err.message,
            )
            raise err

        try:
            data = await self.backend.post_transition(item_id, from_stage, to_stage)
        except PipelineError as e:
            log_transition_attempt(
                item_id=item_id,
                from_stage=from_stage.value,
                to_stage=to_stage.value,
                outcome="failed",
                source=self.source,
                error=e.message,
                status_code=getattr(e, "status_code", None),
            )
            raise

        log_transition_attempt(
            item_id=item_id,
            from_stage=from_stage.value,
            to_stage=to_stage.value,
            outcome="applied",
            source=self.source,
        )

        item = None
        raw_item = data.get("item")
        if isinstance(raw_item, dict):
            try:
                item = PipelineItem.model_validate(raw_item)
            except ValidationError as e:
                # The move itself succeeded; the board re-fetches anyway.
                logger.warning("transition %s: ignoring malformed item in response: %s", item_id, e)

        message = data.get("message")
        return TransitionResult(
            item_id=item_id,
            from_stage=from_stage,
            to_stage=to_stage,
            item=item,
            message=message if isinstance(message, str) else None,
        )
