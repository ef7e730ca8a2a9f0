from __future__ import annotations

from typing import Optional

from app.pipeline.stages import Stage, transition_label

NOT_ALLOWED_MESSAGE = "This transition is not allowed"
STALE_STATE_HINT = "Refresh the board and try again."


class PipelineError(Exception):
    """Base for errors that end up as a user-facing message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IllegalTransition(PipelineError):
    def __init__(self, from_stage: Stage, to_stage: Stage, message: Optional[str] = None):
        super().__init__(message or f"{NOT_ALLOWED_MESSAGE}: {transition_label(from_stage, to_stage)}")
        self.from_stage = from_stage
        self.to_stage = to_stage


class NetworkFailure(PipelineError):
    """The backend could not be reached or answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StaleState(NetworkFailure):
    """Backend rejected the move because the item is no longer in the assumed stage."""
