"""
Structured JSON logging for pipeline transitions.

One flat record per transition attempt, separate from operational logs.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

# Dedicated logger for trace events (separate from operational logs)
_trace_logger: Optional[logging.Logger] = None

TRACE_LOGGER_NAME = "lapublica.trace"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        # record.msg is already a dict for our trace logs
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, default=str, ensure_ascii=False)
        return super().format(record)


def _get_trace_logger() -> logging.Logger:
    """Get or create the trace logger with JSON formatting."""
    global _trace_logger
    if _trace_logger is not None:
        return _trace_logger

    _trace_logger = logging.getLogger(TRACE_LOGGER_NAME)
    _trace_logger.setLevel(logging.INFO)
    _trace_logger.propagate = False  # Don't bubble to root logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(JsonFormatter())
    _trace_logger.addHandler(handler)

    return _trace_logger


def log_transition_attempt(
    *,
    item_id: str,
    from_stage: str,
    to_stage: str,
    outcome: str,
    source: str,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
) -> None:
    """
    Log a single structured record for a transition attempt.

    Args:
        item_id: Pipeline item being moved
        from_stage / to_stage: Stage values of the proposed move
        outcome: "rejected", "failed" or "applied"
        source: Where the attempt came from (e.g. "board", "api", "cli")
        error: User-facing error message, if any
        status_code: Backend HTTP status, if a request was made
    """
    logger = _get_trace_logger()

    record = {
        "type": "pipeline_transition",
        "ts": datetime.now(timezone.utc).isoformat(),
        "item_id": item_id,
        "from": from_stage,
        "to": to_stage,
        "outcome": outcome,
        "source": source,
    }

    # Optional fields (only include if present)
    if error is not None:
        record["error"] = error

    if status_code is not None:
        record["status_code"] = status_code

    logger.info(record)
