"""
Canonical budget pipeline stages, their display descriptors and the
allowed-transition table.

Quotes and invoices move one step at a time:
    draft -> sent -> approved -> invoiced -> paid
A sent quote can also be rejected, which is terminal.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Stage(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    INVOICED = "invoiced"
    PAID = "paid"
    REJECTED = "rejected"


@dataclass(frozen=True)
class StageDescriptor:
    stage: Stage
    label: str
    description: str
    icon: str
    color: str
    allowed_transitions: frozenset[Stage]


# Ordered pipeline (excludes rejected, an off-path terminal)
PIPELINE_ORDER: list[Stage] = [
    Stage.DRAFT,
    Stage.SENT,
    Stage.APPROVED,
    Stage.INVOICED,
    Stage.PAID,
]

# Board columns, left to right
BOARD_COLUMNS: list[Stage] = PIPELINE_ORDER + [Stage.REJECTED]


STAGE_REGISTRY: dict[Stage, StageDescriptor] = {
    Stage.DRAFT: StageDescriptor(
        stage=Stage.DRAFT,
        label="Draft",
        description="Quote being prepared, not yet shared with the client",
        icon="file-pen",
        color="gray",
        allowed_transitions=frozenset({Stage.SENT}),
    ),
    Stage.SENT: StageDescriptor(
        stage=Stage.SENT,
        label="Sent",
        description="Quote sent to the client, awaiting an answer",
        icon="send",
        color="blue",
        allowed_transitions=frozenset({Stage.APPROVED, Stage.REJECTED}),
    ),
    Stage.APPROVED: StageDescriptor(
        stage=Stage.APPROVED,
        label="Approved",
        description="Quote accepted by the client, ready to invoice",
        icon="check-circle",
        color="green",
        allowed_transitions=frozenset({Stage.INVOICED}),
    ),
    Stage.INVOICED: StageDescriptor(
        stage=Stage.INVOICED,
        label="Invoiced",
        description="Invoice issued, pending payment",
        icon="receipt",
        color="purple",
        allowed_transitions=frozenset({Stage.PAID}),
    ),
    Stage.PAID: StageDescriptor(
        stage=Stage.PAID,
        label="Paid",
        description="Invoice fully paid",
        icon="banknote",
        color="emerald",
        allowed_transitions=frozenset(),
    ),
    Stage.REJECTED: StageDescriptor(
        stage=Stage.REJECTED,
        label="Rejected",
        description="Quote declined by the client",
        icon="x-circle",
        color="red",
        allowed_transitions=frozenset(),
    ),
}

# Only the explicitly enumerated legal transitions have a description.
TRANSITION_DESCRIPTIONS: dict[tuple[Stage, Stage], str] = {
    (Stage.DRAFT, Stage.SENT): "The quote will be sent to the client for review.",
    (Stage.SENT, Stage.APPROVED): "The quote will be marked as approved by the client.",
    (Stage.SENT, Stage.REJECTED): "The quote will be marked as rejected by the client. This cannot be undone.",
    (Stage.APPROVED, Stage.INVOICED): "An invoice will be issued from the approved quote.",
    (Stage.INVOICED, Stage.PAID): "The invoice will be marked as fully paid.",
}


def allowed_transitions(stage: Stage) -> frozenset[Stage]:
    return STAGE_REGISTRY[stage].allowed_transitions


def is_transition_allowed(from_stage: Stage, to_stage: Stage) -> bool:
    return to_stage in allowed_transitions(from_stage)


def describe_transition(from_stage: Stage, to_stage: Stage) -> Optional[str]:
    """Human-readable meaning of a transition, or None if the pair is not a legal move."""
    return TRANSITION_DESCRIPTIONS.get((from_stage, to_stage))


def transition_label(from_stage: Stage, to_stage: Stage) -> str:
    return f"{STAGE_REGISTRY[from_stage].label} → {STAGE_REGISTRY[to_stage].label}"
