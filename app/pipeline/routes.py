import os
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict, Field

from ..adapters.backend.lapublica import PipelineBackendClient, get_backend_client
from ..config import settings
from .board import DropOutcome, PipelineBoard
from .errors import STALE_STATE_HINT, IllegalTransition, NetworkFailure, StaleState
from .executor import TransitionExecutor
from .filters import ItemFilters, apply_filters, sort_by_issue_date
from .models import ItemKind, PipelineItem, PipelineSnapshot
from .stages import STAGE_REGISTRY, Stage
from .store import PipelineItemStore

router = APIRouter(prefix="/pipeline", tags=["pipeline"])

templates = Jinja2Templates(
    directory=os.path.join(os.path.dirname(__file__), "templates")
)


def format_eur(amount: Any) -> str:
    return f"{Decimal(amount):,.2f} €"


templates.env.filters["eur"] = format_eur


class DropRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # None when the card was released outside any column
    to_stage: Optional[Stage] = Field(default=None, alias="toStage")


class TransitionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_stage: Stage = Field(alias="fromStage")
    to_stage: Stage = Field(alias="toStage")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _dump_item(item: PipelineItem) -> dict[str, Any]:
    return item.model_dump(mode="json", by_alias=True)


def _effective_scope(scope: Optional[str]) -> Optional[str]:
    return scope or settings.pipeline_scope or None


async def _fetch_snapshot(client: PipelineBackendClient, scope: Optional[str]) -> PipelineSnapshot:
    try:
        return await client.fetch_snapshot(scope)
    except NetworkFailure as e:
        raise HTTPException(status_code=502, detail=e.message)


def _build_board(client: PipelineBackendClient, snapshot: PipelineSnapshot, scope: Optional[str]) -> PipelineBoard:
    try:
        store = PipelineItemStore(snapshot.items)
    except ValueError as e:
        raise HTTPException(status_code=502, detail=str(e))

    async def loader() -> list[PipelineItem]:
        return await client.fetch_items(scope)

    return PipelineBoard(
        store,
        TransitionExecutor(client, source="api"),
        loader=loader,
        expiring_window_days=settings.expiring_window_days,
    )


async def _load_board(client: PipelineBackendClient, scope: Optional[str]) -> PipelineBoard:
    return _build_board(client, await _fetch_snapshot(client, scope), scope)


def _outcome_json(outcome: DropOutcome) -> dict[str, Any]:
    notification = None
    if outcome.notification is not None:
        notification = {
            "level": outcome.notification.level,
            "message": outcome.notification.message,
            "detail": outcome.notification.detail,
        }
    return {
        "decision": outcome.decision.value,
        "itemId": outcome.item.id if outcome.item else None,
        "fromStage": outcome.from_stage.value if outcome.from_stage else None,
        "toStage": outcome.to_stage.value if outcome.to_stage else None,
        "notification": notification,
        "dialog": outcome.dialog.view() if outcome.dialog else None,
    }


# ---------------------------------------------------------------------------
# Board (HTML)
# ---------------------------------------------------------------------------

@router.get("", response_class=HTMLResponse)
async def board_page(
    request: Request,
    scope: Optional[str] = None,
    client: PipelineBackendClient = Depends(get_backend_client),
):
    board = await _load_board(client, _effective_scope(scope))
    return templates.TemplateResponse(request, "board.html", {
        "columns": board.columns(),
        "stats": board.stats(),
        "registry": STAGE_REGISTRY,
    })


# ---------------------------------------------------------------------------
# JSON routes
# ---------------------------------------------------------------------------

@router.get("/items")
async def list_items(
    scope: Optional[str] = None,
    stage: Optional[Stage] = None,
    kind: Optional[ItemKind] = None,
    search: Optional[str] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    client: PipelineBackendClient = Depends(get_backend_client),
) -> dict[str, Any]:
    board = await _load_board(client, _effective_scope(scope))
    filters = ItemFilters(
        stage=stage,
        kind=kind,
        search=search,
        min_amount=min_amount,
        max_amount=max_amount,
        date_from=date_from,
        date_to=date_to,
    )
    items = sort_by_issue_date(apply_filters(board.store.items, filters))
    return {"items": [_dump_item(i) for i in items], "count": len(items)}


@router.get("/stats")
async def pipeline_stats(
    scope: Optional[str] = None,
    client: PipelineBackendClient = Depends(get_backend_client),
) -> dict[str, Any]:
    scope = _effective_scope(scope)
    snapshot = await _fetch_snapshot(client, scope)
    board = _build_board(client, snapshot, scope)
    payload = board.stats().model_dump(mode="json", by_alias=True)
    # Backend-computed figures are passed through untouched, next to ours
    if snapshot.backend_stats is not None:
        payload["backendStats"] = snapshot.backend_stats
    return payload


@router.post("/items/{item_id}/drop")
async def drop_item(
    item_id: str,
    body: DropRequest = Body(...),
    scope: Optional[str] = None,
    client: PipelineBackendClient = Depends(get_backend_client),
) -> dict[str, Any]:
    board = await _load_board(client, _effective_scope(scope))
    try:
        board.drag_start(item_id)
    except LookupError:
        raise HTTPException(status_code=404, detail=f"Pipeline item not found: {item_id}")
    return _outcome_json(board.drag_end(body.to_stage))


@router.post("/items/{item_id}/transition")
async def transition_item(
    item_id: str,
    body: TransitionRequest = Body(...),
    scope: Optional[str] = None,
    client: PipelineBackendClient = Depends(get_backend_client),
) -> dict[str, Any]:
    board = await _load_board(client, _effective_scope(scope))
    item = board.store.get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Pipeline item not found: {item_id}")

    dialog = board.open_dialog(item, body.from_stage, body.to_stage)
    if not dialog.permitted:
        raise HTTPException(status_code=422, detail=dialog.message)

    if item.stage != body.from_stage:
        raise HTTPException(
            status_code=409,
            detail=f"Item {item.number} is no longer in stage {body.from_stage.value}. {STALE_STATE_HINT}",
        )

    if not await dialog.confirm():
        failure = dialog.failure
        if isinstance(failure, StaleState):
            raise HTTPException(status_code=409, detail=f"{dialog.error} {STALE_STATE_HINT}")
        if isinstance(failure, IllegalTransition):
            raise HTTPException(status_code=422, detail=dialog.error)
        raise HTTPException(status_code=502, detail=dialog.error or "Transition failed")

    updated = board.store.get(item_id)
    return {
        "ok": True,
        "item": _dump_item(updated) if updated else None,
        "message": dialog.result.message if dialog.result else None,
        "stats": board.stats().model_dump(mode="json", by_alias=True),
    }
