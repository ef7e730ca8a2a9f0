"""
La Pública backend adapter for quotes/invoices.

Reads the items of a scope via GET {base}/pipeline/items and requests a stage
change via POST {base}/pipeline/items/{id}/transition.
The backend is authoritative: it rejects stale moves with 409.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.config import settings
from app.pipeline.errors import IllegalTransition, NetworkFailure, StaleState
from app.pipeline.models import PipelineItem, PipelineSnapshot
from app.pipeline.stages import Stage

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Extract the human-readable message from an error payload."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            val = data.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return f"Backend returned HTTP {resp.status_code}"


class PipelineBackendClient:
    def __init__(
        self,
        base_url: str,
        *,
        api_token: str = "",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning(json.dumps({
                "event": "pipeline_backend_unreachable",
                "method": method,
                "url": url,
                "error": str(e),
            }))
            raise NetworkFailure(f"Could not reach the backend: {e}") from e

        logger.info(json.dumps({
            "event": "pipeline_backend_response",
            "method": method,
            "url": url,
            "status": resp.status_code,
        }))
        return resp

    async def fetch_snapshot(self, scope: Optional[str] = None) -> PipelineSnapshot:
        params = {"scope": scope} if scope else None
        resp = await self._request("GET", "/pipeline/items", params=params)
        if resp.status_code != 200:
            raise NetworkFailure(_error_message(resp), status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise NetworkFailure("Backend returned an invalid JSON body", status_code=resp.status_code) from e

        # Accept either a bare list or {"items": [...], "stats": {...}}
        raw_items = data.get("items", []) if isinstance(data, dict) else data
        raw_stats = data.get("stats") if isinstance(data, dict) else None
        if not isinstance(raw_items, list):
            raise NetworkFailure("Backend returned an unexpected items payload", status_code=resp.status_code)

        try:
            items = [PipelineItem.model_validate(row) for row in raw_items]
        except ValidationError as e:
            raise NetworkFailure(f"Backend returned a malformed pipeline item: {e.errors()[0]['msg']}") from e

        return PipelineSnapshot(
            items=items,
            backend_stats=raw_stats if isinstance(raw_stats, dict) else None,
        )

    async def fetch_items(self, scope: Optional[str] = None) -> list[PipelineItem]:
        snapshot = await self.fetch_snapshot(scope)
        return snapshot.items

    async def post_transition(self, item_id: str, from_stage: Stage, to_stage: Stage) -> dict[str, Any]:
        """
        Ask the backend to move one item. Never retried here: a replayed
        transition could double-invoice.

        Raises:
            StaleState: 409, the item is no longer in from_stage
            IllegalTransition: 422, backend refused the pair
            NetworkFailure: transport error or any other non-2xx status
        """
        body = {"fromStage": from_stage.value, "toStage": to_stage.value}
        resp = await self._request("POST", f"/pipeline/items/{item_id}/transition", json=body)

        if resp.status_code == 409:
            raise StaleState(_error_message(resp), status_code=409)
        if resp.status_code == 422:
            raise IllegalTransition(from_stage, to_stage, message=_error_message(resp))
        if resp.status_code not in (200, 201, 204):
            raise NetworkFailure(_error_message(resp), status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}


def get_backend_client() -> PipelineBackendClient:
    return PipelineBackendClient(
        settings.backend_base_url,
        api_token=settings.backend_api_token,
        timeout=settings.backend_timeout_seconds,
    )
