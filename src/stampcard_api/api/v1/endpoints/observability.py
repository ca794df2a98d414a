"""Observability endpoints for stampcard telemetry."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from stampcard_api.api.dependencies.security import require_admin_api_key
from stampcard_api.observability.stampcard import get_stampcard_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/stampcard",
    dependencies=[Depends(require_admin_api_key)],
    summary="Stampcard observability snapshot",
)
async def get_stampcard_snapshot() -> dict[str, object]:
    """Aggregated scan, rejection, redemption and offer counters (requires admin API key)."""
    return get_stampcard_store().snapshot().as_dict()


@router.delete(
    "/stampcard",
    dependencies=[Depends(require_admin_api_key)],
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Reset stampcard counters",
)
async def reset_stampcard_snapshot() -> None:
    get_stampcard_store().reset()
