"""Outbox Admin Routes"""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query

from esign.domain.errors import ForbiddenError
from esign.domain.reliability import OutboxStatus
from esign.presentation.api.auth import CurrentActor
from esign.presentation.api.dependencies import OutboxRepositoryDep
from esign.presentation.api.schemas import OutboxListResponse, OutboxStatsResponse

router = APIRouter()


def _require_admin(actor: CurrentActor) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Admin role is required")


@router.get("/stats", response_model=OutboxStatsResponse)
async def outbox_stats(actor: CurrentActor, outbox: OutboxRepositoryDep) -> dict[str, int]:
    """ステータス別のレコード件数"""
    _require_admin(actor)
    return await outbox.get_stats()


@router.get("", response_model=OutboxListResponse)
async def list_outbox(
    actor: CurrentActor,
    outbox: OutboxRepositoryDep,
    status: OutboxStatus = OutboxStatus.PENDING,
    event_type: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 25,
    cursor: str | None = None,
) -> dict[str, Any]:
    _require_admin(actor)
    records, next_cursor = await outbox.list(status, event_type, limit, cursor)
    return {"items": [r.to_dict() for r in records], "next_cursor": next_cursor}
