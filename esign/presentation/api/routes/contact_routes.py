"""Contact (Global Party) API Routes"""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from esign.presentation.api.auth import CurrentActor
from esign.presentation.api.dependencies import (
    CommandExecutorDep,
    ContactServiceDep,
    enforce_rate_limit,
)
from esign.presentation.api.schemas import ContactListResponse, CreateContactRequest

router = APIRouter()


@router.get("", response_model=ContactListResponse)
async def list_contacts(
    actor: CurrentActor,
    service: ContactServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    contacts, next_cursor = await service.list_contacts(actor, limit, cursor)
    return {"items": [c.to_dict() for c in contacts], "next_cursor": next_cursor}


@router.get("/{global_party_id}")
async def get_contact(
    global_party_id: str,
    actor: CurrentActor,
    service: ContactServiceDep,
) -> dict[str, Any]:
    contact = await service.get_contact(actor, global_party_id)
    return contact.to_dict()


@router.post("", status_code=201, dependencies=[Depends(enforce_rate_limit)])
async def create_contact(
    body: CreateContactRequest,
    actor: CurrentActor,
    service: ContactServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    """連絡先を登録"""

    async def command() -> dict[str, Any]:
        contact = await service.create_contact(actor, **body.model_dump())
        return contact.to_dict()

    return await executor.run(command)


@router.post("/{global_party_id}/deactivate", dependencies=[Depends(enforce_rate_limit)])
async def deactivate_contact(
    global_party_id: str,
    actor: CurrentActor,
    service: ContactServiceDep,
) -> dict[str, Any]:
    contact = await service.deactivate_contact(actor, global_party_id)
    return contact.to_dict()
