"""Envelope API Routes"""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request

from esign.application.services import (
    AddDocumentInput,
    AddInputInput,
    AddPartyInput,
    RecordConsentInput,
)
from esign.presentation.api.auth import CurrentActor
from esign.presentation.api.dependencies import (
    CommandExecutorDep,
    EnvelopeServiceDep,
    enforce_rate_limit,
)
from esign.presentation.api.schemas import (
    AddDocumentRequest,
    AddInputRequest,
    AddPartyRequest,
    AuditTrailResponse,
    CancelEnvelopeRequest,
    ChangeDocumentStatusRequest,
    CreateEnvelopeRequest,
    DeclineRequest,
    EnvelopeListResponse,
    EnvelopeResponse,
    RecordConsentRequest,
)

router = APIRouter()

rate_limited = [Depends(enforce_rate_limit)]


# === Queries ===


@router.get("", response_model=EnvelopeListResponse)
async def list_envelopes(
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    """自分のエンベロープ一覧"""
    envelopes, next_cursor = await service.list_envelopes(actor, limit, cursor)
    return {
        "items": [e.to_dict(include_children=False) for e in envelopes],
        "next_cursor": next_cursor,
    }


@router.get("/{envelope_id}", response_model=EnvelopeResponse)
async def get_envelope(
    envelope_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
) -> dict[str, Any]:
    envelope = await service.get_envelope(actor, envelope_id)
    return envelope.to_dict()


@router.get("/{envelope_id}/consents")
async def list_consents(
    envelope_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
) -> dict[str, Any]:
    consents = await service.list_consents(actor, envelope_id)
    return {"items": [c.to_dict() for c in consents]}


@router.get("/{envelope_id}/audit", response_model=AuditTrailResponse)
async def get_audit_trail(
    envelope_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    limit: Annotated[int | None, Query(ge=1, le=100)] = None,
    cursor: str | None = None,
) -> dict[str, Any]:
    """監査証跡（古い順）"""
    events, next_cursor = await service.get_audit_trail(actor, envelope_id, limit, cursor)
    return {"items": [e.to_dict() for e in events], "next_cursor": next_cursor}


# === Commands ===


@router.post("", status_code=201, response_model=EnvelopeResponse, dependencies=rate_limited)
async def create_envelope(
    body: CreateEnvelopeRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    """エンベロープを作成"""

    async def command() -> dict[str, Any]:
        envelope = await service.create_envelope(actor, body.title, body.description)
        return envelope.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/parties", status_code=201, dependencies=rate_limited)
async def add_party(
    envelope_id: str,
    body: AddPartyRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        party = await service.add_party(
            actor, envelope_id, AddPartyInput(**body.model_dump())
        )
        return party.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/documents", status_code=201, dependencies=rate_limited)
async def add_document(
    envelope_id: str,
    body: AddDocumentRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        document = await service.add_document(
            actor, envelope_id, AddDocumentInput(**body.model_dump())
        )
        return document.to_dict()

    return await executor.run(command)


@router.patch("/{envelope_id}/documents/{document_id}/status", dependencies=rate_limited)
async def change_document_status(
    envelope_id: str,
    document_id: str,
    body: ChangeDocumentStatusRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        document = await service.change_document_status(
            actor, envelope_id, document_id, body.status, body.error_message
        )
        return document.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/inputs", status_code=201, dependencies=rate_limited)
async def add_input(
    envelope_id: str,
    body: AddInputRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        field_input = await service.add_input(
            actor, envelope_id, AddInputInput(**body.model_dump())
        )
        return field_input.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/send", response_model=EnvelopeResponse, dependencies=rate_limited)
async def send_envelope(
    envelope_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    """署名依頼を送信"""

    async def command() -> dict[str, Any]:
        envelope = await service.send_envelope(actor, envelope_id)
        return envelope.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/cancel", response_model=EnvelopeResponse, dependencies=rate_limited)
async def cancel_envelope(
    envelope_id: str,
    body: CancelEnvelopeRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        envelope = await service.cancel_envelope(actor, envelope_id, body.reason)
        return envelope.to_dict()

    return await executor.run(command)


@router.post(
    "/{envelope_id}/parties/{party_id}/sign",
    response_model=EnvelopeResponse,
    dependencies=rate_limited,
)
async def sign_envelope(
    envelope_id: str,
    party_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        envelope = await service.record_party_signed(actor, envelope_id, party_id)
        return envelope.to_dict()

    return await executor.run(command)


@router.post(
    "/{envelope_id}/parties/{party_id}/decline",
    response_model=EnvelopeResponse,
    dependencies=rate_limited,
)
async def decline_envelope(
    envelope_id: str,
    party_id: str,
    body: DeclineRequest,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        envelope = await service.decline_party(actor, envelope_id, party_id, body.reason)
        return envelope.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/consents", status_code=201, dependencies=rate_limited)
async def record_consent(
    envelope_id: str,
    body: RecordConsentRequest,
    request: Request,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    """署名同意を記録（ESIGN / UETA の証跡）"""
    ip_address = body.ip_address or (request.client.host if request.client else "")
    user_agent = body.user_agent or request.headers.get("user-agent", "")

    async def command() -> dict[str, Any]:
        consent = await service.record_consent(
            actor,
            envelope_id,
            RecordConsentInput(
                party_id=body.party_id,
                consent_text=body.consent_text,
                ip_address=ip_address,
                user_agent=user_agent,
                country=body.country,
                consent_type=body.consent_type,
                granted=body.granted,
            ),
        )
        return consent.to_dict()

    return await executor.run(command)


@router.post("/{envelope_id}/consents/{consent_id}/revoke", dependencies=rate_limited)
async def revoke_consent(
    envelope_id: str,
    consent_id: str,
    actor: CurrentActor,
    service: EnvelopeServiceDep,
    executor: CommandExecutorDep,
) -> dict[str, Any]:
    async def command() -> dict[str, Any]:
        consent = await service.revoke_consent(actor, envelope_id, consent_id)
        return consent.to_dict()

    return await executor.run(command)
