"""Audit Event Entity"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError
from ..enums import PARTY_AUDIT_EVENT_TYPES, AuditEventType, ConsentStatus
from ..events import (
    ConsentCreated,
    ConsentRevoked,
    DocumentAttached,
    DocumentStatusChanged,
    DomainEvent,
    EnvelopeCancelled,
    EnvelopeCompleted,
    EnvelopeCreated,
    EnvelopeDeclined,
    EnvelopeSent,
    EnvelopeSigned,
    InputAdded,
    PartyCreated,
)
from ..ids import new_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


@dataclass
class AuditEvent:
    """
    エンベロープの監査証跡 1 件

    誰が・いつ・どこから（IP / User-Agent / 国）何をしたかを追記専用で保持する。
    参加者に関するイベントは party_id が必須。
    """

    envelope_id: str
    event_type: AuditEventType
    description: str
    id: str = field(default_factory=new_id)
    party_id: str | None = None
    user_id: str | None = None
    user_email: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    country: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if not self.envelope_id:
            raise BadRequestError("Audit event requires an envelope id")
        self.description = (self.description or "").strip()
        if not self.description:
            raise BadRequestError(
                "Audit event description cannot be empty", details={"field": "description"}
            )
        if self.event_type in PARTY_AUDIT_EVENT_TYPES and not self.party_id:
            raise BadRequestError(
                f"Audit event {self.event_type.value} requires a party id",
                details={"event_type": self.event_type.value},
            )
        self.ip_address = _blank_to_none(self.ip_address)
        self.user_agent = _blank_to_none(self.user_agent)
        self.country = _blank_to_none(self.country)

    @property
    def is_party_event(self) -> bool:
        return self.party_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "envelope_id": self.envelope_id,
            "event_type": self.event_type.value,
            "description": self.description,
            "party_id": self.party_id,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "country": self.country,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuditEvent:
        return cls(
            id=data["id"],
            envelope_id=data["envelope_id"],
            event_type=AuditEventType(data["event_type"]),
            description=data["description"],
            party_id=data.get("party_id"),
            user_id=data.get("user_id"),
            user_email=data.get("user_email"),
            ip_address=data.get("ip_address"),
            user_agent=data.get("user_agent"),
            country=data.get("country"),
            metadata=dict(data.get("metadata") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


def _describe(event: DomainEvent) -> tuple[AuditEventType, str, str | None] | None:
    if isinstance(event, EnvelopeCreated):
        return AuditEventType.ENVELOPE_CREATED, f'Envelope "{event.title}" created', None
    if isinstance(event, EnvelopeSent):
        return AuditEventType.ENVELOPE_SENT, f"Envelope sent to {len(event.party_ids)} parties", None
    if isinstance(event, EnvelopeSigned):
        return AuditEventType.SIGNER_SIGNED, "Party signed the envelope", event.party_id
    if isinstance(event, EnvelopeCompleted):
        return AuditEventType.ENVELOPE_COMPLETED, "All signers have signed", None
    if isinstance(event, EnvelopeCancelled):
        return AuditEventType.ENVELOPE_CANCELLED, "Envelope cancelled", None
    if isinstance(event, EnvelopeDeclined):
        return AuditEventType.ENVELOPE_DECLINED, "Party declined to sign", event.party_id
    if isinstance(event, PartyCreated):
        return AuditEventType.SIGNER_ADDED, f"Party {event.email} added as {event.role}", event.party_id
    if isinstance(event, DocumentAttached):
        return AuditEventType.DOCUMENT_ATTACHED, f'Document "{event.name}" attached', None
    if isinstance(event, DocumentStatusChanged):
        return (
            AuditEventType.DOCUMENT_STATUS_CHANGED,
            f"Document status changed from {event.from_status} to {event.to_status}",
            None,
        )
    if isinstance(event, InputAdded):
        return AuditEventType.INPUT_ADDED, f"{event.input_type} field assigned", event.party_id
    if isinstance(event, ConsentCreated):
        if event.status == ConsentStatus.GRANTED.value:
            return AuditEventType.CONSENT_GIVEN, f"{event.consent_type} consent given", event.party_id
        return AuditEventType.CONSENT_DENIED, f"{event.consent_type} consent denied", event.party_id
    if isinstance(event, ConsentRevoked):
        return AuditEventType.CONSENT_REVOKED, "Consent revoked", event.party_id
    return None


def audit_event_from_domain_event(
    event: DomainEvent,
    user_id: str | None = None,
    user_email: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    country: str | None = None,
) -> AuditEvent | None:
    """ドメインイベントを監査イベントに変換（対象外のイベントは None）"""
    described = _describe(event)
    if described is None:
        return None
    event_type, description, party_id = described
    metadata = event.to_payload()
    metadata.pop("envelope_id", None)
    return AuditEvent(
        envelope_id=getattr(event, "envelope_id"),
        event_type=event_type,
        description=description,
        party_id=party_id or None,
        user_id=user_id,
        user_email=user_email,
        ip_address=ip_address,
        user_agent=user_agent,
        country=country,
        metadata=metadata,
        created_at=event.occurred_at,
    )
