"""Signature Domain Events"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar
from uuid import uuid4


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """ドメインイベント基底クラス"""

    EVENT_TYPE: ClassVar[str] = "Domain.Event"

    event_id: str = field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = field(default_factory=_utc_now)

    @property
    def event_type(self) -> str:
        return self.EVENT_TYPE

    def to_payload(self) -> dict[str, Any]:
        """アウトボックス用ペイロード（メタ情報を除く）"""
        data = asdict(self)
        data.pop("event_id", None)
        data.pop("occurred_at", None)
        return data


@dataclass(frozen=True)
class EnvelopeCreated(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Created"

    envelope_id: str = ""
    tenant_id: str = ""
    owner_id: str = ""
    title: str = ""


@dataclass(frozen=True)
class EnvelopeSent(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Sent"

    envelope_id: str = ""
    party_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EnvelopeSigned(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Signed"

    envelope_id: str = ""
    party_id: str = ""


@dataclass(frozen=True)
class EnvelopeCompleted(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Completed"

    envelope_id: str = ""


@dataclass(frozen=True)
class EnvelopeCancelled(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Cancelled"

    envelope_id: str = ""
    reason: str = ""


@dataclass(frozen=True)
class EnvelopeDeclined(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Envelope.Declined"

    envelope_id: str = ""
    party_id: str = ""
    reason: str = ""


@dataclass(frozen=True)
class PartyCreated(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Party.Created"

    envelope_id: str = ""
    party_id: str = ""
    email: str = ""
    role: str = ""


@dataclass(frozen=True)
class DocumentAttached(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Document.Attached"

    envelope_id: str = ""
    document_id: str = ""
    name: str = ""


@dataclass(frozen=True)
class DocumentStatusChanged(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Document.StatusChanged"

    envelope_id: str = ""
    document_id: str = ""
    from_status: str = ""
    to_status: str = ""


@dataclass(frozen=True)
class InputAdded(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Input.Added"

    envelope_id: str = ""
    document_id: str = ""
    input_id: str = ""
    party_id: str = ""
    input_type: str = ""


@dataclass(frozen=True)
class ConsentCreated(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Consent.Created"

    envelope_id: str = ""
    consent_id: str = ""
    party_id: str = ""
    consent_type: str = ""
    status: str = ""


@dataclass(frozen=True)
class ConsentRevoked(DomainEvent):
    EVENT_TYPE: ClassVar[str] = "Consent.Revoked"

    envelope_id: str = ""
    consent_id: str = ""
    party_id: str = ""
