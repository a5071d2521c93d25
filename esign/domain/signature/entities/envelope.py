"""Envelope Aggregate Root"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError, ErrorCodes, NotFoundError
from ..enums import (
    ENVELOPE_TRANSITION_RULES,
    ENVELOPE_VALIDATION_RULES,
    DocumentStatus,
    EnvelopeStatus,
    InputType,
    assert_transition,
)
from ..events import (
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
from .document import Document
from .input import Input
from .party import Party


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InvalidStateError(BadRequestError):
    """不正な状態での操作エラー"""

    default_message = "Envelope is not in a valid state for this operation"
    default_code = ErrorCodes.ENVELOPE_INVALID_STATE


@dataclass
class Envelope:
    """
    エンベロープ（集約ルート）

    参加者・ドキュメント・入力フィールドを内包し、
    状態変更のたびにドメインイベントを記録する。
    """

    tenant_id: str
    owner_id: str
    title: str
    id: str = field(default_factory=new_id)
    description: str = ""
    status: EnvelopeStatus = EnvelopeStatus.DRAFT
    parties: list[Party] = field(default_factory=list)
    documents: list[Document] = field(default_factory=list)
    inputs: list[Input] = field(default_factory=list)
    sent_at: datetime | None = None
    completed_at: datetime | None = None
    cancel_reason: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    version: int = 0

    _uncommitted_events: list[DomainEvent] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        title = self.title.strip() if self.title else ""
        if not (
            ENVELOPE_VALIDATION_RULES["MIN_TITLE_LENGTH"]
            <= len(title)
            <= ENVELOPE_VALIDATION_RULES["MAX_TITLE_LENGTH"]
        ):
            raise BadRequestError(
                "Envelope title must be between 1 and 255 characters",
                details={"field": "title"},
            )
        if len(self.description) > ENVELOPE_VALIDATION_RULES["MAX_DESCRIPTION_LENGTH"]:
            raise BadRequestError(
                "Envelope description cannot exceed 1000 characters",
                details={"field": "description"},
            )

    # === Factory Methods ===

    @classmethod
    def create(
        cls,
        tenant_id: str,
        owner_id: str,
        title: str,
        description: str = "",
    ) -> Envelope:
        """新しいエンベロープを作成"""
        envelope = cls(
            tenant_id=tenant_id,
            owner_id=owner_id,
            title=title.strip(),
            description=description,
        )
        envelope._record(
            EnvelopeCreated(
                envelope_id=envelope.id,
                tenant_id=tenant_id,
                owner_id=owner_id,
                title=envelope.title,
            )
        )
        return envelope

    # === Queries ===

    @property
    def is_editable(self) -> bool:
        return self.status == EnvelopeStatus.DRAFT

    @property
    def signers(self) -> list[Party]:
        return [p for p in self.parties if p.is_signer]

    def get_party(self, party_id: str) -> Party:
        for party in self.parties:
            if party.id == party_id:
                return party
        raise NotFoundError(
            f"Party {party_id} not found", ErrorCodes.PARTY_NOT_FOUND, {"party_id": party_id}
        )

    def get_document(self, document_id: str) -> Document:
        for document in self.documents:
            if document.id == document_id:
                return document
        raise NotFoundError(
            f"Document {document_id} not found",
            ErrorCodes.DOCUMENT_NOT_FOUND,
            {"document_id": document_id},
        )

    # === Command Methods ===

    def add_party(self, party: Party) -> Party:
        self._require_editable("add party")
        if len(self.parties) >= ENVELOPE_VALIDATION_RULES["MAX_PARTIES"]:
            raise BadRequestError(
                "Envelope cannot have more than 50 parties",
                details={"max_parties": ENVELOPE_VALIDATION_RULES["MAX_PARTIES"]},
            )
        if any(p.email == party.email for p in self.parties):
            raise BadRequestError(
                f"Party with email {party.email} already exists in envelope",
                details={"email": party.email},
            )
        party.envelope_id = self.id
        self.parties.append(party)
        self._touch()
        self._record(
            PartyCreated(
                envelope_id=self.id,
                party_id=party.id,
                email=party.email,
                role=party.role.value,
            )
        )
        return party

    def add_document(self, document: Document) -> Document:
        self._require_editable("add document")
        if len(self.documents) >= ENVELOPE_VALIDATION_RULES["MAX_DOCUMENTS"]:
            raise BadRequestError(
                "Envelope cannot have more than 100 documents",
                details={"max_documents": ENVELOPE_VALIDATION_RULES["MAX_DOCUMENTS"]},
            )
        document.envelope_id = self.id
        self.documents.append(document)
        self._touch()
        self._record(
            DocumentAttached(envelope_id=self.id, document_id=document.id, name=document.name)
        )
        return document

    def add_input(
        self,
        document_id: str,
        party_id: str,
        input_type: InputType,
        page: int,
        x: float,
        y: float,
        width: float,
        height: float,
        required: bool = True,
    ) -> Input:
        self._require_editable("add input")
        self.get_document(document_id)
        party = self.get_party(party_id)
        if input_type in (InputType.SIGNATURE, InputType.INITIALS) and not party.is_signer:
            raise BadRequestError(
                f"{input_type.value} inputs can only be assigned to signers",
                details={"party_id": party_id, "role": party.role.value},
            )
        new_input = Input(
            envelope_id=self.id,
            document_id=document_id,
            party_id=party_id,
            input_type=input_type,
            page=page,
            x=x,
            y=y,
            width=width,
            height=height,
            required=required,
        )
        self.inputs.append(new_input)
        self._touch()
        self._record(
            InputAdded(
                envelope_id=self.id,
                document_id=document_id,
                input_id=new_input.id,
                party_id=party_id,
                input_type=input_type.value,
            )
        )
        return new_input

    def change_document_status(
        self,
        document_id: str,
        target: DocumentStatus,
        error_message: str | None = None,
    ) -> Document:
        document = self.get_document(document_id)
        previous = document.change_status(target, error_message)
        self._touch()
        self._record(
            DocumentStatusChanged(
                envelope_id=self.id,
                document_id=document_id,
                from_status=previous.value,
                to_status=target.value,
            )
        )
        return document

    def send(self) -> None:
        """署名依頼を送信"""
        if not self.signers:
            raise InvalidStateError("Envelope must have at least one signer before sending")
        if not self.documents:
            raise InvalidStateError("Envelope must have at least one document before sending")
        not_ready = [d.id for d in self.documents if not d.is_ready]
        if not_ready:
            raise InvalidStateError(
                "All documents must be ready before sending",
                details={"documents": not_ready},
            )
        self._transition(EnvelopeStatus.SENT)
        for party in self.parties:
            party.invite()
        self.sent_at = self.updated_at
        self._record(EnvelopeSent(envelope_id=self.id, party_ids=[p.id for p in self.parties]))

    def record_signature(self, party_id: str) -> None:
        """署名を記録し、全署名者が揃えば完了させる"""
        self._require_signing_open("sign")
        party = self.get_party(party_id)
        if not party.is_signer:
            raise BadRequestError(
                "Only signers can sign the envelope", details={"party_id": party_id}
            )
        party.sign()
        if self.status == EnvelopeStatus.SENT:
            self._transition(EnvelopeStatus.IN_PROGRESS)
        else:
            self._touch()
        self._record(EnvelopeSigned(envelope_id=self.id, party_id=party_id))

        if all(p.has_signed for p in self.signers):
            self._transition(EnvelopeStatus.COMPLETED)
            self.completed_at = self.updated_at
            self._record(EnvelopeCompleted(envelope_id=self.id))

    def decline(self, party_id: str, reason: str) -> None:
        self._require_signing_open("decline")
        party = self.get_party(party_id)
        party.decline(reason)
        self._transition(EnvelopeStatus.DECLINED)
        self._record(EnvelopeDeclined(envelope_id=self.id, party_id=party_id, reason=reason))

    def cancel(self, reason: str = "") -> None:
        self._transition(EnvelopeStatus.CANCELED)
        self.cancel_reason = reason or None
        self._record(EnvelopeCancelled(envelope_id=self.id, reason=reason))

    # === Internals ===

    def _require_editable(self, operation: str) -> None:
        if not self.is_editable:
            raise InvalidStateError(
                f"Cannot {operation} when envelope is {self.status.value}",
                details={"status": self.status.value},
            )

    def _require_signing_open(self, operation: str) -> None:
        if self.status not in (EnvelopeStatus.SENT, EnvelopeStatus.IN_PROGRESS):
            raise InvalidStateError(
                f"Cannot {operation} envelope in {self.status.value} state",
                details={"status": self.status.value},
            )

    def _transition(self, target: EnvelopeStatus) -> None:
        assert_transition(ENVELOPE_TRANSITION_RULES, self.status, target, "envelope")
        self.status = target
        self._touch()

    def _touch(self) -> None:
        self.updated_at = _utc_now()

    def _record(self, event: DomainEvent) -> None:
        self._uncommitted_events.append(event)

    def get_uncommitted_events(self) -> list[DomainEvent]:
        """未コミットのイベントを取得"""
        return self._uncommitted_events.copy()

    def mark_events_as_committed(self) -> None:
        """イベントをコミット済みとしてマーク"""
        self._uncommitted_events.clear()

    # === Serialization ===

    def to_dict(self, include_children: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "cancel_reason": self.cancel_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "version": self.version,
        }
        if include_children:
            data["parties"] = [p.to_dict() for p in self.parties]
            data["documents"] = [d.to_dict() for d in self.documents]
            data["inputs"] = [i.to_dict() for i in self.inputs]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Envelope:
        return cls(
            id=data["id"],
            tenant_id=data["tenant_id"],
            owner_id=data["owner_id"],
            title=data["title"],
            description=data.get("description", ""),
            status=EnvelopeStatus(data["status"]),
            parties=[Party.from_dict(p) for p in data.get("parties", [])],
            documents=[Document.from_dict(d) for d in data.get("documents", [])],
            inputs=[Input.from_dict(i) for i in data.get("inputs", [])],
            sent_at=datetime.fromisoformat(data["sent_at"]) if data.get("sent_at") else None,
            completed_at=datetime.fromisoformat(data["completed_at"])
            if data.get("completed_at")
            else None,
            cancel_reason=data.get("cancel_reason"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            version=int(data.get("version", 0)),
        )
