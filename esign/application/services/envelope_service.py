"""Envelope Application Service"""
from __future__ import annotations

from dataclasses import dataclass

import structlog

from esign.application.ports.event_publisher import IEventPublisher
from esign.application.ports.repositories import (
    IAuditRepository,
    IConsentRepository,
    IEnvelopeRepository,
    IGlobalPartyRepository,
)
from esign.domain.errors import (
    BadRequestError,
    ErrorCodes,
    ForbiddenError,
    NotFoundError,
    PreconditionFailedError,
)
from esign.domain.signature.entities import (
    AuditEvent,
    Consent,
    Document,
    Envelope,
    Input,
    Party,
    audit_event_from_domain_event,
)
from esign.domain.signature.enums import (
    AuthMethod,
    ConsentType,
    DocumentStatus,
    InputType,
    PartyRole,
    clamp_page_limit,
)
from esign.domain.signature.events import ConsentCreated, ConsentRevoked, DomainEvent

logger = structlog.get_logger()


@dataclass(frozen=True)
class Actor:
    """リクエスト実行者"""

    tenant_id: str
    user_id: str
    email: str | None = None
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class AddPartyInput:
    name: str = ""
    email: str = ""
    role: PartyRole = PartyRole.SIGNER
    sequence: int = 1
    auth_method: AuthMethod = AuthMethod.OTP_VIA_EMAIL
    global_party_id: str | None = None


@dataclass
class AddDocumentInput:
    name: str
    content_type: str
    size_bytes: int = 0
    s3_key: str = ""
    sha256: str | None = None


@dataclass
class AddInputInput:
    document_id: str
    party_id: str
    input_type: InputType
    page: int
    x: float
    y: float
    width: float
    height: float
    required: bool = True


@dataclass
class RecordConsentInput:
    party_id: str
    consent_text: str
    ip_address: str
    user_agent: str
    country: str | None = None
    consent_type: ConsentType = ConsentType.SIGNATURE
    granted: bool = True


class EnvelopeService:
    """
    エンベロープ アプリケーションサービス

    各コマンドは 検証 → 状態遷移チェック → 永続化 → イベント発行（アウトボックス）の順で実行する。
    """

    def __init__(
        self,
        envelope_repository: IEnvelopeRepository,
        consent_repository: IConsentRepository,
        event_publisher: IEventPublisher,
        global_party_repository: IGlobalPartyRepository | None = None,
        audit_repository: IAuditRepository | None = None,
    ):
        self._envelopes = envelope_repository
        self._consents = consent_repository
        self._publisher = event_publisher
        self._global_parties = global_party_repository
        self._audit = audit_repository

    # === Queries ===

    async def get_envelope(self, actor: Actor, envelope_id: str) -> Envelope:
        envelope = await self._envelopes.find_by_id(envelope_id)
        if envelope is None or envelope.tenant_id != actor.tenant_id:
            logger.warning("envelope_not_found", envelope_id=envelope_id)
            raise NotFoundError(
                f"Envelope {envelope_id} not found",
                ErrorCodes.ENVELOPE_NOT_FOUND,
                {"envelope_id": envelope_id},
            )
        return envelope

    async def list_envelopes(
        self,
        actor: Actor,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[Envelope], str | None]:
        envelopes, next_cursor = await self._envelopes.find_by_owner(
            actor.user_id, clamp_page_limit(limit), cursor
        )
        return [e for e in envelopes if e.tenant_id == actor.tenant_id], next_cursor

    async def list_consents(self, actor: Actor, envelope_id: str) -> list[Consent]:
        await self.get_envelope(actor, envelope_id)
        return await self._consents.find_by_envelope(envelope_id)

    async def get_audit_trail(
        self,
        actor: Actor,
        envelope_id: str,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[AuditEvent], str | None]:
        """監査証跡を古い順に取得（所有者・管理者のみ）"""
        await self._get_owned(actor, envelope_id)
        if self._audit is None:
            return [], None
        return await self._audit.find_by_envelope(envelope_id, clamp_page_limit(limit), cursor)

    # === Commands ===

    async def create_envelope(
        self,
        actor: Actor,
        title: str,
        description: str = "",
    ) -> Envelope:
        envelope = Envelope.create(
            tenant_id=actor.tenant_id,
            owner_id=actor.user_id,
            title=title,
            description=description,
        )
        await self._commit(envelope, actor)
        logger.info("envelope_created", envelope_id=envelope.id, owner_id=actor.user_id)
        return envelope

    async def add_party(self, actor: Actor, envelope_id: str, data: AddPartyInput) -> Party:
        envelope = await self._get_owned(actor, envelope_id)

        if data.global_party_id:
            party = await self._party_from_contact(actor, envelope, data)
        else:
            party = Party(
                envelope_id=envelope.id,
                name=data.name,
                email=data.email,
                role=data.role,
                sequence=data.sequence,
                auth_method=data.auth_method,
            )
        envelope.add_party(party)
        await self._commit(envelope, actor)
        logger.info("party_added", envelope_id=envelope.id, party_id=party.id)
        return party

    async def add_document(
        self, actor: Actor, envelope_id: str, data: AddDocumentInput
    ) -> Document:
        envelope = await self._get_owned(actor, envelope_id)
        document = Document(
            envelope_id=envelope.id,
            name=data.name,
            content_type=data.content_type,
            size_bytes=data.size_bytes,
            s3_key=data.s3_key or f"envelopes/{envelope.id}/documents/{data.name}",
            sha256=data.sha256,
        )
        envelope.add_document(document)
        await self._commit(envelope, actor)
        logger.info("document_added", envelope_id=envelope.id, document_id=document.id)
        return document

    async def change_document_status(
        self,
        actor: Actor,
        envelope_id: str,
        document_id: str,
        status: DocumentStatus,
        error_message: str | None = None,
    ) -> Document:
        envelope = await self._get_owned(actor, envelope_id)
        document = envelope.change_document_status(document_id, status, error_message)
        await self._commit(envelope, actor)
        logger.info(
            "document_status_changed",
            envelope_id=envelope.id,
            document_id=document_id,
            status=status.value,
        )
        return document

    async def add_input(self, actor: Actor, envelope_id: str, data: AddInputInput) -> Input:
        envelope = await self._get_owned(actor, envelope_id)
        field_input = envelope.add_input(
            document_id=data.document_id,
            party_id=data.party_id,
            input_type=data.input_type,
            page=data.page,
            x=data.x,
            y=data.y,
            width=data.width,
            height=data.height,
            required=data.required,
        )
        await self._commit(envelope, actor)
        return field_input

    async def send_envelope(self, actor: Actor, envelope_id: str) -> Envelope:
        envelope = await self._get_owned(actor, envelope_id)
        envelope.send()
        await self._commit(envelope, actor)
        logger.info("envelope_sent", envelope_id=envelope.id, parties=len(envelope.parties))
        return envelope

    async def cancel_envelope(self, actor: Actor, envelope_id: str, reason: str = "") -> Envelope:
        envelope = await self._get_owned(actor, envelope_id)
        envelope.cancel(reason)
        await self._commit(envelope, actor)
        logger.info("envelope_cancelled", envelope_id=envelope.id)
        return envelope

    async def record_party_signed(
        self, actor: Actor, envelope_id: str, party_id: str
    ) -> Envelope:
        """
        署名完了を記録

        Raises:
            PreconditionFailedError: 参加者の署名同意が付与されていない場合
        """
        envelope = await self._get_for_party(actor, envelope_id, party_id)
        consents = await self._consents.find_by_envelope(envelope_id)
        if not any(
            c.party_id == party_id and c.consent_type == ConsentType.SIGNATURE and c.is_granted
            for c in consents
        ):
            raise PreconditionFailedError(
                "Party must grant signature consent before signing",
                details={"party_id": party_id},
            )
        envelope.record_signature(party_id)
        await self._commit(envelope, actor)
        logger.info(
            "party_signed",
            envelope_id=envelope.id,
            party_id=party_id,
            status=envelope.status.value,
        )
        return envelope

    async def decline_party(
        self, actor: Actor, envelope_id: str, party_id: str, reason: str
    ) -> Envelope:
        if not reason or not reason.strip():
            raise BadRequestError("Decline reason is required", details={"field": "reason"})
        envelope = await self._get_for_party(actor, envelope_id, party_id)
        envelope.decline(party_id, reason.strip())
        await self._commit(envelope, actor)
        logger.info("party_declined", envelope_id=envelope.id, party_id=party_id)
        return envelope

    async def record_consent(
        self, actor: Actor, envelope_id: str, data: RecordConsentInput
    ) -> Consent:
        envelope = await self._get_for_party(actor, envelope_id, data.party_id)

        consent = Consent(
            envelope_id=envelope.id,
            party_id=data.party_id,
            consent_type=data.consent_type,
        )
        if data.granted:
            consent.grant(data.consent_text, data.ip_address, data.user_agent, data.country)
        else:
            consent.deny()

        await self._consents.save(consent)
        event = ConsentCreated(
            envelope_id=envelope.id,
            consent_id=consent.id,
            party_id=consent.party_id,
            consent_type=consent.consent_type.value,
            status=consent.status.value,
        )
        await self._publisher.publish(event)
        await self._record_audit(
            actor,
            [event],
            ip_address=data.ip_address,
            user_agent=data.user_agent,
            country=data.country,
        )
        logger.info(
            "consent_recorded",
            envelope_id=envelope.id,
            consent_id=consent.id,
            status=consent.status.value,
        )
        return consent

    async def revoke_consent(self, actor: Actor, envelope_id: str, consent_id: str) -> Consent:
        envelope = await self.get_envelope(actor, envelope_id)
        consent = await self._consents.find_by_id(envelope_id, consent_id)
        if consent is None:
            raise NotFoundError(
                f"Consent {consent_id} not found", details={"consent_id": consent_id}
            )
        self._authorize_party(actor, envelope, consent.party_id)
        consent.revoke()
        await self._consents.save(consent)
        event = ConsentRevoked(envelope_id=envelope_id, consent_id=consent.id, party_id=consent.party_id)
        await self._publisher.publish(event)
        await self._record_audit(actor, [event])
        return consent

    # === Internals ===

    async def _get_owned(self, actor: Actor, envelope_id: str) -> Envelope:
        envelope = await self.get_envelope(actor, envelope_id)
        if envelope.owner_id != actor.user_id and not actor.is_admin:
            raise ForbiddenError(
                "Only the envelope owner can modify it",
                details={"envelope_id": envelope_id},
            )
        return envelope

    async def _get_for_party(self, actor: Actor, envelope_id: str, party_id: str) -> Envelope:
        envelope = await self.get_envelope(actor, envelope_id)
        self._authorize_party(actor, envelope, party_id)
        return envelope

    def _authorize_party(self, actor: Actor, envelope: Envelope, party_id: str) -> None:
        """参加者本人（メール一致）・所有者・管理者のみ許可"""
        party = envelope.get_party(party_id)
        if envelope.owner_id == actor.user_id or actor.is_admin:
            return
        if actor.email and actor.email.strip().lower() == party.email:
            return
        raise ForbiddenError(
            "Only the party, the envelope owner or an admin can act for this party",
            details={"envelope_id": envelope.id, "party_id": party_id},
        )

    async def _party_from_contact(
        self, actor: Actor, envelope: Envelope, data: AddPartyInput
    ) -> Party:
        if self._global_parties is None:
            raise BadRequestError("Contacts are not available")
        contact = await self._global_parties.find_by_id(actor.tenant_id, data.global_party_id)
        if contact is None:
            raise NotFoundError(
                f"Contact {data.global_party_id} not found",
                details={"global_party_id": data.global_party_id},
            )
        party = contact.to_party(envelope.id, sequence=data.sequence)
        party.auth_method = data.auth_method
        return party

    async def _commit(self, envelope: Envelope, actor: Actor) -> None:
        """集約を保存し、未コミットのイベントをアウトボックスと監査証跡へ書き込む"""
        await self._envelopes.save(envelope)
        events = envelope.get_uncommitted_events()
        if events:
            await self._publisher.publish_batch(events)
            await self._record_audit(actor, events)
        envelope.mark_events_as_committed()

    async def _record_audit(
        self,
        actor: Actor,
        events: list[DomainEvent],
        ip_address: str | None = None,
        user_agent: str | None = None,
        country: str | None = None,
    ) -> None:
        if self._audit is None:
            return
        audit_events = [
            audit_event
            for audit_event in (
                audit_event_from_domain_event(
                    event,
                    user_id=actor.user_id,
                    user_email=actor.email,
                    ip_address=ip_address,
                    user_agent=user_agent,
                    country=country,
                )
                for event in events
            )
            if audit_event is not None
        ]
        if audit_events:
            await self._audit.save_batch(audit_events)
