"""Contact (Global Party) Application Service"""
from __future__ import annotations

import structlog

from esign.application.ports.repositories import IGlobalPartyRepository
from esign.domain.errors import ConflictError, NotFoundError
from esign.domain.signature.entities import GlobalParty
from esign.domain.signature.enums import PartyRole, clamp_page_limit
from .envelope_service import Actor

logger = structlog.get_logger()


class ContactService:
    """テナント連絡先の登録・参照"""

    def __init__(self, repository: IGlobalPartyRepository):
        self._repository = repository

    async def create_contact(
        self,
        actor: Actor,
        name: str,
        email: str,
        phone: str | None = None,
        locale: str = "en-US",
        role: PartyRole = PartyRole.SIGNER,
        tags: list[str] | None = None,
    ) -> GlobalParty:
        contact = GlobalParty(
            tenant_id=actor.tenant_id,
            owner_id=actor.user_id,
            name=name,
            email=email,
            phone=phone,
            locale=locale,
            role=role,
            tags=list(tags or []),
        )
        existing = await self._repository.find_by_email(actor.tenant_id, contact.email)
        if existing is not None:
            raise ConflictError(
                f"Contact with email {contact.email} already exists",
                details={"global_party_id": existing.id},
            )
        await self._repository.save(contact)
        logger.info("contact_created", tenant_id=actor.tenant_id, global_party_id=contact.id)
        return contact

    async def get_contact(self, actor: Actor, global_party_id: str) -> GlobalParty:
        contact = await self._repository.find_by_id(actor.tenant_id, global_party_id)
        if contact is None:
            raise NotFoundError(
                f"Contact {global_party_id} not found",
                details={"global_party_id": global_party_id},
            )
        return contact

    async def list_contacts(
        self,
        actor: Actor,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[GlobalParty], str | None]:
        return await self._repository.find_by_tenant(
            actor.tenant_id, clamp_page_limit(limit), cursor
        )

    async def deactivate_contact(self, actor: Actor, global_party_id: str) -> GlobalParty:
        contact = await self.get_contact(actor, global_party_id)
        contact.deactivate()
        await self._repository.save(contact)
        return contact
