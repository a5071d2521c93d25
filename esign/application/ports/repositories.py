"""Repository Interfaces (Ports)"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esign.domain.signature.entities import AuditEvent, Consent, Envelope, GlobalParty


class IEnvelopeRepository(ABC):
    """
    Envelope Repository Interface

    エンベロープ集約（参加者・ドキュメント・入力フィールドを含む）の永続化を抽象化する。
    具体的な実装（DynamoDB等）はインフラ層で提供する。
    """

    @abstractmethod
    async def find_by_id(self, envelope_id: str) -> Envelope | None:
        """IDでエンベロープを取得"""
        pass

    @abstractmethod
    async def save(self, envelope: Envelope) -> None:
        """エンベロープを保存（楽観的ロック付き）"""
        pass

    @abstractmethod
    async def find_by_owner(
        self,
        owner_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[Envelope], str | None]:
        """所有者IDでエンベロープ一覧を取得（ページネーション対応）"""
        pass

    @abstractmethod
    async def delete(self, envelope_id: str) -> bool:
        """エンベロープを削除"""
        pass


class IConsentRepository(ABC):
    """Consent Repository Interface"""

    @abstractmethod
    async def find_by_id(self, envelope_id: str, consent_id: str) -> Consent | None:
        pass

    @abstractmethod
    async def find_by_envelope(self, envelope_id: str) -> list[Consent]:
        pass

    @abstractmethod
    async def save(self, consent: Consent) -> None:
        pass


class IGlobalPartyRepository(ABC):
    """Global Party (Contact) Repository Interface"""

    @abstractmethod
    async def find_by_id(self, tenant_id: str, global_party_id: str) -> GlobalParty | None:
        pass

    @abstractmethod
    async def find_by_email(self, tenant_id: str, email: str) -> GlobalParty | None:
        pass

    @abstractmethod
    async def find_by_tenant(
        self,
        tenant_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[GlobalParty], str | None]:
        pass

    @abstractmethod
    async def save(self, global_party: GlobalParty) -> None:
        pass


class IAuditRepository(ABC):
    """
    Audit Trail Repository Interface

    監査イベントは追記のみ。更新・削除は提供しない。
    """

    @abstractmethod
    async def save_batch(self, events: list[AuditEvent]) -> None:
        pass

    @abstractmethod
    async def find_by_envelope(
        self,
        envelope_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[AuditEvent], str | None]:
        """古い順に取得（ページネーション対応）"""
        pass
