"""Outbox Repository Interface (Port)"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esign.domain.reliability import OutboxRecord, OutboxStatus
    from esign.domain.signature.events import DomainEvent


class IOutboxRepository(ABC):
    """
    Outbox Repository Interface

    ドメインイベントを追記専用で保存し、配信状態を管理する。
    """

    @abstractmethod
    async def save(self, event: "DomainEvent", trace_id: str | None = None) -> None:
        """イベントを PENDING レコードとして追記"""
        pass

    @abstractmethod
    async def get_by_id(self, record_id: str) -> "OutboxRecord | None":
        pass

    @abstractmethod
    async def exists(self, record_id: str) -> bool:
        pass

    @abstractmethod
    async def mark_dispatched(self, record_id: str) -> None:
        pass

    @abstractmethod
    async def mark_failed(self, record_id: str, error: str) -> None:
        """終端の FAILED にする（試行回数を加算）"""
        pass

    @abstractmethod
    async def record_failed_attempt(
        self,
        record_id: str,
        error: str,
        next_attempt_at: datetime,
    ) -> None:
        """PENDING のまま試行回数を加算し、次回試行時刻を設定"""
        pass

    @abstractmethod
    async def pull_pending(self, limit: int) -> list["OutboxRecord"]:
        """配信可能な PENDING レコードを古い順に取得"""
        pass

    @abstractmethod
    async def list(
        self,
        status: "OutboxStatus",
        event_type: str | None = None,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list["OutboxRecord"], str | None]:
        pass

    @abstractmethod
    async def count_by_status(self, status: "OutboxStatus") -> int:
        pass

    @abstractmethod
    async def get_stats(self) -> dict[str, int]:
        pass

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        pass
