"""Event Publisher Interface (Port)"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esign.domain.reliability import OutboxRecord
    from esign.domain.signature.events import DomainEvent


class IEventPublisher(ABC):
    """
    Event Publisher Interface

    ドメインイベントを外部に発行するための抽象インターフェース。
    具体的な実装（EventBridge / Outbox 等）はインフラ層で提供する。
    """

    @abstractmethod
    async def publish(self, event: "DomainEvent") -> None:
        """イベントを発行"""
        pass

    @abstractmethod
    async def publish_batch(self, events: list["DomainEvent"]) -> None:
        """イベントをバッチ発行"""
        pass


class IOutboxDispatcher(ABC):
    """
    Outbox Dispatcher Interface

    永続化済みのアウトボックスレコードをイベントバスへ中継する。
    """

    @abstractmethod
    async def dispatch(self, record: "OutboxRecord") -> None:
        """レコードを 1 件配信（失敗時は例外）"""
        pass
