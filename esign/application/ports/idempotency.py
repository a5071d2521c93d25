"""Idempotency Store Interface (Port)"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from esign.domain.reliability import IdempotencyRecord, IdempotencyState


class IIdempotencyStore(ABC):
    """
    Idempotency Store Interface

    冪等キーの pending / completed 状態を保持する。
    """

    @abstractmethod
    async def get(self, key: str) -> "IdempotencyState | None":
        """キーの状態を取得（未登録・期限切れは None）"""
        pass

    @abstractmethod
    async def get_record(self, key: str) -> "IdempotencyRecord | None":
        pass

    @abstractmethod
    async def put_pending(self, key: str, ttl_seconds: int) -> None:
        """キーを pending で登録（既存なら ConflictError）"""
        pass

    @abstractmethod
    async def put_completed(self, key: str, result: Any, ttl_seconds: int) -> None:
        """キーを completed に更新（未登録なら NotFoundError）"""
        pass
