"""Outbox Record"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from esign.domain.signature.events import DomainEvent


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OutboxStatus(str, Enum):
    """アウトボックスレコードの配信状態"""

    PENDING = "pending"
    DISPATCHED = "dispatched"
    FAILED = "failed"


@dataclass
class OutboxRecord:
    """
    アウトボックスレコード

    ドメインイベントを永続化し、非同期にイベントバスへ中継するための行。
    `next_attempt_at` が未来の場合は次回バッチまで配信を見送る。
    """

    id: str
    event_type: str
    payload: dict[str, Any]
    occurred_at: datetime
    status: OutboxStatus = OutboxStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    trace_id: str | None = None
    next_attempt_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def is_pending(self) -> bool:
        return self.status == OutboxStatus.PENDING

    def is_due(self, now: datetime | None = None) -> bool:
        """配信可能時刻に達しているか"""
        if self.next_attempt_at is None:
            return True
        return self.next_attempt_at <= (now or _utc_now())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
            "status": self.status.value,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "trace_id": self.trace_id,
            "next_attempt_at": self.next_attempt_at.isoformat() if self.next_attempt_at else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


def create_outbox_record_from_event(
    event: DomainEvent,
    trace_id: str | None = None,
) -> OutboxRecord:
    """ドメインイベントから PENDING のアウトボックスレコードを生成"""
    now = _utc_now()
    return OutboxRecord(
        id=event.event_id,
        event_type=event.event_type,
        payload=event.to_payload(),
        occurred_at=event.occurred_at,
        trace_id=trace_id,
        created_at=now,
        updated_at=now,
    )
