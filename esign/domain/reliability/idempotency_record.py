"""Idempotency Record"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class IdempotencyState(str, Enum):
    """冪等キーの状態"""

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class IdempotencyRecord:
    """
    冪等キーの記録

    `result` は完了時に保存されたレスポンス（JSON 互換値）。
    """

    key: str
    state: IdempotencyState
    expires_at: int | None = None
    result: Any = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.state == IdempotencyState.COMPLETED
