"""Rate Limit Store Interface (Port)"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from esign.domain.reliability import RateLimitResult, RateLimitWindow


class IRateLimitStore(ABC):
    """固定ウィンドウ方式のレート制限カウンタ"""

    @abstractmethod
    async def increment_and_check(
        self, key: str, window: "RateLimitWindow"
    ) -> "RateLimitResult":
        """
        カウンタを加算

        Raises:
            TooManyRequestsError: ウィンドウ内の上限に達している場合
        """
        pass
