"""Rate Limit Value Objects"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitWindow:
    """
    固定ウィンドウの設定

    Attributes:
        window_seconds: ウィンドウ長（秒）
        max_requests: ウィンドウ内の最大リクエスト数
        ttl_seconds: カウンタの保持期間（秒）
    """

    window_seconds: int
    max_requests: int
    ttl_seconds: int

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if self.ttl_seconds < self.window_seconds:
            raise ValueError("ttl_seconds must cover the whole window")

    def window_start(self, now_seconds: int) -> int:
        return (now_seconds // self.window_seconds) * self.window_seconds


@dataclass(frozen=True)
class RateLimitResult:
    """カウンタ更新後の状態"""

    current_usage: int
    max_requests: int
    window_start: int
    window_end: int
    reset_in_seconds: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_requests - self.current_usage)
