"""Backoff Policy"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000


DEFAULT_RETRY_CONFIG = RetryConfig()


@dataclass(frozen=True)
class RetryDecision:
    """リトライ判定結果"""

    retry: bool
    delay_ms: int = 0


def backoff_delay(
    attempt: int,
    base_ms: int = DEFAULT_RETRY_CONFIG.base_delay_ms,
    cap_ms: int = DEFAULT_RETRY_CONFIG.max_delay_ms,
    jitter: bool = True,
) -> int:
    """
    指数バックオフの待機時間（ミリ秒）

    ceiling = min(cap, base * 2^attempt)。jitter 有効時は 0..ceiling の一様乱数（full jitter）。
    """
    attempt = max(0, attempt)
    # 2**attempt の桁あふれを避けるため上限で打ち切る
    ceiling = min(cap_ms, base_ms * (2 ** min(attempt, 32)))
    if not jitter:
        return int(ceiling)
    return int(random.uniform(0, ceiling))


def should_retry(
    attempt: int,
    max_attempts: int,
    is_retryable: Callable[[BaseException], bool],
    err: BaseException,
) -> RetryDecision:
    """
    リトライすべきか判定

    Args:
        attempt: 0 始まりの試行回数
        max_attempts: 最大試行回数
        is_retryable: エラーのリトライ可否判定関数
        err: 発生したエラー
    """
    if attempt + 1 >= max_attempts:
        return RetryDecision(retry=False)
    if not is_retryable(err):
        return RetryDecision(retry=False)
    return RetryDecision(retry=True, delay_ms=backoff_delay(attempt))
