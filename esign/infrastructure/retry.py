"""Retry Helpers for AWS calls"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from esign.domain.reliability.backoff import (
    DEFAULT_RETRY_CONFIG,
    RetryConfig,
    RetryDecision,
    backoff_delay,
    should_retry,
)
from esign.infrastructure.aws.errors import is_aws_retryable, map_aws_error

logger = structlog.get_logger()

T = TypeVar("T")

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "RetryConfig",
    "RetryDecision",
    "backoff_delay",
    "is_aws_retryable",
    "should_retry",
    "with_retry",
]


async def with_retry(
    operation: str,
    fn: Callable[[], Awaitable[T]],
    max_attempts: int = DEFAULT_RETRY_CONFIG.max_attempts,
    is_retryable: Callable[[BaseException], bool] = is_aws_retryable,
) -> T:
    """リトライ付きで非同期処理を実行し、最終エラーは AppError に変換して送出"""
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            decision = should_retry(attempt, max_attempts, is_retryable, e)
            if not decision.retry:
                mapped = map_aws_error(e, operation)
                if mapped is e:
                    raise
                raise mapped from e
            logger.warning(
                "operation_retrying",
                operation=operation,
                attempt=attempt + 1,
                delay_ms=decision.delay_ms,
                error=str(e),
            )
            await asyncio.sleep(decision.delay_ms / 1000)
            attempt += 1
