"""Idempotency Runner"""
from __future__ import annotations

from typing import Awaitable, Callable, TypeVar

import structlog

from esign.application.ports.idempotency import IIdempotencyStore
from esign.domain.errors import ConflictError, ErrorCodes
from esign.domain.reliability import IdempotencyState

logger = structlog.get_logger()

T = TypeVar("T")

DEFAULT_IDEMPOTENCY_TTL_SECONDS = 300


class IdempotencyRunner:
    """
    冪等キー付きで処理を実行する

    1. 既存キーが pending / completed なら ConflictError
    2. pending を登録して処理を実行
    3. 成功時のみ結果を保存して completed にする

    処理が例外を送出した場合キーは pending のまま残り、TTL 経過後に再試行できる。
    """

    def __init__(
        self,
        store: IIdempotencyStore,
        default_ttl_seconds: int = DEFAULT_IDEMPOTENCY_TTL_SECONDS,
    ):
        self._store = store
        self._default_ttl = max(1, int(default_ttl_seconds))

    async def run(
        self,
        key: str,
        fn: Callable[[], Awaitable[T]],
        ttl_seconds: int | None = None,
    ) -> T:
        ttl = max(1, int(ttl_seconds)) if ttl_seconds is not None else self._default_ttl
        log = logger.bind(idempotency_key=key)

        state = await self._store.get(key)
        if state == IdempotencyState.PENDING:
            log.warning("idempotent_request_in_progress")
            raise ConflictError(
                "Idempotent request is already in progress",
                ErrorCodes.IDEMPOTENCY_IN_PROGRESS,
            )
        if state == IdempotencyState.COMPLETED:
            log.info("idempotent_request_already_processed")
            raise ConflictError(
                "Idempotent request has already been processed",
                ErrorCodes.IDEMPOTENCY_ALREADY_PROCESSED,
            )

        await self._store.put_pending(key, ttl)
        result = await fn()
        await self._store.put_completed(key, result, ttl)
        log.info("idempotent_request_completed", ttl_seconds=ttl)
        return result
