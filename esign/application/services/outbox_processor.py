"""Outbox Processor"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from esign.application.ports.event_publisher import IOutboxDispatcher
from esign.application.ports.outbox import IOutboxRepository
from esign.domain.errors import ConflictError
from esign.domain.reliability import OutboxRecord
from esign.domain.reliability.backoff import backoff_delay

logger = structlog.get_logger()


@dataclass(frozen=True)
class OutboxProcessorOptions:
    max_batch_size: int = 25
    max_retries: int = 3
    retry_delay_ms: int = 1000
    max_delay_ms: int = 60_000


@dataclass
class OutboxProcessResult:
    """1 レコードの処理結果"""

    record_id: str
    event_type: str
    success: bool
    attempts: int
    duration_ms: float
    error: str | None = None
    next_attempt_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "event_type": self.event_type,
            "success": self.success,
            "attempts": self.attempts,
            "duration_ms": round(self.duration_ms, 2),
            "error": self.error,
            "next_attempt_at": self.next_attempt_at.isoformat() if self.next_attempt_at else None,
        }


@dataclass
class OutboxBatchResult:
    """バッチ処理結果"""

    total_events: int = 0
    successful_events: int = 0
    failed_events: int = 0
    results: list[OutboxProcessResult] = field(default_factory=list)
    total_duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "successful_events": self.successful_events,
            "failed_events": self.failed_events,
            "results": [r.to_dict() for r in self.results],
            "total_duration_ms": round(self.total_duration_ms, 2),
        }


class OutboxProcessor:
    """
    アウトボックス中継プロセッサ

    PENDING レコードを取得してイベントバスへ配信する（at-least-once）。
    失敗したレコードは指数バックオフで次回試行時刻を設定し、
    max_retries に達したら FAILED にする。
    """

    def __init__(
        self,
        repository: IOutboxRepository,
        dispatcher: IOutboxDispatcher,
        options: OutboxProcessorOptions | None = None,
    ):
        self._repository = repository
        self._dispatcher = dispatcher
        self._options = options or OutboxProcessorOptions()
        self._running = False
        self._stop_requested = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def process_batch(self) -> OutboxBatchResult:
        """PENDING レコードを 1 バッチ分処理"""
        records = await self._repository.pull_pending(self._options.max_batch_size)
        return await self.process_records(records)

    async def process_records(self, records: list[OutboxRecord]) -> OutboxBatchResult:
        """取得済みのレコードを順に配信（DynamoDB Stream からの即時中継にも使う）"""
        started = time.perf_counter()
        batch = OutboxBatchResult(total_events=len(records))

        for record in records:
            result = await self._process_record(record)
            batch.results.append(result)
            if result.success:
                batch.successful_events += 1
            else:
                batch.failed_events += 1

        batch.total_duration_ms = (time.perf_counter() - started) * 1000
        if records:
            logger.info(
                "outbox_batch_processed",
                total=batch.total_events,
                successful=batch.successful_events,
                failed=batch.failed_events,
                duration_ms=round(batch.total_duration_ms, 2),
            )
        return batch

    async def start_processing(self, max_batches: int | None = None) -> list[OutboxBatchResult]:
        """
        空のバッチが返るか停止されるまで処理を繰り返す

        Raises:
            ConflictError: すでに処理中の場合
        """
        if self._running:
            raise ConflictError("Outbox processor is already running")

        self._running = True
        self._stop_requested = False
        batches: list[OutboxBatchResult] = []
        logger.info("outbox_processing_started")
        try:
            while not self._stop_requested:
                batch = await self.process_batch()
                batches.append(batch)
                if batch.total_events == 0:
                    break
                if max_batches is not None and len(batches) >= max_batches:
                    break
        finally:
            self._running = False
            logger.info("outbox_processing_stopped", batches=len(batches))
        return batches

    def stop_processing(self) -> None:
        """現在のバッチ完了後にループを止める（is_running はループ終了まで True）"""
        self._stop_requested = True

    async def _process_record(self, record: OutboxRecord) -> OutboxProcessResult:
        log = logger.bind(outbox_id=record.id, event_type=record.event_type)
        started = time.perf_counter()
        try:
            await self._dispatcher.dispatch(record)
            await self._repository.mark_dispatched(record.id)
        except Exception as e:
            return await self._handle_failure(record, e, started, log)

        log.debug("outbox_record_dispatched")
        return OutboxProcessResult(
            record_id=record.id,
            event_type=record.event_type,
            success=True,
            attempts=record.attempts + 1,
            duration_ms=(time.perf_counter() - started) * 1000,
        )

    async def _handle_failure(
        self,
        record: OutboxRecord,
        error: Exception,
        started: float,
        log: Any,
    ) -> OutboxProcessResult:
        attempts = record.attempts + 1
        message = str(error) or type(error).__name__
        next_attempt_at: datetime | None = None

        try:
            if attempts >= self._options.max_retries:
                await self._repository.mark_failed(record.id, message)
                log.error("outbox_record_failed", attempts=attempts, error=message)
            else:
                next_attempt_at = await self._schedule_retry(record, message)
                log.warning("outbox_record_retry_scheduled", attempts=attempts, error=message)
        except Exception as bookkeeping_error:
            # 記録に失敗しても PENDING のまま残り、次のバッチで再試行される
            log.error(
                "outbox_record_bookkeeping_failed",
                attempts=attempts,
                error=message,
                bookkeeping_error=str(bookkeeping_error),
            )
            next_attempt_at = None

        return OutboxProcessResult(
            record_id=record.id,
            event_type=record.event_type,
            success=False,
            attempts=attempts,
            duration_ms=(time.perf_counter() - started) * 1000,
            error=message,
            next_attempt_at=next_attempt_at,
        )

    async def _schedule_retry(self, record: OutboxRecord, message: str) -> datetime:
        delay_ms = backoff_delay(
            record.attempts,
            base_ms=self._options.retry_delay_ms,
            cap_ms=self._options.max_delay_ms,
            jitter=False,
        )
        next_attempt_at = datetime.now(timezone.utc) + timedelta(milliseconds=delay_ms)
        await self._repository.record_failed_attempt(record.id, message, next_attempt_at)
        return next_attempt_at
