"""EventBridge Event Publisher"""
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import boto3
import structlog

from esign.application.ports.event_publisher import IEventPublisher, IOutboxDispatcher
from esign.domain.errors import ErrorCodes, ServiceUnavailableError
from esign.domain.reliability import OutboxRecord
from esign.domain.signature.events import DomainEvent
from esign.infrastructure.retry import with_retry

logger = structlog.get_logger()

# PutEvents の 1 リクエストあたりの最大エントリ数
MAX_ENTRIES_PER_REQUEST = 10


class EventBridgeEventPublisher(IEventPublisher, IOutboxDispatcher):
    """
    EventBridge へイベントを発行する

    Detail には `eventId` / `occurredAt` / `payload` / `traceId` を含める。
    """

    def __init__(
        self,
        event_bus_name: str = "esign-events",
        source: str = "signature-service",
        region: str = "us-east-1",
        client: Any = None,
        max_attempts: int = 3,
    ):
        self.event_bus_name = event_bus_name
        self.source = source
        self.max_attempts = max_attempts
        self._client = client or boto3.client("events", region_name=region)

    async def publish(self, event: DomainEvent) -> None:
        await self.publish_batch([event])

    async def publish_batch(self, events: list[DomainEvent]) -> None:
        entries = [
            self._entry(
                event_id=event.event_id,
                event_type=event.event_type,
                payload=event.to_payload(),
                occurred_at=event.occurred_at,
            )
            for event in events
        ]
        await self._put_entries(entries)

    async def dispatch(self, record: OutboxRecord) -> None:
        await self._put_entries(
            [
                self._entry(
                    event_id=record.id,
                    event_type=record.event_type,
                    payload=record.payload,
                    occurred_at=record.occurred_at,
                    trace_id=record.trace_id,
                )
            ]
        )

    def _entry(
        self,
        event_id: str,
        event_type: str,
        payload: dict[str, Any],
        occurred_at: datetime,
        trace_id: str | None = None,
    ) -> dict[str, Any]:
        detail = {
            "eventId": event_id,
            "eventType": event_type,
            "occurredAt": occurred_at.isoformat(),
            "payload": payload,
        }
        if trace_id:
            detail["traceId"] = trace_id
        return {
            "Source": self.source,
            "DetailType": event_type,
            "Detail": json.dumps(detail, default=str),
            "EventBusName": self.event_bus_name,
            "Time": occurred_at,
        }

    async def _send(self, chunk: list[dict[str, Any]]) -> dict[str, Any]:
        return self._client.put_events(Entries=chunk)

    async def _put_entries(self, entries: list[dict[str, Any]]) -> None:
        for start in range(0, len(entries), MAX_ENTRIES_PER_REQUEST):
            chunk = entries[start : start + MAX_ENTRIES_PER_REQUEST]
            response = await with_retry(
                "EventBridgePublisher.put_events",
                lambda: self._send(chunk),
                max_attempts=self.max_attempts,
            )

            failed = int(response.get("FailedEntryCount", 0) or 0)
            if failed:
                failures = [
                    {
                        "detail_type": entry["DetailType"],
                        "error_code": result.get("ErrorCode"),
                        "error_message": result.get("ErrorMessage"),
                    }
                    for entry, result in zip(chunk, response.get("Entries", []))
                    if result.get("ErrorCode")
                ]
                logger.error("eventbridge_put_events_failed", failed=failed, failures=failures)
                raise ServiceUnavailableError(
                    f"EventBridge rejected {failed} of {len(chunk)} events",
                    ErrorCodes.COMMON_DEPENDENCY_UNAVAILABLE,
                    {"failed_entry_count": failed, "failures": failures},
                )

            logger.info(
                "events_published",
                event_bus=self.event_bus_name,
                count=len(chunk),
            )
