"""Outbox-backed Event Publisher"""
from __future__ import annotations

import structlog

from esign.application.ports.event_publisher import IEventPublisher
from esign.application.ports.outbox import IOutboxRepository
from esign.domain.signature.events import DomainEvent

logger = structlog.get_logger()


class OutboxEventPublisher(IEventPublisher):
    """
    ドメインイベントをアウトボックスへ書き込む Publisher

    実際のイベントバスへの配信は OutboxProcessor が非同期に行う。
    """

    def __init__(self, outbox: IOutboxRepository, trace_id: str | None = None):
        self._outbox = outbox
        self._trace_id = trace_id

    async def publish(self, event: DomainEvent) -> None:
        await self._outbox.save(event, self._trace_id)

    async def publish_batch(self, events: list[DomainEvent]) -> None:
        for event in events:
            await self.publish(event)
        if events:
            logger.debug("events_queued_to_outbox", count=len(events), trace_id=self._trace_id)
