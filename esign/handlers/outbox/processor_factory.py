"""Outbox Processor の組み立て"""
from functools import lru_cache

from esign.application.services import OutboxProcessor, OutboxProcessorOptions
from esign.infrastructure.config import get_settings
from esign.infrastructure.dynamodb import DynamoDBOutboxRepository
from esign.infrastructure.events import EventBridgeEventPublisher
from esign.infrastructure.logging_config import configure_logging


@lru_cache()
def get_outbox_processor() -> OutboxProcessor:
    """コールドスタート時に 1 度だけ生成して再利用"""
    settings = get_settings()
    configure_logging(settings.log_level)

    repository = DynamoDBOutboxRepository(
        table_name=settings.outbox_table,
        region=settings.aws_region,
        status_index=settings.outbox_status_index,
    )
    dispatcher = EventBridgeEventPublisher(
        event_bus_name=settings.event_bus_name,
        source=settings.event_source,
        region=settings.aws_region,
    )
    options = OutboxProcessorOptions(
        max_batch_size=settings.outbox_batch_size,
        max_retries=settings.outbox_max_retries,
        retry_delay_ms=settings.outbox_retry_delay_ms,
    )
    return OutboxProcessor(repository, dispatcher, options)
