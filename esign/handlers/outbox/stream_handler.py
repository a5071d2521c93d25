"""
Outbox Stream Relay Lambda

アウトボックステーブルの DynamoDB Stream から INSERT を受け取り、即時に中継する。
取りこぼしはスケジュール実行の Outbox Relay が拾う。
"""
import asyncio
from typing import Any

import structlog
from boto3.dynamodb.types import TypeDeserializer

from esign.domain.reliability import OutboxRecord, OutboxStatus
from esign.infrastructure.dynamodb import outbox_record_from_item
from esign.infrastructure.dynamodb.outbox_repository import OUTBOX_ENTITY
from .processor_factory import get_outbox_processor

logger = structlog.get_logger()

_deserializer = TypeDeserializer()


def deserialize_image(image: dict[str, Any]) -> dict[str, Any]:
    """Stream の NewImage を Python の dict に変換"""
    return {key: _deserializer.deserialize(value) for key, value in image.items()}


def extract_records(event: dict) -> list[OutboxRecord]:
    records: list[OutboxRecord] = []
    for stream_record in event.get("Records", []):
        if stream_record.get("eventName") != "INSERT":
            continue
        image = stream_record.get("dynamodb", {}).get("NewImage")
        if not image:
            continue
        item = deserialize_image(image)
        if item.get("type") != OUTBOX_ENTITY:
            continue
        try:
            record = outbox_record_from_item(item)
        except (KeyError, ValueError) as e:
            logger.warning("outbox_stream_record_skipped", error=str(e), item_id=item.get("id"))
            continue
        if record.status == OutboxStatus.PENDING:
            records.append(record)
    return records


def lambda_handler(event: dict, context: Any) -> dict:
    """DynamoDB Stream イベントを処理"""
    records = extract_records(event)
    logger.info(
        "outbox_stream_received",
        stream_records=len(event.get("Records", [])),
        outbox_records=len(records),
    )
    if not records:
        return {"statusCode": 200, "body": {"total_events": 0}}

    batch = asyncio.run(get_outbox_processor().process_records(records))
    return {"statusCode": 200, "body": batch.to_dict()}
