"""DynamoDB Outbox Repository Implementation"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

import boto3
import structlog
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from esign.application.ports.outbox import IOutboxRepository
from esign.domain.errors import ConflictError, ErrorCodes, NotFoundError
from esign.domain.reliability import OutboxRecord, OutboxStatus
from esign.domain.signature.events import DomainEvent
from esign.infrastructure.aws.errors import is_conditional_check_failed, map_aws_error
from .pagination import decode_cursor, encode_cursor

logger = structlog.get_logger()

OUTBOX_ENTITY = "Outbox"
OUTBOX_PK = "OUTBOX"
MAX_PAGE_SIZE = 100
# pull_pending で due なレコードを探す際のクエリページ上限
MAX_PULL_PAGES = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def outbox_sk(record_id: str) -> str:
    return f"ID#{record_id}"


def status_pk(status: OutboxStatus) -> str:
    return f"STATUS#{status.value}"


def status_sk(occurred_at: str, record_id: str) -> str:
    return f"{occurred_at}#{record_id}"


def clamp_limit(limit: int) -> int:
    return max(1, min(MAX_PAGE_SIZE, int(limit)))


class DynamoDBOutboxRepository(IOutboxRepository):
    """
    DynamoDB ベースのアウトボックス

    Key design:
        pk     = OUTBOX
        sk     = ID#<id>
        gsi1pk = STATUS#<status>           (pending | dispatched | failed)
        gsi1sk = <occurredAt>#<id>         (古い順に安定ソート)

    ステータス変更時は gsi1pk を同時に書き換えてインデックス間を移動させる。
    """

    def __init__(
        self,
        table_name: str = "esign-outbox",
        region: str = "us-east-1",
        status_index: str = "gsi1",
        table: Any = None,
    ):
        self.table_name = table_name
        self.status_index = status_index
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def save(self, event: DomainEvent, trace_id: str | None = None) -> None:
        """イベントを PENDING として追記（同一IDの上書きは ConflictError）"""
        occurred_at = event.occurred_at.isoformat()
        now = _utc_now().isoformat()
        item: dict[str, Any] = {
            "pk": OUTBOX_PK,
            "sk": outbox_sk(event.event_id),
            "type": OUTBOX_ENTITY,
            "id": event.event_id,
            "eventType": event.event_type,
            "payloadJson": json.dumps(event.to_payload(), sort_keys=True, default=str),
            "occurredAt": occurred_at,
            "status": OutboxStatus.PENDING.value,
            "attempts": 0,
            "createdAt": now,
            "updatedAt": now,
            "gsi1pk": status_pk(OutboxStatus.PENDING),
            "gsi1sk": status_sk(occurred_at, event.event_id),
        }
        if trace_id:
            item["traceId"] = trace_id

        try:
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(pk) AND attribute_not_exists(sk)",
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                raise ConflictError(
                    "Outbox record already exists", ErrorCodes.COMMON_CONFLICT
                ) from e
            raise map_aws_error(e, "OutboxRepository.save") from e

        logger.info(
            "outbox_record_saved",
            outbox_id=event.event_id,
            event_type=event.event_type,
            trace_id=trace_id,
        )

    async def get_by_id(self, record_id: str) -> OutboxRecord | None:
        try:
            response = self._table.get_item(
                Key={"pk": OUTBOX_PK, "sk": outbox_sk(record_id)},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.get_by_id") from e
        item = response.get("Item")
        return self._deserialize(item) if item else None

    async def exists(self, record_id: str) -> bool:
        try:
            response = self._table.get_item(
                Key={"pk": OUTBOX_PK, "sk": outbox_sk(record_id)},
                ProjectionExpression="pk",
            )
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.exists") from e
        return "Item" in response

    async def mark_dispatched(self, record_id: str) -> None:
        await self._update(
            record_id,
            operation="OutboxRepository.mark_dispatched",
            update_expression=(
                "SET #status = :s, #gpk = :g, #updatedAt = :now, "
                "#attempts = if_not_exists(#attempts, :zero) "
                "REMOVE #lastError, #nextAttemptAt"
            ),
            names={
                "#status": "status",
                "#gpk": "gsi1pk",
                "#updatedAt": "updatedAt",
                "#attempts": "attempts",
                "#lastError": "lastError",
                "#nextAttemptAt": "nextAttemptAt",
            },
            values={
                ":s": OutboxStatus.DISPATCHED.value,
                ":g": status_pk(OutboxStatus.DISPATCHED),
                ":now": _utc_now().isoformat(),
                ":zero": 0,
            },
        )

    async def mark_failed(self, record_id: str, error: str) -> None:
        await self._update(
            record_id,
            operation="OutboxRepository.mark_failed",
            update_expression=(
                "SET #status = :s, #gpk = :g, #updatedAt = :now, "
                "#attempts = if_not_exists(#attempts, :zero) + :one, #lastError = :err "
                "REMOVE #nextAttemptAt"
            ),
            names={
                "#status": "status",
                "#gpk": "gsi1pk",
                "#updatedAt": "updatedAt",
                "#attempts": "attempts",
                "#lastError": "lastError",
                "#nextAttemptAt": "nextAttemptAt",
            },
            values={
                ":s": OutboxStatus.FAILED.value,
                ":g": status_pk(OutboxStatus.FAILED),
                ":now": _utc_now().isoformat(),
                ":zero": 0,
                ":one": 1,
                ":err": str(error),
            },
        )

    async def record_failed_attempt(
        self,
        record_id: str,
        error: str,
        next_attempt_at: datetime,
    ) -> None:
        await self._update(
            record_id,
            operation="OutboxRepository.record_failed_attempt",
            update_expression=(
                "SET #updatedAt = :now, #attempts = if_not_exists(#attempts, :zero) + :one, "
                "#lastError = :err, #nextAttemptAt = :next"
            ),
            names={
                "#updatedAt": "updatedAt",
                "#attempts": "attempts",
                "#lastError": "lastError",
                "#nextAttemptAt": "nextAttemptAt",
            },
            values={
                ":now": _utc_now().isoformat(),
                ":zero": 0,
                ":one": 1,
                ":err": str(error),
                ":next": next_attempt_at.isoformat(),
            },
        )

    async def pull_pending(self, limit: int) -> list[OutboxRecord]:
        """
        配信可能な PENDING レコードを古い順に取得

        `nextAttemptAt` が未来のレコードはフィルタで除外する。
        """
        page_size = clamp_limit(limit)
        now = _utc_now().isoformat()
        records: list[OutboxRecord] = []
        kwargs: dict[str, Any] = {
            "IndexName": self.status_index,
            "KeyConditionExpression": Key("gsi1pk").eq(status_pk(OutboxStatus.PENDING)),
            "FilterExpression": Attr("nextAttemptAt").not_exists() | Attr("nextAttemptAt").lte(now),
            "ScanIndexForward": True,
            "Limit": page_size,
        }

        try:
            for _ in range(MAX_PULL_PAGES):
                response = self._table.query(**kwargs)
                records.extend(self._deserialize(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if len(records) >= page_size or not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.pull_pending") from e

        return records[:page_size]

    async def list(
        self,
        status: OutboxStatus,
        event_type: str | None = None,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[OutboxRecord], str | None]:
        kwargs: dict[str, Any] = {
            "IndexName": self.status_index,
            "KeyConditionExpression": Key("gsi1pk").eq(status_pk(status)),
            "ScanIndexForward": True,
            "Limit": clamp_limit(limit),
        }
        if event_type:
            kwargs["FilterExpression"] = Attr("eventType").eq(event_type)
        start_key = decode_cursor(cursor)
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key

        try:
            response = self._table.query(**kwargs)
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.list") from e

        records = [self._deserialize(item) for item in response.get("Items", [])]
        return records, encode_cursor(response.get("LastEvaluatedKey"))

    async def count_by_status(self, status: OutboxStatus) -> int:
        kwargs: dict[str, Any] = {
            "IndexName": self.status_index,
            "KeyConditionExpression": Key("gsi1pk").eq(status_pk(status)),
            "Select": "COUNT",
        }
        total = 0
        try:
            while True:
                response = self._table.query(**kwargs)
                total += int(response.get("Count", 0))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.count_by_status") from e
        return total

    async def get_stats(self) -> dict[str, int]:
        stats = {status.value: await self.count_by_status(status) for status in OutboxStatus}
        stats["total"] = sum(stats.values())
        return stats

    async def delete(self, record_id: str) -> None:
        try:
            self._table.delete_item(Key={"pk": OUTBOX_PK, "sk": outbox_sk(record_id)})
        except ClientError as e:
            raise map_aws_error(e, "OutboxRepository.delete") from e
        logger.info("outbox_record_deleted", outbox_id=record_id)

    async def _update(
        self,
        record_id: str,
        operation: str,
        update_expression: str,
        names: dict[str, str],
        values: dict[str, Any],
    ) -> None:
        try:
            self._table.update_item(
                Key={"pk": OUTBOX_PK, "sk": outbox_sk(record_id)},
                UpdateExpression=update_expression,
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="NONE",
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                raise NotFoundError(
                    f"Outbox record {record_id} not found",
                    ErrorCodes.COMMON_NOT_FOUND,
                    {"outbox_id": record_id},
                ) from e
            raise map_aws_error(e, operation) from e

    def _deserialize(self, item: dict[str, Any]) -> OutboxRecord:
        return outbox_record_from_item(item)


def outbox_record_from_item(item: dict[str, Any]) -> OutboxRecord:
    """DynamoDBアイテムを OutboxRecord に変換"""
    payload_json = item.get("payloadJson")
    next_attempt_at = item.get("nextAttemptAt")
    occurred_at = datetime.fromisoformat(item["occurredAt"])
    return OutboxRecord(
        id=item["id"],
        event_type=item["eventType"],
        payload=json.loads(payload_json) if payload_json else {},
        occurred_at=occurred_at,
        status=OutboxStatus(item.get("status", OutboxStatus.PENDING.value)),
        attempts=int(item.get("attempts", 0)),
        last_error=item.get("lastError"),
        trace_id=item.get("traceId"),
        next_attempt_at=datetime.fromisoformat(next_attempt_at) if next_attempt_at else None,
        created_at=datetime.fromisoformat(item.get("createdAt") or item["occurredAt"]),
        updated_at=datetime.fromisoformat(item.get("updatedAt") or item["occurredAt"]),
    )
