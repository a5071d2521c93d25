"""DynamoDB Idempotency Store Implementation"""
from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any

import boto3
import structlog
from botocore.exceptions import ClientError

from esign.application.ports.idempotency import IIdempotencyStore
from esign.domain.errors import ConflictError, ErrorCodes, NotFoundError
from esign.domain.reliability import IdempotencyRecord, IdempotencyState
from esign.infrastructure.aws.errors import is_conditional_check_failed, map_aws_error

logger = structlog.get_logger()

IDEMPOTENCY_ENTITY = "Idempotency"
META = "META"
NON_SERIALIZABLE_RESULT = {"ok": False, "reason": "non-serializable-result"}


def idempotency_pk(key: str) -> str:
    return f"IDEMPOTENCY#{key}"


def to_ttl(ttl_seconds: int | None, now: float | None = None) -> int | None:
    """TTL（秒）をエポック秒に変換（0 以下は None）"""
    if ttl_seconds is None or ttl_seconds <= 0:
        return None
    return int(now if now is not None else time.time()) + int(ttl_seconds)


def stable_json(value: Any) -> str:
    """キー順を固定した JSON 文字列（シリアライズ不可なら固定値）"""
    try:
        return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return json.dumps(NON_SERIALIZABLE_RESULT, sort_keys=True, separators=(",", ":"))


def _is_valid_item(item: dict[str, Any]) -> bool:
    return (
        isinstance(item.get("pk"), str)
        and isinstance(item.get("sk"), str)
        and item.get("type") == IDEMPOTENCY_ENTITY
        and isinstance(item.get("idempotencyKey"), str)
        and item.get("state") in (IdempotencyState.PENDING.value, IdempotencyState.COMPLETED.value)
        and isinstance(item.get("createdAt"), str)
        and isinstance(item.get("updatedAt"), str)
    )


class DynamoDBIdempotencyStore(IIdempotencyStore):
    """
    DynamoDB ベースの冪等キーストア

    Key design:
        pk = IDEMPOTENCY#<key>
        sk = META
    TTL 属性 `ttl`（エポック秒）で期限切れのキーを自動削除する。
    """

    def __init__(
        self,
        table_name: str = "esign-idempotency",
        region: str = "us-east-1",
        table: Any = None,
    ):
        self.table_name = table_name
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def get(self, key: str) -> IdempotencyState | None:
        record = await self.get_record(key)
        return record.state if record else None

    async def get_record(self, key: str) -> IdempotencyRecord | None:
        try:
            response = self._table.get_item(
                Key={"pk": idempotency_pk(key), "sk": META},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise map_aws_error(e, "IdempotencyStore.get") from e

        item = response.get("Item")
        if not item or not _is_valid_item(item):
            return None

        expires_at = int(item["ttl"]) if item.get("ttl") is not None else None
        # TTL による削除は遅延するため期限切れは未登録として扱う
        if expires_at is not None and expires_at <= int(time.time()):
            return None

        result = None
        if item.get("resultJson"):
            try:
                result = json.loads(item["resultJson"])
            except ValueError:
                logger.warning("idempotency_result_unreadable", key=key)

        return IdempotencyRecord(
            key=item["idempotencyKey"],
            state=IdempotencyState(item["state"]),
            expires_at=expires_at,
            result=result,
            created_at=datetime.fromisoformat(item["createdAt"]),
            updated_at=datetime.fromisoformat(item["updatedAt"]),
        )

    async def put_pending(self, key: str, ttl_seconds: int) -> None:
        now = datetime.now(timezone.utc).isoformat()
        item: dict[str, Any] = {
            "pk": idempotency_pk(key),
            "sk": META,
            "type": IDEMPOTENCY_ENTITY,
            "idempotencyKey": key,
            "state": IdempotencyState.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        }
        ttl = to_ttl(ttl_seconds)
        if ttl is not None:
            item["ttl"] = ttl

        try:
            # 期限切れで未削除のアイテムは上書きしてよい
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(pk) OR #ttl <= :now",
                ExpressionAttributeNames={"#ttl": "ttl"},
                ExpressionAttributeValues={":now": int(time.time())},
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                raise ConflictError(
                    "Idempotency key already exists", ErrorCodes.COMMON_CONFLICT
                ) from e
            raise map_aws_error(e, "IdempotencyStore.put_pending") from e

        logger.debug("idempotency_key_pending", key=key, ttl=ttl)

    async def put_completed(self, key: str, result: Any, ttl_seconds: int) -> None:
        now = datetime.now(timezone.utc).isoformat()
        ttl = to_ttl(ttl_seconds)

        update_expression = "SET #state = :completed, #resultJson = :resultJson, #updatedAt = :updatedAt"
        names = {"#state": "state", "#resultJson": "resultJson", "#updatedAt": "updatedAt"}
        values: dict[str, Any] = {
            ":completed": IdempotencyState.COMPLETED.value,
            ":resultJson": stable_json(result),
            ":updatedAt": now,
        }
        if ttl is not None:
            update_expression += ", #ttl = :ttl"
            names["#ttl"] = "ttl"
            values[":ttl"] = ttl

        try:
            self._table.update_item(
                Key={"pk": idempotency_pk(key), "sk": META},
                ConditionExpression="attribute_exists(pk) AND attribute_exists(sk)",
                UpdateExpression=update_expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="NONE",
            )
        except ClientError as e:
            if is_conditional_check_failed(e):
                raise NotFoundError("Idempotency key not found", ErrorCodes.COMMON_NOT_FOUND) from e
            raise map_aws_error(e, "IdempotencyStore.put_completed") from e

        logger.debug("idempotency_key_completed", key=key)
