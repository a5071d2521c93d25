"""DynamoDB Rate Limit Store Implementation"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import boto3
import structlog
from botocore.exceptions import ClientError

from esign.application.ports.rate_limit import IRateLimitStore
from esign.domain.errors import ErrorCodes, TooManyRequestsError
from esign.domain.reliability import RateLimitResult, RateLimitWindow
from esign.infrastructure.aws.errors import is_conditional_check_failed, map_aws_error

logger = structlog.get_logger()

RATE_LIMIT_ENTITY = "RateLimit"


def rate_limit_pk(key: str) -> str:
    return f"RATE_LIMIT#{key}"


def window_sk(window_start: int) -> str:
    return f"WINDOW#{window_start}"


class DynamoDBRateLimitStore(IRateLimitStore):
    """
    DynamoDB ベースの固定ウィンドウ・レート制限

    Key design:
        pk = RATE_LIMIT#<key>
        sk = WINDOW#<windowStart>

    1. 条件付き加算（currentUsage < maxRequests）
    2. 条件失敗ならウィンドウを新規作成（currentUsage = 1）
    3. 作成が競合したら加算を 1 回だけ再試行し、再度失敗すれば上限超過
    """

    def __init__(
        self,
        table_name: str = "esign-rate-limit",
        region: str = "us-east-1",
        table: Any = None,
    ):
        self.table_name = table_name
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def increment_and_check(self, key: str, window: RateLimitWindow) -> RateLimitResult:
        now = int(time.time())
        window_start = window.window_start(now)
        window_end = window_start + window.window_seconds
        log = logger.bind(rate_limit_key=key, window_start=window_start)

        try:
            usage = self._increment(key, window, window_start)
        except ClientError as e:
            if not is_conditional_check_failed(e):
                raise map_aws_error(e, "RateLimitStore.increment") from e
            usage = None

        if usage is None:
            try:
                usage = self._create_window(key, window, window_start, window_end, now)
            except ClientError as e:
                if not is_conditional_check_failed(e):
                    raise map_aws_error(e, "RateLimitStore.create_window") from e
                usage = None

        if usage is None:
            try:
                usage = self._increment(key, window, window_start)
            except ClientError as e:
                if not is_conditional_check_failed(e):
                    raise map_aws_error(e, "RateLimitStore.increment") from e
                log.warning("rate_limit_exceeded", max_requests=window.max_requests)
                raise TooManyRequestsError(
                    "Rate limit exceeded",
                    ErrorCodes.RATE_LIMIT_EXCEEDED,
                    {
                        "max_requests": window.max_requests,
                        "window_start": window_start,
                        "window_end": window_end,
                        "reset_in_seconds": max(0, window_end - now),
                    },
                ) from e

        return RateLimitResult(
            current_usage=usage,
            max_requests=window.max_requests,
            window_start=window_start,
            window_end=window_end,
            reset_in_seconds=max(0, window_end - now),
        )

    def _increment(self, key: str, window: RateLimitWindow, window_start: int) -> int:
        response = self._table.update_item(
            Key={"pk": rate_limit_pk(key), "sk": window_sk(window_start)},
            UpdateExpression="SET currentUsage = currentUsage + :inc, updatedAt = :updatedAt",
            ConditionExpression="currentUsage < :maxRequests",
            ExpressionAttributeValues={
                ":inc": 1,
                ":maxRequests": window.max_requests,
                ":updatedAt": datetime.now(timezone.utc).isoformat(),
            },
            ReturnValues="ALL_NEW",
        )
        return int(response.get("Attributes", {}).get("currentUsage", 1))

    def _create_window(
        self,
        key: str,
        window: RateLimitWindow,
        window_start: int,
        window_end: int,
        now: int,
    ) -> int:
        timestamp = datetime.now(timezone.utc).isoformat()
        self._table.put_item(
            Item={
                "pk": rate_limit_pk(key),
                "sk": window_sk(window_start),
                "type": RATE_LIMIT_ENTITY,
                "rateLimitKey": key,
                "windowStart": window_start,
                "windowEnd": window_end,
                "currentUsage": 1,
                "maxRequests": window.max_requests,
                "createdAt": timestamp,
                "updatedAt": timestamp,
                "ttl": now + window.ttl_seconds,
            },
            ConditionExpression="attribute_not_exists(pk) AND attribute_not_exists(sk)",
        )
        return 1
