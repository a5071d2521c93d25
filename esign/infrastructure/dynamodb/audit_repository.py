"""DynamoDB Audit Trail Repository Implementation"""
from __future__ import annotations

from typing import Any

import boto3
import structlog
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from esign.application.ports.repositories import IAuditRepository
from esign.domain.signature.entities import AuditEvent
from esign.domain.signature.enums import clamp_page_limit
from esign.infrastructure.aws.errors import map_aws_error
from .envelope_repository import AUDIT_PREFIX, envelope_pk
from .pagination import decode_cursor, encode_cursor

logger = structlog.get_logger()


def audit_sk(event: AuditEvent) -> str:
    return f"{AUDIT_PREFIX}{event.created_at.isoformat()}#{event.id}"


class DynamoDBAuditRepository(IAuditRepository):
    """
    監査証跡リポジトリ（エンベロープと同じテーブル）

    Key design:
        pk = ENVELOPE#<envelopeId>
        sk = AUDIT#<createdAt>#<id>   (sk 順 = 時系列順)
    """

    def __init__(
        self,
        table_name: str = "esign-envelopes",
        region: str = "us-east-1",
        table: Any = None,
    ):
        self.table_name = table_name
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def save_batch(self, events: list[AuditEvent]) -> None:
        if not events:
            return
        try:
            with self._table.batch_writer() as batch:
                for event in events:
                    batch.put_item(
                        Item={
                            **event.to_dict(),
                            "pk": envelope_pk(event.envelope_id),
                            "sk": audit_sk(event),
                            "type": "AuditEvent",
                        }
                    )
        except ClientError as e:
            raise map_aws_error(e, "AuditRepository.save_batch") from e
        logger.debug(
            "audit_events_saved",
            envelope_id=events[0].envelope_id,
            count=len(events),
        )

    async def find_by_envelope(
        self,
        envelope_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[AuditEvent], str | None]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(envelope_pk(envelope_id))
            & Key("sk").begins_with(AUDIT_PREFIX),
            "ScanIndexForward": True,
            "Limit": clamp_page_limit(limit),
        }
        start_key = decode_cursor(cursor)
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key
        try:
            response = self._table.query(**kwargs)
        except ClientError as e:
            raise map_aws_error(e, "AuditRepository.find_by_envelope") from e
        events = [AuditEvent.from_dict(item) for item in response.get("Items", [])]
        return events, encode_cursor(response.get("LastEvaluatedKey"))
