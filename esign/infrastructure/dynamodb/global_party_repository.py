"""DynamoDB Global Party (Contact) Repository Implementation"""
from __future__ import annotations

from typing import Any

import boto3
import structlog
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from esign.application.ports.repositories import IGlobalPartyRepository
from esign.domain.signature.entities import GlobalParty
from esign.domain.signature.enums import clamp_page_limit
from esign.infrastructure.aws.errors import map_aws_error
from .pagination import decode_cursor, encode_cursor

logger = structlog.get_logger()

GLOBAL_PARTY_PREFIX = "GLOBAL_PARTY#"


def tenant_pk(tenant_id: str) -> str:
    return f"TENANT#{tenant_id}"


def email_pk(tenant_id: str, email: str) -> str:
    return f"TENANT#{tenant_id}#EMAIL#{email.strip().lower()}"


class DynamoDBGlobalPartyRepository(IGlobalPartyRepository):
    """
    テナント連絡先リポジトリ

    Key design:
        pk = TENANT#<tenantId>, sk = GLOBAL_PARTY#<id>
        gsi1pk = TENANT#<tenantId>#EMAIL#<email>, gsi1sk = <id>
    """

    def __init__(
        self,
        table_name: str = "esign-envelopes",
        region: str = "us-east-1",
        email_index: str = "gsi1",
        table: Any = None,
    ):
        self.table_name = table_name
        self.email_index = email_index
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def find_by_id(self, tenant_id: str, global_party_id: str) -> GlobalParty | None:
        try:
            response = self._table.get_item(
                Key={"pk": tenant_pk(tenant_id), "sk": f"{GLOBAL_PARTY_PREFIX}{global_party_id}"}
            )
        except ClientError as e:
            raise map_aws_error(e, "GlobalPartyRepository.find_by_id") from e
        item = response.get("Item")
        return GlobalParty.from_dict(item) if item else None

    async def find_by_email(self, tenant_id: str, email: str) -> GlobalParty | None:
        try:
            response = self._table.query(
                IndexName=self.email_index,
                KeyConditionExpression=Key("gsi1pk").eq(email_pk(tenant_id, email)),
                Limit=1,
            )
        except ClientError as e:
            raise map_aws_error(e, "GlobalPartyRepository.find_by_email") from e
        items = response.get("Items", [])
        return GlobalParty.from_dict(items[0]) if items else None

    async def find_by_tenant(
        self,
        tenant_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[GlobalParty], str | None]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(tenant_pk(tenant_id))
            & Key("sk").begins_with(GLOBAL_PARTY_PREFIX),
            "Limit": clamp_page_limit(limit),
        }
        start_key = decode_cursor(cursor)
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key
        try:
            response = self._table.query(**kwargs)
        except ClientError as e:
            raise map_aws_error(e, "GlobalPartyRepository.find_by_tenant") from e
        parties = [GlobalParty.from_dict(item) for item in response.get("Items", [])]
        return parties, encode_cursor(response.get("LastEvaluatedKey"))

    async def save(self, global_party: GlobalParty) -> None:
        try:
            self._table.put_item(
                Item={
                    **global_party.to_dict(),
                    "pk": tenant_pk(global_party.tenant_id),
                    "sk": f"{GLOBAL_PARTY_PREFIX}{global_party.id}",
                    "type": "GlobalParty",
                    "gsi1pk": email_pk(global_party.tenant_id, global_party.email),
                    "gsi1sk": global_party.id,
                }
            )
        except ClientError as e:
            raise map_aws_error(e, "GlobalPartyRepository.save") from e
        logger.info(
            "global_party_saved",
            tenant_id=global_party.tenant_id,
            global_party_id=global_party.id,
        )
