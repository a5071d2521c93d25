"""DynamoDB Envelope Repository Implementation"""
from __future__ import annotations

from typing import Any

import boto3
import structlog
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from esign.application.ports.repositories import IConsentRepository, IEnvelopeRepository
from esign.domain.errors import ConflictError, ErrorCodes
from esign.domain.signature.entities import Consent, Document, Envelope, Input, Party
from esign.domain.signature.enums import clamp_page_limit
from esign.infrastructure.aws.errors import is_conditional_check_failed, map_aws_error
from .pagination import decode_cursor, encode_cursor

logger = structlog.get_logger()

META = "META"
PARTY_PREFIX = "PARTY#"
DOCUMENT_PREFIX = "DOCUMENT#"
INPUT_PREFIX = "INPUT#"
CONSENT_PREFIX = "CONSENT#"
AUDIT_PREFIX = "AUDIT#"


def envelope_pk(envelope_id: str) -> str:
    return f"ENVELOPE#{envelope_id}"


def owner_pk(owner_id: str) -> str:
    return f"OWNER#{owner_id}"


class DynamoDBEnvelopeRepository(IEnvelopeRepository):
    """
    DynamoDB シングルテーブルのエンベロープリポジトリ

    Key design:
        pk = ENVELOPE#<id>
        sk = META | PARTY#<id> | DOCUMENT#<id> | INPUT#<id>
        gsi1pk = OWNER#<ownerId>, gsi1sk = <createdAt>#<id>   (META のみ)

    META の version 属性で楽観的ロックを行う。
    """

    def __init__(
        self,
        table_name: str = "esign-envelopes",
        region: str = "us-east-1",
        owner_index: str = "gsi1",
        table: Any = None,
    ):
        self.table_name = table_name
        self.owner_index = owner_index
        if table is None:
            table = boto3.resource("dynamodb", region_name=region).Table(table_name)
        self._table = table

    async def find_by_id(self, envelope_id: str) -> Envelope | None:
        items = self._query_partition(envelope_id)
        meta = next((item for item in items if item["sk"] == META), None)
        if meta is None:
            return None

        data = self._strip_keys(meta)
        data["parties"] = sorted(
            (self._strip_keys(i) for i in items if i["sk"].startswith(PARTY_PREFIX)),
            key=lambda p: (int(p.get("sequence", 1)), p["created_at"]),
        )
        data["documents"] = sorted(
            (self._strip_keys(i) for i in items if i["sk"].startswith(DOCUMENT_PREFIX)),
            key=lambda d: d["created_at"],
        )
        data["inputs"] = [self._strip_keys(i) for i in items if i["sk"].startswith(INPUT_PREFIX)]
        return Envelope.from_dict(data)

    async def save(self, envelope: Envelope) -> None:
        """
        エンベロープを保存

        Raises:
            ConflictError: 読み込み後に他のリクエストが更新していた場合
        """
        log = logger.bind(envelope_id=envelope.id, expected_version=envelope.version)
        meta = {
            **envelope.to_dict(include_children=False),
            "pk": envelope_pk(envelope.id),
            "sk": META,
            "type": "Envelope",
            "version": envelope.version + 1,
            "gsi1pk": owner_pk(envelope.owner_id),
            "gsi1sk": f"{envelope.created_at.isoformat()}#{envelope.id}",
        }
        if envelope.version == 0:
            condition: dict[str, Any] = {"ConditionExpression": "attribute_not_exists(pk)"}
        else:
            condition = {
                "ConditionExpression": "#version = :expected",
                "ExpressionAttributeNames": {"#version": "version"},
                "ExpressionAttributeValues": {":expected": envelope.version},
            }

        try:
            self._table.put_item(Item=meta, **condition)
        except ClientError as e:
            if is_conditional_check_failed(e):
                log.warning("envelope_concurrency_conflict")
                raise ConflictError(
                    f"Envelope {envelope.id} was modified concurrently",
                    ErrorCodes.COMMON_CONFLICT,
                    {"envelope_id": envelope.id, "expected_version": envelope.version},
                ) from e
            raise map_aws_error(e, "EnvelopeRepository.save") from e

        try:
            with self._table.batch_writer() as batch:
                for party in envelope.parties:
                    batch.put_item(Item=self._child_item(envelope.id, PARTY_PREFIX, party))
                for document in envelope.documents:
                    batch.put_item(Item=self._child_item(envelope.id, DOCUMENT_PREFIX, document))
                for field_input in envelope.inputs:
                    batch.put_item(Item=self._child_item(envelope.id, INPUT_PREFIX, field_input))
        except ClientError as e:
            raise map_aws_error(e, "EnvelopeRepository.save_children") from e

        envelope.version += 1
        log.info("envelope_saved", version=envelope.version, status=envelope.status.value)

    async def find_by_owner(
        self,
        owner_id: str,
        limit: int = 25,
        cursor: str | None = None,
    ) -> tuple[list[Envelope], str | None]:
        """所有者のエンベロープを新しい順に取得（参加者等は含まない）"""
        kwargs: dict[str, Any] = {
            "IndexName": self.owner_index,
            "KeyConditionExpression": Key("gsi1pk").eq(owner_pk(owner_id)),
            "ScanIndexForward": False,
            "Limit": clamp_page_limit(limit),
        }
        start_key = decode_cursor(cursor)
        if start_key:
            kwargs["ExclusiveStartKey"] = start_key

        try:
            response = self._table.query(**kwargs)
        except ClientError as e:
            raise map_aws_error(e, "EnvelopeRepository.find_by_owner") from e

        envelopes = [Envelope.from_dict(self._strip_keys(item)) for item in response.get("Items", [])]
        return envelopes, encode_cursor(response.get("LastEvaluatedKey"))

    async def delete(self, envelope_id: str) -> bool:
        items = self._query_partition(envelope_id)
        if not items:
            return False
        try:
            with self._table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"pk": item["pk"], "sk": item["sk"]})
        except ClientError as e:
            raise map_aws_error(e, "EnvelopeRepository.delete") from e
        logger.info("envelope_deleted", envelope_id=envelope_id, item_count=len(items))
        return True

    def _query_partition(self, envelope_id: str) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(envelope_pk(envelope_id)),
            "ConsistentRead": True,
        }
        items: list[dict[str, Any]] = []
        try:
            while True:
                response = self._table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise map_aws_error(e, "EnvelopeRepository.query") from e
        # 同意記録と監査証跡は集約の外で管理する
        return [
            item for item in items if not item["sk"].startswith((CONSENT_PREFIX, AUDIT_PREFIX))
        ]

    @staticmethod
    def _child_item(envelope_id: str, prefix: str, entity: Party | Document | Input) -> dict[str, Any]:
        return {
            **entity.to_dict(),
            "pk": envelope_pk(envelope_id),
            "sk": f"{prefix}{entity.id}",
            "type": type(entity).__name__,
        }

    @staticmethod
    def _strip_keys(item: dict[str, Any]) -> dict[str, Any]:
        return {
            k: v for k, v in item.items() if k not in ("pk", "sk", "type", "gsi1pk", "gsi1sk")
        }


class DynamoDBConsentRepository(IConsentRepository):
    """
    同意記録リポジトリ（エンベロープと同じテーブル）

    Key design:
        pk = ENVELOPE#<envelopeId>
        sk = CONSENT#<id>
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

    async def find_by_id(self, envelope_id: str, consent_id: str) -> Consent | None:
        try:
            response = self._table.get_item(
                Key={"pk": envelope_pk(envelope_id), "sk": f"{CONSENT_PREFIX}{consent_id}"},
                ConsistentRead=True,
            )
        except ClientError as e:
            raise map_aws_error(e, "ConsentRepository.find_by_id") from e
        item = response.get("Item")
        return Consent.from_dict(item) if item else None

    async def find_by_envelope(self, envelope_id: str) -> list[Consent]:
        try:
            response = self._table.query(
                KeyConditionExpression=Key("pk").eq(envelope_pk(envelope_id))
                & Key("sk").begins_with(CONSENT_PREFIX),
            )
        except ClientError as e:
            raise map_aws_error(e, "ConsentRepository.find_by_envelope") from e
        return [Consent.from_dict(item) for item in response.get("Items", [])]

    async def save(self, consent: Consent) -> None:
        try:
            self._table.put_item(
                Item={
                    **consent.to_dict(),
                    "pk": envelope_pk(consent.envelope_id),
                    "sk": f"{CONSENT_PREFIX}{consent.id}",
                    "type": "Consent",
                }
            )
        except ClientError as e:
            raise map_aws_error(e, "ConsentRepository.save") from e
        logger.info(
            "consent_saved",
            envelope_id=consent.envelope_id,
            consent_id=consent.id,
            status=consent.status.value,
        )
