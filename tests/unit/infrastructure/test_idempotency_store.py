"""DynamoDBIdempotencyStore Unit Tests"""
import json
import time
from unittest.mock import MagicMock

import pytest

from esign.domain.errors import ConflictError, NotFoundError, ServiceUnavailableError
from esign.application.services import IdempotencyRunner
from esign.domain.reliability import IdempotencyState
from esign.infrastructure.dynamodb import DynamoDBIdempotencyStore
from esign.infrastructure.dynamodb.idempotency_store import (
    NON_SERIALIZABLE_RESULT,
    stable_json,
    to_ttl,
)


def _item(state: str = "pending", ttl: int | None = None, **extra) -> dict:
    item = {
        "pk": "IDEMPOTENCY#k1",
        "sk": "META",
        "type": "Idempotency",
        "idempotencyKey": "k1",
        "state": state,
        "createdAt": "2026-01-01T00:00:00+00:00",
        "updatedAt": "2026-01-01T00:00:00+00:00",
    }
    if ttl is not None:
        item["ttl"] = ttl
    item.update(extra)
    return item


@pytest.fixture
def table():
    return MagicMock()


@pytest.fixture
def store(table):
    return DynamoDBIdempotencyStore(table=table)


class TestHelpers:
    """ヘルパー関数のテスト"""

    def test_to_ttl(self):
        assert to_ttl(300, now=1000.7) == 1300
        assert to_ttl(0) is None
        assert to_ttl(None) is None

    def test_stable_json_sorts_keys(self):
        assert stable_json({"b": 1, "a": 2}) == '{"a":2,"b":1}'

    def test_stable_json_non_serializable(self):
        """正常: シリアライズ不可の値は固定値になる"""
        assert json.loads(stable_json({"x": object()})) == NON_SERIALIZABLE_RESULT


class TestGet:
    """get / get_record のテスト"""

    async def test_missing_key(self, store, table):
        table.get_item.return_value = {}

        assert await store.get("k1") is None
        table.get_item.assert_called_once_with(
            Key={"pk": "IDEMPOTENCY#k1", "sk": "META"}, ConsistentRead=True
        )

    async def test_completed_record(self, store, table):
        """正常: 完了済みレコードは結果付きで返る"""
        table.get_item.return_value = {
            "Item": _item("completed", ttl=int(time.time()) + 60, resultJson='{"id":"e1"}')
        }

        record = await store.get_record("k1")

        assert record.state == IdempotencyState.COMPLETED
        assert record.result == {"id": "e1"}
        assert record.is_completed

    async def test_expired_record_is_absent(self, store, table):
        """正常: 期限切れのレコードは未登録扱い"""
        table.get_item.return_value = {"Item": _item("pending", ttl=int(time.time()) - 1)}

        assert await store.get("k1") is None

    async def test_malformed_record_is_absent(self, store, table):
        """正常: 形式不正なレコードは未登録扱い"""
        table.get_item.return_value = {"Item": _item("unknown-state")}

        assert await store.get("k1") is None


class TestPut:
    """put_pending / put_completed のテスト"""

    async def test_put_pending(self, store, table):
        await store.put_pending("k1", 300)

        kwargs = table.put_item.call_args.kwargs
        assert kwargs["Item"]["state"] == "pending"
        assert kwargs["Item"]["ttl"] > int(time.time())
        assert kwargs["ConditionExpression"] == "attribute_not_exists(pk) OR #ttl <= :now"
        assert kwargs["ExpressionAttributeNames"] == {"#ttl": "ttl"}

    async def test_put_pending_without_ttl(self, store, table):
        """正常: TTL 0 の場合は ttl 属性を付けない"""
        await store.put_pending("k1", 0)

        assert "ttl" not in table.put_item.call_args.kwargs["Item"]

    async def test_put_pending_existing_key(self, store, table, client_error):
        """異常: 既存キーへの pending 登録は 409"""
        table.put_item.side_effect = client_error("ConditionalCheckFailedException")

        with pytest.raises(ConflictError):
            await store.put_pending("k1", 300)

    async def test_expired_key_can_be_reused(self, store, table):
        """正常: 期限切れで残っているキーは再登録できる"""
        expired_at = int(time.time()) - 5
        table.get_item.return_value = {"Item": _item("completed", ttl=expired_at)}
        runner = IdempotencyRunner(store)

        async def command():
            return {"id": "e2"}

        result = await runner.run("k1", command)

        assert result == {"id": "e2"}
        kwargs = table.put_item.call_args.kwargs
        assert "#ttl <= :now" in kwargs["ConditionExpression"]
        assert kwargs["ExpressionAttributeValues"][":now"] >= expired_at
        assert table.update_item.call_args.kwargs["ExpressionAttributeValues"][":completed"] == "completed"

    async def test_put_completed(self, store, table):
        await store.put_completed("k1", {"b": 1, "a": 2}, 300)

        kwargs = table.update_item.call_args.kwargs
        assert kwargs["ExpressionAttributeValues"][":completed"] == "completed"
        assert kwargs["ExpressionAttributeValues"][":resultJson"] == '{"a":2,"b":1}'
        assert "#ttl = :ttl" in kwargs["UpdateExpression"]

    async def test_put_completed_missing_key(self, store, table, client_error):
        """異常: 未登録キーの完了は 404"""
        table.update_item.side_effect = client_error("ConditionalCheckFailedException", "UpdateItem")

        with pytest.raises(NotFoundError):
            await store.put_completed("k1", {}, 300)

    async def test_aws_failure_is_mapped(self, store, table, client_error):
        """異常: AWS 側の障害は 503"""
        table.put_item.side_effect = client_error("ServiceUnavailable", status=503)

        with pytest.raises(ServiceUnavailableError):
            await store.put_pending("k1", 300)
