"""Health / Contact / Outbox API Integration Tests"""
from unittest.mock import AsyncMock

from esign.domain.errors import ErrorCodes, ServiceUnavailableError
from esign.presentation.api import dependencies


class TestHealthRoutes:
    """ヘルスチェックのテスト"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client, outbox_repository):
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "checks": {"dynamodb": "ok"}}

    def test_not_ready(self, client, outbox_repository):
        """異常: DynamoDB に到達できなければ 503"""
        outbox_repository.exists.side_effect = ServiceUnavailableError("down")

        response = client.get("/ready")

        assert response.status_code == 503


class TestContactRoutes:
    """連絡先 API のテスト"""

    def test_create_and_get_contact(self, client):
        created = client.post(
            "/api/v1/contacts",
            json={"name": "Bob", "email": "Bob@example.com", "tags": ["legal"]},
        )

        assert created.status_code == 201
        contact_id = created.json()["id"]
        fetched = client.get(f"/api/v1/contacts/{contact_id}")
        assert fetched.json()["email"] == "bob@example.com"
        assert fetched.json()["tags"] == ["legal"]

    def test_duplicate_contact(self, client):
        """異常: 同じメールアドレスの連絡先は 409"""
        client.post("/api/v1/contacts", json={"name": "Bob", "email": "bob@example.com"})

        response = client.post("/api/v1/contacts", json={"name": "Bob", "email": "bob@example.com"})

        assert response.status_code == 409

    def test_deactivate_and_list(self, client):
        contact_id = client.post(
            "/api/v1/contacts", json={"name": "Bob", "email": "bob@example.com"}
        ).json()["id"]

        deactivated = client.post(f"/api/v1/contacts/{contact_id}/deactivate")
        listed = client.get("/api/v1/contacts")

        assert deactivated.json()["status"] == "inactive"
        assert [c["id"] for c in listed.json()["items"]] == [contact_id]

    def test_add_party_from_contact(self, client):
        """正常: 連絡先 ID から参加者を追加できる"""
        contact_id = client.post(
            "/api/v1/contacts", json={"name": "Bob", "email": "bob@example.com"}
        ).json()["id"]
        envelope_id = client.post("/api/v1/envelopes", json={"title": "NDA"}).json()["id"]

        response = client.post(
            f"/api/v1/envelopes/{envelope_id}/parties", json={"global_party_id": contact_id}
        )

        assert response.status_code == 201
        assert response.json()["email"] == "bob@example.com"


class TestOutboxRoutes:
    """アウトボックス管理 API のテスト"""

    def test_stats_requires_admin(self, client):
        """異常: 管理者以外は 403"""
        response = client.get("/api/v1/outbox/stats")

        assert response.status_code == 403
        assert response.json()["code"] == ErrorCodes.AUTH_FORBIDDEN

    def test_stats(self, client, current_actor, admin_actor):
        current_actor["actor"] = admin_actor

        response = client.get("/api/v1/outbox/stats")

        assert response.status_code == 200
        assert response.json() == {"pending": 2, "dispatched": 5, "failed": 1, "total": 8}

    def test_list_failed(self, client, current_actor, admin_actor, outbox_repository):
        current_actor["actor"] = admin_actor

        response = client.get("/api/v1/outbox", params={"status": "failed", "limit": 5})

        assert response.status_code == 200
        args = outbox_repository.list.await_args.args
        assert args[0].value == "failed"
        assert args[2] == 5


class TestErrorHandling:
    """エラーハンドリングのテスト"""

    def test_unexpected_error_returns_500(self, app, client):
        """異常: 想定外の例外は詳細を隠した 500"""
        broken = AsyncMock()
        broken.find_by_id.side_effect = RuntimeError("secret connection string")
        app.dependency_overrides[dependencies.get_envelope_repository] = lambda: broken

        response = client.get("/api/v1/envelopes/e1")

        assert response.status_code == 500
        body = response.json()
        assert body["code"] == ErrorCodes.COMMON_INTERNAL_ERROR
        assert "secret" not in body["message"]
