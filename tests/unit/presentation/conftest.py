"""API test fixtures"""
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from esign.presentation.api import auth, dependencies
from esign.presentation.main import create_app


@pytest.fixture
def outbox_repository():
    outbox = AsyncMock()
    outbox.get_stats.return_value = {"pending": 2, "dispatched": 5, "failed": 1, "total": 8}
    outbox.list.return_value = ([], None)
    outbox.exists.return_value = False
    return outbox


@pytest.fixture
def current_actor(actor):
    """テストごとに差し替え可能な実行者"""
    return {"actor": actor}


@pytest.fixture
def app(
    current_actor,
    envelope_repository,
    consent_repository,
    global_party_repository,
    audit_repository,
    outbox_repository,
    idempotency_store,
    rate_limit_store,
):
    app = create_app()
    app.dependency_overrides[auth.get_current_actor] = lambda: current_actor["actor"]
    app.dependency_overrides[dependencies.get_envelope_repository] = lambda: envelope_repository
    app.dependency_overrides[dependencies.get_consent_repository] = lambda: consent_repository
    app.dependency_overrides[dependencies.get_global_party_repository] = (
        lambda: global_party_repository
    )
    app.dependency_overrides[dependencies.get_audit_repository] = lambda: audit_repository
    app.dependency_overrides[dependencies.get_outbox_repository] = lambda: outbox_repository
    app.dependency_overrides[dependencies.get_idempotency_store] = lambda: idempotency_store
    app.dependency_overrides[dependencies.get_rate_limit_store] = lambda: rate_limit_store
    return app


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)
