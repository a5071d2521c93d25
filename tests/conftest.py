"""Shared test fixtures"""
from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError

from esign.application.ports import (
    IAuditRepository,
    IConsentRepository,
    IEnvelopeRepository,
    IEventPublisher,
    IGlobalPartyRepository,
    IIdempotencyStore,
    IRateLimitStore,
)
from esign.application.services import Actor
from esign.domain.errors import ConflictError, NotFoundError, TooManyRequestsError
from esign.domain.reliability import IdempotencyRecord, IdempotencyState, RateLimitResult
from esign.domain.signature.entities import AuditEvent, Consent, Envelope, GlobalParty


def make_client_error(code: str, operation: str = "PutItem", status: int = 400) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} message"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class InMemoryEnvelopeRepository(IEnvelopeRepository):
    def __init__(self) -> None:
        self.items: dict[str, dict[str, Any]] = {}

    async def find_by_id(self, envelope_id: str) -> Envelope | None:
        data = self.items.get(envelope_id)
        return Envelope.from_dict(data) if data else None

    async def save(self, envelope: Envelope) -> None:
        stored = self.items.get(envelope.id)
        current_version = stored["version"] if stored else 0
        if current_version != envelope.version:
            raise ConflictError(f"Envelope {envelope.id} was modified concurrently")
        data = envelope.to_dict()
        data["version"] = envelope.version + 1
        self.items[envelope.id] = data
        envelope.version += 1

    async def find_by_owner(self, owner_id, limit=25, cursor=None):
        envelopes = [Envelope.from_dict(d) for d in self.items.values() if d["owner_id"] == owner_id]
        return envelopes[:limit], None

    async def delete(self, envelope_id: str) -> bool:
        return self.items.pop(envelope_id, None) is not None


class InMemoryConsentRepository(IConsentRepository):
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict[str, Any]] = {}

    async def find_by_id(self, envelope_id: str, consent_id: str) -> Consent | None:
        data = self.items.get((envelope_id, consent_id))
        return Consent.from_dict(data) if data else None

    async def find_by_envelope(self, envelope_id: str) -> list[Consent]:
        return [Consent.from_dict(d) for (eid, _), d in self.items.items() if eid == envelope_id]

    async def save(self, consent: Consent) -> None:
        self.items[(consent.envelope_id, consent.id)] = consent.to_dict()


class InMemoryGlobalPartyRepository(IGlobalPartyRepository):
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict[str, Any]] = {}

    async def find_by_id(self, tenant_id: str, global_party_id: str) -> GlobalParty | None:
        data = self.items.get((tenant_id, global_party_id))
        return GlobalParty.from_dict(data) if data else None

    async def find_by_email(self, tenant_id: str, email: str) -> GlobalParty | None:
        for (tid, _), data in self.items.items():
            if tid == tenant_id and data["email"] == email.strip().lower():
                return GlobalParty.from_dict(data)
        return None

    async def find_by_tenant(self, tenant_id, limit=25, cursor=None):
        parties = [GlobalParty.from_dict(d) for (tid, _), d in self.items.items() if tid == tenant_id]
        return parties[:limit], None

    async def save(self, global_party: GlobalParty) -> None:
        self.items[(global_party.tenant_id, global_party.id)] = global_party.to_dict()


class InMemoryAuditRepository(IAuditRepository):
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    @property
    def event_types(self) -> list[str]:
        return [e.event_type.value for e in self.events]

    async def save_batch(self, events: list[AuditEvent]) -> None:
        self.events.extend(events)

    async def find_by_envelope(self, envelope_id, limit=25, cursor=None):
        events = [e for e in self.events if e.envelope_id == envelope_id]
        return events[:limit], None


class RecordingEventPublisher(IEventPublisher):
    def __init__(self) -> None:
        self.events: list = []

    async def publish(self, event) -> None:
        self.events.append(event)

    async def publish_batch(self, events) -> None:
        self.events.extend(events)

    @property
    def event_types(self) -> list[str]:
        return [e.event_type for e in self.events]


class InMemoryIdempotencyStore(IIdempotencyStore):
    def __init__(self) -> None:
        self.records: dict[str, IdempotencyRecord] = {}

    async def get(self, key: str) -> IdempotencyState | None:
        record = self.records.get(key)
        return record.state if record else None

    async def get_record(self, key: str) -> IdempotencyRecord | None:
        return self.records.get(key)

    async def put_pending(self, key: str, ttl_seconds: int) -> None:
        if key in self.records:
            raise ConflictError("Idempotency key already exists")
        self.records[key] = IdempotencyRecord(key=key, state=IdempotencyState.PENDING)

    async def put_completed(self, key: str, result: Any, ttl_seconds: int) -> None:
        if key not in self.records:
            raise NotFoundError("Idempotency key not found")
        self.records[key] = IdempotencyRecord(
            key=key, state=IdempotencyState.COMPLETED, result=result
        )


class InMemoryRateLimitStore(IRateLimitStore):
    def __init__(self) -> None:
        self.usage: dict[str, int] = {}

    async def increment_and_check(self, key, window) -> RateLimitResult:
        used = self.usage.get(key, 0)
        if used >= window.max_requests:
            raise TooManyRequestsError(
                "Rate limit exceeded",
                details={"max_requests": window.max_requests, "reset_in_seconds": 30},
            )
        self.usage[key] = used + 1
        return RateLimitResult(
            current_usage=used + 1,
            max_requests=window.max_requests,
            window_start=0,
            window_end=window.window_seconds,
            reset_in_seconds=window.window_seconds,
        )


@pytest.fixture
def actor() -> Actor:
    return Actor(tenant_id="tenant-1", user_id="user-1", email="owner@example.com")


@pytest.fixture
def other_actor() -> Actor:
    return Actor(tenant_id="tenant-1", user_id="user-2")


@pytest.fixture
def admin_actor() -> Actor:
    return Actor(tenant_id="tenant-1", user_id="admin-1", role="admin")


@pytest.fixture
def envelope_repository() -> InMemoryEnvelopeRepository:
    return InMemoryEnvelopeRepository()


@pytest.fixture
def consent_repository() -> InMemoryConsentRepository:
    return InMemoryConsentRepository()


@pytest.fixture
def global_party_repository() -> InMemoryGlobalPartyRepository:
    return InMemoryGlobalPartyRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def event_publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def idempotency_store() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


@pytest.fixture
def rate_limit_store() -> InMemoryRateLimitStore:
    return InMemoryRateLimitStore()


@pytest.fixture
def client_error():
    """ClientError を生成するファクトリ"""
    return make_client_error
