"""API Dependencies"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Awaitable, Callable

import structlog
from fastapi import Depends, Request, Response

from esign.application.ports import (
    IAuditRepository,
    IConsentRepository,
    IEnvelopeRepository,
    IEventPublisher,
    IGlobalPartyRepository,
    IIdempotencyStore,
    IOutboxRepository,
    IRateLimitStore,
)
from esign.application.services import Actor, ContactService, EnvelopeService, IdempotencyRunner
from esign.domain.reliability import RateLimitWindow
from esign.infrastructure.config import Settings, get_settings
from esign.infrastructure.dynamodb import (
    DynamoDBAuditRepository,
    DynamoDBConsentRepository,
    DynamoDBEnvelopeRepository,
    DynamoDBGlobalPartyRepository,
    DynamoDBIdempotencyStore,
    DynamoDBOutboxRepository,
    DynamoDBRateLimitStore,
)
from esign.infrastructure.events import OutboxEventPublisher
from .auth import CurrentActor

logger = structlog.get_logger()

IDEMPOTENCY_HEADER = "Idempotency-Key"


# === Adapters (プロセス内で再利用) ===


@lru_cache()
def get_envelope_repository() -> IEnvelopeRepository:
    """Envelope Repository の依存性注入"""
    settings = get_settings()
    return DynamoDBEnvelopeRepository(
        table_name=settings.envelopes_table,
        region=settings.aws_region,
    )


@lru_cache()
def get_consent_repository() -> IConsentRepository:
    settings = get_settings()
    return DynamoDBConsentRepository(
        table_name=settings.envelopes_table,
        region=settings.aws_region,
    )


@lru_cache()
def get_global_party_repository() -> IGlobalPartyRepository:
    settings = get_settings()
    return DynamoDBGlobalPartyRepository(
        table_name=settings.envelopes_table,
        region=settings.aws_region,
    )


@lru_cache()
def get_audit_repository() -> IAuditRepository:
    settings = get_settings()
    return DynamoDBAuditRepository(
        table_name=settings.envelopes_table,
        region=settings.aws_region,
    )


@lru_cache()
def get_outbox_repository() -> IOutboxRepository:
    """Outbox Repository の依存性注入"""
    settings = get_settings()
    return DynamoDBOutboxRepository(
        table_name=settings.outbox_table,
        region=settings.aws_region,
        status_index=settings.outbox_status_index,
    )


@lru_cache()
def get_idempotency_store() -> IIdempotencyStore:
    settings = get_settings()
    return DynamoDBIdempotencyStore(
        table_name=settings.idempotency_table,
        region=settings.aws_region,
    )


@lru_cache()
def get_rate_limit_store() -> IRateLimitStore:
    settings = get_settings()
    return DynamoDBRateLimitStore(
        table_name=settings.rate_limit_table,
        region=settings.aws_region,
    )


# === Request scoped ===


def get_event_publisher(
    request: Request,
    outbox: Annotated[IOutboxRepository, Depends(get_outbox_repository)],
) -> IEventPublisher:
    """Event Publisher の依存性注入（アウトボックス経由）"""
    trace_id = getattr(request.state, "request_id", None)
    return OutboxEventPublisher(outbox, trace_id=trace_id)


def get_envelope_service(
    envelopes: Annotated[IEnvelopeRepository, Depends(get_envelope_repository)],
    consents: Annotated[IConsentRepository, Depends(get_consent_repository)],
    publisher: Annotated[IEventPublisher, Depends(get_event_publisher)],
    global_parties: Annotated[IGlobalPartyRepository, Depends(get_global_party_repository)],
    audit: Annotated[IAuditRepository, Depends(get_audit_repository)],
) -> EnvelopeService:
    return EnvelopeService(
        envelope_repository=envelopes,
        consent_repository=consents,
        event_publisher=publisher,
        global_party_repository=global_parties,
        audit_repository=audit,
    )


def get_contact_service(
    repository: Annotated[IGlobalPartyRepository, Depends(get_global_party_repository)],
) -> ContactService:
    return ContactService(repository)


def get_idempotency_runner(
    store: Annotated[IIdempotencyStore, Depends(get_idempotency_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IdempotencyRunner:
    return IdempotencyRunner(store, default_ttl_seconds=settings.idempotency_ttl_seconds)


async def enforce_rate_limit(
    response: Response,
    actor: CurrentActor,
    store: Annotated[IRateLimitStore, Depends(get_rate_limit_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """ユーザー単位の固定ウィンドウ・レート制限（超過時は 429）"""
    window = RateLimitWindow(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
        ttl_seconds=settings.rate_limit_ttl_seconds,
    )
    result = await store.increment_and_check(f"{actor.tenant_id}:{actor.user_id}", window)
    response.headers["X-RateLimit-Limit"] = str(result.max_requests)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(result.reset_in_seconds)


class CommandExecutor:
    """
    コマンド実行ヘルパー

    Idempotency-Key ヘッダーがあれば `<tenant>:<user>:<route>:<key>` で冪等実行する。
    """

    def __init__(self, request: Request, actor: Actor, runner: IdempotencyRunner):
        self._request = request
        self._actor = actor
        self._runner = runner

    @property
    def idempotency_key(self) -> str | None:
        key = self._request.headers.get(IDEMPOTENCY_HEADER)
        if not key or not key.strip():
            return None
        route = f"{self._request.method}:{self._request.url.path}"
        return f"{self._actor.tenant_id}:{self._actor.user_id}:{route}:{key.strip()}"

    async def run(self, fn: Callable[[], Awaitable[dict[str, Any]]]) -> dict[str, Any]:
        key = self.idempotency_key
        if key is None:
            return await fn()
        return await self._runner.run(key, fn)


def get_command_executor(
    request: Request,
    actor: CurrentActor,
    runner: Annotated[IdempotencyRunner, Depends(get_idempotency_runner)],
) -> CommandExecutor:
    return CommandExecutor(request, actor, runner)


EnvelopeServiceDep = Annotated[EnvelopeService, Depends(get_envelope_service)]
ContactServiceDep = Annotated[ContactService, Depends(get_contact_service)]
CommandExecutorDep = Annotated[CommandExecutor, Depends(get_command_executor)]
OutboxRepositoryDep = Annotated[IOutboxRepository, Depends(get_outbox_repository)]
