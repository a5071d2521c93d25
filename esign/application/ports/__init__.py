"""Application Ports (Interfaces)"""
from .event_publisher import IEventPublisher, IOutboxDispatcher
from .idempotency import IIdempotencyStore
from .outbox import IOutboxRepository
from .rate_limit import IRateLimitStore
from .repositories import (
    IAuditRepository,
    IConsentRepository,
    IEnvelopeRepository,
    IGlobalPartyRepository,
)

__all__ = [
    "IEventPublisher",
    "IOutboxDispatcher",
    "IIdempotencyStore",
    "IOutboxRepository",
    "IRateLimitStore",
    "IAuditRepository",
    "IConsentRepository",
    "IEnvelopeRepository",
    "IGlobalPartyRepository",
]
