"""DynamoDB adapters"""
from .audit_repository import DynamoDBAuditRepository
from .envelope_repository import DynamoDBConsentRepository, DynamoDBEnvelopeRepository
from .global_party_repository import DynamoDBGlobalPartyRepository
from .idempotency_store import DynamoDBIdempotencyStore
from .outbox_repository import DynamoDBOutboxRepository, outbox_record_from_item
from .rate_limit_store import DynamoDBRateLimitStore

__all__ = [
    "DynamoDBAuditRepository",
    "DynamoDBConsentRepository",
    "DynamoDBEnvelopeRepository",
    "DynamoDBGlobalPartyRepository",
    "DynamoDBIdempotencyStore",
    "DynamoDBOutboxRepository",
    "DynamoDBRateLimitStore",
    "outbox_record_from_item",
]
