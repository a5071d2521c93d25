"""Reliability Domain (Outbox / Idempotency / Rate Limit / Backoff)"""
from .backoff import DEFAULT_RETRY_CONFIG, RetryConfig, RetryDecision, backoff_delay, should_retry
from .idempotency_record import IdempotencyRecord, IdempotencyState
from .outbox_record import OutboxRecord, OutboxStatus, create_outbox_record_from_event
from .rate_limit import RateLimitResult, RateLimitWindow

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "RetryConfig",
    "RetryDecision",
    "backoff_delay",
    "should_retry",
    "IdempotencyRecord",
    "IdempotencyState",
    "OutboxRecord",
    "OutboxStatus",
    "create_outbox_record_from_event",
    "RateLimitResult",
    "RateLimitWindow",
]
