"""Application Services"""
from .contact_service import ContactService
from .envelope_service import (
    Actor,
    AddDocumentInput,
    AddInputInput,
    AddPartyInput,
    EnvelopeService,
    RecordConsentInput,
)
from .idempotency_runner import IdempotencyRunner
from .outbox_processor import (
    OutboxBatchResult,
    OutboxProcessor,
    OutboxProcessorOptions,
    OutboxProcessResult,
)

__all__ = [
    "Actor",
    "AddDocumentInput",
    "AddInputInput",
    "AddPartyInput",
    "ContactService",
    "EnvelopeService",
    "IdempotencyRunner",
    "OutboxBatchResult",
    "OutboxProcessor",
    "OutboxProcessorOptions",
    "OutboxProcessResult",
    "RecordConsentInput",
]
