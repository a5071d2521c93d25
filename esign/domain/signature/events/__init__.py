"""Signature Domain Events"""
from .signature_events import (
    ConsentCreated,
    ConsentRevoked,
    DocumentAttached,
    DocumentStatusChanged,
    DomainEvent,
    EnvelopeCancelled,
    EnvelopeCompleted,
    EnvelopeCreated,
    EnvelopeDeclined,
    EnvelopeSent,
    EnvelopeSigned,
    InputAdded,
    PartyCreated,
)

__all__ = [
    "DomainEvent",
    "EnvelopeCreated",
    "EnvelopeSent",
    "EnvelopeSigned",
    "EnvelopeCompleted",
    "EnvelopeCancelled",
    "EnvelopeDeclined",
    "PartyCreated",
    "DocumentAttached",
    "DocumentStatusChanged",
    "InputAdded",
    "ConsentCreated",
    "ConsentRevoked",
]
