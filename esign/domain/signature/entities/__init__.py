"""Signature Entities"""
from .audit_event import AuditEvent, audit_event_from_domain_event
from .consent import Consent
from .document import Document
from .envelope import Envelope, InvalidStateError
from .global_party import GlobalParty
from .input import Input
from .party import Party

__all__ = [
    "AuditEvent",
    "Consent",
    "Document",
    "Envelope",
    "GlobalParty",
    "Input",
    "InvalidStateError",
    "Party",
    "audit_event_from_domain_event",
]
