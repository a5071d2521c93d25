"""Signature Domain Module"""
from .entities import Consent, Document, Envelope, GlobalParty, Input, InvalidStateError, Party
from .enums import (
    ConsentStatus,
    ConsentType,
    DocumentStatus,
    EnvelopeStatus,
    GlobalPartyStatus,
    InputType,
    PartyRole,
    PartyStatus,
)

__all__ = [
    "Consent",
    "Document",
    "Envelope",
    "GlobalParty",
    "Input",
    "InvalidStateError",
    "Party",
    "ConsentStatus",
    "ConsentType",
    "DocumentStatus",
    "EnvelopeStatus",
    "GlobalPartyStatus",
    "InputType",
    "PartyRole",
    "PartyStatus",
]
