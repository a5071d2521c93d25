"""Branded Identifiers"""
from typing import NewType
from uuid import uuid4

TenantId = NewType("TenantId", str)
UserId = NewType("UserId", str)
EnvelopeId = NewType("EnvelopeId", str)
PartyId = NewType("PartyId", str)
GlobalPartyId = NewType("GlobalPartyId", str)
DocumentId = NewType("DocumentId", str)
InputId = NewType("InputId", str)
ConsentId = NewType("ConsentId", str)


def new_id() -> str:
    """新しい識別子を生成"""
    return str(uuid4())
