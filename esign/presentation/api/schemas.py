"""Request/Response Models"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from esign.domain.signature.enums import (
    AuthMethod,
    ConsentType,
    DocumentStatus,
    InputType,
    PartyRole,
)

# === Requests ===


class CreateEnvelopeRequest(BaseModel):
    """エンベロープ作成リクエスト"""

    title: str = Field(min_length=1, max_length=255, description="タイトル")
    description: str = Field(default="", max_length=1000, description="説明")


class AddPartyRequest(BaseModel):
    """参加者追加リクエスト（global_party_id 指定時は連絡先から生成）"""

    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=254)
    role: PartyRole = PartyRole.SIGNER
    sequence: int = Field(default=1, ge=1)
    auth_method: AuthMethod = AuthMethod.OTP_VIA_EMAIL
    global_party_id: str | None = None


class AddDocumentRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(default="application/pdf")
    size_bytes: int = Field(default=0, ge=0)
    s3_key: str = ""
    sha256: str | None = Field(default=None, pattern=r"^[a-fA-F0-9]{64}$")


class ChangeDocumentStatusRequest(BaseModel):
    status: DocumentStatus
    error_message: str | None = Field(default=None, max_length=1000)


class AddInputRequest(BaseModel):
    document_id: str
    party_id: str
    input_type: InputType
    page: int = Field(ge=1)
    x: float = Field(ge=0)
    y: float = Field(ge=0)
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    required: bool = True


class CancelEnvelopeRequest(BaseModel):
    reason: str = Field(default="", max_length=1000)


class DeclineRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class RecordConsentRequest(BaseModel):
    """同意記録リクエスト（IP / User-Agent 未指定時はリクエストから取得）"""

    party_id: str
    consent_text: str = Field(min_length=1)
    consent_type: ConsentType = ConsentType.SIGNATURE
    granted: bool = True
    ip_address: str | None = None
    user_agent: str | None = None
    country: str | None = Field(default=None, max_length=2)


class CreateContactRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=254)
    phone: str | None = None
    locale: str = "en-US"
    role: PartyRole = PartyRole.SIGNER
    tags: list[str] = Field(default_factory=list)


# === Responses ===


class EnvelopeResponse(BaseModel):
    """エンベロープレスポンス"""

    id: str
    tenant_id: str
    owner_id: str
    title: str
    description: str
    status: str
    sent_at: str | None = None
    completed_at: str | None = None
    cancel_reason: str | None = None
    created_at: str
    updated_at: str
    version: int
    parties: list[dict[str, Any]] = Field(default_factory=list)
    documents: list[dict[str, Any]] = Field(default_factory=list)
    inputs: list[dict[str, Any]] = Field(default_factory=list)


class EnvelopeListResponse(BaseModel):
    items: list[EnvelopeResponse]
    next_cursor: str | None = None


class ContactListResponse(BaseModel):
    items: list[dict[str, Any]]
    next_cursor: str | None = None


class AuditTrailResponse(BaseModel):
    items: list[dict[str, Any]]
    next_cursor: str | None = None


class OutboxListResponse(BaseModel):
    items: list[dict[str, Any]]
    next_cursor: str | None = None


class OutboxStatsResponse(BaseModel):
    pending: int
    dispatched: int
    failed: int
    total: int
