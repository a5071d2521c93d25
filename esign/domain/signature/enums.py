"""Signature Domain Enumerations and Status Tables"""
from __future__ import annotations

from enum import Enum
from typing import Mapping, TypeVar

from esign.domain.errors import BadRequestError, ErrorCodes


class EnvelopeStatus(str, Enum):
    """エンベロープのステータス"""

    DRAFT = "draft"
    SENT = "sent"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"
    DECLINED = "declined"


class DocumentStatus(str, Enum):
    """ドキュメントのステータス"""

    PENDING = "pending"
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class PartyStatus(str, Enum):
    PENDING = "pending"
    INVITED = "invited"
    SIGNED = "signed"
    DECLINED = "declined"
    ACTIVE = "active"


class PartyRole(str, Enum):
    SIGNER = "signer"
    APPROVER = "approver"
    VIEWER = "viewer"


class ConsentStatus(str, Enum):
    PENDING = "pending"
    GRANTED = "granted"
    REVOKED = "revoked"
    DENIED = "denied"
    EXPIRED = "expired"
    DELEGATED = "delegated"


class ConsentType(str, Enum):
    SIGNATURE = "signature"
    VIEW = "view"
    DELEGATE = "delegate"


class InputType(str, Enum):
    SIGNATURE = "signature"
    INITIALS = "initials"
    TEXT = "text"
    CHECKBOX = "checkbox"
    DATE = "date"


class GlobalPartyStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class AuthMethod(str, Enum):
    OTP_VIA_EMAIL = "otpViaEmail"
    OTP_VIA_SMS = "otpViaSms"


ENVELOPE_TRANSITION_RULES: dict[EnvelopeStatus, frozenset[EnvelopeStatus]] = {
    EnvelopeStatus.DRAFT: frozenset(
        {
            EnvelopeStatus.SENT,
            EnvelopeStatus.IN_PROGRESS,
            EnvelopeStatus.COMPLETED,
            EnvelopeStatus.CANCELED,
            EnvelopeStatus.DECLINED,
        }
    ),
    EnvelopeStatus.SENT: frozenset(
        {
            EnvelopeStatus.IN_PROGRESS,
            EnvelopeStatus.COMPLETED,
            EnvelopeStatus.CANCELED,
            EnvelopeStatus.DECLINED,
        }
    ),
    EnvelopeStatus.IN_PROGRESS: frozenset(
        {EnvelopeStatus.COMPLETED, EnvelopeStatus.CANCELED, EnvelopeStatus.DECLINED}
    ),
    EnvelopeStatus.COMPLETED: frozenset(),
    EnvelopeStatus.CANCELED: frozenset(),
    EnvelopeStatus.DECLINED: frozenset(),
}

DOCUMENT_STATUS_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.UPLOADED, DocumentStatus.ERROR}),
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.PROCESSING, DocumentStatus.ERROR}),
    DocumentStatus.PROCESSING: frozenset({DocumentStatus.READY, DocumentStatus.ERROR}),
    DocumentStatus.READY: frozenset(),
    DocumentStatus.ERROR: frozenset({DocumentStatus.PENDING}),
}

ENVELOPE_VALIDATION_RULES = {
    "MAX_PARTIES": 50,
    "MAX_DOCUMENTS": 100,
    "MIN_TITLE_LENGTH": 1,
    "MAX_TITLE_LENGTH": 255,
    "MAX_DESCRIPTION_LENGTH": 1000,
    "MIN_NAME_LENGTH": 1,
    "MAX_NAME_LENGTH": 255,
}

PAGINATION_LIMITS = {"MIN_LIMIT": 1, "MAX_LIMIT": 100, "DEFAULT_LIMIT": 25}

ALLOWED_CONTENT_TYPES = frozenset(
    [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    ]
)

# bytes
MAX_PDF_SIZE = 50 * 1024 * 1024

EVENT_SOURCE = "signature-service"

_S = TypeVar("_S", bound=Enum)


def can_transition(table: Mapping[_S, frozenset[_S]], current: _S, target: _S) -> bool:
    """遷移テーブル上で current -> target が許可されているか"""
    return target in table.get(current, frozenset())


def assert_transition(
    table: Mapping[_S, frozenset[_S]],
    current: _S,
    target: _S,
    entity: str,
) -> None:
    """
    状態遷移を検証

    Raises:
        BadRequestError: 遷移テーブルで許可されていない場合
    """
    if not can_transition(table, current, target):
        raise BadRequestError(
            f"Invalid {entity} state transition: {current.value} -> {target.value}",
            ErrorCodes.INVALID_STATE_TRANSITION,
            {"entity": entity, "from": current.value, "to": target.value},
        )


def clamp_page_limit(limit: int | None) -> int:
    """ページサイズを許容範囲に丸める"""
    if not limit:
        return PAGINATION_LIMITS["DEFAULT_LIMIT"]
    return max(PAGINATION_LIMITS["MIN_LIMIT"], min(PAGINATION_LIMITS["MAX_LIMIT"], int(limit)))


class AuditEventType(str, Enum):
    ENVELOPE_CREATED = "envelope_created"
    ENVELOPE_SENT = "envelope_sent"
    ENVELOPE_COMPLETED = "envelope_completed"
    ENVELOPE_CANCELLED = "envelope_cancelled"
    ENVELOPE_DECLINED = "envelope_declined"
    SIGNER_ADDED = "signer_added"
    SIGNER_SIGNED = "signer_signed"
    DOCUMENT_ATTACHED = "document_attached"
    DOCUMENT_STATUS_CHANGED = "document_status_changed"
    INPUT_ADDED = "input_added"
    CONSENT_GIVEN = "consent_given"
    CONSENT_DENIED = "consent_denied"
    CONSENT_REVOKED = "consent_revoked"


# 参加者の特定が必須のイベント
PARTY_AUDIT_EVENT_TYPES = frozenset(
    {
        AuditEventType.ENVELOPE_DECLINED,
        AuditEventType.SIGNER_ADDED,
        AuditEventType.SIGNER_SIGNED,
        AuditEventType.INPUT_ADDED,
        AuditEventType.CONSENT_GIVEN,
        AuditEventType.CONSENT_DENIED,
        AuditEventType.CONSENT_REVOKED,
    }
)
