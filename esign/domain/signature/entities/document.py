"""Document Entity"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError, PayloadTooLargeError, UnsupportedMediaTypeError
from ..enums import (
    ALLOWED_CONTENT_TYPES,
    DOCUMENT_STATUS_TRANSITIONS,
    MAX_PDF_SIZE,
    DocumentStatus,
    assert_transition,
)
from ..ids import new_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """エンベロープに添付されるドキュメント"""

    envelope_id: str
    name: str
    content_type: str
    id: str = field(default_factory=new_id)
    s3_key: str = ""
    size_bytes: int = 0
    sha256: str | None = None
    status: DocumentStatus = DocumentStatus.PENDING
    error_message: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        if not self.name or not self.name.strip():
            raise BadRequestError(
                "Document name is required and cannot be empty", details={"field": "name"}
            )
        if len(self.name) > 255:
            raise BadRequestError(
                "Document name cannot exceed 255 characters", details={"field": "name"}
            )
        if self.content_type not in ALLOWED_CONTENT_TYPES:
            raise UnsupportedMediaTypeError(
                f"Unsupported content type: {self.content_type}",
                details={"allowed": sorted(ALLOWED_CONTENT_TYPES)},
            )
        if self.size_bytes < 0:
            raise BadRequestError("File size cannot be negative", details={"field": "size_bytes"})
        if self.size_bytes > MAX_PDF_SIZE:
            raise PayloadTooLargeError(
                f"Document exceeds maximum size of {MAX_PDF_SIZE} bytes",
                details={"size_bytes": self.size_bytes},
            )

    def change_status(self, target: DocumentStatus, error_message: str | None = None) -> DocumentStatus:
        """
        ステータスを遷移させる

        Returns:
            遷移前のステータス
        """
        assert_transition(DOCUMENT_STATUS_TRANSITIONS, self.status, target, "document")
        previous = self.status
        self.status = target
        self.error_message = error_message if target == DocumentStatus.ERROR else None
        self.updated_at = _utc_now()
        return previous

    @property
    def is_ready(self) -> bool:
        return self.status == DocumentStatus.READY

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "envelope_id": self.envelope_id,
            "name": self.name,
            "content_type": self.content_type,
            "s3_key": self.s3_key,
            "size_bytes": self.size_bytes,
            "sha256": self.sha256,
            "status": self.status.value,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Document:
        return cls(
            id=data["id"],
            envelope_id=data["envelope_id"],
            name=data["name"],
            content_type=data["content_type"],
            s3_key=data.get("s3_key", ""),
            size_bytes=int(data.get("size_bytes", 0)),
            sha256=data.get("sha256"),
            status=DocumentStatus(data.get("status", DocumentStatus.PENDING.value)),
            error_message=data.get("error_message"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
