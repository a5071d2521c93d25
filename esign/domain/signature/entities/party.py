"""Party Entity"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError
from ..enums import ENVELOPE_VALIDATION_RULES, AuthMethod, PartyRole, PartyStatus
from ..ids import new_id

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Party:
    """
    エンベロープの参加者（署名者・承認者・閲覧者）

    エンベロープ集約の内部エンティティとして扱う。
    """

    envelope_id: str
    name: str
    email: str
    id: str = field(default_factory=new_id)
    role: PartyRole = PartyRole.SIGNER
    status: PartyStatus = PartyStatus.PENDING
    sequence: int = 1
    auth_method: AuthMethod = AuthMethod.OTP_VIA_EMAIL
    signed_at: datetime | None = None
    declined_reason: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.email = self.email.strip().lower()
        self._validate()

    def _validate(self) -> None:
        name = self.name.strip()
        if not (
            ENVELOPE_VALIDATION_RULES["MIN_NAME_LENGTH"]
            <= len(name)
            <= ENVELOPE_VALIDATION_RULES["MAX_NAME_LENGTH"]
        ):
            raise BadRequestError(
                "Party name must be between 1 and 255 characters",
                details={"field": "name"},
            )
        if not EMAIL_PATTERN.match(self.email):
            raise BadRequestError("Invalid party email", details={"field": "email"})
        if self.sequence < 1:
            raise BadRequestError("Party sequence must be >= 1", details={"field": "sequence"})

    @property
    def is_signer(self) -> bool:
        return self.role == PartyRole.SIGNER

    @property
    def has_signed(self) -> bool:
        return self.status == PartyStatus.SIGNED

    def invite(self) -> None:
        if self.status == PartyStatus.PENDING:
            self.status = PartyStatus.INVITED
            self.updated_at = _utc_now()

    def sign(self) -> None:
        if self.status in (PartyStatus.SIGNED, PartyStatus.DECLINED):
            raise BadRequestError(
                f"Party {self.id} has already {self.status.value}",
                details={"party_id": self.id, "status": self.status.value},
            )
        now = _utc_now()
        self.status = PartyStatus.SIGNED
        self.signed_at = now
        self.updated_at = now

    def decline(self, reason: str) -> None:
        if self.status in (PartyStatus.SIGNED, PartyStatus.DECLINED):
            raise BadRequestError(
                f"Party {self.id} has already {self.status.value}",
                details={"party_id": self.id, "status": self.status.value},
            )
        self.status = PartyStatus.DECLINED
        self.declined_reason = reason
        self.updated_at = _utc_now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "envelope_id": self.envelope_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "sequence": self.sequence,
            "auth_method": self.auth_method.value,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
            "declined_reason": self.declined_reason,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Party:
        return cls(
            id=data["id"],
            envelope_id=data["envelope_id"],
            name=data["name"],
            email=data["email"],
            role=PartyRole(data.get("role", PartyRole.SIGNER.value)),
            status=PartyStatus(data.get("status", PartyStatus.PENDING.value)),
            sequence=int(data.get("sequence", 1)),
            auth_method=AuthMethod(data.get("auth_method", AuthMethod.OTP_VIA_EMAIL.value)),
            signed_at=datetime.fromisoformat(data["signed_at"]) if data.get("signed_at") else None,
            declined_reason=data.get("declined_reason"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
