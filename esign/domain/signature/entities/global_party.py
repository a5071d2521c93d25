"""Global Party (Contact) Entity"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError, ErrorCodes
from ..enums import GlobalPartyStatus, PartyRole
from ..ids import new_id
from .party import EMAIL_PATTERN, Party


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class GlobalParty:
    """
    テナント単位で再利用される連絡先

    エンベロープ参加者のテンプレートとして使う。
    """

    tenant_id: str
    owner_id: str
    name: str
    email: str
    id: str = field(default_factory=new_id)
    phone: str | None = None
    locale: str = "en-US"
    role: PartyRole = PartyRole.SIGNER
    status: GlobalPartyStatus = GlobalPartyStatus.ACTIVE
    tags: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.email = self.email.strip().lower()
        if not self.name.strip():
            raise BadRequestError("Contact name is required", details={"field": "name"})
        if not EMAIL_PATTERN.match(self.email):
            raise BadRequestError("Invalid contact email", details={"field": "email"})

    def deactivate(self) -> None:
        if self.status == GlobalPartyStatus.DELETED:
            raise BadRequestError(
                "Deleted contact cannot be deactivated", ErrorCodes.INVALID_STATE_TRANSITION
            )
        self.status = GlobalPartyStatus.INACTIVE
        self.updated_at = _utc_now()

    def delete(self) -> None:
        self.status = GlobalPartyStatus.DELETED
        self.updated_at = _utc_now()

    def to_party(self, envelope_id: str, sequence: int = 1) -> Party:
        """エンベロープ参加者を生成"""
        if self.status != GlobalPartyStatus.ACTIVE:
            raise BadRequestError(
                f"Contact {self.id} is {self.status.value}",
                details={"global_party_id": self.id},
            )
        return Party(
            envelope_id=envelope_id,
            name=self.name,
            email=self.email,
            role=self.role,
            sequence=sequence,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "owner_id": self.owner_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "locale": self.locale,
            "role": self.role.value,
            "status": self.status.value,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GlobalParty:
        return cls(
            id=data["id"],
            tenant_id=data["tenant_id"],
            owner_id=data["owner_id"],
            name=data["name"],
            email=data["email"],
            phone=data.get("phone"),
            locale=data.get("locale", "en-US"),
            role=PartyRole(data.get("role", PartyRole.SIGNER.value)),
            status=GlobalPartyStatus(data.get("status", GlobalPartyStatus.ACTIVE.value)),
            tags=list(data.get("tags", [])),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
