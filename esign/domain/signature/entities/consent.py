"""Consent Entity"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from esign.domain.errors import BadRequestError, ErrorCodes
from ..enums import ConsentStatus, ConsentType
from ..ids import new_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Consent:
    """
    電子署名への同意記録

    ESIGN Act / UETA 対応のため、同意時刻・IP・User-Agent・提示文言を保持する。
    """

    envelope_id: str
    party_id: str
    id: str = field(default_factory=new_id)
    consent_type: ConsentType = ConsentType.SIGNATURE
    status: ConsentStatus = ConsentStatus.PENDING
    consent_text: str = ""
    ip_address: str = ""
    user_agent: str = ""
    country: str | None = None
    consent_given_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def grant(
        self,
        consent_text: str,
        ip_address: str,
        user_agent: str,
        country: str | None = None,
    ) -> None:
        """同意を付与"""
        if self.status != ConsentStatus.PENDING:
            raise BadRequestError(
                f"Consent cannot be granted from {self.status.value} state",
                ErrorCodes.INVALID_STATE_TRANSITION,
            )
        missing = [
            name
            for name, value in (
                ("consent_text", consent_text),
                ("ip_address", ip_address),
                ("user_agent", user_agent),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise BadRequestError(
                "Consent evidence is incomplete", details={"missing": missing}
            )
        now = _utc_now()
        self.consent_text = consent_text
        self.ip_address = ip_address
        self.user_agent = user_agent
        self.country = country
        self.status = ConsentStatus.GRANTED
        self.consent_given_at = now
        self.updated_at = now

    def deny(self) -> None:
        if self.status != ConsentStatus.PENDING:
            raise BadRequestError(
                f"Consent cannot be denied from {self.status.value} state",
                ErrorCodes.INVALID_STATE_TRANSITION,
            )
        self.status = ConsentStatus.DENIED
        self.updated_at = _utc_now()

    def revoke(self) -> None:
        if self.status != ConsentStatus.GRANTED:
            raise BadRequestError(
                "Only granted consent can be revoked",
                ErrorCodes.INVALID_STATE_TRANSITION,
            )
        self.status = ConsentStatus.REVOKED
        self.updated_at = _utc_now()

    @property
    def is_granted(self) -> bool:
        return self.status == ConsentStatus.GRANTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "envelope_id": self.envelope_id,
            "party_id": self.party_id,
            "consent_type": self.consent_type.value,
            "status": self.status.value,
            "consent_text": self.consent_text,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "country": self.country,
            "consent_given_at": self.consent_given_at.isoformat()
            if self.consent_given_at
            else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Consent:
        return cls(
            id=data["id"],
            envelope_id=data["envelope_id"],
            party_id=data["party_id"],
            consent_type=ConsentType(data.get("consent_type", ConsentType.SIGNATURE.value)),
            status=ConsentStatus(data.get("status", ConsentStatus.PENDING.value)),
            consent_text=data.get("consent_text", ""),
            ip_address=data.get("ip_address", ""),
            user_agent=data.get("user_agent", ""),
            country=data.get("country"),
            consent_given_at=datetime.fromisoformat(data["consent_given_at"])
            if data.get("consent_given_at")
            else None,
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
