"""Input Entity"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from esign.domain.errors import BadRequestError
from ..enums import InputType
from ..ids import new_id


@dataclass
class Input:
    """
    ドキュメント上の入力フィールド

    座標はページ左上を原点とするポイント単位。
    """

    envelope_id: str
    document_id: str
    party_id: str
    input_type: InputType
    page: int
    x: float
    y: float
    width: float
    height: float
    id: str = field(default_factory=new_id)
    required: bool = True
    value: str | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise BadRequestError("Input page must be >= 1", details={"field": "page"})
        if self.x < 0 or self.y < 0:
            raise BadRequestError("Input coordinates cannot be negative", details={"field": "position"})
        if self.width <= 0 or self.height <= 0:
            raise BadRequestError("Input size must be positive", details={"field": "size"})

    @property
    def is_filled(self) -> bool:
        return self.value is not None and self.value != ""

    def to_dict(self) -> dict[str, Any]:
        # DynamoDB は float を受け付けないため座標は文字列で保持する
        return {
            "id": self.id,
            "envelope_id": self.envelope_id,
            "document_id": self.document_id,
            "party_id": self.party_id,
            "input_type": self.input_type.value,
            "page": self.page,
            "x": str(self.x),
            "y": str(self.y),
            "width": str(self.width),
            "height": str(self.height),
            "required": self.required,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Input:
        return cls(
            id=data["id"],
            envelope_id=data["envelope_id"],
            document_id=data["document_id"],
            party_id=data["party_id"],
            input_type=InputType(data["input_type"]),
            page=int(data["page"]),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            required=bool(data.get("required", True)),
            value=data.get("value"),
        )
