"""Cursor Pagination Helpers"""
from __future__ import annotations

import base64
import json
from typing import Any

from esign.domain.errors import BadRequestError


def encode_cursor(last_evaluated_key: dict[str, Any] | None) -> str | None:
    """LastEvaluatedKey を不透明なカーソル文字列に変換"""
    if not last_evaluated_key:
        return None
    raw = json.dumps(last_evaluated_key, sort_keys=True, default=str).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str | None) -> dict[str, Any] | None:
    """カーソル文字列を ExclusiveStartKey に戻す"""
    if not cursor:
        return None
    try:
        decoded = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
    except (ValueError, UnicodeError) as e:
        raise BadRequestError("Invalid pagination cursor", details={"cursor": cursor}) from e
    if not isinstance(decoded, dict):
        raise BadRequestError("Invalid pagination cursor", details={"cursor": cursor})
    return decoded
