"""JWT Authentication"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

import jwt
import structlog
from fastapi import Depends, Header

from esign.application.services import Actor
from esign.domain.errors import UnauthorizedError
from esign.infrastructure.config import Settings, get_settings

logger = structlog.get_logger()

TENANT_CLAIM = "custom:tenantId"
ROLE_CLAIM = "custom:role"


class TokenVerifier:
    """
    Bearer トークン検証

    `cognito_jwks_url` が設定されていれば Cognito の JWKS（RS256）で、
    それ以外は共有シークレットで署名を検証する。
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._jwks_client = (
            jwt.PyJWKClient(settings.cognito_jwks_url) if settings.cognito_jwks_url else None
        )

    def verify(self, token: str) -> dict[str, Any]:
        options = {"require": ["sub", "exp"], "verify_aud": bool(self._settings.jwt_audience)}
        try:
            if self._jwks_client is not None:
                key: Any = self._jwks_client.get_signing_key_from_jwt(token).key
                algorithms = self._settings.jwt_algorithms
            else:
                if not self._settings.jwt_secret:
                    raise UnauthorizedError("Token verification is not configured")
                key = self._settings.jwt_secret
                algorithms = ["HS256"]
            return jwt.decode(
                token,
                key,
                algorithms=algorithms,
                audience=self._settings.jwt_audience or None,
                issuer=self._settings.jwt_issuer or None,
                options=options,
            )
        except jwt.ExpiredSignatureError as e:
            logger.warning("token_rejected", reason="expired")
            raise UnauthorizedError("Token expired") from e
        except jwt.PyJWTError as e:
            logger.warning("token_rejected", reason=str(e))
            raise UnauthorizedError("Invalid token") from e


@lru_cache()
def get_token_verifier() -> TokenVerifier:
    return TokenVerifier(get_settings())


def actor_from_claims(claims: dict[str, Any], default_tenant_id: str) -> Actor:
    """JWT クレームから実行者を生成"""
    return Actor(
        tenant_id=claims.get(TENANT_CLAIM) or default_tenant_id,
        user_id=claims["sub"],
        email=claims.get("email"),
        role=claims.get(ROLE_CLAIM),
    )


async def get_current_actor(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
    x_tenant_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """
    リクエスト実行者を取得

    `auth_disabled` の場合（ローカル開発）は X-User-Id / X-Tenant-Id / X-User-Role ヘッダーを使う。
    """
    if settings.auth_disabled:
        return Actor(
            tenant_id=x_tenant_id or settings.default_tenant_id,
            user_id=x_user_id or "local-user",
            role=x_user_role,
        )

    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing bearer token")
    token = authorization[7:].strip()
    if not token:
        raise UnauthorizedError("Missing bearer token")

    claims = get_token_verifier().verify(token)
    actor = actor_from_claims(claims, settings.default_tenant_id)
    structlog.contextvars.bind_contextvars(user_id=actor.user_id, tenant_id=actor.tenant_id)
    return actor


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
