"""Health Check Routes"""
from typing import Annotated

from fastapi import APIRouter, Depends

from esign.application.ports import IOutboxRepository
from esign.domain.errors import AppError, ServiceUnavailableError
from esign.infrastructure.config import get_settings
from esign.presentation.api.dependencies import get_outbox_repository

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """ヘルスチェック"""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": settings.service_name,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(
    outbox: Annotated[IOutboxRepository, Depends(get_outbox_repository)],
) -> dict:
    """レディネスチェック（DynamoDB への疎通確認）"""
    try:
        await outbox.exists("readiness-check")
    except AppError as e:
        raise ServiceUnavailableError(
            "DynamoDB is not reachable", details={"dynamodb": e.code}
        ) from e
    return {"status": "ready", "checks": {"dynamodb": "ok"}}
