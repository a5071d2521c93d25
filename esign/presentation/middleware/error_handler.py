"""Error Handler Middleware"""
from __future__ import annotations

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from esign.domain.errors import AppError, ErrorCodes, InternalError, UnprocessableEntityError

logger = structlog.get_logger()


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """AppError をステータスコード付きのJSONに変換"""
    log = logger.bind(path=request.url.path, code=exc.code, status_code=exc.status_code)
    if exc.status_code >= 500:
        log.error("app_error", error=exc.message)
    else:
        log.warning("app_error", error=exc.message)

    headers = None
    if exc.status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    elif exc.status_code == 429 and isinstance(exc.details, dict):
        reset = exc.details.get("reset_in_seconds")
        if reset is not None:
            headers = {"Retry-After": str(reset)}

    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(exc.to_dict()),
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """リクエストバリデーションエラーハンドラ"""
    logger.warning("request_validation_error", path=request.url.path)
    error = UnprocessableEntityError(
        "Request validation failed",
        ErrorCodes.COMMON_UNPROCESSABLE_ENTITY,
        jsonable_encoder(exc.errors()),
    )
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """汎用エラーハンドラ"""
    logger.error("unhandled_error", error=str(exc), exc_info=True)
    error = InternalError("An unexpected error occurred")
    return JSONResponse(status_code=500, content=error.to_dict())


# エラーハンドラのマッピング
error_handlers = {
    AppError: app_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: generic_error_handler,
}
