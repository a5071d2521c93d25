"""Application Error Taxonomy"""
from __future__ import annotations

from typing import Any


class ErrorCodes:
    """機械可読なエラーコード"""

    COMMON_BAD_REQUEST = "COMMON_BAD_REQUEST"
    COMMON_NOT_FOUND = "COMMON_NOT_FOUND"
    COMMON_CONFLICT = "COMMON_CONFLICT"
    COMMON_PRECONDITION_FAILED = "COMMON_PRECONDITION_FAILED"
    COMMON_PAYLOAD_TOO_LARGE = "COMMON_PAYLOAD_TOO_LARGE"
    COMMON_UNSUPPORTED_MEDIA_TYPE = "COMMON_UNSUPPORTED_MEDIA_TYPE"
    COMMON_UNPROCESSABLE_ENTITY = "COMMON_UNPROCESSABLE_ENTITY"
    COMMON_TOO_MANY_REQUESTS = "COMMON_TOO_MANY_REQUESTS"
    COMMON_INTERNAL_ERROR = "COMMON_INTERNAL_ERROR"
    COMMON_NOT_IMPLEMENTED = "COMMON_NOT_IMPLEMENTED"
    COMMON_DEPENDENCY_UNAVAILABLE = "COMMON_DEPENDENCY_UNAVAILABLE"

    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"

    ENVELOPE_NOT_FOUND = "ENVELOPE_NOT_FOUND"
    ENVELOPE_INVALID_STATE = "ENVELOPE_INVALID_STATE"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    PARTY_NOT_FOUND = "PARTY_NOT_FOUND"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    IDEMPOTENCY_IN_PROGRESS = "IDEMPOTENCY_IN_PROGRESS"
    IDEMPOTENCY_ALREADY_PROCESSED = "IDEMPOTENCY_ALREADY_PROCESSED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"


class AppError(Exception):
    """
    アプリケーションエラー基底クラス

    HTTP ステータスと安定したエラーコードを持ち、
    プレゼンテーション層でそのままレスポンスに変換される。
    """

    status_code: int = 500
    default_message: str = "Internal Error"
    default_code: str = ErrorCodes.COMMON_INTERNAL_ERROR

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: Any = None,
    ):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """レスポンスボディに変換"""
        body: dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
        }
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad Request"
    default_code = ErrorCodes.COMMON_BAD_REQUEST


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"
    default_code = ErrorCodes.AUTH_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"
    default_code = ErrorCodes.AUTH_FORBIDDEN


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not Found"
    default_code = ErrorCodes.COMMON_NOT_FOUND


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"
    default_code = ErrorCodes.COMMON_CONFLICT


class PreconditionFailedError(AppError):
    status_code = 412
    default_message = "Precondition Failed"
    default_code = ErrorCodes.COMMON_PRECONDITION_FAILED


class PayloadTooLargeError(AppError):
    status_code = 413
    default_message = "Payload Too Large"
    default_code = ErrorCodes.COMMON_PAYLOAD_TOO_LARGE


class UnsupportedMediaTypeError(AppError):
    status_code = 415
    default_message = "Unsupported Media Type"
    default_code = ErrorCodes.COMMON_UNSUPPORTED_MEDIA_TYPE


class UnprocessableEntityError(AppError):
    status_code = 422
    default_message = "Unprocessable Entity"
    default_code = ErrorCodes.COMMON_UNPROCESSABLE_ENTITY


class TooManyRequestsError(AppError):
    status_code = 429
    default_message = "Too Many Requests"
    default_code = ErrorCodes.COMMON_TOO_MANY_REQUESTS


class InternalError(AppError):
    status_code = 500


class NotImplementedAppError(AppError):
    status_code = 501
    default_message = "Not Implemented"
    default_code = ErrorCodes.COMMON_NOT_IMPLEMENTED


class ServiceUnavailableError(AppError):
    status_code = 503
    default_message = "Service Unavailable"
    default_code = ErrorCodes.COMMON_DEPENDENCY_UNAVAILABLE
