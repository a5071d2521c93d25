"""AWS Error Mapping"""
from __future__ import annotations

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from esign.domain.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    ErrorCodes,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    TooManyRequestsError,
)

THROTTLING_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottled",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "TransactionInProgressException",
        "RequestLimitExceeded",
        "SlowDown",
    }
)

UNAVAILABLE_CODES = frozenset(
    {
        "ServiceUnavailable",
        "ServiceUnavailableException",
        "InternalServerError",
        "InternalFailure",
        "RequestTimeout",
        "RequestTimeoutException",
    }
)

VALIDATION_CODES = frozenset(
    {
        "ValidationException",
        "InvalidParameterException",
        "InvalidParameterValue",
        "InvalidRequestException",
        "SerializationException",
    }
)

NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
)


def client_error_code(err: BaseException) -> str:
    """ClientError のエラーコードを取得（それ以外は空文字）"""
    if isinstance(err, ClientError):
        return err.response.get("Error", {}).get("Code", "")
    return ""


def _http_status(err: ClientError) -> int:
    return int(err.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)


def is_conditional_check_failed(err: BaseException) -> bool:
    return client_error_code(err) == "ConditionalCheckFailedException"


def is_aws_retryable(err: BaseException) -> bool:
    """
    リトライ可能な AWS エラーか判定

    スロットリング・5xx・ネットワーク系エラーが対象。
    """
    if isinstance(err, NETWORK_ERRORS):
        return True
    if isinstance(err, ClientError):
        code = client_error_code(err)
        if code in THROTTLING_CODES or code in UNAVAILABLE_CODES:
            return True
        return _http_status(err) >= 500
    return False


def map_aws_error(err: BaseException, operation: str) -> AppError:
    """
    AWS SDK の例外を AppError に変換

    Args:
        err: 発生した例外
        operation: ログ・詳細用の操作名（例: "OutboxRepository.save"）

    Returns:
        対応する AppError（AppError はそのまま返す）
    """
    if isinstance(err, AppError):
        return err

    details = {"operation": operation}

    if isinstance(err, NETWORK_ERRORS):
        return ServiceUnavailableError(
            f"{operation}: AWS endpoint unavailable",
            ErrorCodes.COMMON_DEPENDENCY_UNAVAILABLE,
            details,
        )

    if not isinstance(err, ClientError):
        return InternalError(f"{operation}: {err}", ErrorCodes.COMMON_INTERNAL_ERROR, details)

    code = client_error_code(err)
    message = err.response.get("Error", {}).get("Message", "") or code
    details = {**details, "aws_code": code}

    if code in THROTTLING_CODES:
        return TooManyRequestsError(
            f"{operation}: {message}", ErrorCodes.COMMON_TOO_MANY_REQUESTS, details
        )
    if code == "ResourceNotFoundException" or code == "NoSuchKey":
        return NotFoundError(f"{operation}: {message}", ErrorCodes.COMMON_NOT_FOUND, details)
    if code == "ConditionalCheckFailedException":
        return ConflictError(f"{operation}: {message}", ErrorCodes.COMMON_CONFLICT, details)
    if code.startswith("AccessDenied") or code == "UnrecognizedClientException":
        return ForbiddenError(f"{operation}: {message}", ErrorCodes.AUTH_FORBIDDEN, details)
    if code in VALIDATION_CODES:
        return BadRequestError(f"{operation}: {message}", ErrorCodes.COMMON_BAD_REQUEST, details)
    if code in UNAVAILABLE_CODES or _http_status(err) >= 500:
        return ServiceUnavailableError(
            f"{operation}: {message}", ErrorCodes.COMMON_DEPENDENCY_UNAVAILABLE, details
        )
    return InternalError(f"{operation}: {message}", ErrorCodes.COMMON_INTERNAL_ERROR, details)
