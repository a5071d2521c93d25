"""AppError Taxonomy Unit Tests"""
import pytest

from esign.domain.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    ErrorCodes,
    ForbiddenError,
    InternalError,
    NotFoundError,
    NotImplementedAppError,
    PayloadTooLargeError,
    PreconditionFailedError,
    ServiceUnavailableError,
    TooManyRequestsError,
    UnauthorizedError,
    UnprocessableEntityError,
    UnsupportedMediaTypeError,
)


class TestAppError:
    """AppError のテスト"""

    @pytest.mark.parametrize(
        "error_class,status_code",
        [
            (BadRequestError, 400),
            (UnauthorizedError, 401),
            (ForbiddenError, 403),
            (NotFoundError, 404),
            (ConflictError, 409),
            (PreconditionFailedError, 412),
            (PayloadTooLargeError, 413),
            (UnsupportedMediaTypeError, 415),
            (UnprocessableEntityError, 422),
            (TooManyRequestsError, 429),
            (InternalError, 500),
            (NotImplementedAppError, 501),
            (ServiceUnavailableError, 503),
        ],
    )
    def test_status_codes(self, error_class, status_code):
        """正常: 各エラーが対応する HTTP ステータスを持つ"""
        error = error_class()

        assert isinstance(error, AppError)
        assert error.status_code == status_code
        assert error.message
        assert error.code

    def test_to_dict_omits_missing_details(self):
        """正常: details が無い場合はキー自体を含めない"""
        body = NotFoundError("Envelope e1 not found", ErrorCodes.ENVELOPE_NOT_FOUND).to_dict()

        assert body == {
            "error": "NotFoundError",
            "message": "Envelope e1 not found",
            "code": "ENVELOPE_NOT_FOUND",
        }

    def test_to_dict_with_details(self):
        """正常: details はそのまま含まれる"""
        body = BadRequestError(details={"field": "title"}).to_dict()

        assert body["details"] == {"field": "title"}
        assert body["code"] == ErrorCodes.COMMON_BAD_REQUEST

    def test_internal_error_defaults(self):
        """正常: InternalError の既定値"""
        error = InternalError()

        assert error.message == "Internal Error"
        assert error.code == ErrorCodes.COMMON_INTERNAL_ERROR
        assert str(error) == "Internal Error"
