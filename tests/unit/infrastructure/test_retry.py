"""with_retry Unit Tests"""
from unittest.mock import AsyncMock

import pytest

from esign.domain.errors import BadRequestError, NotFoundError, TooManyRequestsError
from esign.infrastructure.retry import with_retry


@pytest.fixture
def sleep(monkeypatch):
    mock = AsyncMock()
    monkeypatch.setattr("esign.infrastructure.retry.asyncio.sleep", mock)
    return mock


class TestWithRetry:
    """with_retry のテスト"""

    async def test_success_first_try(self, sleep):
        """正常: 成功時はそのまま結果を返す"""
        fn = AsyncMock(return_value="ok")

        assert await with_retry("op", fn) == "ok"
        sleep.assert_not_awaited()

    async def test_retries_throttling_then_succeeds(self, sleep, client_error):
        """正常: スロットリングはリトライして成功する"""
        fn = AsyncMock(side_effect=[client_error("ThrottlingException"), "ok"])

        assert await with_retry("op", fn) == "ok"
        assert fn.await_count == 2
        sleep.assert_awaited_once()

    async def test_exhausted_retries_raise_mapped_error(self, sleep, client_error):
        """異常: リトライ上限に達したら AppError に変換して送出"""
        fn = AsyncMock(side_effect=client_error("ThrottlingException"))

        with pytest.raises(TooManyRequestsError):
            await with_retry("op", fn, max_attempts=3)

        assert fn.await_count == 3
        assert sleep.await_count == 2

    async def test_non_retryable_fails_fast(self, sleep, client_error):
        """異常: リトライ不可のエラーは即座に送出"""
        fn = AsyncMock(side_effect=client_error("ValidationException"))

        with pytest.raises(BadRequestError):
            await with_retry("op", fn)

        assert fn.await_count == 1
        sleep.assert_not_awaited()

    async def test_app_error_is_reraised_unchanged(self, sleep):
        """異常: AppError は変換せずに再送出"""
        error = NotFoundError("missing")
        fn = AsyncMock(side_effect=error)

        with pytest.raises(NotFoundError) as exc_info:
            await with_retry("op", fn)

        assert exc_info.value is error
