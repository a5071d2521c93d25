"""Status Table Unit Tests"""
import pytest

from esign.domain.errors import BadRequestError, ErrorCodes
from esign.domain.signature.enums import (
    DOCUMENT_STATUS_TRANSITIONS,
    ENVELOPE_TRANSITION_RULES,
    DocumentStatus,
    EnvelopeStatus,
    assert_transition,
    can_transition,
    clamp_page_limit,
)


class TestTransitionTables:
    """状態遷移テーブルのテスト"""

    @pytest.mark.parametrize(
        "status", [EnvelopeStatus.COMPLETED, EnvelopeStatus.CANCELED, EnvelopeStatus.DECLINED]
    )
    def test_terminal_envelope_states(self, status):
        """正常: 終端状態からの遷移は無い"""
        assert ENVELOPE_TRANSITION_RULES[status] == frozenset()

    def test_in_progress_cannot_go_back_to_sent(self):
        """異常: IN_PROGRESS → SENT は不可"""
        assert not can_transition(
            ENVELOPE_TRANSITION_RULES, EnvelopeStatus.IN_PROGRESS, EnvelopeStatus.SENT
        )

    def test_error_document_can_retry(self):
        """正常: ERROR → PENDING で再処理できる"""
        assert can_transition(
            DOCUMENT_STATUS_TRANSITIONS, DocumentStatus.ERROR, DocumentStatus.PENDING
        )

    def test_assert_transition_details(self):
        """異常: 不正な遷移は遷移元・遷移先を details に含める"""
        with pytest.raises(BadRequestError) as exc_info:
            assert_transition(
                DOCUMENT_STATUS_TRANSITIONS,
                DocumentStatus.READY,
                DocumentStatus.PENDING,
                "document",
            )

        assert exc_info.value.code == ErrorCodes.INVALID_STATE_TRANSITION
        assert exc_info.value.details == {"entity": "document", "from": "ready", "to": "pending"}


class TestClampPageLimit:
    """ページサイズ丸めのテスト"""

    @pytest.mark.parametrize(
        "limit,expected", [(None, 25), (0, 25), (-5, 1), (10, 10), (100, 100), (500, 100)]
    )
    def test_clamp(self, limit, expected):
        assert clamp_page_limit(limit) == expected
