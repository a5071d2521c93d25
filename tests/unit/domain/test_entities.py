"""Party / Document / Consent / GlobalParty Unit Tests"""
import pytest

from esign.domain.errors import (
    BadRequestError,
    ErrorCodes,
    PayloadTooLargeError,
    UnsupportedMediaTypeError,
)
from esign.domain.signature.entities import Consent, Document, GlobalParty, Input, Party
from esign.domain.signature.enums import (
    MAX_PDF_SIZE,
    ConsentStatus,
    DocumentStatus,
    GlobalPartyStatus,
    InputType,
    PartyStatus,
)


class TestParty:
    """Party のテスト"""

    def test_email_is_normalized(self):
        """正常: メールアドレスは小文字・前後空白除去で保持される"""
        party = Party(envelope_id="e1", name="Alice", email="  Alice@Example.COM ")

        assert party.email == "alice@example.com"
        assert party.status == PartyStatus.PENDING

    @pytest.mark.parametrize("email", ["", "alice", "alice@", "a b@example.com"])
    def test_invalid_email(self, email):
        """異常: 不正なメールアドレスは BadRequestError"""
        with pytest.raises(BadRequestError):
            Party(envelope_id="e1", name="Alice", email=email)

    def test_invalid_sequence(self):
        """異常: sequence は 1 以上"""
        with pytest.raises(BadRequestError):
            Party(envelope_id="e1", name="Alice", email="a@example.com", sequence=0)

    def test_declined_party_cannot_sign(self):
        """異常: 辞退済みの参加者は署名できない"""
        party = Party(envelope_id="e1", name="Alice", email="a@example.com")
        party.decline("no")

        with pytest.raises(BadRequestError):
            party.sign()


class TestDocument:
    """Document のテスト"""

    def test_status_transitions(self):
        """正常: PENDING → UPLOADED → PROCESSING → READY"""
        document = Document(envelope_id="e1", name="a.pdf", content_type="application/pdf")

        previous = document.change_status(DocumentStatus.UPLOADED)
        document.change_status(DocumentStatus.PROCESSING)
        document.change_status(DocumentStatus.READY)

        assert previous == DocumentStatus.PENDING
        assert document.is_ready

    def test_skip_transition_rejected(self):
        """異常: PENDING から READY へは遷移できない"""
        document = Document(envelope_id="e1", name="a.pdf", content_type="application/pdf")

        with pytest.raises(BadRequestError) as exc_info:
            document.change_status(DocumentStatus.READY)
        assert exc_info.value.code == ErrorCodes.INVALID_STATE_TRANSITION

    def test_error_message_only_kept_for_error_status(self):
        """正常: ERROR からの再試行でエラーメッセージがクリアされる"""
        document = Document(envelope_id="e1", name="a.pdf", content_type="application/pdf")
        document.change_status(DocumentStatus.ERROR, "virus detected")
        assert document.error_message == "virus detected"

        document.change_status(DocumentStatus.PENDING, "ignored")

        assert document.error_message is None

    def test_unsupported_content_type(self):
        """異常: 許可されていない Content-Type は 415"""
        with pytest.raises(UnsupportedMediaTypeError):
            Document(envelope_id="e1", name="a.exe", content_type="application/x-msdownload")

    def test_too_large(self):
        """異常: 最大サイズ超過は 413"""
        with pytest.raises(PayloadTooLargeError):
            Document(
                envelope_id="e1",
                name="a.pdf",
                content_type="application/pdf",
                size_bytes=MAX_PDF_SIZE + 1,
            )


class TestInput:
    """Input のテスト"""

    def test_coordinates_survive_dict_round_trip(self):
        """正常: 座標は文字列で保持され float に戻る"""
        field_input = Input(
            envelope_id="e1",
            document_id="d1",
            party_id="p1",
            input_type=InputType.SIGNATURE,
            page=1,
            x=10.5,
            y=20.25,
            width=100,
            height=30,
        )

        data = field_input.to_dict()
        restored = Input.from_dict(data)

        assert data["x"] == "10.5"
        assert restored.x == 10.5
        assert restored.y == 20.25

    def test_negative_coordinates_rejected(self):
        """異常: 負の座標は BadRequestError"""
        with pytest.raises(BadRequestError):
            Input(
                envelope_id="e1",
                document_id="d1",
                party_id="p1",
                input_type=InputType.TEXT,
                page=1,
                x=-1,
                y=0,
                width=10,
                height=10,
            )


class TestConsent:
    """Consent のテスト"""

    def test_grant_records_evidence(self):
        """正常: 同意時に証跡が記録される"""
        consent = Consent(envelope_id="e1", party_id="p1")

        consent.grant("I agree", "203.0.113.1", "Mozilla/5.0", "JP")

        assert consent.is_granted
        assert consent.consent_given_at is not None
        assert consent.ip_address == "203.0.113.1"
        assert consent.country == "JP"

    def test_grant_requires_evidence(self):
        """異常: IP / User-Agent が欠けていると同意できない"""
        consent = Consent(envelope_id="e1", party_id="p1")

        with pytest.raises(BadRequestError) as exc_info:
            consent.grant("I agree", "", " ")
        assert exc_info.value.details == {"missing": ["ip_address", "user_agent"]}

    def test_revoke_only_granted(self):
        """異常: 付与されていない同意は取り消せない"""
        consent = Consent(envelope_id="e1", party_id="p1")

        with pytest.raises(BadRequestError):
            consent.revoke()

    def test_revoke(self):
        """正常: 付与済みの同意を取り消せる"""
        consent = Consent(envelope_id="e1", party_id="p1")
        consent.grant("I agree", "203.0.113.1", "Mozilla/5.0")

        consent.revoke()

        assert consent.status == ConsentStatus.REVOKED
        assert not consent.is_granted


class TestGlobalParty:
    """GlobalParty（連絡先）のテスト"""

    def test_to_party(self):
        """正常: 連絡先から参加者を生成できる"""
        contact = GlobalParty(tenant_id="t1", owner_id="u1", name="Bob", email="Bob@example.com")

        party = contact.to_party("e1", sequence=2)

        assert party.envelope_id == "e1"
        assert party.email == "bob@example.com"
        assert party.sequence == 2

    def test_inactive_contact_cannot_become_party(self):
        """異常: 無効化された連絡先からは参加者を生成できない"""
        contact = GlobalParty(tenant_id="t1", owner_id="u1", name="Bob", email="bob@example.com")
        contact.deactivate()

        assert contact.status == GlobalPartyStatus.INACTIVE
        with pytest.raises(BadRequestError):
            contact.to_party("e1")

    def test_deleted_contact_cannot_be_deactivated(self):
        """異常: 削除済みの連絡先は無効化できない"""
        contact = GlobalParty(tenant_id="t1", owner_id="u1", name="Bob", email="bob@example.com")
        contact.delete()

        with pytest.raises(BadRequestError):
            contact.deactivate()
