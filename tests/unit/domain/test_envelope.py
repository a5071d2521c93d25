"""Envelope Aggregate Unit Tests"""
import pytest

from esign.domain.errors import BadRequestError, ErrorCodes, NotFoundError
from esign.domain.signature.entities import Document, Envelope, InvalidStateError, Party
from esign.domain.signature.enums import (
    DocumentStatus,
    EnvelopeStatus,
    InputType,
    PartyRole,
    PartyStatus,
)
from esign.domain.signature.events import (
    DocumentAttached,
    EnvelopeCancelled,
    EnvelopeCompleted,
    EnvelopeCreated,
    EnvelopeDeclined,
    EnvelopeSent,
    EnvelopeSigned,
    PartyCreated,
)


def _party(email: str = "signer@example.com", role: PartyRole = PartyRole.SIGNER) -> Party:
    return Party(envelope_id="", name="Signer", email=email, role=role)


def _ready_document() -> Document:
    document = Document(envelope_id="", name="contract.pdf", content_type="application/pdf")
    document.change_status(DocumentStatus.UPLOADED)
    document.change_status(DocumentStatus.PROCESSING)
    document.change_status(DocumentStatus.READY)
    return document


def _sendable_envelope(*signer_emails: str) -> Envelope:
    envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
    for email in signer_emails or ("signer@example.com",):
        envelope.add_party(_party(email))
    envelope.add_document(_ready_document())
    envelope.mark_events_as_committed()
    return envelope


class TestEnvelopeCreation:
    """Envelope 作成のテスト"""

    def test_create_envelope(self):
        """正常: DRAFT のエンベロープを作成できる"""
        # Act
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="  NDA  ")

        # Assert
        assert envelope.id
        assert envelope.title == "NDA"
        assert envelope.status == EnvelopeStatus.DRAFT
        assert envelope.version == 0
        assert envelope.is_editable

    def test_create_emits_envelope_created_event(self):
        """正常: 作成時に EnvelopeCreated イベントが記録される"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")

        events = envelope.get_uncommitted_events()
        assert len(events) == 1
        assert isinstance(events[0], EnvelopeCreated)
        assert events[0].envelope_id == envelope.id
        assert events[0].event_type == "Envelope.Created"

    def test_blank_title_rejected(self):
        """異常: 空のタイトルは BadRequestError"""
        with pytest.raises(BadRequestError):
            Envelope.create(tenant_id="t1", owner_id="u1", title="   ")

    def test_too_long_description_rejected(self):
        """異常: 1000 文字を超える説明は BadRequestError"""
        with pytest.raises(BadRequestError):
            Envelope.create(tenant_id="t1", owner_id="u1", title="NDA", description="x" * 1001)


class TestEnvelopeComposition:
    """参加者・ドキュメント・入力フィールド追加のテスト"""

    def test_add_party(self):
        """正常: 参加者を追加すると PartyCreated が記録される"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        envelope.mark_events_as_committed()

        party = envelope.add_party(_party("Signer@Example.com"))

        assert party.envelope_id == envelope.id
        assert party.email == "signer@example.com"
        events = envelope.get_uncommitted_events()
        assert isinstance(events[0], PartyCreated)
        assert events[0].role == "signer"

    def test_duplicate_party_email_rejected(self):
        """異常: 同じメールアドレスの参加者は追加できない"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        envelope.add_party(_party("a@example.com"))

        with pytest.raises(BadRequestError):
            envelope.add_party(_party("A@example.com"))

    def test_party_limit(self):
        """異常: 参加者は 50 人まで"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        for i in range(50):
            envelope.add_party(_party(f"p{i}@example.com"))

        with pytest.raises(BadRequestError) as exc_info:
            envelope.add_party(_party("overflow@example.com"))
        assert exc_info.value.details == {"max_parties": 50}

    def test_add_document(self):
        """正常: ドキュメントを追加すると DocumentAttached が記録される"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        envelope.mark_events_as_committed()

        document = envelope.add_document(
            Document(envelope_id="", name="a.pdf", content_type="application/pdf")
        )

        assert document.envelope_id == envelope.id
        assert isinstance(envelope.get_uncommitted_events()[0], DocumentAttached)

    def test_signature_input_requires_signer(self):
        """異常: 署名フィールドは署名者以外に割り当てられない"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        viewer = envelope.add_party(_party("viewer@example.com", PartyRole.VIEWER))
        document = envelope.add_document(
            Document(envelope_id="", name="a.pdf", content_type="application/pdf")
        )

        with pytest.raises(BadRequestError):
            envelope.add_input(document.id, viewer.id, InputType.SIGNATURE, 1, 10, 10, 100, 20)

    def test_text_input_for_viewer(self):
        """正常: テキストフィールドは閲覧者にも割り当てられる"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        viewer = envelope.add_party(_party("viewer@example.com", PartyRole.VIEWER))
        document = envelope.add_document(
            Document(envelope_id="", name="a.pdf", content_type="application/pdf")
        )

        field_input = envelope.add_input(document.id, viewer.id, InputType.TEXT, 1, 10, 10, 100, 20)

        assert envelope.inputs == [field_input]

    def test_unknown_document_raises_not_found(self):
        """異常: 存在しないドキュメントは NotFoundError"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")

        with pytest.raises(NotFoundError) as exc_info:
            envelope.get_document("missing")
        assert exc_info.value.code == ErrorCodes.DOCUMENT_NOT_FOUND

    def test_cannot_modify_after_send(self):
        """異常: 送信後は参加者を追加できない"""
        envelope = _sendable_envelope()
        envelope.send()

        with pytest.raises(InvalidStateError) as exc_info:
            envelope.add_party(_party("late@example.com"))
        assert exc_info.value.code == ErrorCodes.ENVELOPE_INVALID_STATE


class TestEnvelopeLifecycle:
    """Envelope 状態遷移のテスト"""

    def test_send(self):
        """正常: 送信すると SENT になり参加者が招待される"""
        envelope = _sendable_envelope()

        envelope.send()

        assert envelope.status == EnvelopeStatus.SENT
        assert envelope.sent_at is not None
        assert all(p.status == PartyStatus.INVITED for p in envelope.parties)
        assert isinstance(envelope.get_uncommitted_events()[-1], EnvelopeSent)

    def test_send_without_signer(self):
        """異常: 署名者がいないと送信できない"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        envelope.add_document(_ready_document())

        with pytest.raises(InvalidStateError):
            envelope.send()

    def test_send_with_document_not_ready(self):
        """異常: READY でないドキュメントがあると送信できない"""
        envelope = Envelope.create(tenant_id="t1", owner_id="u1", title="NDA")
        envelope.add_party(_party())
        pending = envelope.add_document(
            Document(envelope_id="", name="a.pdf", content_type="application/pdf")
        )

        with pytest.raises(InvalidStateError) as exc_info:
            envelope.send()
        assert exc_info.value.details == {"documents": [pending.id]}

    def test_first_signature_moves_to_in_progress(self):
        """正常: 最初の署名で IN_PROGRESS に遷移する"""
        envelope = _sendable_envelope("a@example.com", "b@example.com")
        envelope.send()

        envelope.record_signature(envelope.parties[0].id)

        assert envelope.status == EnvelopeStatus.IN_PROGRESS
        assert isinstance(envelope.get_uncommitted_events()[-1], EnvelopeSigned)

    def test_all_signatures_complete_envelope(self):
        """正常: 全署名者が署名すると COMPLETED になる"""
        envelope = _sendable_envelope("a@example.com", "b@example.com")
        envelope.send()

        for party in envelope.parties:
            envelope.record_signature(party.id)

        assert envelope.status == EnvelopeStatus.COMPLETED
        assert envelope.completed_at is not None
        assert isinstance(envelope.get_uncommitted_events()[-1], EnvelopeCompleted)

    def test_cannot_sign_draft(self):
        """異常: DRAFT では署名できない"""
        envelope = _sendable_envelope()

        with pytest.raises(InvalidStateError):
            envelope.record_signature(envelope.parties[0].id)

    def test_sign_twice_rejected(self):
        """異常: 同じ参加者は 2 回署名できない"""
        envelope = _sendable_envelope("a@example.com", "b@example.com")
        envelope.send()
        party_id = envelope.parties[0].id
        envelope.record_signature(party_id)

        with pytest.raises(BadRequestError):
            envelope.record_signature(party_id)

    def test_decline(self):
        """正常: 辞退すると DECLINED になる"""
        envelope = _sendable_envelope()
        envelope.send()
        party_id = envelope.parties[0].id

        envelope.decline(party_id, "wrong terms")

        assert envelope.status == EnvelopeStatus.DECLINED
        assert envelope.get_party(party_id).declined_reason == "wrong terms"
        assert isinstance(envelope.get_uncommitted_events()[-1], EnvelopeDeclined)

    def test_cannot_decline_draft(self):
        """異常: DRAFT では辞退できない"""
        envelope = _sendable_envelope()

        with pytest.raises(InvalidStateError):
            envelope.decline(envelope.parties[0].id, "wrong terms")
        assert envelope.status == EnvelopeStatus.DRAFT
        assert envelope.parties[0].status != PartyStatus.DECLINED

    def test_cancel(self):
        """正常: キャンセルすると CANCELED になる"""
        envelope = _sendable_envelope()

        envelope.cancel("no longer needed")

        assert envelope.status == EnvelopeStatus.CANCELED
        assert envelope.cancel_reason == "no longer needed"
        assert isinstance(envelope.get_uncommitted_events()[-1], EnvelopeCancelled)

    def test_terminal_state_cannot_transition(self):
        """異常: 終端状態からは遷移できない"""
        envelope = _sendable_envelope()
        envelope.cancel()

        with pytest.raises(BadRequestError) as exc_info:
            envelope.cancel()
        assert exc_info.value.code == ErrorCodes.INVALID_STATE_TRANSITION


class TestEnvelopeSerialization:
    """Envelope シリアライズのテスト"""

    def test_dict_round_trip_keeps_children(self):
        """正常: to_dict / from_dict で子エンティティが保持される"""
        envelope = _sendable_envelope()
        envelope.version = 3

        restored = Envelope.from_dict(envelope.to_dict())

        assert restored.id == envelope.id
        assert restored.version == 3
        assert [p.email for p in restored.parties] == ["signer@example.com"]
        assert restored.documents[0].status == DocumentStatus.READY
        assert restored.get_uncommitted_events() == []

    def test_to_dict_without_children(self):
        """正常: include_children=False では子エンティティを含まない"""
        data = _sendable_envelope().to_dict(include_children=False)

        assert "parties" not in data
        assert data["status"] == "draft"
