"""Unit tests for Pydantic models."""

import pytest
from pydantic import ValidationError

from deckflow.intake import batch_policy
from deckflow.models import (
    STAGE_COUNT,
    AnalysisRun,
    AuthContext,
    Batch,
    BatchFrozenError,
    InvalidTransitionError,
    ItemStatus,
    PipelineErrorKind,
    PipelineStage,
    QueuedItem,
    RunState,
    Snapshot,
    SourceDocument,
    TransferErrorKind,
    guess_media_type,
)


class TestSourceDocument:
    """Tests for SourceDocument model."""

    def test_from_bytes_guesses_media_type(self):
        doc = SourceDocument.from_bytes("Deck.PDF", b"%PDF-1.4")
        assert doc.media_type == "application/pdf"
        assert doc.size_bytes == 8

    def test_declared_media_type_wins(self):
        doc = SourceDocument.from_bytes("notes.bin", b"abc", "text/csv")
        assert doc.media_type == "text/csv"

    def test_unknown_extension_kept_as_empty_type(self):
        assert guess_media_type("archive.xyz123") == ""

    def test_webp_is_known(self):
        assert guess_media_type("cover.webp") == "image/webp"

    def test_identity_is_name_and_size(self):
        a = SourceDocument.from_bytes("a.pdf", b"1234")
        b = SourceDocument.from_bytes("a.pdf", b"abcd")
        assert a.identity == b.identity

    def test_content_not_serialized(self):
        doc = SourceDocument.from_bytes("a.pdf", b"secret")
        assert "content" not in doc.model_dump()

    def test_documents_are_immutable(self):
        doc = SourceDocument.from_bytes("a.pdf", b"1")
        with pytest.raises(ValidationError):
            doc.name = "b.pdf"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            SourceDocument(name="", media_type="application/pdf", size_bytes=1)


class TestAuthContext:
    def test_referral_code_optional(self):
        assert AuthContext(caller_id="u1").referral_code is None

    def test_caller_required(self):
        with pytest.raises(ValidationError):
            AuthContext(caller_id="")


class TestQueuedItem:
    """Tests for the item state machine."""

    @pytest.fixture
    def item(self, make_document):
        return QueuedItem(document=make_document("a.pdf"))

    def test_happy_path(self, item):
        item.start()
        assert item.status == ItemStatus.TRANSFERRING
        item.mark_persisted("u/b/a.pdf", "rec-1")
        assert item.status == ItemStatus.PERSISTED
        assert item.status.is_terminal
        assert item.progress_percent == 100
        assert item.storage_path == "u/b/a.pdf"

    def test_failure_records_kind(self, item):
        item.start()
        item.mark_failed(TransferErrorKind.NETWORK_FAILURE, "timeout")
        assert item.status == ItemStatus.FAILED
        assert item.error_kind == TransferErrorKind.NETWORK_FAILURE
        assert item.error_message == "timeout"

    def test_cannot_persist_without_starting(self, item):
        with pytest.raises(InvalidTransitionError):
            item.mark_persisted("p", "r")

    def test_pending_item_can_only_fail_as_cancelled(self, item):
        with pytest.raises(InvalidTransitionError):
            item.mark_failed(TransferErrorKind.NETWORK_FAILURE, "x")
        item.mark_failed(TransferErrorKind.CANCELLED, "deadline exceeded")
        assert item.status == ItemStatus.FAILED

    def test_terminal_states_are_final(self, item):
        item.start()
        item.mark_persisted("p", "r")
        with pytest.raises(InvalidTransitionError):
            item.start()
        with pytest.raises(InvalidTransitionError):
            item.mark_failed(TransferErrorKind.CANCELLED, "late")


class TestBatch:
    def test_submit_preserves_order(self, make_document):
        batch = Batch(policy=batch_policy())
        report = batch.submit([make_document("b.pdf"), make_document("a.pdf", size=10)])
        assert [i.name for i in batch.items] == ["b.pdf", "a.pdf"]
        assert len(report.accepted) == 2
        assert len(batch) == 2

    def test_frozen_batch_refuses_submissions(self, make_document):
        batch = Batch(policy=batch_policy())
        batch.freeze()
        with pytest.raises(BatchFrozenError):
            batch.submit([make_document("a.pdf")])


class TestPipelineStage:
    def test_order_and_labels(self):
        assert [s.index for s in PipelineStage] == [0, 1, 2, 3]
        assert STAGE_COUNT == 4
        assert PipelineStage.SCORE.label == "Calculating match score..."


class TestAnalysisRun:
    """Tests for the stage pointer."""

    def test_starts_at_convert(self):
        run = AnalysisRun(document_name="deck.pdf")
        assert run.current_stage == PipelineStage.CONVERT
        assert run.is_running
        assert run.step_label == "Step 1 of 4: Converting PDF..."

    def test_advance_one_stage_at_a_time(self):
        run = AnalysisRun(document_name="deck.pdf")
        run.advance(PipelineStage.EXTRACT)
        assert run.stage_index == 1
        with pytest.raises(InvalidTransitionError):
            run.advance(PipelineStage.SCORE)
        with pytest.raises(InvalidTransitionError):
            run.advance(PipelineStage.CONVERT)

    def test_fail_freezes_pointer(self):
        run = AnalysisRun(document_name="deck.pdf")
        run.advance(PipelineStage.EXTRACT)
        run.fail(PipelineErrorKind.EXTRACTION_FAILED, "encoder crashed")
        assert run.terminal_state == RunState.FAILED
        assert run.failure_stage == PipelineStage.EXTRACT
        assert run.completed_at is not None
        with pytest.raises(InvalidTransitionError):
            run.advance(PipelineStage.ANALYZE)

    def test_succeed_is_terminal(self):
        run = AnalysisRun(document_name="deck.pdf")
        run.succeed()
        assert run.terminal_state == RunState.SUCCEEDED
        with pytest.raises(InvalidTransitionError):
            run.fail(PipelineErrorKind.CANCELLED, "late")


class TestSnapshot:
    def test_paragraphs_split_on_blank_lines(self):
        snapshot = Snapshot(
            company_name="Acme",
            deal_quality={"score": 50, "verdict": "ok"},
            debrief="One.\n\n  Two.  \n \nThree.",
        )
        assert snapshot.paragraphs == ["One.", "Two.", "Three."]

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            Snapshot(company_name="Acme", deal_quality={"score": 101, "verdict": "x"})

    def test_key_points_capped(self):
        with pytest.raises(ValidationError):
            Snapshot(
                company_name="Acme",
                deal_quality={"score": 1, "verdict": "x"},
                key_risks=tuple(str(i) for i in range(6)),
            )
