from docpipe.documents.models import (
    STAGE_ORDER,
    DocumentStatus,
    Entity,
    StageName,
    StageState,
    StageStatus,
    allowed_predecessors,
    new_record,
    storage_key_for,
    upstream_of,
)


class TestStageTransitions:
    def test_processing_entered_from_pending_or_failed(self) -> None:
        assert allowed_predecessors(StageStatus.PROCESSING) == {
            StageStatus.PENDING,
            StageStatus.FAILED,
        }

    def test_completed_only_from_processing(self) -> None:
        assert allowed_predecessors(StageStatus.COMPLETED) == {StageStatus.PROCESSING}

    def test_nothing_returns_to_pending(self) -> None:
        assert allowed_predecessors(StageStatus.PENDING) == frozenset()


class TestStageOrder:
    def test_order(self) -> None:
        assert [str(s) for s in STAGE_ORDER] == [
            "upload",
            "extraction",
            "classification",
            "summarization",
            "display",
        ]

    def test_upstream_of_first_stage_is_none(self) -> None:
        assert upstream_of(StageName.UPLOAD) is None

    def test_upstream_of_display_is_summarization(self) -> None:
        assert upstream_of(StageName.DISPLAY) == StageName.SUMMARIZATION


class TestNewRecord:
    def test_initial_state(self) -> None:
        record = new_record("doc1", "a.pdf", "application/pdf", "documents/doc1/a.pdf", 1000)

        assert record.status == DocumentStatus.UPLOADED
        assert record.stage == StageName.UPLOAD
        assert record.upload_timestamp == 1000
        assert record.stages[StageName.UPLOAD].status == StageStatus.COMPLETED
        assert record.stages[StageName.UPLOAD].timestamp == 1000
        for stage in STAGE_ORDER[1:]:
            assert record.stages[stage].status == StageStatus.PENDING

    def test_storage_key_layout(self) -> None:
        assert storage_key_for("abc", "x.pdf") == "documents/abc/x.pdf"


class TestWireShape:
    def test_unset_optionals_are_omitted(self) -> None:
        body = new_record("doc1", "a.pdf", "application/pdf", "documents/doc1/a.pdf", 5).to_dict()

        assert body["documentId"] == "doc1"
        assert body["fileName"] == "a.pdf"
        assert body["status"] == "uploaded"
        assert body["stages"]["upload"] == {"status": "completed", "timestamp": 5}
        assert body["stages"]["extraction"] == {"status": "pending"}
        assert "summary" not in body
        assert "errorMessage" not in body

    def test_stage_state_round_trip_uses_wire_names(self) -> None:
        state = StageState(StageStatus.FAILED, 7, "boom", None)
        data = state.to_dict()

        assert data == {"status": "failed", "timestamp": 7, "errorMessage": "boom"}
        assert StageState.from_dict(data) == state

    def test_entity_to_dict(self) -> None:
        assert Entity("ACME", "ORGANIZATION", 0.5).to_dict() == {
            "text": "ACME",
            "type": "ORGANIZATION",
            "confidence": 0.5,
        }
