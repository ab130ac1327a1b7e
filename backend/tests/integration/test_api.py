"""
Integration tests for the HTTP API.

Uploads are acknowledged with 202 before any generation work runs;
pipeline outcomes are visible only through the status and result endpoints.
"""

import io

import pytest
from docx import Document as WordDocument

from studyforge.db.models import Document, OriginalityCheck
from studyforge.enums import ParseQuality, ProcessingStatus, QuestionType
from studyforge.models.questions import GeneratedQuestions, QuestionRecord
from studyforge.services.processing import state

pytestmark = pytest.mark.integration


def docx_bytes(text: str = "Transmission media carry signals.") -> bytes:
    doc = WordDocument()
    doc.add_paragraph(text)
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def upload(client, path: str = "/api/documents", filename: str = "notes.docx", data: bytes = None, **form):
    return client.post(
        path,
        files={"file": (filename, data if data is not None else docx_bytes(), DOCX_MIME)},
        data=form,
    )


def set_status(run_db, document_id: str, status: ProcessingStatus, error: str = None):
    async def _update(session):
        document = await session.get(Document, document_id)
        document.processing_status = status.value
        document.processing_error = error

    run_db(_update)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDocumentUpload:
    """Tests for POST /api/documents."""

    def test_upload_accepted_and_queued(self, client, enqueued, api_store):
        response = upload(client, title="Networks 101")

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "pending"
        enqueued["upload"].assert_called_once_with(body["document_id"])
        assert len(list(api_store.root.iterdir())) == 1

    def test_title_defaults_to_filename(self, client, run_db):
        document_id = upload(client, filename="Lecture 3.docx").json()["document_id"]

        async def _title(session):
            return (await session.get(Document, document_id)).title

        assert run_db(_title) == "Lecture 3"

    def test_unsupported_type_rejected(self, client, enqueued):
        response = upload(client, filename="notes.txt", data=b"plain text")

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        enqueued["upload"].assert_not_called()

    def test_empty_file_rejected(self, client):
        response = upload(client, data=b"")

        assert response.status_code == 422


class TestProcessingStatus:
    """Tests for GET /api/processing/{id}/status."""

    def test_pending_status(self, client):
        document_id = upload(client).json()["document_id"]

        response = client.get(f"/api/processing/{document_id}/status")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "pending"
        assert body["has_summary"] is False
        assert body["has_questions"] is False
        assert body["expected_questions"] == 70
        assert body["error"] is None

    def test_status_is_idempotent(self, client):
        document_id = upload(client).json()["document_id"]

        first = client.get(f"/api/processing/{document_id}/status").json()
        second = client.get(f"/api/processing/{document_id}/status").json()

        assert first == second

    def test_failed_status_shows_error(self, client, run_db):
        document_id = upload(client).json()["document_id"]
        set_status(run_db, document_id, ProcessingStatus.FAILED, "Document has too little text")

        body = client.get(f"/api/processing/{document_id}/status").json()

        assert body["status"] == "failed"
        assert body["error"] == "Document has too little text"

    def test_unknown_document(self, client):
        response = client.get("/api/processing/missing/status")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestTrigger:
    """Tests for POST /api/processing/{id}/trigger."""

    def test_pending_document_can_be_triggered(self, client, enqueued):
        document_id = upload(client).json()["document_id"]

        response = client.post(f"/api/processing/{document_id}/trigger", json={"total_questions": 10})

        assert response.status_code == 202
        document_arg, config = enqueued["trigger"].call_args.args
        assert document_arg == document_id
        assert config.total_questions == 10
        assert config.retrigger is False

    def test_failed_document_is_retriggered(self, client, enqueued, run_db):
        document_id = upload(client).json()["document_id"]
        set_status(run_db, document_id, ProcessingStatus.FAILED, "boom")

        response = client.post(f"/api/processing/{document_id}/trigger")

        assert response.status_code == 202
        assert enqueued["trigger"].call_args.args[1].retrigger is True

    @pytest.mark.parametrize("status", [ProcessingStatus.PROCESSING, ProcessingStatus.COMPLETED])
    def test_busy_or_done_document_conflicts(self, client, enqueued, run_db, status):
        document_id = upload(client).json()["document_id"]
        set_status(run_db, document_id, status)

        response = client.post(f"/api/processing/{document_id}/trigger")

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"
        enqueued["trigger"].assert_not_called()

    def test_invalid_options_rejected(self, client):
        document_id = upload(client).json()["document_id"]

        response = client.post(f"/api/processing/{document_id}/trigger", json={"total_questions": 0})

        assert response.status_code == 422


class TestResult:
    """Tests for GET /api/processing/{id}/result."""

    def test_result_includes_summary_and_questions(self, client, run_db):
        document_id = upload(client).json()["document_id"]
        generated = GeneratedQuestions(
            questions=[
                QuestionRecord(
                    question_text="Which are wireless?",
                    question_type=QuestionType.MULTI_SELECT,
                    options=["Radio", "Coax", "Infrared", "Fiber"],
                    correct_answer=[0, 2],
                ),
                QuestionRecord(
                    question_text="Fiber carries light.",
                    question_type=QuestionType.TRUE_FALSE,
                    options=["True", "False"],
                    correct_answer=0,
                ),
            ],
            quality=ParseQuality.STRICT,
        )

        async def _process(session):
            await state.begin_processing(session, document_id)
            await state.record_summary(session, document_id, "**Module 1: Media**")
            await state.record_questions(session, document_id, generated)
            await state.complete_processing(session, document_id)

        run_db(_process)

        body = client.get(f"/api/processing/{document_id}/result").json()

        assert body["status"] == "completed"
        assert body["summary"] == "**Module 1: Media**"
        assert body["question_quality"] == "strict"
        assert [q["position"] for q in body["questions"]] == [1, 2]
        assert body["questions"][0]["correct_answer"] == [0, 2]
        assert body["questions"][1]["correct_answer"] == 0


class TestOriginalityApi:
    """Tests for the originality endpoints."""

    def test_create_and_poll_check(self, client, enqueued):
        response = upload(client, path="/api/originality/checks", filename="essay.docx")

        assert response.status_code == 202
        check_id = response.json()["check_id"]
        enqueued["originality"].assert_called_once_with(check_id)

        body = client.get(f"/api/originality/checks/{check_id}").json()
        assert body["status"] == "checking"
        assert body["title"] == "essay"
        assert body["report"] is None

    def test_completed_check_returns_report(self, client, run_db):
        check_id = upload(client, path="/api/originality/checks").json()["check_id"]
        report = {
            "overall_score": 82,
            "ai_score": 20,
            "web_match_score": 10,
            "ai_analysis": {"is_ai_generated": False, "confidence": 70, "indicators": [], "details": ""},
            "web_matches": [],
            "web_analysis": "",
            "suggestions": ["Great job!"],
            "word_count": 120,
            "checked_at": "2026-01-01T00:00:00+00:00",
        }

        async def _complete(session):
            check = await session.get(OriginalityCheck, check_id)
            check.status = "completed"
            check.word_count = 120
            check.overall_score = 82
            check.report = report

        run_db(_complete)

        body = client.get(f"/api/originality/checks/{check_id}").json()

        assert body["status"] == "completed"
        assert body["report"]["overall_score"] == 82
        assert body["word_count"] == 120

    def test_unknown_check(self, client):
        assert client.get("/api/originality/checks/missing").status_code == 404
