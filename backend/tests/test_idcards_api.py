"""
HTTP surface: routing, auth, and error rendering as {"detail", "code"}.

Services are patched; their behaviour is covered by the service tests.
"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from idcards.errors import (
    FailedPreconditionError,
    NotFoundError,
    PartialWriteError,
    ResourceExhaustedError,
)
from idcards.models.cards import IssueCardResponse
from idcards.models.forms import PublishFormResponse, SubmitFormResponse
from idcards.models.templates import ExtractionResponse
from idcards.services.card_service import card_issuance_service
from idcards.services.form_service import form_service
from idcards.services.ocr_service import template_ocr_service
from idcards.services.storage_adapter import StoredFileNotFoundError, storage_adapter


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_root(client):
    assert client.get("/api").json()["service"] == "ID Card Studio"


class TestAuth:

    def test_publish_requires_auth(self, client):
        response = client.post("/api/idcards/forms", json={"company_id": "c1", "template_id": "t1"})
        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated", "code": "unauthenticated"}

    def test_bad_token(self, client):
        response = client.post(
            "/api/idcards/cards/issue",
            json={"submission_id": "SUB-1"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    def test_public_submit_needs_no_auth(self, client):
        with patch.object(form_service, "submit", new=AsyncMock(return_value=SubmitFormResponse(submission_id="SUB-1"))):
            response = client.post("/api/idcards/forms/submit", json={"form_id": "f1", "employee_data": {}})
        assert response.status_code == 201
        assert response.json()["submission_id"] == "SUB-1"


class TestForms:

    def test_publish(self, client, auth_headers):
        published = PublishFormResponse(form_id="abc", public_url="http://localhost:3000/form/abc")
        with patch.object(form_service, "publish", new=AsyncMock(return_value=published)) as publish:
            response = client.post(
                "/api/idcards/forms",
                json={"company_id": "c1", "template_id": "t1", "expiry_date": "2026-12-31", "max_submissions": 10},
                headers=auth_headers,
            )

        assert response.status_code == 201
        assert response.json() == {"success": True, "form_id": "abc", "public_url": "http://localhost:3000/form/abc"}
        request = publish.call_args[0][0]
        assert request.max_submissions == 10
        assert publish.call_args[1]["created_by"] == "user-1"

    def test_negative_cap_is_validation_error(self, client, auth_headers):
        response = client.post(
            "/api/idcards/forms",
            json={"company_id": "c1", "template_id": "t1", "max_submissions": -1},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert "request_id" in response.json()

    def test_closed_form(self, client):
        error = FailedPreconditionError("Form is inactive or does not exist.")
        with patch.object(form_service, "submit", new=AsyncMock(side_effect=error)):
            response = client.post("/api/idcards/forms/submit", json={"form_id": "f1", "employee_data": {"name": "x"}})
        assert response.status_code == 409
        assert response.json() == {"detail": "Form is inactive or does not exist.", "code": "failed-precondition"}

    def test_cap_reached(self, client):
        with patch.object(form_service, "submit", new=AsyncMock(side_effect=ResourceExhaustedError("Submission limit reached."))):
            response = client.post("/api/idcards/forms/submit", json={"form_id": "f1", "employee_data": {}})
        assert response.status_code == 429
        assert response.json()["code"] == "resource-exhausted"

    def test_counter_drift_reports_submission(self, client):
        error = PartialWriteError("Submission recorded but the form counter was not updated.", record_id="SUB-9")
        with patch.object(form_service, "submit", new=AsyncMock(side_effect=error)):
            response = client.post("/api/idcards/forms/submit", json={"form_id": "f1", "employee_data": {}})
        assert response.status_code == 500
        assert response.json()["code"] == "internal"
        assert response.json()["record_id"] == "SUB-9"

    def test_missing_form_data_from_real_service(self, client):
        response = client.post("/api/idcards/forms/submit", json={"employee_data": {"name": "x"}})
        assert response.status_code == 400
        assert response.json() == {"detail": "Missing form data.", "code": "invalid-input"}

    def test_multipart_submission(self, client):
        submit = AsyncMock(return_value=SubmitFormResponse(submission_id="SUB-2"))
        with patch.object(form_service, "submit_with_photo", new=submit):
            response = client.post(
                "/api/idcards/forms/f1/submissions",
                data={"employee_data": json.dumps({"name": "Ann"})},
                files={"photo": ("me.jpg", b"jpegbytes", "image/jpeg")},
            )
        assert response.status_code == 201
        args, kwargs = submit.call_args
        assert args == ("f1", {"name": "Ann"})
        assert kwargs["photo"] == b"jpegbytes"
        assert kwargs["photo_content_type"] == "image/jpeg"

    def test_multipart_bad_json(self, client):
        response = client.post("/api/idcards/forms/f1/submissions", data={"employee_data": "{not json"})
        assert response.status_code == 400
        assert response.json()["code"] == "invalid-input"

    def test_public_view_not_found(self, client):
        with patch.object(form_service, "get_public_form", new=AsyncMock(side_effect=NotFoundError("Form not found"))):
            response = client.get("/api/idcards/forms/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "not-found"


class TestTemplatesAndCards:

    def test_no_text_is_200(self, client, auth_headers):
        soft = ExtractionResponse(success=False, message="No text found.")
        with patch.object(template_ocr_service, "run_extraction", new=AsyncMock(return_value=soft)):
            response = client.post(
                "/api/idcards/templates/extract",
                json={"template_id": "t1", "image_path": "gs://b/t1.png"},
                headers=auth_headers,
            )
        assert response.status_code == 200
        assert response.json() == {"success": False, "fields": [], "message": "No text found."}

    def test_issue_card(self, client, auth_headers):
        issue = AsyncMock(return_value=IssueCardResponse(pdf_url="http://api/files/f1"))
        with patch.object(card_issuance_service, "issue_card", new=issue):
            response = client.post("/api/idcards/cards/issue", json={"submission_id": "SUB-1"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True, "pdf_url": "http://api/files/f1"}
        assert issue.call_args[1]["issued_by"] == "user-1"

    def test_issue_card_quota(self, client, auth_headers):
        issue = AsyncMock(side_effect=ResourceExhaustedError("Card limit reached."))
        with patch.object(card_issuance_service, "issue_card", new=issue):
            response = client.post("/api/idcards/cards/issue", json={"submission_id": "SUB-1"}, headers=auth_headers)
        assert response.status_code == 429
        assert response.json() == {"detail": "Card limit reached.", "code": "resource-exhausted"}

    def test_plans_are_public(self, client):
        plans = client.get("/api/idcards/companies/plans").json()["plans"]
        assert [p["cards_limit"] for p in plans] == [50, 200, 500]


class TestFiles:

    def test_card_download_is_counted(self, client):
        meta = SimpleNamespace(content_type="application/pdf", path="generated_cards/c1/SUB-1_1.pdf")
        with patch.object(storage_adapter, "download_file", new=AsyncMock(return_value=(b"%PDF", meta))), \
             patch.object(card_issuance_service, "record_download", new=AsyncMock()) as record:
            response = client.get("/api/idcards/files/abc123")

        assert response.status_code == 200
        assert response.content == b"%PDF"
        assert response.headers["content-type"] == "application/pdf"
        assert "SUB-1_1.pdf" in response.headers["content-disposition"]
        record.assert_awaited_once_with("abc123")

    def test_photo_download_not_counted(self, client):
        meta = SimpleNamespace(content_type="image/jpeg", path="submissions/c1/f1/1_photo.jpg")
        with patch.object(storage_adapter, "download_file", new=AsyncMock(return_value=(b"jpeg", meta))), \
             patch.object(card_issuance_service, "record_download", new=AsyncMock()) as record:
            response = client.get("/api/idcards/files/abc123")
        assert response.status_code == 200
        record.assert_not_called()

    def test_missing_file(self, client):
        with patch.object(storage_adapter, "download_file", new=AsyncMock(side_effect=StoredFileNotFoundError("x"))):
            response = client.get("/api/idcards/files/nope")
        assert response.status_code == 404
        assert response.json()["code"] == "not-found"
