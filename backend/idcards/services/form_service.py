"""ID Card Studio Form Service

Form lifecycle:
- Publish a shareable form for a template
- Validate a form before accepting a submission
- Record a submission and bump the form's submission counter

A form's usability is derived (form_rejection) from three stored fields:
status, expires_at and max_submissions. Nothing flips status on expiry or on
reaching the cap.

Concurrency: the cap check and the counter increment are separate round
trips, so simultaneous submissions can overshoot max_submissions slightly.
The increment itself is an atomic $inc.
"""

import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo.errors import DuplicateKeyError

from database import database
from idcards.config import (
    COMPANIES_COLLECTION,
    FORM_ID_BYTES,
    FORM_ID_MAX_ATTEMPTS,
    FORMS_COLLECTION,
    SUBMISSIONS_COLLECTION,
    TEMPLATES_COLLECTION,
)
from idcards.errors import (
    FailedPreconditionError,
    IdCardError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    PartialWriteError,
    ResourceExhaustedError,
)
from idcards.models.forms import (
    Form,
    FormStatus,
    PublicFormView,
    PublishFormRequest,
    PublishFormResponse,
    SubmitFormRequest,
    SubmitFormResponse,
)
from idcards.models.submissions import Submission
from idcards.models.templates import FieldType
from idcards.services.storage_adapter import storage_adapter
from utils.public_app_url import build_public_form_url

logger = logging.getLogger(__name__)

PHOTO_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}


def generate_form_id() -> str:
    return secrets.token_urlsafe(FORM_ID_BYTES)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def form_rejection(form: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> Optional[IdCardError]:
    """Return the error a submission to this form would fail with, or None.

    Checks run in a fixed order: existence/status, then cap, then expiry.
    """
    if not form or form.get("status") != FormStatus.ACTIVE.value:
        return FailedPreconditionError("Form is inactive or does not exist.")

    max_submissions = form.get("max_submissions")
    if max_submissions and (form.get("submission_count") or 0) >= max_submissions:
        return ResourceExhaustedError("Submission limit reached.")

    expires_at = form.get("expires_at")
    if expires_at and _as_utc(expires_at) < (now or datetime.now(timezone.utc)):
        return FailedPreconditionError("Form has expired.")

    return None


def is_form_usable(form: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    return form_rejection(form, now) is None


class FormService:
    """Publishing and submission handling for public forms."""

    def __init__(self, db=None, storage=None):
        self.db = db
        self.storage = storage or storage_adapter

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    # =========================================================================
    # PUBLISH
    # =========================================================================

    async def publish(self, request: PublishFormRequest, created_by: Optional[str]) -> PublishFormResponse:
        """Create an active form with a fresh id and public URL.

        form_id carries a unique index; a colliding id surfaces as
        DuplicateKeyError and is regenerated.
        """
        if not request.company_id or not request.template_id:
            raise InvalidInputError("Missing required fields.")

        db = self._get_db()

        for attempt in range(1, FORM_ID_MAX_ATTEMPTS + 1):
            form_id = generate_form_id()
            form = Form(
                form_id=form_id,
                company_id=request.company_id,
                template_id=request.template_id,
                public_url=build_public_form_url(form_id),
                expires_at=request.expiry_date,
                max_submissions=request.max_submissions or None,
                submission_count=0,
                status=FormStatus.ACTIVE,
                created_by=created_by,
            )
            try:
                await db[FORMS_COLLECTION].insert_one(form.model_dump())
            except DuplicateKeyError:
                logger.warning(f"Form id collision on attempt {attempt}, regenerating")
                continue
            except Exception as e:
                logger.error(f"Create Form Error: {e}", exc_info=True)
                raise InternalError("Failed to create public form.")

            logger.info(f"Published form {form_id} for template {request.template_id} (company {request.company_id})")
            return PublishFormResponse(form_id=form_id, public_url=form.public_url)

        logger.error(f"Could not allocate a unique form id after {FORM_ID_MAX_ATTEMPTS} attempts")
        raise InternalError("Failed to create public form.")

    # =========================================================================
    # SUBMISSIONS
    # =========================================================================

    async def validate_for_submission(self, form_id: str) -> Dict[str, Any]:
        """Load the form and raise unless it accepts submissions right now."""
        db = self._get_db()
        try:
            form = await db[FORMS_COLLECTION].find_one({"form_id": form_id}, {"_id": 0})
        except Exception as e:
            logger.error(f"Failed to load form {form_id}: {e}", exc_info=True)
            raise InternalError("Submission failed.")

        rejection = form_rejection(form)
        if rejection is not None:
            logger.warning(f"Submission to form {form_id} rejected: {rejection.message}")
            raise rejection
        return form

    async def record_submission(
        self,
        form: Dict[str, Any],
        employee_data: Dict[str, Any],
        photo_url: Optional[str] = None,
    ) -> Submission:
        """Store a pending submission, then increment the form counter by one.

        The two writes are not atomic. If the increment fails the submission
        stays stored and PartialWriteError reports its id.
        """
        db = self._get_db()
        submission = Submission(
            form_id=form["form_id"],
            company_id=form["company_id"],
            template_id=form["template_id"],
            employee_data=employee_data,
            photo_url=photo_url or None,
        )

        try:
            await db[SUBMISSIONS_COLLECTION].insert_one(submission.model_dump())
        except Exception as e:
            logger.error(f"Submission Error for form {form['form_id']}: {e}", exc_info=True)
            raise InternalError("Submission failed.")

        try:
            result = await db[FORMS_COLLECTION].update_one(
                {"form_id": form["form_id"]},
                {"$inc": {"submission_count": 1}},
            )
            incremented = result.matched_count == 1
        except Exception as e:
            logger.error(f"Counter increment raised for form {form['form_id']}: {e}", exc_info=True)
            incremented = False

        if not incremented:
            logger.error(
                f"Submission {submission.submission_id} stored but submission_count of form "
                f"{form['form_id']} was not incremented"
            )
            raise PartialWriteError(
                "Submission recorded but the form counter was not updated.",
                record_id=submission.submission_id,
            )

        logger.info(f"Recorded submission {submission.submission_id} for form {form['form_id']}")
        return submission

    async def submit(self, request: SubmitFormRequest) -> SubmitFormResponse:
        """Submit employee data to a public form."""
        if not request.form_id or request.employee_data is None:
            raise InvalidInputError("Missing form data.")

        form = await self.validate_for_submission(request.form_id)

        if (request.company_id and request.company_id != form["company_id"]) or \
           (request.template_id and request.template_id != form["template_id"]):
            logger.warning(
                f"Submission to form {request.form_id} named company/template "
                f"{request.company_id}/{request.template_id}; using the form's own"
            )

        submission = await self.record_submission(form, request.employee_data)
        return SubmitFormResponse(submission_id=submission.submission_id)

    async def submit_with_photo(
        self,
        form_id: str,
        employee_data: Dict[str, Any],
        photo: Optional[bytes] = None,
        photo_content_type: str = "image/jpeg",
    ) -> SubmitFormResponse:
        """Public page path: validate, upload the photo, then record.

        A missing photo is rejected when the template's photo field is
        required. The form is validated before anything is uploaded.
        """
        if not form_id or employee_data is None:
            raise InvalidInputError("Missing form data.")

        db = self._get_db()
        form = await self.validate_for_submission(form_id)

        if not photo:
            template = await db[TEMPLATES_COLLECTION].find_one(
                {"template_id": form["template_id"]}, {"_id": 0, "fields": 1}
            )
            photo_fields = [
                f for f in (template or {}).get("fields", [])
                if f.get("field_type") == FieldType.PHOTO.value
            ]
            if any(f.get("required") for f in photo_fields):
                raise InvalidInputError("Employee photo is required.")

        file_meta, photo_url = None, None
        if photo:
            extension = PHOTO_EXTENSIONS.get(photo_content_type, "jpg")
            path = f"submissions/{form['company_id']}/{form_id}/{int(time.time() * 1000)}_photo.{extension}"
            try:
                file_meta, photo_url = await self.storage.save(
                    photo, path, photo_content_type, metadata={"form_id": form_id}
                )
            except Exception as e:
                logger.error(f"Photo upload failed for form {form_id}: {e}", exc_info=True)
                raise InternalError("Submission failed.")

        try:
            submission = await self.record_submission(form, employee_data, photo_url)
        except PartialWriteError:
            # Submission is stored and references the photo
            raise
        except InternalError:
            if file_meta is not None:
                await self.storage.delete_file(file_meta.file_id)
            raise
        return SubmitFormResponse(submission_id=submission.submission_id)

    # =========================================================================
    # PUBLIC VIEW
    # =========================================================================

    async def get_public_form(self, form_id: str) -> PublicFormView:
        db = self._get_db()
        form = await db[FORMS_COLLECTION].find_one({"form_id": form_id}, {"_id": 0})
        if not form:
            raise NotFoundError("Form not found")

        template = await db[TEMPLATES_COLLECTION].find_one(
            {"template_id": form["template_id"]}, {"_id": 0}
        ) or {}
        company = await db[COMPANIES_COLLECTION].find_one(
            {"company_id": form["company_id"]}, {"_id": 0, "name": 1}
        ) or {}

        rejection = form_rejection(form)
        return PublicFormView(
            form_id=form_id,
            company_name=company.get("name"),
            template_name=template.get("name"),
            fields=template.get("fields", []),
            expires_at=form.get("expires_at"),
            is_usable=rejection is None,
            unusable_reason=rejection.message if rejection else None,
        )


form_service = FormService()
