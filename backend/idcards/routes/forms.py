"""ID Card Studio Form Routes

Endpoints:
- POST /api/idcards/forms - Publish a form (auth)
- POST /api/idcards/forms/submit - Submit employee data (public, JSON)
- GET /api/idcards/forms/{form_id} - Public form view
- POST /api/idcards/forms/{form_id}/submissions - Submit with photo (public, multipart)
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
from typing import Optional
import json
import logging

from auth import caller_id
from middleware import require_auth
from idcards.errors import InvalidInputError
from idcards.models.forms import (
    PublicFormView,
    PublishFormRequest,
    PublishFormResponse,
    SubmitFormRequest,
    SubmitFormResponse,
)
from idcards.services.form_service import form_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/idcards/forms", tags=["ID Card Forms"])


@router.post("", response_model=PublishFormResponse, status_code=201)
async def publish_form(request: PublishFormRequest, user: dict = Depends(require_auth)):
    return await form_service.publish(request, created_by=caller_id(user))


@router.post("/submit", response_model=SubmitFormResponse, status_code=201)
async def submit_form(request: SubmitFormRequest):
    """Public submission. company_id / template_id in the body are ignored."""
    return await form_service.submit(request)


@router.get("/{form_id}", response_model=PublicFormView)
async def get_public_form(form_id: str):
    return await form_service.get_public_form(form_id)


@router.post("/{form_id}/submissions", response_model=SubmitFormResponse, status_code=201)
async def submit_with_photo(
    form_id: str,
    employee_data: str = Form(...),
    photo: Optional[UploadFile] = File(None),
):
    """Public page submission; employee_data is a JSON object."""
    try:
        data = json.loads(employee_data)
    except json.JSONDecodeError:
        raise InvalidInputError("employee_data must be a JSON object.")
    if not isinstance(data, dict):
        raise InvalidInputError("employee_data must be a JSON object.")

    photo_bytes = await photo.read() if photo else None
    return await form_service.submit_with_photo(
        form_id,
        data,
        photo=photo_bytes,
        photo_content_type=(photo.content_type if photo and photo.content_type else "image/jpeg"),
    )
