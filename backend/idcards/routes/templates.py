"""ID Card Studio Template Routes

Endpoints:
- POST /api/idcards/templates - Upload a design image, create a draft template
- GET /api/idcards/templates/{id} - Get template details
- POST /api/idcards/templates/extract - Run OCR field extraction
- PUT /api/idcards/templates/{id}/fields - Replace the field list
- POST /api/idcards/templates/{id}/archive - Archive a template
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile
import logging

from auth import caller_id
from middleware import require_auth
from idcards.models.templates import (
    ExtractionResponse,
    RunExtractionRequest,
    TemplateResponse,
    UpdateFieldsRequest,
)
from idcards.services.ocr_service import template_ocr_service
from idcards.services.template_service import template_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/idcards/templates", tags=["ID Card Templates"])


@router.post("", response_model=TemplateResponse, status_code=201)
async def create_template(
    file: UploadFile = File(...),
    company_id: str = Form(...),
    name: str = Form(...),
    user: dict = Depends(require_auth),
):
    contents = await file.read()
    template = await template_service.create_template(
        company_id=company_id,
        name=name,
        image=contents,
        content_type=file.content_type or "application/octet-stream",
        filename=file.filename or "template",
        created_by=caller_id(user),
    )
    return TemplateResponse(**template.model_dump())


@router.post("/extract", response_model=ExtractionResponse)
async def run_extraction(request: RunExtractionRequest, user: dict = Depends(require_auth)):
    """Propose form fields from the template image.

    success=false with an empty field list means no text was found; the
    operator should add fields manually.
    """
    return await template_ocr_service.run_extraction(request.template_id, request.image_path)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(template_id: str, user: dict = Depends(require_auth)):
    template = await template_service.get_template(template_id)
    return TemplateResponse(**template)


@router.put("/{template_id}/fields", response_model=TemplateResponse)
async def update_fields(template_id: str, request: UpdateFieldsRequest, user: dict = Depends(require_auth)):
    return await template_service.save_fields(template_id, request.fields)


@router.post("/{template_id}/archive")
async def archive_template(template_id: str, user: dict = Depends(require_auth)):
    await template_service.archive_template(template_id)
    return {"success": True}
