"""ID Card Studio Form Models

A form is a published, shareable instance of a template. Whether it still
accepts submissions is derived from status, expiry and cap; see
idcards.services.form_service.form_rejection.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
from datetime import date, datetime, timezone
from enum import Enum

from idcards.models.templates import TemplateField


class FormStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"  # Set externally; terminal


class Form(BaseModel):
    """Published form record"""
    form_id: str
    company_id: str
    template_id: str
    public_url: str

    # Limits
    expires_at: Optional[datetime] = None
    max_submissions: Optional[int] = None
    submission_count: int = 0

    status: FormStatus = FormStatus.ACTIVE
    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


# ============================================================================
# Request / Response Models
# ============================================================================

class PublishFormRequest(BaseModel):
    """Ids are optional at the schema level so a missing id is reported as
    invalid-input by the service rather than as a schema error."""
    company_id: Optional[str] = None
    template_id: Optional[str] = None
    expiry_date: Optional[datetime] = None
    max_submissions: Optional[int] = Field(default=None, ge=0)

    model_config = {"extra": "ignore"}

    @field_validator("expiry_date", mode="before")
    @classmethod
    def parse_expiry_date(cls, v):
        """Accept a plain date ("2025-06-30") as midnight UTC."""
        if v in (None, ""):
            return None
        if isinstance(v, datetime):
            return v
        if isinstance(v, date):
            return datetime(v.year, v.month, v.day, tzinfo=timezone.utc)
        if isinstance(v, str) and len(v) == 10:
            return datetime.fromisoformat(v).replace(tzinfo=timezone.utc)
        return v

    @field_validator("expiry_date")
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class PublishFormResponse(BaseModel):
    success: bool = True
    form_id: str
    public_url: str


class SubmitFormRequest(BaseModel):
    """company_id / template_id are accepted for compatibility but never
    trusted; the stored form decides where a submission belongs.

    Photos arrive only through the multipart route, so any caller-supplied
    photo URL is dropped with the other unknown keys."""
    form_id: Optional[str] = None
    employee_data: Optional[Dict[str, Any]] = None
    company_id: Optional[str] = None
    template_id: Optional[str] = None

    model_config = {"extra": "ignore"}


class SubmitFormResponse(BaseModel):
    success: bool = True
    submission_id: str


class PublicFormView(BaseModel):
    """What the public registration page needs to render a form."""
    form_id: str
    company_name: Optional[str] = None
    template_name: Optional[str] = None
    fields: List[TemplateField] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    is_usable: bool
    unusable_reason: Optional[str] = None
