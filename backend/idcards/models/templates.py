"""ID Card Studio Template Models

A template is an uploaded ID-card design plus the registration form fields
proposed by OCR and confirmed by an operator.
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, List
from datetime import datetime, timezone
from enum import Enum
import uuid

from idcards.config import (
    DEFAULT_CARD_WIDTH_MM,
    DEFAULT_CARD_HEIGHT_MM,
    DEFAULT_CARD_DPI,
)


class FieldType(str, Enum):
    """Input kinds available on the public registration form"""
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    DATE = "date"
    NUMBER = "number"
    PHOTO = "photo"


class TemplateStatus(str, Enum):
    DRAFT = "draft"        # Uploaded, fields not confirmed yet
    ACTIVE = "active"      # Fields saved, usable for forms
    ARCHIVED = "archived"  # Retired manually


class OCRBlock(BaseModel):
    """One text run detected by the OCR engine."""
    block_id: str
    text: str
    confidence: float = 0.0
    bounding_box: List[Dict[str, int]] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class OCRData(BaseModel):
    raw_text: str = ""
    blocks: List[OCRBlock] = Field(default_factory=list)


class TemplateField(BaseModel):
    """A proposed or confirmed input on the registration form."""
    id: str = Field(default_factory=lambda: f"field_{uuid.uuid4().hex[:12]}")
    label: str
    field_type: FieldType = FieldType.TEXT
    required: bool = True
    placeholder: str = ""
    validation: Optional[str] = None
    ocr_mapped: bool = False
    ocr_text: Optional[str] = None

    model_config = {"extra": "ignore"}


class CardDesign(BaseModel):
    """Physical card size and optional custom HTML layout.

    html_template placeholders: {{employee.<key>}}, {{company.<key>}},
    {{photo}}, {{qrCode}}.
    """
    width: float = DEFAULT_CARD_WIDTH_MM
    height: float = DEFAULT_CARD_HEIGHT_MM
    dpi: int = DEFAULT_CARD_DPI
    html_template: Optional[str] = None


class Template(BaseModel):
    """Stored ID-card template record"""
    template_id: str = Field(default_factory=lambda: f"TPL-{uuid.uuid4().hex[:12].upper()}")
    company_id: str
    name: str

    # Uploaded design
    original_file: Optional[str] = None  # Public URL of the uploaded image
    file_id: Optional[str] = None        # Storage file ID
    file_type: str = "image"

    # OCR
    ocr_processed: bool = False
    ocr_data: Optional[OCRData] = None

    fields: List[TemplateField] = Field(default_factory=list)
    card_design: CardDesign = Field(default_factory=CardDesign)
    status: TemplateStatus = TemplateStatus.DRAFT

    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


# ============================================================================
# Request / Response Models
# ============================================================================

class RunExtractionRequest(BaseModel):
    """image_path is a storage file ID, or a gs:// / https:// image URI."""
    template_id: Optional[str] = None
    image_path: Optional[str] = None


class ExtractionResponse(BaseModel):
    """success=False with no fields is the soft "no text found" outcome."""
    success: bool
    fields: List[TemplateField] = Field(default_factory=list)
    message: Optional[str] = None


class UpdateFieldsRequest(BaseModel):
    fields: List[TemplateField]


class TemplateResponse(BaseModel):
    template_id: str
    company_id: str
    name: str
    original_file: Optional[str] = None
    ocr_processed: bool
    fields: List[TemplateField]
    card_design: CardDesign
    status: TemplateStatus
