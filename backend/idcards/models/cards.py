"""ID Card Studio Generated Card Models"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import uuid


class GeneratedCard(BaseModel):
    """Record of a rendered card PDF."""
    card_id: str = Field(default_factory=lambda: f"CRD-{uuid.uuid4().hex[:12].upper()}")
    submission_id: str
    company_id: str
    employee_id: str  # employee_data.employee_id, or the submission id

    pdf_url: str
    file_id: Optional[str] = None
    file_size: int
    download_count: int = 0

    generated_by: Optional[str] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


class CardData(BaseModel):
    """Everything a card layout can reference."""
    company: Dict[str, Any]
    employee: Dict[str, Any]
    photo: Optional[str] = None
    qr_code: str
    width: float
    height: float


# ============================================================================
# Request / Response Models
# ============================================================================

class IssueCardRequest(BaseModel):
    submission_id: Optional[str] = None


class IssueCardResponse(BaseModel):
    success: bool = True
    pdf_url: str
