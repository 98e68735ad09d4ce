"""ID Card Studio Submission Models"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid


class SubmissionStatus(str, Enum):
    """pending -> approved (card issued) -> printed"""
    PENDING = "pending"
    APPROVED = "approved"
    PRINTED = "printed"


class Submission(BaseModel):
    """One employee's completed form entry."""
    submission_id: str = Field(default_factory=lambda: f"SUB-{uuid.uuid4().hex[:12].upper()}")
    form_id: str
    company_id: str
    template_id: str

    employee_data: Dict[str, Any] = Field(default_factory=dict)
    photo_url: Optional[str] = None

    status: SubmissionStatus = SubmissionStatus.PENDING
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Set on card issuance
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    card_url: Optional[str] = None

    model_config = {"extra": "ignore"}
