"""ID Card Studio Company & Subscription Models

The subscription embedded on a company carries the card quota:
cards_used is incremented once per issued card and never decremented.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid

from idcards.config import DEFAULT_CARDS_LIMIT


class SubscriptionPlan(str, Enum):
    STARTER = "starter"
    PRO = "pro"
    BUSINESS = "business"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class CompanySubscription(BaseModel):
    plan: SubscriptionPlan = SubscriptionPlan.STARTER
    cards_limit: int = Field(default=50, gt=0)
    cards_used: int = Field(default=0, ge=0)
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class Company(BaseModel):
    company_id: str = Field(default_factory=lambda: f"CMP-{uuid.uuid4().hex[:12].upper()}")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    logo: Optional[str] = None
    brand_color: Optional[str] = None
    admin_id: Optional[str] = None

    subscription: CompanySubscription = Field(default_factory=CompanySubscription)

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"extra": "ignore"}


class PlanDetails(BaseModel):
    """Plan details for display"""
    plan: SubscriptionPlan
    name: str
    monthly_price: int  # Price in cents
    cards_limit: int
    features: List[str]


# ============================================================================
# Plan Configuration
# ============================================================================

PLANS = {
    SubscriptionPlan.STARTER: PlanDetails(
        plan=SubscriptionPlan.STARTER,
        name="Starter",
        monthly_price=999,
        cards_limit=50,
        features=["50 ID cards/month", "Basic templates", "Email support"],
    ),
    SubscriptionPlan.PRO: PlanDetails(
        plan=SubscriptionPlan.PRO,
        name="Pro",
        monthly_price=2999,
        cards_limit=200,
        features=["200 ID cards/month", "Custom templates", "Priority support", "Bulk upload"],
    ),
    SubscriptionPlan.BUSINESS: PlanDetails(
        plan=SubscriptionPlan.BUSINESS,
        name="Business",
        monthly_price=4999,
        cards_limit=500,
        features=[
            "500 ID cards/month",
            "Unlimited templates",
            "Dedicated support",
            "API access",
            "White label",
        ],
    ),
}


def _as_utc(value: datetime) -> datetime:
    # Mongo hands back naive UTC datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def quota_of(company: Dict[str, Any]) -> tuple:
    """(cards_used, cards_limit) with the stored defaults applied."""
    subscription = company.get("subscription") or {}
    cards_used = subscription.get("cards_used") or 0
    cards_limit = subscription.get("cards_limit") or DEFAULT_CARDS_LIMIT
    return cards_used, cards_limit


def can_generate_card(company: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    """Subscription-level eligibility shown to the dashboard.

    Stricter than the issuance gate, which only applies the numeric quota:
    the subscription must also be active and not past its end date.
    """
    if not company or not company.get("subscription"):
        return False
    subscription = company["subscription"]
    now = now or datetime.now(timezone.utc)

    if subscription.get("status") != SubscriptionStatus.ACTIVE.value:
        return False
    cards_used, cards_limit = quota_of(company)
    if cards_used >= cards_limit:
        return False
    end_date = subscription.get("end_date")
    if end_date and _as_utc(end_date) <= now:
        return False
    return True


# ============================================================================
# Request / Response Models
# ============================================================================

class CreateCompanyRequest(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    logo: Optional[str] = None
    brand_color: Optional[str] = None
    plan: SubscriptionPlan = SubscriptionPlan.STARTER


class CompanyUsageResponse(BaseModel):
    company_id: str
    plan: Optional[str] = None
    status: Optional[str] = None
    cards_used: int
    cards_limit: int
    cards_remaining: int
    can_generate: bool
