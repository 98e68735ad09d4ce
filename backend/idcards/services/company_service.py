"""ID Card Studio Company Service

Companies own templates and forms, and carry the card quota on their
subscription.
"""

from datetime import datetime, timezone
from typing import Optional
import logging

from database import database
from idcards.config import COMPANIES_COLLECTION
from idcards.errors import NotFoundError
from idcards.models.companies import (
    PLANS,
    Company,
    CompanySubscription,
    CompanyUsageResponse,
    CreateCompanyRequest,
    can_generate_card,
    quota_of,
)

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, db=None):
        self.db = db

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    async def create_company(self, request: CreateCompanyRequest, admin_id: Optional[str] = None) -> Company:
        """Create a company on the requested plan with an empty quota."""
        db = self._get_db()
        plan = PLANS[request.plan]

        company = Company(
            name=request.name,
            email=request.email,
            phone=request.phone,
            address=request.address,
            logo=request.logo,
            brand_color=request.brand_color,
            admin_id=admin_id,
            subscription=CompanySubscription(
                plan=request.plan,
                cards_limit=plan.cards_limit,
                cards_used=0,
                start_date=datetime.now(timezone.utc),
            ),
        )

        await db[COMPANIES_COLLECTION].insert_one(company.model_dump())
        logger.info(f"Created company {company.company_id} on plan {plan.name}")
        return company

    async def get_usage(self, company_id: str) -> CompanyUsageResponse:
        db = self._get_db()
        company = await db[COMPANIES_COLLECTION].find_one({"company_id": company_id}, {"_id": 0})
        if not company:
            raise NotFoundError("Company not found")

        subscription = company.get("subscription") or {}
        cards_used, cards_limit = quota_of(company)
        return CompanyUsageResponse(
            company_id=company_id,
            plan=subscription.get("plan"),
            status=subscription.get("status"),
            cards_used=cards_used,
            cards_limit=cards_limit,
            cards_remaining=max(cards_limit - cards_used, 0),
            can_generate=can_generate_card(company),
        )


company_service = CompanyService()
