"""ID Card Studio Company Routes

Endpoints:
- GET /api/idcards/companies/plans - Available subscription plans
- POST /api/idcards/companies - Create a company
- GET /api/idcards/companies/{id}/usage - Card quota usage
"""

from fastapi import APIRouter, Depends

from auth import caller_id
from middleware import require_auth
from idcards.models.companies import PLANS, Company, CompanyUsageResponse, CreateCompanyRequest
from idcards.services.company_service import company_service

router = APIRouter(prefix="/api/idcards/companies", tags=["ID Card Companies"])


@router.get("/plans")
async def get_plans():
    """No auth required - for display on the pricing page."""
    return {"plans": [plan.model_dump() for plan in PLANS.values()]}


@router.post("", response_model=Company, status_code=201)
async def create_company(request: CreateCompanyRequest, user: dict = Depends(require_auth)):
    return await company_service.create_company(request, admin_id=caller_id(user))


@router.get("/{company_id}/usage", response_model=CompanyUsageResponse)
async def get_usage(company_id: str, user: dict = Depends(require_auth)):
    return await company_service.get_usage(company_id)
