"""ID Card Studio Card Routes

Endpoints:
- POST /api/idcards/cards/issue - Render and issue a card for a submission
"""

from fastapi import APIRouter, Depends

from auth import caller_id
from middleware import require_auth
from idcards.models.cards import IssueCardRequest, IssueCardResponse
from idcards.services.card_service import card_issuance_service

router = APIRouter(prefix="/api/idcards/cards", tags=["ID Cards"])


@router.post("/issue", response_model=IssueCardResponse)
async def issue_card(request: IssueCardRequest, user: dict = Depends(require_auth)):
    return await card_issuance_service.issue_card(request.submission_id, issued_by=caller_id(user))
