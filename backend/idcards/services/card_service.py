"""ID Card Studio Card Issuance

Issue card flow:
1. Load submission, template, company (not-found in that order)
2. Quota check, before any rendering
3. Render HTML -> PDF (bounded by RENDER_TIMEOUT_SECONDS)
4. Upload the PDF
5. Book one card against the quota (conditional $inc)
6. Insert the GeneratedCard record
7. Mark the submission approved

Steps 5-7 are separate writes, not a transaction. The quota booking is
atomic with its own precondition, so concurrent issuances cannot push
cards_used past cards_limit. If step 6 or 7 fails after the quota was
booked, PartialWriteError reports the submission id; the booked card is
not refunded (cards_used never decreases).
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ReturnDocument

from database import database
from idcards.config import (
    COMPANIES_COLLECTION,
    GENERATED_CARDS_COLLECTION,
    RENDER_TIMEOUT_SECONDS,
    SUBMISSIONS_COLLECTION,
    TEMPLATES_COLLECTION,
)
from idcards.errors import (
    InternalError,
    InvalidInputError,
    NotFoundError,
    PartialWriteError,
    ResourceExhaustedError,
)
from idcards.models.cards import GeneratedCard, IssueCardResponse
from idcards.models.companies import quota_of
from idcards.models.submissions import SubmissionStatus
from idcards.services.card_renderer import (
    build_card_data,
    build_qr_payload,
    generate_qr_data_url,
    pdf_renderer,
    render_card_html,
)
from idcards.services.storage_adapter import storage_adapter

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = "Card limit reached."


class CardIssuanceService:
    """Quota-gated card rendering and issuance."""

    def __init__(self, db=None, storage=None, renderer=None):
        self.db = db
        self.storage = storage or storage_adapter
        self.renderer = renderer or pdf_renderer

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    async def _load(self, collection: str, key: str, value: str, label: str) -> Dict[str, Any]:
        db = self._get_db()
        try:
            doc = await db[collection].find_one({key: value}, {"_id": 0})
        except Exception as e:
            logger.error(f"Failed to load {label} {value}: {e}", exc_info=True)
            raise InternalError("Card generation failed.")
        if not doc:
            raise NotFoundError(f"{label} not found")
        return doc

    async def _render_pdf(self, html_content: str, width: float, height: float) -> bytes:
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, self.renderer.render, html_content, width, height),
            timeout=RENDER_TIMEOUT_SECONDS,
        )

    async def _book_card(self, company_id: str, cards_limit: int) -> Optional[Dict[str, Any]]:
        """Increment cards_used by one only while it is below cards_limit.

        Returns the updated company, or None when the quota is already used up.
        """
        db = self._get_db()
        return await db[COMPANIES_COLLECTION].find_one_and_update(
            {
                "company_id": company_id,
                "$or": [
                    {"subscription.cards_used": {"$lt": cards_limit}},
                    {"subscription.cards_used": {"$exists": False}},
                    {"subscription.cards_used": None},
                ],
            },
            {
                "$inc": {"subscription.cards_used": 1},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            },
            projection={"_id": 0},
            return_document=ReturnDocument.AFTER,
        )

    async def issue_card(self, submission_id: Optional[str], issued_by: Optional[str]) -> IssueCardResponse:
        if not submission_id:
            raise InvalidInputError("Missing submission id.")

        db = self._get_db()
        logger.info(f"Issuing card for submission {submission_id}")

        submission = await self._load(SUBMISSIONS_COLLECTION, "submission_id", submission_id, "Submission")
        template = await self._load(TEMPLATES_COLLECTION, "template_id", submission["template_id"], "Template")
        company = await self._load(COMPANIES_COLLECTION, "company_id", submission["company_id"], "Company")
        company_id = company["company_id"]

        cards_used, cards_limit = quota_of(company)
        if cards_used >= cards_limit:
            logger.warning(f"Card quota exhausted for company {company_id} ({cards_used}/{cards_limit})")
            raise ResourceExhaustedError(QUOTA_MESSAGE)

        # Render
        employee_data = submission.get("employee_data") or {}
        qr_code = generate_qr_data_url(build_qr_payload(employee_data, company, submission_id))
        card = build_card_data(template, company, submission, qr_code)
        html_template = (template.get("card_design") or {}).get("html_template")

        try:
            pdf_bytes = await self._render_pdf(render_card_html(card, html_template), card.width, card.height)
        except asyncio.TimeoutError:
            logger.error(f"Card render timed out after {RENDER_TIMEOUT_SECONDS}s for submission {submission_id}")
            raise InternalError("Card generation timed out.")
        except Exception as e:
            logger.error(f"Card render failed for submission {submission_id}: {e}", exc_info=True)
            raise InternalError("Card generation failed.")

        # Upload
        path = f"generated_cards/{company_id}/{submission_id}_{int(time.time() * 1000)}.pdf"
        try:
            file_meta, pdf_url = await self.storage.save(
                pdf_bytes, path, "application/pdf", metadata={"submission_id": submission_id}
            )
        except Exception as e:
            logger.error(f"Card upload failed for submission {submission_id}: {e}", exc_info=True)
            raise InternalError("Card generation failed.")

        # Book quota
        try:
            booked = await self._book_card(company_id, cards_limit)
        except Exception as e:
            logger.error(f"Quota update failed for company {company_id}: {e}", exc_info=True)
            await self.storage.delete_file(file_meta.file_id)
            raise InternalError("Card generation failed.")

        if booked is None:
            # Lost a race with a concurrent issuance
            logger.warning(f"Card quota exhausted for company {company_id} while issuing {submission_id}")
            await self.storage.delete_file(file_meta.file_id)
            raise ResourceExhaustedError(QUOTA_MESSAGE)

        # Record
        now = datetime.now(timezone.utc)
        generated = GeneratedCard(
            submission_id=submission_id,
            company_id=company_id,
            employee_id=str(employee_data.get("employee_id") or submission_id),
            pdf_url=pdf_url,
            file_id=file_meta.file_id,
            file_size=len(pdf_bytes),
            download_count=0,
            generated_by=issued_by,
            generated_at=now,
        )

        try:
            await db[GENERATED_CARDS_COLLECTION].insert_one(generated.model_dump())
            await db[SUBMISSIONS_COLLECTION].update_one(
                {"submission_id": submission_id},
                {
                    "$set": {
                        "status": SubmissionStatus.APPROVED.value,
                        "approved_at": now,
                        "approved_by": issued_by,
                        "card_url": pdf_url,
                    }
                },
            )
        except Exception as e:
            logger.error(
                f"Card {generated.card_id} booked against company {company_id} but recording "
                f"submission {submission_id} failed: {e}",
                exc_info=True,
            )
            raise PartialWriteError(
                "Card quota was used but the card was not fully recorded.",
                record_id=submission_id,
            )

        logger.info(
            f"Issued card {generated.card_id} for submission {submission_id} "
            f"(company {company_id}, {booked['subscription']['cards_used']}/{cards_limit})"
        )
        return IssueCardResponse(pdf_url=pdf_url)

    async def record_download(self, file_id: str) -> None:
        """Count a download when file_id belongs to a generated card."""
        db = self._get_db()
        result = await db[GENERATED_CARDS_COLLECTION].update_one(
            {"file_id": file_id},
            {"$inc": {"download_count": 1}},
        )
        if result.matched_count:
            logger.info(f"Card file {file_id} downloaded")


card_issuance_service = CardIssuanceService()
