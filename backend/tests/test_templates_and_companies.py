"""
Template editing and company subscription quota.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from idcards.config import COMPANIES_COLLECTION, TEMPLATES_COLLECTION
from idcards.errors import InvalidInputError, NotFoundError
from idcards.models.companies import CreateCompanyRequest, SubscriptionPlan, can_generate_card
from idcards.models.templates import FieldType, TemplateField
from idcards.services.company_service import CompanyService
from idcards.services.template_service import TemplateService

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def company(**subscription):
    base = {"plan": "starter", "cards_limit": 50, "cards_used": 0, "status": "active", "end_date": None}
    base.update(subscription)
    return {"company_id": "c1", "name": "Acme", "subscription": base}


class TestTemplates:

    @pytest.mark.asyncio
    async def test_create_template_is_draft_with_default_design(self, mock_db):
        storage = MagicMock()
        storage.save = AsyncMock(return_value=(SimpleNamespace(file_id="img-1"), "http://api/files/img-1"))
        svc = TemplateService(db=mock_db, storage=storage)

        template = await svc.create_template("c1", "Staff card", b"png", "image/png", "front.png", created_by="user-1")

        path = storage.save.call_args[0][1]
        assert path == f"templates/c1/{template.template_id}/front.png"
        stored = mock_db[TEMPLATES_COLLECTION].insert_one.call_args[0][0]
        assert stored["status"] == "draft"
        assert stored["file_id"] == "img-1"
        assert stored["original_file"] == "http://api/files/img-1"
        assert stored["card_design"]["width"] == 85.6
        assert stored["card_design"]["height"] == 53.98
        assert stored["card_design"]["dpi"] == 300
        assert stored["ocr_processed"] is False

    @pytest.mark.asyncio
    async def test_create_template_requires_image(self, mock_db):
        svc = TemplateService(db=mock_db, storage=MagicMock())
        with pytest.raises(InvalidInputError):
            await svc.create_template("c1", "Staff card", b"", "image/png", "front.png")

    @pytest.mark.asyncio
    async def test_save_fields_activates_template(self, mock_db):
        mock_db[TEMPLATES_COLLECTION].find_one = AsyncMock(return_value={
            "template_id": "t1", "company_id": "c1", "name": "Staff", "status": "draft",
            "ocr_processed": True, "fields": [], "card_design": {},
        })
        svc = TemplateService(db=mock_db)
        fields = [
            TemplateField(id="field_name", label="Full Name"),
            TemplateField(id="field_photo", label="Employee Photo", field_type=FieldType.PHOTO),
        ]

        result = await svc.save_fields("t1", fields)

        assert result.status == "active"
        assert [f.id for f in result.fields] == ["field_name", "field_photo"]
        update = mock_db[TEMPLATES_COLLECTION].update_one.call_args[0][1]
        assert update["$set"]["status"] == "active"
        assert len(update["$set"]["fields"]) == 2

    @pytest.mark.asyncio
    async def test_duplicate_field_ids_rejected(self, mock_db):
        svc = TemplateService(db=mock_db)
        fields = [TemplateField(id="field_a", label="A"), TemplateField(id="field_a", label="B")]
        with pytest.raises(InvalidInputError):
            await svc.save_fields("t1", fields)
        mock_db[TEMPLATES_COLLECTION].update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_archived_template_not_editable(self, mock_db):
        mock_db[TEMPLATES_COLLECTION].find_one = AsyncMock(return_value={"template_id": "t1", "status": "archived"})
        svc = TemplateService(db=mock_db)
        with pytest.raises(InvalidInputError):
            await svc.save_fields("t1", [TemplateField(label="A")])

    @pytest.mark.asyncio
    async def test_save_fields_unknown_template(self, mock_db):
        svc = TemplateService(db=mock_db)
        with pytest.raises(NotFoundError):
            await svc.save_fields("nope", [TemplateField(label="A")])

    @pytest.mark.asyncio
    async def test_archive_unknown_template(self, mock_db):
        mock_db[TEMPLATES_COLLECTION].update_one = AsyncMock(return_value=MagicMock(matched_count=0))
        svc = TemplateService(db=mock_db)
        with pytest.raises(NotFoundError):
            await svc.archive_template("nope")


class TestCompanies:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("plan,limit", [
        (SubscriptionPlan.STARTER, 50),
        (SubscriptionPlan.PRO, 200),
        (SubscriptionPlan.BUSINESS, 500),
    ])
    async def test_plan_sets_cards_limit(self, mock_db, plan, limit):
        svc = CompanyService(db=mock_db)
        created = await svc.create_company(CreateCompanyRequest(name="Acme", plan=plan), admin_id="user-1")

        stored = mock_db[COMPANIES_COLLECTION].insert_one.call_args[0][0]
        assert stored["company_id"] == created.company_id
        assert stored["subscription"]["cards_limit"] == limit
        assert stored["subscription"]["cards_used"] == 0
        assert stored["admin_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_usage(self, mock_db):
        mock_db[COMPANIES_COLLECTION].find_one = AsyncMock(return_value=company(cards_used=48))
        usage = await CompanyService(db=mock_db).get_usage("c1")

        assert usage.cards_used == 48
        assert usage.cards_limit == 50
        assert usage.cards_remaining == 2
        assert usage.can_generate is True

    @pytest.mark.asyncio
    async def test_usage_without_stored_limit(self, mock_db):
        stored = company(cards_used=3)
        del stored["subscription"]["cards_limit"]
        mock_db[COMPANIES_COLLECTION].find_one = AsyncMock(return_value=stored)
        usage = await CompanyService(db=mock_db).get_usage("c1")

        assert usage.cards_limit == 50
        assert usage.cards_remaining == 47
        assert usage.can_generate is True

    @pytest.mark.asyncio
    async def test_usage_unknown_company(self, mock_db):
        with pytest.raises(NotFoundError):
            await CompanyService(db=mock_db).get_usage("nope")


class TestCanGenerateCard:

    def test_active_under_limit(self):
        assert can_generate_card(company(cards_used=49), NOW)

    def test_at_limit(self):
        assert not can_generate_card(company(cards_used=50), NOW)

    def test_inactive(self):
        assert not can_generate_card(company(status="expired"), NOW)

    def test_past_end_date(self):
        assert not can_generate_card(company(end_date=NOW - timedelta(days=1)), NOW)

    def test_naive_future_end_date(self):
        naive = (NOW + timedelta(days=1)).replace(tzinfo=None)
        assert can_generate_card(company(end_date=naive), NOW)

    def test_missing_limit_uses_default(self):
        stored = company(cards_used=49)
        del stored["subscription"]["cards_limit"]
        assert can_generate_card(stored, NOW)
        stored["subscription"]["cards_used"] = 50
        assert not can_generate_card(stored, NOW)

    def test_no_subscription(self):
        assert not can_generate_card({"company_id": "c1"}, NOW)
        assert not can_generate_card(None, NOW)
