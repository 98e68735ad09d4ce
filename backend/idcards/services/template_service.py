"""ID Card Studio Template Service

Template records: creation from an uploaded design image, operator edits of
the proposed field list, and archiving.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from database import database
from idcards.config import TEMPLATES_COLLECTION
from idcards.errors import InternalError, InvalidInputError, NotFoundError
from idcards.models.templates import (
    Template,
    TemplateField,
    TemplateResponse,
    TemplateStatus,
)
from idcards.services.storage_adapter import storage_adapter

logger = logging.getLogger(__name__)


class TemplateService:
    """Template CRUD."""

    def __init__(self, db=None, storage=None):
        self.db = db
        self.storage = storage or storage_adapter

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    async def create_template(
        self,
        company_id: str,
        name: str,
        image: bytes,
        content_type: str,
        filename: str,
        created_by: Optional[str] = None,
    ) -> Template:
        """Store the design image and create a draft template."""
        if not company_id or not name:
            raise InvalidInputError("Missing required fields.")
        if not image:
            raise InvalidInputError("Template image is empty.")

        db = self._get_db()
        template = Template(company_id=company_id, name=name, created_by=created_by)

        try:
            file_meta, url = await self.storage.save(
                image,
                f"templates/{company_id}/{template.template_id}/{filename}",
                content_type,
                metadata={"template_id": template.template_id},
            )
        except Exception as e:
            logger.error(f"Template upload failed for company {company_id}: {e}", exc_info=True)
            raise InternalError("Failed to store template image.")

        template.original_file = url
        template.file_id = file_meta.file_id
        if content_type == "application/pdf":
            template.file_type = "pdf"

        await db[TEMPLATES_COLLECTION].insert_one(template.model_dump())
        logger.info(f"Created template {template.template_id} for company {company_id}")
        return template

    async def get_template(self, template_id: str) -> Dict[str, Any]:
        db = self._get_db()
        template = await db[TEMPLATES_COLLECTION].find_one({"template_id": template_id}, {"_id": 0})
        if not template:
            raise NotFoundError("Template not found")
        return template

    async def save_fields(self, template_id: str, fields: List[TemplateField]) -> TemplateResponse:
        """Replace the template's field list and mark it active.

        Field ids must be unique within the template.
        """
        ids = [f.id for f in fields]
        if len(ids) != len(set(ids)):
            raise InvalidInputError("Field ids must be unique.")

        db = self._get_db()
        template = await self.get_template(template_id)
        if template.get("status") == TemplateStatus.ARCHIVED.value:
            raise InvalidInputError("Archived templates cannot be edited.")

        now = datetime.now(timezone.utc)
        await db[TEMPLATES_COLLECTION].update_one(
            {"template_id": template_id},
            {
                "$set": {
                    "fields": [f.model_dump() for f in fields],
                    "status": TemplateStatus.ACTIVE.value,
                    "updated_at": now,
                }
            },
        )

        template.update(
            fields=[f.model_dump() for f in fields],
            status=TemplateStatus.ACTIVE.value,
            updated_at=now,
        )
        logger.info(f"Saved {len(fields)} fields on template {template_id}")
        return TemplateResponse(**template)

    async def archive_template(self, template_id: str) -> None:
        db = self._get_db()
        result = await db[TEMPLATES_COLLECTION].update_one(
            {"template_id": template_id},
            {"$set": {"status": TemplateStatus.ARCHIVED.value, "updated_at": datetime.now(timezone.utc)}},
        )
        if result.matched_count == 0:
            raise NotFoundError("Template not found")
        logger.info(f"Archived template {template_id}")


template_service = TemplateService()
