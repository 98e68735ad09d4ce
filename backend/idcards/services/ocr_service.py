"""ID Card Studio OCR Service

Runs Google Cloud Vision text detection on a template image, proposes form
fields with the field extractor and stores the result on the template.

Vision's text_annotations: element 0 is the full text, elements 1..N are the
individual blocks.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple

from google.cloud import vision

from database import database
from idcards.config import OCR_TIMEOUT_SECONDS, TEMPLATES_COLLECTION
from idcards.errors import InternalError, InvalidInputError, NotFoundError
from idcards.models.templates import ExtractionResponse, OCRBlock, OCRData
from idcards.services.field_extractor import extract_fields
from idcards.services.storage_adapter import StoredFileNotFoundError, storage_adapter

logger = logging.getLogger(__name__)

NO_TEXT_MESSAGE = "No text found."
_URI_PREFIXES = ("gs://", "http://", "https://")


class VisionOCREngine:
    """Thin synchronous wrapper over the Cloud Vision client."""

    def __init__(self, client: Optional[vision.ImageAnnotatorClient] = None):
        self._client = client

    def _get_client(self) -> vision.ImageAnnotatorClient:
        if self._client is None:
            self._client = vision.ImageAnnotatorClient()
        return self._client

    def detect_text(self, image_uri: Optional[str] = None, content: Optional[bytes] = None) -> List[Any]:
        if image_uri:
            image = vision.Image(source=vision.ImageSource(image_uri=image_uri))
        else:
            image = vision.Image(content=content)
        response = self._get_client().text_detection(image=image)
        if response.error.message:
            raise RuntimeError(f"Vision API error: {response.error.message}")
        return list(response.text_annotations)


def parse_text_annotations(annotations: Sequence[Any]) -> Tuple[str, List[OCRBlock]]:
    """Split Vision annotations into (full text, blocks)."""
    full_text = annotations[0].description or ""
    blocks = []
    for index, annotation in enumerate(annotations[1:]):
        vertices = []
        if annotation.bounding_poly:
            vertices = [{"x": v.x, "y": v.y} for v in annotation.bounding_poly.vertices]
        blocks.append(OCRBlock(
            block_id=f"block_{index}",
            text=annotation.description or "",
            confidence=annotation.score or 0.0,
            bounding_box=vertices,
        ))
    return full_text, blocks


class TemplateOCRService:
    """OCR extraction for templates."""

    def __init__(self, db=None, engine: Optional[VisionOCREngine] = None, storage=None):
        self.db = db
        self.engine = engine or VisionOCREngine()
        self.storage = storage or storage_adapter

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    async def _detect(self, image_path: str) -> List[Any]:
        if image_path.startswith(_URI_PREFIXES):
            kwargs = {"image_uri": image_path}
        else:
            content, _ = await self.storage.download_file(image_path)
            kwargs = {"content": content}

        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, lambda: self.engine.detect_text(**kwargs)),
            timeout=OCR_TIMEOUT_SECONDS,
        )

    async def run_extraction(self, template_id: Optional[str], image_path: Optional[str]) -> ExtractionResponse:
        """OCR the image and attach proposed fields to the template.

        Zero detections is a soft result: success=False, no fields, and the
        template is left unprocessed so the operator can add fields by hand.
        """
        if not template_id or not image_path:
            raise InvalidInputError("Missing template id or image path.")

        db = self._get_db()
        logger.info(f"Processing OCR for template: {template_id}, path: {image_path}")

        template = await db[TEMPLATES_COLLECTION].find_one({"template_id": template_id}, {"_id": 0})
        if not template:
            raise NotFoundError("Template not found")

        try:
            detections = await self._detect(image_path)
        except StoredFileNotFoundError:
            raise NotFoundError("Template image not found")
        except asyncio.TimeoutError:
            logger.error(f"OCR timed out after {OCR_TIMEOUT_SECONDS}s for template {template_id}")
            raise InternalError("OCR processing timed out.")
        except Exception as e:
            logger.error(f"OCR Error for template {template_id}: {e}", exc_info=True)
            raise InternalError("OCR processing failed.")

        if not detections:
            logger.warning(f"No text found for template {template_id}")
            return ExtractionResponse(success=False, message=NO_TEXT_MESSAGE)

        raw_text, blocks = parse_text_annotations(detections)
        fields = extract_fields(blocks)

        try:
            await db[TEMPLATES_COLLECTION].update_one(
                {"template_id": template_id},
                {
                    "$set": {
                        "ocr_processed": True,
                        "ocr_data": OCRData(raw_text=raw_text, blocks=blocks).model_dump(),
                        "fields": [f.model_dump() for f in fields],
                        "updated_at": datetime.now(timezone.utc),
                    }
                },
            )
        except Exception as e:
            logger.error(f"Failed to store OCR result for template {template_id}: {e}", exc_info=True)
            raise InternalError("OCR processing failed.")

        logger.info(f"OCR proposed {len(fields)} fields from {len(blocks)} blocks for template {template_id}")
        return ExtractionResponse(success=True, fields=fields)


template_ocr_service = TemplateOCRService()
