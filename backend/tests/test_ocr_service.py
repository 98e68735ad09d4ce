"""
Template OCR extraction with a stubbed Vision engine.
"""
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from idcards.config import TEMPLATES_COLLECTION
from idcards.errors import InternalError, InvalidInputError, NotFoundError
from idcards.services.ocr_service import NO_TEXT_MESSAGE, TemplateOCRService, parse_text_annotations
from idcards.services.storage_adapter import StoredFileNotFoundError

pytestmark = pytest.mark.asyncio


def annotation(text, score=0.0, vertices=((0, 0), (10, 0), (10, 5), (0, 5))):
    return SimpleNamespace(
        description=text,
        score=score,
        bounding_poly=SimpleNamespace(vertices=[SimpleNamespace(x=x, y=y) for x, y in vertices]),
    )


def detections(*blocks):
    return [annotation("\n".join(blocks))] + [annotation(b, score=0.9) for b in blocks]


def make_service(mock_db, result=None, side_effect=None):
    mock_db[TEMPLATES_COLLECTION].find_one = AsyncMock(return_value={"template_id": "t1", "fields": []})
    engine = MagicMock()
    engine.detect_text = MagicMock(return_value=result, side_effect=side_effect)
    storage = MagicMock()
    storage.download_file = AsyncMock(return_value=(b"image-bytes", SimpleNamespace(content_type="image/png")))
    return TemplateOCRService(db=mock_db, engine=engine, storage=storage), engine, storage


class TestParseAnnotations:

    async def test_full_text_and_blocks(self):
        raw, blocks = parse_text_annotations(detections("Name: Ann", "Role: Dev"))
        assert raw == "Name: Ann\nRole: Dev"
        assert [b.block_id for b in blocks] == ["block_0", "block_1"]
        assert [b.text for b in blocks] == ["Name: Ann", "Role: Dev"]
        assert blocks[0].confidence == 0.9
        assert blocks[0].bounding_box[2] == {"x": 10, "y": 5}


class TestRunExtraction:

    async def test_fields_stored_on_template(self, mock_db):
        svc, engine, storage = make_service(mock_db, result=detections("John Doe", "Employee ID: 4821", "Role: Engineer"))

        result = await svc.run_extraction("t1", "gs://bucket/templates/t1.png")

        assert result.success is True
        assert [f.label for f in result.fields] == ["Employee ID 4821", "Role Engineer", "Employee Photo"]
        engine.detect_text.assert_called_once_with(image_uri="gs://bucket/templates/t1.png")
        storage.download_file.assert_not_called()

        query, update = mock_db[TEMPLATES_COLLECTION].update_one.call_args[0]
        assert query == {"template_id": "t1"}
        stored = update["$set"]
        assert stored["ocr_processed"] is True
        assert stored["ocr_data"]["raw_text"].startswith("John Doe")
        assert len(stored["ocr_data"]["blocks"]) == 3
        assert [f["label"] for f in stored["fields"]] == [f.label for f in result.fields]

    async def test_stored_file_is_downloaded(self, mock_db):
        svc, engine, storage = make_service(mock_db, result=detections("Name"))

        await svc.run_extraction("t1", "65f0c0ffee0000000000abcd")

        storage.download_file.assert_awaited_once_with("65f0c0ffee0000000000abcd")
        engine.detect_text.assert_called_once_with(content=b"image-bytes")

    async def test_no_text_is_soft_result(self, mock_db):
        svc, _, _ = make_service(mock_db, result=[])

        result = await svc.run_extraction("t1", "https://cdn/t1.png")

        assert result.success is False
        assert result.fields == []
        assert result.message == NO_TEXT_MESSAGE
        mock_db[TEMPLATES_COLLECTION].update_one.assert_not_called()

    @pytest.mark.parametrize("template_id,image_path", [(None, "gs://x"), ("t1", None), ("", "")])
    async def test_missing_inputs(self, mock_db, template_id, image_path):
        svc, engine, _ = make_service(mock_db, result=[])
        with pytest.raises(InvalidInputError):
            await svc.run_extraction(template_id, image_path)
        engine.detect_text.assert_not_called()

    async def test_unknown_template(self, mock_db):
        svc, engine, _ = make_service(mock_db, result=[])
        mock_db[TEMPLATES_COLLECTION].find_one = AsyncMock(return_value=None)
        with pytest.raises(NotFoundError):
            await svc.run_extraction("nope", "gs://x")
        engine.detect_text.assert_not_called()

    async def test_missing_image(self, mock_db):
        svc, _, storage = make_service(mock_db, result=[])
        storage.download_file = AsyncMock(side_effect=StoredFileNotFoundError("gone"))
        with pytest.raises(NotFoundError):
            await svc.run_extraction("t1", "65f0c0ffee0000000000abcd")

    async def test_engine_error_is_internal(self, mock_db):
        svc, _, _ = make_service(mock_db, side_effect=RuntimeError("Vision API error: quota"))
        with pytest.raises(InternalError):
            await svc.run_extraction("t1", "gs://x")
        mock_db[TEMPLATES_COLLECTION].update_one.assert_not_called()

    async def test_timeout_is_internal(self, mock_db):
        svc, _, _ = make_service(mock_db, side_effect=lambda **kw: time.sleep(0.5))
        with patch("idcards.services.ocr_service.OCR_TIMEOUT_SECONDS", 0.05):
            with pytest.raises(InternalError) as exc_info:
                await svc.run_extraction("t1", "gs://x")
        assert "timed out" in exc_info.value.message
        mock_db[TEMPLATES_COLLECTION].update_one.assert_not_called()
