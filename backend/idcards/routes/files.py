"""ID Card Studio File Serving (Public)

Serves template images, employee photos and generated card PDFs by storage
file id. These are the URLs handed out by the storage adapter.
"""

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
import logging

from idcards.errors import NotFoundError
from idcards.services.card_service import card_issuance_service
from idcards.services.storage_adapter import StoredFileNotFoundError, storage_adapter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/idcards/files", tags=["ID Card Files"])


@router.get("/{file_id}")
async def serve_file(file_id: str):
    try:
        content, metadata = await storage_adapter.download_file(file_id)
    except StoredFileNotFoundError:
        raise NotFoundError("File not found")

    if metadata.content_type == "application/pdf":
        await card_issuance_service.record_download(file_id)

    filename = metadata.path.rsplit("/", 1)[-1]
    return StreamingResponse(
        iter([content]),
        media_type=metadata.content_type,
        headers={
            "Content-Disposition": f"inline; filename={filename}",
            "Cache-Control": "private, max-age=3600",
        },
    )
