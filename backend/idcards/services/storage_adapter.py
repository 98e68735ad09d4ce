"""
Storage Adapter - GridFS-based object storage for template images, employee
photos and generated card PDFs.

Every stored file is publicly resolvable through GET /api/idcards/files/{file_id};
public_url() builds that link.
"""
import hashlib
import io
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorGridFSBucket

from database import database
from idcards.config import STORAGE_BUCKET
from utils.public_app_url import get_public_api_url

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoredFileNotFoundError(StorageError):
    """File not found in storage."""
    pass


class FileMetadata:
    """File metadata model."""
    def __init__(
        self,
        file_id: str,
        path: str,
        content_type: str,
        size_bytes: int,
        sha256_hash: str,
        upload_timestamp: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.file_id = file_id
        self.path = path
        self.content_type = content_type
        self.size_bytes = size_bytes
        self.sha256_hash = sha256_hash
        self.upload_timestamp = upload_timestamp
        self.metadata = metadata or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "path": self.path,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "sha256_hash": self.sha256_hash,
            "upload_timestamp": self.upload_timestamp.isoformat() if self.upload_timestamp else None,
            "metadata": self.metadata,
        }


class StorageAdapter(ABC):
    """Abstract object store: bytes + destination path + content type in, URL out."""

    @abstractmethod
    async def upload_file(
        self,
        data: bytes,
        path: str,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> FileMetadata:
        """Store bytes under path and return metadata."""
        pass

    @abstractmethod
    async def download_file(self, file_id: str) -> Tuple[bytes, FileMetadata]:
        """Return file content and metadata."""
        pass

    @abstractmethod
    async def delete_file(self, file_id: str) -> bool:
        """Delete a file. Returns True if successful."""
        pass

    def public_url(self, file_id: str) -> str:
        return f"{get_public_api_url()}/api/idcards/files/{file_id}"

    async def save(
        self,
        data: bytes,
        path: str,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Tuple[FileMetadata, str]:
        """Upload and return (metadata, public URL)."""
        file_meta = await self.upload_file(data, path, content_type, metadata)
        return file_meta, self.public_url(file_meta.file_id)


class GridFSStorageAdapter(StorageAdapter):
    """
    GridFS-based storage implementation.
    Stores files in MongoDB GridFS with content hash and metadata.
    """

    def __init__(self, bucket_name: str = STORAGE_BUCKET, db=None):
        self.bucket_name = bucket_name
        self.db = db
        self._bucket = None

    def _get_db(self):
        if self.db is None:
            self.db = database.get_db()
        return self.db

    def _get_bucket(self) -> AsyncIOMotorGridFSBucket:
        """Get or create GridFS bucket."""
        if self._bucket is None:
            self._bucket = AsyncIOMotorGridFSBucket(self._get_db(), bucket_name=self.bucket_name)
        return self._bucket

    def _calculate_hash(self, data: bytes) -> str:
        """Calculate SHA256 hash of file data."""
        return hashlib.sha256(data).hexdigest()

    async def upload_file(
        self,
        data: bytes,
        path: str,
        content_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> FileMetadata:
        """Upload bytes to GridFS under path."""
        bucket = self._get_bucket()
        sha256_hash = self._calculate_hash(data)
        now = datetime.now(timezone.utc)

        gridfs_metadata = {
            "content_type": content_type,
            "sha256_hash": sha256_hash,
            "upload_timestamp": now.isoformat(),
            "custom_metadata": metadata or {},
        }

        file_id = await bucket.upload_from_stream(
            path,
            io.BytesIO(data),
            metadata=gridfs_metadata,
        )

        file_meta = FileMetadata(
            file_id=str(file_id),
            path=path,
            content_type=content_type,
            size_bytes=len(data),
            sha256_hash=sha256_hash,
            upload_timestamp=now,
            metadata=metadata,
        )

        logger.info(f"File uploaded to GridFS: {path} ({file_meta.file_id})")
        return file_meta

    async def download_file(self, file_id: str) -> Tuple[bytes, FileMetadata]:
        """Download file from GridFS."""
        bucket = self._get_bucket()
        db = self._get_db()

        try:
            object_id = ObjectId(file_id)
        except (InvalidId, TypeError):
            raise StoredFileNotFoundError(f"Invalid file ID: {file_id}")

        file_doc = await db[f"{self.bucket_name}.files"].find_one({"_id": object_id})
        if not file_doc:
            raise StoredFileNotFoundError(f"File not found: {file_id}")

        stream = io.BytesIO()
        await bucket.download_to_stream(object_id, stream)

        gridfs_meta = file_doc.get("metadata") or {}
        upload_ts = gridfs_meta.get("upload_timestamp")
        file_meta = FileMetadata(
            file_id=str(file_doc["_id"]),
            path=file_doc["filename"],
            content_type=gridfs_meta.get("content_type", "application/octet-stream"),
            size_bytes=file_doc["length"],
            sha256_hash=gridfs_meta.get("sha256_hash", ""),
            upload_timestamp=datetime.fromisoformat(upload_ts) if upload_ts else None,
            metadata=gridfs_meta.get("custom_metadata", {}),
        )
        return stream.getvalue(), file_meta

    async def delete_file(self, file_id: str) -> bool:
        """Delete file from GridFS."""
        bucket = self._get_bucket()

        try:
            await bucket.delete(ObjectId(file_id))
            logger.info(f"File deleted from GridFS: {file_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete file {file_id}: {e}")
            return False


# Shared instance
storage_adapter = GridFSStorageAdapter()
