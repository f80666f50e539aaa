"""Artifact store for rendered documents.

Uploads PDF bytes under a date-partitioned path and turns stored paths
into permanent public URLs. Google Cloud Storage is used in deployed
environments (optionally through an emulator); a local directory backend
serves development and tests.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import quote, urlparse, urlunparse

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
CACHE_CONTROL = "public, max-age=31536000"
STORAGE_CLASS = "STANDARD"


class StorageError(Exception):
    """Exception raised when an artifact cannot be stored or read."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class DocumentType(str, Enum):
    """Kind of stored document; selects the top-level folder."""

    RESUME = "resume"
    COVER_LETTER = "cover-letter"

    @property
    def folder(self) -> str:
        return "resumes" if self is DocumentType.RESUME else "cover-letters"


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded document landed."""

    path: str
    filename: str
    size_bytes: int
    storage_class: str = STORAGE_CLASS


@dataclass(frozen=True)
class ObjectMetadata:
    """Size, type and timestamps of a stored object."""

    size_bytes: int
    content_type: str
    created: datetime
    updated: datetime


def build_object_path(
    filename: str, document_type: DocumentType, today: datetime | None = None
) -> str:
    """Return `<folder>/<YYYY-MM-DD>/<filename>` using the UTC date."""
    today = today or datetime.now(timezone.utc)
    return f"{document_type.folder}/{today:%Y-%m-%d}/{filename}"


class ArtifactStore(ABC):
    """Base class for artifact stores."""

    bucket_name: str

    async def upload_pdf(
        self, buffer: bytes, filename: str, document_type: DocumentType | str
    ) -> UploadResult:
        """Upload a PDF and return where it was stored.

        Raises:
            StorageError: If the upload fails.
        """
        document_type = DocumentType(document_type)
        path = build_object_path(filename, document_type)
        logger.info(f"Uploading {document_type.value} to {path} ({len(buffer)} bytes)")
        try:
            await self._put(path, buffer, document_type)
        except Exception as e:
            logger.error(f"Failed to upload {document_type.value} {filename}: {e}")
            raise StorageError(f"Storage upload failed: {e}", e) from e
        logger.info(f"{document_type.value} uploaded to {path}")
        return UploadResult(path=path, filename=filename, size_bytes=len(buffer))

    @abstractmethod
    async def _put(self, path: str, buffer: bytes, document_type: DocumentType) -> None:
        """Write bytes to the backend."""

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return a permanent URL for a stored path."""

    def public_urls(
        self, resume_path: str | None = None, cover_letter_path: str | None = None
    ) -> dict[str, str]:
        """Return public URLs keyed `resume_url` / `cover_letter_url` for the given paths."""
        urls: dict[str, str] = {}
        if resume_path:
            urls["resume_url"] = self.public_url(resume_path)
        if cover_letter_path:
            urls["cover_letter_url"] = self.public_url(cover_letter_path)
        return urls

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return True when an object exists at path."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Delete the object at path."""

    @abstractmethod
    async def get_metadata(self, path: str) -> ObjectMetadata | None:
        """Return metadata for the object at path, or None if it does not exist."""


class GCSArtifactStore(ArtifactStore):
    """Publicly readable Google Cloud Storage bucket."""

    def __init__(
        self,
        bucket_name: str,
        project_id: str | None = None,
        emulator_host: str | None = None,
        client=None,
    ):
        self.bucket_name = bucket_name
        self.emulator_host = (
            normalize_emulator_endpoint(emulator_host) if emulator_host else None
        )
        if client is None:
            from google.cloud import storage

            if self.emulator_host:
                from google.auth.credentials import AnonymousCredentials

                client = storage.Client(
                    project=project_id or "demo-job-finder",
                    credentials=AnonymousCredentials(),
                    client_options={"api_endpoint": self.emulator_host},
                )
            else:
                client = storage.Client(project=project_id)
        self._client = client
        logger.info(
            f"Using GCS bucket {bucket_name}"
            + (f" via emulator {self.emulator_host}" if self.emulator_host else "")
        )

    def _blob(self, path: str):
        return self._client.bucket(self.bucket_name).blob(path)

    async def _put(self, path: str, buffer: bytes, document_type: DocumentType) -> None:
        blob = self._blob(path)
        blob.cache_control = CACHE_CONTROL
        blob.storage_class = STORAGE_CLASS
        blob.metadata = {
            "documentType": document_type.value,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }
        await asyncio.to_thread(
            blob.upload_from_string,
            buffer,
            content_type=PDF_CONTENT_TYPE,
            predefined_acl="publicRead",
        )

    def public_url(self, path: str) -> str:
        encoded = quote(path, safe="")
        if self.emulator_host:
            return f"{self.emulator_host}/v0/b/{self.bucket_name}/o/{encoded}?alt=media"
        return f"https://storage.googleapis.com/{self.bucket_name}/{encoded}"

    async def exists(self, path: str) -> bool:
        return bool(await asyncio.to_thread(self._blob(path).exists))

    async def delete(self, path: str) -> None:
        try:
            await asyncio.to_thread(self._blob(path).delete)
        except Exception as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageError(f"File deletion failed: {e}", e) from e
        logger.info(f"Deleted {path}")

    async def get_metadata(self, path: str) -> ObjectMetadata | None:
        bucket = self._client.bucket(self.bucket_name)
        try:
            blob = await asyncio.to_thread(bucket.get_blob, path)
        except Exception as e:
            logger.error(f"Failed to get metadata for {path}: {e}")
            raise StorageError(f"Metadata lookup failed: {e}", e) from e
        if blob is None:
            return None
        now = datetime.now(timezone.utc)
        return ObjectMetadata(
            size_bytes=int(blob.size or 0),
            content_type=blob.content_type or "application/octet-stream",
            created=blob.time_created or now,
            updated=blob.updated or now,
        )


class LocalArtifactStore(ArtifactStore):
    """Directory-backed store for local development and tests."""

    def __init__(self, root: Path, bucket_name: str = "local"):
        self.root = Path(root)
        self.bucket_name = bucket_name

    def _file(self, path: str) -> Path:
        return self.root / self.bucket_name / path

    async def _put(self, path: str, buffer: bytes, document_type: DocumentType) -> None:
        target = self._file(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(buffer)

        await asyncio.to_thread(write)

    def public_url(self, path: str) -> str:
        return self._file(path).resolve().as_uri()

    async def exists(self, path: str) -> bool:
        return self._file(path).is_file()

    async def delete(self, path: str) -> None:
        try:
            self._file(path).unlink()
        except OSError as e:
            raise StorageError(f"File deletion failed: {e}", e) from e
        logger.info(f"Deleted {path}")

    async def get_metadata(self, path: str) -> ObjectMetadata | None:
        target = self._file(path)
        if not target.is_file():
            return None
        stat = target.stat()
        is_pdf = target.suffix == ".pdf"
        return ObjectMetadata(
            size_bytes=stat.st_size,
            content_type=PDF_CONTENT_TYPE if is_pdf else "application/octet-stream",
            created=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
            updated=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


def normalize_emulator_endpoint(raw_endpoint: str) -> str:
    """Reduce an emulator endpoint to scheme://host:port."""
    if "://" not in raw_endpoint:
        raw_endpoint = f"http://{raw_endpoint}"
    parsed = urlparse(raw_endpoint)
    return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")


def build_artifact_store(settings: Settings) -> ArtifactStore:
    """Create the configured artifact store."""
    bucket = settings.resolve_bucket_name()
    if settings.storage_backend == "gcs":
        return GCSArtifactStore(
            bucket,
            project_id=settings.gcp_project_id,
            emulator_host=settings.storage_emulator_host,
        )
    return LocalArtifactStore(settings.local_storage_dir, bucket_name=bucket)
