"""Tests for the artifact stores."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.config.settings import Settings
from src.storage import (
    DocumentType,
    GCSArtifactStore,
    LocalArtifactStore,
    StorageError,
    build_artifact_store,
    build_object_path,
    normalize_emulator_endpoint,
)


class TestObjectPath:
    def test_date_partitioned_by_document_type(self):
        today = datetime(2024, 3, 5, 23, 59, tzinfo=timezone.utc)

        assert (
            build_object_path("Ada-Acme-resume.pdf", DocumentType.RESUME, today)
            == "resumes/2024-03-05/Ada-Acme-resume.pdf"
        )
        assert (
            build_object_path("Ada-Acme-cover-letter.pdf", DocumentType.COVER_LETTER, today)
            == "cover-letters/2024-03-05/Ada-Acme-cover-letter.pdf"
        )


class TestLocalArtifactStore:
    @pytest.mark.asyncio
    async def test_upload_writes_file(self, store, tmp_path):
        result = await store.upload_pdf(b"%PDF-1.7", "Ada-Acme-resume.pdf", "resume")

        assert result.path.startswith("resumes/")
        assert result.filename == "Ada-Acme-resume.pdf"
        assert result.size_bytes == 8
        assert result.storage_class == "STANDARD"
        assert (tmp_path / "storage" / "test-bucket" / result.path).read_bytes() == b"%PDF-1.7"
        assert await store.exists(result.path)

    @pytest.mark.asyncio
    async def test_public_url_is_file_uri(self, store):
        result = await store.upload_pdf(b"%PDF", "a.pdf", DocumentType.RESUME)
        assert store.public_url(result.path).startswith("file://")
        assert store.public_url(result.path).endswith(result.path)

    @pytest.mark.asyncio
    async def test_delete(self, store):
        result = await store.upload_pdf(b"%PDF", "a.pdf", DocumentType.RESUME)

        await store.delete(result.path)

        assert not await store.exists(result.path)
        with pytest.raises(StorageError):
            await store.delete(result.path)

    @pytest.mark.asyncio
    async def test_metadata_of_stored_pdf(self, store):
        result = await store.upload_pdf(b"%PDF-1.7", "a.pdf", DocumentType.RESUME)

        metadata = await store.get_metadata(result.path)

        assert metadata.size_bytes == 8
        assert metadata.content_type == "application/pdf"
        assert metadata.updated.tzinfo is not None

    @pytest.mark.asyncio
    async def test_metadata_of_missing_object_is_none(self, store):
        assert await store.get_metadata("resumes/2024-03-05/missing.pdf") is None

    def test_public_urls_for_both_documents(self, store):
        urls = store.public_urls("resumes/a.pdf", "cover-letters/b.pdf")

        assert urls["resume_url"].endswith("resumes/a.pdf")
        assert urls["cover_letter_url"].endswith("cover-letters/b.pdf")

    def test_public_urls_skip_missing_paths(self, store):
        assert store.public_urls(None, "cover-letters/b.pdf").keys() == {"cover_letter_url"}
        assert store.public_urls() == {}

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = LocalArtifactStore(blocker)

        with pytest.raises(StorageError, match="Storage upload failed"):
            await store.upload_pdf(b"%PDF", "a.pdf", DocumentType.RESUME)

    @pytest.mark.asyncio
    async def test_unknown_document_type_rejected(self, store):
        with pytest.raises(ValueError):
            await store.upload_pdf(b"%PDF", "a.pdf", "portfolio")


class TestGCSArtifactStore:
    @pytest.fixture
    def client(self) -> MagicMock:
        return MagicMock()

    @pytest.mark.asyncio
    async def test_upload_sets_public_read_and_cache_control(self, client):
        store = GCSArtifactStore("docs-bucket", client=client)

        result = await store.upload_pdf(b"%PDF-1.7", "Ada-Acme-resume.pdf", "resume")

        client.bucket.assert_called_with("docs-bucket")
        blob = client.bucket.return_value.blob.return_value
        client.bucket.return_value.blob.assert_called_with(result.path)
        blob.upload_from_string.assert_called_once_with(
            b"%PDF-1.7", content_type="application/pdf", predefined_acl="publicRead"
        )
        assert blob.cache_control == "public, max-age=31536000"
        assert blob.storage_class == "STANDARD"
        assert blob.metadata["documentType"] == "resume"

    @pytest.mark.asyncio
    async def test_client_failure_raises_storage_error(self, client):
        blob = client.bucket.return_value.blob.return_value
        blob.upload_from_string.side_effect = RuntimeError("403 Forbidden")
        store = GCSArtifactStore("docs-bucket", client=client)

        with pytest.raises(StorageError, match="403 Forbidden"):
            await store.upload_pdf(b"%PDF", "a.pdf", "cover-letter")

    def test_public_url_encodes_path(self, client):
        store = GCSArtifactStore("docs-bucket", client=client)
        assert (
            store.public_url("resumes/2024-03-05/Ada Lovelace.pdf")
            == "https://storage.googleapis.com/docs-bucket/resumes%2F2024-03-05%2FAda%20Lovelace.pdf"
        )

    def test_emulator_public_url(self, client):
        store = GCSArtifactStore("docs-bucket", emulator_host="localhost:9199/", client=client)
        assert (
            store.public_url("resumes/a.pdf")
            == "http://localhost:9199/v0/b/docs-bucket/o/resumes%2Fa.pdf?alt=media"
        )

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, client):
        blob = client.bucket.return_value.blob.return_value
        blob.exists.return_value = True
        store = GCSArtifactStore("docs-bucket", client=client)

        assert await store.exists("resumes/a.pdf")
        await store.delete("resumes/a.pdf")
        blob.delete.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_get_metadata(self, client):
        created = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)
        blob = client.bucket.return_value.get_blob.return_value
        blob.size = "2048"
        blob.content_type = "application/pdf"
        blob.time_created = created
        blob.updated = created
        store = GCSArtifactStore("docs-bucket", client=client)

        metadata = await store.get_metadata("resumes/a.pdf")

        client.bucket.return_value.get_blob.assert_called_once_with("resumes/a.pdf")
        assert metadata.size_bytes == 2048
        assert metadata.content_type == "application/pdf"
        assert metadata.created == created

    @pytest.mark.asyncio
    async def test_get_metadata_missing_blob(self, client):
        client.bucket.return_value.get_blob.return_value = None
        store = GCSArtifactStore("docs-bucket", client=client)

        assert await store.get_metadata("resumes/a.pdf") is None

    def test_public_urls_use_bucket_urls(self, client):
        store = GCSArtifactStore("docs-bucket", client=client)

        urls = store.public_urls(resume_path="resumes/a.pdf")

        assert urls == {
            "resume_url": "https://storage.googleapis.com/docs-bucket/resumes%2Fa.pdf"
        }


class TestHelpers:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("localhost:9199", "http://localhost:9199"),
            ("http://127.0.0.1:9199/storage/v1", "http://127.0.0.1:9199"),
            ("https://emulator.test/", "https://emulator.test"),
        ],
    )
    def test_normalize_emulator_endpoint(self, raw, expected):
        assert normalize_emulator_endpoint(raw) == expected

    def test_build_local_store(self, isolated_env, tmp_path):
        settings = Settings(_env_file=None, local_storage_dir=tmp_path)  # type: ignore[call-arg]

        store = build_artifact_store(settings)

        assert isinstance(store, LocalArtifactStore)
        assert store.bucket_name == settings.resolve_bucket_name()
