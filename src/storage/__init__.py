"""Artifact storage for rendered documents."""

from src.storage.store import (
    ArtifactStore,
    DocumentType,
    GCSArtifactStore,
    LocalArtifactStore,
    ObjectMetadata,
    StorageError,
    UploadResult,
    build_artifact_store,
    build_object_path,
    normalize_emulator_endpoint,
)

__all__ = [
    "ArtifactStore",
    "DocumentType",
    "GCSArtifactStore",
    "LocalArtifactStore",
    "ObjectMetadata",
    "StorageError",
    "UploadResult",
    "build_artifact_store",
    "build_object_path",
    "normalize_emulator_endpoint",
]
