"""Pytest configuration and shared fixtures."""

import os
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from src.config.settings import Settings, reset_settings
from src.content.config import ContentConfig, reset_content_config
from src.content.generator import ContentGenerator
from src.content.models import ExperienceEntry, JobInfo, PersonalInfo
from src.generator.models import GenerateOptions, GenerationType
from src.generator.repository import GenerationRepository
from src.generator.service import GeneratorService
from src.rendering.config import reset_render_config
from src.storage.store import LocalArtifactStore
from src.utils.logging import reset_logging

# Env vars that would leak developer configuration into tests
ENV_PREFIXES_TO_REMOVE = ("GENERATOR_", "RENDER_")
ENV_KEYS_TO_REMOVE = [
    "ENVIRONMENT",
    "SECRET_BACKEND",
    "STORAGE_BACKEND",
    "STORAGE_BUCKET",
    "STORAGE_EMULATOR_HOST",
    "GCP_PROJECT_ID",
    "MAX_STAGE_SECONDS",
    "CONCURRENT_GENERATION",
    "LOG_LEVEL",
]

FIXED_NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def isolated_env():
    """Remove generator env vars for isolated testing."""
    keys = [k for k in os.environ if k.startswith(ENV_PREFIXES_TO_REMOVE)]
    saved = {k: os.environ.pop(k, None) for k in keys + ENV_KEYS_TO_REMOVE}
    reset_settings()
    reset_content_config()
    reset_render_config()
    yield
    for k, v in saved.items():
        if v is not None:
            os.environ[k] = v
        elif k in os.environ:
            del os.environ[k]
    reset_settings()
    reset_content_config()
    reset_render_config()


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep logger state from leaking between tests (caplog needs propagation)."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def personal_info() -> PersonalInfo:
    return PersonalInfo(
        name="Ada Lovelace",
        email="ada@example.com",
        location="London, UK",
        github="https://github.com/ada",
        accent_color="#3B82F6",
    )


@pytest.fixture
def job_info() -> JobInfo:
    return JobInfo(
        role="Backend Engineer",
        company="Analytical Engines",
        job_description_text="Build reliable Python services.",
    )


@pytest.fixture
def experience_entries() -> list[ExperienceEntry]:
    return [
        ExperienceEntry(
            company="Babbage & Co",
            role="Senior Engineer",
            location="London",
            start_date="2020-01",
            end_date=None,
            highlights=["Designed the difference engine API", "Led a team of four"],
            technologies=["Python", "PostgreSQL"],
        ),
        ExperienceEntry(
            company="Royal Society",
            role="Research Engineer",
            start_date="2017-05",
            end_date="2019-12",
            highlights=["Published the first algorithm"],
            technologies=["Python"],
        ),
    ]


@pytest.fixture
def generate_options(personal_info, job_info, experience_entries) -> GenerateOptions:
    return GenerateOptions(
        generate_type=GenerationType.BOTH,
        job=job_info,
        personal_info=personal_info,
        experience_entries=experience_entries,
        owner_id="user-1",
    )


@pytest.fixture
def settings(tmp_path, isolated_env) -> Settings:
    return Settings(
        _env_file=None,
        generator_db_path=tmp_path / "generator.db",
        local_storage_dir=tmp_path / "storage",
    )


@pytest.fixture
def mock_content_generator(isolated_env) -> ContentGenerator:
    """Content generator in mock mode (deterministic, no provider calls)."""
    return ContentGenerator(config=ContentConfig(_env_file=None, use_mock_ai=True))


@pytest.fixture
def fake_renderer() -> MagicMock:
    renderer = MagicMock()
    renderer.render_resume.return_value = b"%PDF-1.7 resume"
    renderer.render_cover_letter.return_value = b"%PDF-1.7 cover letter"
    return renderer


@pytest.fixture
async def repository(tmp_path):
    repo = GenerationRepository(tmp_path / "generator.db")
    await repo.initialize()
    yield repo
    await repo.close()


@pytest.fixture
def store(tmp_path) -> LocalArtifactStore:
    return LocalArtifactStore(tmp_path / "storage", bucket_name="test-bucket")


@pytest.fixture
def service(repository, mock_content_generator, fake_renderer, store, settings):
    return GeneratorService(
        repository=repository,
        content_generator=mock_content_generator,
        renderer=fake_renderer,
        store=store,
        settings=settings,
        clock=lambda: FIXED_NOW,
    )
