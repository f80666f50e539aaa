"""Tests for the AI content generator."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.content.config import ContentConfig
from src.content.generator import (
    MOCK_MODEL,
    ContentGenerationError,
    ContentGenerator,
)
from src.content.llm import LLMError, StructuredCompletion
from src.content.models import (
    CoverLetterContent,
    ExperienceEntry,
    ResumeContact,
    ResumeContent,
    ResumeExperience,
    ResumeHeader,
    TokenUsage,
)


def _resume(experience: list[ResumeExperience]) -> ResumeContent:
    return ResumeContent(
        personal_info=ResumeHeader(
            name="Ada Lovelace",
            title="Backend Engineer",
            summary="Engineer.",
            contact=ResumeContact(email="ada@example.com"),
        ),
        professional_summary="Builds reliable services.",
        experience=experience,
    )


@pytest.fixture
def config(isolated_env) -> ContentConfig:
    return ContentConfig(_env_file=None, llm_api_key="sk-test")  # type: ignore[call-arg]


@pytest.fixture
def llm() -> MagicMock:
    llm = MagicMock()
    llm.generate_structured = AsyncMock()
    return llm


class TestGenerateResume:
    @pytest.mark.asyncio
    async def test_returns_content_usage_and_model(
        self, config, llm, personal_info, job_info, experience_entries
    ):
        usage = TokenUsage(prompt_tokens=900, completion_tokens=400, total_tokens=1300)
        llm.generate_structured.return_value = StructuredCompletion(
            parsed=_resume(
                [ResumeExperience(company="Babbage & Co", role="Senior Engineer", start_date="2020-01")]
            ),
            usage=usage,
            model="gpt-4o-2024-08-06",
        )
        generator = ContentGenerator(config=config, llm=llm)

        result = await generator.generate_resume(personal_info, job_info, experience_entries)

        assert result.content.experience[0].company == "Babbage & Co"
        assert result.token_usage == usage
        assert result.model == "gpt-4o-2024-08-06"
        kwargs = llm.generate_structured.call_args.kwargs
        assert kwargs["output_model"] is ResumeContent
        assert "Backend Engineer" in kwargs["prompt"]

    @pytest.mark.asyncio
    async def test_llm_error_is_wrapped(
        self, config, llm, personal_info, job_info, experience_entries
    ):
        llm.generate_structured.side_effect = LLMError("rate limited")
        generator = ContentGenerator(config=config, llm=llm)

        with pytest.raises(ContentGenerationError, match="AI resume generation failed") as exc_info:
            await generator.generate_resume(personal_info, job_info, experience_entries)

        assert isinstance(exc_info.value.original_error, LLMError)
        assert exc_info.value.usage is None

    @pytest.mark.asyncio
    async def test_charged_usage_survives_wrapping(
        self, config, llm, personal_info, job_info, experience_entries
    ):
        charged = TokenUsage(prompt_tokens=900, completion_tokens=50, total_tokens=950)
        llm.generate_structured.side_effect = LLMError(
            "LLM response failed schema validation", usage=charged, model="gpt-4o"
        )
        generator = ContentGenerator(config=config, llm=llm)

        with pytest.raises(ContentGenerationError) as exc_info:
            await generator.generate_resume(personal_info, job_info, experience_entries)

        assert exc_info.value.usage == charged
        assert exc_info.value.model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_invented_experience_is_dropped(
        self, config, llm, personal_info, job_info, experience_entries, caplog
    ):
        """Entries the candidate never supplied must not reach the resume."""
        llm.generate_structured.return_value = StructuredCompletion(
            parsed=_resume(
                [
                    ResumeExperience(
                        company="babbage & co", role="senior engineer", start_date="2020-01"
                    ),
                    ResumeExperience(company="Imaginary Inc", role="CTO", start_date="2015-01"),
                ]
            ),
            usage=TokenUsage(),
            model="gpt-4o",
        )
        generator = ContentGenerator(config=config, llm=llm)

        with caplog.at_level(logging.WARNING):
            result = await generator.generate_resume(personal_info, job_info, experience_entries)

        assert [e.company for e in result.content.experience] == ["babbage & co"]
        assert "Imaginary Inc" in caplog.text


class TestEnforceFidelity:
    def test_caps_entries_and_highlights(self, isolated_env, llm):
        config = ContentConfig(  # type: ignore[call-arg]
            _env_file=None, max_experience_entries=2, max_highlights_per_entry=1
        )
        generator = ContentGenerator(config=config, llm=llm)
        supplied = [
            ResumeExperience(company=f"Co {i}", role="Engineer", start_date="2020-01")
            for i in range(3)
        ]
        content = _resume(
            [entry.model_copy(update={"highlights": ["a", "b"]}) for entry in supplied]
        )
        entries = [
            ExperienceEntry(company=e.company, role=e.role, start_date=e.start_date)
            for e in supplied
        ]

        result = generator.enforce_fidelity(content, entries)

        assert len(result.experience) == 2
        assert all(e.highlights == ["a"] for e in result.experience)


class TestGenerateCoverLetter:
    @pytest.mark.asyncio
    async def test_returns_content(self, config, llm, personal_info, job_info, experience_entries):
        letter = CoverLetterContent(
            greeting="Dear Team,",
            opening_paragraph="Hello.",
            body_paragraphs=["Body."],
            closing_paragraph="Thanks.",
            signature="Ada",
        )
        llm.generate_structured.return_value = StructuredCompletion(
            parsed=letter, usage=TokenUsage(total_tokens=10), model="gpt-4o"
        )
        generator = ContentGenerator(config=config, llm=llm)

        result = await generator.generate_cover_letter(personal_info, job_info, experience_entries)

        assert result.content == letter
        assert llm.generate_structured.call_args.kwargs["output_model"] is CoverLetterContent

    @pytest.mark.asyncio
    async def test_llm_error_is_wrapped(
        self, config, llm, personal_info, job_info, experience_entries
    ):
        llm.generate_structured.side_effect = LLMError("timeout")
        generator = ContentGenerator(config=config, llm=llm)

        with pytest.raises(ContentGenerationError, match="AI cover letter generation failed"):
            await generator.generate_cover_letter(personal_info, job_info, experience_entries)


class TestMockMode:
    """Mock mode is deterministic and never calls the provider."""

    @pytest.mark.asyncio
    async def test_mock_resume(
        self, mock_content_generator, personal_info, job_info, experience_entries
    ):
        result = await mock_content_generator.generate_resume(
            personal_info, job_info, experience_entries
        )

        assert result.model == MOCK_MODEL
        assert result.token_usage.total_tokens == 1500
        assert result.content.personal_info.title == "Senior Backend Engineer"
        assert [e.company for e in result.content.experience] == ["Babbage & Co", "Royal Society"]

    @pytest.mark.asyncio
    async def test_mock_cover_letter(self, mock_content_generator, personal_info, job_info):
        result = await mock_content_generator.generate_cover_letter(personal_info, job_info, [])

        assert result.token_usage.total_tokens == 1100
        assert result.content.signature == "Sincerely,\nAda Lovelace"
        assert "Analytical Engines" in result.content.opening_paragraph

    def test_mock_mode_warns(self, isolated_env, caplog):
        with caplog.at_level(logging.WARNING):
            ContentGenerator(config=ContentConfig(_env_file=None, use_mock_ai=True))  # type: ignore[call-arg]
        assert "MOCK MODE" in caplog.text


class TestCalculateCost:
    def test_cost_for_known_model(self, config, llm):
        generator = ContentGenerator(config=config, llm=llm)
        usage = TokenUsage(prompt_tokens=1_000_000, completion_tokens=100_000)

        assert generator.calculate_cost(usage, "gpt-4o-mini") == pytest.approx(0.21)

    def test_cost_is_rounded(self, config, llm):
        generator = ContentGenerator(config=config, llm=llm)
        usage = TokenUsage(prompt_tokens=1, completion_tokens=1)

        assert generator.calculate_cost(usage, "gpt-4o-mini") == 0.000001

    @pytest.mark.parametrize("model", ["gpt-4o-2024-08-06", "gpt-4o-mini"])
    def test_cost_never_decreases_with_more_tokens(self, config, llm, model):
        generator = ContentGenerator(config=config, llm=llm)
        costs = [
            generator.calculate_cost(
                TokenUsage(prompt_tokens=prompt, completion_tokens=500), model
            )
            for prompt in (1_000, 2_000, 4_000, 8_000)
        ]

        assert costs == sorted(costs)
        assert costs[-1] > costs[0]
