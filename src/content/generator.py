"""AI content generator for resumes and cover letters.

Produces structured ResumeContent / CoverLetterContent from the supplied
personal info, job and experience entries, and reports token usage so the
caller can bill the request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.content.config import ContentConfig, get_content_config
from src.content.llm import ContentLLM, LLMError
from src.content.models import (
    ContentResult,
    CoverLetterContent,
    CustomPrompts,
    ExperienceEntry,
    JobInfo,
    JobMatchData,
    PersonalInfo,
    ResumeContact,
    ResumeContent,
    ResumeExperience,
    ResumeHeader,
    SkillGroup,
    TokenUsage,
)
from src.content.prompts import build_cover_letter_prompts, build_resume_prompts

if TYPE_CHECKING:
    from src.credentials import SecretAccessor

logger = logging.getLogger(__name__)

MOCK_MODEL = "gpt-4o-mock"
MOCK_RESUME_USAGE = TokenUsage(prompt_tokens=1000, completion_tokens=500, total_tokens=1500)
MOCK_COVER_LETTER_USAGE = TokenUsage(
    prompt_tokens=800, completion_tokens=300, total_tokens=1100
)


class ContentGenerationError(Exception):
    """Exception raised when resume or cover letter content cannot be produced.

    `usage` is set when the provider already charged for the failed call.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        usage: TokenUsage | None = None,
        model: str | None = None,
    ):
        super().__init__(message)
        self.original_error = original_error
        self.usage = usage
        self.model = model


def _key(company: str, role: str) -> tuple[str, str]:
    return company.strip().lower(), role.strip().lower()


class ContentGenerator:
    """Generates document content through the LLM (or deterministically in mock mode)."""

    def __init__(
        self,
        config: ContentConfig | None = None,
        llm: ContentLLM | None = None,
        secret_accessor: SecretAccessor | None = None,
    ):
        """Initialize the generator.

        Args:
            config: Optional ContentConfig. Uses global config if not provided.
            llm: Optional LLM client. Created from config if not provided.
            secret_accessor: Source of the provider API key for a created client.
        """
        self.config = config or get_content_config()
        self.llm = llm or ContentLLM(self.config, secret_accessor=secret_accessor)
        if self.config.use_mock_ai:
            logger.warning("Content generator running in MOCK MODE, provider is not called")

    async def generate_resume(
        self,
        personal_info: PersonalInfo,
        job: JobInfo,
        experience_entries: list[ExperienceEntry],
        emphasize: list[str] | None = None,
        job_match: JobMatchData | None = None,
        custom_prompts: CustomPrompts | None = None,
    ) -> ContentResult[ResumeContent]:
        """Generate structured resume content.

        Raises:
            ContentGenerationError: If the provider call or validation fails.
        """
        if self.config.use_mock_ai:
            return self._mock_resume(personal_info, job, experience_entries)

        system_prompt, user_prompt = build_resume_prompts(
            personal_info,
            job,
            experience_entries,
            emphasize=emphasize,
            job_match=job_match,
            custom_prompts=custom_prompts,
            min_words=self.config.resume_min_words,
            max_words=self.config.resume_max_words,
            max_entries=self.config.max_experience_entries,
            max_highlights=self.config.max_highlights_per_entry,
            max_description_chars=self.config.resume_description_chars,
        )

        logger.info(
            f"Generating resume for {job.role} at {job.company} "
            f"({len(experience_entries)} experience entries)"
        )
        try:
            completion = await self.llm.generate_structured(
                prompt=user_prompt,
                output_model=ResumeContent,
                system_prompt=system_prompt,
            )
        except LLMError as e:
            logger.error(f"Failed to generate resume: {e}")
            raise ContentGenerationError(
                f"AI resume generation failed: {e}", e, usage=e.usage, model=e.model
            ) from e

        content = self.enforce_fidelity(completion.parsed, experience_entries)
        logger.info(
            f"Resume generated with {completion.model} "
            f"({completion.usage.total_tokens} tokens)"
        )
        return ContentResult[ResumeContent](
            content=content, token_usage=completion.usage, model=completion.model
        )

    async def generate_cover_letter(
        self,
        personal_info: PersonalInfo,
        job: JobInfo,
        experience_entries: list[ExperienceEntry],
        job_match: JobMatchData | None = None,
        custom_prompts: CustomPrompts | None = None,
    ) -> ContentResult[CoverLetterContent]:
        """Generate structured cover letter content.

        Raises:
            ContentGenerationError: If the provider call or validation fails.
        """
        if self.config.use_mock_ai:
            return self._mock_cover_letter(personal_info, job)

        system_prompt, user_prompt = build_cover_letter_prompts(
            personal_info,
            job,
            experience_entries,
            job_match=job_match,
            custom_prompts=custom_prompts,
            min_words=self.config.cover_letter_min_words,
            max_words=self.config.cover_letter_max_words,
            max_description_chars=self.config.cover_letter_description_chars,
        )

        logger.info(f"Generating cover letter for {job.role} at {job.company}")
        try:
            completion = await self.llm.generate_structured(
                prompt=user_prompt,
                output_model=CoverLetterContent,
                system_prompt=system_prompt,
            )
        except LLMError as e:
            logger.error(f"Failed to generate cover letter: {e}")
            raise ContentGenerationError(
                f"AI cover letter generation failed: {e}", e, usage=e.usage, model=e.model
            ) from e

        logger.info(
            f"Cover letter generated with {completion.model} "
            f"({completion.usage.total_tokens} tokens)"
        )
        return ContentResult[CoverLetterContent](
            content=completion.parsed, token_usage=completion.usage, model=completion.model
        )

    def calculate_cost(self, token_usage: TokenUsage, model: str | None = None) -> float:
        """Return the USD cost of a call, rounded to 6 decimal places."""
        pricing = self.config.pricing_for(model)
        input_cost = token_usage.prompt_tokens / 1_000_000 * pricing.input_cost_per_1m
        output_cost = (
            token_usage.completion_tokens / 1_000_000 * pricing.output_cost_per_1m
        )
        return round(input_cost + output_cost, 6)

    def enforce_fidelity(
        self, content: ResumeContent, supplied: list[ExperienceEntry]
    ) -> ResumeContent:
        """Drop experience the candidate never supplied and apply length caps."""
        allowed = {_key(entry.company, entry.role) for entry in supplied}
        kept: list[ResumeExperience] = []
        for entry in content.experience:
            if _key(entry.company, entry.role) not in allowed:
                logger.warning(
                    f"Dropping unsupported experience entry: {entry.role} at {entry.company}"
                )
                continue
            kept.append(
                entry.model_copy(
                    update={
                        "highlights": entry.highlights[
                            : self.config.max_highlights_per_entry
                        ]
                    }
                )
            )
        return content.model_copy(
            update={"experience": kept[: self.config.max_experience_entries]}
        )

    def _mock_resume(
        self,
        personal_info: PersonalInfo,
        job: JobInfo,
        experience_entries: list[ExperienceEntry],
    ) -> ContentResult[ResumeContent]:
        logger.info(f"[MOCK] Generating resume for {job.role} at {job.company}")
        content = ResumeContent(
            personal_info=ResumeHeader(
                name=personal_info.name,
                title=f"Senior {job.role}",
                summary=(
                    f"Experienced professional seeking {job.role} position at {job.company}."
                ),
                contact=ResumeContact(
                    email=personal_info.email,
                    location=personal_info.location,
                    website=personal_info.website,
                    linkedin=personal_info.linkedin,
                    github=personal_info.github,
                ),
            ),
            professional_summary=(
                f"Mock professional summary for {job.role} at {job.company}."
            ),
            experience=[
                ResumeExperience(
                    company=exp.company,
                    role=exp.role,
                    location=exp.location,
                    start_date=exp.start_date,
                    end_date=exp.end_date,
                    highlights=exp.highlights
                    or ["Mock highlight 1", "Mock highlight 2"],
                    technologies=exp.technologies,
                )
                for exp in experience_entries[:3]
            ],
            skills=[
                SkillGroup(
                    category="Programming Languages",
                    items=["JavaScript", "TypeScript", "Python"],
                )
            ],
        )
        return ContentResult[ResumeContent](
            content=content,
            token_usage=MOCK_RESUME_USAGE.model_copy(),
            model=MOCK_MODEL,
        )

    def _mock_cover_letter(
        self, personal_info: PersonalInfo, job: JobInfo
    ) -> ContentResult[CoverLetterContent]:
        logger.info(f"[MOCK] Generating cover letter for {job.role} at {job.company}")
        content = CoverLetterContent(
            greeting="Dear Hiring Manager,",
            opening_paragraph=(
                f"I am writing to express my strong interest in the {job.role} "
                f"position at {job.company}."
            ),
            body_paragraphs=[
                "Mock body paragraph 1 highlighting relevant experience.",
                "Mock body paragraph 2 demonstrating skills and achievements.",
            ],
            closing_paragraph=(
                f"I am excited about the opportunity to contribute to {job.company} "
                "and would welcome the chance to discuss how my experience aligns "
                "with your needs."
            ),
            signature=f"Sincerely,\n{personal_info.name}",
        )
        return ContentResult[CoverLetterContent](
            content=content,
            token_usage=MOCK_COVER_LETTER_USAGE.model_copy(),
            model=MOCK_MODEL,
        )
