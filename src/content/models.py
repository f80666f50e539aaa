"""Data models for the AI content generator.

Contains Pydantic models for:
- Inputs: PersonalInfo, JobInfo, ExperienceEntry, JobMatchData, CustomPrompts
- Structured outputs: ResumeContent, CoverLetterContent
- Accounting: TokenUsage, ContentResult
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T", bound=BaseModel)


class PersonalInfo(BaseModel):
    """Candidate identity and document preferences."""

    name: str = Field(..., description="Full name")
    email: str = Field(..., description="Contact email")
    phone: str | None = Field(default=None, description="Phone number")
    location: str | None = Field(default=None, description="City / region")
    website: str | None = Field(default=None, description="Personal website")
    linkedin: str | None = Field(default=None, description="LinkedIn profile URL")
    github: str | None = Field(default=None, description="GitHub profile URL")
    accent_color: str | None = Field(
        default=None, description="Accent color used when rendering, e.g. #3B82F6"
    )
    default_style: str = Field(default="modern", description="Resume template style")


class JobInfo(BaseModel):
    """Target job posting."""

    role: str = Field(..., description="Job title")
    company: str = Field(..., description="Hiring company")
    company_website: str | None = Field(default=None)
    job_description_url: str | None = Field(default=None)
    job_description_text: str | None = Field(default=None)


class ExperienceEntry(BaseModel):
    """One supplied work-history entry. The only source of resume facts."""

    company: str
    role: str
    location: str | None = None
    start_date: str = Field(..., description="Start date, YYYY-MM")
    end_date: str | None = Field(default=None, description="End date, YYYY-MM or empty")
    highlights: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)


class JobMatchData(BaseModel):
    """Optional job-match insights used to steer emphasis."""

    match_score: float | None = None
    matched_skills: list[str] = Field(default_factory=list)
    missing_skills: list[str] = Field(default_factory=list)
    key_strengths: list[str] = Field(default_factory=list)


class CustomPrompts(BaseModel):
    """Caller-supplied prompt overrides.

    The user template may reference {{role}}, {{company}}, {{name}} and
    {{email}}.
    """

    system_prompt: str | None = None
    user_prompt_template: str | None = None


class ResumeContact(BaseModel):
    email: str
    location: str | None = None
    website: str | None = None
    linkedin: str | None = None
    github: str | None = None


class ResumeHeader(BaseModel):
    name: str
    title: str = Field(..., description="Headline title for the target role")
    summary: str = Field(..., description="One or two sentence summary")
    contact: ResumeContact


class ResumeExperience(BaseModel):
    company: str
    role: str
    location: str | None = None
    start_date: str
    end_date: str | None = None
    highlights: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)


class SkillGroup(BaseModel):
    category: str
    items: list[str] = Field(default_factory=list)


class EducationEntry(BaseModel):
    institution: str
    degree: str
    field: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class ResumeContent(BaseModel):
    """Structured resume produced by the content generator."""

    personal_info: ResumeHeader
    professional_summary: str
    experience: list[ResumeExperience] = Field(default_factory=list)
    skills: list[SkillGroup] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResumeContent:
        """Deserialize from a dictionary."""
        return cls.model_validate(data)


class CoverLetterContent(BaseModel):
    """Structured cover letter produced by the content generator."""

    greeting: str
    opening_paragraph: str
    body_paragraphs: list[str] = Field(default_factory=list)
    closing_paragraph: str
    signature: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CoverLetterContent:
        """Deserialize from a dictionary."""
        return cls.model_validate(data)


class TokenUsage(BaseModel):
    """Token counts reported by the provider for one call."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ContentResult(BaseModel, Generic[T]):
    """Generated content together with its usage and the model that produced it."""

    content: T
    token_usage: TokenUsage
    model: str
