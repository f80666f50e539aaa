"""AI content generation for resumes and cover letters.

Public API:
- ContentGenerator: generate_resume, generate_cover_letter, calculate_cost
- ContentConfig / get_content_config: generator settings (GENERATOR_* env vars)
- ContentLLM / LLMError: LiteLLM structured-output client
- Models: PersonalInfo, JobInfo, ExperienceEntry, ResumeContent, CoverLetterContent, ...
"""

from src.content.config import ContentConfig, get_content_config, reset_content_config
from src.content.generator import ContentGenerationError, ContentGenerator
from src.content.llm import ContentLLM, LLMError
from src.content.models import (
    ContentResult,
    CoverLetterContent,
    CustomPrompts,
    ExperienceEntry,
    JobInfo,
    JobMatchData,
    PersonalInfo,
    ResumeContent,
    TokenUsage,
)

__all__ = [
    "ContentGenerator",
    "ContentGenerationError",
    "ContentConfig",
    "get_content_config",
    "reset_content_config",
    "ContentLLM",
    "LLMError",
    "ContentResult",
    "CoverLetterContent",
    "CustomPrompts",
    "ExperienceEntry",
    "JobInfo",
    "JobMatchData",
    "PersonalInfo",
    "ResumeContent",
    "TokenUsage",
]
