"""Tests for resume and cover letter prompt construction."""

from src.content.models import CustomPrompts, JobMatchData
from src.content.prompts import (
    build_cover_letter_prompts,
    build_resume_prompts,
    format_experience,
    interpolate_template,
)


class TestFormatExperience:
    def test_blocks_are_delimited_and_numbered(self, experience_entries):
        text = format_experience(experience_entries)

        assert "=== EXPERIENCE 1 ===" in text
        assert "=== END EXPERIENCE 2 ===" in text
        assert "Company: Babbage & Co" in text
        assert "Duration: 2020-01 to Present" in text
        assert "Location: Not specified" in text
        assert "Technologies: Python, PostgreSQL" in text

    def test_missing_highlights_marked(self, experience_entries):
        entry = experience_entries[0].model_copy(update={"highlights": []})
        assert "No highlights provided" in format_experience([entry])


class TestResumePrompts:
    def test_includes_job_candidate_and_experience(
        self, personal_info, job_info, experience_entries
    ):
        system, user = build_resume_prompts(personal_info, job_info, experience_entries)

        assert "NEVER add metrics" in system
        assert "600-900 words" in system
        assert "Role: Backend Engineer" in user
        assert "Company: Analytical Engines" in user
        assert "Name: Ada Lovelace" in user
        assert "GitHub: https://github.com/ada" in user
        assert "Designed the difference engine API" in user

    def test_description_is_truncated(self, personal_info, job_info, experience_entries):
        job = job_info.model_copy(update={"job_description_text": "x" * 50 + "TAIL"})

        _, user = build_resume_prompts(
            personal_info, job, experience_entries, max_description_chars=50
        )

        assert "x" * 50 in user
        assert "TAIL" not in user

    def test_emphasis_and_job_match(self, personal_info, job_info, experience_entries):
        job_match = JobMatchData(match_score=87.5, matched_skills=["Python"], missing_skills=["Go"])

        _, user = build_resume_prompts(
            personal_info,
            job_info,
            experience_entries,
            emphasize=["APIs", "mentoring"],
            job_match=job_match,
        )

        assert "EMPHASIZE THESE AREAS: APIs, mentoring" in user
        assert "Match Score: 87.5%" in user
        assert "Skills to Develop: Go" in user

    def test_custom_prompts_override(self, personal_info, job_info, experience_entries):
        custom = CustomPrompts(
            system_prompt="Be brief.",
            user_prompt_template="Resume for {{name}} applying to {{role}} at {{company}}",
        )

        system, user = build_resume_prompts(
            personal_info, job_info, experience_entries, custom_prompts=custom
        )

        assert system == "Be brief."
        assert user == "Resume for Ada Lovelace applying to Backend Engineer at Analytical Engines"


class TestCoverLetterPrompts:
    def test_includes_experience_summary(self, personal_info, job_info, experience_entries):
        system, user = build_cover_letter_prompts(personal_info, job_info, experience_entries)

        assert "250-350 words" in system
        assert "Experience 1:\nSenior Engineer at Babbage & Co (2020-01 to Present)" in user
        assert "Email: ada@example.com" in user

    def test_job_match_insights(self, personal_info, job_info, experience_entries):
        job_match = JobMatchData(key_strengths=["Distributed systems"])

        _, user = build_cover_letter_prompts(
            personal_info, job_info, experience_entries, job_match=job_match
        )

        assert "JOB MATCH INSIGHTS:" in user
        assert "Your Strengths: Distributed systems" in user

    def test_system_prompt_only_override(self, personal_info, job_info, experience_entries):
        system, user = build_cover_letter_prompts(
            personal_info,
            job_info,
            experience_entries,
            custom_prompts=CustomPrompts(system_prompt="Custom system"),
        )

        assert system == "Custom system"
        assert "RELEVANT EXPERIENCE:" in user


def test_interpolate_template_leaves_unknown_placeholders(personal_info, job_info):
    result = interpolate_template("{{email}} / {{phone}}", personal_info, job_info)
    assert result == "ada@example.com / {{phone}}"
