"""Prompt construction for resume and cover letter generation."""

from __future__ import annotations

from src.content.models import (
    CustomPrompts,
    ExperienceEntry,
    JobInfo,
    JobMatchData,
    PersonalInfo,
)

RESUME_SYSTEM_PROMPT = """You are a professional resume formatter with strict adherence to factual accuracy and conciseness.

CRITICAL RULES (ABSOLUTE):
1. ONLY use information explicitly provided in the experience data
2. NEVER add metrics, numbers, percentages, or statistics not in the original data
3. NEVER invent job responsibilities, accomplishments, or technologies
4. NEVER create companies, roles, dates, or locations not provided
5. If information is missing or unclear, omit it entirely
6. You may REFORMAT wording for clarity, but NEVER change factual content
7. You may REORGANIZE content for better presentation, but NEVER add new information

LENGTH REQUIREMENTS:
- {min_words}-{max_words} words in total (1-2 pages when rendered)
- Include ONLY the 3-{max_entries} most relevant experience entries
- At most {max_highlights} bullet points per experience entry
- Professional summary: 2-3 sentences

SELECTION PRIORITY:
- Relevance to the target role matters more than recency
- Skip entries with weak or generic content
- Order entries by relevance, not chronologically

Do NOT create education entries if none are provided."""

COVER_LETTER_SYSTEM_PROMPT = """You are a professional cover letter writer specializing in compelling, personalized application letters.

CRITICAL RULES:
1. ONLY use information explicitly provided in the experience data
2. NEVER fabricate accomplishments, metrics, or experiences
3. Write in a professional but authentic tone
4. Keep it to 3 paragraphs, {min_words}-{max_words} words
5. Focus on WHY the candidate fits, drawing clear connections to the job

Structure:
- greeting: professional salutation
- opening_paragraph: strong hook that shows interest and fit
- body_paragraphs: relevant experiences and skills
- closing_paragraph: call to action
- signature: sign-off with the candidate's name"""


def interpolate_template(
    template: str, personal_info: PersonalInfo, job: JobInfo
) -> str:
    """Fill {{role}}, {{company}}, {{name}} and {{email}} placeholders."""
    return (
        template.replace("{{role}}", job.role)
        .replace("{{company}}", job.company)
        .replace("{{name}}", personal_info.name)
        .replace("{{email}}", personal_info.email)
    )


def _job_section(job: JobInfo, max_chars: int) -> str:
    lines = ["TARGET POSITION:", f"Role: {job.role}", f"Company: {job.company}"]
    if job.job_description_text:
        lines.append(f"Job Description:\n{job.job_description_text[:max_chars]}")
    return "\n".join(lines)


def _job_match_lines(job_match: JobMatchData | None, for_letter: bool = False) -> str:
    if job_match is None:
        return ""
    lines = []
    if for_letter:
        if job_match.key_strengths:
            lines.append(f"Your Strengths: {', '.join(job_match.key_strengths)}")
        if job_match.matched_skills:
            lines.append(f"Relevant Skills: {', '.join(job_match.matched_skills)}")
        header = "JOB MATCH INSIGHTS:"
    else:
        if job_match.match_score is not None:
            lines.append(f"Match Score: {job_match.match_score:g}%")
        if job_match.matched_skills:
            lines.append(f"Matched Skills: {', '.join(job_match.matched_skills)}")
        if job_match.missing_skills:
            lines.append(f"Skills to Develop: {', '.join(job_match.missing_skills)}")
        if job_match.key_strengths:
            lines.append(f"Key Strengths: {', '.join(job_match.key_strengths)}")
        header = "JOB MATCH DATA:"
    if not lines:
        return ""
    return "\n\n" + header + "\n" + "\n".join(lines)


def _highlight_lines(exp: ExperienceEntry) -> str:
    return "\n- ".join(exp.highlights) or "No highlights provided"


def format_experience(entries: list[ExperienceEntry]) -> str:
    """Render experience entries as delimited blocks for the resume prompt."""
    blocks = []
    for index, exp in enumerate(entries, start=1):
        highlights = _highlight_lines(exp)
        block = (
            f"=== EXPERIENCE {index} ===\n"
            f"Company: {exp.company}\n"
            f"Role: {exp.role}\n"
            f"Location: {exp.location or 'Not specified'}\n"
            f"Duration: {exp.start_date} to {exp.end_date or 'Present'}\n"
            f"Highlights:\n- {highlights}"
        )
        if exp.technologies:
            block += f"\nTechnologies: {', '.join(exp.technologies)}"
        block += f"\n=== END EXPERIENCE {index} ==="
        blocks.append(block)
    return "\n\n".join(blocks)


def build_resume_prompts(
    personal_info: PersonalInfo,
    job: JobInfo,
    experience_entries: list[ExperienceEntry],
    emphasize: list[str] | None = None,
    job_match: JobMatchData | None = None,
    custom_prompts: CustomPrompts | None = None,
    *,
    min_words: int = 600,
    max_words: int = 900,
    max_entries: int = 4,
    max_highlights: int = 4,
    max_description_chars: int = 2000,
) -> tuple[str, str]:
    """Build (system_prompt, user_prompt) for a resume."""
    custom_prompts = custom_prompts or CustomPrompts()
    system_prompt = custom_prompts.system_prompt or RESUME_SYSTEM_PROMPT.format(
        min_words=min_words,
        max_words=max_words,
        max_entries=max_entries,
        max_highlights=max_highlights,
    )
    if custom_prompts.user_prompt_template:
        return system_prompt, interpolate_template(
            custom_prompts.user_prompt_template, personal_info, job
        )

    candidate = [f"Name: {personal_info.name}", f"Email: {personal_info.email}"]
    for label, value in (
        ("Phone", personal_info.phone),
        ("Location", personal_info.location),
        ("Website", personal_info.website),
        ("LinkedIn", personal_info.linkedin),
        ("GitHub", personal_info.github),
    ):
        if value:
            candidate.append(f"{label}: {value}")

    emphasis = ""
    if emphasize:
        emphasis = f"\n\nEMPHASIZE THESE AREAS: {', '.join(emphasize)}"

    user_prompt = (
        "Create a tailored resume for the following position:\n\n"
        f"{_job_section(job, max_description_chars)}\n\n"
        "CANDIDATE INFORMATION:\n"
        + "\n".join(candidate)
        + "\n\nEXPERIENCE DATA:\n"
        + format_experience(experience_entries)
        + emphasis
        + _job_match_lines(job_match)
        + "\n\nInstructions:\n"
        f"1. Select the 3-{max_entries} MOST RELEVANT experiences for this {job.role} role\n"
        "2. Write a professional summary (2-3 sentences) highlighting fit for the role\n"
        f"3. Format each experience with at most {max_highlights} impactful bullet points\n"
        "4. Extract and categorize skills from the experiences\n"
        "5. Order experiences by RELEVANCE to the target role\n"
        "6. Use keywords from the job description for ATS-friendly formatting"
    )
    return system_prompt, user_prompt


def build_cover_letter_prompts(
    personal_info: PersonalInfo,
    job: JobInfo,
    experience_entries: list[ExperienceEntry],
    job_match: JobMatchData | None = None,
    custom_prompts: CustomPrompts | None = None,
    *,
    min_words: int = 250,
    max_words: int = 350,
    max_description_chars: int = 1500,
) -> tuple[str, str]:
    """Build (system_prompt, user_prompt) for a cover letter."""
    custom_prompts = custom_prompts or CustomPrompts()
    system_prompt = custom_prompts.system_prompt or COVER_LETTER_SYSTEM_PROMPT.format(
        min_words=min_words, max_words=max_words
    )
    if custom_prompts.user_prompt_template:
        return system_prompt, interpolate_template(
            custom_prompts.user_prompt_template, personal_info, job
        )

    experience = "\n\n".join(
        f"Experience {index}:\n"
        f"{exp.role} at {exp.company} ({exp.start_date} to {exp.end_date or 'Present'})\n"
        f"- {_highlight_lines(exp)}"
        for index, exp in enumerate(experience_entries, start=1)
    )

    user_prompt = (
        "Create a compelling cover letter for the following position:\n\n"
        f"{_job_section(job, max_description_chars)}\n\n"
        "CANDIDATE:\n"
        f"Name: {personal_info.name}\n"
        f"Email: {personal_info.email}\n\n"
        "RELEVANT EXPERIENCE:\n"
        + experience
        + _job_match_lines(job_match, for_letter=True)
        + "\n\nCreate a cover letter that:\n"
        "1. Opens with a strong statement about interest in this role\n"
        "2. Highlights 2-3 of the most relevant experiences\n"
        "3. Shows enthusiasm for the company and role\n"
        "4. Closes with a confident call to action\n"
        f"5. Keeps total length to {min_words}-{max_words} words"
    )
    return system_prompt, user_prompt
