"""AI-written summaries, follow-up emails and reviews for one application.

The model is an opaque text source: failures become GenerationError and
never touch stored applications or events unless a save was requested
and the text came back.
"""

from __future__ import annotations

import json
import logging
import re

import openai
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from jobtracker.api.db_helpers import atomic
from jobtracker.clients import get_openai_client
from jobtracker.config import get_settings
from jobtracker.exceptions import GenerationError
from jobtracker.models.tables import Application
from jobtracker.schemas.pydantic import (
    ApplicationOut,
    FollowupOut,
    ReviewOut,
    ReviewSections,
    SummaryOut,
)
from jobtracker.utils import extract_output_text, retry_openai

logger = logging.getLogger(__name__)

_SUBJECT_PREFIX = re.compile(r"^Subject:\s*", re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def summary_prompt(app: Application) -> str:
    return f"""\
You are helping a job seeker manage applications.
Write a concise professional summary for this application.

Rules:
- 2-4 sentences max.
- Mention role + company.
- Mention location if present.
- If job URL exists, say "Job link available" (do not print the URL).
- Mention current status.
- Do NOT invent details.
- Tone: confident, clear, recruiter-friendly.

Application:
Company: {app.company}
Role: {app.role}
Status: {app.status}
Location: {app.location or "Not set"}
Job URL: {"Provided" if app.job_url else "Not provided"}
Created: {app.created_at.isoformat()}
Updated: {app.updated_at.isoformat()}"""


def followup_prompt(app: Application) -> str:
    return f"""\
Write a professional follow-up email for a job application.

Rules:
- Polite, concise, recruiter-friendly
- 1 short subject line
- 1 short email body
- Mention company and role
- If status is INTERVIEW, thank interviewer
- Do not invent names or dates

Company: {app.company}
Role: {app.role}
Status: {app.status}"""


def review_prompt(app: Application) -> str:
    return f"""\
You are an expert recruiter + hiring manager for software roles.

Generate an "AI Application Review" for this job application.
Be practical, specific, and recruiter-friendly. No fluff.

APPLICATION:
- Company: {app.company}
- Role: {app.role}
- Status: {app.status}
- Location: {app.location or "N/A"}
- Job URL: {app.job_url or "N/A"}

Return ONLY valid JSON with this exact shape:
{{
  "strengths": string[],
  "risks": string[],
  "next_steps": string[],
  "recruiter_summary": string,
  "tailored_pitch": string
}}

Rules:
- recruiter_summary: 2-4 sentences, neutral + professional.
- tailored_pitch: 2-4 sentences, first-person, ready to paste in a message.
- strengths/risks/next_steps: 3-6 bullets each, short."""


@retry_openai()
async def _complete(prompt: str) -> str:
    client = get_openai_client()
    settings = get_settings()
    response = await client.responses.create(
        model=settings.model_name,
        input=prompt,
        temperature=settings.temp_generation,
    )
    return extract_output_text(response)


async def generate_text(prompt: str) -> str:
    """Run one prompt; raise GenerationError on any provider failure or empty output."""
    if not get_settings().openai_api_key:
        raise GenerationError("Missing OPENAI_API_KEY")
    try:
        text = await _complete(prompt)
    except openai.OpenAIError as exc:
        logger.error("OpenAI request failed: %s", exc)
        raise GenerationError(f"OpenAI request failed: {exc}") from exc
    if not text:
        raise GenerationError("No output generated")
    return text


def parse_followup(text: str) -> tuple[str, str]:
    """First non-empty line is the subject (``Subject:`` stripped), the rest is the body."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return "", ""
    subject = _SUBJECT_PREFIX.sub("", lines[0])
    return subject, "\n".join(lines[1:]).strip()


def parse_review(text: str) -> ReviewSections | None:
    """Parse the model's JSON review; None when it is not the expected shape."""
    cleaned = _CODE_FENCE.sub("", text.strip())
    try:
        return ReviewSections.model_validate(json.loads(cleaned))
    except (json.JSONDecodeError, ValidationError):
        return None


async def generate_summary(db: AsyncSession, app: Application, save: bool = False) -> SummaryOut:
    summary = await generate_text(summary_prompt(app))
    if save:
        async with atomic(db, "Save summary"):
            app.ai_summary = summary
    return SummaryOut(application_id=app.id, summary=summary, saved=save)


async def generate_followup(db: AsyncSession, app: Application, save: bool = False) -> FollowupOut:
    subject, body = parse_followup(await generate_text(followup_prompt(app)))
    if save:
        async with atomic(db, "Save follow-up email"):
            app.follow_up_email_subject = subject
            app.follow_up_email_body = body
    return FollowupOut(application_id=app.id, subject=subject, body=body, saved=save)


async def generate_review(app: Application) -> ReviewOut:
    text = await generate_text(review_prompt(app))
    sections = parse_review(text)
    return ReviewOut(
        application=ApplicationOut.model_validate(app),
        review_text=None if sections else text,
        sections=sections,
    )
