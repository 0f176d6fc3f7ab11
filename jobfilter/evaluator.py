"""Score one parsed posting against the candidate profile with an LLM."""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Protocol

from pydantic import BaseModel, Field, ValidationError

from jobfilter.errors import EvaluationError
from jobfilter.log import get_logger
from jobfilter.models import JobEvaluation, ParsedJobPosting

log = get_logger(__name__)

HIGHLIGHT_MARKER = "🟢"
MID_MARKER = "🟡"
NO_MARKER = ""

TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

SYSTEM_INSTRUCTIONS = """You are an expert at matching job opportunities against a candidate profile.

The candidate's full profile is provided below. Use it to evaluate job listings.

## Instructions

You receive ONE job listing at a time. Evaluate it against the profile.

IMPORTANT:
- If the role REQUIRES a tech stack the candidate explicitly marks as "NOT my tech stack" = automatic 1 point.
- Blacklisted industries listed in the profile = always 1 point.
- NEVER guess a company's industry from its name. Evaluate based on what the company actually does.
- Use the matching keywords from the profile to identify relevant roles.

Respond ONLY with JSON, nothing else."""

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")


class ChatCompleter(Protocol):
    provider: str

    def complete(self, messages: list[dict[str, str]]) -> str: ...


class EvaluationResponse(BaseModel):
    score: int = Field(strict=True, ge=1, le=5)
    category: str
    title: str
    company: str
    reasoning: str


def category_for_score(score: int) -> str:
    if score >= 4:
        return HIGHLIGHT_MARKER
    if score == 3:
        return MID_MARKER
    return NO_MARKER


def build_system_prompt(profile: str) -> str:
    return f"{SYSTEM_INSTRUCTIONS}\n\n## Candidate Profile\n\n{profile}"


def build_job_prompt(posting: ParsedJobPosting) -> str:
    return f"""Evaluate this job listing. Respond ONLY with JSON.

Role: {posting.title}
Company: {posting.company}
Location: {posting.location}
Details: {posting.details}

Respond with:
{{
  "score": 1-5,
  "category": "{HIGHLIGHT_MARKER}" or "{MID_MARKER}" or "",
  "title": "job title",
  "company": "company name",
  "reasoning": "1-2 sentences explaining the score"
}}

Scoring:
5 = Perfect match - apply immediately
4 = Strong match - worth checking out
3 = Interesting but missing something
2 = Weak match
1 = Irrelevant or wrong tech stack or blacklisted industry

Category:
{HIGHLIGHT_MARKER} = score 4-5
{MID_MARKER} = score 3
"" (empty string) = score 1-2"""


def parse_evaluation_response(content: str) -> EvaluationResponse:
    """Validate the model's JSON answer, tolerating a markdown code fence."""
    cleaned = _FENCE_CLOSE_RE.sub("", _FENCE_OPEN_RE.sub("", content.strip())).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise EvaluationError(f"Response is not valid JSON: {exc}") from exc
    try:
        return EvaluationResponse.model_validate(data)
    except ValidationError as exc:
        raise EvaluationError(f"Response failed schema validation: {exc}") from exc


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, dropped connections and 429/5xx answers are worth retrying."""
    import openai

    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError, TimeoutError, ConnectionError)):
        return True
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    if isinstance(status, int):
        return status in TRANSIENT_STATUS_CODES
    message = str(exc)
    return any(str(code) in message for code in TRANSIENT_STATUS_CODES)


def evaluate_job(
    client: ChatCompleter,
    posting: ParsedJobPosting,
    message_id: str,
    system_prompt: str,
) -> JobEvaluation:
    content = client.complete([
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": build_job_prompt(posting)},
    ])
    result = parse_evaluation_response(content)

    category = category_for_score(result.score)
    if result.category != category:
        log.debug(
            "Model category %r disagrees with score %d for %r, using %r",
            result.category, result.score, posting.title, category,
        )

    return JobEvaluation(
        message_id=message_id,
        score=result.score,
        category=category,
        title=result.title,
        company=result.company,
        location=posting.location,
        provider=posting.provider,
        reasoning=result.reasoning,
        links=tuple(posting.links),
        evaluated_at=datetime.now(timezone.utc),
    )
