"""
Analysis providers: judge how well a candidate's skills fit a role.

The scoring engine only sees ``analyze(candidate_fields, job_description)``
returning a skill-match value on 0-10 and a few free-text insights.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import openai
from openai import OpenAI

from .errors import AuthorizationError, RateLimitError, ServiceUnavailableError
from .logger import get_logger

logger = get_logger()

MAX_INSIGHTS = 5

SYSTEM_PROMPT = (
    "You are an expert technical recruiter. Rate how well the candidate's skills "
    "and experience match the role. Respond with a JSON object with the keys "
    "\"skill_match\" (number from 0 to 10) and \"insights\" (list of at most five "
    "short strings). If no role is given, rate the depth and marketability of the "
    "candidate's skills."
)


@dataclass(frozen=True)
class AnalysisResult:
    skill_match: float
    insights: Tuple[str, ...] = ()


def clamp_score(value: Any, low: float = 0.0, high: float = 10.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    if number != number:  # NaN
        return low
    return round(min(high, max(low, number)), 2)


class AnalysisProvider:
    """Interface for skill-match analysis."""

    name = "analysis"

    def analyze(self, candidate_fields: Dict[str, Any], job_description: Optional[str] = None) -> AnalysisResult:
        raise NotImplementedError


class SkillCountAnalysisProvider(AnalysisProvider):
    """Offline provider used when no model is configured.

    Without a job description the score follows the number of listed skills.
    With one, it is the share of the candidate's skills the description mentions.
    """

    name = "skill-count"

    def analyze(self, candidate_fields, job_description=None):
        skills = [str(s).strip() for s in candidate_fields.get("skills") or [] if str(s).strip()]
        if job_description and skills:
            text = job_description.lower()
            matched = [s for s in skills if s.lower() in text]
            score = clamp_score(10 * len(matched) / len(skills))
            insights = (f"Matched skills: {', '.join(matched)}",) if matched else ("No listed skills appear in the role",)
            return AnalysisResult(score, insights)

        count = len(skills)
        if count >= 20:
            score = 10.0
        elif count >= 15:
            score = 8.0
        elif count >= 10:
            score = 6.0
        elif count >= 5:
            score = 4.0
        elif count >= 1:
            score = 2.0
        else:
            score = 0.0
        return AnalysisResult(score, (f"{count} skills listed",) if count else ())


class OpenAIAnalysisProvider(AnalysisProvider):
    """Skill-match analysis with an OpenAI chat model returning JSON."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o",
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        # Retries are left to the caller; a failed call fails the item.
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout, max_retries=0)

    def _messages(self, candidate_fields: Dict[str, Any], job_description: Optional[str]):
        payload = {"candidate": candidate_fields}
        if job_description:
            payload["role"] = job_description
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(payload, sort_keys=True, default=str)},
        ]

    def analyze(self, candidate_fields, job_description=None):
        logger.record_api_call()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(candidate_fields, job_description),
                response_format={"type": "json_object"},
                temperature=0,
            )
        except openai.RateLimitError as e:
            logger.warning("Analysis provider rate limited", model=self.model)
            raise RateLimitError("Analysis provider rate limit exceeded", provider=self.name, status=429) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            logger.critical("Analysis provider rejected credentials", model=self.model, status=e.status_code)
            raise AuthorizationError(
                "Analysis provider rejected the API key", provider=self.name, status=e.status_code
            ) from e
        except openai.APITimeoutError as e:
            raise ServiceUnavailableError("Analysis provider timed out", provider=self.name) from e
        except openai.APIConnectionError as e:
            raise ServiceUnavailableError(f"Analysis provider unreachable: {e}", provider=self.name) from e
        except openai.APIStatusError as e:
            raise ServiceUnavailableError(
                f"Analysis provider error ({e.status_code})", provider=self.name, status=e.status_code
            ) from e

        content = response.choices[0].message.content or ""
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error("Analysis provider returned malformed JSON", model=self.model)
            raise ServiceUnavailableError("Analysis provider returned malformed JSON", provider=self.name) from e
        if not isinstance(data, dict):
            raise ServiceUnavailableError("Analysis provider returned an unexpected payload", provider=self.name)

        insights = data.get("insights") or []
        if isinstance(insights, str):
            insights = [insights]
        return AnalysisResult(
            skill_match=clamp_score(data.get("skill_match")),
            insights=tuple(str(i) for i in insights[:MAX_INSIGHTS]),
        )


def build_analysis_provider(settings) -> AnalysisProvider:
    """OpenAI when an API key is configured, otherwise the offline skill counter."""
    if settings.openai_api_key:
        return OpenAIAnalysisProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.analysis_timeout,
        )
    logger.info("OPENAI_API_KEY not set; using offline skill-count analysis")
    return SkillCountAnalysisProvider()
