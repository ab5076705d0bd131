"""AI-assisted grading suggestions.

The scorer is advisory only: its output pre-fills the reviewer's form and is
never written to progress records. Review works identically when no scorer
is configured or the scorer fails.

SECURITY: The API key stays server-side and is never echoed to clients.
"""

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import orjson
import structlog

from src.config.settings import Settings
from src.utils import dumps_json


logger = structlog.get_logger(__name__)


SYSTEM_PROMPT = (
    "You grade open-ended training exercises. Read the student's answers and "
    'reply with a JSON object {"score": <integer 0-100>, "feedback": <string>}. '
    "Feedback is two or three sentences addressed to the student."
)


class SuggestionError(Exception):
    """Raised when the scorer cannot produce a suggestion."""


@dataclass(frozen=True)
class Submission:
    """What a scorer sees of a student's activity."""

    module_slug: str
    module_title: str
    responses: dict[str, Any]


@dataclass(frozen=True)
class ScoreSuggestion:
    score: int
    feedback: str


class SubmissionScorer(Protocol):
    async def suggest(self, submission: Submission) -> ScoreSuggestion: ...


def build_prompt(submission: Submission) -> str:
    return (
        f"Module: {submission.module_title} ({submission.module_slug})\n"
        f"Student answers (JSON):\n{dumps_json(submission.responses)}"
    )


def parse_suggestion(content: str) -> ScoreSuggestion:
    """Parse the model's JSON reply; the score is clamped to 0..100."""
    try:
        data = orjson.loads(content)
        score = int(round(float(data["score"])))
        feedback = str(data.get("feedback") or "")
    except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        msg = "Scorer returned an unreadable suggestion"
        raise SuggestionError(msg) from e
    return ScoreSuggestion(score=max(0, min(score, 100)), feedback=feedback)


class OpenAIScorer:
    """Scorer backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout
        self._transport = transport

    async def suggest(self, submission: Submission) -> ScoreSuggestion:
        """Ask the model for a score and feedback.

        Raises:
            SuggestionError: On timeout, transport error, non-200 reply or
                unparseable content
        """
        payload = {
            "model": self._model,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(submission)},
            ],
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self._base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                )

                if response.status_code != httpx.codes.OK:
                    logger.error(
                        "scorer_request_failed",
                        status_code=response.status_code,
                        response_text=response.text[:500],
                    )
                    msg = f"Scorer API error: {response.status_code}"
                    raise SuggestionError(msg)

                data = response.json()

        except httpx.TimeoutException as e:
            logger.error("scorer_timeout", error=str(e))
            raise SuggestionError("Scorer API timeout") from e
        except httpx.RequestError as e:
            logger.error("scorer_request_error", error=str(e))
            raise SuggestionError(f"Scorer API request error: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise SuggestionError("Scorer reply has no content") from e
        return parse_suggestion(content)


def build_scorer(settings: Settings) -> SubmissionScorer | None:
    """Scorer configured in settings, or None when AI grading is off."""
    if not settings.ai_grading_configured:
        return None
    return OpenAIScorer(
        api_key=settings.ai_api_key or "",
        base_url=settings.ai_base_url,
        model=settings.ai_model,
        timeout=settings.ai_timeout_seconds,
    )
