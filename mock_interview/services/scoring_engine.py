import json
import logging
import re
from typing import Protocol

from mock_interview.core.config import settings
from mock_interview.core.errors import ConfigurationError, ScoringError
from mock_interview.schemas.score import ScoringResult
from mock_interview.services.scoring_config import (
    MISSING_REASON,
    REASON_MAX_LENGTH,
    ROLE_LABELS,
    SCORE_BOUNDS,
    SCORE_WEIGHTS,
    SCORING_PROMPT,
)

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?")
CRITERIA = ("clarity", "grammar", "substance")


class ScoringClient(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class GeminiScoringClient:
    """Scoring service backed by Gemini, asking for JSON output."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.SCORING_MODEL
        self.timeout_seconds = timeout_seconds or settings.SCORING_TIMEOUT_SECONDS

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        from google import genai
        from google.genai import types

        client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
        )
        try:
            response = client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    temperature=0.2,
                ),
            )
        except Exception as e:
            raise ScoringError(f"Scoring service call failed: {e}") from e

        return response.text or ""


def render_transcript(messages: list[dict]) -> str:
    lines = []
    for message in messages:
        label = ROLE_LABELS.get(message["role"], message["role"])
        lines.append(f"{label}: {message['content']}")
    return "\n".join(lines)


def extract_json_object(text: str) -> dict | None:
    """Return the first balanced JSON object found in free-form text."""
    if not text:
        return None
    text = _CODE_FENCE_RE.sub("", text)

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        candidate = json.loads(text[start:i + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(candidate, dict):
                        return candidate
                    break
        start = text.find("{", start + 1)
    return None


def clamp_score(value) -> int:
    if isinstance(value, bool):
        raise ValueError("Boolean is not a score")
    score = int(round(float(value)))
    return max(SCORE_BOUNDS["min"], min(SCORE_BOUNDS["max"], score))


def _clean_reason(value) -> str:
    if not isinstance(value, str) or not value.strip():
        return MISSING_REASON
    reason = value.strip()
    if len(reason) > REASON_MAX_LENGTH:
        reason = reason[:REASON_MAX_LENGTH - 3] + "..."
    return reason


def calculate_weighted_score(clarity: int, grammar: int, substance: int) -> int:
    # Weights expressed in tenths so .5 always rounds up
    tenths = (
        round(SCORE_WEIGHTS["substance"] * 10) * substance
        + round(SCORE_WEIGHTS["clarity"] * 10) * clarity
        + round(SCORE_WEIGHTS["grammar"] * 10) * grammar
    )
    return (tenths + 5) // 10


def parse_scoring_response(text: str) -> ScoringResult:
    data = extract_json_object(text)
    if data is None:
        raise ScoringError("No JSON object found in scoring response", {"raw": text[:200]})

    scores = {}
    reasons = {}
    for criterion in CRITERIA:
        raw = data.get(f"{criterion}_score")
        try:
            scores[criterion] = clamp_score(raw)
        except (TypeError, ValueError, OverflowError):
            raise ScoringError(f"Invalid {criterion}_score: {raw!r}")
        reasons[criterion] = _clean_reason(data.get(f"{criterion}_reason"))

    return ScoringResult(
        clarity_score=scores["clarity"],
        clarity_reason=reasons["clarity"],
        grammar_score=scores["grammar"],
        grammar_reason=reasons["grammar"],
        substance_score=scores["substance"],
        substance_reason=reasons["substance"],
        weighted_score=calculate_weighted_score(
            scores["clarity"], scores["grammar"], scores["substance"]
        ),
    )


def score_transcript(messages: list[dict], client: ScoringClient) -> ScoringResult:
    """Render, call and parse. Raises ScoringError and never writes."""
    prompt = SCORING_PROMPT.format(transcript=render_transcript(messages))
    try:
        raw = client.generate(prompt)
    except ScoringError:
        raise
    except ConfigurationError as e:
        raise ScoringError(e.message) from e
    except Exception as e:
        raise ScoringError(f"Scoring service call failed: {e}") from e

    result = parse_scoring_response(raw)
    logger.info(
        "Scored transcript: clarity=%s grammar=%s substance=%s weighted=%s",
        result.clarity_score, result.grammar_score, result.substance_score, result.weighted_score,
    )
    return result
