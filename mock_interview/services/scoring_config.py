SCORE_WEIGHTS = {
    "substance": 0.5,
    "clarity": 0.3,
    "grammar": 0.2,
}

SCORE_BOUNDS = {
    "min": 0,
    "max": 100,
}

REASON_MAX_LENGTH = 500
MISSING_REASON = "No justification provided."

ROLE_LABELS = {
    "assistant": "Interviewer",
    "user": "Candidate",
}

SCORING_PROMPT = """You are an experienced interview coach reviewing a mock interview transcript.
Score the candidate's answers on three criteria, each from 0 to 100:

- clarity: how clear, structured and easy to follow the answers are
- grammar: grammatical correctness and fluency of the spoken English
- substance: depth, relevance and concrete evidence in the answers

Give a one or two sentence justification for each score.

Return ONLY a JSON object with exactly these fields:
{{
  "clarity_score": 0-100,
  "clarity_reason": "...",
  "grammar_score": 0-100,
  "grammar_reason": "...",
  "substance_score": 0-100,
  "substance_reason": "..."
}}

TRANSCRIPT:
{transcript}
"""
