from mock_interview.core.config import settings
from mock_interview.core.errors import ConfigurationError
from mock_interview.utils.enums import InterviewCategory

TECHNICAL_PROMPT = (
    "You are Steve, a senior technical interviewer. Ask one question at a time about "
    "software engineering, algorithms and system design. Follow up on vague answers "
    "and keep a professional yet approachable tone."
)

BEHAVIORAL_PROMPT = (
    "You are Lucy, an experienced HR interviewer. Ask behavioral questions that invite "
    "answers in the STAR format, probe for leadership and teamwork examples, and keep "
    "the candidate comfortable."
)

DEFAULT_PROMPT = (
    "You are an experienced interviewer. Ask relevant questions about the candidate's "
    "background. Be encouraging and help them showcase their skills."
)

CATEGORY_PROMPTS = {
    InterviewCategory.TECHNICAL.value: TECHNICAL_PROMPT,
    InterviewCategory.BEHAVIORAL.value: BEHAVIORAL_PROMPT,
}


def persona_for(category: str) -> str:
    if category == InterviewCategory.BEHAVIORAL.value:
        return settings.BEHAVIORAL_PERSONA_ID
    return settings.TECHNICAL_PERSONA_ID


def validate_persona_ids():
    for persona_id in (settings.TECHNICAL_PERSONA_ID, settings.BEHAVIORAL_PERSONA_ID):
        if not persona_id or not persona_id.startswith("p"):
            raise ConfigurationError(
                "Invalid persona ID. Please check your persona IDs in the provider dashboard.",
                {"persona_id": persona_id},
            )


def candidate_background(cv_context: str | None, max_length: int | None = None) -> str | None:
    if not cv_context or not cv_context.strip():
        return None
    max_length = max_length or settings.CV_CONTEXT_MAX_LENGTH
    text = cv_context.strip()
    if len(text) > max_length:
        text = text[:max_length] + "..."
    return (
        "CANDIDATE BACKGROUND:\n"
        + text
        + "\n\nPlease tailor your questions based on their background and experience level."
    )


def build_conversational_context(category: str, cv_context: str | None = None) -> str:
    prompt = CATEGORY_PROMPTS.get(category, DEFAULT_PROMPT)
    background = candidate_background(cv_context)
    if background:
        return f"{prompt}\n\n{background}"
    return prompt
