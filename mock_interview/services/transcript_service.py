import logging
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mock_interview.core.errors import ScoringError, WebhookValidationError
from mock_interview.models.score_detail import ScoreDetail
from mock_interview.models.transcript import InterviewTranscript
from mock_interview.schemas.webhook import IngestionResult
from mock_interview.services.score_persistence import save_scoring_result
from mock_interview.services.scoring_engine import ScoringClient, score_transcript
from mock_interview.services.session_service import record_questions_answered
from mock_interview.utils.enums import MessageRole, WebhookEventType

logger = logging.getLogger(__name__)

KEPT_ROLES = {role.value for role in MessageRole}


def validate_payload(payload) -> tuple[str, str | None, list]:
    """Check a provider delivery, failing fast on the first problem."""
    if not isinstance(payload, dict):
        raise WebhookValidationError("Payload must be a JSON object")

    conversation_id = payload.get("conversation_id")
    if not isinstance(conversation_id, str) or not conversation_id.strip():
        raise WebhookValidationError("Missing conversation_id")

    properties = payload.get("properties")
    transcript = properties.get("transcript") if isinstance(properties, dict) else None
    if not isinstance(transcript, list):
        raise WebhookValidationError("Missing or invalid transcript data")
    for message in transcript:
        if not isinstance(message, dict):
            raise WebhookValidationError("Transcript entries must be objects")
        content = message.get("content")
        if content is not None and not isinstance(content, str):
            raise WebhookValidationError("Transcript content must be text")

    event_type = payload.get("event_type")
    if event_type is not None and not isinstance(event_type, str):
        event_type = str(event_type)

    return conversation_id.strip(), event_type, transcript


def normalize_transcript(raw_transcript: list[dict]) -> list[dict]:
    messages = []
    for message in raw_transcript:
        role = message.get("role")
        if role not in KEPT_ROLES:
            continue
        content = (message.get("content") or "").strip()
        if not content:
            continue
        messages.append({"role": role, "content": content})
    return messages


def _apply(transcript: InterviewTranscript, messages: list[dict], webhook_timestamp):
    transcript.transcript_data = messages
    transcript.message_count = len(messages)
    transcript.user_message_count = sum(1 for m in messages if m["role"] == MessageRole.USER.value)
    transcript.assistant_message_count = sum(
        1 for m in messages if m["role"] == MessageRole.ASSISTANT.value
    )
    transcript.webhook_timestamp = webhook_timestamp


def upsert_transcript(
    db: Session,
    conversation_id: str,
    messages: list[dict],
    webhook_timestamp: str | None = None,
) -> InterviewTranscript:
    transcript = db.query(InterviewTranscript).filter_by(conversation_id=conversation_id).first()
    if transcript is None:
        transcript = InterviewTranscript(id=str(uuid4()), conversation_id=conversation_id)
        _apply(transcript, messages, webhook_timestamp)
        db.add(transcript)
        try:
            db.commit()
        except IntegrityError:
            # Duplicate delivery raced us to the insert
            db.rollback()
            transcript = (
                db.query(InterviewTranscript).filter_by(conversation_id=conversation_id).one()
            )
            _apply(transcript, messages, webhook_timestamp)
            db.commit()
    else:
        _apply(transcript, messages, webhook_timestamp)
        db.commit()

    db.refresh(transcript)
    return transcript


def _run_scoring(
    db: Session,
    conversation_id: str,
    messages: list[dict],
    scorer: ScoringClient,
) -> int | None:
    try:
        result = score_transcript(messages, scorer)
    except ScoringError as e:
        logger.warning("Scoring skipped for conversation %s: %s", conversation_id, e.message)
        return None

    try:
        save_scoring_result(db, conversation_id, result)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist score for conversation %s", conversation_id)
        return None
    return result.weighted_score


def ingest_webhook(
    db: Session,
    payload,
    scorer: ScoringClient | None = None,
) -> IngestionResult:
    conversation_id, event_type, raw_transcript = validate_payload(payload)

    logger.info(
        "Received webhook for conversation %s (event_type=%s, messages=%s)",
        conversation_id, event_type, len(raw_transcript),
    )

    if event_type != WebhookEventType.TRANSCRIPTION_READY.value:
        logger.info("Ignoring webhook with event_type %s", event_type)
        return IngestionResult(
            message="Event type not handled",
            conversation_id=conversation_id,
            event_type=event_type,
        )

    messages = normalize_transcript(raw_transcript)
    excluded = len(raw_transcript) - len(messages)

    if not messages:
        logger.info("No meaningful transcript content for conversation %s", conversation_id)
        return IngestionResult(
            message="No meaningful transcript content",
            conversation_id=conversation_id,
            event_type=event_type,
            system_messages_excluded=excluded,
        )

    previous = db.query(InterviewTranscript).filter_by(conversation_id=conversation_id).first()
    unchanged = previous is not None and previous.transcript_data == messages

    transcript = upsert_transcript(db, conversation_id, messages, payload.get("timestamp"))
    logger.info(
        "Transcript saved for conversation %s: %s messages (%s user, %s assistant)",
        conversation_id, transcript.message_count,
        transcript.user_message_count, transcript.assistant_message_count,
    )

    try:
        if not record_questions_answered(db, conversation_id, transcript.user_message_count):
            logger.warning("No session found for conversation %s", conversation_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to update session for conversation %s", conversation_id)

    weighted_score = None
    if scorer is not None:
        existing = None
        if unchanged:
            existing = db.query(ScoreDetail).filter_by(conversation_id=conversation_id).first()
        if existing is not None:
            # Redelivery of an already scored transcript
            logger.info("Transcript for conversation %s unchanged, keeping its score", conversation_id)
            weighted_score = existing.weighted_score
        else:
            weighted_score = _run_scoring(db, conversation_id, messages, scorer)

    return IngestionResult(
        message="Transcript processed successfully",
        conversation_id=conversation_id,
        event_type=event_type,
        total_messages=transcript.message_count,
        user_messages=transcript.user_message_count,
        assistant_messages=transcript.assistant_message_count,
        system_messages_excluded=excluded,
        scored=weighted_score is not None,
        weighted_score=weighted_score,
    )
