import logging
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mock_interview.models.session import InterviewSession
from mock_interview.schemas.session import SessionCreate
from mock_interview.utils.enums import ScoreSource, SessionStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    SessionStatus.CREATED: {SessionStatus.ACTIVE, SessionStatus.CANCELLED, SessionStatus.ERROR},
    SessionStatus.ACTIVE: {SessionStatus.COMPLETED, SessionStatus.ERROR},
    SessionStatus.COMPLETED: set(),
    SessionStatus.CANCELLED: set(),
    SessionStatus.ERROR: set(),
}


class SessionNotFound(LookupError):
    pass


class SessionConflict(ValueError):
    pass


def get_session(db: Session, session_id: str) -> InterviewSession:
    session = db.query(InterviewSession).filter_by(id=session_id).first()
    if not session:
        raise SessionNotFound("Session not found")
    return session


def create_session(db: Session, data: SessionCreate) -> InterviewSession:
    session = InterviewSession(
        id=data.id,
        conversation_id=data.conversation_id,
        category=data.category,
        session_name=data.session_name.strip(),
        expected_duration_minutes=data.expected_duration_minutes,
        status=SessionStatus.CREATED.value,
        score=None,
    )
    db.add(session)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise SessionConflict("Session or conversation already exists")
    db.refresh(session)
    logger.info("Session %s created for conversation %s", session.id, session.conversation_id)
    return session


def _transition(session: InterviewSession, target: SessionStatus):
    current = SessionStatus(session.status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValueError(f"Session cannot move from {current.value} to {target.value}")
    session.status = target.value


def start_session(db: Session, session_id: str) -> InterviewSession:
    session = get_session(db, session_id)
    _transition(session, SessionStatus.ACTIVE)
    session.started_at = datetime.utcnow()
    db.commit()
    db.refresh(session)
    return session


def complete_session(
    db: Session,
    session_id: str,
    actual_duration_minutes: int,
    end_reason: str,
) -> InterviewSession:
    session = get_session(db, session_id)
    _transition(session, SessionStatus.COMPLETED)
    session.actual_duration_minutes = max(1, actual_duration_minutes)
    session.end_reason = end_reason
    session.completed_at = datetime.utcnow()
    db.commit()
    db.refresh(session)
    logger.info(
        "Session %s completed after %s min (%s)",
        session.id, session.actual_duration_minutes, end_reason,
    )
    return session


def cancel_session(db: Session, session_id: str) -> InterviewSession:
    session = get_session(db, session_id)
    _transition(session, SessionStatus.CANCELLED)
    db.commit()
    db.refresh(session)
    return session


def mark_session_error(db: Session, session_id: str, reason: str | None = None) -> InterviewSession:
    session = get_session(db, session_id)
    _transition(session, SessionStatus.ERROR)
    db.commit()
    db.refresh(session)
    logger.warning("Session %s marked as error: %s", session.id, reason or "unspecified")
    return session


def set_manual_score(db: Session, session_id: str, score: int) -> InterviewSession:
    session = get_session(db, session_id)
    session.score = score
    session.score_source = ScoreSource.MANUAL.value
    db.commit()
    db.refresh(session)
    return session


def record_questions_answered(db: Session, conversation_id: str, count: int) -> int:
    """Written by the webhook ingestor regardless of the session's status."""
    updated = (
        db.query(InterviewSession)
        .filter(InterviewSession.conversation_id == conversation_id)
        .update(
            {
                InterviewSession.questions_answered: count,
                InterviewSession.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated


def apply_scoring_score(db: Session, conversation_id: str, score: int) -> int:
    """Set the scoring engine's composite unless a manual score is present."""
    updated = (
        db.query(InterviewSession)
        .filter(
            InterviewSession.conversation_id == conversation_id,
            or_(
                InterviewSession.score_source.is_(None),
                InterviewSession.score_source == ScoreSource.SCORING.value,
            ),
        )
        .update(
            {
                InterviewSession.score: score,
                InterviewSession.score_source: ScoreSource.SCORING.value,
                InterviewSession.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated
