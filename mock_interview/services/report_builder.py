from sqlalchemy.orm import Session

from mock_interview.models.score_detail import ScoreDetail
from mock_interview.models.session import InterviewSession
from mock_interview.models.transcript import InterviewTranscript
from mock_interview.services.session_service import get_session


def build_session_report(
    session: InterviewSession,
    transcript: InterviewTranscript | None,
    score_detail: ScoreDetail | None,
) -> dict:
    # score is filled asynchronously; null means "not yet scored"
    if session.score is not None:
        scoring_status = "scored"
    elif transcript is None:
        scoring_status = "awaiting_transcript"
    else:
        scoring_status = "not_yet_scored"

    report = {
        "session_id": session.id,
        "conversation_id": session.conversation_id,

        "summary": {
            "session_name": session.session_name,
            "category": session.category,
            "status": session.status,
            "end_reason": session.end_reason,
            "expected_duration_minutes": session.expected_duration_minutes,
            "actual_duration_minutes": session.actual_duration_minutes,
            "questions_answered": session.questions_answered,
            "score": session.score,
            "score_source": session.score_source,
            "scoring_status": scoring_status,
            "completed_at": session.completed_at.isoformat() if session.completed_at else None,
        },

        "transcript": None,
        "score_detail": None,
    }

    if transcript is not None:
        report["transcript"] = {
            "messages": transcript.transcript_data,
            "message_count": transcript.message_count,
            "user_message_count": transcript.user_message_count,
            "assistant_message_count": transcript.assistant_message_count,
        }

    if score_detail is not None:
        report["score_detail"] = {
            "clarity": {
                "score": score_detail.clarity_score,
                "reason": score_detail.clarity_reason,
            },
            "grammar": {
                "score": score_detail.grammar_score,
                "reason": score_detail.grammar_reason,
            },
            "substance": {
                "score": score_detail.substance_score,
                "reason": score_detail.substance_reason,
            },
            "weighted_score": score_detail.weighted_score,
        }

    return report


def load_session_report(db: Session, session_id: str) -> dict:
    session = get_session(db, session_id)
    transcript = None
    score_detail = None
    if session.conversation_id:
        transcript = (
            db.query(InterviewTranscript)
            .filter_by(conversation_id=session.conversation_id)
            .first()
        )
        score_detail = (
            db.query(ScoreDetail)
            .filter_by(conversation_id=session.conversation_id)
            .first()
        )
    return build_session_report(session, transcript, score_detail)
