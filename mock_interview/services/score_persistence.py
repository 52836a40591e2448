import logging
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mock_interview.models.score_detail import ScoreDetail
from mock_interview.schemas.score import ScoringResult
from mock_interview.services.session_service import apply_scoring_score

logger = logging.getLogger(__name__)


def _apply(detail: ScoreDetail, result: ScoringResult):
    detail.clarity_score = result.clarity_score
    detail.clarity_reason = result.clarity_reason
    detail.grammar_score = result.grammar_score
    detail.grammar_reason = result.grammar_reason
    detail.substance_score = result.substance_score
    detail.substance_reason = result.substance_reason
    detail.weighted_score = result.weighted_score


def upsert_score_detail(
    db: Session,
    conversation_id: str,
    result: ScoringResult,
) -> ScoreDetail:
    detail = db.query(ScoreDetail).filter_by(conversation_id=conversation_id).first()
    if detail is None:
        detail = ScoreDetail(id=str(uuid4()), conversation_id=conversation_id)
        _apply(detail, result)
        db.add(detail)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent redelivery inserted first
            db.rollback()
            detail = db.query(ScoreDetail).filter_by(conversation_id=conversation_id).one()
            _apply(detail, result)
            db.commit()
    else:
        _apply(detail, result)
        db.commit()

    db.refresh(detail)
    return detail


def save_scoring_result(
    db: Session,
    conversation_id: str,
    result: ScoringResult,
) -> ScoreDetail:
    detail = upsert_score_detail(db, conversation_id, result)

    updated = apply_scoring_score(db, conversation_id, result.weighted_score)
    if not updated:
        logger.info(
            "Session score for conversation %s left unchanged (no session or manual score)",
            conversation_id,
        )
    return detail
