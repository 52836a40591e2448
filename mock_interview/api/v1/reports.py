from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mock_interview.core.database import get_db
from mock_interview.models.score_detail import ScoreDetail
from mock_interview.schemas.score import ScoreDetailResponse
from mock_interview.services.report_builder import load_session_report
from mock_interview.services.session_service import SessionNotFound

router = APIRouter()


@router.get("/reports/{session_id}")
async def get_session_report(
    session_id: str,
    db: Session = Depends(get_db)
):
    try:
        return load_session_report(db, session_id)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/reports/conversations/{conversation_id}/score",
    response_model=ScoreDetailResponse,
)
async def get_conversation_score(
    conversation_id: str,
    db: Session = Depends(get_db)
):
    detail = (
        db.query(ScoreDetail)
        .filter(ScoreDetail.conversation_id == conversation_id)
        .first()
    )

    if not detail:
        raise HTTPException(status_code=404, detail="No score found")

    return detail
