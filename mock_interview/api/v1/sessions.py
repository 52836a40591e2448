from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from mock_interview.core.database import get_db
from mock_interview.schemas.session import (
    ManualScore,
    SessionComplete,
    SessionCreate,
    SessionErrorUpdate,
    SessionResponse,
)
from mock_interview.services.session_service import (
    SessionConflict,
    SessionNotFound,
    cancel_session,
    complete_session,
    create_session,
    get_session,
    mark_session_error,
    set_manual_score,
    start_session,
)

router = APIRouter()


def _run(action, *args):
    try:
        return action(*args)
    except SessionNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except SessionConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_interview_session(
    data: SessionCreate,
    db: Session = Depends(get_db),
):
    return _run(create_session, db, data)


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def read_interview_session(
    session_id: str,
    db: Session = Depends(get_db),
):
    return _run(get_session, db, session_id)


@router.post("/sessions/{session_id}/start", response_model=SessionResponse)
async def start_interview_session(
    session_id: str,
    db: Session = Depends(get_db),
):
    return _run(start_session, db, session_id)


@router.post("/sessions/{session_id}/complete", response_model=SessionResponse)
async def complete_interview_session(
    session_id: str,
    data: SessionComplete,
    db: Session = Depends(get_db),
):
    return _run(
        complete_session, db, session_id, data.actual_duration_minutes, data.end_reason
    )


@router.post("/sessions/{session_id}/cancel", response_model=SessionResponse)
async def cancel_interview_session(
    session_id: str,
    db: Session = Depends(get_db),
):
    return _run(cancel_session, db, session_id)


@router.post("/sessions/{session_id}/error", response_model=SessionResponse)
async def fail_interview_session(
    session_id: str,
    data: SessionErrorUpdate,
    db: Session = Depends(get_db),
):
    return _run(mark_session_error, db, session_id, data.reason)


@router.put("/sessions/{session_id}/score", response_model=SessionResponse)
async def override_session_score(
    session_id: str,
    data: ManualScore,
    db: Session = Depends(get_db),
):
    return _run(set_manual_score, db, session_id, data.score)
