import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mock_interview.core.config import settings
from mock_interview.core.database import get_db
from mock_interview.core.errors import WebhookValidationError
from mock_interview.schemas.webhook import IngestionResult
from mock_interview.services.scoring_engine import GeminiScoringClient, ScoringClient
from mock_interview.services.transcript_service import ingest_webhook

logger = logging.getLogger(__name__)

router = APIRouter()


def get_scoring_client() -> ScoringClient | None:
    if not settings.SCORING_ENABLED:
        return None
    return GeminiScoringClient()


@router.post("/webhooks/conversation", response_model=IngestionResult)
async def receive_conversation_webhook(
    request: Request,
    db: Session = Depends(get_db),
    scorer: ScoringClient | None = Depends(get_scoring_client),
):
    try:
        payload = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    try:
        return await run_in_threadpool(ingest_webhook, db, payload, scorer)
    except WebhookValidationError as e:
        logger.warning("Rejected webhook: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Database error while ingesting webhook")
        raise HTTPException(status_code=500, detail=f"Database error: {e.__class__.__name__}")
