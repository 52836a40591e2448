from pydantic import BaseModel
from datetime import datetime


class ScoringResult(BaseModel):
    clarity_score: int
    clarity_reason: str
    grammar_score: int
    grammar_reason: str
    substance_score: int
    substance_reason: str
    weighted_score: int


class ScoreDetailResponse(ScoringResult):
    conversation_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
