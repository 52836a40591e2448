from pydantic import BaseModel, Field
from datetime import datetime
from mock_interview.utils.enums import SessionStatus


class SessionCreate(BaseModel):
    id: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    category: str
    session_name: str = Field(min_length=1)
    expected_duration_minutes: int = Field(gt=0)


class SessionComplete(BaseModel):
    actual_duration_minutes: int = Field(ge=1)
    end_reason: str = Field(min_length=1)


class SessionErrorUpdate(BaseModel):
    reason: str | None = None


class ManualScore(BaseModel):
    score: int = Field(ge=0, le=100)


class SessionResponse(BaseModel):
    id: str
    conversation_id: str | None
    category: str
    session_name: str
    expected_duration_minutes: int
    actual_duration_minutes: int | None
    questions_answered: int | None
    score: int | None
    score_source: str | None
    status: SessionStatus
    end_reason: str | None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None
    completed_at: datetime | None

    class Config:
        from_attributes = True
