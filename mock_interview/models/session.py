from sqlalchemy import Column, String, Integer, DateTime
from datetime import datetime
from mock_interview.core.database import Base


class InterviewSession(Base):
    __tablename__ = "interview_sessions"

    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(String, unique=True, index=True, nullable=True)

    category = Column(String, nullable=False)
    session_name = Column(String, nullable=False)
    expected_duration_minutes = Column(Integer, nullable=False)

    # Session Controller columns
    status = Column(String, default="created")  # created | active | completed | cancelled | error
    actual_duration_minutes = Column(Integer, nullable=True)
    end_reason = Column(String, nullable=True)

    # Webhook Ingestor column
    questions_answered = Column(Integer, nullable=True)

    # Scoring Engine / manual override columns
    score = Column(Integer, nullable=True)
    score_source = Column(String, nullable=True)  # manual | scoring

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
