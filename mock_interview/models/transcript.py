from sqlalchemy import Column, String, Integer, DateTime, JSON
from datetime import datetime
from mock_interview.core.database import Base


class InterviewTranscript(Base):
    __tablename__ = "interview_transcripts"

    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(String, unique=True, index=True, nullable=False)

    transcript_data = Column(JSON, nullable=False)  # [{"role": ..., "content": ...}]
    message_count = Column(Integer, nullable=False)
    user_message_count = Column(Integer, nullable=False)
    assistant_message_count = Column(Integer, nullable=False)
    webhook_timestamp = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
