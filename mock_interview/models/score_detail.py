from sqlalchemy import Column, String, Integer, Text, DateTime
from datetime import datetime
from mock_interview.core.database import Base


class ScoreDetail(Base):
    __tablename__ = "score_details"

    id = Column(String, primary_key=True, index=True)
    conversation_id = Column(String, unique=True, index=True, nullable=False)

    clarity_score = Column(Integer)
    clarity_reason = Column(Text)
    grammar_score = Column(Integer)
    grammar_reason = Column(Text)
    substance_score = Column(Integer)
    substance_reason = Column(Text)
    weighted_score = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
