from pydantic import BaseModel


class IngestionResult(BaseModel):
    """Outcome of one webhook delivery. Echoed to the caller for debugging."""
    success: bool = True
    message: str
    conversation_id: str
    event_type: str | None = None
    total_messages: int = 0
    user_messages: int = 0
    assistant_messages: int = 0
    system_messages_excluded: int = 0
    scored: bool = False
    weighted_score: int | None = None
