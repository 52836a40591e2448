from enum import Enum


class SessionStatus(str, Enum):
    CREATED = "created"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ScoreSource(str, Enum):
    MANUAL = "manual"
    SCORING = "scoring"


class WebhookEventType(str, Enum):
    TRANSCRIPTION_READY = "application.transcription_ready"


class InterviewCategory(str, Enum):
    TECHNICAL = "Technical"
    BEHAVIORAL = "Behavioral"
