import json
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCORING_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mock_interview.api.v1.webhooks import get_scoring_client
from mock_interview.core.database import Base, get_db
from mock_interview.main import app
from mock_interview.models import score_detail, session, transcript  # noqa: F401


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


# ---------------------------------------------------------------------------
# Scoring service fakes
# ---------------------------------------------------------------------------

def scoring_reply(clarity=70, grammar=90, substance=80, wrap=False, **reasons):
    body = {
        "clarity_score": clarity,
        "clarity_reason": reasons.get("clarity_reason", "Well structured answers."),
        "grammar_score": grammar,
        "grammar_reason": reasons.get("grammar_reason", "Few grammatical slips."),
        "substance_score": substance,
        "substance_reason": reasons.get("substance_reason", "Concrete examples given."),
    }
    text = json.dumps(body)
    if wrap:
        text = f"Here is my assessment:\n```json\n{text}\n```\nGood luck!"
    return text


class FakeScorer:
    def __init__(self, reply=None):
        self.reply = reply if reply is not None else scoring_reply()
        self.prompts = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        return self.reply


class TimingOutScorer:
    def __init__(self):
        self.calls = 0

    def generate(self, prompt):
        self.calls += 1
        raise TimeoutError("scoring service timed out")


class ScorerSlot:
    """Whatever is placed here is handed to the webhook route."""

    def __init__(self):
        self.scorer = None


@pytest.fixture
def scorer_slot():
    return ScorerSlot()


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
def client(session_factory, scorer_slot):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_scoring_client] = lambda: scorer_slot.scorer
    yield TestClient(app)
    app.dependency_overrides.clear()


def session_payload(session_id="sess-1", conversation_id="conv-1", **overrides):
    payload = {
        "id": session_id,
        "conversation_id": conversation_id,
        "category": "Technical",
        "session_name": "Backend practice",
        "expected_duration_minutes": 15,
    }
    payload.update(overrides)
    return payload


def webhook_payload(messages, conversation_id="conv-1", event_type="application.transcription_ready"):
    return {
        "conversation_id": conversation_id,
        "event_type": event_type,
        "timestamp": "2026-10-19T10:00:00Z",
        "properties": {"transcript": messages},
    }


def sample_transcript():
    """2 system, 3 user, 3 assistant and one whitespace-only message."""
    return [
        {"role": "system", "content": "You are Steve, a senior technical interviewer."},
        {"role": "system", "content": "Keep questions short."},
        {"role": "assistant", "content": "Tell me about a system you designed."},
        {"role": "user", "content": "  I built a queue-backed ingestion service.  "},
        {"role": "assistant", "content": "How did you handle retries?"},
        {"role": "user", "content": "With exponential backoff and idempotent writes."},
        {"role": "assistant", "content": "What would you change?"},
        {"role": "user", "content": "I would add better metrics."},
        {"role": "user", "content": "   "},
    ]


# ---------------------------------------------------------------------------
# Clock and timers for liveness and controller tests
# ---------------------------------------------------------------------------

class ManualTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for the event loop's timers."""

    def __init__(self, start=0.0):
        self.time = start
        self.timers = []

    def now(self):
        return self.time

    def call_later(self, delay, callback):
        timer = ManualTimer(self.time + delay, callback)
        self.timers.append(timer)
        return timer

    def pending(self):
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds):
        target = self.time + seconds
        while True:
            due = [t for t in self.pending() if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.timers.remove(timer)
            self.time = max(self.time, timer.due)
            timer.callback()
        self.time = target


class FakeClock:
    def __init__(self, start=1000.0):
        self.time = start

    def __call__(self):
        return self.time

    def advance(self, seconds):
        self.time += seconds


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()
