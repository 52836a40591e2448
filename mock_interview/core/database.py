from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from mock_interview.core.config import settings

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # Webhook ingestion runs in the threadpool
    connect_args["check_same_thread"] = False

engine = create_engine(settings.DATABASE_URL, future=True, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

Base = declarative_base()


def init_db():
    # Import models so they register on Base.metadata
    from mock_interview.models import score_detail, session, transcript  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
