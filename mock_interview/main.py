from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from mock_interview.api.v1 import sessions, webhooks, reports
from mock_interview.core.config import settings
from mock_interview.core.database import init_db
from mock_interview.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    yield


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Session lifecycle, transcript ingestion and scoring for AI mock interviews",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check
    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok"}

    # API Routers
    app.include_router(sessions.router, prefix=settings.API_V1_PREFIX, tags=["Sessions"])
    app.include_router(webhooks.router, prefix=settings.API_V1_PREFIX, tags=["Webhooks"])
    app.include_router(reports.router, prefix=settings.API_V1_PREFIX, tags=["Reports"])

    return app


app = create_app()
