"""
StudyForge API

FastAPI application factory. Uploads are acknowledged immediately and the
generation work runs on Celery workers (see services/tasks.py).

Run locally:
    uvicorn studyforge.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyforge.config import settings
from studyforge.config.logging_config import setup_logging
from studyforge.db.base import init_db
from studyforge.middleware import setup_error_handling
from studyforge.routers import documents, health, originality, processing

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info(f"{settings.APP_NAME} started")
    yield


def create_app() -> FastAPI:
    setup_logging(settings.DEBUG)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_error_handling(app, debug=settings.DEBUG)

    app.include_router(health.router)
    app.include_router(documents.router)
    app.include_router(processing.router)
    app.include_router(originality.router)
    return app


app = create_app()
