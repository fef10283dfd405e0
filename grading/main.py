# grading/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from grading.core.config import settings
from grading.core.errors import GradingError
from grading.routers.v1 import health, submissions, quizzes, grades

from sqlalchemy.ext.asyncio import create_async_engine
from grading.database.grading_repository import GradingRepository
from grading.database.postgres_grading import PostgresGradingRepository

logger = logging.getLogger("grading")


async def grading_error_handler(request: Request, exc: GradingError) -> JSONResponse:
    logger.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.kind, "detail": exc.message})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "server_error", "detail": "Server error"},
    )


def create_app(repository: Optional[GradingRepository] = None) -> FastAPI:
    logging.basicConfig(level=settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if repository is not None:
            yield
            return

        engine = create_async_engine(settings.postgres_url, echo=settings.sql_echo, pool_pre_ping=True)
        grading_repository = PostgresGradingRepository(engine)
        try:
            await grading_repository.ensure_schema()
            app.state.grading_repo = grading_repository
            yield
        finally:
            # Chiudi connessione DB
            await engine.dispose()

    app = FastAPI(
        title="Grading Microservice",
        description="Submissions, quiz scoring and final grades",
        version="1.0.0",
        lifespan=lifespan,
    )
    if repository is not None:
        app.state.grading_repo = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"],
    )

    app.add_exception_handler(GradingError, grading_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(submissions.router, prefix="/api/v1", tags=["submissions"])
    app.include_router(quizzes.router, prefix="/api/v1", tags=["quizzes"])
    app.include_router(grades.router, prefix="/api/v1", tags=["grades"])
    return app


app = create_app()
