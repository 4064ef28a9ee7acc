"""structured-llm API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map StructuredLlmError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - One RateLimiter and one httpx.AsyncClient per process, built in the lifespan
      and shared by every request through app.state.task_runner

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - create_app() factory so tests build isolated apps; module-level `app` for uvicorn
    - run() is the `structured-llm` console script (also `python -m structured_llm.main`)
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from structured_llm.api.error_handlers import register_error_handlers
from structured_llm.api.routes import ai_tasks, health
from structured_llm.config import get_settings
from structured_llm.core.rate_limiter import RateLimiter
from structured_llm.infrastructure.observability import setup_logging
from structured_llm.infrastructure.retrying_transport import RetryingTransport
from structured_llm.services.llm_task_runner import LlmTaskRunner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    async with httpx.AsyncClient(timeout=None) as http_client:
        app.state.task_runner = LlmTaskRunner(
            settings, rate_limiter, RetryingTransport(http_client),
        )
        logger.info("structured-llm API started")
        yield
        logger.info("structured-llm API shutting down")


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="structured-llm API", version="1.0.0", lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(ai_tasks.router)
    register_error_handlers(app)
    return app


app = create_app()


def run():
    """Console entry point (`structured-llm`): serve the app under uvicorn."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "structured_llm.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )


if __name__ == "__main__":
    run()
