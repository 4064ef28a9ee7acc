"""Error Handlers — global exception handlers for the structured-llm API.

Invariants:
    - StructuredLlmError → structured JSON with error code, message, severity
      and the error's own HTTP status (LlmError kinds map per core/errors.py)
    - RequestValidationError → 400 with field-level error details
    - Exception (catch-all) → 500 that never leaks internal details

Design Decisions:
    - Three-layer handler: domain, validation (Pydantic), catch-all
    - Extracted from main.py to keep the app factory small
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from structured_llm.core.errors import ErrorSeverity, LlmError, StructuredLlmError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_domain_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_domain_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StructuredLlmError)
    async def domain_error_handler(request: Request, exc: StructuredLlmError):
        """Handle all structured-llm domain/infrastructure errors."""
        extra = {
            "error_code": exc.code,
            "task": exc.context.task,
            "provider": exc.context.provider,
            "user_tag": exc.context.user_tag,
        }
        if isinstance(exc, LlmError):
            extra["error_code"] = exc.kind.value
            extra["retryable"] = exc.retryable
        logger.warning(f"Request failed on {request.url.path}", extra=extra)
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        """Handle Pydantic validation errors."""
        logger.warning(f"Validation error on {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}", exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "ok": False,
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "Failed to process AI request.",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    """Build structured validation error response (messages only, no input echo)."""
    return {
        "ok": False,
        "error": {
            "code": "INVALID_INPUT",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }
