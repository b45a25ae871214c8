"""FastAPI middleware for request tracing, error handling, and CORS.

Middleware stack (applied bottom-up):
    1. RequestIDMiddleware - injects X-Request-ID into every request/response
    2. ErrorHandlerMiddleware - catches domain exceptions -> structured JSON errors
    3. CORSMiddleware - handles browser-based clients

Request validation failures are rendered the same way as domain errors,
as PARSE_PARAMS with status 400.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import structlog
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from multisig_escrow.domain.exceptions import (
    AlreadyExistsError,
    EscrowError,
    InitializationError,
    InsufficientBalanceError,
    InvalidRecipientError,
    InvalidStateTransitionError,
    NotRegisteredAccountError,
    NotUserAccountError,
    ParseParamsError,
    RequestNotFoundError,
    TimedOutError,
    ValueOverflowError,
    VaultNotFoundError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request, Response

logger = structlog.get_logger(__name__)

# First match wins, so subclasses come before their bases.
_STATUS_BY_ERROR: tuple[tuple[type[EscrowError], int], ...] = (
    (VaultNotFoundError, 404),
    (RequestNotFoundError, 404),
    (NotUserAccountError, 403),
    (NotRegisteredAccountError, 403),
    (AlreadyExistsError, 409),
    (InsufficientBalanceError, 409),
    (InvalidStateTransitionError, 409),
    (TimedOutError, 410),
    (InvalidRecipientError, 422),
    (ValueOverflowError, 422),
    (ParseParamsError, 400),
    (InitializationError, 400),
)


def status_for(exc: EscrowError) -> int:
    """HTTP status for a domain error; unknown domain errors are server faults."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


def error_response(exc: EscrowError) -> JSONResponse:
    """Log a rejected action and render it as `{"error": code, "message": ...}`."""
    status_code = status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log("action.rejected", error=exc.message, code=exc.code, status=status_code)
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "message": exc.message},
    )


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg', 'invalid value')}"


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies, headers and path parameters are ParseParams rejections."""
    detail = "; ".join(_describe(e) for e in exc.errors()) or "invalid input"
    return error_response(ParseParamsError(f"Malformed parameters: {detail}"))


# ---------------------------------------------------------------------------
# 1. Request ID Middleware
# ---------------------------------------------------------------------------
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique X-Request-ID into every request for log correlation."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# 2. Error Handler Middleware
# ---------------------------------------------------------------------------
class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Catch domain exceptions and return structured JSON error responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except EscrowError as exc:
            return error_response(exc)
        except Exception as exc:
            logger.exception("unhandled.error", error=str(exc))
            return JSONResponse(
                status_code=500,
                content={
                    "error": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                },
            )


# ---------------------------------------------------------------------------
# Setup function
# ---------------------------------------------------------------------------
def setup_middleware(app: FastAPI) -> None:
    """Register all middleware on the FastAPI application.

    Order matters: middleware is applied bottom-up, so the last added
    middleware runs first.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
