"""Middleware and error mapping for video_api."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vidvault.shared.exceptions import (
    AuthorizationError,
    NotFoundError,
    UnavailableError,
    UpstreamError,
    ValidationError,
    VidvaultError,
)

logger = logging.getLogger(__name__)

# Most specific first; lookup walks the list in order.
_STATUS_BY_ERROR: list[tuple[type[VidvaultError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 401),
    (NotFoundError, 404),
    (UpstreamError, 500),
    (UnavailableError, 503),
]


def status_for(exc: VidvaultError) -> int:
    for error_cls, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            return status_code
    return 500


async def _vidvault_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, VidvaultError)
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def _request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())[1:])
        problems.append(f"{field}: {err.get('msg', 'invalid')}" if field else str(err.get("msg", "invalid")))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "invalid request"})


def setup_error_handlers(app: FastAPI) -> None:
    """Map domain errors and request validation failures to JSON responses.

    Every error body has the shape ``{"error": message}``.
    """
    app.add_exception_handler(VidvaultError, _vidvault_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)


def setup_cors(app: FastAPI, origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Args:
        app: The FastAPI application instance
        origins: Allowed origins (default: any)
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
