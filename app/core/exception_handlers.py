# app/core/exception_handlers.py
from __future__ import annotations

"""
Structured error handlers.

Every handler-level error is rendered as

    {"error": true, "kind": "...", "message": "...", "details": ..., "request_id": "..."}

Taxonomy errors (`AppException`) keep their own status and message;
anything unclassified becomes a 500 with a generic "Operation failed." so no
store/internal detail leaks to clients (the stack trace is logged instead).
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import AppException
from app.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


def _body(kind: str, message: str, request: Request, details=None) -> dict:
    body = {
        "error": True,
        "kind": kind,
        "message": message,
        "request_id": get_request_id(request) or "N/A",
    }
    if details is not None:
        body["details"] = details
    return body


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:  # type: ignore
    if exc.status_code >= 500:
        logger.warning("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem(request_id=get_request_id(request) or None),
        headers=getattr(exc, "headers", None),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    kind = "NotFound" if exc.status_code == status.HTTP_404_NOT_FOUND else "HTTPError"
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(kind, detail, request),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    errors = [
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_body("ValidationFailed", "Validation failed", request, {"errors": errors}),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Hide internals; the trace goes to the log only.
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body("Internal", "Operation failed.", request),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)  # type: ignore[arg-type]


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
    "register_exception_handlers",
]
