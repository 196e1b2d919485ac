# app/core/exceptions.py
from __future__ import annotations

"""
MoviesNow CMS — Application Exceptions
======================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
carries the CMS error taxonomy (`kind`) plus structured metadata, and renders
the canonical JSON error shape used by `app.core.exception_handlers`.

Taxonomy (kind → HTTP status)
-----------------------------
- `NotFound` (404)                  referenced series/sub-content/slider/draft missing
- `Forbidden` (403)                 caller lacks ownership or privileged role
- `ValidationFailed` (422)          itemized list of missing/invalid fields
- `StatusConflict` (409)            illegal transition from current status
- `SlugInvalid` (422)               slug fails the canonical pattern
- `SlugTaken` (409)                 slug unavailable; carries a suggestion
- `PartialPropagationFailure` (503) some slider groups failed during fan-out

Usage
-----
    raise StatusConflictError("Series is not awaiting review", current="DRAFT")
    raise ValidationFailedError(["Title is required"])
"""

from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "NotFoundError",
    "ForbiddenError",
    "ValidationFailedError",
    "StatusConflictError",
    "SlugInvalidError",
    "SlugTakenError",
    "PartialPropagationFailure",
    "InvalidTokenException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception with a taxonomy `kind`.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    kind : str
        Taxonomy name (e.g. ``"StatusConflict"``); stable for clients.
    message : str
        Human-readable error message (also serialized as `detail`).
    details : dict | list | None
        Machine-readable details (itemized errors, current status, suggestion).
    """

    kind: str = "Error"
    default_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        code = int(status_code or self.default_status)
        super().__init__(status_code=code, detail=message, headers=headers)
        self.message: str = message
        self.details: Optional[Any] = details

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"

    # ── [Helper] Canonical body used by handlers ───────────────────────────
    def to_problem(self, *, request_id: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": True,
            "kind": self.kind,
            "message": self.message,
            "request_id": request_id or "N/A",
        }
        if self.details is not None:
            body["details"] = self.details
        return body


# ──────────────────────────────────────────────────────────────
# 🧭 Domain taxonomy
# ──────────────────────────────────────────────────────────────
class NotFoundError(AppException):
    kind = "NotFound"
    default_status = status.HTTP_404_NOT_FOUND


class ForbiddenError(AppException):
    kind = "Forbidden"
    default_status = status.HTTP_403_FORBIDDEN


class ValidationFailedError(AppException):
    """Carries the itemized list of problems as `errors`."""

    kind = "ValidationFailed"
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: Sequence[str], message: str = "Validation failed") -> None:
        self.errors: List[str] = list(errors)
        super().__init__(message, details={"errors": self.errors})


class StatusConflictError(AppException):
    kind = "StatusConflict"
    default_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str, *, current: Optional[str] = None) -> None:
        self.current = current
        super().__init__(message, details={"currentStatus": current} if current else None)


class SlugInvalidError(AppException):
    kind = "SlugInvalid"
    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, slug: str, message: Optional[str] = None) -> None:
        self.slug = slug
        super().__init__(message or f"Invalid slug: {slug!r}", details={"slug": slug})


class SlugTakenError(AppException):
    kind = "SlugTaken"
    default_status = status.HTTP_409_CONFLICT

    def __init__(self, slug: str, suggestion: Optional[str]) -> None:
        self.slug = slug
        self.suggestion = suggestion
        super().__init__(
            f"Slug '{slug}' is already taken",
            details={"slug": slug, "suggestion": suggestion},
        )


class PartialPropagationFailure(AppException):
    """Fan-out committed what it could; `failures` lists the targets (sliders or pointers) that did not."""

    kind = "PartialPropagationFailure"
    default_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, failures: Sequence[Dict[str, Any]], report: Any = None) -> None:
        self.failures: List[Dict[str, Any]] = list(failures)
        self.report = report
        super().__init__(
            f"{len(self.failures)} propagation target(s) failed",
            details={"failures": self.failures},
        )


# ──────────────────────────────────────────────────────────────
# 🔑 Auth/Token exceptions
# ──────────────────────────────────────────────────────────────
class InvalidTokenException(AppException):
    """Raised for missing, invalid or expired bearer tokens (401)."""

    kind = "Unauthorized"
    default_status = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})
