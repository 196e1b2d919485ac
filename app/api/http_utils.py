from __future__ import annotations

"""
MoviesNow CMS · HTTP Utilities
==============================

Shared helpers for API routers:

- Document id sanitization for path parameters
- No-store JSON helper (producer/admin responses)
- Strong-ETag JSON helper with conditional GET (public reads)

Notes
-----
• Helpers are side-effect free; they either return a value/response or raise
  `HTTPException`.
"""

import hashlib
import json
import re
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

__all__ = [
    "sanitize_doc_id",
    "json_no_store",
    "cache_json_response",
]


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 ID Sanitization
# ─────────────────────────────────────────────────────────────────────────────

_DOC_ID_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


def sanitize_doc_id(value: str, name: str = "id") -> str:
    """Validate a document id taken from the URL.

    Document ids become path segments in the store, so anything outside
    ``[A-Za-z0-9_.-]{1,128}`` is rejected with 400.
    """
    if value and _DOC_ID_RE.match(value) and value not in (".", ".."):
        return value
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {name} format")


# ─────────────────────────────────────────────────────────────────────────────
# 🧳 No-store JSON helper (sensitive responses)
# ─────────────────────────────────────────────────────────────────────────────

def json_no_store(
    payload: Any,
    status_code: int = 200,
    *,
    response: Optional[Response] = None,
) -> JSONResponse:
    """
    Return a JSON response with strict `no-store` caching.

    Propagates selected headers (`Location`, `X-Total-Count`) from an
    upstream Response if supplied.
    """
    resp = JSONResponse(content=jsonable_encoder(payload), status_code=status_code)
    resp.headers["Cache-Control"] = "no-store"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"

    if response is not None:
        for key in ("Location", "X-Total-Count"):
            if key in response.headers:
                resp.headers[key] = response.headers[key]
    return resp


# ─────────────────────────────────────────────────────────────────────────────
# 🏷️ Strong ETag + conditional GET (public data only)
# ─────────────────────────────────────────────────────────────────────────────

def _compute_etag(data: Any) -> str:
    """Compute a **strong** ETag (quoted SHA-256 of canonical JSON)."""
    raw = json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return f"\"{hashlib.sha256(raw).hexdigest()}\""


def _parse_if_none_match(header_val: Optional[str]) -> List[str]:
    """Parse `If-None-Match`, which may contain a comma-delimited list of ETags."""
    if not header_val:
        return []
    return [part.strip() for part in header_val.split(",") if part.strip()]


def cache_json_response(
    request: Request,
    ttl: int,
    payload: Any,
    extra_headers: Optional[Dict[str, str]] = None,
) -> Response:
    """
    Return a JSONResponse with **strong ETag** + CDN-friendly `Cache-Control`.

    Returns **304** (empty body) if the client's `If-None-Match` matches.
    """
    content = jsonable_encoder(payload)
    etag = _compute_etag(content)
    headers = {
        "ETag": etag,
        "Cache-Control": f"public, max-age={ttl}, s-maxage={ttl}, stale-while-revalidate=60",
        "Vary": "Accept, If-None-Match",
        **(extra_headers or {}),
    }
    inm_values = _parse_if_none_match(request.headers.get("if-none-match"))
    if etag in inm_values or "*" in inm_values:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    return JSONResponse(content=content, headers=headers)
