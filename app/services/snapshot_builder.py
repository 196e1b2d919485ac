# app/services/snapshot_builder.py
from __future__ import annotations

"""
Snapshot builder: raw sub-content document → `SubContentSnapshot`.

Pure (no store access). Fails with `ValidationFailed` when the document is
absent, belongs to another series, or lacks a valid title/type/status.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.core.exceptions import ValidationFailedError
from app.schemas.content import SubContentSnapshot
from app.schemas.enums import SubContentStatus, SubContentType
from app.utils import clock

_TYPES = {t.value for t in SubContentType}
_STATUSES = {s.value for s in SubContentStatus}


def build_snapshot(
    series_id: str,
    sub_content_id: str,
    raw: Optional[Dict[str, Any]],
    *,
    now: Optional[int] = None,
) -> SubContentSnapshot:
    if not raw:
        raise ValidationFailedError(["Sub-content data missing"])

    owner = raw.get("seriesId")
    if owner and owner != series_id:
        raise ValidationFailedError(["Sub-content seriesId mismatch"])

    errors: List[str] = []
    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        errors.append("title is required")
    if not raw.get("type"):
        errors.append("type is required")
    elif raw["type"] not in _TYPES:
        errors.append(f"type must be one of {sorted(_TYPES)}")
    if not raw.get("status"):
        errors.append("status is required")
    elif raw["status"] not in _STATUSES:
        errors.append(f"status must be one of {sorted(_STATUSES)}")
    if errors:
        raise ValidationFailedError(errors, "Sub-content snapshot missing required fields")

    updated_at = raw.get("updatedAt")
    try:
        return SubContentSnapshot(
            sub_content_id=sub_content_id,
            series_id=series_id,
            title=title,
            description=raw.get("description") or "",
            video_url=raw.get("videoUrl"),
            thumbnail=raw.get("thumbnail"),
            type=raw["type"],
            status=raw["status"],
            updated_at=int(updated_at) if updated_at else (now if now is not None else clock.now_ms()),
        )
    except (ValidationError, TypeError, ValueError) as exc:
        raise ValidationFailedError([str(exc)], "Sub-content snapshot is malformed") from exc


def is_public_sub_content(raw: Optional[Dict[str, Any]]) -> bool:
    return bool(raw) and raw.get("status") == SubContentStatus.PUBLISHED.value


__all__ = ["build_snapshot", "is_public_sub_content"]
