# app/services/usage_pointers.py
from __future__ import annotations

"""
MoviesNow CMS — Usage Pointer Index
===================================

Per sub-content back-references: one pointer document for every slider item
that currently embeds a snapshot of that sub-content.

    series/{seriesId}/contentUsage/{contentKey}/pointers/{pointerId}

Design notes
------------
- **Deterministic ids**: `pointerId` is derived from (targetKind, episodeId?,
  sliderId, itemKey), so concurrent writers recording "the same" pointer
  converge on one document instead of duplicating (no uniqueness query).
- **Upsert**: `record_pointer` is a merge-set; re-recording is a semantic no-op.
- **Tolerant reads**: `list_pointers` never fails on a malformed document; it
  returns the entry with `pointer=None` so fan-out can prune it.
"""

from dataclasses import dataclass
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.core.exceptions import ValidationFailedError
from app.docstore.base import DocumentStore, Transaction
from app.schemas.content import UsagePointer, content_key_for
from app.schemas.enums import TargetKind
from app.services import paths
from app.utils import clock

logger = logging.getLogger(__name__)


def content_key_for_sub_content(sub_content_id: str) -> str:
    if not sub_content_id:
        raise ValidationFailedError(["subContentId is required"])
    return content_key_for(sub_content_id)


def _require_segment(value: Optional[str], name: str, errors: List[str]) -> None:
    if not value:
        errors.append(f"{name} is required")
    elif "/" in value:
        errors.append(f"{name} must not contain '/'")


# ─────────────────────────────────────────────────────────────
# 🧮 Pointer id / target resolution
# ─────────────────────────────────────────────────────────────
def build_pointer_id(pointer: UsagePointer) -> str:
    """Derive the pointer document id (raises ValidationFailed on missing parts)."""
    errors: List[str] = []
    _require_segment(pointer.item_key, "itemKey", errors)
    kind = TargetKind(pointer.target_kind)
    if kind is TargetKind.SERIES_SLIDER:
        _require_segment(pointer.slider_id, "sliderId", errors)
        if errors:
            raise ValidationFailedError(errors, "Invalid usage pointer")
        return f"{kind.value}_{pointer.slider_id}_{pointer.item_key}"

    _require_segment(pointer.episode_id, "episodeId", errors)
    _require_segment(pointer.slider_id, "sliderId", errors)
    if errors:
        raise ValidationFailedError(errors, "Invalid usage pointer")
    return f"{kind.value}_{pointer.episode_id}_{pointer.slider_id}_{pointer.item_key}"


def resolve_target_path(pointer: UsagePointer) -> str:
    """Slider document embedding the item this pointer refers to."""
    kind = TargetKind(pointer.target_kind)
    if kind is TargetKind.SERIES_SLIDER:
        if not pointer.series_id or not pointer.slider_id:
            raise ValidationFailedError(["seriesId and sliderId are required"], "Unresolvable usage pointer")
        return paths.series_slider(pointer.series_id, pointer.slider_id)
    if not pointer.episode_id or not pointer.slider_id:
        raise ValidationFailedError(["episodeId and sliderId are required"], "Unresolvable usage pointer")
    return paths.episode_slider(pointer.episode_id, pointer.slider_id)


def parse_pointer(raw: Optional[dict]) -> Optional[UsagePointer]:
    if not raw:
        return None
    try:
        return UsagePointer.model_validate(raw)
    except ValidationError:
        return None


@dataclass(frozen=True)
class PointerEntry:
    """A stored pointer: its id/path and the parsed body (None when malformed)."""

    id: str
    path: str
    pointer: Optional[UsagePointer]


# ─────────────────────────────────────────────────────────────
# 🗂️ Index
# ─────────────────────────────────────────────────────────────
class UsagePointerIndex:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def record_pointer(
        self,
        series_id: str,
        content_key: str,
        pointer: UsagePointer,
        *,
        txn: Optional[Transaction] = None,
        now: Optional[int] = None,
    ) -> str:
        """Upsert `pointer` under its derived id; returns the pointer id.

        Inside a transaction the write is only queued (committed with `txn`).
        """
        pointer_id = build_pointer_id(pointer)
        ts = now if now is not None else clock.now_ms()
        body = pointer.model_copy(
            update={
                "created_at": pointer.created_at or ts,
                "updated_at": ts,
            }
        ).to_doc()
        path = paths.pointer(series_id, content_key, pointer_id)
        if txn is not None:
            txn.set(path, body, merge=True)
        else:
            await self.store.set(path, body, merge=True)
        logger.debug("Recorded usage pointer %s", path)
        return pointer_id

    async def list_pointers(self, series_id: str, content_key: str) -> List[PointerEntry]:
        snaps = await self.store.query(paths.pointers(series_id, content_key))
        entries: List[PointerEntry] = []
        for snap in snaps:
            parsed = parse_pointer(snap.raw)
            if parsed is None:
                logger.warning("Malformed usage pointer document %s", snap.path)
            entries.append(PointerEntry(id=snap.id, path=snap.path, pointer=parsed))
        return entries

    async def delete_pointer(
        self,
        series_id: str,
        content_key: str,
        pointer_id: str,
        *,
        txn: Optional[Transaction] = None,
    ) -> None:
        path = paths.pointer(series_id, content_key, pointer_id)
        if txn is not None:
            txn.delete(path)
        else:
            await self.store.delete(path)


__all__ = [
    "PointerEntry",
    "UsagePointerIndex",
    "build_pointer_id",
    "content_key_for_sub_content",
    "parse_pointer",
    "resolve_target_path",
]
