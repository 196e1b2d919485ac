# app/services/series_service.py
from __future__ import annotations

"""
Series lifecycle outside the publication workflow: create, draft edits, slug
renames, deletion and reads.

Creation writes the draft copy, the public shell (status DRAFT) and the slug
reservation in one transaction. Producers only ever edit the draft; the public
copy changes through `PublicationWorkflow`.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.cache.public_series import PublicSeriesCache
from app.core.exceptions import ForbiddenError, NotFoundError
from app.core.security import AuthContext, is_privileged_role
from app.docstore.base import DocumentSnapshot, DocumentStore, Transaction, deep_merge
from app.schemas.enums import PublicationStatus, SeriesType
from app.schemas.series import SeriesCreate, SeriesUpdate
from app.services import paths
from app.services.publication_workflow import is_publicly_visible
from app.services.slug_allocator import SlugAllocator
from app.utils import clock

logger = logging.getLogger(__name__)

# fields owned by the workflow or the system, never taken from producer input
PROTECTED_FIELDS = frozenset(
    {
        "id",
        "producerId",
        "publicationStatus",
        "submittedAt",
        "publishedAt",
        "reviewedAt",
        "reviewNotes",
        "createdAt",
        "updatedAt",
    }
)

# the public shell carries just enough to list and route to a series
PUBLIC_SHELL_FIELDS = ("id", "slug", "title", "producerId", "producerName", "type")


def with_id(snap: DocumentSnapshot) -> Optional[Dict[str, Any]]:
    if not snap.exists:
        return None
    return {"id": snap.id, **(snap.data() or {})}


# ─────────────────────────────────────────────────────────────
# 🔎 Read-through resolvers
# ─────────────────────────────────────────────────────────────
async def resolve_series(store: DocumentStore, series_id: str) -> Optional[Dict[str, Any]]:
    """Public copy of a series, whatever its status."""
    return with_id(await store.get(paths.series_public(series_id)))


async def resolve_episode(store: DocumentStore, episode_id: str) -> Optional[Dict[str, Any]]:
    return with_id(await store.get(paths.episode(episode_id)))


async def resolve_sub_content(store: DocumentStore, series_id: str, sub_content_id: str) -> Optional[Dict[str, Any]]:
    return with_id(await store.get(paths.sub_content(series_id, sub_content_id)))


def _ensure_owner(doc: Dict[str, Any], producer_id: str, action: str) -> None:
    if doc.get("producerId") != producer_id:
        raise ForbiddenError(f"You can only {action} your own series")


class SeriesService:
    def __init__(
        self,
        store: DocumentStore,
        cache: Optional[PublicSeriesCache] = None,
        allocator: Optional[SlugAllocator] = None,
    ) -> None:
        self.store = store
        self.cache = cache
        self.slugs = allocator or SlugAllocator()

    async def _invalidate(self, series_id: str) -> None:
        if self.cache is not None:
            await self.cache.invalidate(series_id)

    # ── create ───────────────────────────────────────────────
    async def create_series(
        self,
        producer_id: str,
        payload: SeriesCreate,
        *,
        producer_name: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        series_id = uuid4().hex
        fields = {k: v for k, v in payload.to_doc().items() if k not in PROTECTED_FIELDS}
        candidate = fields.pop("slug", None)

        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            slug = await self.slugs.allocate(txn, candidate=candidate, title=payload.title, series_id=series_id, now=ts)
            draft = {
                **fields,
                "id": series_id,
                "slug": slug,
                "producerId": producer_id,
                "type": fields.get("type") or SeriesType.SEASON_BASED.value,
                "episodes": 0,
                "publicationStatus": PublicationStatus.DRAFT.value,
                "createdAt": ts,
                "updatedAt": ts,
            }
            if producer_name:
                draft["producerName"] = producer_name
            public = {k: draft[k] for k in PUBLIC_SHELL_FIELDS if k in draft}
            public.update({"publicationStatus": PublicationStatus.DRAFT.value, "createdAt": ts, "updatedAt": ts})

            txn.set(paths.series_draft(series_id), draft)
            txn.set(paths.series_public(series_id), public)
            self.slugs.reserve(txn, slug, series_id, now=ts)
            return draft

        draft = await self.store.run_transaction(_fn)
        logger.info("Series created id=%s slug=%s producer=%s", series_id, draft["slug"], producer_id)
        return draft

    # ── draft edits ──────────────────────────────────────────
    async def update_draft(
        self,
        series_id: str,
        producer_id: str,
        patch: SeriesUpdate,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Merge `patch` into the draft; a slug change is applied as a rename in the same transaction."""
        fields = {k: v for k, v in patch.to_doc().items() if k not in PROTECTED_FIELDS}
        new_slug = fields.pop("slug", None)

        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            draft_snap = await txn.get(paths.series_draft(series_id))
            if not draft_snap.exists:
                raise NotFoundError("Series draft not found")
            draft = draft_snap.data() or {}
            _ensure_owner(draft, producer_id, "edit")

            merged = deep_merge(draft, {**fields, "updatedAt": ts})
            if new_slug:
                slug = await self._queue_rename(txn, series_id, draft, new_slug, now=ts)
                merged["slug"] = slug
            txn.set(paths.series_draft(series_id), merged)
            return merged

        result = await self.store.run_transaction(_fn)
        if new_slug:
            await self._invalidate(series_id)
        return result

    async def _queue_rename(
        self,
        txn: Transaction,
        series_id: str,
        draft: Dict[str, Any],
        new_slug: str,
        *,
        now: int,
    ) -> str:
        """Read everything a rename needs, then queue its writes (except the draft's own)."""
        slug = await self.slugs.claim(txn, new_slug, series_id=series_id, now=now)
        old = draft.get("slug")
        if slug == old:
            return slug
        public_snap = await txn.get(paths.series_public(series_id))
        old_owned = False
        if old:
            old_snap = await txn.get(paths.slug_reservation(old))
            old_owned = old_snap.exists and old_snap.get("seriesId") == series_id

        if old_owned:
            self.slugs.release(txn, old)
        self.slugs.reserve(txn, slug, series_id, now=now)
        if public_snap.exists:
            txn.update(paths.series_public(series_id), {"slug": slug, "updatedAt": now})
        logger.info("Series %s slug %s → %s", series_id, old, slug)
        return slug

    async def rename_slug(
        self,
        series_id: str,
        producer_id: str,
        new_slug: str,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            draft_snap = await txn.get(paths.series_draft(series_id))
            if not draft_snap.exists:
                raise NotFoundError("Series draft not found")
            draft = draft_snap.data() or {}
            _ensure_owner(draft, producer_id, "rename")

            slug = await self._queue_rename(txn, series_id, draft, new_slug, now=ts)
            if slug == draft.get("slug"):
                return draft
            txn.update(paths.series_draft(series_id), {"slug": slug, "updatedAt": ts})
            return {**draft, "slug": slug, "updatedAt": ts}

        result = await self.store.run_transaction(_fn)
        await self._invalidate(series_id)
        return result

    # ── delete ───────────────────────────────────────────────
    async def delete_series(self, series_id: str, caller: AuthContext) -> None:
        """Remove draft, public copy and slug reservation together (subcollections are left in place)."""

        async def _fn(txn: Transaction) -> None:
            draft_snap = await txn.get(paths.series_draft(series_id))
            public_snap = await txn.get(paths.series_public(series_id))
            if not draft_snap.exists and not public_snap.exists:
                raise NotFoundError("Series not found")
            source = draft_snap if draft_snap.exists else public_snap
            if not is_privileged_role(caller.role) and source.get("producerId") != caller.effective_producer_id:
                raise ForbiddenError("You can only delete your own series")

            slug = source.get("slug")
            reservation = await txn.get(paths.slug_reservation(slug)) if slug else None

            txn.delete(paths.series_draft(series_id))
            txn.delete(paths.series_public(series_id))
            if reservation is not None and reservation.get("seriesId") == series_id:
                self.slugs.release(txn, slug)

        await self.store.run_transaction(_fn)
        await self._invalidate(series_id)
        logger.info("Series deleted id=%s by=%s", series_id, caller.uid)

    # ── reads ────────────────────────────────────────────────
    async def get_draft(self, series_id: str, caller: AuthContext) -> Dict[str, Any]:
        draft = with_id(await self.store.get(paths.series_draft(series_id)))
        if draft is None:
            raise NotFoundError("Series draft not found")
        if not caller.is_privileged and draft.get("producerId") != caller.effective_producer_id:
            raise ForbiddenError("You can only view your own series")
        return draft

    async def get_public_series(self, series_id: str) -> Optional[Dict[str, Any]]:
        """Public read: `None` unless the public copy is PUBLISHED."""
        if self.cache is not None:
            cached = await self.cache.get(series_id)
            if cached is not None:
                return cached
        doc = await resolve_series(self.store, series_id)
        if not is_publicly_visible(doc):
            return None
        if self.cache is not None:
            await self.cache.set(series_id, doc)
        return doc

    async def list_producer_series(self, producer_id: str) -> List[Dict[str, Any]]:
        """Drafts owned by `producer_id`, newest first, with the live public status."""
        snaps = await self.store.query(
            paths.SERIES_DRAFT,
            [("producerId", "==", producer_id)],
            order_by=("createdAt", "desc"),
        )
        out: List[Dict[str, Any]] = []
        for snap in snaps:
            draft = with_id(snap) or {}
            public = await self.store.get(paths.series_public(snap.id))
            draft["publicationStatus"] = public.get("publicationStatus") or PublicationStatus.DRAFT.value
            out.append(draft)
        return out


__all__ = [
    "PROTECTED_FIELDS",
    "SeriesService",
    "resolve_episode",
    "resolve_series",
    "resolve_sub_content",
    "with_id",
]
