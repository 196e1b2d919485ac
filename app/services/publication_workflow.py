# app/services/publication_workflow.py
from __future__ import annotations

"""
MoviesNow CMS — Series Publication Workflow
===========================================

Each series exists twice under the same id:

- **draft copy**  `series-draft/{id}`  the producer's working copy
- **public copy** `series/{id}`        what readers see; its
  `publicationStatus` is the only public-visibility gate

Transitions
-----------
| From                    | To         | Actor                          |
|-------------------------|------------|--------------------------------|
| DRAFT/REJECTED/HIDDEN   | IN_REVIEW  | owning producer (draft complete)|
| IN_REVIEW               | PUBLISHED  | privileged role                |
| IN_REVIEW               | REJECTED   | privileged role                |
| PUBLISHED               | HIDDEN     | owner or privileged role       |
| PUBLISHED               | PUBLISHED  | owner ("publish updates")      |

Every operation is one optimistic transaction (read state, validate, write)
so two concurrent transitions can never both succeed against a stale
precondition. After commit the public read cache is invalidated.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional

from app.core.exceptions import (
    AppException,
    ForbiddenError,
    NotFoundError,
    StatusConflictError,
    ValidationFailedError,
)
from app.core.metrics import inc_workflow_transition
from app.core.security import is_privileged_role
from app.docstore.base import DocumentSnapshot, DocumentStore, Transaction, deep_merge
from app.schemas.enums import PublicationStatus, SeriesType
from app.services import paths
from app.utils import clock

logger = logging.getLogger(__name__)

S = PublicationStatus

TRANSITIONS: Mapping[PublicationStatus, FrozenSet[PublicationStatus]] = {
    S.DRAFT: frozenset({S.IN_REVIEW}),
    S.IN_REVIEW: frozenset({S.PUBLISHED, S.REJECTED}),
    S.PUBLISHED: frozenset({S.HIDDEN}),
    S.HIDDEN: frozenset({S.IN_REVIEW, S.PUBLISHED}),
    S.REJECTED: frozenset({S.IN_REVIEW}),
}

SUBMITTABLE: FrozenSet[PublicationStatus] = frozenset({S.DRAFT, S.REJECTED, S.HIDDEN})


def is_valid_transition(from_status: Any, to_status: Any) -> bool:
    try:
        return S(to_status) in TRANSITIONS.get(S(from_status), frozenset())
    except ValueError:
        return False


# ─────────────────────────────────────────────────────────────
# ✅ Completeness
# ─────────────────────────────────────────────────────────────
def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _has_url(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("url"))


def episode_count(value: Any) -> int:
    """`episodes` is stored either as a count or as a list of episodes."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(0, value)
    if isinstance(value, (list, tuple)):
        return len(value)
    return 0


def validate_series_completeness(draft: Optional[Mapping[str, Any]], season_count: int) -> List[str]:
    """Itemized reasons the draft cannot be submitted (empty list = complete)."""
    d = draft or {}
    errors: List[str] = []

    if _blank(d.get("title")):
        errors.append("Title is required")
    if _blank(d.get("description")):
        errors.append("Description is required")
    if not d.get("categories"):
        errors.append("At least one category is required")
    if not _has_url(d.get("cover")):
        errors.append("Cover image is required")
    if not d.get("type"):
        errors.append("Series type is required")
    if not d.get("heroBanner"):
        errors.append("Hero banner is required")
    if not _has_url(d.get("logo")):
        errors.append("Logo is required")

    socials = d.get("socialNetworks")
    if not isinstance(socials, dict) or not any(bool(v) for v in socials.values()):
        errors.append("At least one social media link is required")

    if d.get("type") == SeriesType.SEASON_BASED.value and season_count <= 0:
        errors.append("At least one season is required for season-based series")
    if episode_count(d.get("episodes")) == 0:
        errors.append("At least one episode is required")

    return errors


# ─────────────────────────────────────────────────────────────
# 👀 Visibility helpers
# ─────────────────────────────────────────────────────────────
def is_publicly_visible(public_doc: Optional[Mapping[str, Any]]) -> bool:
    return bool(public_doc) and public_doc.get("publicationStatus") == S.PUBLISHED.value


def is_visible_to_producer(doc: Optional[Mapping[str, Any]], producer_id: str) -> bool:
    """Producers see every series they own, whatever its status."""
    return bool(doc) and bool(producer_id) and doc.get("producerId") == producer_id


def current_status(public: DocumentSnapshot) -> PublicationStatus:
    """Status of the public copy; a missing copy (or missing field) counts as DRAFT."""
    raw = public.get("publicationStatus") if public.exists else None
    if not raw:
        return S.DRAFT
    try:
        return S(raw)
    except ValueError:
        raise StatusConflictError(f"Unknown publication status {raw!r}", current=str(raw))


# ─────────────────────────────────────────────────────────────
# 🔁 Workflow
# ─────────────────────────────────────────────────────────────
class PublicationWorkflow:
    def __init__(self, store: DocumentStore, cache: Any = None) -> None:
        self.store = store
        self.cache = cache

    async def _run(
        self,
        transition: str,
        series_id: str,
        fn: Callable[[Transaction], Awaitable[Dict[str, Any]]],
    ) -> Dict[str, Any]:
        try:
            result = await self.store.run_transaction(fn)
        except AppException as exc:
            inc_workflow_transition(transition, exc.kind)
            logger.info("Series %s %s refused: %s", series_id, transition, exc)
            raise
        inc_workflow_transition(transition, "ok")
        logger.info("Series %s %s → %s", series_id, transition, result.get("publicationStatus"))
        if self.cache is not None:
            await self.cache.invalidate(series_id)
        return result

    @staticmethod
    async def _season_count(txn: Transaction, series_id: str) -> int:
        return len(await txn.query(paths.seasons(series_id)))

    # ── producer: submit ─────────────────────────────────────
    async def submit_for_review(self, series_id: str, producer_id: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            draft_snap = await txn.get(paths.series_draft(series_id))
            if not draft_snap.exists:
                raise NotFoundError("Series draft not found")
            draft = draft_snap.data() or {}
            if draft.get("producerId") != producer_id:
                raise ForbiddenError("You can only submit your own series")

            public_snap = await txn.get(paths.series_public(series_id))
            seasons = await self._season_count(txn, series_id)

            errors = validate_series_completeness(draft, seasons)
            if errors:
                raise ValidationFailedError(errors, "Series is not ready for review")

            status = current_status(public_snap)
            if status not in SUBMITTABLE:
                raise StatusConflictError(f"Cannot submit a series that is {status.value}", current=status.value)

            body = {
                **draft,
                "publicationStatus": S.IN_REVIEW.value,
                "submittedAt": ts,
                "reviewNotes": None,
                "updatedAt": ts,
            }
            published_at = public_snap.get("publishedAt") if public_snap.exists else None
            if published_at is not None:
                body["publishedAt"] = published_at
            else:
                body.pop("publishedAt", None)
            txn.set(paths.series_public(series_id), body)
            return body

        return await self._run("submit_for_review", series_id, _fn)

    # ── reviewer: approve / reject ───────────────────────────
    async def approve_series(self, series_id: str, role: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            if not is_privileged_role(role):
                raise ForbiddenError("Only super admins can approve series")
            public_snap = await txn.get(paths.series_public(series_id))
            if not public_snap.exists:
                raise NotFoundError("Series not found")
            status = current_status(public_snap)
            if status is not S.IN_REVIEW:
                raise StatusConflictError("Only series in review can be approved", current=status.value)

            patch = {"publicationStatus": S.PUBLISHED.value, "publishedAt": ts, "updatedAt": ts}
            merged = deep_merge(public_snap.data() or {}, patch)
            txn.set(paths.series_public(series_id), merged)
            # the draft is what producers edit next, keep its status fields in step
            txn.set(paths.series_draft(series_id), merged, merge=True)
            return merged

        return await self._run("approve", series_id, _fn)

    async def reject_series(
        self,
        series_id: str,
        role: str,
        notes: Optional[str] = None,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            if not is_privileged_role(role):
                raise ForbiddenError("Only super admins can reject series")
            public_snap = await txn.get(paths.series_public(series_id))
            if not public_snap.exists:
                raise NotFoundError("Series not found")
            status = current_status(public_snap)
            if status is not S.IN_REVIEW:
                raise StatusConflictError("Only series in review can be rejected", current=status.value)

            patch = {"publicationStatus": S.REJECTED.value, "reviewNotes": notes, "reviewedAt": ts, "updatedAt": ts}
            txn.update(paths.series_public(series_id), patch)
            return deep_merge(public_snap.data() or {}, patch)

        return await self._run("reject", series_id, _fn)

    # ── owner or reviewer: hide ──────────────────────────────
    async def hide_series(
        self,
        series_id: str,
        producer_id: Optional[str],
        role: str,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            public_snap = await txn.get(paths.series_public(series_id))
            if not public_snap.exists:
                raise NotFoundError("Series not found")
            owner = public_snap.get("producerId")
            if not is_privileged_role(role) and (not producer_id or owner != producer_id):
                raise ForbiddenError("You can only hide your own series")
            status = current_status(public_snap)
            if status is not S.PUBLISHED:
                raise StatusConflictError("Only published series can be hidden", current=status.value)

            patch = {"publicationStatus": S.HIDDEN.value, "updatedAt": ts}
            txn.update(paths.series_public(series_id), patch)
            return deep_merge(public_snap.data() or {}, patch)

        return await self._run("hide", series_id, _fn)

    # ── owner: publish draft edits of a live series ──────────
    async def publish_updates(self, series_id: str, producer_id: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            draft_snap = await txn.get(paths.series_draft(series_id))
            if not draft_snap.exists:
                raise NotFoundError("Series draft not found")
            public_snap = await txn.get(paths.series_public(series_id))
            if not public_snap.exists:
                raise NotFoundError("Series not found")
            draft = draft_snap.data() or {}
            if draft.get("producerId") != producer_id:
                raise ForbiddenError("You can only publish updates to your own series")

            status = current_status(public_snap)
            if status is not S.PUBLISHED:
                raise StatusConflictError(
                    f"Series is {status.value}; use submit for review instead of publishing updates",
                    current=status.value,
                )

            seasons = await self._season_count(txn, series_id)
            errors = validate_series_completeness(draft, seasons)
            if errors:
                raise ValidationFailedError(errors, "Series is not ready to publish")

            body = {
                **draft,
                "publicationStatus": S.PUBLISHED.value,
                "publishedAt": public_snap.get("publishedAt"),
                "reviewNotes": None,
                "updatedAt": ts,
            }
            txn.set(paths.series_public(series_id), body)
            return body

        return await self._run("publish_updates", series_id, _fn)


__all__ = [
    "PublicationWorkflow",
    "SUBMITTABLE",
    "TRANSITIONS",
    "current_status",
    "episode_count",
    "is_publicly_visible",
    "is_valid_transition",
    "is_visible_to_producer",
    "validate_series_completeness",
]
