# app/services/sliders_service.py
from __future__ import annotations

"""
Sub-content sliders (series page and episode page).

Every item embeds a snapshot of its sub-content, and every item mutation
writes the slider **and** its usage pointer in one transaction, so the pointer
index never misses an embedding that the fan-out propagator must refresh.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.docstore.base import DocumentStore, Transaction
from app.schemas.content import (
    SliderCreate,
    SliderItem,
    SliderItemCreate,
    UsagePointer,
    content_key_for,
)
from app.schemas.enums import TargetKind
from app.services import paths
from app.services.series_service import with_id
from app.services.snapshot_builder import build_snapshot, is_public_sub_content
from app.services.usage_pointers import UsagePointerIndex, build_pointer_id
from app.utils import clock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SliderTarget:
    """Where a slider lives; episode sliders still belong to a series (pointer owner)."""

    kind: TargetKind
    series_id: str
    slider_id: str
    episode_id: Optional[str] = None

    @property
    def path(self) -> str:
        if self.kind is TargetKind.EPISODE_SLIDER:
            return paths.episode_slider(self.episode_id, self.slider_id)
        return paths.series_slider(self.series_id, self.slider_id)

    def pointer(self, item_key: str, created_by: Optional[str] = None) -> UsagePointer:
        return UsagePointer(
            target_kind=self.kind,
            series_id=self.series_id,
            episode_id=self.episode_id,
            slider_id=self.slider_id,
            item_key=item_key,
            created_by=created_by,
        )


def new_item_key() -> str:
    return f"item_{uuid4().hex[:12]}"


def _items_of(raw: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    items = (raw or {}).get("items")
    return [i for i in items if isinstance(i, dict)] if isinstance(items, list) else []


class SliderService:
    def __init__(self, store: DocumentStore, pointer_index: Optional[UsagePointerIndex] = None) -> None:
        self.store = store
        self.pointers = pointer_index or UsagePointerIndex(store)

    # ── targets ──────────────────────────────────────────────
    @staticmethod
    def series_target(series_id: str, slider_id: str) -> SliderTarget:
        return SliderTarget(TargetKind.SERIES_SLIDER, series_id, slider_id)

    async def episode_series_id(self, episode_id: str) -> str:
        """Series owning an episode (episode sliders keep their pointers there)."""
        episode = await self.store.get(paths.episode(episode_id))
        series_id = episode.get("seriesId") if episode.exists else None
        if not series_id:
            raise NotFoundError("Episode not found")
        return series_id

    async def episode_target(self, episode_id: str, slider_id: str) -> SliderTarget:
        series_id = await self.episode_series_id(episode_id)
        return SliderTarget(TargetKind.EPISODE_SLIDER, series_id, slider_id, episode_id=episode_id)

    # ── slider CRUD ──────────────────────────────────────────
    async def _create(self, target: SliderTarget, body: SliderCreate, now: Optional[int]) -> Dict[str, Any]:
        ts = now if now is not None else clock.now_ms()
        doc = {
            "title": body.title,
            "description": body.description or "",
            "sponsor": body.sponsor,
            "order": body.order,
            "seriesId": target.series_id,
            "items": [],
            "createdAt": ts,
            "updatedAt": ts,
        }
        if target.episode_id:
            doc["episodeId"] = target.episode_id
        await self.store.set(target.path, doc)
        logger.info("Slider created %s", target.path)
        return {"id": target.slider_id, **doc}

    async def create_series_slider(self, series_id: str, body: SliderCreate, *, now: Optional[int] = None) -> Dict[str, Any]:
        if not (await self.store.get(paths.series_public(series_id))).exists:
            raise NotFoundError("Series not found")
        return await self._create(self.series_target(series_id, uuid4().hex), body, now)

    async def create_episode_slider(self, episode_id: str, body: SliderCreate, *, now: Optional[int] = None) -> Dict[str, Any]:
        target = await self.episode_target(episode_id, uuid4().hex)
        return await self._create(target, body, now)

    async def get_slider(self, target: SliderTarget) -> Dict[str, Any]:
        doc = with_id(await self.store.get(target.path))
        if doc is None:
            raise NotFoundError("Slider not found")
        return doc

    async def list_series_sliders(self, series_id: str) -> List[Dict[str, Any]]:
        snaps = await self.store.query(paths.series_sliders(series_id), order_by=("order", "asc"))
        return [with_id(s) for s in snaps]

    async def list_episode_sliders(self, episode_id: str) -> List[Dict[str, Any]]:
        snaps = await self.store.query(paths.episode_sliders(episode_id), order_by=("order", "asc"))
        return [with_id(s) for s in snaps]

    async def delete_slider(self, target: SliderTarget) -> Dict[str, Any]:
        """Delete the slider together with the pointer of every item it holds."""

        async def _fn(txn: Transaction) -> int:
            snap = await txn.get(target.path)
            if not snap.exists:
                raise NotFoundError("Slider not found")
            items = _items_of(snap.raw)
            txn.delete(target.path)
            for item in items:
                await self._forget_item(txn, target, item)
            return len(items)

        removed = await self.store.run_transaction(_fn)
        logger.info("Slider deleted %s (%s pointer(s) removed)", target.path, removed)
        return {"id": target.slider_id, "pointersRemoved": removed}

    # ── items ────────────────────────────────────────────────
    async def _forget_item(self, txn: Transaction, target: SliderTarget, item: Dict[str, Any]) -> None:
        item_key = item.get("itemKey")
        content_key = item.get("contentKey") or (
            content_key_for(item["subContentId"]) if item.get("subContentId") else None
        )
        if not item_key or not content_key:
            return
        pointer_id = build_pointer_id(target.pointer(item_key))
        await self.pointers.delete_pointer(target.series_id, content_key, pointer_id, txn=txn)

    async def add_item(
        self,
        target: SliderTarget,
        body: SliderItemCreate,
        *,
        created_by: Optional[str] = None,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Embed a snapshot of a sub-content and record its usage pointer atomically."""

        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            slider = await txn.get(target.path)
            if not slider.exists:
                raise NotFoundError("Slider not found")
            sub = await txn.get(paths.sub_content(target.series_id, body.sub_content_id))
            if not sub.exists:
                raise NotFoundError("Sub-content not found")

            raw = sub.data()
            snapshot = build_snapshot(target.series_id, body.sub_content_id, raw, now=ts)
            content_key = content_key_for(body.sub_content_id)
            items = _items_of(slider.raw)

            if not body.allow_duplicate and any(i.get("contentKey") == content_key for i in items):
                raise ValidationFailedError(["Sub-content is already in this slider"])
            item_key = body.item_key or new_item_key()
            if any(i.get("itemKey") == item_key for i in items):
                raise ValidationFailedError([f"itemKey {item_key!r} is already used in this slider"])

            item = SliderItem(
                item_key=item_key,
                content_key=content_key,
                sub_content_id=body.sub_content_id,
                snapshot=snapshot,
                is_active=is_public_sub_content(raw),
                is_hidden=False,
                created_at=ts,
                updated_at=ts,
            ).to_doc(exclude_none=False)

            txn.update(target.path, {"items": [*items, item], "updatedAt": ts})
            await self.pointers.record_pointer(
                target.series_id, content_key, target.pointer(item_key, created_by), txn=txn, now=ts
            )
            return {"id": target.slider_id, **(slider.data() or {}), "items": [*items, item], "updatedAt": ts}

        result = await self.store.run_transaction(_fn)
        logger.info("Slider item added %s subContent=%s", target.path, body.sub_content_id)
        return result

    async def remove_item(self, target: SliderTarget, item_key: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            slider = await txn.get(target.path)
            if not slider.exists:
                raise NotFoundError("Slider not found")
            items = _items_of(slider.raw)
            removed = [i for i in items if i.get("itemKey") == item_key]
            if not removed:
                raise NotFoundError("Slider item not found")
            kept = [i for i in items if i.get("itemKey") != item_key]

            txn.update(target.path, {"items": kept, "updatedAt": ts})
            for item in removed:
                await self._forget_item(txn, target, item)
            return {"id": target.slider_id, **(slider.data() or {}), "items": kept, "updatedAt": ts}

        return await self.store.run_transaction(_fn)

    async def set_item_hidden(
        self,
        target: SliderTarget,
        item_key: str,
        is_hidden: bool,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Editorial hide/show; independent of `isActive`, which follows the sub-content status."""

        async def _fn(txn: Transaction) -> Dict[str, Any]:
            ts = now if now is not None else clock.now_ms()
            slider = await txn.get(target.path)
            if not slider.exists:
                raise NotFoundError("Slider not found")
            items = _items_of(slider.raw)
            if not any(i.get("itemKey") == item_key for i in items):
                raise NotFoundError("Slider item not found")
            updated = [
                {**i, "isHidden": bool(is_hidden), "updatedAt": ts} if i.get("itemKey") == item_key else i
                for i in items
            ]
            txn.update(target.path, {"items": updated, "updatedAt": ts})
            return {"id": target.slider_id, **(slider.data() or {}), "items": updated, "updatedAt": ts}

        return await self.store.run_transaction(_fn)


__all__ = ["SliderService", "SliderTarget", "new_item_key"]
