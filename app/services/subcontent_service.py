# app/services/subcontent_service.py
from __future__ import annotations

"""
Series sub-content (extras, clips, articles).

A sub-content's own `status` (draft/published) is independent of the series'
publication status; public listings require both. Updates and deletes are
handed to the trigger dispatcher with before/after images so every slider
embedding the content is brought back in sync.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

from app.core.exceptions import NotFoundError
from app.docstore.base import DocumentStore
from app.schemas.content import SubContentCreate, SubContentUpdate
from app.schemas.enums import SubContentStatus
from app.services import paths
from app.services.publication_workflow import is_publicly_visible
from app.services.series_service import resolve_series, with_id
from app.services.triggers import TriggerDispatcher, TriggerResult
from app.utils import clock

logger = logging.getLogger(__name__)

# never taken from the request body
_SYSTEM_FIELDS = ("id", "seriesId", "createdAt", "updatedAt")


class SubContentService:
    def __init__(self, store: DocumentStore, triggers: Optional[TriggerDispatcher] = None) -> None:
        self.store = store
        self.triggers = triggers
        self.last_trigger: Optional[TriggerResult] = None

    async def _fire(
        self,
        series_id: str,
        sub_content_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
    ) -> Optional[TriggerResult]:
        if self.triggers is None:
            return None
        result = await self.triggers.on_sub_content_written(series_id, sub_content_id, before, after)
        self.last_trigger = result
        return result

    async def get(self, series_id: str, sub_content_id: str) -> Dict[str, Any]:
        doc = with_id(await self.store.get(paths.sub_content(series_id, sub_content_id)))
        if doc is None:
            raise NotFoundError("Sub-content not found")
        return doc

    async def create(self, series_id: str, body: SubContentCreate, *, now: Optional[int] = None) -> Dict[str, Any]:
        if not (await self.store.get(paths.series_public(series_id))).exists:
            raise NotFoundError("Series not found")
        ts = now if now is not None else clock.now_ms()
        sub_content_id = uuid4().hex
        doc = {k: v for k, v in body.to_doc().items() if k not in _SYSTEM_FIELDS}
        doc.update(
            {
                "seriesId": series_id,
                "status": doc.get("status") or SubContentStatus.DRAFT.value,
                "createdAt": ts,
                "updatedAt": ts,
            }
        )
        await self.store.set(paths.sub_content(series_id, sub_content_id), doc)
        logger.info("Sub-content created series=%s id=%s", series_id, sub_content_id)
        return {"id": sub_content_id, **doc}

    async def update(
        self,
        series_id: str,
        sub_content_id: str,
        body: SubContentUpdate,
        *,
        now: Optional[int] = None,
    ) -> Dict[str, Any]:
        path = paths.sub_content(series_id, sub_content_id)
        before = await self.store.get(path)
        if not before.exists:
            raise NotFoundError("Sub-content not found")
        patch = {k: v for k, v in body.to_doc().items() if k not in _SYSTEM_FIELDS}
        patch["updatedAt"] = now if now is not None else clock.now_ms()
        await self.store.update(path, patch)

        after = await self.store.get(path)
        await self._fire(series_id, sub_content_id, before.data(), after.data())
        return with_id(after)

    async def delete(self, series_id: str, sub_content_id: str) -> Dict[str, Any]:
        path = paths.sub_content(series_id, sub_content_id)
        before = await self.store.get(path)
        if not before.exists:
            raise NotFoundError("Sub-content not found")
        await self.store.delete(path)
        await self._fire(series_id, sub_content_id, before.data(), None)
        logger.info("Sub-content deleted series=%s id=%s", series_id, sub_content_id)
        return {"id": sub_content_id}

    async def list(self, series_id: str, *, status: Optional[str] = None) -> List[Dict[str, Any]]:
        where = [("status", "==", status)] if status and status != "all" else []
        snaps = await self.store.query(paths.sub_contents(series_id), where, order_by=("createdAt", "desc"))
        return [with_id(s) for s in snaps]

    async def list_published(self, series_id: str, *, check_series_status: bool = True) -> List[Dict[str, Any]]:
        """Published sub-content, empty unless the series itself is publicly visible."""
        if check_series_status and not is_publicly_visible(await resolve_series(self.store, series_id)):
            return []
        return await self.list(series_id, status=SubContentStatus.PUBLISHED.value)


__all__ = ["SubContentService"]
