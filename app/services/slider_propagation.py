# app/services/slider_propagation.py
from __future__ import annotations

"""
MoviesNow CMS — Slider Fan-out Propagator
=========================================

Keeps the denormalized slider items that embed a sub-content in sync when
that sub-content is updated or deleted.

Algorithm (both paths)
----------------------
1) List the usage pointers for the sub-content's `contentKey`; none → no-op.
2) Group pointers by resolved target slider path (several items of one slider
   pointing at the same content are one read and one write).
3) Per group, read the slider:
   - missing slider → every pointer of the group is **stale**;
   - update path: refresh snapshot/isActive on each addressed item, items not
     found are stale;
   - delete path: drop each addressed item.
4) Queue slider rewrites, then pointer deletions, into atomic batches of at
   most `max_batch_ops` operations (sequential commits beyond that).
   Update path deletes stale pointers only; delete path deletes **all**
   pointers of the content key.
5) Unexpected per-group errors and rolled-back chunks do not stop the rest of
   the run; after every healthy write is committed, `PartialPropagationFailure` is raised so the
   trigger retries the whole run (replays converge, see `apply_snapshot_for_pointers`).
"""

from dataclasses import asdict, dataclass, field
import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from app.core.config import settings
from app.core.exceptions import PartialPropagationFailure, ValidationFailedError
from app.core.metrics import (
    inc_batch_commit,
    inc_propagation_run,
    inc_slider_writes,
    inc_stale_pointers,
)
from app.docstore.base import DocumentStore, DocumentStoreError, WriteBatch
from app.schemas.content import SubContentSnapshot
from app.services.snapshot_builder import build_snapshot, is_public_sub_content
from app.services.usage_pointers import (
    PointerEntry,
    UsagePointerIndex,
    content_key_for_sub_content,
    resolve_target_path,
)
from app.utils import clock

logger = logging.getLogger(__name__)

Items = List[Any]


# ─────────────────────────────────────────────────────────────
# 🧩 Pure item-list helpers
# ─────────────────────────────────────────────────────────────
def _find_item(items: Items, item_key: str, content_key: Optional[str]) -> int:
    for idx, item in enumerate(items):
        if not isinstance(item, dict) or item.get("itemKey") != item_key:
            continue
        # an itemKey reused for other content is not this pointer's embedding
        if content_key is not None and item.get("contentKey") not in (None, content_key):
            return -1
        return idx
    return -1


def apply_snapshot_for_pointers(
    items: Items,
    item_keys: Sequence[str],
    snapshot: Dict[str, Any],
    is_active: bool,
    now: int,
    *,
    content_key: Optional[str] = None,
) -> Tuple[Items, List[str], bool]:
    """Refresh `snapshot`/`isActive`/`updatedAt` on the items addressed by `item_keys`.

    Returns `(updated_items, missing_keys, changed)`. Items not addressed are
    returned as the very same objects. An addressed item whose snapshot and
    `isActive` already match is left untouched, so replaying a run is a no-op.
    """
    updated = list(items)
    missing: List[str] = []
    changed = False
    for key in item_keys:
        idx = _find_item(updated, key, content_key)
        if idx < 0:
            missing.append(key)
            continue
        current = updated[idx]
        if current.get("snapshot") == snapshot and current.get("isActive") is is_active:
            continue
        updated[idx] = {**current, "snapshot": snapshot, "isActive": is_active, "updatedAt": now}
        changed = True
    return updated, missing, changed


def remove_items_for_pointers(
    items: Items,
    item_keys: Sequence[str],
    *,
    content_key: Optional[str] = None,
) -> Tuple[Items, List[str]]:
    """Drop the items addressed by `item_keys`; returns `(updated_items, missing_keys)`."""
    wanted = set(item_keys)
    present = set()
    updated: Items = []
    for item in items:
        if isinstance(item, dict) and item.get("itemKey") in wanted and (
            content_key is None or item.get("contentKey") in (None, content_key)
        ):
            present.add(item["itemKey"])
            continue
        updated.append(item)
    missing = [k for k in item_keys if k not in present]
    return updated, missing


# ─────────────────────────────────────────────────────────────
# 📊 Report
# ─────────────────────────────────────────────────────────────
@dataclass
class PropagationReport:
    kind: str
    series_id: str
    sub_content_id: str
    pointers: int = 0
    groups: int = 0
    sliders_updated: int = 0
    stale_pointers_pruned: int = 0
    pointers_deleted: int = 0
    batch_commits: int = 0
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


GENERIC_FAILURE = "Operation failed."


def _failure(target: str) -> Dict[str, Any]:
    # store error text stays in the logs; callers only see the target
    return {"target": target, "error": GENERIC_FAILURE}


@dataclass
class _Group:
    path: str
    entries: List[PointerEntry] = field(default_factory=list)

    @property
    def item_keys(self) -> List[str]:
        return [e.pointer.item_key for e in self.entries if e.pointer is not None]


class _ChunkedBatch:
    """Sequential batches capped at `max_ops` queued writes each.

    A chunk that fails to commit is rolled back by the store; its targets are
    recorded in `failures` and later chunks still run.
    """

    def __init__(self, store: DocumentStore, max_ops: int) -> None:
        self.store = store
        self.max_ops = max(1, min(int(max_ops), store.max_batch_ops))
        self._batch: Optional[WriteBatch] = None
        self.commits = 0
        self.failed_paths: Set[str] = set()
        self.failures: List[Dict[str, Any]] = []

    def _current(self) -> WriteBatch:
        if self._batch is None:
            self._batch = self.store.batch()
        return self._batch

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        self._current().update(path, partial)
        await self._maybe_flush()

    async def delete(self, path: str) -> None:
        self._current().delete(path)
        await self._maybe_flush()

    async def _maybe_flush(self) -> None:
        if self._batch is not None and len(self._batch) >= self.max_ops:
            await self.flush()

    async def flush(self) -> None:
        if self._batch is None or len(self._batch) == 0:
            return
        batch, self._batch = self._batch, None
        try:
            await batch.commit()
        except DocumentStoreError as exc:
            logger.warning("propagation chunk of %s op(s) rolled back: %r", len(batch), exc)
            for op in batch.ops:
                self.failed_paths.add(op.path)
                self.failures.append(_failure(op.path))
            return
        self.commits += 1
        inc_batch_commit()


# ─────────────────────────────────────────────────────────────
# 🚀 Propagator
# ─────────────────────────────────────────────────────────────
class SliderPropagator:
    def __init__(
        self,
        store: DocumentStore,
        *,
        max_batch_ops: Optional[int] = None,
        pointer_index: Optional[UsagePointerIndex] = None,
    ) -> None:
        self.store = store
        self.max_batch_ops = int(max_batch_ops or settings.PROPAGATION_MAX_BATCH_OPS)
        self.pointers = pointer_index or UsagePointerIndex(store)

    # ── grouping ─────────────────────────────────────────────
    @staticmethod
    def _group(entries: Sequence[PointerEntry]) -> Tuple[List[_Group], List[PointerEntry]]:
        groups: Dict[str, _Group] = {}
        unresolvable: List[PointerEntry] = []
        for entry in entries:
            if entry.pointer is None:
                unresolvable.append(entry)
                continue
            try:
                target = resolve_target_path(entry.pointer)
            except ValidationFailedError:
                unresolvable.append(entry)
                continue
            groups.setdefault(target, _Group(target)).entries.append(entry)
        return list(groups.values()), unresolvable

    async def _read_items(self, path: str) -> Optional[Items]:
        snap = await self.store.get(path)
        if not snap.exists:
            return None
        items = snap.get("items")
        return list(items) if isinstance(items, list) else []

    # ── update path ──────────────────────────────────────────
    async def propagate_update(
        self,
        series_id: str,
        sub_content_id: str,
        after_data: Optional[Dict[str, Any]],
        *,
        now: Optional[int] = None,
    ) -> PropagationReport:
        """Re-apply the current snapshot of a sub-content to every embedding slider."""
        ts = now if now is not None else clock.now_ms()
        snapshot: SubContentSnapshot = build_snapshot(series_id, sub_content_id, after_data, now=ts)
        snapshot_doc = snapshot.to_doc(exclude_none=False)
        is_active = is_public_sub_content(after_data)
        content_key = content_key_for_sub_content(sub_content_id)
        report = PropagationReport("update", series_id, sub_content_id)

        entries = await self.pointers.list_pointers(series_id, content_key)
        report.pointers = len(entries)
        if not entries:
            logger.info("subContent update: no pointers series=%s subContent=%s", series_id, sub_content_id)
            inc_propagation_run("update", "noop")
            return report

        groups, stale = self._group(entries)
        report.groups = len(groups)
        slider_writes: List[Tuple[str, Items]] = []

        for group in groups:
            try:
                items = await self._read_items(group.path)
                if items is None:
                    stale.extend(group.entries)
                    continue
                updated, missing, changed = apply_snapshot_for_pointers(
                    items, group.item_keys, snapshot_doc, is_active, ts, content_key=content_key
                )
                missing_set = set(missing)
                stale.extend(e for e in group.entries if e.pointer.item_key in missing_set)
                if changed:
                    slider_writes.append((group.path, updated))
            except Exception as exc:  # noqa: BLE001 - counted, surfaced below
                logger.exception("subContent snapshot update failed target=%s: %r", group.path, exc)
                report.failures.append(_failure(group.path))

        chunks = _ChunkedBatch(self.store, self.max_batch_ops)
        for path, items in slider_writes:
            await chunks.update(path, {"items": items, "updatedAt": ts})
        for entry in stale:
            await chunks.delete(entry.path)
        await chunks.flush()

        failed = chunks.failed_paths
        report.failures.extend(chunks.failures)
        report.sliders_updated = sum(1 for path, _ in slider_writes if path not in failed)
        report.stale_pointers_pruned = sum(1 for e in stale if e.path not in failed)
        report.pointers_deleted = report.stale_pointers_pruned
        report.batch_commits = chunks.commits
        return self._finish(report)

    # ── delete path ──────────────────────────────────────────
    async def propagate_delete(
        self,
        series_id: str,
        sub_content_id: str,
        *,
        now: Optional[int] = None,
    ) -> PropagationReport:
        """Remove a deleted sub-content from every embedding slider and drop all its pointers."""
        ts = now if now is not None else clock.now_ms()
        content_key = content_key_for_sub_content(sub_content_id)
        report = PropagationReport("delete", series_id, sub_content_id)

        entries = await self.pointers.list_pointers(series_id, content_key)
        report.pointers = len(entries)
        if not entries:
            logger.info("subContent delete: no pointers series=%s subContent=%s", series_id, sub_content_id)
            inc_propagation_run("delete", "noop")
            return report

        groups, stale = self._group(entries)
        report.groups = len(groups)
        slider_writes: List[Tuple[str, Items]] = []

        for group in groups:
            try:
                items = await self._read_items(group.path)
                if items is None:
                    stale.extend(group.entries)
                    continue
                updated, missing = remove_items_for_pointers(items, group.item_keys, content_key=content_key)
                missing_set = set(missing)
                stale.extend(e for e in group.entries if e.pointer.item_key in missing_set)
                if len(updated) != len(items):
                    slider_writes.append((group.path, updated))
            except Exception as exc:  # noqa: BLE001 - counted, surfaced below
                logger.exception("subContent delete cleanup failed target=%s: %r", group.path, exc)
                report.failures.append(_failure(group.path))

        chunks = _ChunkedBatch(self.store, self.max_batch_ops)
        for path, items in slider_writes:
            await chunks.update(path, {"items": items, "updatedAt": ts})
        # the content is gone: every pointer is obsolete, stale or not
        for entry in entries:
            await chunks.delete(entry.path)
        await chunks.flush()

        failed = chunks.failed_paths
        report.failures.extend(chunks.failures)
        report.sliders_updated = sum(1 for path, _ in slider_writes if path not in failed)
        report.stale_pointers_pruned = sum(1 for e in stale if e.path not in failed)
        report.pointers_deleted = sum(1 for e in entries if e.path not in failed)
        report.batch_commits = chunks.commits
        return self._finish(report)

    # ── summary ──────────────────────────────────────────────
    def _finish(self, report: PropagationReport) -> PropagationReport:
        inc_slider_writes(report.kind, report.sliders_updated)
        inc_stale_pointers(report.stale_pointers_pruned)
        logger.info(
            "subContent %s sync summary series=%s subContent=%s pointers=%s groups=%s "
            "slidersUpdated=%s stalePruned=%s pointersDeleted=%s commits=%s failures=%s",
            report.kind,
            report.series_id,
            report.sub_content_id,
            report.pointers,
            report.groups,
            report.sliders_updated,
            report.stale_pointers_pruned,
            report.pointers_deleted,
            report.batch_commits,
            len(report.failures),
        )
        if report.failures:
            inc_propagation_run(report.kind, "partial_failure")
            raise PartialPropagationFailure(report.failures, report)
        inc_propagation_run(report.kind, "ok")
        return report


__all__ = [
    "PropagationReport",
    "SliderPropagator",
    "apply_snapshot_for_pointers",
    "remove_items_for_pointers",
]
