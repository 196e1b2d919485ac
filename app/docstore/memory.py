# app/docstore/memory.py
from __future__ import annotations

"""
In-memory Document Store
========================

Dict-backed implementation of `DocumentStore` for local development and
tests. Every path keeps a monotonically increasing version (never reset on
delete), which is what optimistic transactions compare at commit time.

Extras for tests
----------------
- `batch_commits` counts committed batches (the propagator's ceiling is
  observable through it).
- `fail_reads_for` makes `get()` raise for chosen paths, to simulate a store
  outage on a single target.
"""

import asyncio
import copy
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from app.docstore.base import (
    DocumentNotFound,
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    StoreLimits,
    Transaction,
    TransactionConflict,
    WhereClause,
    WriteBatch,
    WriteOp,
    apply_update,
    deep_merge,
    ensure_collection_path,
    ensure_document_path,
    matches_where,
    order_snapshots,
    parent_collection,
)


class _MemoryBatch(WriteBatch):
    def __init__(self, store: "InMemoryDocumentStore") -> None:
        super().__init__(store.max_batch_ops)
        self._store = store

    async def _commit(self, ops: List[WriteOp]) -> None:
        async with self._store._lock:
            self._store._apply_all(ops)
            self._store.batch_commits += 1


class _MemoryTransaction(Transaction):
    def __init__(self, store: "InMemoryDocumentStore") -> None:
        super().__init__()
        self._store = store

    async def _read(self, path: str) -> DocumentSnapshot:
        return self._store._snapshot(path)

    async def _query(
        self,
        collection_path: str,
        where: Sequence[WhereClause],
        order_by: Optional[Tuple[str, str]],
        limit: Optional[int],
    ) -> List[DocumentSnapshot]:
        return self._store._query(collection_path, where, order_by, limit)

    async def _commit(self, reads: Dict[str, int], writes: List[WriteOp]) -> None:
        async with self._store._lock:
            for path, seen in reads.items():
                if self._store._versions.get(path, 0) != seen:
                    raise TransactionConflict(path)
            if writes:
                self._store._apply_all(writes)
            self._store.transaction_commits += 1


class InMemoryDocumentStore(DocumentStore):
    """Process-local document store with real batch and transaction semantics."""

    def __init__(self, limits: Optional[StoreLimits] = None) -> None:
        super().__init__(limits)
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._versions: Dict[str, int] = {}
        self._lock = asyncio.Lock()
        self.batch_commits = 0
        self.transaction_commits = 0
        self.fail_reads_for: Set[str] = set()

    # ── internals ────────────────────────────────────────────
    def _snapshot(self, path: str) -> DocumentSnapshot:
        if path in self.fail_reads_for:
            raise DocumentStoreError(f"Simulated read failure for {path}")
        raw = self._docs.get(path)
        return DocumentSnapshot(
            path=path,
            raw=copy.deepcopy(raw) if raw is not None else None,
            version=self._versions.get(path, 0),
        )

    def _query(
        self,
        collection_path: str,
        where: Sequence[WhereClause],
        order_by: Optional[Tuple[str, str]],
        limit: Optional[int],
    ) -> List[DocumentSnapshot]:
        hits = [
            self._snapshot(path)
            for path, data in self._docs.items()
            if parent_collection(path) == collection_path and matches_where(data, where)
        ]
        return order_snapshots(hits, order_by, limit)

    def _bump(self, path: str) -> None:
        self._versions[path] = self._versions.get(path, 0) + 1

    def _apply_all(self, ops: Iterable[WriteOp]) -> None:
        """Validate every op against a scratch copy, then swap it in (all-or-nothing)."""
        staged = dict(self._docs)
        touched: List[str] = []
        for op in ops:
            current = staged.get(op.path)
            if op.kind == "set":
                data = op.data or {}
                staged[op.path] = deep_merge(current, data) if (op.merge and current is not None) else copy.deepcopy(data)
            elif op.kind == "update":
                if current is None:
                    raise DocumentNotFound(op.path)
                staged[op.path] = apply_update(current, op.data or {})
            elif op.kind == "delete":
                staged.pop(op.path, None)
            else:  # pragma: no cover
                raise ValueError(f"Unknown write op: {op.kind}")
            touched.append(op.path)
        self._docs = staged
        for path in touched:
            self._bump(path)

    # ── public API ───────────────────────────────────────────
    async def get(self, path: str) -> DocumentSnapshot:
        return self._snapshot(ensure_document_path(path))

    async def set(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> None:
        async with self._lock:
            self._apply_all([WriteOp("set", ensure_document_path(path), copy.deepcopy(data), merge)])

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        async with self._lock:
            self._apply_all([WriteOp("update", ensure_document_path(path), copy.deepcopy(partial))])

    async def delete(self, path: str) -> None:
        async with self._lock:
            self._apply_all([WriteOp("delete", ensure_document_path(path))])

    async def query(
        self,
        collection_path: str,
        where: Sequence[WhereClause] = (),
        *,
        order_by: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        return self._query(ensure_collection_path(collection_path), where, order_by, limit)

    def batch(self) -> WriteBatch:
        return _MemoryBatch(self)

    def _begin(self) -> Transaction:
        return _MemoryTransaction(self)

    # ── test conveniences ────────────────────────────────────
    def paths(self, prefix: str = "") -> List[str]:
        return sorted(p for p in self._docs if p.startswith(prefix))

    def clear(self) -> None:
        self._docs.clear()
        self._versions.clear()
        self.batch_commits = 0
        self.transaction_commits = 0
        self.fail_reads_for.clear()


__all__ = ["InMemoryDocumentStore"]
