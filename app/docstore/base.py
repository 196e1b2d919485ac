# app/docstore/base.py
from __future__ import annotations

"""
MoviesNow CMS — Document Store contract
=======================================

Abstract, async contract for the hierarchical document database every CMS
service talks to. Paths are slash-separated and alternate
`collection/doc/collection/doc…`, so a document path always has an even
number of segments and a collection path an odd number.

Semantics
---------
- `set(path, data, merge=False)` replaces (or deep-merges) a document.
- `update(path, partial)` patches fields (dotted keys address nested maps)
  and fails with `DocumentNotFound` when the document is absent.
- `batch()` queues at most `max_batch_ops` writes and applies them atomically.
- `run_transaction(fn)` gives `fn` an optimistic `Transaction`: reads record
  document versions, writes are buffered, and commit aborts with
  `TransactionConflict` if anything read changed in the meantime. The whole
  function is re-run from scratch up to `max_transaction_attempts` times.

Implementations live in `app.docstore.memory` and `app.docstore.sql`.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, TypeVar

from app.core.metrics import inc_transaction_conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

WhereClause = Tuple[str, str, Any]

SUPPORTED_OPERATORS = frozenset({"==", "!=", "<", "<=", ">", ">=", "in", "array-contains"})


# ─────────────────────────────────────────────────────────────
# ⚠️ Store errors
# ─────────────────────────────────────────────────────────────
class DocumentStoreError(Exception):
    """Base class for storage-level failures (not part of the domain taxonomy)."""


class DocumentNotFound(DocumentStoreError):
    """`update()` addressed a document that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}")
        self.path = path


class TransactionConflict(DocumentStoreError):
    """A document read inside a transaction changed before commit."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Concurrent modification detected on {path}")
        self.path = path


class TransactionError(DocumentStoreError):
    """Transaction misuse (e.g., reading after a write was queued)."""


class BatchLimitExceeded(DocumentStoreError):
    """More operations were queued than a single commit accepts."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Batch exceeds the per-commit limit of {limit} operations")
        self.limit = limit


# ─────────────────────────────────────────────────────────────
# 🧭 Path helpers
# ─────────────────────────────────────────────────────────────
def split_path(path: str) -> List[str]:
    parts = (path or "").strip("/").split("/")
    if not parts or any(not p for p in parts):
        raise ValueError(f"Invalid document path: {path!r}")
    return parts


def is_document_path(path: str) -> bool:
    return len(split_path(path)) % 2 == 0


def ensure_document_path(path: str) -> str:
    if not is_document_path(path):
        raise ValueError(f"Expected a document path, got collection path {path!r}")
    return "/".join(split_path(path))


def ensure_collection_path(path: str) -> str:
    if is_document_path(path):
        raise ValueError(f"Expected a collection path, got document path {path!r}")
    return "/".join(split_path(path))


def parent_collection(path: str) -> str:
    return "/".join(split_path(path)[:-1])


def document_id(path: str) -> str:
    return split_path(path)[-1]


def join_path(*parts: str) -> str:
    return "/".join(str(p).strip("/") for p in parts)


# ─────────────────────────────────────────────────────────────
# 🧩 Field helpers (dotted paths, merge, filtering)
# ─────────────────────────────────────────────────────────────
_MISSING = object()


def get_field(data: Optional[Dict[str, Any]], dotted: str, default: Any = None) -> Any:
    cur: Any = data or {}
    for key in dotted.split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def apply_update(data: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `data` with `partial` applied (dotted keys create nested maps)."""
    out = copy.deepcopy(data)
    for dotted, value in partial.items():
        keys = dotted.split(".")
        cur = out
        for key in keys[:-1]:
            nxt = cur.get(key)
            if not isinstance(nxt, dict):
                nxt = {}
                cur[key] = nxt
            cur = nxt
        cur[keys[-1]] = copy.deepcopy(value)
    return out


def deep_merge(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Merge `patch` into a copy of `base`; nested maps merge, everything else replaces."""
    out = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = deep_merge(out[key], value)
        else:
            out[key] = copy.deepcopy(value)
    return out


def _compare(op: str, left: Any, right: Any) -> bool:
    if op == "==":
        return left == right
    if op == "!=":
        return left is not _MISSING and left != right
    if op == "in":
        return left in (right or ())
    if op == "array-contains":
        return isinstance(left, list) and right in left
    if left is _MISSING or left is None:
        return False
    try:
        if op == "<":
            return left < right
        if op == "<=":
            return left <= right
        if op == ">":
            return left > right
        if op == ">=":
            return left >= right
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op}")


def matches_where(data: Dict[str, Any], where: Sequence[WhereClause]) -> bool:
    for fld, op, value in where:
        if op not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported operator: {op}")
        left = get_field(data, fld, _MISSING)
        if op == "==" and left is _MISSING:
            return False
        if not _compare(op, left, value):
            return False
    return True


def _sort_key(value: Any) -> Tuple[int, Any]:
    return (0, 0) if value is None else (1, value)


def order_snapshots(
    snapshots: List["DocumentSnapshot"],
    order_by: Optional[Tuple[str, str]],
    limit: Optional[int],
) -> List["DocumentSnapshot"]:
    out = list(snapshots)
    if order_by:
        fld, direction = order_by
        reverse = (direction or "asc").lower() == "desc"
        # documents missing the field sort first when ascending
        out.sort(key=lambda s: _sort_key(get_field(s.raw, fld)), reverse=reverse)
    else:
        out.sort(key=lambda s: s.path)
    if limit is not None:
        out = out[: max(0, int(limit))]
    return out


# ─────────────────────────────────────────────────────────────
# 📄 Snapshot
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class DocumentSnapshot:
    """Immutable view of a document at read time (`version` 0 = never existed)."""

    path: str
    raw: Optional[Dict[str, Any]] = None
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.raw is not None

    @property
    def id(self) -> str:
        return document_id(self.path)

    def data(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.raw) if self.raw is not None else None

    def get(self, dotted: str, default: Any = None) -> Any:
        return get_field(self.raw, dotted, default)


# ─────────────────────────────────────────────────────────────
# ✍️ Write operations (shared by batches and transactions)
# ─────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class WriteOp:
    kind: str  # "set" | "update" | "delete"
    path: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False


class WriteBatch(ABC):
    """Atomic group of writes capped at `max_ops` queued operations."""

    def __init__(self, max_ops: int) -> None:
        self.max_ops = int(max_ops)
        self._ops: List[WriteOp] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    @property
    def ops(self) -> List[WriteOp]:
        return list(self._ops)

    def _enqueue(self, op: WriteOp) -> "WriteBatch":
        if self._committed:
            raise TransactionError("Batch already committed")
        if len(self._ops) >= self.max_ops:
            raise BatchLimitExceeded(self.max_ops)
        self._ops.append(op)
        return self

    def set(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> "WriteBatch":
        return self._enqueue(WriteOp("set", ensure_document_path(path), copy.deepcopy(data), merge))

    def update(self, path: str, partial: Dict[str, Any]) -> "WriteBatch":
        return self._enqueue(WriteOp("update", ensure_document_path(path), copy.deepcopy(partial)))

    def delete(self, path: str) -> "WriteBatch":
        return self._enqueue(WriteOp("delete", ensure_document_path(path)))

    async def commit(self) -> None:
        if self._committed:
            raise TransactionError("Batch already committed")
        if self._ops:
            await self._commit(list(self._ops))
        self._committed = True

    @abstractmethod
    async def _commit(self, ops: List[WriteOp]) -> None: ...


class Transaction(ABC):
    """Optimistic read-then-write unit of work.

    Reads must happen before any write is queued. The versions observed by
    `get`/`query` are re-validated at commit time.
    """

    def __init__(self) -> None:
        self._reads: Dict[str, int] = {}
        self._writes: List[WriteOp] = []

    @property
    def read_versions(self) -> Dict[str, int]:
        return dict(self._reads)

    def _guard_read(self) -> None:
        if self._writes:
            raise TransactionError("Transactions require all reads to be executed before all writes")

    async def get(self, path: str) -> DocumentSnapshot:
        self._guard_read()
        snap = await self._read(ensure_document_path(path))
        self._reads.setdefault(snap.path, snap.version)
        return snap

    async def query(
        self,
        collection_path: str,
        where: Sequence[WhereClause] = (),
        *,
        order_by: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        self._guard_read()
        snaps = await self._query(ensure_collection_path(collection_path), where, order_by, limit)
        for snap in snaps:
            self._reads.setdefault(snap.path, snap.version)
        return snaps

    def set(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> "Transaction":
        self._writes.append(WriteOp("set", ensure_document_path(path), copy.deepcopy(data), merge))
        return self

    def update(self, path: str, partial: Dict[str, Any]) -> "Transaction":
        self._writes.append(WriteOp("update", ensure_document_path(path), copy.deepcopy(partial)))
        return self

    def delete(self, path: str) -> "Transaction":
        self._writes.append(WriteOp("delete", ensure_document_path(path)))
        return self

    async def commit(self) -> None:
        await self._commit(dict(self._reads), list(self._writes))

    @abstractmethod
    async def _read(self, path: str) -> DocumentSnapshot: ...

    @abstractmethod
    async def _query(
        self,
        collection_path: str,
        where: Sequence[WhereClause],
        order_by: Optional[Tuple[str, str]],
        limit: Optional[int],
    ) -> List[DocumentSnapshot]: ...

    @abstractmethod
    async def _commit(self, reads: Dict[str, int], writes: List[WriteOp]) -> None: ...


# ─────────────────────────────────────────────────────────────
# 🗄️ Store
# ─────────────────────────────────────────────────────────────
@dataclass
class StoreLimits:
    max_batch_ops: int = 500
    max_transaction_attempts: int = 5


class DocumentStore(ABC):
    """Async document database contract used by every CMS service."""

    def __init__(self, limits: Optional[StoreLimits] = None) -> None:
        self.limits = limits or StoreLimits()

    @property
    def max_batch_ops(self) -> int:
        return self.limits.max_batch_ops

    # ── single-document API ────────────────────────────────────
    @abstractmethod
    async def get(self, path: str) -> DocumentSnapshot: ...

    @abstractmethod
    async def set(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> None: ...

    @abstractmethod
    async def update(self, path: str, partial: Dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete(self, path: str) -> None: ...

    @abstractmethod
    async def query(
        self,
        collection_path: str,
        where: Sequence[WhereClause] = (),
        *,
        order_by: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]: ...

    # ── multi-document API ─────────────────────────────────────
    @abstractmethod
    def batch(self) -> WriteBatch: ...

    @abstractmethod
    def _begin(self) -> Transaction: ...

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[T]],
        *,
        max_attempts: Optional[int] = None,
    ) -> T:
        """Run `fn` inside an optimistic transaction, retrying on conflicts.

        Domain errors raised by `fn` abort immediately (no retry, nothing written).
        """
        attempts = max(1, int(max_attempts or self.limits.max_transaction_attempts))
        last: Optional[TransactionConflict] = None
        for attempt in range(1, attempts + 1):
            txn = self._begin()
            result = await fn(txn)
            try:
                await txn.commit()
                return result
            except TransactionConflict as exc:
                last = exc
                inc_transaction_conflict()
                logger.warning(
                    "Transaction conflict on %s (attempt %s/%s)", exc.path, attempt, attempts
                )
        assert last is not None
        raise last

    async def ping(self) -> bool:
        return True


__all__ = [
    "DocumentStoreError",
    "DocumentNotFound",
    "TransactionConflict",
    "TransactionError",
    "BatchLimitExceeded",
    "DocumentSnapshot",
    "DocumentStore",
    "StoreLimits",
    "Transaction",
    "WriteBatch",
    "WriteOp",
    "WhereClause",
    "apply_update",
    "deep_merge",
    "document_id",
    "ensure_collection_path",
    "ensure_document_path",
    "get_field",
    "is_document_path",
    "join_path",
    "matches_where",
    "order_snapshots",
    "parent_collection",
    "split_path",
]
