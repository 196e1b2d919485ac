# app/docstore/sql.py
from __future__ import annotations

"""
SQL-backed Document Store
=========================

Implements `DocumentStore` on top of the single `documents` table
(`app.db.models.document.Document`) using SQLAlchemy's async session.

- Single-document writes run in their own short transaction.
- Batches apply all queued ops in one DB transaction (all-or-nothing).
- Optimistic transactions lock every row they read with
  `SELECT … FOR UPDATE` at commit and compare versions; a mismatch (or a
  concurrent insert of a row read as missing) raises `TransactionConflict`.
- `where` filters and ordering run in Python over the collection rows, so the
  store supports exactly the same operators as the in-memory one.
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.models.document import Document
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
    document_id,
    ensure_collection_path,
    ensure_document_path,
    matches_where,
    order_snapshots,
    parent_collection,
)

logger = logging.getLogger(__name__)


def _to_snapshot(path: str, row: Optional[Document]) -> DocumentSnapshot:
    if row is None:
        return DocumentSnapshot(path=path, raw=None, version=0)
    return DocumentSnapshot(path=row.path, raw=copy.deepcopy(row.data), version=int(row.version))


async def _apply_ops(session: AsyncSession, ops: Sequence[WriteOp]) -> None:
    """Apply write ops inside an open session transaction."""
    for op in ops:
        row = await session.get(Document, op.path, with_for_update=True)
        if op.kind == "set":
            data = op.data or {}
            if row is None:
                session.add(
                    Document(
                        path=op.path,
                        collection=parent_collection(op.path),
                        doc_id=document_id(op.path),
                        data=copy.deepcopy(data),
                        version=1,
                    )
                )
            else:
                row.data = deep_merge(row.data or {}, data) if op.merge else copy.deepcopy(data)
                row.version = int(row.version) + 1
        elif op.kind == "update":
            if row is None:
                raise DocumentNotFound(op.path)
            row.data = apply_update(row.data or {}, op.data or {})
            row.version = int(row.version) + 1
        elif op.kind == "delete":
            if row is not None:
                await session.delete(row)
        else:  # pragma: no cover
            raise ValueError(f"Unknown write op: {op.kind}")
        # keep later ops on the same path consistent with this one
        await session.flush()


async def _query_rows(
    session: AsyncSession,
    collection_path: str,
    where: Sequence[WhereClause],
    order_by: Optional[Tuple[str, str]],
    limit: Optional[int],
) -> List[DocumentSnapshot]:
    result = await session.execute(select(Document).where(Document.collection == collection_path))
    hits = [
        _to_snapshot(row.path, row)
        for row in result.scalars().all()
        if matches_where(row.data or {}, where)
    ]
    return order_snapshots(hits, order_by, limit)


class _SqlBatch(WriteBatch):
    def __init__(self, store: "SqlDocumentStore") -> None:
        super().__init__(store.max_batch_ops)
        self._store = store

    async def _commit(self, ops: List[WriteOp]) -> None:
        await self._store._write(ops)


class _SqlTransaction(Transaction):
    def __init__(self, store: "SqlDocumentStore") -> None:
        super().__init__()
        self._store = store

    async def _read(self, path: str) -> DocumentSnapshot:
        return await self._store.get(path)

    async def _query(
        self,
        collection_path: str,
        where: Sequence[WhereClause],
        order_by: Optional[Tuple[str, str]],
        limit: Optional[int],
    ) -> List[DocumentSnapshot]:
        return await self._store.query(collection_path, where, order_by=order_by, limit=limit)

    async def _commit(self, reads: Dict[str, int], writes: List[WriteOp]) -> None:
        try:
            async with self._store._session_maker() as session:
                async with session.begin():
                    for path, seen in reads.items():
                        row = await session.get(Document, path, with_for_update=True, populate_existing=True)
                        current = int(row.version) if row is not None else 0
                        if current != seen:
                            raise TransactionConflict(path)
                    if writes:
                        await _apply_ops(session, writes)
        except IntegrityError as exc:
            first = next(iter(reads), writes[0].path if writes else "")
            raise TransactionConflict(first) from exc
        except SQLAlchemyError as exc:
            logger.exception("Transaction commit failed")
            raise DocumentStoreError("Transaction commit failed") from exc


class SqlDocumentStore(DocumentStore):
    """Document store persisted in Postgres (JSONB) through SQLAlchemy async."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        limits: Optional[StoreLimits] = None,
    ) -> None:
        super().__init__(limits)
        self._session_maker = session_maker

    async def _write(self, ops: Sequence[WriteOp]) -> None:
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    await _apply_ops(session, ops)
        except IntegrityError as exc:
            raise TransactionConflict(ops[0].path if ops else "") from exc
        except SQLAlchemyError as exc:
            logger.exception("Document write failed")
            raise DocumentStoreError("Document write failed") from exc

    # ── public API ───────────────────────────────────────────
    async def get(self, path: str) -> DocumentSnapshot:
        path = ensure_document_path(path)
        try:
            async with self._session_maker() as session:
                row = await session.get(Document, path)
                return _to_snapshot(path, row)
        except SQLAlchemyError as exc:
            logger.exception("Document read failed path=%s", path)
            raise DocumentStoreError("Document read failed") from exc

    async def set(self, path: str, data: Dict[str, Any], *, merge: bool = False) -> None:
        await self._write([WriteOp("set", ensure_document_path(path), copy.deepcopy(data), merge)])

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        await self._write([WriteOp("update", ensure_document_path(path), copy.deepcopy(partial))])

    async def delete(self, path: str) -> None:
        await self._write([WriteOp("delete", ensure_document_path(path))])

    async def query(
        self,
        collection_path: str,
        where: Sequence[WhereClause] = (),
        *,
        order_by: Optional[Tuple[str, str]] = None,
        limit: Optional[int] = None,
    ) -> List[DocumentSnapshot]:
        collection_path = ensure_collection_path(collection_path)
        try:
            async with self._session_maker() as session:
                return await _query_rows(session, collection_path, where, order_by, limit)
        except SQLAlchemyError as exc:
            logger.exception("Document query failed collection=%s", collection_path)
            raise DocumentStoreError("Document query failed") from exc

    def batch(self) -> WriteBatch:
        return _SqlBatch(self)

    def _begin(self) -> Transaction:
        return _SqlTransaction(self)

    async def ping(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception("Document store ping failed")
            return False


__all__ = ["SqlDocumentStore"]
