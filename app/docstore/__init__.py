"""
Document store backends.

`get_document_store()` returns the process-wide store built from settings
(`DOCSTORE_BACKEND=memory|sql`); services receive it explicitly through
FastAPI dependencies, never by importing a global.
"""

from typing import Optional
import logging

from app.core.config import Settings, settings
from app.docstore.base import (
    BatchLimitExceeded,
    DocumentNotFound,
    DocumentSnapshot,
    DocumentStore,
    DocumentStoreError,
    StoreLimits,
    Transaction,
    TransactionConflict,
    TransactionError,
    WriteBatch,
)
from app.docstore.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)

_store: Optional[DocumentStore] = None


def build_document_store(cfg: Optional[Settings] = None) -> DocumentStore:
    cfg = cfg or settings
    limits = StoreLimits(
        max_batch_ops=cfg.DOCSTORE_MAX_BATCH_OPS,
        max_transaction_attempts=cfg.TRANSACTION_MAX_ATTEMPTS,
    )
    if cfg.DOCSTORE_BACKEND == "sql":
        # imported lazily so the memory backend never needs a database driver
        from app.db.session import get_async_session_maker
        from app.docstore.sql import SqlDocumentStore

        logger.info("Document store backend: sql")
        return SqlDocumentStore(get_async_session_maker(), limits)
    logger.info("Document store backend: memory")
    return InMemoryDocumentStore(limits)


def get_document_store() -> DocumentStore:
    global _store
    if _store is None:
        _store = build_document_store()
    return _store


def set_document_store(store: Optional[DocumentStore]) -> None:
    """Install (or with `None`, reset) the process-wide store."""
    global _store
    _store = store


__all__ = [
    "BatchLimitExceeded",
    "DocumentNotFound",
    "DocumentSnapshot",
    "DocumentStore",
    "DocumentStoreError",
    "InMemoryDocumentStore",
    "StoreLimits",
    "Transaction",
    "TransactionConflict",
    "TransactionError",
    "WriteBatch",
    "build_document_store",
    "get_document_store",
    "set_document_store",
]
