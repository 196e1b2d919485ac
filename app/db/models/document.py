# app/db/models/document.py
from __future__ import annotations

"""
🗂️ MoviesNow CMS — Document row
===============================

Backing table for `SqlDocumentStore`. One row per document path; the JSON
payload is opaque to SQL and filtered in Python (no query planning).

Why this design?
----------------
- **Optimistic concurrency**: `version` is bumped on every write. At commit a
  transaction re-reads every row it read with `SELECT … FOR UPDATE` and
  compares versions; a missing row counts as version 0.
- **Collection scans**: `collection` is indexed so sub-collection listings
  (pointers, sliders, seasons) are a single range read.
"""

from sqlalchemy import BigInteger, Column, DateTime, Index, JSON, String, func
from sqlalchemy.dialects.postgresql import JSONB

from app.db.base_class import Base


class Document(Base):
    """A single document addressed by its slash-separated path."""

    __tablename__ = "documents"

    path = Column(String(1024), primary_key=True, doc="Full document path (collection/doc/...).")
    collection = Column(String(1024), nullable=False, doc="Parent collection path.")
    doc_id = Column(String(255), nullable=False, doc="Last path segment.")
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False)
    version = Column(BigInteger, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )
