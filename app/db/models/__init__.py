# app/db/models/__init__.py
"""ORM models backing the SQL document store."""

from .document import Document

__all__ = ["Document"]
