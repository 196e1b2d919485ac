"""
MoviesNow CMS — SQLAlchemy Base registry
========================================

Import all ORM models so their tables are registered on `Base.metadata`
(Alembic autogeneration, test `create_all`).

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base
from app.db.models.document import Document

__all__ = ["Base", "Document"]
