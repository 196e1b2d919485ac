# app/db/base_class.py
from __future__ import annotations

"""
# MoviesNow CMS — SQLAlchemy Base

SQLAlchemy 2.0 declarative **Base** with global naming conventions
(Alembic-friendly) and a compact `__repr__`.

The CMS keeps a single relational table (`documents`); everything else is
modelled as documents on top of it (see `app.docstore.sql`).
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# ──────────────────────────────────────────────────────────────────────────────
# 🏷️ Naming conventions (stable constraint names for Alembic)
# ──────────────────────────────────────────────────────────────────────────────

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Global declarative base for CMS tables."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    def __repr__(self) -> str:  # pragma: no cover (repr convenience)
        key = getattr(self, "path", None)
        return f"{self.__class__.__name__}(path={key!r})"


__all__ = ["Base", "NAMING_CONVENTION"]
