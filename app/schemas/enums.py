from __future__ import annotations

"""
Central enum definitions used across the MoviesNow CMS.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed (stored inside documents).
• Grouped by domain for clarity; keep `__all__` in sync when adding new enums.
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Roles
# ──────────────────────────────────────────────────────────────
class UserRole(str, PyEnum):
    """Role claimed by the caller's token."""
    PRODUCER = "producer"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


# ──────────────────────────────────────────────────────────────
# Series publication
# ──────────────────────────────────────────────────────────────
class PublicationStatus(str, PyEnum):
    """Lifecycle of a series' public copy (the only public-visibility gate)."""
    DRAFT = "DRAFT"
    IN_REVIEW = "IN_REVIEW"
    PUBLISHED = "PUBLISHED"
    HIDDEN = "HIDDEN"
    REJECTED = "REJECTED"


class SeriesType(str, PyEnum):
    SEASON_BASED = "season-based"
    LIMITED = "limited"


# ──────────────────────────────────────────────────────────────
# Sub-content & sliders
# ──────────────────────────────────────────────────────────────
class SubContentType(str, PyEnum):
    VIDEO = "video"
    ARTICLE = "article"
    GALLERY = "gallery"
    OTHER = "other"


class SubContentStatus(str, PyEnum):
    """Only `published` sub-content is active inside sliders."""
    DRAFT = "draft"
    PUBLISHED = "published"


class TargetKind(str, PyEnum):
    """Kind of slider a usage pointer points at."""
    SERIES_SLIDER = "seriesSubContentSlider"
    EPISODE_SLIDER = "episodeSubContentSlider"


__all__ = [
    "UserRole",
    "PublicationStatus",
    "SeriesType",
    "SubContentType",
    "SubContentStatus",
    "TargetKind",
]
