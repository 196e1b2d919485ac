# app/services/slug_allocator.py
from __future__ import annotations

"""
Series slug allocation.

A slug is reserved by writing `seriesSlugs/{slug}` → `{slug, seriesId, createdAt}`
inside the same transaction that writes the series document, so the
reservation and the series can never disagree. Every availability probe goes
through `txn.get`, which makes a concurrent reservation of the same slug
abort one of the two transactions at commit.
"""

import logging
import re
from typing import Any, Dict, Optional, Tuple

from slugify import slugify as _slugify

from app.core.config import settings
from app.core.exceptions import SlugInvalidError, SlugTakenError
from app.docstore.base import Transaction
from app.services import paths
from app.utils import clock

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_SUFFIX = re.compile(r"^(.+)-(\d+)$")


def _max_length() -> int:
    return settings.SLUG_MAX_LENGTH


def slugify(text: Optional[str]) -> str:
    """Lowercase, transliterate to ASCII, join alphanumeric runs with single hyphens, cap length."""
    if not text:
        return ""
    slug = _slugify(
        str(text),
        separator="-",
        lowercase=True,
        max_length=_max_length(),
        word_boundary=False,
    )
    return slug.strip("-")


def is_valid_slug(slug: Any) -> bool:
    if not isinstance(slug, str) or not slug or len(slug) > _max_length():
        return False
    return bool(SLUG_PATTERN.match(slug))


def slug_with_suffix(base: str, n: int) -> str:
    """`my-series` + 2 → `my-series-2`, trimming the base so the result fits the cap."""
    suffix = f"-{n}"
    room = _max_length() - len(suffix)
    if len(base) > room:
        base = base[:room].rstrip("-")
    return f"{base}{suffix}"


def parse_slug_suffix(slug: str) -> Tuple[str, Optional[int]]:
    match = _SUFFIX.match(slug or "")
    if match:
        return match.group(1), int(match.group(2))
    return slug, None


class SlugAllocator:
    def __init__(self, max_suffix_attempts: Optional[int] = None) -> None:
        self.max_suffix_attempts = int(max_suffix_attempts or settings.SLUG_MAX_SUFFIX_ATTEMPTS)

    # ── probes ───────────────────────────────────────────────
    @staticmethod
    async def is_available(txn: Transaction, slug: str, *, series_id: Optional[str] = None) -> bool:
        """Free, or already reserved by `series_id` itself."""
        snap = await txn.get(paths.slug_reservation(slug))
        if not snap.exists:
            return True
        return series_id is not None and snap.get("seriesId") == series_id

    async def next_available(
        self,
        txn: Transaction,
        base: str,
        *,
        series_id: Optional[str] = None,
        now: Optional[int] = None,
    ) -> str:
        if await self.is_available(txn, base, series_id=series_id):
            return base
        for n in range(2, self.max_suffix_attempts + 2):
            candidate = slug_with_suffix(base, n)
            if await self.is_available(txn, candidate, series_id=series_id):
                return candidate
        ts = now if now is not None else clock.now_ms()
        fallback = slug_with_suffix(base, ts)
        logger.warning("Slug suffixes exhausted for %r, falling back to %s", base, fallback)
        return fallback

    # ── allocation ───────────────────────────────────────────
    @staticmethod
    def normalize_candidate(candidate: str) -> str:
        slug = slugify(candidate)
        if not is_valid_slug(slug):
            raise SlugInvalidError(candidate)
        return slug

    async def allocate(
        self,
        txn: Transaction,
        *,
        candidate: Optional[str] = None,
        title: Optional[str] = None,
        series_id: Optional[str] = None,
        now: Optional[int] = None,
    ) -> str:
        """Pick a free slug from an explicit candidate, else from the title."""
        if candidate:
            base = self.normalize_candidate(candidate)
        else:
            base = slugify(title)
            if not is_valid_slug(base):
                raise SlugInvalidError(title or "", "Cannot derive a slug from the series title")
        return await self.next_available(txn, base, series_id=series_id, now=now)

    async def claim(
        self,
        txn: Transaction,
        slug: str,
        *,
        series_id: str,
        now: Optional[int] = None,
    ) -> str:
        """Exact slug or `SlugTaken` carrying the next free alternative."""
        normalized = self.normalize_candidate(slug)
        if await self.is_available(txn, normalized, series_id=series_id):
            return normalized
        suggestion = await self.next_available(txn, normalized, series_id=series_id, now=now)
        raise SlugTakenError(normalized, suggestion)

    # ── writes (queued on the caller's transaction) ──────────
    @staticmethod
    def reserve(txn: Transaction, slug: str, series_id: str, *, now: Optional[int] = None) -> Dict[str, Any]:
        body = {"slug": slug, "seriesId": series_id, "createdAt": now if now is not None else clock.now_ms()}
        txn.set(paths.slug_reservation(slug), body)
        return body

    @staticmethod
    def release(txn: Transaction, slug: str) -> None:
        txn.delete(paths.slug_reservation(slug))


__all__ = [
    "SLUG_PATTERN",
    "SlugAllocator",
    "is_valid_slug",
    "parse_slug_suffix",
    "slug_with_suffix",
    "slugify",
]
