"""Utility helpers for the MoviesNow CMS.

Submodules:
- clock: epoch-millisecond timestamps for documents
"""

__all__: list[str] = []
