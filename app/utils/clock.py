# app/utils/clock.py
"""Epoch-millisecond clock used for every document timestamp.

Services take `now=` overrides; tests can also monkeypatch `now_ms`.
"""

import time


def now_ms() -> int:
    return int(time.time() * 1000)


__all__ = ["now_ms"]
