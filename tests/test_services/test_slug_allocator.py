# tests/test_services/test_slug_allocator.py

import pytest

from app.core.exceptions import SlugInvalidError, SlugTakenError
from app.services import paths
from app.services.slug_allocator import (
    SlugAllocator,
    is_valid_slug,
    parse_slug_suffix,
    slug_with_suffix,
    slugify,
)

pytestmark = pytest.mark.anyio


async def _reserve(store, slug, series_id="other"):
    await store.set(paths.slug_reservation(slug), {"slug": slug, "seriesId": series_id, "createdAt": 1})


# ─────────────────────────────────────────────────────────────────────────────
# Normalization
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "text, expected",
    [
        ("My Show", "my-show"),
        ("  Café  Déjà Vu!  ", "cafe-deja-vu"),
        ("Hello---World", "hello-world"),
        ("--Edge--", "edge"),
        ("Ünïcödé & Friends", "unicode-friends"),
        ("", ""),
        ("!!!", ""),
        ("Привет мир", "privet-mir"),
        ("Season 2: The Return", "season-2-the-return"),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_slugify_caps_length_without_trailing_hyphen():
    slug = slugify("word " * 40)
    assert len(slug) <= 60
    assert not slug.endswith("-")
    assert is_valid_slug(slug)


def test_is_valid_slug():
    assert is_valid_slug("my-show-2")
    assert not is_valid_slug("My-Show")
    assert not is_valid_slug("my--show")
    assert not is_valid_slug("-my-show")
    assert not is_valid_slug("")
    assert not is_valid_slug(None)
    assert not is_valid_slug("a" * 61)


def test_suffix_helpers():
    assert slug_with_suffix("my-show", 2) == "my-show-2"
    long_base = "a" * 60
    suffixed = slug_with_suffix(long_base, 12)
    assert suffixed.endswith("-12") and len(suffixed) == 60
    assert parse_slug_suffix("my-show-3") == ("my-show", 3)
    assert parse_slug_suffix("my-show") == ("my-show", None)


# ─────────────────────────────────────────────────────────────────────────────
# Allocation
# ─────────────────────────────────────────────────────────────────────────────

async def test_next_available_picks_first_free_suffix(store):
    await _reserve(store, "my-show")
    await _reserve(store, "my-show-2")

    async def _fn(txn):
        return await SlugAllocator().allocate(txn, title="My Show", series_id="new")

    assert await store.run_transaction(_fn) == "my-show-3"


async def test_own_reservation_counts_as_available(store):
    await _reserve(store, "my-show", series_id="s1")

    async def _fn(txn):
        return await SlugAllocator().allocate(txn, candidate="My Show", series_id="s1")

    assert await store.run_transaction(_fn) == "my-show"


async def test_exhausted_suffixes_fall_back_to_timestamp(store):
    allocator = SlugAllocator(max_suffix_attempts=2)
    for slug in ("my-show", "my-show-2", "my-show-3"):
        await _reserve(store, slug)

    async def _fn(txn):
        return await allocator.next_available(txn, "my-show", now=1234)

    assert await store.run_transaction(_fn) == "my-show-1234"


async def test_allocate_rejects_underivable_slugs(store):
    async def _bad_candidate(txn):
        return await SlugAllocator().allocate(txn, candidate="!!!")

    async def _bad_title(txn):
        return await SlugAllocator().allocate(txn, title="???")

    with pytest.raises(SlugInvalidError):
        await store.run_transaction(_bad_candidate)
    with pytest.raises(SlugInvalidError):
        await store.run_transaction(_bad_title)


async def test_claim_raises_taken_with_suggestion(store):
    await _reserve(store, "my-show")

    async def _fn(txn):
        return await SlugAllocator().claim(txn, "my-show", series_id="s1")

    with pytest.raises(SlugTakenError) as exc:
        await store.run_transaction(_fn)
    assert exc.value.slug == "my-show"
    assert exc.value.suggestion == "my-show-2"


async def test_reserve_and_release_are_queued_on_the_transaction(store):
    async def _reserve_fn(txn):
        return SlugAllocator.reserve(txn, "fresh", "s1", now=5)

    body = await store.run_transaction(_reserve_fn)
    assert body == {"slug": "fresh", "seriesId": "s1", "createdAt": 5}
    assert (await store.get(paths.slug_reservation("fresh"))).get("seriesId") == "s1"

    async def _release_fn(txn):
        SlugAllocator.release(txn, "fresh")

    await store.run_transaction(_release_fn)
    assert not (await store.get(paths.slug_reservation("fresh"))).exists


async def test_concurrent_reservation_of_same_slug_retries_onto_suffix(store):
    attempts = {"n": 0}

    async def _fn(txn):
        attempts["n"] += 1
        slug = await SlugAllocator().allocate(txn, title="Race", series_id="mine")
        if attempts["n"] == 1:
            # someone else reserves "race" between our read and commit
            await _reserve(store, "race", series_id="theirs")
        SlugAllocator.reserve(txn, slug, "mine")
        return slug

    assert await store.run_transaction(_fn) == "race-2"
    assert attempts["n"] == 2
    assert (await store.get(paths.slug_reservation("race"))).get("seriesId") == "theirs"
