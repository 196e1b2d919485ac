# tests/test_services/test_usage_pointers.py

import pytest

from app.core.exceptions import ValidationFailedError
from app.schemas.content import UsagePointer
from app.schemas.enums import TargetKind
from app.services import paths
from app.services.usage_pointers import (
    UsagePointerIndex,
    build_pointer_id,
    content_key_for_sub_content,
    parse_pointer,
    resolve_target_path,
)

pytestmark = pytest.mark.anyio


def _series_ptr(**kw) -> UsagePointer:
    base = dict(target_kind=TargetKind.SERIES_SLIDER, series_id="s1", slider_id="sl1", item_key="item_a")
    base.update(kw)
    return UsagePointer(**base)


def _episode_ptr(**kw) -> UsagePointer:
    base = dict(
        target_kind=TargetKind.EPISODE_SLIDER,
        series_id="s1",
        episode_id="e1",
        slider_id="sl9",
        item_key="item_b",
    )
    base.update(kw)
    return UsagePointer(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Ids and targets
# ─────────────────────────────────────────────────────────────────────────────

def test_pointer_ids_are_deterministic_per_target_kind():
    assert build_pointer_id(_series_ptr()) == "seriesSubContentSlider_sl1_item_a"
    assert build_pointer_id(_episode_ptr()) == "episodeSubContentSlider_e1_sl9_item_b"
    assert build_pointer_id(_series_ptr()) == build_pointer_id(_series_ptr(created_by="someone-else"))


def test_pointer_id_requires_slider_and_episode():
    with pytest.raises(ValidationFailedError) as exc:
        build_pointer_id(_series_ptr(slider_id=None))
    assert "sliderId is required" in exc.value.errors

    with pytest.raises(ValidationFailedError) as exc:
        build_pointer_id(_episode_ptr(episode_id=None))
    assert "episodeId is required" in exc.value.errors


def test_pointer_id_rejects_path_separators():
    with pytest.raises(ValidationFailedError):
        build_pointer_id(_series_ptr(item_key="a/b"))


def test_resolve_target_path_for_both_kinds():
    assert resolve_target_path(_series_ptr()) == "series/s1/subContentSliders/sl1"
    assert resolve_target_path(_episode_ptr()) == "episodes/e1/subContentSliders/sl9"
    with pytest.raises(ValidationFailedError):
        resolve_target_path(_episode_ptr(episode_id=None))


def test_content_key_and_parse_pointer():
    assert content_key_for_sub_content("abc") == "subContent_abc"
    with pytest.raises(ValidationFailedError):
        content_key_for_sub_content("")
    assert parse_pointer(None) is None
    assert parse_pointer({"targetKind": "bogus"}) is None
    parsed = parse_pointer({"targetKind": "seriesSubContentSlider", "seriesId": "s1", "sliderId": "x", "itemKey": "k"})
    assert parsed is not None and parsed.slider_id == "x"


# ─────────────────────────────────────────────────────────────────────────────
# Index
# ─────────────────────────────────────────────────────────────────────────────

async def test_record_pointer_is_an_idempotent_upsert(store):
    index = UsagePointerIndex(store)
    pid = await index.record_pointer("s1", "subContent_c1", _series_ptr(), now=100)
    again = await index.record_pointer("s1", "subContent_c1", _series_ptr(), now=200)
    assert pid == again

    entries = await index.list_pointers("s1", "subContent_c1")
    assert len(entries) == 1
    doc = (await store.get(paths.pointer("s1", "subContent_c1", pid))).data()
    assert doc["targetKind"] == "seriesSubContentSlider"
    assert doc["itemKey"] == "item_a"
    assert doc["updatedAt"] == 200


async def test_list_pointers_keeps_malformed_entries_unparsed(store):
    index = UsagePointerIndex(store)
    await index.record_pointer("s1", "subContent_c1", _series_ptr(), now=1)
    await store.set(paths.pointer("s1", "subContent_c1", "garbage"), {"nonsense": True})

    entries = await index.list_pointers("s1", "subContent_c1")
    by_id = {e.id: e for e in entries}
    assert by_id["garbage"].pointer is None
    assert by_id["seriesSubContentSlider_sl1_item_a"].pointer.item_key == "item_a"


async def test_pointers_are_scoped_per_content_key(store):
    index = UsagePointerIndex(store)
    await index.record_pointer("s1", "subContent_c1", _series_ptr(), now=1)
    assert await index.list_pointers("s1", "subContent_c2") == []
    assert await index.list_pointers("s2", "subContent_c1") == []


async def test_record_and_delete_inside_transaction(store):
    index = UsagePointerIndex(store)

    async def _record(txn):
        return await index.record_pointer("s1", "subContent_c1", _episode_ptr(), txn=txn, now=5)

    pid = await store.run_transaction(_record)
    assert len(await index.list_pointers("s1", "subContent_c1")) == 1

    async def _delete(txn):
        await index.delete_pointer("s1", "subContent_c1", pid, txn=txn)

    await store.run_transaction(_delete)
    assert await index.list_pointers("s1", "subContent_c1") == []
