# tests/test_services/test_slider_propagation.py

import pytest

from app.core.exceptions import PartialPropagationFailure, ValidationFailedError
from app.schemas.content import UsagePointer
from app.schemas.enums import TargetKind
from app.services import paths
from app.services.slider_propagation import (
    SliderPropagator,
    apply_snapshot_for_pointers,
    remove_items_for_pointers,
)
from app.services.usage_pointers import UsagePointerIndex
from tests.utils.factory import seed_series_slider_item, seed_sub_content, slider_item

pytestmark = pytest.mark.anyio

CK = "subContent_c1"


def _after(**kw):
    doc = {"seriesId": "s1", "title": "New title", "type": "video", "status": "published", "updatedAt": 500}
    doc.update(kw)
    return doc


async def _items(store, slider_id="sl1", series_id="s1"):
    return (await store.get(paths.series_slider(series_id, slider_id))).get("items")


# ─────────────────────────────────────────────────────────────────────────────
# Pure helpers
# ─────────────────────────────────────────────────────────────────────────────

def test_apply_snapshot_leaves_unaddressed_items_untouched():
    a = slider_item("s1", "c1", "k1")
    b = slider_item("s1", "c2", "k2")
    snap = {**a["snapshot"], "title": "Changed"}
    updated, missing, changed = apply_snapshot_for_pointers([a, b], ["k1", "zz"], snap, False, 9, content_key=CK)
    assert changed
    assert missing == ["zz"]
    assert updated[0]["snapshot"]["title"] == "Changed"
    assert updated[0]["isActive"] is False and updated[0]["updatedAt"] == 9
    assert updated[1] is b


def test_apply_snapshot_is_a_noop_when_already_current():
    a = slider_item("s1", "c1", "k1")
    _, missing, changed = apply_snapshot_for_pointers([a], ["k1"], a["snapshot"], True, 9, content_key=CK)
    assert not changed and not missing


def test_item_key_reused_for_other_content_counts_as_missing():
    other = slider_item("s1", "c2", "k1")
    _, missing, changed = apply_snapshot_for_pointers([other], ["k1"], {}, True, 9, content_key=CK)
    assert missing == ["k1"] and not changed


def test_remove_items_reports_missing_keys():
    a = slider_item("s1", "c1", "k1")
    b = slider_item("s1", "c2", "k2")
    updated, missing = remove_items_for_pointers([a, b], ["k1", "gone"], content_key=CK)
    assert updated == [b]
    assert missing == ["gone"]


# ─────────────────────────────────────────────────────────────────────────────
# Update path
# ─────────────────────────────────────────────────────────────────────────────

async def test_update_without_pointers_is_a_noop(store):
    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=1)
    assert report.pointers == 0 and report.sliders_updated == 0
    assert store.batch_commits == 0


async def test_update_refreshes_every_embedding_slider(store):
    await seed_sub_content(store, "s1", "c1")
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    await seed_series_slider_item(store, "s1", "sl2", "c1", "k2")
    # unrelated item in the same slider stays as it is
    await seed_series_slider_item(store, "s1", "sl1", "c9", "k9")

    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=1000)

    assert report.ok and report.sliders_updated == 2 and report.stale_pointers_pruned == 0
    sl1 = await _items(store, "sl1")
    assert sl1[0]["snapshot"]["title"] == "New title"
    assert sl1[0]["snapshot"]["updatedAt"] == 500
    assert sl1[0]["updatedAt"] == 1000
    assert sl1[1]["snapshot"]["title"] == "Behind the scenes"
    assert (await _items(store, "sl2"))[0]["snapshot"]["title"] == "New title"
    assert (await store.get(paths.series_slider("s1", "sl1"))).get("updatedAt") == 1000


async def test_update_tracks_active_flag_from_status(store):
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    await SliderPropagator(store).propagate_update("s1", "c1", _after(status="draft"), now=1)
    item = (await _items(store))[0]
    assert item["isActive"] is False
    assert item["snapshot"]["status"] == "draft"


async def test_replaying_an_update_writes_nothing(store):
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    propagator = SliderPropagator(store)
    await propagator.propagate_update("s1", "c1", _after(), now=1)
    commits = store.batch_commits

    report = await propagator.propagate_update("s1", "c1", _after(), now=2)
    assert report.sliders_updated == 0
    assert store.batch_commits == commits
    assert (await _items(store))[0]["updatedAt"] == 1


async def test_update_prunes_stale_pointers(store):
    live = await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    # slider never existed
    gone_slider = await seed_series_slider_item(store, "s1", "ghost", "c1", "k2", with_slider=False)
    # slider exists but the item was removed by hand
    await store.set(paths.series_slider("s1", "sl3"), {"title": "x", "items": []})
    gone_item = await seed_series_slider_item(store, "s1", "sl3", "c1", "k3", with_slider=False)
    # malformed pointer document
    junk = paths.pointer("s1", CK, "junk")
    await store.set(junk, {"whatever": 1})

    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=1)

    assert report.ok
    assert report.sliders_updated == 1
    assert report.stale_pointers_pruned == 3
    assert (await store.get(live)).exists
    for path in (gone_slider, gone_item, junk):
        assert not (await store.get(path)).exists
    assert not (await store.get(paths.series_slider("s1", "ghost"))).exists


async def test_update_of_episode_slider(store):
    await store.set(paths.episode("e1"), {"seriesId": "s1"})
    await store.set(
        paths.episode_slider("e1", "es1"),
        {"title": "Extras", "items": [slider_item("s1", "c1", "k1")]},
    )
    pointer = UsagePointer(
        target_kind=TargetKind.EPISODE_SLIDER, series_id="s1", episode_id="e1", slider_id="es1", item_key="k1"
    )
    await UsagePointerIndex(store).record_pointer("s1", CK, pointer, now=1)

    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=3)
    assert report.sliders_updated == 1
    items = (await store.get(paths.episode_slider("e1", "es1"))).get("items")
    assert items[0]["snapshot"]["title"] == "New title"


async def test_update_respects_the_batch_ceiling(store):
    n = 1000
    for i in range(n):
        await seed_series_slider_item(store, "s1", f"sl{i:04d}", "c1", "k1")
    assert store.batch_commits == 0

    report = await SliderPropagator(store, max_batch_ops=450).propagate_update("s1", "c1", _after(), now=1)

    assert report.sliders_updated == n
    assert report.batch_commits == 3  # 450 + 450 + 100
    assert store.batch_commits == 3
    assert (await _items(store, "sl0999"))[0]["snapshot"]["title"] == "New title"


async def test_stale_pointer_deletes_share_chunks_with_slider_writes(store):
    for i in range(5):
        await seed_series_slider_item(store, "s1", f"sl{i}", "c1", f"k{i}")
    ghosts = [
        await seed_series_slider_item(store, "s1", f"ghost{i}", "c1", f"g{i}", with_slider=False)
        for i in range(4)
    ]

    report = await SliderPropagator(store, max_batch_ops=4).propagate_update("s1", "c1", _after(), now=1)

    assert report.ok
    assert report.batch_commits == 3  # 4 + 4 + 1
    assert store.batch_commits == 3
    assert report.sliders_updated == 5
    assert report.stale_pointers_pruned == 4
    for i in range(5):
        assert (await _items(store, f"sl{i}"))[0]["snapshot"]["title"] == "New title"
    for path in ghosts:
        assert not (await store.get(path)).exists


def _vanish_before_commit(store, monkeypatch, victim):
    """Delete `victim` right before the first batch that writes to it commits."""
    make_batch = store.batch

    def batch():
        b = make_batch()
        commit = b._commit

        async def racing_commit(ops):
            if any(op.path == victim for op in ops) and (await store.get(victim)).exists:
                await store.delete(victim)
            await commit(ops)

        b._commit = racing_commit
        return b

    monkeypatch.setattr(store, "batch", batch)


async def test_slider_deleted_mid_run_fails_only_its_chunk(store, monkeypatch):
    pointers = [await seed_series_slider_item(store, "s1", f"sl{i}", "c1", f"k{i}") for i in range(4)]
    victim = paths.series_slider("s1", "sl1")
    _vanish_before_commit(store, monkeypatch, victim)

    with pytest.raises(PartialPropagationFailure) as exc:
        await SliderPropagator(store, max_batch_ops=1).propagate_update("s1", "c1", _after(), now=1)

    report = exc.value.report
    assert exc.value.failures == [{"target": victim, "error": "Operation failed."}]
    assert report.sliders_updated == 3
    assert report.batch_commits == 3
    for i in (0, 2, 3):
        assert (await _items(store, f"sl{i}"))[0]["snapshot"]["title"] == "New title"

    # the replay sees the missing slider and prunes its pointer
    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=2)
    assert report.ok
    assert report.sliders_updated == 0
    assert report.stale_pointers_pruned == 1
    assert not (await store.get(pointers[1])).exists


async def test_update_with_invalid_after_image_is_rejected_before_any_write(store):
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    with pytest.raises(ValidationFailedError):
        await SliderPropagator(store).propagate_update("s1", "c1", _after(title=""), now=1)
    assert store.batch_commits == 0


async def test_partial_failure_commits_healthy_groups_then_raises(store):
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    await seed_series_slider_item(store, "s1", "sl2", "c1", "k2")
    store.fail_reads_for.add(paths.series_slider("s1", "sl2"))

    with pytest.raises(PartialPropagationFailure) as exc:
        await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=1)

    report = exc.value.report
    assert report.sliders_updated == 1
    assert [f["target"] for f in exc.value.failures] == [paths.series_slider("s1", "sl2")]
    assert (await _items(store, "sl1"))[0]["snapshot"]["title"] == "New title"

    # once the store recovers, a replay converges
    store.fail_reads_for.clear()
    report = await SliderPropagator(store).propagate_update("s1", "c1", _after(), now=2)
    assert report.ok and report.sliders_updated == 1
    assert (await _items(store, "sl2"))[0]["snapshot"]["title"] == "New title"


# ─────────────────────────────────────────────────────────────────────────────
# Delete path
# ─────────────────────────────────────────────────────────────────────────────

async def test_delete_removes_items_and_every_pointer(store):
    p1 = await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    p2 = await seed_series_slider_item(store, "s1", "sl2", "c1", "k2")
    await seed_series_slider_item(store, "s1", "sl1", "c9", "k9")
    stale = await seed_series_slider_item(store, "s1", "ghost", "c1", "k3", with_slider=False)

    report = await SliderPropagator(store).propagate_delete("s1", "c1", now=10)

    assert report.ok
    assert report.sliders_updated == 2
    assert report.pointers_deleted == 3
    assert report.stale_pointers_pruned == 1
    assert [i["itemKey"] for i in await _items(store, "sl1")] == ["k9"]
    assert await _items(store, "sl2") == []
    for path in (p1, p2, stale):
        assert not (await store.get(path)).exists
    assert await UsagePointerIndex(store).list_pointers("s1", "subContent_c9") != []


async def test_delete_drops_pointers_even_for_failed_groups(store):
    await seed_series_slider_item(store, "s1", "sl1", "c1", "k1")
    p2 = await seed_series_slider_item(store, "s1", "sl2", "c1", "k2")
    store.fail_reads_for.add(paths.series_slider("s1", "sl2"))

    with pytest.raises(PartialPropagationFailure):
        await SliderPropagator(store).propagate_delete("s1", "c1", now=10)

    store.fail_reads_for.clear()
    assert not (await store.get(p2)).exists
    assert await _items(store, "sl1") == []


async def test_delete_without_pointers_is_a_noop(store):
    report = await SliderPropagator(store).propagate_delete("s1", "c1")
    assert report.pointers == 0 and report.ok


async def test_delete_respects_the_batch_ceiling(store):
    pointers = [await seed_series_slider_item(store, "s1", f"sl{i}", "c1", f"k{i}") for i in range(3)]
    pointers.append(await seed_series_slider_item(store, "s1", "ghost", "c1", "g1", with_slider=False))

    report = await SliderPropagator(store, max_batch_ops=2).propagate_delete("s1", "c1", now=10)

    assert report.ok
    assert report.batch_commits == 4  # 3 slider writes + 4 pointer deletes, 2 per batch
    assert store.batch_commits == 4
    assert report.sliders_updated == 3
    assert report.pointers_deleted == 4
    for i in range(3):
        assert await _items(store, f"sl{i}") == []
    for path in pointers:
        assert not (await store.get(path)).exists
