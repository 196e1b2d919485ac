# tests/test_services/test_sliders_service.py

import pytest

from app.core.exceptions import NotFoundError, ValidationFailedError
from app.schemas.content import SliderCreate, SliderItemCreate
from app.services import paths
from app.services.sliders_service import SliderService, new_item_key
from app.services.usage_pointers import UsagePointerIndex
from tests.utils.factory import seed_series, seed_sub_content

pytestmark = pytest.mark.anyio


@pytest.fixture()
async def seeded(store):
    await seed_series(store, "s1")
    await seed_sub_content(store, "s1", "c1", title="Bloopers")
    await seed_sub_content(store, "s1", "c2", title="Draft clip", status="draft")
    await store.set(paths.episode("e1"), {"seriesId": "s1", "title": "Pilot"})
    return store


async def _series_slider(svc, title="Extras", order=0):
    slider = await svc.create_series_slider("s1", SliderCreate(title=title, order=order), now=10)
    return svc.series_target("s1", slider["id"])


def test_new_item_key_shape():
    key = new_item_key()
    assert key.startswith("item_") and len(key) == len("item_") + 12


# ─────────────────────────────────────────────────────────────────────────────
# Sliders
# ─────────────────────────────────────────────────────────────────────────────

async def test_create_and_list_series_sliders_in_order(seeded):
    svc = SliderService(seeded)
    await _series_slider(svc, "Second", order=2)
    await _series_slider(svc, "First", order=1)
    titles = [s["title"] for s in await svc.list_series_sliders("s1")]
    assert titles == ["First", "Second"]


async def test_series_slider_requires_series(seeded):
    with pytest.raises(NotFoundError):
        await SliderService(seeded).create_series_slider("nope", SliderCreate(title="x"))


async def test_episode_slider_belongs_to_the_episode_series(seeded):
    svc = SliderService(seeded)
    slider = await svc.create_episode_slider("e1", SliderCreate(title="Scenes"))
    assert slider["seriesId"] == "s1" and slider["episodeId"] == "e1"
    assert [s["id"] for s in await svc.list_episode_sliders("e1")] == [slider["id"]]
    with pytest.raises(NotFoundError):
        await svc.create_episode_slider("missing", SliderCreate(title="x"))


# ─────────────────────────────────────────────────────────────────────────────
# Items
# ─────────────────────────────────────────────────────────────────────────────

async def test_add_item_embeds_snapshot_and_records_pointer(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    doc = await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"), created_by="prod-1", now=50)

    item = doc["items"][0]
    assert item["itemKey"] == "k1"
    assert item["contentKey"] == "subContent_c1"
    assert item["isActive"] is True and item["isHidden"] is False
    assert item["snapshot"]["title"] == "Bloopers"
    assert item["snapshot"]["subContentId"] == "c1"
    assert (await seeded.get(target.path)).get("items") == doc["items"]

    entries = await UsagePointerIndex(seeded).list_pointers("s1", "subContent_c1")
    assert len(entries) == 1
    assert entries[0].pointer.slider_id == target.slider_id
    assert entries[0].pointer.item_key == "k1"
    assert entries[0].pointer.created_by == "prod-1"


async def test_draft_sub_content_is_embedded_inactive(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    doc = await svc.add_item(target, SliderItemCreate(sub_content_id="c2"))
    assert doc["items"][0]["isActive"] is False
    assert doc["items"][0]["itemKey"].startswith("item_")


async def test_duplicate_content_is_rejected_unless_allowed(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"))
    with pytest.raises(ValidationFailedError):
        await svc.add_item(target, SliderItemCreate(sub_content_id="c1"))
    with pytest.raises(ValidationFailedError):
        await svc.add_item(target, SliderItemCreate(sub_content_id="c2", item_key="k1"))

    doc = await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k2", allow_duplicate=True))
    assert [i["itemKey"] for i in doc["items"]] == ["k1", "k2"]
    assert len(await UsagePointerIndex(seeded).list_pointers("s1", "subContent_c1")) == 2


async def test_add_item_requires_slider_and_sub_content(seeded):
    svc = SliderService(seeded)
    with pytest.raises(NotFoundError):
        await svc.add_item(svc.series_target("s1", "ghost"), SliderItemCreate(sub_content_id="c1"))
    target = await _series_slider(svc)
    with pytest.raises(NotFoundError):
        await svc.add_item(target, SliderItemCreate(sub_content_id="missing"))
    assert await UsagePointerIndex(seeded).list_pointers("s1", "subContent_missing") == []


async def test_remove_item_drops_its_pointer(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"))
    await svc.add_item(target, SliderItemCreate(sub_content_id="c2", item_key="k2"))

    doc = await svc.remove_item(target, "k1")
    assert [i["itemKey"] for i in doc["items"]] == ["k2"]
    assert await UsagePointerIndex(seeded).list_pointers("s1", "subContent_c1") == []
    assert len(await UsagePointerIndex(seeded).list_pointers("s1", "subContent_c2")) == 1
    with pytest.raises(NotFoundError):
        await svc.remove_item(target, "k1")


async def test_hide_item_is_independent_of_active_flag(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"))
    doc = await svc.set_item_hidden(target, "k1", True, now=77)
    item = doc["items"][0]
    assert item["isHidden"] is True and item["isActive"] is True and item["updatedAt"] == 77
    with pytest.raises(NotFoundError):
        await svc.set_item_hidden(target, "nope", True)


async def test_delete_slider_removes_pointers_of_all_items(seeded):
    svc = SliderService(seeded)
    target = await _series_slider(svc)
    await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"))
    await svc.add_item(target, SliderItemCreate(sub_content_id="c2", item_key="k2"))

    result = await svc.delete_slider(target)
    assert result == {"id": target.slider_id, "pointersRemoved": 2}
    assert not (await seeded.get(target.path)).exists
    for ck in ("subContent_c1", "subContent_c2"):
        assert await UsagePointerIndex(seeded).list_pointers("s1", ck) == []
    with pytest.raises(NotFoundError):
        await svc.delete_slider(target)


async def test_episode_slider_items_point_back_through_the_series(seeded):
    svc = SliderService(seeded)
    slider = await svc.create_episode_slider("e1", SliderCreate(title="Scenes"))
    target = await svc.episode_target("e1", slider["id"])
    await svc.add_item(target, SliderItemCreate(sub_content_id="c1", item_key="k1"))

    entries = await UsagePointerIndex(seeded).list_pointers("s1", "subContent_c1")
    assert entries[0].id == f"episodeSubContentSlider_e1_{slider['id']}_k1"
    assert entries[0].pointer.episode_id == "e1"
