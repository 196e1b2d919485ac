# tests/test_api/test_public_routes.py

import json

from tests.utils.api import API, create_complete_series, publish_series

PUBLIC = f"{API}/public/series"
SERIES = f"{API}/producer/series"


def test_unpublished_series_are_not_public(client, producer_headers):
    sid = create_complete_series(client, producer_headers)["id"]
    r = client.get(f"{PUBLIC}/{sid}")
    assert r.status_code == 404
    assert r.json()["kind"] == "NotFound"
    client.post(f"{API}/admin/series/{sid}/submit-review", headers=producer_headers)
    assert client.get(f"{PUBLIC}/{sid}").status_code == 404
    assert client.get(f"{PUBLIC}/{sid}/sliders").status_code == 404
    assert client.get(f"{PUBLIC}/missing").status_code == 404


def test_published_series_with_etag(client, producer_headers, admin_headers):
    sid = publish_series(client, producer_headers, admin_headers)["id"]

    r = client.get(f"{PUBLIC}/{sid}")
    assert r.status_code == 200
    assert r.json()["title"] == "Awesome Show"
    assert r.headers["Cache-Control"].startswith("public, max-age=")
    etag = r.headers["ETag"]
    assert etag.startswith('"') and etag.endswith('"')

    r = client.get(f"{PUBLIC}/{sid}", headers={"If-None-Match": etag})
    assert r.status_code == 304
    assert r.content == b""


def test_hidden_series_disappears(client, producer_headers, admin_headers):
    sid = publish_series(client, producer_headers, admin_headers)["id"]
    client.post(f"{API}/admin/series/{sid}/hide", headers=admin_headers)
    assert client.get(f"{PUBLIC}/{sid}").status_code == 404


def test_public_read_is_cached_and_invalidated(client, redis_client, producer_headers, admin_headers):
    sid = publish_series(client, producer_headers, admin_headers)["id"]
    key = f"cms:public-series:{sid}"

    assert client.get(f"{PUBLIC}/{sid}").status_code == 200
    assert json.loads(redis_client.store[key])["id"] == sid

    client.post(f"{API}/admin/series/{sid}/hide", headers=producer_headers)
    assert key not in redis_client.store
    assert client.get(f"{PUBLIC}/{sid}").status_code == 404


def test_public_sub_content_and_sliders_only_show_live_items(client, producer_headers, admin_headers):
    sid = publish_series(client, producer_headers, admin_headers)["id"]

    def _sc(title, status):
        r = client.post(f"{SERIES}/{sid}/subcontent", json={"title": title, "status": status}, headers=producer_headers)
        return r.json()["id"]

    live, hidden, draft = _sc("Live", "published"), _sc("Hidden", "published"), _sc("Draft", "draft")
    slider_id = client.post(f"{SERIES}/{sid}/sliders", json={"title": "Extras"}, headers=producer_headers).json()["id"]
    items = f"{SERIES}/{sid}/sliders/{slider_id}/items"
    for key, sc in (("k1", live), ("k2", hidden), ("k3", draft)):
        r = client.post(items, json={"subContentId": sc, "itemKey": key}, headers=producer_headers)
        assert r.status_code == 201
    client.patch(f"{items}/k2", json={"isHidden": True}, headers=producer_headers)

    r = client.get(f"{PUBLIC}/{sid}/subcontent")
    assert r.status_code == 200
    assert sorted(i["title"] for i in r.json()["items"]) == ["Hidden", "Live"]

    r = client.get(f"{PUBLIC}/{sid}/sliders")
    assert r.status_code == 200
    sliders = r.json()["items"]
    assert len(sliders) == 1
    assert [i["itemKey"] for i in sliders[0]["items"]] == ["k1"]
