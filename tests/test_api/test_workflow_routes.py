# tests/test_api/test_workflow_routes.py

from tests.utils.api import API, create_complete_series, create_series, publish_series

ADMIN = f"{API}/admin/series"


def test_submit_then_approve(client, producer_headers, admin_headers):
    sid = create_complete_series(client, producer_headers)["id"]

    r = client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["data"]["publicationStatus"] == "IN_REVIEW"
    assert r.headers["Cache-Control"] == "no-store"

    r = client.post(f"{ADMIN}/{sid}/approve", headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["publicationStatus"] == "PUBLISHED"
    assert data["publishedAt"]

    draft = client.get(f"{API}/producer/series/{sid}", headers=producer_headers).json()
    assert draft["publicationStatus"] == "PUBLISHED"


def test_incomplete_series_is_rejected_with_itemized_errors(client, producer_headers):
    sid = create_series(client, producer_headers)["id"]
    r = client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    assert r.status_code == 422
    body = r.json()
    assert body["kind"] == "ValidationFailed"
    errors = body["details"]["errors"]
    assert "Description is required" in errors
    assert "At least one season is required for season-based series" in errors
    assert "At least one episode is required" in errors


def test_only_owner_submits_and_only_admin_reviews(client, producer_headers, other_producer_headers):
    sid = create_complete_series(client, producer_headers)["id"]
    assert client.post(f"{ADMIN}/{sid}/submit-review", headers=other_producer_headers).status_code == 403
    assert client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers).status_code == 200

    r = client.post(f"{ADMIN}/{sid}/approve", headers=producer_headers)
    assert r.status_code == 403
    assert r.json()["kind"] == "Forbidden"
    assert client.post(f"{ADMIN}/{sid}/reject", headers=producer_headers).status_code == 403


def test_illegal_transitions_conflict(client, producer_headers, admin_headers):
    sid = create_complete_series(client, producer_headers)["id"]
    r = client.post(f"{ADMIN}/{sid}/approve", headers=admin_headers)
    assert r.status_code == 409
    body = r.json()
    assert body["kind"] == "StatusConflict"
    assert body["details"] == {"currentStatus": "DRAFT"}

    client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    r = client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    assert r.status_code == 409
    assert r.json()["details"]["currentStatus"] == "IN_REVIEW"

    assert client.post(f"{ADMIN}/{sid}/hide", headers=admin_headers).status_code == 409
    assert client.post(f"{ADMIN}/missing/approve", headers=admin_headers).status_code == 404


def test_reject_with_notes_and_resubmit(client, producer_headers, admin_headers):
    sid = create_complete_series(client, producer_headers)["id"]
    client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)

    r = client.post(f"{ADMIN}/{sid}/reject", json={"notes": "Logo is blurry"}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["publicationStatus"] == "REJECTED"
    assert data["reviewNotes"] == "Logo is blurry"

    r = client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    assert r.status_code == 200
    assert r.json()["data"]["reviewNotes"] is None


def test_reject_without_body(client, producer_headers, admin_headers):
    sid = create_complete_series(client, producer_headers)["id"]
    client.post(f"{ADMIN}/{sid}/submit-review", headers=producer_headers)
    r = client.post(f"{ADMIN}/{sid}/reject", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["reviewNotes"] is None


def test_hide_and_publish_updates(client, producer_headers, other_producer_headers, admin_headers):
    sid = publish_series(client, producer_headers, admin_headers)["id"]

    client.patch(f"{API}/producer/series/{sid}", json={"description": "Fresh copy"}, headers=producer_headers)
    r = client.post(f"{ADMIN}/{sid}/publish-updates", headers=producer_headers)
    assert r.status_code == 200
    assert r.json()["data"]["description"] == "Fresh copy"
    assert r.json()["data"]["publicationStatus"] == "PUBLISHED"

    assert client.post(f"{ADMIN}/{sid}/hide", headers=other_producer_headers).status_code == 403
    r = client.post(f"{ADMIN}/{sid}/hide", headers=producer_headers)
    assert r.status_code == 200
    assert r.json()["data"]["publicationStatus"] == "HIDDEN"

    r = client.post(f"{ADMIN}/{sid}/publish-updates", headers=producer_headers)
    assert r.status_code == 409
