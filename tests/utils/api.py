# tests/utils/api.py
"""HTTP-level helpers shared by the API and end-to-end tests."""

from typing import Any, Dict

API = "/api/v1"

COMPLETE_PATCH: Dict[str, Any] = {
    "description": "A show about awesome things",
    "categories": ["drama"],
    "cover": {"url": "https://cdn.example.com/cover.jpg"},
    "type": "limited",
    "heroBanner": [{"url": "https://cdn.example.com/hero.jpg"}],
    "logo": {"url": "https://cdn.example.com/logo.png"},
    "socialNetworks": {"instagram": "https://instagram.com/awesome"},
    "episodes": 3,
}


def create_series(client, headers, title: str = "Awesome Show", **body: Any) -> Dict[str, Any]:
    r = client.post(f"{API}/producer/series", json={"title": title, **body}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def create_complete_series(client, headers, title: str = "Awesome Show") -> Dict[str, Any]:
    draft = create_series(client, headers, title)
    r = client.patch(f"{API}/producer/series/{draft['id']}", json=COMPLETE_PATCH, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def publish_series(client, producer_headers, admin_headers, title: str = "Awesome Show") -> Dict[str, Any]:
    """Create, complete, submit and approve a series; returns the approved public copy."""
    draft = create_complete_series(client, producer_headers, title)
    sid = draft["id"]
    r = client.post(f"{API}/admin/series/{sid}/submit-review", headers=producer_headers)
    assert r.status_code == 200, r.text
    r = client.post(f"{API}/admin/series/{sid}/approve", headers=admin_headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]
