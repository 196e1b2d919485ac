# app/services/paths.py
"""Document paths for every CMS collection (single place to change layout)."""

SERIES_DRAFT = "series-draft"
SERIES_PUBLIC = "series"
SERIES_SLUGS = "seriesSlugs"
EPISODES = "episodes"


def series_draft(series_id: str) -> str:
    return f"{SERIES_DRAFT}/{series_id}"


def series_public(series_id: str) -> str:
    return f"{SERIES_PUBLIC}/{series_id}"


def seasons(series_id: str) -> str:
    return f"{SERIES_PUBLIC}/{series_id}/seasons"


def sub_contents(series_id: str) -> str:
    return f"{SERIES_PUBLIC}/{series_id}/subContent"


def sub_content(series_id: str, sub_content_id: str) -> str:
    return f"{sub_contents(series_id)}/{sub_content_id}"


def series_sliders(series_id: str) -> str:
    return f"{SERIES_PUBLIC}/{series_id}/subContentSliders"


def series_slider(series_id: str, slider_id: str) -> str:
    return f"{series_sliders(series_id)}/{slider_id}"


def episode(episode_id: str) -> str:
    return f"{EPISODES}/{episode_id}"


def episode_sliders(episode_id: str) -> str:
    return f"{EPISODES}/{episode_id}/subContentSliders"


def episode_slider(episode_id: str, slider_id: str) -> str:
    return f"{episode_sliders(episode_id)}/{slider_id}"


def pointers(series_id: str, content_key: str) -> str:
    return f"{SERIES_PUBLIC}/{series_id}/contentUsage/{content_key}/pointers"


def pointer(series_id: str, content_key: str, pointer_id: str) -> str:
    return f"{pointers(series_id, content_key)}/{pointer_id}"


def slug_reservation(slug: str) -> str:
    return f"{SERIES_SLUGS}/{slug}"
