from __future__ import annotations

"""
Service wiring for routers
--------------------------
Every CMS service is constructed per request around the process-wide
document store (`get_document_store`), so tests can swap the store with
`app.dependency_overrides[get_store]` and get fully wired services back.

Exports
- get_store, get_public_cache: infrastructure
- get_series_service, get_workflow, get_slider_service,
  get_trigger_dispatcher, get_subcontent_service: services
- owned_series_id: path guard, 404/403 unless the caller owns the series
"""

from fastapi import Depends

from app.cache.public_series import PublicSeriesCache
from app.core.security import AuthContext, get_current_caller
from app.docstore import DocumentStore, get_document_store
from app.services.publication_workflow import PublicationWorkflow
from app.services.series_service import SeriesService
from app.services.slider_propagation import SliderPropagator
from app.services.sliders_service import SliderService
from app.services.subcontent_service import SubContentService
from app.services.triggers import TriggerDispatcher


def get_store() -> DocumentStore:
    return get_document_store()


def get_public_cache() -> PublicSeriesCache:
    return PublicSeriesCache()


def get_series_service(
    store: DocumentStore = Depends(get_store),
    cache: PublicSeriesCache = Depends(get_public_cache),
) -> SeriesService:
    return SeriesService(store, cache)


def get_workflow(
    store: DocumentStore = Depends(get_store),
    cache: PublicSeriesCache = Depends(get_public_cache),
) -> PublicationWorkflow:
    return PublicationWorkflow(store, cache)


def get_slider_service(store: DocumentStore = Depends(get_store)) -> SliderService:
    return SliderService(store)


def get_trigger_dispatcher(store: DocumentStore = Depends(get_store)) -> TriggerDispatcher:
    return TriggerDispatcher(SliderPropagator(store))


def get_subcontent_service(
    store: DocumentStore = Depends(get_store),
    triggers: TriggerDispatcher = Depends(get_trigger_dispatcher),
) -> SubContentService:
    return SubContentService(store, triggers)


async def owned_series_id(
    series_id: str,
    caller: AuthContext = Depends(get_current_caller),
    series: SeriesService = Depends(get_series_service),
) -> str:
    """Resolve `series_id` from the path after checking the caller may manage it."""
    await series.get_draft(series_id, caller)
    return series_id


__all__ = [
    "get_public_cache",
    "get_series_service",
    "get_slider_service",
    "get_store",
    "get_subcontent_service",
    "get_trigger_dispatcher",
    "get_workflow",
    "owned_series_id",
]
