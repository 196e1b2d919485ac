from __future__ import annotations

"""Series request bodies (draft copy is free-form beyond these known fields)."""

from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.schemas.content import DocModel
from app.schemas.enums import SeriesType


class MediaRef(DocModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    url: str
    id: Optional[str] = None
    name: Optional[str] = None


class SeriesCreate(DocModel):
    """Producer input for a new series; `slug` is derived from `title` when absent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", use_enum_values=True)

    title: str = Field(..., min_length=1, max_length=300)
    slug: Optional[str] = None
    description: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    cover: Optional[MediaRef] = None
    type: SeriesType = SeriesType.SEASON_BASED
    hero_banner: List[Dict[str, Any]] = Field(default_factory=list)
    logo: Optional[MediaRef] = None
    social_networks: Dict[str, Optional[str]] = Field(default_factory=dict)
    sections_order: List[str] = Field(default_factory=list)


class SeriesUpdate(DocModel):
    """Partial draft update; unknown keys are merged into the draft as-is."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow", use_enum_values=True)

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    slug: Optional[str] = None
    description: Optional[str] = None
    categories: Optional[List[str]] = None
    cover: Optional[MediaRef] = None
    type: Optional[SeriesType] = None
    hero_banner: Optional[List[Dict[str, Any]]] = None
    logo: Optional[MediaRef] = None
    social_networks: Optional[Dict[str, Optional[str]]] = None
    sections_order: Optional[List[str]] = None


class SlugRename(DocModel):
    slug: str = Field(..., min_length=1, max_length=255)


class ReviewDecision(DocModel):
    notes: Optional[str] = Field(None, max_length=5000)


__all__ = ["MediaRef", "SeriesCreate", "SeriesUpdate", "SlugRename", "ReviewDecision"]
