from __future__ import annotations

"""
Sub-content, slider and usage-pointer shapes.

Documents are stored camelCase (`subContentId`, `itemKey`, …); models use
snake_case attributes with camelCase aliases, so always dump with
`to_doc()` (`by_alias=True`) before writing to the store.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.schemas.enums import SubContentStatus, SubContentType, TargetKind


class DocModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True)

    def to_doc(self, *, exclude_none: bool = True) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=exclude_none)


# ─────────────────────────────────────────────────────────────
# Sub-content
# ─────────────────────────────────────────────────────────────
class Thumbnail(DocModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    url: str


class SubContentSnapshot(DocModel):
    """Denormalized copy of a sub-content's display fields, embedded in slider items."""

    sub_content_id: str
    series_id: str
    title: str
    description: str = ""
    video_url: Optional[str] = None
    thumbnail: Optional[Any] = None
    type: SubContentType
    status: SubContentStatus
    updated_at: int


class SubContentCreate(DocModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None
    type: SubContentType = SubContentType.VIDEO
    status: SubContentStatus = SubContentStatus.DRAFT


class SubContentUpdate(DocModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = None
    video_url: Optional[str] = None
    thumbnail: Optional[Thumbnail] = None
    type: Optional[SubContentType] = None
    status: Optional[SubContentStatus] = None


# ─────────────────────────────────────────────────────────────
# Sliders
# ─────────────────────────────────────────────────────────────
def content_key_for(sub_content_id: str) -> str:
    return f"subContent_{sub_content_id}"


class SliderItem(DocModel):
    item_key: str
    content_key: str
    sub_content_id: str
    snapshot: SubContentSnapshot
    is_active: bool
    is_hidden: bool = False
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    @model_validator(mode="after")
    def _content_key_matches(self) -> "SliderItem":
        if self.content_key != content_key_for(self.sub_content_id):
            raise ValueError("contentKey must equal subContent_<subContentId>")
        if self.snapshot.sub_content_id != self.sub_content_id:
            raise ValueError("snapshot.subContentId must match subContentId")
        return self


class SliderCreate(DocModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    order: int = 0
    sponsor: Optional[Dict[str, Any]] = None


class SliderItemCreate(DocModel):
    sub_content_id: str = Field(..., min_length=1)
    item_key: Optional[str] = None
    allow_duplicate: bool = False


class SliderItemVisibility(DocModel):
    is_hidden: bool


# ─────────────────────────────────────────────────────────────
# Usage pointers
# ─────────────────────────────────────────────────────────────
class UsagePointer(DocModel):
    """Back-reference: slider `slider_id` holds an item `item_key` embedding this content."""

    target_kind: TargetKind
    series_id: str
    episode_id: Optional[str] = None
    slider_id: Optional[str] = None
    item_key: str
    created_at: Optional[int] = None
    updated_at: Optional[int] = None
    created_by: Optional[str] = None


__all__ = [
    "DocModel",
    "Thumbnail",
    "SubContentSnapshot",
    "SubContentCreate",
    "SubContentUpdate",
    "SliderItem",
    "SliderCreate",
    "SliderItemCreate",
    "SliderItemVisibility",
    "UsagePointer",
    "content_key_for",
]
