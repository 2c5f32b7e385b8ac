from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Envelope(BaseModel):
    status: int
    message: str
    data: Optional[Any] = None


class RecordOut(BaseModel):
    uuid: str
    is_published: int = 0
    is_locked: int = 0
    locked_by_user: Optional[int] = None
    locked_at: Optional[datetime] = None
    is_deleted: int = 0
    owner: Optional[int] = None
    version: int = 1
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ExhibitOut(RecordOut):
    type: str = "exhibit"
    title: str
    subtitle: Optional[str] = None
    banner_template: Optional[str] = None
    about_the_curators: Optional[str] = None
    alert_text: Optional[str] = None
    hero_image: Optional[str] = None
    thumbnail: Optional[str] = None
    description: Optional[str] = None
    page_layout: Optional[str] = None
    exhibit_template: Optional[str] = None
    styles: Optional[str] = None
    order: Optional[int] = None
    is_featured: int = 0
    is_student_curated: int = 0
    is_preview: int = 0


class ChildOut(RecordOut):
    is_member_of_exhibit: str
    type: str
    styles: Optional[str] = None
    order: Optional[int] = None


class HeadingOut(ChildOut):
    text: Optional[str] = None
    is_visible: int = 1
    is_anchor: int = 1


class ItemOut(ChildOut):
    item_type: Optional[str] = None
    title: Optional[str] = None
    caption: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None
    wrap_text: Optional[int] = None
    media: Optional[str] = None
    thumbnail: Optional[str] = None
    mime_type: Optional[str] = None
    layout: Optional[str] = None
    media_width: Optional[int] = None
    alt_text: Optional[str] = None
    is_alt_text_decorative: Optional[int] = None
    pdf_open_to_page: Optional[int] = None
    item_subjects: Optional[str] = None
    columns: Optional[int] = None
    is_repo_item: Optional[int] = None
    is_kaltura_item: Optional[int] = None
    is_embedded: Optional[int] = None


class GridOut(ChildOut):
    title: Optional[str] = None
    text: Optional[str] = None
    columns: Optional[int] = None


class GridItemOut(ChildOut):
    is_member_of_grid: str
    item_type: Optional[str] = None
    title: Optional[str] = None
    caption: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None
    media: Optional[str] = None
    thumbnail: Optional[str] = None
    mime_type: Optional[str] = None
    layout: Optional[str] = None
    date: Optional[str] = None


class TimelineOut(ChildOut):
    title: Optional[str] = None
    text: Optional[str] = None


class TimelineItemOut(ChildOut):
    is_member_of_timeline: str
    item_type: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None
    media: Optional[str] = None
    thumbnail: Optional[str] = None


class ReorderEntry(BaseModel):
    type: Literal["item", "heading", "grid", "timeline"]
    uuid: str
    order: int


class ReorderRequest(BaseModel):
    items: list[ReorderEntry] = Field(default_factory=list)


class UnlockRequest(BaseModel):
    force: bool = False


class AuditLogOut(BaseModel):
    user_id: Optional[int] = None
    action: str
    target_type: Optional[str] = None
    target_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class PurgeReportOut(BaseModel):
    removed: dict[str, int] = Field(default_factory=dict)
    failed: list[str] = Field(default_factory=list)
    model_config = ConfigDict(from_attributes=True)


OUT_MODELS: dict[str, type[RecordOut]] = {
    "exhibit": ExhibitOut,
    "heading": HeadingOut,
    "item": ItemOut,
    "grid": GridOut,
    "grid_item": GridItemOut,
    "timeline": TimelineOut,
    "timeline_item": TimelineItemOut,
}


def dump_record(kind: str, record) -> dict[str, Any]:
    return OUT_MODELS[kind].model_validate(record).model_dump(mode="json")
