"""
Pydantic schemas for the agency API.

Entity forms use camelCase aliases so a validated form dumps straight into the
document shape the store keeps.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContentBlockPayload(BaseModel):
    id: str
    type: str
    order: int = 0
    data: dict[str, Any] = Field(default_factory=dict)


class EntityForm(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    featured_image: str = ""


class SeoEntityForm(EntityForm):
    slug: str = Field(default="", max_length=255)
    excerpt: str = Field(default="", max_length=500)
    seo_title: str = Field(default="", max_length=60)
    seo_keywords: Union[str, list[str]] = ""
    meta_description: str = Field(default="", max_length=160)
    content_blocks: list[ContentBlockPayload] = Field(default_factory=list)


class ServiceGroupForm(SeoEntityForm):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    featured_icon: str = ""
    order: int = 0
    is_active: bool = True


class ServiceForm(SeoEntityForm):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    features: list[str] = Field(default_factory=list)
    order: int = 0
    is_active: bool = True
    service_group_id: str = ""


class ProjectForm(SeoEntityForm):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    client_name: str = ""
    gallery: list[str] = Field(default_factory=list)
    completed_date: Optional[str] = None
    order: int = 0
    is_published: bool = False
    service_group_id: str = ""


class CaseStudyForm(SeoEntityForm):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    publish_date: Optional[str] = None
    is_published: bool = False
    project_id: str = ""


class PageForm(SeoEntityForm):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    template: str = "default"
    is_published: bool = False


class TestimonialForm(EntityForm):
    client_name: str = Field(..., min_length=1, max_length=255)
    client_position: str = ""
    client_company: str = ""
    testimonial: str = Field(..., min_length=1)
    rating: int = Field(default=5, ge=1, le=5)
    is_published: bool = True
    related_entity_type: Literal["", "service_group", "service", "project", "case_study"] = ""
    related_entity_id: str = ""


class EntityListResponse(BaseModel):
    documents: list[dict]
    total: int


class MetaValueRequest(BaseModel):
    value: Any = None


class SettingsUpdateRequest(BaseModel):
    values: dict[str, Any]


class SessionRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    token: str
    email: str
    expires_at: float


class FileResponse(BaseModel):
    id: str
    name: str
    mime_type: str
    size: int
    created_at: float
    view_url: str
    preview_url: str


# Block editor actions, discriminated by `action`.


class AddBlockAction(CamelModel):
    action: Literal["add"]
    block_type: str


class UpdateFieldAction(CamelModel):
    action: Literal["update_field"]
    index: int
    field_name: str
    value: Any = None


class MoveBlockAction(CamelModel):
    action: Literal["move_up", "move_down"]
    index: int


class DeleteBlockAction(CamelModel):
    action: Literal["delete"]
    index: int
    confirmed: bool = False


class RepeaterItemAction(CamelModel):
    action: Literal["add_repeater_item", "remove_repeater_item", "update_repeater_item"]
    index: int
    field_name: str
    item_index: Optional[int] = None
    sub_field: Optional[str] = None
    value: Any = None


class ImageAction(CamelModel):
    action: Literal["select_image", "add_gallery_image", "remove_gallery_image"]
    index: int
    field_name: str
    file_id: str = ""
    image_index: Optional[int] = None


BlockAction = Annotated[
    Union[
        AddBlockAction,
        UpdateFieldAction,
        MoveBlockAction,
        DeleteBlockAction,
        RepeaterItemAction,
        ImageAction,
    ],
    Field(discriminator="action"),
]


class BlockEditorRequest(BaseModel):
    blocks: list[ContentBlockPayload] = Field(default_factory=list)


class BlockActionRequest(BlockEditorRequest):
    action: BlockAction


class BlockEditorResponse(BaseModel):
    blocks: list[ContentBlockPayload]
    forms: list[dict]
