"""
Entity kinds: where each kind lives, which form validates it and which of its
form fields belong to the metadata overlay.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel

from agency.documents import Query
from agency.meta import EntityMeta, MetaStore
from agency.schemas import (
    CaseStudyForm,
    PageForm,
    ProjectForm,
    ServiceForm,
    ServiceGroupForm,
    TestimonialForm,
)
from shared.enums import EntityType, MetaCollection, MetaKey

SEO_OVERLAY = (
    ("seoTitle", MetaKey.SEO_TITLE),
    ("seoKeywords", MetaKey.SEO_KEYWORDS),
    ("metaDescription", MetaKey.META_DESCRIPTION),
    ("contentBlocks", MetaKey.CONTENT_BLOCKS),
)


@dataclass(frozen=True)
class EntityKind:
    entity_type: EntityType
    path: str
    collection: str
    meta_collection: MetaCollection
    label: str
    title_field: str
    form: type[BaseModel]
    overlay: tuple[tuple[str, MetaKey], ...] = SEO_OVERLAY
    published_field: Optional[str] = "isPublished"
    public_path: Optional[str] = None
    public_order: tuple[Query, ...] = (Query.order_asc("order"),)

    @property
    def overlay_fields(self) -> dict[str, MetaKey]:
        """Form field name -> overlay key."""
        return dict(self.overlay)

    @property
    def meta_keys(self) -> frozenset:
        keys = set(self.overlay_fields.values())
        if MetaKey.META_DESCRIPTION in keys:
            keys.add(MetaKey.META_DESCRIPTION_OVERRIDDEN)
        return frozenset(keys)

    @property
    def has_slug(self) -> bool:
        return "slug" in self.form.model_fields

    @property
    def has_excerpt(self) -> bool:
        return "excerpt" in self.form.model_fields

    def meta(self, store: MetaStore, entity_id: str) -> EntityMeta:
        return store.for_entity(self.meta_collection, entity_id, self.meta_keys)

    def url_for(self, slug: str) -> Optional[str]:
        if not self.public_path or not slug:
            return None
        return f"{self.public_path}/{slug}"


SERVICE_GROUPS = EntityKind(
    entity_type=EntityType.SERVICE_GROUP,
    path="service-groups",
    collection="serviceGroups",
    meta_collection=MetaCollection.SERVICE_GROUPS,
    label="service group",
    title_field="name",
    form=ServiceGroupForm,
    published_field="isActive",
    public_path="/service-groups",
    public_order=(Query.order_asc("name"),),
)

SERVICES = EntityKind(
    entity_type=EntityType.SERVICE,
    path="services",
    collection="services",
    meta_collection=MetaCollection.SERVICES,
    label="service",
    title_field="name",
    form=ServiceForm,
    overlay=SEO_OVERLAY + (("serviceGroupId", MetaKey.SERVICE_GROUP_ID),),
    published_field="isActive",
    public_path="/services",
    public_order=(Query.order_asc("name"),),
)

PROJECTS = EntityKind(
    entity_type=EntityType.PROJECT,
    path="projects",
    collection="projects",
    meta_collection=MetaCollection.PROJECTS,
    label="project",
    title_field="title",
    form=ProjectForm,
    overlay=SEO_OVERLAY + (("serviceGroupId", MetaKey.SERVICE_GROUP_ID),),
    public_path="/projects",
    public_order=(Query.order_desc("completedDate"),),
)

CASE_STUDIES = EntityKind(
    entity_type=EntityType.CASE_STUDY,
    path="case-studies",
    collection="caseStudies",
    meta_collection=MetaCollection.CASE_STUDIES,
    label="case study",
    title_field="title",
    form=CaseStudyForm,
    overlay=SEO_OVERLAY + (("projectId", MetaKey.PROJECT_ID),),
    public_path="/case-studies",
    public_order=(Query.order_desc("publishDate"),),
)

PAGES = EntityKind(
    entity_type=EntityType.PAGE,
    path="pages",
    collection="pages",
    meta_collection=MetaCollection.PAGES,
    label="page",
    title_field="title",
    form=PageForm,
    public_path="/pages",
    public_order=(Query.order_asc("title"),),
)

TESTIMONIALS = EntityKind(
    entity_type=EntityType.TESTIMONIAL,
    path="testimonials",
    collection="testimonials",
    meta_collection=MetaCollection.TESTIMONIALS,
    label="testimonial",
    title_field="clientName",
    form=TestimonialForm,
    overlay=(
        ("relatedEntityType", MetaKey.TESTIMONIAL_ENTITY_TYPE),
        ("relatedEntityId", MetaKey.TESTIMONIAL_ENTITY_ID),
    ),
    public_order=(Query.order_desc("$createdAt"),),
)

ENTITY_KINDS: tuple[EntityKind, ...] = (
    SERVICE_GROUPS,
    SERVICES,
    PROJECTS,
    CASE_STUDIES,
    PAGES,
    TESTIMONIALS,
)

_BY_PATH = {kind.path: kind for kind in ENTITY_KINDS}
_BY_TYPE = {kind.entity_type: kind for kind in ENTITY_KINDS}


def get_kind(name: str) -> Optional[EntityKind]:
    """Looks a kind up by URL segment ("case-studies") or entity type ("case_study")."""
    return _BY_PATH.get(name) or _BY_TYPE.get(name)


def slugify(text: str) -> str:
    """'Web Design' -> 'web-design'"""
    slug = (text or "").lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
