"""
Public side of the content block system: turns an entity's ordered blocks into
section view models.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from agency.config import Settings
from agency.documents import DocumentStore, DocumentStoreError, Query
from agency.entities import (
    CASE_STUDIES,
    PROJECTS,
    SERVICE_GROUPS,
    SERVICES,
    TESTIMONIALS,
    EntityKind,
)
from agency.meta import MetaStore
from agency.relationships import find_related, testimonials_for
from shared.block_registry import GalleryField, ToggleField
from shared.content_blocks import ContentBlock
from shared.enums import MetaKey

logger = logging.getLogger(__name__)

_YOUTUBE = re.compile(
    r"(?:youtube\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?)/|.*[?&]v=)|youtu\.be/)([^\"&?/\s]{11})"
)
_VIMEO = re.compile(r"vimeo\.com/(?:channels/(?:\w+/)?|groups/([^/]*)/videos/|)(\d+)")

LOOP_SOURCES = {
    "services": SERVICES,
    "projects": PROJECTS,
    "caseStudies": CASE_STUDIES,
}

TESTIMONIALS_LIMIT = 10


@dataclass
class RenderContext:
    settings: Settings
    documents: DocumentStore
    meta: MetaStore
    kind: Optional[EntityKind] = None
    entity: Optional[dict] = None

    def image_url(self, file_id: Any) -> str:
        return self.settings.file_url(str(file_id)) if file_id else ""

    def current_service_group_id(self) -> Optional[str]:
        if not self.entity or not self.kind:
            return None
        if self.kind is SERVICE_GROUPS:
            return self.entity.get("$id")
        if self.kind is CASE_STUDIES:
            project_id = self.entity.get("projectId")
            if not project_id:
                return None
            return PROJECTS.meta(self.meta, project_id).get(MetaKey.SERVICE_GROUP_ID) or None
        return self.entity.get("serviceGroupId") or None


def video_embed(url: str) -> Optional[dict]:
    if not url:
        return None
    match = _YOUTUBE.search(url)
    if match:
        return {
            "platform": "youtube",
            "embedUrl": f"https://www.youtube.com/embed/{match.group(1)}",
        }
    match = _VIMEO.search(url)
    if match:
        return {
            "platform": "vimeo",
            "embedUrl": f"https://player.vimeo.com/video/{match.group(2)}",
        }
    return None


def _int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _entity_card(kind: EntityKind, document: dict, context: RenderContext) -> dict:
    slug = document.get("slug") or ""
    return {
        "id": document["$id"],
        "title": document.get(kind.title_field) or "",
        "slug": slug,
        "excerpt": document.get("excerpt") or "",
        "imageUrl": context.image_url(document.get("featuredImage")),
        "url": kind.url_for(slug),
    }


def _is_visible(kind: EntityKind, document: dict) -> bool:
    return not kind.published_field or document.get(kind.published_field) is True


def _loop_items(data: dict, context: RenderContext) -> list[dict]:
    kind = LOOP_SOURCES.get(data.get("entityType") or "services")
    if kind is None:
        logger.warning("Unknown loop entity type %s", data.get("entityType"))
        return []
    limit = _int(data.get("limit"), 6)
    filter_by = data.get("filterBy") or "all"
    group_id = None
    if filter_by == "current_service_group":
        group_id = context.current_service_group_id()
    elif filter_by == "specific_service_group":
        group_id = data.get("serviceGroupId") or None

    try:
        if group_id is None:
            queries = [*kind.public_order, Query.limit(limit)]
            if kind.published_field:
                queries.insert(0, Query.equal(kind.published_field, True))
            documents = context.documents.list_documents(kind.collection, queries).documents
        elif kind is CASE_STUDIES:
            documents = []
            for project in find_related(
                context.documents, context.meta, PROJECTS, MetaKey.SERVICE_GROUP_ID, group_id
            ):
                documents.extend(
                    find_related(
                        context.documents,
                        context.meta,
                        CASE_STUDIES,
                        MetaKey.PROJECT_ID,
                        project["$id"],
                    )
                )
        else:
            documents = find_related(
                context.documents, context.meta, kind, MetaKey.SERVICE_GROUP_ID, group_id
            )
    except DocumentStoreError:
        logger.exception("Error loading %s for loop block", kind.label)
        return []
    visible = [doc for doc in documents if _is_visible(kind, doc)]
    return [_entity_card(kind, doc, context) for doc in visible[:limit]]


def _testimonials(data: dict, context: RenderContext) -> list[dict]:
    try:
        latest = context.documents.list_documents(
            TESTIMONIALS.collection,
            [
                Query.equal("isPublished", True),
                Query.order_desc("$createdAt"),
                Query.limit(TESTIMONIALS_LIMIT),
            ],
        ).documents
    except DocumentStoreError:
        logger.exception("Error loading testimonials")
        latest = []
    related = []
    show_related = ToggleField("showRelated", "", default=True).normalize(
        data.get("showRelated")
    )
    if show_related and context.kind and context.entity:
        related = [
            doc
            for doc in testimonials_for(
                context.documents,
                context.meta,
                context.kind.entity_type,
                context.entity["$id"],
            )
            if doc.get("isPublished") is True
        ]
    seen = set()
    testimonials = []
    for doc in related + latest:
        if doc["$id"] in seen:
            continue
        seen.add(doc["$id"])
        testimonials.append(
            {
                "id": doc["$id"],
                "clientName": doc.get("clientName") or "",
                "clientPosition": doc.get("clientPosition") or "",
                "clientCompany": doc.get("clientCompany") or "",
                "testimonial": doc.get("testimonial") or "",
                "rating": doc.get("rating") or 5,
                "imageUrl": context.image_url(doc.get("featuredImage")),
            }
        )
    return testimonials[:TESTIMONIALS_LIMIT]


def _hero(data: dict, context: RenderContext) -> dict:
    section = {
        "title": data.get("title") or "",
        "subtitle": data.get("subtitle") or "",
        "backgroundImageUrl": context.image_url(data.get("backgroundImage")),
        "cta": None,
    }
    if data.get("ctaText"):
        section["cta"] = {"text": data["ctaText"], "link": data.get("ctaLink") or "#"}
    return section


def _text_content(data: dict, context: RenderContext) -> dict:
    return {"title": data.get("title") or "", "content": data.get("content") or ""}


def _text_image(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "content": data.get("content") or "",
        "imageUrl": context.image_url(data.get("image")),
        "imagePosition": data.get("imagePosition") or "right",
    }


def _two_column_text(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "leftContent": data.get("leftContent") or "",
        "rightContent": data.get("rightContent") or "",
    }


def _gallery(data: dict, context: RenderContext) -> dict:
    images = GalleryField("images", "").normalize(data.get("images"))
    return {
        "title": data.get("title") or "",
        "images": [{"id": file_id, "url": context.image_url(file_id)} for file_id in images],
        "columns": _int(data.get("columns"), 3),
    }


def _video(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "video": video_embed(data.get("videoUrl") or ""),
        "description": data.get("description") or "",
    }


def _features_grid(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "subtitle": data.get("subtitle") or "",
        "features": list(data.get("features") or []),
        "columns": _int(data.get("columns"), 3),
    }


def _icon_list(data: dict, context: RenderContext) -> dict:
    return {"title": data.get("title") or "", "items": list(data.get("items") or [])}


def _stats(data: dict, context: RenderContext) -> dict:
    return {"title": data.get("title") or "", "stats": list(data.get("stats") or [])}


def _cta(data: dict, context: RenderContext) -> dict:
    section = {
        "title": data.get("title") or "",
        "description": data.get("description") or "",
        "buttonText": data.get("buttonText") or "",
        "buttonLink": data.get("buttonLink") or "#",
    }
    if "backgroundColor" in data:
        section["backgroundColor"] = data.get("backgroundColor") or "accent"
    return section


def _testimonials_slider(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "testimonials": _testimonials(data, context),
    }


def _loop_grid(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "items": _loop_items(data, context),
        "columns": {
            "desktop": _int(data.get("columnsDesktop"), 3),
            "tablet": _int(data.get("columnsTablet"), 2),
            "mobile": _int(data.get("columnsMobile"), 1),
        },
        "rows": _int(data.get("rows"), 2),
    }


def _loop_carousel(data: dict, context: RenderContext) -> dict:
    return {
        "title": data.get("title") or "",
        "items": _loop_items({"limit": "10", **data}, context),
        "slidesPerView": {
            "desktop": _int(data.get("slidesPerViewDesktop"), 3),
            "tablet": _int(data.get("slidesPerViewTablet"), 2),
            "mobile": _int(data.get("slidesPerViewMobile"), 1),
        },
        "autoplay": ToggleField("autoplay", "", default=False).normalize(data.get("autoplay")),
        "loop": ToggleField("loop", "", default=True).normalize(data.get("loop")),
    }


SECTION_RENDERERS: dict[str, Callable[[dict, RenderContext], dict]] = {
    "hero_simple": _hero,
    "text_content": _text_content,
    "text_image": _text_image,
    "two_column_text": _two_column_text,
    "gallery": _gallery,
    "video": _video,
    "features_grid": _features_grid,
    "icon_list": _icon_list,
    "stats": _stats,
    "cta_simple": _cta,
    "cta_boxed": _cta,
    "testimonials_slider": _testimonials_slider,
    "loop_grid": _loop_grid,
    "loop_carousel": _loop_carousel,
}


def render_block(block: ContentBlock, context: RenderContext) -> dict:
    section = {"id": block.id, "type": block.type, "order": block.order}
    renderer = SECTION_RENDERERS.get(block.type)
    if renderer is None:
        logger.warning("Unknown block type: %s", block.type)
        section["error"] = f"Unknown block type: {block.type}"
        return section
    section.update(renderer(block.data, context))
    return section


def render_blocks(blocks: list[ContentBlock], context: RenderContext) -> list[dict]:
    return [render_block(block, context) for block in sorted(blocks, key=lambda b: b.order)]
