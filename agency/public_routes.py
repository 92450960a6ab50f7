"""
Public site API: published listings and single entities with SEO and rendered
content sections.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from agency import entity_forms
from agency.config import get_settings
from agency.dependencies import (
    check_maintenance,
    get_document_store,
    get_meta_store,
    get_site_settings,
)
from agency.documents import DocumentStore, DocumentStoreError
from agency.entities import EntityKind, get_kind
from agency.meta import MetaStore
from agency.relationships import RELATIONS, find_related
from agency.render import RenderContext, render_blocks
from agency.seo import entity_seo
from agency.site_settings import SiteSettingsStore
from shared.content_blocks import blocks_from_value
from shared.enums import SettingKey

logger = logging.getLogger(__name__)

site_router = APIRouter(prefix="/site", tags=["site"])
router = APIRouter(
    prefix="/site", tags=["site"], dependencies=[Depends(check_maintenance)]
)


@site_router.get("/settings")
def public_settings(site_settings: SiteSettingsStore = Depends(get_site_settings)):
    values = site_settings.public_settings()
    values[SettingKey.WEBSITE_NAME.value] = (
        values.get(SettingKey.WEBSITE_NAME.value) or get_settings().site_name
    )
    return {"settings": values}


@site_router.get("/maintenance")
def maintenance_status(site_settings: SiteSettingsStore = Depends(get_site_settings)):
    return {
        "enabled": site_settings.is_maintenance_enabled(),
        "message": site_settings.get(SettingKey.MAINTENANCE_MESSAGE, "") or "",
        "contacts": site_settings.get(SettingKey.MAINTENANCE_CONTACTS, []) or [],
    }


def _public_kind(name: str) -> EntityKind:
    kind = get_kind(name)
    if kind is None:
        raise HTTPException(status_code=404, detail="Not found")
    return kind


def _card(kind: EntityKind, document: dict) -> dict:
    settings = get_settings()
    card = dict(document)
    card["featuredImageUrl"] = settings.file_url(document.get("featuredImage") or "")
    card["url"] = kind.url_for(document.get("slug") or "")
    return card


def _is_published(kind: EntityKind, document: dict) -> bool:
    return not kind.published_field or document.get(kind.published_field) is True


@router.get("/{kind_name}")
def list_published(
    kind_name: str, documents: DocumentStore = Depends(get_document_store)
):
    kind = _public_kind(kind_name)
    try:
        rows = entity_forms.list_entities(documents, kind, published_only=True)
    except DocumentStoreError:
        logger.exception("Error loading published %s list", kind.label)
        rows = []
    return {"documents": [_card(kind, row) for row in rows], "total": len(rows)}


@router.get("/{kind_name}/{slug}")
def get_published(
    kind_name: str,
    slug: str,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
    site_settings: SiteSettingsStore = Depends(get_site_settings),
):
    kind = _public_kind(kind_name)
    if not kind.has_slug:
        raise HTTPException(status_code=404, detail="Not found")
    try:
        document = entity_forms.find_by_slug(documents, kind, slug)
    except DocumentStoreError:
        logger.exception("Error loading %s %s", kind.label, slug)
        document = None
    if document is None or not _is_published(kind, document):
        raise HTTPException(status_code=404, detail=f"{kind.label.capitalize()} not found")

    view = entity_forms.merge_overlay(
        kind, document, meta.get_all(kind.meta_collection, document["$id"])
    )
    settings = get_settings()
    context = RenderContext(
        settings=settings, documents=documents, meta=meta, kind=kind, entity=view
    )
    related = {}
    for child_path, (parent_path, key) in RELATIONS.items():
        if parent_path != kind.path:
            continue
        child = get_kind(child_path)
        related[child_path] = [
            _card(child, row)
            for row in find_related(documents, meta, child, key, document["$id"])
            if _is_published(child, row)
        ]
    return {
        "entity": _card(kind, view),
        "seo": entity_seo(
            settings,
            kind,
            view,
            site_name=site_settings.get(SettingKey.WEBSITE_NAME, "") or "",
        ),
        "sections": render_blocks(blocks_from_value(view.get("contentBlocks")), context),
        "related": related,
    }
