"""
Save, load and delete entities together with their overlay attributes.

Saves are two-phase: the entity document is written first, then each overlay
attribute. A failure in the second phase leaves the document written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from agency import excerpt as excerpt_sync
from agency.documents import DocumentStore, Query, new_document_id
from agency.entities import EntityKind, slugify
from agency.meta import MetaStore
from agency.relationships import set_relationship, set_testimonial_relationship
from shared.content_blocks import blocks_from_value, blocks_to_value
from shared.json_utils import snake_to_camel
from shared.enums import MetaKey

logger = logging.getLogger(__name__)

RELATION_KEYS = (MetaKey.SERVICE_GROUP_ID, MetaKey.PROJECT_ID)


@dataclass
class SplitForm:
    entity_data: dict[str, Any]
    overlay: dict[MetaKey, Any] = field(default_factory=dict)


def split_form(kind: EntityKind, form: dict[str, Any]) -> SplitForm:
    """Separates document fields from overlay fields (form is keyed by camelCase names)."""
    entity_data = dict(form)
    overlay = {}
    for form_name, key in kind.overlay_fields.items():
        if form_name in entity_data:
            overlay[key] = entity_data.pop(form_name)
    return SplitForm(entity_data=entity_data, overlay=overlay)


def _keywords(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(keyword).strip() for keyword in value if str(keyword).strip())
    return value or ""


def save_entity(
    documents: DocumentStore,
    meta: MetaStore,
    kind: EntityKind,
    form: dict[str, Any],
    *,
    entity_id: Optional[str] = None,
    meta_description_changed: Optional[bool] = None,
) -> dict:
    """
    Creates (no `entity_id`) or updates an entity from a validated form.

    `meta_description_changed=None` treats a submitted description that
    differs from the stored one as a direct edit.
    """
    split = split_form(kind, form)
    entity_data = split.entity_data
    wants_slug = entity_id is None or "slug" in entity_data
    if kind.has_slug and wants_slug and not entity_data.get("slug"):
        title = entity_data.get(kind.title_field)
        if title:
            entity_data["slug"] = slugify(str(title))
        else:
            entity_data.pop("slug", None)

    if entity_id is None:
        entity_id = new_document_id()
        document = documents.create_document(kind.collection, entity_id, entity_data)
    else:
        document = documents.update_document(kind.collection, entity_id, entity_data)

    bound = kind.meta(meta, entity_id)
    overlay = split.overlay
    if MetaKey.SEO_TITLE in overlay:
        bound.set(MetaKey.SEO_TITLE, overlay[MetaKey.SEO_TITLE] or "")
    if MetaKey.SEO_KEYWORDS in overlay:
        bound.set(MetaKey.SEO_KEYWORDS, _keywords(overlay[MetaKey.SEO_KEYWORDS]))
    if MetaKey.CONTENT_BLOCKS in overlay:
        bound.set(
            MetaKey.CONTENT_BLOCKS,
            blocks_to_value(blocks_from_value(overlay[MetaKey.CONTENT_BLOCKS])),
        )
    if kind.has_excerpt:
        submitted = overlay.get(MetaKey.META_DESCRIPTION)
        changed = meta_description_changed
        if changed is None:
            changed = bool(submitted) and submitted != bound.get(MetaKey.META_DESCRIPTION)
        excerpt_sync.save_with_excerpt_sync(
            bound,
            document.get("excerpt") or "",
            meta_description=submitted,
            meta_description_changed=changed,
        )
    for key in RELATION_KEYS:
        if key in overlay:
            set_relationship(meta, kind, entity_id, key, overlay[key] or "")
    if MetaKey.TESTIMONIAL_ENTITY_ID in overlay:
        related_type = overlay.get(MetaKey.TESTIMONIAL_ENTITY_TYPE)
        related_id = overlay[MetaKey.TESTIMONIAL_ENTITY_ID]
        if related_type and related_id:
            set_testimonial_relationship(meta, entity_id, related_type, related_id)
        else:
            bound.delete(MetaKey.TESTIMONIAL_ENTITY_TYPE)
            bound.delete(MetaKey.TESTIMONIAL_ENTITY_ID)

    logger.info("Saved %s %s", kind.label, entity_id)
    return load_entity(documents, meta, kind, entity_id)


def _overlay_defaults(kind: EntityKind) -> dict[str, Any]:
    defaults = {}
    for form_name, key in kind.overlay_fields.items():
        defaults[form_name] = [] if key == MetaKey.CONTENT_BLOCKS else ""
    return defaults


def merge_overlay(kind: EntityKind, document: dict, overlay: dict[str, Any]) -> dict:
    """Document + overlay, with overlay keys renamed to their form field names."""
    form_names = {key.value: form_name for form_name, key in kind.overlay_fields.items()}
    view = {**document, **_overlay_defaults(kind)}
    for key, value in overlay.items():
        name = form_names.get(key) or snake_to_camel(key)
        if key == MetaKey.CONTENT_BLOCKS:
            try:
                value = blocks_to_value(blocks_from_value(value))
            except (TypeError, ValueError):
                logger.warning(
                    "Unreadable content blocks on %s %s", kind.label, document.get("$id")
                )
                value = []
        elif value is None:
            value = ""
        view[name] = value
    if "metaDescriptionOverridden" in view:
        view["metaDescriptionOverridden"] = view["metaDescriptionOverridden"] is True
    return view


def load_entity(
    documents: DocumentStore, meta: MetaStore, kind: EntityKind, entity_id: str
) -> dict:
    """Raises DocumentNotFoundError when the entity does not exist."""
    document = documents.get_document(kind.collection, entity_id)
    return merge_overlay(kind, document, meta.get_all(kind.meta_collection, entity_id))


def find_by_slug(
    documents: DocumentStore, kind: EntityKind, slug: str
) -> Optional[dict]:
    result = documents.list_documents(
        kind.collection, [Query.equal("slug", slug), Query.limit(1)]
    )
    return result.documents[0] if result.documents else None


def delete_entity(
    documents: DocumentStore, meta: MetaStore, kind: EntityKind, entity_id: str
) -> None:
    """Purges the entity's overlay rows, then deletes the document."""
    if not meta.delete_all(kind.meta_collection, entity_id):
        logger.warning("Overlay rows of %s %s may be orphaned", kind.label, entity_id)
    documents.delete_document(kind.collection, entity_id)
    logger.info("Deleted %s %s", kind.label, entity_id)


def list_entities(
    documents: DocumentStore,
    kind: EntityKind,
    *,
    published_only: bool = False,
    limit: Optional[int] = None,
) -> list[dict]:
    queries = []
    if published_only and kind.published_field:
        queries.append(Query.equal(kind.published_field, True))
    queries.extend(kind.public_order if published_only else (Query.order_asc(kind.title_field),))
    if limit:
        queries.append(Query.limit(limit))
    return documents.list_documents(kind.collection, queries).documents
