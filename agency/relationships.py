"""
Many-to-one relationships stored as overlay attributes.

No referential integrity: an id may point at a deleted entity, and reverse
lookups skip such dangling ids.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from agency.documents import DocumentNotFoundError, DocumentStore, DocumentStoreError
from agency.entities import EntityKind, TESTIMONIALS, get_kind
from agency.meta import MetaStore
from shared.enums import EntityType, MetaKey

logger = logging.getLogger(__name__)

TESTIMONIAL_TARGETS = (
    EntityType.SERVICE_GROUP,
    EntityType.SERVICE,
    EntityType.PROJECT,
    EntityType.CASE_STUDY,
)


@dataclass(frozen=True)
class TestimonialLink:
    entity_type: EntityType
    entity_id: str


def set_relationship(
    meta: MetaStore, kind: EntityKind, entity_id: str, key: MetaKey, related_id: str
) -> None:
    """Points `key` at `related_id`; an empty id removes the relationship."""
    bound = kind.meta(meta, entity_id)
    if related_id:
        bound.set(key, related_id)
    else:
        bound.delete(key)


def get_relationship(
    meta: MetaStore, kind: EntityKind, entity_id: str, key: MetaKey
) -> Optional[str]:
    value = kind.meta(meta, entity_id).get(key)
    if value in (None, ""):
        return None
    return str(value)


def remove_relationship(
    meta: MetaStore, kind: EntityKind, entity_id: str, key: MetaKey
) -> bool:
    return kind.meta(meta, entity_id).delete(key)


def set_testimonial_relationship(
    meta: MetaStore, testimonial_id: str, entity_type: str, entity_id: str
) -> None:
    if EntityType(entity_type) not in TESTIMONIAL_TARGETS:
        raise ValueError(f"Testimonials cannot point at {entity_type}")
    TESTIMONIALS.meta(meta, testimonial_id).set_multiple(
        {
            MetaKey.TESTIMONIAL_ENTITY_TYPE: str(entity_type),
            MetaKey.TESTIMONIAL_ENTITY_ID: entity_id,
        }
    )


def get_testimonial_relationship(
    meta: MetaStore, testimonial_id: str
) -> Optional[TestimonialLink]:
    bound = TESTIMONIALS.meta(meta, testimonial_id)
    entity_type = bound.get(MetaKey.TESTIMONIAL_ENTITY_TYPE)
    entity_id = bound.get(MetaKey.TESTIMONIAL_ENTITY_ID)
    if not entity_type or not entity_id:
        return None
    try:
        return TestimonialLink(EntityType(entity_type), str(entity_id))
    except ValueError:
        logger.warning(
            "Testimonial %s points at unknown entity type %s", testimonial_id, entity_type
        )
        return None


def remove_testimonial_relationship(meta: MetaStore, testimonial_id: str) -> bool:
    bound = TESTIMONIALS.meta(meta, testimonial_id)
    removed_type = bound.delete(MetaKey.TESTIMONIAL_ENTITY_TYPE)
    removed_id = bound.delete(MetaKey.TESTIMONIAL_ENTITY_ID)
    return removed_type or removed_id


def find_related(
    documents: DocumentStore,
    meta: MetaStore,
    kind: EntityKind,
    key: MetaKey,
    target_id: str,
) -> list[dict]:
    """Entities of `kind` whose `key` attribute points at `target_id`."""
    related = []
    for entity_id in meta.find_entities_by_meta(kind.meta_collection, key, target_id):
        try:
            related.append(documents.get_document(kind.collection, entity_id))
        except DocumentNotFoundError:
            logger.debug("Skipping dangling %s %s", kind.label, entity_id)
        except DocumentStoreError:
            logger.exception("Error loading %s %s", kind.label, entity_id)
    return related


def testimonials_for(
    documents: DocumentStore, meta: MetaStore, entity_type: str, entity_id: str
) -> list[dict]:
    """Testimonials linked to one entity."""
    by_id = {
        doc["$id"]: doc
        for doc in find_related(
            documents, meta, TESTIMONIALS, MetaKey.TESTIMONIAL_ENTITY_ID, entity_id
        )
    }
    return [
        doc
        for testimonial_id, doc in by_id.items()
        if meta.get(
            TESTIMONIALS.meta_collection, testimonial_id, MetaKey.TESTIMONIAL_ENTITY_TYPE
        )
        == str(entity_type)
    ]


# Child kind path -> (parent kind path, relationship key)
RELATIONS: dict[str, tuple[str, MetaKey]] = {
    "services": ("service-groups", MetaKey.SERVICE_GROUP_ID),
    "projects": ("service-groups", MetaKey.SERVICE_GROUP_ID),
    "case-studies": ("projects", MetaKey.PROJECT_ID),
}


def relation_key(parent: EntityKind, child: EntityKind) -> Optional[MetaKey]:
    relation = RELATIONS.get(child.path)
    if relation is None or get_kind(relation[0]) is not parent:
        return None
    return relation[1]
