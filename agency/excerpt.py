"""
Keeps an entity's SEO meta description in step with its excerpt until the
description is edited directly.

Direct edits store `meta_description_overridden = true`; syncing stores false.
Rows written before the flag existed fall back to comparing the stored
description with the excerpt.
"""

from __future__ import annotations

import logging
from typing import Optional

from agency.meta import EntityMeta
from shared.enums import MetaKey

logger = logging.getLogger(__name__)


def is_meta_description_overridden(meta: EntityMeta, excerpt: str) -> bool:
    flag = meta.get(MetaKey.META_DESCRIPTION_OVERRIDDEN)
    if isinstance(flag, bool):
        return flag
    description = meta.get(MetaKey.META_DESCRIPTION)
    if not description:
        return False
    return description != excerpt


def sync_excerpt_to_meta(meta: EntityMeta, excerpt: str, force: bool = False) -> bool:
    """Copies the excerpt into the description unless overridden. Returns whether it wrote."""
    if not excerpt:
        return False
    if not force and is_meta_description_overridden(meta, excerpt):
        logger.debug("Meta description of %s is overridden, not syncing", meta.entity_id)
        return False
    meta.set_multiple(
        {
            MetaKey.META_DESCRIPTION: excerpt,
            MetaKey.META_DESCRIPTION_OVERRIDDEN: False,
        }
    )
    return True


def revert_to_excerpt_sync(meta: EntityMeta, excerpt: str) -> bool:
    return sync_excerpt_to_meta(meta, excerpt, force=True)


def get_effective_meta_description(meta: EntityMeta, excerpt: str) -> str:
    return meta.get(MetaKey.META_DESCRIPTION) or excerpt or ""


def is_meta_synced_from_excerpt(meta: EntityMeta, excerpt: str) -> bool:
    if not excerpt:
        return False
    return not is_meta_description_overridden(meta, excerpt)


def save_with_excerpt_sync(
    meta: EntityMeta,
    excerpt: str,
    meta_description: Optional[str] = None,
    meta_description_changed: bool = False,
) -> None:
    """Persists a direct edit as an override, otherwise syncs from the excerpt."""
    if meta_description_changed and meta_description is not None:
        meta.set_multiple(
            {
                MetaKey.META_DESCRIPTION: meta_description,
                MetaKey.META_DESCRIPTION_OVERRIDDEN: bool(meta_description),
            }
        )
        return
    sync_excerpt_to_meta(meta, excerpt)
