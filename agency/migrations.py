"""
One-off data migrations from the legacy layouts:

- SEO and relationship values stored as columns on entity documents move into
  the per-kind overlay collections.
- The single-document settings record becomes one key/value row per setting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from agency.documents import DocumentStore, Query
from agency.entities import EntityKind
from agency.meta import MetaStore
from agency.site_settings import SETTINGS_COLLECTION, SETTINGS_KEY, SiteSettingsStore
from shared.json_utils import convert_keys
from shared.enums import MetaKey, SettingKey

logger = logging.getLogger(__name__)

LEGACY_COLUMNS = ("seoTitle", "seoKeywords", "metaDescription", "serviceGroupId", "projectId")

PAGE_SIZE = 100


@dataclass
class MigrationResult:
    scanned: int = 0
    migrated: int = 0
    skipped: int = 0


def _iter_documents(documents: DocumentStore, collection: str):
    offset = 0
    while True:
        page = documents.list_documents(
            collection,
            [
                Query.order_asc("$createdAt"),
                Query.offset(offset),
                Query.limit(PAGE_SIZE),
            ],
        ).documents
        if not page:
            return
        yield from page
        offset += len(page)


def migrate_columns_to_meta(
    documents: DocumentStore,
    meta: MetaStore,
    kind: EntityKind,
    *,
    dry_run: bool = False,
    force: bool = False,
    clear_columns: bool = False,
) -> MigrationResult:
    """
    Copies legacy overlay columns of every `kind` document into its overlay.

    Existing overlay values win unless `force` is set. A legacy description
    that differs from the excerpt is marked as overridden.
    """
    columns = [name for name in LEGACY_COLUMNS if name in kind.overlay_fields]
    result = MigrationResult()
    if not columns:
        return result
    for document in list(_iter_documents(documents, kind.collection)):
        result.scanned += 1
        legacy = {name: document[name] for name in columns if document.get(name)}
        if not legacy:
            continue
        bound = kind.meta(meta, document["$id"])
        existing = bound.get_all()
        values: dict[MetaKey, Any] = {}
        for name, value in legacy.items():
            key = kind.overlay_fields[name]
            if existing.get(key.value) and not force:
                result.skipped += 1
                continue
            values[key] = value
        if MetaKey.META_DESCRIPTION in values:
            values[MetaKey.META_DESCRIPTION_OVERRIDDEN] = values[
                MetaKey.META_DESCRIPTION
            ] != (document.get("excerpt") or "")
        if not values:
            continue
        logger.info(
            "%s %s: %s", kind.label, document["$id"], ", ".join(str(key) for key in values)
        )
        result.migrated += 1
        if dry_run:
            continue
        bound.set_multiple(values)
        if clear_columns:
            documents.update_document(
                kind.collection, document["$id"], {name: None for name in legacy}
            )
    return result


def migrate_settings(
    documents: DocumentStore,
    site_settings: SiteSettingsStore,
    *,
    dry_run: bool = False,
    keep_legacy: bool = False,
) -> MigrationResult:
    """
    Explodes legacy settings documents (rows without a settings key) into
    key/value rows. Keys are matched in camelCase; snake_case columns are
    accepted too.
    """
    known = {key.value for key in SettingKey}
    result = MigrationResult()
    legacy_rows = [
        row
        for row in _iter_documents(documents, SETTINGS_COLLECTION)
        if SETTINGS_KEY not in row
    ]
    for row in legacy_rows:
        result.scanned += 1
        columns = {
            key: value
            for key, value in convert_keys(row, "snake_to_camel").items()
            if not key.startswith("$") and value is not None
        }
        values = {key: value for key, value in columns.items() if key in known}
        ignored = sorted(key for key in columns if key not in known)
        if ignored:
            logger.warning("Ignoring unknown legacy settings %s", ", ".join(ignored))
        logger.info("Legacy settings %s: %d values", row["$id"], len(values))
        result.migrated += len(values)
        if dry_run:
            continue
        site_settings.set_multiple(values)
        if not keep_legacy:
            documents.delete_document(SETTINGS_COLLECTION, row["$id"])
    return result
