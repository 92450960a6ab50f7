"""
Move legacy SEO and relationship columns into the overlay collections.

Older entity documents carried seoTitle, seoKeywords, metaDescription,
serviceGroupId and projectId as columns. This copies them into the
<kind>Meta collections the admin and public site read from.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agency.config import get_settings
from agency.dependencies import get_document_store
from agency.documents import DocumentStoreError, InMemoryDocumentStore
from agency.entities import ENTITY_KINDS, get_kind
from agency.meta import MetaStore
from agency.migrations import migrate_columns_to_meta


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Migrate legacy columns to meta")
    parser.add_argument(
        "--kind",
        action="append",
        default=None,
        help="Entity kind to migrate (e.g. service-groups); repeatable, default all",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite overlay values that already exist",
    )
    parser.add_argument(
        "--clear-columns",
        action="store_true",
        help="Clear the legacy columns after copying them",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be migrated without saving",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    kinds = ENTITY_KINDS
    if args.kind:
        kinds = tuple(get_kind(name) for name in args.kind)
        if None in kinds:
            logger.error("Unknown entity kind in %s", ", ".join(args.kind))
            return 1

    documents = get_document_store()
    if isinstance(documents, InMemoryDocumentStore):
        logger.warning("DATABASE_URL is not set; migrating an empty in-memory store")
    meta = MetaStore(documents, max_workers=get_settings().meta_write_workers)

    for kind in kinds:
        try:
            result = migrate_columns_to_meta(
                documents,
                meta,
                kind,
                dry_run=args.dry_run,
                force=args.force,
                clear_columns=args.clear_columns,
            )
        except DocumentStoreError:
            logger.exception("Migration failed for %s", kind.label)
            return 1
        logger.info(
            "%s: scanned %d, migrated %d, kept %d existing values",
            kind.label,
            result.scanned,
            result.migrated,
            result.skipped,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
