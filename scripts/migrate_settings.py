"""
Convert the legacy single-document settings record into key/value rows.
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
from agency.documents import DocumentStoreError
from agency.migrations import migrate_settings
from agency.site_settings import SiteSettingsStore


logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Migrate settings to key/value rows")
    parser.add_argument(
        "--keep-legacy",
        action="store_true",
        help="Leave the legacy settings document in place",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would be migrated without saving",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    settings = get_settings()
    documents = get_document_store()
    site_settings = SiteSettingsStore(
        documents, limit=settings.settings_limit, max_workers=settings.meta_write_workers
    )
    try:
        result = migrate_settings(
            documents, site_settings, dry_run=args.dry_run, keep_legacy=args.keep_legacy
        )
    except DocumentStoreError:
        logger.exception("Settings migration failed")
        return 1

    logger.info(
        "Migrated %d values from %d legacy documents", result.migrated, result.scanned
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
