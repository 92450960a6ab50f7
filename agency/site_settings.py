"""
Global site settings stored as key/value rows in the `settings` collection.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Mapping, Optional

from agency.documents import DocumentStore, DocumentStoreError, Query
from agency.meta import decode_value, encode_value
from shared.enums import SettingKey

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "settings"
SETTINGS_KEY = "settingsKey"
SETTINGS_VALUE = "settingsValue"

# Keys anyone may read without a session.
PUBLIC_SETTING_KEYS = (
    SettingKey.LOGO_LIGHT,
    SettingKey.LOGO_DARK,
    SettingKey.FAVICON,
    SettingKey.WEBSITE_NAME,
    SettingKey.SITE_TAGLINE,
    SettingKey.EMAIL,
    SettingKey.PHONE,
    SettingKey.ADDRESS_STREET,
    SettingKey.ADDRESS_CITY,
    SettingKey.ADDRESS_COUNTRY,
    SettingKey.ADDRESS_ZIP,
)


class SiteSettingsStore:
    def __init__(self, documents: DocumentStore, *, limit: int = 500, max_workers: int = 8):
        self.documents = documents
        self.limit = limit
        self.max_workers = max_workers

    def get_all(self) -> dict[str, Any]:
        try:
            result = self.documents.list_documents(
                SETTINGS_COLLECTION, [Query.limit(self.limit)]
            )
        except DocumentStoreError:
            logger.exception("Error getting all settings")
            return {}
        return {
            row[SETTINGS_KEY]: decode_value(row.get(SETTINGS_VALUE))
            for row in result.documents
        }

    def get(self, key: str, default: Any = None) -> Any:
        try:
            row = self._find(key)
        except DocumentStoreError:
            logger.exception("Error getting setting %s", key)
            return default
        if row is None:
            return default
        return decode_value(row.get(SETTINGS_VALUE))

    def set(self, key: str, value: Any) -> dict:
        return self.documents.upsert_document(
            SETTINGS_COLLECTION,
            {SETTINGS_KEY: str(key)},
            {SETTINGS_VALUE: encode_value(value)},
        )

    def set_multiple(self, values: Mapping[str, Any]) -> None:
        if not values:
            return
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.set, key, value) for key, value in values.items()
            ]
            wait(futures)
        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

    def delete(self, key: str) -> bool:
        try:
            row = self._find(key)
            if row is None:
                return False
            self.documents.delete_document(SETTINGS_COLLECTION, row["$id"])
        except DocumentStoreError:
            logger.exception("Error deleting setting %s", key)
            return False
        return True

    def is_maintenance_enabled(self) -> bool:
        return self.get(SettingKey.MAINTENANCE_ENABLED, False) is True

    def public_settings(self) -> dict[str, Any]:
        values = self.get_all()
        return {key.value: values.get(key.value, "") for key in PUBLIC_SETTING_KEYS}

    def _find(self, key: str) -> Optional[dict]:
        result = self.documents.list_documents(
            SETTINGS_COLLECTION,
            [Query.equal(SETTINGS_KEY, str(key)), Query.limit(1)],
        )
        return result.documents[0] if result.documents else None
