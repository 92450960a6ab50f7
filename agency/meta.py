"""
Metadata overlay: schema-free key/value attributes attached to entities.

Each attribute is one document `{entityId, metaKey, metaValue}` in the entity
type's overlay collection. Values are stored as strings; structured values are
JSON encoded. Reads fail open (logged, default returned); writes raise.
"""

from __future__ import annotations

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from agency.documents import DocumentStore, DocumentStoreError, Query
from shared.enums import MetaKey

logger = logging.getLogger(__name__)

ENTITY_ID = "entityId"
META_KEY = "metaKey"
META_VALUE = "metaValue"

_NUMBER = re.compile(r"-?\d+(\.\d+)?")


def encode_value(value: Any) -> str:
    """None -> '', bool -> 'true'/'false', dict/list -> JSON, else str()."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value)
    return str(value)


def decode_value(raw: Any) -> Any:
    """
    Parses a stored string back into a value.

    Empty stays empty. Objects, arrays, true/false/null and plain decimal
    numbers are parsed; anything else (or anything that fails to parse) is
    returned as stored.
    """
    if not raw or not isinstance(raw, str):
        return raw
    text = raw.strip()
    looks_like_json = (
        text[:1] in ("{", "[")
        or text in ("true", "false", "null")
        or _NUMBER.fullmatch(text) is not None
    )
    if not looks_like_json:
        return raw
    try:
        return json.loads(text)
    except ValueError:
        return raw


class MetaStore:
    """Key/value overlay over a DocumentStore."""

    def __init__(self, documents: DocumentStore, *, max_workers: int = 8):
        self.documents = documents
        self.max_workers = max_workers

    def get_all(self, collection: str, entity_id: str) -> dict[str, Any]:
        try:
            result = self.documents.list_documents(
                collection, [Query.equal(ENTITY_ID, entity_id)]
            )
        except DocumentStoreError:
            logger.exception("Error getting all meta for %s/%s", collection, entity_id)
            return {}
        return {
            row[META_KEY]: decode_value(row.get(META_VALUE))
            for row in result.documents
        }

    def get(
        self, collection: str, entity_id: str, key: str, default: Any = None
    ) -> Any:
        try:
            row = self._find(collection, entity_id, key)
        except DocumentStoreError:
            logger.exception("Error getting meta %s for %s/%s", key, collection, entity_id)
            return default
        if row is None:
            return default
        return decode_value(row.get(META_VALUE))

    def set(self, collection: str, entity_id: str, key: str, value: Any) -> dict:
        """Insert-or-update the attribute in one store call. Raises on failure."""
        return self.documents.upsert_document(
            collection,
            {ENTITY_ID: entity_id, META_KEY: str(key)},
            {META_VALUE: encode_value(value)},
        )

    def set_multiple(
        self, collection: str, entity_id: str, values: Mapping[str, Any]
    ) -> None:
        """
        Writes every key concurrently and waits for all of them. The first
        failure is raised after the others finish; nothing is rolled back.
        """
        if not values:
            return
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self.set, collection, entity_id, key, value)
                for key, value in values.items()
            ]
            wait(futures)
        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

    def delete(self, collection: str, entity_id: str, key: str) -> bool:
        """Removes the attribute. Returns whether a row was found."""
        try:
            row = self._find(collection, entity_id, key)
            if row is None:
                return False
            self.documents.delete_document(collection, row["$id"])
        except DocumentStoreError:
            logger.exception("Error deleting meta %s for %s/%s", key, collection, entity_id)
            return False
        return True

    def delete_all(self, collection: str, entity_id: str) -> bool:
        try:
            rows = self.documents.list_documents(
                collection, [Query.equal(ENTITY_ID, entity_id)]
            ).documents
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(self.documents.delete_document, collection, row["$id"])
                    for row in rows
                ]
            for future in futures:
                future.result()
        except DocumentStoreError:
            logger.exception("Error deleting all meta for %s/%s", collection, entity_id)
            return False
        return True

    def find_entities_by_meta(self, collection: str, key: str, value: Any) -> list[str]:
        """Ids of entities whose attribute `key` equals `value`."""
        try:
            result = self.documents.list_documents(
                collection,
                [
                    Query.equal(META_KEY, str(key)),
                    Query.equal(META_VALUE, encode_value(value)),
                ],
            )
        except DocumentStoreError:
            logger.exception("Error finding entities by %s in %s", key, collection)
            return []
        return [row[ENTITY_ID] for row in result.documents]

    def for_entity(
        self, collection: str, entity_id: str, keys: Iterable[MetaKey]
    ) -> "EntityMeta":
        return EntityMeta(self, collection, entity_id, frozenset(keys))

    def _find(self, collection: str, entity_id: str, key: str) -> Optional[dict]:
        result = self.documents.list_documents(
            collection,
            [
                Query.equal(ENTITY_ID, entity_id),
                Query.equal(META_KEY, str(key)),
                Query.limit(1),
            ],
        )
        return result.documents[0] if result.documents else None


@dataclass(frozen=True)
class EntityMeta:
    """Overlay access bound to one entity, restricted to the keys its kind declares."""

    store: MetaStore
    collection: str
    entity_id: str
    keys: frozenset

    def _check(self, key: MetaKey) -> MetaKey:
        if key not in self.keys:
            raise KeyError(f"{key!r} is not an overlay key of {self.collection}")
        return key

    def get(self, key: MetaKey, default: Any = None) -> Any:
        return self.store.get(self.collection, self.entity_id, self._check(key), default)

    def set(self, key: MetaKey, value: Any) -> dict:
        return self.store.set(self.collection, self.entity_id, self._check(key), value)

    def set_multiple(self, values: Mapping[MetaKey, Any]) -> None:
        for key in values:
            self._check(key)
        self.store.set_multiple(self.collection, self.entity_id, values)

    def delete(self, key: MetaKey) -> bool:
        return self.store.delete(self.collection, self.entity_id, self._check(key))

    def get_all(self) -> dict[str, Any]:
        return self.store.get_all(self.collection, self.entity_id)
