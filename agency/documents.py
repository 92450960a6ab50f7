"""
Document store abstraction: schemaless per-collection documents with an
equality/order/limit query builder, backed by SQLAlchemy or kept in memory.
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import time
import uuid
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy import JSON, Column, Float, String, create_engine, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

SYSTEM_ATTRIBUTES = ("$id", "$collectionId", "$createdAt", "$updatedAt")
UPSERT_ATTEMPTS = 3


class DocumentStoreError(Exception):
    """Raised when the backend rejects or fails an operation."""


class DocumentNotFoundError(DocumentStoreError):
    pass


@dataclass(frozen=True)
class Query:
    method: str
    attribute: Optional[str] = None
    values: tuple = ()

    @staticmethod
    def equal(attribute: str, value: Any) -> "Query":
        """Match documents whose attribute equals value (any of, for a list)."""
        values = tuple(value) if isinstance(value, (list, tuple)) else (value,)
        return Query("equal", attribute, values)

    @staticmethod
    def order_asc(attribute: str) -> "Query":
        return Query("orderAsc", attribute)

    @staticmethod
    def order_desc(attribute: str) -> "Query":
        return Query("orderDesc", attribute)

    @staticmethod
    def limit(count: int) -> "Query":
        return Query("limit", None, (count,))

    @staticmethod
    def offset(count: int) -> "Query":
        return Query("offset", None, (count,))


@dataclass
class DocumentList:
    documents: list[dict] = field(default_factory=list)
    total: int = 0


class DocumentStore(Protocol):
    """Interface for document access."""

    def list_documents(
        self, collection: str, queries: Iterable[Query] = ()
    ) -> DocumentList:
        ...

    def get_document(self, collection: str, document_id: str) -> dict:
        ...

    def create_document(self, collection: str, document_id: str, data: dict) -> dict:
        ...

    def update_document(self, collection: str, document_id: str, data: dict) -> dict:
        ...

    def delete_document(self, collection: str, document_id: str) -> None:
        ...

    def upsert_document(self, collection: str, match: dict, data: dict) -> dict:
        """
        Update the first document whose attributes equal `match`, or create one
        from `match` + `data`, as a single operation.
        """
        ...


def new_document_id() -> str:
    return uuid.uuid4().hex


def upsert_document_id(collection: str, match: dict) -> str:
    """Stable id for the document an upsert creates, so concurrent inserts collide."""
    key = json.dumps([collection, match], sort_keys=True, default=str)
    return uuid.uuid5(uuid.NAMESPACE_URL, key).hex


def _sort_key(value: Any) -> tuple:
    # None sorts first; mixed types fall back to their string form.
    if value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    return (2, str(value))


def matches(document: dict, queries: Iterable[Query]) -> bool:
    for query in queries:
        if query.method == "equal" and document.get(query.attribute) not in query.values:
            return False
    return True


def apply_queries(documents: Iterable[dict], queries: Iterable[Query]) -> DocumentList:
    """Evaluates equality, ordering, offset and limit predicates in memory."""
    queries = list(queries)
    selected = [doc for doc in documents if matches(doc, queries)]
    # Later order predicates are tie-breakers, so sort by them first.
    for query in reversed(queries):
        if query.method in ("orderAsc", "orderDesc"):
            selected.sort(
                key=lambda doc: _sort_key(doc.get(query.attribute)),
                reverse=query.method == "orderDesc",
            )
    total = len(selected)
    for query in queries:
        if query.method == "offset":
            selected = selected[query.values[0] :]
    for query in queries:
        if query.method == "limit":
            selected = selected[: query.values[0]]
    return DocumentList(documents=selected, total=total)


def _user_data(data: dict) -> dict:
    return {key: value for key, value in data.items() if key not in SYSTEM_ATTRIBUTES}


class InMemoryDocumentStore:
    """In-memory store for tests and local development."""

    def __init__(self):
        self._lock = threading.RLock()
        self.collections: dict[str, dict[str, dict]] = {}

    def reset(self) -> None:
        with self._lock:
            self.collections.clear()

    def _collection(self, collection: str) -> dict[str, dict]:
        return self.collections.setdefault(collection, {})

    def list_documents(
        self, collection: str, queries: Iterable[Query] = ()
    ) -> DocumentList:
        with self._lock:
            documents = copy.deepcopy(list(self._collection(collection).values()))
        documents.sort(key=lambda doc: doc["$createdAt"])
        return apply_queries(documents, queries)

    def get_document(self, collection: str, document_id: str) -> dict:
        with self._lock:
            document = self._collection(collection).get(document_id)
            if document is None:
                raise DocumentNotFoundError(
                    f"Document {document_id} not found in {collection}"
                )
            return copy.deepcopy(document)

    def create_document(self, collection: str, document_id: str, data: dict) -> dict:
        with self._lock:
            documents = self._collection(collection)
            if document_id in documents:
                raise DocumentStoreError(
                    f"Document {document_id} already exists in {collection}"
                )
            now = time.time()
            document = {
                **copy.deepcopy(_user_data(data)),
                "$id": document_id,
                "$collectionId": collection,
                "$createdAt": now,
                "$updatedAt": now,
            }
            documents[document_id] = document
            return copy.deepcopy(document)

    def update_document(self, collection: str, document_id: str, data: dict) -> dict:
        with self._lock:
            document = self._collection(collection).get(document_id)
            if document is None:
                raise DocumentNotFoundError(
                    f"Document {document_id} not found in {collection}"
                )
            document.update(copy.deepcopy(_user_data(data)))
            document["$updatedAt"] = time.time()
            return copy.deepcopy(document)

    def delete_document(self, collection: str, document_id: str) -> None:
        with self._lock:
            if self._collection(collection).pop(document_id, None) is None:
                raise DocumentNotFoundError(
                    f"Document {document_id} not found in {collection}"
                )

    def upsert_document(self, collection: str, match: dict, data: dict) -> dict:
        queries = [Query.equal(key, value) for key, value in match.items()]
        with self._lock:
            documents = self._collection(collection)
            for document in documents.values():
                if matches(document, queries):
                    return self.update_document(collection, document["$id"], data)
            document_id = upsert_document_id(collection, match)
            if document_id in documents:
                document_id = new_document_id()
            return self.create_document(collection, document_id, {**match, **data})


class SqlDocumentStore:
    """
    SQLAlchemy-backed store. Documents live in one table as JSON; string
    equality predicates are pushed into SQL, the rest is evaluated in Python.
    """

    def __init__(self, database_url: str):
        engine_kwargs: dict[str, Any] = {"future": True, "pool_pre_ping": True}
        in_memory_sqlite = database_url.startswith("sqlite") and ":memory:" in database_url
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        if in_memory_sqlite:
            engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        # A single shared in-memory connection cannot interleave transactions.
        self._guard = threading.RLock() if in_memory_sqlite else nullcontext()
        Base.metadata.create_all(self.engine)
        logger.info(
            "Document store ready on %s", self.engine.url.render_as_string(hide_password=True)
        )

    @staticmethod
    def _to_document(row: "DocumentRow") -> dict:
        return {
            **copy.deepcopy(row.data or {}),
            "$id": row.document_id,
            "$collectionId": row.collection,
            "$createdAt": row.created_at,
            "$updatedAt": row.updated_at,
        }

    def _candidates(self, collection: str, queries: list[Query]):
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        for query in queries:
            if query.method != "equal" or query.attribute in SYSTEM_ATTRIBUTES:
                continue
            if len(query.values) == 1 and isinstance(query.values[0], str):
                stmt = stmt.where(
                    DocumentRow.data[query.attribute].as_string() == query.values[0]
                )
        return stmt.order_by(DocumentRow.created_at.asc())

    def list_documents(
        self, collection: str, queries: Iterable[Query] = ()
    ) -> DocumentList:
        queries = list(queries)
        try:
            with self._guard, self.Session() as session:
                rows = session.execute(
                    self._candidates(collection, queries)
                ).scalars()
                documents = [self._to_document(row) for row in rows]
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc
        return apply_queries(documents, queries)

    def get_document(self, collection: str, document_id: str) -> dict:
        try:
            with self._guard, self.Session() as session:
                row = session.get(DocumentRow, (collection, document_id))
                if not row:
                    raise DocumentNotFoundError(
                        f"Document {document_id} not found in {collection}"
                    )
                return self._to_document(row)
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    def create_document(self, collection: str, document_id: str, data: dict) -> dict:
        try:
            with self._guard, self.Session() as session:
                if session.get(DocumentRow, (collection, document_id)):
                    raise DocumentStoreError(
                        f"Document {document_id} already exists in {collection}"
                    )
                row = self._new_row(collection, document_id, data)
                session.add(row)
                session.commit()
                return self._to_document(row)
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    def update_document(self, collection: str, document_id: str, data: dict) -> dict:
        try:
            with self._guard, self.Session() as session:
                row = session.get(
                    DocumentRow, (collection, document_id), with_for_update=True
                )
                if not row:
                    raise DocumentNotFoundError(
                        f"Document {document_id} not found in {collection}"
                    )
                self._merge(row, data)
                session.commit()
                return self._to_document(row)
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    def delete_document(self, collection: str, document_id: str) -> None:
        try:
            with self._guard, self.Session() as session:
                row = session.get(DocumentRow, (collection, document_id))
                if not row:
                    raise DocumentNotFoundError(
                        f"Document {document_id} not found in {collection}"
                    )
                session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise DocumentStoreError(str(exc)) from exc

    def upsert_document(self, collection: str, match: dict, data: dict) -> dict:
        queries = [Query.equal(key, value) for key, value in match.items()]
        document_id = upsert_document_id(collection, match)
        for attempt in range(UPSERT_ATTEMPTS):
            try:
                with self._guard, self.Session() as session:
                    stmt = self._candidates(collection, queries).with_for_update()
                    for row in session.execute(stmt).scalars():
                        if matches(row.data or {}, queries):
                            self._merge(row, data)
                            break
                    else:
                        row = self._new_row(collection, document_id, {**match, **data})
                        session.add(row)
                    session.commit()
                    return self._to_document(row)
            except IntegrityError as exc:
                # Another writer inserted the same key first; the next pass updates it.
                logger.debug(
                    "Upsert on %s collided (attempt %d): %s", collection, attempt + 1, exc
                )
                if attempt:
                    document_id = new_document_id()
            except SQLAlchemyError as exc:
                raise DocumentStoreError(str(exc)) from exc
        raise DocumentStoreError(f"Upsert on {collection} kept colliding for {match!r}")

    @staticmethod
    def _new_row(collection: str, document_id: str, data: dict) -> "DocumentRow":
        now = time.time()
        return DocumentRow(
            collection=collection,
            document_id=document_id,
            data=copy.deepcopy(_user_data(data)),
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    def _merge(row: "DocumentRow", data: dict) -> None:
        # Reassign so the JSON column is flagged dirty.
        row.data = {**(row.data or {}), **copy.deepcopy(_user_data(data))}
        row.updated_at = time.time()


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    document_id = Column(String, primary_key=True)
    data = Column(JSON, nullable=False)
    created_at = Column(Float, nullable=False, index=True)
    updated_at = Column(Float, nullable=False)
