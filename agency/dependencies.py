"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from agency.config import get_settings
from agency.documents import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from agency.meta import MetaStore
from agency.sessions import AdminSession, InMemorySessionStore, SessionStore
from agency.site_settings import SiteSettingsStore
from agency.storage import InMemoryStorageClient, S3StorageClient, StorageClient

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None
_storage_client: StorageClient | None = None
_session_store: SessionStore | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _document_store = InMemoryDocumentStore()
        logger.warning("Using in-memory document store; data will not persist")
    else:
        _document_store = SqlDocumentStore(settings.database_url)
    return _document_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket_id:
        _storage_client = InMemoryStorageClient(settings=settings)
        logger.warning("Using in-memory storage client")
    else:
        _storage_client = S3StorageClient(
            settings=settings,
            bucket=settings.storage_bucket_id,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint_url or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_session_store() -> SessionStore:
    global _session_store
    if _session_store:
        return _session_store

    settings = get_settings()
    _session_store = InMemorySessionStore(
        admin_email=settings.admin_email,
        admin_password=settings.admin_password,
        ttl_seconds=settings.session_ttl_seconds,
    )
    return _session_store


def get_meta_store(documents: DocumentStore = Depends(get_document_store)) -> MetaStore:
    return MetaStore(documents, max_workers=get_settings().meta_write_workers)


def get_site_settings(
    documents: DocumentStore = Depends(get_document_store),
) -> SiteSettingsStore:
    settings = get_settings()
    return SiteSettingsStore(
        documents, limit=settings.settings_limit, max_workers=settings.meta_write_workers
    )


def get_bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def require_session(
    request: Request, sessions: SessionStore = Depends(get_session_store)
) -> AdminSession:
    session = sessions.get_current(get_bearer_token(request) or "")
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def check_maintenance(
    site_settings: SiteSettingsStore = Depends(get_site_settings),
) -> None:
    """Public routes answer 503 while maintenance mode is on."""
    if site_settings.is_maintenance_enabled():
        raise HTTPException(
            status_code=503,
            detail={
                "message": site_settings.get("maintenanceMessage", "")
                or "We are currently performing maintenance.",
                "contacts": site_settings.get("maintenanceContacts", []) or [],
            },
        )
