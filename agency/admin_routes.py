"""
Admin API: sessions, entity CRUD with overlay attributes, block editor,
site settings and media. Everything but login sits behind the session gate.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from pydantic import TypeAdapter, ValidationError

from agency import entity_forms, excerpt
from agency.block_editor import apply_action, build_editor, registry_listing
from agency.config import get_settings
from agency.dependencies import (
    get_bearer_token,
    get_document_store,
    get_meta_store,
    get_session_store,
    get_site_settings,
    get_storage_client,
    require_session,
)
from agency.documents import (
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    new_document_id,
)
from agency.entities import EntityKind, get_kind
from agency.meta import MetaStore
from agency.relationships import find_related, relation_key
from agency.schemas import (
    BlockActionRequest,
    BlockEditorRequest,
    BlockEditorResponse,
    ContentBlockPayload,
    EntityListResponse,
    FileResponse,
    MetaValueRequest,
    SessionRequest,
    SessionResponse,
    SettingsUpdateRequest,
)
from agency.sessions import AdminSession, InvalidCredentialsError, SessionStore
from agency.site_settings import SiteSettingsStore
from agency.storage import (
    FileNotFoundInStorageError,
    FileRecord,
    StorageClient,
    StorageError,
)
from shared.content_blocks import UnknownBlockTypeError, blocks_from_value, blocks_to_value
from shared.enums import MetaKey

logger = logging.getLogger(__name__)

_CONTENT_BLOCKS = TypeAdapter(list[ContentBlockPayload])

session_router = APIRouter(prefix="/admin/sessions", tags=["admin"])
router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_session)]
)


def _kind_or_404(name: str) -> EntityKind:
    kind = get_kind(name)
    if kind is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity type: {name}")
    return kind


def _not_found(kind: EntityKind) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{kind.label.capitalize()} not found")


def _write_failed(action: str, label: str, exc: Exception) -> HTTPException:
    logger.exception("Failed to %s %s", action, label)
    return HTTPException(status_code=502, detail=f"Failed to {action} {label}: {exc}")


def _validate(
    kind: EntityKind,
    payload: dict[str, Any],
    *,
    partial: bool,
    current: Optional[dict] = None,
) -> dict:
    """
    Validates a form payload. Partial updates take required fields they omit
    from `current` and only dump what was set.
    """
    if partial and current:
        payload = dict(payload)
        for name, info in kind.form.model_fields.items():
            alias = info.alias or name
            if info.is_required() and alias not in payload and alias in current:
                payload[alias] = current[alias]
    try:
        form = kind.form.model_validate(payload)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    return form.model_dump(by_alias=True, exclude_unset=partial)


# Sessions


@session_router.post("", response_model=SessionResponse, status_code=201)
def create_session(
    payload: SessionRequest, sessions: SessionStore = Depends(get_session_store)
):
    try:
        session = sessions.create(payload.email, payload.password)
    except InvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    return SessionResponse(**session.as_dict())


@session_router.get("/current", response_model=SessionResponse)
def current_session(session: AdminSession = Depends(require_session)):
    return SessionResponse(**session.as_dict())


@session_router.delete("/current", status_code=204)
def delete_session(
    request: Request,
    session: AdminSession = Depends(require_session),
    sessions: SessionStore = Depends(get_session_store),
):
    sessions.delete(get_bearer_token(request) or "")
    return Response(status_code=204)


# Block editor


@router.get("/blocks")
def list_block_types():
    return {"categories": registry_listing()}


def _editor_response(blocks) -> BlockEditorResponse:
    settings = get_settings()
    return BlockEditorResponse(
        blocks=blocks_to_value(blocks),
        forms=build_editor(
            blocks, lambda file_id: settings.file_url(file_id, preview=True, width=400)
        ),
    )


@router.post("/blocks/forms", response_model=BlockEditorResponse)
def block_forms(payload: BlockEditorRequest):
    blocks = blocks_from_value([block.model_dump() for block in payload.blocks])
    return _editor_response(blocks)


@router.post("/blocks/actions", response_model=BlockEditorResponse)
def block_action(payload: BlockActionRequest):
    blocks = blocks_from_value([block.model_dump() for block in payload.blocks])
    try:
        blocks = apply_action(blocks, payload.action)
    except (UnknownBlockTypeError, IndexError, KeyError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _editor_response(blocks)


# Site settings


@router.get("/settings")
def get_site_settings_values(site_settings: SiteSettingsStore = Depends(get_site_settings)):
    return {"settings": site_settings.get_all()}


@router.put("/settings")
def update_site_settings(
    payload: SettingsUpdateRequest,
    site_settings: SiteSettingsStore = Depends(get_site_settings),
):
    try:
        site_settings.set_multiple(payload.values)
    except DocumentStoreError as exc:
        raise _write_failed("save", "settings", exc)
    return {"settings": site_settings.get_all()}


@router.delete("/settings/{key}")
def delete_site_setting(
    key: str, site_settings: SiteSettingsStore = Depends(get_site_settings)
):
    return {"deleted": site_settings.delete(key)}


# Media


def _file_response(record: FileRecord, storage: StorageClient) -> FileResponse:
    return FileResponse(
        **record.as_dict(),
        view_url=storage.view_url(record.id),
        preview_url=storage.preview_url(record.id, width=400),
    )


@router.get("/media", response_model=list[FileResponse])
def list_media(limit: int = 100, storage: StorageClient = Depends(get_storage_client)):
    try:
        records = storage.list_files(limit=limit)
    except StorageError:
        logger.exception("Error listing media")
        records = []
    return [_file_response(record, storage) for record in records]


@router.post("/media", response_model=FileResponse, status_code=201)
def upload_media(
    file: UploadFile = File(...), storage: StorageClient = Depends(get_storage_client)
):
    content = file.file.read()
    try:
        record = storage.create_file(
            new_document_id(),
            file.filename or "upload",
            content,
            file.content_type or "application/octet-stream",
        )
    except StorageError as exc:
        raise _write_failed("upload", "file", exc)
    return _file_response(record, storage)


@router.delete("/media/{file_id}", status_code=204)
def delete_media(file_id: str, storage: StorageClient = Depends(get_storage_client)):
    try:
        storage.delete_file(file_id)
    except FileNotFoundInStorageError as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    except StorageError as exc:
        raise _write_failed("delete", "file", exc)
    return Response(status_code=204)


# Entities


@router.get("/{kind_name}", response_model=EntityListResponse)
def list_entities(
    kind_name: str, documents: DocumentStore = Depends(get_document_store)
):
    kind = _kind_or_404(kind_name)
    try:
        rows = entity_forms.list_entities(documents, kind)
    except DocumentStoreError:
        logger.exception("Error loading %s list", kind.label)
        rows = []
    return EntityListResponse(documents=rows, total=len(rows))


@router.post("/{kind_name}", status_code=201)
def create_entity(
    kind_name: str,
    payload: dict[str, Any] = Body(...),
    meta_description_changed: Optional[bool] = None,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    form = _validate(kind, payload, partial=False)
    try:
        return entity_forms.save_entity(
            documents, meta, kind, form, meta_description_changed=meta_description_changed
        )
    except DocumentStoreError as exc:
        raise _write_failed("create", kind.label, exc)


def _entity_view(documents, meta, kind: EntityKind, entity_id: str) -> dict:
    try:
        view = entity_forms.load_entity(documents, meta, kind, entity_id)
    except DocumentNotFoundError as exc:
        raise _not_found(kind) from exc
    if kind.has_excerpt:
        bound = kind.meta(meta, entity_id)
        entity_excerpt = view.get("excerpt") or ""
        view["effectiveMetaDescription"] = excerpt.get_effective_meta_description(
            bound, entity_excerpt
        )
        view["metaSyncedFromExcerpt"] = excerpt.is_meta_synced_from_excerpt(
            bound, entity_excerpt
        )
    return view


@router.get("/{kind_name}/{entity_id}")
def get_entity(
    kind_name: str,
    entity_id: str,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    return _entity_view(documents, meta, kind, entity_id)


@router.put("/{kind_name}/{entity_id}")
def update_entity(
    kind_name: str,
    entity_id: str,
    payload: dict[str, Any] = Body(...),
    meta_description_changed: Optional[bool] = None,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    try:
        current = documents.get_document(kind.collection, entity_id)
    except DocumentNotFoundError as exc:
        raise _not_found(kind) from exc
    form = _validate(kind, payload, partial=True, current=current)
    try:
        entity_forms.save_entity(
            documents,
            meta,
            kind,
            form,
            entity_id=entity_id,
            meta_description_changed=meta_description_changed,
        )
    except DocumentNotFoundError as exc:
        raise _not_found(kind) from exc
    except DocumentStoreError as exc:
        raise _write_failed("update", kind.label, exc)
    return _entity_view(documents, meta, kind, entity_id)


@router.delete("/{kind_name}/{entity_id}", status_code=204)
def delete_entity(
    kind_name: str,
    entity_id: str,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    try:
        entity_forms.delete_entity(documents, meta, kind, entity_id)
    except DocumentNotFoundError as exc:
        raise _not_found(kind) from exc
    except DocumentStoreError as exc:
        raise _write_failed("delete", kind.label, exc)
    return Response(status_code=204)


@router.get("/{kind_name}/{entity_id}/meta")
def get_entity_meta(
    kind_name: str, entity_id: str, meta: MetaStore = Depends(get_meta_store)
):
    kind = _kind_or_404(kind_name)
    return {"meta": meta.get_all(kind.meta_collection, entity_id)}


def _meta_key_or_404(kind: EntityKind, key: str):
    for meta_key in kind.meta_keys:
        if meta_key == key:
            return meta_key
    raise HTTPException(status_code=404, detail=f"Unknown {kind.label} meta key: {key}")


def _content_blocks_value(value: Any) -> list[dict]:
    try:
        payloads = _CONTENT_BLOCKS.validate_python(value or [])
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
    try:
        blocks = blocks_from_value([payload.model_dump() for payload in payloads])
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return blocks_to_value(blocks)


@router.put("/{kind_name}/{entity_id}/meta/{key}")
def set_entity_meta(
    kind_name: str,
    entity_id: str,
    key: str,
    payload: MetaValueRequest,
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    meta_key = _meta_key_or_404(kind, key)
    value = payload.value
    if meta_key == MetaKey.CONTENT_BLOCKS:
        value = _content_blocks_value(value)
    try:
        kind.meta(meta, entity_id).set(meta_key, value)
    except DocumentStoreError as exc:
        raise _write_failed("save", f"{kind.label} {key}", exc)
    return {"meta": meta.get_all(kind.meta_collection, entity_id)}


@router.delete("/{kind_name}/{entity_id}/meta/{key}")
def delete_entity_meta(
    kind_name: str, entity_id: str, key: str, meta: MetaStore = Depends(get_meta_store)
):
    kind = _kind_or_404(kind_name)
    meta_key = _meta_key_or_404(kind, key)
    return {"deleted": kind.meta(meta, entity_id).delete(meta_key)}


@router.post("/{kind_name}/{entity_id}/seo/revert")
def revert_meta_description(
    kind_name: str,
    entity_id: str,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    if not kind.has_excerpt:
        raise HTTPException(status_code=404, detail=f"{kind.label.capitalize()} has no excerpt")
    view = _entity_view(documents, meta, kind, entity_id)
    try:
        excerpt.revert_to_excerpt_sync(kind.meta(meta, entity_id), view.get("excerpt") or "")
    except DocumentStoreError as exc:
        raise _write_failed("revert", f"{kind.label} meta description", exc)
    return _entity_view(documents, meta, kind, entity_id)


@router.get("/{kind_name}/{entity_id}/related/{child_name}", response_model=EntityListResponse)
def list_related(
    kind_name: str,
    entity_id: str,
    child_name: str,
    documents: DocumentStore = Depends(get_document_store),
    meta: MetaStore = Depends(get_meta_store),
):
    kind = _kind_or_404(kind_name)
    child = _kind_or_404(child_name)
    key = relation_key(kind, child)
    if key is None:
        raise HTTPException(
            status_code=404, detail=f"No relationship from {child.label} to {kind.label}"
        )
    rows = find_related(documents, meta, child, key, entity_id)
    return EntityListResponse(documents=rows, total=len(rows))
