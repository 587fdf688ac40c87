# services/api/routers/documents.py
from __future__ import annotations

import logging
import time
from typing import List

from fastapi import APIRouter, File, UploadFile, status

from core.audit import record_audit
from core.errors import ConflictError, NotFoundError, SignDeskError, ValidationError
from core.blob_store import upload_object_path
from core.pdf_pages import count_pages
from core.validation import validate_document_status_change, validate_upload
from dependencies import AppSettings, Blobs, OwnerId, Records, Sessions
from models import AuditAction, Document
from models.converters import document_from_row
from schemas import DocumentOut, DocumentStatusPatch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


# ====== Helpers ======

def _owned_document(records, doc_id: str, owner_id: str) -> Document:
    row = records.get_document(doc_id, owner_id=owner_id)
    if not row:
        raise NotFoundError("Document not found")
    return document_from_row(row)


def _remove_quietly(blobs, bucket: str, path: str) -> None:
    try:
        blobs.remove_object(bucket, path)
    except Exception:
        logger.exception("Could not remove stored object %s/%s", bucket, path)


# ====== Endpoints ======

@router.post("/upload", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def upload_document(
    records: Records,
    blobs: Blobs,
    settings: AppSettings,
    owner_id: OwnerId,
    file: UploadFile = File(...),
):
    """
    Store an uploaded PDF as a new 'pending' document.

    The object lands at {owner_id}/{timestamp}-{filename} in the documents
    bucket and is never modified afterwards; signing produces a new object.
    """
    data = await file.read()
    validate_upload(
        file.content_type,
        len(data),
        allowed_types=settings.get_content_types(),
        max_bytes=settings.max_upload_bytes,
    )
    page_count = count_pages(data)
    if page_count < 1:
        raise ValidationError("PDF has no pages")

    original_name = file.filename or "document.pdf"
    path = upload_object_path(owner_id, original_name, time.time())
    try:
        source_url = blobs.upload_bytes(settings.documents_bucket, path, data, "application/pdf")
    except Exception as e:
        logger.exception("Upload of %s failed", path)
        raise SignDeskError("Failed to store document", code="UPLOAD_FAILED") from e

    try:
        row = records.create_document(
            owner_id=owner_id,
            source_url=source_url,
            source_path=path,
            original_name=original_name,
            file_size_bytes=len(data),
            page_count=page_count,
        )
    except Exception:
        _remove_quietly(blobs, settings.documents_bucket, path)
        raise

    doc = document_from_row(row)
    record_audit(
        records,
        doc.doc_id,
        owner_id,
        AuditAction.DOCUMENT_UPLOADED,
        {"original_name": original_name, "file_size_bytes": len(data), "page_count": page_count},
    )
    logger.info("Uploaded document %s (%d pages) for %s", doc.doc_id, page_count, owner_id)
    return DocumentOut.from_model(doc)


@router.get("", response_model=List[DocumentOut], status_code=status.HTTP_200_OK)
async def list_documents(records: Records, owner_id: OwnerId):
    """Caller's documents, newest first."""
    rows = records.list_documents_by_owner(owner_id)
    return [DocumentOut.from_model(document_from_row(r)) for r in rows]


@router.get("/{doc_id}", response_model=DocumentOut, status_code=status.HTTP_200_OK)
async def get_document(doc_id: str, records: Records, owner_id: OwnerId):
    doc = _owned_document(records, doc_id, owner_id)
    record_audit(records, doc.doc_id, owner_id, AuditAction.DOCUMENT_VIEWED)
    return DocumentOut.from_model(doc)


@router.delete("/{doc_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    doc_id: str,
    records: Records,
    blobs: Blobs,
    sessions: Sessions,
    settings: AppSettings,
    owner_id: OwnerId,
):
    doc = _owned_document(records, doc_id, owner_id)

    if not records.delete_document(doc_id, owner_id):
        raise NotFoundError("Document not found")

    _remove_quietly(blobs, settings.documents_bucket, doc.source_path)
    if doc.signed_path:
        _remove_quietly(blobs, settings.signed_bucket, doc.signed_path)

    for session in sessions.for_document(doc_id):
        sessions.close(session.session_id, session.owner_id)

    record_audit(
        records,
        doc_id,
        owner_id,
        AuditAction.DOCUMENT_DELETED,
        {"original_name": doc.original_name, "status": doc.status.value},
    )
    logger.info("Deleted document %s", doc_id)
    return None


@router.patch("/{doc_id}/status", response_model=DocumentOut, status_code=status.HTTP_200_OK)
async def change_document_status(
    doc_id: str,
    body: DocumentStatusPatch,
    records: Records,
    owner_id: OwnerId,
):
    """Expire or cancel a pending document."""
    doc = _owned_document(records, doc_id, owner_id)
    validate_document_status_change(doc.status.value, body.status)

    if not records.set_document_status(
        doc_id, owner_id, body.status, expected_status=doc.status.value
    ):
        raise ConflictError("Document status was changed by another request")

    record_audit(
        records,
        doc_id,
        owner_id,
        AuditAction.DOCUMENT_STATUS_CHANGED,
        {"from": doc.status.value, "to": body.status},
    )
    return DocumentOut.from_model(_owned_document(records, doc_id, owner_id))
