# services/api/routers/signatures.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, status

from core.audit import record_audit
from core.errors import ConflictError, NotFoundError
from core.finalize import finalize_document
from core.validation import validate_page_number, validate_rect, validate_uuid
from dependencies import AppSettings, Blobs, OwnerId, Records, Sessions
from models import AuditAction, CoordinateOrigin, Document, DocumentStatus, SignatureStatus
from models.converters import document_from_row, signature_from_row
from schemas import DocumentOut, FinalizeOut, FinalizeRequest, SignatureCreate, SignatureOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signatures", tags=["signatures"])


def _owned_document(records, doc_id: str, owner_id: str) -> Document:
    row = records.get_document(doc_id, owner_id=owner_id)
    if not row:
        raise NotFoundError("Document not found")
    return document_from_row(row)


@router.post("", response_model=SignatureOut, status_code=status.HTTP_201_CREATED)
async def place_signature(body: SignatureCreate, records: Records, owner_id: OwnerId):
    """
    Place one signature on a pending document.

    x/y are measured from the top-left corner of the page in page units,
    the row is stored with origin 'top-left' and flipped once at finalize.
    """
    validate_uuid(body.document_id, "document_id")
    doc = _owned_document(records, body.document_id, owner_id)
    if doc.status != DocumentStatus.PENDING:
        raise ConflictError(f"Document is '{doc.status.value}', signatures can no longer be placed")

    validate_page_number(body.page_number, doc.page_count)
    validate_rect(body.x, body.y, body.width, body.height)

    row = records.upsert_signature(
        {
            "document_id": doc.doc_id,
            "signer_email": body.signer_email,
            "signer_name": body.signer_name,
            "mark_image": body.signature_image,
            "page_number": body.page_number,
            "x": body.x,
            "y": body.y,
            "width": body.width,
            "height": body.height,
            "origin": CoordinateOrigin.TOP_LEFT.value,
            "status": SignatureStatus.PLACED.value,
        }
    )
    sig = signature_from_row(row)
    record_audit(
        records,
        doc.doc_id,
        owner_id,
        AuditAction.SIGNATURE_PLACED,
        {"signature_id": sig.signature_id, "signer_email": sig.signer_email, "page_number": sig.page_number},
    )
    return SignatureOut.from_model(sig)


@router.get("/document/{document_id}", response_model=List[SignatureOut], status_code=status.HTTP_200_OK)
async def list_signatures(document_id: str, records: Records, owner_id: OwnerId):
    """All signatures of a document, newest first."""
    _owned_document(records, document_id, owner_id)
    return [
        SignatureOut.from_model(signature_from_row(r))
        for r in records.list_signatures_by_document(document_id)
    ]


@router.delete("/{signature_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_signature(signature_id: str, records: Records, owner_id: OwnerId):
    row = records.get_signature(signature_id)
    if not row:
        raise NotFoundError("Signature not found")
    sig = signature_from_row(row)
    # ownership is the document's
    _owned_document(records, sig.document_id, owner_id)

    if sig.status != SignatureStatus.PLACED:
        raise ConflictError("Finalized signatures cannot be deleted")
    if not records.delete_signature(signature_id):
        raise NotFoundError("Signature not found")

    record_audit(
        records,
        sig.document_id,
        owner_id,
        AuditAction.SIGNATURE_DELETED,
        {"signature_id": signature_id, "signer_email": sig.signer_email},
    )
    return None


@router.post("/finalize", response_model=FinalizeOut, status_code=status.HTTP_200_OK)
async def finalize(
    body: FinalizeRequest,
    records: Records,
    blobs: Blobs,
    sessions: Sessions,
    settings: AppSettings,
    owner_id: OwnerId,
):
    """Burn every placed signature into a new signed PDF and mark the document signed."""
    validate_uuid(body.document_id, "document_id")
    result = await finalize_document(
        body.document_id,
        owner_id,
        records=records,
        blobs=blobs,
        signed_bucket=settings.signed_bucket,
        timestamp_format=settings.timestamp_format,
    )

    # open editors follow the commit: burned-in marks freeze, unsaved ones go
    for session in sessions.for_document(body.document_id):
        session.store.finalize_records(result.finalized_ids)

    return FinalizeOut(
        document=DocumentOut.from_model(result.document),
        signed_url=result.document.signed_url or "",
        finalized=result.finalized_count,
        drawn=result.drawn,
        skipped=result.skipped,
        fallbacks=result.fallbacks,
    )
