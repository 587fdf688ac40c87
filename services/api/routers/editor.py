# services/api/routers/editor.py
"""
Editing surface for the rendering layer.

Everything here is in SURFACE space (top-left origin, rendered pixels at
the current zoom). Native coordinates only appear on save, when each
placement is pushed through the coordinate mapper exactly once.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, status

from core.audit import record_audit
from core.coordinates import Rect, SurfaceGeometry, flip_to_native
from core.editor_sessions import EditorSession
from core.errors import ConflictError, NotFoundError, SignDeskError
from core.pdf_pages import cached_page_geometries, lookup_cached
from core.validation import validate_uuid
from dependencies import Blobs, OwnerId, Records, Sessions
from models import AuditAction, CoordinateOrigin, Document, DocumentStatus, SignatureStatus
from models.converters import document_from_row, signature_from_row
from schemas import (
    ActivateRequest,
    PlacementCreate,
    PlacementOut,
    PlacementPatch,
    SaveOut,
    SessionOpen,
    SessionOut,
    ViewportUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/editor/sessions", tags=["editor"])


def _pending_document(records, doc_id: str, owner_id: str) -> Document:
    row = records.get_document(doc_id, owner_id=owner_id)
    if not row:
        raise NotFoundError("Document not found")
    doc = document_from_row(row)
    if doc.status != DocumentStatus.PENDING:
        raise ConflictError(f"Document is '{doc.status.value}', it can no longer be edited")
    return doc


def _restore_saved(session: EditorSession, records) -> None:
    """Load the document's placed signatures back onto the surface."""
    rows = records.list_signatures_by_document(session.document_id, status=SignatureStatus.PLACED.value)
    # stored newest first, the surface lists oldest first
    for sig in reversed([signature_from_row(r) for r in rows]):
        if not (1 <= sig.page_number <= session.page_count):
            continue
        native = sig.rect
        if sig.origin == CoordinateOrigin.TOP_LEFT:
            native = flip_to_native(native, session.page_geometry(sig.page_number).native_height)
        session.adopt(
            sig.page_number,
            native,
            sig.signer_email,
            signer_name=sig.signer_name,
            mark_image=sig.mark_image,
            record_id=sig.signature_id,
        )
    session.store.activate(None)


@router.post("", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
async def open_session(body: SessionOpen, records: Records, blobs: Blobs, sessions: Sessions, owner_id: OwnerId):
    validate_uuid(body.document_id, "document_id")
    doc = _pending_document(records, body.document_id, owner_id)

    pages = lookup_cached(doc.source_url)
    if pages is None:
        try:
            pdf_bytes = await blobs.fetch_bytes(doc.source_url)
        except Exception as e:
            logger.exception("Could not load %s for editing", doc.source_url)
            raise SignDeskError("Could not load document", code="FETCH_FAILED") from e
        pages = cached_page_geometries(doc.source_url, pdf_bytes)

    session = sessions.open(doc.doc_id, owner_id, pages)
    _restore_saved(session, records)
    return SessionOut.from_session(session)


@router.get("/{session_id}", response_model=SessionOut, status_code=status.HTTP_200_OK)
async def get_session(session_id: str, sessions: Sessions, owner_id: OwnerId):
    return SessionOut.from_session(sessions.get(session_id, owner_id))


@router.put("/{session_id}/viewport", response_model=SessionOut, status_code=status.HTTP_200_OK)
async def set_viewport(session_id: str, body: ViewportUpdate, sessions: Sessions, owner_id: OwnerId):
    session = sessions.get(session_id, owner_id)
    session.page_geometry(body.page)
    session.set_viewport(
        body.page,
        SurfaceGeometry(body.rendered_width, body.rendered_height),
        body.zoom,
    )
    return SessionOut.from_session(session)


@router.post("/{session_id}/placements", response_model=PlacementOut, status_code=status.HTTP_201_CREATED)
async def add_placement(session_id: str, body: PlacementCreate, sessions: Sessions, owner_id: OwnerId):
    session = sessions.get(session_id, owner_id)
    placement = session.store.add(body.page, body.signer_email, body.signer_name)
    return PlacementOut.from_placement(session, placement)


@router.patch(
    "/{session_id}/placements/{placement_id}",
    response_model=PlacementOut,
    status_code=status.HTTP_200_OK,
)
async def move_placement(
    session_id: str,
    placement_id: str,
    body: PlacementPatch,
    sessions: Sessions,
    owner_id: OwnerId,
):
    """Drag / resize / relabel. The result is clamped to the visible page."""
    session = sessions.get(session_id, owner_id)
    placement = session.move(placement_id, body.model_dump(exclude_unset=True))
    if placement is None:
        raise NotFoundError("Placement not found")
    return PlacementOut.from_placement(session, placement)


@router.delete("/{session_id}/placements/{placement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_placement(
    session_id: str,
    placement_id: str,
    records: Records,
    sessions: Sessions,
    owner_id: OwnerId,
):
    session = sessions.get(session_id, owner_id)
    placement = session.store.get(placement_id)
    session.store.remove(placement_id)

    # an already-saved placement takes its signature row with it
    if placement is not None and placement.record_id:
        row = records.get_signature(placement.record_id)
        if row and row.get("status") == SignatureStatus.PLACED.value:
            records.delete_signature(placement.record_id)
            record_audit(
                records,
                session.document_id,
                owner_id,
                AuditAction.SIGNATURE_DELETED,
                {"signature_id": placement.record_id, "signer_email": placement.signer_email},
            )
    return None


@router.post("/{session_id}/activate", response_model=SessionOut, status_code=status.HTTP_200_OK)
async def activate_placement(session_id: str, body: ActivateRequest, sessions: Sessions, owner_id: OwnerId):
    session = sessions.get(session_id, owner_id)
    session.store.activate(body.placement_id)
    return SessionOut.from_session(session)


@router.get(
    "/{session_id}/pages/{page}/placements",
    response_model=List[PlacementOut],
    status_code=status.HTTP_200_OK,
)
async def page_placements(session_id: str, page: int, sessions: Sessions, owner_id: OwnerId):
    session = sessions.get(session_id, owner_id)
    session.page_geometry(page)
    return [PlacementOut.from_placement(session, p) for p in session.store.for_page(page)]


@router.post("/{session_id}/save", response_model=SaveOut, status_code=status.HTTP_200_OK)
async def save_session(session_id: str, records: Records, sessions: Sessions, owner_id: OwnerId):
    """
    Persist every placed placement as a native (bottom-left) signature row.

    Saving twice updates the same rows: each placement remembers its row id.
    """
    session = sessions.get(session_id, owner_id)
    _pending_document(records, session.document_id, owner_id)

    saved_ids: List[str] = []
    for placement in session.store.placed():
        native: Rect = session.native_rect(placement)
        row = {
            "document_id": session.document_id,
            "signer_email": placement.signer_email,
            "signer_name": placement.signer_name,
            "mark_image": placement.mark_image,
            "page_number": placement.page,
            "x": native.x,
            "y": native.y,
            "width": native.width,
            "height": native.height,
            "origin": CoordinateOrigin.BOTTOM_LEFT.value,
            "status": SignatureStatus.PLACED.value,
        }
        if placement.record_id:
            row["signature_id"] = placement.record_id
        stored = records.upsert_signature(row)

        if not placement.record_id:
            record_audit(
                records,
                session.document_id,
                owner_id,
                AuditAction.SIGNATURE_PLACED,
                {
                    "signature_id": stored["signature_id"],
                    "signer_email": placement.signer_email,
                    "page_number": placement.page,
                },
            )
        placement.record_id = stored["signature_id"]
        saved_ids.append(stored["signature_id"])

    logger.info("Saved %d placement(s) for document %s", len(saved_ids), session.document_id)
    return SaveOut(saved=len(saved_ids), signature_ids=saved_ids)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str, sessions: Sessions, owner_id: OwnerId):
    sessions.close(session_id, owner_id)
    return None
