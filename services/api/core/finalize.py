# services/api/core/finalize.py
"""
Finalize: burn every placed signature of a document into a NEW PDF artifact.

Nothing is visible outside this function until the signed artifact is
uploaded AND the document row has swapped pending -> signed. If anything
fails (or the request is cancelled) after the upload, the artifact is
removed again so no record ever points at a half-finished file.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from adapters.base import RecordAdapter
from core.audit import record_audit
from core.blob_store import BlobStore, signed_object_path
from core.compositor import MarkSpec, composite_marks
from core.errors import FinalizeConflictError, FinalizeFailed, NoSignaturesError, NotFoundError
from models import AuditAction, CoordinateOrigin, Document, DocumentStatus, Signature, SignatureStatus
from models.converters import document_from_row, signature_from_row

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


@dataclass
class FinalizeResult:
    document: Document
    drawn: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    fallbacks: List[str] = field(default_factory=list)
    finalized_count: int = 0
    finalized_ids: List[str] = field(default_factory=list)


def _mark_spec(sig: Signature) -> MarkSpec:
    return MarkSpec(
        mark_id=sig.signature_id,
        page_number=sig.page_number,
        rect=sig.rect,
        label=sig.display_name,
        mark_image=sig.mark_image,
        top_left=(sig.origin == CoordinateOrigin.TOP_LEFT),
    )


async def finalize_document(
    document_id: str,
    owner_id: str,
    *,
    records: RecordAdapter,
    blobs: BlobStore,
    signed_bucket: str,
    timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    clock: Optional[Callable[[], datetime]] = None,
) -> FinalizeResult:
    # 1) preconditions
    doc_row = records.get_document(document_id, owner_id=owner_id)
    if not doc_row:
        raise NotFoundError("Document not found")
    document = document_from_row(doc_row)

    placed = [
        signature_from_row(r)
        for r in records.list_signatures_by_document(document_id, status=SignatureStatus.PLACED.value)
    ]
    if not placed:
        raise NoSignaturesError()
    if document.status != DocumentStatus.PENDING:
        raise FinalizeConflictError(
            f"Document is '{document.status.value}', only pending documents can be finalized"
        )

    now = (clock or (lambda: datetime.now(timezone.utc)))()
    stamp_text = f"Signed: {now.astimezone().strftime(timestamp_format)}"
    logger.info("Finalizing document %s with %d signature(s)", document_id, len(placed))

    # 2) original bytes
    try:
        source_bytes = await blobs.fetch_bytes(document.source_url)
    except Exception as e:
        logger.exception("Finalize %s: could not fetch source PDF", document_id)
        raise FinalizeFailed() from e

    # 3-6) composite + re-serialize
    try:
        composite = composite_marks(source_bytes, [_mark_spec(s) for s in placed], stamp_text)
    except Exception as e:
        logger.exception("Finalize %s: compositing failed", document_id)
        raise FinalizeFailed() from e

    # 7) upload as a new artifact (never the source path)
    signed_path = signed_object_path(owner_id, document.original_name, now.timestamp())
    try:
        signed_url = blobs.upload_bytes(signed_bucket, signed_path, composite.pdf_bytes, PDF_CONTENT_TYPE)
    except Exception as e:
        logger.exception("Finalize %s: upload of signed artifact failed", document_id)
        raise FinalizeFailed() from e

    # 8-9) commit; any failure or cancellation from here on drops the artifact
    try:
        await asyncio.sleep(0)  # request cancellation surfaces here, before the commit
        # only the rows read above were drawn; later placements stay placed
        finalized_ids = [s.signature_id for s in placed]
        finalized_count = records.commit_finalize(
            document_id, owner_id, signed_url, signed_path, now, finalized_ids
        )
        if finalized_count is None:
            raise FinalizeConflictError("Document was finalized or closed by another request")
    except BaseException as e:
        _discard_artifact(blobs, signed_bucket, signed_path)
        if isinstance(e, FinalizeFailed):
            raise
        if not isinstance(e, Exception):
            raise  # cancellation / interpreter exit
        logger.exception("Finalize %s: record update failed", document_id)
        raise FinalizeFailed() from e

    # 10) audit; a committed finalize stays committed if this write fails
    record_audit(
        records,
        document_id,
        owner_id,
        AuditAction.SIGNATURE_FINALIZED,
        {
            "signed_path": signed_path,
            "drawn": len(composite.drawn),
            "skipped": composite.skipped,
            "fallbacks": composite.fallbacks,
        },
    )

    logger.info(
        "Finalized document %s -> %s (drawn=%d skipped=%d fallback=%d)",
        document_id, signed_path, len(composite.drawn), len(composite.skipped), len(composite.fallbacks),
    )

    signed_row = records.get_document(document_id, owner_id=owner_id)
    return FinalizeResult(
        document=document_from_row(signed_row) if signed_row else document,
        drawn=composite.drawn,
        skipped=composite.skipped,
        fallbacks=composite.fallbacks,
        finalized_count=finalized_count,
        finalized_ids=finalized_ids,
    )


def _discard_artifact(blobs: BlobStore, bucket: str, path: str) -> None:
    try:
        blobs.remove_object(bucket, path)
    except Exception:
        logger.exception("Could not remove orphaned artifact %s/%s", bucket, path)
