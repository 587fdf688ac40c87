from __future__ import annotations

import json
from typing import Any, Dict

from .audit import AuditAction, AuditEntry
from .document import Document, DocumentStatus
from .signature import CoordinateOrigin, Signature, SignatureStatus


def _iso(v: Any) -> str:
    """Storage rows may carry datetimes or strings; the domain keeps ISO strings."""
    if v is None:
        return ""
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return str(v)


def _opt_iso(v: Any):
    return _iso(v) or None


def document_from_row(row: Dict[str, Any]) -> Document:
    return Document(
        doc_id=row.get("doc_id", ""),
        owner_id=row.get("owner_id", ""),
        source_url=row.get("source_url", ""),
        source_path=row.get("source_path") or "",
        original_name=row.get("original_name") or "",
        file_size_bytes=int(row.get("file_size_bytes") or 0),
        page_count=int(row.get("page_count") or 0),
        status=DocumentStatus(row.get("status") or DocumentStatus.PENDING.value),
        signed_url=row.get("signed_url") or None,
        signed_path=row.get("signed_path") or None,
        created_at=_iso(row.get("created_at")),
        updated_at=_iso(row.get("updated_at")),
    )


def signature_from_row(row: Dict[str, Any]) -> Signature:
    return Signature(
        signature_id=row.get("signature_id", ""),
        document_id=row.get("document_id", ""),
        signer_email=row.get("signer_email") or "",
        signer_name=row.get("signer_name") or None,
        mark_image=row.get("mark_image") or None,
        page_number=int(row.get("page_number") or 1),
        x=float(row.get("x") or 0.0),
        y=float(row.get("y") or 0.0),
        width=float(row.get("width") or 0.0),
        height=float(row.get("height") or 0.0),
        origin=CoordinateOrigin(row.get("origin") or CoordinateOrigin.BOTTOM_LEFT.value),
        status=SignatureStatus(row.get("status") or SignatureStatus.PLACED.value),
        signed_at=_opt_iso(row.get("signed_at")),
        created_at=_iso(row.get("created_at")),
    )


def audit_from_row(row: Dict[str, Any]) -> AuditEntry:
    meta_raw = row.get("metadata")
    metadata = None
    if isinstance(meta_raw, str) and meta_raw:
        try:
            metadata = json.loads(meta_raw)
        except ValueError:
            metadata = {"raw": meta_raw}
    elif isinstance(meta_raw, dict):
        metadata = meta_raw

    return AuditEntry(
        entry_id=row.get("entry_id", ""),
        document_id=row.get("document_id") or None,
        owner_id=row.get("owner_id") or None,
        action=AuditAction(row.get("action")),
        timestamp=_iso(row.get("timestamp")),
        metadata=metadata,
    )
