from __future__ import annotations

from .audit import AuditAction, AuditEntry
from .document import Document, DocumentStatus
from .signature import CoordinateOrigin, Signature, SignatureStatus

__all__ = [
    "AuditAction",
    "AuditEntry",
    "CoordinateOrigin",
    "Document",
    "DocumentStatus",
    "Signature",
    "SignatureStatus",
]
