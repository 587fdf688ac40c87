from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(str, Enum):
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_VIEWED = "document_viewed"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENT_STATUS_CHANGED = "document_status_changed"
    SIGNATURE_PLACED = "signature_placed"
    SIGNATURE_DELETED = "signature_deleted"
    SIGNATURE_FINALIZED = "signature_finalized"


@dataclass
class AuditEntry:
    entry_id: str
    document_id: Optional[str]
    owner_id: Optional[str]
    action: AuditAction
    timestamp: str
    metadata: Optional[Dict[str, Any]] = None
