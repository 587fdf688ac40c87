# services/api/core/audit.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from adapters.base import RecordAdapter
from models import AuditAction

logger = logging.getLogger(__name__)


def record_audit(
    records: RecordAdapter,
    document_id: Optional[str],
    owner_id: Optional[str],
    action: AuditAction,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    """Append one audit entry. A failed write is logged, never raised."""
    try:
        records.add_audit_entry(document_id, owner_id, action.value, metadata)
        return True
    except Exception:
        logger.exception("Audit entry %s for document %s could not be written", action.value, document_id)
        return False
