from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class DocumentStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass
class Document:
    """
    Domain model for an uploaded PDF.

    `signed_url` / `signed_path` are only set once finalize has produced the
    signed artifact; the source object at `source_url` is never modified.
    """
    doc_id: str
    owner_id: str
    source_url: str
    source_path: str
    original_name: str

    file_size_bytes: int = 0
    page_count: int = 0
    status: DocumentStatus = DocumentStatus.PENDING

    signed_url: Optional[str] = None
    signed_path: Optional[str] = None

    created_at: str = ""
    updated_at: str = ""
