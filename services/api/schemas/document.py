"""
Pydantic schemas for documents.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import Document


class DocumentOut(BaseModel):
    """Schema for document output."""
    model_config = ConfigDict(from_attributes=True)

    doc_id: str = Field(..., description="Document ID")
    owner_id: str
    original_name: str
    source_url: str = Field(..., description="Public URL of the unmodified upload")
    file_size_bytes: int = 0
    page_count: int = 0
    status: str = Field(..., description="pending | signed | expired | cancelled")
    signed_url: Optional[str] = Field(None, description="Public URL of the signed artifact")
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_model(cls, doc: Document) -> "DocumentOut":
        return cls(
            doc_id=doc.doc_id,
            owner_id=doc.owner_id,
            original_name=doc.original_name,
            source_url=doc.source_url,
            file_size_bytes=doc.file_size_bytes,
            page_count=doc.page_count,
            status=doc.status.value,
            signed_url=doc.signed_url,
            created_at=doc.created_at,
            updated_at=doc.updated_at,
        )


class DocumentStatusPatch(BaseModel):
    """Caller-driven status change (finalize owns pending -> signed)."""
    status: Literal["expired", "cancelled"] = Field(..., description="New terminal status")
