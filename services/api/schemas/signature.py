"""
Pydantic schemas for signatures and finalize.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from models import Signature

from .document import DocumentOut


class SignatureCreate(BaseModel):
    """
    Place a signature directly on a document.

    Coordinates are page units measured from the TOP-LEFT corner of the page;
    they are flipped into native PDF space once, at finalize.
    """
    document_id: str = Field(..., min_length=1, description="Document ID")
    signer_email: str = Field(..., min_length=3, max_length=320, description="Signer email")
    signer_name: Optional[str] = Field(None, max_length=200, description="Printed under the mark")
    signature_image: Optional[str] = Field(
        None,
        description="Mark image as data URL or bare base64 (PNG/JPEG/GIF/WebP)",
    )
    page_number: int = Field(1, ge=1, description="1-based page number")
    x: float = Field(0.0, description="Left edge, page units")
    y: float = Field(0.0, description="Top edge, page units")
    width: float = Field(150.0, description="Width, page units")
    height: float = Field(50.0, description="Height, page units")


class SignatureOut(BaseModel):
    signature_id: str
    document_id: str
    signer_email: str
    signer_name: Optional[str] = None
    page_number: int
    x: float
    y: float
    width: float
    height: float
    origin: str
    status: str
    signed_at: Optional[str] = None
    created_at: str = ""
    has_image: bool = False

    @classmethod
    def from_model(cls, sig: Signature) -> "SignatureOut":
        return cls(
            signature_id=sig.signature_id,
            document_id=sig.document_id,
            signer_email=sig.signer_email,
            signer_name=sig.signer_name,
            page_number=sig.page_number,
            x=sig.x,
            y=sig.y,
            width=sig.width,
            height=sig.height,
            origin=sig.origin.value,
            status=sig.status.value,
            signed_at=sig.signed_at,
            created_at=sig.created_at,
            has_image=bool(sig.mark_image),
        )


class FinalizeRequest(BaseModel):
    document_id: str = Field(..., min_length=1, description="Document to finalize")


class FinalizeOut(BaseModel):
    """Result of a successful finalize."""
    document: DocumentOut
    signed_url: str
    finalized: int = Field(..., description="Signatures moved to 'finalized'")
    drawn: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list, description="Placements on missing pages")
    fallbacks: List[str] = Field(default_factory=list, description="Drawn as a bordered box")
