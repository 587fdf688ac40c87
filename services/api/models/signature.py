# services/api/models/signature.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from core.coordinates import Rect


class SignatureStatus(str, Enum):
    PLACED = "placed"
    FINALIZED = "finalized"


class CoordinateOrigin(str, Enum):
    """
    How a persisted rect is anchored.

    BOTTOM_LEFT: native PDF space (written by editor sessions).
    TOP_LEFT:    page units measured from the top edge (direct placement API).
    """
    BOTTOM_LEFT = "bottom-left"
    TOP_LEFT = "top-left"


@dataclass
class Signature:
    """Persisted mirror of a placement."""
    signature_id: str
    document_id: str
    signer_email: str
    page_number: int             # 1-based

    x: float
    y: float
    width: float
    height: float
    origin: CoordinateOrigin = CoordinateOrigin.BOTTOM_LEFT

    signer_name: Optional[str] = None
    mark_image: Optional[str] = None

    status: SignatureStatus = SignatureStatus.PLACED
    signed_at: Optional[str] = None
    created_at: str = ""

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def display_name(self) -> str:
        return (self.signer_name or "").strip() or self.signer_email
