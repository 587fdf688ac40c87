"""
Pydantic schemas for API request/response validation.
"""
from typing import Optional

from pydantic import BaseModel

from .document import DocumentOut, DocumentStatusPatch
from .editor import (
    ActivateRequest,
    PageOut,
    PlacementCreate,
    PlacementOut,
    PlacementPatch,
    SaveOut,
    SessionOpen,
    SessionOut,
    ViewportUpdate,
)
from .signature import FinalizeOut, FinalizeRequest, SignatureCreate, SignatureOut


# ============ Health Check ============


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = "healthy"
    backend: Optional[str] = None
    version: str = "1.0"


# Re-export all
__all__ = [
    "ActivateRequest",
    "DocumentOut",
    "DocumentStatusPatch",
    "FinalizeOut",
    "FinalizeRequest",
    "HealthCheck",
    "PageOut",
    "PlacementCreate",
    "PlacementOut",
    "PlacementPatch",
    "SaveOut",
    "SessionOpen",
    "SessionOut",
    "SignatureCreate",
    "SignatureOut",
    "ViewportUpdate",
]
