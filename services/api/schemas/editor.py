"""
Pydantic schemas for editor sessions (surface-space placements).
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from core.editor_sessions import EditorSession
from core.placements import Placement


class SessionOpen(BaseModel):
    document_id: str = Field(..., min_length=1, description="Document to edit")


class PageOut(BaseModel):
    page: int = Field(..., ge=1, description="1-based page number")
    native_width: float
    native_height: float


class ViewportUpdate(BaseModel):
    """Rendered size of one page, plus the zoom applied on top of it."""
    page: int = Field(..., ge=1)
    rendered_width: float = Field(..., gt=0)
    rendered_height: float = Field(..., gt=0)
    zoom: float = Field(1.0, gt=0, le=10.0)


class PlacementCreate(BaseModel):
    page: int = Field(..., ge=1, description="1-based page number")
    signer_email: str = Field(..., min_length=3, max_length=320)
    signer_name: Optional[str] = Field(None, max_length=200)


class PlacementPatch(BaseModel):
    """Partial update; omitted fields are left alone."""
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    signer_name: Optional[str] = Field(None, max_length=200)
    signer_email: Optional[str] = Field(None, min_length=3, max_length=320)
    mark_image: Optional[str] = Field(None, description="Data URL or bare base64")


class ActivateRequest(BaseModel):
    placement_id: Optional[str] = Field(None, description="None clears the selection")


class PlacementOut(BaseModel):
    placement_id: str
    ordinal: int = Field(..., description="Current position in the session list")
    page: int
    x: float
    y: float
    width: float
    height: float
    signer_email: str
    signer_name: Optional[str] = None
    status: str
    active: bool = False
    has_image: bool = False
    record_id: Optional[str] = None

    @classmethod
    def from_placement(cls, session: EditorSession, p: Placement) -> "PlacementOut":
        return cls(
            placement_id=p.placement_id,
            ordinal=session.store.position(p.placement_id) or 0,
            page=p.page,
            x=p.x,
            y=p.y,
            width=p.width,
            height=p.height,
            signer_email=p.signer_email,
            signer_name=p.signer_name,
            status=p.status.value,
            active=session.store.active_id == p.placement_id,
            has_image=bool(p.mark_image),
            record_id=p.record_id,
        )


class SessionOut(BaseModel):
    session_id: str
    document_id: str
    zoom: float
    pages: List[PageOut]
    placements: List[PlacementOut] = Field(default_factory=list)
    active_id: Optional[str] = None

    @classmethod
    def from_session(cls, session: EditorSession) -> "SessionOut":
        return cls(
            session_id=session.session_id,
            document_id=session.document_id,
            zoom=session.zoom,
            pages=[
                PageOut(page=i, native_width=g.native_width, native_height=g.native_height)
                for i, g in enumerate(session.pages, start=1)
            ],
            placements=[PlacementOut.from_placement(session, p) for p in session.store],
            active_id=session.store.active_id,
        )


class SaveOut(BaseModel):
    """Placements persisted as native (bottom-left) signature rows."""
    saved: int
    signature_ids: List[str] = Field(default_factory=list)
