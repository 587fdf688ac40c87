# services/api/core/editor_sessions.py
"""
Editing sessions: one PlacementStore per (owner, document) editing session.

Sessions live in a bounded TTL cache; an expired or evicted session is
simply gone (its unsaved placements with it), exactly like closing the
browser tab would lose them.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from uuid import uuid4

from cachetools import TTLCache

from core.coordinates import PageGeometry, Rect, SurfaceGeometry, to_native, to_surface
from core.errors import NotFoundError, ValidationError
from core.placements import Placement, PlacementStore

logger = logging.getLogger(__name__)


@dataclass
class EditorSession:
    session_id: str
    document_id: str
    owner_id: str
    pages: List[PageGeometry]
    store: PlacementStore
    zoom: float = 1.0
    # rendered size per 1-based page; pages never reported render at native size
    surfaces: Dict[int, SurfaceGeometry] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def page_geometry(self, page: int) -> PageGeometry:
        if not (1 <= page <= self.page_count):
            raise ValidationError(f"page must be in range [1, {self.page_count}], got {page}")
        return self.pages[page - 1]

    def surface_for(self, page: int) -> SurfaceGeometry:
        surface = self.surfaces.get(page)
        if surface is None:
            geo = self.page_geometry(page)
            surface = SurfaceGeometry(geo.native_width, geo.native_height)
        return surface

    def visible_bounds(self, page: int) -> SurfaceGeometry:
        """On-screen extent of a page: rendered size times zoom."""
        surface = self.surface_for(page)
        return SurfaceGeometry(surface.rendered_width * self.zoom, surface.rendered_height * self.zoom)

    def set_viewport(self, page: int, surface: SurfaceGeometry, zoom: float) -> None:
        """
        Record a new rendered size / zoom and carry existing placements along.

        Placements on `page` follow the full size change; placements on
        other pages only follow the zoom change.
        """
        if surface.rendered_width <= 0 or surface.rendered_height <= 0 or zoom <= 0:
            raise ValidationError("rendered size and zoom must be > 0")

        old = self.visible_bounds(page)
        zoom_ratio = zoom / self.zoom

        self.surfaces[page] = surface
        self.zoom = zoom
        new = self.visible_bounds(page)

        for p in range(1, self.page_count + 1):
            if p == page:
                self.store.rescale(
                    new.rendered_width / old.rendered_width,
                    new.rendered_height / old.rendered_height,
                    page=p,
                )
            elif zoom_ratio != 1.0:
                self.store.rescale(zoom_ratio, zoom_ratio, page=p)

    def move(self, placement_id: str, partial: dict) -> Optional[Placement]:
        placement = self.store.get(placement_id)
        if placement is None:
            return None
        self.store.update(placement_id, partial, bounds=self.visible_bounds(placement.page))
        return placement

    def adopt(
        self,
        page: int,
        native: Rect,
        signer_email: str,
        *,
        signer_name: Optional[str] = None,
        mark_image: Optional[str] = None,
        record_id: Optional[str] = None,
    ) -> Placement:
        """Bring a persisted native rect back into surface space as a placement."""
        surface_rect = to_surface(native, self.page_geometry(page), self.surface_for(page), self.zoom)
        placement = self.store.add(page, signer_email, signer_name)
        placement.x, placement.y = surface_rect.x, surface_rect.y
        placement.width, placement.height = surface_rect.width, surface_rect.height
        placement.mark_image = mark_image
        placement.record_id = record_id
        return placement

    def native_rect(self, placement: Placement) -> Rect:
        return to_native(
            placement.rect,
            self.page_geometry(placement.page),
            self.surface_for(placement.page),
            self.zoom,
        )


class EditorSessionRegistry:
    def __init__(self, maxsize: int = 256, ttl_s: float = 3600.0):
        self._sessions: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_s)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def open(self, document_id: str, owner_id: str, pages: List[PageGeometry]) -> EditorSession:
        if not pages:
            raise ValidationError("Document has no pages")
        session = EditorSession(
            session_id=str(uuid4()),
            document_id=document_id,
            owner_id=owner_id,
            pages=list(pages),
            store=PlacementStore(page_count=len(pages)),
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Opened editor session %s for document %s", session.session_id, document_id)
        return session

    def get(self, session_id: str, owner_id: str) -> EditorSession:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None or session.owner_id != owner_id:
            raise NotFoundError("Editor session not found")
        return session

    def close(self, session_id: str, owner_id: str) -> None:
        session = self.get(session_id, owner_id)
        session.store.clear()
        with self._lock:
            self._sessions.pop(session_id, None)

    def for_document(self, document_id: str) -> List[EditorSession]:
        with self._lock:
            return [s for s in self._sessions.values() if s.document_id == document_id]
