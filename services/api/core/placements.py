# services/api/core/placements.py
"""
In-memory placement list for one document-editing session.

Coordinates kept here are SURFACE space (top-left origin, zoomed pixels).
Conversion to native page space happens once, when the session is saved,
so repeated drags never compound rounding error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional
from uuid import uuid4

from core.coordinates import Rect, SurfaceGeometry, constrain
from core.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 150.0
DEFAULT_HEIGHT = 50.0
DEFAULT_X = 50.0
DEFAULT_Y = 50.0

# fields the interactive layer may touch through update()
_MUTABLE_FIELDS = ("x", "y", "width", "height", "mark_image", "signer_name", "signer_email")


class PlacementStatus(str, Enum):
    PLACED = "placed"
    FINALIZED = "finalized"


def _gen_id() -> str:
    return f"p-{uuid4().hex[:12]}"


@dataclass
class Placement:
    page: int                       # 1-based
    signer_email: str
    x: float = DEFAULT_X
    y: float = DEFAULT_Y
    width: float = DEFAULT_WIDTH
    height: float = DEFAULT_HEIGHT
    signer_name: Optional[str] = None
    mark_image: Optional[str] = None    # data URL or bare base64
    status: PlacementStatus = PlacementStatus.PLACED
    placement_id: str = field(default_factory=_gen_id)
    record_id: Optional[str] = None     # persisted signature row, once saved

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def display_name(self) -> str:
        return (self.signer_name or "").strip() or self.signer_email


class PlacementStore:
    """
    Ordered placements plus an advisory "active" selection.

    Placements are addressed by their generated placement_id, never by list
    position, so removing one never re-targets a reference to another.
    """

    def __init__(
        self,
        page_count: int,
        *,
        default_width: float = DEFAULT_WIDTH,
        default_height: float = DEFAULT_HEIGHT,
    ):
        if page_count < 1:
            raise ValidationError(f"page_count must be >= 1, got {page_count}")
        self.page_count = page_count
        self.default_width = default_width
        self.default_height = default_height
        self._items: List[Placement] = []
        self.active_id: Optional[str] = None

    # ---------- queries ----------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Placement]:
        return iter(list(self._items))

    def get(self, placement_id: str) -> Optional[Placement]:
        for p in self._items:
            if p.placement_id == placement_id:
                return p
        return None

    def position(self, placement_id: str) -> Optional[int]:
        """Current ordinal in the list (0-based), or None."""
        for idx, p in enumerate(self._items):
            if p.placement_id == placement_id:
                return idx
        return None

    @property
    def active(self) -> Optional[Placement]:
        return self.get(self.active_id) if self.active_id else None

    def for_page(self, page: int) -> List[Placement]:
        return [p for p in self._items if p.page == page]

    def placed(self) -> List[Placement]:
        return [p for p in self._items if p.status == PlacementStatus.PLACED]

    # ---------- mutations ----------

    def add(
        self,
        page: int,
        signer_email: str,
        signer_name: Optional[str] = None,
    ) -> Placement:
        if not (1 <= page <= self.page_count):
            raise ValidationError(
                f"page must be in range [1, {self.page_count}], got {page}"
            )
        placement = Placement(
            page=page,
            signer_email=signer_email,
            signer_name=signer_name,
            width=self.default_width,
            height=self.default_height,
        )
        self._items.append(placement)
        self.active_id = placement.placement_id
        return placement

    def update(
        self,
        placement_id: str,
        partial: Dict[str, Any],
        bounds: Optional[SurfaceGeometry] = None,
    ) -> None:
        """
        Merge surface-space fields into a placement.

        Unknown ids and finalized placements are ignored: ids only ever come
        from this store, so a miss is a caller bug, not a runtime condition.
        """
        placement = self.get(placement_id)
        if placement is None:
            logger.debug("update ignored for unknown placement %s", placement_id)
            return
        if placement.status != PlacementStatus.PLACED:
            return

        changes: Dict[str, Any] = {}
        for key, value in partial.items():
            if key not in _MUTABLE_FIELDS:
                raise ValidationError(f"Field '{key}' cannot be updated")
            if value is None and key in ("x", "y", "width", "height", "signer_email"):
                continue
            changes[key] = value

        # a rejected update leaves the placement untouched
        merged = replace(placement, **changes)
        if merged.width <= 0 or merged.height <= 0:
            raise ValidationError("width and height must be > 0")
        if bounds is not None:
            clamped = constrain(merged.rect, bounds)
            changes["x"], changes["y"] = clamped.x, clamped.y

        for key, value in changes.items():
            setattr(placement, key, value)

    def remove(self, placement_id: str) -> None:
        self._items = [p for p in self._items if p.placement_id != placement_id]
        if self.active_id == placement_id:
            self.active_id = None

    def activate(self, placement_id: Optional[str]) -> None:
        if placement_id is None or self.get(placement_id) is not None:
            self.active_id = placement_id

    def clear(self) -> None:
        self._items = []
        self.active_id = None

    def rescale(self, factor_x: float, factor_y: float, page: Optional[int] = None) -> None:
        """Follow a viewport change: scale surface rects (optionally one page only)."""
        for p in self._items:
            if page is not None and p.page != page:
                continue
            p.x *= factor_x
            p.width *= factor_x
            p.y *= factor_y
            p.height *= factor_y

    def finalize_records(self, record_ids: Iterable[str]) -> int:
        """
        Follow a committed finalize: placements whose saved row is in
        record_ids become finalized, placements never saved are dropped
        (they are not in the signed artifact). Returns how many finalized.
        """
        committed = set(record_ids)
        for p in [p for p in self._items if p.status == PlacementStatus.PLACED and not p.record_id]:
            self.remove(p.placement_id)
        changed = 0
        for p in self._items:
            if p.status == PlacementStatus.PLACED and p.record_id in committed:
                p.status = PlacementStatus.FINALIZED
                changed += 1
        return changed

    def finalize_all(self) -> int:
        """Batch placed -> finalized. Returns how many changed."""
        changed = 0
        for p in self._items:
            if p.status == PlacementStatus.PLACED:
                p.status = PlacementStatus.FINALIZED
                changed += 1
        return changed
