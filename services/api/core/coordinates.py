# services/api/core/coordinates.py
"""
Surface <-> native page coordinate mapping.

Native page space: PDF user space, origin bottom-left, Y grows upward.
Surface space:     on-screen rendering, origin top-left, Y grows downward,
                   scaled by the current zoom factor.

All functions are pure. Zero-area geometry is the caller's problem.
"""
from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PageGeometry:
    native_width: float
    native_height: float


@dataclass(frozen=True)
class SurfaceGeometry:
    rendered_width: float
    rendered_height: float


def round_half_away(value: float) -> float:
    """Round to 2 decimals, half away from zero, on the value scaled by 100."""
    scaled = value * 100
    return math.copysign(math.floor(abs(scaled) + 0.5), scaled) / 100


def _rounded(x: float, y: float, w: float, h: float) -> Rect:
    return Rect(
        x=round_half_away(x),
        y=round_half_away(y),
        width=round_half_away(w),
        height=round_half_away(h),
    )


def to_native(
    rect: Rect,
    page: PageGeometry,
    surface: SurfaceGeometry,
    zoom: float = 1.0,
) -> Rect:
    """
    Surface rect (top-left anchor) -> native rect (bottom-left anchor).

    The top-left corner in surface space becomes the bottom-left offset in
    native space, hence both y and height take part in the flip.
    """
    scale_x = page.native_width / (surface.rendered_width * zoom)
    scale_y = page.native_height / (surface.rendered_height * zoom)

    native_y = page.native_height - (rect.y * scale_y) - (rect.height * scale_y)
    return _rounded(
        rect.x * scale_x,
        native_y,
        rect.width * scale_x,
        rect.height * scale_y,
    )


def to_surface(
    rect: Rect,
    page: PageGeometry,
    surface: SurfaceGeometry,
    zoom: float = 1.0,
) -> Rect:
    """Inverse of to_native()."""
    scale_x = (surface.rendered_width * zoom) / page.native_width
    scale_y = (surface.rendered_height * zoom) / page.native_height

    surface_y = (page.native_height - rect.y - rect.height) * scale_y
    return _rounded(
        rect.x * scale_x,
        surface_y,
        rect.width * scale_x,
        rect.height * scale_y,
    )


def constrain(rect: Rect, bounds: SurfaceGeometry) -> Rect:
    """Clamp the rect's position into bounds; size is left untouched."""
    max_x = bounds.rendered_width - rect.width
    max_y = bounds.rendered_height - rect.height
    return Rect(
        x=max(0.0, min(rect.x, max_x)),
        y=max(0.0, min(rect.y, max_y)),
        width=rect.width,
        height=rect.height,
    )


def flip_to_native(rect: Rect, page_height: float) -> Rect:
    """
    Page-unit rect measured from the top edge -> native rect.

    No scaling, only the origin flip: y' = page_height - y - height.
    """
    return Rect(
        x=rect.x,
        y=page_height - rect.y - rect.height,
        width=rect.width,
        height=rect.height,
    )
