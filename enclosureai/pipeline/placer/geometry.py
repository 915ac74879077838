"""Low-level geometry helpers for the placer."""

from __future__ import annotations

import math

from shapely.geometry import box as shapely_box

from enclosureai.pipeline.plan.models import DesignPlan

from .models import Rect

_EPS = 1e-6


def face_size(plan: DesignPlan, face: str) -> tuple[float, float]:
    """(u_extent, v_extent) of a face's inner surface."""
    d = plan.dimensions
    if face in ("top", "bottom"):
        return (d.length, d.width)
    return (plan.wall_length(face), d.height)


def margin_region(plan: DesignPlan, face: str, margin: float) -> Rect | None:
    """Face rectangle inset by *margin*, or None when nothing is left."""
    fu, fv = face_size(plan, face)
    if fu - 2 * margin <= 0 or fv - 2 * margin <= 0:
        return None
    return Rect(margin, margin, fu - margin, fv - margin)


def _to_box(r: Rect):
    return shapely_box(r.u0, r.v0, r.u1, r.v1)


def overlap_area(a: Rect, b: Rect, pad: float = 0.0) -> float:
    """Intersection area of two rectangles after growing each by *pad*.

    Rectangles that merely touch have zero overlap.
    """
    return _to_box(a.expanded(pad)).intersection(_to_box(b.expanded(pad))).area


def rects_collide(a: Rect, b: Rect, pad: float = 0.0) -> bool:
    return overlap_area(a, b, pad) > _EPS


def rect_inside(inner: Rect, outer: Rect) -> bool:
    """Check if *inner* lies fully inside *outer* (edges may touch)."""
    return _to_box(outer.expanded(_EPS)).contains(_to_box(inner))


def hex_extent(radius: float) -> tuple[float, float]:
    """(width, height) of a hexagon with a vertex on the +u axis."""
    return (2 * radius, radius * math.sqrt(3))


def spread(lo: float, hi: float, count: int) -> list[float]:
    """*count* evenly spaced interior points of [lo, hi], ends excluded."""
    return [lo + (hi - lo) * (j + 1) / (count + 1) for j in range(count)]
