"""Main placement engine — lays out every feature on the six faces.

Hard features (ports, PCB posts, screw posts) sit exactly where the
plan puts them; any overlap between two of them on the same face is a
``FeatureCollision``.  Ventilation is soft: each cell is nudged along
the tiling axis until it clears everything, and silently dropped if it
cannot.  Ventilation therefore never fails a request.
"""

from __future__ import annotations

import logging

from enclosureai.config.hardware import hw
from enclosureai.pipeline.config import FACES
from enclosureai.pipeline.plan.models import DesignPlan

from .geometry import (
    face_size, margin_region, rects_collide, rect_inside, hex_extent, spread,
)
from .models import (
    Rect, FeatureRect, PortPlacement, PostPlacement, VentCell, PlacementMap,
    FeatureCollision,
)


log = logging.getLogger("enclosureAI.placer")


# ── Hard features ──────────────────────────────────────────────────


def _place_ports(plan: DesignPlan) -> list[PortPlacement]:
    out: list[PortPlacement] = []
    for i, port in enumerate(plan.ports):
        tmpl = hw.port_template(port.type)
        out.append(PortPlacement(
            feature_id=f"port_{i}_{port.type}",
            index=i,
            type=port.type,
            side=port.side,
            shape=tmpl.shape,
            u=port.position,
            v=port.height_offset + tmpl.height_mm / 2,
            width=tmpl.width_mm,
            height=tmpl.height_mm,
        ))
    return out


def _place_standoffs(plan: DesignPlan) -> list[PostPlacement]:
    """Four PCB posts at the cavity corners, inset by a fixed margin."""
    pm = plan.pcb_mounting
    if pm.type == "none":
        return []
    bore = pm.hole_dia / 2
    radius = bore + hw.post_wall(pm.type)
    inset = max(hw.corner_inset, radius)
    L, W = plan.dimensions.length, plan.dimensions.width
    corners = [(inset, inset), (L - inset, inset), (L - inset, W - inset), (inset, W - inset)]
    kind = pm.type.rstrip("s")
    return [
        PostPlacement(
            feature_id=f"{kind}_{i}",
            kind=kind,
            u=u, v=v,
            radius=radius,
            bore_radius=bore,
            height=pm.standoff_height,
        )
        for i, (u, v) in enumerate(corners)
    ]


def _screw_post_sites(plan: DesignPlan, r: float) -> list[tuple[float, float, tuple[str, ...]]]:
    """(u, v, touched_walls) for each screw post.

    Corners come first (diagonal pair for two posts); any posts beyond
    four are spread evenly along the two longer walls.
    """
    L, W = plan.dimensions.length, plan.dimensions.width
    c = r - hw.screw_post_embed
    lo_u, hi_u, lo_v, hi_v = c, L - c, c, W - c
    corners = [
        (lo_u, lo_v, ("front", "left")),
        (hi_u, hi_v, ("back", "right")),
        (hi_u, lo_v, ("front", "right")),
        (lo_u, hi_v, ("back", "left")),
    ]
    n = plan.lid.screw_count
    sites = corners[:min(n, 4)]
    extra = n - 4
    if extra > 0:
        first, second = (extra + 1) // 2, extra // 2
        if L >= W:
            sites += [(u, lo_v, ("front",)) for u in spread(lo_u, hi_u, first)]
            sites += [(u, hi_v, ("back",)) for u in spread(lo_u, hi_u, second)]
        else:
            sites += [(lo_u, v, ("left",)) for v in spread(lo_v, hi_v, first)]
            sites += [(hi_u, v, ("right",)) for v in spread(lo_v, hi_v, second)]
    return sites


def _place_screw_posts(plan: DesignPlan) -> list[PostPlacement]:
    if plan.lid.style != "screw":
        return []
    r = hw.screw_post_radius
    H = plan.dimensions.height
    boss = min(hw.screw_post_height, H / 2)
    support = min(2 * r, H - boss)
    return [
        PostPlacement(
            feature_id=f"screw_post_{i}",
            kind="screw_post",
            u=u, v=v,
            radius=r,
            bore_radius=hw.screw_bore_dia / 2,
            height=boss,
            z_base=H - boss,
            support_height=support,
            walls=walls,
        )
        for i, (u, v, walls) in enumerate(_screw_post_sites(plan, r))
    ]


def _post_wall_rect(post: PostPlacement, wall: str) -> Rect:
    """Footprint of a screw boss (and its support) on an adjacent wall."""
    along = post.u if wall in ("front", "back") else post.v
    v0 = post.z_base - post.support_height
    return Rect(along - post.radius, v0, along + post.radius, post.z_base + post.height)


def _check_collisions(face: str, features: list[FeatureRect], tolerance: float) -> None:
    for i, a in enumerate(features):
        for b in features[i + 1:]:
            if rects_collide(a.rect, b.rect, tolerance):
                log.info("Collision on %s face: %s vs %s", face, a.feature_id, b.feature_id)
                raise FeatureCollision(a.feature_id, b.feature_id, face)


# ── Ventilation ────────────────────────────────────────────────────


def _vent_faces(plan: DesignPlan) -> tuple[str, ...]:
    if not plan.ventilation.enabled:
        return ()
    if plan.ventilation.side == "sides":
        return ("left", "right")
    return (plan.ventilation.side,)


def _slot_grid(face: str, region: Rect) -> list[VentCell]:
    """Vertical bars tiled along u, centred in the region."""
    cfg = hw.ventilation
    sw, pitch = cfg["slot_width_mm"], cfg["slot_pitch_mm"]
    length = min(region.height, cfg["slot_max_length_mm"])
    if region.width < sw:
        return []
    n = int((region.width - sw) // pitch) + 1
    span = (n - 1) * pitch + sw
    u_start = region.u0 + (region.width - span) / 2 + sw / 2
    v_mid = (region.v0 + region.v1) / 2
    return [
        VentCell(face=face, shape="slot", u=u_start + k * pitch, v=v_mid,
                 width=sw, height=length)
        for k in range(n)
    ]


def _hex_grid(face: str, region: Rect) -> list[VentCell]:
    """Honeycomb: columns along u, odd columns offset by half a row."""
    cfg = hw.ventilation
    r, web = cfg["hex_radius_mm"], cfg["hex_web_mm"]
    cw, ch = hex_extent(r)
    # Bounding boxes of neighbouring columns may touch but never overlap.
    col_pitch = max(1.5 * r + web, cw)
    row_pitch = ch + web
    if region.width < cw or region.height < ch:
        return []
    n_cols = int((region.width - cw) // col_pitch) + 1
    n_rows = int((region.height - ch) // row_pitch) + 1
    u_start = region.u0 + (region.width - ((n_cols - 1) * col_pitch + cw)) / 2 + cw / 2
    v_start = region.v0 + (region.height - ((n_rows - 1) * row_pitch + ch)) / 2 + ch / 2

    cells: list[VentCell] = []
    for c in range(n_cols):
        offset = row_pitch / 2 if c % 2 else 0.0
        for rr in range(n_rows):
            cell = VentCell(face=face, shape="hex", u=u_start + c * col_pitch,
                            v=v_start + rr * row_pitch + offset, width=cw, height=ch)
            if rect_inside(cell.rect, region):
                cells.append(cell)
    return cells


def _settle_cell(
    cell: VentCell,
    region: Rect,
    blockers: list[Rect],
    accepted: list[VentCell],
    tolerance: float,
) -> VentCell | None:
    """Find the nearest free spot for *cell* along u, or None."""
    cfg = hw.ventilation
    step, max_shifts = cfg["shift_step_mm"], cfg["max_shifts"]

    def free(candidate: VentCell) -> bool:
        rect = candidate.rect
        if not rect_inside(rect, region):
            return False
        if any(rects_collide(rect, b, tolerance) for b in blockers):
            return False
        return not any(rects_collide(rect, a.rect) for a in accepted)

    if free(cell):
        return cell
    for k in range(1, max_shifts + 1):
        for sign in (1, -1):
            moved = VentCell(face=cell.face, shape=cell.shape, u=cell.u + sign * k * step,
                             v=cell.v, width=cell.width, height=cell.height)
            if free(moved):
                return moved
    return None


def _place_vents(
    plan: DesignPlan, faces: dict[str, list[FeatureRect]],
) -> tuple[list[VentCell], dict[str, Rect], int]:
    cells: list[VentCell] = []
    regions: dict[str, Rect] = {}
    omitted = 0
    for face in _vent_faces(plan):
        region = margin_region(plan, face, hw.vent_margin)
        if region is None:
            log.info("No room for ventilation on %s face (%.1f × %.1f mm)",
                     face, *face_size(plan, face))
            continue
        regions[face] = region
        grid = _hex_grid(face, region) if plan.ventilation.style == "honeycomb" \
            else _slot_grid(face, region)
        blockers = [f.rect for f in faces[face]]
        placed: list[VentCell] = []
        for cell in grid:
            settled = _settle_cell(cell, region, blockers, placed, plan.tolerance)
            if settled is None:
                omitted += 1
            else:
                placed.append(settled)
        log.info("Ventilation on %s face: %d cells (%d candidates)",
                 face, len(placed), len(grid))
        cells.extend(placed)
    return cells, regions, omitted


# ── Main placement function ───────────────────────────────────────


def resolve(plan: DesignPlan) -> PlacementMap:
    """Resolve every feature of *plan* onto the enclosure faces.

    Parameters
    ----------
    plan : DesignPlan
        A canonical plan (output of ``validate``).

    Returns
    -------
    PlacementMap
        Ports, posts and vent cells with concrete face coordinates.

    Raises
    ------
    FeatureCollision
        If two hard features overlap on the same face.
    """
    ports = _place_ports(plan)
    standoffs = _place_standoffs(plan)
    screw_posts = _place_screw_posts(plan)

    faces: dict[str, list[FeatureRect]] = {f: [] for f in FACES}
    for p in ports:
        faces[p.side].append(FeatureRect(p.feature_id, "port", p.side, p.rect))
    for s in standoffs:
        faces["bottom"].append(FeatureRect(s.feature_id, s.kind, "bottom", s.rect))
    for post in screw_posts:
        faces["top"].append(FeatureRect(post.feature_id, post.kind, "top", post.rect))
        for wall in post.walls:
            faces[wall].append(
                FeatureRect(post.feature_id, post.kind, wall, _post_wall_rect(post, wall)))

    for face in FACES:
        _check_collisions(face, faces[face], plan.tolerance)

    vents, regions, omitted = _place_vents(plan, faces)
    if omitted:
        log.info("Omitted %d ventilation cell(s) crowded out by other features", omitted)

    return PlacementMap(
        ports=tuple(ports),
        standoffs=tuple(standoffs),
        screw_posts=tuple(screw_posts),
        vents=tuple(vents),
        faces={f: tuple(rects) for f, rects in faces.items()},
        vent_regions=regions,
        vents_omitted=omitted,
    )
