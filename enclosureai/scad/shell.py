"""
Enclosure SCAD generation — turns a plan and its placement map into a
single OpenSCAD program.

The base is built as a fixed chain of steps.  Every step is a named
module that wraps the previous one, so the emitted source reads top to
bottom in the same order the solid is assembled:

  step_1_shell         outer box minus the cavity (open at the top)
  step_2_ports         minus every port cut, inflated by the tolerance
  step_3_vents         minus wall / floor ventilation
  step_4_mounting      plus PCB standoffs or pillars
  step_5_lid_interface plus screw bosses, or minus the snap groove

The lid is a separate part, modelled in print orientation (plate on the
bed, anything that reaches into the cavity pointing up) and placed
beside the base.  Top-face ventilation is cut into the lid plate.

Coordinates: origin at the outer corner, X along the length, Y along
the width, Z up.  The front wall faces -Y.
"""

from __future__ import annotations

import logging

from enclosureai.config.hardware import hw
from enclosureai.pipeline.config import PLAN_RULES
from enclosureai.pipeline.placer.models import (
    PlacementMap, PortPlacement, PostPlacement, VentCell,
)
from enclosureai.pipeline.plan.models import DesignPlan

from .program import (
    Program, Node, Ref, Cube, Cylinder, Translate, Rotate, union, difference,
)

log = logging.getLogger("enclosureAI.scad")

# Through-cuts stick out this far on each side of the wall they pierce.
_HALF = PLAN_RULES.cut_overshoot_mm / 2
_SEGMENTS = 32
_BASE_FACES = ("front", "back", "left", "right", "bottom")


# ── cut profiles and face frames ───────────────────────────────────


def _profile(shape: str, width: float, height: float, depth: float) -> Node:
    """Prism centred on the local origin, extruded along +z."""
    if shape == "round":
        return Cylinder(h=depth, r=width / 2, segments=_SEGMENTS)
    if shape == "hex":
        return Cylinder(h=depth, r=width / 2, segments=6)
    return Translate((-width / 2, -height / 2, 0.0), Cube((width, height, depth)))


def _on_face(plan: DesignPlan, face: str, u: float, v: float, prism: Node) -> Node:
    """Move a cut prism to (u, v) on *face* so it pierces that wall or floor."""
    L, W = plan.dimensions.length, plan.dimensions.width
    w = plan.wall_thickness
    if face == "front":
        return Translate((w + u, w + _HALF, w + v), Rotate((90, 0, 0), prism))
    if face == "back":
        return Translate((w + u, W + 2 * w + _HALF, w + v), Rotate((90, 0, 0), prism))
    if face == "left":
        return Translate((-_HALF, w + u, w + v), Rotate((90, 0, 90), prism))
    if face == "right":
        return Translate((L + w - _HALF, w + u, w + v), Rotate((90, 0, 90), prism))
    if face == "bottom":
        return Translate((w + u, w + v, -_HALF), prism)
    raise ValueError(f"The {face} face is not part of the base")


def _on_lid(plan: DesignPlan, u: float, v: float, prism: Node) -> Node:
    """Move a cut prism to top-face (u, v) on the lid in print orientation.

    The lid is printed upside down, so the face's v axis is mirrored.
    """
    w = plan.wall_thickness
    return Translate((w + u, plan.dimensions.width + w - v, -_HALF), prism)


def _port_cut(plan: DesignPlan, port: PortPlacement) -> Node:
    tol = plan.tolerance
    prism = _profile(port.shape, port.width + 2 * tol, port.height + 2 * tol,
                     PLAN_RULES.cut_depth(plan.wall_thickness))
    return _on_face(plan, port.side, port.u, port.v, prism)


def _vent_prism(plan: DesignPlan, cell: VentCell) -> Node:
    return _profile(cell.shape, cell.width, cell.height,
                    PLAN_RULES.cut_depth(plan.wall_thickness))


# ── posts ──────────────────────────────────────────────────────────


def _standoff(prog: Program, plan: DesignPlan, post: PostPlacement) -> Ref:
    w = plan.wall_thickness
    x, y = w + post.u, w + post.v
    body = prog.declare(
        f"{post.feature_id}_post",
        Translate((x, y, w), Cylinder(h=post.height, r=post.radius)),
    )
    bore = prog.declare(
        f"{post.feature_id}_bore",
        Translate((x, y, w), Cylinder(h=post.height + _HALF, r=post.bore_radius)),
    )
    return prog.declare(post.feature_id, difference(body, bore),
                        f"{post.kind} at ({post.u:.1f}, {post.v:.1f})")


def _screw_post(prog: Program, plan: DesignPlan, post: PostPlacement) -> Ref:
    """Boss hanging under the rim, carried by a cone so it prints unsupported."""
    w = plan.wall_thickness
    x, y = w + post.u, w + post.v
    z0 = w + post.z_base
    parts: list[Node] = [prog.declare(
        f"{post.feature_id}_boss",
        Translate((x, y, z0), Cylinder(h=post.height, r=post.radius)),
    )]
    if post.support_height > 0:
        parts.append(prog.declare(
            f"{post.feature_id}_support",
            Translate((x, y, z0 - post.support_height),
                      Cylinder(h=post.support_height, r1=0.0, r2=post.radius)),
        ))
    bore = prog.declare(
        f"{post.feature_id}_bore",
        Translate((x, y, z0 + _HALF), Cylinder(h=post.height, r=post.bore_radius)),
    )
    solid = union(*parts) if len(parts) > 1 else parts[0]
    return prog.declare(post.feature_id, difference(solid, bore),
                        f"screw post at ({post.u:.1f}, {post.v:.1f})")


# ── lid interface ──────────────────────────────────────────────────


def _snap_groove(plan: DesignPlan) -> Node:
    """Ring groove around the inside of the rim that the lid bead clicks into."""
    d, w, tol = plan.dimensions, plan.wall_thickness, plan.tolerance
    lid = hw.lid
    depth = min(lid["lip_depth_mm"] + tol, w / 2)
    height = lid["lip_height_mm"] + 2 * tol
    z0 = w + d.height - lid["groove_offset_mm"] - lid["lip_height_mm"] - tol
    return _ring(w - depth, w - depth, z0,
                 d.length + 2 * depth, d.width + 2 * depth, height, depth)


def _ring(x0: float, y0: float, z0: float, size_x: float, size_y: float,
          height: float, thickness: float) -> Node:
    """Rectangular tube with outer footprint (size_x, size_y)."""
    outer = Translate((x0, y0, z0), Cube((size_x, size_y, height)))
    inner = Translate(
        (x0 + thickness, y0 + thickness, z0 - _HALF),
        Cube((size_x - 2 * thickness, size_y - 2 * thickness, height + 2 * _HALF)),
    )
    return difference(outer, inner)


def _lid_plate(prog: Program, plan: DesignPlan, placements: PlacementMap) -> Ref:
    ox, oy, _ = plan.outer_size
    w = plan.wall_thickness
    plate = prog.declare("lid_plate", Cube((ox, oy, w)), "lid plate")

    holes: list[Node] = []
    if plan.lid.style == "screw":
        depth = PLAN_RULES.cut_depth(w)
        r = hw.screw_clearance_dia / 2 + plan.tolerance
        holes += [
            _on_lid(plan, post.u, post.v, Cylinder(h=depth, r=r, segments=_SEGMENTS))
            for post in placements.screw_posts
        ]
    holes += [_on_lid(plan, c.u, c.v, _vent_prism(plan, c)) for c in placements.vents_on("top")]
    if not holes:
        return plate
    cuts = prog.declare("lid_cuts", union(*holes), "screw clearance and top vents")
    return prog.declare("lid_plate_cut", difference(plate, cuts))


def _snap_lid_parts(prog: Program, plan: DesignPlan) -> list[Ref]:
    d, w, tol = plan.dimensions, plan.wall_thickness, plan.tolerance
    lid = hw.lid
    thickness = lid["flange_thickness_mm"]
    flange_h = min(lid["flange_height_mm"], d.height)
    fx, fy = d.length - 2 * tol, d.width - 2 * tol
    flange = prog.declare(
        "lid_flange",
        _ring(w + tol, w + tol, w, fx, fy, flange_h, thickness),
        "flange that drops inside the rim",
    )
    lip = lid["lip_depth_mm"]
    bead = prog.declare(
        "lid_lip",
        _ring(w + tol - lip, w + tol - lip, w + lid["groove_offset_mm"],
              fx + 2 * lip, fy + 2 * lip, lid["lip_height_mm"], lip),
        "bead that snaps into the rim groove",
    )
    return [flange, bead]


# ── main entry points ──────────────────────────────────────────────


def build_program(plan: DesignPlan, placements: PlacementMap) -> Program:
    """Assemble the CSG program for *plan* without serializing it."""
    d, w = plan.dimensions, plan.wall_thickness
    ox, oy, oz = plan.outer_size
    snap = plan.lid.style == "snap"

    prog = Program(title="EnclosureAI generated enclosure")
    prog.notes += [
        f"case_type: {plan.case_type}   lid: {plan.lid.style}",
        f"outer {ox:.1f} x {oy:.1f} x {oz:.1f} mm (base), "
        f"{len(placements.ports)} port(s), {len(placements.vents)} vent cell(s)",
    ]
    prog.param("inner_length", d.length)
    prog.param("inner_width", d.width)
    prog.param("inner_height", d.height)
    prog.param("wall_thickness", w)
    prog.param("tolerance", plan.tolerance)
    if not snap:
        prog.param("screw_count", plan.lid.screw_count)

    # 1. shell
    outer = prog.declare("outer_shell", Cube((ox, oy, oz)), "outer shell")
    cavity = prog.declare(
        "cavity",
        Translate((w, w, w), Cube((d.length, d.width, d.height + _HALF))),
        "cavity, open at the top",
    )
    step = prog.declare("step_1_shell", difference(outer, cavity))

    # 2. ports
    cuts = [
        prog.declare(f"cut_{p.feature_id}", _port_cut(plan, p),
                     f"{p.type} on {p.side} wall")
        for p in placements.ports
    ]
    step = prog.declare("step_2_ports", difference(step, *cuts) if cuts else step)

    # 3. ventilation (top face goes into the lid)
    vents = []
    for face in _BASE_FACES:
        cells = placements.vents_on(face)
        if cells:
            vents.append(prog.declare(
                f"vents_{face}",
                union(*(_on_face(plan, face, c.u, c.v, _vent_prism(plan, c)) for c in cells)),
                f"{len(cells)} {cells[0].shape} vent(s) on {face}",
            ))
    step = prog.declare("step_3_vents", difference(step, *vents) if vents else step)

    # 4. PCB mounting
    posts = [_standoff(prog, plan, s) for s in placements.standoffs]
    step = prog.declare("step_4_mounting", union(step, *posts) if posts else step)

    # 5. lid interface
    if snap:
        groove = prog.declare("snap_groove", _snap_groove(plan), "snap-fit groove")
        step = prog.declare("step_5_lid_interface", difference(step, groove))
    else:
        bosses = [_screw_post(prog, plan, p) for p in placements.screw_posts]
        step = prog.declare("step_5_lid_interface", union(step, *bosses) if bosses else step)

    base = prog.declare("enclosure_base", step)
    lid_parts = [_lid_plate(prog, plan, placements)]
    if snap:
        lid_parts += _snap_lid_parts(prog, plan)
    lid = prog.declare(
        "enclosure_lid",
        union(*lid_parts) if len(lid_parts) > 1 else lid_parts[0],
        "lid, print orientation",
    )

    prog.entry += [base, Translate((ox + hw.lid_gap, 0.0, 0.0), lid)]
    return prog


def compile_program(plan: DesignPlan, placements: PlacementMap) -> str:
    """Compile a plan and its placements into OpenSCAD source.

    Deterministic: the same inputs always produce byte-identical text.
    """
    prog = build_program(plan, placements)
    log.debug("Compiled %d modules (%d ports, %d vent cells, lid=%s)",
              len(prog.declarations), len(placements.ports),
              len(placements.vents), plan.lid.style)
    return prog.render()
