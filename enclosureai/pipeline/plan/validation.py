"""Design plan validation — normalize an untrusted raw plan into a DesignPlan.

The planner's output is duck-typed JSON: fields go missing, numbers
arrive as strings, enums come back in odd spellings.  Validation is a
*total* function: it never raises, it repairs.  Every repair is recorded
as a human-readable adjustment (surfaced as a ``ValidationDefaulted``
diagnostic) so the caller can explain what changed.

Rules, in order:
  (a) wall_thickness clamped to the printable minimum
  (b) dimensions defaulted, then clamped per axis
  (c) tolerance defaulted
  (d) pcb_mounting / lid / ventilation defaulted
  (e) ports defaulted to an empty list
  (f) each port gets a face-relative position and is clamped into its wall

Running the validator on its own output changes nothing.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from enclosureai.config.hardware import hw
from enclosureai.pipeline.config import (
    PLAN_RULES, CASE_TYPES, WALL_SIDES, MOUNTING_TYPES, VENT_STYLES,
    VENT_SIDES, LID_STYLES,
)
from .models import (
    Dimensions, Port, PcbMounting, Ventilation, Lid, DesignPlan,
)

log = logging.getLogger("enclosureAI.validation")

_TRUE_STRINGS = {"true", "yes", "on", "1", "enabled"}
_FALSE_STRINGS = {"false", "no", "off", "0", "disabled", ""}


# ── coercion helpers ───────────────────────────────────────────────


def _number(value: Any) -> float | None:
    """Coerce *value* to a finite float, or None if that is impossible."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            n = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            n = float(value.strip().removesuffix("mm"))
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def _clamped(
    value: Any, lo: float, hi: float, default: float,
    name: str, issues: list[str],
) -> float:
    n = _number(value)
    if n is None:
        if value is None:
            issues.append(f"{name} missing; defaulted to {default:g}.")
        else:
            issues.append(f"{name}={value!r} is not a number; defaulted to {default:g}.")
        return default
    if n < lo:
        issues.append(f"{name} increased from {n:g} to {lo:g} (minimum).")
        return lo
    if n > hi:
        issues.append(f"{name} reduced from {n:g} to {hi:g} (maximum).")
        return hi
    return n


def _choice(
    value: Any, choices: tuple[str, ...], default: str,
    name: str, issues: list[str],
) -> str:
    """Match a free-form enum string against *choices*."""
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in choices:
            return key
        if key + "s" in choices:
            return key + "s"
    if value is None:
        issues.append(f"{name} missing; defaulted to '{default}'.")
    else:
        issues.append(f"{name}={value!r} unknown; defaulted to '{default}'.")
    return default


def _flag(value: Any, default: bool, name: str, issues: list[str]) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TRUE_STRINGS:
            return True
        if key in _FALSE_STRINGS:
            return False
    if value is None:
        issues.append(f"{name} missing; defaulted to {default}.")
    else:
        issues.append(f"{name}={value!r} is not a boolean; defaulted to {default}.")
    return default


def _section(data: dict, key: str, issues: list[str]) -> dict:
    section = data.get(key)
    if isinstance(section, dict):
        return section
    if section is None:
        issues.append(f"{key} missing; using defaults.")
    else:
        issues.append(f"{key} is not an object; using defaults.")
    return {}


def _first_present(entry: dict, *keys: str) -> Any:
    for k in keys:
        if entry.get(k) is not None:
            return entry[k]
    return None


# ── main entry points ──────────────────────────────────────────────


def validate_with_report(raw: Any) -> tuple[DesignPlan, list[str]]:
    """Normalize *raw* into a canonical DesignPlan.

    Returns (plan, adjustments).  An empty adjustments list means the
    input was already canonical.
    """
    from .serialization import plan_to_dict

    issues: list[str] = []
    if isinstance(raw, DesignPlan):
        raw = plan_to_dict(raw)
    if isinstance(raw, dict):
        data = dict(raw)
    else:
        issues.append("Plan is not an object; starting from the default plan.")
        data = {}
    rules = PLAN_RULES

    # Legacy top-level keys from older planner prompts
    if data.get("ventilation") is None and "vents" in data:
        data["ventilation"] = {"enabled": data["vents"]}
    if data.get("lid") is None and ("lid_type" in data or "screw_posts" in data):
        data["lid"] = {"style": data.get("lid_type"), "screw_count": data.get("screw_posts")}

    case_type = _choice(data.get("case_type"), CASE_TYPES, "handheld", "case_type", issues)

    # ── (a) wall thickness ──
    wall = _clamped(
        data.get("wall_thickness"), rules.min_wall_mm, rules.max_wall_mm,
        rules.min_wall_mm, "wall_thickness", issues,
    )

    # ── (b) dimensions ──
    dims_raw = _section(data, "dimensions", issues)
    defaults = {
        "length": rules.default_length_mm,
        "width": rules.default_width_mm,
        "height": rules.default_height_mm,
    }
    dims: dict[str, float] = {}
    for axis in ("length", "width", "height"):
        lo, hi = rules.dimension_bounds(axis)
        dims[axis] = _clamped(dims_raw.get(axis), lo, hi, defaults[axis],
                              f"dimensions.{axis}", issues)

    # Ports need their wall to be at least as big as their template.
    port_entries = _port_entries(data, issues)
    for entry, ptype, side in port_entries:
        tmpl = hw.port_template(ptype)
        axis = "length" if side in ("front", "back") else "width"
        for ax, need in ((axis, tmpl.width_mm), ("height", tmpl.height_mm)):
            if dims[ax] < need:
                grown = min(need, rules.dimension_bounds(ax)[1])
                issues.append(
                    f"dimensions.{ax} increased from {dims[ax]:g} to {grown:g} "
                    f"to fit a {ptype} port."
                )
                dims[ax] = grown
    dimensions = Dimensions(**dims)

    # ── (c) tolerance ──
    tolerance = _clamped(
        data.get("tolerance"), 0.0, rules.max_tolerance_mm,
        rules.default_tolerance_mm, "tolerance", issues,
    )

    # ── (d) mounting, lid, ventilation ──
    pm = _section(data, "pcb_mounting", issues)
    pcb_mounting = PcbMounting(
        type=_choice(pm.get("type"), MOUNTING_TYPES, "none", "pcb_mounting.type", issues),
        standoff_height=_clamped(
            pm.get("standoff_height"), rules.min_standoff_height_mm,
            dimensions.height, min(rules.default_standoff_height_mm, dimensions.height),
            "pcb_mounting.standoff_height", issues,
        ),
        hole_dia=_clamped(
            pm.get("hole_dia"), rules.min_hole_dia_mm, rules.max_hole_dia_mm,
            rules.default_hole_dia_mm, "pcb_mounting.hole_dia", issues,
        ),
    )

    lid_raw = _section(data, "lid", issues)
    lid = Lid(
        style=_choice(lid_raw.get("style"), LID_STYLES, "screw", "lid.style", issues),
        screw_count=int(round(_clamped(
            lid_raw.get("screw_count"), rules.min_screw_count, rules.max_screw_count,
            rules.default_screw_count, "lid.screw_count", issues,
        ))),
    )
    dimensions = _fit_screw_posts(dimensions, lid, tolerance, issues)

    vent_raw = _section(data, "ventilation", issues)
    ventilation = Ventilation(
        enabled=_flag(vent_raw.get("enabled"), False, "ventilation.enabled", issues),
        style=_choice(vent_raw.get("style"), VENT_STYLES, "slots", "ventilation.style", issues),
        side=_choice(vent_raw.get("side"), VENT_SIDES, "sides", "ventilation.side", issues),
    )

    # ── (e) + (f) ports ──
    ports = tuple(
        _validate_port(i, entry, ptype, side, dimensions, issues)
        for i, (entry, ptype, side) in enumerate(port_entries)
    )

    plan = DesignPlan(
        case_type=case_type,
        dimensions=dimensions,
        wall_thickness=wall,
        tolerance=tolerance,
        pcb_mounting=pcb_mounting,
        ports=ports,
        ventilation=ventilation,
        lid=lid,
    )
    return plan, issues


def validate(raw: Any) -> DesignPlan:
    """Normalize *raw* into a canonical DesignPlan.  Never raises.

    Every adjustment is logged as a ``ValidationDefaulted`` diagnostic.
    """
    plan, issues = validate_with_report(raw)
    for issue in issues:
        log.info("ValidationDefaulted: %s", issue)
    return plan


# ── screw posts ────────────────────────────────────────────────────


def _fit_screw_posts(
    dimensions: Dimensions, lid: Lid, tolerance: float, issues: list[str],
) -> Dimensions:
    """Grow length / width until the screw bosses clear each other.

    Mirrors the placer's layout: corner bosses sunk into the walls, and
    any posts beyond four spread along the longer of length and width.
    Neighbouring bosses need a gap of twice the tolerance.
    """
    if lid.style != "screw":
        return dimensions
    r = hw.screw_post_radius
    inset = r - hw.screw_post_embed
    pitch = 2 * r + 2 * tolerance
    need = {"length": 2 * inset + pitch, "width": 2 * inset + pitch}
    dims = {"length": dimensions.length, "width": dimensions.width}
    extra = lid.screw_count - 4
    if extra > 0:
        longer = "length" if max(dims["length"], need["length"]) >= \
            max(dims["width"], need["width"]) else "width"
        need[longer] = 2 * inset + ((extra + 1) // 2 + 1) * pitch
    for ax in ("length", "width"):
        if dims[ax] < need[ax]:
            grown = min(need[ax], PLAN_RULES.dimension_bounds(ax)[1])
            issues.append(
                f"dimensions.{ax} increased from {dims[ax]:g} to {grown:g} "
                f"to fit {lid.screw_count} screw posts."
            )
            dims[ax] = grown
    return Dimensions(length=dims["length"], width=dims["width"], height=dimensions.height)


# ── ports ──────────────────────────────────────────────────────────


def _port_entries(data: dict, issues: list[str]) -> list[tuple[dict, str, str]]:
    """Pre-parse ports into (entry, canonical_type, side) triples."""
    raw_ports = data.get("ports")
    if raw_ports is None:
        issues.append("ports missing; defaulted to none.")
        return []
    if not isinstance(raw_ports, (list, tuple)):
        issues.append("ports is not a list; defaulted to none.")
        return []

    out: list[tuple[dict, str, str]] = []
    for i, entry in enumerate(raw_ports):
        if not isinstance(entry, dict):
            issues.append(f"ports[{i}] is not an object; dropped.")
            continue
        raw_type = entry.get("type")
        if isinstance(raw_type, str):
            ptype = hw.canonical_port_type(raw_type)
            if ptype != raw_type:
                issues.append(f"ports[{i}].type '{raw_type}' treated as '{ptype}'.")
        else:
            ptype = "generic_cutout"
            issues.append(f"ports[{i}].type missing; defaulted to '{ptype}'.")
        side = _choice(entry.get("side"), WALL_SIDES, "front", f"ports[{i}].side", issues)
        out.append((entry, ptype, side))
    return out


def _validate_port(
    index: int, entry: dict, ptype: str, side: str,
    dims: Dimensions, issues: list[str],
) -> Port:
    tmpl = hw.port_template(ptype)
    wall_len = dims.length if side in ("front", "back") else dims.width
    half = tmpl.width_mm / 2

    position = _clamped(
        _first_present(entry, "position", "pos_x"),
        half, wall_len - half, wall_len / 2,
        f"ports[{index}].position", issues,
    )
    height_offset = _clamped(
        _first_present(entry, "height_offset", "pos_z"),
        0.0, dims.height - tmpl.height_mm, (dims.height - tmpl.height_mm) / 2,
        f"ports[{index}].height_offset", issues,
    )
    return Port(type=ptype, side=side, position=position, height_offset=height_offset)
