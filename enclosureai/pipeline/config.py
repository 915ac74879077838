"""Shared geometric rules for the enclosure pipeline.

These values describe the hard manufacturing limits of a printed
enclosure.  The **validator** (which clamps raw plans), the **placer**
(which lays out features on each face) and the **SCAD** stage (which
sizes cuts) all derive their limits from this single source of truth.

Change a value here and every stage stays in sync automatically.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PlanRules:
    """Physical design rules for a printable box enclosure.

    All distances are in millimetres.
    """

    min_wall_mm: float = 2.0
    """Thinnest wall an FDM printer reliably closes."""

    max_wall_mm: float = 10.0
    """Sanity cap; thicker walls only waste filament and print time."""

    min_length_mm: float = 10.0
    min_width_mm: float = 10.0
    min_height_mm: float = 5.0

    max_length_mm: float = 300.0
    max_width_mm: float = 300.0
    max_height_mm: float = 200.0
    """Inner cavity ceilings — roughly the build volume of a large printer."""

    default_length_mm: float = 60.0
    default_width_mm: float = 40.0
    default_height_mm: float = 25.0

    default_tolerance_mm: float = 0.4
    """Print clearance added to every cutout and mating feature."""

    max_tolerance_mm: float = 2.0

    default_standoff_height_mm: float = 3.0
    min_standoff_height_mm: float = 1.0
    default_hole_dia_mm: float = 2.5
    min_hole_dia_mm: float = 1.0
    max_hole_dia_mm: float = 6.0

    default_screw_count: int = 4
    min_screw_count: int = 2
    max_screw_count: int = 8

    cut_overshoot_mm: float = 1.0
    """Extra depth on through-wall cuts so they always pierce both
    surfaces regardless of floating-point rounding."""

    # ── Derived helpers ────────────────────────────────────────────

    def dimension_bounds(self, axis: str) -> tuple[float, float]:
        """(floor, ceiling) for ``length`` / ``width`` / ``height``."""
        return {
            "length": (self.min_length_mm, self.max_length_mm),
            "width": (self.min_width_mm, self.max_width_mm),
            "height": (self.min_height_mm, self.max_height_mm),
        }[axis]

    def cut_depth(self, wall_mm: float) -> float:
        """Depth of a through-wall prism for a given wall thickness."""
        return wall_mm + self.cut_overshoot_mm


# Module-level singleton — importable everywhere.
PLAN_RULES = PlanRules()

CASE_TYPES = ("handheld", "desktop", "wall_mount")
WALL_SIDES = ("front", "back", "left", "right")
FACES = ("front", "back", "left", "right", "top", "bottom")
MOUNTING_TYPES = ("pillars", "standoffs", "none")
VENT_STYLES = ("slots", "honeycomb")
VENT_SIDES = ("front", "back", "left", "right", "top", "bottom", "sides")
LID_STYLES = ("screw", "snap")
