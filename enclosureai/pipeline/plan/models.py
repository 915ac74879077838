"""Design plan dataclasses — the validator's canonical output structure.

Every class is frozen: once the validator has produced a plan it is
never mutated, and later stages only derive new data from it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Dimensions:
    """Inner usable cavity in mm (walls are added outside of it)."""
    length: float
    width: float
    height: float


@dataclass(frozen=True)
class Port:
    """A connector opening on one of the four walls.

    position:      mm along the wall's horizontal axis, from the inner
                   left/bottom edge to the cutout centre.
    height_offset: mm from the inner floor to the bottom of the cutout.
    """
    type: str
    side: str
    position: float
    height_offset: float


@dataclass(frozen=True)
class PcbMounting:
    type: str                   # "pillars" | "standoffs" | "none"
    standoff_height: float
    hole_dia: float


@dataclass(frozen=True)
class Ventilation:
    enabled: bool
    style: str                  # "slots" | "honeycomb"
    side: str                   # a face name, or "sides" for left + right


@dataclass(frozen=True)
class Lid:
    style: str                  # "screw" | "snap"
    screw_count: int


@dataclass(frozen=True)
class DesignPlan:
    case_type: str
    dimensions: Dimensions
    wall_thickness: float
    tolerance: float
    pcb_mounting: PcbMounting
    ports: tuple[Port, ...]
    ventilation: Ventilation
    lid: Lid

    def wall_length(self, side: str) -> float:
        """Inner length of a wall along its horizontal axis."""
        if side in ("front", "back"):
            return self.dimensions.length
        return self.dimensions.width

    @property
    def outer_size(self) -> tuple[float, float, float]:
        """(x, y, z) extents of the base shell, lid excluded."""
        d, w = self.dimensions, self.wall_thickness
        return (d.length + 2 * w, d.width + 2 * w, d.height + w)
