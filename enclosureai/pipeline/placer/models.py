"""Placer output dataclasses.

All coordinates are face-local ``(u, v)`` millimetres:

  walls        u along the wall's horizontal axis from the inner
               left/bottom edge, v up from the inner floor
  top/bottom   u along X, v along Y, both from the inner wall corner
               (cavity coordinates)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in a face frame."""

    u0: float
    v0: float
    u1: float
    v1: float

    @property
    def width(self) -> float:
        return self.u1 - self.u0

    @property
    def height(self) -> float:
        return self.v1 - self.v0

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def expanded(self, d: float) -> "Rect":
        return Rect(self.u0 - d, self.v0 - d, self.u1 + d, self.v1 + d)

    def shifted(self, du: float, dv: float = 0.0) -> "Rect":
        return Rect(self.u0 + du, self.v0 + dv, self.u1 + du, self.v1 + dv)


@dataclass(frozen=True)
class FeatureRect:
    """Bounding rectangle of one feature as seen on one face."""

    feature_id: str
    kind: str           # "port" | "standoff" | "pillar" | "screw_post"
    face: str
    rect: Rect


@dataclass(frozen=True)
class PortPlacement:
    """A port cutout centred at (u, v) on its wall, before tolerance."""

    feature_id: str
    index: int
    type: str
    side: str
    shape: str          # "rect" | "round"
    u: float
    v: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.u - self.width / 2, self.v - self.height / 2,
                    self.u + self.width / 2, self.v + self.height / 2)


@dataclass(frozen=True)
class PostPlacement:
    """A cylindrical post in cavity coordinates.

    Standoffs stand on the floor (z_base = 0).  Screw posts hang under
    the top rim: *height* is the boss, *support_height* the cone below
    it, and *walls* lists the inner walls the boss is sunk into.
    """

    feature_id: str
    kind: str
    u: float
    v: float
    radius: float
    bore_radius: float
    height: float
    z_base: float = 0.0
    support_height: float = 0.0
    walls: tuple[str, ...] = ()

    @property
    def rect(self) -> Rect:
        r = self.radius
        return Rect(self.u - r, self.v - r, self.u + r, self.v + r)


@dataclass(frozen=True)
class VentCell:
    """One ventilation opening: a slot bar or a hexagon."""

    face: str
    shape: str          # "slot" | "hex"
    u: float
    v: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.u - self.width / 2, self.v - self.height / 2,
                    self.u + self.width / 2, self.v + self.height / 2)


@dataclass(frozen=True)
class PlacementMap:
    """Every resolved feature of one plan, ready for the SCAD stage."""

    ports: tuple[PortPlacement, ...]
    standoffs: tuple[PostPlacement, ...]
    screw_posts: tuple[PostPlacement, ...]
    vents: tuple[VentCell, ...]
    faces: dict[str, tuple[FeatureRect, ...]] = field(default_factory=dict)
    vent_regions: dict[str, Rect] = field(default_factory=dict)
    vents_omitted: int = 0

    def vents_on(self, face: str) -> tuple[VentCell, ...]:
        return tuple(c for c in self.vents if c.face == face)


class FeatureCollision(Exception):
    """Raised when two hard features overlap on the same face."""

    def __init__(self, feature_a: str, feature_b: str, face: str) -> None:
        self.feature_a = feature_a
        self.feature_b = feature_b
        self.face = face
        super().__init__(
            f"Features '{feature_a}' and '{feature_b}' overlap on the {face} face"
        )
