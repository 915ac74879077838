"""Placer — resolves every enclosure feature onto the six faces.

Submodules:
  models        Output dataclasses and the FeatureCollision error.
  geometry      Face extents and rectangle overlap helpers (Shapely).
  engine        Placement of ports, posts and ventilation with collision policy.
  serialization JSON conversion (placement_to_dict).
"""

from .models import (
    Rect, FeatureRect, PortPlacement, PostPlacement, VentCell, PlacementMap,
    FeatureCollision,
)
from .engine import resolve
from .serialization import placement_to_dict
from .geometry import face_size, margin_region, rects_collide, rect_inside

__all__ = [
    # Models
    "Rect", "FeatureRect", "PortPlacement", "PostPlacement", "VentCell",
    "PlacementMap", "FeatureCollision",
    # Engine
    "resolve",
    # Serialization
    "placement_to_dict",
    # Geometry (used by tests)
    "face_size", "margin_region", "rects_collide", "rect_inside",
]
