"""Placement serialization — JSON conversion for diagnostics."""

from __future__ import annotations

from .models import Rect, PlacementMap


def _rect(r: Rect) -> list[float]:
    return [round(r.u0, 3), round(r.v0, 3), round(r.u1, 3), round(r.v1, 3)]


def placement_to_dict(pm: PlacementMap) -> dict:
    """Serialize a PlacementMap to a JSON-safe dict."""
    return {
        "ports": [
            {
                "id": p.feature_id,
                "type": p.type,
                "side": p.side,
                "shape": p.shape,
                "u": p.u,
                "v": p.v,
                "width": p.width,
                "height": p.height,
            }
            for p in pm.ports
        ],
        "posts": [
            {
                "id": s.feature_id,
                "kind": s.kind,
                "u": s.u,
                "v": s.v,
                "radius": s.radius,
                "bore_radius": s.bore_radius,
                "height": s.height,
                "z_base": s.z_base,
                **({"walls": list(s.walls)} if s.walls else {}),
            }
            for s in (*pm.standoffs, *pm.screw_posts)
        ],
        "vents": {
            face: {
                "region": _rect(region),
                "cells": len(pm.vents_on(face)),
            }
            for face, region in pm.vent_regions.items()
        },
        "vents_omitted": pm.vents_omitted,
        "faces": {
            face: [{"id": f.feature_id, "kind": f.kind, "rect": _rect(f.rect)} for f in rects]
            for face, rects in pm.faces.items()
            if rects
        },
    }
