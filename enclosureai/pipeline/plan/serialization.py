"""Design plan serialization — convert DesignPlan to JSON-safe dicts."""

from __future__ import annotations

from .models import DesignPlan


def plan_to_dict(plan: DesignPlan) -> dict:
    """Convert a DesignPlan to a JSON-serializable dict.

    The output uses the same keys the planner produces, so it can be
    handed back to the planner as the previous state and fed through
    the validator unchanged.
    """
    return {
        "case_type": plan.case_type,
        "dimensions": {
            "length": plan.dimensions.length,
            "width": plan.dimensions.width,
            "height": plan.dimensions.height,
        },
        "wall_thickness": plan.wall_thickness,
        "tolerance": plan.tolerance,
        "pcb_mounting": {
            "type": plan.pcb_mounting.type,
            "standoff_height": plan.pcb_mounting.standoff_height,
            "hole_dia": plan.pcb_mounting.hole_dia,
        },
        "ports": [
            {
                "type": p.type,
                "side": p.side,
                "position": p.position,
                "height_offset": p.height_offset,
            }
            for p in plan.ports
        ],
        "ventilation": {
            "enabled": plan.ventilation.enabled,
            "style": plan.ventilation.style,
            "side": plan.ventilation.side,
        },
        "lid": {
            "style": plan.lid.style,
            "screw_count": plan.lid.screw_count,
        },
    }
