"""Plan fixtures — hardcoded raw plans and test doubles for the pipeline.

The raw plans are what a planner might hand back: some tidy, some
malformed.  None of them needs an LLM or OpenSCAD.

  scenario_a_raw          small box with a too-thin wall
  colliding_ports_raw     two identical USB ports on the front wall
  honeycomb_bottom_raw    honeycomb vents on the floor, nothing else there
  snap_lid_raw            snap-fit lid
  standoffs_raw           PCB standoffs with 2.5 mm holes
  full_featured_raw       ports on three walls, side slots, standoffs, screws
"""

from __future__ import annotations

from pathlib import Path

from enclosureai.scad.compiler import RenderFailure, RenderTimeout


def scenario_a_raw() -> dict:
    return {
        "dimensions": {"length": 40, "width": 30, "height": 20},
        "wall_thickness": 1,
    }


def colliding_ports_raw() -> dict:
    usb = {"type": "usb", "side": "front", "position": 30, "height_offset": 5}
    return {
        "dimensions": {"length": 60, "width": 40, "height": 25},
        "wall_thickness": 2,
        "ports": [dict(usb), dict(usb)],
    }


def honeycomb_bottom_raw() -> dict:
    return {
        "case_type": "desktop",
        "dimensions": {"length": 60, "width": 40, "height": 25},
        "wall_thickness": 2,
        "pcb_mounting": {"type": "none"},
        "ventilation": {"enabled": True, "style": "honeycomb", "side": "bottom"},
        "lid": {"style": "screw", "screw_count": 4},
    }


def snap_lid_raw() -> dict:
    return {
        "dimensions": {"length": 70, "width": 50, "height": 30},
        "wall_thickness": 2.4,
        "ports": [{"type": "usb_c", "side": "back", "position": 35, "height_offset": 6}],
        "lid": {"style": "snap", "screw_count": 4},
    }


def standoffs_raw() -> dict:
    return {
        "dimensions": {"length": 73, "width": 57, "height": 19},
        "wall_thickness": 2,
        "pcb_mounting": {"type": "standoffs", "standoff_height": 3, "hole_dia": 2.5},
    }


def full_featured_raw() -> dict:
    return {
        "case_type": "desktop",
        "dimensions": {"length": 89, "width": 60, "height": 30},
        "wall_thickness": 2.5,
        "tolerance": 0.3,
        "pcb_mounting": {"type": "standoffs", "standoff_height": 4, "hole_dia": 2.7},
        "ports": [
            {"type": "usb_c", "side": "front", "position": 30, "height_offset": 8},
            {"type": "hdmi", "side": "front", "position": 60, "height_offset": 8},
            {"type": "ethernet", "side": "back", "position": 45, "height_offset": 4},
            {"type": "power", "side": "left", "position": 30, "height_offset": 8},
        ],
        "ventilation": {"enabled": True, "style": "slots", "side": "sides"},
        "lid": {"style": "screw", "screw_count": 4},
    }


# Inputs the validator must repair without raising.
MALFORMED_PLANS = [
    None,
    [],
    "a box please",
    {},
    {"dimensions": "big"},
    {"dimensions": {"length": "80mm", "width": -5, "height": 1e9}},
    {"wall_thickness": True},
    {"wall_thickness": float("nan"), "tolerance": "loose"},
    {"ports": "usb"},
    {"ports": [None, {"type": "USB-C", "side": "LEFT", "position": 1e6, "height_offset": -3}]},
    {"ports": [{"type": "hdmi", "side": "front"}],
     "dimensions": {"length": 10, "width": 10, "height": 5}},
    {"vents": True, "screw_posts": 6, "lid_type": "Snap",
     "ports": [{"type": "usb", "side": "back", "pos_x": 12, "pos_z": 2}]},
    {"lid": {"style": "glue", "screw_count": 99}},
    {"pcb_mounting": {"type": "Standoff", "standoff_height": 500, "hole_dia": "x"}},
    {"ventilation": {"enabled": "yes", "style": "HEX", "side": "roof"}},
    {"ports": [{"type": "telepathy", "side": "inside", "position": "left"}]},
    {"wall_thickness": 10**400, "tolerance": -10**400,
     "dimensions": {"length": 10**400, "width": 10**309, "height": "1e400"},
     "ports": [{"type": "usb", "side": "front", "position": 10**400}]},
]


# ── test doubles ───────────────────────────────────────────────────


class StaticLLMClient:
    """LLM client that always answers with the same plan."""

    def __init__(self, plan: dict) -> None:
        self.plan = plan
        self.calls: list[tuple[str, str]] = []

    def complete_json(self, system: str, user: str) -> dict:
        self.calls.append((system, user))
        return dict(self.plan)


class FailingLLMClient:
    def complete_json(self, system: str, user: str) -> dict:
        raise RuntimeError("quota exceeded")


class FakeRenderer:
    """Stands in for OpenSCAD: writes a tiny mesh or raises on demand."""

    def __init__(self, fail_with: str | None = None) -> None:
        self.fail_with = fail_with
        self.calls: list[tuple[Path, Path]] = []

    def render(self, program_path: Path, mesh_path: Path) -> None:
        self.calls.append((program_path, mesh_path))
        if self.fail_with == "timeout":
            raise RenderTimeout(120)
        if self.fail_with == "failure":
            raise RenderFailure(1, "ERROR: Parser error in line 3")
        mesh_path.write_text("solid enclosure\nendsolid enclosure\n", encoding="utf-8")
