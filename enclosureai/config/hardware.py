"""
Hardware configuration — single source of truth for enclosure hardware constants.

Loads config/hardware.json once and exposes typed accessors.
"""

from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from functools import lru_cache


_CONFIG_PATH = Path(__file__).resolve().parent / "hardware.json"


@lru_cache(maxsize=1)
def _load() -> dict:
    return json.loads(_CONFIG_PATH.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class PortTemplate:
    """Cutout footprint of one connector type, before tolerance."""
    type: str
    width_mm: float
    height_mm: float
    shape: str = "rect"     # "rect" | "round"


class _HW:
    """Typed accessor for hardware config."""

    # ── raw section accessors ───────────────────────────────────────
    @property
    def ports(self) -> dict:
        return _load()["ports"]

    @property
    def mounting(self) -> dict:
        return _load()["mounting"]

    @property
    def lid(self) -> dict:
        return _load()["lid"]

    @property
    def ventilation(self) -> dict:
        return _load()["ventilation"]

    # ── ports ───────────────────────────────────────────────────────
    @property
    def port_types(self) -> tuple[str, ...]:
        return tuple(_load()["ports"])

    def canonical_port_type(self, name: str) -> str:
        """Map a free-form connector name onto a known template key.

        Unknown names fall back to ``generic_cutout``.
        """
        key = name.strip().lower().replace("-", "_").replace(" ", "_")
        key = _load()["port_aliases"].get(key, key)
        return key if key in _load()["ports"] else "generic_cutout"

    def port_template(self, port_type: str) -> PortTemplate:
        raw = _load()["ports"][self.canonical_port_type(port_type)]
        return PortTemplate(
            type=self.canonical_port_type(port_type),
            width_mm=raw["width_mm"],
            height_mm=raw["height_mm"],
            shape=raw.get("shape", "rect"),
        )

    # ── mounting ────────────────────────────────────────────────────
    @property
    def corner_inset(self) -> float:
        return _load()["mounting"]["corner_inset_mm"]

    def post_wall(self, mounting_type: str) -> float:
        """Wall around the bore of a PCB post; pillars are sturdier."""
        m = _load()["mounting"]
        return m["pillar_wall_mm"] if mounting_type == "pillars" else m["standoff_wall_mm"]

    # ── lid ─────────────────────────────────────────────────────────
    @property
    def screw_bore_dia(self) -> float:
        return _load()["lid"]["screw_bore_dia_mm"]

    @property
    def screw_clearance_dia(self) -> float:
        return _load()["lid"]["screw_clearance_dia_mm"]

    @property
    def screw_post_radius(self) -> float:
        lid = _load()["lid"]
        return lid["screw_bore_dia_mm"] / 2 + lid["screw_post_wall_mm"]

    @property
    def screw_post_height(self) -> float:
        return _load()["lid"]["screw_post_height_mm"]

    @property
    def screw_post_embed(self) -> float:
        """How far a corner boss is sunk into the walls it touches."""
        return _load()["lid"]["screw_post_embed_mm"]

    @property
    def lid_gap(self) -> float:
        return _load()["lid"]["lid_gap_mm"]

    # ── ventilation ─────────────────────────────────────────────────
    @property
    def vent_margin(self) -> float:
        return _load()["ventilation"]["edge_margin_mm"]


hw = _HW()
