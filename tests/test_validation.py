"""Tests for design plan validation.

Validates:
  - validate never raises on malformed input
  - validate is idempotent (canonical plans come back unchanged, with no
    adjustments reported)
  - wall thickness / dimension / port clamping rules
  - legacy planner keys are understood
"""

from __future__ import annotations

import unittest

import pytest

from enclosureai.config.hardware import hw
from enclosureai.pipeline.config import PLAN_RULES
from enclosureai.pipeline.plan import (
    DesignPlan, validate, validate_with_report, plan_to_dict,
)
from tests.plan_fixtures import (
    MALFORMED_PLANS, scenario_a_raw, full_featured_raw, snap_lid_raw,
)


def _assert_port_inside_wall(plan: DesignPlan) -> None:
    for port in plan.ports:
        tmpl = hw.port_template(port.type)
        wall_len = plan.wall_length(port.side)
        assert port.position - tmpl.width_mm / 2 >= -1e-9
        assert port.position + tmpl.width_mm / 2 <= wall_len + 1e-9
        assert port.height_offset >= 0
        assert port.height_offset + tmpl.height_mm <= plan.dimensions.height + 1e-9


@pytest.mark.parametrize("raw", MALFORMED_PLANS, ids=lambda r: repr(r)[:40])
def test_validate_is_total_and_idempotent(raw):
    plan = validate(raw)
    assert isinstance(plan, DesignPlan)
    assert validate(plan) == plan
    again, issues = validate_with_report(plan_to_dict(plan))
    assert again == plan
    assert issues == []


@pytest.mark.parametrize("raw", MALFORMED_PLANS, ids=lambda r: repr(r)[:40])
def test_canonical_plan_invariants(raw):
    plan = validate(raw)
    assert plan.wall_thickness >= PLAN_RULES.min_wall_mm
    for axis in ("length", "width", "height"):
        lo, hi = PLAN_RULES.dimension_bounds(axis)
        assert lo <= getattr(plan.dimensions, axis) <= hi
    assert 0 <= plan.tolerance <= PLAN_RULES.max_tolerance_mm
    assert PLAN_RULES.min_screw_count <= plan.lid.screw_count <= PLAN_RULES.max_screw_count
    _assert_port_inside_wall(plan)


class TestScenarioA(unittest.TestCase):
    """40×30×20 box with a 1 mm wall."""

    def setUp(self):
        self.plan, self.issues = validate_with_report(scenario_a_raw())

    def test_wall_raised_to_minimum(self):
        self.assertEqual(self.plan.wall_thickness, 2.0)
        self.assertTrue(any("wall_thickness" in i for i in self.issues))

    def test_outer_size(self):
        self.assertEqual(self.plan.outer_size, (44.0, 34.0, 22.0))

    def test_defaults_filled(self):
        self.assertEqual(self.plan.tolerance, 0.4)
        self.assertEqual(self.plan.ports, ())
        self.assertEqual(self.plan.pcb_mounting.type, "none")
        self.assertFalse(self.plan.ventilation.enabled)
        self.assertEqual(self.plan.lid.style, "screw")
        self.assertEqual(self.plan.lid.screw_count, 4)


class TestDimensionRules(unittest.TestCase):

    def test_missing_dimensions_use_defaults(self):
        plan = validate({})
        self.assertEqual(
            (plan.dimensions.length, plan.dimensions.width, plan.dimensions.height),
            (60.0, 40.0, 25.0),
        )

    def test_clamped_to_floor_and_ceiling(self):
        plan = validate({"dimensions": {"length": 2, "width": 900, "height": 1},
                         "lid": {"style": "snap"}})
        self.assertEqual(plan.dimensions.length, 10.0)
        self.assertEqual(plan.dimensions.width, 300.0)
        self.assertEqual(plan.dimensions.height, 5.0)

    def test_numeric_strings_accepted(self):
        plan, issues = validate_with_report({"dimensions": {"length": "80mm", "width": "50", "height": 30}})
        self.assertEqual(plan.dimensions.length, 80.0)
        self.assertEqual(plan.dimensions.width, 50.0)
        self.assertFalse(any("dimensions" in i for i in issues))

    def test_wall_capped(self):
        self.assertEqual(validate({"wall_thickness": 50}).wall_thickness, PLAN_RULES.max_wall_mm)

    def test_box_grows_to_fit_port(self):
        plan, issues = validate_with_report({
            "dimensions": {"length": 10, "width": 10, "height": 5},
            "ports": [{"type": "ethernet", "side": "front"}],
        })
        self.assertEqual(plan.dimensions.length, 16.5)
        self.assertEqual(plan.dimensions.height, 14.0)
        self.assertTrue(any("to fit a ethernet port" in i for i in issues))

    def test_box_grows_to_fit_screw_posts(self):
        plan, issues = validate_with_report({"dimensions": {"length": 10, "width": 10, "height": 5}})
        self.assertAlmostEqual(plan.dimensions.length, 12.8)
        self.assertAlmostEqual(plan.dimensions.width, 12.8)
        self.assertEqual(sum("to fit 4 screw posts" in i for i in issues), 2)
        self.assertEqual(validate_with_report(plan_to_dict(plan))[1], [])

    def test_extra_screw_posts_grow_the_longer_side(self):
        plan = validate({"dimensions": {"length": 20, "width": 15, "height": 20},
                         "lid": {"style": "screw", "screw_count": 8}})
        # corners sit 2.75 mm in; two more bosses per long wall, 7.3 mm apart
        self.assertAlmostEqual(plan.dimensions.length, 27.4)
        self.assertEqual(plan.dimensions.width, 15.0)

    def test_snap_lid_keeps_small_box(self):
        plan = validate({"dimensions": {"length": 10, "width": 10, "height": 5},
                         "lid": {"style": "snap"}})
        self.assertEqual((plan.dimensions.length, plan.dimensions.width), (10.0, 10.0))


class TestPortRules(unittest.TestCase):

    def test_position_defaults_to_wall_centre(self):
        plan = validate({"dimensions": {"length": 60, "width": 40, "height": 25},
                         "ports": [{"type": "usb", "side": "left"}]})
        port = plan.ports[0]
        self.assertEqual(port.position, 20.0)
        self.assertEqual(port.height_offset, (25 - 6) / 2)

    def test_position_clamped_into_wall(self):
        plan = validate({"dimensions": {"length": 60, "width": 40, "height": 25},
                         "ports": [{"type": "usb", "side": "front", "position": 2,
                                    "height_offset": 40}]})
        port = plan.ports[0]
        self.assertEqual(port.position, 6.5)
        self.assertEqual(port.height_offset, 19.0)

    def test_aliases_and_unknown_types(self):
        plan = validate({"ports": [
            {"type": "USB-C", "side": "Back"},
            {"type": "RJ45", "side": "left"},
            {"type": "flux capacitor", "side": "right"},
        ]})
        self.assertEqual([p.type for p in plan.ports], ["usb_c", "ethernet", "generic_cutout"])
        self.assertEqual([p.side for p in plan.ports], ["back", "left", "right"])

    def test_non_object_ports_dropped(self):
        plan = validate({"ports": [None, 3, {"type": "usb", "side": "front"}]})
        self.assertEqual(len(plan.ports), 1)

    def test_full_featured_plan_is_already_canonical(self):
        plan, issues = validate_with_report(full_featured_raw())
        self.assertEqual(issues, [])
        self.assertEqual(len(plan.ports), 4)
        self.assertEqual(plan.tolerance, 0.3)


class TestLegacyKeys(unittest.TestCase):

    def test_legacy_top_level_keys(self):
        plan = validate({
            "vents": True,
            "screw_posts": 6,
            "lid_type": "snap",
            "ports": [{"type": "usb", "side": "back", "pos_x": 12, "pos_z": 2}],
        })
        self.assertTrue(plan.ventilation.enabled)
        self.assertEqual(plan.lid.style, "snap")
        self.assertEqual(plan.lid.screw_count, 6)
        self.assertEqual(plan.ports[0].position, 12.0)
        self.assertEqual(plan.ports[0].height_offset, 2.0)

    def test_new_keys_win_over_legacy(self):
        plan = validate({"vents": True, "ventilation": {"enabled": False}})
        self.assertFalse(plan.ventilation.enabled)


class TestSectionRules(unittest.TestCase):

    def test_standoff_height_clamped_to_cavity(self):
        plan = validate({"dimensions": {"height": 12},
                         "pcb_mounting": {"type": "standoffs", "standoff_height": 40}})
        self.assertEqual(plan.pcb_mounting.standoff_height, 12.0)

    def test_enum_spellings(self):
        plan = validate({
            "case_type": "Wall-Mount",
            "pcb_mounting": {"type": "Standoff"},
            "ventilation": {"enabled": "yes", "style": "Slot", "side": "TOP"},
        })
        self.assertEqual(plan.case_type, "wall_mount")
        self.assertEqual(plan.pcb_mounting.type, "standoffs")
        self.assertEqual(plan.ventilation.style, "slots")
        self.assertEqual(plan.ventilation.side, "top")
        self.assertTrue(plan.ventilation.enabled)

    def test_ventilation_side_defaults_to_sides(self):
        plan = validate({"ventilation": {"enabled": True}})
        self.assertEqual(plan.ventilation.side, "sides")

    def test_screw_count_rounded_and_clamped(self):
        self.assertEqual(validate({"lid": {"screw_count": 5.6}}).lid.screw_count, 6)
        self.assertEqual(validate({"lid": {"screw_count": 1}}).lid.screw_count, 2)
        self.assertEqual(validate({"lid": {"screw_count": 99}}).lid.screw_count, 8)


class TestSerialization(unittest.TestCase):

    def test_round_trip(self):
        for raw in (scenario_a_raw(), full_featured_raw(), snap_lid_raw()):
            plan = validate(raw)
            self.assertEqual(validate(plan_to_dict(plan)), plan)

    def test_uses_planner_keys(self):
        d = plan_to_dict(validate(full_featured_raw()))
        self.assertEqual(set(d), {
            "case_type", "dimensions", "wall_thickness", "tolerance",
            "pcb_mounting", "ports", "ventilation", "lid",
        })
        self.assertEqual(set(d["ports"][0]), {"type", "side", "position", "height_offset"})
