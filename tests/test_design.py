"""Tests for the design model: parsing, serialization, metadata and geometry."""

from __future__ import annotations

import json
import unittest

from playset.catalog import Vector3D
from playset.design import (
    Design, DesignParseError, PlacedComponent, calculate_metadata, design_to_dict,
    footprint_overlap, footprint_polygon, parse_design, plan_distance,
)
from tests.playset_fixture import make_starter_design, place


class TestMetadata(unittest.TestCase):

    def test_empty_design(self):
        meta = calculate_metadata([])
        self.assertEqual(meta.total_price, 0)
        self.assertEqual(meta.component_count, 0)
        self.assertEqual(meta.age_range, "3-12")
        self.assertEqual(meta.dimensions.unit, "ft")
        self.assertEqual((meta.dimensions.width, meta.dimensions.depth, meta.dimensions.height), (0, 0, 0))

    def test_starter_playset(self):
        """Totals add up and extents reach the furthest component edge."""
        meta = make_starter_design().metadata
        self.assertEqual(meta.total_price, 4500 + 1200 + 3200)
        self.assertEqual(meta.estimated_weight, 180 + 40 + 60)
        self.assertEqual(meta.capacity, 6)
        self.assertEqual(meta.component_count, 3)
        self.assertEqual(meta.dimensions.width, 14)   # slide at x=12, 2 wide
        self.assertEqual(meta.dimensions.depth, 8)    # slide is 8 deep
        self.assertEqual(meta.dimensions.height, 5)   # deck at z=4, 1 high

    def test_dimensions_rounded_to_tenth(self):
        meta = calculate_metadata([place("deck-4ft", "d", 0.123, 0.06, 0)])
        self.assertEqual(meta.dimensions.width, 4.1)
        self.assertEqual(meta.dimensions.depth, 4.1)

    def test_component_without_data_only_counted(self):
        bare = PlacedComponent(instance_id="x", component_id="mystery")
        meta = calculate_metadata([bare, place("ladder-4ft", "l")])
        self.assertEqual(meta.component_count, 2)
        self.assertEqual(meta.total_price, 1200)


class TestDesignParsing(unittest.TestCase):

    def test_wire_format_round_trip(self):
        """Serialized designs parse back with component data restored."""
        design = make_starter_design()
        wire = json.loads(json.dumps(design_to_dict(design)))
        placed = wire["components"][1]
        self.assertIn("_componentData", placed["customizations"]["options"])
        self.assertEqual(placed["connections"][0]["fromConnectionPointId"], "top")

        parsed = parse_design(wire)
        self.assertEqual([c.instance_id for c in parsed.components],
                         ["deck_1", "ladder_1", "slide_1"])
        ladder = parsed.find("ladder_1")
        self.assertEqual(ladder.customizations.component_data.id, "ladder-4ft")
        self.assertNotIn("_componentData", ladder.customizations.options)
        self.assertEqual(parsed.metadata.capacity, 6)
        self.assertEqual(parsed.name, "Starter Playset")

    def test_defaults(self):
        parsed = parse_design({"components": []})
        self.assertEqual(parsed.name, "Untitled Design")
        self.assertEqual(parsed.metadata.component_count, 0)

    def test_rejects_non_object(self):
        with self.assertRaises(DesignParseError):
            parse_design(["not", "a", "design"])

    def test_rejects_missing_components(self):
        with self.assertRaises(DesignParseError):
            parse_design({"name": "x"})

    def test_rejects_missing_field(self):
        with self.assertRaises(DesignParseError) as ctx:
            parse_design({"components": [{"instanceId": "a"}]})
        self.assertIn("componentId", ctx.exception.reason)

    def test_rejects_duplicate_instance_ids(self):
        comp = {"instanceId": "a", "componentId": "deck-4ft"}
        with self.assertRaises(DesignParseError):
            parse_design({"components": [comp, dict(comp)]})

    def test_all_connections(self):
        design = make_starter_design()
        self.assertEqual({c.id for c in design.all_connections()}, {"c_ladder", "c_slide"})
        self.assertIsNone(design.find("ghost"))


class TestGeometry(unittest.TestCase):

    def test_footprint_unrotated(self):
        poly = footprint_polygon(*self._deck("d", 1, 2))
        self.assertEqual(poly.bounds, (1.0, 2.0, 5.0, 6.0))

    def test_footprint_rotated_about_origin(self):
        placed, data = self._deck("d", 0, 0)
        placed.rotation = Vector3D(0, 0, 90)
        minx, miny, maxx, maxy = footprint_polygon(placed, data).bounds
        self.assertAlmostEqual(minx, -4.0)
        self.assertAlmostEqual(maxx, 0.0)
        self.assertAlmostEqual(miny, 0.0)
        self.assertAlmostEqual(maxy, 4.0)

    def test_overlap_area(self):
        a, a_data = self._deck("a", 0, 0)
        b, b_data = self._deck("b", 2, 0)
        self.assertAlmostEqual(footprint_overlap(a, a_data, b, b_data), 8.0)
        c, c_data = self._deck("c", 4, 0)
        self.assertAlmostEqual(footprint_overlap(a, a_data, c, c_data), 0.0)

    def test_plan_distance_ignores_height(self):
        a = place("deck-4ft", "a", 0, 0, 0)
        b = place("deck-4ft", "b", 3, 4, 9)
        self.assertEqual(plan_distance(a, b), 5.0)

    @staticmethod
    def _deck(instance_id: str, x: float, y: float):
        placed = place("deck-4ft", instance_id, x, y, 0)
        return placed, placed.customizations.component_data


if __name__ == "__main__":
    unittest.main()
