"""Tests for the component compatibility rules."""

from __future__ import annotations

import unittest

from playset.validation import connection_types_compatible
from playset.validation.compatibility import (
    check_color_coordination, check_component_size, check_connection_points,
    check_material_tier, check_recommended, check_rules_enforcement,
)
from tests.playset_fixture import connect, make_design, make_starter_design, place


class TestConnectionTypes(unittest.TestCase):

    def test_symmetric(self):
        self.assertTrue(connection_types_compatible("deck", "slide"))
        self.assertTrue(connection_types_compatible("slide", "deck"))
        self.assertTrue(connection_types_compatible("swing", "structural"))
        self.assertTrue(connection_types_compatible("accessory", "deck"))

    def test_incompatible(self):
        self.assertFalse(connection_types_compatible("swing", "deck"))
        self.assertFalse(connection_types_compatible("slide", "slide"))
        self.assertFalse(connection_types_compatible("mystery", "deck"))


class TestConnectionPoints(unittest.TestCase):

    def test_starter_connections_valid(self):
        self.assertTrue(check_connection_points(make_starter_design()).passed)

    def test_swing_hung_from_deck(self):
        design = make_design([
            place("deck-4ft", "d", 0, 0, 0),
            place("belt-swing", "sw", 10, 0, 0, connections=[
                connect("c", "sw", "hanger", "d", "east", "swing"),
            ]),
        ])
        result = check_connection_points(design)
        self.assertFalse(result.passed)
        self.assertEqual(result.affected_components, ["sw"])

    def test_tube_slide_only_fits_tower_deck(self):
        def design_with(deck_id: str):
            return make_design([
                place(deck_id, "d", 0, 0, 4),
                place("tube-slide", "t", 12, 0, 0, connections=[
                    connect("c", "t", "entry", "d", "east", "slide"),
                ]),
            ])

        self.assertFalse(check_connection_points(design_with("deck-4ft")).passed)
        self.assertTrue(check_connection_points(design_with("deck-5ft")).passed)

    def test_unknown_point(self):
        design = make_design([
            place("deck-4ft", "d", 0, 0, 4),
            place("ladder-4ft", "l", -12, 0, 0, connections=[
                connect("c", "l", "bottom", "d", "west", "deck"),
            ]),
        ])
        self.assertEqual(check_connection_points(design).affected_components, ["l"])

    def test_missing_peer(self):
        design = make_design([
            place("ladder-4ft", "l", connections=[connect("c", "l", "top", "ghost", "west", "deck")]),
        ])
        self.assertFalse(check_connection_points(design).passed)

    def test_edge_stored_on_target(self):
        """A ladder edge owned by the deck is checked from the deck's side."""
        design = make_design([
            place("deck-4ft", "d", 0, 0, 4, connections=[
                connect("c", "d", "west", "l", "top", "deck"),
            ]),
            place("ladder-4ft", "l", -12, 0, 0),
        ])
        self.assertTrue(check_connection_points(design).passed)


class TestComponentSize(unittest.TestCase):

    def test_starter_sizes_match(self):
        self.assertTrue(check_component_size(make_starter_design()).passed)

    def test_deck_to_wide_beam(self):
        design = make_design([
            place("deck-4ft", "d", 0, 0, 0, connections=[
                connect("c", "d", "east", "beam", "deck-end", "deck"),
            ]),
            place("swing-beam", "beam", 10, 0, 0),
        ])
        result = check_component_size(design)
        self.assertFalse(result.passed)
        self.assertEqual(result.affected_components, ["d"])

    def test_deck_owned_slide_width(self):
        design = make_design([
            place("deck-5ft", "d", 0, 0, 4, connections=[
                connect("c", "d", "east", "s", "entry", "slide"),
            ]),
            place("wave-slide-8ft", "s", 12, 0, 0),
        ])
        self.assertFalse(check_component_size(design).passed)


class TestRulesEnforcement(unittest.TestCase):

    def test_ladder_requires_deck(self):
        result = check_rules_enforcement(make_design([place("ladder-4ft", "l")]))
        self.assertFalse(result.passed)
        self.assertEqual(result.affected_components, ["l"])

    def test_requirement_met_by_category(self):
        self.assertTrue(check_rules_enforcement(make_starter_design()).passed)

    def test_tire_swing_excludes_belt_swing(self):
        design = make_design([
            place("swing-beam", "beam", 0, 0, 0),
            place("tire-swing", "tire", 20, 0, 0),
            place("belt-swing", "belt", 40, 0, 0),
        ])
        result = check_rules_enforcement(design)
        self.assertFalse(result.passed)
        self.assertEqual(result.affected_components, ["tire"])


class TestWarnings(unittest.TestCase):

    def test_mixed_tiers(self):
        design = make_design([place("deck-5ft", "d5"), place("deck-4ft", "d4", 20, 0)])
        result = check_material_tier(design)
        self.assertFalse(result.passed)
        self.assertEqual(
            result.message,
            "Design mixes components from 2 different product tiers: Premium, Essential",
        )

    def test_single_tier(self):
        self.assertTrue(check_material_tier(make_starter_design()).passed)

    def test_too_many_colors(self):
        design = make_design([
            place("climbing-wall", "w"),
            place("tube-slide", "t", 10, 0),
            place("steering-wheel", "sw", 20, 0),
            place("belt-swing", "b", 30, 0),
        ])
        result = check_color_coordination(design)
        self.assertFalse(result.passed)
        self.assertEqual(result.message, "Design uses 5 different colors, which may look busy")

    def test_single_component_never_busy(self):
        self.assertTrue(check_color_coordination(make_design([place("climbing-wall", "w")])).passed)

    def test_recommended_missing(self):
        result = check_recommended(make_design([place("deck-4ft", "d")]))
        self.assertFalse(result.passed)
        self.assertEqual(result.affected_components, ["d"])

    def test_recommended_present(self):
        self.assertTrue(check_recommended(make_starter_design()).passed)


if __name__ == "__main__":
    unittest.main()
