"""Shared safety and structural limits for design validation.

These values follow ASTM F1487 / CPSC playground guidance as applied by
the configurator.  All distances are in feet, weights in pounds.  Both
the structural and the safety rule sets read them from this single
source of truth.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SafetyRules:
    """Physical limits a buildable playset must respect."""

    max_height_ft: float = 12.0
    """Highest point any component may reach (position.z + height)."""

    max_weight_lbs: float = 5000.0
    """Upper bound on total structure weight."""

    min_deck_access_height_ft: float = 2.0
    """Decks at or above this height need a ladder, stairs or wall."""

    min_support_height_ft: float = 1.0
    """Decks and roofs at or above this height need structural support."""

    min_spacing_ft: float = 1.5
    """Free gap required between two unconnected components."""

    fall_zone_multiplier: float = 1.5
    """Fall zone radius as a multiple of the component's top height."""

    min_fall_zone_ft: float = 6.0
    """Smallest fall zone radius, regardless of height."""

    fall_zone_min_height_ft: float = 2.0
    """Components whose top is lower than this have no fall zone."""

    max_capacity_per_sqft: float = 2.0
    """Children allowed per square foot of structure footprint."""

    slide_exit_clearance_ft: float = 6.0
    """Free run-out distance at a slide exit."""

    swing_clearance_ft: float = 8.0
    """Free space around a swing, beyond both bodies."""

    surfacing_height_ft: float = 2.0
    """Structures taller than this should sit on safety surfacing."""

    preschool_max_height_ft: float = 6.0
    """Tallest component suited to a 2-5 age range."""

    school_age_max_height_ft: float = 12.0
    """Tallest component suited to a 5-12 age range."""

    max_colors: int = 4
    """More distinct colors than this reads as busy."""

    deck_width_tolerance_ft: float = 2.0
    """Allowed width difference across a deck-to-deck connection."""

    slide_width_tolerance_ft: float = 1.0
    """Allowed width difference between a deck and its slide."""

    min_overlap_sqft: float = 0.01
    """Footprint intersections smaller than this are treated as touching."""

    # ── Derived helpers ────────────────────────────────────────────

    def fall_zone_ft(self, top_height_ft: float) -> float:
        """Required fall zone radius for a component reaching *top_height_ft*."""
        return max(top_height_ft * self.fall_zone_multiplier, self.min_fall_zone_ft)


# Module-level singleton, importable everywhere.
SAFETY_RULES = SafetyRules()
