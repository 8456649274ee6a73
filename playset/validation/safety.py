"""Safety compliance rules (ASTM F1487 / CPSC derived clearances)."""

from __future__ import annotations

import math
from itertools import combinations

from playset.design.geometry import footprint_overlap, plan_distance
from playset.design.models import Design, component_data, all_component_data, find_by_category

from .config import SAFETY_RULES
from .models import PASSED, Rule, RuleResult, failed


def check_minimum_spacing(design: Design) -> RuleResult:
    crowded: list[str] = []
    for (a, a_data), (b, b_data) in combinations(all_component_data(design), 2):
        needed = (a_data.dimensions.width + b_data.dimensions.width) / 2 + SAFETY_RULES.min_spacing_ft
        if plan_distance(a, b) < needed:
            crowded += [a.instance_id, b.instance_id]
    if not crowded:
        return PASSED
    crowded = list(dict.fromkeys(crowded))
    return failed(
        crowded,
        f"{len(crowded)} component(s) are too close together",
        f"Maintain at least {SAFETY_RULES.min_spacing_ft:g} feet of spacing between components for safety",
    )


def check_fall_zone(design: Design) -> RuleResult:
    pairs = all_component_data(design)
    violations: list[str] = []
    for placed, data in pairs:
        top = placed.position.z + data.dimensions.height
        if top < SAFETY_RULES.fall_zone_min_height_ft:
            continue
        required = SAFETY_RULES.fall_zone_ft(top)
        for other, other_data in pairs:
            if other.instance_id == placed.instance_id:
                continue
            clearance = plan_distance(placed, other) - (data.dimensions.width + other_data.dimensions.width) / 2
            if clearance < required:
                violations.append(placed.instance_id)
                break
    if not violations:
        return PASSED
    return failed(
        violations,
        f"{len(violations)} component(s) have insufficient fall zone clearance",
        "Increase spacing around elevated components to meet fall zone requirements",
    )


def check_age_appropriate(design: Design) -> RuleResult:
    design_range = design.metadata.age_range
    too_tall: list[str] = []
    for placed, data in all_component_data(design):
        own_range = data.metadata.age_range
        if not own_range or own_range == design_range:
            continue
        top = placed.position.z + data.dimensions.height
        if "2-5" in design_range:
            if top > SAFETY_RULES.preschool_max_height_ft:
                too_tall.append(placed.instance_id)
        elif "5-12" in design_range:
            if top > SAFETY_RULES.school_age_max_height_ft:
                too_tall.append(placed.instance_id)
    if not too_tall:
        return PASSED
    return failed(
        too_tall,
        f"{len(too_tall)} component(s) may not be age-appropriate",
        "Review component heights and features for the target age range",
    )


def check_capacity(design: Design) -> RuleResult:
    meta = design.metadata
    area = meta.dimensions.width * meta.dimensions.depth
    max_safe = math.floor(area * SAFETY_RULES.max_capacity_per_sqft)
    if meta.capacity <= max_safe:
        return PASSED
    return failed(
        [c.instance_id for c in design.components],
        f"Design capacity ({meta.capacity} children) exceeds safe limit of {max_safe} "
        "for the structure size",
        "Reduce the number of high-capacity components or increase the structure size",
    )


def check_slide_exit(design: Design) -> RuleResult:
    """Slides run out along +x; nothing may sit within the exit clearance."""
    required = SAFETY_RULES.slide_exit_clearance_ft
    blocked: list[str] = []
    for slide in find_by_category(design, "slides"):
        data = component_data(slide)
        exit_x = slide.position.x + data.dimensions.depth
        exit_y = slide.position.y
        for other in design.components:
            if other.instance_id == slide.instance_id or component_data(other) is None:
                continue
            if math.hypot(exit_x - other.position.x, exit_y - other.position.y) < required:
                blocked.append(slide.instance_id)
                break
    if not blocked:
        return PASSED
    return failed(
        blocked,
        f"{len(blocked)} slide(s) lack adequate exit clearance",
        f"Ensure {required:g} feet of clearance at slide exits",
    )


def check_swing_clearance(design: Design) -> RuleResult:
    required = SAFETY_RULES.swing_clearance_ft
    cramped: list[str] = []
    for swing in find_by_category(design, "swings"):
        data = component_data(swing)
        for other in design.components:
            if other.instance_id == swing.instance_id:
                continue
            if (other_data := component_data(other)) is None:
                continue
            needed = (data.dimensions.width + other_data.dimensions.width) / 2 + required
            if plan_distance(swing, other) < needed:
                cramped.append(swing.instance_id)
                break
    if not cramped:
        return PASSED
    return failed(
        cramped,
        f"{len(cramped)} swing(s) lack adequate clearance",
        f"Ensure {required:g} feet of clearance around all swings",
    )


def check_no_overlap(design: Design) -> RuleResult:
    overlapping: list[str] = []
    for (a, a_data), (b, b_data) in combinations(all_component_data(design), 2):
        if footprint_overlap(a, a_data, b, b_data) > SAFETY_RULES.min_overlap_sqft:
            overlapping += [a.instance_id, b.instance_id]
    if not overlapping:
        return PASSED
    overlapping = list(dict.fromkeys(overlapping))
    return failed(
        overlapping,
        f"{len(overlapping)} component(s) overlap other components",
        "Move components apart so their footprints do not intersect",
    )


def check_surfacing(design: Design) -> RuleResult:
    if design.metadata.dimensions.height > SAFETY_RULES.surfacing_height_ft:
        return failed(
            [],
            "Safety surfacing (rubber mulch, wood chips, or safety mats) is recommended "
            f"for structures over {SAFETY_RULES.surfacing_height_ft:g} feet high",
            "Consider adding safety surfacing to reduce injury risk from falls",
        )
    return PASSED


# ── Rule table ─────────────────────────────────────────────────────


def safety_rules() -> list[Rule]:
    return [
        Rule("safety-minimum-spacing", "Minimum Spacing",
             f"Components must be at least {SAFETY_RULES.min_spacing_ft:g} feet apart",
             "error", "safety", check_minimum_spacing),
        Rule("safety-fall-zone", "Fall Zone Clearance",
             "Adequate fall zones must be maintained around elevated components",
             "error", "safety", check_fall_zone),
        Rule("safety-age-appropriate", "Age-Appropriate Design",
             "All components must be appropriate for the target age range",
             "error", "safety", check_age_appropriate),
        Rule("safety-capacity-limit", "Capacity Limit",
             "Design must not exceed safe capacity limits",
             "error", "safety", check_capacity),
        Rule("safety-slide-exit", "Slide Exit Clearance",
             "Slides must have adequate exit clearance",
             "error", "safety", check_slide_exit),
        Rule("safety-swing-clearance", "Swing Clearance",
             "Swings must have adequate clearance in all directions",
             "error", "safety", check_swing_clearance),
        Rule("safety-no-overlap", "No Overlapping Components",
             "Component footprints must not overlap",
             "error", "safety", check_no_overlap),
        Rule("safety-surfacing-recommended", "Safety Surfacing Recommended",
             "Safety surfacing is recommended for this design",
             "warning", "safety", check_surfacing),
    ]
