"""Compatibility rules: do the chosen components fit together?"""

from __future__ import annotations

from playset.catalog.models import ModularComponent
from playset.design.models import Design, component_data, all_component_data

from .config import SAFETY_RULES
from .models import PASSED, Rule, RuleResult, failed


# Symmetric: two types are compatible if either lists the other.
CONNECTION_COMPATIBILITY: dict[str, tuple[str, ...]] = {
    "deck":       ("deck", "structural", "slide", "accessory"),
    "slide":      ("deck", "structural"),
    "swing":      ("structural", "roof"),
    "structural": ("deck", "slide", "swing", "roof", "structural"),
    "roof":       ("deck", "structural", "swing"),
    "accessory":  ("deck", "structural"),
}


def connection_types_compatible(a: str, b: str) -> bool:
    return b in CONNECTION_COMPATIBILITY.get(a, ()) or a in CONNECTION_COMPATIBILITY.get(b, ())


def matches_target(data: ModularComponent, targets: list[str]) -> bool:
    """True when *data* is named by id or category in *targets*."""
    return data.id in targets or data.category in targets


def _present(design: Design, targets: list[str]) -> bool:
    return any(matches_target(data, targets) for _, data in all_component_data(design))


def check_connection_points(design: Design) -> RuleResult:
    """Each connection is checked once, from its owning (from) component."""
    bad: list[str] = []
    for component in design.components:
        data = component_data(component)
        if data is None:
            continue
        for conn in component.connections:
            peer = design.find(conn.other_end(component.instance_id))
            if peer is None:
                bad.append(component.instance_id)
                continue
            if (peer_data := component_data(peer)) is None:
                continue
            if conn.from_instance_id == component.instance_id:
                own_point_id, peer_point_id = conn.from_connection_point_id, conn.to_connection_point_id
            else:
                own_point_id, peer_point_id = conn.to_connection_point_id, conn.from_connection_point_id
            own_point = data.connection_point(own_point_id)
            peer_point = peer_data.connection_point(peer_point_id)
            if own_point is None or peer_point is None:
                bad.append(component.instance_id)
                continue
            if not connection_types_compatible(own_point.type, peer_point.type):
                bad.append(component.instance_id)
            allowed = own_point.allowed_connections
            if "*" not in allowed and not matches_target(peer_data, allowed):
                bad.append(component.instance_id)
    bad = list(dict.fromkeys(bad))
    if not bad:
        return PASSED
    return failed(
        bad,
        f"{len(bad)} component(s) have invalid connections",
        "Ensure connections are made between compatible connection points",
    )


def check_component_size(design: Design) -> RuleResult:
    mismatched: list[str] = []
    for component in design.components:
        data = component_data(component)
        if data is None:
            continue
        for conn in component.connections:
            peer = design.find(conn.other_end(component.instance_id))
            if peer is None or (peer_data := component_data(peer)) is None:
                continue
            diff = abs(data.dimensions.width - peer_data.dimensions.width)
            if conn.connection_type == "deck" and diff > SAFETY_RULES.deck_width_tolerance_ft:
                mismatched.append(component.instance_id)
            elif (conn.connection_type == "slide" and data.category == "playdecks"
                  and diff > SAFETY_RULES.slide_width_tolerance_ft):
                mismatched.append(component.instance_id)
    mismatched = list(dict.fromkeys(mismatched))
    if not mismatched:
        return PASSED
    return failed(
        mismatched,
        f"{len(mismatched)} component(s) have size compatibility issues",
        "Connect components with similar sizes or use adapter components",
    )


def check_rules_enforcement(design: Design) -> RuleResult:
    """``requires`` targets must be present and ``excludes`` targets absent."""
    violating: list[str] = []
    for placed, data in all_component_data(design):
        for rule in data.compatibility_rules:
            if rule.rule_type == "requires" and not _present(design, rule.target_component_ids):
                violating.append(placed.instance_id)
            elif rule.rule_type == "excludes" and _present(design, rule.target_component_ids):
                violating.append(placed.instance_id)
    violating = list(dict.fromkeys(violating))
    if not violating:
        return PASSED
    return failed(
        violating,
        f"{len(violating)} component(s) violate compatibility rules",
        "Review component requirements and exclusions to resolve conflicts",
    )


# ── Warnings ───────────────────────────────────────────────────────


def check_material_tier(design: Design) -> RuleResult:
    pairs = all_component_data(design)
    tiers = list(dict.fromkeys(d.metadata.tier for _, d in pairs if d.metadata.tier))
    if len(tiers) <= 1:
        return PASSED
    return failed(
        [p.instance_id for p, d in pairs if d.metadata.tier],
        f"Design mixes components from {len(tiers)} different product tiers: {', '.join(tiers)}",
        "Consider using components from the same tier for consistent quality and aesthetics",
    )


def check_color_coordination(design: Design) -> RuleResult:
    pairs = all_component_data(design)
    if len(pairs) < 2:
        return PASSED
    colors = {color for _, d in pairs for color in d.metadata.colors}
    if len(colors) <= SAFETY_RULES.max_colors:
        return PASSED
    return failed(
        [c.instance_id for c in design.components],
        f"Design uses {len(colors)} different colors, which may look busy",
        "Consider limiting to 2-3 coordinating colors for a cohesive look",
    )


def check_recommended(design: Design) -> RuleResult:
    missing = [
        placed.instance_id
        for placed, data in all_component_data(design)
        for rule in data.compatibility_rules
        if rule.rule_type == "recommends" and rule.message
        and not _present(design, rule.target_component_ids)
    ]
    if not missing:
        return PASSED
    return failed(
        missing,
        "Some recommended components are missing from your design",
        "Consider adding recommended components to enhance the play experience",
    )


# ── Rule table ─────────────────────────────────────────────────────


def compatibility_rules() -> list[Rule]:
    return [
        Rule("compatibility-connection-points", "Connection Point Matching",
             "Connections must be made between compatible connection points",
             "error", "compatibility", check_connection_points),
        Rule("compatibility-component-size", "Component Size Compatibility",
             "Connected components must have compatible sizes",
             "error", "compatibility", check_component_size),
        Rule("compatibility-rules-enforcement", "Compatibility Rules Enforcement",
             "Component compatibility rules must be satisfied",
             "error", "compatibility", check_rules_enforcement),
        Rule("compatibility-material-tier", "Material Compatibility",
             "Components should be from compatible product tiers",
             "warning", "compatibility", check_material_tier),
        Rule("compatibility-color-coordination", "Color Coordination",
             "Component colors should coordinate well",
             "warning", "compatibility", check_color_coordination),
        Rule("compatibility-recommended-components", "Recommended Components",
             "Recommended components for this design",
             "warning", "compatibility", check_recommended),
    ]
