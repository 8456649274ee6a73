"""Structural integrity rules: is the design a single buildable structure?"""

from __future__ import annotations

from playset.design.models import (
    Design, component_data, all_component_data, find_by_category,
)

from .config import SAFETY_RULES
from .graph import build_connection_graph, find_connected
from .models import PASSED, Rule, RuleResult, failed


def _neighbour_categories(design: Design, instance_id: str, graph: dict[str, set[str]]) -> set[str]:
    cats: set[str] = set()
    for nb in graph.get(instance_id, ()):
        placed = design.find(nb)
        if placed is not None and (data := component_data(placed)) is not None:
            cats.add(data.category)
    return cats


# ── Checks ─────────────────────────────────────────────────────────


def check_all_connected(design: Design) -> RuleResult:
    if len(design.components) <= 1:
        return PASSED
    graph = build_connection_graph(design)
    reachable = find_connected(design.components[0].instance_id, graph)
    loose = [c.instance_id for c in design.components if c.instance_id not in reachable]
    if not loose:
        return PASSED
    return failed(
        loose,
        f"{len(loose)} component(s) are not connected to the main structure",
        "Connect all components using structural connectors or remove disconnected components",
    )


def check_deck_access(design: Design) -> RuleResult:
    graph = build_connection_graph(design)
    stranded = []
    for deck in find_by_category(design, "playdecks"):
        if deck.position.z < SAFETY_RULES.min_deck_access_height_ft:
            continue
        if "access" not in _neighbour_categories(design, deck.instance_id, graph):
            stranded.append(deck.instance_id)
    if not stranded:
        return PASSED
    return failed(
        stranded,
        f"{len(stranded)} elevated deck(s) have no access point",
        "Add a ladder, stairs, or climbing wall to each elevated deck",
    )


def check_height_limit(design: Design) -> RuleResult:
    limit = SAFETY_RULES.max_height_ft
    too_high = [
        placed.instance_id
        for placed, data in all_component_data(design)
        if placed.position.z + data.dimensions.height > limit
    ]
    if not too_high:
        return PASSED
    return failed(
        too_high,
        f"{len(too_high)} component(s) exceed the maximum height of {limit:g} feet",
        f"Lower components or remove them to stay within the {limit:g} foot height limit",
    )


def check_weight_limit(design: Design) -> RuleResult:
    total = design.metadata.estimated_weight
    limit = SAFETY_RULES.max_weight_lbs
    if total <= limit:
        return PASSED
    return failed(
        [c.instance_id for c in design.components],
        f"Total structure weight ({total:g} lbs) exceeds maximum limit of {limit:g} lbs",
        "Remove some components or choose lighter alternatives to reduce total weight",
    )


def check_support(design: Design) -> RuleResult:
    """Elevated decks and roofs must be attached to something."""
    graph = build_connection_graph(design)
    unsupported = [
        placed.instance_id
        for placed, data in all_component_data(design)
        if placed.position.z >= SAFETY_RULES.min_support_height_ft
        and data.category in ("playdecks", "roofs")
        and not graph.get(placed.instance_id)
    ]
    if not unsupported:
        return PASSED
    return failed(
        unsupported,
        f"{len(unsupported)} elevated component(s) lack proper structural support",
        "Connect components to structural supports or lower them to ground level",
    )


def check_minimum_components(design: Design) -> RuleResult:
    if not design.components:
        return failed(
            [],
            "Design is empty - add components to begin",
            "Start by adding a playdeck as the foundation",
        )
    if not find_by_category(design, "playdecks"):
        return failed(
            [c.instance_id for c in design.components],
            "Design must include at least one playdeck",
            "Add a playdeck to serve as the foundation of your structure",
        )
    return PASSED


# ── Rule table ─────────────────────────────────────────────────────


def structural_rules() -> list[Rule]:
    """Fresh rule records, so each registry owns its enabled flags."""
    return [
        Rule("structural-all-connected", "All Components Connected",
             "All components must be connected to form a single structure",
             "error", "structural", check_all_connected),
        Rule("structural-deck-access", "Deck Access Required",
             "All elevated decks must have at least one access point",
             "error", "structural", check_deck_access),
        Rule("structural-height-limit", "Height Restriction",
             f"Structures must not exceed {SAFETY_RULES.max_height_ft:g} feet in height",
             "error", "structural", check_height_limit),
        Rule("structural-weight-limit", "Weight Distribution",
             f"Total structure weight must not exceed {SAFETY_RULES.max_weight_lbs:g} lbs",
             "error", "structural", check_weight_limit),
        Rule("structural-support-required", "Structural Support",
             "Elevated components must have proper structural support",
             "error", "structural", check_support),
        Rule("structural-minimum-components", "Minimum Components",
             "Design must include at least one playdeck as foundation",
             "error", "structural", check_minimum_components),
    ]
