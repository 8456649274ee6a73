"""Metadata calculator: aggregate price, weight, size and capacity.

Metadata is a pure function of the component list. The store calls this
after every mutation that changes components; nothing else writes it.
"""

from __future__ import annotations

from playset.catalog.models import Dimensions

from .models import PlacedComponent, DesignMetadata, DEFAULT_AGE_RANGE, component_data


def _round1(value: float) -> float:
    return round(value * 10) / 10


def calculate_metadata(components: list[PlacedComponent]) -> DesignMetadata:
    """Recompute DesignMetadata from placed components.

    Components without their catalog definition still count toward
    component_count but contribute nothing else.  Dimensions are the
    furthest extent of any component from the origin (position + size).
    """
    if not components:
        return DesignMetadata()

    total_price = 0.0
    total_weight = 0.0
    total_capacity = 0
    max_w = max_d = max_h = 0.0

    for placed in components:
        data = component_data(placed)
        if data is None:
            continue
        total_price += data.price
        total_weight += data.weight
        total_capacity += data.metadata.capacity

        max_w = max(max_w, placed.position.x + data.dimensions.width)
        max_d = max(max_d, placed.position.y + data.dimensions.depth)
        max_h = max(max_h, placed.position.z + data.dimensions.height)

    return DesignMetadata(
        total_price=total_price,
        dimensions=Dimensions(_round1(max_w), _round1(max_d), _round1(max_h), "ft"),
        estimated_weight=round(total_weight),
        age_range=DEFAULT_AGE_RANGE,
        capacity=total_capacity,
        component_count=len(components),
    )
