"""Ground-plane geometry helpers for placed components."""

from __future__ import annotations

import math

from shapely import affinity
from shapely.geometry import Polygon, box as shapely_box

from playset.catalog.models import ModularComponent

from .models import PlacedComponent


def footprint_polygon(placed: PlacedComponent, data: ModularComponent) -> Polygon:
    """Width x depth footprint, rotated about the component origin by rotation.z."""
    x, y = placed.position.x, placed.position.y
    rect = shapely_box(x, y, x + data.dimensions.width, y + data.dimensions.depth)
    if placed.rotation.z % 360:
        rect = affinity.rotate(rect, placed.rotation.z, origin=(x, y))
    return rect


def footprint_overlap(
    a: PlacedComponent, a_data: ModularComponent,
    b: PlacedComponent, b_data: ModularComponent,
) -> float:
    """Area (sq ft) shared by two footprints."""
    return footprint_polygon(a, a_data).intersection(footprint_polygon(b, b_data)).area


def plan_distance(a: PlacedComponent, b: PlacedComponent) -> float:
    """Distance between two component positions on the ground plane."""
    return math.hypot(a.position.x - b.position.x, a.position.y - b.position.y)
