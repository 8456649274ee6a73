"""Design parsing: convert camelCase dicts (API / saved JSON) into Design."""

from __future__ import annotations

from playset.catalog.loader import get_component, parse_component, parse_vector, parse_dimensions
from playset.catalog.models import CatalogResult, ModularComponent

from .models import (
    Connection, ComponentCustomization, PlacedComponent, DesignMetadata, Design,
    DesignParseError, DEFAULT_DESIGN_NAME, DEFAULT_AGE_RANGE,
)


def parse_connection(data: dict) -> Connection:
    return Connection(
        id=data.get("id", ""),
        from_instance_id=data["fromInstanceId"],
        to_instance_id=data["toInstanceId"],
        from_connection_point_id=data["fromConnectionPointId"],
        to_connection_point_id=data["toConnectionPointId"],
        connection_type=data["connectionType"],
    )


def _parse_customizations(data: dict | None) -> ComponentCustomization:
    if not data:
        return ComponentCustomization()
    options = dict(data.get("options") or {})
    raw_component = options.pop("_componentData", None)
    return ComponentCustomization(
        color=data.get("color"),
        material=data.get("material"),
        options=options,
        component_data=parse_component(raw_component) if raw_component else None,
    )


def parse_placed_component(data: dict) -> PlacedComponent:
    return PlacedComponent(
        instance_id=data["instanceId"],
        component_id=data["componentId"],
        position=parse_vector(data.get("position")),
        rotation=parse_vector(data.get("rotation")),
        connections=[parse_connection(c) for c in data.get("connections", [])],
        customizations=_parse_customizations(data.get("customizations")),
    )


def parse_metadata(data: dict | None) -> DesignMetadata:
    if not data:
        return DesignMetadata()
    return DesignMetadata(
        total_price=float(data.get("totalPrice", 0)),
        dimensions=parse_dimensions(data["dimensions"]) if data.get("dimensions") else DesignMetadata().dimensions,
        estimated_weight=float(data.get("estimatedWeight", 0)),
        age_range=data.get("ageRange", DEFAULT_AGE_RANGE),
        capacity=int(data.get("capacity", 0)),
        component_count=int(data.get("componentCount", 0)),
    )


def parse_design(data: dict) -> Design:
    """Parse a raw dict into a Design.

    Raises DesignParseError on missing/invalid fields or duplicate
    instance IDs.
    """
    if not isinstance(data, dict):
        raise DesignParseError("design must be an object")
    if not isinstance(data.get("components"), list):
        raise DesignParseError("design must contain a components list")

    try:
        components = [parse_placed_component(c) for c in data["components"]]
        metadata = parse_metadata(data.get("metadata"))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise DesignParseError(f"missing/invalid field: {exc}") from exc

    seen: set[str] = set()
    for c in components:
        if c.instance_id in seen:
            raise DesignParseError(f"duplicate instanceId '{c.instance_id}'")
        seen.add(c.instance_id)

    return Design(
        id=data.get("id"),
        name=data.get("name") or DEFAULT_DESIGN_NAME,
        components=components,
        metadata=metadata,
        thumbnail=data.get("thumbnail"),
        created_at=data.get("createdAt"),
        updated_at=data.get("updatedAt"),
    )


def attach_catalog_data(design: Design, catalog: CatalogResult | list[ModularComponent]) -> list[str]:
    """Replace each component's ``_componentData`` with its catalog entry.

    Prices, sizes and rules must come from the catalog, so whatever the
    client sent is discarded.  Returns the component IDs the catalog does
    not know (their data is cleared), in first-seen order.
    """
    missing: list[str] = []
    for placed in design.components:
        data = get_component(catalog, placed.component_id)
        if data is None and placed.component_id not in missing:
            missing.append(placed.component_id)
        placed.customizations.component_data = data
    return missing
