"""Catalog serialization: convert dataclasses to JSON-safe dicts."""

from __future__ import annotations

from typing import Any

from .models import Vector3D, Dimensions, ModularComponent, CatalogResult


def catalog_to_dict(result: CatalogResult) -> dict:
    """Serialize a CatalogResult to a JSON-safe dict for the web API."""
    return {
        "ok": result.ok,
        "componentCount": len(result.components),
        "components": [component_to_dict(c) for c in result.components],
        "errors": [{"componentId": e.component_id, "field": e.field, "message": e.message}
                   for e in result.errors],
    }


def vector_to_dict(v: Vector3D) -> dict:
    return {"x": v.x, "y": v.y, "z": v.z}


def dimensions_to_dict(d: Dimensions) -> dict:
    return {"width": d.width, "depth": d.depth, "height": d.height, "unit": d.unit}


def component_to_dict(c: ModularComponent) -> dict:
    """Serialize a ModularComponent to the camelCase wire format."""
    d: dict[str, Any] = {
        "id": c.id,
        "name": c.name,
        "category": c.category,
        "price": c.price,
        "thumbnail": c.thumbnail,
        "model3D": c.model_3d,
        "dimensions": dimensions_to_dict(c.dimensions),
        "weight": c.weight,
        "connectionPoints": [
            {
                "id": cp.id,
                "type": cp.type,
                "position": vector_to_dict(cp.position),
                "orientation": vector_to_dict(cp.orientation),
                "allowedConnections": list(cp.allowed_connections),
            }
            for cp in c.connection_points
        ],
        "compatibilityRules": [
            {
                "ruleType": r.rule_type,
                "targetComponentIds": list(r.target_component_ids),
                **({"condition": r.condition} if r.condition else {}),
                **({"message": r.message} if r.message else {}),
            }
            for r in c.compatibility_rules
        ],
        "metadata": {
            "ageRange": c.metadata.age_range,
            "capacity": c.metadata.capacity,
            "materials": list(c.metadata.materials),
            "colors": list(c.metadata.colors),
        },
    }

    # Optional fields
    if c.subcategory:
        d["subcategory"] = c.subcategory
    if c.metadata.tier:
        d["metadata"]["tier"] = c.metadata.tier

    return d
