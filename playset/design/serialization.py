"""Design serialization: convert Design to the camelCase wire format."""

from __future__ import annotations

from playset.catalog.serialization import component_to_dict, vector_to_dict, dimensions_to_dict

from .models import Connection, PlacedComponent, DesignMetadata, Design


def connection_to_dict(conn: Connection) -> dict:
    return {
        "id": conn.id,
        "fromInstanceId": conn.from_instance_id,
        "toInstanceId": conn.to_instance_id,
        "fromConnectionPointId": conn.from_connection_point_id,
        "toConnectionPointId": conn.to_connection_point_id,
        "connectionType": conn.connection_type,
    }


def placed_component_to_dict(pc: PlacedComponent) -> dict:
    cust = pc.customizations
    options = dict(cust.options)
    if cust.component_data is not None:
        options["_componentData"] = component_to_dict(cust.component_data)
    return {
        "instanceId": pc.instance_id,
        "componentId": pc.component_id,
        "position": vector_to_dict(pc.position),
        "rotation": vector_to_dict(pc.rotation),
        "connections": [connection_to_dict(c) for c in pc.connections],
        "customizations": {
            **({"color": cust.color} if cust.color else {}),
            **({"material": cust.material} if cust.material else {}),
            "options": options,
        },
    }


def metadata_to_dict(m: DesignMetadata) -> dict:
    return {
        "totalPrice": m.total_price,
        "dimensions": dimensions_to_dict(m.dimensions),
        "estimatedWeight": m.estimated_weight,
        "ageRange": m.age_range,
        "capacity": m.capacity,
        "componentCount": m.component_count,
    }


def design_to_dict(design: Design) -> dict:
    """Convert a Design to a JSON-serializable dict."""
    return {
        **({"id": design.id} if design.id else {}),
        "name": design.name,
        "components": [placed_component_to_dict(c) for c in design.components],
        "metadata": metadata_to_dict(design.metadata),
        **({"thumbnail": design.thumbnail} if design.thumbnail else {}),
        **({"createdAt": design.created_at} if design.created_at else {}),
        **({"updatedAt": design.updated_at} if design.updated_at else {}),
    }
