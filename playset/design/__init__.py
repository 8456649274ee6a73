"""Design model: dataclasses, parsing, serialization, metadata, geometry."""

from .models import (
    Connection, ComponentCustomization, PlacedComponent, DesignMetadata, Design,
    DesignParseError, DEFAULT_DESIGN_NAME, DEFAULT_AGE_RANGE,
    component_data, all_component_data, find_by_category,
)
from .parsing import (
    parse_design, parse_connection, parse_placed_component, parse_metadata, attach_catalog_data,
)
from .serialization import (
    design_to_dict, connection_to_dict, placed_component_to_dict, metadata_to_dict,
)
from .metadata import calculate_metadata
from .geometry import footprint_polygon, footprint_overlap, plan_distance

__all__ = [
    # Models
    "Connection", "ComponentCustomization", "PlacedComponent", "DesignMetadata",
    "Design", "DesignParseError", "DEFAULT_DESIGN_NAME", "DEFAULT_AGE_RANGE",
    "component_data", "all_component_data", "find_by_category",
    # Parsing / Serialization
    "parse_design", "parse_connection", "parse_placed_component", "parse_metadata",
    "attach_catalog_data",
    "design_to_dict", "connection_to_dict", "placed_component_to_dict", "metadata_to_dict",
    # Metadata / Geometry
    "calculate_metadata",
    "footprint_polygon", "footprint_overlap", "plan_distance",
]
