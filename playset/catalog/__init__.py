"""Component catalog: load, validate, query, edit, and serialize catalog/*.json."""

from .models import (
    CATEGORIES, CONNECTION_TYPES, RULE_TYPES,
    Vector3D, Dimensions, ConnectionPoint, CompatibilityRule, ComponentMetadata,
    ModularComponent, ValidationError, CatalogResult,
)
from .loader import (
    load_catalog, get_component, filter_components, parse_component, validate_component,
    parse_vector, parse_dimensions, CATALOG_DIR,
)
from .serialization import (
    catalog_to_dict, component_to_dict, vector_to_dict, dimensions_to_dict,
)
from .repository import (
    CatalogError, CatalogRepository, ADJUSTMENT_TYPES, EDITABLE_FIELDS, REQUIRED_FIELDS, slugify,
)

__all__ = [
    # Models
    "CATEGORIES", "CONNECTION_TYPES", "RULE_TYPES",
    "Vector3D", "Dimensions", "ConnectionPoint", "CompatibilityRule",
    "ComponentMetadata", "ModularComponent", "ValidationError", "CatalogResult",
    # Loader
    "load_catalog", "get_component", "filter_components", "parse_component", "validate_component",
    "parse_vector", "parse_dimensions", "CATALOG_DIR",
    # Serialization
    "catalog_to_dict", "component_to_dict", "vector_to_dict", "dimensions_to_dict",
    # Admin edits
    "CatalogError", "CatalogRepository", "ADJUSTMENT_TYPES", "EDITABLE_FIELDS",
    "REQUIRED_FIELDS", "slugify",
]
