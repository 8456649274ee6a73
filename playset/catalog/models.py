"""Catalog dataclasses: typed representations of catalog/*.json entries."""

from __future__ import annotations

from dataclasses import dataclass, field


CATEGORIES = (
    "playdecks", "access", "slides", "swings", "roofs", "accessories", "connectors",
)
CONNECTION_TYPES = ("deck", "slide", "swing", "structural", "roof", "accessory")
RULE_TYPES = ("requires", "excludes", "recommends")


@dataclass
class Vector3D:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass
class Dimensions:
    width: float
    depth: float
    height: float
    unit: str = "ft"                    # "ft" | "m"


@dataclass
class ConnectionPoint:
    id: str
    type: str                           # one of CONNECTION_TYPES
    position: Vector3D
    orientation: Vector3D
    allowed_connections: list[str]      # component ids, categories, or "*"


@dataclass
class CompatibilityRule:
    rule_type: str                      # "requires" | "excludes" | "recommends"
    target_component_ids: list[str]     # component ids or categories
    condition: str | None = None
    message: str | None = None


@dataclass
class ComponentMetadata:
    age_range: str
    capacity: int
    materials: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    tier: str | None = None             # "Essential" | "Premium" | "Luxury"


@dataclass
class ModularComponent:
    id: str
    name: str
    category: str
    price: float
    dimensions: Dimensions
    weight: float
    metadata: ComponentMetadata
    connection_points: list[ConnectionPoint] = field(default_factory=list)
    compatibility_rules: list[CompatibilityRule] = field(default_factory=list)
    subcategory: str | None = None
    thumbnail: str = ""
    model_3d: str = ""                  # URL to GLB/GLTF file
    source_file: str = ""               # path of the JSON file (for error reporting)

    def connection_point(self, point_id: str) -> ConnectionPoint | None:
        for cp in self.connection_points:
            if cp.id == point_id:
                return cp
        return None


@dataclass
class ValidationError:
    component_id: str
    field: str
    message: str

    def __str__(self) -> str:
        return f"[{self.component_id}] {self.field}: {self.message}"


@dataclass
class CatalogResult:
    """Result of loading the catalog: components + any validation errors."""
    components: list[ModularComponent]
    errors: list[ValidationError]

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0
