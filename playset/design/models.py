"""Design dataclasses: the configurator's in-memory design state."""

from __future__ import annotations

from dataclasses import dataclass, field

from playset.catalog.models import Vector3D, Dimensions, ModularComponent


DEFAULT_DESIGN_NAME = "Untitled Design"
DEFAULT_AGE_RANGE = "3-12"


@dataclass
class Connection:
    """Directed edge between two placed components."""
    id: str
    from_instance_id: str
    to_instance_id: str
    from_connection_point_id: str
    to_connection_point_id: str
    connection_type: str

    def touches(self, instance_id: str) -> bool:
        return instance_id in (self.from_instance_id, self.to_instance_id)

    def other_end(self, instance_id: str) -> str:
        return self.to_instance_id if self.from_instance_id == instance_id else self.from_instance_id


@dataclass
class ComponentCustomization:
    color: str | None = None
    material: str | None = None
    options: dict = field(default_factory=dict)
    # Denormalized copy of the catalog entry; travels as options._componentData.
    component_data: ModularComponent | None = None


@dataclass
class PlacedComponent:
    instance_id: str
    component_id: str
    position: Vector3D = field(default_factory=Vector3D)
    rotation: Vector3D = field(default_factory=Vector3D)     # degrees
    connections: list[Connection] = field(default_factory=list)
    customizations: ComponentCustomization = field(default_factory=ComponentCustomization)


@dataclass
class DesignMetadata:
    total_price: float = 0
    dimensions: Dimensions = field(default_factory=lambda: Dimensions(0, 0, 0, "ft"))
    estimated_weight: float = 0
    age_range: str = DEFAULT_AGE_RANGE
    capacity: int = 0
    component_count: int = 0


@dataclass
class Design:
    components: list[PlacedComponent] = field(default_factory=list)
    metadata: DesignMetadata = field(default_factory=DesignMetadata)
    name: str = DEFAULT_DESIGN_NAME
    id: str | None = None
    thumbnail: str | None = None
    created_at: str | None = None       # ISO 8601
    updated_at: str | None = None       # ISO 8601

    def find(self, instance_id: str) -> PlacedComponent | None:
        for c in self.components:
            if c.instance_id == instance_id:
                return c
        return None

    def all_connections(self) -> list[Connection]:
        return [conn for c in self.components for conn in c.connections]


class DesignParseError(Exception):
    """Raised when a design payload cannot be turned into a Design."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid design data: {reason}")


def component_data(placed: PlacedComponent) -> ModularComponent | None:
    """Return the denormalized catalog entry carried by a placed component."""
    return placed.customizations.component_data


def all_component_data(design: Design) -> list[tuple[PlacedComponent, ModularComponent]]:
    """(placed, data) pairs for every component that carries its definition."""
    return [
        (placed, data)
        for placed in design.components
        if (data := component_data(placed)) is not None
    ]


def find_by_category(design: Design, category: str) -> list[PlacedComponent]:
    return [
        placed for placed in design.components
        if (data := component_data(placed)) is not None and data.category == category
    ]
