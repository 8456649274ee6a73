"""In-memory design store: components, selection, validation and undo/redo.

A ``DesignStore`` is the server-side equivalent of the configurator's
client state.  Every mutating operation that should be undoable pushes a
deep-copied snapshot of the current design onto ``history.past`` and
clears ``history.future``; drag-style updates (position, rotation) and
cosmetic changes (name, UI flags) do not.
"""

from __future__ import annotations

import copy
import logging
import random
import string
import time
from dataclasses import dataclass, field

from playset.catalog.models import ModularComponent, Vector3D
from playset.design.metadata import calculate_metadata as compute_metadata
from playset.design.models import (
    ComponentCustomization, Connection, Design, DesignMetadata, PlacedComponent,
)
from playset.design.serialization import design_to_dict
from playset.validation import ValidationEngine, ValidationResult, default_engine, validation_to_dict

log = logging.getLogger("playset.store")

MAX_HISTORY = 50
VIEW_MODES = ("2D", "3D")

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _unique_suffix() -> str:
    """``<millis>-<9 random base36 chars>``."""
    return f"{int(time.time() * 1000)}-{''.join(random.choices(_ID_ALPHABET, k=9))}"


def new_instance_id(component_id: str) -> str:
    return f"{component_id}-{_unique_suffix()}"


def new_connection_id() -> str:
    return f"conn-{_unique_suffix()}"


@dataclass
class UIState:
    view_mode: str = "2D"
    selected_component_ids: list[str] = field(default_factory=list)
    highlighted_component_ids: list[str] = field(default_factory=list)
    active_category: str | None = None
    grid_size: float = 1.0
    snap_to_grid: bool = True
    show_dimensions: bool = True
    show_connection_points: bool = False
    is_loading: bool = False
    is_saving: bool = False


@dataclass
class History:
    past: list[Design] = field(default_factory=list)
    future: list[Design] = field(default_factory=list)


class DesignStore:
    def __init__(self, engine: ValidationEngine | None = None) -> None:
        self.engine = engine or default_engine()
        self.design = Design()
        self.ui = UIState()
        self.validation = ValidationResult()
        self.history = History()

    # ── History plumbing ───────────────────────────────────────────

    def _record(self) -> None:
        """Snapshot the current design before a mutation."""
        self.history.past.append(copy.deepcopy(self.design))
        if len(self.history.past) > MAX_HISTORY:
            del self.history.past[: len(self.history.past) - MAX_HISTORY]
        self.history.future.clear()

    def _refresh_metadata(self) -> None:
        self.design.metadata = compute_metadata(self.design.components)

    # ── Components ─────────────────────────────────────────────────

    def add_component(self, component: ModularComponent, position: Vector3D) -> str:
        instance_id = new_instance_id(component.id)
        placed = PlacedComponent(
            instance_id=instance_id,
            component_id=component.id,
            position=self.snap(position),
            rotation=Vector3D(0, 0, 0),
            customizations=ComponentCustomization(component_data=component),
        )
        self._record()
        self.design.components.append(placed)
        self._refresh_metadata()
        self.ui.selected_component_ids = [instance_id]
        log.debug("Added %s as %s", component.id, instance_id)
        self.validate_design()
        return instance_id

    def remove_component(self, instance_id: str) -> bool:
        if self.design.find(instance_id) is None:
            return False
        self._record()
        self.design.components = [c for c in self.design.components if c.instance_id != instance_id]
        for comp in self.design.components:
            comp.connections = [conn for conn in comp.connections if not conn.touches(instance_id)]
        self._refresh_metadata()
        self.ui.selected_component_ids = [
            i for i in self.ui.selected_component_ids if i != instance_id
        ]
        self.validate_design()
        return True

    def update_component_position(self, instance_id: str, position: Vector3D) -> None:
        if (placed := self.design.find(instance_id)) is not None:
            placed.position = position

    def update_component_rotation(self, instance_id: str, rotation: Vector3D) -> None:
        if (placed := self.design.find(instance_id)) is not None:
            placed.rotation = rotation

    def duplicate_component(self, instance_id: str) -> str | None:
        original = self.design.find(instance_id)
        if original is None:
            return None
        copy_id = new_instance_id(original.component_id)
        duplicate = copy.deepcopy(original)
        duplicate.instance_id = copy_id
        duplicate.position = Vector3D(original.position.x + 2, original.position.y + 2, original.position.z)
        duplicate.connections = []
        self._record()
        self.design.components.append(duplicate)
        self._refresh_metadata()
        self.ui.selected_component_ids = [copy_id]
        self.validate_design()
        return copy_id

    # ── Connections ────────────────────────────────────────────────

    def create_connection(
        self,
        from_instance_id: str,
        to_instance_id: str,
        from_connection_point_id: str,
        to_connection_point_id: str,
        connection_type: str,
    ) -> str:
        """Attach a new connection to the *from* component and return its ID.

        Both ends must be placed components; a component cannot connect to itself.
        """
        owner = self.design.find(from_instance_id)
        if owner is None:
            raise KeyError(from_instance_id)
        if self.design.find(to_instance_id) is None:
            raise KeyError(to_instance_id)
        if to_instance_id == from_instance_id:
            raise ValueError(f"Component '{from_instance_id}' cannot connect to itself")
        conn = Connection(
            id=new_connection_id(),
            from_instance_id=from_instance_id,
            to_instance_id=to_instance_id,
            from_connection_point_id=from_connection_point_id,
            to_connection_point_id=to_connection_point_id,
            connection_type=connection_type,
        )
        self._record()
        owner.connections.append(conn)
        self.validate_design()
        return conn.id

    def remove_connection(self, connection_id: str) -> None:
        self._record()
        for comp in self.design.components:
            comp.connections = [c for c in comp.connections if c.id != connection_id]
        self.validate_design()

    # ── Selection ──────────────────────────────────────────────────

    def select_component(self, instance_id: str, multi: bool = False) -> None:
        if multi:
            self.ui.selected_component_ids = [*self.ui.selected_component_ids, instance_id]
        else:
            self.ui.selected_component_ids = [instance_id]

    def deselect_component(self, instance_id: str) -> None:
        self.ui.selected_component_ids = [
            i for i in self.ui.selected_component_ids if i != instance_id
        ]

    def clear_selection(self) -> None:
        self.ui.selected_component_ids = []

    def highlight_components(self, instance_ids: list[str]) -> None:
        self.ui.highlighted_component_ids = list(instance_ids)

    def clear_highlight(self) -> None:
        self.ui.highlighted_component_ids = []

    # ── Design ─────────────────────────────────────────────────────

    def load_design(self, design: Design) -> None:
        self.design = copy.deepcopy(design)
        self._refresh_metadata()
        self.history = History()
        self.ui.selected_component_ids = []
        self.validate_design()

    def clear_design(self) -> None:
        self._record()
        self.design = Design()
        self.ui.selected_component_ids = []
        self.validation = ValidationResult()

    def update_design_name(self, name: str) -> None:
        self.design.name = name

    # ── UI ─────────────────────────────────────────────────────────

    def set_view_mode(self, mode: str) -> None:
        if mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode {mode!r}; expected one of {VIEW_MODES}")
        self.ui.view_mode = mode

    def set_active_category(self, category: str | None) -> None:
        self.ui.active_category = category

    def toggle_snap_to_grid(self) -> None:
        self.ui.snap_to_grid = not self.ui.snap_to_grid

    def set_grid_size(self, size: float) -> None:
        if size <= 0:
            raise ValueError(f"Grid size must be positive, got {size}")
        self.ui.grid_size = size

    def snap(self, position: Vector3D) -> Vector3D:
        """Round x/y to the grid when snapping is on; z is never snapped."""
        if not self.ui.snap_to_grid:
            return Vector3D(position.x, position.y, position.z)
        g = self.ui.grid_size
        return Vector3D(round(position.x / g) * g, round(position.y / g) * g, position.z)

    # ── Undo / redo ────────────────────────────────────────────────

    def undo(self) -> bool:
        if not self.history.past:
            return False
        self.history.future.insert(0, self.design)
        self.design = self.history.past.pop()
        self.validate_design()
        return True

    def redo(self) -> bool:
        if not self.history.future:
            return False
        self.history.past.append(self.design)
        self.design = self.history.future.pop(0)
        self.validate_design()
        return True

    def can_undo(self) -> bool:
        return bool(self.history.past)

    def can_redo(self) -> bool:
        return bool(self.history.future)

    # ── Derived state ──────────────────────────────────────────────

    def validate_design(self) -> ValidationResult:
        self.validation = self.engine.evaluate(self.design)
        return self.validation

    def calculate_metadata(self) -> DesignMetadata:
        return compute_metadata(self.design.components)


def ui_to_dict(ui: UIState) -> dict:
    return {
        "viewMode": ui.view_mode,
        "selectedComponentIds": list(ui.selected_component_ids),
        "highlightedComponentIds": list(ui.highlighted_component_ids),
        "activeCategory": ui.active_category,
        "gridSize": ui.grid_size,
        "snapToGrid": ui.snap_to_grid,
        "showDimensions": ui.show_dimensions,
        "showConnectionPoints": ui.show_connection_points,
        "isLoading": ui.is_loading,
        "isSaving": ui.is_saving,
    }


def store_to_dict(store: DesignStore) -> dict:
    return {
        "design": design_to_dict(store.design),
        "ui": ui_to_dict(store.ui),
        "validation": validation_to_dict(store.validation),
        "canUndo": store.can_undo(),
        "canRedo": store.can_redo(),
    }
