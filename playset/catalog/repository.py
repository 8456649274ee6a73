"""
Admin edits to the component catalog, written back to catalog/*.json.

The loaded ``CatalogResult`` is edited in place, so everything holding it
(web server, quote service) sees a change as soon as it is saved.  A
component created here gets its own ``<id>.json``; edits and deletes
rewrite the file the component was loaded from.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from pathlib import Path
from typing import Any, Callable

from .loader import filter_components, get_component, load_catalog, parse_component, validate_component
from .models import ModularComponent
from .serialization import component_to_dict

log = logging.getLogger("playset.catalog")

REQUIRED_FIELDS = ("name", "category", "price", "dimensions", "weight", "thumbnail", "model3D")

# ``id`` is fixed once a component exists.
EDITABLE_FIELDS = (
    "name", "category", "subcategory", "price", "thumbnail", "model3D", "dimensions",
    "weight", "connectionPoints", "compatibilityRules", "metadata",
)

ADJUSTMENT_TYPES = ("percentage", "fixed")

_COMPONENT_ID = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")


class CatalogError(Exception):
    """A catalog edit was refused; ``status`` is the HTTP status to return."""

    def __init__(self, code: str, status: int, message: str, details: Any = None) -> None:
        self.code = code
        self.status = status
        self.message = message
        self.details = details
        super().__init__(f"{code}: {message}")


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")[:64]


def _price(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise CatalogError("VALIDATION_ERROR", 400, f"Invalid price {value!r}") from None


class CatalogRepository:
    """Create, edit, delete and reprice catalog components.

    *designs_using* counts the saved designs that place a component ID;
    a component still in use cannot be deleted.
    """

    def __init__(self, catalog_dir: Path, designs_using: Callable[[str], int] | None = None) -> None:
        self.catalog_dir = Path(catalog_dir)
        self.designs_using = designs_using or (lambda component_id: 0)
        self.catalog = load_catalog(self.catalog_dir)
        self._lock = threading.Lock()

    # ── Reads ──────────────────────────────────────────────────────

    def get(self, component_id: str) -> ModularComponent:
        comp = get_component(self.catalog, component_id)
        if comp is None:
            raise CatalogError("NOT_FOUND", 404, "Component not found")
        return comp

    def list(
        self,
        category: str | None = None,
        tier: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ModularComponent], dict]:
        found = filter_components(self.catalog, category=category, search=search)
        if tier:
            found = [c for c in found if (c.metadata.tier or "").lower() == tier.lower()]
        total = len(found)
        return found[offset:offset + limit], {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        }

    # ── Writes ─────────────────────────────────────────────────────

    def create(self, data: Any) -> ModularComponent:
        if not isinstance(data, dict):
            raise CatalogError("VALIDATION_ERROR", 400, "Component data must be an object")
        for name in REQUIRED_FIELDS:
            if data.get(name) in (None, ""):
                raise CatalogError("VALIDATION_ERROR", 400, f"Missing required field: {name}")

        component_id = data.get("id") or slugify(str(data["name"]))
        if not isinstance(component_id, str) or not _COMPONENT_ID.match(component_id):
            raise CatalogError("VALIDATION_ERROR", 400, f"Invalid component id {component_id!r}")

        with self._lock:
            if get_component(self.catalog, component_id) is not None:
                raise CatalogError("CONFLICT", 409, f"Component '{component_id}' already exists")
            path = self._new_file(component_id)
            comp = self._build({**data, "id": component_id}, path)
            self.catalog.components.append(comp)
            self._write_file(path)
        log.info("Created catalog component %s in %s", comp.id, path.name)
        return comp

    def update(self, component_id: str, changes: Any) -> ModularComponent:
        """Apply a partial edit; fields outside ``EDITABLE_FIELDS`` are ignored."""
        if not isinstance(changes, dict):
            raise CatalogError("VALIDATION_ERROR", 400, "Component data must be an object")
        with self._lock:
            existing = self.get(component_id)
            merged = component_to_dict(existing)
            merged.update({k: changes[k] for k in EDITABLE_FIELDS if k in changes})
            path = Path(existing.source_file)
            comp = self._build(merged, path)
            self._replace(existing, comp)
            self._write_file(path)
        log.info("Updated catalog component %s", component_id)
        return comp

    def delete(self, component_id: str) -> None:
        with self._lock:
            existing = self.get(component_id)
            if count := self.designs_using(component_id):
                raise CatalogError(
                    "COMPONENT_IN_USE", 409,
                    f"Cannot delete component. It is used in {count} saved design(s)",
                    {"designCount": count},
                )
            self._replace(existing, None)
            self._write_file(Path(existing.source_file))
        log.info("Deleted catalog component %s", component_id)

    def bulk_update_prices(
        self,
        updates: list[dict] | None = None,
        adjustment_type: str | None = None,
        adjustment_value: float | None = None,
        category: str | None = None,
        tier: str | None = None,
        component_ids: list[str] | None = None,
    ) -> list[ModularComponent]:
        """Set explicit prices, then shift a filtered set of prices.

        *updates* is ``[{"id", "price"}, ...]``; entries missing either, or
        naming an unknown component, are skipped.  A ``percentage``
        adjustment multiplies by ``1 + value/100`` and a ``fixed`` one adds
        *value* to every component matching *category*, *tier* and
        *component_ids*.  No price goes below zero.
        """
        if not updates and not adjustment_type:
            raise CatalogError(
                "VALIDATION_ERROR", 400, "Either updates array or adjustment parameters required",
            )
        if adjustment_type and adjustment_type not in ADJUSTMENT_TYPES:
            raise CatalogError(
                "VALIDATION_ERROR", 400,
                f"adjustmentType must be one of: {', '.join(ADJUSTMENT_TYPES)}",
            )

        changed: list[ModularComponent] = []
        with self._lock:
            for entry in updates or []:
                if not isinstance(entry, dict) or not entry.get("id") or entry.get("price") in (None, ""):
                    continue
                comp = get_component(self.catalog, entry["id"])
                if comp is None:
                    log.warning("Bulk pricing skipped unknown component %s", entry["id"])
                    continue
                changed.append(self._set_price(comp, _price(entry["price"])))

            if adjustment_type and adjustment_value:
                targets = filter_components(self.catalog, category=category)
                if tier:
                    targets = [c for c in targets if (c.metadata.tier or "").lower() == tier.lower()]
                if component_ids is not None:
                    targets = [c for c in targets if c.id in component_ids]
                for comp in targets:
                    if adjustment_type == "percentage":
                        new_price = comp.price * (1 + adjustment_value / 100)
                    else:
                        new_price = comp.price + adjustment_value
                    changed.append(self._set_price(comp, new_price))

            for source in sorted({c.source_file for c in changed}):
                self._write_file(Path(source))
        log.info("Bulk pricing updated %d component price(s)", len(changed))
        return changed

    # ── Plumbing (callers hold the lock) ───────────────────────────

    def _build(self, data: dict, path: Path) -> ModularComponent:
        try:
            comp = parse_component(data, source_file=str(path))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CatalogError("VALIDATION_ERROR", 400, "Invalid component data",
                               [f"Missing/invalid field: {exc}"]) from exc
        if errors := validate_component(comp):
            raise CatalogError("VALIDATION_ERROR", 400, "Invalid component data",
                               [str(e) for e in errors])
        return comp

    def _replace(self, old: ModularComponent, new: ModularComponent | None) -> None:
        comps = self.catalog.components
        idx = next(i for i, c in enumerate(comps) if c is old)
        if new is None:
            del comps[idx]
        else:
            comps[idx] = new
        # The stored component is now known-good (or gone).
        self.catalog.errors[:] = [e for e in self.catalog.errors if e.component_id != old.id]

    def _set_price(self, comp: ModularComponent, price: float) -> ModularComponent:
        comp.price = round(max(0.0, price), 2)
        return comp

    def _new_file(self, component_id: str) -> Path:
        stem = component_id.replace("-", "_")
        path = self.catalog_dir / f"{stem}.json"
        n = 2
        while path.exists():
            path = self.catalog_dir / f"{stem}_{n}.json"
            n += 1
        return path

    def _write_file(self, path: Path) -> None:
        """Rewrite *path* from the components loaded from it; drop it when none are left."""
        entries = [component_to_dict(c) for c in self.catalog.components if c.source_file == str(path)]
        if not entries:
            path.unlink(missing_ok=True)
            return
        payload = entries[0] if len(entries) == 1 else entries
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
