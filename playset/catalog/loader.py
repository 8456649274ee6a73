"""Catalog loader: reads catalog/*.json files, parses and validates them."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import (
    CATEGORIES, CONNECTION_TYPES, RULE_TYPES,
    Vector3D, Dimensions, ConnectionPoint, CompatibilityRule, ComponentMetadata,
    ModularComponent, ValidationError, CatalogResult,
)


CATALOG_DIR = Path(__file__).resolve().parent.parent.parent / "catalog"

log = logging.getLogger("playset.catalog")


# ── Validation ─────────────────────────────────────────────────────

def validate_component(comp: ModularComponent) -> list[ValidationError]:
    """Run all validation checks on a single component."""
    errs: list[ValidationError] = []
    cid = comp.id

    if comp.category not in CATEGORIES:
        errs.append(ValidationError(cid, "category", f"Unknown category '{comp.category}'"))

    if comp.price < 0:
        errs.append(ValidationError(cid, "price", "Must be >= 0"))
    if comp.weight < 0:
        errs.append(ValidationError(cid, "weight", "Must be >= 0"))

    # Dimensions
    for name in ("width", "depth", "height"):
        if getattr(comp.dimensions, name) <= 0:
            errs.append(ValidationError(cid, f"dimensions.{name}", "Must be > 0"))
    if comp.dimensions.unit not in ("ft", "m"):
        errs.append(ValidationError(cid, "dimensions.unit",
                                    f"Unknown unit '{comp.dimensions.unit}', expected 'ft' or 'm'"))

    if comp.metadata.capacity < 0:
        errs.append(ValidationError(cid, "metadata.capacity", "Must be >= 0"))

    # Connection point IDs unique, types known
    seen: set[str] = set()
    for cp in comp.connection_points:
        if cp.id in seen:
            errs.append(ValidationError(cid, f"connectionPoints.{cp.id}", "Duplicate connection point ID"))
        seen.add(cp.id)
        if cp.type not in CONNECTION_TYPES:
            errs.append(ValidationError(cid, f"connectionPoints.{cp.id}.type",
                                        f"Unknown connection type '{cp.type}'"))

    # Compatibility rules
    for i, rule in enumerate(comp.compatibility_rules):
        if rule.rule_type not in RULE_TYPES:
            errs.append(ValidationError(cid, f"compatibilityRules[{i}].ruleType",
                                        f"Unknown rule type '{rule.rule_type}'"))
        if not rule.target_component_ids:
            errs.append(ValidationError(cid, f"compatibilityRules[{i}].targetComponentIds",
                                        "Must name at least one component or category"))

    return errs


# ── Parsing ────────────────────────────────────────────────────────

def parse_vector(data: dict | None) -> Vector3D:
    if not data:
        return Vector3D()
    return Vector3D(
        x=float(data.get("x", 0)),
        y=float(data.get("y", 0)),
        z=float(data.get("z", 0)),
    )


def parse_dimensions(data: dict) -> Dimensions:
    return Dimensions(
        width=float(data["width"]),
        depth=float(data["depth"]),
        height=float(data["height"]),
        unit=data.get("unit", "ft"),
    )


def _parse_connection_point(data: dict) -> ConnectionPoint:
    return ConnectionPoint(
        id=data["id"],
        type=data["type"],
        position=parse_vector(data.get("position")),
        orientation=parse_vector(data.get("orientation")),
        allowed_connections=list(data.get("allowedConnections", [])),
    )


def _parse_compatibility_rules(data) -> list[CompatibilityRule]:
    # Seeded database rows carry a free-form object here; only lists are rules.
    if not isinstance(data, list):
        return []
    return [
        CompatibilityRule(
            rule_type=r["ruleType"],
            target_component_ids=list(r.get("targetComponentIds", [])),
            condition=r.get("condition"),
            message=r.get("message"),
        )
        for r in data
    ]


def _parse_metadata(data: dict) -> ComponentMetadata:
    return ComponentMetadata(
        age_range=data.get("ageRange", ""),
        capacity=int(data.get("capacity", 0)),
        materials=list(data.get("materials", [])),
        colors=list(data.get("colors", [])),
        tier=data.get("tier"),
    )


def parse_component(data: dict, source_file: str = "") -> ModularComponent:
    """Parse one camelCase component dict (catalog file or `_componentData`)."""
    return ModularComponent(
        id=data["id"],
        name=data["name"],
        category=data["category"],
        subcategory=data.get("subcategory"),
        price=float(data["price"]),
        thumbnail=data.get("thumbnail", ""),
        model_3d=data.get("model3D", ""),
        dimensions=parse_dimensions(data["dimensions"]),
        weight=float(data["weight"]),
        connection_points=[_parse_connection_point(cp) for cp in data.get("connectionPoints", [])],
        compatibility_rules=_parse_compatibility_rules(data.get("compatibilityRules", [])),
        metadata=_parse_metadata(data.get("metadata", {})),
        source_file=source_file,
    )


# ── Public API ─────────────────────────────────────────────────────

def load_catalog(catalog_dir: Path | None = None) -> CatalogResult:
    """Load all catalog/*.json files, parse and validate.

    A file may hold a single component object or a list of them.
    Components that fail to parse are skipped (error recorded).
    Components that parse but have validation issues are still included.
    """
    d = catalog_dir or CATALOG_DIR
    components: list[ModularComponent] = []
    errors: list[ValidationError] = []

    json_files = sorted(d.glob("*.json"))
    if not json_files:
        errors.append(ValidationError("_catalog", "files", f"No .json files found in {d}"))
        return CatalogResult(components=components, errors=errors)

    for path in json_files:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            errors.append(ValidationError(
                path.stem, "json", f"Parse error: {exc}"))
            continue
        except OSError as exc:
            errors.append(ValidationError(
                path.stem, "file", f"Read error: {exc}"))
            continue

        entries = raw if isinstance(raw, list) else [raw]
        for entry in entries:
            try:
                comp = parse_component(entry, source_file=str(path))
            except (KeyError, TypeError, ValueError) as exc:
                entry_id = entry.get("id", path.stem) if isinstance(entry, dict) else path.stem
                errors.append(ValidationError(
                    entry_id, "parse", f"Missing/invalid field: {exc}"))
                continue

            errors.extend(validate_component(comp))
            components.append(comp)

    # Check for duplicate IDs across files
    id_counts: dict[str, int] = {}
    for comp in components:
        id_counts[comp.id] = id_counts.get(comp.id, 0) + 1
    for cid, count in id_counts.items():
        if count > 1:
            errors.append(ValidationError(cid, "id", f"Duplicate component ID (appears {count} times)"))

    if errors:
        log.warning("Catalog loaded from %s with %d error(s)", d, len(errors))
    log.info("Loaded %d catalog components from %s", len(components), d)
    return CatalogResult(components=components, errors=errors)


def get_component(
    catalog: list[ModularComponent] | CatalogResult, component_id: str,
) -> ModularComponent | None:
    """Look up a component by ID. Returns None if not found."""
    comps = catalog.components if isinstance(catalog, CatalogResult) else catalog
    for c in comps:
        if c.id == component_id:
            return c
    return None


def filter_components(
    catalog: list[ModularComponent] | CatalogResult,
    category: str | None = None,
    search: str | None = None,
) -> list[ModularComponent]:
    """Filter by category (case-insensitive) and free-text search.

    Search matches name, category, subcategory and materials.
    """
    comps = catalog.components if isinstance(catalog, CatalogResult) else catalog
    if category:
        comps = [c for c in comps if c.category.lower() == category.lower()]
    if search and search.strip():
        needle = search.strip().lower()
        comps = [
            c for c in comps
            if needle in c.name.lower()
            or needle in c.category.lower()
            or (c.subcategory and needle in c.subcategory.lower())
            or any(needle in m.lower() for m in c.metadata.materials)
        ]
    return list(comps)
