"""Quote pricing: component lines, shipping and installation estimates.

All amounts are South African Rand.  Totals are rounded half-up to whole
Rand, the way customers see them on a quote.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from playset.design.models import Design, component_data

log = logging.getLogger("playset.pricing")

SHIPPING_BASE_RATE = 500
MAJOR_CITY_RATE = 200
REGIONAL_RATE = 800
WEIGHT_RATE_PER_UNIT = 2
MAJOR_CITIES = (
    "johannesburg", "pretoria", "cape town", "durban", "port elizabeth", "bloemfontein",
)

INSTALLATION_BASE_RATE = 2000
INSTALLATION_PER_COMPONENT = 300

# (threshold, bump) pairs, highest first; only the first match applies.
HEIGHT_STEPS = ((10, 0.2), (8, 0.1))
FOOTPRINT_STEPS = ((200, 0.2), (150, 0.1))
COUNT_STEPS = ((15, 0.2), (10, 0.1))


def round_half_up(value: float, ndigits: int = 0) -> float:
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


@dataclass
class ComponentPricing:
    component_id: str
    name: str
    quantity: int
    unit_price: float
    total_price: float


@dataclass
class ShippingEstimate:
    base_rate: float
    distance_rate: float
    weight_rate: float
    total: float


@dataclass
class InstallationEstimate:
    base_rate: float
    component_rate: float
    complexity_multiplier: float
    total: float


@dataclass
class Location:
    city: str
    state: str = ""
    postal_code: str = ""


@dataclass
class PricingBreakdown:
    components: list[ComponentPricing] = field(default_factory=list)
    subtotal: float = 0
    shipping: ShippingEstimate | None = None
    installation: InstallationEstimate | None = None
    total: float = 0


# ── Calculators ────────────────────────────────────────────────────


def calculate_component_pricing(design: Design) -> tuple[list[ComponentPricing], float]:
    """Group placed components by catalog id; returns (lines, subtotal)."""
    lines: dict[str, ComponentPricing] = {}
    for placed in design.components:
        data = component_data(placed)
        if data is None:
            log.warning("Component data not found for instance %s", placed.instance_id)
            continue
        if (line := lines.get(data.id)) is not None:
            line.quantity += 1
            line.total_price = line.quantity * line.unit_price
        else:
            lines[data.id] = ComponentPricing(data.id, data.name, 1, data.price, data.price)
    components = list(lines.values())
    return components, sum(line.total_price for line in components)


def distance_rate(location: Location) -> int:
    city = location.city.lower()
    if any(major in city for major in MAJOR_CITIES):
        return MAJOR_CITY_RATE
    return REGIONAL_RATE


def calculate_shipping_estimate(design: Design, location: Location) -> ShippingEstimate:
    weight_rate = round_half_up(design.metadata.estimated_weight * WEIGHT_RATE_PER_UNIT)
    dist = distance_rate(location)
    return ShippingEstimate(
        base_rate=SHIPPING_BASE_RATE,
        distance_rate=dist,
        weight_rate=weight_rate,
        total=round_half_up(SHIPPING_BASE_RATE + dist + weight_rate),
    )


def _step(value: float, steps: tuple[tuple[float, float], ...]) -> float:
    for threshold, bump in steps:
        if value > threshold:
            return bump
    return 0.0


def complexity_multiplier(design: Design) -> float:
    meta = design.metadata
    dims = meta.dimensions
    multiplier = 1.0
    multiplier += _step(dims.height, HEIGHT_STEPS)
    multiplier += _step(dims.width * dims.depth, FOOTPRINT_STEPS)
    multiplier += _step(meta.component_count, COUNT_STEPS)
    return round_half_up(multiplier, 2)


def calculate_installation_estimate(design: Design) -> InstallationEstimate:
    component_rate = design.metadata.component_count * INSTALLATION_PER_COMPONENT
    mult = complexity_multiplier(design)
    return InstallationEstimate(
        base_rate=INSTALLATION_BASE_RATE,
        component_rate=component_rate,
        complexity_multiplier=mult,
        total=round_half_up((INSTALLATION_BASE_RATE + component_rate) * mult),
    )


def calculate_pricing_breakdown(
    design: Design, location: Location, include_installation: bool = False,
) -> PricingBreakdown:
    components, subtotal = calculate_component_pricing(design)
    shipping = calculate_shipping_estimate(design, location)
    installation = calculate_installation_estimate(design) if include_installation else None
    total = subtotal + shipping.total + (installation.total if installation else 0)
    return PricingBreakdown(components, subtotal, shipping, installation, total)


def validate_pricing(pricing: PricingBreakdown) -> tuple[bool, list[str]]:
    errors = []
    if not pricing.components:
        errors.append("No components in design")
    if pricing.subtotal <= 0:
        errors.append("Invalid subtotal")
    if pricing.shipping is None or pricing.shipping.total < 0:
        errors.append("Invalid shipping cost")
    if pricing.total <= 0:
        errors.append("Invalid total price")
    return not errors, errors


def format_price(amount: float, currency: str = "ZAR") -> str:
    """``R 12,345`` for Rand; ``<CODE> 12,345`` otherwise."""
    text = f"{amount:,.2f}".rstrip("0").rstrip(".") if amount % 1 else f"{int(amount):,}"
    if currency == "ZAR":
        return f"R {text}"
    return f"{currency} {text}"


# ── Serialization ──────────────────────────────────────────────────


def _num(value: float) -> int | float:
    """Whole numbers serialize as ints."""
    return int(value) if float(value).is_integer() else value


def pricing_to_dict(pricing: PricingBreakdown) -> dict:
    out = {
        "components": [
            {
                "componentId": line.component_id,
                "name": line.name,
                "quantity": line.quantity,
                "unitPrice": _num(line.unit_price),
                "totalPrice": _num(line.total_price),
            }
            for line in pricing.components
        ],
        "subtotal": _num(pricing.subtotal),
        "shipping": None,
        "total": _num(pricing.total),
    }
    if pricing.shipping is not None:
        s = pricing.shipping
        out["shipping"] = {
            "baseRate": _num(s.base_rate),
            "distanceRate": _num(s.distance_rate),
            "weightRate": _num(s.weight_rate),
            "total": _num(s.total),
        }
    if pricing.installation is not None:
        i = pricing.installation
        out["installation"] = {
            "baseRate": _num(i.base_rate),
            "componentRate": _num(i.component_rate),
            "complexityMultiplier": i.complexity_multiplier,
            "total": _num(i.total),
        }
    return out


def parse_location(data: dict) -> Location:
    return Location(
        city=str(data.get("city", "")),
        state=str(data.get("state", "")),
        postal_code=str(data.get("postalCode", "")),
    )
