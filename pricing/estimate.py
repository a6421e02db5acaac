"""
Purpose: Quoted estimates for sellers before a job is posted.
What it does:
Builds a base fee from the installation itself (area, complexity, materials,
on-site surcharges), then runs it through PricingEngine.price_fee for the
urgency/tier adjustment and settlement.

Unknown complexity, material or quality identifiers are configuration errors;
they are never silently priced at zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from .engine import PricingEngine, quantize_money
from .models import PriceBreakdown, PricingConfigError, Urgency


@dataclass(frozen=True)
class EstimatePolicy:
    base_price: float = 50000
    price_per_square_meter: float = 15000

    complexity_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "simple": 1.0,
        "moderate": 1.2,
        "complex": 1.5,
        "very_complex": 2.0,
    })
    material_prices: Dict[str, float] = field(default_factory=lambda: {
        "curtain_rod": 15000,
        "curtain_rings": 5000,
        "brackets": 8000,
        "screws": 2000,
        "anchors": 3000,
        "curtain_fabric": 25000,
        "lining": 15000,
        "tiebacks": 12000,
    })
    quality_multipliers: Dict[str, float] = field(default_factory=lambda: {
        "basic": 1.0,
        "standard": 1.3,
        "premium": 1.8,
        "luxury": 2.5,
    })

    # --- Flat surcharges ---
    free_distance_km: float = 10
    per_km_beyond_free: float = 1000
    parking_fee: float = 5000
    elevator_fee: float = 3000
    elevator_above_floor: int = 3
    special_equipment_fee: float = 10000
    rush_hour_fee: float = 8000

    # Quote range around the recommended total.
    range_percent: float = 10

    def validate(self) -> None:
        if self.base_price < 0 or self.price_per_square_meter < 0:
            raise PricingConfigError("base_price and price_per_square_meter must be >= 0")
        for table in (self.complexity_multipliers, self.quality_multipliers):
            for name, multiplier in table.items():
                if multiplier <= 0:
                    raise PricingConfigError(f"multiplier for {name!r} must be > 0")
        for name, price in self.material_prices.items():
            if price < 0:
                raise PricingConfigError(f"price for material {name!r} must be >= 0")
        if not 0 <= self.range_percent <= 100:
            raise PricingConfigError("range_percent must be within [0, 100]")


def default_estimate_policy() -> EstimatePolicy:
    p = EstimatePolicy()
    p.validate()
    return p


@dataclass(frozen=True)
class MaterialLine:
    material: str
    quantity: float = 1
    quality: str = "basic"


@dataclass(frozen=True)
class EstimateRequest:
    width_m: float = 0
    height_m: float = 0
    complexity: str = "simple"
    materials: List[MaterialLine] = field(default_factory=list)
    urgency: Urgency = Urgency.NORMAL
    elapsed_minutes: float = 0

    # --- Site conditions ---
    distance_km: float = 0
    parking_required: bool = False
    floor: int = 1
    special_equipment: bool = False
    rush_hour: bool = False


@dataclass(frozen=True)
class Estimate:
    installation_fee: Decimal
    material_cost: Decimal
    surcharges: Decimal
    price: PriceBreakdown
    min_total: Decimal
    max_total: Decimal

    @property
    def recommended_total(self) -> Decimal:
        return self.price.customer_total


def installation_fee(request: EstimateRequest, policy: EstimatePolicy) -> Decimal:
    multiplier = policy.complexity_multipliers.get(request.complexity)
    if multiplier is None:
        raise PricingConfigError(f"Unknown complexity: {request.complexity!r}")
    area = max(0.0, float(request.width_m)) * max(0.0, float(request.height_m))
    fee = (policy.base_price + area * policy.price_per_square_meter) * multiplier
    return quantize_money(Decimal(str(fee)))


def material_cost(materials: List[MaterialLine], policy: EstimatePolicy) -> Decimal:
    total = Decimal(0)
    for line in materials:
        unit_price = policy.material_prices.get(line.material)
        if unit_price is None:
            raise PricingConfigError(f"Unknown material: {line.material!r}")
        quality = policy.quality_multipliers.get(line.quality)
        if quality is None:
            raise PricingConfigError(f"Unknown material quality: {line.quality!r}")
        if line.quantity < 0:
            raise PricingConfigError(f"Negative quantity for {line.material!r}")
        total += Decimal(str(unit_price)) * Decimal(str(line.quantity)) * Decimal(str(quality))
    return quantize_money(total)


def surcharges(request: EstimateRequest, policy: EstimatePolicy) -> Decimal:
    total = max(0.0, (float(request.distance_km) - policy.free_distance_km) * policy.per_km_beyond_free)
    if request.parking_required:
        total += policy.parking_fee
    if request.floor > policy.elevator_above_floor:
        total += policy.elevator_fee
    if request.special_equipment:
        total += policy.special_equipment_fee
    if request.rush_hour:
        total += policy.rush_hour_fee
    return quantize_money(Decimal(str(total)))


def quote_estimate(
    request: EstimateRequest,
    tier,
    engine: Optional[PricingEngine] = None,
    policy: Optional[EstimatePolicy] = None,
) -> Estimate:
    engine = engine or PricingEngine()
    policy = policy or default_estimate_policy()

    install = installation_fee(request, policy)
    materials = material_cost(request.materials, policy)
    extra = surcharges(request, policy)

    price = engine.price_fee(
        base_fee=install + materials + extra,
        urgency=request.urgency,
        tier=tier,
        elapsed_minutes=request.elapsed_minutes,
    )

    spread = Decimal(str(policy.range_percent)) / Decimal(100)
    return Estimate(
        installation_fee=install,
        material_cost=materials,
        surcharges=extra,
        price=price,
        min_total=quantize_money(price.customer_total * (1 - spread)),
        max_total=quantize_money(price.customer_total * (1 + spread)),
    )
