"""
Pricing Types

Typed view over a service's ``pricing_config`` JSON plus the structured,
auditable breakdown produced for every quote.

pricing_config JSON format:
    {
        "components": [
            {
                "name": "Labour",
                "pricing_combination": "labor_per_hour_per_person",
                "tiers": [
                    {"min_quantity": 1, "max_quantity": 4, "price": 50,
                     "duration_estimate_mins": {"one_item": 60, "house_move_2_bedroom": 240}}
                ]
            },
            {
                "name": "Travel",
                "pricing_combination": "travel_per_km",
                "tiers": [{"min_quantity": 1, "max_quantity": 99, "price": 2.5}]
            }
        ]
    }

Every pricing combination tag maps to exactly one entry of either
COMPONENT_RULES (billed per service) or TRAVEL_RULES (billed once per
booking). The mapping is checked when this module is imported.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from .errors import UnsupportedPricingCombination
from .money import to_decimal


# ============================================================================
# ENUMS
# ============================================================================

class PricingCombination(str, Enum):
    """Billing shape of a pricing component: domain, unit basis, scaling basis."""

    # Per person rates (linear scaling)
    LABOR_PER_HOUR_PER_PERSON = "labor_per_hour_per_person"
    LABOR_PER_MINUTE_PER_PERSON = "labor_per_minute_per_person"
    SERVICE_PER_HOUR_PER_PERSON = "service_per_hour_per_person"
    SERVICE_PER_MINUTE_PER_PERSON = "service_per_minute_per_person"

    # Team rates (tiered by team size)
    LABOR_PER_HOUR_TEAM_RATE = "labor_per_hour_team_rate"
    LABOR_PER_MINUTE_TEAM_RATE = "labor_per_minute_team_rate"
    SERVICE_PER_HOUR_TEAM_RATE = "service_per_hour_team_rate"
    SERVICE_PER_MINUTE_TEAM_RATE = "service_per_minute_team_rate"

    # Single tier rates
    LABOUR_PER_HOUR = "labour_per_hour"
    LABOUR_PER_MINUTE = "labour_per_minute"
    SERVICE_PER_HOUR = "service_per_hour"
    SERVICE_PER_MINUTE = "service_per_minute"

    # Fixed rates
    SERVICE_FIXED_PER_SERVICE = "service_fixed_per_service"
    SERVICE_PER_ROOM = "service_per_room"
    SERVICE_PER_SQM = "service_per_sqm"

    # Travel, per person / per vehicle
    TRAVEL_PER_KM_PER_PERSON = "travel_per_km_per_person"
    TRAVEL_PER_MINUTE_PER_PERSON = "travel_per_minute_per_person"
    TRAVEL_PER_HOUR_PER_PERSON = "travel_per_hour_per_person"
    TRAVEL_PER_KM_PER_VEHICLE = "travel_per_km_per_vehicle"
    TRAVEL_PER_MINUTE_PER_VEHICLE = "travel_per_minute_per_vehicle"
    TRAVEL_PER_HOUR_PER_VEHICLE = "travel_per_hour_per_vehicle"

    # Travel, team rates
    TRAVEL_PER_KM_TEAM_RATE = "travel_per_km_team_rate"
    TRAVEL_PER_MINUTE_TEAM_RATE = "travel_per_minute_team_rate"
    TRAVEL_PER_HOUR_TEAM_RATE = "travel_per_hour_team_rate"

    # Travel, single tier
    TRAVEL_PER_KM = "travel_per_km"
    TRAVEL_PER_MINUTE = "travel_per_minute"
    TRAVEL_PER_HOUR = "travel_per_hour"

    @property
    def is_travel(self) -> bool:
        return self.value.startswith("travel_")

    @classmethod
    def parse(cls, value: "str | PricingCombination") -> "PricingCombination":
        """Parse a stored tag, raising UnsupportedPricingCombination for unknown tags."""
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedPricingCombination(str(value)) from None


class TravelBasis(str, Enum):
    """What aggregated travel quantity a travel rate is charged against."""
    KM = "km"
    MINUTE = "minute"
    HOUR = "hour"


# ============================================================================
# DISPATCH TABLES
# ============================================================================

@dataclass(frozen=True)
class ComponentRule:
    """How a service/labour combination turns a tier price into a cost."""
    uses_duration: bool
    time_multiplier: Optional[int]  # 60 = hourly, 1 = per minute, None = fixed
    quantity_multiplier: bool  # True for per-person rates
    category: str
    unit: str


@dataclass(frozen=True)
class TravelRule:
    """How a travel combination turns a tier price into the booking travel cost."""
    basis: TravelBasis
    per_quantity: bool  # per person / per vehicle


PC = PricingCombination

COMPONENT_RULES: dict[PricingCombination, ComponentRule] = {
    # Per person rates
    PC.LABOR_PER_HOUR_PER_PERSON: ComponentRule(True, 60, True, "Labor", "hour/person"),
    PC.LABOR_PER_MINUTE_PER_PERSON: ComponentRule(True, 1, True, "Labor", "min/person"),
    PC.SERVICE_PER_HOUR_PER_PERSON: ComponentRule(True, 60, True, "Service", "hour/person"),
    PC.SERVICE_PER_MINUTE_PER_PERSON: ComponentRule(True, 1, True, "Service", "min/person"),
    # Team rates
    PC.LABOR_PER_HOUR_TEAM_RATE: ComponentRule(True, 60, False, "Team Labor", "hour"),
    PC.LABOR_PER_MINUTE_TEAM_RATE: ComponentRule(True, 1, False, "Team Labor", "min"),
    PC.SERVICE_PER_HOUR_TEAM_RATE: ComponentRule(True, 60, False, "Team Service", "hour"),
    PC.SERVICE_PER_MINUTE_TEAM_RATE: ComponentRule(True, 1, False, "Team Service", "min"),
    # Single tier rates
    PC.LABOUR_PER_HOUR: ComponentRule(True, 60, False, "Labor", "hour"),
    PC.LABOUR_PER_MINUTE: ComponentRule(True, 1, False, "Labor", "min"),
    PC.SERVICE_PER_HOUR: ComponentRule(True, 60, False, "Service", "hour"),
    PC.SERVICE_PER_MINUTE: ComponentRule(True, 1, False, "Service", "min"),
    # Fixed rates
    PC.SERVICE_FIXED_PER_SERVICE: ComponentRule(True, None, False, "Service", "fixed"),
    PC.SERVICE_PER_ROOM: ComponentRule(True, None, False, "Service", "room"),
    PC.SERVICE_PER_SQM: ComponentRule(True, None, False, "Service", "sqm"),
}

TRAVEL_RULES: dict[PricingCombination, TravelRule] = {
    PC.TRAVEL_PER_KM_PER_PERSON: TravelRule(TravelBasis.KM, True),
    PC.TRAVEL_PER_MINUTE_PER_PERSON: TravelRule(TravelBasis.MINUTE, True),
    PC.TRAVEL_PER_HOUR_PER_PERSON: TravelRule(TravelBasis.HOUR, True),
    PC.TRAVEL_PER_KM_PER_VEHICLE: TravelRule(TravelBasis.KM, True),
    PC.TRAVEL_PER_MINUTE_PER_VEHICLE: TravelRule(TravelBasis.MINUTE, True),
    PC.TRAVEL_PER_HOUR_PER_VEHICLE: TravelRule(TravelBasis.HOUR, True),
    PC.TRAVEL_PER_KM_TEAM_RATE: TravelRule(TravelBasis.KM, False),
    PC.TRAVEL_PER_MINUTE_TEAM_RATE: TravelRule(TravelBasis.MINUTE, False),
    PC.TRAVEL_PER_HOUR_TEAM_RATE: TravelRule(TravelBasis.HOUR, False),
    PC.TRAVEL_PER_KM: TravelRule(TravelBasis.KM, False),
    PC.TRAVEL_PER_MINUTE: TravelRule(TravelBasis.MINUTE, False),
    PC.TRAVEL_PER_HOUR: TravelRule(TravelBasis.HOUR, False),
}

_unmapped = [
    combination.value
    for combination in PricingCombination
    if (combination in COMPONENT_RULES) == (combination in TRAVEL_RULES)
    or (combination in TRAVEL_RULES) != combination.is_travel
]
if _unmapped:
    raise RuntimeError(f"Pricing combinations without exactly one dispatch rule: {_unmapped}")


# ============================================================================
# PRICING CONFIG
# ============================================================================

DurationEstimate = Optional[int | dict[str, int]]


@dataclass
class PricingTier:
    """Quantity-banded price/duration rule within a pricing component."""
    min_quantity: int
    max_quantity: int
    price: Decimal
    duration_estimate_mins: DurationEstimate = None

    def contains(self, quantity: int) -> bool:
        return self.min_quantity <= quantity <= self.max_quantity

    @classmethod
    def from_dict(cls, data: dict) -> "PricingTier":
        return cls(
            min_quantity=int(data["min_quantity"]),
            max_quantity=int(data["max_quantity"]),
            price=to_decimal(data["price"]),
            duration_estimate_mins=data.get("duration_estimate_mins"),
        )

    def to_dict(self) -> dict:
        return {
            "min_quantity": self.min_quantity,
            "max_quantity": self.max_quantity,
            "price": float(self.price),
            "duration_estimate_mins": self.duration_estimate_mins,
        }


@dataclass
class PricingComponent:
    name: str
    pricing_combination: PricingCombination
    tiers: list[PricingTier] = field(default_factory=list)

    @property
    def is_travel(self) -> bool:
        return self.pricing_combination.is_travel

    @classmethod
    def from_dict(cls, data: dict) -> "PricingComponent":
        return cls(
            name=data.get("name", ""),
            pricing_combination=PricingCombination.parse(data["pricing_combination"]),
            tiers=[PricingTier.from_dict(tier) for tier in data.get("tiers", [])],
        )


@dataclass
class PricingConfig:
    """Ordered components whose costs sum to a service total (travel is shared)."""
    components: list[PricingComponent] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["PricingConfig"]:
        if not data:
            return None
        return cls(components=[PricingComponent.from_dict(c) for c in data.get("components", [])])

    @property
    def service_components(self) -> list[PricingComponent]:
        return [c for c in self.components if not c.is_travel]

    @property
    def travel_component(self) -> Optional[PricingComponent]:
        return next((c for c in self.components if c.is_travel), None)


# ============================================================================
# PRICE BREAKDOWN
# ============================================================================

@dataclass
class ComponentBreakdown:
    component_name: str
    pricing_combination: PricingCombination
    tier_used: PricingTier
    base_calculation: str  # e.g. "2 hours × $50/hour/person × 3 people"
    cost: Decimal
    duration_mins: int

    def to_dict(self) -> dict:
        return {
            "component_name": self.component_name,
            "pricing_combination": self.pricing_combination.value,
            "tier_used": self.tier_used.to_dict(),
            "base_calculation": self.base_calculation,
            "cost": float(self.cost),
            "duration_mins": self.duration_mins,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ComponentBreakdown":
        return cls(
            component_name=data["component_name"],
            pricing_combination=PricingCombination.parse(data["pricing_combination"]),
            tier_used=PricingTier.from_dict(data["tier_used"]),
            base_calculation=data.get("base_calculation", ""),
            cost=to_decimal(data["cost"]),
            duration_mins=int(data["duration_mins"]),
        )


@dataclass
class ServiceBreakdown:
    service_id: Optional[str]
    service_name: str
    quantity: int
    service_cost: Decimal  # service-related costs only, no travel
    total_cost: Decimal
    estimated_duration_mins: int
    component_breakdowns: list[ComponentBreakdown] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "service_name": self.service_name,
            "quantity": self.quantity,
            "service_cost": float(self.service_cost),
            "total_cost": float(self.total_cost),
            "estimated_duration_mins": self.estimated_duration_mins,
            "component_breakdowns": [c.to_dict() for c in self.component_breakdowns],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ServiceBreakdown":
        return cls(
            service_id=data.get("service_id"),
            service_name=data["service_name"],
            quantity=int(data["quantity"]),
            service_cost=to_decimal(data["service_cost"]),
            total_cost=to_decimal(data["total_cost"]),
            estimated_duration_mins=int(data["estimated_duration_mins"]),
            component_breakdowns=[
                ComponentBreakdown.from_dict(c) for c in data.get("component_breakdowns", [])
            ],
        )


@dataclass
class RouteSegment:
    from_address: str
    to_address: str
    distance_km: Decimal
    duration_mins: int
    is_chargeable: bool
    segment_type: str  # base_to_customer | customer_to_base | customer_to_customer
    service_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "from_address": self.from_address,
            "to_address": self.to_address,
            "distance_km": float(self.distance_km),
            "duration_mins": self.duration_mins,
            "is_chargeable": self.is_chargeable,
            "segment_type": self.segment_type,
            "service_id": self.service_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RouteSegment":
        return cls(
            from_address=data["from_address"],
            to_address=data["to_address"],
            distance_km=to_decimal(data["distance_km"]),
            duration_mins=int(data["duration_mins"]),
            is_chargeable=bool(data["is_chargeable"]),
            segment_type=data.get("segment_type", "customer_to_customer"),
            service_id=data.get("service_id"),
        )


@dataclass
class TravelBreakdown:
    total_distance_km: Decimal = Decimal("0")
    total_travel_time_mins: int = 0
    total_travel_cost: Decimal = Decimal("0")
    route_segments: list[RouteSegment] = field(default_factory=list)
    free_travel_applied: bool = False
    free_travel_distance_km: Decimal = Decimal("0")

    def to_dict(self) -> dict:
        return {
            "total_distance_km": float(self.total_distance_km),
            "total_travel_time_mins": self.total_travel_time_mins,
            "total_travel_cost": float(self.total_travel_cost),
            "route_segments": [s.to_dict() for s in self.route_segments],
            "free_travel_applied": self.free_travel_applied,
            "free_travel_distance_km": float(self.free_travel_distance_km),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TravelBreakdown":
        return cls(
            total_distance_km=to_decimal(data.get("total_distance_km")),
            total_travel_time_mins=int(data.get("total_travel_time_mins") or 0),
            total_travel_cost=to_decimal(data.get("total_travel_cost")),
            route_segments=[RouteSegment.from_dict(s) for s in data.get("route_segments", [])],
            free_travel_applied=bool(data.get("free_travel_applied", False)),
            free_travel_distance_km=to_decimal(data.get("free_travel_distance_km")),
        )


@dataclass
class BusinessFeeBreakdown:
    gst_rate: Decimal = Decimal("0")
    gst_amount: Decimal = Decimal("0")
    gst_included_in_prices: bool = False
    platform_fee_percentage: Decimal = Decimal("0")
    platform_fee: Decimal = Decimal("0")
    payment_processing_fee_percentage: Decimal = Decimal("0")
    payment_processing_fee: Decimal = Decimal("0")
    other_fees: list[dict] = field(default_factory=list)

    @property
    def gst_added(self) -> Decimal:
        """GST charged on top of the subtotal (zero when prices already include it)."""
        return Decimal("0") if self.gst_included_in_prices else self.gst_amount

    def to_dict(self) -> dict:
        return {
            "gst_rate": float(self.gst_rate),
            "gst_amount": float(self.gst_amount),
            "gst_included_in_prices": self.gst_included_in_prices,
            "platform_fee_percentage": float(self.platform_fee_percentage),
            "platform_fee": float(self.platform_fee),
            "payment_processing_fee_percentage": float(self.payment_processing_fee_percentage),
            "payment_processing_fee": float(self.payment_processing_fee),
            "other_fees": list(self.other_fees),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BusinessFeeBreakdown":
        return cls(
            gst_rate=to_decimal(data.get("gst_rate")),
            gst_amount=to_decimal(data.get("gst_amount")),
            gst_included_in_prices=bool(data.get("gst_included_in_prices", False)),
            platform_fee_percentage=to_decimal(data.get("platform_fee_percentage")),
            platform_fee=to_decimal(data.get("platform_fee")),
            payment_processing_fee_percentage=to_decimal(data.get("payment_processing_fee_percentage")),
            payment_processing_fee=to_decimal(data.get("payment_processing_fee")),
            other_fees=list(data.get("other_fees", [])),
        )


@dataclass
class PriceBreakdown:
    """The unit of audit persisted with a booking."""
    service_breakdowns: list[ServiceBreakdown]
    travel_breakdown: TravelBreakdown
    business_fees: BusinessFeeBreakdown

    def total_before_minimum_charge(self) -> Decimal:
        """Re-sum the parts: services + travel + added GST + platform + processing fees."""
        services = sum((s.total_cost for s in self.service_breakdowns), Decimal("0"))
        fees = self.business_fees
        return (
            services
            + self.travel_breakdown.total_travel_cost
            + fees.gst_added
            + fees.platform_fee
            + fees.payment_processing_fee
        )

    def to_dict(self) -> dict:
        return {
            "service_breakdowns": [s.to_dict() for s in self.service_breakdowns],
            "travel_breakdown": self.travel_breakdown.to_dict(),
            "business_fees": self.business_fees.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PriceBreakdown":
        return cls(
            service_breakdowns=[ServiceBreakdown.from_dict(s) for s in data.get("service_breakdowns", [])],
            travel_breakdown=TravelBreakdown.from_dict(data.get("travel_breakdown", {})),
            business_fees=BusinessFeeBreakdown.from_dict(data.get("business_fees", {})),
        )


@dataclass
class QuoteResult:
    quote_id: str
    total_estimate_amount: Decimal
    total_estimate_time_in_minutes: int
    minimum_charge_applied: bool
    deposit_amount: Decimal
    remaining_balance: Decimal
    price_breakdown: PriceBreakdown
    deposit_paid: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "quote_id": self.quote_id,
            "total_estimate_amount": float(self.total_estimate_amount),
            "total_estimate_time_in_minutes": self.total_estimate_time_in_minutes,
            "minimum_charge_applied": self.minimum_charge_applied,
            "deposit_amount": float(self.deposit_amount),
            "remaining_balance": float(self.remaining_balance),
            "deposit_paid": self.deposit_paid,
            "price_breakdown": self.price_breakdown.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QuoteResult":
        return cls(
            quote_id=data["quote_id"],
            total_estimate_amount=to_decimal(data["total_estimate_amount"]),
            total_estimate_time_in_minutes=int(data["total_estimate_time_in_minutes"]),
            minimum_charge_applied=bool(data.get("minimum_charge_applied", False)),
            deposit_amount=to_decimal(data.get("deposit_amount")),
            remaining_balance=to_decimal(data.get("remaining_balance", data["total_estimate_amount"])),
            price_breakdown=PriceBreakdown.from_dict(data.get("price_breakdown", {})),
            deposit_paid=bool(data.get("deposit_paid", False)),
        )
