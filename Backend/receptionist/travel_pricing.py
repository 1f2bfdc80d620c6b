"""
Travel Pricing Engine

Travel is billed ONCE per booking, not per service:

    1. Keep only mobile services (no mobile services -> zero breakdown, no API call)
    2. Resolve the travel charging model (service override -> business default)
    3. Walk the address sequence and mark each leg chargeable or not
    4. Fetch distances for every leg in one batched request
    5. Sum chargeable km/minutes and price them with the first mobile
       service's travel component

Example (FROM_BASE_TO_CUSTOMERS, travel_per_km @ $2/km):
    base -> pickup 8 km, pickup -> dropoff 12 km
    (8 + 12) * 2 = $40
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Protocol

from .addresses import BookingAddress
from .component_pricing import resolve_tier
from .distance import DistanceRequest, DistanceResult
from .errors import DistanceProviderError, NoTravelModelResolvable
from .models import Business, BusinessCategory, Service, TravelChargingModel
from .money import round_whole
from .pricing_models import TRAVEL_RULES, RouteSegment, TravelBasis, TravelBreakdown

logger = logging.getLogger(__name__)


class DistanceProvider(Protocol):
    async def get_batch_distances(self, requests: list[DistanceRequest]) -> list[DistanceResult]:
        ...


@dataclass
class ServiceWithQuantity:
    service: Service
    quantity: int


# ============================================================================
# TRAVEL CHARGING MODELS
# ============================================================================

@dataclass(frozen=True)
class SegmentRule:
    """Which legs a travel charging model bills for."""
    include_base: bool  # False: base addresses are removed before walking the route
    is_chargeable: Callable[[bool, bool], bool]  # (from_base, to_base) -> chargeable


SEGMENT_RULES: dict[TravelChargingModel, SegmentRule] = {
    TravelChargingModel.BETWEEN_CUSTOMER_LOCATIONS: SegmentRule(
        include_base=False, is_chargeable=lambda from_base, to_base: True
    ),
    TravelChargingModel.FROM_BASE_TO_CUSTOMERS: SegmentRule(
        include_base=True, is_chargeable=lambda from_base, to_base: True
    ),
    TravelChargingModel.CUSTOMERS_AND_BACK_TO_BASE: SegmentRule(
        include_base=True, is_chargeable=lambda from_base, to_base: not from_base
    ),
    TravelChargingModel.FULL_ROUTE: SegmentRule(
        include_base=True, is_chargeable=lambda from_base, to_base: True
    ),
    TravelChargingModel.BETWEEN_CUSTOMERS_AND_BACK_TO_BASE: SegmentRule(
        include_base=True,
        is_chargeable=lambda from_base, to_base: (not from_base and not to_base) or to_base,
    ),
    TravelChargingModel.FROM_BASE_AND_BETWEEN_CUSTOMERS: SegmentRule(
        include_base=True, is_chargeable=lambda from_base, to_base: not to_base
    ),
}

# Business categories whose mobile work is billed between customer locations only
_BETWEEN_CUSTOMERS_CATEGORIES = (BusinessCategory.TRANSPORT.value,)


def compute_default_travel_model(
    category: Optional[str],
    offers_mobile: bool,
) -> Optional[TravelChargingModel]:
    """
    Default travel model for a business category.

    Transport businesses bill between customer locations (pickup -> dropoff);
    every other category bills from base to customers. Businesses without
    mobile services have no travel model.
    """
    if not offers_mobile:
        return None
    if category in _BETWEEN_CUSTOMERS_CATEGORIES:
        return TravelChargingModel.BETWEEN_CUSTOMER_LOCATIONS
    return TravelChargingModel.FROM_BASE_TO_CUSTOMERS


def resolve_travel_model(service: Service, business: Business) -> TravelChargingModel:
    """Service override -> business explicit default -> category default."""
    if service.travel_charging_model:
        return TravelChargingModel(service.travel_charging_model)
    if business.default_travel_charging_model:
        return TravelChargingModel(business.default_travel_charging_model)

    model = compute_default_travel_model(business.business_category, bool(business.offers_mobile_services))
    if model is None:
        raise NoTravelModelResolvable(business.business_category)
    return model


def _segment_type(from_base: bool, to_base: bool) -> str:
    if from_base:
        return "base_to_customer"
    if to_base:
        return "customer_to_base"
    return "customer_to_customer"


def determine_segments(addresses: list[BookingAddress], model: TravelChargingModel) -> list[RouteSegment]:
    """
    Every consecutive leg of the route, tagged chargeable per the model.

    Distances are left at zero; they are filled in from the distance provider.
    """
    rule = SEGMENT_RULES[model]
    ordered = sorted(addresses, key=lambda a: a.sequence_order)
    if not rule.include_base:
        ordered = [a for a in ordered if not a.is_base]

    segments = []
    for current, following in zip(ordered, ordered[1:]):
        segments.append(
            RouteSegment(
                from_address=current.address.route_label,
                to_address=following.address.route_label,
                distance_km=Decimal("0"),
                duration_mins=0,
                is_chargeable=rule.is_chargeable(current.is_base, following.is_base),
                segment_type=_segment_type(current.is_base, following.is_base),
                service_id=current.service_id,
            )
        )
    return segments


# ============================================================================
# TRAVEL COST
# ============================================================================

def calculate_travel_cost(
    service_item: ServiceWithQuantity,
    total_distance_km: Decimal,
    total_travel_time_mins: int,
) -> Decimal:
    """
    Price aggregated travel with the service's travel component.

    km -> km * price, minute -> minutes * price, hour -> minutes / 60 * price;
    per-person and per-vehicle rates are also multiplied by quantity.
    A service without a travel component pays no travel.
    """
    pricing_config = service_item.service.get_pricing_config()
    component = pricing_config.travel_component if pricing_config else None
    if component is None:
        return Decimal("0")

    tier = resolve_tier(component.tiers, service_item.quantity, component.name)
    rule = TRAVEL_RULES[component.pricing_combination]

    if rule.basis == TravelBasis.KM:
        cost = total_distance_km * tier.price
    elif rule.basis == TravelBasis.MINUTE:
        cost = Decimal(total_travel_time_mins) * tier.price
    else:
        cost = Decimal(total_travel_time_mins) / Decimal(60) * tier.price

    if rule.per_quantity:
        cost = cost * service_item.quantity

    logger.info(
        f"Travel cost calculation: {component.pricing_combination.value}, "
        f"{total_distance_km}km, {total_travel_time_mins}min, price: ${tier.price}, "
        f"quantity: {service_item.quantity} = ${cost:.2f}"
    )
    return cost


async def calculate_booking_travel(
    services: list[ServiceWithQuantity],
    addresses: list[BookingAddress],
    business: Business,
    distance_provider: DistanceProvider,
) -> TravelBreakdown:
    """
    Shared travel breakdown for a booking.

    Raises:
        NoTravelModelResolvable: mobile service but no travel model
        NoPricingTierFound: quantity outside the travel component's tiers
        DistanceProviderError: a chargeable leg could not be measured
    """
    mobile_services = [s for s in services if s.service.is_mobile]
    if not mobile_services:
        return TravelBreakdown()

    first = mobile_services[0]
    model = resolve_travel_model(first.service, business)
    segments = determine_segments(addresses, model)
    logger.info(f"Travel model {model.value}: {len(segments)} route segments")

    requests = [DistanceRequest(s.from_address, s.to_address) for s in segments]
    results = await distance_provider.get_batch_distances(requests) if requests else []

    total_distance_km = Decimal("0")
    total_travel_time_mins = 0

    for segment, result in zip(segments, results):
        if not result.ok:
            if segment.is_chargeable:
                raise DistanceProviderError(
                    f"Distance lookup failed for route {segment.from_address} → {segment.to_address}: "
                    f"{result.error_message or result.status}",
                    status=result.status,
                )
            logger.warning(
                f"Distance lookup returned {result.status} for non-chargeable route "
                f"{segment.from_address} → {segment.to_address}"
            )
            continue

        if result.distance_km == 0 and result.duration_mins == 0:
            logger.warning(f"Zero distance/duration for {segment.from_address} → {segment.to_address}")

        segment.distance_km = result.distance_km
        segment.duration_mins = result.duration_mins
        if segment.is_chargeable:
            total_distance_km += result.distance_km
            total_travel_time_mins += result.duration_mins

    total_travel_cost = calculate_travel_cost(first, total_distance_km, total_travel_time_mins)

    logger.info(
        f"Travel totals: {total_distance_km}km, {total_travel_time_mins}min, "
        f"cost ${round_whole(total_travel_cost)}"
    )

    return TravelBreakdown(
        total_distance_km=total_distance_km,
        total_travel_time_mins=total_travel_time_mins,
        total_travel_cost=round_whole(total_travel_cost),
        route_segments=segments,
    )
