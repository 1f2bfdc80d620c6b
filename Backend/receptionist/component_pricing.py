"""
Component Pricing Engine

Pure functions that price the non-travel components of a service.
All functions are stateless and easily testable.

Pricing Formula (per component):
    duration = lookup_duration(tier, job_scope)   if the combination uses duration
    cost = tier.price
    cost *= duration / time_multiplier            if hourly/per-minute and duration > 0
    cost *= quantity                              if per-person

Example:
    labor_per_hour_per_person, $50/hour/person, 120 minutes, 3 people
    (120 / 60) * 50 * 3 = $300

Travel components are skipped here: travel is billed once per booking by
``receptionist.travel_pricing``.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .errors import NoPricingTierFound, PricingError, UnsupportedPricingCombination
from .money import round_whole
from .pricing_models import (
    COMPONENT_RULES,
    ComponentBreakdown,
    ComponentRule,
    DurationEstimate,
    PricingComponent,
    PricingConfig,
    PricingTier,
    ServiceBreakdown,
)

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60

# Job scopes tried, in order, when the caller gives none (or an unknown one).
# Historical defaults from the removals vertical; do not extend.
FALLBACK_JOB_SCOPES = ("multiple_items", "house_move_one_room", "house_move_1_bedroom")


@dataclass
class ComponentCost:
    cost: Decimal
    duration_mins: int
    tier: PricingTier
    base_calculation: str


def resolve_tier(tiers: list[PricingTier], quantity: int, component_name: str = "") -> PricingTier:
    """
    Select the tier whose [min_quantity, max_quantity] contains quantity.

    There is no fallback tier: a miss raises NoPricingTierFound.
    """
    for tier in tiers:
        if tier.contains(quantity):
            return tier
    raise NoPricingTierFound(component_name, quantity)


def lookup_duration(duration: DurationEstimate, job_scope: Optional[str] = None) -> int:
    """
    Resolve a tier's duration estimate in minutes.

    Examples:
        lookup_duration(90) = 90
        lookup_duration({"one_item": 30, "multiple_items": 90}, "one_item") = 30
        lookup_duration({"one_item": 30, "multiple_items": 90}) = 90
        lookup_duration({"one_item": 30}) = 60
        lookup_duration(None) = 60
    """
    if isinstance(duration, bool):
        return DEFAULT_DURATION_MINUTES
    if isinstance(duration, (int, float)):
        return int(duration)
    if isinstance(duration, dict):
        if job_scope and job_scope in duration:
            logger.info(f"Using job scope duration: {job_scope} = {duration[job_scope]} minutes")
            return int(duration[job_scope])
        for key in FALLBACK_JOB_SCOPES:
            if duration.get(key):
                return int(duration[key])
    return DEFAULT_DURATION_MINUTES


def get_component_rule(component: PricingComponent) -> ComponentRule:
    rule = COMPONENT_RULES.get(component.pricing_combination)
    if rule is None:
        raise UnsupportedPricingCombination(component.pricing_combination.value)
    return rule


def _fmt(value: Decimal) -> str:
    """Format a number for a calculation string: 50 -> "50", 72.5 -> "72.50"."""
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(int(value))
    return f"{value:.2f}"


def describe_calculation(rule: ComponentRule, duration_mins: int, price: Decimal, quantity: int) -> str:
    """Human-readable calculation, e.g. "2 hours × $50/hour/person × 3 people"."""
    parts = []
    if rule.time_multiplier:
        if rule.time_multiplier == 60:
            parts.append(f"{_fmt(Decimal(duration_mins) / 60)} hours")
        else:
            parts.append(f"{duration_mins} minutes")
    parts.append(f"${_fmt(price)}/{rule.unit}")
    if rule.quantity_multiplier:
        parts.append(f"{quantity} {'person' if quantity == 1 else 'people'}")
    return " × ".join(parts)


def calculate_component_cost(
    component: PricingComponent,
    quantity: int,
    job_scope: Optional[str] = None,
) -> ComponentCost:
    """
    Price one non-travel pricing component.

    Raises:
        NoPricingTierFound: quantity is outside every tier
        UnsupportedPricingCombination: combination has no component rule
    """
    tier = resolve_tier(component.tiers, quantity, component.name)
    rule = get_component_rule(component)

    duration_mins = lookup_duration(tier.duration_estimate_mins, job_scope) if rule.uses_duration else 0

    cost = tier.price
    if rule.time_multiplier and duration_mins > 0:
        cost = cost * Decimal(duration_mins) / Decimal(rule.time_multiplier)
    if rule.quantity_multiplier:
        cost = cost * quantity

    base_calculation = describe_calculation(rule, duration_mins, tier.price, quantity)
    logger.info(f"{rule.category}: {base_calculation} = ${cost:.2f}")

    return ComponentCost(
        cost=cost,
        duration_mins=duration_mins,
        tier=tier,
        base_calculation=base_calculation,
    )


def calculate_service_cost(
    service_id: Optional[str],
    service_name: str,
    pricing_config: Optional[PricingConfig],
    quantity: int,
    job_scope: Optional[str] = None,
) -> ServiceBreakdown:
    """
    Price a service by summing its non-travel components.

    The service total is rounded half-up to whole currency units; the
    duration is the sum of the component durations.
    """
    logger.info(f"Calculating service cost for: {service_name}, quantity: {quantity}, job_scope: {job_scope}")

    if pricing_config is None:
        raise PricingError(f"Service {service_name} has no pricing configuration")

    service_cost = Decimal("0")
    estimated_duration_mins = 0
    breakdowns: list[ComponentBreakdown] = []

    for component in pricing_config.service_components:
        result = calculate_component_cost(component, quantity, job_scope)
        service_cost += result.cost
        estimated_duration_mins += result.duration_mins
        breakdowns.append(
            ComponentBreakdown(
                component_name=component.name,
                pricing_combination=component.pricing_combination,
                tier_used=result.tier,
                base_calculation=result.base_calculation,
                cost=result.cost,
                duration_mins=result.duration_mins,
            )
        )

    rounded = round_whole(service_cost)
    return ServiceBreakdown(
        service_id=service_id,
        service_name=service_name,
        quantity=quantity,
        service_cost=rounded,
        total_cost=rounded,
        estimated_duration_mins=estimated_duration_mins,
        component_breakdowns=breakdowns,
    )
