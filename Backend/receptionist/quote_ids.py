"""
Descriptive quote ids: quote-{counter}-{servicename}-{tier}

Examples:
    quote-1-removals-3person     labor_per_hour_per_person, 3 people
    quote-2-deep-team2           labor_per_hour_team_rate, team of 2
    quote-3-haircut-standard     service_per_hour, second of several tiers
    quote-4-consult-single       service_fixed_per_service, one tier
"""

import re
from typing import Optional

from .pricing_models import PricingConfig

TIER_POSITION_NAMES = ("basic", "standard", "premium", "enterprise")


def _service_slug(service_name: str) -> str:
    first_word = re.split(r"[\s\-]+", service_name.strip())[0] if service_name.strip() else ""
    return re.sub(r"[^a-z0-9]", "", first_word.lower())


def _fallback(quantity: int) -> str:
    return "single" if quantity == 1 else f"{quantity}x"


def tier_name(pricing_config: Optional[PricingConfig], quantity: int) -> str:
    """Tier descriptor from the first non-travel component's pricing combination."""
    if pricing_config is None or not pricing_config.service_components:
        return _fallback(quantity)

    primary = pricing_config.service_components[0]
    combination = primary.pricing_combination.value

    if "per_person" in combination:
        return f"{quantity}person"
    if "per_room" in combination:
        return f"{quantity}room"
    if "per_vehicle" in combination:
        return f"{quantity}vehicle"

    if "team_rate" in combination:
        return "solo" if quantity == 1 else f"team{quantity}"

    if combination.startswith("service_"):
        if len(primary.tiers) > 1:
            index = next((i for i, tier in enumerate(primary.tiers) if tier.contains(quantity)), -1)
            if 0 <= index < len(TIER_POSITION_NAMES):
                return TIER_POSITION_NAMES[index]
            return f"tier{index + 1}"
        return "single"

    return _fallback(quantity)


def generate_quote_id(counter: int, service_name: str, pricing_config: Optional[PricingConfig], quantity: int) -> str:
    return f"quote-{counter}-{_service_slug(service_name)}-{tier_name(pricing_config, quantity)}"
