"""
Quote calculation errors.

Pricing and travel failures are fatal to a quote: the calculator never
guesses a price. Every failure raised while a quote is being built is
re-raised by the quote calculator as a single ``BookingCalculationError``.

Availability problems are NOT modelled here. They are expected,
user-facing outcomes and are returned as result values by
``receptionist.availability``.
"""

from typing import Optional


class PricingError(Exception):
    """Base class for failures that prevent a quote from being produced."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NoPricingTierFound(PricingError):
    """Requested quantity falls outside every tier of a pricing component."""

    def __init__(self, component_name: str, quantity: int):
        self.component_name = component_name
        self.quantity = quantity
        super().__init__(
            f"No pricing tier found for quantity {quantity} in component {component_name}"
        )


class UnsupportedPricingCombination(PricingError):
    """Pricing combination tag missing from the calculator dispatch tables."""

    def __init__(self, combination: str):
        self.combination = combination
        super().__init__(f"Unsupported pricing combination: {combination}")


class NoTravelModelResolvable(PricingError):
    """Mobile service whose business has no usable travel charging model."""

    def __init__(self, business_category: Optional[str]):
        self.business_category = business_category
        super().__init__(
            "Business offers mobile services but no travel model could be computed "
            f"for category: {business_category}"
        )


class DistanceProviderError(PricingError):
    """Distance lookup failed for a leg that has to be billed."""

    def __init__(self, message: str, status: str = "UNKNOWN_ERROR"):
        self.status = status
        super().__init__(message)


class BookingCalculationError(Exception):
    """Wrapped failure raised by the quote calculator."""

    def __init__(self, cause: str):
        self.cause = cause
        self.message = f"Booking calculation failed: {cause}"
        super().__init__(self.message)
