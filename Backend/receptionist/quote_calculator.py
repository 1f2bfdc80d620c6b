"""
Quote Calculator

Orchestrates the pricing engines into a single auditable quote. The order
of the steps is part of the contract:

    1. quantity        first of quantity / number_of_people / number_of_rooms /
                       number_of_vehicles, default 1
    2. addresses       business base (sequence 0), pickups, dropoffs, service,
                       customer addresses
    3. travel          shared across the booking (travel_pricing)
    4. service cost    non-travel components (component_pricing)
    5. subtotal        round(service) + round(travel)
    6. fees            GST added if prices exclude it, + platform + processing
    7. minimum charge
    8. deposit         on the post-minimum total; remaining_balance = total
    9. quote id

Any failure is raised as one BookingCalculationError; no partial quote is
ever returned.
"""

import logging
from typing import Optional

from .addresses import AddressDefaults, build_booking_addresses
from .business_fees import add_gst_if_required, apply_minimum_charge, calculate_deposit, calculate_fees
from .component_pricing import calculate_service_cost
from .errors import BookingCalculationError
from .models import Business, Service
from .money import round_whole
from .pricing_models import PriceBreakdown, QuoteResult
from .quote_ids import generate_quote_id
from .quote_request import NormalizedQuoteRequest, QuoteRequest
from .travel_pricing import DistanceProvider, ServiceWithQuantity, calculate_booking_travel

logger = logging.getLogger(__name__)


class BookingCalculator:
    """
    Stateless quote orchestrator.

    The distance provider and address locale are injected; one calculator
    can serve concurrent quote requests.
    """

    def __init__(self, distance_provider: DistanceProvider, address_defaults: Optional[AddressDefaults] = None):
        self.distance_provider = distance_provider
        self.address_defaults = address_defaults or AddressDefaults()

    async def calculate_booking(
        self,
        request: QuoteRequest | NormalizedQuoteRequest,
        service: Service,
        business: Business,
        quote_counter: int = 1,
    ) -> QuoteResult:
        try:
            return await self._calculate(request, service, business, quote_counter)
        except Exception as e:
            logger.error(f"Quote calculation failed for service {service.name}: {e}")
            raise BookingCalculationError(getattr(e, "message", None) or str(e) or type(e).__name__) from e

    async def _calculate(
        self,
        request: QuoteRequest | NormalizedQuoteRequest,
        service: Service,
        business: Business,
        quote_counter: int,
    ) -> QuoteResult:
        normalized = request.normalize() if isinstance(request, QuoteRequest) else request
        quantity = normalized.quantity
        service_id = str(service.id) if service.id is not None else None
        pricing_config = service.get_pricing_config()

        addresses = build_booking_addresses(normalized, business.address, service_id, self.address_defaults)
        service_item = ServiceWithQuantity(service=service, quantity=quantity)

        # Step 1: shared travel for the whole booking
        travel_breakdown = await calculate_booking_travel(
            [service_item], addresses, business, self.distance_provider
        )

        # Step 2: service cost (travel components excluded)
        service_breakdown = calculate_service_cost(
            service_id, service.name, pricing_config, quantity, normalized.job_scope
        )

        # Step 3: subtotal
        subtotal = round_whole(service_breakdown.total_cost) + round_whole(travel_breakdown.total_travel_cost)

        # Step 4: fees on the pre-fee subtotal
        business_fees = calculate_fees(subtotal, business)
        total = add_gst_if_required(subtotal, business)
        total += round_whole(business_fees.platform_fee) + round_whole(business_fees.payment_processing_fee)

        # Step 5: minimum charge
        minimum = apply_minimum_charge(total, business)
        total = round_whole(minimum.final_amount)

        # Step 6: deposit
        deposit_amount = calculate_deposit(total, business)

        quote_id = generate_quote_id(quote_counter, service.name, pricing_config, quantity)
        total_time = service_breakdown.estimated_duration_mins + travel_breakdown.total_travel_time_mins

        logger.info(
            f"Quote {quote_id}: service ${service_breakdown.total_cost} + travel "
            f"${travel_breakdown.total_travel_cost} -> total ${total}, {total_time} min, deposit ${deposit_amount}"
        )

        return QuoteResult(
            quote_id=quote_id,
            total_estimate_amount=total,
            total_estimate_time_in_minutes=total_time,
            minimum_charge_applied=minimum.minimum_charge_applied,
            deposit_amount=deposit_amount,
            remaining_balance=total,
            deposit_paid=False,
            price_breakdown=PriceBreakdown(
                service_breakdowns=[service_breakdown],
                travel_breakdown=travel_breakdown,
                business_fees=business_fees,
            ),
        )
