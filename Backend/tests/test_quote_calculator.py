"""
Tests for the quote calculator (end-to-end pricing of one service).

Run with: pytest tests/test_quote_calculator.py -v
"""

import pytest
from decimal import Decimal

from receptionist.distance import DistanceRequest
from receptionist.errors import BookingCalculationError, DistanceProviderError, NoPricingTierFound
from receptionist.models import DepositType, LocationType
from receptionist.pricing_models import QuoteResult
from receptionist.quote_calculator import BookingCalculator
from receptionist.quote_request import NormalizedQuoteRequest, QuoteRequest

from factories import (
    DROPOFF,
    PICKUP,
    FakeDistanceProvider,
    component,
    fixed_price_config,
    labour_per_person_config,
    make_business,
    make_service,
    tier,
)


def removal_request(people: int = 2) -> QuoteRequest:
    return QuoteRequest(number_of_people=people, pickup_address=PICKUP, dropoff_address=DROPOFF)


def removals_service(business):
    travel = component("Travel", "travel_per_km", [tier(1, 10, 2)])
    return make_service(business, pricing_config=labour_per_person_config(price=50, duration=120, travel=travel))


# ============================================================================
# MINIMUM CHARGE SCENARIO
# ============================================================================

class TestMinimumChargeScenario:
    """$150 subtotal, GST 10% exclusive, 2% platform fee, $200 minimum charge."""

    @pytest.fixture
    def business(self):
        return make_business(
            charges_gst=True,
            gst_rate=Decimal("10"),
            prices_include_gst=False,
            booking_platform_fee_percentage=Decimal("2"),
            minimum_charge=Decimal("200"),
            charges_deposit=True,
            deposit_type=DepositType.PERCENTAGE,
            deposit_percentage=Decimal("25"),
        )

    @pytest.mark.asyncio
    async def test_total_clamps_to_minimum_charge(self, business, distance_provider):
        service = make_service(
            business, name="Consult", location_type=LocationType.BUSINESS, pricing_config=fixed_price_config(150)
        )

        quote = await BookingCalculator(distance_provider).calculate_booking(QuoteRequest(), service, business)

        fees = quote.price_breakdown.business_fees
        assert fees.gst_amount == Decimal("15")
        assert fees.platform_fee == Decimal("3")
        assert quote.price_breakdown.total_before_minimum_charge() == Decimal("168")
        assert quote.total_estimate_amount == Decimal("200")
        assert quote.minimum_charge_applied is True

    @pytest.mark.asyncio
    async def test_deposit_uses_post_minimum_total(self, business, distance_provider):
        service = make_service(
            business, name="Consult", location_type=LocationType.BUSINESS, pricing_config=fixed_price_config(150)
        )

        quote = await BookingCalculator(distance_provider).calculate_booking(QuoteRequest(), service, business)

        assert quote.deposit_amount == Decimal("50.00")
        assert quote.remaining_balance == quote.total_estimate_amount
        assert quote.deposit_paid is False

    @pytest.mark.asyncio
    async def test_business_location_service_makes_no_distance_calls(self, business, distance_provider):
        service = make_service(business, location_type=LocationType.BUSINESS, pricing_config=fixed_price_config(150))

        quote = await BookingCalculator(distance_provider).calculate_booking(QuoteRequest(), service, business)

        assert distance_provider.calls == []
        assert quote.price_breakdown.travel_breakdown.total_travel_cost == Decimal("0")


# ============================================================================
# FULL REMOVALS QUOTE
# ============================================================================

class TestRemovalsQuote:
    @pytest.fixture
    def business(self):
        return make_business(
            charges_gst=True,
            gst_rate=Decimal("10"),
            booking_platform_fee_percentage=Decimal("2"),
            payment_processing_fee_percentage=Decimal("1.75"),
            charges_deposit=True,
            deposit_type=DepositType.PERCENTAGE,
            deposit_percentage=Decimal("25"),
        )

    @pytest.mark.asyncio
    async def test_quote_total_is_reproducible_from_breakdown(self, business, distance_provider):
        service = removals_service(business)

        quote = await BookingCalculator(distance_provider).calculate_booking(removal_request(2), service, business)

        breakdown = quote.price_breakdown
        assert breakdown.service_breakdowns[0].total_cost == Decimal("200")
        assert breakdown.travel_breakdown.total_travel_cost == Decimal("20")
        # 220 + GST 22 + platform 5 (4.40 rounded up) + processing 4 (3.85 rounded up)
        assert quote.total_estimate_amount == Decimal("251")
        assert breakdown.total_before_minimum_charge() == quote.total_estimate_amount
        assert quote.minimum_charge_applied is False

    @pytest.mark.asyncio
    async def test_duration_includes_travel_time(self, business, distance_provider):
        service = removals_service(business)

        quote = await BookingCalculator(distance_provider).calculate_booking(removal_request(2), service, business)

        assert quote.total_estimate_time_in_minutes == 120 + 15

    @pytest.mark.asyncio
    async def test_percentage_deposit(self, business, distance_provider):
        service = removals_service(business)

        quote = await BookingCalculator(distance_provider).calculate_booking(removal_request(2), service, business)

        assert quote.deposit_amount == Decimal("62.75")
        assert quote.remaining_balance == Decimal("251")

    @pytest.mark.asyncio
    async def test_quote_id(self, business, distance_provider):
        service = removals_service(business)

        quote = await BookingCalculator(distance_provider).calculate_booking(
            removal_request(3), service, business, quote_counter=4
        )

        assert quote.quote_id == "quote-4-removals-3person"

    @pytest.mark.asyncio
    async def test_accepts_normalized_request(self, business, distance_provider):
        service = removals_service(business)
        request = NormalizedQuoteRequest(quantity=2, pickup_addresses=(PICKUP,), dropoff_addresses=(DROPOFF,))

        quote = await BookingCalculator(distance_provider).calculate_booking(request, service, business)

        assert quote.total_estimate_amount == Decimal("251")

    @pytest.mark.asyncio
    async def test_distance_requests_use_route_labels(self, business, distance_provider):
        service = removals_service(business)

        await BookingCalculator(distance_provider).calculate_booking(removal_request(2), service, business)

        assert distance_provider.calls == [[DistanceRequest(PICKUP, DROPOFF)]]

    @pytest.mark.asyncio
    async def test_to_dict_round_trips_through_from_dict(self, business, distance_provider):
        service = removals_service(business)

        quote = await BookingCalculator(distance_provider).calculate_booking(removal_request(2), service, business)
        data = quote.to_dict()

        assert data["total_estimate_amount"] == 251.0
        assert QuoteResult.from_dict(data).price_breakdown.total_before_minimum_charge() == Decimal("251")


# ============================================================================
# FAILURES
# ============================================================================

class TestQuoteFailures:
    @pytest.mark.asyncio
    async def test_tier_miss_is_wrapped(self, business, distance_provider):
        service = make_service(business, location_type=LocationType.BUSINESS, pricing_config=labour_per_person_config())

        with pytest.raises(BookingCalculationError) as exc_info:
            await BookingCalculator(distance_provider).calculate_booking(
                QuoteRequest(number_of_people=11), service, business
            )

        assert exc_info.value.message == (
            "Booking calculation failed: No pricing tier found for quantity 11 in component Labour"
        )
        assert isinstance(exc_info.value.__cause__, NoPricingTierFound)

    @pytest.mark.asyncio
    async def test_distance_failure_is_wrapped(self, business):
        service = removals_service(business)
        provider = FakeDistanceProvider(failures={(PICKUP, DROPOFF): "ZERO_RESULTS"})

        with pytest.raises(BookingCalculationError) as exc_info:
            await BookingCalculator(provider).calculate_booking(removal_request(2), service, business)

        assert isinstance(exc_info.value.__cause__, DistanceProviderError)

    @pytest.mark.asyncio
    async def test_missing_pricing_config_is_wrapped(self, business, distance_provider):
        service = make_service(business, location_type=LocationType.BUSINESS, pricing_config=None)

        with pytest.raises(BookingCalculationError):
            await BookingCalculator(distance_provider).calculate_booking(QuoteRequest(), service, business)
