"""
Booking Creation Service

Turns a selected quote plus a requested date/time into a confirmed booking:

    1. validate the date/time and that the slot is still free for the
       quote's duration
    2. convert business-local date/time to UTC start_at / end_at
    3. build the Booking (CONFIRMED, deposit unpaid, remaining balance = total)
       with addresses re-derived from the quote's route segments
    4. remove the booked capacity from the slot table

``create_booking_from_quote`` is pure. ``create_booking`` wraps it in one
database transaction, holding the business's availability row with
SELECT ... FOR UPDATE so two callers cannot take the same last slot.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from . import repository
from .availability import (
    DEFAULT_DURATION_MINUTES,
    SlotTable,
    is_slot_available,
    update_availability_after_booking,
)
from .models import AddressRole, Booking, BookingAddressRecord, BookingStatus, Business
from .pricing_models import QuoteResult, RouteSegment

logger = logging.getLogger(__name__)

NO_AVAILABILITY_MESSAGE = "Sorry, we don't have availability data. Please contact us directly."


@dataclass
class BookingResult:
    """Availability problems come back as success=False with a message for the caller."""
    success: bool
    message: str
    booking: Optional[Booking] = None
    updated_slots: Optional[SlotTable] = None
    availability_missing: bool = False


def calculate_booking_timestamps(
    date_str: str,
    time_str: str,
    duration_minutes: int,
    time_zone: str,
) -> tuple[datetime, datetime]:
    """
    UTC start/end for a business-local date and time.

    Example:
        ("2025-01-15", "10:00", 120, "Australia/Melbourne")
        -> (2025-01-14 23:00 UTC, 2025-01-15 01:00 UTC)
    """
    local_start = datetime.combine(
        date.fromisoformat(date_str), time.fromisoformat(time_str), tzinfo=ZoneInfo(time_zone)
    )
    start_at = local_start.astimezone(timezone.utc)
    return start_at, start_at + timedelta(minutes=duration_minutes)


def addresses_from_route_segments(segments: list[RouteSegment]) -> list[BookingAddressRecord]:
    """
    Distinct route addresses in travel order.

    The base end of base_to_customer / customer_to_base legs is the business
    base; everything else is a service address.
    """
    roles: dict[str, AddressRole] = {}
    for segment in segments:
        for address, is_base in (
            (segment.from_address, segment.segment_type == "base_to_customer"),
            (segment.to_address, segment.segment_type == "customer_to_base"),
        ):
            if not address:
                continue
            if address not in roles:
                roles[address] = AddressRole.SERVICE
            if is_base:
                roles[address] = AddressRole.BUSINESS_BASE

    return [
        BookingAddressRecord(role=role, sequence_order=index, address=address)
        for index, (address, role) in enumerate(roles.items())
    ]


def build_booking(
    quote: QuoteResult,
    business: Business,
    preferred_date: str,
    preferred_time: str,
    service_id: Optional[uuid.UUID] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
) -> Booking:
    start_at, end_at = calculate_booking_timestamps(
        preferred_date, preferred_time, quote.total_estimate_time_in_minutes, business.time_zone
    )
    booking = Booking(
        id=uuid.uuid4(),
        business_id=business.id,
        service_id=service_id,
        quote_id=quote.quote_id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        start_at=start_at,
        end_at=end_at,
        status=BookingStatus.CONFIRMED,
        total_estimate_amount=quote.total_estimate_amount,
        total_estimate_time_in_minutes=quote.total_estimate_time_in_minutes,
        minimum_charge_applied=quote.minimum_charge_applied,
        deposit_amount=quote.deposit_amount,
        deposit_paid=False,
        remaining_balance=quote.total_estimate_amount,
        price_breakdown=quote.price_breakdown.to_dict(),
    )
    booking.addresses = addresses_from_route_segments(quote.price_breakdown.travel_breakdown.route_segments)
    return booking


def create_booking_from_quote(
    slots: SlotTable,
    quote: QuoteResult,
    business: Business,
    preferred_date: str,
    preferred_time: str,
    service_id: Optional[uuid.UUID] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> BookingResult:
    """Validate the slot, build the booking and compute the updated slot table."""
    check = is_slot_available(
        slots, preferred_date, preferred_time, quote.total_estimate_time_in_minutes, default_duration_minutes
    )
    if not check.available:
        logger.info(f"Slot {preferred_date} {preferred_time} unavailable for quote {quote.quote_id}")
        return BookingResult(success=False, message=check.message)

    booking = build_booking(
        quote, business, preferred_date, preferred_time, service_id, customer_name, customer_phone
    )
    updated_slots = update_availability_after_booking(slots, booking, business.time_zone)

    logger.info(f"Booking {booking.id} confirmed for {preferred_date} {preferred_time} (quote {quote.quote_id})")
    return BookingResult(
        success=True,
        message=f"Your booking is confirmed for {preferred_date} at {preferred_time}.",
        booking=booking,
        updated_slots=updated_slots,
    )


async def create_booking(
    session: AsyncSession,
    business: Business,
    quote: QuoteResult,
    preferred_date: str,
    preferred_time: str,
    service_id: Optional[uuid.UUID] = None,
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
    default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> BookingResult:
    """Create and persist a booking and the reduced availability in one transaction."""
    record = await repository.get_availability_record(session, business.id, for_update=True)
    if record is None:
        await session.rollback()
        return BookingResult(success=False, message=NO_AVAILABILITY_MESSAGE, availability_missing=True)

    result = create_booking_from_quote(
        record.slots or {},
        quote,
        business,
        preferred_date,
        preferred_time,
        service_id,
        customer_name,
        customer_phone,
        default_duration_minutes,
    )
    if not result.success:
        await session.rollback()
        return result

    session.add(result.booking)
    record.slots = result.updated_slots
    await session.commit()
    return result
