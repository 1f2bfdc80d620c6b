"""
Receptionist tool endpoints.

Each endpoint mirrors one tool the voice/chat agent calls:

    POST /businesses/{business_id}/quotes              get_quote
    GET  /businesses/{business_id}/availability        check_day_availability
    PUT  /businesses/{business_id}/availability        regenerate the slot table
    POST /businesses/{business_id}/bookings            create_booking
    POST /businesses/{business_id}/addresses/validate  validate_address

Responses use the envelope from ``core.responses``.
"""

import logging
import uuid
from datetime import date as date_type, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from . import booking_service, repository
from .address_validation import AddressValidator
from .addresses import AddressDefaults
from .availability import (
    WEEKDAY_KEYS,
    ProviderBooking,
    ProviderCalendar,
    check_day_availability,
    is_valid_date,
    is_valid_time,
    rollover_availability,
)
from .core.config import Settings, get_settings
from .core.db import get_session
from .core.responses import ErrorCodes, error_response, success_response
from .distance import GoogleDistanceMatrixClient
from .errors import BookingCalculationError
from .pricing_models import QuoteResult
from .quote_calculator import BookingCalculator
from .quote_request import QuoteRequest
from .travel_pricing import DistanceProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses/{business_id}", tags=["receptionist"])


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_distance_provider() -> DistanceProvider:
    return GoogleDistanceMatrixClient()


def get_address_defaults() -> AddressDefaults:
    return AddressDefaults.from_settings()


def get_address_validator() -> AddressValidator:
    return AddressValidator()


# ============================================================================
# REQUEST MODELS
# ============================================================================

class BookingCreateRequest(BaseModel):
    """Request body for booking a previously quoted job."""
    quote: dict = Field(..., description="Quote returned by the quotes endpoint")
    preferred_date: str = Field(..., description="Business-local date, YYYY-MM-DD")
    preferred_time: str = Field(..., description="Business-local time, HH:MM")
    service_id: Optional[str] = None
    customer_name: Optional[str] = Field(default=None, max_length=255)
    customer_phone: Optional[str] = Field(default=None, max_length=32)


class WorkingHours(BaseModel):
    start: str = Field(..., description="Business-local time, HH:MM")
    end: str = Field(..., description="Business-local time, HH:MM")


class ProviderBookingIn(BaseModel):
    start_at: datetime
    end_at: datetime


class ProviderIn(BaseModel):
    id: str
    working_hours: dict[str, Optional[WorkingHours]] = Field(
        default_factory=dict, description='Keyed by weekday: "mon" .. "sun"'
    )
    bookings: list[ProviderBookingIn] = Field(default_factory=list)

    def to_calendar(self) -> ProviderCalendar:
        return ProviderCalendar(
            id=self.id,
            working_hours={
                day: hours.model_dump() if hours else None for day, hours in self.working_hours.items()
            },
            bookings=[ProviderBooking(start_at=b.start_at, end_at=b.end_at) for b in self.bookings],
        )


class AvailabilityRefreshRequest(BaseModel):
    """Provider calendars used to regenerate the slot table."""
    providers: list[ProviderIn]
    days: Optional[int] = Field(default=None, ge=1, le=365)


class AddressValidationRequest(BaseModel):
    addresses: list[str] = Field(..., min_length=1, max_length=20)
    region_code: Optional[str] = Field(default=None, max_length=2, description="CLDR region, e.g. AU")


def _error(status_code: int, code: str, message: str, details: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response(code, message, details))


def _business_not_found(business_id: str) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, ErrorCodes.BUSINESS_NOT_FOUND, f"Business {business_id} not found")


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.post("/quotes")
async def create_quote(
    business_id: str,
    request: QuoteRequest,
    counter: int = Query(default=1, ge=1, description="Quote number within the conversation"),
    session: AsyncSession = Depends(get_session),
    distance_provider: DistanceProvider = Depends(get_distance_provider),
    address_defaults: AddressDefaults = Depends(get_address_defaults),
):
    business = await repository.get_business(session, business_id)
    if not business:
        return _business_not_found(business_id)

    if not request.service_id:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.VALIDATION_ERROR, "service_id is required")

    service = await repository.get_service(session, business.id, request.service_id)
    if not service:
        return _error(
            status.HTTP_404_NOT_FOUND, ErrorCodes.SERVICE_NOT_FOUND, f"Service {request.service_id} not found"
        )

    calculator = BookingCalculator(distance_provider, address_defaults)
    try:
        quote = await calculator.calculate_booking(request, service, business, counter)
    except BookingCalculationError as e:
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.QUOTE_CALCULATION_FAILED, e.message)

    return success_response(
        quote.to_dict(),
        f"Quote {quote.quote_id}: ${quote.total_estimate_amount} for about "
        f"{quote.total_estimate_time_in_minutes} minutes.",
    )


@router.get("/availability")
async def get_availability(
    business_id: str,
    date: str = Query(..., description="Business-local date, YYYY-MM-DD"),
    duration_minutes: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    business = await repository.get_business(session, business_id)
    if not business:
        return _business_not_found(business_id)

    if not is_valid_date(date):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.INVALID_INPUT, "Invalid date format")

    record = await repository.get_availability_record(session, business.id)
    day = check_day_availability(
        record.slots if record else {}, date, duration_minutes, settings.default_slot_duration_minutes
    )
    if not day.success:
        return _error(
            status.HTTP_404_NOT_FOUND,
            ErrorCodes.AVAILABILITY_NOT_FOUND,
            day.message or "No availability data",
            {"date": date},
        )

    return success_response(day.to_dict(), day.message)


@router.put("/availability")
async def refresh_availability(
    business_id: str,
    request: AvailabilityRefreshRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    """
    Roll the slot table forward to today in the business's time zone.

    Past dates are dropped and missing dates are generated from the provider
    calendars; dates already in the table keep their remaining capacity.
    """
    business = await repository.get_business(session, business_id)
    if not business:
        return _business_not_found(business_id)

    for provider in request.providers:
        for day, hours in provider.working_hours.items():
            if day not in WEEKDAY_KEYS or (hours and not (is_valid_time(hours.start) and is_valid_time(hours.end))):
                return _error(
                    status.HTTP_422_UNPROCESSABLE_ENTITY,
                    ErrorCodes.INVALID_INPUT,
                    f"Invalid working hours for provider {provider.id}",
                    {"day": day},
                )

    days = request.days or settings.availability_days
    today: date_type = datetime.now(ZoneInfo(business.time_zone)).date()

    record = await repository.get_availability_record(session, business.id, for_update=True)
    slots = rollover_availability(
        record.slots if record and record.slots else {},
        [provider.to_calendar() for provider in request.providers],
        today,
        days,
        business.time_zone,
    )
    await repository.save_availability_slots(session, business.id, slots)
    await session.commit()

    return success_response(
        {"business_id": str(business.id), "from_date": today.isoformat(), "days": days, "dates": sorted(slots)},
        f"Availability refreshed for {days} days",
    )


@router.post("/bookings", status_code=status.HTTP_201_CREATED)
async def create_booking(
    business_id: str,
    request: BookingCreateRequest,
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    business = await repository.get_business(session, business_id)
    if not business:
        return _business_not_found(business_id)

    try:
        quote = QuoteResult.from_dict(request.quote)
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        logger.warning(f"Invalid quote payload for business {business_id}: {e}")
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.INVALID_INPUT, "Invalid quote payload")

    service_id = None
    if request.service_id:
        try:
            service_id = uuid.UUID(request.service_id)
        except ValueError:
            return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, ErrorCodes.INVALID_INPUT, "Invalid service_id")

    result = await booking_service.create_booking(
        session,
        business,
        quote,
        request.preferred_date,
        request.preferred_time,
        service_id=service_id,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        default_duration_minutes=settings.default_slot_duration_minutes,
    )

    if result.availability_missing:
        return _error(status.HTTP_404_NOT_FOUND, ErrorCodes.AVAILABILITY_NOT_FOUND, result.message)
    if not result.success:
        return _error(status.HTTP_409_CONFLICT, ErrorCodes.SLOT_UNAVAILABLE, result.message)

    booking = result.booking
    return success_response(
        {
            "booking_id": str(booking.id),
            "quote_id": booking.quote_id,
            "status": booking.status.value,
            "start_at": booking.start_at.isoformat(),
            "end_at": booking.end_at.isoformat(),
            "total_estimate_amount": float(booking.total_estimate_amount),
            "deposit_amount": float(booking.deposit_amount),
            "remaining_balance": float(booking.remaining_balance),
        },
        result.message,
    )


@router.post("/addresses/validate")
async def validate_addresses(
    business_id: str,
    request: AddressValidationRequest,
    session: AsyncSession = Depends(get_session),
    validator: AddressValidator = Depends(get_address_validator),
):
    """Check customer addresses before they are used for a quote."""
    business = await repository.get_business(session, business_id)
    if not business:
        return _business_not_found(business_id)

    results = await validator.validate_addresses(
        [address.strip() for address in request.addresses], request.region_code
    )
    invalid = sum(1 for result in results if not result.is_valid)
    return success_response(
        {"results": [result.to_dict() for result in results]},
        f"{len(results) - invalid} of {len(results)} addresses verified",
    )
