"""
Receptionist Models

SQLAlchemy models for the businesses a receptionist answers for, the
services they sell, the bookings it creates and the per-business slot
table the availability manager maintains.

Tables:
    - businesses: Fee/deposit/GST policy, base address, time zone, travel policy
    - services: Pricing config (JSON) and location type per service
    - bookings: Confirmed bookings with their persisted price breakdown
    - booking_addresses: Route addresses re-derived from the quote at booking time
    - availability_slots: One JSON slot table per business

Booking Status Flow:
    PENDING -> CONFIRMED -> COMPLETED
    PENDING/CONFIRMED -> CANCELLED
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as PgEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .core.db import Base
from .pricing_models import PricingConfig


# ============================================================================
# ENUMS
# ============================================================================

class BusinessCategory(str, Enum):
    BEAUTY = "beauty"
    CLEANING = "cleaning"
    FITNESS = "fitness"
    HANDYMAN = "handyman"
    GARDENING = "gardening"
    TRANSPORT = "transport"
    OTHER = "other"


class DepositType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class LocationType(str, Enum):
    """Where a service is performed."""
    CUSTOMER = "customer"
    BUSINESS = "business"
    PICKUP_AND_DROPOFF = "pickup_and_dropoff"


class TravelChargingModel(str, Enum):
    """Which legs of the base -> customers -> base route a business bills for."""
    # Only between customer locations (pickup to dropoff)
    BETWEEN_CUSTOMER_LOCATIONS = "between_customer_locations"
    # Base to customers + between customers
    FROM_BASE_TO_CUSTOMERS = "from_base_to_customers"
    # Between customers + return to base
    CUSTOMERS_AND_BACK_TO_BASE = "customers_and_back_to_base"
    # Entire route (base -> customers -> base)
    FULL_ROUTE = "full_route"
    # Between customers + return to base, skipping the first base leg
    BETWEEN_CUSTOMERS_AND_BACK_TO_BASE = "between_customers_and_back_to_base"
    # From base + between customers, skipping the return leg
    FROM_BASE_AND_BETWEEN_CUSTOMERS = "from_base_and_between_customers"


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class AddressRole(str, Enum):
    BUSINESS_BASE = "BUSINESS_BASE"
    PICKUP = "PICKUP"
    DROPOFF = "DROPOFF"
    SERVICE = "SERVICE"


# ============================================================================
# BUSINESS MODEL
# ============================================================================

class Business(Base):
    """
    A service business the receptionist quotes and books for.

    Money columns are Numeric and come back as Decimal.
    """
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Base address, "line1, city, state, postcode"
    address: Mapped[str] = mapped_column(Text, nullable=False)
    time_zone: Mapped[str] = mapped_column(String(64), nullable=False, default="Australia/Melbourne")
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False, default="AUD")

    business_category: Mapped[str] = mapped_column(String(32), nullable=False, default=BusinessCategory.OTHER.value)
    number_of_providers: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Mobile / location services
    offers_mobile_services: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    offers_location_services: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_travel_charging_model: Mapped[Optional[TravelChargingModel]] = mapped_column(
        PgEnum(TravelChargingModel), nullable=True
    )

    # GST
    charges_gst: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gst_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    prices_include_gst: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Fees and minimum charge
    booking_platform_fee_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    payment_processing_fee_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0.00")
    )
    minimum_charge: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    # Deposit
    charges_deposit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_type: Mapped[DepositType] = mapped_column(
        PgEnum(DepositType), nullable=False, default=DepositType.PERCENTAGE
    )
    deposit_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    deposit_fixed_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    services: Mapped[list["Service"]] = relationship("Service", back_populates="business")


# ============================================================================
# SERVICE MODEL
# ============================================================================

class Service(Base):
    """
    A priced service.

    Business-location services never travel. Customer-location and
    pickup/dropoff services are mobile and may override the business's
    travel charging model.
    """
    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location_type: Mapped[LocationType] = mapped_column(
        PgEnum(LocationType), nullable=False, default=LocationType.BUSINESS
    )
    travel_charging_model: Mapped[Optional[TravelChargingModel]] = mapped_column(
        PgEnum(TravelChargingModel), nullable=True
    )
    pricing_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    # Requirement fields the agent may collect, e.g. ["pickup_address", "number_of_people"]
    requirement_fields: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    # Enumerated job scopes, e.g. ["one_item", "house_move_2_bedroom"]
    job_scopes: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    business: Mapped["Business"] = relationship("Business", back_populates="services")

    @property
    def is_mobile(self) -> bool:
        return self.location_type != LocationType.BUSINESS

    def get_pricing_config(self) -> Optional[PricingConfig]:
        return PricingConfig.from_dict(self.pricing_config)


# ============================================================================
# BOOKING MODELS
# ============================================================================

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("services.id", ondelete="SET NULL"), nullable=True, index=True
    )
    quote_id: Mapped[str] = mapped_column(String(128), nullable=False)

    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    status: Mapped[BookingStatus] = mapped_column(
        PgEnum(BookingStatus), nullable=False, default=BookingStatus.PENDING
    )

    total_estimate_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_estimate_time_in_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_charge_applied: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    deposit_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_breakdown: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    addresses: Mapped[list["BookingAddressRecord"]] = relationship(
        "BookingAddressRecord",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingAddressRecord.sequence_order",
    )


class BookingAddressRecord(Base):
    __tablename__ = "booking_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[AddressRole] = mapped_column(PgEnum(AddressRole), nullable=False)
    sequence_order: Mapped[int] = mapped_column(Integer, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    service_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    booking: Mapped["Booking"] = relationship("Booking", back_populates="addresses")


# ============================================================================
# AVAILABILITY MODEL
# ============================================================================

class AvailabilitySlotsRecord(Base):
    """
    Slot table for one business.

    slots format:
        {"2025-01-15": {"60": [["09:00", 2], ["10:00", 1]], "120": [...]}, ...}

    A (date, duration, time) triple is present only while its provider
    count is positive.
    """
    __tablename__ = "availability_slots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )
    slots: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
