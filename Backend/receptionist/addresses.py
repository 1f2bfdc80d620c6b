"""
Address parsing and the per-quote address list.

Addresses travel through the system as "line1, city, state, postcode"
strings. Missing segments are filled from an ``AddressDefaults`` locale
(Melbourne/VIC/3000/Australia unless configured otherwise).
"""

from dataclasses import dataclass
from typing import Optional

from .core.config import get_settings
from .models import AddressRole
from .quote_request import NormalizedQuoteRequest


@dataclass(frozen=True)
class AddressDefaults:
    city: str = "Melbourne"
    state: str = "VIC"
    postcode: str = "3000"
    country: str = "Australia"

    @classmethod
    def from_settings(cls) -> "AddressDefaults":
        settings = get_settings()
        return cls(
            city=settings.default_address_city,
            state=settings.default_address_state,
            postcode=settings.default_address_postcode,
            country=settings.default_address_country,
        )


@dataclass(frozen=True)
class ParsedAddress:
    address_line_1: str
    city: str
    state: str
    postcode: str
    country: str
    address_line_2: Optional[str] = None

    @property
    def route_label(self) -> str:
        """Label used for distance lookups and route segments: "line1, city"."""
        return f"{self.address_line_1}, {self.city}"


@dataclass(frozen=True)
class BookingAddress:
    """Ephemeral address for one quote; only persisted when a booking is made."""
    id: str
    address: ParsedAddress
    role: AddressRole
    sequence_order: int
    service_id: Optional[str] = None

    @property
    def is_base(self) -> bool:
        return self.role == AddressRole.BUSINESS_BASE


def parse_address_string(address: str, defaults: Optional[AddressDefaults] = None) -> ParsedAddress:
    """
    Split "line1, city, state, postcode" into parts, filling gaps from defaults.

    Examples:
        "1 Smith St, Richmond, VIC, 3121" -> ("1 Smith St", "Richmond", "VIC", "3121")
        "1 Smith St" -> ("1 Smith St", "Melbourne", "VIC", "3000")
    """
    defaults = defaults or AddressDefaults()
    parts = [p.strip() for p in address.split(",")]

    def part(index: int) -> str:
        return parts[index] if index < len(parts) else ""

    return ParsedAddress(
        address_line_1=part(0) or address,
        city=part(1) or defaults.city,
        state=part(2) or defaults.state,
        postcode=part(3) or defaults.postcode,
        country=defaults.country,
    )


def format_address_for_display(address: ParsedAddress) -> str:
    parts = [
        address.address_line_1,
        address.address_line_2,
        address.city,
        address.state,
        address.postcode,
    ]
    return ", ".join(p for p in parts if p)


def is_valid_address_string(address: str) -> bool:
    """Cheap format check: non-empty and has at least one comma-separated part."""
    return len(address.strip()) > 0 and "," in address


def build_booking_addresses(
    request: NormalizedQuoteRequest,
    business_address: str,
    service_id: Optional[str] = None,
    defaults: Optional[AddressDefaults] = None,
) -> list[BookingAddress]:
    """
    Ordered address list for a quote.

    The business base is always sequence 0, followed by pickups, dropoffs,
    the service address and any customer addresses.
    """
    addresses: list[BookingAddress] = []

    def add(address_id: str, raw: str, role: AddressRole) -> None:
        addresses.append(
            BookingAddress(
                id=address_id,
                address=parse_address_string(raw, defaults),
                role=role,
                sequence_order=len(addresses),
                service_id=service_id,
            )
        )

    add("business_base", business_address, AddressRole.BUSINESS_BASE)

    for index, raw in enumerate(request.pickup_addresses):
        add(f"pickup_{index}", raw, AddressRole.PICKUP)
    for index, raw in enumerate(request.dropoff_addresses):
        add(f"dropoff_{index}", raw, AddressRole.DROPOFF)
    if request.service_address:
        add("service", request.service_address, AddressRole.SERVICE)
    for index, raw in enumerate(request.customer_addresses):
        add(f"customer_{index}", raw, AddressRole.SERVICE)

    return addresses
