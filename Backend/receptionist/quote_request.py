"""
Quote request models.

The agent collects requirement fields in several equivalent shapes
(``pickup_address`` or ``pickup_addresses``, four ways of saying
"quantity"). ``QuoteRequest.normalize()`` is the one place those shapes
are folded into a ``NormalizedQuoteRequest``; nothing downstream looks at
the raw fields.
"""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, Field, field_validator


@dataclass(frozen=True)
class NormalizedQuoteRequest:
    quantity: int = 1
    job_scope: Optional[str] = None
    pickup_addresses: tuple[str, ...] = field(default_factory=tuple)
    dropoff_addresses: tuple[str, ...] = field(default_factory=tuple)
    service_address: Optional[str] = None
    customer_addresses: tuple[str, ...] = field(default_factory=tuple)


class QuoteRequest(BaseModel):
    """Requirement fields collected for a quote."""

    service_id: Optional[str] = Field(default=None, description="Service being quoted")

    # Quantity, first non-zero wins in this order
    quantity: Optional[int] = Field(default=None, ge=0)
    number_of_people: Optional[int] = Field(default=None, ge=0)
    number_of_rooms: Optional[int] = Field(default=None, ge=0)
    number_of_vehicles: Optional[int] = Field(default=None, ge=0)

    job_scope: Optional[str] = Field(default=None, max_length=100, description="e.g. house_move_2_bedroom")

    # Addresses, "line1, city, state, postcode"
    pickup_address: Optional[str] = Field(default=None, max_length=500)
    pickup_addresses: Optional[list[str]] = None
    dropoff_address: Optional[str] = Field(default=None, max_length=500)
    dropoff_addresses: Optional[list[str]] = None
    service_address: Optional[str] = Field(default=None, max_length=500)
    customer_addresses: Optional[list[str]] = None

    @field_validator(
        "pickup_address", "dropoff_address", "service_address", "job_scope", mode="before"
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    def resolve_quantity(self) -> int:
        return self.quantity or self.number_of_people or self.number_of_rooms or self.number_of_vehicles or 1

    def normalize(self) -> NormalizedQuoteRequest:
        # An address array (even empty) takes precedence over its singular form
        if self.pickup_addresses is not None:
            pickups = tuple(self.pickup_addresses)
        else:
            pickups = (self.pickup_address,) if self.pickup_address else ()

        if self.dropoff_addresses is not None:
            dropoffs = tuple(self.dropoff_addresses)
        else:
            dropoffs = (self.dropoff_address,) if self.dropoff_address else ()

        return NormalizedQuoteRequest(
            quantity=self.resolve_quantity(),
            job_scope=self.job_scope,
            pickup_addresses=pickups,
            dropoff_addresses=dropoffs,
            service_address=self.service_address,
            customer_addresses=tuple(self.customer_addresses or ()),
        )
