"""
Tests for quote request normalisation.

Run with: pytest tests/test_quote_request.py -v
"""

import pytest
from pydantic import ValidationError

from receptionist.quote_request import QuoteRequest


class TestResolveQuantity:
    def test_defaults_to_one(self):
        assert QuoteRequest().normalize().quantity == 1

    def test_quantity_wins(self):
        assert QuoteRequest(quantity=2, number_of_people=5).normalize().quantity == 2

    def test_people_then_rooms_then_vehicles(self):
        assert QuoteRequest(number_of_people=3, number_of_rooms=4).normalize().quantity == 3
        assert QuoteRequest(number_of_rooms=4, number_of_vehicles=2).normalize().quantity == 4
        assert QuoteRequest(number_of_vehicles=2).normalize().quantity == 2

    def test_zero_falls_through(self):
        assert QuoteRequest(quantity=0, number_of_people=3).normalize().quantity == 3

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValidationError):
            QuoteRequest(number_of_people=-1)


class TestNormalizeAddresses:
    def test_singular_address_becomes_tuple(self):
        normalized = QuoteRequest(pickup_address="1 Smith St", dropoff_address="5 Jones Rd").normalize()

        assert normalized.pickup_addresses == ("1 Smith St",)
        assert normalized.dropoff_addresses == ("5 Jones Rd",)

    def test_array_takes_precedence(self):
        normalized = QuoteRequest(
            pickup_address="ignored",
            pickup_addresses=["1 Smith St", "2 High St"],
        ).normalize()

        assert normalized.pickup_addresses == ("1 Smith St", "2 High St")

    def test_blank_address_is_dropped(self):
        normalized = QuoteRequest(pickup_address="   ", service_address=" 7 Park Ave ").normalize()

        assert normalized.pickup_addresses == ()
        assert normalized.service_address == "7 Park Ave"

    def test_job_scope_is_carried(self):
        assert QuoteRequest(job_scope="house_move_2_bedroom").normalize().job_scope == "house_move_2_bedroom"

    def test_fields_outside_the_quote_are_ignored(self):
        request = QuoteRequest(number_of_people=2, special_requirements="piano", preferred_datetime="tomorrow")

        assert "special_requirements" not in request.model_dump()
        assert request.normalize().quantity == 2
