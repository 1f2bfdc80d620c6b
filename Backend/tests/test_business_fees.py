"""
Tests for business_fees module.

Run with: pytest tests/test_business_fees.py -v
"""

from decimal import Decimal

from receptionist.business_fees import (
    add_gst_if_required,
    apply_minimum_charge,
    calculate_deposit,
    calculate_fees,
    calculate_gst,
)
from receptionist.models import DepositType

from factories import make_business


# ============================================================================
# GST
# ============================================================================

class TestGst:
    def test_exclusive_gst_is_added(self):
        business = make_business(charges_gst=True, gst_rate=Decimal("10"), prices_include_gst=False)

        assert calculate_gst(Decimal("150"), business) == Decimal("15")
        assert add_gst_if_required(Decimal("150"), business) == Decimal("165")

    def test_inclusive_gst_is_reported_not_added(self):
        business = make_business(charges_gst=True, gst_rate=Decimal("10"), prices_include_gst=True)

        # 110 - 110 / 1.1 = 10
        assert calculate_gst(Decimal("110"), business) == Decimal("10")
        assert add_gst_if_required(Decimal("110"), business) == Decimal("110")

    def test_gst_is_rounded_up(self):
        business = make_business(charges_gst=True, gst_rate=Decimal("10"))
        assert calculate_gst(Decimal("151"), business) == Decimal("16")

    def test_no_gst_when_not_charged(self):
        business = make_business(charges_gst=False, gst_rate=Decimal("10"))

        assert calculate_gst(Decimal("150"), business) == Decimal("0")
        assert add_gst_if_required(Decimal("150"), business) == Decimal("150")


# ============================================================================
# FEES
# ============================================================================

class TestCalculateFees:
    def test_platform_fee_always_applies(self):
        business = make_business(booking_platform_fee_percentage=Decimal("2"))

        fees = calculate_fees(Decimal("150"), business)

        assert fees.platform_fee == Decimal("3")
        assert fees.payment_processing_fee == Decimal("0")

    def test_processing_fee_only_with_deposits(self):
        without_deposit = make_business(payment_processing_fee_percentage=Decimal("1.75"))
        with_deposit = make_business(
            payment_processing_fee_percentage=Decimal("1.75"),
            charges_deposit=True,
            deposit_percentage=Decimal("20"),
        )

        assert calculate_fees(Decimal("200"), without_deposit).payment_processing_fee == Decimal("0")
        # 1.75% of 200 = 3.50 -> 4
        assert calculate_fees(Decimal("200"), with_deposit).payment_processing_fee == Decimal("4")

    def test_inclusive_gst_is_not_added(self):
        business = make_business(charges_gst=True, gst_rate=Decimal("10"), prices_include_gst=True)

        fees = calculate_fees(Decimal("110"), business)

        assert fees.gst_amount == Decimal("10")
        assert fees.gst_added == Decimal("0")

    def test_exclusive_gst_is_added(self):
        business = make_business(charges_gst=True, gst_rate=Decimal("10"))

        fees = calculate_fees(Decimal("150"), business)

        assert fees.gst_added == Decimal("15")
        assert fees.to_dict()["gst_rate"] == 10.0


# ============================================================================
# MINIMUM CHARGE
# ============================================================================

class TestMinimumCharge:
    def test_below_minimum_clamps(self):
        result = apply_minimum_charge(Decimal("168"), make_business(minimum_charge=Decimal("200")))

        assert result.final_amount == Decimal("200")
        assert result.minimum_charge_applied is True

    def test_at_minimum_is_unchanged(self):
        result = apply_minimum_charge(Decimal("200"), make_business(minimum_charge=Decimal("200")))

        assert result.final_amount == Decimal("200")
        assert result.minimum_charge_applied is False


# ============================================================================
# DEPOSIT
# ============================================================================

class TestDeposit:
    def test_no_deposit_when_not_charged(self):
        business = make_business(charges_deposit=False, deposit_percentage=Decimal("25"))
        assert calculate_deposit(Decimal("200"), business) == Decimal("0")

    def test_fixed_deposit(self):
        business = make_business(
            charges_deposit=True,
            deposit_type=DepositType.FIXED,
            deposit_fixed_amount=Decimal("50"),
        )
        assert calculate_deposit(Decimal("200"), business) == Decimal("50")

    def test_percentage_deposit(self):
        business = make_business(
            charges_deposit=True,
            deposit_type=DepositType.PERCENTAGE,
            deposit_percentage=Decimal("25"),
        )
        assert calculate_deposit(Decimal("200"), business) == Decimal("50")

    def test_percentage_deposit_rounds_to_cents(self):
        business = make_business(
            charges_deposit=True,
            deposit_type=DepositType.PERCENTAGE,
            deposit_percentage=Decimal("33"),
        )
        assert calculate_deposit(Decimal("101"), business) == Decimal("33.33")

    def test_incomplete_deposit_settings_charge_nothing(self):
        business = make_business(charges_deposit=True, deposit_type=DepositType.FIXED, deposit_fixed_amount=None)
        assert calculate_deposit(Decimal("200"), business) == Decimal("0")
