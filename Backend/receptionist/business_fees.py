"""
Business Fees Engine

Pure functions applying a business's fee policy to a quote subtotal.

Fee Formulas:
    GST (prices include GST):  gst = amount - amount / (1 + rate/100)   (reported only)
    GST (prices exclude GST):  gst = amount * rate/100                  (added to the total)
    platform fee:              amount * platform%/100                   (always)
    processing fee:            amount * processing%/100                 (only when deposits are charged)

Fee line items are rounded UP to whole currency units. Deposits are rounded
half-up to cents.

Example:
    subtotal $150, GST 10% exclusive, platform 2%, minimum charge $200
    150 + 15 + 3 = $168 -> below minimum -> $200 (minimum_charge_applied)
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .models import Business, DepositType
from .money import ceil_whole, round_cents, to_decimal
from .pricing_models import BusinessFeeBreakdown

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass
class MinimumChargeResult:
    final_amount: Decimal
    minimum_charge_applied: bool


def _gst_rate(business: Business) -> Decimal:
    return to_decimal(business.gst_rate) if business.charges_gst else Decimal("0")


def calculate_gst(amount: Decimal, business: Business) -> Decimal:
    """GST component of amount (inclusive) or GST to add on top (exclusive), rounded up."""
    rate = _gst_rate(business)
    if not rate:
        return Decimal("0")
    amount = to_decimal(amount)
    if business.prices_include_gst:
        gst = amount - amount / (1 + rate / HUNDRED)
    else:
        gst = amount * rate / HUNDRED
    return ceil_whole(gst)


def calculate_fees(amount: Decimal, business: Business) -> BusinessFeeBreakdown:
    """
    Fee breakdown for a pre-fee subtotal.

    GST is always reported; whether it is added to the total depends on
    ``prices_include_gst`` (see ``BusinessFeeBreakdown.gst_added``).
    """
    amount = to_decimal(amount)

    platform_pct = to_decimal(business.booking_platform_fee_percentage)
    processing_pct = to_decimal(business.payment_processing_fee_percentage)

    platform_fee = ceil_whole(amount * platform_pct / HUNDRED)
    processing_fee = (
        ceil_whole(amount * processing_pct / HUNDRED) if business.charges_deposit else Decimal("0")
    )

    return BusinessFeeBreakdown(
        gst_rate=_gst_rate(business),
        gst_amount=calculate_gst(amount, business),
        gst_included_in_prices=bool(business.prices_include_gst),
        platform_fee_percentage=platform_pct,
        platform_fee=platform_fee,
        payment_processing_fee_percentage=processing_pct,
        payment_processing_fee=processing_fee,
    )


def add_gst_if_required(amount: Decimal, business: Business) -> Decimal:
    """amount + GST when the business charges GST on top of its prices."""
    amount = to_decimal(amount)
    if business.charges_gst and not business.prices_include_gst and business.gst_rate:
        gst = calculate_gst(amount, business)
        logger.info(f"Adding GST: ${gst} (prices are GST-exclusive)")
        return amount + gst
    return amount


def apply_minimum_charge(amount: Decimal, business: Business) -> MinimumChargeResult:
    amount = to_decimal(amount)
    minimum = to_decimal(business.minimum_charge)
    if amount < minimum:
        logger.info(f"Minimum charge applied: ${amount} -> ${minimum}")
        return MinimumChargeResult(final_amount=minimum, minimum_charge_applied=True)
    return MinimumChargeResult(final_amount=amount, minimum_charge_applied=False)


def calculate_deposit(total_amount: Decimal, business: Business) -> Decimal:
    """
    Deposit owed on the final (post-minimum-charge) total.

    FIXED -> deposit_fixed_amount, PERCENTAGE -> percentage of total,
    no deposit (or incomplete deposit settings) -> 0.
    """
    if not business.charges_deposit:
        return Decimal("0")

    deposit_type = DepositType(business.deposit_type) if business.deposit_type else None

    if deposit_type == DepositType.FIXED and business.deposit_fixed_amount:
        return round_cents(business.deposit_fixed_amount)

    if deposit_type == DepositType.PERCENTAGE and business.deposit_percentage:
        deposit = round_cents(to_decimal(total_amount) * to_decimal(business.deposit_percentage) / HUNDRED)
        logger.info(f"Percentage deposit: {business.deposit_percentage}% of ${total_amount} = ${deposit}")
        return deposit

    logger.warning(f"Business {business.id} charges deposits but has no valid deposit configuration")
    return Decimal("0")
