"""
Fee Split Calculator

Turns a gross ticket price into the amounts owed to the gateway, the
platform, the commission and the creator.

Formulas (all amounts in minor units, rounding half-up):
- processing_fee = round(gross * percent_fee / 100) + fixed_fee
- commission_fee = round(gross * commission_rate)
- platform_fee   = round(gross * platform_fee_rate)
- net_payout     = gross - (processing_fee + commission_fee + platform_fee), floored at 0

Rounding slack lands in net_payout. When fees overshoot gross, the overshoot
is trimmed from platform_fee, then commission_fee, then processing_fee, so
the split always sums to gross.

Every function here is pure: no clock, no randomness, no I/O.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Mapping

from .exceptions import InvalidAmount
from .models import CommissionTier, CustomerCharge, FeeSplit, GatewayFeeSchedule

_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _as_decimal(value: Decimal | float | int | str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.015 as 0.015 instead of its binary expansion
    return Decimal(str(value))


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(_ONE, rounding=ROUND_HALF_UP))


def _validate_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer in minor units, got {amount!r}")
    if amount <= 0:
        raise InvalidAmount(f"Amount must be positive, got {amount}")


def processing_fee_for(gross_amount: int, gateway: GatewayFeeSchedule) -> int:
    """Gateway fee for one transaction of gross_amount."""
    percent = _as_decimal(gateway.percent_fee) / _HUNDRED
    return _round_half_up(Decimal(gross_amount) * percent) + gateway.fixed_fee


def rate_of(gross_amount: int, rate: Decimal | float | str) -> int:
    """gross_amount * rate, rounded half-up to a whole minor unit."""
    return _round_half_up(Decimal(gross_amount) * _as_decimal(rate))


def commission_rate_for(
    tier: CommissionTier,
    rates: Mapping[str, Decimal | float],
    custom_rate: Decimal | float | None = None,
) -> Decimal:
    """Resolve the commission rate for a tier, falling back to the Free tier."""
    if tier == "Custom" and custom_rate is not None:
        return _as_decimal(custom_rate)
    if tier in rates:
        return _as_decimal(rates[tier])
    return _as_decimal(rates["Free"])


def compute_split(
    gross_amount: int,
    gateway: GatewayFeeSchedule,
    commission_rate: Decimal | float | str,
    platform_fee_rate: Decimal | float | str,
) -> FeeSplit:
    """Compute the fee split for one sale.

    Args:
        gross_amount: Ticket price in minor units, must be > 0
        gateway: Fee schedule of the gateway that processed the sale
        commission_rate: Commission as a fraction, e.g. 0.05
        platform_fee_rate: Platform fee as a fraction, e.g. 0.01

    Returns:
        FeeSplit whose components sum exactly to gross_amount

    Raises:
        InvalidAmount: If gross_amount is not a positive integer
    """
    _validate_amount(gross_amount)

    processing_fee = processing_fee_for(gross_amount, gateway)
    commission_fee = rate_of(gross_amount, commission_rate)
    platform_fee = rate_of(gross_amount, platform_fee_rate)

    overshoot = processing_fee + commission_fee + platform_fee - gross_amount
    if overshoot > 0:
        trimmed = min(platform_fee, overshoot)
        platform_fee -= trimmed
        overshoot -= trimmed

        trimmed = min(commission_fee, overshoot)
        commission_fee -= trimmed
        overshoot -= trimmed

        processing_fee -= overshoot

    net_payout = gross_amount - (processing_fee + commission_fee + platform_fee)

    return FeeSplit(
        gross_amount=gross_amount,
        processing_fee=processing_fee,
        platform_fee=platform_fee,
        commission_fee=commission_fee,
        net_payout=net_payout,
        gateway_id=gateway.id,
    )


def compute_customer_total(
    base_price: int,
    gateway: GatewayFeeSchedule,
    platform_fee_rate: Decimal | float | str,
    pass_fees_to_customer: bool = True,
    currency: str = "GHS",
) -> CustomerCharge:
    """Compute what the buyer is charged for a ticket.

    When fees are passed through, the buyer pays base + processing + platform
    fee. Otherwise the buyer pays the base price and the fees come out of the
    creator's split.
    """
    _validate_amount(base_price)

    processing_fee = processing_fee_for(base_price, gateway)
    platform_fee = rate_of(base_price, platform_fee_rate)
    total = base_price + processing_fee + platform_fee if pass_fees_to_customer else base_price

    return CustomerCharge(
        base_price=base_price,
        processing_fee=processing_fee,
        platform_fee=platform_fee,
        total_amount=total,
        currency=currency,
        gateway_id=gateway.id,
        fees_passed_to_customer=pass_fees_to_customer,
    )


def format_currency(amount: int, currency: str = "GHS") -> str:
    """Render a minor-unit amount as major units, e.g. 4625 -> 'GHS 46.25'."""
    major = (Decimal(amount) / _HUNDRED).quantize(Decimal("0.01"))
    return f"{currency} {major:,.2f}"
