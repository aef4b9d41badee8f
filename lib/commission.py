"""Commission split for an attributed sale"""
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from lib.models import CommissionSplit

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
HUNDRED = Decimal("100")

# Flat fee per sale, half charged to the creator and half to the store owner
PLATFORM_FEE = Decimal("1.00")
FEE_SHARE = Decimal("0.50")


def _to_decimal(value: Union[Decimal, int, str, float]) -> Decimal:
    # str() first so floats keep their printed value, not their binary one
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_split(
    sale_amount: Union[Decimal, int, str],
    commission_rate: Union[Decimal, int, str],
) -> CommissionSplit:
    """
    Split a sale between creator, store owner and platform.

    Args:
        sale_amount: Order total in currency units, >= 0
        commission_rate: Creator's share as a percentage, 0..100

    Returns:
        CommissionSplit where creator + store owner == sale - platform fee

    Raises:
        ValueError: If the amount is negative or too large, or the rate is out of range
    """
    sale_amount = _to_decimal(sale_amount)
    commission_rate = _to_decimal(commission_rate)

    if sale_amount < 0:
        raise ValueError(f"Sale amount must be >= 0, got {sale_amount}")
    if not 0 <= commission_rate <= HUNDRED:
        raise ValueError(f"Commission rate must be within 0..100, got {commission_rate}")

    try:
        commission_amount = (sale_amount * commission_rate / HUNDRED).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
    except InvalidOperation as e:
        raise ValueError(f"Sale amount {sale_amount} is too large to split") from e
    creator_earnings = commission_amount - FEE_SHARE
    store_owner_earnings = sale_amount - commission_amount - FEE_SHARE

    if creator_earnings < 0:
        logger.warning(
            f"Commission {commission_amount} below fee share; "
            f"creator earnings negative ({creator_earnings})"
        )

    return CommissionSplit(
        sale_amount=sale_amount,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        platform_fee=PLATFORM_FEE,
        creator_earnings=creator_earnings,
        store_owner_earnings=store_owner_earnings,
    )
