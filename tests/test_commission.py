"""Commission split arithmetic"""
from decimal import Decimal

import pytest

from lib.commission import PLATFORM_FEE, compute_split


def test_reference_split():
    split = compute_split(Decimal("100"), Decimal("20"))

    assert split.commission_amount == Decimal("20.00")
    assert split.platform_fee == Decimal("1.00")
    assert split.creator_earnings == Decimal("19.50")
    assert split.store_owner_earnings == Decimal("79.50")
    assert split.creator_earnings + split.store_owner_earnings == Decimal("99.00")


@pytest.mark.parametrize("sale_amount, rate", [
    ("0.00", "20"),
    ("19.99", "15"),
    ("10.05", "12.5"),
    ("1234.56", "33.33"),
    ("0.10", "100"),
])
def test_fee_split_evenly_between_parties(sale_amount, rate):
    split = compute_split(sale_amount, rate)
    assert split.creator_earnings + split.store_owner_earnings == split.sale_amount - PLATFORM_FEE


def test_commission_rounded_half_up_to_cents():
    # 10.05 * 15% = 1.5075
    split = compute_split("10.05", "15")
    assert split.commission_amount == Decimal("1.51")
    assert split.creator_earnings == Decimal("1.01")
    assert split.store_owner_earnings == Decimal("8.04")


def test_float_input_uses_printed_value():
    split = compute_split(19.99, 15)
    assert split.sale_amount == Decimal("19.99")
    assert split.commission_amount == Decimal("3.00")


def test_small_sale_gives_negative_creator_earnings():
    split = compute_split("1.00", "20")
    assert split.commission_amount == Decimal("0.20")
    assert split.creator_earnings == Decimal("-0.30")


def test_negative_sale_rejected():
    with pytest.raises(ValueError):
        compute_split("-5.00", "20")


@pytest.mark.parametrize("rate", ["-1", "100.01", "250"])
def test_out_of_range_rate_rejected(rate):
    with pytest.raises(ValueError):
        compute_split("50.00", rate)


def test_amount_beyond_decimal_precision_rejected():
    with pytest.raises(ValueError, match="too large"):
        compute_split("1e30", "20")
