"""Unit tests for the tiered platform fee."""

from decimal import Decimal

import pytest

from decluttit.services.fee_calculator import fee_percent, platform_fee


class TestFeePercent:
    @pytest.mark.parametrize("amount,expected", [
        ("500", 10),
        ("10000", 10),
        ("10000.01", 8),
        ("50000", 8),
        ("50001", 6),
        ("100000", 6),
        ("100000.01", 5),
        ("2500000", 5),
    ])
    def test_tier_boundaries_are_exclusive(self, amount, expected):
        assert fee_percent(Decimal(amount)) == expected

    def test_accepts_int_and_str(self):
        assert fee_percent(60000) == 6
        assert fee_percent("60000") == 6

    def test_percentage_never_increases_with_amount(self):
        amounts = [Decimal(n) for n in (1, 9999, 10001, 49999, 50001, 99999, 100001, 10**7)]
        percents = [fee_percent(a) for a in amounts]
        assert percents == sorted(percents, reverse=True)


class TestPlatformFee:
    def test_sixty_thousand_pays_six_percent(self):
        assert platform_fee(Decimal("60000")) == Decimal("3600.00")

    def test_forty_five_thousand_pays_eight_percent(self):
        assert platform_fee(Decimal("45000")) == Decimal("3600.00")

    def test_small_amount_pays_ten_percent(self):
        assert platform_fee(Decimal("250")) == Decimal("25.00")

    def test_rounds_half_up_to_cents(self):
        # 10% of 0.05 is 0.005
        assert platform_fee(Decimal("0.05")) == Decimal("0.01")
        # 8% of 10000.06 is 800.0048
        assert platform_fee(Decimal("10000.06")) == Decimal("800.00")

    def test_result_has_two_decimal_places(self):
        assert platform_fee(Decimal("123.45")).as_tuple().exponent == -2
