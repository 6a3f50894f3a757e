"""Unit tests for the deterministic match scorer (no DB)."""

from decimal import Decimal

import pytest

from decluttit.domain.enums import ItemCondition
from decluttit.services.match_scorer import (
    MATCH_THRESHOLD,
    MAX_SCORE,
    is_match,
    price_fits,
    score_match,
)


def _listing(**overrides):
    listing = {
        "category_id": "electronics",
        "condition": "GOOD",
        "price": Decimal("45000"),
        "location_id": "lagos",
    }
    listing.update(overrides)
    return listing


def _request(**overrides):
    request = {
        "category_id": "electronics",
        "preferred_condition": "GOOD",
        "min_price": None,
        "max_price": Decimal("50000"),
        "location_id": "lagos",
    }
    request.update(overrides)
    return request


class TestScoreMatch:
    def test_perfect_match_scores_max(self):
        result = score_match(_listing(), _request())
        assert result["score"] == MAX_SCORE == 100
        assert result["matched_criteria"] == ["category", "condition", "price", "location"]

    def test_no_overlap_scores_zero(self):
        result = score_match(
            _listing(category_id="furniture", condition="POOR", price=90000, location_id="abuja"),
            _request(),
        )
        assert result == {"score": 0, "matched_criteria": []}

    def test_criteria_are_additive(self):
        result = score_match(_listing(condition="FAIR", location_id="abuja"), _request())
        assert result["score"] == 30 + 25
        assert result["matched_criteria"] == ["category", "price"]

    def test_missing_preferred_condition_scores_no_condition_points(self):
        result = score_match(_listing(), _request(preferred_condition=None))
        assert "condition" not in result["matched_criteria"]
        assert result["score"] == 80

    def test_missing_request_location_never_matches(self):
        result = score_match(_listing(location_id=None), _request(location_id=None))
        assert "location" not in result["matched_criteria"]

    def test_enum_condition_compares_by_value(self):
        result = score_match(
            _listing(condition=ItemCondition.LIKE_NEW),
            _request(preferred_condition=ItemCondition.LIKE_NEW),
        )
        assert "condition" in result["matched_criteria"]

    def test_works_with_attribute_objects(self):
        class Row:
            def __init__(self, **kw):
                self.__dict__.update(kw)

        result = score_match(Row(**_listing()), Row(**_request()))
        assert result["score"] == 100

    def test_threshold(self):
        assert is_match({"score": MATCH_THRESHOLD})
        assert not is_match({"score": MATCH_THRESHOLD - 1})


class TestPriceFits:
    @pytest.mark.parametrize("price,low,high,expected", [
        (100, 50, 150, True),
        (50, 50, 150, True),
        (150, 50, 150, True),
        (49, 50, 150, False),
        (151, 50, 150, False),
        (100, None, 150, True),
        (100, 50, None, True),
        (10, 50, None, False),
    ])
    def test_bounds_are_inclusive(self, price, low, high, expected):
        assert price_fits(price, low, high) is expected

    def test_no_bounds_awards_nothing(self):
        assert price_fits(100) is False
