"""Deterministic listing <-> buyer-request match scorer.

Pure-function module - NO database access.

Four additive, independent criteria:
    - Category   (30)  exact category id equality
    - Condition  (20)  listing condition equals the preferred condition
    - Price      (25)  listing price inside the request's stated bounds
    - Location   (25)  exact location id equality (no radius maths)

Inputs are plain dicts (or anything ``_get`` can read) so the scorer can be
called from the matching service, from tests, or from offline batch jobs
without touching ORM objects.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from decluttit.domain.enums import MatchCriterion

# ── Weights ──────────────────────────────────────────────────────────────────

W_CATEGORY = 30
W_CONDITION = 20
W_PRICE = 25
W_LOCATION = 25

MAX_SCORE = W_CATEGORY + W_CONDITION + W_PRICE + W_LOCATION

# Minimum score for a listing to be offered to a buyer request
MATCH_THRESHOLD = 50


# ── Helpers ──────────────────────────────────────────────────────────────────

def _get(obj: Any, key: str) -> Any:
    """Read *key* from a dict or an attribute-bearing object."""
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _as_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def price_fits(
    price: Any,
    min_price: Any = None,
    max_price: Any = None,
) -> bool:
    """Return True when *price* satisfies whichever bounds are set.

    With no bound set there is nothing to satisfy and no price points are
    awarded, so this returns False.
    """
    low = _as_decimal(min_price)
    high = _as_decimal(max_price)
    value = _as_decimal(price)
    if value is None or (low is None and high is None):
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


# ── Main scorer ──────────────────────────────────────────────────────────────

def score_match(listing: Any, request: Any) -> dict:
    """Score how well *listing* answers *request*.

    Parameters
    ----------
    listing
        Keys: category_id, condition, price, location_id.
    request
        Keys: category_id, preferred_condition, min_price, max_price,
        location_id.

    Returns
    -------
    dict
        ``score`` (int, 0-100) and ``matched_criteria`` (criterion names in
        fixed category/condition/price/location order).
    """
    score = 0
    matched: list[str] = []

    request_category = _get(request, "category_id")
    if request_category is not None and _get(listing, "category_id") == request_category:
        score += W_CATEGORY
        matched.append(MatchCriterion.CATEGORY.value)

    preferred = _enum_value(_get(request, "preferred_condition"))
    if preferred is not None and _enum_value(_get(listing, "condition")) == preferred:
        score += W_CONDITION
        matched.append(MatchCriterion.CONDITION.value)

    if price_fits(
        _get(listing, "price"),
        _get(request, "min_price"),
        _get(request, "max_price"),
    ):
        score += W_PRICE
        matched.append(MatchCriterion.PRICE.value)

    request_location = _get(request, "location_id")
    if request_location is not None and _get(listing, "location_id") == request_location:
        score += W_LOCATION
        matched.append(MatchCriterion.LOCATION.value)

    return {"score": score, "matched_criteria": matched}


def is_match(result: dict) -> bool:
    """True when a ``score_match`` result clears the request-side threshold."""
    return result["score"] >= MATCH_THRESHOLD
