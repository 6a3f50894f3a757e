"""Integration tests for candidate search and ranking."""

from datetime import datetime, timedelta, timezone

import pytest

from decluttit.domain.enums import BuyerRequestStatus, ItemCondition, ListingStatus
from decluttit.domain.errors import ConflictError, NotFoundError
from decluttit.services.matching_service import MatchingService, RequestCandidateQuery


class TestFindMatchesForRequest:
    async def test_ranks_by_score_then_recency(self, db_session, make_user, make_listing, make_request):
        buyer = await make_user()
        seller = await make_user()
        request = await make_request(buyer, preferred_condition=ItemCondition.GOOD)

        perfect = await make_listing(seller, age_minutes=30)
        other_city_old = await make_listing(seller, location_id="abuja", age_minutes=20)
        other_city_new = await make_listing(seller, location_id="abuja", age_minutes=10)

        matches = await MatchingService(db_session).find_matches_for_request(request.id)

        assert [m["listing_id"] for m in matches] == [
            perfect.id, other_city_new.id, other_city_old.id,
        ]
        assert matches[0]["score"] == 100
        assert matches[1]["score"] == 75
        assert matches[1]["matched_criteria"] == ["category", "condition", "price"]

    async def test_excludes_own_inactive_and_out_of_range_listings(
        self, db_session, make_user, make_listing, make_request,
    ):
        buyer = await make_user()
        seller = await make_user()
        request = await make_request(buyer)

        await make_listing(buyer)
        await make_listing(seller, status=ListingStatus.SOLD)
        await make_listing(seller, price="75000")
        await make_listing(seller, category_id="furniture")
        wanted = await make_listing(seller)

        matches = await MatchingService(db_session).find_matches_for_request(request.id)

        assert [m["listing_id"] for m in matches] == [wanted.id]

    async def test_drops_candidates_below_threshold(self, db_session, make_user, make_listing, make_request):
        buyer = await make_user()
        seller = await make_user()
        # Category 30 + price 25 = 55 passes, category 30 alone would not
        request = await make_request(buyer, location_id="kano")
        await make_listing(seller)

        matches = await MatchingService(db_session).find_matches_for_request(request.id)
        assert [m["score"] for m in matches] == [55]

    async def test_request_without_bounds_cannot_reach_threshold_on_category(
        self, db_session, make_user, make_listing, make_request,
    ):
        buyer = await make_user()
        seller = await make_user()
        request = await make_request(buyer, max_price=None, location_id="kano")
        await make_listing(seller)

        assert await MatchingService(db_session).find_matches_for_request(request.id) == []

    async def test_unknown_request(self, db_session):
        with pytest.raises(NotFoundError):
            await MatchingService(db_session).find_matches_for_request("missing")

    @pytest.mark.parametrize("status", [
        BuyerRequestStatus.MATCHED,
        BuyerRequestStatus.EXPIRED,
        BuyerRequestStatus.CANCELLED,
    ])
    async def test_closed_request_is_not_matched(
        self, db_session, make_user, make_listing, make_request, status,
    ):
        request = await make_request(await make_user(), status=status)
        await make_listing(await make_user())

        with pytest.raises(ConflictError):
            await MatchingService(db_session).find_matches_for_request(request.id)


class TestFindMatchesForListing:
    async def test_returns_every_candidate_without_floor(
        self, db_session, make_user, make_listing, make_request,
    ):
        seller = await make_user()
        buyer_a = await make_user()
        buyer_b = await make_user()
        listing = await make_listing(seller)

        # Matches only on category and condition: 50 points
        cheap = await make_request(
            buyer_a, preferred_condition=ItemCondition.GOOD, max_price="1000",
            location_id="abuja", age_minutes=5,
        )
        newest = await make_request(
            buyer_b, preferred_condition=ItemCondition.GOOD, min_price="90000",
            max_price="95000", location_id="kano", age_minutes=1,
        )

        matches = await MatchingService(db_session).find_matches_for_listing(listing.id)

        assert [m["request_id"] for m in matches] == [newest.id, cheap.id]
        assert all(m["score"] == 50 for m in matches)

    async def test_candidates_need_equal_category_and_condition(
        self, db_session, make_user, make_listing, make_request,
    ):
        seller = await make_user()
        buyer = await make_user()
        listing = await make_listing(seller)

        await make_request(buyer, preferred_condition=None)
        await make_request(buyer, category_id=None, preferred_condition=ItemCondition.GOOD)
        await make_request(buyer, preferred_condition=ItemCondition.NEW)
        await make_request(seller, preferred_condition=ItemCondition.GOOD)
        await make_request(
            buyer, preferred_condition=ItemCondition.GOOD, status=BuyerRequestStatus.MATCHED,
        )
        wanted = await make_request(buyer, preferred_condition=ItemCondition.GOOD)

        matches = await MatchingService(db_session).find_matches_for_listing(listing.id)

        assert [m["request_id"] for m in matches] == [wanted.id]
        assert matches[0]["score"] == 100

    async def test_expired_requests_are_skipped(self, db_session, make_user, make_listing, make_request):
        seller = await make_user()
        buyer = await make_user()
        listing = await make_listing(seller)
        now = datetime.now(timezone.utc).replace(tzinfo=None)

        await make_request(
            buyer, preferred_condition=ItemCondition.GOOD, expires_at=now - timedelta(hours=1),
        )
        live = await make_request(
            buyer, preferred_condition=ItemCondition.GOOD, expires_at=now + timedelta(days=1),
        )

        matches = await MatchingService(db_session).find_matches_for_listing(listing.id)
        assert [m["request_id"] for m in matches] == [live.id]

    async def test_unknown_listing(self, db_session):
        with pytest.raises(NotFoundError):
            await MatchingService(db_session).find_matches_for_listing("missing")


class TestRequestCandidateQuery:
    def test_built_from_listing(self):
        class FakeListing:
            seller_id = "s1"
            category_id = "electronics"
            condition = "GOOD"

        as_of = datetime(2026, 3, 1, tzinfo=timezone.utc)
        query = RequestCandidateQuery.for_listing(FakeListing(), as_of=as_of)
        assert query == RequestCandidateQuery("s1", "electronics", "GOOD", as_of)
