"""Matching service: candidate search around the pure match scorer.

Candidate filters are explicit query structs, one per search direction, so
the SQL pre-filter and the scoring rules can be read side by side.

Request -> listings: only listings scoring at least MATCH_THRESHOLD are
returned, ranked by score with newer listings first on ties.

Listing -> requests: every candidate request is returned with its score
and no threshold, newest request first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.enums import BuyerRequestStatus, ListingStatus
from decluttit.domain.errors import ConflictError, NotFoundError
from decluttit.domain.models import BuyerRequest, Listing
from decluttit.services.match_scorer import is_match, score_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingCandidateQuery:
    """ACTIVE listings answering a buyer request."""

    exclude_seller_id: str
    category_id: Optional[str] = None
    condition: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None

    @classmethod
    def for_request(cls, request: BuyerRequest) -> "ListingCandidateQuery":
        return cls(
            exclude_seller_id=request.buyer_id,
            category_id=request.category_id,
            condition=request.preferred_condition,
            min_price=request.min_price,
            max_price=request.max_price,
        )

    def to_select(self):
        stmt = select(Listing).where(
            Listing.status == ListingStatus.ACTIVE.value,
            Listing.seller_id != self.exclude_seller_id,
        )
        if self.category_id is not None:
            stmt = stmt.where(Listing.category_id == self.category_id)
        if self.condition is not None:
            stmt = stmt.where(Listing.condition == self.condition)
        if self.min_price is not None:
            stmt = stmt.where(Listing.price >= self.min_price)
        if self.max_price is not None:
            stmt = stmt.where(Listing.price <= self.max_price)
        return stmt.order_by(Listing.created_at.desc(), Listing.id)


@dataclass(frozen=True)
class RequestCandidateQuery:
    """ACTIVE, unexpired buyer requests a listing could answer."""

    exclude_buyer_id: str
    category_id: str
    condition: str
    as_of: datetime

    @classmethod
    def for_listing(
        cls,
        listing: Listing,
        as_of: Optional[datetime] = None,
    ) -> "RequestCandidateQuery":
        return cls(
            exclude_buyer_id=listing.seller_id,
            category_id=listing.category_id,
            condition=listing.condition,
            as_of=as_of or datetime.now(timezone.utc),
        )

    def to_select(self):
        return (
            select(BuyerRequest)
            .where(
                BuyerRequest.status == BuyerRequestStatus.ACTIVE.value,
                BuyerRequest.buyer_id != self.exclude_buyer_id,
                BuyerRequest.category_id == self.category_id,
                BuyerRequest.preferred_condition == self.condition,
                or_(
                    BuyerRequest.expires_at.is_(None),
                    BuyerRequest.expires_at > self.as_of.replace(tzinfo=None),
                ),
            )
            .order_by(BuyerRequest.created_at.desc(), BuyerRequest.id)
        )


class MatchingService:
    """Finds and ranks listing <-> request pairings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_matches_for_request(self, request_id: str) -> list[dict]:
        """Listings scoring at least the threshold for an ACTIVE request, best first."""
        request = await self.db.get(BuyerRequest, request_id)
        if request is None:
            raise NotFoundError("Request", request_id)
        if request.status != BuyerRequestStatus.ACTIVE.value:
            raise ConflictError(f"Request {request_id} is {request.status}, not open for matching")

        query = ListingCandidateQuery.for_request(request)
        result = await self.db.execute(query.to_select())
        listings = result.scalars().all()

        matches = []
        for listing in listings:
            scored = score_match(listing, request)
            if not is_match(scored):
                continue
            matches.append({
                "listing_id": listing.id,
                "request_id": request.id,
                "score": scored["score"],
                "matched_criteria": scored["matched_criteria"],
                "listing": listing,
            })

        # Stable sort keeps the newest-first candidate order within equal scores
        matches.sort(key=lambda m: m["score"], reverse=True)

        logger.info(
            "Request %s: %d candidate listings, %d matches",
            request.id, len(listings), len(matches),
        )
        return matches

    async def find_matches_for_listing(self, listing_id: str) -> list[dict]:
        """Every candidate request for *listing_id* with its score (no floor)."""
        listing = await self.db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)

        query = RequestCandidateQuery.for_listing(listing)
        result = await self.db.execute(query.to_select())
        requests = result.scalars().all()

        matches = []
        for request in requests:
            scored = score_match(listing, request)
            matches.append({
                "request_id": request.id,
                "listing_id": listing.id,
                "score": scored["score"],
                "matched_criteria": scored["matched_criteria"],
                "request": request,
            })

        logger.info("Listing %s: %d candidate requests", listing.id, len(matches))
        return matches
