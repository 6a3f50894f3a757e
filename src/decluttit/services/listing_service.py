"""Listing service: owner-guarded listing CRUD."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import ItemCondition, ListingStatus
from decluttit.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import Listing

logger = logging.getLogger(__name__)

# Fields a seller may edit after creation
EDITABLE_FIELDS = (
    "title",
    "description",
    "category_id",
    "condition",
    "price",
    "location_id",
    "is_negotiable",
)

# Statuses a seller may set by hand; SOLD is reserved for fund release
SELLER_SETTABLE_STATUSES = frozenset({ListingStatus.ACTIVE, ListingStatus.HIDDEN})


@dataclass(frozen=True)
class ListingSearchQuery:
    """Public browse filter."""

    category_id: Optional[str] = None
    condition: Optional[ItemCondition] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    location_id: Optional[str] = None
    search: Optional[str] = None
    seller_id: Optional[str] = None
    status: ListingStatus = ListingStatus.ACTIVE
    page: int = 1
    per_page: int = 20


def validate_price(price) -> Decimal:
    """Return *price* as a Decimal, raising ValidationError unless it is > 0."""
    if price is None:
        raise ValidationError("Price is required")
    value = price if isinstance(price, Decimal) else Decimal(str(price))
    if value <= 0:
        raise ValidationError("Price must be positive")
    return value


class ListingService:
    """Creates and mutates listings on behalf of their sellers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_404(self, listing_id: str) -> Listing:
        listing = await self.db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError("Listing", listing_id)
        return listing

    async def create_listing(
        self,
        actor: ActorContext,
        title: str,
        category_id: str,
        condition: ItemCondition | str,
        price,
        location_id: str,
        description: Optional[str] = None,
        is_negotiable: bool = True,
    ) -> Listing:
        if not title or len(title.strip()) < 3:
            raise ValidationError("Title must be at least 3 characters")

        listing = Listing(
            seller_id=actor.user_id,
            title=title.strip(),
            description=description,
            category_id=category_id,
            condition=ItemCondition(condition).value,
            price=validate_price(price),
            location_id=location_id,
            is_negotiable=is_negotiable,
            status=ListingStatus.ACTIVE.value,
        )
        self.db.add(listing)
        await self.db.flush()
        logger.info("Listing %s created by %s at %s", listing.id, actor.user_id, listing.price)
        return listing

    async def view_listing(self, listing_id: str) -> Listing:
        """Fetch a listing for display and bump its view count."""
        listing = await self.get_or_404(listing_id)
        listing.view_count = (listing.view_count or 0) + 1
        await self.db.flush()
        return listing

    async def update_listing(self, listing_id: str, actor: ActorContext, **changes) -> Listing:
        listing = await self.get_or_404(listing_id)
        if listing.seller_id != actor.user_id:
            raise UnauthorizedError("Not authorized to update this listing")
        if listing.status == ListingStatus.SOLD.value:
            raise ConflictError("Sold listings cannot be edited")

        unknown = set(changes) - set(EDITABLE_FIELDS) - {"status"}
        if unknown:
            raise ValidationError(f"Unknown listing fields: {', '.join(sorted(unknown))}")

        for field in EDITABLE_FIELDS:
            if field not in changes or changes[field] is None:
                continue
            value = changes[field]
            if field == "price":
                value = validate_price(value)
            elif field == "condition":
                value = ItemCondition(value).value
            setattr(listing, field, value)

        if changes.get("status") is not None:
            status = ListingStatus(changes["status"])
            if status not in SELLER_SETTABLE_STATUSES:
                raise ValidationError(f"Sellers cannot set listing status to {status.value}")
            listing.status = status.value

        await self.db.flush()
        return listing

    async def hide_listing(self, listing_id: str, actor: ActorContext) -> Listing:
        """Soft-delete: listings are hidden, never removed."""
        return await self.update_listing(listing_id, actor, status=ListingStatus.HIDDEN)

    async def search_listings(self, query: ListingSearchQuery) -> tuple[list[Listing], int]:
        conditions = [Listing.status == ListingStatus(query.status).value]
        if query.category_id:
            conditions.append(Listing.category_id == query.category_id)
        if query.condition:
            conditions.append(Listing.condition == ItemCondition(query.condition).value)
        if query.min_price is not None:
            conditions.append(Listing.price >= query.min_price)
        if query.max_price is not None:
            conditions.append(Listing.price <= query.max_price)
        if query.location_id:
            conditions.append(Listing.location_id == query.location_id)
        if query.seller_id:
            conditions.append(Listing.seller_id == query.seller_id)
        if query.search:
            conditions.append(Listing.title.ilike(f"%{query.search}%"))

        total = await self.db.scalar(select(func.count(Listing.id)).where(*conditions))
        result = await self.db.execute(
            select(Listing)
            .where(*conditions)
            .order_by(Listing.created_at.desc(), Listing.id)
            .offset((query.page - 1) * query.per_page)
            .limit(query.per_page)
        )
        return list(result.scalars().all()), int(total or 0)
