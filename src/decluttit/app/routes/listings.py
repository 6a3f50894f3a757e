"""Listing routes: browse, create, update, hide."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import ItemCondition
from decluttit.domain.schemas import ListingCreate, ListingPage, ListingResponse, ListingUpdate
from decluttit.infra.database import get_db
from decluttit.services.listing_service import ListingSearchQuery, ListingService

router = APIRouter(prefix="/api/listings", tags=["listings"])


@router.get("", response_model=ListingPage)
async def list_listings(
    category_id: str | None = None,
    condition: ItemCondition | None = None,
    min_price: Decimal | None = Query(None, gt=0),
    max_price: Decimal | None = Query(None, gt=0),
    location_id: str | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    query = ListingSearchQuery(
        category_id=category_id,
        condition=condition,
        min_price=min_price,
        max_price=max_price,
        location_id=location_id,
        search=search,
        page=page,
        per_page=per_page,
    )
    listings, total = await ListingService(db).search_listings(query)
    return ListingPage(
        listings=[ListingResponse.model_validate(l) for l in listings],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/mine", response_model=ListingPage)
async def my_listings(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    query = ListingSearchQuery(seller_id=actor.user_id, page=page, per_page=per_page)
    listings, total = await ListingService(db).search_listings(query)
    return ListingPage(
        listings=[ListingResponse.model_validate(l) for l in listings],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=ListingResponse, status_code=201)
async def create_listing(
    data: ListingCreate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    listing = await ListingService(db).create_listing(actor, **data.model_dump())
    await db.commit()
    await db.refresh(listing)
    return ListingResponse.model_validate(listing)


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(listing_id: str, db: AsyncSession = Depends(get_db)):
    listing = await ListingService(db).view_listing(listing_id)
    await db.commit()
    return ListingResponse.model_validate(listing)


@router.patch("/{listing_id}", response_model=ListingResponse)
async def update_listing(
    listing_id: str,
    data: ListingUpdate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    listing = await ListingService(db).update_listing(
        listing_id, actor, **data.model_dump(exclude_unset=True)
    )
    await db.commit()
    await db.refresh(listing)
    return ListingResponse.model_validate(listing)


@router.delete("/{listing_id}", response_model=ListingResponse)
async def hide_listing(
    listing_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    listing = await ListingService(db).hide_listing(listing_id, actor)
    await db.commit()
    return ListingResponse.model_validate(listing)
