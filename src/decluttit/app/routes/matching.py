"""Matching routes: ranked candidates in both directions, and trade initiation."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.schemas import (
    BuyerRequestResponse,
    InitiateTransaction,
    ListingMatchResponse,
    ListingResponse,
    RequestMatchResponse,
    TransactionResponse,
)
from decluttit.infra.database import get_db
from decluttit.services.matching_service import MatchingService
from decluttit.services.transaction_service import TransactionService

router = APIRouter(prefix="/api/matching", tags=["matching"])


@router.get("/requests/{request_id}", response_model=list[ListingMatchResponse])
async def matches_for_request(
    request_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    matches = await MatchingService(db).find_matches_for_request(request_id)
    return [
        ListingMatchResponse(**{**m, "listing": ListingResponse.model_validate(m["listing"])})
        for m in matches
    ]


@router.get("/listings/{listing_id}", response_model=list[RequestMatchResponse])
async def matches_for_listing(
    listing_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    matches = await MatchingService(db).find_matches_for_listing(listing_id)
    return [
        RequestMatchResponse(**{**m, "request": BuyerRequestResponse.model_validate(m["request"])})
        for m in matches
    ]


@router.post("/initiate", response_model=TransactionResponse, status_code=201)
async def initiate_transaction(
    data: InitiateTransaction,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    txn = await TransactionService(db).create_transaction(
        data.listing_id, actor, request_id=data.request_id,
    )
    await db.commit()
    await db.refresh(txn)
    return TransactionResponse.model_validate(txn)
