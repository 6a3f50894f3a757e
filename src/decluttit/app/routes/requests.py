"""Buyer request routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import BuyerRequestStatus
from decluttit.domain.schemas import BuyerRequestCreate, BuyerRequestResponse, BuyerRequestUpdate
from decluttit.infra.database import get_db
from decluttit.services.request_service import BuyerRequestService

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.get("", response_model=list[BuyerRequestResponse])
async def list_requests(category_id: str | None = None, db: AsyncSession = Depends(get_db)):
    requests = await BuyerRequestService(db).list_requests(category_id=category_id)
    return [BuyerRequestResponse.model_validate(r) for r in requests]


@router.get("/mine", response_model=list[BuyerRequestResponse])
async def my_requests(
    status: BuyerRequestStatus | None = None,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    requests = await BuyerRequestService(db).list_requests(buyer_id=actor.user_id, status=status)
    return [BuyerRequestResponse.model_validate(r) for r in requests]


@router.post("", response_model=BuyerRequestResponse, status_code=201)
async def create_request(
    data: BuyerRequestCreate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    request = await BuyerRequestService(db).create_request(actor, **data.model_dump())
    await db.commit()
    await db.refresh(request)
    return BuyerRequestResponse.model_validate(request)


@router.get("/{request_id}", response_model=BuyerRequestResponse)
async def get_request(request_id: str, db: AsyncSession = Depends(get_db)):
    request = await BuyerRequestService(db).get_or_404(request_id)
    return BuyerRequestResponse.model_validate(request)


@router.patch("/{request_id}", response_model=BuyerRequestResponse)
async def update_request(
    request_id: str,
    data: BuyerRequestUpdate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    request = await BuyerRequestService(db).update_request(
        request_id, actor, **data.model_dump(exclude_unset=True)
    )
    await db.commit()
    await db.refresh(request)
    return BuyerRequestResponse.model_validate(request)


@router.post("/{request_id}/cancel", response_model=BuyerRequestResponse)
async def cancel_request(
    request_id: str,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    request = await BuyerRequestService(db).cancel_request(request_id, actor)
    await db.commit()
    return BuyerRequestResponse.model_validate(request)
