"""Review routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.app.routes.auth import get_actor_dep
from decluttit.domain.actor import ActorContext
from decluttit.domain.schemas import ReviewCreate, ReviewResponse
from decluttit.infra.database import get_db
from decluttit.services.review_service import ReviewService

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.post("/transactions/{transaction_id}", response_model=ReviewResponse, status_code=201)
async def create_review(
    transaction_id: str,
    data: ReviewCreate,
    actor: ActorContext = Depends(get_actor_dep),
    db: AsyncSession = Depends(get_db),
):
    review = await ReviewService(db).create_review(
        transaction_id, actor, data.rating, data.comment,
    )
    await db.commit()
    await db.refresh(review)
    return ReviewResponse.model_validate(review)


@router.get("/users/{user_id}", response_model=list[ReviewResponse])
async def reviews_for_user(user_id: str, db: AsyncSession = Depends(get_db)):
    reviews = await ReviewService(db).list_reviews_for_user(user_id)
    return [ReviewResponse.model_validate(r) for r in reviews]
