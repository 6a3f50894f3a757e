"""Review service: post-trade ratings feeding the trust score."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import TransactionStatus
from decluttit.domain.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from decluttit.domain.models import Review, Transaction
from decluttit.services.trust_score import TrustScoreService

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    def __init__(self, db: AsyncSession, trust: Optional[TrustScoreService] = None):
        self.db = db
        self.trust = trust or TrustScoreService(db)

    async def create_review(
        self,
        transaction_id: str,
        actor: ActorContext,
        rating: int,
        comment: Optional[str] = None,
    ) -> Review:
        """Rate the other party of a RELEASED transaction, once per reviewer."""
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        txn = await self.db.get(Transaction, transaction_id)
        if txn is None:
            raise NotFoundError("Transaction", transaction_id)
        if actor.user_id == txn.buyer_id:
            reviewee_id = txn.seller_id
        elif actor.user_id == txn.seller_id:
            reviewee_id = txn.buyer_id
        else:
            raise UnauthorizedError("Not a participant in this transaction")
        if txn.status != TransactionStatus.RELEASED.value:
            raise ConflictError("Only completed transactions can be reviewed")

        existing = await self.db.execute(
            select(Review.id).where(
                Review.transaction_id == transaction_id,
                Review.reviewer_id == actor.user_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("You have already reviewed this transaction")

        review = Review(
            transaction_id=transaction_id,
            reviewer_id=actor.user_id,
            reviewee_id=reviewee_id,
            rating=rating,
            comment=comment,
        )
        self.db.add(review)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("You have already reviewed this transaction")

        await self.trust.recompute(reviewee_id)
        logger.info(
            "Review %s: %s rated %s %d/5 on transaction %s",
            review.id, actor.user_id, reviewee_id, rating, transaction_id,
        )
        return review

    async def list_reviews_for_user(self, user_id: str) -> list[Review]:
        result = await self.db.execute(
            select(Review)
            .where(Review.reviewee_id == user_id)
            .order_by(Review.created_at.desc())
        )
        return list(result.scalars().all())
