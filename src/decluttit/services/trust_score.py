"""Trust score engine.

The score is a pure function of a user's current aggregate history:

    base(verification level)                      0 / 50 / 100
  + min(10 x released transactions, 100)
  + min(round(10 x average received rating), 50)  0 with no reviews
  - 20 x resolved disputes involving the user
  - 10 x cancelled transactions involving the user

clamped to [0, 300]. Recomputation always starts from a fresh snapshot,
never from the previously stored score.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from decluttit.domain.enums import DisputeStatus, TransactionStatus, VerificationLevel
from decluttit.domain.errors import NotFoundError
from decluttit.domain.models import Dispute, Review, Transaction, User

logger = logging.getLogger(__name__)

MIN_TRUST_SCORE = 0
MAX_TRUST_SCORE = 300

VERIFICATION_BASE: dict[VerificationLevel, int] = {
    VerificationLevel.BASIC: 0,
    VerificationLevel.ID_VERIFIED: 50,
    VerificationLevel.PREMIUM: 100,
}

POINTS_PER_RELEASED = 10
RELEASED_CAP = 100
RATING_MULTIPLIER = 10
RATING_CAP = 50
DISPUTE_PENALTY = 20
CANCELLATION_PENALTY = 10


@dataclass(frozen=True)
class TrustSignals:
    """Aggregate inputs to the trust score, read in one snapshot."""

    verification_level: VerificationLevel = VerificationLevel.BASIC
    released_count: int = 0
    average_rating: Optional[float] = None
    resolved_dispute_count: int = 0
    cancelled_count: int = 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_trust_score(signals: TrustSignals) -> int:
    """Return the bounded trust score for *signals*."""
    score = VERIFICATION_BASE.get(VerificationLevel(signals.verification_level), 0)

    score += min(signals.released_count * POINTS_PER_RELEASED, RELEASED_CAP)

    if signals.average_rating is not None:
        score += min(_round_half_up(signals.average_rating * RATING_MULTIPLIER), RATING_CAP)

    score -= signals.resolved_dispute_count * DISPUTE_PENALTY
    score -= signals.cancelled_count * CANCELLATION_PENALTY

    return max(MIN_TRUST_SCORE, min(score, MAX_TRUST_SCORE))


class TrustScoreService:
    """Loads trust signals, persists recomputed scores, and handles triggers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_signals(self, user_id: str) -> TrustSignals:
        """Read every aggregate for *user_id* in a single SELECT."""
        involved = or_(Transaction.buyer_id == user_id, Transaction.seller_id == user_id)

        released = (
            select(func.count(Transaction.id))
            .where(involved, Transaction.status == TransactionStatus.RELEASED.value)
            .scalar_subquery()
        )
        cancelled = (
            select(func.count(Transaction.id))
            .where(involved, Transaction.status == TransactionStatus.CANCELLED.value)
            .scalar_subquery()
        )
        avg_rating = (
            select(func.avg(Review.rating))
            .where(Review.reviewee_id == user_id)
            .scalar_subquery()
        )
        disputes = (
            select(func.count(Dispute.id))
            .where(
                or_(Dispute.complainant_id == user_id, Dispute.respondent_id == user_id),
                Dispute.status == DisputeStatus.RESOLVED.value,
            )
            .scalar_subquery()
        )

        result = await self.db.execute(
            select(
                User.verification_level,
                released.label("released"),
                avg_rating.label("avg_rating"),
                disputes.label("disputes"),
                cancelled.label("cancelled"),
            ).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("User", user_id)

        return TrustSignals(
            verification_level=VerificationLevel(row.verification_level),
            released_count=int(row.released or 0),
            average_rating=float(row.avg_rating) if row.avg_rating is not None else None,
            resolved_dispute_count=int(row.disputes or 0),
            cancelled_count=int(row.cancelled or 0),
        )

    async def calculate(self, user_id: str) -> int:
        """Compute the score for *user_id* without persisting it."""
        return compute_trust_score(await self.load_signals(user_id))

    async def recompute(self, user_id: str) -> int:
        """Recompute and store the trust score for *user_id*."""
        signals = await self.load_signals(user_id)
        score = compute_trust_score(signals)

        user = await self.db.get(User, user_id)
        previous = user.trust_score
        user.trust_score = score
        await self.db.flush()

        logger.info(
            "Trust score for user %s: %s -> %s (%s)", user_id, previous, score, signals,
        )
        return score

    # ── Triggers ─────────────────────────────────────────────────────────────

    async def handle_id_verification(
        self,
        user_id: str,
        level: VerificationLevel = VerificationLevel.ID_VERIFIED,
    ) -> int:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        user.verification_level = VerificationLevel(level).value
        await self.db.flush()
        return await self.recompute(user_id)

    async def handle_transaction_complete(self, transaction) -> tuple[int, int]:
        """Recompute both parties after a release (or cancellation)."""
        buyer_score = await self.recompute(transaction.buyer_id)
        seller_score = await self.recompute(transaction.seller_id)
        return buyer_score, seller_score

    async def handle_dispute_resolved(self, dispute) -> int:
        """Recompute the respondent only; the complainant is left as-is."""
        return await self.recompute(dispute.respondent_id)
