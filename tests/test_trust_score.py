"""Tests for the bounded trust score: pure formula and snapshot loading."""

import uuid

import pytest

from decluttit.domain.enums import (
    DisputeStatus,
    TransactionStatus,
    VerificationLevel,
)
from decluttit.domain.errors import NotFoundError
from decluttit.domain.models import Dispute, Review
from decluttit.services.trust_score import (
    MAX_TRUST_SCORE,
    TrustScoreService,
    TrustSignals,
    compute_trust_score,
)

V = VerificationLevel
S = TransactionStatus


class TestComputeTrustScore:
    def test_new_user_scores_zero(self):
        assert compute_trust_score(TrustSignals()) == 0

    @pytest.mark.parametrize("level,expected", [
        (V.BASIC, 0),
        (V.ID_VERIFIED, 50),
        (V.PREMIUM, 100),
    ])
    def test_verification_base(self, level, expected):
        assert compute_trust_score(TrustSignals(verification_level=level)) == expected

    def test_released_points_are_capped(self):
        assert compute_trust_score(TrustSignals(released_count=4)) == 40
        assert compute_trust_score(TrustSignals(released_count=25)) == 100

    def test_rating_points_round_half_up_and_cap(self):
        assert compute_trust_score(TrustSignals(average_rating=4.25)) == 43
        assert compute_trust_score(TrustSignals(average_rating=4.75)) == 48
        assert compute_trust_score(TrustSignals(average_rating=5.0)) == 50

    def test_no_reviews_adds_nothing(self):
        assert compute_trust_score(TrustSignals(average_rating=None, released_count=1)) == 10

    def test_penalties_clamp_at_zero(self):
        signals = TrustSignals(
            verification_level=V.ID_VERIFIED, resolved_dispute_count=2, cancelled_count=3,
        )
        assert compute_trust_score(signals) == 0

    def test_everything_maxed_stays_within_bounds(self):
        signals = TrustSignals(verification_level=V.PREMIUM, released_count=50, average_rating=5)
        assert compute_trust_score(signals) == 250 <= MAX_TRUST_SCORE

    def test_combined(self):
        signals = TrustSignals(
            verification_level=V.ID_VERIFIED,
            released_count=3,
            average_rating=4.0,
            resolved_dispute_count=1,
            cancelled_count=1,
        )
        assert compute_trust_score(signals) == 50 + 30 + 40 - 20 - 10


class TestTrustScoreService:
    async def test_load_signals_reads_every_aggregate(
        self, db_session, make_user, make_listing, make_transaction,
    ):
        user = await make_user(verification_level=V.PREMIUM)
        other = await make_user()
        listing = await make_listing(user)

        released = await make_transaction(other, listing, status=S.RELEASED)
        await make_transaction(other, await make_listing(user), status=S.RELEASED)
        await make_transaction(other, await make_listing(user), status=S.CANCELLED)
        await make_transaction(other, await make_listing(user), status=S.ESCROWED)

        for rating, reviewer in ((5, other.id), (4, str(uuid.uuid4()))):
            db_session.add(Review(
                transaction_id=released.id, reviewer_id=reviewer,
                reviewee_id=user.id, rating=rating,
            ))
        db_session.add(Dispute(
            transaction_id=released.id, complainant_id=other.id, respondent_id=user.id,
            reason="x", description="y", status=DisputeStatus.RESOLVED.value,
        ))
        await db_session.flush()

        signals = await TrustScoreService(db_session).load_signals(user.id)

        assert signals == TrustSignals(
            verification_level=V.PREMIUM,
            released_count=2,
            average_rating=4.5,
            resolved_dispute_count=1,
            cancelled_count=1,
        )

    async def test_recompute_persists_from_scratch(self, db_session, make_user):
        user = await make_user(verification_level=V.ID_VERIFIED, trust_score=299)

        score = await TrustScoreService(db_session).recompute(user.id)

        assert score == 50
        assert user.trust_score == 50

    async def test_recompute_is_idempotent(self, db_session, make_user):
        user = await make_user(verification_level=V.ID_VERIFIED)
        service = TrustScoreService(db_session)
        assert await service.recompute(user.id) == await service.recompute(user.id)

    async def test_id_verification_raises_base(self, db_session, make_user):
        user = await make_user()

        score = await TrustScoreService(db_session).handle_id_verification(user.id)

        assert score == 50
        assert user.verification_level == V.ID_VERIFIED.value

    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await TrustScoreService(db_session).recompute("missing")
