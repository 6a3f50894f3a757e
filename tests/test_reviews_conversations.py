"""Tests for post-trade reviews and per-transaction conversations."""

import pytest

from decluttit.domain.actor import ActorContext
from decluttit.domain.enums import TransactionStatus
from decluttit.domain.errors import ConflictError, UnauthorizedError, ValidationError
from decluttit.services.conversation_service import ConversationService
from decluttit.services.review_service import ReviewService

S = TransactionStatus


def _actor(user) -> ActorContext:
    return ActorContext.from_user(user)


class TestReviews:
    async def test_buyer_reviews_seller_and_trust_updates(
        self, db_session, make_user, make_listing, make_transaction,
    ):
        buyer = await make_user()
        seller = await make_user()
        txn = await make_transaction(buyer, await make_listing(seller), status=S.RELEASED)

        review = await ReviewService(db_session).create_review(txn.id, _actor(buyer), 5, "Great seller")

        assert review.reviewee_id == seller.id
        await db_session.refresh(seller)
        # One release (10) plus a 5.0 average (50)
        assert seller.trust_score == 60

    async def test_one_review_per_reviewer(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        seller = await make_user()
        txn = await make_transaction(buyer, await make_listing(seller), status=S.RELEASED)
        service = ReviewService(db_session)

        await service.create_review(txn.id, _actor(buyer), 4)
        with pytest.raises(ConflictError):
            await service.create_review(txn.id, _actor(buyer), 1)

        # The other party still gets their own review
        review = await service.create_review(txn.id, _actor(seller), 5)
        assert review.reviewee_id == buyer.id

    async def test_only_released_transactions(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        txn = await make_transaction(buyer, await make_listing(await make_user()), status=S.SHIPPED)
        with pytest.raises(ConflictError):
            await ReviewService(db_session).create_review(txn.id, _actor(buyer), 5)

    async def test_outsider_cannot_review(self, db_session, make_user, make_listing, make_transaction):
        txn = await make_transaction(
            await make_user(), await make_listing(await make_user()), status=S.RELEASED,
        )
        with pytest.raises(UnauthorizedError):
            await ReviewService(db_session).create_review(txn.id, _actor(await make_user()), 5)

    @pytest.mark.parametrize("rating", [0, 6])
    async def test_rating_bounds(self, db_session, make_user, rating):
        buyer = await make_user()
        with pytest.raises(ValidationError):
            await ReviewService(db_session).create_review("any", _actor(buyer), rating)


class TestConversations:
    async def test_start_is_idempotent(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        seller = await make_user()
        txn = await make_transaction(buyer, await make_listing(seller))
        service = ConversationService(db_session)

        first = await service.start_conversation(txn.id, _actor(buyer))
        second = await service.start_conversation(txn.id, _actor(seller))

        assert first.id == second.id
        assert (first.buyer_id, first.seller_id) == (buyer.id, seller.id)

    async def test_messages_and_mark_read(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        seller = await make_user()
        txn = await make_transaction(buyer, await make_listing(seller))
        service = ConversationService(db_session)
        conversation = await service.start_conversation(txn.id, _actor(buyer))

        await service.send_message(conversation.id, _actor(buyer), "Is it still available?")
        await service.send_message(conversation.id, _actor(buyer), "I can pick up today")
        await service.send_message(conversation.id, _actor(seller), "Yes")

        assert conversation.last_message_at is not None
        assert await service.mark_read(conversation.id, _actor(seller)) == 2
        assert await service.mark_read(conversation.id, _actor(seller)) == 0

        messages = await service.list_messages(conversation.id, _actor(buyer))
        assert len(messages) == 3

    async def test_outsider_locked_out(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        txn = await make_transaction(buyer, await make_listing(await make_user()))
        service = ConversationService(db_session)
        conversation = await service.start_conversation(txn.id, _actor(buyer))
        outsider = await make_user()

        with pytest.raises(UnauthorizedError):
            await service.start_conversation(txn.id, _actor(outsider))
        with pytest.raises(UnauthorizedError):
            await service.send_message(conversation.id, _actor(outsider), "hello")

    async def test_empty_message_rejected(self, db_session, make_user, make_listing, make_transaction):
        buyer = await make_user()
        txn = await make_transaction(buyer, await make_listing(await make_user()))
        service = ConversationService(db_session)
        conversation = await service.start_conversation(txn.id, _actor(buyer))

        with pytest.raises(ValidationError):
            await service.send_message(conversation.id, _actor(buyer), "   ")
